"""Client-side mirror of the server's session registry."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

State = Dict[str, Any]


class RemoteStateCache:
    """Eventually consistent copy of id -> participant state.

    The network receive path is the only writer. Every write builds a new
    dict and swaps the reference, so the render thread can read ``players``
    at any time without locking and always sees a complete mapping.
    """

    def __init__(self) -> None:
        self._players: Dict[str, State] = {}

    @property
    def players(self) -> Mapping[str, State]:
        return self._players

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, pid: object) -> bool:
        return pid in self._players

    def get(self, pid: str) -> Optional[State]:
        return self._players.get(pid)

    def replace(self, snapshot: Mapping[str, State]) -> None:
        """Full snapshot: ids missing from it are dropped."""
        self._players = {pid: dict(state) for pid, state in snapshot.items()}

    def merge(self, delta: Mapping[str, State]) -> None:
        """Delta: upsert the ids present, leave every other id untouched."""
        if not delta:
            return
        merged = dict(self._players)
        for pid, state in delta.items():
            merged[pid] = dict(state)
        self._players = merged

    def apply(self, players: Mapping[str, State], full: bool) -> None:
        if full:
            self.replace(players)
        else:
            self.merge(players)

    def others(self, self_id: Optional[str]) -> Dict[str, State]:
        """Entries to render as remote avatars (the local id is skipped)."""
        current = self._players
        return {pid: state for pid, state in current.items() if pid != self_id}

    def clear(self) -> None:
        self._players = {}
