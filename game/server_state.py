# game/server_state.py
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple
import uuid

from .constants import ANIM_IDLE, DEFAULT_POSITION, DEFAULT_ROTATION

@dataclass
class ParticipantState:
    id: str
    position: Tuple[float, float, float] = DEFAULT_POSITION
    rotation: float = DEFAULT_ROTATION   # yaw, radians
    animation_name: str = ANIM_IDLE
    last_seq: Optional[int] = None       # last applied sender sequence number

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": list(self.position),
            "rotation": self.rotation,
            "animationName": self.animation_name,
        }

@dataclass
class StateUpdate:
    """Fields of a playerMove; None means "leave unchanged"."""
    position: Optional[Tuple[float, float, float]] = None
    rotation: Optional[float] = None
    animation_name: Optional[str] = None
    seq: Optional[int] = None

@dataclass
class SessionRegistry:
    """Last-known state of every connected participant.

    Owned by the relay. Not thread-safe: every call must come from the
    server's event loop.
    """
    players: Dict[str, ParticipantState] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.players)

    def __contains__(self, pid: object) -> bool:
        return pid in self.players

    def __iter__(self) -> Iterator[str]:
        return iter(self.players)

    def get(self, pid: str) -> Optional[ParticipantState]:
        return self.players.get(pid)

    def new_id(self) -> str:
        pid = uuid.uuid4().hex
        while pid in self.players:
            pid = uuid.uuid4().hex
        return pid

    def add(self, pid: Optional[str] = None) -> ParticipantState:
        if pid is None:
            pid = self.new_id()
        if pid in self.players:
            raise KeyError(f"participant {pid} already registered")
        p = ParticipantState(id=pid)
        self.players[pid] = p
        return p

    def remove(self, pid: str) -> Optional[ParticipantState]:
        return self.players.pop(pid, None)

    def apply(self, pid: str, update: StateUpdate) -> Optional[ParticipantState]:
        """Overwrite the fields present in update.

        Returns the updated state, or None when the id is gone (disconnect
        race) or the update carries a sequence number older than one already
        applied for that id.
        """
        p = self.players.get(pid)
        if p is None:
            return None
        if update.seq is not None:
            if p.last_seq is not None and update.seq <= p.last_seq:
                return None
            p.last_seq = update.seq
        if update.position is not None:
            p.position = update.position
        if update.rotation is not None:
            p.rotation = update.rotation
        if update.animation_name is not None:
            p.animation_name = update.animation_name
        return p

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {pid: p.to_wire() for pid, p in self.players.items()}

    def delta(self, pid: str) -> Dict[str, Dict[str, Any]]:
        p = self.players.get(pid)
        return {pid: p.to_wire()} if p is not None else {}
