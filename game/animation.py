"""Animation selection and clip cross-fading for avatars."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from .constants import (
    ANIM_BLEND_S,
    ANIM_IDLE,
    ANIM_INTERACTING,
    ANIM_RUNNING,
    ANIMATION_TAGS,
)


class AnimationSelector:
    """Idle / Running / Interacting / default-pose state machine.

    Movement start switches to Running and stop to Idle. Interact holds until
    the next movement start; a stop while interacting keeps the interaction
    pose because the avatar was not moving.
    """

    def __init__(self, available: Iterable[str] = ANIMATION_TAGS, initial: str = ANIM_IDLE) -> None:
        self.available = set(available)
        self._warned: set[str] = set()
        self.state = self.resolve(initial)

    def on_move(self) -> str:
        self.state = ANIM_RUNNING
        return self.state

    def on_stop(self) -> str:
        if self.state != ANIM_INTERACTING:
            self.state = ANIM_IDLE
        return self.state

    def on_interact(self) -> str:
        self.state = ANIM_INTERACTING
        return self.state

    def resolve(self, tag: Optional[str]) -> str:
        """Map a tag to a playable clip name, falling back to Idle."""
        if tag in self.available:
            return tag  # type: ignore[return-value]
        if str(tag) not in self._warned:
            self._warned.add(str(tag))
            print(f"[anim] animation {tag!r} is unknown or not loaded; using {ANIM_IDLE}")
        return ANIM_IDLE


class ClipCrossFade:
    """Blend weights for switching clips over a fixed fade time.

    With blend_s == 0 (backend without blending) every switch is a hard cut.
    A switch in the middle of a fade blends out of whichever clip currently
    has the larger weight; the weaker one is cut.
    """

    def __init__(self, blend_s: float = ANIM_BLEND_S) -> None:
        self.blend_s = max(0.0, float(blend_s))
        self.current: Optional[str] = None
        self.previous: Optional[str] = None
        self._started = 0.0

    def play(self, clip: str, now: float) -> bool:
        """Switch to clip. Returns False when it is already playing."""
        if clip == self.current:
            return False
        if self.blend_s <= 0.0:
            self.previous = None
            self.current = clip
            self._started = now
            return True
        t = self.progress(now)
        if self.previous is not None and t < 1.0 and clip == self.previous:
            # Reverse the running fade so both weights stay continuous.
            self.previous, self.current = self.current, clip
            self._started = now - (1.0 - t) * self.blend_s
            return True
        if self.previous is None or t >= 0.5:
            self.previous = self.current
        self.current = clip
        self._started = now
        return True

    def progress(self, now: float) -> float:
        if self.blend_s <= 0.0 or self.previous is None:
            return 1.0
        return max(0.0, min(1.0, (now - self._started) / self.blend_s))

    def weights(self, now: float) -> Dict[str, float]:
        if self.current is None:
            return {}
        t = self.progress(now)
        if t >= 1.0:
            self.previous = None
            return {self.current: 1.0}
        return {self.current: t, self.previous: 1.0 - t}  # type: ignore[dict-item]
