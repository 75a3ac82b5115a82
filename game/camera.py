# game/camera.py
import math
from typing import Optional, Sequence, Tuple

from .constants import CAMERA_DISTANCE, CAMERA_HEIGHT, CAMERA_HOLD, CAMERA_LOOK_BACK, CAMERA_SMOOTH
from .transform import add, angle_delta, follow_offset, wrap_pi

class CameraSmoother:
    """Follow-camera yaw that decays toward a target along the shortest arc.

    step() runs once per render frame. Yaw is kept wrapped in (-pi, pi].
    While the avatar moves the target is its facing angle. The camera sits
    at follow_offset(yaw) from the player, i.e. on the (-sin, cos) side of it.
    """

    def __init__(self, smooth_factor: float = CAMERA_SMOOTH, distance: float = CAMERA_DISTANCE,
                 height: float = CAMERA_HEIGHT, idle_behavior: str = CAMERA_LOOK_BACK,
                 yaw: float = 0.0):
        if not 0.0 < smooth_factor <= 1.0:
            raise ValueError(f"smooth_factor must be in (0, 1], got {smooth_factor}")
        if idle_behavior not in (CAMERA_LOOK_BACK, CAMERA_HOLD):
            raise ValueError(f"unknown idle behavior {idle_behavior!r}")
        self.smooth_factor = smooth_factor
        self.distance = distance
        self.height = height
        self.idle_behavior = idle_behavior
        self.current_yaw = wrap_pi(yaw)
        self.target_yaw = self.current_yaw
        self._look_back_at: Optional[float] = None

    def set_target(self, yaw: float):
        self.target_yaw = wrap_pi(yaw)

    def follow_facing(self, facing: float):
        """Track a moving avatar; cancels any pending idle look-back."""
        self._look_back_at = None
        self.target_yaw = wrap_pi(facing)

    def look_back_after(self, now: float, delay: float):
        """Arm the idle look-back; it fires on the first step() at or after now + delay."""
        self._look_back_at = now + max(0.0, delay)

    @property
    def look_back_pending(self) -> bool:
        return self._look_back_at is not None

    def _fire_look_back(self):
        self._look_back_at = None
        if self.idle_behavior == CAMERA_LOOK_BACK:
            self.target_yaw = wrap_pi(self.current_yaw + math.pi)
        # CAMERA_HOLD: the target stays at the last facing

    def step(self, now: float) -> float:
        if self._look_back_at is not None and now >= self._look_back_at:
            self._fire_look_back()
        self.current_yaw = wrap_pi(
            self.current_yaw + angle_delta(self.current_yaw, self.target_yaw) * self.smooth_factor)
        return self.current_yaw

    def camera_position(self, target: Sequence[float]) -> Tuple[float, float, float]:
        """World position of the camera looking at target."""
        return add(target, follow_offset(self.current_yaw, self.distance, self.height))
