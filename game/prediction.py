# game/prediction.py
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from common.net import player_move
from .animation import AnimationSelector
from .constants import ANIM_IDLE, DEFAULT_POSITION, DEFAULT_ROTATION, MOVE_SPEED
from .transform import add, camera_move_delta, clamp_axis, facing_from_delta, is_zero

@dataclass
class LocalPredictedState:
    position: Tuple[float, float, float] = DEFAULT_POSITION
    rotation: float = DEFAULT_ROTATION
    animation_name: str = ANIM_IDLE

class LocalMotionPredictor:
    """
    Applies held directional input to the local avatar on every control tick,
    without waiting for the server. Each change is also returned as an
    outgoing playerMove carrying an increasing sequence number.

    Only the control tick should call tick(), stop(), interact() and reset().
    """

    def __init__(self, speed: float = MOVE_SPEED, normalize_diagonal: bool = False,
                 selector: Optional[AnimationSelector] = None):
        self.speed = speed
        self.normalize_diagonal = normalize_diagonal
        self.selector = selector or AnimationSelector()
        self.state = LocalPredictedState()
        self.direction: Tuple[float, float] = (0.0, 0.0)
        self.moving = False
        self.seq = 0

    def reset(self, position, rotation: float, animation_name: str):
        self.state = LocalPredictedState(
            position=(float(position[0]), float(position[1]), float(position[2])),
            rotation=float(rotation),
            animation_name=self.selector.resolve(animation_name),
        )
        self.selector.state = self.state.animation_name
        self.direction = (0.0, 0.0)
        self.moving = False

    def set_direction(self, x: float, y: float):
        self.direction = (clamp_axis(x), clamp_axis(y))

    def _message(self) -> Dict[str, Any]:
        self.seq += 1
        s = self.state
        return player_move(s.position, s.rotation, s.animation_name, seq=self.seq)

    def tick(self, camera_yaw: float) -> Optional[Dict[str, Any]]:
        x, y = self.direction
        if x == 0.0 and y == 0.0:
            return None
        delta = camera_move_delta(x, y, camera_yaw, self.speed, normalize=self.normalize_diagonal)
        if is_zero(delta):
            return None
        # Facing only changes with a non-zero displacement.
        self.state.position = add(self.state.position, delta)
        self.state.rotation = facing_from_delta(delta)
        self.state.animation_name = self.selector.on_move()
        self.moving = True
        return self._message()

    def stop(self) -> Optional[Dict[str, Any]]:
        """Input released: one final update with the idle tag."""
        was_moving = self.moving
        self.direction = (0.0, 0.0)
        self.moving = False
        anim = self.selector.on_stop()
        if not was_moving and anim == self.state.animation_name:
            return None
        self.state.animation_name = anim
        return self._message()

    def interact(self) -> Optional[Dict[str, Any]]:
        anim = self.selector.on_interact()
        if anim == self.state.animation_name:
            return None
        self.state.animation_name = anim
        return self._message()
