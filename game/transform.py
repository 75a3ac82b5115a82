# game/transform.py
import math
from typing import Sequence, Tuple

Vec3 = Tuple[float, float, float]

# ---- Angles ---------------------------------------------------------------

def wrap_pi(a: float) -> float:
    """Wrap radians into (-pi, pi]."""
    w = math.fmod(a + math.pi, 2 * math.pi)
    if w <= 0.0:
        w += 2 * math.pi
    return w - math.pi

def angle_delta(current: float, target: float) -> float:
    """Signed shortest-arc difference target - current, in (-pi, pi]."""
    return wrap_pi(target - current)

# ---- World space (y up, yaw about +Y) -------------------------------------
# yaw = 0 faces +Z; the camera-relative basis follows the follow-camera
# convention: forward = (-sin, 0, cos), right = (cos, 0, sin).

def heading_forward(yaw_rad: float) -> Vec3:
    return (-math.sin(yaw_rad), 0.0, math.cos(yaw_rad))

def heading_right(yaw_rad: float) -> Vec3:
    return (math.cos(yaw_rad), 0.0, math.sin(yaw_rad))

def clamp_axis(v: float) -> float:
    return max(-1.0, min(1.0, float(v)))

def camera_move_delta(x: float, y: float, camera_yaw: float, speed: float,
                      normalize: bool = False) -> Vec3:
    """
    Convert a controller-space direction into a world-space displacement.
    - x: right/left in [-1, 1]
    - y: stick vertical in [-1, 1]; the forward component is -y
    - speed: world units per control tick

    Each axis is clamped on its own. Joint magnitude is left alone unless
    normalize is set, so a full diagonal moves sqrt(2) times faster.
    """
    x, y = clamp_axis(x), clamp_axis(y)
    if normalize:
        mag = math.hypot(x, y)
        if mag > 1.0:
            x /= mag
            y /= mag

    fx, _, fz = heading_forward(camera_yaw)
    rx, _, rz = heading_right(camera_yaw)
    dx = fx * (-y * speed) + rx * (x * speed)
    dz = fz * (-y * speed) + rz * (x * speed)
    return (dx, 0.0, dz)

def facing_from_delta(delta: Sequence[float]) -> float:
    """Yaw that faces along a displacement (atan2(dx, dz))."""
    return math.atan2(delta[0], delta[2])

def is_zero(delta: Sequence[float], eps: float = 1e-9) -> bool:
    return all(abs(c) <= eps for c in delta)

def add(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])

def follow_offset(yaw_rad: float, distance: float, height: float) -> Vec3:
    """Follow-camera offset from the tracked player."""
    return (-math.sin(yaw_rad) * distance, height, math.cos(yaw_rad) * distance)

# ---- Panda3D frame (X right, Y forward, Z up) -----------------------------
# World (x, y, z) with y up maps to Panda (x, -z, y). The mapping is a proper
# rotation about X, so a yaw about +Y becomes the same angle about +Z (H).

def to_panda(pos: Sequence[float]) -> Vec3:
    return (float(pos[0]), -float(pos[2]), float(pos[1]))

def yaw_to_heading_deg(yaw_rad: float) -> float:
    return math.degrees(yaw_rad)
