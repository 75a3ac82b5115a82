# game/constants.py

# Animation tags as they travel on the wire
ANIM_IDLE = "Idle"
ANIM_RUNNING = "Running"
ANIM_INTERACTING = "FishingIdle"
ANIM_DEFAULT_POSE = "TPose"

ANIMATION_TAGS = (ANIM_IDLE, ANIM_RUNNING, ANIM_INTERACTING, ANIM_DEFAULT_POSE)

# Control tick (movement prediction + outgoing state)
CONTROL_HZ = 20.0
MOVE_SPEED = 0.2          # world units per control tick
STOP_GRACE_S = 1.0        # delay before the idle camera looks back

# Follow camera
CAMERA_SMOOTH = 0.05
CAMERA_DISTANCE = 10.0
CAMERA_HEIGHT = 5.0
CAMERA_LOOK_BACK = "look_back"
CAMERA_HOLD = "hold"

# Animation playback
ANIM_BLEND_S = 0.5

# Floor plane (y-up world)
FLOOR_Y = -1.0
FLOOR_SIZE = 100.0

DEFAULT_POSITION = (0.0, 0.0, 0.0)
DEFAULT_ROTATION = 0.0
