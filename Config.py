import logging
from typing import Tuple

# --- Particle System ---
PARTICLE_COUNT: int = 5000        # Particles in the tree / exploded cloud
TREE_HEIGHT: float = 25.0         # World units, tree is centered vertically on 0
TREE_RADIUS: float = 10.0         # Base radius of the cone
EXPLODED_SPREAD: float = 60.0     # Edge length of the exploded noise cube

# --- Animation / Physics ---
TICK_SECONDS: float = 0.016       # Simulated time per animation tick (nominal 60 FPS)
GRAVITY_STRENGTH: float = 0.35    # Pull toward the tree, scaled by pinch strength
EXPLOSION_STRENGTH: float = 0.25  # Pull toward the exploded cloud
DAMPING: float = 0.90             # Velocity multiplier per tick (must be < 1)
BROWN_MOTION: float = 0.03        # Per-axis jitter while exploded
ROTATION_SPEED_X: float = 1.8     # Palm Y -> tree pitch
ROTATION_SPEED_Y: float = 2.5     # Palm X -> tree yaw
IDLE_SPIN_PER_TICK: float = 0.002 # Radians of yaw added per tick when not pinching

# Easing durations (seconds of simulated time)
PINCH_EASE_IN_S: float = 0.3
PINCH_EASE_OUT_S: float = 0.5
ROTATION_EASE_S: float = 0.8

# --- Snow ---
SNOW_COUNT: int = 1000
SNOW_DURATION_S: float = 10.0     # Snow switches itself off after this long

# --- Fireworks ---
FIREWORK_LIFETIME: float = 3.0
FIREWORK_GRAVITY: float = 0.015
FIREWORK_AIR_RESISTANCE: float = 0.97

# (count, speed, size, delay_s) per layer: outer -> inner
FIREWORK_LAYERS: Tuple[Tuple[int, float, float, float], ...] = (
    (200, 0.8, 0.8, 0.0),
    (150, 0.5, 0.6, 0.1),
    (100, 0.3, 0.4, 0.2),
)

# --- Gesture Thresholds ---
# Vertical distance (normalized image units) between a fingertip and the palm base (landmark 9)
INDEX_CURLED: float = 0.12
MIDDLE_CURLED: float = 0.12
RING_CURLED: float = 0.12
PINKY_CURLED: float = 0.12
THUMB_CURLED: float = 0.18        # Thumb tip never gets as close to the palm base
INDEX_EXTENDED: float = 0.15
MIDDLE_EXTENDED: float = 0.15
RING_EXTENDED: float = 0.15
PINKY_EXTENDED: float = 0.15

# --- Camera ---
WEBCAM_ID: int = 0
CAMERA_WIDTH: int = 640
CAMERA_HEIGHT: int = 480
TARGET_FPS: int = 30
CODEC: str = 'MJPG'
FORCE_V4L2_SETTINGS: bool = False # Linux only, needs the v4l2-ctl utility

# --- MediaPipe ---
MODEL_PATH: str = 'hand_landmarker.task'
MAX_HANDS: int = 1
MIN_DETECTION_CONFIDENCE: float = 0.5
MIN_TRACKING_CONFIDENCE: float = 0.5
TRACKER_INIT_ATTEMPTS: int = 100
TRACKER_INIT_RETRY_S: float = 0.05

# --- Network ---
HOST: str = 'localhost'
PORT: int = 8765

# --- Logging ---
LOG_LEVEL: int = logging.INFO
LOG_FORMAT: str = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
