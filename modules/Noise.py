import numpy as np
from typing import Union

ArrayLike = Union[float, np.ndarray]

# 2*pi / phi^2: successive points never line up into visible spokes
GOLDEN_ANGLE: float = 2.399963229728653


def noise3d(x: ArrayLike, y: ArrayLike, z: ArrayLike) -> ArrayLike:
    """
    Hash-style pseudo noise in [0, 1).

    Deterministic: the same (x, y, z) always yields the same value. Works on
    scalars or on numpy arrays (element-wise).
    """
    n = np.sin(x * 12.9898 + y * 78.233 + z * 37.719) * 43758.5453
    return n - np.floor(n)


def golden_angles(count: int) -> np.ndarray:
    """Azimuth of each index on a golden-angle (phyllotaxis) spiral."""
    return np.arange(count, dtype=np.float64) * GOLDEN_ANGLE
