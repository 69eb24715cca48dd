import numpy as np
from typing import List, Optional, Tuple

import Config
from modules.Noise import golden_angles, noise3d

TREE_LAYERS: int = 12
MIN_LAYER_RADIUS: float = 0.2

# Rule A: late particles get pushed into the lower half of the tree
REDISTRIBUTE_WEIGHT: float = 0.7
REDISTRIBUTE_SPAN: float = 0.5

DROOP: float = 0.4
HEIGHT_JITTER: float = 0.6
DEPTH_JITTER_SCALE: float = 0.3

THEME_NAMES: Tuple[str, ...] = ('Classic Christmas', 'Winter Wonderland', 'Dreamy Pink-Purple')

# (threshold, hex, multiplier): first entry whose threshold is below the draw wins
Palette = List[Tuple[float, int, float]]

THEME_PALETTES: Tuple[Palette, ...] = (
    [(0.70, 0xFFFFFF, 1.3), (0.40, 0xFFD700, 1.5), (0.25, 0xFF6B6B, 1.2), (-1.0, 0x4ECDC4, 1.0)],
    [(0.60, 0xFFFFFF, 1.4), (0.30, 0x4169E1, 1.5), (-1.0, 0xC0C0C0, 1.3)],
    [(0.60, 0xFFFFFF, 1.4), (0.30, 0xFF69B4, 1.5), (-1.0, 0x9370DB, 1.3)],
)


def _rgb(hex_color: int) -> np.ndarray:
    return np.array([
        (hex_color >> 16) & 0xFF,
        (hex_color >> 8) & 0xFF,
        hex_color & 0xFF,
    ], dtype=np.float32) / 255.0


def generate_tree(count: int,
                  height: float = Config.TREE_HEIGHT,
                  radius: float = Config.TREE_RADIUS,
                  rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Builds the assembled "tree" target: a layered cone sampled on a golden-angle spiral.

    Args:
        count (int): Number of particles.
        height (float): Total tree height. The cone is centered vertically on 0.
        radius (float): Radius at the base layer.
        rng (np.random.Generator, optional): Entropy source. Pass a seeded one for
                                             reproducible output.

    Returns:
        np.ndarray: Flat float32 array of 3 * count coordinates (x, y, z per particle).
    """
    if count < 0:
        raise ValueError(f"Particle count must be >= 0, got {count}")
    rng = rng if rng is not None else np.random.default_rng()

    index = np.arange(count, dtype=np.float64)
    layer_pct = index / count if count else index

    # Rule A vs Rule B: later particles are increasingly likely to be redistributed downward
    redistribute = rng.random(count) > (1.0 - layer_pct * REDISTRIBUTE_WEIGHT)
    pct = np.where(redistribute, rng.random(count) * REDISTRIBUTE_SPAN, layer_pct)

    layer = np.floor(pct * TREE_LAYERS)
    norm_y = layer / TREE_LAYERS

    # Mostly linear taper with a little curvature toward the top
    taper = 1.0 - norm_y
    layer_radius = radius * (taper * 0.8 + np.power(taper, 1.3) * 0.2)
    layer_radius = np.maximum(MIN_LAYER_RADIUS, layer_radius)

    # Area-uniform sampling inside the layer disk
    r = layer_radius * np.sqrt(rng.random(count))
    angle = golden_angles(count)

    y = -height / 2.0 + norm_y * height
    y -= r * DROOP
    y += (rng.random(count) - 0.5) * HEIGHT_JITTER

    depth_jitter = (rng.random(count) - 0.5) * (0.8 + norm_y * 1.2) * DEPTH_JITTER_SCALE

    positions = np.empty((count, 3), dtype=np.float32)
    positions[:, 0] = np.cos(angle) * r + depth_jitter
    positions[:, 1] = y
    positions[:, 2] = np.sin(angle) * r + depth_jitter
    return positions.reshape(-1)


def generate_exploded(count: int, spread: float = Config.EXPLODED_SPREAD) -> np.ndarray:
    """
    Builds the "exploded" target from hash noise. Index-deterministic: identical
    input always gives bit-identical output.
    """
    if count < 0:
        raise ValueError(f"Particle count must be >= 0, got {count}")
    index = np.arange(count, dtype=np.float64)
    zero = np.zeros(count, dtype=np.float64)

    positions = np.empty((count, 3), dtype=np.float32)
    positions[:, 0] = (noise3d(index, zero, zero) - 0.5) * spread
    positions[:, 1] = (noise3d(zero, index, zero) - 0.5) * spread
    positions[:, 2] = (noise3d(zero, zero, index) - 0.5) * spread
    return positions.reshape(-1)


def generate_particle_colors(count: int,
                             theme_index: int,
                             rng: Optional[np.random.Generator] = None,
                             out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Draws a weighted-random palette color for every particle.

    If `out` is given (a flat float32 array of 3 * count) the colors are written
    into it in place and it is returned.
    """
    if theme_index not in range(len(THEME_PALETTES)):
        raise ValueError(f"Unknown color theme {theme_index}")
    rng = rng if rng is not None else np.random.default_rng()

    draw = rng.random(count)
    colors = np.empty((count, 3), dtype=np.float32)
    assigned = np.zeros(count, dtype=bool)

    for threshold, hex_color, multiplier in THEME_PALETTES[theme_index]:
        pick = (draw > threshold) & ~assigned
        colors[pick] = _rgb(hex_color) * multiplier
        assigned |= pick

    if out is None:
        return colors.reshape(-1)
    out[:] = colors.reshape(-1)
    return out
