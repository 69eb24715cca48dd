import logging
import numpy as np
from typing import Optional

import Config

logger = logging.getLogger(__name__)

# Below this pinch strength the particles head for the exploded cloud
PINCH_EPSILON: float = 0.01
# Closer than this to the target no force is applied (avoids dividing by ~0)
MIN_DISTANCE: float = 0.01


class ParticleSystem:
    """
    Owns the live particle buffers and steers them toward a target configuration.

    Buffers are flat float32 arrays (x, y, z interleaved) allocated once and
    updated in place every tick; the renderer reads them directly.

    Force model: every particle further than MIN_DISTANCE from its target gets a
    constant-magnitude push along the direction to the target. Only the direction
    depends on distance, so particles converge at a steady pace instead of
    slowing down like a spring.
    """

    def __init__(self,
                 tree: np.ndarray,
                 exploded: np.ndarray,
                 gravity_strength: float = Config.GRAVITY_STRENGTH,
                 explosion_strength: float = Config.EXPLOSION_STRENGTH,
                 damping: float = Config.DAMPING,
                 brown_motion: float = Config.BROWN_MOTION,
                 rng: Optional[np.random.Generator] = None) -> None:
        """
        Args:
            tree (np.ndarray): Flat 3N target for the assembled tree.
            exploded (np.ndarray): Flat 3N target for the exploded cloud. Also the start state.
            gravity_strength (float): Pull toward the tree at full pinch strength.
            explosion_strength (float): Pull toward the exploded cloud.
            damping (float): Velocity multiplier per tick, in [0, 1).
            brown_motion (float): Amplitude of the per-axis jitter while exploded.
            rng (np.random.Generator, optional): Entropy for jitter, sizes and alphas.
        """
        if tree.size != exploded.size or tree.size % 3:
            raise ValueError(f"Target sizes must match and be a multiple of 3 ({tree.size} vs {exploded.size})")
        if not 0.0 <= damping < 1.0:
            raise ValueError(f"Damping must be in [0, 1), got {damping}")

        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()
        self.count: int = tree.size // 3

        # Read-only snapshots: targets never change during a session
        self.target_tree: np.ndarray = np.array(tree, dtype=np.float32)
        self.target_exploded: np.ndarray = np.array(exploded, dtype=np.float32)
        self.target_tree.flags.writeable = False
        self.target_exploded.flags.writeable = False

        self.gravity_strength: float = gravity_strength
        self.explosion_strength: float = explosion_strength
        self.damping: float = damping
        self.brown_motion: float = brown_motion

        n = self.count
        self.positions: np.ndarray = self.target_exploded.copy()
        self.velocities: np.ndarray = np.zeros(n * 3, dtype=np.float32)
        self.colors: np.ndarray = np.ones(n * 3, dtype=np.float32)
        self.sizes: np.ndarray = (0.8 + self.rng.random(n) * 0.6).astype(np.float32)
        self.alphas: np.ndarray = (0.7 + self.rng.random(n) * 0.3).astype(np.float32)

        # Scratch space reused every tick
        self._delta: np.ndarray = np.empty((n, 3), dtype=np.float32)
        self._dist: np.ndarray = np.empty(n, dtype=np.float32)
        self._scale: np.ndarray = np.zeros(n, dtype=np.float32)

        self._pinch_strength: float = 0.0
        self.positions_dirty: bool = True
        self.colors_dirty: bool = True
        logger.debug("Particle system ready: %d particles", n)

    @property
    def pinch_strength(self) -> float:
        return self._pinch_strength

    @pinch_strength.setter
    def pinch_strength(self, value: float) -> None:
        self._pinch_strength = min(1.0, max(0.0, float(value)))

    @property
    def is_gathering(self) -> bool:
        """True while the tree is the active target."""
        return self._pinch_strength > PINCH_EPSILON

    def set_colors(self, colors: np.ndarray) -> None:
        self.colors[:] = colors
        self.colors_dirty = True

    def step(self) -> None:
        """Advances every particle by one fixed tick."""
        pos = self.positions.reshape(-1, 3)
        vel = self.velocities.reshape(-1, 3)

        # 1. Pick the active target and its pull
        if self.is_gathering:
            target = self.target_tree.reshape(-1, 3)
            force = self.gravity_strength * self._pinch_strength
        else:
            target = self.target_exploded.reshape(-1, 3)
            force = self.explosion_strength

        # 2. Displacement and distance
        np.subtract(target, pos, out=self._delta)
        np.einsum('ij,ij->i', self._delta, self._delta, out=self._dist)
        np.sqrt(self._dist, out=self._dist)

        # 3. Constant-magnitude pull: d * (force / |d|), skipped when already there
        self._scale.fill(0.0)
        np.divide(force, self._dist, out=self._scale, where=self._dist > MIN_DISTANCE)
        self._delta *= self._scale[:, None]
        vel += self._delta

        # 4. Keep the exploded cloud alive
        if not self.is_gathering and self.brown_motion:
            vel += ((self.rng.random((self.count, 3)) - 0.5) * self.brown_motion).astype(np.float32)

        # 5. Damping, then explicit Euler
        vel *= self.damping
        pos += vel

        self.positions_dirty = True

    def release(self) -> None:
        """Drops every buffer. The system is unusable afterwards."""
        empty = np.empty(0, dtype=np.float32)
        self.positions = self.velocities = self.colors = empty
        self.sizes = self.alphas = empty
        self._delta = np.empty((0, 3), dtype=np.float32)
        self._dist = self._scale = empty
        self.count = 0
