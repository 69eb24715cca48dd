import logging
import numpy as np
from typing import Optional

import Config

logger = logging.getLogger(__name__)

SNOW_SPREAD: float = 60.0
SNOW_FLOOR: float = -15.0
SNOW_RESPAWN_Y: float = 40.0


class SnowField:
    """
    Falling snow around the tree. Flakes sway sideways on a sine and wrap back
    to the top once they drop below the floor.
    """

    def __init__(self, count: int = Config.SNOW_COUNT, rng: Optional[np.random.Generator] = None) -> None:
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()
        self.count: int = count
        self.visible: bool = False

        flakes = np.empty((count, 3), dtype=np.float32)
        flakes[:, 0] = (self.rng.random(count) - 0.5) * SNOW_SPREAD
        flakes[:, 1] = self.rng.random(count) * 40.0 + 10.0
        flakes[:, 2] = (self.rng.random(count) - 0.5) * SNOW_SPREAD
        self.positions: np.ndarray = flakes.reshape(-1)

        self._phase: np.ndarray = np.arange(count, dtype=np.float64)
        self.positions_dirty: bool = True

    def show(self, visible: bool) -> None:
        if visible != self.visible:
            logger.info("Snow %s", "started" if visible else "stopped")
        self.visible = visible

    def step(self, time: float) -> None:
        if not self.visible:
            return
        flakes = self.positions.reshape(-1, 3)

        flakes[:, 1] -= (0.05 + np.sin(time + self._phase) * 0.02).astype(np.float32)
        flakes[:, 0] += (np.sin(time * 0.5 + self._phase) * 0.02).astype(np.float32)

        fallen = flakes[:, 1] < SNOW_FLOOR
        hits = int(np.count_nonzero(fallen))
        if hits:
            flakes[fallen, 1] = SNOW_RESPAWN_Y
            flakes[fallen, 0] = (self.rng.random(hits) - 0.5) * SNOW_SPREAD
            flakes[fallen, 2] = (self.rng.random(hits) - 0.5) * SNOW_SPREAD

        self.positions_dirty = True

    def release(self) -> None:
        self.visible = False
        self.positions = np.empty(0, dtype=np.float32)
        self._phase = np.empty(0, dtype=np.float64)
        self.count = 0
