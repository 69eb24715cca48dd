import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional, Sequence, Tuple

import numpy as np

import Config
from Fireworks import FireworkArena
from GestureEngine import Gesture, GestureMailbox, NoGesture, OneFinger, Pinch, ThreeFingers, TwoFingers
from ParticleSystem import ParticleSystem
from Snow import SnowField
from modules.CoordinateMapper import CoordinateMapper
from modules.Scheduler import Scheduler
from modules.ShapeGenerator import THEME_NAMES, generate_exploded, generate_particle_colors, generate_tree
from modules.Tween import Tween

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BurstFrame:
    handle: int
    layer_index: int
    positions: np.ndarray
    colors: np.ndarray
    sizes: np.ndarray
    opacity: float


@dataclass(frozen=True)
class RenderFrame:
    """
    What the renderer needs for one tick.

    The arrays are views of the live simulation buffers: read (or copy) them
    before the next tick runs.
    """
    time: float
    positions: np.ndarray
    colors: np.ndarray
    sizes: np.ndarray
    alphas: np.ndarray
    positions_dirty: bool
    colors_dirty: bool
    snow_positions: np.ndarray
    snow_visible: bool
    fireworks: Tuple[BurstFrame, ...]
    rotation: Tuple[float, float]
    is_pinching: bool
    pinch_strength: float
    theme_index: int
    theme_name: str


class TreeScene:
    """
    The gesture-driven particle tree.

    Gesture events are posted to `mailbox` from the perception side and applied
    at the start of the next `tick()`. Every tick advances simulated time by a
    fixed step: scheduled actions fire, pinch strength and rotation ease, and the
    particles, snow and fireworks move.
    """

    def __init__(self,
                 particle_count: int = Config.PARTICLE_COUNT,
                 snow_count: int = Config.SNOW_COUNT,
                 tick_seconds: float = Config.TICK_SECONDS,
                 rng: Optional[np.random.Generator] = None) -> None:
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()
        self.tick_seconds: float = tick_seconds
        self.time: float = 0.0
        self.ticks: int = 0
        self.disposed: bool = False

        self.particles = ParticleSystem(
            tree=generate_tree(particle_count, rng=self.rng),
            exploded=generate_exploded(particle_count),
            rng=self.rng,
        )
        self.theme_index: int = 0
        self.particles.set_colors(generate_particle_colors(particle_count, self.theme_index, self.rng))

        self.snow = SnowField(snow_count, rng=self.rng)
        self.fireworks = FireworkArena(lifetime=Config.FIREWORK_LIFETIME, rng=self.rng)
        self.scheduler = Scheduler()
        self.mailbox = GestureMailbox()
        self.mapper = CoordinateMapper()

        self.is_pinching: bool = False
        self._pinch = Tween(0.0)
        self._pitch = Tween(0.0)
        self._yaw = Tween(0.0)
        self._rotation_target: Tuple[float, float] = (0.0, 0.0)

        logger.info("Scene ready: %d particles, %d snowflakes", particle_count, snow_count)

    @property
    def theme_name(self) -> str:
        return THEME_NAMES[self.theme_index]

    @property
    def rotation(self) -> Tuple[float, float]:
        return self._pitch.value, self._yaw.value

    # --- Gesture handling ---

    def post(self, event: Gesture) -> None:
        """Queues a gesture event for the next tick. Usable as a dispatcher callback."""
        self.mailbox.post(event)

    def apply(self, event: Gesture) -> None:
        if isinstance(event, Pinch):
            self.is_pinching = True
            self._pinch.to(event.strength, Config.PINCH_EASE_IN_S)
            self._rotation_target = self.mapper.to_rotation(event.palm_x, event.palm_y)
        elif isinstance(event, NoGesture):
            self.is_pinching = False
            self._pinch.to(0.0, Config.PINCH_EASE_OUT_S)
        elif isinstance(event, OneFinger):
            self.cycle_theme()
        elif isinstance(event, TwoFingers):
            self.start_snow()
        elif isinstance(event, ThreeFingers):
            self.launch_fireworks()

    def cycle_theme(self) -> int:
        self.theme_index = (self.theme_index + 1) % len(THEME_NAMES)
        generate_particle_colors(self.particles.count, self.theme_index, self.rng, out=self.particles.colors)
        self.particles.colors_dirty = True
        logger.info("Theme -> %s", self.theme_name)
        return self.theme_index

    def start_snow(self, duration: float = Config.SNOW_DURATION_S) -> bool:
        """Starts snowing for `duration` seconds. Ignored while it is already snowing."""
        if self.snow.visible:
            return False
        self.snow.show(True)
        self.scheduler.call_at(self.time + duration, partial(self.snow.show, False))
        return True

    def launch_fireworks(self, origin: Sequence[float] = (0.0, 0.0, 0.0)) -> None:
        """Schedules the three burst layers, each after its own delay."""
        logger.info("Fireworks at (%.1f, %.1f, %.1f)", *origin)
        for index, layer in enumerate(self.fireworks.layers):
            self.scheduler.call_at(self.time + layer.delay, partial(self._spawn_layer, tuple(origin), index))

    def _spawn_layer(self, origin: Tuple[float, ...], layer_index: int) -> None:
        if not self.disposed:
            self.fireworks.spawn(origin, layer_index)

    # --- Animation ---

    def tick(self) -> None:
        """Advances the whole scene by one fixed step. Does nothing once disposed."""
        if self.disposed:
            return
        dt = self.tick_seconds

        # 1. Apply what perception reported since the last tick
        pending, latest = self.mailbox.take()
        for event in pending:
            self.apply(event)
        if latest is not None:
            self.apply(latest)

        # 2. Advance the clock and fire due timers
        self.time += dt
        self.ticks += 1
        self.scheduler.run_due(self.time)

        # 3. Simulate
        self.particles.pinch_strength = self._pinch.step(dt)
        self.particles.step()
        self.snow.step(self.time)
        self.fireworks.step(dt)
        self._update_rotation(dt)

    def _update_rotation(self, dt: float) -> None:
        if self.is_pinching:
            pitch, yaw = self._rotation_target
            self._pitch.to(pitch, Config.ROTATION_EASE_S)
            self._yaw.to(yaw, Config.ROTATION_EASE_S)
            self._pitch.step(dt)
            self._yaw.step(dt)
        else:
            # Idle spin; abandon any half-finished ease
            self._pitch.set(self._pitch.value)
            self._yaw.set(self._yaw.value + Config.IDLE_SPIN_PER_TICK)

    def snapshot(self) -> Optional[RenderFrame]:
        """
        Packs the current buffers for the renderer and clears the dirty flags.

        Returns:
            Optional[RenderFrame]: None once the scene has been disposed.
        """
        if self.disposed:
            return None
        particles = self.particles
        frame = RenderFrame(
            time=self.time,
            positions=particles.positions,
            colors=particles.colors,
            sizes=particles.sizes,
            alphas=particles.alphas,
            positions_dirty=particles.positions_dirty,
            colors_dirty=particles.colors_dirty,
            snow_positions=self.snow.positions,
            snow_visible=self.snow.visible,
            fireworks=tuple(
                BurstFrame(b.handle, b.layer_index, b.positions, b.colors, b.sizes, b.opacity)
                for b in self.fireworks
            ),
            rotation=self.rotation,
            is_pinching=self.is_pinching,
            pinch_strength=particles.pinch_strength,
            theme_index=self.theme_index,
            theme_name=self.theme_name,
        )
        particles.positions_dirty = False
        particles.colors_dirty = False
        self.snow.positions_dirty = False
        return frame

    def dispose(self) -> None:
        """Releases every buffer and stops the tick. Safe to call more than once."""
        if self.disposed:
            return
        self.disposed = True
        self.scheduler.clear()
        self.mailbox.take()
        self.fireworks.clear()
        self.snow.release()
        self.particles.release()
        logger.info("Scene disposed after %d ticks", self.ticks)
