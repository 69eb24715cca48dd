import colorsys
import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

import Config

logger = logging.getLogger(__name__)

FADE_START: float = 0.7    # Share of the lifetime spent at full opacity
WHITEN_START: float = 0.5  # Share of the lifetime after which colors drift to white
WHITEN_RATE: float = 0.6


class FireworkLayer(NamedTuple):
    count: int
    speed: float
    size: float
    delay: float


LAYERS: Tuple[FireworkLayer, ...] = tuple(FireworkLayer(*layer) for layer in Config.FIREWORK_LAYERS)


def burst_opacity(age: float, lifetime: float) -> float:
    """Full brightness for the first 70% of the lifetime, then a linear fade to 0."""
    age_factor = age / lifetime
    if age_factor <= FADE_START:
        return 1.0
    return max(0.0, 1.0 - (age_factor - FADE_START) / (1.0 - FADE_START))


def _hsl(hue: float, saturation: float, lightness: float) -> np.ndarray:
    return np.array(colorsys.hls_to_rgb(hue % 1.0, lightness, saturation), dtype=np.float32)


@dataclass(eq=False)
class FireworkBurst:
    handle: int
    layer_index: int
    positions: np.ndarray     # (M, 3)
    velocities: np.ndarray    # (M, 3)
    colors: np.ndarray        # (M, 3)
    sizes: np.ndarray         # (M,)
    lifetime: float = Config.FIREWORK_LIFETIME
    age: float = 0.0
    opacity: float = 1.0
    active: bool = True

    @property
    def count(self) -> int:
        return len(self.positions)

    def release(self) -> None:
        self.active = False
        self.positions = np.empty((0, 3), dtype=np.float32)
        self.velocities = np.empty((0, 3), dtype=np.float32)
        self.colors = np.empty((0, 3), dtype=np.float32)
        self.sizes = np.empty(0, dtype=np.float32)


def spawn_burst(handle: int,
                origin: Sequence[float],
                layer_index: int,
                rng: np.random.Generator,
                layers: Sequence[FireworkLayer] = LAYERS,
                lifetime: float = Config.FIREWORK_LIFETIME) -> FireworkBurst:
    """
    Creates one burst layer at `origin`.

    Velocities are uniform over the sphere, so the shell expands evenly instead of
    bunching at the poles. Colors run as a gradient across the burst from a random
    hue to one 0.3 turns further round the color wheel.
    """
    layer = layers[layer_index]
    m = layer.count

    positions = np.tile(np.asarray(origin, dtype=np.float32), (m, 1))

    theta = rng.random(m) * 2.0 * math.pi
    phi = np.arccos(2.0 * rng.random(m) - 1.0)
    speed = (rng.random(m) * 0.4 + 0.8) * layer.speed
    velocities = np.empty((m, 3), dtype=np.float32)
    velocities[:, 0] = np.sin(phi) * np.cos(theta) * speed
    velocities[:, 1] = np.sin(phi) * np.sin(theta) * speed
    velocities[:, 2] = np.cos(phi) * speed

    base = _hsl(rng.random(), 1.0, 0.6)
    complement = _hsl(rng.random() + 0.3, 1.0, 0.7)
    mix = (np.arange(m, dtype=np.float32) / m)[:, None] if m else np.empty((0, 1), dtype=np.float32)
    colors = (base * (1.0 - mix) + complement * mix).astype(np.float32)

    sizes = (layer.size * (0.8 + rng.random(m) * 0.4)).astype(np.float32)

    return FireworkBurst(handle=handle, layer_index=layer_index, positions=positions,
                         velocities=velocities, colors=colors, sizes=sizes, lifetime=lifetime)


@dataclass
class FireworkArena:
    """
    Dense storage for the live bursts.

    Bursts are addressed by integer handles handed out at spawn time. Expired
    bursts are released and compacted out on the same tick they expire.
    """
    gravity: float = Config.FIREWORK_GRAVITY
    air_resistance: float = Config.FIREWORK_AIR_RESISTANCE
    lifetime: float = Config.FIREWORK_LIFETIME
    layers: Sequence[FireworkLayer] = LAYERS
    rng: np.random.Generator = field(default_factory=np.random.default_rng)
    bursts: List[FireworkBurst] = field(default_factory=list)
    _next_handle: int = 0

    def __len__(self) -> int:
        return len(self.bursts)

    def __iter__(self) -> Iterator[FireworkBurst]:
        return iter(self.bursts)

    def __contains__(self, handle: int) -> bool:
        return self.get(handle) is not None

    def get(self, handle: int) -> Optional[FireworkBurst]:
        """Looks a burst up by handle. Handles are spawn counters, not slots, and
        survive compaction; a scan is fine for the few bursts alive at once."""
        for burst in self.bursts:
            if burst.handle == handle:
                return burst
        return None

    def spawn(self, origin: Sequence[float], layer_index: int) -> int:
        handle = self._next_handle
        self._next_handle += 1
        burst = spawn_burst(handle, origin, layer_index, self.rng, self.layers, self.lifetime)
        self.bursts.append(burst)
        logger.debug("Firework layer %d spawned (%d particles, handle %d)", layer_index, burst.count, handle)
        return handle

    def step(self, dt: float = Config.TICK_SECONDS) -> None:
        """Ages, moves and fades every live burst, then prunes the expired ones."""
        for burst in self.bursts:
            if not burst.active:
                continue

            burst.age += dt
            if burst.age > burst.lifetime:
                burst.release()
                continue

            # Move first, then gravity and drag shape the next step
            burst.positions += burst.velocities
            burst.velocities[:, 1] -= self.gravity
            burst.velocities *= self.air_resistance

            age_factor = burst.age / burst.lifetime
            if age_factor > WHITEN_START:
                white_mix = (age_factor - WHITEN_START) * WHITEN_RATE
                burst.colors *= (1.0 - white_mix)
                burst.colors += white_mix

            burst.opacity = burst_opacity(burst.age, burst.lifetime)

        self._compact()

    def _compact(self) -> None:
        keep = 0
        for burst in self.bursts:
            if burst.active:
                self.bursts[keep] = burst
                keep += 1
        del self.bursts[keep:]

    def clear(self) -> None:
        for burst in self.bursts:
            burst.release()
        self.bursts.clear()
