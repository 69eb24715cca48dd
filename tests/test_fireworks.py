import numpy as np
import pytest

import Config
from Fireworks import LAYERS, FireworkArena, burst_opacity, spawn_burst


def test_layers_shrink_outward_in():
    assert [layer.count for layer in LAYERS] == [200, 150, 100]
    assert [layer.delay for layer in LAYERS] == [0.0, 0.1, 0.2]
    assert LAYERS[0].speed > LAYERS[1].speed > LAYERS[2].speed
    assert LAYERS[0].size > LAYERS[1].size > LAYERS[2].size


@pytest.mark.parametrize("layer_index", [0, 1, 2])
def test_spawned_burst_shape(layer_index, rng):
    layer = LAYERS[layer_index]
    burst = spawn_burst(0, (1.0, 2.0, 3.0), layer_index, rng)

    assert burst.count == layer.count
    assert burst.positions.shape == burst.velocities.shape == burst.colors.shape == (layer.count, 3)
    assert burst.sizes.shape == (layer.count,)
    np.testing.assert_array_equal(burst.positions, np.tile([1.0, 2.0, 3.0], (layer.count, 1)))

    speed = np.linalg.norm(burst.velocities, axis=1)
    assert speed.min() >= 0.8 * layer.speed - 1e-5
    assert speed.max() <= 1.2 * layer.speed + 1e-5
    assert burst.sizes.min() >= 0.8 * layer.size - 1e-6
    assert burst.sizes.max() <= 1.2 * layer.size + 1e-6
    assert burst.lifetime == Config.FIREWORK_LIFETIME
    assert burst.active


def test_colors_form_a_gradient(rng):
    burst = spawn_burst(0, (0, 0, 0), 0, rng)
    steps = np.diff(burst.colors, axis=0)
    # Linear interpolation: every step between neighbours is the same
    np.testing.assert_allclose(steps, np.broadcast_to(steps[0], steps.shape), atol=1e-5)


def test_velocities_cover_the_sphere():
    burst = spawn_burst(0, (0, 0, 0), 0, np.random.default_rng(3))
    directions = burst.velocities / np.linalg.norm(burst.velocities, axis=1)[:, None]
    assert np.all(np.abs(directions.mean(axis=0)) < 0.2)


def test_step_applies_gravity_and_drag(rng):
    arena = FireworkArena(rng=rng)
    arena.spawn((0, 0, 0), 0)
    burst = next(iter(arena))
    before = burst.velocities.copy()

    arena.step(Config.TICK_SECONDS)

    expected = before.copy()
    expected[:, 1] -= Config.FIREWORK_GRAVITY
    expected *= Config.FIREWORK_AIR_RESISTANCE
    np.testing.assert_allclose(burst.velocities, expected, rtol=1e-5, atol=1e-7)
    np.testing.assert_allclose(burst.positions, before, rtol=1e-6)


def test_burst_expires_and_is_pruned_on_the_same_tick(rng):
    arena = FireworkArena(rng=rng)
    handle = arena.spawn((0, 0, 0), 1)
    burst = arena.get(handle)

    ticks = 0
    while handle in arena:
        last_age = burst.age
        arena.step(Config.TICK_SECONDS)
        ticks += 1
        assert ticks < 1000

    assert last_age <= burst.lifetime
    assert burst.age > burst.lifetime
    assert not burst.active
    assert burst.count == 0
    assert len(arena) == 0


def test_colors_drift_to_white_in_second_half(rng):
    arena = FireworkArena(rng=rng)
    burst = arena.get(arena.spawn((0, 0, 0), 2))
    start = burst.colors.copy()

    while (burst.age + Config.TICK_SECONDS) / burst.lifetime <= 0.5:
        arena.step(Config.TICK_SECONDS)
    np.testing.assert_array_equal(burst.colors, start)

    for _ in range(30):
        arena.step(Config.TICK_SECONDS)
    assert np.all(burst.colors >= start - 1e-6)
    assert burst.colors.mean() > start.mean()


@pytest.mark.parametrize("age", np.linspace(0.0, 2.09, 15))
def test_full_opacity_for_first_seventy_percent(age):
    assert burst_opacity(age, 3.0) == 1.0
    assert burst_opacity(0.7, 1.0) == 1.0


def test_linear_fade_to_zero():
    assert burst_opacity(2.55, 3.0) == pytest.approx(0.5)
    assert burst_opacity(2.775, 3.0) == pytest.approx(0.25)
    assert burst_opacity(2.85, 3.0) == pytest.approx(1.0 / 6.0)
    assert burst_opacity(3.0, 3.0) == pytest.approx(0.0)
    assert burst_opacity(3.5, 3.0) == 0.0


def test_arena_compacts_and_keeps_handles(rng):
    arena = FireworkArena(rng=rng)
    first = arena.spawn((0, 0, 0), 0)
    for _ in range(100):
        arena.step(Config.TICK_SECONDS)
    second = arena.spawn((0, 0, 0), 1)

    while first in arena:
        arena.step(Config.TICK_SECONDS)

    assert second in arena
    assert len(arena) == 1
    assert arena.get(second).handle == second
    assert second != first


def test_clear_releases_everything(rng):
    arena = FireworkArena(rng=rng)
    bursts = [arena.get(arena.spawn((0, 0, 0), i)) for i in range(3)]
    arena.clear()
    assert len(arena) == 0
    assert all(not burst.active and burst.count == 0 for burst in bursts)
