import numpy as np
import pytest

import Config
from GestureEngine import GestureDispatcher, NoGesture, OneFinger, Pinch, ThreeFingers, TwoFingers
from Scene import TreeScene
from conftest import CURLED, make_hand


@pytest.fixture
def scene():
    return TreeScene(particle_count=200, snow_count=50, rng=np.random.default_rng(42))


def run(scene, ticks):
    for _ in range(ticks):
        scene.tick()


def test_tick_advances_fixed_simulated_time(scene):
    run(scene, 10)
    assert scene.ticks == 10
    assert scene.time == pytest.approx(10 * Config.TICK_SECONDS)


def test_one_finger_cycles_theme(scene):
    before = scene.particles.colors.copy()
    scene.snapshot()

    scene.post(OneFinger())
    scene.tick()

    assert scene.theme_index == 1
    assert scene.theme_name == 'Winter Wonderland'
    assert not np.array_equal(before, scene.particles.colors)
    assert scene.snapshot().colors_dirty

    scene.post(OneFinger())
    scene.post(OneFinger())
    scene.tick()
    assert scene.theme_index == 0


def test_two_fingers_snow_stops_by_itself(scene):
    scene.post(TwoFingers())
    scene.tick()
    assert scene.snow.visible

    # Repeating the gesture while snowing does not extend it
    assert not scene.start_snow()

    run(scene, 600)
    assert scene.snow.visible
    run(scene, 30)
    assert not scene.snow.visible


def test_snow_falls_only_while_visible(scene):
    flakes = scene.snow.positions.copy()
    run(scene, 5)
    np.testing.assert_array_equal(flakes, scene.snow.positions)

    scene.start_snow()
    run(scene, 5)
    assert scene.snow.positions.reshape(-1, 3)[:, 1].mean() < flakes.reshape(-1, 3)[:, 1].mean()


def test_three_fingers_stagger_layers(scene):
    scene.post(ThreeFingers())

    counts = []
    for _ in range(14):
        scene.tick()
        counts.append(len(scene.fireworks))

    # Layers land at 0 s, 0.1 s and 0.2 s of simulated time
    assert counts[0] == 1
    assert counts[5] == 1
    assert counts[6] == 2
    assert counts[11] == 2
    assert counts[12] == 3
    assert sorted(b.layer_index for b in scene.fireworks) == [0, 1, 2]


def test_fireworks_clear_after_lifetime(scene):
    scene.launch_fireworks()
    run(scene, int((Config.FIREWORK_LIFETIME + 0.2) / Config.TICK_SECONDS) + 10)
    assert len(scene.fireworks) == 0


def test_pinch_eases_in_and_out(scene):
    scene.post(Pinch(1.0, 0.5, 0.5))
    scene.tick()
    assert scene.is_pinching
    assert 0.0 < scene.particles.pinch_strength < 1.0
    assert scene.particles.is_gathering

    run(scene, 20)
    assert scene.particles.pinch_strength == pytest.approx(1.0)

    scene.post(NoGesture())
    scene.tick()
    assert not scene.is_pinching
    assert 0.0 < scene.particles.pinch_strength < 1.0

    run(scene, 32)
    assert scene.particles.pinch_strength == pytest.approx(0.0)
    assert not scene.particles.is_gathering


def test_latest_continuous_event_wins(scene):
    scene.post(Pinch(1.0, 0.5, 0.5))
    scene.post(NoGesture())
    scene.tick()
    assert not scene.is_pinching
    assert scene.particles.pinch_strength == 0.0


def test_pinch_gathers_particles_into_tree(scene):
    target = scene.particles.target_tree.reshape(-1, 3)

    def spread():
        return np.linalg.norm(scene.particles.positions.reshape(-1, 3) - target, axis=1).mean()

    start = spread()
    for _ in range(300):
        scene.post(Pinch(1.0, 0.5, 0.5))
        scene.tick()
    assert spread() < start * 0.2


def test_palm_position_steers_rotation(scene):
    for _ in range(100):
        scene.post(Pinch(1.0, 1.0, 0.5))
        scene.tick()
    pitch, yaw = scene.rotation
    assert pitch == pytest.approx(0.0)
    assert yaw == pytest.approx(-Config.ROTATION_SPEED_Y)


def test_idle_spin_without_pinch(scene):
    run(scene, 10)
    assert scene.rotation[1] == pytest.approx(10 * Config.IDLE_SPIN_PER_TICK)


def test_dispatcher_feeds_scene(scene):
    dispatcher = GestureDispatcher(on_one_finger=scene.post, on_two_fingers=scene.post,
                                   on_three_fingers=scene.post, on_pinch=scene.post, on_no_gesture=scene.post)
    one = make_hand(middle=CURLED, ring=CURLED, pinky=CURLED)

    # Several perception frames between two ticks: the theme still changes exactly once
    for _ in range(4):
        dispatcher.process(one)
    scene.tick()

    assert scene.theme_index == 1


def test_snapshot_clears_dirty_flags(scene):
    scene.tick()
    frame = scene.snapshot()
    assert frame.positions_dirty
    assert frame.positions.shape == (600,)
    assert frame.sizes.shape == frame.alphas.shape == (200,)

    again = scene.snapshot()
    assert not again.positions_dirty
    assert not again.colors_dirty


def test_dispose_is_idempotent_and_stops_ticking(scene):
    scene.launch_fireworks()
    scene.tick()
    scene.dispose()
    scene.dispose()

    time_at_dispose = scene.time
    scene.post(OneFinger())
    scene.tick()

    assert scene.disposed
    assert scene.time == time_at_dispose
    assert scene.snapshot() is None
    assert len(scene.fireworks) == 0
    assert len(scene.scheduler) == 0
    assert scene.particles.count == 0
