import pytest

from modules.CoordinateMapper import CoordinateMapper
from modules.Scheduler import Scheduler
from modules.Tween import Tween


def test_tween_reaches_target_exactly():
    tween = Tween(0.0)
    tween.to(2.0, 0.1)

    values = [tween.step(0.016) for _ in range(10)]

    assert values == sorted(values)
    assert values[-1] == 2.0
    assert not tween.running


def test_tween_eases_out():
    tween = Tween(0.0)
    tween.to(1.0, 1.0)
    first = tween.step(0.1)
    second = tween.step(0.1) - first
    assert first > second > 0.0


def test_tween_same_target_does_not_restart():
    tween = Tween(0.0)
    tween.to(1.0, 1.0)
    tween.step(0.5)
    halfway = tween.value

    tween.to(1.0, 1.0)
    assert tween.step(0.5) == 1.0
    assert halfway < 1.0


def test_tween_retarget_starts_from_current_value():
    tween = Tween(0.0)
    tween.to(1.0, 1.0)
    tween.step(0.5)
    current = tween.value

    tween.to(0.0, 1.0)
    assert tween.step(0.0001) == pytest.approx(current, abs=1e-3)


def test_tween_zero_duration_and_set():
    tween = Tween(0.0)
    tween.to(3.0, 0.0)
    assert tween.value == 3.0

    tween.to(5.0, 1.0)
    tween.set(4.0)
    assert tween.step(0.5) == 4.0


def test_scheduler_runs_due_actions_in_order():
    fired = []
    scheduler = Scheduler()
    scheduler.call_at(0.2, lambda: fired.append("c"))
    scheduler.call_at(0.1, lambda: fired.append("a"))
    scheduler.call_at(0.1, lambda: fired.append("b"))

    assert scheduler.run_due(0.05) == 0
    assert scheduler.run_due(0.1) == 2
    assert fired == ["a", "b"]
    assert len(scheduler) == 1

    scheduler.run_due(1.0)
    assert fired == ["a", "b", "c"]


def test_scheduler_clear():
    scheduler = Scheduler()
    scheduler.call_at(1.0, lambda: None)
    scheduler.clear()
    assert scheduler.run_due(10.0) == 0


def test_mapper_centers_palm():
    mapper = CoordinateMapper()
    assert mapper.center(0.5, 0.5) == (0.0, 0.0)
    assert mapper.center(0.0, 1.0) == (-1.0, 1.0)


def test_mapper_rotation_axes():
    mapper = CoordinateMapper(speed_x=2.0, speed_y=3.0)
    pitch, yaw = mapper.to_rotation(0.75, 0.25)
    assert pitch == pytest.approx(-1.0)
    assert yaw == pytest.approx(-1.5)
