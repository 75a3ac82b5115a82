import math

import pytest

from game.prediction import LocalMotionPredictor


def test_zero_input_changes_nothing():
    pred = LocalMotionPredictor()
    pred.reset((1.0, 0.0, 1.0), 0.75, "Idle")
    pred.set_direction(0.0, 0.0)
    assert pred.tick(camera_yaw=1.0) is None
    assert pred.state.rotation == 0.75
    assert pred.state.position == (1.0, 0.0, 1.0)
    assert pred.seq == 0


def test_tick_moves_and_faces_travel_direction():
    pred = LocalMotionPredictor(speed=0.2)
    pred.set_direction(1.0, 0.0)
    msg = pred.tick(camera_yaw=0.0)
    assert pred.state.position == pytest.approx((0.2, 0.0, 0.0))
    assert pred.state.rotation == pytest.approx(math.pi / 2)
    assert pred.state.animation_name == "Running"
    assert msg["type"] == "playerMove"
    assert msg["position"] == pytest.approx([0.2, 0.0, 0.0])
    assert msg["animationName"] == "Running"
    assert msg["seq"] == 1


def test_speed_is_per_tick():
    pred = LocalMotionPredictor(speed=0.2)
    pred.set_direction(0.0, 1.0)
    for _ in range(20):
        pred.tick(camera_yaw=0.0)
    assert pred.state.position == pytest.approx((0.0, 0.0, -4.0))
    assert pred.seq == 20


def test_stop_emits_single_idle_update():
    pred = LocalMotionPredictor()
    pred.set_direction(0.0, 1.0)
    pred.tick(camera_yaw=0.0)
    facing = pred.state.rotation
    msg = pred.stop()
    assert msg["animationName"] == "Idle"
    assert msg["rotation"] == facing
    assert pred.stop() is None
    assert pred.tick(camera_yaw=0.0) is None


def test_interact_emits_and_holds():
    pred = LocalMotionPredictor()
    msg = pred.interact()
    assert msg["animationName"] == "FishingIdle"
    assert pred.interact() is None
    assert pred.stop() is None
    assert pred.state.animation_name == "FishingIdle"


def test_direction_clamped_per_axis():
    pred = LocalMotionPredictor(speed=0.2)
    pred.set_direction(3.0, -7.0)
    assert pred.direction == (1.0, -1.0)


def test_normalized_diagonal_option():
    pred = LocalMotionPredictor(speed=0.2, normalize_diagonal=True)
    pred.set_direction(1.0, 1.0)
    pred.tick(camera_yaw=0.0)
    x, _, z = pred.state.position
    assert math.hypot(x, z) == pytest.approx(0.2)


def test_reset_unknown_animation_falls_back():
    pred = LocalMotionPredictor()
    pred.reset([0, 0, 0], 0.0, "Breakdance")
    assert pred.state.animation_name == "Idle"
