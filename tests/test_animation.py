import pytest

from game.animation import AnimationSelector, ClipCrossFade


def test_transitions():
    sel = AnimationSelector()
    assert sel.state == "Idle"
    assert sel.on_move() == "Running"
    assert sel.on_stop() == "Idle"
    assert sel.on_interact() == "FishingIdle"


def test_interact_holds_until_movement():
    sel = AnimationSelector()
    sel.on_interact()
    assert sel.on_stop() == "FishingIdle"
    assert sel.on_move() == "Running"
    assert sel.on_stop() == "Idle"


def test_unknown_tag_falls_back_to_idle(capsys):
    sel = AnimationSelector(available={"Idle", "Running"})
    assert sel.resolve("Running") == "Running"
    assert sel.resolve("Dance") == "Idle"
    assert sel.resolve("FishingIdle") == "Idle"
    assert sel.resolve(None) == "Idle"
    out = capsys.readouterr().out
    assert "[anim]" in out and "Dance" in out
    # warned once per tag
    sel.resolve("Dance")
    assert "Dance" not in capsys.readouterr().out


def test_cross_fade_weights():
    fade = ClipCrossFade(blend_s=0.5)
    assert fade.play("Idle", now=0.0)
    assert fade.weights(0.0) == {"Idle": 1.0}
    assert not fade.play("Idle", now=0.1)
    assert fade.play("Running", now=1.0)
    w = fade.weights(1.25)
    assert w["Running"] == pytest.approx(0.5)
    assert w["Idle"] == pytest.approx(0.5)
    assert fade.weights(1.6) == {"Running": 1.0}
    assert fade.previous is None


def test_hard_switch_without_blending():
    fade = ClipCrossFade(blend_s=0.0)
    fade.play("Idle", now=0.0)
    fade.play("Running", now=0.1)
    assert fade.weights(0.1) == {"Running": 1.0}


def test_switch_mid_fade_keeps_dominant_clip():
    fade = ClipCrossFade(blend_s=0.5)
    fade.play("Idle", now=0.0)
    fade.play("Running", now=1.0)
    # Idle still at 0.8 when FishingIdle starts
    fade.play("FishingIdle", now=1.1)
    w = fade.weights(1.1)
    assert w["Idle"] == pytest.approx(1.0)
    assert w["FishingIdle"] == pytest.approx(0.0)
    assert "Running" not in w

    fade = ClipCrossFade(blend_s=0.5)
    fade.play("Idle", now=0.0)
    fade.play("Running", now=1.0)
    # Running already dominant at 0.8
    fade.play("FishingIdle", now=1.4)
    assert set(fade.weights(1.4)) == {"FishingIdle", "Running"}


def test_switch_back_reverses_fade_smoothly():
    fade = ClipCrossFade(blend_s=0.5)
    fade.play("Idle", now=0.0)
    fade.play("Running", now=1.0)
    before = fade.weights(1.15)
    assert fade.play("Idle", now=1.15)
    after = fade.weights(1.15)
    assert after["Idle"] == pytest.approx(before["Idle"])
    assert after["Running"] == pytest.approx(before["Running"])
    assert fade.weights(2.0) == {"Idle": 1.0}
