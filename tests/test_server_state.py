import pytest

from game.constants import ANIM_IDLE, ANIM_RUNNING
from game.server_state import ParticipantState, SessionRegistry, StateUpdate


def test_add_uses_default_state():
    reg = SessionRegistry()
    p = reg.add()
    assert p.id in reg
    assert p.position == (0.0, 0.0, 0.0)
    assert p.rotation == 0.0
    assert p.animation_name == ANIM_IDLE
    assert p.to_wire() == {"id": p.id, "position": [0.0, 0.0, 0.0], "rotation": 0.0, "animationName": ANIM_IDLE}


def test_ids_are_unique():
    reg = SessionRegistry()
    ids = {reg.add().id for _ in range(50)}
    assert len(ids) == 50 == len(reg)


def test_duplicate_add_rejected():
    reg = SessionRegistry()
    reg.add("abc")
    with pytest.raises(KeyError):
        reg.add("abc")


def test_partial_update_keeps_missing_fields():
    reg = SessionRegistry()
    pid = reg.add().id
    reg.apply(pid, StateUpdate(position=(1.0, 0.0, 2.0), rotation=0.5, animation_name=ANIM_RUNNING))
    reg.apply(pid, StateUpdate(rotation=1.5))
    p = reg.get(pid)
    assert p.position == (1.0, 0.0, 2.0)
    assert p.rotation == 1.5
    assert p.animation_name == ANIM_RUNNING


def test_update_for_removed_id_is_noop():
    reg = SessionRegistry()
    pid = reg.add().id
    reg.remove(pid)
    assert reg.apply(pid, StateUpdate(rotation=1.0)) is None
    assert pid not in reg
    assert reg.snapshot() == {}


def test_stale_sequence_dropped():
    reg = SessionRegistry()
    pid = reg.add().id
    assert reg.apply(pid, StateUpdate(rotation=1.0, seq=5)) is not None
    assert reg.apply(pid, StateUpdate(rotation=2.0, seq=4)) is None
    assert reg.apply(pid, StateUpdate(rotation=3.0, seq=5)) is None
    assert reg.get(pid).rotation == 1.0
    # no seq: last write wins
    reg.apply(pid, StateUpdate(rotation=4.0))
    assert reg.get(pid).rotation == 4.0


def test_snapshot_and_delta():
    reg = SessionRegistry()
    a = reg.add().id
    b = reg.add().id
    assert set(reg.snapshot()) == {a, b}
    assert list(reg.delta(a)) == [a]
    assert reg.delta("missing") == {}

