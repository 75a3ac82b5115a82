import json

import pytest

from common.net import (
    ProtocolError,
    decode,
    encode,
    init_player,
    parse_move,
    parse_players,
    player_move,
    update_players,
)


def test_decode_rejects_garbage():
    with pytest.raises(ProtocolError):
        decode("not json")
    with pytest.raises(ProtocolError):
        decode("[1, 2, 3]")
    with pytest.raises(ProtocolError):
        decode(json.dumps({"no_type": True}))
    with pytest.raises(ProtocolError):
        decode(b"\xff\xfe")


def test_decode_accepts_bytes():
    assert decode(encode({"type": "x"}).encode("utf-8")) == {"type": "x"}


def test_player_move_omits_missing_fields():
    assert player_move(rotation=1.0) == {"type": "playerMove", "rotation": 1.0}
    msg = player_move((1, 2, 3), 0.5, "Running", seq=3)
    assert msg == {"type": "playerMove", "position": [1.0, 2.0, 3.0], "rotation": 0.5, "animationName": "Running", "seq": 3}


def test_parse_move_partial():
    update = parse_move({"type": "playerMove", "animationName": "Idle"})
    assert update.position is None and update.rotation is None
    assert update.animation_name == "Idle"
    assert update.seq is None


@pytest.mark.parametrize("payload", [
    {"position": [1, 2]},
    {"position": "here"},
    {"position": [1, "a", 3]},
    {"position": [1, 2, float("nan")]},
    {"rotation": "north"},
    {"rotation": True},
    {"animationName": 5},
    {"animationName": ""},
    {"animationName": "x" * 100},
    {"seq": -1},
    {"seq": 1.5},
])
def test_parse_move_rejects_malformed(payload):
    with pytest.raises(ProtocolError):
        parse_move(dict(payload, type="playerMove"))


def test_snapshot_and_delta_share_shape():
    state = {"id": "a", "position": [0, 0, 0], "rotation": 0, "animationName": "Idle"}
    full = update_players({"a": state}, full=True)
    delta = update_players({"a": state}, full=False)
    assert parse_players(full) == parse_players(delta)
    init = init_player(state, {"a": state})
    assert parse_players(init)["a"]["position"] == [0.0, 0.0, 0.0]


def test_parse_players_requires_mapping():
    with pytest.raises(ProtocolError):
        parse_players({"players": [1, 2]})
    with pytest.raises(ProtocolError):
        parse_players({"players": {"a": "idle"}})
    assert parse_players({"players": {"a": {"animationName": 3}}})["a"]["animationName"] is None
