# common/net.py
import json
import math
from typing import Any, Dict, Optional, Tuple

from game.server_state import StateUpdate

# One JSON object per websocket text frame, tagged by "type".

MSG_INIT_PLAYER = "initPlayer"
MSG_PLAYER_MOVE = "playerMove"
MSG_UPDATE_PLAYERS = "updatePlayers"
MSG_REQUEST_PLAYERS = "requestPlayers"

MAX_TAG_LEN = 64


class ProtocolError(ValueError):
    """A frame that cannot be decoded or carries a malformed payload."""


def encode(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"))

def decode(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"frame is not utf-8: {e}") from e
    try:
        msg = json.loads(raw)
    except ValueError as e:
        raise ProtocolError(f"frame is not JSON: {e}") from e
    if not isinstance(msg, dict) or not isinstance(msg.get("type"), str):
        raise ProtocolError("frame must be an object with a string 'type'")
    return msg

async def send_json(ws, obj: Dict[str, Any]):
    await ws.send(encode(obj))

async def read_json(ws) -> Dict[str, Any]:
    return decode(await ws.recv())

# ---- Message builders -----------------------------------------------------

def init_player(self_state: Dict[str, Any], players: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": MSG_INIT_PLAYER, "self": self_state, "players": players}

def update_players(players: Dict[str, Dict[str, Any]], full: bool) -> Dict[str, Any]:
    return {"type": MSG_UPDATE_PLAYERS, "players": players, "full": full}

def request_players() -> Dict[str, Any]:
    return {"type": MSG_REQUEST_PLAYERS}

def player_move(position: Optional[Tuple[float, float, float]] = None,
                rotation: Optional[float] = None,
                animation_name: Optional[str] = None,
                seq: Optional[int] = None) -> Dict[str, Any]:
    msg: Dict[str, Any] = {"type": MSG_PLAYER_MOVE}
    if position is not None:
        msg["position"] = [float(c) for c in position]
    if rotation is not None:
        msg["rotation"] = float(rotation)
    if animation_name is not None:
        msg["animationName"] = animation_name
    if seq is not None:
        msg["seq"] = int(seq)
    return msg

# ---- Validation -----------------------------------------------------------

def _finite(v: Any, what: str) -> float:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ProtocolError(f"{what} must be a number, got {v!r}")
    f = float(v)
    if not math.isfinite(f):
        raise ProtocolError(f"{what} must be finite")
    return f

def parse_position(v: Any) -> Tuple[float, float, float]:
    if not isinstance(v, (list, tuple)) or len(v) != 3:
        raise ProtocolError(f"position must be [x, y, z], got {v!r}")
    return (_finite(v[0], "position.x"), _finite(v[1], "position.y"), _finite(v[2], "position.z"))

def parse_move(msg: Dict[str, Any]) -> StateUpdate:
    """Validate a playerMove payload. Absent fields stay None."""
    update = StateUpdate()
    if msg.get("position") is not None:
        update.position = parse_position(msg["position"])
    if msg.get("rotation") is not None:
        update.rotation = _finite(msg["rotation"], "rotation")
    tag = msg.get("animationName")
    if tag is not None:
        if not isinstance(tag, str) or not tag or len(tag) > MAX_TAG_LEN:
            raise ProtocolError(f"animationName must be a short string, got {tag!r}")
        update.animation_name = tag
    seq = msg.get("seq")
    if seq is not None:
        if isinstance(seq, bool) or not isinstance(seq, int) or seq < 0:
            raise ProtocolError(f"seq must be a non-negative integer, got {seq!r}")
        update.seq = seq
    return update

def parse_players(msg: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Validate the id -> state mapping of initPlayer / updatePlayers."""
    players = msg.get("players")
    if not isinstance(players, dict):
        raise ProtocolError("'players' must be an object keyed by id")
    out: Dict[str, Dict[str, Any]] = {}
    for pid, state in players.items():
        if not isinstance(state, dict):
            raise ProtocolError(f"state for {pid} must be an object")
        entry = {
            "id": str(pid),
            "position": list(parse_position(state.get("position", [0.0, 0.0, 0.0]))),
            "rotation": _finite(state.get("rotation", 0.0), "rotation"),
            "animationName": state.get("animationName"),
        }
        if not isinstance(entry["animationName"], str):
            entry["animationName"] = None
        out[str(pid)] = entry
    return out
