"""Client-side state for one connection to the relay.

Three parties touch a session:

* the network thread calls :meth:`ClientSession.on_message` and
  :meth:`ClientSession.on_closed`; it is the only writer of the remote cache;
* the control tick (fixed rate) calls :meth:`ClientSession.control_tick` and
  is the only writer of the local predicted state;
* the render loop calls :meth:`ClientSession.render_step`, which smooths the
  camera and delivers queued events to subscribers on the render thread.

Input callbacks (direction, release, interact) only record intent; the
control tick applies it.
"""
from __future__ import annotations

import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from common.net import MSG_INIT_PLAYER, MSG_UPDATE_PLAYERS, ProtocolError, parse_players, request_players
from .animation import AnimationSelector
from .camera import CameraSmoother
from .constants import ANIM_IDLE, MOVE_SPEED, STOP_GRACE_S
from .event_bus import EventBus
from .prediction import LocalMotionPredictor
from .remote_cache import RemoteStateCache

# Events delivered through ClientSession.bus (always on the render thread)
EV_READY = "ready"          # (self_id)
EV_ROSTER = "roster"        # (player_count)
EV_JOINED = "joined"        # (pid)
EV_LEFT = "left"            # (pid)
EV_CLOSED = "closed"        # ()


class ClientSession:
    def __init__(
        self,
        send: Callable[[Dict[str, Any]], None],
        *,
        speed: float = MOVE_SPEED,
        normalize_diagonal: bool = False,
        stop_grace_s: float = STOP_GRACE_S,
        camera: Optional[CameraSmoother] = None,
        selector: Optional[AnimationSelector] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._send: Optional[Callable[[Dict[str, Any]], None]] = send
        self.clock = clock
        self.stop_grace_s = stop_grace_s
        self.bus = EventBus()
        self.cache = RemoteStateCache()
        self.selector = selector or AnimationSelector()
        self.predictor = LocalMotionPredictor(speed, normalize_diagonal, self.selector)
        self.camera = camera or CameraSmoother()
        self.self_id: Optional[str] = None
        self.closed = False

        self._events: Deque[Tuple[str, Tuple[Any, ...]]] = deque()
        self._seed: Optional[Dict[str, Any]] = None
        self._direction: Tuple[float, float] = (0.0, 0.0)
        self._released = False
        self._interact = False

    @property
    def ready(self) -> bool:
        return self.self_id is not None

    # ---- network thread ---------------------------------------------------

    def on_message(self, msg: Dict[str, Any]) -> None:
        if self.closed:
            return
        kind = msg.get("type")
        try:
            if kind == MSG_INIT_PLAYER:
                self._on_init(msg)
            elif kind == MSG_UPDATE_PLAYERS:
                self._on_update(msg)
            else:
                print(f"[net] ignoring message type {kind!r}")
        except ProtocolError as e:
            print(f"[net] bad {kind} payload: {e}")

    def _on_init(self, msg: Dict[str, Any]) -> None:
        me = msg.get("self")
        if not isinstance(me, dict) or not me.get("id"):
            raise ProtocolError("initPlayer without a self state")
        players = parse_players(msg)
        self_id = str(me["id"])
        own = parse_players({"players": {self_id: me}})[self_id]
        self.cache.replace(players)
        self._seed = own
        self.self_id = self_id
        self._events.append((EV_READY, (self_id,)))
        self._events.append((EV_ROSTER, (len(self.cache),)))

    def _on_update(self, msg: Dict[str, Any]) -> None:
        players = parse_players(msg)
        full = bool(msg.get("full", False))
        before = set(self.cache.players)
        self.cache.apply(players, full)
        after = set(self.cache.players)
        for pid in sorted(after - before):
            if pid != self.self_id:
                self._events.append((EV_JOINED, (pid,)))
        for pid in sorted(before - after):
            if pid != self.self_id:
                self._events.append((EV_LEFT, (pid,)))
        self._events.append((EV_ROSTER, (len(self.cache),)))

    def on_closed(self) -> None:
        """The channel closed or failed; every periodic driver winds down."""
        if self.closed:
            return
        self.closed = True
        self._send = None
        self._events.append((EV_CLOSED, ()))

    # ---- input (recorded, applied on the next control tick) ---------------

    def set_direction(self, x: float, y: float) -> None:
        self._direction = (float(x), float(y))
        self._released = False

    def release(self) -> None:
        self._direction = (0.0, 0.0)
        self._released = True

    def interact(self) -> None:
        self._interact = True

    def request_players(self) -> None:
        self._emit(request_players())

    # ---- control tick -----------------------------------------------------

    def control_tick(self) -> bool:
        """One fixed-rate step. Returns False once the session is closed."""
        if self.closed:
            return False
        seed, self._seed = self._seed, None
        if seed is not None:
            self.predictor.reset(seed["position"], seed["rotation"], seed.get("animationName") or ANIM_IDLE)
        if not self.ready:
            return True

        if self._released:
            self._released = False
            msg = self.predictor.stop()
            if msg is not None:
                self._emit(msg)
                self.camera.look_back_after(self.clock(), self.stop_grace_s)
        else:
            self.predictor.set_direction(*self._direction)
            msg = self.predictor.tick(self.camera.current_yaw)
            if msg is not None:
                self.camera.follow_facing(self.predictor.state.rotation)
                self._emit(msg)

        if self._interact:
            self._interact = False
            msg = self.predictor.interact()
            if msg is not None:
                self._emit(msg)
        return True

    def _emit(self, msg: Dict[str, Any]) -> None:
        send = self._send
        if send is None:
            return
        try:
            send(msg)
        except Exception as e:
            print(f"[net] send failed: {e!r}")

    # ---- render loop ------------------------------------------------------

    def render_step(self, now: Optional[float] = None) -> bool:
        """Per-frame work. Returns False once the session is torn down."""
        while self._events:
            event, args = self._events.popleft()
            self.bus.emit(event, *args)
        if self.closed:
            self.close()
            return False
        self.camera.step(self.clock() if now is None else now)
        return True

    def remote_players(self) -> Dict[str, Dict[str, Any]]:
        return self.cache.others(self.self_id)

    def close(self) -> None:
        self.closed = True
        self._send = None
        self._events.clear()
        self.bus.clear()
