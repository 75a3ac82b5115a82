# client.py
import sys, asyncio, time, argparse, threading
from typing import Dict, Any, Optional

from direct.showbase.ShowBase import ShowBase
from direct.actor.Actor import Actor
from direct.gui.OnscreenText import OnscreenText
from direct.task import Task
from panda3d.core import AmbientLight, CardMaker, DirectionalLight, LColor, NodePath, Point3, TextNode

import gltf
import simplepbr
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from common.net import ProtocolError, decode, send_json
from engine import config
from game.animation import AnimationSelector, ClipCrossFade
from game.camera import CameraSmoother
from game.constants import (
    ANIM_BLEND_S, ANIMATION_TAGS, CAMERA_DISTANCE, CAMERA_HEIGHT, CAMERA_LOOK_BACK, CAMERA_SMOOTH,
    CONTROL_HZ, FLOOR_SIZE, FLOOR_Y, MOVE_SPEED, STOP_GRACE_S,
)
from game.session import EV_CLOSED, EV_JOINED, EV_LEFT, EV_READY, EV_ROSTER, ClientSession
from game.transform import to_panda, yaw_to_heading_deg


class AsyncRunner:
    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run_coro(self, coro):
        """Schedule a coroutine onto the background loop."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)


class NetworkClient:
    def __init__(self, uri: str, origin: Optional[str] = None):
        self.uri = uri
        self.origin = origin
        self.ws = None

    async def connect(self):
        kwargs = {"origin": self.origin} if self.origin else {}
        self.ws = await connect(self.uri, **kwargs)
        print(f"[net] connected to {self.uri}")

    async def recv_loop(self, session: ClientSession):
        if self.ws is None:
            raise RuntimeError("recv_loop called before connect() completed")
        try:
            async for raw in self.ws:
                try:
                    session.on_message(decode(raw))
                except ProtocolError as e:
                    print(f"[net] dropped frame: {e}")
        except ConnectionClosed as e:
            print(f"[net] connection closed: {e}")
        finally:
            session.on_closed()

    async def send(self, msg: Dict[str, Any]):
        if self.ws is None:
            return
        await send_json(self.ws, msg)

    async def close(self):
        if self.ws is not None:
            await self.ws.close()


class AvatarView:
    """Scene node for one participant: animated model, or a box when assets fail."""

    def __init__(self, app: "GameApp", name: str):
        self.app = app
        self.root: NodePath = app.render.attachNewNode(name)
        self.actor: Optional[Actor] = None
        self.fade = ClipCrossFade(app.blend_s)
        self.selector = AnimationSelector(available=())
        self._load()

    def _load(self):
        model = config.get("animation.model")
        clips = dict(config.get("animation.clips", {}) or {})
        try:
            actor = Actor(model, clips)
            loaded = [n for n in actor.getAnimNames() if actor.getAnimControl(n) is not None]
            actor.reparentTo(self.root)
            if self.fade.blend_s > 0.0:
                actor.enableBlend()
            self.actor = actor
            self.selector.available = set(loaded)
        except Exception as e:
            print(f"[init] Could not load avatar {model}: {e}. Falling back to box.")
            box = self.app.loader.loadModel("models/box")
            box.setPos(-0.5, -0.5, 0.0)
            box.setColor(0.9, 0.6, 0.2, 1)
            box.reparentTo(self.root)

    def apply(self, position, rotation: float, animation_name: Optional[str], now: float):
        self.root.setPos(*to_panda(position))
        self.root.setH(yaw_to_heading_deg(rotation))
        if self.actor is None:
            return
        clip = self.selector.resolve(animation_name)
        if clip not in self.selector.available:
            return
        if self.fade.play(clip, now):
            # Without blending loop() replaces the running clip (hard switch).
            self.actor.loop(clip)
        if self.fade.blend_s > 0.0:
            weights = self.fade.weights(now)
            for name in self.selector.available:
                self.actor.setControlEffect(name, weights.get(name, 0.0))
                if name not in weights:
                    self.actor.stop(name)

    def destroy(self):
        if self.actor is not None:
            self.actor.cleanup()
        self.root.removeNode()


class Hud:
    def __init__(self, join_message_s: float):
        self.join_message_s = join_message_s
        self.count_text = OnscreenText(text="", pos=(-1.3, 0.92), fg=(1, 1, 1, 1), align=TextNode.ALeft, scale=0.05, mayChange=True)
        self.message_text = OnscreenText(text="", pos=(-1.3, 0.85), fg=(1, 1, 1, 1), align=TextNode.ALeft, scale=0.05, mayChange=True)
        self.banner = OnscreenText(text="Connecting...", pos=(0, 0), fg=(1, 1, 1, 1), scale=0.1, mayChange=True)
        self._message_until = 0.0

    def set_count(self, n: int):
        self.count_text.setText(f"Players: {n}")

    def flash(self, text: str, now: float):
        self.message_text.setText(text)
        self._message_until = now + self.join_message_s

    def update(self, now: float):
        if self._message_until and now >= self._message_until:
            self.message_text.setText("")
            self._message_until = 0.0


class GameApp(ShowBase):
    def __init__(self, uri: str, origin: Optional[str] = None):
        ShowBase.__init__(self)
        self.set_background_color(0.45, 0.65, 0.9, 1)
        self.disableMouse()
        self.camLens.setNear(config.get_float("camera.near", 0.1))
        self.camLens.setFar(config.get_float("camera.far", 300.0))

        self.blend_s = config.get_float("animation.blend_s", ANIM_BLEND_S)
        self.control_dt = 1.0 / max(1e-6, config.get_float("client.control_hz", CONTROL_HZ))

        camera = CameraSmoother(
            smooth_factor=config.get_float("camera.smooth_factor", CAMERA_SMOOTH),
            distance=config.get_float("camera.distance", CAMERA_DISTANCE),
            height=config.get_float("camera.height", CAMERA_HEIGHT),
            idle_behavior=str(config.get("camera.idle_behavior", CAMERA_LOOK_BACK)),
        )
        self.session = ClientSession(
            self._send,
            speed=config.get_float("client.move_speed", MOVE_SPEED),
            normalize_diagonal=bool(config.get("client.normalize_diagonal", False)),
            stop_grace_s=config.get_float("client.stop_grace_s", STOP_GRACE_S),
            camera=camera,
            selector=AnimationSelector(available=ANIMATION_TAGS),
        )
        self.session.bus.subscribe(EV_READY, self._on_ready)
        self.session.bus.subscribe(EV_ROSTER, self._on_roster)
        self.session.bus.subscribe(EV_JOINED, self._on_joined)
        self.session.bus.subscribe(EV_LEFT, self._on_left)
        self.session.bus.subscribe(EV_CLOSED, self._on_closed)

        # glTF avatars: loader plugin + PBR pipeline (optional at runtime, like the GPU)
        gltf.patch_loader(self.loader)
        try:
            self._pbr = simplepbr.init()
            print("[init] simplepbr pipeline active")
        except Exception as e:
            self._pbr = None
            print(f"[init] simplepbr not active: {e}")

        self._build_scene()
        self.hud = Hud(config.get_float("hud.join_message_s", 2.0))
        self.local_view: Optional[AvatarView] = None
        self.remote_views: Dict[str, AvatarView] = {}

        # key state
        self.keys = set()
        for key in ["w", "a", "s", "d", "arrow_up", "arrow_down", "arrow_left", "arrow_right"]:
            self.accept(key, self.on_key, [key, True])
            self.accept(key + "-up", self.on_key, [key, False])
        self.accept("e", self.session.interact)
        self.accept("r", self.session.request_players)  # manual roster resync
        self.accept("escape", self.shutdown)
        self._was_moving = False

        self.taskMgr.add(self.update_task, "render-update")
        self.taskMgr.doMethodLater(self.control_dt, self.control_task, "control-tick")

        # --- network start (connect first, then start recv loop) ---
        self.net_runner = AsyncRunner()
        self.client = NetworkClient(uri, origin)

        def _after_connect(fut):
            try:
                fut.result()  # raise if connect() failed
            except Exception as e:
                print(f"[net] connect failed: {e}")
                self.session.on_closed()
                return
            self.net_runner.run_coro(self.client.recv_loop(self.session))

        connect_future = self.net_runner.run_coro(self.client.connect())
        connect_future.add_done_callback(_after_connect)

    # --- Scene -----------------------------------------------------------

    def _build_scene(self):
        dlight = DirectionalLight("dlight")
        dlight.setColor(LColor(0.9, 0.9, 0.9, 1))
        dlnp = self.render.attachNewNode(dlight)
        dlnp.setHpr(45, -60, 0)
        self.render.setLight(dlnp)

        alight = AmbientLight("alight")
        alight.setColor(LColor(0.35, 0.35, 0.4, 1))
        alnp = self.render.attachNewNode(alight)
        self.render.setLight(alnp)

        half = FLOOR_SIZE * 0.5
        cm = CardMaker("floor")
        cm.setFrame(-half, half, -half, half)
        floor = self.render.attachNewNode(cm.generate())
        floor.setP(-90)
        floor.setZ(FLOOR_Y)
        floor.setColor(0.2, 0.6, 0.2, 1)

    # --- Network glue ----------------------------------------------------

    def _send(self, msg: Dict[str, Any]):
        fut = self.net_runner.run_coro(self.client.send(msg))

        def _report(f):
            exc = f.exception()
            if exc and not isinstance(exc, ConnectionClosed):
                print(f"[net] send failed: {exc!r}")
        fut.add_done_callback(_report)

    def _on_ready(self, self_id: str):
        print(f"[net] joined as {self_id[:8]}")
        self.hud.banner.setText("")
        self.hud.flash("+1 player", time.monotonic())
        if self.local_view is None:
            self.local_view = AvatarView(self, "player-local")

    def _on_roster(self, count: int):
        self.hud.set_count(count)

    def _on_joined(self, pid: str):
        self.hud.flash("+1 player", time.monotonic())

    def _on_left(self, pid: str):
        view = self.remote_views.pop(pid, None)
        if view is not None:
            view.destroy()

    def _on_closed(self):
        print("[net] disconnected from server")
        self.hud.banner.setText("Disconnected")
        for view in self.remote_views.values():
            view.destroy()
        self.remote_views.clear()

    # --- Input handling ----------------------------------------------------

    def on_key(self, key, down):
        if down:
            self.keys.add(key)
        else:
            self.keys.discard(key)

    def _poll_direction(self):
        x = 0.0
        y = 0.0
        if "w" in self.keys or "arrow_up" in self.keys:
            y += 1
        if "s" in self.keys or "arrow_down" in self.keys:
            y -= 1
        if "a" in self.keys or "arrow_left" in self.keys:
            x -= 1
        if "d" in self.keys or "arrow_right" in self.keys:
            x += 1
        return x, y

    # --- Periodic drivers ----------------------------------------------------

    def control_task(self, task):
        if not self.session.control_tick():
            return Task.done
        return Task.again

    def update_task(self, task):
        x, y = self._poll_direction()
        if x or y:
            self.session.set_direction(x, y)
            self._was_moving = True
        elif self._was_moving:
            self.session.release()
            self._was_moving = False

        now = time.monotonic()
        if not self.session.render_step(now):
            return Task.done
        self.hud.update(now)

        # Local avatar follows the predicted state, remote avatars the cache.
        local = self.session.predictor.state
        if self.local_view is not None:
            self.local_view.apply(local.position, local.rotation, local.animation_name, now)

        remote = self.session.remote_players()
        for pid, state in remote.items():
            view = self.remote_views.get(pid)
            if view is None:
                view = AvatarView(self, f"player-{pid[:8]}")
                self.remote_views[pid] = view
            view.apply(state["position"], state["rotation"], state.get("animationName"), now)
        for pid in [p for p in self.remote_views if p not in remote]:
            self.remote_views.pop(pid).destroy()

        cam_pos = self.session.camera.camera_position(local.position)
        self.camera.setPos(*to_panda(cam_pos))
        self.camera.lookAt(Point3(*to_panda(local.position)))
        return Task.cont

    def shutdown(self):
        self.taskMgr.remove("control-tick")
        self.taskMgr.remove("render-update")
        self.session.close()
        try:
            self.net_runner.run_coro(self.client.close()).result(timeout=1.0)
        except Exception as e:
            print(f"[net] close failed: {e!r}")
        self.net_runner.stop()
        sys.exit(0)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default=str(config.DEFAULT_CONFIG_PATH))
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--secure", action="store_true", help="Use wss:// instead of ws://")
    ap.add_argument("--origin", default=None, help="Origin header to send (needed when the server restricts origins)")
    args = ap.parse_args()
    config.load(args.config)

    host = args.host or config.get("client.host", "127.0.0.1")
    port = args.port or int(config.get("client.port", config.get("server.port", 5000)))
    origin = args.origin or config.get("client.origin")
    scheme = "wss" if args.secure else "ws"

    app = GameApp(f"{scheme}://{host}:{port}", origin=origin)
    app.run()


if __name__ == "__main__":
    main()
