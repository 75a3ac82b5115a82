# server.py: relay server that keeps the session registry of connected participants
# and fans their state out to every other open connection (best effort, last write wins).
import asyncio, argparse, signal
from typing import Dict, Any, Optional

from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from common.net import (
    MSG_PLAYER_MOVE, MSG_REQUEST_PLAYERS, ProtocolError,
    decode, encode, init_player, parse_move, update_players,
)
from engine import config
from game.server_state import SessionRegistry, StateUpdate

DEFAULT_OUTBOX = 256

def short(pid: Optional[str]) -> str:
    return (pid or "?")[:8]

# ---------- Session ----------
class Session:
    """One open connection: participant id, its channel and its outbox.

    push() never waits on the peer. Frames are queued and a per-session
    writer task sends them, so a slow or dead peer only hurts itself.
    """

    def __init__(self, pid: str, channel, outbox_size: int = DEFAULT_OUTBOX):
        self.pid = pid
        self.channel = channel
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=max(1, int(outbox_size)))
        self.closed = False
        self.writer_task: Optional[asyncio.Task] = None
        self.closing_task: Optional[asyncio.Future] = None

    def push(self, msg: Dict[str, Any]) -> None:
        if self.closed:
            raise ConnectionError(f"session {short(self.pid)} is closed")
        self.outbox.put_nowait(encode(msg))  # QueueFull when the peer is not keeping up

    async def drain(self):
        try:
            while True:
                frame = await self.outbox.get()
                await self.channel.send(frame)
        except ConnectionClosed:
            pass
        finally:
            self.closed = True

    def start(self) -> asyncio.Task:
        self.writer_task = asyncio.create_task(self.drain(), name=f"writer-{short(self.pid)}")
        self.writer_task.add_done_callback(self._report_done)
        return self.writer_task

    def _report_done(self, t: asyncio.Task):
        if t.cancelled():
            return
        exc = t.exception()
        if exc:
            print(f"[relay] writer for {short(self.pid)} crashed: {exc!r}; closing connection")
            # Closing the channel ends handle_client's read loop, which runs on_disconnect.
            self.closing_task = asyncio.ensure_future(self.channel.close())

    def close(self):
        self.closed = True
        if self.writer_task is not None and not self.writer_task.done():
            self.writer_task.cancel()

# ---------- Server ----------
class FishingServer:
    def __init__(self, outbox_size: int = DEFAULT_OUTBOX):
        self.registry = SessionRegistry()
        self.sessions: Dict[str, Session] = {}
        self.outbox_size = outbox_size

    # All registry mutation and fan-out below is synchronous and runs on the
    # event loop, so handlers for different connections never interleave.

    def on_connect(self, channel) -> Session:
        p = self.registry.add()
        session = Session(p.id, channel, self.outbox_size)
        self.sessions[p.id] = session
        self._send(session, init_player(p.to_wire(), self.registry.snapshot()))
        return session

    def on_state_update(self, pid: str, update: StateUpdate) -> bool:
        """Apply a playerMove and relay it to everyone but the sender.

        An id that is no longer registered is a silent no-op.
        """
        if self.registry.apply(pid, update) is None:
            return False
        self._fan_out(update_players(self.registry.delta(pid), full=False), exclude=pid)
        return True

    def on_disconnect(self, pid: str) -> bool:
        session = self.sessions.pop(pid, None)
        if session is not None:
            session.close()
        if self.registry.remove(pid) is None:
            return False
        self._fan_out(update_players(self.registry.snapshot(), full=True))
        return True

    def on_message(self, pid: str, msg: Dict[str, Any]) -> None:
        kind = msg.get("type")
        if kind == MSG_PLAYER_MOVE:
            self.on_state_update(pid, parse_move(msg))
        elif kind == MSG_REQUEST_PLAYERS:
            session = self.sessions.get(pid)
            if session is not None:
                self._send(session, update_players(self.registry.snapshot(), full=True))
        else:
            print(f"[relay] {short(pid)} sent unknown message type {kind!r}; ignored")

    def _send(self, session: Session, msg: Dict[str, Any]) -> bool:
        try:
            session.push(msg)
            return True
        except Exception as e:
            print(f"[relay] dropping {msg.get('type')} for {short(session.pid)}: {e!r}")
            return False

    def _fan_out(self, msg: Dict[str, Any], exclude: Optional[str] = None) -> int:
        sent = 0
        for pid, session in list(self.sessions.items()):
            if pid == exclude:
                continue
            if self._send(session, msg):
                sent += 1
        return sent

    # ---------- Networking ----------
    async def handle_client(self, ws):
        addr = getattr(ws, "remote_address", None)
        session = self.on_connect(ws)
        session.start()
        pid = session.pid
        print(f"[server] client connected {short(pid)} from {addr} ({len(self.registry)} online)")
        try:
            async for raw in ws:
                try:
                    self.on_message(pid, decode(raw))
                except ProtocolError as e:
                    print(f"[relay] {short(pid)} sent a bad frame: {e}")
        except ConnectionClosed:
            pass
        except Exception as e:
            print(f"[client] {short(pid)} error: {e!r}")
        finally:
            self.on_disconnect(pid)
            print(f"[server] client disconnected {short(pid)} ({len(self.registry)} online)")

    def close_all(self):
        for session in list(self.sessions.values()):
            session.close()

# ---------- Entrypoint ----------
async def main_async(args):
    config.load(args.config)
    if args.host:
        config.set_value("server.host", args.host)
    if args.port:
        config.set_value("server.port", args.port)
    if args.origin:
        config.set_value("server.allowed_origins", args.origin)

    host = config.get("server.host", "0.0.0.0")
    port = int(config.get("server.port", 5000))
    origins = config.allowed_origins()
    server = FishingServer(outbox_size=int(config.get("server.outbox_size", DEFAULT_OUTBOX)))

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)):
        if sig is not None:
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                pass  # e.g., Windows

    async with serve(server.handle_client, host, port, origins=origins,
                     max_size=int(config.get("server.max_message_bytes", 4096))):
        print(f"[ws] listening on {host}:{port}")
        if origins is None:
            print("[ws] origins: unrestricted (set server.allowed_origins or ALLOWED_ORIGINS to restrict)")
        else:
            print(f"[ws] origins restricted to: {origins}")
        try:
            await stop.wait()
        finally:
            server.close_all()


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default=str(config.DEFAULT_CONFIG_PATH))
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--origin", action="append", default=None,
                    help="Allowed websocket Origin (repeatable); omit to use the config file")
    args = ap.parse_args()
    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
