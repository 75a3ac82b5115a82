from typing import Callable, Dict, List, Any

class EventBus:
    """Simple pub/sub event bus.

    A failing subscriber is reported and skipped; the rest still run.
    """
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[..., None]]] = {}

    def subscribe(self, event: str, cb: Callable[..., None]) -> Callable[[], None]:
        self._subs.setdefault(event, []).append(cb)

        def _unsubscribe() -> None:
            subs = self._subs.get(event, [])
            if cb in subs:
                subs.remove(cb)
        return _unsubscribe

    def emit(self, event: str, *args: Any, **kwargs: Any) -> None:
        for cb in list(self._subs.get(event, [])):
            try:
                cb(*args, **kwargs)
            except Exception as e:
                print(f"[events] {event} handler {getattr(cb, '__name__', cb)!r} failed: {e!r}")

    def count(self, event: str) -> int:
        return len(self._subs.get(event, []))

    def clear(self) -> None:
        self._subs.clear()
