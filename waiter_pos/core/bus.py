from collections import defaultdict
from types import MethodType
from typing import Callable, DefaultDict, List, Union
import weakref

Listener = Union[Callable[..., None], weakref.WeakMethod]

# Events emitted by the order manager; renderers subscribe to these.
EVENTS = frozenset(
    {
        "table_selected",
        "draft_changed",
        "tickets_changed",
        "table_state_changed",
        "vacation_staged",
        "bills_changed",
        "availability_changed",
        "catalog_changed",
        "persistence_failed",
    }
)


class EventBus:
    """Pub/sub between the order manager and whatever renders its state.

    Bound methods are held weakly so a closed view never keeps receiving
    events; plain functions are held strongly until unsubscribed.
    """

    __slots__ = ("_subs",)

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event_name: str, callback: Callable[..., None]) -> None:
        if event_name not in EVENTS:
            raise ValueError(f"Unknown event: {event_name}")
        listeners = self._subs[event_name]
        if isinstance(callback, MethodType):
            listeners.append(weakref.WeakMethod(callback))
        else:
            listeners.append(callback)

    def unsubscribe(self, event_name: str, callback: Callable[..., None]) -> None:
        kept: List[Listener] = []
        for cb in self._subs.get(event_name, []):
            target = cb() if isinstance(cb, weakref.WeakMethod) else cb
            if target is None or target == callback:
                continue
            kept.append(cb)
        self._subs[event_name] = kept

    def clear(self) -> None:
        self._subs.clear()

    def emit(self, event_name: str, *args, **kwargs) -> None:
        listeners = self._subs.get(event_name)
        if not listeners:
            return

        alive: List[Listener] = []
        for cb in listeners:
            if isinstance(cb, weakref.WeakMethod):
                fn = cb()
                if fn is None:
                    continue
                fn(*args, **kwargs)
            else:
                cb(*args, **kwargs)
            alive.append(cb)
        self._subs[event_name] = alive


bus = EventBus()
