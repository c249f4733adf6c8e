"""
In-process publish/subscribe hub for pushing events to connected clients.

Each subscriber owns a FIFO queue; ``publish`` copies the event into every
queue (or only into the queues of a room's members). Delivery is
best-effort: a client that is not subscribed at publish time never sees
the event.
"""
from __future__ import annotations

import itertools
import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything that can push a named event with a JSON-able payload."""

    def publish(self, event: str, payload: Any, room: str | None = None) -> int:
        ...


@dataclass
class Subscription:
    sub_id: int
    rooms: set[str] = field(default_factory=set)
    queue: "queue.Queue[tuple[str, Any]]" = field(default_factory=queue.Queue)

    def get(self, timeout: float | None = None) -> tuple[str, Any] | None:
        """Next (event, payload) pair, or None when ``timeout`` elapses."""
        try:
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None


class BroadcastChannel:
    """Process-wide broadcast channel; lifecycle tied to the Flask app."""

    def __init__(self, max_queue: int = 1000):
        self._subs: dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self.max_queue = max_queue

    # ---------- Subscribers ----------
    def subscribe(self, rooms: Iterable[str] = ()) -> Subscription:
        sub = Subscription(
            sub_id=next(self._ids),
            rooms={r for r in rooms if r},
            queue=queue.Queue(maxsize=self.max_queue),
        )
        with self._lock:
            self._subs[sub.sub_id] = sub
        logger.info("client %s connected rooms=%s", sub.sub_id, sorted(sub.rooms))
        return sub

    def join(self, sub: Subscription, room: str) -> None:
        with self._lock:
            sub.rooms.add(room)

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subs.pop(sub.sub_id, None)
        logger.info("client %s disconnected", sub.sub_id)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    # ---------- Publishing ----------
    def publish(self, event: str, payload: Any, room: str | None = None) -> int:
        """Deliver to every current subscriber (or a room's members); return the count."""
        with self._lock:
            targets = [s for s in self._subs.values() if room is None or room in s.rooms]
        delivered = 0
        for sub in targets:
            try:
                sub.queue.put_nowait((event, payload))
                delivered += 1
            except queue.Full:
                logger.warning("dropping %s for slow client %s", event, sub.sub_id)
        logger.debug("published %s to %d client(s)", event, delivered)
        return delivered

    def stream(self, sub: Subscription, keepalive: float = 15.0) -> Iterator[str]:
        """Yield Server-Sent Events frames for ``sub`` until the client goes away."""
        try:
            yield ": connected\n\n"
            while True:
                item = sub.get(timeout=keepalive)
                if item is None:
                    yield ": keep-alive\n\n"
                    continue
                event, payload = item
                yield format_sse(event, payload)
        finally:
            self.unsubscribe(sub)


def format_sse(event: str, payload: Any) -> str:
    data = json.dumps(payload, default=str, ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n"
