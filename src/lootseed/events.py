import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, DefaultDict, Dict, FrozenSet, Iterable, List, Optional

logger = logging.getLogger(__name__)

BIOME_ENTERED = "world.biome.entered"
EVENT_STARTED = "world.event.started"
EVENT_ENDED = "world.event.ended"

WORLD_TOPICS: FrozenSet[str] = frozenset({BIOME_ENTERED, EVENT_STARTED, EVENT_ENDED})


@dataclass(frozen=True)
class Event:
    """Notification broadcast by a run.

    Attributes:
        name: Topic string, one of the module-level topic constants.
        payload: JSON-friendly details of what happened.
        round: Run round at publish time, when the publisher knows it.
    """
    name: str
    payload: Dict[str, Any]
    round: Optional[int] = None


Subscriber = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe bus owned by a single run.

    With ``topics`` set, subscribing or publishing to any other topic raises
    ValueError, so a misspelt topic fails loudly instead of silently never firing.
    Callbacks run in registration order. A subscriber that raises is logged and
    skipped; the publisher and the remaining subscribers are unaffected.
    """

    def __init__(self, topics: Optional[Iterable[str]] = None) -> None:
        self.topics: Optional[FrozenSet[str]] = frozenset(topics) if topics is not None else None
        self._subs: DefaultDict[str, List[Subscriber]] = defaultdict(list)
        self._published: Counter = Counter()
        self._lock = RLock()

    @classmethod
    def for_world(cls) -> "EventBus":
        """Bus restricted to the biome and world-event topics a run publishes."""
        return cls(WORLD_TOPICS)

    def _check_topic(self, topic: str) -> None:
        if self.topics is not None and topic not in self.topics:
            raise ValueError(f"Unknown topic '{topic}'; expected one of {sorted(self.topics)}")

    def subscribe(self, topic: str, callback: Subscriber) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._check_topic(topic)
        with self._lock:
            self._subs[topic].append(callback)
        logger.debug("Subscribed %s to '%s'", getattr(callback, "__name__", str(callback)), topic)

    def unsubscribe(self, topic: str, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subs.get(topic, []):
                self._subs[topic].remove(callback)

    def publish(self, topic: str, payload: Dict[str, Any], round: Optional[int] = None) -> Event:
        """Deliver ``payload`` to the subscribers of ``topic`` and return the event sent."""
        self._check_topic(topic)
        event = Event(name=topic, payload=payload, round=round)
        with self._lock:
            subs = list(self._subs.get(topic, []))
            self._published[topic] += 1
        logger.debug("Publishing '%s' (round %s) to %d subscribers: %s", topic, round, len(subs), payload)
        for cb in subs:
            try:
                cb(event)
            except Exception:
                logger.exception("Unhandled exception in subscriber for '%s'", topic)
        return event

    def published_count(self, topic: str) -> int:
        with self._lock:
            return self._published[topic]


__all__ = ["BIOME_ENTERED", "EVENT_ENDED", "EVENT_STARTED", "WORLD_TOPICS", "Event", "EventBus"]
