"""
Session-change channel.

Publishes SIGNED_IN / SIGNED_OUT / ROLES_CHANGED events to two kinds of
subscribers:

- in-process listeners (every live SessionContext), called synchronously
  so a revocation takes effect before the publisher returns
- per-user asyncio queues drained by the SSE stream in ``licensing.api.events``
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SessionEventType(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    ROLES_CHANGED = "ROLES_CHANGED"


@dataclass(frozen=True)
class SessionEvent:
    """
    One session change for one user.

    ``token_id`` narrows SIGNED_OUT to a single session; None means every
    session of the user.
    """
    type: SessionEventType
    user_id: str
    token_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.type.value,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
        }


SessionListener = Callable[[SessionEvent], None]


class SessionChannel:
    """In-process pub/sub for session changes"""

    def __init__(self):
        self._listeners: List[SessionListener] = []
        self._streams: Dict[str, List[asyncio.Queue]] = {}

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def connect(self, user_id: str) -> asyncio.Queue:
        """Open an event queue for one user's SSE stream"""
        queue: asyncio.Queue = asyncio.Queue()
        self._streams.setdefault(user_id, []).append(queue)
        logger.info(f"New session stream for user {user_id}. Total streams: {self.stream_count}")
        return queue

    def disconnect(self, user_id: str, queue: asyncio.Queue) -> None:
        queues = self._streams.get(user_id, [])
        if queue in queues:
            queues.remove(queue)
            if not queues:
                del self._streams[user_id]
            logger.info(f"Session stream closed for user {user_id}. Total streams: {self.stream_count}")

    def publish(self, event: SessionEvent) -> None:
        """
        Deliver an event to every listener and to the user's open streams.

        A failing listener is logged and skipped; the others still run.
        """
        logger.info(f"Publishing {event.type.value} for user {event.user_id}")

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)

        for queue in self._streams.get(event.user_id, []):
            queue.put_nowait(event)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def stream_count(self) -> int:
        return sum(len(queues) for queues in self._streams.values())


# Global channel instance
session_channel = SessionChannel()
