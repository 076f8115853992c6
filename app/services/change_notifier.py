# app/services/change_notifier.py
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ChangeKind:
    OPPORTUNITY_CHANGED = "opportunity.changed"
    ASSIGNMENT_CHANGED = "assignment.changed"


def _now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChangeEvent:
    """
    A refetch trigger. Never the source of truth: consumers reload state.
    """
    kind: str
    opportunity_id: uuid.UUID
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=_now)


Subscriber = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """
    Best-effort in-process fan-out keyed by opportunity id.

    - publish() is only called after the owning transaction committed
    - a failing subscriber is logged and skipped
    - subscribers with opportunity_id=None receive every event
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: List[Tuple[Optional[uuid.UUID], Subscriber]] = []

    def subscribe(
        self,
        callback: Subscriber,
        opportunity_id: Optional[uuid.UUID] = None,
    ) -> Callable[[], None]:
        entry = (opportunity_id, callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [
                cb for key, cb in self._subscribers
                if key is None or key == event.opportunity_id
            ]

        for cb in targets:
            try:
                cb(event)
            except Exception:
                logger.exception(
                    "[notifier] subscriber failed kind=%s opportunity=%s",
                    event.kind, event.opportunity_id,
                )

    def emit(self, kind: str, opportunity_id: uuid.UUID, **payload: Any) -> ChangeEvent:
        event = ChangeEvent(kind=kind, opportunity_id=opportunity_id, payload=payload)
        self.publish(event)
        return event


_default_notifier = ChangeNotifier()


def get_notifier() -> ChangeNotifier:
    return _default_notifier
