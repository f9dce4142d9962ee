"""Notification ledger and delivery of message notifications."""
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Iterator, List, Optional, Sequence, Tuple

from ..shared.dto import Event
from ..shared.utils import sanitize_notification_text
from .models import RoomState

LEDGER_CAPACITY = 20
SHOW_ACTION = ("default", "Show")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    notification_id: Any
    room_id: str
    event_id: Optional[str]


class NotificationLedger:
    """Most-recent-first record of delivered notifications, bounded by insertion order."""

    def __init__(self, capacity: int = LEDGER_CAPACITY):
        self._entries: Deque[LedgerEntry] = deque(maxlen=capacity)

    def record(self, notification_id: Any, room_id: str, event_id: Optional[str]) -> LedgerEntry:
        entry = LedgerEntry(notification_id, room_id, event_id)
        # appendleft on a full deque drops the oldest entry from the right.
        self._entries.appendleft(entry)
        return entry

    def lookup(self, notification_id: Any) -> Optional[LedgerEntry]:
        for entry in self._entries:
            if entry.notification_id == notification_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(self._entries)


class Notifier:
    """Delivery backend contract; returns an opaque notification id."""

    def notify(self, title: str, body: str, actions: Sequence[Tuple[str, str]]) -> Any:
        raise NotImplementedError


class NotificationService:
    def __init__(self, notifier: Notifier, ledger: Optional[NotificationLedger] = None):
        self.notifier = notifier
        self.ledger = ledger if ledger is not None else NotificationLedger()

    def notify_message(self, room: RoomState, event: Event, own_user_id: Optional[str] = None) -> Optional[Any]:
        title = sanitize_notification_text(room.label(own_user_id))
        text = event.content.get("body", "")
        body = sanitize_notification_text(f"{room.display_name(event.sender)}: {text}")
        try:
            notification_id = self.notifier.notify(title, body, [SHOW_ACTION])
        except Exception as exc:  # noqa: BLE001
            logger.warning("NOTIFY_FAIL room=%s event=%s reason=%s", room.room_id, event.event_id, exc)
            return None
        if notification_id is None:
            return None
        self.ledger.record(notification_id, room.room_id, event.event_id)
        return notification_id

    def resolve(self, notification_id: Any) -> Optional[str]:
        entry = self.ledger.lookup(notification_id)
        return entry.room_id if entry else None

    def recent(self) -> List[LedgerEntry]:
        return list(self.ledger)
