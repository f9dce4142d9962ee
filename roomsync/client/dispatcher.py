"""Event-type dispatch table and the built-in room event handlers."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from ..shared.dto import Event
from ..shared.utils import is_new_day
from .models import RoomState
from .notifications import NotificationService
from .session import Session

logger = logging.getLogger(__name__)


class RenderSink:
    """Hooks consumed by the presentation layer. Every hook defaults to a no-op."""

    def room_created(self, room: RoomState) -> None:
        pass

    def room_updated(self, room: RoomState) -> None:
        pass

    def membership_changed(self, room: RoomState, user_id: str, membership: str) -> None:
        pass

    def presence_changed(self, user_id: str, presence: str) -> None:
        pass

    def typing_changed(self, room: RoomState) -> None:
        pass

    def message_appended(self, room: RoomState, event: Event, timestamp: float, new_day: bool) -> None:
        pass

    def focus_room(self, room: RoomState) -> None:
        pass

    def status(self, message: str) -> None:
        pass


class DispatchContext:
    """Mutable state shared by handlers during one dispatch pass."""

    def __init__(
        self,
        session: Session,
        sink: Optional[RenderSink] = None,
        notifications: Optional[NotificationService] = None,
        is_visible: Optional[Callable[[str], bool]] = None,
        render_membership: bool = True,
        render_presence: bool = True,
    ):
        self.session = session
        self.sink = sink or RenderSink()
        self.notifications = notifications
        self.is_visible = is_visible or (lambda room_id: False)
        self.render_membership = render_membership
        self.render_presence = render_presence
        self.bulk = False

    @contextmanager
    def bulk_mode(self) -> Iterator["DispatchContext"]:
        """Silence membership and presence rendering while a bulk sync is processed."""
        saved = (self.render_membership, self.render_presence, self.bulk)
        self.render_membership = False
        self.render_presence = False
        self.bulk = True
        try:
            yield self
        finally:
            self.render_membership, self.render_presence, self.bulk = saved


Handler = Callable[[DispatchContext, Optional[RoomState], Event], None]


def handle_member(ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
    membership = event.content.get("membership")
    user_id = event.state_key or event.sender
    if room is None or not isinstance(membership, str) or not user_id:
        return
    display_name = event.content.get("displayname")
    room.set_membership(user_id, membership, display_name if isinstance(display_name, str) else None)
    if ctx.render_membership:
        ctx.sink.membership_changed(room, user_id, membership)


def handle_presence(ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
    user_id = event.content.get("user_id") or event.sender
    presence = event.content.get("presence")
    if not user_id or not isinstance(presence, str):
        return
    ctx.session.presence[user_id] = presence
    if ctx.render_presence:
        ctx.sink.presence_changed(user_id, presence)


def handle_message(ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
    if room is None:
        return
    previous = room.last_timestamp()
    timestamp = event.timestamp
    room.append(event)
    ctx.sink.message_appended(room, event, timestamp, is_new_day(previous, timestamp))
    if ctx.bulk or ctx.notifications is None or event.sender == ctx.session.user_id:
        return
    if not ctx.is_visible(room.room_id):
        ctx.notifications.notify_message(room, event, ctx.session.user_id)


def handle_typing(ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
    user_ids = event.content.get("user_ids")
    if room is None or not isinstance(user_ids, list):
        return
    room.set_typing(user_ids)
    ctx.sink.typing_changed(room)


def handle_receipt(ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
    # Only the end token moves, which dispatch() does for every event.
    return None


def _metadata_handler(attribute: str, key: str) -> Handler:
    def handler(ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
        value = event.content.get(key)
        if room is None or (value is not None and not isinstance(value, str)):
            return
        setattr(room, attribute, value or None)
        ctx.sink.room_updated(room)

    handler.__name__ = f"handle_{attribute}"
    return handler


DEFAULT_HANDLERS: Dict[str, Handler] = {
    "m.room.member": handle_member,
    "m.presence": handle_presence,
    "m.room.message": handle_message,
    "m.typing": handle_typing,
    "m.receipt": handle_receipt,
    "m.fully_read": handle_receipt,
    "m.room.name": _metadata_handler("name", "name"),
    "m.room.topic": _metadata_handler("topic", "topic"),
    "m.room.canonical_alias": _metadata_handler("canonical_alias", "alias"),
}


class EventDispatcher:
    """Looks up handlers by event type; unknown types are ignored."""

    def __init__(self, handlers: Optional[Dict[str, Handler]] = None):
        self._handlers: Dict[str, Handler] = dict(DEFAULT_HANDLERS if handlers is None else handlers)

    def register(self, event_type: str, handler: Handler) -> None:
        self._handlers[event_type] = handler

    def handler_for(self, event_type: str) -> Optional[Handler]:
        return self._handlers.get(event_type)

    def dispatch(self, ctx: DispatchContext, room: Optional[RoomState], event: Event) -> None:
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.debug("EVENT_IGNORED type=%s event=%s", event.type, event.event_id)
        else:
            try:
                handler(ctx, room, event)
            except Exception:  # noqa: BLE001
                # A failing handler still consumes the event.
                logger.exception("HANDLER_FAIL type=%s event=%s", event.type, event.event_id)
        if room is not None:
            room.advance(event.event_id)

    def dispatch_event(self, ctx: DispatchContext, event: Event) -> Optional[RoomState]:
        """Resolve the event's room, creating it on first sight, then dispatch."""
        room = None
        if event.room_id:
            room, created = ctx.session.ensure_room(event.room_id)
            if created:
                logger.info("ROOM_CREATED room=%s", room.room_id)
                ctx.sink.room_created(room)
        self.dispatch(ctx, room, event)
        return room
