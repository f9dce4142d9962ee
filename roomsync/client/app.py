"""Application controller owning the session lifecycle."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple

from ..shared.dto import Credentials
from .api import APIClient
from .config import Settings, get_settings
from .dispatcher import DispatchContext, EventDispatcher, RenderSink
from .errors import AuthError, ErrorKind, RoomSyncError, TransportError
from .notifications import NotificationService, Notifier
from .session import Session
from .storage import CredentialStore
from .sync import SyncLoop

logger = logging.getLogger(__name__)

CredentialPrompt = Callable[[], Tuple[str, str, str]]


class ClientController:
    """Encapsulates the single active session, its sync loop and user-invoked operations."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[CredentialStore] = None,
        sink: Optional[RenderSink] = None,
        notifier: Optional[Notifier] = None,
        is_visible: Optional[Callable[[str], bool]] = None,
        credential_prompt: Optional[CredentialPrompt] = None,
        transport_factory: Callable[..., Any] = APIClient,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or CredentialStore(self.settings.credentials_file)
        self.sink = sink or RenderSink()
        self.notifications = NotificationService(notifier) if notifier else None
        self.is_visible = is_visible
        self.credential_prompt = credential_prompt
        self.transport_factory = transport_factory
        self.dispatcher = dispatcher or EventDispatcher()
        self.session: Optional[Session] = None
        self.api: Any = None
        self.loop: Optional[SyncLoop] = None

    def _make_transport(self, server: str, access_token: Optional[str] = None) -> Any:
        return self.transport_factory(
            server,
            access_token=access_token,
            verify_tls=self.settings.verify_tls,
            timeout=self.settings.request_timeout,
            poll_timeout_margin=self.settings.request_timeout_margin,
        )

    def _load_saved(self) -> Optional[Credentials]:
        if not self.settings.use_saved_token:
            return None
        return self.store.load()

    def _collect_credentials(
        self, user: Optional[str], password: Optional[str], server: Optional[str]
    ) -> Tuple[str, str, str]:
        if (user is None or password is None) and self.credential_prompt is not None:
            user, password, server = self.credential_prompt()
        if not user or not password:
            raise AuthError("No credentials available")
        return user, password, server or self.settings.homeserver_url

    def login(
        self,
        user: Optional[str] = None,
        password: Optional[str] = None,
        server: Optional[str] = None,
        start: bool = True,
    ) -> Session:
        if self.session is not None:
            logger.warning("LOGIN_SKIPPED reason=already_active user=%s", self.session.user_id)
            self.sink.status(f"Already connected as {self.session.user_id}")
            return self.session

        saved = self._load_saved()
        if saved is not None:
            logger.info("LOGIN_SAVED_TOKEN user=%s", saved.user_id)
            api = self._make_transport(saved.server, access_token=saved.access_token)
            creds = saved
        else:
            user, password, server = self._collect_credentials(user, password, server)
            api = self._make_transport(server)
            try:
                creds = api.login(user, password)
            except RoomSyncError:
                api.close()
                raise

        session = Session.from_credentials(creds)
        ctx = DispatchContext(session, self.sink, self.notifications, self.is_visible)
        loop = SyncLoop(
            session,
            api,
            self.dispatcher,
            ctx,
            poll_timeout_ms=self.settings.poll_timeout_ms,
            initial_sync_limit=self.settings.initial_sync_limit,
        )
        try:
            loop.initial_sync()
        except TransportError as exc:
            api.close()
            if exc.kind is ErrorKind.AUTH:
                if saved is not None:
                    self.store.clear()
                raise AuthError(f"Access token rejected for {creds.user_id}") from exc
            raise

        self.session, self.api, self.loop = session, api, loop
        if self.settings.use_saved_token:
            self.store.save(session.credentials())
        logger.info("SESSION_READY user=%s rooms=%s", session.user_id, len(session.rooms))
        self.sink.status(f"Connected as {session.user_id}")
        if start:
            loop.start()
        return session

    def disconnect(self, logout: bool = False) -> None:
        session = self.session
        if session is None:
            return
        if self.loop is not None:
            self.loop.stop()
            # A batch in progress finishes its current event before rooms are released.
            if not self.loop.join(self.settings.request_timeout):
                logger.warning("SYNC_JOIN_TIMEOUT user=%s", session.user_id)
        if logout:
            try:
                self.api.logout()
            except TransportError as exc:
                logger.warning("LOGOUT_FAIL user=%s reason=%s", session.user_id, exc.detail)
            self.store.clear()
        elif self.settings.use_saved_token:
            self.store.save(session.credentials())
        self.api.close()
        session.release()
        self.session, self.api, self.loop = None, None, None
        logger.info("SESSION_CLOSED user=%s logout=%s", session.user_id, logout)
        self.sink.status("Disconnected")

    def _require_session(self) -> Session:
        if self.session is None:
            raise RoomSyncError("Not connected")
        return self.session

    def send_message(self, room_id: str, body: str) -> str:
        session = self._require_session()
        txn_id = session.next_txn_id()
        event_id = self.api.send_message(room_id, body, txn_id)
        logger.info("MESSAGE_SENT room=%s txn=%s event=%s", room_id, txn_id, event_id)
        return event_id

    def mark_read(self, room_id: Optional[str]) -> bool:
        """Send a read receipt for the room's end token; failures are only logged."""
        if self.session is None or room_id is None:
            return False
        room = self.session.room(room_id)
        if room is None or room.end_token is None:
            return False
        try:
            self.api.mark_read(room_id, room.end_token)
        except Exception as exc:  # noqa: BLE001
            logger.info("MARK_READ_FAIL room=%s event=%s reason=%s", room_id, room.end_token, exc)
            return False
        return True

    def focus_room(self, room_id: str) -> bool:
        if self.session is None:
            return False
        room = self.session.room(room_id)
        if room is None:
            return False
        self.sink.focus_room(room)
        self.mark_read(room_id)
        return True

    def show_notification(self, notification_id: Any) -> Optional[str]:
        if self.notifications is None:
            return None
        room_id = self.notifications.resolve(notification_id)
        if room_id is None or not self.focus_room(room_id):
            return None
        return room_id

    def resume(self) -> bool:
        if self.loop is None:
            return False
        return self.loop.resume()
