"""Long-poll sync loop driving a session against the server event stream."""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .dispatcher import DispatchContext, EventDispatcher
from .errors import ErrorKind, TransportError, wrap_error
from .session import Session

logger = logging.getLogger(__name__)

DEFAULT_POLL_TIMEOUT_MS = 30000


class SyncState(str, Enum):
    INITIAL_SYNC = "initial_sync"
    LIVE_POLL = "live_poll"
    RETRY_WAIT = "retry_wait"
    STOPPED = "stopped"


class _Cancelled(Exception):
    """Raised internally when a disconnect interrupts a pending call."""


class SyncLoop:
    """Sequential state machine: one outstanding poll at a time, one pending resume at most.

    ``_wakeup`` is the cancellation token. It is set when a poll completes and
    when the session disconnects, so a disconnect interrupts both the retry
    timer and the wait on an in-flight long-poll.
    """

    def __init__(
        self,
        session: Session,
        transport: Any,
        dispatcher: EventDispatcher,
        ctx: DispatchContext,
        poll_timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS,
        initial_sync_limit: int = 20,
    ):
        self.session = session
        self.transport = transport
        self.dispatcher = dispatcher
        self.ctx = ctx
        self.poll_timeout_ms = poll_timeout_ms
        self.initial_sync_limit = initial_sync_limit
        self.state = SyncState.INITIAL_SYNC
        self.last_error: Optional[TransportError] = None
        self._wakeup = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def retry_delay_ms(self) -> float:
        return self.poll_timeout_ms / 2

    def initial_sync(self) -> SyncState:
        """Fetch the snapshot and pre-populate every room; errors propagate to the caller."""
        result = self.transport.initial_sync(self.initial_sync_limit)
        with self.ctx.bulk_mode():
            for snapshot in result.rooms:
                room, created = self.session.ensure_room(snapshot.room_id)
                room.prev_batch = snapshot.prev_batch
                if created:
                    self.ctx.sink.room_created(room)
                for event in snapshot.state + snapshot.messages:
                    self.dispatcher.dispatch(self.ctx, room, event)
            for event in result.presence:
                self.dispatcher.dispatch(self.ctx, None, event)
        self.session.end_token = result.cursor
        self.state = SyncState.LIVE_POLL
        logger.info("INITIAL_SYNC_DONE rooms=%s cursor=%s", len(result.rooms), result.cursor)
        return self.state

    def poll_once(self) -> SyncState:
        if self.session.disconnected:
            return self._stop("disconnected")
        cursor = self.session.end_token
        try:
            result = self._call(self.transport.poll, cursor, self.poll_timeout_ms)
        except _Cancelled:
            return self._stop("disconnected")
        except Exception as exc:  # noqa: BLE001
            return self._fail(wrap_error(exc), cursor)
        for event in result.events:
            if self.session.disconnected:
                return self._stop("disconnected")
            self.dispatcher.dispatch_event(self.ctx, event)
        if result.cursor:
            self.session.end_token = result.cursor
        self.last_error = None
        self.state = SyncState.LIVE_POLL
        return self.state

    def wait_retry(self) -> SyncState:
        self._wakeup.clear()
        if self.session.disconnected:
            return self._stop("disconnected")
        self._sleep(self.retry_delay_ms / 1000.0)
        if self.session.disconnected:
            return self._stop("disconnected")
        logger.info("POLL_RESUME cursor=%s", self.session.end_token)
        self.state = SyncState.LIVE_POLL
        return self.state

    def run(self) -> None:
        while self.state is not SyncState.STOPPED:
            try:
                if self.state is SyncState.INITIAL_SYNC:
                    self.initial_sync()
                elif self.state is SyncState.LIVE_POLL:
                    self.poll_once()
                else:
                    self.wait_retry()
            except Exception as exc:  # noqa: BLE001
                logger.exception("SYNC_FATAL state=%s", self.state.value)
                self.last_error = TransportError(ErrorKind.FATAL, str(exc) or exc.__class__.__name__)
                self.ctx.sink.status(f"Sync stopped: {exc}")
                self._stop("fatal")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self.run, name="roomsync-sync", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self.session.disconnected = True
        self._wakeup.set()
        self.state = SyncState.STOPPED
        logger.info("SYNC_STOP_REQUESTED user=%s", self.session.user_id)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop thread; returns False if it is still running."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def resume(self) -> bool:
        """Restart a stopped loop from the last known-good cursor."""
        if self.state is not SyncState.STOPPED or self.session.disconnected:
            return False
        self.state = SyncState.LIVE_POLL
        self.start()
        return True

    def _sleep(self, seconds: float) -> None:
        self._wakeup.wait(seconds)

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        # The request runs on a daemon thread so a disconnect can abandon it
        # without waiting for the poll timeout; a late result is discarded.
        outcome: Dict[str, Any] = {}
        self._wakeup.clear()
        if self.session.disconnected:
            raise _Cancelled()

        def target() -> None:
            try:
                outcome["result"] = fn(*args)
            except BaseException as exc:  # noqa: BLE001
                outcome["error"] = exc
            finally:
                self._wakeup.set()

        threading.Thread(target=target, name="roomsync-poll", daemon=True).start()
        self._wakeup.wait()
        if self.session.disconnected:
            raise _Cancelled()
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    def _fail(self, exc: TransportError, cursor: Optional[str]) -> SyncState:
        self.last_error = exc
        if exc.kind is ErrorKind.TRANSIENT:
            logger.info(
                "POLL_RETRY cursor=%s delay_ms=%s reason=%s", cursor, self.retry_delay_ms, exc.detail
            )
            self.ctx.sink.status(
                f"Connection problem ({exc.detail}); retrying in {self.retry_delay_ms / 1000.0:g}s"
            )
            self.state = SyncState.RETRY_WAIT
            return self.state
        if exc.kind is ErrorKind.TLS:
            logger.error("POLL_TLS_FAIL server=%s reason=%s", self.session.server, exc.detail)
            self.ctx.sink.status(
                f"TLS certificate validation failed for {self.session.server}; "
                "check the server certificate and reconnect manually"
            )
        else:
            logger.error("POLL_FAIL kind=%s status=%s reason=%s", exc.kind.value, exc.status, exc.detail)
            self.ctx.sink.status(f"Sync stopped ({exc.kind.value}): {exc.detail}")
        return self._stop(exc.kind.value)

    def _stop(self, reason: str) -> SyncState:
        if self.state is not SyncState.STOPPED:
            logger.info("SYNC_STOPPED reason=%s", reason)
        self.state = SyncState.STOPPED
        return self.state
