"""HTTP API client for interacting with the messaging home server."""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from ..shared.dto import Credentials, InitialSyncResult, PollResult
from . import schemas
from .errors import AuthError, ErrorKind, TransportError, wrap_error

API_PREFIX = "/_matrix/client/r0"

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class APIClient:
    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        verify_tls: bool = True,
        timeout: float = 10,
        poll_timeout_margin: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.poll_timeout_margin = poll_timeout_margin
        self.http = requests.Session()
        self.http.verify = verify_tls

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _request(self, method: str, path: str, timeout: Optional[float] = None, **kwargs: Any) -> Dict[str, Any]:
        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{API_PREFIX}{path}",
                headers=self._headers(),
                timeout=timeout or self.timeout,
                **kwargs,
            )
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.RequestException as exc:
            raise wrap_error(exc) from exc
        except ValueError as exc:
            raise TransportError(ErrorKind.TRANSIENT, f"Malformed response body: {exc}") from exc

    def login(self, user: str, password: str) -> Credentials:
        payload = {"type": "m.login.password", "user": user, "password": password}
        try:
            data = self._request("POST", "/login", json=payload)
        except TransportError as exc:
            if exc.kind is ErrorKind.AUTH:
                raise AuthError(f"Login rejected for {user}") from exc
            raise
        creds = self._parse(schemas.LoginResponse, data).to_dto(self.base_url)
        self.access_token = creds.access_token
        logger.info("LOGIN_SUCCESS user=%s", creds.user_id)
        return creds

    def logout(self) -> None:
        self._request("POST", "/logout", json={})
        self.access_token = None

    def initial_sync(self, limit: int) -> InitialSyncResult:
        data = self._request("GET", "/initialSync", params={"limit": limit})
        return self._parse(schemas.InitialSyncResponse, data).to_dto()

    def poll(self, cursor: Optional[str], timeout_ms: int) -> PollResult:
        params: Dict[str, Any] = {"timeout": timeout_ms}
        if cursor:
            params["from"] = cursor
        data = self._request(
            "GET",
            "/events",
            timeout=timeout_ms / 1000.0 + self.poll_timeout_margin,
            params=params,
        )
        return self._parse(schemas.EventsResponse, data).to_dto()

    def send_message(self, room_id: str, body: str, txn_id: int) -> str:
        path = f"/rooms/{_segment(room_id)}/send/m.room.message/{txn_id}"
        data = self._request("PUT", path, json={"msgtype": "m.text", "body": body})
        return self._parse(schemas.SendResponse, data).event_id

    def mark_read(self, room_id: str, event_id: str) -> None:
        path = f"/rooms/{_segment(room_id)}/receipt/m.read/{_segment(event_id)}"
        self._request("POST", path, json={})

    def close(self) -> None:
        self.http.close()

    @staticmethod
    def _parse(model, data: Dict[str, Any]):
        try:
            return model(**data)
        except (TypeError, ValueError) as exc:
            raise TransportError(ErrorKind.TRANSIENT, f"Malformed response body: {exc}") from exc
