"""Shared data transfer object helpers."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .utils import corrected_timestamp

CREDENTIALS_VERSION = 1


@dataclass(frozen=True)
class Event:
    """Immutable event record as received from the server."""

    type: str
    sender: Optional[str]
    room_id: Optional[str]
    origin_server_ts: int = 0
    age: int = 0
    content: Dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None
    state_key: Optional[str] = None

    @property
    def timestamp(self) -> float:
        return corrected_timestamp(self.origin_server_ts, self.age)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], room_id: Optional[str] = None) -> "Event":
        unsigned = raw.get("unsigned") or {}
        age = raw.get("age", unsigned.get("age", 0)) or 0
        return cls(
            type=raw.get("type", ""),
            sender=raw.get("sender") or raw.get("user_id"),
            room_id=raw.get("room_id") or room_id,
            origin_server_ts=int(raw.get("origin_server_ts") or 0),
            age=int(age),
            content=dict(raw.get("content") or {}),
            event_id=raw.get("event_id"),
            state_key=raw.get("state_key"),
        )


@dataclass
class RoomSnapshot:
    room_id: str
    membership: str = "join"
    state: List[Event] = field(default_factory=list)
    messages: List[Event] = field(default_factory=list)
    prev_batch: Optional[str] = None


@dataclass
class InitialSyncResult:
    rooms: List[RoomSnapshot]
    cursor: Optional[str]
    presence: List[Event] = field(default_factory=list)


@dataclass
class PollResult:
    events: List[Event]
    cursor: Optional[str]


@dataclass
class Credentials:
    user_id: str
    server: str
    access_token: str
    txn_id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": CREDENTIALS_VERSION,
            "username": self.user_id,
            "server": self.server,
            "token": self.access_token,
            "txn-id": self.txn_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credentials":
        if not isinstance(data, dict):
            raise ValueError("Credentials record must be a JSON object")
        version = data.get("version", CREDENTIALS_VERSION)
        if version != CREDENTIALS_VERSION:
            raise ValueError(f"Unsupported credentials version {version}")
        return cls(
            user_id=data["username"],
            server=data["server"],
            access_token=data["token"],
            txn_id=int(data.get("txn-id", 0)),
        )
