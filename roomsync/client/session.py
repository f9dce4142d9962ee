"""Session state for a logged-in client identity."""
from typing import Dict, Optional, Tuple

from ..shared.dto import Credentials
from .models import RoomState


class Session:
    """Owns credentials, the stream cursor and the known rooms of one identity."""

    def __init__(self, user_id: str, server: str, access_token: str, txn_id: int = 0):
        self.user_id = user_id
        self.server = server
        self.access_token = access_token
        self.txn_id = txn_id
        self.end_token: Optional[str] = None
        self.rooms: Dict[str, RoomState] = {}
        self.presence: Dict[str, str] = {}
        self.disconnected = False

    @classmethod
    def from_credentials(cls, creds: Credentials) -> "Session":
        return cls(creds.user_id, creds.server, creds.access_token, txn_id=creds.txn_id)

    def credentials(self) -> Credentials:
        return Credentials(
            user_id=self.user_id, server=self.server, access_token=self.access_token, txn_id=self.txn_id
        )

    def next_txn_id(self) -> int:
        self.txn_id += 1
        return self.txn_id

    def room(self, room_id: str) -> Optional[RoomState]:
        return self.rooms.get(room_id)

    def ensure_room(self, room_id: str) -> Tuple[RoomState, bool]:
        room = self.rooms.get(room_id)
        if room is not None:
            return room, False
        room = RoomState(room_id=room_id)
        self.rooms[room_id] = room
        return room, True

    def release(self) -> None:
        self.rooms.clear()
        self.presence.clear()

    def __repr__(self) -> str:
        return f"Session(user_id={self.user_id!r}, server={self.server!r}, rooms={len(self.rooms)})"
