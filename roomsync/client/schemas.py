"""Pydantic schemas for server response bodies."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..shared.dto import Credentials, Event, InitialSyncResult, PollResult, RoomSnapshot


class LoginResponse(BaseModel):
    access_token: str
    user_id: str
    home_server: Optional[str] = None

    def to_dto(self, server: str) -> Credentials:
        return Credentials(user_id=self.user_id, server=server, access_token=self.access_token)


class EventOut(BaseModel):
    type: str
    event_id: Optional[str] = None
    room_id: Optional[str] = None
    sender: Optional[str] = None
    user_id: Optional[str] = None
    origin_server_ts: int = 0
    age: Optional[int] = None
    state_key: Optional[str] = None
    content: Dict[str, Any] = Field(default_factory=dict)
    unsigned: Dict[str, Any] = Field(default_factory=dict)

    def to_dto(self, room_id: Optional[str] = None) -> Event:
        return Event.from_dict(self.model_dump(exclude_none=True), room_id=room_id)


class MessagesChunk(BaseModel):
    chunk: List[EventOut] = Field(default_factory=list)
    start: Optional[str] = None
    end: Optional[str] = None


class RoomOut(BaseModel):
    room_id: str
    membership: str = "join"
    state: List[EventOut] = Field(default_factory=list)
    messages: MessagesChunk = Field(default_factory=MessagesChunk)

    def to_dto(self) -> RoomSnapshot:
        return RoomSnapshot(
            room_id=self.room_id,
            membership=self.membership,
            state=[e.to_dto(self.room_id) for e in self.state],
            messages=[e.to_dto(self.room_id) for e in self.messages.chunk],
            prev_batch=self.messages.start,
        )


class InitialSyncResponse(BaseModel):
    end: Optional[str] = None
    rooms: List[RoomOut] = Field(default_factory=list)
    presence: List[EventOut] = Field(default_factory=list)

    def to_dto(self) -> InitialSyncResult:
        return InitialSyncResult(
            rooms=[room.to_dto() for room in self.rooms],
            cursor=self.end,
            presence=[e.to_dto() for e in self.presence],
        )


class EventsResponse(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    chunk: List[EventOut] = Field(default_factory=list)

    def to_dto(self) -> PollResult:
        return PollResult(events=[e.to_dto() for e in self.chunk], cursor=self.end)


class SendResponse(BaseModel):
    event_id: str
