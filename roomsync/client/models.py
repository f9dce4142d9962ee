"""Client-side models for room state."""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..shared.dto import Event

JOIN = "join"
INVITE = "invite"
LEAVE = "leave"


@dataclass
class Member:
    user_id: str
    membership: str
    display_name: Optional[str] = None


@dataclass
class RoomState:
    """Live state of one joined conversation."""

    room_id: str
    name: Optional[str] = None
    topic: Optional[str] = None
    canonical_alias: Optional[str] = None
    members: Dict[str, Member] = field(default_factory=dict)
    typing: Set[str] = field(default_factory=set)
    end_token: Optional[str] = None
    prev_batch: Optional[str] = None
    history: List[Event] = field(default_factory=list)

    def set_membership(self, user_id: str, membership: str, display_name: Optional[str] = None) -> Member:
        member = self.members.get(user_id)
        if member is None:
            member = Member(user_id=user_id, membership=membership, display_name=display_name)
            self.members[user_id] = member
        else:
            member.membership = membership
            if display_name is not None:
                member.display_name = display_name
        return member

    def joined_members(self) -> List[Member]:
        return [m for m in self.members.values() if m.membership == JOIN]

    def display_name(self, user_id: Optional[str]) -> str:
        if user_id is None:
            return ""
        member = self.members.get(user_id)
        if member and member.display_name:
            return member.display_name
        return user_id

    def set_typing(self, user_ids: Iterable[str]) -> None:
        self.typing = set(user_ids)

    def advance(self, event_id: Optional[str]) -> None:
        if event_id is not None:
            self.end_token = event_id

    def append(self, event: Event) -> None:
        self.history.append(event)

    def last_timestamp(self) -> Optional[float]:
        if not self.history:
            return None
        return self.history[-1].timestamp

    def label(self, own_user_id: Optional[str] = None) -> str:
        if self.name:
            return self.name
        if self.canonical_alias:
            return self.canonical_alias
        others = sorted(self.display_name(m.user_id) for m in self.joined_members() if m.user_id != own_user_id)
        if others:
            return ", ".join(others)
        return self.room_id
