"""Console client for following rooms of the active session."""
import getpass
import sys
from typing import Optional, Tuple

from ..shared.dto import Event
from ..shared.utils import format_date, format_time
from .app import ClientController
from .config import get_settings
from .dispatcher import RenderSink
from .errors import RoomSyncError
from .logging_config import configure_logging
from .models import RoomState


class ConsoleSink(RenderSink):
    """Prints room activity; tracks which room is in the foreground."""

    def __init__(self) -> None:
        self.current_room: Optional[str] = None

    def is_visible(self, room_id: str) -> bool:
        return room_id == self.current_room

    def room_created(self, room: RoomState) -> None:
        print(f"* joined {room.room_id}")

    def room_updated(self, room: RoomState) -> None:
        print(f"* {room.room_id} is now \"{room.label()}\" (topic: {room.topic or '-'})")

    def membership_changed(self, room: RoomState, user_id: str, membership: str) -> None:
        print(f"* [{room.label()}] {room.display_name(user_id)} -> {membership}")

    def presence_changed(self, user_id: str, presence: str) -> None:
        print(f"* {user_id} is {presence}")

    def typing_changed(self, room: RoomState) -> None:
        if room.room_id == self.current_room and room.typing:
            names = ", ".join(sorted(room.display_name(u) for u in room.typing))
            print(f"* {names} typing...")

    def message_appended(self, room: RoomState, event: Event, timestamp: float, new_day: bool) -> None:
        if new_day:
            print(f"--- {format_date(timestamp)} ---")
        body = event.content.get("body", "")
        print(f"[{format_time(timestamp)}] [{room.label()}] {room.display_name(event.sender)}: {body}")

    def focus_room(self, room: RoomState) -> None:
        self.current_room = room.room_id
        print(f"=== {room.label()} ({room.room_id}) ===")
        if room.topic:
            print(f"Topic: {room.topic}")

    def status(self, message: str) -> None:
        print(f"! {message}")


def prompt_credentials() -> Tuple[str, str, str]:
    settings = get_settings()
    server = input(f"Server URL [{settings.homeserver_url}]: ").strip() or settings.homeserver_url
    user = input("User: ").strip()
    password = getpass.getpass("Password: ")
    return user, password, server


def main() -> None:
    print("roomsync console client")
    configure_logging()
    sink = ConsoleSink()
    client = ClientController(sink=sink, is_visible=sink.is_visible, credential_prompt=prompt_credentials)
    try:
        client.login()
    except RoomSyncError as exc:
        print(f"Login failed: {exc}")
        sys.exit(1)

    print("Commands: /rooms, /view <room_id>, /resume, /logout, /quit; other lines go to the current room")
    while client.session is not None:
        try:
            line = input("> ").strip()
        except EOFError:
            line = "/quit"
        if not line:
            continue
        if line == "/quit":
            client.disconnect()
            break
        if line == "/logout":
            client.disconnect(logout=True)
            break
        if line == "/rooms":
            for room in client.session.rooms.values():
                print(f"- {room.room_id}: {room.label(client.session.user_id)}")
            continue
        if line == "/resume":
            if not client.resume():
                print("Sync is already running.")
            continue
        if line.startswith("/view "):
            if not client.focus_room(line.split(" ", 1)[1].strip()):
                print("Unknown room.")
            continue
        if sink.current_room is None:
            print("No room selected; use /view <room_id>.")
            continue
        try:
            client.send_message(sink.current_room, line)
        except RoomSyncError as exc:
            print(f"Failed to send message: {exc}")


if __name__ == "__main__":
    main()
