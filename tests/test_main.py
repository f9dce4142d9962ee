import io
import unittest
from contextlib import redirect_stdout

from roomsync.client.main import ConsoleSink
from roomsync.client.models import RoomState


class ConsoleSinkTests(unittest.TestCase):
    def _render(self, room: RoomState) -> str:
        out = io.StringIO()
        with redirect_stdout(out):
            ConsoleSink().room_updated(room)
        return out.getvalue()

    def test_room_update_shows_current_topic(self):
        room = RoomState("!r1:example.org", name="Ops", topic="deploys")
        self.assertEqual(self._render(room), '* !r1:example.org is now "Ops" (topic: deploys)\n')

    def test_room_update_without_topic(self):
        room = RoomState("!r1:example.org", name="Ops")
        self.assertEqual(self._render(room), '* !r1:example.org is now "Ops" (topic: -)\n')


if __name__ == "__main__":
    unittest.main()
