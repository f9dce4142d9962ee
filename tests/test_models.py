import unittest

from roomsync.client.models import RoomState
from roomsync.client.session import Session


class RoomStateTests(unittest.TestCase):
    def test_membership_keeps_display_name_across_updates(self):
        room = RoomState("!r:x")
        room.set_membership("@bob:x", "join", "Bob")
        room.set_membership("@bob:x", "leave")
        self.assertEqual(room.members["@bob:x"].membership, "leave")
        self.assertEqual(room.display_name("@bob:x"), "Bob")
        self.assertEqual(room.display_name("@carol:x"), "@carol:x")
        self.assertEqual(room.joined_members(), [])

    def test_label_fallbacks(self):
        room = RoomState("!r:x")
        self.assertEqual(room.label(), "!r:x")
        room.set_membership("@me:x", "join")
        room.set_membership("@bob:x", "join", "Bob")
        room.set_membership("@amy:x", "join", "Amy")
        self.assertEqual(room.label("@me:x"), "Amy, Bob")
        room.canonical_alias = "#ops:x"
        self.assertEqual(room.label("@me:x"), "#ops:x")
        room.name = "Operations"
        self.assertEqual(room.label("@me:x"), "Operations")

    def test_advance_ignores_missing_id(self):
        room = RoomState("!r:x")
        room.advance("$1")
        room.advance(None)
        self.assertEqual(room.end_token, "$1")


class SessionTests(unittest.TestCase):
    def test_txn_counter_is_monotonic(self):
        session = Session("@me:x", "https://x", "tok", txn_id=5)
        self.assertEqual([session.next_txn_id() for _ in range(3)], [6, 7, 8])
        self.assertEqual(session.credentials().txn_id, 8)

    def test_ensure_room_creates_once_and_release_clears(self):
        session = Session("@me:x", "https://x", "tok")
        room, created = session.ensure_room("!r:x")
        again, created_again = session.ensure_room("!r:x")
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertIs(room, again)
        session.presence["@bob:x"] = "online"
        session.release()
        self.assertEqual(session.rooms, {})
        self.assertEqual(session.presence, {})


if __name__ == "__main__":
    unittest.main()
