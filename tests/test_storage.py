import json
import os
import stat
import tempfile
import unittest
from pathlib import Path

from roomsync.client.storage import CredentialStore
from roomsync.shared.dto import Credentials


class CredentialStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.path = Path(self.tmpdir.name) / "nested" / "creds.json"
        self.store = CredentialStore(self.path)
        self.creds = Credentials(user_id="@alice:example.org", server="https://example.org", access_token="secret", txn_id=4)

    def test_missing_file_is_not_found(self):
        self.assertIsNone(self.store.load())

    def test_save_then_load(self):
        self.store.save(self.creds)
        self.assertEqual(self.store.load(), self.creds)
        with self.path.open(encoding="utf-8") as f:
            self.assertEqual(json.load(f)["version"], 1)

    @unittest.skipIf(os.name == "nt", "POSIX permissions")
    def test_file_is_owner_only(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{}")
        os.chmod(self.path, 0o644)
        self.store.save(self.creds)
        self.assertEqual(stat.S_IMODE(self.path.stat().st_mode), 0o600)

    def test_corrupt_file_is_not_found(self):
        self.path.parent.mkdir(parents=True)
        for content in ("not json", "[]", "\"token\"", "{\"username\": \"@a:x\"}"):
            with self.subTest(content=content):
                self.path.write_text(content)
                self.assertIsNone(self.store.load())

    def test_clear_removes_file_and_tolerates_missing(self):
        self.store.save(self.creds)
        self.store.clear()
        self.assertFalse(self.path.exists())
        self.store.clear()


if __name__ == "__main__":
    unittest.main()
