import unittest
from unittest import mock

import requests

from roomsync.client.api import APIClient
from roomsync.client.errors import AuthError, ErrorKind, TransportError, classify_error


class DummyResponse:
    def __init__(self, payload=None, status_code: int = 200, body_error: Exception = None):
        self._payload = payload if payload is not None else {}
        self.status_code = status_code
        self._body_error = body_error

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        if self._body_error is not None:
            raise self._body_error
        return self._payload


class APIClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = APIClient("https://example.org/", access_token="tok", poll_timeout_margin=5)
        patcher = mock.patch.object(self.client.http, "request")
        self.request = patcher.start()
        self.addCleanup(patcher.stop)

    def test_poll_sends_cursor_and_parses_events(self):
        self.request.return_value = DummyResponse(
            {
                "start": "T0",
                "end": "T1",
                "chunk": [
                    {
                        "type": "m.room.message",
                        "event_id": "$e1",
                        "room_id": "!r:example.org",
                        "sender": "@bob:example.org",
                        "origin_server_ts": 1000,
                        "age": 200,
                        "content": {"body": "hi", "msgtype": "m.text"},
                    }
                ],
            }
        )
        result = self.client.poll("T0", 30000)

        method, url = self.request.call_args.args
        kwargs = self.request.call_args.kwargs
        self.assertEqual(method, "GET")
        self.assertEqual(url, "https://example.org/_matrix/client/r0/events")
        self.assertEqual(kwargs["params"], {"timeout": 30000, "from": "T0"})
        self.assertEqual(kwargs["timeout"], 35.0)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        self.assertEqual(result.cursor, "T1")
        self.assertEqual(result.events[0].event_id, "$e1")
        self.assertEqual(result.events[0].timestamp, 0.8)

    def test_initial_sync_builds_snapshots(self):
        self.request.return_value = DummyResponse(
            {
                "end": "T0",
                "rooms": [
                    {
                        "room_id": "!r:example.org",
                        "membership": "join",
                        "state": [
                            {
                                "type": "m.room.member",
                                "event_id": "$m",
                                "state_key": "@me:example.org",
                                "content": {"membership": "join"},
                            }
                        ],
                        "messages": {"start": "P0", "end": "T0", "chunk": []},
                    }
                ],
                "presence": [],
            }
        )
        result = self.client.initial_sync(20)
        self.assertEqual(self.request.call_args.kwargs["params"], {"limit": 20})
        self.assertEqual(result.cursor, "T0")
        snapshot = result.rooms[0]
        self.assertEqual(snapshot.prev_batch, "P0")
        self.assertEqual(snapshot.state[0].room_id, "!r:example.org")

    def test_send_message_quotes_room_and_uses_txn_id(self):
        self.request.return_value = DummyResponse({"event_id": "$new"})
        self.assertEqual(self.client.send_message("!r:example.org", "hello", 7), "$new")
        method, url = self.request.call_args.args
        self.assertEqual(method, "PUT")
        self.assertTrue(url.endswith("/rooms/%21r%3Aexample.org/send/m.room.message/7"))
        self.assertEqual(self.request.call_args.kwargs["json"], {"msgtype": "m.text", "body": "hello"})

    def test_login_rejected_raises_auth_error(self):
        self.request.return_value = DummyResponse({"errcode": "M_FORBIDDEN"}, status_code=403)
        with self.assertRaises(AuthError):
            self.client.login("alice", "wrong")

    def test_login_stores_token(self):
        client = APIClient("https://example.org")
        with mock.patch.object(client.http, "request", return_value=DummyResponse({"access_token": "new", "user_id": "@alice:example.org"})):
            creds = client.login("alice", "pw")
        self.assertEqual(creds.access_token, "new")
        self.assertEqual(creds.server, "https://example.org")
        self.assertEqual(client.access_token, "new")

    def test_server_errors_are_transient(self):
        self.request.return_value = DummyResponse(status_code=502)
        with self.assertRaises(TransportError) as ctx:
            self.client.poll("T0", 1000)
        self.assertIs(ctx.exception.kind, ErrorKind.TRANSIENT)
        self.assertEqual(ctx.exception.status, 502)

    def test_malformed_body_is_transient(self):
        self.request.return_value = DummyResponse(body_error=ValueError("Expecting value"))
        with self.assertRaises(TransportError) as ctx:
            self.client.poll("T0", 1000)
        self.assertIs(ctx.exception.kind, ErrorKind.TRANSIENT)

        self.request.return_value = DummyResponse({"chunk": "nope"})
        with self.assertRaises(TransportError) as ctx:
            self.client.poll("T0", 1000)
        self.assertIs(ctx.exception.kind, ErrorKind.TRANSIENT)

    def test_tls_failure_is_classified(self):
        self.request.side_effect = requests.exceptions.SSLError("certificate verify failed")
        with self.assertRaises(TransportError) as ctx:
            self.client.poll("T0", 1000)
        self.assertIs(ctx.exception.kind, ErrorKind.TLS)


class ClassifyErrorTests(unittest.TestCase):
    def test_classification_table(self):
        def http_error(status):
            return requests.exceptions.HTTPError(response=DummyResponse(status_code=status))

        cases = [
            (requests.exceptions.ConnectTimeout(), ErrorKind.TRANSIENT),
            (requests.exceptions.ReadTimeout(), ErrorKind.TRANSIENT),
            (requests.exceptions.ConnectionError(), ErrorKind.TRANSIENT),
            (requests.exceptions.ChunkedEncodingError(), ErrorKind.TRANSIENT),
            (requests.exceptions.SSLError(), ErrorKind.TLS),
            (http_error(401), ErrorKind.AUTH),
            (http_error(429), ErrorKind.TRANSIENT),
            (http_error(503), ErrorKind.TRANSIENT),
            (http_error(404), ErrorKind.FATAL),
            (ValueError("bad json"), ErrorKind.TRANSIENT),
            (RuntimeError("bug"), ErrorKind.FATAL),
        ]
        for exc, kind in cases:
            with self.subTest(exc=exc):
                self.assertIs(classify_error(exc), kind)


if __name__ == "__main__":
    unittest.main()
