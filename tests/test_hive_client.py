from __future__ import annotations

import unittest
from typing import Any

import requests

from hive_portfolio.errors import HiveError, HiveRPCError
from hive_portfolio.hive_client import BRIDGE_PAGE_LIMIT, HiveClient, normalize_username
from hive_portfolio.retry import RetryEvent, RetryPolicy


class _FakeResponse:
    def __init__(self, payload: Any = None, *, status: int = 200, raw: str | None = None) -> None:
        self._payload = payload
        self.status_code = status
        self._raw = raw

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            response = requests.Response()
            response.status_code = self.status_code
            raise requests.HTTPError(f"{self.status_code} error", response=response)

    def json(self) -> Any:
        if self._raw is not None:
            raise ValueError(f"not json: {self._raw}")
        return self._payload


class _FakeSession:
    """Replays queued responses (or exceptions) and records every POST."""

    def __init__(self, responses: list[Any]) -> None:
        self._responses = list(responses)
        self.posts: list[dict[str, Any]] = []

    def post(self, url: str, *, json: Any = None, timeout: float | None = None) -> _FakeResponse:
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def _ok(result: Any) -> _FakeResponse:
    return _FakeResponse({"jsonrpc": "2.0", "id": 1, "result": result})


def _item(permlink: str, author: str = "artist") -> dict[str, Any]:
    return {"author": author, "permlink": permlink, "title": permlink, "body": "", "json_metadata": "{}"}


def _client(session: _FakeSession, **kw: Any) -> HiveClient:
    kw.setdefault("sleep_fn", lambda _s: None)
    return HiveClient(
        ["https://node-a", "https://node-b"],
        session=session,  # type: ignore[arg-type]
        timeout_seconds=5,
        **kw,
    )


class TestHiveClientCall(unittest.TestCase):
    def test_builds_jsonrpc_request(self) -> None:
        session = _FakeSession([_ok({"x": 1})])
        result = _client(session).call("condenser_api.get_content", ["a", "p"])

        self.assertEqual(result, {"x": 1})
        post = session.posts[0]
        self.assertEqual(post["url"], "https://node-a")
        self.assertEqual(post["timeout"], 5.0)
        self.assertEqual(post["json"]["jsonrpc"], "2.0")
        self.assertEqual(post["json"]["method"], "condenser_api.get_content")
        self.assertEqual(post["json"]["params"], ["a", "p"])

    def test_rotates_nodes_on_retry(self) -> None:
        session = _FakeSession(
            [requests.ConnectionError("down"), _FakeResponse(status=502), _ok([])]
        )
        events: list[RetryEvent] = []
        sleeps: list[float] = []

        result = _client(session, on_retry=events.append, sleep_fn=sleeps.append).call("m", [])

        self.assertEqual(result, [])
        self.assertEqual([p["url"] for p in session.posts], ["https://node-a", "https://node-b", "https://node-a"])
        self.assertEqual([e.reason for e in events], ["network_error", "http_502"])
        self.assertEqual(events[0].operation, "hive.m")
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_raises_hive_error_after_exhaustion(self) -> None:
        session = _FakeSession([requests.Timeout("t")] * 3)
        with self.assertRaises(HiveError):
            _client(session).call("m", [])
        self.assertEqual(len(session.posts), 3)

    def test_rpc_error_not_retried(self) -> None:
        session = _FakeSession([_FakeResponse({"error": {"code": -32602, "message": "bad params"}})])
        with self.assertRaises(HiveRPCError) as ctx:
            _client(session).call("m", [])
        self.assertEqual(ctx.exception.code, -32602)
        self.assertIn("bad params", str(ctx.exception))
        self.assertEqual(len(session.posts), 1)

    def test_invalid_json_wrapped(self) -> None:
        session = _FakeSession([_FakeResponse(raw="<html>")] * 2)
        with self.assertRaises(HiveError):
            _client(session, retry=RetryPolicy(max_attempts=2)).call("m", [])

    def test_requires_urls(self) -> None:
        with self.assertRaises(HiveError):
            HiveClient(["  "])


class TestHiveClientPosts(unittest.TestCase):
    def test_paginates_until_short_page(self) -> None:
        first = [_item(f"p{i}") for i in range(BRIDGE_PAGE_LIMIT)]
        second = [_item(f"p{BRIDGE_PAGE_LIMIT - 1}"), _item("last")]
        session = _FakeSession([_ok(first), _ok(second)])

        posts = _client(session).get_posts_by_author("@Artist", max_posts=100)

        self.assertEqual(len(posts), BRIDGE_PAGE_LIMIT + 1)
        self.assertEqual(posts[-1].permlink, "last")
        params = [p["json"]["params"] for p in session.posts]
        self.assertEqual(params[0], {"sort": "posts", "account": "artist", "limit": BRIDGE_PAGE_LIMIT})
        self.assertEqual(params[1]["start_author"], "artist")
        self.assertEqual(params[1]["start_permlink"], f"p{BRIDGE_PAGE_LIMIT - 1}")

    def test_respects_max_posts(self) -> None:
        session = _FakeSession([_ok([_item(f"p{i}") for i in range(BRIDGE_PAGE_LIMIT)])])
        posts = _client(session).get_posts_by_blog("artist", max_posts=3)

        self.assertEqual([p.permlink for p in posts], ["p0", "p1", "p2"])
        self.assertEqual(session.posts[0]["json"]["params"]["sort"], "blog")

    def test_empty_username_rejected(self) -> None:
        with self.assertRaises(HiveError):
            _client(_FakeSession([])).get_posts_by_author(" @ ")

    def test_user_account(self) -> None:
        session = _FakeSession([_ok([{"name": "artist"}]), _ok([])])
        client = _client(session)

        self.assertEqual(client.get_user_account("artist"), {"name": "artist"})
        self.assertIsNone(client.get_user_account("ghost"))
        self.assertEqual(session.posts[0]["json"]["params"], [["artist"]])

    def test_get_content_missing_post(self) -> None:
        session = _FakeSession([_ok({"author": "", "permlink": ""}), _ok(_item("p"))])
        client = _client(session)

        self.assertIsNone(client.get_content("artist", "gone"))
        content = client.get_content("artist", "p")
        self.assertIsNotNone(content)
        assert content is not None
        self.assertEqual(content["permlink"], "p")

    def test_normalize_username(self) -> None:
        self.assertEqual(normalize_username(" @Artist "), "artist")
        self.assertEqual(normalize_username(""), "")


if __name__ == "__main__":
    unittest.main()
