from __future__ import annotations

import itertools
from typing import Any, Mapping, Sequence

import requests

from .errors import HiveError, HiveRPCError
from .hive_retry import is_retryable_hive_exception
from .normalize import hive_posts_from_items
from .post import HivePost
from .retry import OnRetryFn, RetryPolicy, SleepFn, call_with_retries

DEFAULT_API_URLS: tuple[str, ...] = ("https://api.hive.blog", "https://api.deathwing.me")

# bridge.get_account_posts refuses larger pages.
BRIDGE_PAGE_LIMIT = 20

_DEFAULT_HIVE_RETRY = RetryPolicy(max_attempts=3, base_delay_seconds=1.0, max_delay_seconds=10.0)


def normalize_username(value: str) -> str:
    name = (value or "").strip()
    if name.startswith("@"):
        name = name[1:].strip()
    return name.lower()


class HiveClient:
    """
    Minimal JSON-RPC client for Hive API nodes.

    Every call goes through the retry policy; attempt n is sent to node n (mod the node
    list), so a dead node costs one backoff step rather than the whole call.
    """

    def __init__(
        self,
        api_urls: Sequence[str] = DEFAULT_API_URLS,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = 15.0,
        retry: RetryPolicy | None = None,
        on_retry: OnRetryFn | None = None,
        sleep_fn: SleepFn | None = None,
    ) -> None:
        urls = [u.strip() for u in api_urls if (u or "").strip()]
        if not urls:
            raise HiveError("At least one Hive API URL is required")

        self._urls = urls
        self._session = session or requests.Session()
        self._timeout = float(timeout_seconds)
        self._retry = retry or _DEFAULT_HIVE_RETRY
        self._on_retry = on_retry
        self._sleep_fn = sleep_fn
        self._ids = itertools.count(1)

    @property
    def api_urls(self) -> list[str]:
        return list(self._urls)

    def call(self, method: str, params: Any) -> Any:
        """Send one JSON-RPC request and return its `result`."""

        def _attempt(attempt: int) -> Any:
            url = self._urls[(attempt - 1) % len(self._urls)]
            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": next(self._ids),
            }
            response = self._session.post(url, json=payload, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, Mapping):
                raise HiveError(f"Unexpected response shape from {url}: {type(data).__name__}")

            error = data.get("error")
            if error:
                code = error.get("code") if isinstance(error, Mapping) else None
                message = error.get("message") if isinstance(error, Mapping) else str(error)
                raise HiveRPCError(
                    f"{method} failed on {url}: {message}",
                    code=code if isinstance(code, int) else None,
                )
            return data.get("result")

        try:
            return call_with_retries(
                _attempt,
                policy=self._retry,
                is_retryable=is_retryable_hive_exception,
                operation=f"hive.{method}",
                on_retry=self._on_retry,
                sleep_fn=self._sleep_fn,
            )
        except HiveError:
            raise
        except requests.RequestException as e:
            raise HiveError(f"Hive API call failed ({method}): {e}") from e
        except ValueError as e:
            raise HiveError(f"Hive API returned invalid JSON ({method}): {e}") from e

    def _account_posts(self, username: str, *, sort: str, max_posts: int) -> list[HivePost]:
        account = normalize_username(username)
        if not account:
            raise HiveError("username must be a non-empty string")
        if max_posts < 1:
            return []

        posts: list[HivePost] = []
        seen: set[tuple[str, str]] = set()
        start: tuple[str, str] | None = None

        while len(posts) < max_posts:
            params: dict[str, Any] = {
                "sort": sort,
                "account": account,
                "limit": BRIDGE_PAGE_LIMIT,
            }
            if start is not None:
                params["start_author"], params["start_permlink"] = start

            page = self.call("bridge.get_account_posts", params)
            batch = hive_posts_from_items(page)
            fresh = [p for p in batch if (p.author, p.permlink) not in seen]
            if not fresh:
                break

            for post in fresh:
                seen.add((post.author, post.permlink))
                posts.append(post)

            if len(page or []) < BRIDGE_PAGE_LIMIT:
                break
            start = (batch[-1].author, batch[-1].permlink)

        return posts[:max_posts]

    def get_posts_by_author(self, username: str, *, max_posts: int = 100) -> list[HivePost]:
        """Top-level posts authored by the account, newest first."""
        return self._account_posts(username, sort="posts", max_posts=max_posts)

    def get_posts_by_blog(self, username: str, *, max_posts: int = 100) -> list[HivePost]:
        """The account's blog feed (own posts and reblogs), newest first."""
        return self._account_posts(username, sort="blog", max_posts=max_posts)

    def get_user_account(self, username: str) -> dict[str, Any] | None:
        account = normalize_username(username)
        if not account:
            return None
        result = self.call("condenser_api.get_accounts", [[account]])
        if isinstance(result, list) and result and isinstance(result[0], Mapping):
            return dict(result[0])
        return None

    def get_content(self, author: str, permlink: str) -> dict[str, Any] | None:
        """Live post content; None for a post that does not exist."""
        a = normalize_username(author)
        p = (permlink or "").strip()
        if not a or not p:
            return None
        result = self.call("condenser_api.get_content", [a, p])
        if not isinstance(result, Mapping):
            return None
        # Missing posts come back as an empty shell with a blank author.
        if not (result.get("author") or "").strip():
            return None
        return dict(result)
