from __future__ import annotations

import dataclasses
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Generic, Literal, Protocol, Sequence, TypeVar

from .config_schema import AppConfig
from .errors import HiveError
from .exhibitions import select_exhibition_posts
from .formatter import (
    all_tags,
    extract_and_count_tags,
    filter_records_by_tag,
    format_posts,
    paginate,
    select_record,
)
from .post import DisplayRecord, FormattedPosts, HivePost, TagCount
from .run_log import RunLogger
from .thumbnail import refresh_thumbnail

T = TypeVar("T")

LoadStatus = Literal["success", "empty", "error"]


class PostSource(Protocol):
    def get_posts_by_author(self, username: str, *, max_posts: int = ...) -> list[HivePost]: ...

    def get_posts_by_blog(self, username: str, *, max_posts: int = ...) -> list[HivePost]: ...

    def get_user_account(self, username: str) -> dict[str, Any] | None: ...

    def get_content(self, author: str, permlink: str) -> dict[str, Any] | None: ...


@dataclass(frozen=True)
class LoadState(Generic[T]):
    """
    What the UI shows for a section.

    `empty` means the fetch worked but nothing matched; `error` means the fetch failed
    and `error` holds a user-facing message.
    """

    status: LoadStatus
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "error"


@dataclass(frozen=True)
class ProjectsView:
    formatted: FormattedPosts
    records: Sequence[DisplayRecord]
    page_records: Sequence[DisplayRecord]
    tags: Sequence[TagCount]
    page: int
    tag: str | None = None
    selected: DisplayRecord | None = None
    thumbnails_refreshed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "page": self.page,
            "total_records": len(self.records),
            "selected": self.selected.to_dict() if self.selected else None,
            "tags": [t.to_dict() for t in self.tags],
            "all_tags": all_tags(self.formatted.formatted_posts),
            "records": [r.to_dict() for r in self.page_records],
        }


@dataclass
class ThumbnailRefresher:
    """
    Best-effort background refresh of thumbnails from live post content.

    One fetch per post; results land in a lock-guarded map and the last write wins.
    Failures are logged and leave the original thumbnail in place.
    """

    source: PostSource
    workers: int = 4
    logger: RunLogger | None = None
    _results: dict[tuple[str, str], str] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    def _refresh_one(self, record: DisplayRecord) -> None:
        key = (record.author, record.permlink)
        try:
            thumb = refresh_thumbnail(record, self.source.get_content, logger=self.logger)
        except HiveError as e:
            if self.logger is not None:
                self.logger.warning(
                    "thumbnail_refresh_failed",
                    author=record.author,
                    permlink=record.permlink,
                    error=str(e),
                )
            return

        if not thumb:
            return
        with self._lock:
            self._results[key] = thumb
        if self.logger is not None:
            self.logger.info(
                "thumbnail_refreshed",
                url=thumb,
                author=record.author,
                permlink=record.permlink,
            )

    def refresh(self, records: Sequence[DisplayRecord]) -> dict[tuple[str, str], str]:
        firsts: dict[tuple[str, str], DisplayRecord] = {}
        for record in records:
            firsts.setdefault((record.author, record.permlink), record)
        if not firsts:
            return {}

        with ThreadPoolExecutor(max_workers=max(1, self.workers)) as pool:
            list(pool.map(self._refresh_one, firsts.values()))

        with self._lock:
            return dict(self._results)

    def apply(self, records: Sequence[DisplayRecord]) -> list[DisplayRecord]:
        with self._lock:
            results = dict(self._results)
        out: list[DisplayRecord] = []
        for record in records:
            thumb = results.get((record.author, record.permlink))
            if thumb and thumb != record.thumbnail_src:
                record = dataclasses.replace(record, thumbnail_src=thumb)
            out.append(record)
        return out


def load_projects(
    source: PostSource,
    username: str,
    *,
    cfg: AppConfig,
    logger: RunLogger | None = None,
    tag: str | None = None,
    page: int = 1,
    project: str | None = None,
) -> LoadState[ProjectsView]:
    """
    Fetch, format and page the project grid for one account.

    `tag` and `project` are the current URL query values; they filter the grid and pick
    the initially expanded record.
    """
    try:
        posts = source.get_posts_by_author(username, max_posts=cfg.hive.posts_limit)
    except HiveError as e:
        if logger is not None:
            logger.exception("posts_fetch_failed", exc=e, username=username)
        return LoadState(status="error", error=f"Could not load posts for '{username}'.")

    if logger is not None:
        logger.info("posts_fetched", username=username, posts=len(posts))

    formatted = format_posts(
        posts,
        hidden_tag=cfg.portfolio.hidden_tag,
        ipfs_markers=cfg.media.ipfs_markers,
        logger=logger,
    )
    records = list(formatted.formatted_posts)
    shown = filter_records_by_tag(records, tag)
    page_records = paginate(shown, page=page, page_size=cfg.portfolio.page_size)

    # Only the visible page is refreshed; other pages refresh when they are shown.
    refreshed = 0
    if cfg.portfolio.refresh_thumbnails and page_records:
        refresher = ThumbnailRefresher(
            source, workers=cfg.portfolio.refresh_workers, logger=logger
        )
        refreshed = len(refresher.refresh(page_records))
        records = refresher.apply(records)
        shown = refresher.apply(shown)
        page_records = refresher.apply(page_records)
        formatted = dataclasses.replace(formatted, formatted_posts=tuple(records))

    view = ProjectsView(
        formatted=formatted,
        records=shown,
        page_records=page_records,
        tags=extract_and_count_tags(formatted.original_posts, page_records),
        page=page,
        tag=(tag or "").strip() or None,
        selected=select_record(records, project),
        thumbnails_refreshed=refreshed,
    )

    if logger is not None:
        logger.info(
            "projects_formatted",
            records=len(records),
            shown=len(shown),
            page_records=len(page_records),
            hidden=len(formatted.skipped_hidden),
        )

    return LoadState(status="success" if page_records else "empty", value=view)


def load_exhibitions(
    source: PostSource,
    username: str,
    *,
    cfg: AppConfig,
    logger: RunLogger | None = None,
) -> LoadState[list[HivePost]]:
    try:
        account = source.get_user_account(username)
        if account is None:
            return LoadState(status="error", error=f"Account '{username}' not found on Hive.")
        posts = source.get_posts_by_blog(username, max_posts=cfg.hive.posts_limit)
    except HiveError as e:
        if logger is not None:
            logger.exception("exhibitions_fetch_failed", exc=e, username=username)
        return LoadState(status="error", error="Could not load the account's posts.")

    selected = select_exhibition_posts(
        posts,
        keywords=cfg.exhibitions.title_keywords,
        fallback_recent=cfg.exhibitions.fallback_recent_posts,
    )
    if logger is not None:
        logger.info("exhibitions_selected", posts=len(posts), selected=len(selected))

    return LoadState(status="success" if selected else "empty", value=selected)
