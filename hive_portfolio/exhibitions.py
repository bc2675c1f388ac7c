from __future__ import annotations

import re
from typing import Iterable, Sequence

from .post import HivePost

DEFAULT_TITLE_KEYWORDS: tuple[str, ...] = ("exposições", "exhibitions", "exibições")

_BR_RE = re.compile(r"\\?<br\s*/?>", re.IGNORECASE)
_DATE_LINE_RE = re.compile(
    r"^(?:#{1,6}\s*)?(\d{2}/\d{2}/\d{4}|\d{1,2}/\d{4}|\d{4}(?:\s*[–-]\s*\d{4})?)\s*$"
)


def matches_title_keywords(post: HivePost, keywords: Sequence[str]) -> bool:
    title = (post.title or "").casefold()
    if not title:
        return False
    return any(k.casefold() in title for k in keywords if k)


def select_exhibition_posts(
    posts: Iterable[HivePost],
    *,
    keywords: Sequence[str] = DEFAULT_TITLE_KEYWORDS,
    fallback_recent: int = 5,
) -> list[HivePost]:
    """
    Posts whose title names an exhibition list.

    When no title matches, the `fallback_recent` newest posts stand in.
    """
    all_posts = list(posts)
    matching = [p for p in all_posts if matches_title_keywords(p, keywords)]
    if matching:
        return matching
    return all_posts[: max(0, fallback_recent)]


def normalize_exhibition_spacing(body: str) -> str:
    """
    Tighten an exhibition list for display.

    Lines of a paragraph become hard line breaks, blank lines separate entries and a
    bare date line (optionally a heading) starts a new entry wrapped in an
    `exhibition-date` span.
    """
    text = (body or "").replace("\r\n", "\n")
    text = _BR_RE.sub("\n", text)

    blocks: list[str] = []
    current: list[str] = []

    def flush() -> None:
        if current:
            blocks.append("  \n".join(current).strip())
            current.clear()

    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            flush()
            continue

        m = _DATE_LINE_RE.match(line)
        if m:
            flush()
            current.append(f'<span class="exhibition-date">{m.group(1)}</span>')
            continue

        current.append(line)
    flush()

    return "\n\n".join(blocks).strip()
