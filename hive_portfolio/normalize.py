from __future__ import annotations

from typing import Any, Mapping

from .post import HivePost


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_text(value: Any) -> str:
    # Bodies keep their whitespace; only the type is checked.
    return value if isinstance(value, str) else ""


def _coerce_metadata(value: Any) -> str | Mapping[str, Any]:
    if isinstance(value, (str, Mapping)):
        return value
    return ""


def hive_post_from_item(item: Mapping[str, Any]) -> HivePost | None:
    """
    Best-effort conversion of a Hive API discussion object into a HivePost.

    Both `condenser_api` and `bridge` shapes are accepted. Items without an author or
    permlink cannot be addressed and are dropped (None).
    """
    author = _coerce_str(item.get("author"))
    permlink = _coerce_str(item.get("permlink"))
    if not author or not permlink:
        return None

    category = (
        _coerce_str(item.get("category"))
        or _coerce_str(item.get("parent_permlink"))
        or _coerce_str(item.get("community"))
    )

    return HivePost(
        author=author,
        permlink=permlink,
        title=_coerce_text(item.get("title")),
        body=_coerce_text(item.get("body")),
        json_metadata=_coerce_metadata(item.get("json_metadata")),
        created=_coerce_str(item.get("created")),
        last_update=_coerce_str(item.get("last_update")) or _coerce_str(item.get("updated")),
        category=category,
    )


def hive_posts_from_items(items: Any) -> list[HivePost]:
    out: list[HivePost] = []
    if not isinstance(items, list):
        return out
    for item in items:
        if not isinstance(item, Mapping):
            continue
        post = hive_post_from_item(item)
        if post is not None:
            out.append(post)
    return out
