from __future__ import annotations

import dataclasses
from typing import Any, Callable, Mapping

from .media import EventLogger, extract_images_from_markdown
from .metadata import parse_metadata
from .post import DisplayRecord, HiveMetadata

HIVE_IMAGES_HOST = "images.hive.blog"
PINATA_TOKEN_PARAM = "pinataGatewayToken"

METADATA_THUMBNAIL_KEYS: tuple[str, ...] = ("thumbnail", "thumbnailSrc", "thumbnail_url")

# One historical post references an image hash that no longer resolves anywhere.
LEGACY_BROKEN_HASH = "DQmTgsmbnbqwmTCkRk54nu9bvkcNFVfa2v83rPQkzq9Mb7q"
LEGACY_FALLBACK_URL = f"https://{HIVE_IMAGES_HOST}/{LEGACY_BROKEN_HASH}/prt_1313385051.jpg"

FetchContentFn = Callable[[str, str], "Mapping[str, Any] | None"]


def clean_thumbnail_url(url: str) -> str:
    """
    Strip stray quote characters from gateway URLs.

    Pinata gateway URLs keep their query (the gateway token is required); Hive image
    proxy URLs are trimmed too. Other URLs are returned unchanged.
    """
    if not url:
        return ""
    if PINATA_TOKEN_PARAM in url or HIVE_IMAGES_HOST in url:
        return url.strip().replace('"', "").replace("'", "")
    return url


def is_usable_thumbnail(url: str | None) -> bool:
    if not url:
        return False
    return url.startswith("http") or url.startswith("/") or url.startswith("data:")


def resolve_thumbnail(
    *,
    thumbnail_src: str | None = None,
    media_url: str | None = None,
    hive_metadata: HiveMetadata | None = None,
    logger: EventLogger | None = None,
) -> str | None:
    """
    Pick one representative thumbnail.

    First hit wins:
    1. a pre-set absolute, root-relative or data: thumbnail
    2. metadata thumbnail / thumbnailSrc / thumbnail_url
    3. metadata image[0]
    4. the first markdown image of the body
    5. the media URL itself when served by the Hive image proxy
    6. the fixed replacement for the one known-broken legacy image
    """
    if thumbnail_src and is_usable_thumbnail(thumbnail_src):
        return clean_thumbnail_url(thumbnail_src)

    body = ""
    if hive_metadata is not None:
        body = hive_metadata.body or ""
        meta = parse_metadata(hive_metadata.json_metadata)
        if not meta.ok and logger is not None:
            logger.warning(
                "metadata_parse_failed",
                author=hive_metadata.author,
                permlink=hive_metadata.permlink,
                error=meta.error,
            )

        for key in METADATA_THUMBNAIL_KEYS:
            value = meta.get_str(key)
            if value:
                return clean_thumbnail_url(value)

        images = meta.get_list("image")
        if images and images[0].strip():
            return clean_thumbnail_url(images[0])

        body_images = extract_images_from_markdown(body)
        if body_images:
            return body_images[0]

    src = media_url or ""
    if HIVE_IMAGES_HOST in src:
        return clean_thumbnail_url(src)

    if LEGACY_BROKEN_HASH in src or LEGACY_BROKEN_HASH in body:
        return LEGACY_FALLBACK_URL

    return None


def resolve_record_thumbnail(
    record: DisplayRecord, *, logger: EventLogger | None = None
) -> DisplayRecord:
    resolved = resolve_thumbnail(
        thumbnail_src=record.thumbnail_src,
        media_url=record.src,
        hive_metadata=record.hive_metadata,
        logger=logger,
    )
    if resolved == record.thumbnail_src:
        return record
    return dataclasses.replace(record, thumbnail_src=resolved)


def refresh_thumbnail(
    record: DisplayRecord,
    fetch_content: FetchContentFn,
    *,
    logger: EventLogger | None = None,
) -> str | None:
    """
    Re-resolve a thumbnail from the live post, for posts edited after the first fetch.

    Returns the live thumbnail, or None when the post is gone or offers nothing; the
    caller keeps its current value in that case.
    """
    live = fetch_content(record.author, record.permlink)
    if not live:
        return None

    body = live.get("body")
    metadata = HiveMetadata(
        author=record.author,
        permlink=record.permlink,
        body=body if isinstance(body, str) else "",
        json_metadata=live.get("json_metadata") or "",
    )
    return resolve_thumbnail(media_url=record.src, hive_metadata=metadata, logger=logger)
