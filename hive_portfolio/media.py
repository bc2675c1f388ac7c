from __future__ import annotations

import re
from typing import Any, Protocol, Sequence
from urllib.parse import urlsplit

from .dedupe import normalize_media_url, unique_urls
from .metadata import MetadataResult, parse_metadata
from .post import ExtractedMedia, HivePost, MediaDescriptor, MediaType

DEFAULT_IPFS_MARKERS: tuple[str, ...] = ("ipfs.skatehive.app/ipfs/",)
DEFAULT_PROXY_BASE = "https://images.hive.blog/0x0/"

VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "ogg", "mov", "m4v"})

MARKDOWN_IMAGE_RE = re.compile(
    r"!\[([^\]]*)\]\(\s*(<[^>]+>|[^)\s]+)(?:\s+[\"'][^\"']*[\"'])?\s*\)"
)
VIDEO_TAG_RE = re.compile(r"<video\b[^>]*?\bsrc=[\"']([^\"'>\s]+)[\"'][^>]*>", re.IGNORECASE)
_IPFS_HASH_RE = re.compile(r"ipfs/([A-Za-z0-9]+)")


class EventLogger(Protocol):
    def warning(self, event: str, *, url: str | None = None, **data: Any) -> None: ...


def _extension(url: str) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url
    tail = path.rsplit("/", 1)[-1]
    if "." not in tail:
        return ""
    return tail.rsplit(".", 1)[-1].casefold()


def is_ipfs_embed(url: str, *, ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS) -> bool:
    return any(marker in (url or "") for marker in ipfs_markers)


def classify_media_url(
    url: str,
    *,
    ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS,
) -> MediaType:
    """IPFS gateway embed -> iframe, video extension -> video, everything else -> photo."""
    if is_ipfs_embed(url, ipfs_markers=ipfs_markers):
        return "iframe"
    if _extension(url) in VIDEO_EXTENSIONS:
        return "video"
    return "photo"


def ipfs_hash(url: str, *, ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS) -> str:
    if not is_ipfs_embed(url, ipfs_markers=ipfs_markers):
        return ""
    m = _IPFS_HASH_RE.search(url)
    return m.group(1) if m else ""


def iframe_embed_html(url: str) -> str:
    return (
        f'<iframe src="{url}?autoplay=1&controls=0&muted=1&loop=1" '
        'class="w-full h-full" style="aspect-ratio: 1/1;" '
        'allow="autoplay" frameborder="0"></iframe>'
    )


def extract_images_from_markdown(body: str) -> list[str]:
    """Markdown image URLs in document order (duplicates kept)."""
    out: list[str] = []
    for m in MARKDOWN_IMAGE_RE.finditer(body or ""):
        url = normalize_media_url(m.group(2))
        if url:
            out.append(url)
    return out


def extract_videos_from_html(body: str) -> list[str]:
    return [normalize_media_url(m.group(1)) for m in VIDEO_TAG_RE.finditer(body or "")]


def load_post_metadata(post: HivePost, *, logger: EventLogger | None = None) -> MetadataResult:
    """Parse a post's json_metadata, logging (not raising) when it is malformed."""
    result = parse_metadata(post.json_metadata)
    if not result.ok and logger is not None:
        logger.warning(
            "metadata_parse_failed",
            author=post.author,
            permlink=post.permlink,
            error=result.error,
        )
    return result


def _discover(post: HivePost, metadata: MetadataResult) -> list[tuple[str, str]]:
    found: list[tuple[str, str]] = []
    found.extend(("image", u) for u in metadata.get_list("image"))
    found.extend(("video", u) for u in metadata.get_list("video"))
    found.extend(("image", u) for u in extract_images_from_markdown(post.body))
    found.extend(("video", u) for u in extract_videos_from_html(post.body))

    # A URL keeps the kind of the source that found it first.
    kinds: dict[str, str] = {}
    for kind, raw in found:
        kinds.setdefault(normalize_media_url(raw), kind)
    return [(kinds[url], url) for url in unique_urls(raw for _kind, raw in found)]


def extract_media(
    post: HivePost,
    *,
    logger: EventLogger | None = None,
    metadata: MetadataResult | None = None,
) -> ExtractedMedia:
    """
    Collect a post's images and videos.

    Discovery order is metadata images, metadata videos, body markdown images, body
    <video> tags. A URL is kept once, at its first discovery, in the list of the source
    that found it. Malformed metadata only removes the metadata sources.
    """
    meta = metadata if metadata is not None else load_post_metadata(post, logger=logger)
    found = _discover(post, meta)
    return ExtractedMedia(
        images=tuple(u for kind, u in found if kind == "image"),
        videos=tuple(u for kind, u in found if kind == "video"),
    )


def media_descriptors(
    post: HivePost,
    *,
    logger: EventLogger | None = None,
    metadata: MetadataResult | None = None,
    ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS,
) -> list[MediaDescriptor]:
    """One typed descriptor per distinct media URL of the post, in discovery order."""
    meta = metadata if metadata is not None else load_post_metadata(post, logger=logger)

    out: list[MediaDescriptor] = []
    for _kind, url in _discover(post, meta):
        media_type = classify_media_url(url, ipfs_markers=ipfs_markers)
        out.append(
            MediaDescriptor(
                url=url,
                type=media_type,
                iframe_html=iframe_embed_html(url) if media_type == "iframe" else None,
            )
        )
    return out


def proxy_fallback_url(src: str, *, proxy_base: str = DEFAULT_PROXY_BASE) -> str | None:
    """
    Proxy URL to try once when an image fails to load.

    Returns None for empty input or a URL that already goes through the proxy, which
    tells the caller to give up.
    """
    url = normalize_media_url(src)
    if not url or url.startswith(proxy_base):
        return None
    return f"{proxy_base}{url}"
