from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from .dedupe import dedupe_records
from .media import (
    DEFAULT_IPFS_MARKERS,
    EventLogger,
    extract_images_from_markdown,
    ipfs_hash,
    is_ipfs_embed,
    load_post_metadata,
    media_descriptors,
)
from .metadata import MetadataResult
from .post import DisplayRecord, FormattedPosts, HiveMetadata, HivePost, MediaDescriptor, TagCount
from .thumbnail import resolve_thumbnail

DEFAULT_HIDDEN_TAG = "hidden"


def post_tags(post: HivePost, metadata: MetadataResult) -> list[str]:
    """Category first, then the declared tags (category not repeated)."""
    declared = metadata.get_list("tags") if metadata.ok else []
    tags = [t for t in declared if t.strip()]
    category = (post.category or "").strip()
    if category:
        tags = [category] + [t for t in tags if t != category]
    return tags


def is_hidden(metadata: MetadataResult, *, hidden_tag: str = DEFAULT_HIDDEN_TAG) -> bool:
    return bool(hidden_tag) and hidden_tag in metadata.get_list("tags")


def _display_record(
    post: HivePost,
    media: MediaDescriptor,
    *,
    tags: Sequence[str],
    hive_metadata: HiveMetadata,
    ipfs_markers: Sequence[str],
) -> DisplayRecord:
    digest = ipfs_hash(media.url, ipfs_markers=ipfs_markers)
    thumbnail = resolve_thumbnail(
        thumbnail_src=media.thumbnail_src,
        media_url=media.url,
        hive_metadata=hive_metadata,
    )
    return DisplayRecord(
        id=f"{post.author}/{post.permlink}/{digest}",
        title=post.title,
        url=f"/p/{post.author}/{post.permlink}/{digest}",
        type=media.type,
        src=media.url,
        hive_metadata=hive_metadata,
        tags=tuple(tags),
        thumbnail_src=thumbnail,
        iframe_html=media.iframe_html,
        video_url=media.url if media.type == "video" else None,
        created_at=post.created,
        updated_at=post.last_update,
    )


def format_posts(
    posts: Iterable[HivePost],
    *,
    hidden_tag: str = DEFAULT_HIDDEN_TAG,
    ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS,
    logger: EventLogger | None = None,
) -> FormattedPosts:
    """
    Expand posts into one display record per distinct media item.

    Posts tagged `hidden_tag` are skipped. A post with malformed metadata still yields
    records for its body media, tagged with its category only. Records are unique per
    author-permlink-src; the first one wins.
    """
    originals = list(posts)
    records: list[DisplayRecord] = []
    hidden: list[str] = []

    for post in originals:
        metadata = load_post_metadata(post, logger=logger)
        if is_hidden(metadata, hidden_tag=hidden_tag):
            hidden.append(f"{post.author}/{post.permlink}")
            continue

        tags = post_tags(post, metadata)
        hive_metadata = HiveMetadata(
            author=post.author,
            permlink=post.permlink,
            body=post.body,
            json_metadata=post.json_metadata,
        )
        for media in media_descriptors(post, metadata=metadata, ipfs_markers=ipfs_markers):
            records.append(
                _display_record(
                    post,
                    media,
                    tags=tags,
                    hive_metadata=hive_metadata,
                    ipfs_markers=ipfs_markers,
                )
            )

    return FormattedPosts(
        formatted_posts=tuple(dedupe_records(records)),
        original_posts=tuple(originals),
        skipped_hidden=tuple(hidden),
    )


def extract_and_count_tags(
    posts: Iterable[HivePost],
    paginated_records: Iterable[DisplayRecord],
    *,
    logger: EventLogger | None = None,
) -> list[TagCount]:
    """
    Count declared tags over the posts shown on the current page.

    Sorted by descending count; equal counts keep first-seen order.
    """
    on_page = {record.permlink for record in paginated_records}
    counts: Counter[str] = Counter()

    for post in posts:
        if post.permlink not in on_page:
            continue
        metadata = load_post_metadata(post, logger=logger)
        for tag in metadata.get_list("tags"):
            counts[tag] += 1

    return [TagCount(tag=tag, count=n) for tag, n in counts.most_common()]


def all_tags(records: Iterable[DisplayRecord]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for record in records:
        for tag in record.tags:
            if tag in seen:
                continue
            seen.add(tag)
            out.append(tag)
    return out


def filter_records_by_tag(
    records: Iterable[DisplayRecord], tag: str | None
) -> list[DisplayRecord]:
    wanted = (tag or "").strip()
    if not wanted:
        return list(records)
    return [r for r in records if wanted in r.tags]


def paginate(
    records: Sequence[DisplayRecord], *, page: int, page_size: int
) -> list[DisplayRecord]:
    """1-based page slice; pages past the end are empty."""
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    start = (page - 1) * page_size
    return list(records[start : start + page_size])


def select_record(
    records: Iterable[DisplayRecord], permlink: str | None
) -> DisplayRecord | None:
    wanted = (permlink or "").strip()
    if not wanted:
        return None
    for record in records:
        if record.permlink == wanted:
            return record
    return None


def group_by_permlink(
    records: Iterable[DisplayRecord],
    *,
    ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS,
) -> dict[str, list[DisplayRecord]]:
    """
    Group records per post and append body media the grid did not list yet.

    Extra items inherit the title, thumbnail and metadata of the group's first record.
    A media URL appears in at most one group.
    """
    groups: dict[str, list[DisplayRecord]] = {}
    processed: set[str] = set()

    for record in records:
        if record.src in processed:
            continue
        processed.add(record.src)
        groups.setdefault(record.permlink, []).append(record)

    for permlink, group in groups.items():
        main = group[0]
        source_post = HivePost(
            author=main.author,
            permlink=permlink,
            body=main.hive_metadata.body,
            json_metadata={"image": [main.src]},
        )
        for media in media_descriptors(source_post, ipfs_markers=ipfs_markers):
            if media.url in processed:
                continue
            processed.add(media.url)
            group.append(
                DisplayRecord(
                    id=f"{permlink}-{media.url}",
                    title=main.title,
                    url=media.url,
                    type=media.type,
                    src=media.url,
                    hive_metadata=main.hive_metadata,
                    tags=main.tags,
                    thumbnail_src=main.thumbnail_src,
                    iframe_html=media.iframe_html,
                    video_url=media.url if media.type == "video" else None,
                    created_at=main.created_at,
                    updated_at=main.updated_at,
                )
            )

    return groups


def has_large_content(
    record: DisplayRecord,
    *,
    ipfs_markers: Sequence[str] = DEFAULT_IPFS_MARKERS,
) -> bool:
    """Whether an expanded card needs the wide layout."""
    body = record.hive_metadata.body or ""
    if body:
        image_count = len(extract_images_from_markdown(body))
        return image_count > 1 or len(body) > 300 or (image_count > 0 and len(body) > 200)
    return is_ipfs_embed(record.src, ipfs_markers=ipfs_markers)
