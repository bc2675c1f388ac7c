from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Sequence

MediaType = Literal["photo", "video", "iframe"]


@dataclass(frozen=True)
class HivePost:
    """A post as returned by the Hive API, reduced to the fields the portfolio reads."""

    author: str
    permlink: str
    title: str = ""
    body: str = ""
    json_metadata: str | Mapping[str, Any] = ""
    created: str | None = None
    last_update: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class MediaDescriptor:
    url: str
    type: MediaType
    thumbnail_src: str | None = None
    iframe_html: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "type": self.type,
            "thumbnailSrc": self.thumbnail_src,
            "iframeHtml": self.iframe_html,
        }


@dataclass(frozen=True)
class ExtractedMedia:
    images: Sequence[str] = ()
    videos: Sequence[str] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"images": list(self.images), "videos": list(self.videos)}


@dataclass(frozen=True)
class HiveMetadata:
    author: str
    permlink: str
    body: str = ""
    json_metadata: str | Mapping[str, Any] = ""

    def to_dict(self) -> dict[str, Any]:
        meta = self.json_metadata
        return {
            "author": self.author,
            "permlink": self.permlink,
            "body": self.body,
            "json_metadata": meta if isinstance(meta, str) else dict(meta),
        }


@dataclass(frozen=True)
class DisplayRecord:
    """One grid entry: a single media item of a single post."""

    id: str
    title: str
    url: str
    type: MediaType
    src: str
    hive_metadata: HiveMetadata
    tags: Sequence[str] = ()
    thumbnail_src: str | None = None
    iframe_html: str | None = None
    video_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def author(self) -> str:
        return self.hive_metadata.author

    @property
    def permlink(self) -> str:
        return self.hive_metadata.permlink

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "type": self.type,
            "src": self.src,
            "thumbnailSrc": self.thumbnail_src,
            "iframeHtml": self.iframe_html,
            "videoUrl": self.video_url,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "hiveMetadata": self.hive_metadata.to_dict(),
        }


@dataclass(frozen=True)
class TagCount:
    tag: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"tag": self.tag, "count": self.count}


@dataclass(frozen=True)
class FormattedPosts:
    formatted_posts: Sequence[DisplayRecord] = ()
    original_posts: Sequence[HivePost] = ()
    skipped_hidden: Sequence[str] = field(default_factory=tuple)
