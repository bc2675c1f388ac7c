from __future__ import annotations

from .blocks import ImageRef, MediaBlock, ProseBlock, split_blocks
from .config import config_sha256, load_config, resolve_username
from .config_schema import AppConfig
from .errors import ConfigError, HiveError, RenderError
from .formatter import extract_and_count_tags, format_posts
from .formatting import normalize_markdown_formatting
from .media import classify_media_url, extract_media
from .post import DisplayRecord, HivePost, MediaDescriptor, TagCount
from .thumbnail import resolve_thumbnail

__all__ = [
    "AppConfig",
    "ConfigError",
    "DisplayRecord",
    "HiveError",
    "HivePost",
    "ImageRef",
    "MediaBlock",
    "MediaDescriptor",
    "ProseBlock",
    "RenderError",
    "TagCount",
    "classify_media_url",
    "config_sha256",
    "extract_and_count_tags",
    "extract_media",
    "format_posts",
    "load_config",
    "normalize_markdown_formatting",
    "resolve_thumbnail",
    "resolve_username",
    "split_blocks",
]
