from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .post import DisplayRecord

_WRAPPING_QUOTES = "'\"“”‘’"


def normalize_media_url(url: str) -> str:
    """
    Identity form of a media URL.

    Only presentation noise is removed (whitespace, wrapping quotes, angle brackets).
    Case, query strings and fragments are kept: IPFS hashes are case-sensitive and
    gateway tokens live in the query.
    """
    value = (url or "").strip().strip(_WRAPPING_QUOTES).strip()
    if value.startswith("<") and value.endswith(">"):
        value = value[1:-1].strip()
    return value


def unique_urls(urls: Iterable[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for raw in urls:
        url = normalize_media_url(raw)
        if not url or url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out


def record_key(record: DisplayRecord) -> str:
    return f"{record.author}-{record.permlink}-{record.src}"


@dataclass
class SeenKeys:
    keys: set[str] = field(default_factory=set)

    def has(self, key: str) -> bool:
        return key in self.keys

    def add(self, key: str) -> None:
        self.keys.add(key)

    def add_record(self, record: DisplayRecord) -> str:
        key = record_key(record)
        self.add(key)
        return key

    def has_record(self, record: DisplayRecord) -> bool:
        return self.has(record_key(record))


def dedupe_records(records: Iterable[DisplayRecord]) -> list[DisplayRecord]:
    """Keep the first record per author-permlink-src key, preserving order."""
    seen = SeenKeys()
    out: list[DisplayRecord] = []
    for record in records:
        if seen.has_record(record):
            continue
        seen.add_record(record)
        out.append(record)
    return out
