from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Union

_IMAGE_LINE_RE = re.compile(
    r"^!\[([^\]]*)\]\(\s*(<[^>]+>|[^)\s]+)(?:\s+[\"'][^\"']*[\"'])?\s*\)$"
)
_IMG_TAG_RE = re.compile(r"^<img\b[^>]*\bsrc=[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE)
_ALT_ATTR_RE = re.compile(r"\balt=[\"']([^\"']*)[\"']", re.IGNORECASE)
_COLUMN_SEPARATOR_RE = re.compile(r"\n---+\n")


@dataclass(frozen=True)
class ImageRef:
    src: str
    alt: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"src": self.src, "alt": self.alt}


@dataclass(frozen=True)
class ProseBlock:
    lines: tuple[str, ...]
    kind: str = field(default="prose", init=False)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "lines": list(self.lines)}


@dataclass(frozen=True)
class MediaBlock:
    images: tuple[ImageRef, ...]
    kind: str = field(default="media", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "images": [img.to_dict() for img in self.images]}


ContentBlock = Union[ProseBlock, MediaBlock]


def parse_image_line(line: str) -> ImageRef | None:
    """
    Recognize a line that holds exactly one image.

    Accepts markdown `![alt](url "title")` (URL optionally in angle brackets) and a
    leading `<img src="...">` tag.
    """
    trimmed = (line or "").strip()
    if not trimmed:
        return None

    m = _IMAGE_LINE_RE.match(trimmed)
    if m:
        src = m.group(2).strip()
        if src.startswith("<") and src.endswith(">"):
            src = src[1:-1].strip()
        return ImageRef(src=src, alt=m.group(1))

    m = _IMG_TAG_RE.match(trimmed)
    if m:
        alt = _ALT_ATTR_RE.search(trimmed)
        return ImageRef(src=m.group(1), alt=alt.group(1) if alt else "")

    return None


class _BlockBuilder:
    def __init__(self) -> None:
        self.blocks: list[ContentBlock] = []
        self.prose: list[str] = []
        self.images: list[ImageRef] = []

    def flush_prose(self) -> None:
        if self.prose:
            self.blocks.append(ProseBlock(lines=tuple(self.prose)))
            self.prose = []

    def flush_images(self) -> None:
        if self.images:
            self.blocks.append(MediaBlock(images=tuple(self.images)))
            self.images = []

    def feed(self, line: str) -> None:
        if not line.strip() and self.images:
            # Blank separators between images keep the run together.
            return

        image = parse_image_line(line)
        if image is not None:
            self.flush_prose()
            self.images.append(image)
        else:
            self.flush_images()
            self.prose.append(line)

    def finish(self) -> list[ContentBlock]:
        self.flush_prose()
        self.flush_images()
        return self.blocks


def split_blocks(text: str) -> list[ContentBlock]:
    """
    Partition a (normalized) body into alternating prose and media blocks.

    Consecutive image lines, including ones separated only by blank lines, become one
    MediaBlock so the UI can show them as a carousel. Prose lines keep their original
    text, blank lines included.
    """
    if not text:
        return []

    builder = _BlockBuilder()
    for line in text.split("\n"):
        builder.feed(line)
    return builder.finish()


def split_columns(text: str) -> list[str]:
    """Split text on `---` separator lines for the multi-column layout."""
    return [part.strip() for part in _COLUMN_SEPARATOR_RE.split(text or "")]
