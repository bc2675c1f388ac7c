from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class MetadataResult:
    """
    Outcome of parsing a post's json_metadata.

    `data` is always a mapping; it is empty when parsing failed or the field was blank.
    """

    ok: bool
    data: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None

    def get_list(self, key: str) -> list[str]:
        value = self.data.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def get_str(self, key: str) -> str | None:
        value = self.data.get(key)
        if isinstance(value, str):
            s = value.strip()
            return s if s else None
        return None


EMPTY_METADATA = MetadataResult(ok=True)


def parse_metadata(raw: Any) -> MetadataResult:
    """
    Parse json_metadata defensively.

    Accepts the JSON string from the API or an already-decoded mapping. Blank input is a
    successful empty result; anything unparseable (or a JSON value that is not an object)
    is a failed empty result carrying the reason.
    """
    if raw is None:
        return EMPTY_METADATA

    if isinstance(raw, Mapping):
        return MetadataResult(ok=True, data=dict(raw))

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            return MetadataResult(ok=False, error=f"invalid utf-8: {e}")

    if not isinstance(raw, str):
        return MetadataResult(ok=False, error=f"unsupported type: {type(raw).__name__}")

    text = raw.strip()
    if not text:
        return EMPTY_METADATA

    try:
        value = json.loads(text)
    except ValueError as e:
        return MetadataResult(ok=False, error=str(e))

    if not isinstance(value, dict):
        return MetadataResult(ok=False, error=f"expected object, got {type(value).__name__}")

    return MetadataResult(ok=True, data=value)
