from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class HiveError(RuntimeError):
    """Raised when a Hive API call fails or returns an unusable response."""


class RenderError(RuntimeError):
    """Raised when a content block cannot be rendered to HTML."""


class HiveRPCError(HiveError):
    """A JSON-RPC error object returned by a Hive API node."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
