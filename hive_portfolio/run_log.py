from __future__ import annotations

import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

from .retry import RetryEvent


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, *, limit: int) -> str:
    s = str(text or "")
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


class _Sink:
    """A text stream shared by a logger and its bound children."""

    def __init__(self, fp: TextIO | None, *, path: Path | None, owned: bool) -> None:
        self.fp = fp
        self.path = path
        self.owned = owned
        self.lock = Lock()

    def write(self, line: str) -> None:
        with self.lock:
            if self.fp is None:
                return
            self.fp.write(line + "\n")
            self.fp.flush()

    def close(self) -> None:
        with self.lock:
            if self.fp is not None and self.owned:
                try:
                    self.fp.flush()
                finally:
                    self.fp.close()
            self.fp = None


class RunLogger:
    """
    JSONL event logger.

    Each line is one JSON object with ts, level, event and session_id, plus any bound
    context and per-call data. Loggers returned by bind() share the same output.
    """

    def __init__(
        self,
        sink: _Sink,
        *,
        session_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._sink = sink
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._context = dict(context or {})

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        overwrite: bool = True,
        session_id: str | None = None,
    ) -> "RunLogger":
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        fp = p.open("w" if overwrite else "a", encoding="utf-8", newline="\n")
        return cls(_Sink(fp, path=p, owned=True), session_id=session_id)

    @classmethod
    def to_stream(cls, stream: TextIO, *, session_id: str | None = None) -> "RunLogger":
        return cls(_Sink(stream, path=None, owned=False), session_id=session_id)

    @property
    def path(self) -> Path | None:
        return self._sink.path

    @property
    def session_id(self) -> str:
        return self._session_id

    def bind(self, **context: Any) -> "RunLogger":
        merged = {**self._context, **{k: v for k, v in context.items() if v is not None}}
        return RunLogger(self._sink, session_id=self._session_id, context=merged)

    def close(self) -> None:
        self._sink.close()

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def info(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("INFO", event, url=url, **data)

    def warning(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("WARN", event, url=url, **data)

    def error(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("ERROR", event, url=url, **data)

    def exception(
        self,
        event: str,
        *,
        exc: BaseException,
        url: str | None = None,
        **data: Any,
    ) -> None:
        err = {
            "type": type(exc).__name__,
            "message": _truncate(str(exc), limit=2000),
            "traceback": _truncate(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                limit=12000,
            ),
        }
        self.log("ERROR", event, url=url, error=err, **data)

    def retry(self, event: RetryEvent) -> None:
        """on_retry hook for call_with_retries."""
        self.warning(
            "hive_retry",
            operation=event.operation,
            failed_attempt=event.failed_attempt,
            max_attempts=event.max_attempts,
            delay_seconds=round(event.delay_seconds, 3),
            reason=event.reason,
            error_type=event.error_type,
            error_message=_truncate(event.error_message, limit=500),
        )

    def log(self, level: str, event: str, *, url: str | None = None, **data: Any) -> None:
        lvl = (level or "").strip().upper() or "INFO"
        ev = (event or "").strip() or "event"

        record: dict[str, Any] = {
            "ts": _utc_now_iso(),
            "level": lvl,
            "event": ev,
            "session_id": self._session_id,
        }

        u = (url or "").strip()
        if u:
            record["url"] = u

        payload = {**self._context, **data}
        if payload:
            record["data"] = payload

        self._sink.write(
            json.dumps(
                record,
                ensure_ascii=False,
                sort_keys=True,
                separators=(",", ":"),
                default=str,
            )
        )
