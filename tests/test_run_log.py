from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path

from hive_portfolio.retry import RetryEvent
from hive_portfolio.run_log import RunLogger


def _lines(text: str) -> list[dict]:
    return [json.loads(ln) for ln in text.splitlines() if ln.strip()]


class TestRunLogger(unittest.TestCase):
    def test_writes_jsonl_with_bound_context(self) -> None:
        stream = io.StringIO()
        log = RunLogger.to_stream(stream, session_id="s1")
        child = log.bind(author="artist", permlink=None)

        log.info("started")
        child.warning("metadata_parse_failed", url="https://x", permlink="p1")

        first, second = _lines(stream.getvalue())
        self.assertEqual(first["event"], "started")
        self.assertEqual(first["level"], "INFO")
        self.assertEqual(first["session_id"], "s1")
        self.assertNotIn("data", first)
        self.assertNotIn("url", first)

        self.assertEqual(second["level"], "WARN")
        self.assertEqual(second["url"], "https://x")
        self.assertEqual(second["data"], {"author": "artist", "permlink": "p1"})
        self.assertEqual(second["session_id"], "s1")

    def test_exception_records_error(self) -> None:
        stream = io.StringIO()
        log = RunLogger.to_stream(stream)
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            log.exception("failed", exc=e)

        (line,) = _lines(stream.getvalue())
        self.assertEqual(line["level"], "ERROR")
        self.assertEqual(line["data"]["error"]["type"], "RuntimeError")
        self.assertIn("boom", line["data"]["error"]["traceback"])

    def test_retry_event(self) -> None:
        stream = io.StringIO()
        RunLogger.to_stream(stream).retry(
            RetryEvent(
                operation="hive.m",
                failed_attempt=1,
                max_attempts=3,
                delay_seconds=1.0,
                reason="network_error",
                error_type="ConnectionError",
                error_message="down",
            )
        )
        (line,) = _lines(stream.getvalue())
        self.assertEqual(line["event"], "hive_retry")
        self.assertEqual(line["data"]["reason"], "network_error")

    def test_file_sink_closes_and_appends(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "logs" / "run.log"
            with RunLogger.open(path) as log:
                log.info("one")
                self.assertEqual(log.path, path)
            with RunLogger.open(path, overwrite=False) as log:
                log.info("two")
            log.info("after_close")

            events = [ln["event"] for ln in _lines(path.read_text(encoding="utf-8"))]
            self.assertEqual(events, ["one", "two"])


if __name__ == "__main__":
    unittest.main()
