from __future__ import annotations

import unittest

import requests

from hive_portfolio.errors import HiveRPCError
from hive_portfolio.hive_retry import is_retryable_hive_exception
from hive_portfolio.retry import RetryEvent, RetryPolicy, call_with_retries


class _Flaky:
    def __init__(self, failures: list[BaseException], result: str = "ok") -> None:
        self._failures = list(failures)
        self._result = result
        self.attempts: list[int] = []

    def __call__(self, attempt: int) -> str:
        self.attempts.append(attempt)
        if self._failures:
            raise self._failures.pop(0)
        return self._result


def _always(exc: BaseException) -> tuple[bool, str | None]:
    return True, "test"


def _never(exc: BaseException) -> tuple[bool, str | None]:
    return False, None


class TestRetryPolicy(unittest.TestCase):
    def test_delay_schedule_is_capped(self) -> None:
        policy = RetryPolicy()
        self.assertEqual([policy.delay_for(n) for n in range(1, 7)], [1.0, 2.0, 4.0, 8.0, 10.0, 10.0])

    def test_rejects_bad_values(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(base_delay_seconds=5.0, max_delay_seconds=1.0)
        with self.assertRaises(ValueError):
            RetryPolicy(jitter_ratio=1.5)


class TestCallWithRetries(unittest.TestCase):
    def test_retries_then_succeeds(self) -> None:
        fn = _Flaky([TimeoutError("slow"), TimeoutError("slow")])
        sleeps: list[float] = []
        events: list[RetryEvent] = []

        result = call_with_retries(
            fn,
            policy=RetryPolicy(max_attempts=3),
            is_retryable=_always,
            operation="fetch",
            on_retry=events.append,
            sleep_fn=sleeps.append,
        )

        self.assertEqual(result, "ok")
        self.assertEqual(fn.attempts, [1, 2, 3])
        self.assertEqual(sleeps, [1.0, 2.0])
        self.assertEqual([e.failed_attempt for e in events], [1, 2])
        self.assertEqual(events[0].operation, "fetch")
        self.assertEqual(events[0].error_type, "TimeoutError")
        self.assertEqual(events[0].reason, "test")

    def test_reraises_last_error_after_exhaustion(self) -> None:
        last = TimeoutError("third")
        fn = _Flaky([TimeoutError("1"), TimeoutError("2"), last])
        sleeps: list[float] = []

        with self.assertRaises(TimeoutError) as ctx:
            call_with_retries(
                fn,
                policy=RetryPolicy(max_attempts=3),
                is_retryable=_always,
                operation="fetch",
                sleep_fn=sleeps.append,
            )

        self.assertIs(ctx.exception, last)
        self.assertEqual(len(sleeps), 2)

    def test_non_retryable_raises_immediately(self) -> None:
        fn = _Flaky([KeyError("x")])
        sleeps: list[float] = []
        with self.assertRaises(KeyError):
            call_with_retries(fn, policy=RetryPolicy(), is_retryable=_never, operation="op", sleep_fn=sleeps.append)
        self.assertEqual(fn.attempts, [1])
        self.assertEqual(sleeps, [])

    def test_zero_delay_skips_sleep(self) -> None:
        fn = _Flaky([TimeoutError("x")])
        sleeps: list[float] = []
        call_with_retries(
            fn,
            policy=RetryPolicy(base_delay_seconds=0.0, max_delay_seconds=0.0),
            is_retryable=_always,
            operation="op",
            sleep_fn=sleeps.append,
        )
        self.assertEqual(sleeps, [])


class TestHiveRetryPolicy(unittest.TestCase):
    def _http_error(self, status: int) -> requests.HTTPError:
        response = requests.Response()
        response.status_code = status
        return requests.HTTPError(f"{status}", response=response)

    def test_network_errors_retryable(self) -> None:
        self.assertEqual(is_retryable_hive_exception(requests.ConnectionError("x")), (True, "network_error"))
        self.assertEqual(is_retryable_hive_exception(requests.Timeout("x")), (True, "network_error"))

    def test_http_status(self) -> None:
        self.assertEqual(is_retryable_hive_exception(self._http_error(503)), (True, "http_503"))
        self.assertEqual(is_retryable_hive_exception(self._http_error(429)), (True, "http_429"))
        self.assertEqual(is_retryable_hive_exception(self._http_error(404)), (False, "http_404"))

    def test_rpc_codes(self) -> None:
        self.assertEqual(is_retryable_hive_exception(HiveRPCError("x", code=-32603)), (True, "rpc_-32603"))
        self.assertEqual(is_retryable_hive_exception(HiveRPCError("x", code=-32602)), (False, "rpc_-32602"))
        self.assertEqual(is_retryable_hive_exception(HiveRPCError("x")), (False, "rpc_error"))

    def test_invalid_json_retryable(self) -> None:
        self.assertEqual(is_retryable_hive_exception(ValueError("bad")), (True, "invalid_json"))

    def test_other_errors_not_retryable(self) -> None:
        self.assertEqual(is_retryable_hive_exception(KeyError("x")), (False, None))


if __name__ == "__main__":
    unittest.main()
