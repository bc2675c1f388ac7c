from __future__ import annotations

import requests

from .errors import HiveRPCError

# JSON-RPC codes a different (or less busy) node can plausibly answer.
_RETRYABLE_RPC_CODES = frozenset({-32603, -32000, -32001, -32003})


def _status_code(exc: requests.RequestException) -> int | None:
    response = getattr(exc, "response", None)
    code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def is_retryable_hive_exception(exc: BaseException) -> tuple[bool, str | None]:
    """
    Hive node retry policy:
    - connection errors and timeouts
    - HTTP 429 and 5xx
    - JSON-RPC internal/server errors
    - unparseable responses (a node behind a broken proxy)
    """
    if isinstance(exc, HiveRPCError):
        if exc.code in _RETRYABLE_RPC_CODES:
            return True, f"rpc_{exc.code}"
        return False, f"rpc_{exc.code}" if exc.code is not None else "rpc_error"

    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True, "network_error"

    if isinstance(exc, requests.HTTPError):
        code = _status_code(exc)
        reason = f"http_{code}" if code is not None else "http_status"
        return (code == 429 or (code is not None and code >= 500)), reason

    if isinstance(exc, ValueError):
        # requests raises a ValueError subclass for bodies that are not JSON.
        return True, "invalid_json"

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True, "network_error"

    return False, None
