from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError
from .hive_client import normalize_username
from .retry import RetryPolicy


def _read_yaml_mapping(p: Path) -> dict[str, Any]:
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {p}") from None
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"{p} is not valid YAML: {e}") from e

    # An empty file means "all defaults".
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{p} must hold a mapping of sections (hive, retry, portfolio, ...)")
    return data


def load_config(path: str | Path) -> AppConfig:
    """
    Load the portfolio YAML config into a typed AppConfig.

    Every section is optional. Unknown keys and out-of-range values raise ConfigError
    listing each offending field.
    """
    p = Path(path)
    data = _read_yaml_mapping(p)
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, p)) from e


def resolve_username(config: AppConfig, *, environ: Mapping[str, str] | None = None) -> str:
    """
    The Hive account whose posts make up the portfolio.

    A literal `hive.username` wins; otherwise the `hive.username_env` variable is read.
    """
    literal = normalize_username(config.hive.username or "")
    if literal:
        return literal

    env = os.environ if environ is None else environ
    name = config.hive.username_env
    value = normalize_username(env.get(name) or "")
    if not value:
        raise ConfigError(
            f"No Hive username: set hive.username or the {name} environment variable"
        )
    return value


def retry_policy(config: AppConfig) -> RetryPolicy:
    r = config.retry
    return RetryPolicy(
        max_attempts=r.max_attempts,
        base_delay_seconds=r.base_delay_seconds,
        max_delay_seconds=r.max_delay_seconds,
        jitter_ratio=r.jitter_ratio,
    )


def config_sha256(config: AppConfig) -> str:
    """Fingerprint of the effective config (defaults included), logged with each run."""
    payload = json.dumps(
        config.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def _format_pydantic_errors(err: ValidationError, path: Path) -> str:
    lines: list[str] = [f"Invalid configuration in {path}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
