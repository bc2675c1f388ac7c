from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from .blocks import split_blocks
from .config import config_sha256, load_config, resolve_username, retry_policy
from .config_schema import AppConfig
from .errors import ConfigError, HiveError, RenderError
from .exhibitions import normalize_exhibition_spacing
from .formatting import normalize_markdown_formatting
from .hive_client import HiveClient
from .media import DEFAULT_PROXY_BASE, extract_media, media_descriptors
from .normalize import hive_post_from_item
from .portfolio import PostSource, load_exhibitions, load_projects
from .render import render_page
from .run_log import RunLogger


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}") from None
    if n < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return n


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hive_portfolio")

    subparsers = parser.add_subparsers(dest="command", required=True)

    projects = subparsers.add_parser(
        "projects",
        help="Fetch the account's posts and write the project grid as JSON.",
    )
    projects.add_argument("--config", required=True, help="Path to YAML config file.")
    projects.add_argument("--out", required=True, help="Output directory for JSON and logs.")
    projects.add_argument("--tag", default=None, help="Only show records with this tag.")
    projects.add_argument("--page", type=_positive_int, default=1, help="1-based page number.")
    projects.add_argument("--project", default=None, help="Permlink to select.")
    projects.add_argument(
        "--offline",
        action="store_true",
        help="Use a small built-in account instead of the Hive API.",
    )
    projects.set_defaults(_handler=_cmd_projects)

    exhibitions = subparsers.add_parser(
        "exhibitions",
        help="Print the account's exhibition posts as JSON.",
    )
    exhibitions.add_argument("--config", required=True, help="Path to YAML config file.")
    exhibitions.add_argument(
        "--offline",
        action="store_true",
        help="Use a small built-in account instead of the Hive API.",
    )
    exhibitions.set_defaults(_handler=_cmd_exhibitions)

    blocks = subparsers.add_parser(
        "blocks",
        help="Split a markdown file into prose and media blocks.",
    )
    blocks.add_argument("path", help="Markdown file to split.")
    blocks.add_argument("--html", action="store_true", help="Render an HTML preview instead.")
    blocks.add_argument(
        "--config",
        default=None,
        help="Optional YAML config; media.proxy_base sets the image fallback proxy.",
    )
    blocks.set_defaults(_handler=_cmd_blocks)

    media = subparsers.add_parser(
        "media",
        help="Extract media from a post JSON file (a Hive API discussion object).",
    )
    media.add_argument("path", help="JSON file holding one post.")
    media.set_defaults(_handler=_cmd_media)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _source(cfg: AppConfig, *, offline: bool, logger: RunLogger | None) -> tuple[PostSource, str]:
    if offline:
        from .offline import OFFLINE_USERNAME, OfflineHiveClient

        return OfflineHiveClient(), OFFLINE_USERNAME

    username = resolve_username(cfg)
    client = HiveClient(
        cfg.hive.api_urls,
        timeout_seconds=cfg.hive.timeout_seconds,
        retry=retry_policy(cfg),
        on_retry=logger.retry if logger is not None else None,
    )
    return client, username


def _cmd_projects(args: argparse.Namespace) -> int:
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    log_path = out_dir / "run.log"
    with RunLogger.open(log_path, overwrite=True) as log:
        log.info(
            "projects_command_started",
            config_path=str(args.config),
            out_dir=str(out_dir),
            offline=bool(args.offline),
        )

        try:
            cfg = load_config(args.config)
            source, username = _source(cfg, offline=bool(args.offline), logger=log)
            log.info("config_loaded", config_sha256=config_sha256(cfg), username=username)

            state = load_projects(
                source,
                username,
                cfg=cfg,
                logger=log.bind(username=username),
                tag=args.tag,
                page=int(args.page),
                project=args.project,
            )

            payload: dict[str, Any] = {"status": state.status, "error": state.error}
            if state.value is not None:
                payload.update(state.value.to_dict())

            json_path = out_dir / "projects.json"
            json_path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )

            view = state.value
            print(f"status={state.status}")
            print(f"username={username}")
            print(f"records={len(view.records) if view else 0}")
            print(f"page_records={len(view.page_records) if view else 0}")
            print(f"tags={len(view.tags) if view else 0}")
            print(f"projects_json={json_path}")
            print(f"run_log={log_path}")
            if state.error:
                _eprint(state.error)

            return 0 if state.ok else 3
        except Exception as e:
            log.exception("projects_command_failed", exc=e)
            raise


def _cmd_exhibitions(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    source, username = _source(cfg, offline=bool(args.offline), logger=None)
    state = load_exhibitions(source, username, cfg=cfg)

    posts = state.value or []
    _print_json(
        {
            "status": state.status,
            "error": state.error,
            "posts": [
                {
                    "author": p.author,
                    "permlink": p.permlink,
                    "title": p.title,
                    "body": normalize_exhibition_spacing(p.body),
                    "media": extract_media(p).to_dict(),
                }
                for p in posts
            ],
        }
    )
    return 0 if state.ok else 3


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e


def _cmd_blocks(args: argparse.Namespace) -> int:
    text = _read_text(args.path)
    if args.html:
        proxy_base = load_config(args.config).media.proxy_base if args.config else DEFAULT_PROXY_BASE
        print(render_page(Path(args.path).stem, text, proxy_base=proxy_base))
        return 0

    blocks = split_blocks(normalize_markdown_formatting(text))
    _print_json([b.to_dict() for b in blocks])
    return 0


def _cmd_media(args: argparse.Namespace) -> int:
    try:
        item = json.loads(_read_text(args.path))
    except ValueError as e:
        raise ConfigError(f"{args.path} is not valid JSON: {e}") from e

    post = hive_post_from_item(item) if isinstance(item, dict) else None
    if post is None:
        raise ConfigError(f"{args.path} does not hold a post with author and permlink")

    log = RunLogger.to_stream(sys.stderr)
    _print_json(
        {
            "media": extract_media(post, logger=log).to_dict(),
            "descriptors": [d.to_dict() for d in media_descriptors(post)],
        }
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (HiveError, RenderError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
