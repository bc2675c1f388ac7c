from __future__ import annotations

import json
from typing import Any

from .hive_client import normalize_username
from .normalize import hive_posts_from_items
from .post import HivePost

OFFLINE_USERNAME = "offline.artist"

_BODY_SERIES = (
    "Series of prints made during the spring residency.\n"
    "\n"
    "![plate one](https://images.hive.blog/DQmOfflineA/plate-1.jpg)\n"
    "\n"
    "![plate two](https://images.hive.blog/DQmOfflineA/plate-2.jpg)\n"
    "Printed on **cotton paper**, edition of _twelve_.\n"
)

_BODY_VIDEO = (
    "Short loop from the installation.\n"
    '<video src="https://files.example.org/loop.mp4" controls></video>\n'
)

_BODY_EXHIBITIONS = (
    "## 2024\n"
    "Group show, Galeria Norte\n"
    "Lisbon\n"
    "\n"
    "## 2022 - 2023\n"
    "Residency, Casa Azul<br>Porto\n"
)

_DEFAULT_OFFLINE_ITEMS: list[dict[str, Any]] = [
    {
        "author": OFFLINE_USERNAME,
        "permlink": "spring-prints",
        "title": "Spring prints",
        "body": _BODY_SERIES,
        "json_metadata": json.dumps(
            {
                "tags": ["printmaking", "paper", "residency"],
                "image": ["https://images.hive.blog/DQmOfflineA/plate-1.jpg"],
            }
        ),
        "created": "2024-04-01T10:00:00",
        "last_update": "2024-04-02T09:00:00",
        "category": "art",
    },
    {
        "author": OFFLINE_USERNAME,
        "permlink": "installation-loop",
        "title": "Installation loop",
        "body": _BODY_VIDEO,
        "json_metadata": json.dumps(
            {
                "tags": ["installation", "video"],
                "video": ["https://ipfs.skatehive.app/ipfs/QmOfflineLoop"],
                "thumbnail": "https://images.hive.blog/DQmOfflineB/loop-still.jpg",
            }
        ),
        "created": "2024-03-10T18:30:00",
        "last_update": "2024-03-10T18:30:00",
        "category": "art",
    },
    {
        "author": OFFLINE_USERNAME,
        "permlink": "draft-notes",
        "title": "Draft notes",
        "body": "![sketch](https://images.hive.blog/DQmOfflineC/sketch.jpg)\n",
        "json_metadata": json.dumps({"tags": ["hidden", "notes"]}),
        "created": "2024-02-01T08:00:00",
        "last_update": "2024-02-01T08:00:00",
        "category": "art",
    },
    {
        "author": OFFLINE_USERNAME,
        "permlink": "old-paintings",
        "title": "Old paintings",
        "body": "Oil on canvas.\n![canvas](https://files.peakd.com/file/offline/canvas.png)\n",
        "json_metadata": "{not json",
        "created": "2019-06-01T08:00:00",
        "last_update": "2019-06-01T08:00:00",
        "category": "painting",
    },
    {
        "author": OFFLINE_USERNAME,
        "permlink": "exhibitions",
        "title": "Exhibitions",
        "body": _BODY_EXHIBITIONS,
        "json_metadata": json.dumps({"tags": ["cv"]}),
        "created": "2024-01-01T08:00:00",
        "last_update": "2024-05-01T08:00:00",
        "category": "art",
    },
]

# Live edits the offline node reports through get_content.
_LIVE_THUMBNAILS: dict[str, str] = {
    "spring-prints": "https://images.hive.blog/DQmOfflineA/plate-2.jpg",
}


class OfflineHiveClient:
    """A stand-in for HiveClient that serves a small fixed account without network calls."""

    def __init__(self, items: list[dict[str, Any]] | None = None) -> None:
        self._items = [dict(i) for i in (items if items is not None else _DEFAULT_OFFLINE_ITEMS)]
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _posts_for(self, username: str) -> list[HivePost]:
        account = normalize_username(username)
        return [p for p in hive_posts_from_items(self._items) if p.author == account]

    def get_posts_by_author(self, username: str, *, max_posts: int = 100) -> list[HivePost]:
        self.calls.append(("get_posts_by_author", (username,)))
        return self._posts_for(username)[:max_posts]

    def get_posts_by_blog(self, username: str, *, max_posts: int = 100) -> list[HivePost]:
        self.calls.append(("get_posts_by_blog", (username,)))
        return self._posts_for(username)[:max_posts]

    def get_user_account(self, username: str) -> dict[str, Any] | None:
        self.calls.append(("get_user_account", (username,)))
        account = normalize_username(username)
        if any(i.get("author") == account for i in self._items):
            return {"name": account}
        return None

    def get_content(self, author: str, permlink: str) -> dict[str, Any] | None:
        self.calls.append(("get_content", (author, permlink)))
        for item in self._items:
            if item.get("author") != author or item.get("permlink") != permlink:
                continue
            live = dict(item)
            thumb = _LIVE_THUMBNAILS.get(permlink)
            if thumb:
                live["json_metadata"] = json.dumps({"thumbnail": thumb})
            return live
        return None
