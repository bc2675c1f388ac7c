from __future__ import annotations

import json
import unittest
from typing import Any

from hive_portfolio.post import DisplayRecord, HiveMetadata
from hive_portfolio.thumbnail import (
    LEGACY_BROKEN_HASH,
    LEGACY_FALLBACK_URL,
    clean_thumbnail_url,
    refresh_thumbnail,
    resolve_record_thumbnail,
    resolve_thumbnail,
)


def _meta(body: str = "", json_metadata: Any = "") -> HiveMetadata:
    return HiveMetadata(author="artist", permlink="p1", body=body, json_metadata=json_metadata)


def _record(src: str = "https://x/media.jpg", thumbnail: str | None = None, **meta: Any) -> DisplayRecord:
    return DisplayRecord(
        id="artist/p1/",
        title="T",
        url="/p/artist/p1/",
        type="photo",
        src=src,
        hive_metadata=_meta(**meta),
        thumbnail_src=thumbnail,
    )


class TestCleanThumbnailUrl(unittest.TestCase):
    def test_strips_quotes_for_gateway_hosts(self) -> None:
        self.assertEqual(
            clean_thumbnail_url(' "https://images.hive.blog/p/a.jpg" '),
            "https://images.hive.blog/p/a.jpg",
        )
        self.assertEqual(
            clean_thumbnail_url("'https://gw.pinata.cloud/ipfs/Qm?pinataGatewayToken=abc'"),
            "https://gw.pinata.cloud/ipfs/Qm?pinataGatewayToken=abc",
        )

    def test_other_hosts_untouched(self) -> None:
        self.assertEqual(clean_thumbnail_url('"https://x/a.jpg"'), '"https://x/a.jpg"')


class TestResolveThumbnail(unittest.TestCase):
    def test_preset_thumbnail_wins(self) -> None:
        meta = _meta(json_metadata={"thumbnail": "https://x/meta.jpg"})
        self.assertEqual(
            resolve_thumbnail(thumbnail_src="/local/thumb.jpg", hive_metadata=meta),
            "/local/thumb.jpg",
        )
        self.assertEqual(
            resolve_thumbnail(thumbnail_src="data:image/png;base64,AAA", hive_metadata=meta),
            "data:image/png;base64,AAA",
        )

    def test_unusable_preset_falls_through(self) -> None:
        meta = _meta(json_metadata={"thumbnail": "https://x/meta.jpg"})
        self.assertEqual(
            resolve_thumbnail(thumbnail_src="ipfs://Qm", hive_metadata=meta),
            "https://x/meta.jpg",
        )

    def test_metadata_thumbnail_keys_in_order(self) -> None:
        meta = _meta(
            json_metadata=json.dumps(
                {"thumbnail_url": "https://x/c.jpg", "thumbnailSrc": "https://x/b.jpg"}
            )
        )
        self.assertEqual(resolve_thumbnail(hive_metadata=meta), "https://x/b.jpg")

    def test_first_metadata_image(self) -> None:
        meta = _meta(json_metadata=json.dumps({"image": ["https://x/y.jpg", "https://x/z.jpg"]}))
        self.assertEqual(resolve_thumbnail(hive_metadata=meta), "https://x/y.jpg")

    def test_first_body_image(self) -> None:
        meta = _meta(body="text\n![a](https://x/body.jpg)\n![b](https://x/2.jpg)", json_metadata="{}")
        self.assertEqual(resolve_thumbnail(hive_metadata=meta), "https://x/body.jpg")

    def test_malformed_metadata_still_scans_body(self) -> None:
        meta = _meta(body="![a](https://x/body.jpg)", json_metadata="{oops")
        self.assertEqual(resolve_thumbnail(hive_metadata=meta), "https://x/body.jpg")

    def test_hive_hosted_media_url(self) -> None:
        self.assertEqual(
            resolve_thumbnail(media_url="https://images.hive.blog/DQm1/a.jpg", hive_metadata=_meta()),
            "https://images.hive.blog/DQm1/a.jpg",
        )
        self.assertIsNone(resolve_thumbnail(media_url="https://x/a.jpg", hive_metadata=_meta()))

    def test_legacy_hash_shim(self) -> None:
        meta = _meta(body=f"see {LEGACY_BROKEN_HASH}")
        self.assertEqual(
            resolve_thumbnail(media_url="https://x/a.mp4", hive_metadata=meta),
            LEGACY_FALLBACK_URL,
        )

    def test_nothing_found(self) -> None:
        self.assertIsNone(resolve_thumbnail())


class TestRecordThumbnail(unittest.TestCase):
    def test_sets_resolved_value(self) -> None:
        record = _record(json_metadata={"image": ["https://x/y.jpg"]})
        self.assertEqual(resolve_record_thumbnail(record).thumbnail_src, "https://x/y.jpg")

    def test_unchanged_record_returned_as_is(self) -> None:
        record = _record(thumbnail="https://x/t.jpg")
        self.assertIs(resolve_record_thumbnail(record), record)


class TestRefreshThumbnail(unittest.TestCase):
    def test_uses_live_metadata(self) -> None:
        calls: list[tuple[str, str]] = []

        def fetch(author: str, permlink: str) -> dict[str, Any] | None:
            calls.append((author, permlink))
            return {"body": "", "json_metadata": json.dumps({"image": ["https://x/new.jpg"]})}

        record = _record(thumbnail="https://x/old.jpg")
        self.assertEqual(refresh_thumbnail(record, fetch), "https://x/new.jpg")
        self.assertEqual(calls, [("artist", "p1")])

    def test_missing_post_gives_none(self) -> None:
        self.assertIsNone(refresh_thumbnail(_record(), lambda a, p: None))


if __name__ == "__main__":
    unittest.main()
