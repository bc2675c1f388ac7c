from __future__ import annotations

import unittest

from hive_portfolio.metadata import parse_metadata


class TestParseMetadata(unittest.TestCase):
    def test_json_string(self) -> None:
        result = parse_metadata('{"tags": ["a", 1, "b"], "thumbnail": " https://x/t.jpg "}')
        self.assertTrue(result.ok)
        self.assertEqual(result.get_list("tags"), ["a", "b"])
        self.assertEqual(result.get_str("thumbnail"), "https://x/t.jpg")

    def test_blank_is_empty_success(self) -> None:
        for raw in (None, "", "   ", b""):
            result = parse_metadata(raw)
            self.assertTrue(result.ok, msg=repr(raw))
            self.assertEqual(dict(result.data), {})

    def test_mapping_passthrough(self) -> None:
        result = parse_metadata({"image": ["https://x/1.jpg"]})
        self.assertTrue(result.ok)
        self.assertEqual(result.get_list("image"), ["https://x/1.jpg"])

    def test_bytes(self) -> None:
        self.assertEqual(parse_metadata(b'{"tags": ["x"]}').get_list("tags"), ["x"])

    def test_malformed_is_failed_empty(self) -> None:
        result = parse_metadata("{not json")
        self.assertFalse(result.ok)
        self.assertTrue(result.error)
        self.assertEqual(result.get_list("tags"), [])

    def test_non_object_json(self) -> None:
        result = parse_metadata('["a"]')
        self.assertFalse(result.ok)
        self.assertIn("list", result.error or "")

    def test_unsupported_type(self) -> None:
        self.assertFalse(parse_metadata(12).ok)

    def test_wrong_field_types(self) -> None:
        result = parse_metadata('{"tags": "art", "thumbnail": ["x"]}')
        self.assertTrue(result.ok)
        self.assertEqual(result.get_list("tags"), [])
        self.assertIsNone(result.get_str("thumbnail"))


if __name__ == "__main__":
    unittest.main()
