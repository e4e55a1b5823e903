"""Tests for the captured exchange file format."""

from __future__ import annotations

import json
from pathlib import Path

from laradoc.formats.captured import (
    CapturedExchange,
    CapturedRequest,
    dump_capture_file,
    load_capture_file,
)


def _exchange(response: object) -> CapturedExchange:
    return CapturedExchange(
        request=CapturedRequest(query={"page": "1"}),
        response=response,
        captured_at="2026-01-01T00:00:00+00:00",
    )


class TestCaptureFile:
    def test_dump_sorts_status_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "GET_api_users.json"
        dump_capture_file(path, {404: _exchange({"message": "x"}), 200: _exchange([])})
        raw = json.loads(path.read_text())
        assert list(raw) == ["200", "404"]
        assert raw["200"]["request"]["query"] == {"page": "1"}

    def test_load_back(self, tmp_path: Path) -> None:
        path = tmp_path / "GET_api_users.json"
        dump_capture_file(path, {200: _exchange({"id": 1})})
        loaded = load_capture_file(path)
        assert loaded is not None
        assert loaded[200].response == {"id": 1}
        assert loaded[200].content_type == "application/json"

    def test_missing_or_invalid(self, tmp_path: Path) -> None:
        assert load_capture_file(tmp_path / "missing.json") is None
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2")
        assert load_capture_file(bad) is None
        listing = tmp_path / "list.json"
        listing.write_text("[]")
        assert load_capture_file(listing) is None

    def test_invalid_entries_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "x.json"
        path.write_text(json.dumps({
            "200": {"response": {"ok": True}, "captured_at": "2026-01-01T00:00:00+00:00"},
            "abc": {"response": {}, "captured_at": "2026-01-01T00:00:00+00:00"},
            "500": {"response": {}},
        }))
        loaded = load_capture_file(path)
        assert loaded is not None
        assert list(loaded) == [200]
