"""Tests for checkpoint persistence."""

import json
from unittest.mock import patch


class TestWatermark:
    """Tests for watermark persistence."""

    def test_get_watermark_returns_none_when_not_exists(self, tmp_path):
        """Should return None when no checkpoint file exists."""
        with patch("batchfeed.lib.watermark._get_state_dir", return_value=tmp_path):
            from batchfeed.lib.watermark import get_watermark

            assert get_watermark("retail", "events") is None

    def test_save_and_get_watermark(self, tmp_path):
        """Should save and retrieve the checkpoint value."""
        with patch("batchfeed.lib.watermark._get_state_dir", return_value=tmp_path):
            from batchfeed.lib.watermark import get_watermark, save_watermark

            save_watermark("retail", "events", "5")

            assert get_watermark("retail", "events") == "5"
            data = json.loads((tmp_path / "retail_events_watermark.json").read_text())
            assert data["last_value"] == "5"
            assert "updated_at" in data

    def test_delete_watermark(self, tmp_path):
        with patch("batchfeed.lib.watermark._get_state_dir", return_value=tmp_path):
            from batchfeed.lib.watermark import delete_watermark, get_watermark, save_watermark

            save_watermark("retail", "events", "2")

            assert delete_watermark("retail", "events") is True
            assert get_watermark("retail", "events") is None
            assert delete_watermark("retail", "events") is False

    def test_list_watermarks(self, tmp_path):
        with patch("batchfeed.lib.watermark._get_state_dir", return_value=tmp_path):
            from batchfeed.lib.watermark import list_watermarks, save_watermark

            save_watermark("retail", "events", "1")
            save_watermark("retail", "orders", "7")

            result = list_watermarks()

            assert set(result) == {"retail.events", "retail.orders"}
            assert result["retail.orders"]["last_value"] == "7"

    def test_invalid_file_is_ignored(self, tmp_path):
        (tmp_path / "retail_events_watermark.json").write_text("{not json")
        with patch("batchfeed.lib.watermark._get_state_dir", return_value=tmp_path):
            from batchfeed.lib.watermark import get_watermark, list_watermarks

            assert get_watermark("retail", "events") is None
            assert list_watermarks() == {}

    def test_state_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BATCHFEED_STATE_DIR", str(tmp_path / "state"))
        from batchfeed.lib.watermark import get_watermark, save_watermark

        save_watermark("retail", "events", "9")

        assert (tmp_path / "state" / "retail_events_watermark.json").exists()
        assert get_watermark("retail", "events") == "9"
