"""Tests for the command line runner."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import tenacity

from batchfeed.__main__ import main
from batchfeed.lib.errors import StorageIOError


@pytest.fixture(autouse=True)
def state_dir(tmp_path, monkeypatch):
    state = tmp_path / "state"
    monkeypatch.setenv("BATCHFEED_STATE_DIR", str(state))
    yield state
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.__class__ is logging.StreamHandler:
            root.removeHandler(handler)


def _printed_names(out: str, root: Path) -> list:
    return [Path(line).relative_to(root.resolve()).as_posix() for line in out.splitlines()]


class TestSelectCommand:
    def test_prints_next_batch(self, sample_yaml, batch_root, capsys):
        assert main(["select", str(sample_yaml)]) == 0

        assert _printed_names(capsys.readouterr().out, batch_root) == ["1/part-0000.csv"]

    def test_explicit_checkpoint(self, sample_yaml, batch_root, capsys):
        assert main(["select", str(sample_yaml), "--checkpoint", "2"]) == 0

        assert _printed_names(capsys.readouterr().out, batch_root) == ["5/part-0000.csv"]

    def test_json_output(self, sample_yaml, capsys):
        assert main(["select", str(sample_yaml), "--checkpoint", "1", "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["checkpoint"] == "2"
        assert payload["batch_ids"] == [2]
        assert payload["file_count"] == 2

    def test_commit_walks_batches(self, sample_yaml, state_dir, capsys):
        for expected in ("1", "2", "5"):
            assert main(["select", str(sample_yaml), "--commit"]) == 0
            assert main(["show-checkpoint", str(sample_yaml)]) == 0
            assert capsys.readouterr().out.splitlines()[-1] == expected

        # Nothing new: checkpoint stays at 5
        assert main(["select", str(sample_yaml), "--commit"]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "No new data after checkpoint 5" in captured.err
        assert json.loads((state_dir / "retail_events_watermark.json").read_text())["last_value"] == "5"

    def test_from_start_ignores_stored_checkpoint(self, sample_yaml, batch_root, capsys):
        main(["select", str(sample_yaml), "--commit"])
        capsys.readouterr()

        assert main(["select", str(sample_yaml), "--from-start"]) == 0
        assert _printed_names(capsys.readouterr().out, batch_root) == ["1/part-0000.csv"]

    def test_invalid_checkpoint_exits_with_error(self, sample_yaml, capsys):
        assert main(["select", str(sample_yaml), "--checkpoint", "abc"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_config_exits_with_error(self, tmp_path, capsys):
        assert main(["select", str(tmp_path / "missing.yaml")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_retries_storage_errors(self, sample_yaml, batch_root, capsys):
        from batchfeed.lib.selector import BatchCheckpointSelector

        original = BatchCheckpointSelector.select_next_batch
        calls = []

        def flaky(self, previous_checkpoint=None, source_limit=0):
            calls.append(previous_checkpoint)
            if len(calls) == 1:
                raise StorageIOError("listing failed", checkpoint=previous_checkpoint)
            return original(self, previous_checkpoint, source_limit)

        with patch.object(BatchCheckpointSelector, "select_next_batch", flaky), patch(
            "batchfeed.lib.resilience.RetryConfig.wait_strategy",
            return_value=tenacity.wait_none(),
        ):
            assert main(["select", str(sample_yaml), "--retries", "2"]) == 0

        assert len(calls) == 2
        assert _printed_names(capsys.readouterr().out, batch_root) == ["1/part-0000.csv"]


class TestCheckpointCommands:
    def test_show_without_checkpoint(self, sample_yaml, capsys):
        assert main(["show-checkpoint", str(sample_yaml)]) == 0
        assert "No checkpoint stored for retail.events" in capsys.readouterr().out

    def test_reset(self, sample_yaml, capsys):
        main(["select", str(sample_yaml), "--commit"])

        assert main(["reset-checkpoint", str(sample_yaml)]) == 0
        assert "deleted" in capsys.readouterr().out
        assert main(["reset-checkpoint", str(sample_yaml)]) == 0
        assert "No checkpoint stored" in capsys.readouterr().out


class TestParser:
    def test_list_selectors(self, capsys):
        assert main(["--list"]) == 0
        assert capsys.readouterr().out.split() == ["batch_id", "modification_time"]

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out


class TestMessages:
    def test_no_data_without_checkpoint(self, tmp_path, capsys):
        (tmp_path / "empty").mkdir()
        config = tmp_path / "empty.yaml"
        config.write_text("selector:\n  root_input_path: ./empty\n")

        assert main(["select", str(config)]) == 0

        err = capsys.readouterr().err
        assert "No data found under" in err
        assert "None" not in err

    def test_env_file_feeds_root(self, tmp_path, batch_root, monkeypatch, capsys):
        monkeypatch.delenv("BATCHFEED_LANDING", raising=False)
        env_file = tmp_path / "selector.env"
        env_file.write_text(f"BATCHFEED_LANDING={batch_root}\n")
        config = tmp_path / "env.yaml"
        config.write_text(
            "selector:\n"
            "  root_input_path: ${BATCHFEED_LANDING}\n"
            "  ignore_prefixes: ['.tmp', '_']\n"
        )

        assert main(["--env-file", str(env_file), "select", str(config)]) == 0

        assert _printed_names(capsys.readouterr().out, batch_root) == ["1/part-0000.csv"]
        monkeypatch.delenv("BATCHFEED_LANDING")

    def test_missing_env_file_exits_with_error(self, sample_yaml, tmp_path, capsys):
        assert main(["--env-file", str(tmp_path / "nope.env"), "select", str(sample_yaml)]) == 1
        assert "Env file not found" in capsys.readouterr().err
