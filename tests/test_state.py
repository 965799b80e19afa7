"""Tests for the run-state ledger."""

import json
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from pydavsync.sync.state import RunState, RunStateLedger
from pydavsync.utils import STATE_FILE_NAME


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


class TestRunState:
    """Tests for RunState serialization."""

    def test_to_dict_layout(self):
        """Test to dict layout."""
        state = RunState(files={"b.txt": "2", "a.txt": "1"}, last_run="2024-01-01")

        data = state.to_dict()

        assert data == {"files": {"a.txt": "1", "b.txt": "2"}, "lastRun": "2024-01-01"}
        assert list(data["files"]) == ["a.txt", "b.txt"]

    def test_empty_last_run_is_empty_string(self):
        """Test empty last run is empty string."""
        assert RunState().to_dict() == {"files": {}, "lastRun": ""}

    def test_from_dict(self):
        """Test from dict."""
        state = RunState.from_dict({"files": {"a.txt": "1"}, "lastRun": "ts"})

        assert state.files == {"a.txt": "1"}
        assert state.last_run == "ts"

    def test_from_dict_rejects_invalid_files(self):
        """Test from dict rejects invalid files."""
        with pytest.raises(ValueError):
            RunState.from_dict({"files": ["a.txt"]})


class TestRunStateLedger:
    """Tests for RunStateLedger."""

    def test_state_file_lives_in_root(self, temp_dir):
        """Test state file lives in root."""
        ledger = RunStateLedger(temp_dir)

        assert ledger.state_path == temp_dir / STATE_FILE_NAME

    def test_missing_file_is_empty(self, temp_dir):
        """Test missing file is empty."""
        ledger = RunStateLedger(temp_dir)

        assert ledger.load() is False
        assert len(ledger) == 0
        assert ledger.last_run is None

    def test_record_and_persist(self, temp_dir):
        """Test record and persist."""
        ledger = RunStateLedger(temp_dir)
        ledger.record_uploaded("docs/a.txt", "abc")
        ledger.save()

        data = json.loads((temp_dir / STATE_FILE_NAME).read_text())
        assert data == {"files": {"docs/a.txt": "abc"}, "lastRun": ""}

        reloaded = RunStateLedger(temp_dir)
        assert reloaded.load() is True
        assert reloaded.is_current("docs/a.txt", "abc")
        assert not reloaded.is_current("docs/a.txt", "other")
        assert not reloaded.is_current("missing.txt", "abc")

    def test_run_completion_timestamp(self, temp_dir):
        """Test run completion timestamp."""
        ledger = RunStateLedger(temp_dir)

        timestamp = ledger.record_run_completion_timestamp()

        assert ledger.last_run == timestamp
        assert datetime.fromisoformat(timestamp).tzinfo is not None

    def test_corrupt_file_yields_empty_ledger(self, temp_dir):
        """Test corrupt file yields empty ledger."""
        (temp_dir / STATE_FILE_NAME).write_text("garbage")
        ledger = RunStateLedger(temp_dir)

        assert ledger.load() is False
        assert len(ledger) == 0

    def test_files_property_is_a_copy(self, temp_dir):
        """Test files property is a copy."""
        ledger = RunStateLedger(temp_dir)
        ledger.record_uploaded("a.txt", "1")

        ledger.files["b.txt"] = "2"

        assert ledger.get("b.txt") is None

    def test_save_failure_returns_false(self, temp_dir):
        """Test save failure returns false."""
        ledger = RunStateLedger(temp_dir)

        with patch(
            "pydavsync.sync.state.write_json_atomic", side_effect=OSError("read-only")
        ):
            assert ledger.save() is False
