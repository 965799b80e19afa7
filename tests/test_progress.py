"""Tests for the progress tracker."""

import io
import threading

import pytest
from rich.console import Console

from pydavsync.output import OutputFormatter
from pydavsync.sync.progress import ProgressTracker


def make_output(quiet: bool = False):
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, width=120)
    return OutputFormatter(quiet=quiet, console=console, err_console=console), buffer


@pytest.fixture
def tracker():
    output, _ = make_output(quiet=True)
    return ProgressTracker(output)


class TestProgressCounting:
    """Tests for counters and percentages."""

    def test_percentage(self, tracker):
        """Test percentage is floored."""
        tracker.initialize(3)
        assert tracker.get_percentage() == 0

        tracker.record_success()
        assert tracker.get_percentage() == 33

        tracker.record_failure()
        assert tracker.get_percentage() == 66

        tracker.record_success()
        assert tracker.get_percentage() == 100

    def test_zero_total(self, tracker):
        """Test zero total."""
        tracker.initialize(0)

        assert tracker.get_percentage() == 0
        assert tracker.is_complete() is False

    def test_is_complete_counts_failures(self, tracker):
        """Test is complete counts failures."""
        tracker.initialize(2)
        tracker.record_success()
        assert tracker.is_complete() is False

        tracker.record_failure()
        assert tracker.is_complete() is True

    def test_percentage_is_monotonic(self, tracker):
        """Test percentage is monotonic."""
        tracker.initialize(7)
        seen = [tracker.get_percentage()]
        for i in range(7):
            if i % 3 == 0:
                tracker.record_failure()
            else:
                tracker.record_success()
            seen.append(tracker.get_percentage())

        assert seen == sorted(seen)
        assert seen[-1] == 100

    def test_initialize_resets(self, tracker):
        """Test initialize resets."""
        tracker.initialize(2)
        tracker.record_success()
        tracker.initialize(5)

        assert tracker.processed_files == 0
        assert tracker.total_files == 5

    def test_concurrent_updates(self, tracker):
        """Test concurrent updates."""
        tracker.initialize(400)

        def work():
            for _ in range(100):
                tracker.record_success()

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.completed_files == 400
        assert tracker.is_complete()


class TestProgressDisplay:
    """Tests for the periodic display and summary."""

    def test_quiet_mode_starts_no_thread(self, tracker):
        """Test quiet mode starts no thread."""
        tracker.initialize(1)
        tracker.start_periodic_display(10)

        assert tracker._thread is None
        tracker.stop_periodic_display()

    def test_start_and_stop(self):
        """Test start and stop."""
        output, _ = make_output()
        tracker = ProgressTracker(output)
        tracker.initialize(2)

        tracker.start_periodic_display(5)
        tracker.record_success()
        tracker.record_success()
        tracker.stop_periodic_display()

        assert tracker._thread is None
        assert tracker._progress is None

    def test_stop_is_idempotent(self):
        """Test stop is idempotent."""
        output, _ = make_output()
        tracker = ProgressTracker(output)
        tracker.initialize(1)
        tracker.start_periodic_display(5)

        tracker.stop_periodic_display()
        tracker.stop_periodic_display()

    def test_summary_success(self):
        """Test summary success."""
        output, buffer = make_output()
        tracker = ProgressTracker(output)
        tracker.initialize(2)
        tracker.record_success()
        tracker.record_success()

        tracker.display_summary()

        assert "Upload completed successfully! All 2 files uploaded." in buffer.getvalue()

    def test_summary_with_failures(self):
        """Test summary with failures."""
        output, buffer = make_output()
        tracker = ProgressTracker(output)
        tracker.initialize(5)
        for _ in range(4):
            tracker.record_success()
        tracker.record_failure()

        tracker.display_summary()

        assert (
            "Upload completed with issues: 4 succeeded, 1 failed." in buffer.getvalue()
        )

    def test_summary_shown_when_quiet(self):
        """Test summary shown when quiet."""
        output, buffer = make_output(quiet=True)
        tracker = ProgressTracker(output)
        tracker.initialize(1)
        tracker.record_success()

        tracker.display_summary()

        assert "All 1 files uploaded." in buffer.getvalue()
