"""Tests for the output formatter."""

import io

from rich.console import Console

from pydavsync.output import OutputFormatter


def make_formatter(**kwargs):
    out, err = io.StringIO(), io.StringIO()
    formatter = OutputFormatter(
        console=Console(file=out, width=120),
        err_console=Console(file=err, width=120),
        **kwargs,
    )
    return formatter, out, err


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_quiet_suppresses_info(self):
        """Test quiet suppresses info."""
        formatter, out, err = make_formatter(quiet=True)

        formatter.info("scanning")
        formatter.success("done")
        formatter.warning("careful")
        formatter.error("broken")

        assert out.getvalue() == ""
        assert "broken" in err.getvalue()

    def test_always_ignores_quiet(self):
        """Test always ignores quiet."""
        formatter, out, _ = make_formatter(quiet=True)

        formatter.always("summary")

        assert "summary" in out.getvalue()

    def test_detail_requires_verbose(self):
        """Test detail requires verbose."""
        formatter, out, _ = make_formatter()
        formatter.detail("hidden")
        assert out.getvalue() == ""

        formatter, out, _ = make_formatter(verbose=True)
        formatter.detail("shown")
        assert "shown" in out.getvalue()

    def test_quiet_wins_over_verbose(self):
        """Test quiet wins over verbose."""
        formatter, _, _ = make_formatter(quiet=True, verbose=True)

        assert formatter.verbose is False
