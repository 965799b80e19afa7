"""Console output formatting for the CLI."""

from typing import Optional

from rich.console import Console


class OutputFormatter:
    """Formats user-facing messages with Rich.

    Informational messages are suppressed in quiet mode, errors are always
    written to stderr.
    """

    def __init__(
        self,
        quiet: bool = False,
        verbose: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            quiet: Suppress non-essential output
            verbose: Show per-file details
            console: Console for regular output (defaults to stdout)
            err_console: Console for errors (defaults to stderr)
        """
        self.quiet = quiet
        self.verbose = verbose and not quiet
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def print(self, message: str = "") -> None:
        """Print a plain message."""
        if not self.quiet:
            self.console.print(message, highlight=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet:
            self.console.print(message, highlight=False)

    def detail(self, message: str) -> None:
        """Print a message only in verbose mode."""
        if self.verbose:
            self.console.print(f"[dim]{message}[/dim]", highlight=False)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.quiet:
            self.console.print(f"[green]✓[/green] {message}", highlight=False)

    def warning(self, message: str) -> None:
        """Print a warning message."""
        if not self.quiet:
            self.console.print(f"[yellow]⚠[/yellow] {message}", highlight=False)

    def error(self, message: str) -> None:
        """Print an error message to stderr, even in quiet mode."""
        self.err_console.print(f"[red]✗[/red] {message}", highlight=False)

    def always(self, message: str) -> None:
        """Print a message regardless of quiet mode."""
        self.console.print(message, highlight=False)
