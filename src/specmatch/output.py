"""Rendering of check results, feature tables, and diagnostics.

Data (results, tables, converted specs) goes to stdout so it can be piped
into ``jq`` or saved with ``-o``. Status lines, warnings, errors, and
recommendations go to stderr. Rich styling is used only when stdout is a
terminal and neither ``NO_COLOR``, ``TERM=dumb``, nor ``--no-color`` asks
for plain text.

:func:`~specmatch.app.main_callback` builds one :class:`OutputManager` per
invocation and installs it with :func:`set_output`; command modules call the
module-level shortcuts (:func:`info`, :func:`print_result`, ...) instead of
passing the manager around.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional, Union

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from specmatch.models import DiffAnalysisResult, DiffIssue, Severity, ValidationResult

_SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
}

_ISSUE_HEADERS = ["Severity", "Type", "Message", "Location", "Suggestion"]


class OutputFormat(str, Enum):
    """How primary data is rendered.

    ``AUTO`` picks ``RICH`` for an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else; ``--json`` and ``--plain`` force a choice.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Holds the resolved format and the two Rich consoles of one CLI run.

    Args:
        format: Requested format; ``AUTO`` is resolved immediately.
        no_color: Strip colour and markup (also implied by ``NO_COLOR``).
        quiet: Drop info, success, and suggestion lines.
        verbose: Show debug lines.
        output_file: Send primary data to this path instead of stdout.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_data(self, data: Any) -> None:
        """Render a dict, list, or string to stdout in the active format.

        When an ``output_file`` was configured, data is written there
        instead.
        """
        if self._output_file:
            self._write_to_file(data)
            return

        if self._format == OutputFormat.JSON:
            self._print_json(data)
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            self._print_rich(data)

    def print_data(self, text: str) -> None:
        """Write *text* as one line of primary output.

        With ``output_file`` set the line is appended to that file.
        """
        if self._output_file:
            _write_line(self._output_file, text, "a")
        else:
            print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows under *headers*.

        JSON mode emits a list of objects keyed by header, plain mode a
        tab-separated header line followed by one line per row. *title* is
        shown only by the Rich table.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(_dumps(records))

        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))

        else:
            self._stdout.print(_rich_table(headers, rows, title))

    def print_result(self, result: Union[DiffAnalysisResult, ValidationResult]) -> None:
        """Render a check result.

        JSON mode dumps the whole model.  Plain and Rich modes print one
        line or row per issue followed by the score and recommendations.
        """
        if self._format == OutputFormat.JSON or self._output_file:
            self.format_data(result.model_dump(mode="json"))
            return

        if isinstance(result, DiffAnalysisResult):
            issues, ok = list(result.issues), result.is_compatible
        else:
            issues, ok = [*result.errors, *result.warnings], result.is_valid

        if self._format == OutputFormat.PLAIN:
            for issue in issues:
                self.print_data("\t".join(_issue_cells(issue)))
        elif issues:
            rows = []
            for issue in issues:
                severity, *rest = _issue_cells(issue)
                style = _SEVERITY_STYLES[issue.severity]
                rows.append([f"[{style}]{severity}[/{style}]", *(escape(c) for c in rest)])
            self._stdout.print(_rich_table(_ISSUE_HEADERS, rows))

        summary = result.summary
        status = "compatible" if ok else "incompatible"
        self.print_data(
            f"{status}: score {summary.compatibility_score}, "
            f"{summary.error_count} error(s), {summary.warning_count} warning(s)"
        )
        for rec in result.recommendations:
            self.suggest(f"{rec.priority.upper()}: {rec.text}. {rec.action}")

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational status line. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, message)

    def success(self, message: str) -> None:
        """Green confirmation line. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Yellow warning, shown even with ``--quiet``."""
        self._diagnostic(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Bold-red error, always shown."""
        self._diagnostic(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Dimmed next step or recommendation. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(f"→ {message}", f"[dim]→ {message}[/dim]")

    def debug(self, message: str) -> None:
        """Trace line, shown only with ``--verbose``."""
        if self._verbose:
            self._diagnostic(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    def _diagnostic(self, plain: str, markup: str) -> None:
        # Without colour the text bypasses Rich so nothing is wrapped or styled.
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_json(self, data: Any) -> None:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                # Not JSON: pass the text through untouched.
                self.print_data(data)
                return
        self.print_data(_dumps(data))

    def _print_plain(self, data: Any) -> None:
        for line in _plain_lines(data):
            self.print_data(line)

    def _print_rich(self, data: Any) -> None:
        if isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_dumps(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def _write_to_file(self, data: Any) -> None:
        assert self._output_file is not None
        text = _dumps(data) if isinstance(data, (dict, list)) else str(data)
        _write_line(self._output_file, text, "w")


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _write_line(path: str, text: str, mode: str) -> None:
    with open(path, mode, encoding="utf-8") as f:
        f.write(text if text.endswith("\n") else text + "\n")


def _plain_lines(data: Any) -> list[str]:
    """Flatten *data* into tab-separated lines.

    A dict becomes one ``key<TAB>value`` line per item; a list becomes one
    line per element, with dict elements reduced to their values.
    """
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _rich_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    return table


def _issue_cells(issue: DiffIssue) -> list[str]:
    return [
        issue.severity.value,
        issue.type.value,
        issue.message,
        str(issue.location) if issue.location else "-",
        ", ".join(issue.suggestions) or "-",
    ]


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating an ``AUTO`` one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next :func:`get_output` builds a fresh one."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Shortcuts bound to the global instance
# ------------------------------------------------------------------ #


def format_data(data: Any) -> None:
    get_output().format_data(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def print_result(result: Union[DiffAnalysisResult, ValidationResult]) -> None:
    """Render a check result; see :meth:`OutputManager.print_result`."""
    get_output().print_result(result)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
