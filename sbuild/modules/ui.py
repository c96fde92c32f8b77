# sbuild/modules/ui.py
"""
Console presentation for sbuild.

- ok / info / warn / fail status lines (rich markup, plain text when not a tty)
- Reporter.step(): a scoped spinner shown while one blocking command runs.
  The spinner runs on rich's refresh thread; leaving the `with` block, on
  success or on an exception, always stops and joins it before the result
  line is printed.
"""

from __future__ import annotations

import contextlib
from typing import Iterator, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class StepResult:
    """Set `note` inside a step to report a non-fatal problem instead of "done"."""

    def __init__(self):
        self.note = ""


class Reporter:
    def __init__(self, console: Optional[Console] = None, spinner: bool = True, quiet: bool = False):
        self.console = console or Console(highlight=False)
        self.spinner = spinner
        self.quiet = quiet

    # -----------------------
    # Small pretty helpers
    # -----------------------
    def ok(self, msg: str) -> None:
        if not self.quiet:
            self.console.print(f"[bold green][ OK ][/] {escape(msg)}")

    def info(self, msg: str) -> None:
        if not self.quiet:
            self.console.print(f"[bold blue][INFO][/] {escape(msg)}")

    def warn(self, msg: str) -> None:
        if not self.quiet:
            self.console.print(f"[bold yellow][WARN][/] {escape(msg)}")

    def fail(self, msg: str) -> None:
        # failures are printed even in quiet mode
        self.console.print(f"[bold red][FAIL][/] {escape(msg)}")

    def line(self, text: str = "") -> None:
        if not self.quiet:
            self.console.print(escape(text))

    def table(self, title: str, rows: List[tuple]) -> None:
        if self.quiet:
            return
        t = Table(title=title, show_header=False, box=None)
        t.add_column("key", style="bold")
        t.add_column("value")
        for k, v in rows:
            t.add_row(escape(str(k)), escape(str(v)))
        self.console.print(t)

    # -----------------------
    # Scoped spinner
    # -----------------------
    @contextlib.contextmanager
    def step(self, text: str) -> Iterator[StepResult]:
        animate = self.spinner and not self.quiet and self.console.is_terminal
        status = self.console.status(f"[cyan]{escape(text)}[/]", spinner="line") if animate else None
        if status is not None:
            status.start()
        result = StepResult()
        try:
            yield result
        except BaseException:
            # the caller reports the failure once, at the stage that owns it
            if status is not None:
                status.stop()
            raise
        else:
            if status is not None:
                status.stop()
            if result.note:
                self.warn(f"{text}: {result.note}")
            else:
                self.ok(f"{text}: done")
