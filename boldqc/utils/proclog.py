"""User-facing console output mirrored into ``processing_log.txt``."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import click
import structlog

log = structlog.get_logger()

CHECK = "✓"
CROSS = "✗"


class ProcessingLog:
    """Echo progress lines to the terminal and append them to a text file.

    The file is opened in append mode for every write so that repeated runs on
    the same subject accumulate history instead of truncating it.
    """

    def __init__(
        self,
        path: Path,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        echo: bool = True,
    ) -> None:
        self.path = path
        self._clock = clock or datetime.now
        self._echo = echo

    def _append(self, text: str) -> None:
        stamp = self._clock().isoformat(timespec="seconds")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            for row in text.splitlines() or [""]:
                fh.write(f"[{stamp}] {row}\n")

    def start(self, scan: Path, mask: Path) -> None:
        """Open a new run block."""
        self._append(f"Processing started: {self._clock():%a %b %d %H:%M:%S %Y}")
        self._append(f"Input file: {scan}")
        self._append(f"Mask file: {mask}")

    def line(self, text: str) -> None:
        """Print *text* and record it in the processing log."""
        if self._echo:
            click.echo(text)
        self._append(text)

    def note(self, text: str) -> None:
        """Print *text* without recording it."""
        if self._echo:
            click.echo(text)

    def section(self, title: str) -> None:
        """Print a stage banner such as ``=== STEP 2: Motion correction ===``."""
        if self._echo:
            click.echo()
            click.secho(f"=== {title} ===", fg="cyan")

    def status(self, name: str, ok: bool, detail: str | None = None) -> None:
        """Record the outcome of a stage with a check mark or a cross."""
        if ok:
            text = f"{CHECK} {name}"
        else:
            text = f"{CROSS} Failed: {name}"
            if detail:
                text += f" ({detail})"
        if self._echo:
            click.secho(text, fg="green" if ok else "red")
        self._append(text)

    def skipped(self, name: str, missing: list[str]) -> None:
        """Record a stage that did not run because a prerequisite failed."""
        text = f"- Skipped: {name} (requires {', '.join(missing)})"
        if self._echo:
            click.secho(text, fg="yellow")
        self._append(text)


__all__ = ["ProcessingLog", "CHECK", "CROSS"]
