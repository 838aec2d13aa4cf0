"""
Package-level logging configuration.

* Rich console output (colourised, nicely formatted).
* Rotating **JSON** log file inside ``$BOLDQC_LOG_DIR``, an explicit log
  directory, or the package-local ``logs/`` folder.
* Optional plain-text mirror controlled via ``--save-logfile`` on the CLI.

This is diagnostic logging. The user-facing ``processing_log.txt`` written
into every output directory lives in :mod:`boldqc.utils.proclog`.
"""

from __future__ import annotations

import atexit
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

import structlog
from rich.logging import RichHandler
from structlog.dev import ConsoleRenderer as StructlogConsoleRenderer
from structlog.stdlib import LoggerFactory

__all__ = ["setup_logging", "resolve_log_dir"]


# --------------------------------------------------------------------------- #
# Internal helpers – file-based handlers                                      #
# --------------------------------------------------------------------------- #
def resolve_log_dir(log_dir: Path | None = None) -> Path:
    """Return the directory receiving the rotating JSON log.

    ``$BOLDQC_LOG_DIR`` wins over *log_dir*; without either the package-local
    ``logs/`` folder is used. The QC output directory is never used so that a
    failed precondition check leaves it untouched.
    """
    env_dir = os.environ.get("BOLDQC_LOG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    if log_dir is not None:
        return log_dir.expanduser()
    return Path(__file__).resolve().parents[1] / "logs"


def _json_file_handler(log_dir: Path | None, level: int) -> logging.Handler:
    """Return a rotating *JSON* file handler writing ``boldqc.log``."""
    logdir = resolve_log_dir(log_dir)
    logdir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=logdir / "boldqc.log",
        maxBytes=5_000_000,  # ~5 MB before rollover
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _plain_text_file_handler(path: Optional[Path], level: int) -> logging.Handler | None:
    """Return a plain-text file handler or *None* when *path* is *None*."""
    if path is None:
        return None

    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8", mode="a")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    atexit.register(handler.close)
    return handler


# --------------------------------------------------------------------------- #
# Public API – main entry-point                                               #
# --------------------------------------------------------------------------- #
def setup_logging(
    *,
    log_dir: Path | None = None,
    verbose: bool = False,
    debug: bool = False,
    extra_text_log: Optional[Path] = None,
) -> None:
    """Configure rich console logging and the file mirrors.

    Args:
        log_dir: Directory for the rotating JSON log (see :func:`resolve_log_dir`).
        verbose: Emit INFO-level messages to the console.
        debug: Emit DEBUG-level messages plus rich tracebacks.
        extra_text_log: Optional path for a plain-text mirror of console output.
    """
    console_lvl = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    file_lvl = logging.DEBUG if debug else logging.INFO

    handlers: list[logging.Handler] = [
        RichHandler(
            level=console_lvl,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        ),
        _json_file_handler(log_dir, file_lvl),
    ]

    txt_handler = _plain_text_file_handler(extra_text_log, console_lvl)
    if txt_handler:
        handlers.append(txt_handler)

    # Root logger stays at DEBUG; each handler filters on its own level.
    # ``force`` lets repeated in-process invocations (tests) start clean.
    logging.basicConfig(
        level=logging.DEBUG,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            (
                StructlogConsoleRenderer(colors=False)
                if verbose or debug
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min(console_lvl, file_lvl)),
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=False,
    )
