"""Exceptions raised across the QC pipeline."""

from __future__ import annotations


class QCError(RuntimeError):
    """Base class for every error raised by *boldqc*."""

    pass


class InputValidationError(QCError):
    """Raised when a required input file is missing before any work starts."""

    def __init__(self, kind: str, path: object) -> None:
        self.kind = kind
        self.path = path
        super().__init__(f"{kind} file '{path}' not found!")


class ToolkitError(QCError):
    """Raised when an external toolkit command fails or returns garbage."""

    def __init__(self, message: str, *, cmd: list[str] | None = None, returncode: int | None = None) -> None:
        self.cmd = cmd or []
        self.returncode = returncode
        super().__init__(message)


__all__ = ["QCError", "InputValidationError", "ToolkitError"]
