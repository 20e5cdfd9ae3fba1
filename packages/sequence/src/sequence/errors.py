"""Error hierarchy for the sequence runner."""

from __future__ import annotations

EXIT_FAILURE = 1


class SequenceError(Exception):
    """Base error for all sequence errors."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

    @property
    def exit_status(self) -> int:
        return EXIT_FAILURE


class UsageError(SequenceError):
    """Bad flags, a missing directory, or an unknown syslog facility/level."""


class DirectoryError(SequenceError):
    """The target directory could not be opened, entered or enumerated."""

    def __init__(self, message: str, *, path: str, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.path = path


class ExecutionError(SequenceError):
    """An entry ended the run with a non-success outcome."""

    def __init__(self, message: str, *, label: str, exit_status: int, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.label = label
        self._exit_status = exit_status

    @property
    def exit_status(self) -> int:
        return self._exit_status


def describe_os_error(exc: BaseException) -> str:
    """Return the strerror text of an OSError, or its string form."""
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc)
