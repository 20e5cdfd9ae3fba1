"""Per-entry outcomes and the overall run result."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sequence.errors import EXIT_FAILURE, ExecutionError, describe_os_error

SIGNAL_EXIT_OFFSET = 128


class OutcomeKind(Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED_EXIT = "failed_exit"
    FAILED_SIGNAL = "failed_signal"
    SPAWN_ERROR = "spawn_error"
    WAIT_ERROR = "wait_error"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind = OutcomeKind.SUCCEEDED
    label: str = ""
    code: int | None = None
    signal: int | None = None
    cause: BaseException | None = None

    @classmethod
    def skipped(cls, label: str, cause: BaseException | None = None) -> Outcome:
        return cls(kind=OutcomeKind.SKIPPED, label=label, cause=cause)

    @classmethod
    def succeeded(cls, label: str) -> Outcome:
        return cls(kind=OutcomeKind.SUCCEEDED, label=label, code=0)

    @classmethod
    def failed_exit(cls, label: str, code: int) -> Outcome:
        return cls(kind=OutcomeKind.FAILED_EXIT, label=label, code=code)

    @classmethod
    def failed_signal(cls, label: str, signum: int) -> Outcome:
        return cls(kind=OutcomeKind.FAILED_SIGNAL, label=label, signal=signum)

    @classmethod
    def spawn_error(cls, label: str, cause: BaseException) -> Outcome:
        return cls(kind=OutcomeKind.SPAWN_ERROR, label=label, cause=cause)

    @classmethod
    def wait_error(cls, label: str, cause: BaseException | None = None) -> Outcome:
        return cls(kind=OutcomeKind.WAIT_ERROR, label=label, cause=cause)

    @property
    def is_success(self) -> bool:
        return self.kind == OutcomeKind.SUCCEEDED

    @property
    def should_continue(self) -> bool:
        """True when the sequence may move on to the next entry."""
        return self.kind in (OutcomeKind.SUCCEEDED, OutcomeKind.SKIPPED)

    @property
    def exit_status(self) -> int:
        """Exit status this outcome contributes to the whole run."""
        if self.should_continue:
            return 0
        if self.kind == OutcomeKind.FAILED_EXIT:
            return self.code
        if self.kind == OutcomeKind.FAILED_SIGNAL:
            return self.signal + SIGNAL_EXIT_OFFSET
        return EXIT_FAILURE

    def describe(self) -> str:
        """One-line human description, without the program prefix."""
        if self.kind == OutcomeKind.SUCCEEDED:
            return f"{self.label} succeeded"
        if self.kind == OutcomeKind.SKIPPED:
            return f"{self.label} skipped"
        if self.kind == OutcomeKind.FAILED_EXIT:
            return f"{self.label} returned {self.code}"
        if self.kind == OutcomeKind.FAILED_SIGNAL:
            return f"{self.label} signaled {self.signal}"
        if self.kind == OutcomeKind.SPAWN_ERROR:
            return f"Could not execute '{self.label}': {describe_os_error(self.cause)}"
        if self.cause is not None:
            return f"waitpid for '{self.label}' failed: {describe_os_error(self.cause)}"
        return f"{self.label} failed with an unrecognized wait status"


@dataclass
class RunResult:
    exit_status: int = 0
    outcome: Outcome | None = None
    completed: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.exit_status == 0

    def raise_for_status(self) -> None:
        if self.is_success:
            return
        label = self.outcome.label if self.outcome else ""
        cause = self.outcome.cause if self.outcome else None
        raise ExecutionError(
            self.message or f"{label} failed",
            label=label,
            exit_status=self.exit_status,
            cause=cause if isinstance(cause, Exception) else None,
        )
