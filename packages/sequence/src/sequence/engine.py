"""Sequencer: list a directory, then print or run its entries in order."""

from __future__ import annotations

import logging
import os
import sys
import time
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from sequence.eligibility import is_ignorable_spawn_error, is_printable
from sequence.label import build_request, format_label
from sequence.listing import CandidateEntry, DirectoryHandle, list_entries, open_directory
from sequence.outcome import Outcome, OutcomeKind, RunResult
from sequence.runner import ProcessRunner
from sequence.sinks import LineSink

logger = logging.getLogger(__name__)


@dataclass
class SequenceConfig:
    directory: str = ""
    args: list[str] = field(default_factory=list)
    base_dir: str | None = None
    print_only: bool = False
    zero: bool = False
    ignore: bool = False
    sink: LineSink | None = None
    output: BinaryIO | None = None


@dataclass
class SequenceEvent:
    kind: str
    label: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = time.time()


class Sequencer:
    """Runs every eligible entry of one directory, halting on the first failure."""

    def __init__(self, config: SequenceConfig, runner: ProcessRunner | None = None) -> None:
        self.config = config
        self._runner = runner or ProcessRunner(sink=config.sink)
        self._events: list[SequenceEvent] = []

    @property
    def events(self) -> list[SequenceEvent]:
        return list(self._events)

    def _emit(self, kind: str, label: str = "", **data: Any) -> None:
        self._events.append(SequenceEvent(kind=kind, label=label, data=data))

    async def run(self) -> RunResult:
        """List the directory, then print or execute its entries.

        Raises DirectoryError if the directory cannot be listed; nothing
        has run at that point.
        """
        config = self.config
        self._emit("sequence.start", directory=config.directory, print_only=config.print_only)
        try:
            with open_directory(config.directory, config.base_dir) as handle:
                entries = list_entries(handle)
                logger.debug("Found %d entries in %s", len(entries), handle.path)
                if config.print_only:
                    return self._print(handle, entries)
            return await self._execute(handle, entries)
        finally:
            if config.sink is not None:
                config.sink.close()

    def _print(self, handle: DirectoryHandle, entries: list[CandidateEntry]) -> RunResult:
        output = self.config.output or sys.stdout.buffer
        terminator = b"\0" if self.config.zero else b"\n"
        printed: list[str] = []
        for entry in entries:
            label = format_label(handle.path, entry.name)
            if self.config.ignore and not is_printable(handle, entry.name):
                self._emit("entry.skip", label, reason="not executable")
                logger.debug("Not printing %s: not executable", label)
                continue
            output.write(os.fsencode(label) + terminator)
            printed.append(label)
            self._emit("entry.print", label)
        output.flush()
        self._emit("sequence.complete", count=len(printed))
        return RunResult(exit_status=0, completed=printed)

    async def _execute(self, handle: DirectoryHandle, entries: list[CandidateEntry]) -> RunResult:
        completed: list[str] = []
        for entry in entries:
            request = build_request(handle.path, handle.resolved, entry.name, self.config.args)
            self._emit("entry.start", request.label)
            logger.info("Running %s", request.label)

            outcome = await self._runner.run(request)
            if (
                outcome.kind == OutcomeKind.SPAWN_ERROR
                and self.config.ignore
                and is_ignorable_spawn_error(outcome.cause)
            ):
                outcome = Outcome.skipped(request.label, cause=outcome.cause)
                logger.debug("Skipping %s: permission denied", request.label)

            self._emit("entry.complete", request.label, status=outcome.kind.value)
            if not outcome.should_continue:
                return self._halt(outcome, completed)
            if outcome.is_success:
                completed.append(request.label)

        self._emit("sequence.complete", count=len(completed))
        return RunResult(exit_status=0, completed=completed)

    def _halt(self, outcome: Outcome, completed: list[str]) -> RunResult:
        message = outcome.describe()
        self._emit("sequence.halt", outcome.label, status=outcome.kind.value,
                   exit_status=outcome.exit_status)
        logger.info("Halting after %s", message)
        return RunResult(
            exit_status=outcome.exit_status,
            outcome=outcome,
            completed=completed,
            message=message,
        )


async def run_sequence(config: SequenceConfig) -> RunResult:
    """Convenience wrapper: build a Sequencer for ``config`` and run it."""
    return await Sequencer(config).run()
