"""Run every executable in a directory, in sequence."""

__version__ = "1.1.0"

from sequence.engine import SequenceConfig, SequenceEvent, Sequencer, run_sequence
from sequence.errors import DirectoryError, ExecutionError, SequenceError, UsageError
from sequence.label import ExecutionRequest, build_request, format_label
from sequence.listing import CandidateEntry, DirectoryHandle, EntryKind, list_entries, open_directory
from sequence.outcome import Outcome, OutcomeKind, RunResult
from sequence.runner import LineSplitter, ProcessRunner
from sequence.sinks import LineSink, RecordingSink, StderrSink, SyslogPriority, SyslogSink, parse_priority

__all__ = [
    "CandidateEntry",
    "DirectoryError",
    "DirectoryHandle",
    "EntryKind",
    "ExecutionError",
    "ExecutionRequest",
    "LineSink",
    "LineSplitter",
    "Outcome",
    "OutcomeKind",
    "ProcessRunner",
    "RecordingSink",
    "RunResult",
    "SequenceConfig",
    "SequenceError",
    "SequenceEvent",
    "Sequencer",
    "StderrSink",
    "SyslogPriority",
    "SyslogSink",
    "UsageError",
    "__version__",
    "build_request",
    "format_label",
    "list_entries",
    "open_directory",
    "parse_priority",
    "run_sequence",
]
