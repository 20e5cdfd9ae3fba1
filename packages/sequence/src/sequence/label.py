"""Labels and execution requests for directory entries."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ExecutionRequest:
    label: str
    argv: tuple[str, ...]
    executable: str
    cwd: str


def format_label(directory: str, name: str) -> str:
    """Join the directory as given by the user with an entry name."""
    return f"{directory}/{name}"


def build_request(directory: str, resolved_dir: str, name: str, args: tuple[str, ...] | list[str] = ()) -> ExecutionRequest:
    """Build a fresh request for one entry.

    The label replaces argv[0] and the trailing arguments follow verbatim.
    The executable is looked up relative to ``cwd``, the resolved directory.
    """
    label = format_label(directory, name)
    return ExecutionRequest(
        label=label,
        argv=(label, *args),
        executable=os.path.join(os.curdir, name),
        cwd=resolved_dir,
    )
