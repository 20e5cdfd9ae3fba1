"""Directory enumeration for the sequence runner.

The whole listing is materialized and sorted before anything runs, so
entries added or removed while executables run never change the order.
"""

from __future__ import annotations

import logging
import os
import stat
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from sequence.errors import DirectoryError, describe_os_error
from sequence.label import format_label

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."


class EntryKind(Enum):
    REGULAR = "regular"
    SYMLINK_TO_REGULAR = "symlink_to_regular"
    OTHER = "other"


@dataclass(frozen=True)
class CandidateEntry:
    name: str
    kind: EntryKind = EntryKind.REGULAR


@dataclass
class DirectoryHandle:
    """An open directory bound to the path it was requested as."""

    path: str
    resolved: str
    fd: int

    def close(self) -> None:
        if self.fd >= 0:
            os.close(self.fd)
            self.fd = -1

    @property
    def closed(self) -> bool:
        return self.fd < 0


def resolve_directory(path: str, base_dir: str | None = None) -> str:
    """Path of ``path`` as seen from ``base_dir`` (absolute paths win)."""
    if base_dir:
        return os.path.join(base_dir, path)
    return path


@contextmanager
def open_directory(path: str, base_dir: str | None = None) -> Iterator[DirectoryHandle]:
    """Open ``path`` (relative to ``base_dir`` when given) for listing."""
    base_fd = None
    if base_dir:
        try:
            base_fd = os.open(base_dir, os.O_RDONLY | os.O_DIRECTORY)
        except OSError as e:
            raise DirectoryError(
                f"Could not open base directory '{base_dir}': {describe_os_error(e)}",
                path=base_dir, cause=e,
            ) from e
    try:
        fd = os.open(path, os.O_RDONLY | os.O_DIRECTORY, dir_fd=base_fd)
    except OSError as e:
        raise DirectoryError(
            f"Could not open '{path}': {describe_os_error(e)}", path=path, cause=e,
        ) from e
    finally:
        if base_fd is not None:
            os.close(base_fd)

    handle = DirectoryHandle(path=path, resolved=resolve_directory(path, base_dir), fd=fd)
    try:
        yield handle
    finally:
        handle.close()


def classify(handle: DirectoryHandle, entry: os.DirEntry) -> EntryKind:
    """Classify one directory entry, following symlinks.

    A symlink that cannot be resolved raises DirectoryError: a dangling
    link in a script directory is something the operator must see.
    """
    try:
        if entry.is_file(follow_symlinks=False):
            return EntryKind.REGULAR
        if not entry.is_symlink():
            return EntryKind.OTHER
    except OSError as e:
        raise DirectoryError(
            f"Could not stat '{format_label(handle.path, entry.name)}': {describe_os_error(e)}",
            path=handle.path, cause=e,
        ) from e

    try:
        st = os.stat(entry.name, dir_fd=handle.fd)
    except OSError as e:
        raise DirectoryError(
            f"Could not stat '{format_label(handle.path, entry.name)}': {describe_os_error(e)}",
            path=handle.path, cause=e,
        ) from e
    if stat.S_ISREG(st.st_mode):
        return EntryKind.SYMLINK_TO_REGULAR
    return EntryKind.OTHER


def sort_key(entry: CandidateEntry) -> bytes:
    return os.fsencode(entry.name)


def list_entries(handle: DirectoryHandle) -> list[CandidateEntry]:
    """Return the regular-file entries of ``handle`` in byte-wise order."""
    entries: list[CandidateEntry] = []
    try:
        with os.scandir(handle.fd) as it:
            for entry in it:
                if entry.name.startswith(HIDDEN_PREFIX):
                    continue
                kind = classify(handle, entry)
                if kind == EntryKind.OTHER:
                    logger.debug("Excluding non-regular entry %s", format_label(handle.path, entry.name))
                    continue
                entries.append(CandidateEntry(name=entry.name, kind=kind))
    except OSError as e:
        raise DirectoryError(
            f"Could not open directory '{handle.path}': {describe_os_error(e)}",
            path=handle.path, cause=e,
        ) from e

    entries.sort(key=sort_key)
    return entries
