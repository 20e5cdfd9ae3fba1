"""Ignore-policy decisions.

Print mode and execute mode apply the ignore policy differently and the
two checks are kept apart: print mode probes the entry up front, while
execute mode only reclassifies a permission-denied spawn failure after
the fact.
"""

from __future__ import annotations

import errno
import os
import stat

from sequence.listing import DirectoryHandle


def is_printable(handle: DirectoryHandle, name: str) -> bool:
    """Best-effort check that ``name`` is a regular file we may execute.

    Advisory only: the entry can change between this probe and whatever
    a consumer later does with the printed path.
    """
    try:
        st = os.stat(name, dir_fd=handle.fd)
    except OSError:
        return False
    if not stat.S_ISREG(st.st_mode):
        return False
    return os.access(name, os.X_OK, dir_fd=handle.fd)


def is_ignorable_spawn_error(exc: BaseException) -> bool:
    """True for the spawn failure the ignore policy turns into a skip."""
    return isinstance(exc, OSError) and exc.errno == errno.EACCES
