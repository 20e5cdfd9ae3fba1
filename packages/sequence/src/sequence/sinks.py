"""Line sinks for relayed child stderr."""

from __future__ import annotations

import os
import sys
import syslog
from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable

from sequence.errors import UsageError

FACILITIES: dict[str, int] = {
    "kern": syslog.LOG_KERN,
    "user": syslog.LOG_USER,
    "mail": syslog.LOG_MAIL,
    "daemon": syslog.LOG_DAEMON,
    "auth": syslog.LOG_AUTH,
    "syslog": syslog.LOG_SYSLOG,
    "lpr": syslog.LOG_LPR,
    "news": syslog.LOG_NEWS,
    "uucp": syslog.LOG_UUCP,
    "cron": syslog.LOG_CRON,
    "local0": syslog.LOG_LOCAL0,
    "local1": syslog.LOG_LOCAL1,
    "local2": syslog.LOG_LOCAL2,
    "local3": syslog.LOG_LOCAL3,
    "local4": syslog.LOG_LOCAL4,
    "local5": syslog.LOG_LOCAL5,
    "local6": syslog.LOG_LOCAL6,
    "local7": syslog.LOG_LOCAL7,
}
# Not every platform defines these
for _name, _const in (("authpriv", "LOG_AUTHPRIV"), ("ftp", "LOG_FTP")):
    if hasattr(syslog, _const):
        FACILITIES[_name] = getattr(syslog, _const)

LEVELS: dict[str, int] = {
    "emerg": syslog.LOG_EMERG,
    "panic": syslog.LOG_EMERG,
    "alert": syslog.LOG_ALERT,
    "crit": syslog.LOG_CRIT,
    "err": syslog.LOG_ERR,
    "error": syslog.LOG_ERR,
    "warning": syslog.LOG_WARNING,
    "warn": syslog.LOG_WARNING,
    "notice": syslog.LOG_NOTICE,
    "info": syslog.LOG_INFO,
    "debug": syslog.LOG_DEBUG,
}


@dataclass(frozen=True)
class SyslogPriority:
    facility: int
    level: int
    spec: str = ""


def parse_priority(spec: str) -> SyslogPriority:
    """Parse ``facility.level`` (e.g. ``user.info``) into a SyslogPriority."""
    facility_name, sep, level_name = spec.partition(".")
    if not sep or not facility_name or not level_name:
        raise UsageError(f"Syslog priority '{spec}' must be of the form facility.level")
    facility = FACILITIES.get(facility_name.lower())
    if facility is None:
        raise UsageError(f"Syslog facility '{facility_name}' not recognised")
    level = LEVELS.get(level_name.lower())
    if level is None:
        raise UsageError(f"Syslog level '{level_name}' not recognised")
    return SyslogPriority(facility=facility, level=level, spec=spec)


@runtime_checkable
class LineSink(Protocol):
    """Receives one relayed stderr line at a time, tagged with a label."""

    def write_line(self, label: str, line: str) -> None: ...

    def close(self) -> None: ...


class StderrSink:
    """Writes ``label: line`` to an error stream.

    The label is written as the raw bytes of the path, the same bytes
    print mode emits, so names that are not valid UTF-8 still match.
    """

    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream

    def write_line(self, label: str, line: str) -> None:
        stream = self._stream
        if stream is None:
            sys.stderr.flush()
            stream = sys.stderr.buffer
        stream.write(os.fsencode(label) + b": " + line.encode("utf-8", errors="replace") + b"\n")
        stream.flush()

    def close(self) -> None:
        pass


def syslog_ident(label: str) -> str:
    """Label as a syslog ident; undecodable path bytes become U+FFFD."""
    return os.fsencode(label).decode("utf-8", errors="replace")


class SyslogSink:
    """Writes lines to syslog, using the label as the ident."""

    def __init__(self, priority: SyslogPriority) -> None:
        self.priority = priority
        self._label: str | None = None

    def write_line(self, label: str, line: str) -> None:
        if self._label != label:
            syslog.openlog(ident=syslog_ident(label), facility=self.priority.facility)
            self._label = label
        syslog.syslog(self.priority.facility | self.priority.level, line)

    def close(self) -> None:
        if self._label is not None:
            syslog.closelog()
            self._label = None


class RecordingSink:
    """Keeps relayed lines in memory."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def write_line(self, label: str, line: str) -> None:
        self.lines.append((label, line))

    def close(self) -> None:
        pass
