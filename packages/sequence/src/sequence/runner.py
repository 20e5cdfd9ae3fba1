"""Process runner: spawn one entry, relay its stderr, wait, map the status."""

from __future__ import annotations

import asyncio
import logging
import signal
import threading

from sequence.label import ExecutionRequest
from sequence.outcome import Outcome
from sequence.sinks import LineSink

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


class LineSplitter:
    """Splits a byte stream on line feeds, holding back partial lines."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._buffer = b""
        self._encoding = encoding

    def feed(self, data: bytes) -> list[str]:
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")
        return [self._decode(line) for line in lines]

    def flush(self) -> list[str]:
        """Return the unterminated tail, if any."""
        if not self._buffer:
            return []
        tail, self._buffer = self._buffer, b""
        return [self._decode(tail)]

    @property
    def pending(self) -> bytes:
        return self._buffer

    def _decode(self, raw: bytes) -> str:
        return raw.decode(self._encoding, errors="replace")


def outcome_from_returncode(label: str, returncode: int | None) -> Outcome:
    """Translate an asyncio/subprocess return code into an Outcome."""
    if returncode is None:
        return Outcome.wait_error(label)
    if returncode == 0:
        return Outcome.succeeded(label)
    if returncode > 0:
        return Outcome.failed_exit(label, returncode)
    return Outcome.failed_signal(label, -returncode)


def restore_default_sigchld() -> None:
    """Undo an inherited SIGCHLD ignore, which would auto-reap our children."""
    sigchld = getattr(signal, "SIGCHLD", None)
    if sigchld is None or threading.current_thread() is not threading.main_thread():
        return
    if signal.getsignal(sigchld) == signal.SIG_IGN:
        signal.signal(sigchld, signal.SIG_DFL)


class ProcessRunner:
    """Runs a single ExecutionRequest to completion.

    stdin and stdout are inherited. When a sink is configured, stderr is
    piped and drained line by line into the sink before the child is
    waited on, so a chatty child never blocks on a full pipe.
    """

    def __init__(self, sink: LineSink | None = None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.sink = sink
        self.chunk_size = chunk_size

    async def run(self, request: ExecutionRequest) -> Outcome:
        restore_default_sigchld()
        stderr = asyncio.subprocess.PIPE if self.sink is not None else None
        try:
            proc = await asyncio.create_subprocess_exec(
                *request.argv,
                executable=request.executable,
                cwd=request.cwd,
                stderr=stderr,
            )
        except OSError as e:
            logger.debug("Spawn of %s failed: %s", request.label, e)
            return Outcome.spawn_error(request.label, e)

        logger.debug("Started %s (pid %d)", request.label, proc.pid)
        if proc.stderr is not None:
            try:
                await self._drain(proc.stderr, request.label)
            except BaseException:
                logger.warning("Relaying stderr of %s failed, stopping it", request.label)
                await self._reap(proc)
                raise
        return await self._wait(proc, request.label)

    async def _reap(self, proc: asyncio.subprocess.Process) -> None:
        """Kill ``proc`` if it is still running and collect its status."""
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()

    async def _drain(self, stream: asyncio.StreamReader, label: str) -> None:
        splitter = LineSplitter()
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                break
            for line in splitter.feed(chunk):
                self.sink.write_line(label, line)
        for line in splitter.flush():
            self.sink.write_line(label, line)

    async def _wait(self, proc: asyncio.subprocess.Process, label: str) -> Outcome:
        while True:
            try:
                returncode = await proc.wait()
            except InterruptedError:
                continue
            except OSError as e:
                return Outcome.wait_error(label, e)
            return outcome_from_returncode(label, returncode)
