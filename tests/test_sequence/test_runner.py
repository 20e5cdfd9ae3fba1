"""Tests for the process runner."""

import asyncio
import errno
import os
import signal
import syslog

import pytest

from sequence.label import build_request
from sequence.outcome import Outcome, OutcomeKind
from sequence.runner import LineSplitter, ProcessRunner, outcome_from_returncode
from sequence.sinks import RecordingSink, SyslogSink, parse_priority


def request_for(directory, name, args=()):
    return build_request(str(directory), str(directory), name, list(args))


class TestLineSplitter:
    def test_complete_lines(self):
        s = LineSplitter()
        assert s.feed(b"one\ntwo\n") == ["one", "two"]
        assert s.flush() == []

    def test_partial_line_held_back(self):
        s = LineSplitter()
        assert s.feed(b"li") == []
        assert s.feed(b"ne1\nli") == ["line1"]
        assert s.pending == b"li"
        assert s.feed(b"ne2\n") == ["line2"]

    def test_flush_returns_tail(self):
        s = LineSplitter()
        assert s.feed(b"line1\nline2\npartial") == ["line1", "line2"]
        assert s.flush() == ["partial"]
        assert s.flush() == []

    def test_empty_lines_kept(self):
        assert LineSplitter().feed(b"a\n\nb\n") == ["a", "", "b"]

    def test_invalid_utf8_replaced(self):
        assert LineSplitter().feed(b"bad \xff byte\n") == ["bad � byte"]

    def test_multibyte_split_across_chunks(self):
        s = LineSplitter()
        data = "café\n".encode()
        assert s.feed(data[:4]) == []
        assert s.feed(data[4:]) == ["café"]


class TestOutcomeFromReturncode:
    def test_zero(self):
        assert outcome_from_returncode("x", 0) == Outcome.succeeded("x")

    def test_positive(self):
        assert outcome_from_returncode("x", 3) == Outcome.failed_exit("x", 3)

    def test_negative_is_signal(self):
        assert outcome_from_returncode("x", -9) == Outcome.failed_signal("x", 9)

    def test_none_is_wait_error(self):
        assert outcome_from_returncode("x", None).kind == OutcomeKind.WAIT_ERROR


class TestProcessRunner:
    async def test_success(self, script_dir, make_script, executed):
        make_script(script_dir, "a")
        outcome = await ProcessRunner().run(request_for(script_dir, "a", ["start"]))
        assert outcome == Outcome.succeeded(f"{script_dir}/a")
        assert executed() == ["a start"]

    async def test_exit_code(self, script_dir, make_script):
        make_script(script_dir, "a", body="exit 3")
        outcome = await ProcessRunner().run(request_for(script_dir, "a"))
        assert outcome.kind == OutcomeKind.FAILED_EXIT
        assert outcome.code == 3

    async def test_signal(self, script_dir, make_script):
        make_script(script_dir, "a", body="kill -9 $$")
        outcome = await ProcessRunner().run(request_for(script_dir, "a"))
        assert outcome.kind == OutcomeKind.FAILED_SIGNAL
        assert outcome.signal == 9
        assert outcome.exit_status == 137

    async def test_runs_in_entry_directory(self, script_dir, make_script):
        make_script(script_dir, "a", body="pwd > cwd.txt")
        await ProcessRunner().run(request_for(script_dir, "a"))
        assert os.path.samefile((script_dir / "cwd.txt").read_text().strip(), script_dir)

    async def test_permission_denied_is_spawn_error(self, script_dir, make_script):
        make_script(script_dir, "a", mode=0o644)
        outcome = await ProcessRunner().run(request_for(script_dir, "a"))
        assert outcome.kind == OutcomeKind.SPAWN_ERROR
        assert outcome.cause.errno == errno.EACCES

    async def test_missing_file_is_spawn_error(self, script_dir):
        outcome = await ProcessRunner().run(request_for(script_dir, "gone"))
        assert outcome.kind == OutcomeKind.SPAWN_ERROR
        assert outcome.cause.errno == errno.ENOENT

    async def test_no_shebang_is_spawn_error(self, script_dir, make_script):
        make_script(script_dir, "a", body="echo hi", shebang=False)
        outcome = await ProcessRunner().run(request_for(script_dir, "a"))
        assert outcome.kind == OutcomeKind.SPAWN_ERROR
        assert outcome.cause.errno == errno.ENOEXEC

    async def test_relays_stderr_including_partial_line(self, script_dir, make_script):
        make_script(script_dir, "a", body="printf 'line1\\nline2\\npartial' >&2")
        sink = RecordingSink()
        outcome = await ProcessRunner(sink=sink).run(request_for(script_dir, "a"))
        label = f"{script_dir}/a"
        assert outcome.is_success
        assert sink.lines == [(label, "line1"), (label, "line2"), (label, "partial")]

    async def test_relay_with_tiny_chunks(self, script_dir, make_script):
        make_script(script_dir, "a", body="echo first >&2; echo second >&2")
        sink = RecordingSink()
        await ProcessRunner(sink=sink, chunk_size=3).run(request_for(script_dir, "a"))
        assert [line for _, line in sink.lines] == ["first", "second"]

    async def test_large_stderr_does_not_deadlock(self, script_dir, make_script):
        # Well past a 64 KiB pipe buffer
        make_script(script_dir, "a", body="i=0; while [ $i -lt 5000 ]; do echo \"line $i padding padding\" >&2; i=$((i+1)); done")
        sink = RecordingSink()
        outcome = await ProcessRunner(sink=sink).run(request_for(script_dir, "a"))
        assert outcome.is_success
        assert len(sink.lines) == 5000
        assert sink.lines[-1][1] == "line 4999 padding padding"

    async def test_relay_on_failure(self, script_dir, make_script):
        make_script(script_dir, "a", body="echo broken >&2; exit 2")
        sink = RecordingSink()
        outcome = await ProcessRunner(sink=sink).run(request_for(script_dir, "a"))
        assert outcome.code == 2
        assert sink.lines == [(f"{script_dir}/a", "broken")]


class _FailingSink(RecordingSink):
    def write_line(self, label, line):
        raise RuntimeError("sink broke")


class TestRelayFailure:
    @pytest.fixture
    def spawned(self, monkeypatch):
        procs = []
        real_exec = asyncio.create_subprocess_exec

        async def capture(*args, **kwargs):
            proc = await real_exec(*args, **kwargs)
            procs.append(proc)
            return proc

        monkeypatch.setattr(asyncio, "create_subprocess_exec", capture)
        return procs

    async def test_child_killed_and_reaped(self, script_dir, make_script, spawned):
        make_script(script_dir, "a", body="echo first >&2; exec sleep 30")
        with pytest.raises(RuntimeError, match="sink broke"):
            await ProcessRunner(sink=_FailingSink()).run(request_for(script_dir, "a"))
        assert spawned[0].returncode == -signal.SIGKILL

    async def test_finished_child_still_reaped(self, script_dir, make_script, spawned):
        make_script(script_dir, "a", body="echo only >&2")
        with pytest.raises(RuntimeError):
            await ProcessRunner(sink=_FailingSink()).run(request_for(script_dir, "a"))
        assert spawned[0].returncode is not None


class TestSyslogRelay:
    async def test_undecodable_label_relayed_to_syslog(self, script_dir, make_script, monkeypatch):
        idents = []

        def openlog(**kw):
            idents.append(kw["ident"].encode("utf-8"))

        monkeypatch.setattr(syslog, "openlog", openlog)
        monkeypatch.setattr(syslog, "syslog", lambda prio, line: None)
        name = os.fsdecode(b"a\xff")
        make_script(script_dir, name, body="echo oops >&2")
        sink = SyslogSink(parse_priority("user.info"))
        outcome = await ProcessRunner(sink=sink).run(request_for(script_dir, name))
        assert outcome.is_success
        assert idents == [os.fsencode(str(script_dir)) + b"/a\xef\xbf\xbd"]


class _FakeProcess:
    def __init__(self, results):
        self._results = list(results)
        self.waits = 0

    async def wait(self):
        self.waits += 1
        result = self._results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class TestWait:
    async def test_interrupted_wait_retried(self):
        proc = _FakeProcess([InterruptedError(errno.EINTR, "Interrupted"), 0])
        outcome = await ProcessRunner()._wait(proc, "x")
        assert outcome.is_success
        assert proc.waits == 2

    async def test_wait_failure(self):
        proc = _FakeProcess([ChildProcessError(errno.ECHILD, "No child processes")])
        outcome = await ProcessRunner()._wait(proc, "x")
        assert outcome.kind == OutcomeKind.WAIT_ERROR
        assert outcome.exit_status == 1

    @pytest.mark.parametrize("code,kind", [(0, OutcomeKind.SUCCEEDED), (4, OutcomeKind.FAILED_EXIT),
                                           (-15, OutcomeKind.FAILED_SIGNAL)])
    async def test_mapping(self, code, kind):
        outcome = await ProcessRunner()._wait(_FakeProcess([code]), "x")
        assert outcome.kind == kind
