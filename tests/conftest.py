"""Shared fixtures: throwaway script directories."""

import pytest

RECORD = 'echo "$(basename "$0")" "$@" >> "$SEQUENCE_TEST_LOG"'


@pytest.fixture
def script_dir(tmp_path):
    d = tmp_path / "scripts"
    d.mkdir()
    return d


@pytest.fixture
def run_log(tmp_path, monkeypatch):
    """File every RECORD script appends its name and arguments to."""
    log = tmp_path / "run.log"
    monkeypatch.setenv("SEQUENCE_TEST_LOG", str(log))
    return log


@pytest.fixture
def make_script():
    def _make(directory, name, body=RECORD, mode=0o755, shebang=True):
        path = directory / name
        path.write_text(("#!/bin/sh\n" if shebang else "") + body + "\n")
        path.chmod(mode)
        return path
    return _make


def read_log(log):
    if not log.exists():
        return []
    return [line for line in log.read_text().splitlines() if line]


@pytest.fixture
def executed(run_log):
    """Callable returning the logged ``name args`` lines so far."""
    return lambda: read_log(run_log)
