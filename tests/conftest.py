from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from nay.modules.errors import RunnerError
from nay.modules.runner import RunResult


class FakeRunner:
    """Records every command; answers from a per-program table of exit codes."""

    def __init__(self, codes: Optional[Dict[str, int]] = None, missing: tuple = (),
                 on_run: Optional[Callable[[List[str], Optional[Path]], None]] = None):
        self.codes = codes or {}
        self.missing = set(missing)
        self.on_run = on_run
        self.calls: List[tuple] = []

    def run(self, cmd, cwd=None, quiet=False):
        cmd = [str(c) for c in cmd]
        self.calls.append((cmd, cwd, quiet))
        prog = cmd[0]
        if prog in self.missing:
            raise RunnerError(f"cannot run {prog}: [Errno 2] No such file or directory")
        if self.on_run:
            self.on_run(cmd, cwd)
        return RunResult(cmd, self.codes.get(prog, 0))

    def commands(self, prog: str) -> List[List[str]]:
        return [c for c, _, _ in self.calls if c[0] == prog]


class FakeOpener:
    """Stands in for urllib.request.urlopen."""

    def __init__(self, body=None, exc: Optional[BaseException] = None):
        if body is not None and not isinstance(body, bytes):
            body = json.dumps(body).encode("utf-8")
        self.body = body
        self.exc = exc
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append((req, timeout))
        if self.exc is not None:
            raise self.exc
        return io.BytesIO(self.body)

    @property
    def urls(self) -> List[str]:
        return [r.full_url for r, _ in self.requests]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def cache_root(tmp_path):
    return tmp_path / "cache" / "nay" / "builds"
