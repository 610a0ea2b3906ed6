# nay/modules/runner.py
"""
runner.py - execution boundary for external tools (pacman, git, makepkg)

Every module that spawns a process goes through a Runner so the install
pipeline can be driven by fakes in tests.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from nay.modules.errors import RunnerError
from nay.modules.logging import get_logger

logger = get_logger("runner")


@dataclass(frozen=True)
class RunResult:
    cmd: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Runner(Protocol):
    def run(self, cmd: Sequence[str], cwd: Optional[Path] = None, quiet: bool = False) -> RunResult:
        ...


class SubprocessRunner:
    """
    Run commands with subprocess.run.

    quiet=True captures output instead of sharing the terminal. Non-quiet
    commands inherit stdin so sudo/makepkg prompts keep working.
    """

    def run(self, cmd: Sequence[str], cwd: Optional[Path] = None, quiet: bool = False) -> RunResult:
        argv = [str(c) for c in cmd]
        logger.debug("RUN: %s (cwd=%s)", " ".join(argv), str(cwd) if cwd else None)
        try:
            if quiet:
                p = subprocess.run(argv, cwd=str(cwd) if cwd else None, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, env=os.environ)
                return RunResult(argv, p.returncode, p.stdout or "", p.stderr or "")
            p = subprocess.run(argv, cwd=str(cwd) if cwd else None, env=os.environ)
            return RunResult(argv, p.returncode)
        except OSError as e:
            raise RunnerError(f"cannot run {argv[0]}: {e}") from e
