# nay/modules/repo.py
"""
repo.py - official repository checks through pacman

probe() only looks at the exit status of `pacman -Si`. A pacman that cannot be
started is reported as an error, never as "absent", so a broken environment
does not silently fall through to the AUR.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence

from nay.modules.errors import OfficialInstallError, RunnerError
from nay.modules.logging import get_logger
from nay.modules.runner import Runner

logger = get_logger("repo")

DEFAULT_INSTALL_COMMAND = ("sudo", "pacman", "-S", "--needed", "--noconfirm")


class ProbeStatus(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeResult:
    status: ProbeStatus
    reason: Optional[str] = None

    @classmethod
    def present(cls) -> "ProbeResult":
        return cls(ProbeStatus.PRESENT)

    @classmethod
    def absent(cls) -> "ProbeResult":
        return cls(ProbeStatus.ABSENT)

    @classmethod
    def error(cls, reason: str) -> "ProbeResult":
        return cls(ProbeStatus.ERROR, reason)


class OfficialRepo:
    def __init__(self, runner: Runner, pacman: str = "pacman", install_command: Sequence[str] = DEFAULT_INSTALL_COMMAND):
        self.runner = runner
        self.pacman = pacman
        self.install_command: List[str] = list(install_command)

    def probe(self, name: str) -> ProbeResult:
        logger.info("Checking if `%s` exists in the official repositories", name)
        try:
            res = self.runner.run([self.pacman, "-Si", "--", name], quiet=True)
        except RunnerError as e:
            logger.error("pacman probe failed: %s", e)
            return ProbeResult.error(str(e))
        if res.stderr:
            logger.debug("pacman -Si %s: %s", name, res.stderr.strip())
        if res.ok:
            return ProbeResult.present()
        return ProbeResult.absent()

    def install(self, name: str) -> None:
        cmd = self.install_command + ["--", name]
        logger.info("Installing %s from the official repositories", name)
        try:
            res = self.runner.run(cmd)
        except RunnerError as e:
            raise OfficialInstallError(str(e)) from e
        if not res.ok:
            raise OfficialInstallError(f"{' '.join(cmd)} exited with status {res.returncode}")
