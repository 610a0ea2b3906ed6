# nay/modules/buildsystem.py
"""Build and install a cloned recipe with makepkg."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from nay.modules.errors import BuildError, RunnerError
from nay.modules.logging import get_logger
from nay.modules.runner import Runner

logger = get_logger("buildsystem")

# -s sync deps, -i install, no prompts
DEFAULT_FLAGS = ("-si", "--noconfirm")


class Builder:
    def __init__(self, runner: Runner, makepkg: str = "makepkg", flags: Sequence[str] = DEFAULT_FLAGS):
        self.runner = runner
        self.makepkg = makepkg
        self.flags: List[str] = list(flags)

    def build(self, srcdir: Path) -> None:
        srcdir = Path(srcdir)
        if not srcdir.is_dir():
            raise BuildError(f"build directory {srcdir} does not exist")
        logger.info("Building package in %s", srcdir)
        try:
            res = self.runner.run([self.makepkg] + self.flags, cwd=srcdir)
        except RunnerError as e:
            raise BuildError(str(e)) from e
        if not res.ok:
            raise BuildError(f"makepkg returned status {res.returncode}")
