# nay/modules/fetcher.py
"""
fetcher.py - clone AUR build recipes into a workspace

A recipe directory that already has content is never cloned again. It is
reused when the completion marker (written next to it after a successful
clone) is present, so an old recipe can be stale. Without the marker the
directory is left over from an interrupted clone and fetch() refuses to
use it. Nothing is deleted automatically.
"""

from __future__ import annotations

import os
from pathlib import Path

from nay.modules.errors import FetchError, RunnerError
from nay.modules.logging import get_logger
from nay.modules.runner import Runner

logger = get_logger("fetcher")

MARKER_NAME = ".fetched"
DEFAULT_GIT_BASE = "https://aur.archlinux.org"


def marker_for(dest: Path) -> Path:
    return Path(dest).parent / MARKER_NAME


def _is_non_empty_dir(path: Path) -> bool:
    if not path.is_dir():
        return False
    try:
        with os.scandir(path) as it:
            return any(True for _ in it)
    except OSError as e:
        raise FetchError(f"cannot read {path}: {e.strerror or e}") from e


class SourceFetcher:
    def __init__(self, runner: Runner, git: str = "git", trust_existing: bool = False, git_base: str = DEFAULT_GIT_BASE):
        self.runner = runner
        self.git_base = git_base.rstrip("/")
        self.git = git
        self.trust_existing = trust_existing

    def clone_url(self, name: str) -> str:
        return f"{self.git_base}/{name}.git"

    def fetch(self, name: str, dest: Path) -> None:
        dest = Path(dest)
        url = self.clone_url(name)
        marker = marker_for(dest)
        if dest.exists() and not dest.is_dir():
            raise FetchError(f"{dest} exists and is not a directory")
        if _is_non_empty_dir(dest):
            if marker.exists() or self.trust_existing:
                logger.info("Using existing clone at %s", dest)
                return
            raise FetchError(f"{dest} holds an incomplete clone of {name}; remove it to fetch again")

        # a marker from an earlier clone must not vouch for this one
        try:
            marker.unlink(missing_ok=True)
        except OSError as e:
            raise FetchError(f"cannot remove stale marker {marker}: {e.strerror or e}") from e

        logger.info("Cloning %s from %s", name, url)
        try:
            res = self.runner.run([self.git, "clone", url, str(dest)])
        except RunnerError as e:
            raise FetchError(str(e)) from e
        if not res.ok:
            raise FetchError(f"git clone {url} failed with status {res.returncode}")
        try:
            marker.write_text(url + "\n", encoding="utf-8")
        except OSError as e:
            logger.warning("could not write fetch marker %s: %s", marker, e)
