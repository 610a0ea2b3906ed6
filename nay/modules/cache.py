# nay/modules/cache.py
"""
cache.py - per-package build workspaces

Layout:
  <cache root>/<package>/         workspace, reused across runs
  <cache root>/<package>/src/     cloned build recipe
  <cache root>/<package>/.fetched completion marker written after a full clone
  <cache root>/<package>/.lock    advisory lock held around fetch+build

The cache root is <platform cache dir>/nay/builds unless configured. Workspaces
are never cleaned up or checked for staleness by nay.
"""

from __future__ import annotations

import contextlib
import fcntl
import os
import re
from pathlib import Path
from typing import Iterator, Optional

from nay.modules.errors import InvalidPackageName, WorkspaceError
from nay.modules.logging import get_logger

logger = get_logger("cache")

LOCK_NAME = ".lock"

# Arch pkgname characters; case is kept, a leading "-" or "." is not allowed
_NAME_RE = re.compile(r"[A-Za-z0-9@_+][A-Za-z0-9@._+-]*")


def validate_package_name(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise InvalidPackageName("package name must not be empty")
    if not _NAME_RE.fullmatch(name):
        raise InvalidPackageName(f"invalid package name: {name!r}")
    return name


def cache_dir() -> Optional[Path]:
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    home = home_dir()
    return home / ".cache" if home else None


def home_dir() -> Optional[Path]:
    try:
        return Path.home()
    except (KeyError, RuntimeError):
        return None


def default_cache_root(namespace: str = "nay") -> Path:
    base = cache_dir() or home_dir() or Path(".")
    return base / namespace / "builds"


class WorkspaceCache:
    def __init__(self, root: Optional[Path] = None, namespace: str = "nay"):
        self.root = Path(root) if root else default_cache_root(namespace)

    def path_for(self, name: str) -> Path:
        return self.root / validate_package_name(name)

    def ensure_workspace(self, name: str) -> Path:
        path = self.path_for(name)
        if path.is_dir():
            logger.info("Using existing cache: %s", path)
            return path
        try:
            os.makedirs(path)
        except OSError as e:
            raise WorkspaceError(e.errno, f"cannot create workspace {path}: {e.strerror or e}") from e
        logger.info("Created cache dir: %s", path)
        return path


@contextlib.contextmanager
def workspace_lock(workspace: Path) -> Iterator[Path]:
    """Exclusive advisory lock on <workspace>/.lock; blocks while another nay holds it."""
    lock_path = Path(workspace) / LOCK_NAME
    try:
        lf = lock_path.open("a+", encoding="utf-8")
    except OSError as e:
        raise WorkspaceError(e.errno, f"cannot open lock file {lock_path}: {e.strerror or e}") from e
    with lf:
        try:
            try:
                fcntl.flock(lf.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                logger.warning("Waiting for another nay working in %s", workspace)
                fcntl.flock(lf.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            raise WorkspaceError(e.errno, f"cannot lock {lock_path}: {e.strerror or e}") from e
        try:
            yield lock_path
        finally:
            fcntl.flock(lf.fileno(), fcntl.LOCK_UN)
