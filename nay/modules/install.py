# nay/modules/install.py
# -*- coding: utf-8 -*-
"""
install.py - install pipeline for `nay install <pkg>`

  probe official repo --present--> pacman -S (optional) --> done
        | absent
  workspace --> AUR lookup --none--> not found
                    | metadata
              [lock] clone recipe --> makepkg -si [unlock] --> done

Every stage failure ends the run and comes back as an InstallOutcome tagged
with the stage. Nothing is retried and nothing left on disk is cleaned up.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from nay.modules.aur import DEFAULT_RPC_URL, AurClient, PackageMetadata
from nay.modules.buildsystem import DEFAULT_FLAGS, Builder
from nay.modules.cache import WorkspaceCache, validate_package_name, workspace_lock
from nay.modules.config import Config
from nay.modules.errors import (
    BuildError,
    FetchError,
    InvalidPackageName,
    LookupFailed,
    NotFoundError,
    OfficialInstallError,
    WorkspaceError,
)
from nay.modules.fetcher import DEFAULT_GIT_BASE, SourceFetcher
from nay.modules.logging import get_logger
from nay.modules.repo import DEFAULT_INSTALL_COMMAND, OfficialRepo, ProbeStatus
from nay.modules.runner import Runner, SubprocessRunner

logger = get_logger("install")

SRC_DIR = "src"


class Stage(enum.Enum):
    INPUT = "input"
    PROBE = "probe"
    INSTALL = "install"
    WORKSPACE = "workspace"
    LOOKUP = "lookup"
    FETCH = "fetch"
    BUILD = "build"


@dataclass(frozen=True)
class InstallOutcome:
    package: str
    ok: bool
    stage: Optional[Stage] = None
    reason: str = ""
    metadata: Optional[PackageMetadata] = None
    official: bool = False

    @classmethod
    def success(cls, package: str, metadata: Optional[PackageMetadata] = None, official: bool = False) -> "InstallOutcome":
        return cls(package, True, metadata=metadata, official=official)

    @classmethod
    def failure(cls, package: str, stage: Stage, reason: str, metadata: Optional[PackageMetadata] = None) -> "InstallOutcome":
        return cls(package, False, stage=stage, reason=reason, metadata=metadata)

    def describe(self) -> str:
        if self.ok:
            return f"{self.package} installed"
        return f"{self.package}: {self.stage.value} failed: {self.reason}"


class Installer:
    def __init__(self, cache: WorkspaceCache, repo: OfficialRepo, aur: AurClient,
                 fetcher: SourceFetcher, builder: Builder, *,
                 install_official: bool = True, use_lock: bool = True,
                 notify: Optional[Callable[[str], None]] = None):
        self.cache = cache
        self.repo = repo
        self.aur = aur
        self.fetcher = fetcher
        self.builder = builder
        self.install_official = install_official
        self.use_lock = use_lock
        self.notify = notify or logger.info

    def install(self, name: str) -> InstallOutcome:
        try:
            validate_package_name(name)
        except InvalidPackageName as e:
            return InstallOutcome.failure(name, Stage.INPUT, str(e))

        probe = self.repo.probe(name)
        if probe.status is ProbeStatus.ERROR:
            return InstallOutcome.failure(name, Stage.PROBE, probe.reason or "pacman could not be run")
        if probe.status is ProbeStatus.PRESENT:
            return self._install_official(name)

        try:
            workspace = self.cache.ensure_workspace(name)
        except WorkspaceError as e:
            return InstallOutcome.failure(name, Stage.WORKSPACE, str(e))

        try:
            info = self.resolve(name)
        except (LookupFailed, NotFoundError) as e:
            return InstallOutcome.failure(name, Stage.LOOKUP, str(e))
        self.notify(f"Found {info.name} {info.version} - {info.description}")

        try:
            if self.use_lock:
                with workspace_lock(workspace):
                    return self._fetch_and_build(name, workspace, info)
            return self._fetch_and_build(name, workspace, info)
        except WorkspaceError as e:
            return InstallOutcome.failure(name, Stage.WORKSPACE, str(e), metadata=info)

    def resolve(self, name: str) -> PackageMetadata:
        """AUR metadata for name; NotFoundError when the AUR has no such package."""
        info = self.aur.lookup(name)
        if info is None:
            raise NotFoundError(f"{name} not found in the official repositories or the AUR")
        return info

    def _install_official(self, name: str) -> InstallOutcome:
        logger.info("%s is available in the official repositories", name)
        if self.install_official:
            try:
                self.repo.install(name)
            except OfficialInstallError as e:
                return InstallOutcome.failure(name, Stage.INSTALL, str(e))
        return InstallOutcome.success(name, official=True)

    def _fetch_and_build(self, name: str, workspace: Path, info: PackageMetadata) -> InstallOutcome:
        src = workspace / SRC_DIR
        try:
            self.fetcher.fetch(name, src)
        except FetchError as e:
            return InstallOutcome.failure(name, Stage.FETCH, str(e), metadata=info)
        try:
            self.builder.build(src)
        except BuildError as e:
            return InstallOutcome.failure(name, Stage.BUILD, str(e), metadata=info)
        return InstallOutcome.success(name, metadata=info)


def build_installer(cfg: Config, runner: Optional[Runner] = None,
                    notify: Optional[Callable[[str], None]] = None) -> Installer:
    """Wire an Installer from configuration."""
    runner = runner or SubprocessRunner()
    root = cfg.get("cache.root")
    return Installer(
        cache=WorkspaceCache(Path(root) if root else None, namespace=cfg.get("cache.namespace", "nay")),
        repo=OfficialRepo(runner, pacman=cfg.get("repo.pacman", "pacman"), install_command=cfg.get("repo.install_command", DEFAULT_INSTALL_COMMAND)),
        aur=build_aur_client(cfg),
        fetcher=SourceFetcher(runner, git=cfg.get("fetch.git", "git"), trust_existing=bool(cfg.get("fetch.trust_existing", False)),
                              git_base=cfg.get("aur.git_base", DEFAULT_GIT_BASE)),
        builder=Builder(runner, makepkg=cfg.get("build.makepkg", "makepkg"), flags=cfg.get("build.flags", DEFAULT_FLAGS)),
        install_official=bool(cfg.get("repo.install_official", True)),
        use_lock=bool(cfg.get("build.lock", True)),
        notify=notify,
    )


def build_aur_client(cfg: Config) -> AurClient:
    return AurClient(
        rpc_url=cfg.get("aur.rpc_url", DEFAULT_RPC_URL),
        timeout=cfg.get("aur.timeout"),
        user_agent=cfg.get("aur.user_agent"),
    )
