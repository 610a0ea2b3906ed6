from __future__ import annotations

import errno
import urllib.error
from pathlib import Path

import pytest

from conftest import FakeOpener, FakeRunner
from nay.modules.aur import AurClient, PackageMetadata
from nay.modules import cache as cache_mod
from nay.modules.buildsystem import Builder
from nay.modules.cache import WorkspaceCache
from nay.modules.config import load
from nay.modules.fetcher import SourceFetcher, marker_for
from nay.modules.install import Installer, Stage, build_installer
from nay.modules.repo import OfficialRepo

YAY = {"results": [{"name": "yay-bin", "version": "12.3.5-1", "description": "Yet another yogurt"}]}


def make_runner(codes=None, missing=()):
    def on_run(cmd, cwd):
        if cmd[:2] == ["git", "clone"] and (codes or {}).get("git", 0) == 0:
            dest = Path(cmd[3])
            dest.mkdir(parents=True, exist_ok=True)
            (dest / "PKGBUILD").write_text("pkgname=yay-bin\n")
    return FakeRunner(codes, missing=missing, on_run=on_run)


def make_installer(runner, opener, root, notes=None, **kw):
    return Installer(
        cache=WorkspaceCache(root),
        repo=OfficialRepo(runner),
        aur=AurClient(opener=opener),
        fetcher=SourceFetcher(runner),
        builder=Builder(runner),
        notify=(notes.append if notes is not None else None),
        **kw,
    )


def test_official_package_short_circuits(cache_root):
    runner = make_runner({"pacman": 0})
    opener = FakeOpener(YAY)
    outcome = make_installer(runner, opener, cache_root).install("bash")
    assert outcome.ok
    assert outcome.official
    assert opener.requests == []
    assert runner.commands("git") == []
    assert runner.commands("makepkg") == []
    assert not cache_root.exists()


def test_official_package_is_installed_with_pacman(cache_root):
    runner = make_runner({"pacman": 0})
    make_installer(runner, FakeOpener(YAY), cache_root).install("bash")
    assert runner.commands("sudo") == [["sudo", "pacman", "-S", "--needed", "--noconfirm", "--", "bash"]]


def test_official_install_can_be_disabled(cache_root):
    runner = make_runner({"pacman": 0})
    outcome = make_installer(runner, FakeOpener(YAY), cache_root, install_official=False).install("bash")
    assert outcome.ok
    assert runner.commands("sudo") == []


def test_official_install_failure(cache_root):
    runner = make_runner({"pacman": 0, "sudo": 1})
    outcome = make_installer(runner, FakeOpener(YAY), cache_root).install("bash")
    assert not outcome.ok
    assert outcome.stage is Stage.INSTALL


def test_aur_package_is_fetched_and_built(cache_root):
    runner = make_runner({"pacman": 1})
    notes = []
    outcome = make_installer(runner, FakeOpener(YAY), cache_root, notes).install("yay-bin")

    assert outcome.ok
    assert outcome.metadata == PackageMetadata("yay-bin", "12.3.5-1", "Yet another yogurt")
    src = cache_root / "yay-bin" / "src"
    assert runner.commands("git") == [["git", "clone", "https://aur.archlinux.org/yay-bin.git", str(src)]]
    assert [(c, cwd) for c, cwd, _ in runner.calls if c[0] == "makepkg"] == [(["makepkg", "-si", "--noconfirm"], src)]
    assert notes == ["Found yay-bin 12.3.5-1 - Yet another yogurt"]
    assert marker_for(src).exists()


def test_second_install_reuses_workspace(cache_root):
    runner = make_runner({"pacman": 1})
    installer = make_installer(runner, FakeOpener(YAY), cache_root)
    assert installer.install("yay-bin").ok
    assert installer.install("yay-bin").ok
    assert len(runner.commands("git")) == 1
    assert len(runner.commands("makepkg")) == 2


def test_not_found_anywhere(cache_root):
    runner = make_runner({"pacman": 1})
    opener = FakeOpener({"results": []})
    outcome = make_installer(runner, opener, cache_root).install("not-a-real-pkg")
    assert not outcome.ok
    assert outcome.stage is Stage.LOOKUP
    assert "not found" in outcome.reason
    assert len(opener.requests) == 1
    assert runner.commands("git") == []
    assert runner.commands("makepkg") == []


def test_probe_error_does_not_fall_back_to_aur(cache_root):
    runner = make_runner(missing=("pacman",))
    opener = FakeOpener(YAY)
    outcome = make_installer(runner, opener, cache_root).install("yay-bin")
    assert not outcome.ok
    assert outcome.stage is Stage.PROBE
    assert opener.requests == []


def test_network_failure_is_lookup_failure(cache_root):
    runner = make_runner({"pacman": 1})
    opener = FakeOpener(exc=urllib.error.URLError("connection refused"))
    outcome = make_installer(runner, opener, cache_root).install("yay-bin")
    assert outcome.stage is Stage.LOOKUP
    assert "connection refused" in outcome.reason
    assert runner.commands("git") == []


def test_clone_failure_is_fetch_failure(cache_root):
    runner = make_runner({"pacman": 1, "git": 128})
    outcome = make_installer(runner, FakeOpener(YAY), cache_root).install("yay-bin")
    assert not outcome.ok
    assert outcome.stage is Stage.FETCH
    assert outcome.metadata.name == "yay-bin"
    assert runner.commands("makepkg") == []


def test_build_failure_is_build_failure(cache_root):
    runner = make_runner({"pacman": 1, "makepkg": 1})
    outcome = make_installer(runner, FakeOpener(YAY), cache_root).install("yay-bin")
    assert not outcome.ok
    assert outcome.stage is Stage.BUILD
    # clone is kept for the next run
    assert (cache_root / "yay-bin" / "src" / "PKGBUILD").exists()


def test_uncreatable_workspace_fails_before_network(tmp_path):
    blocker = tmp_path / "readonly"
    blocker.write_text("")
    runner = make_runner({"pacman": 1})
    opener = FakeOpener(YAY)
    outcome = make_installer(runner, opener, blocker / "builds").install("yay-bin")
    assert not outcome.ok
    assert outcome.stage is Stage.WORKSPACE
    assert opener.requests == []


def test_invalid_name_runs_nothing(cache_root):
    runner = make_runner()
    outcome = make_installer(runner, FakeOpener(YAY), cache_root).install("../etc")
    assert outcome.stage is Stage.INPUT
    assert runner.calls == []


@pytest.mark.parametrize("name", ["--help", "-Syu"])
def test_option_like_name_never_reaches_pacman(cache_root, name):
    runner = make_runner({"pacman": 0})
    outcome = make_installer(runner, FakeOpener(YAY), cache_root).install(name)
    assert not outcome.ok
    assert outcome.stage is Stage.INPUT
    assert runner.calls == []


def test_lock_failure_is_workspace_failure(cache_root, monkeypatch):
    def no_locks(fd, op):
        raise OSError(errno.ENOLCK, "No locks available")

    monkeypatch.setattr(cache_mod.fcntl, "flock", no_locks)
    runner = make_runner({"pacman": 1})
    outcome = make_installer(runner, FakeOpener(YAY), cache_root).install("yay-bin")
    assert outcome.stage is Stage.WORKSPACE
    assert "No locks available" in outcome.reason
    assert runner.commands("git") == []


def test_without_lock_no_lock_file(cache_root):
    runner = make_runner({"pacman": 1})
    make_installer(runner, FakeOpener(YAY), cache_root, use_lock=False).install("yay-bin")
    assert not (cache_root / "yay-bin" / ".lock").exists()


def test_with_lock_lock_file_is_left(cache_root):
    runner = make_runner({"pacman": 1})
    make_installer(runner, FakeOpener(YAY), cache_root).install("yay-bin")
    assert (cache_root / "yay-bin" / ".lock").exists()


def test_describe():
    from nay.modules.install import InstallOutcome
    assert InstallOutcome.success("foo").describe() == "foo installed"
    assert InstallOutcome.failure("foo", Stage.BUILD, "boom").describe() == "foo: build failed: boom"


def test_build_installer_from_config(tmp_path):
    cfg_file = tmp_path / "nay.yaml"
    cfg_file.write_text(
        "cache:\n  root: %s\n"
        "repo:\n  pacman: /bin/pacman\n  install_official: false\n"
        "build:\n  flags: -s --noconfirm\n  lock: false\n"
        "fetch:\n  trust_existing: true\n" % (tmp_path / "builds")
    )
    installer = build_installer(load(str(cfg_file)), runner=FakeRunner())
    assert installer.cache.root == tmp_path / "builds"
    assert installer.repo.pacman == "/bin/pacman"
    assert installer.install_official is False
    assert installer.use_lock is False
    assert installer.builder.flags == ["-s", "--noconfirm"]
    assert installer.fetcher.trust_existing is True
    assert installer.fetcher.clone_url("x") == "https://aur.archlinux.org/x.git"
