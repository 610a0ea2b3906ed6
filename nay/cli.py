#!/usr/bin/env python3
# nay/cli.py
"""
nay CLI

  nay install <package>   official repo first, AUR build otherwise
  nay info <package>      show AUR metadata only

Exit status: 0 on success, 1 when any stage fails, 2 on usage errors.
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from nay import __version__
from nay.modules import config as config_mod
from nay.modules import logging as nlogging
from nay.modules.errors import LookupFailed
from nay.modules.install import build_aur_client, build_installer

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)

logger = nlogging.get_logger("cli")

# -----------------------
# Small pretty helpers
# -----------------------
def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {escape(msg)}")

def print_err(msg: str):
    err_console.print(f"[bold red]✖[/] {escape(msg)}")

def print_info(msg: str):
    console.print(f"[cyan]{escape(msg)}[/cyan]")

# -----------------------
# Commands
# -----------------------
def cmd_install(cfg: config_mod.Config, package: str) -> int:
    installer = build_installer(cfg, notify=print_info)
    outcome = installer.install(package)
    if not outcome.ok:
        print_err(f"Failed to install {outcome.describe()}")
        return 1
    if outcome.official:
        print_ok(f"{package} is provided by the official repositories")
    else:
        print_ok(f"{package} {outcome.metadata.version} built and installed")
    return 0

def cmd_info(cfg: config_mod.Config, package: str) -> int:
    try:
        info = build_aur_client(cfg).lookup(package)
    except LookupFailed as e:
        print_err(f"Lookup of {package} failed: {e}")
        return 1
    if info is None:
        print_err(f"{package} not found in the AUR")
        return 1
    print_info(f"{info.name} {info.version}")
    if info.description:
        console.print(escape(info.description))
    return 0

# -----------------------
# Argparse wiring
# -----------------------
def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="nay", description="Install packages from the official repositories or the AUR")
    ap.add_argument("--config", help="path to a config file (YAML or JSON)")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    ap.add_argument("--no-color", action="store_true", help="disable colored log output")
    ap.add_argument("--version", action="version", version=f"nay {__version__}")
    sub = ap.add_subparsers(dest="cmd")

    p_install = sub.add_parser("install", help="install a package")
    p_install.add_argument("package")

    p_info = sub.add_parser("info", help="show AUR metadata for a package")
    p_info.add_argument("package")

    return ap

def _setup(args: argparse.Namespace) -> config_mod.Config:
    cfg = config_mod.load(args.config, fatal=True)
    log_cfg = cfg.section("logging")
    if args.verbose:
        log_cfg["level"] = "DEBUG"
    if args.no_color:
        log_cfg["color"] = False
    nlogging.configure(log_cfg)
    logger.debug("config loaded from %s", cfg.path or "<defaults>")
    return cfg

def main(argv: Optional[List[str]] = None) -> int:
    parser = make_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return 2

    try:
        cfg = _setup(args)
    except (OSError, ValueError) as e:
        print_err(f"Invalid configuration: {e}")
        return 2

    if args.cmd == "install":
        return cmd_install(cfg, args.package)
    if args.cmd == "info":
        return cmd_info(cfg, args.package)
    parser.print_help()
    return 2

if __name__ == "__main__":
    raise SystemExit(main())
