# nay/modules/config.py
# -*- coding: utf-8 -*-
"""
nay configuration loader

Features:
- Read YAML/JSON config from the first existing location (explicit path, $NAY_CONFIG, cwd, user, system)
- Merge with authoritative DEFAULTS, expand paths and coerce human sizes
- Validate structure and types, warn or raise (fatal optional)
- Dotted access through the Config dataclass (get_config(), Config.get("aur.rpc_url"))
"""

from __future__ import annotations
import os
import json
import logging
import threading
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple, Union

import yaml

from nay.modules.cache import home_dir

logger = logging.getLogger("nay.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "file": None,
        "color": True,
        "max_size": "10M",  # human readable
        "backups": 5,
        "module_levels": {},
    },
    "cache": {
        "root": None,  # None -> platform cache dir / nay / builds
        "namespace": "nay",
    },
    "repo": {
        "pacman": "pacman",
        "install_official": True,
        "install_command": ["sudo", "pacman", "-S", "--needed", "--noconfirm"],
    },
    "aur": {
        "rpc_url": "https://aur.archlinux.org/rpc/",
        "git_base": "https://aur.archlinux.org",
        "timeout": None,
        "user_agent": None,
    },
    "fetch": {
        "git": "git",
        "trust_existing": False,
    },
    "build": {
        "makepkg": "makepkg",
        "flags": ["-si", "--noconfirm"],
        "lock": True,
    },
}

# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    path: Optional[Path] = None

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def section(self, name: str) -> Dict[str, Any]:
        val = self.merged.get(name)
        return deepcopy(val) if isinstance(val, dict) else {}

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()

# ----------------------------
# Utilities
# ----------------------------
def _human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "MB": 1024**2, "GB": 1024**3, "K": 1024, "M": 1024**2, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                num = float(s[: -len(suffix)].strip())
                return int(num * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None

def _expand_path(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    return os.path.abspath(os.path.expanduser(os.path.expandvars(str(val))))

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get("NAY_CONFIG")
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "nay.yaml",
        Path.cwd() / "nay.yml",
        Path.cwd() / "nay.json",
    ])
    home = home_dir()
    if home is not None:
        candidates.append(home / ".config" / "nay" / "config.yaml")
    candidates.append(Path("/etc") / "nay" / "config.yaml")
    return candidates

def _load_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML or JSON config file. Raises ValueError on unparseable content."""
    txt = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            data = json.loads(txt)
        except json.JSONDecodeError as e:
            raise ValueError(f"config: invalid JSON in {path}: {e}") from e
    else:
        try:
            data = yaml.safe_load(txt)
        except yaml.YAMLError as e:
            raise ValueError(f"config: invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config: top level of {path} must be a mapping")
    return data

def _normalize_and_coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize path fields, convert human sizes and coerce basic types."""
    out = deepcopy(cfg)
    path_keys = [
        ("cache", "root"),
        ("logging", "file"),
    ]
    for section, key in path_keys:
        ref = out.get(section)
        if isinstance(ref, dict) and isinstance(ref.get(key), str) and ref[key]:
            ref[key] = _expand_path(ref[key])

    # Convert human sizes
    if isinstance(out.get("logging"), dict) and "max_size" in out["logging"]:
        ms = _human_size_to_bytes(out["logging"]["max_size"])
        if ms is not None:
            out["logging"]["max_size_bytes"] = ms

    # Coerce numbers
    aur = out.get("aur")
    if isinstance(aur, dict) and aur.get("timeout") is not None:
        try:
            aur["timeout"] = float(aur["timeout"])
        except (TypeError, ValueError):
            logger.debug("config: failed to coerce aur.timeout", exc_info=True)

    # command lists may be given as a single string
    for section, key in (("repo", "install_command"), ("build", "flags")):
        ref = out.get(section)
        if isinstance(ref, dict) and isinstance(ref.get(key), str):
            ref[key] = ref[key].split()
    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list). Non-fatal warnings unless called with fatal=True in load."""
    warnings: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            warnings.append(f"Unknown top-level config key: {k}")
    for k in DEFAULTS:
        if k in cfg and not isinstance(cfg[k], dict):
            warnings.append(f"{k} must be a mapping")
    if warnings:
        return (False, warnings)

    timeout = cfg["aur"].get("timeout")
    if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
        warnings.append("aur.timeout must be a positive number or null")
    for section, key in (("repo", "install_command"), ("build", "flags")):
        val = cfg[section].get(key)
        if not isinstance(val, list) or not all(isinstance(x, str) for x in val):
            warnings.append(f"{section}.{key} must be a list of strings")
    if not cfg["repo"].get("install_command"):
        warnings.append("repo.install_command must not be empty")
    for section, key in (("repo", "pacman"), ("fetch", "git"), ("build", "makepkg"), ("aur", "rpc_url"), ("aur", "git_base")):
        val = cfg[section].get(key)
        if not isinstance(val, str) or not val:
            warnings.append(f"{section}.{key} must be a non-empty string")
    ns = cfg["cache"].get("namespace")
    if not isinstance(ns, str) or not ns or "/" in ns:
        warnings.append("cache.namespace must be a non-empty name without '/'")
    levels = cfg["logging"].get("module_levels")
    if levels is not None and not isinstance(levels, dict):
        warnings.append("logging.module_levels should be a mapping")
    return (len(warnings) == 0, warnings)

# ----------------------------
# Loading
# ----------------------------
def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    if explicit:
        p = Path(explicit)
        if not p.exists():
            raise FileNotFoundError(f"config file not found: {p}")
        return p
    for p in _find_candidates():
        if p.exists():
            return p
    return None

def load(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True then structural validation failures raise.
    Returns Config object.
    """
    global _CONFIG
    with _CONFIG_LOCK:
        cfg_path = _find_path(explicit_path)
        raw: Dict[str, Any] = {}
        if cfg_path:
            raw = _load_file(cfg_path)
        merged = _deep_merge(DEFAULTS, raw)
        normalized = _normalize_and_coerce(merged)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                logger.error(msg)
                raise ValueError(msg)
            logger.warning(msg)
        cfg_obj = Config(raw=raw, merged=normalized, path=cfg_path)
        _CONFIG = cfg_obj
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return cfg_obj

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def reset() -> None:
    """Forget the cached config; the next get_config() reloads."""
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = None
