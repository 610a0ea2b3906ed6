# nay/modules/logging.py
# -*- coding: utf-8 -*-
"""
nay logging

Features:
 - Console color formatter on stderr
 - Rotating file handler
 - Module-level configurable log levels (module_levels)
 - Thread-safe reconfiguration from the central config
"""

from __future__ import annotations
import sys
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Dict, Any, List, Optional

_logger = logging.getLogger("nay.logging")

# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg

# ----------------------
# Module-level filter for per-module levels
# ----------------------
class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Optional[Dict[str, str]] = None):
        super().__init__()
        self.module_levels = {m: getattr(logging, str(lvl).upper(), logging.INFO) for m, lvl in (module_levels or {}).items()}

    def filter(self, record):
        # records from plain loggers carry no module tag
        if not hasattr(record, "nay_module"):
            record.nay_module = record.name
        mod = record.nay_module
        if mod in self.module_levels:
            return record.levelno >= self.module_levels[mod]
        return True

# ----------------------
# Console handler
# ----------------------
class StderrHandler(logging.StreamHandler):
    """StreamHandler writing to whatever sys.stderr is at emit time."""

    def __init__(self):
        logging.Handler.__init__(self)

    @property
    def stream(self):
        return sys.stderr

# ----------------------
# NayLogger (singleton)
# ----------------------
class NayLogger:
    _instance = None
    _singleton_lock = threading.Lock()

    def __new__(cls):
        with cls._singleton_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._inited = False
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        self._lock = threading.RLock()
        self._root = logging.getLogger("nay")
        self._handlers: List[logging.Handler] = []
        self._apply_config({})
        self._inited = True

    def _apply_config(self, cfg: Dict[str, Any]):
        with self._lock:
            for h in list(self._handlers):
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()

            module_filter = ModuleLevelFilter(cfg.get("module_levels") or {})
            level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
            fmt = cfg.get("format") or "%(levelname)s [%(nay_module)s] %(message)s"
            datefmt = cfg.get("datefmt", "%H:%M:%S")

            # console handler
            ch = StderrHandler()
            ch.setLevel(level)
            ch.addFilter(module_filter)
            ch.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=bool(cfg.get("color", True))))
            self._root.addHandler(ch)
            self._handlers.append(ch)

            # rotating file handler
            if cfg.get("file"):
                file_path = Path(cfg["file"]).expanduser()
                try:
                    file_path.parent.mkdir(parents=True, exist_ok=True)
                    max_bytes = cfg.get("max_size_bytes") or 10 * 1024 * 1024
                    fh = logging.handlers.RotatingFileHandler(str(file_path), maxBytes=int(max_bytes), backupCount=int(cfg.get("backups", 5)), encoding="utf-8")
                except OSError:
                    _logger.warning("logging: cannot open log file %s", file_path, exc_info=True)
                else:
                    fh.setLevel(logging.DEBUG)
                    fh.addFilter(module_filter)
                    fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(nay_module)s] %(message)s"))
                    self._root.addHandler(fh)
                    self._handlers.append(fh)

            # the file handler sees everything, the console only `level`
            self._root.setLevel(logging.DEBUG if cfg.get("file") else level)

    # ----------------------
    # Public API
    # ----------------------
    def configure(self, cfg: Dict[str, Any]):
        self._apply_config(cfg or {})

    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'nay_module' into records."""
        return logging.LoggerAdapter(logging.getLogger(f"nay.{module_name}"), {"nay_module": module_name})

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = NayLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def configure(cfg: Dict[str, Any]):
    return _GLOBAL_LOGGER.configure(cfg)
