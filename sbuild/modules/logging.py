# sbuild/modules/logging.py
# -*- coding: utf-8 -*-
"""
sbuild logging

Features:
 - Module loggers (get_logger("fetcher")) sharing the "sbuild" root logger
 - Console color formatter
 - Rotating file handler for the tool's own diagnostics
 - Reconfiguration from a Config (configure(cfg)), idempotent

Output of the external programs sbuild runs does not go through here: it is
appended verbatim to logs/<name>-<version>.log by the executor.
"""

from __future__ import annotations

import sys
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from sbuild.modules.config import Config, human_size_to_bytes

ROOT_LOGGER = "sbuild"
DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(sbuild_module)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(sbuild_module)s] %(message)s"


# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m",  # white on red
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


class _ModuleDefaultFilter(logging.Filter):
    """Records logged through a plain logger (not an adapter) get a module name too."""

    def filter(self, record):
        if not hasattr(record, "sbuild_module"):
            name = record.name
            record.sbuild_module = name.split(".", 1)[1] if name.startswith(ROOT_LOGGER + ".") else name
        return True


# ----------------------
# SbuildLogger (singleton)
# ----------------------
class SbuildLogger:
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
        self._root = logging.getLogger(ROOT_LOGGER)
        self._root.setLevel(logging.DEBUG)  # handlers filter
        self._root.propagate = False
        self._handlers: List[logging.Handler] = []
        self._apply({"level": "WARNING", "color": sys.stderr.isatty()})
        self._inited = True

    def _apply(self, cfg: Dict[str, Any], log_root: Optional[Path] = None) -> None:
        with self._lock:
            for h in self._handlers:
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()

            ch = logging.StreamHandler(sys.stderr)
            ch.setLevel(getattr(logging, str(cfg.get("level", "WARNING")).upper(), logging.WARNING))
            ch.addFilter(_ModuleDefaultFilter())
            color = bool(cfg.get("color", True)) and sys.stderr.isatty()
            ch.setFormatter(ColorFormatter(cfg.get("format") or DEFAULT_FORMAT,
                                           datefmt=cfg.get("datefmt", "%H:%M:%S"), color=color))
            self._root.addHandler(ch)
            self._handlers.append(ch)

            if cfg.get("file"):
                file_path = Path(cfg["file"]).expanduser()
                if not file_path.is_absolute() and log_root is not None:
                    file_path = log_root / file_path
                try:
                    file_path.parent.mkdir(parents=True, exist_ok=True)
                    max_bytes = cfg.get("max_size_bytes") or human_size_to_bytes(cfg.get("max_size")) or 10 * 1024 * 1024
                    fh = logging.handlers.RotatingFileHandler(str(file_path), maxBytes=max_bytes,
                                                              backupCount=int(cfg.get("backups", 3)),
                                                              encoding="utf-8")
                    fh.setLevel(getattr(logging, str(cfg.get("file_level", "DEBUG")).upper(), logging.DEBUG))
                    fh.addFilter(_ModuleDefaultFilter())
                    fh.setFormatter(logging.Formatter(FILE_FORMAT))
                    self._root.addHandler(fh)
                    self._handlers.append(fh)
                except OSError:
                    self._root.warning("logging: cannot open log file %s", file_path, exc_info=True)

    def configure(self, cfg: Config, verbose: bool = False) -> None:
        log_cfg = dict(cfg.get("logging", {}) or {})
        if verbose:
            log_cfg["level"] = "DEBUG"
        self._apply(log_cfg, log_root=cfg.paths.root)

    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'sbuild_module' into records."""
        return logging.LoggerAdapter(logging.getLogger(ROOT_LOGGER), {"sbuild_module": module_name})

    def handlers(self) -> List[logging.Handler]:
        """The handlers sbuild itself installed on the root logger."""
        with self._lock:
            return list(self._handlers)

    def shutdown(self) -> None:
        with self._lock:
            for h in self._handlers:
                h.flush()
                h.close()


# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = SbuildLogger()


def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)


def configure(cfg: Config, verbose: bool = False) -> None:
    _GLOBAL_LOGGER.configure(cfg, verbose=verbose)


def handlers() -> List[logging.Handler]:
    return _GLOBAL_LOGGER.handlers()


def shutdown() -> None:
    _GLOBAL_LOGGER.shutdown()
