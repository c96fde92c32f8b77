# sbuild/modules/config.py
# -*- coding: utf-8 -*-
"""
sbuild configuration

Features:
- Working-root directory layout (Paths) resolved once per invocation
- Optional YAML settings file (sbuild.yaml in the root, $SBUILD_CONFIG or --config)
- Merge with authoritative DEFAULTS, coerce a few typed fields
- Dot-path access via Config.get("fetcher.downloader")

The Config object is built by the CLI and passed explicitly to every component;
nothing in sbuild reads the current directory on its own.
"""

from __future__ import annotations

import os
import logging
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

# stdlib logger: sbuild.modules.logging is itself configured from a Config
logger = logging.getLogger("sbuild.config")

STATE_DIR_NAME = ".sbuild"
SETTINGS_FILE_NAMES = ("sbuild.yaml", "sbuild.yml")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "build": {
        "jobs": None,  # None -> os.cpu_count()
    },
    "fetcher": {
        "downloader": "curl",     # curl | requests
        "checksum": "sha256sum",  # sha256sum | hashlib
        "http_timeout": 300,
    },
    "tools": {
        "elf_detector": "file",   # file | magic
    },
    "logging": {
        "level": "WARNING",
        "file": "logs/sbuild.log",
        "file_level": "DEBUG",
        "color": True,
        "max_size": "10M",
        "backups": 3,
    },
    "ui": {
        "spinner": True,
    },
}


# ----------------------------
# Directory layout
# ----------------------------
@dataclass(frozen=True)
class Paths:
    root: Path

    @property
    def recipes(self) -> Path:
        return self.root / "recipes"

    @property
    def sources(self) -> Path:
        return self.root / "sources"

    @property
    def work(self) -> Path:
        return self.root / "work"

    @property
    def destdir(self) -> Path:
        return self.root / "destdir"

    @property
    def packages(self) -> Path:
        return self.root / "packages"

    @property
    def logs(self) -> Path:
        return self.root / "logs"

    @property
    def state(self) -> Path:
        return self.root / STATE_DIR_NAME

    @property
    def registry(self) -> Path:
        return self.state / "installed"

    @property
    def cache(self) -> Path:
        return self.state / "cache"

    @property
    def global_hooks(self) -> Path:
        return self.state / "hooks.ini"

    def ensure(self) -> None:
        for d in (self.recipes, self.sources, self.work, self.destdir,
                  self.packages, self.logs, self.registry, self.cache):
            d.mkdir(parents=True, exist_ok=True)

    # per-package locations, keyed by "name-version"
    def staging(self, key: str) -> Path:
        return self.destdir / key

    def work_tree(self, key: str) -> Path:
        return self.work / key

    def checkout(self, key: str) -> Path:
        return self.sources / key

    def log_file(self, key: str) -> Path:
        return self.logs / f"{key}.log"


# ----------------------------
# Config object
# ----------------------------
@dataclass
class Config:
    paths: Paths
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    source: Optional[Path] = None

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

    @property
    def jobs(self) -> int:
        return int(self.get("build.jobs") or os.cpu_count() or 1)

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)


# ----------------------------
# Utilities
# ----------------------------
def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res


def human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "K": 1024, "MB": 1024**2, "M": 1024**2, "GB": 1024**3, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                return int(float(s[: -len(suffix)].strip()) * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None


def _find_candidates(root: Path, explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    if explicit:
        candidates.append(Path(explicit).expanduser())
    env = os.environ.get("SBUILD_CONFIG")
    if env:
        candidates.append(Path(env).expanduser())
    candidates.extend(root / n for n in SETTINGS_FILE_NAMES)
    return candidates


def _load_file(path: Path) -> Optional[Dict[str, Any]]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("config: cannot read %s: %s", path, e)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("config: %s does not contain a mapping; ignored", path)
        return None
    return data


def _normalize(cfg: Dict[str, Any]) -> Dict[str, Any]:
    out = deepcopy(cfg)
    for section, default in DEFAULTS.items():
        if not isinstance(out.get(section), dict):
            logger.warning("config: section %r must be a mapping, got %r; using defaults",
                           section, out.get(section))
            out[section] = deepcopy(default)
    build = out["build"]
    if build.get("jobs") is not None:
        try:
            build["jobs"] = max(1, int(build["jobs"]))
        except (TypeError, ValueError):
            logger.warning("config: build.jobs must be an integer, got %r", build["jobs"])
            build["jobs"] = None
    log_cfg = out["logging"]
    if "max_size" in log_cfg:
        log_cfg["max_size_bytes"] = human_size_to_bytes(log_cfg["max_size"])
    return out


# ----------------------------
# Loading
# ----------------------------
def load(root: Optional[Union[str, Path]] = None, explicit_path: Optional[str] = None,
         overrides: Optional[Dict[str, Any]] = None) -> Config:
    """
    Build the Config for one invocation. `root` defaults to the current
    directory; `overrides` are merged last (used by tests and CLI flags).
    """
    root_path = Path(root).expanduser().resolve() if root else Path.cwd().resolve()
    raw: Dict[str, Any] = {}
    source = None
    for candidate in _find_candidates(root_path, explicit_path):
        if candidate.is_file():
            data = _load_file(candidate)
            if data is not None:
                raw = data
                source = candidate
            break
    merged = _deep_merge(DEFAULTS, raw)
    if overrides:
        merged = _deep_merge(merged, overrides)
    cfg = Config(paths=Paths(root_path), raw=raw, merged=_normalize(merged), source=source)
    logger.debug("config: loaded (from=%s, root=%s)", source or "<defaults>", root_path)
    return cfg
