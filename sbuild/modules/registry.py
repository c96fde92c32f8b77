# sbuild/modules/registry.py
"""
registry.py - installed-package registry

One directory per installed package under .sbuild/installed/<name>-<version>/:

  meta.ini      name=, version=, time=YYYY-MM-DD HH:MM:SS
  manifest.txt  every regular file of the staging root as "/<relpath>", sorted

Entries are written after a successful install, read on removal and deleted
once removal has finished.
"""

from __future__ import annotations

import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

from sbuild.modules.config import Paths
from sbuild.modules.elf import regular_files
from sbuild.modules.errors import ManifestMissing, RegistryEntryMissing
from sbuild.modules.logging import get_logger
from sbuild.modules.recipe import Recipe

logger = get_logger("registry")

META_FILE = "meta.ini"
MANIFEST_FILE = "manifest.txt"


def build_manifest(staging: Path) -> List[str]:
    return sorted("/" + p.relative_to(staging).as_posix() for p in regular_files(staging))


@dataclass(frozen=True)
class RegistryEntry:
    id: str
    path: Path

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE

    @property
    def meta_path(self) -> Path:
        return self.path / META_FILE

    @property
    def package_name(self) -> str:
        # "<name>-<version>" -> "<name>"; the version never contains '-' by convention
        return self.id.rsplit("-", 1)[0] if "-" in self.id else self.id

    def read_manifest(self) -> List[str]:
        if not self.manifest_path.is_file():
            raise ManifestMissing(self.id)
        with open(self.manifest_path, "r", encoding="utf-8") as fh:
            return [line.strip() for line in fh if line.strip()]


class Registry:
    def __init__(self, paths: Paths):
        self.paths = paths

    def record(self, recipe: Recipe, staging: Path) -> RegistryEntry:
        entry = RegistryEntry(recipe.key, self.paths.registry / recipe.key)
        entry.path.mkdir(parents=True, exist_ok=True)
        stamp = time.strftime("%Y-%m-%d %H:%M:%S")
        entry.meta_path.write_text(f"name={recipe.name}\nversion={recipe.version}\ntime={stamp}\n",
                                   encoding="utf-8")
        lines = build_manifest(staging)
        entry.manifest_path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        logger.debug("registered %s with %d files", recipe.key, len(lines))
        return entry

    def entries(self) -> List[RegistryEntry]:
        if not self.paths.registry.is_dir():
            return []
        return [RegistryEntry(d.name, d) for d in sorted(self.paths.registry.iterdir()) if d.is_dir()]

    def find(self, name: str) -> RegistryEntry:
        """Exact <name-version> directory first, else the first entry starting with '<name>-'."""
        exact = self.paths.registry / name
        if exact.is_dir():
            return RegistryEntry(name, exact)
        for entry in self.entries():
            if entry.id.startswith(name + "-"):
                return entry
        raise RegistryEntryMissing(name)

    def delete(self, entry: RegistryEntry) -> None:
        shutil.rmtree(entry.path, ignore_errors=True)
