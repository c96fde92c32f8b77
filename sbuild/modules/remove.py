# sbuild/modules/remove.py
"""
remove.py - manifest-driven removal of a staged package

Order of operations:
  1. registry lookup (exact <name-version>, else first '<name>-*' entry)
  2. manifest read
  3. every listed file deleted from destdir/<entry> when present
  4. the staging directory removed wholesale
  5. the recipe's postremove hook, DESTDIR=<removed staging>, cwd=<root>
  6. the registry entry deleted
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List

from sbuild.modules.config import Paths
from sbuild.modules.errors import SbuildError
from sbuild.modules.executor import Executor
from sbuild.modules.hooks import run_hook
from sbuild.modules.logging import get_logger
from sbuild.modules.recipe import load_recipe
from sbuild.modules.registry import Registry

logger = get_logger("remove")


@dataclass
class RemovalResult:
    id: str
    staging: Path
    removed: List[str] = field(default_factory=list)
    hook_ran: bool = False


class Remover:
    def __init__(self, paths: Paths, registry: Registry):
        self.paths = paths
        self.registry = registry

    def _postremove(self, entry_name: str, staging: Path, executor: Executor) -> bool:
        try:
            recipe = load_recipe(self.paths, entry_name)
        except SbuildError as e:
            executor.reporter.warn(f"postremove skipped: {e}")
            return False
        return run_hook("postremove", recipe.postremove, self.paths.root, staging, executor)

    def remove(self, name: str, executor_for: Callable[[str], Executor]) -> RemovalResult:
        """
        `executor_for(key)` returns the Executor logging to logs/<key>.log; the
        key is only known once the registry entry is resolved.
        """
        entry = self.registry.find(name)
        files = entry.read_manifest()
        executor = executor_for(entry.id)
        staging = self.paths.staging(entry.id)
        result = RemovalResult(entry.id, staging)

        for rel in files:
            target = staging / rel.lstrip("/")
            if target.is_file() or target.is_symlink():
                try:
                    target.unlink()
                    result.removed.append(rel)
                except OSError as e:
                    logger.warning("cannot remove %s: %s", target, e)
        executor.note(f"sbuild: removed {len(result.removed)} of {len(files)} manifest files for {entry.id}")

        shutil.rmtree(staging, ignore_errors=True)
        result.hook_ran = self._postremove(entry.package_name, staging, executor)
        self.registry.delete(entry)
        executor.reporter.ok(f"removed {entry.id}")
        return result
