# sbuild/modules/revdep.py
"""
revdep.py - dependency lint of the ELF files in a staging root

Every ELF regular file is handed to `ldd`; a non-zero exit marks the file as
broken. Findings are advisory: they are reported and returned, never raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from sbuild.modules.config import Paths
from sbuild.modules.elf import ElfDetector, elf_files
from sbuild.modules.errors import NotStaged
from sbuild.modules.executor import Executor
from sbuild.modules.logging import get_logger

logger = get_logger("revdep")


class LddLinter:
    def check(self, path: Path, executor: Executor) -> bool:
        rc, out = executor.capture(["ldd", str(path)])
        if rc != 0:
            executor.note(f"ldd {path}: exit {rc}\n{out.rstrip()}")
        return rc == 0


class RevdepChecker:
    def __init__(self, paths: Paths, detector: ElfDetector, linter: LddLinter):
        self.paths = paths
        self.detector = detector
        self.linter = linter

    def check_tree(self, root: Path, executor: Executor) -> List[Path]:
        broken: List[Path] = []
        for p in elf_files(root, self.detector, executor):
            if not self.linter.check(p, executor):
                broken.append(p)
        return broken

    def check(self, key: str, executor: Executor) -> List[Path]:
        staging = self.paths.staging(key)
        if not staging.is_dir():
            raise NotStaged(key)
        with executor.reporter.step("revdep"):
            broken = self.check_tree(staging, executor)
        for p in broken:
            executor.reporter.warn(f"possible broken deps: {p}")
        if broken:
            logger.warning("%s: %d ELF file(s) with unresolved dependencies", key, len(broken))
        else:
            executor.reporter.ok("revdep: no broken ELF dependencies found")
        return broken
