# sbuild/modules/elf.py
"""
elf.py - ELF detection and stripping of a staging root

Detection is a capability:
- FileCommandDetector (default): `file -b <path>` output starts with "ELF"
- MagicDetector: first four bytes are 0x7f 'E' 'L' 'F'

Stripping walks the regular files of a staging root and runs `strip -s` on
each ELF file. A missing strip binary is a warning and a single file that
fails to strip is logged and skipped. A detector that cannot run at all
raises StripError.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Iterator, List

from sbuild.modules.errors import StripError
from sbuild.modules.executor import Executor
from sbuild.modules.logging import get_logger

logger = get_logger("elf")

ELF_MAGIC = b"\x7fELF"


def regular_files(root: Path) -> Iterator[Path]:
    """Regular files under root (symlinks excluded), in sorted order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for f in sorted(filenames):
            p = Path(dirpath) / f
            if p.is_file() and not p.is_symlink():
                yield p


# -----------------------
# detectors
# -----------------------
class ElfDetector:
    program = ""

    def available(self) -> bool:
        return True

    def is_elf(self, path: Path, executor: Executor) -> bool:
        raise NotImplementedError


class FileCommandDetector(ElfDetector):
    program = "file"

    def available(self) -> bool:
        return shutil.which(self.program) is not None

    def is_elf(self, path: Path, executor: Executor) -> bool:
        rc, out = executor.capture([self.program, "-b", str(path)])
        return rc == 0 and out.lstrip().startswith("ELF")


class MagicDetector(ElfDetector):
    def is_elf(self, path: Path, executor: Executor) -> bool:
        try:
            with open(path, "rb") as f:
                return f.read(4) == ELF_MAGIC
        except OSError:
            return False


def elf_files(root: Path, detector: ElfDetector, executor: Executor) -> List[Path]:
    return [p for p in regular_files(root) if detector.is_elf(p, executor)]


# -----------------------
# stripping
# -----------------------
class Stripper:
    program = "strip"

    def available(self) -> bool:
        return shutil.which(self.program) is not None

    def strip(self, path: Path, executor: Executor) -> bool:
        rc = executor.run([self.program, "-s", str(path)], label=f"strip {path.name}", check=False)
        return rc == 0

    def strip_tree(self, root: Path, detector: ElfDetector, executor: Executor) -> List[Path]:
        """Strip every ELF file under root; returns the files stripped successfully."""
        if not self.available():
            executor.reporter.warn(f"{self.program} not found, skipping strip")
            return []
        if not detector.available():
            name = detector.program or type(detector).__name__
            raise StripError(f"cannot detect ELF files: {name} not available")
        done: List[Path] = []
        for p in elf_files(root, detector, executor):
            if self.strip(p, executor):
                done.append(p)
            else:
                logger.info("strip failed for %s, ignored", p)
        return done
