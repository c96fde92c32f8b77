# sbuild/modules/pkgtool.py
"""
pkgtool.py - binary packages from a staging root

quickpkg(recipe): destdir/<name>-<version>/ -> packages/<name>-<version>.tar.<ext>

Compression follows the recipe's `pack` option:
  zst / zstd -> tar --zstd   (.tar.zst)
  xz         -> tar -J       (.tar.xz)
  otherwise  -> tar -z       (.tar.gz)

The staging root is left in place. Without a staging root nothing is written.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from sbuild.modules.config import Paths
from sbuild.modules.errors import CommandError, NotStaged, PackageError
from sbuild.modules.executor import Executor
from sbuild.modules.logging import get_logger
from sbuild.modules.recipe import Recipe

logger = get_logger("pkgtool")


def compression_for(pack: str) -> Tuple[str, str]:
    """Returns (tar flag, file extension)."""
    pack = (pack or "").strip().lower()
    if pack in ("zst", "zstd"):
        return "--zstd", "zst"
    if pack == "xz":
        return "-J", "xz"
    return "-z", "gz"


class TarArchiver:
    def create(self, src_dir: Path, out_path: Path, flag: str, executor: Executor) -> None:
        argv: List[str] = ["tar", flag, "-C", str(src_dir), "-cf", str(out_path), "."]
        executor.run(argv, label="package")


class Packager:
    def __init__(self, paths: Paths, archiver: TarArchiver):
        self.paths = paths
        self.archiver = archiver

    def artifact_path(self, recipe: Recipe) -> Path:
        _, ext = compression_for(recipe.pack)
        return self.paths.packages / f"{recipe.key}.tar.{ext}"

    def quickpkg(self, recipe: Recipe, executor: Executor) -> Path:
        staging = self.paths.staging(recipe.key)
        if not staging.is_dir():
            raise NotStaged(recipe.key)
        flag, _ = compression_for(recipe.pack)
        out = self.artifact_path(recipe)
        self.paths.packages.mkdir(parents=True, exist_ok=True)
        try:
            self.archiver.create(staging, out, flag, executor)
        except CommandError as e:
            # never leave a truncated artifact behind
            out.unlink(missing_ok=True)
            raise PackageError(f"packaging {recipe.key} failed (code {e.returncode})") from e
        executor.reporter.ok(f"package created: {out}")
        logger.info("package %s written to %s", recipe.key, out)
        return out
