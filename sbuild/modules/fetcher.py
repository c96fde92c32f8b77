# sbuild/modules/fetcher.py
"""
fetcher.py - source acquisition and extraction

Features:
- acquire(recipe): archive URL -> sources/<file> (downloaded once), or
  git URL -> sources/<name>-<version> (cloned once, pulled afterwards)
- sha256 gate: a configured checksum must match before anything is extracted;
  on mismatch the archive is left where it is and no work tree is touched
- extract(archive, recipe): fresh work/<name>-<version> holding the archive
  contents with the leading path component stripped (tar and zip alike)

The programs doing the work are capabilities with a default implementation
that shells out (curl, git, sha256sum, tar, unzip) and an in-process
alternative where one is useful (requests, hashlib).
"""

from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import requests

from sbuild.modules.config import Paths
from sbuild.modules.errors import (ChecksumMismatch, CommandError, ExtractError, FetchError,
                                   SourceUndefined, UnknownArchiveType)
from sbuild.modules.executor import Executor
from sbuild.modules.logging import get_logger
from sbuild.modules.recipe import Recipe

logger = get_logger("fetcher")


# -----------------------------------------------------------------------
# Downloaders
# -----------------------------------------------------------------------
class Downloader:
    """Fetch `url` into `dest`. Implementations raise FetchError on failure."""

    def download(self, url: str, dest: Path, executor: Executor, label: str = "download") -> None:
        raise NotImplementedError


def _partial(dest: Path) -> Path:
    return dest.with_name(dest.name + ".part")


class CurlDownloader(Downloader):
    def download(self, url: str, dest: Path, executor: Executor, label: str = "download") -> None:
        part = _partial(dest)
        try:
            executor.run(["curl", "-L", "--fail", "-o", str(part), url], label=label)
        except CommandError as e:
            part.unlink(missing_ok=True)
            raise FetchError(f"{label} of {url} failed (code {e.returncode})") from e
        os.replace(part, dest)


class RequestsDownloader(Downloader):
    def __init__(self, timeout: int = 300):
        self.timeout = timeout

    def download(self, url: str, dest: Path, executor: Executor, label: str = "download") -> None:
        part = _partial(dest)
        executor.note(f"==> {label}: GET {url}")
        try:
            with executor.reporter.step(label):
                with requests.get(url, stream=True, timeout=self.timeout) as r:
                    r.raise_for_status()
                    with open(part, "wb") as f:
                        for chunk in r.iter_content(chunk_size=1024 * 1024):
                            f.write(chunk)
        except requests.RequestException as e:
            part.unlink(missing_ok=True)
            executor.note(f"sbuild: {label} failed: {e}")
            raise FetchError(f"{label} of {url} failed: {e}") from e
        os.replace(part, dest)
        executor.note(f"saved {dest} ({dest.stat().st_size} bytes)")


# -----------------------------------------------------------------------
# Version control
# -----------------------------------------------------------------------
class GitClient:
    def clone(self, url: str, dest: Path, executor: Executor, label: str = "git clone") -> None:
        executor.run(["git", "clone", url, str(dest)], label=label)

    def pull(self, repo: Path, executor: Executor, label: str = "git pull") -> None:
        executor.run(["git", "-C", str(repo), "pull", "--rebase"], label=label)

    def ls_files(self, repo: Path, pattern: str, executor: Executor) -> List[str]:
        rc, out = executor.capture(["git", "-C", str(repo), "ls-files", pattern])
        if rc != 0:
            raise CommandError("git ls-files", rc, out.strip())
        return sorted(line.strip() for line in out.splitlines() if line.strip())


# -----------------------------------------------------------------------
# Checksums
# -----------------------------------------------------------------------
class ChecksumProvider:
    """Return the sha256 hex digest of a file, or "" when it cannot be computed."""

    def sha256(self, path: Path, executor: Executor) -> str:
        raise NotImplementedError


class Sha256sumChecksum(ChecksumProvider):
    def sha256(self, path: Path, executor: Executor) -> str:
        rc, out = executor.capture(["sha256sum", str(path)])
        if rc != 0 or not out.strip():
            logger.warning("sha256sum failed for %s: %s", path, out.strip())
            return ""
        return out.split()[0].lower()


class HashlibChecksum(ChecksumProvider):
    def sha256(self, path: Path, executor: Executor) -> str:
        h = hashlib.sha256()
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(1024 * 1024), b""):
                    h.update(chunk)
        except OSError as e:
            logger.warning("cannot hash %s: %s", path, e)
            return ""
        return h.hexdigest()


# -----------------------------------------------------------------------
# Extraction
# -----------------------------------------------------------------------
TAR_FLAGS = (
    (".tar.zst", ["--zstd", "-xf"]),
    (".tar.xz", ["-xJf"]),
    (".tar.bz2", ["-xjf"]),
    (".tar.gz", ["-xzf"]),
    (".tgz", ["-xzf"]),
)


def archive_kind(filename: str) -> str:
    """'tar' or 'zip' for supported archives; UnknownArchiveType otherwise."""
    f = filename.lower()
    if any(f.endswith(ext) for ext, _ in TAR_FLAGS):
        return "tar"
    if f.endswith(".zip"):
        return "zip"
    raise UnknownArchiveType(filename)


def _hoist_one_level(staged: Path, out_dir: Path) -> None:
    # same result as tar --strip-components=1: contents of each top-level
    # directory move up, top-level plain files have nothing left and are dropped
    for top in sorted(staged.iterdir()):
        if top.is_dir() and not top.is_symlink():
            for child in sorted(top.iterdir()):
                target = out_dir / child.name
                if target.is_dir() and not target.is_symlink() and child.is_dir():
                    shutil.copytree(child, target, symlinks=True, dirs_exist_ok=True)
                    shutil.rmtree(child)
                else:
                    if target.is_dir() and not target.is_symlink():
                        shutil.rmtree(target)
                    elif target.exists() or target.is_symlink():
                        target.unlink()
                    shutil.move(str(child), str(target))
        else:
            logger.debug("zip: dropping top-level entry %s", top.name)


class ArchiveExtractor:
    def extract(self, archive: Path, out_dir: Path, executor: Executor) -> None:
        name = archive.name
        kind = archive_kind(name)
        if kind == "tar":
            flags = next(fl for ext, fl in TAR_FLAGS if name.lower().endswith(ext))
            executor.run(["tar", *flags, str(archive), "-C", str(out_dir), "--strip-components=1"],
                         label="extract")
            return
        staged = out_dir.parent / f".{out_dir.name}.unzip"
        shutil.rmtree(staged, ignore_errors=True)
        staged.mkdir(parents=True)
        try:
            executor.run(["unzip", "-q", str(archive), "-d", str(staged)], label="extract")
            _hoist_one_level(staged, out_dir)
        finally:
            shutil.rmtree(staged, ignore_errors=True)


# -----------------------------------------------------------------------
# Fetcher
# -----------------------------------------------------------------------
def filename_from_url(url: str) -> str:
    tail = os.path.basename(urlparse(url).path.rstrip("/")) if "://" in url else os.path.basename(url)
    return tail


class Fetcher:
    def __init__(self, paths: Paths, downloader: Downloader, vcs: GitClient,
                 checksum: ChecksumProvider, extractor: ArchiveExtractor):
        self.paths = paths
        self.downloader = downloader
        self.vcs = vcs
        self.checksum = checksum
        self.extractor = extractor

    def acquire(self, recipe: Recipe, executor: Executor) -> Tuple[Optional[Path], Path]:
        """
        Returns (archive file or None, source location). For git sources the
        location is the checkout; for archives it is the sources/ directory.
        """
        self.paths.sources.mkdir(parents=True, exist_ok=True)
        if recipe.git:
            checkout = self.paths.checkout(recipe.key)
            try:
                if checkout.exists():
                    executor.reporter.info(f"git source exists, pulling: {checkout}")
                    self.vcs.pull(checkout, executor)
                else:
                    self.vcs.clone(recipe.git, checkout, executor)
            except CommandError as e:
                raise FetchError(str(e)) from e
            return None, checkout

        if not recipe.source:
            raise SourceUndefined(recipe.name)

        fname = filename_from_url(recipe.source)
        if not fname:
            raise FetchError(f"cannot derive a file name from source URL {recipe.source}")
        archive = self.paths.sources / fname
        if archive.exists():
            executor.reporter.info(f"source exists: {archive}")
        else:
            self.downloader.download(recipe.source, archive, executor)

        if recipe.checksum:
            got = self.checksum.sha256(archive, executor)
            if not got or got != recipe.checksum.lower():
                executor.note(f"sbuild: sha256 mismatch for {archive}: got={got} expected={recipe.checksum}")
                raise ChecksumMismatch(str(archive), recipe.checksum, got)
            executor.reporter.ok(f"sha256 verified: {got}")
        return archive, self.paths.sources

    def extract(self, archive: Optional[Path], recipe: Recipe, executor: Executor) -> Path:
        if archive is None:
            checkout = self.paths.checkout(recipe.key)
            if not checkout.is_dir():
                raise ExtractError(f"git source dir not found: {checkout}")
            executor.reporter.ok(f"using git source at {checkout}")
            return checkout

        archive_kind(archive.name)  # reject unknown types before wiping anything
        out_dir = self.paths.work_tree(recipe.key)
        shutil.rmtree(out_dir, ignore_errors=True)
        out_dir.mkdir(parents=True)
        try:
            self.extractor.extract(archive, out_dir, executor)
        except CommandError as e:
            raise ExtractError(str(e)) from e
        return out_dir
