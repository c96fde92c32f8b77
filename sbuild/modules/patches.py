# sbuild/modules/patches.py
"""
patches.py - PatchManager for sbuild

Responsibilities:
- Classify patch references from a recipe:
    git+<url>          repository of patches (every tracked *.patch, sorted)
    http(s)://...      single patch file, downloaded once into the cache
    file:///path, path local patch file used in place
- Acquire remote patches into .sbuild/cache/patch-<hash>[.patch], where
  <hash> is the first 16 hex digits of sha256(reference).
- Apply strictly in listed order with `patch -p1 -i <file>` inside the
  source tree. The first failure stops the queue: earlier patches stay
  applied and later ones are neither fetched nor attempted.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from sbuild.modules.config import Paths
from sbuild.modules.errors import CommandError, FetchError, PatchError
from sbuild.modules.executor import Executor
from sbuild.modules.fetcher import Downloader, GitClient
from sbuild.modules.logging import get_logger

logger = get_logger("patches")

GIT = "git"
HTTP = "http"
LOCAL = "local"


def ref_hash(ref: str) -> str:
    return hashlib.sha256(ref.encode("utf-8")).hexdigest()[:16]


def classify(ref: str) -> str:
    if ref.startswith("git+"):
        return GIT
    if ref.startswith("http://") or ref.startswith("https://"):
        return HTTP
    return LOCAL


@dataclass(frozen=True)
class PatchFile:
    ref: str       # reference as written in the recipe
    path: Path     # local file to feed to the patch tool


# ---------------------------------------------------------------------
# Patch tool capability
# ---------------------------------------------------------------------
class PatchTool:
    def apply(self, patch_file: Path, source_dir: Path, executor: Executor, label: str) -> None:
        executor.run(["patch", "-p1", "-i", str(patch_file)], label=label, cwd=source_dir)


# ---------------------------------------------------------------------
# PatchManager
# ---------------------------------------------------------------------
class PatchManager:
    def __init__(self, paths: Paths, downloader: Downloader, vcs: GitClient, tool: PatchTool):
        self.paths = paths
        self.downloader = downloader
        self.vcs = vcs
        self.tool = tool

    def _from_git(self, ref: str, executor: Executor) -> List[PatchFile]:
        url = ref[len("git+"):]
        repo = self.paths.cache / f"patch-{ref_hash(ref)}"
        try:
            if repo.is_dir():
                self.vcs.pull(repo, executor, label="patch repo pull")
            else:
                self.vcs.clone(url, repo, executor, label="patch repo clone")
            names = self.vcs.ls_files(repo, "*.patch", executor)
        except CommandError as e:
            raise PatchError(f"cannot acquire patch repository {url}: {e}") from e
        if not names:
            logger.warning("patch repository %s has no *.patch files", url)
        return [PatchFile(ref, repo / n) for n in names]

    def _from_http(self, ref: str, executor: Executor) -> List[PatchFile]:
        dest = self.paths.cache / f"patch-{ref_hash(ref)}.patch"
        if not dest.exists():
            try:
                self.downloader.download(ref, dest, executor, label="patch download")
            except FetchError as e:
                raise PatchError(str(e)) from e
        return [PatchFile(ref, dest)]

    def _from_local(self, ref: str) -> List[PatchFile]:
        local = Path(ref[len("file://"):]) if ref.startswith("file://") else Path(ref)
        if not local.is_file():
            raise PatchError(f"patch file not found: {local}")
        return [PatchFile(ref, local)]

    def resolve(self, ref: str, executor: Executor) -> List[PatchFile]:
        """Fetch one reference into the cache and return its local patch files."""
        self.paths.cache.mkdir(parents=True, exist_ok=True)
        kind = classify(ref)
        logger.debug("patch %s classified as %s", ref, kind)
        if kind == GIT:
            return self._from_git(ref, executor)
        if kind == HTTP:
            return self._from_http(ref, executor)
        return self._from_local(ref)

    def apply(self, refs: Sequence[str], source_dir: Path, executor: Executor) -> List[PatchFile]:
        """
        Fetch and apply each reference in turn; returns the patches applied.
        A reference is fetched only once every earlier one has applied.
        """
        applied: List[PatchFile] = []
        for ref in refs:
            for pf in self.resolve(ref, executor):
                try:
                    self.tool.apply(pf.path, source_dir, executor, label=f"patch {pf.path.name}")
                except CommandError as e:
                    raise PatchError(f"patch failed: {pf.path} (code {e.returncode})") from e
                applied.append(pf)
        return applied
