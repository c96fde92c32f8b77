# sbuild/modules/buildsystem.py
"""
buildsystem.py - build orchestration for one recipe

Pipelines:
- prepare(recipe):        acquire source -> extract -> apply patches
- build_install(recipe):  prepare -> fresh staging root -> phases
                          (preconfig, config, build, install, postinstall)
                          -> optional strip -> registry record -> optional revdep

Phase commands run as `sh -e -c <command>` inside the source tree with this
environment on top of the inherited one:

  DESTDIR   destdir/<name>-<version>
  PREFIX    /usr
  JOBS      build.jobs, default os.cpu_count()
  MAKEFLAGS -j<JOBS>

The install phase defaults to `make DESTDIR="$DESTDIR" install` and runs under
fakeroot when the recipe asks for it. The first failing phase stops the build.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from sbuild.modules import fakeroot
from sbuild.modules.config import Config
from sbuild.modules.errors import CommandError, PhaseError
from sbuild.modules.executor import Executor
from sbuild.modules.fetcher import Fetcher
from sbuild.modules.logging import get_logger
from sbuild.modules.patches import PatchManager
from sbuild.modules.recipe import PHASES, Recipe
from sbuild.modules.registry import Registry, RegistryEntry
from sbuild.modules.revdep import RevdepChecker
from sbuild.modules.toolbox import Toolbox
from sbuild.modules.ui import Reporter

logger = get_logger("buildsystem")

DEFAULT_PREFIX = "/usr"
DEFAULT_INSTALL = 'make DESTDIR="$DESTDIR" install'
STRIP_ENV = "SB_STRIP"

# run_phase outcomes; a skipped phase succeeds without running anything
RAN = "ran"
SKIPPED = "skipped"


def phase_env(staging: Path, jobs: int) -> Dict[str, str]:
    return {
        "DESTDIR": str(staging),
        "PREFIX": DEFAULT_PREFIX,
        "JOBS": str(jobs),
        "MAKEFLAGS": f"-j{jobs}",
    }


# -----------------------------
# Phase runner
# -----------------------------
class PhaseRunner:
    def __init__(self, jobs: int):
        self.jobs = jobs

    def command_for(self, recipe: Recipe, phase: str) -> str:
        cmd = recipe.phase(phase)
        if phase == "install" and not cmd:
            return DEFAULT_INSTALL
        return cmd

    def run_phase(self, phase: str, command: str, source_dir: Path, staging: Path,
                  executor: Executor, use_fakeroot: bool = False) -> str:
        """Returns RAN, or SKIPPED for an empty command."""
        if not command:
            logger.debug("phase %s: empty, skipped", phase)
            return SKIPPED
        argv = fakeroot.wrap(["sh", "-e", "-c", command], use_fakeroot)
        try:
            executor.run(argv, label=phase, cwd=source_dir, env=phase_env(staging, self.jobs))
        except CommandError as e:
            raise PhaseError(phase, e.returncode) from e
        return RAN

    def run_all(self, recipe: Recipe, source_dir: Path, staging: Path, executor: Executor) -> List[str]:
        ran: List[str] = []
        for phase in PHASES:
            use_fakeroot = phase == "install" and recipe.fakeroot
            status = self.run_phase(phase, self.command_for(recipe, phase), source_dir, staging,
                                    executor, use_fakeroot=use_fakeroot)
            if status == RAN:
                ran.append(phase)
        return ran


# -----------------------------
# BuildSystem
# -----------------------------
@dataclass
class BuildResult:
    recipe: Recipe
    source_dir: Path
    staging: Path
    phases: List[str] = field(default_factory=list)
    stripped: List[Path] = field(default_factory=list)
    entry: Optional[RegistryEntry] = None
    broken: List[Path] = field(default_factory=list)


class BuildSystem:
    def __init__(self, cfg: Config, toolbox: Toolbox, reporter: Optional[Reporter] = None):
        self.cfg = cfg
        self.paths = cfg.paths
        self.toolbox = toolbox
        self.reporter = reporter or Reporter(quiet=True)
        self.fetcher = Fetcher(self.paths, toolbox.downloader, toolbox.vcs, toolbox.checksum,
                               toolbox.extractor)
        self.patches = PatchManager(self.paths, toolbox.downloader, toolbox.vcs, toolbox.patch_tool)
        self.phases = PhaseRunner(cfg.jobs)
        self.registry = Registry(self.paths)
        self.revdep = RevdepChecker(self.paths, toolbox.elf_detector, toolbox.linter)

    def executor_for(self, key: str) -> Executor:
        return Executor(self.paths.log_file(key), self.reporter)

    def prepare(self, recipe: Recipe, executor: Optional[Executor] = None) -> Path:
        """Fetch, extract and patch; returns the source tree."""
        executor = executor or self.executor_for(recipe.key)
        self.paths.ensure()
        archive, _ = self.fetcher.acquire(recipe, executor)
        source_dir = self.fetcher.extract(archive, recipe, executor)
        applied = self.patches.apply(recipe.patches, source_dir, executor)
        if applied:
            self.reporter.ok(f"{len(applied)} patch(es) applied")
        return source_dir

    def _strip_requested(self, recipe: Recipe) -> bool:
        return recipe.strip or STRIP_ENV in os.environ

    def build_install(self, recipe: Recipe, revdep: bool = False,
                      executor: Optional[Executor] = None) -> BuildResult:
        executor = executor or self.executor_for(recipe.key)
        source_dir = self.prepare(recipe, executor)

        staging = self.paths.staging(recipe.key)
        shutil.rmtree(staging, ignore_errors=True)
        staging.mkdir(parents=True)
        result = BuildResult(recipe, source_dir, staging)

        result.phases = self.phases.run_all(recipe, source_dir, staging, executor)

        if self._strip_requested(recipe):
            result.stripped = self.toolbox.stripper.strip_tree(staging, self.toolbox.elf_detector, executor)

        result.entry = self.registry.record(recipe, staging)
        self.reporter.ok(f"installed into {staging}")

        if revdep:
            result.broken = self.revdep.check(recipe.key, executor)
        return result
