# sbuild/modules/errors.py
"""
errors.py - exception taxonomy for sbuild

Every error carries the process exit code the CLI returns for it, so a script
calling sbuild can tell which stage failed:

  1  recipe not found / invalid
  2  fetch (source undefined, checksum mismatch, download/clone failure)
  3  extract
  4  patch
  5-9  phases preconfig, config, build, install, postinstall
  10 strip
  11 nothing staged (package/revdep before build/install)
  12 packaging
  13 no registry entry
  14 manifest missing
  15 sync
  64 usage
"""

from __future__ import annotations

from typing import Dict, Optional

EXIT_OK = 0
EXIT_RECIPE = 1
EXIT_FETCH = 2
EXIT_EXTRACT = 3
EXIT_PATCH = 4
EXIT_STRIP = 10
EXIT_NOT_STAGED = 11
EXIT_PACKAGE = 12
EXIT_REGISTRY = 13
EXIT_MANIFEST = 14
EXIT_SYNC = 15
EXIT_USAGE = 64

PHASE_EXIT_CODES: Dict[str, int] = {
    "preconfig": 5,
    "config": 6,
    "build": 7,
    "install": 8,
    "postinstall": 9,
}


class SbuildError(Exception):
    """Base class; `exit_code` is what the CLI exits with."""
    exit_code = 1


class CommandError(SbuildError):
    """An external program exited non-zero (or could not be started)."""

    def __init__(self, label: str, returncode: int, detail: Optional[str] = None):
        self.label = label
        self.returncode = returncode
        msg = f"{label} failed (code {returncode})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


# recipe
class RecipeNotFound(SbuildError):
    exit_code = EXIT_RECIPE

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"recipe not found: {name}")


class RecipeInvalid(SbuildError):
    exit_code = EXIT_RECIPE


# fetch
class FetchError(SbuildError):
    exit_code = EXIT_FETCH


class SourceUndefined(FetchError):
    def __init__(self, name: str):
        super().__init__(f"no source defined for {name} (set source= or git=)")


class ChecksumMismatch(FetchError):
    def __init__(self, path: str, expected: str, got: str):
        self.path = path
        self.expected = expected
        self.got = got
        super().__init__(f"sha256 mismatch for {path}: got={got or '?'} expected={expected}")


# extract
class ExtractError(SbuildError):
    exit_code = EXIT_EXTRACT


class UnknownArchiveType(ExtractError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"unknown archive type: {filename}")


class PatchError(SbuildError):
    exit_code = EXIT_PATCH


class PhaseError(SbuildError):
    def __init__(self, phase: str, returncode: int):
        self.phase = phase
        self.returncode = returncode
        self.exit_code = PHASE_EXIT_CODES.get(phase, 1)
        super().__init__(f"phase {phase} failed (code {returncode})")


class StripError(SbuildError):
    exit_code = EXIT_STRIP


class NotStaged(SbuildError):
    exit_code = EXIT_NOT_STAGED

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"nothing staged for {key}: build/install first")


class PackageError(SbuildError):
    exit_code = EXIT_PACKAGE


class RegistryEntryMissing(SbuildError):
    exit_code = EXIT_REGISTRY

    def __init__(self, name: str):
        super().__init__(f"no registry entry for: {name}")


class ManifestMissing(SbuildError):
    exit_code = EXIT_MANIFEST

    def __init__(self, name: str):
        super().__init__(f"manifest missing for: {name}")


class SyncError(SbuildError):
    exit_code = EXIT_SYNC
