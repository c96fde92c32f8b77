# sbuild/modules/fakeroot.py
"""
fakeroot.py - simulated-root wrapping for the install phase

The install phase writes into the staging root; with `fakeroot=true` in the
recipe it runs under the `fakeroot` program so ownership and mode changes
done by `make install` succeed without privileges.
"""

from __future__ import annotations

import shutil
from typing import List, Sequence

from sbuild.modules.logging import get_logger

logger = get_logger("fakeroot")

FAKEROOT_BIN = "fakeroot"


def available() -> bool:
    return shutil.which(FAKEROOT_BIN) is not None


def wrap(argv: Sequence[str], enabled: bool) -> List[str]:
    """Prefix argv with the fakeroot program when enabled."""
    argv = list(argv)
    if not enabled:
        return argv
    if not available():
        # the install phase then fails with exit code 127 from the executor
        logger.warning("fakeroot requested but %s is not on PATH", FAKEROOT_BIN)
    return [FAKEROOT_BIN, *argv]
