# sbuild/modules/hooks.py
"""
hooks.py - execution of hook command strings

Hooks come from a recipe's [hooks] section (postremove) or from the global
.sbuild/hooks.ini (postsync). They run through `sh -e -c` with DESTDIR set.
A failing hook never fails the operation that triggered it: the failure is
reported as a warning and the caller carries on.
"""

from __future__ import annotations

from pathlib import Path

from sbuild.modules.executor import Executor
from sbuild.modules.logging import get_logger

logger = get_logger("hooks")


def run_hook(event: str, command: str, cwd: Path, destdir: Path, executor: Executor) -> bool:
    """Run one hook; returns True when it ran and succeeded, False otherwise."""
    if not command:
        logger.debug("no %s hook defined", event)
        return False
    logger.info("running %s hook (cwd=%s)", event, cwd)
    rc = executor.run(["sh", "-e", "-c", command], label=f"{event} hook", cwd=cwd,
                      env={"DESTDIR": str(destdir)}, check=False)
    if rc != 0:
        executor.reporter.warn(f"{event} hook failed (code {rc}), continuing")
        return False
    return True
