# sbuild/modules/repo_sync.py
"""
repo_sync.py
- Publishes the working root (recipes and state) through git:
  `git add -A`, `git commit -m <message>`, `git push`
- "nothing to commit" is not an error; a failed push is
- Runs the global postsync hook from .sbuild/hooks.ini ([hooks] postsync)
  with DESTDIR=<root>/destdir and cwd=<root>
- Output goes to logs/sync.log
"""

from __future__ import annotations

from typing import Optional

from sbuild.modules.config import Paths
from sbuild.modules.errors import CommandError, SyncError
from sbuild.modules.executor import Executor
from sbuild.modules.hooks import run_hook
from sbuild.modules.logging import get_logger
from sbuild.modules.recipe import read_hook
from sbuild.modules.ui import Reporter

logger = get_logger("repo_sync")

DEFAULT_MESSAGE = "sbuild sync"
SYNC_LOG = "sync.log"


def sync(paths: Paths, reporter: Optional[Reporter] = None, message: Optional[str] = None) -> bool:
    """Returns True when the postsync hook ran and succeeded."""
    executor = Executor(paths.logs / SYNC_LOG, reporter)
    root = paths.root
    message = message or DEFAULT_MESSAGE
    try:
        executor.run(["git", "add", "-A"], label="git add", cwd=root)
        rc = executor.run(["git", "commit", "-m", message], label="git commit", cwd=root, check=False)
        if rc != 0:
            logger.info("git commit exited %s (nothing to commit?), continuing", rc)
        executor.run(["git", "push"], label="git push", cwd=root)
    except CommandError as e:
        raise SyncError(f"sync failed: {e}") from e

    command = read_hook(paths.global_hooks, "postsync")
    return run_hook("postsync", command, root, paths.destdir, executor)
