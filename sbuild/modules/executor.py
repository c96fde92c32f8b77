# sbuild/modules/executor.py
"""
executor.py - runs external programs for one package

Every real operation in sbuild (download, clone, tar, patch, phases, strip,
ldd, ...) is an external program. Executor runs them as argument lists, never
through string concatenation, with an explicit map of extra environment
variables. Combined stdout/stderr of `run()` is appended to the package log
file (logs/<name>-<version>.log), which is never truncated.
"""

from __future__ import annotations

import os
import subprocess
import time
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from sbuild.modules.errors import CommandError
from sbuild.modules.logging import get_logger
from sbuild.modules.ui import Reporter

logger = get_logger("executor")


def _merge_env(extra: Optional[Dict[str, str]]) -> Dict[str, str]:
    env = dict(os.environ)
    if extra:
        env.update({k: str(v) for k, v in extra.items()})
    return env


class Executor:
    def __init__(self, log_file: Path, reporter: Optional[Reporter] = None):
        self.log_file = Path(log_file)
        self.reporter = reporter or Reporter(quiet=True)

    def _header(self, fh, label: str, argv: Sequence[str], cwd: Optional[Path]) -> None:
        stamp = time.strftime("%Y-%m-%d %H:%M:%S")
        where = f" (cwd={cwd})" if cwd else ""
        fh.write(f"==> [{stamp}] {label}: {' '.join(argv)}{where}\n".encode("utf-8", "replace"))
        fh.flush()

    def run(self, argv: Sequence[str], label: str, cwd: Optional[Path] = None,
            env: Optional[Dict[str, str]] = None, check: bool = True) -> int:
        """
        Run argv with a spinner labelled `label`; output goes to the log file.
        Returns the exit code; with check=True a non-zero exit raises CommandError.
        """
        argv = [str(a) for a in argv]
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("RUN: %s (cwd=%s)", " ".join(argv), cwd)
        with self.reporter.step(label) as step:
            with open(self.log_file, "ab") as fh:
                self._header(fh, label, argv, cwd)
                try:
                    proc = subprocess.run(argv, cwd=str(cwd) if cwd else None, env=_merge_env(env),
                                          stdin=subprocess.DEVNULL, stdout=fh, stderr=subprocess.STDOUT)
                    rc = proc.returncode
                except OSError as e:
                    fh.write(f"sbuild: cannot execute {argv[0]}: {e}\n".encode("utf-8", "replace"))
                    rc = 127
            logger.debug("%s exited %s", label, rc)
            if rc != 0:
                if check:
                    raise CommandError(label, rc)
                step.note = f"exit {rc}"
        return rc

    def capture(self, argv: Sequence[str], cwd: Optional[Path] = None,
                env: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
        """Run quietly and return (rc, combined output); nothing is logged to the package log."""
        argv = [str(a) for a in argv]
        try:
            proc = subprocess.run(argv, cwd=str(cwd) if cwd else None, env=_merge_env(env),
                                  stdin=subprocess.DEVNULL, stdout=subprocess.PIPE,
                                  stderr=subprocess.STDOUT)
        except OSError as e:
            logger.debug("cannot execute %s: %s", argv[0], e)
            return 127, str(e)
        return proc.returncode, proc.stdout.decode("utf-8", "replace")

    def note(self, text: str) -> None:
        """Append a free-form line to the package log."""
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_file, "a", encoding="utf-8") as fh:
            fh.write(text.rstrip("\n") + "\n")
