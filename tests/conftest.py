"""
Shared test fixtures and configuration.

Capabilities that would reach the network (downloads, remote git) are
replaced by fakes; tests that shell out to sh/tar/patch/git/unzip are
skipped when the tool is not installed.
"""

import hashlib
import io
import shutil
import tarfile
import textwrap
from pathlib import Path
from typing import Dict, List

import pytest
from rich.console import Console

from sbuild.modules import config
from sbuild.modules.elf import MagicDetector
from sbuild.modules.errors import FetchError
from sbuild.modules.executor import Executor
from sbuild.modules.fetcher import Downloader, GitClient, HashlibChecksum
from sbuild.modules.toolbox import Toolbox
from sbuild.modules.ui import Reporter


def needs(*tools: str):
    """Skip a test unless every named program is on PATH."""
    missing = [t for t in tools if shutil.which(t) is None]
    return pytest.mark.skipif(bool(missing), reason=f"requires {', '.join(missing)}")


# ── Fakes ───────────────────────────────────────────────────────────


class FakeDownloader(Downloader):
    """Serves URLs from a mapping of url -> bytes and records every call."""

    def __init__(self, files: Dict[str, bytes] = None):
        self.files = dict(files or {})
        self.calls: List[str] = []

    def download(self, url, dest, executor, label="download"):
        self.calls.append(url)
        if url not in self.files:
            raise FetchError(f"{label} of {url} failed (code 22)")
        Path(dest).write_bytes(self.files[url])


class FakeVcs(GitClient):
    """Clone/pull are recorded; clone materialises `tree` (relpath -> text)."""

    def __init__(self, tree: Dict[str, str] = None):
        self.tree = dict(tree or {})
        self.calls: List[tuple] = []

    def clone(self, url, dest, executor, label="git clone"):
        self.calls.append(("clone", url, Path(dest)))
        for rel, text in self.tree.items():
            p = Path(dest) / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(text)

    def pull(self, repo, executor, label="git pull"):
        self.calls.append(("pull", Path(repo)))

    def ls_files(self, repo, pattern, executor):
        suffix = pattern.lstrip("*")
        return sorted(k for k in self.tree if k.endswith(suffix))


class FakeLinter:
    def __init__(self, broken=()):
        self.broken = {Path(p).name for p in broken}
        self.checked: List[Path] = []

    def check(self, path, executor):
        self.checked.append(Path(path))
        return Path(path).name not in self.broken


# ── Layout / config ─────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("SBUILD_CONFIG", raising=False)
    monkeypatch.delenv("SB_STRIP", raising=False)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Return an empty working root."""
    r = tmp_path / "root"
    r.mkdir()
    return r


@pytest.fixture
def cfg(root: Path) -> config.Config:
    return config.load(root, overrides={"build": {"jobs": 2}, "logging": {"file": ""}})


@pytest.fixture
def paths(cfg) -> config.Paths:
    cfg.paths.ensure()
    return cfg.paths


@pytest.fixture
def reporter() -> Reporter:
    """A reporter writing to an in-memory console (read it via `output(reporter)`)."""
    console = Console(file=io.StringIO(), force_terminal=False, width=200, highlight=False)
    return Reporter(console=console, spinner=False)


def output(reporter: Reporter) -> str:
    return reporter.console.file.getvalue()


@pytest.fixture
def executor(paths, reporter) -> Executor:
    return Executor(paths.log_file("foo-1.0.0"), reporter)


# ── Recipes and sources ─────────────────────────────────────────────


def write_recipe(root: Path, name: str, body: str) -> Path:
    path = root / "recipes" / name / f"{name}.ini"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(body))
    return path


def make_tarball(dest: Path, top: str, files: Dict[str, str]) -> bytes:
    """Write a .tar.gz with every file under a single `top/` directory; returns its bytes."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(dest, "w:gz") as tf:
        for rel, text in files.items():
            data = text.encode()
            info = tarfile.TarInfo(f"{top}/{rel}")
            info.size = len(data)
            info.mode = 0o755 if rel.endswith(".sh") else 0o644
            tf.addfile(info, io.BytesIO(data))
    return dest.read_bytes()


FOO_URL = "https://example.invalid/dist/foo-1.0.0.tar.gz?download=1"

FOO_RECIPE = """\
    [package]
    name=foo
    version=1.0.0
    desc="Foo test package"
    source={url}
    checksum={checksum}

    [build]
    config=printf 'configured\\n' > configured.txt
    build=printf 'built\\n' > built.txt
    install=mkdir -p "$DESTDIR$PREFIX/bin" "$DESTDIR$PREFIX/share/foo" && cp hello.sh "$DESTDIR$PREFIX/bin/hello" && cp built.txt "$DESTDIR$PREFIX/share/foo/"

    [hooks]
    postremove=touch postremove-ran
    """


@pytest.fixture
def foo_tarball(tmp_path: Path) -> bytes:
    return make_tarball(tmp_path / "upstream" / "foo-1.0.0.tar.gz", "foo-1.0.0",
                        {"hello.sh": "#!/bin/sh\necho hello\n", "README": "foo\n"})


@pytest.fixture
def foo_recipe(root: Path, foo_tarball: bytes) -> Path:
    checksum = hashlib.sha256(foo_tarball).hexdigest()
    return write_recipe(root, "foo", FOO_RECIPE.format(url=FOO_URL, checksum=checksum))


@pytest.fixture
def toolbox(foo_tarball: bytes) -> Toolbox:
    """Real extract/patch/archive tools, fake network, in-process hashing and ELF detection."""
    return Toolbox(downloader=FakeDownloader({FOO_URL: foo_tarball}), vcs=FakeVcs(),
                   checksum=HashlibChecksum(), elf_detector=MagicDetector(), linter=FakeLinter())
