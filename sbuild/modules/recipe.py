# sbuild/modules/recipe.py
"""
recipe.py - recipe model and lookup

A recipe is an INI file, normally recipes/<name>/<name>.ini:

  [package]  name, version, homepage, desc, license, source, git, checksum,
             patches (comma separated), strip, fakeroot, pack
  [build]    preconfig, config, build, install, postinstall
  [hooks]    postremove, postsync

Only [package] name is required; every other field defaults to empty/false.
Recipes are re-read on every invocation and never modified by sbuild.
"""

from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from sbuild.modules.config import Paths
from sbuild.modules.errors import RecipeInvalid, RecipeNotFound
from sbuild.modules.logging import get_logger

logger = get_logger("recipe")

PHASES: Tuple[str, ...] = ("preconfig", "config", "build", "install", "postinstall")
_TRUE = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Recipe:
    name: str
    version: str = ""
    homepage: str = ""
    desc: str = ""
    license: str = ""
    source: str = ""       # archive URL
    git: str = ""          # version-control URL
    checksum: str = ""     # sha256 of the source archive
    patches: Tuple[str, ...] = ()
    strip: bool = False
    fakeroot: bool = False
    pack: str = ""         # zst | xz | anything else -> gz
    preconfig: str = ""
    config: str = ""
    build: str = ""
    install: str = ""
    postinstall: str = ""
    postremove: str = ""
    postsync: str = ""
    path: Optional[Path] = field(default=None, compare=False)

    @property
    def key(self) -> str:
        return f"{self.name}-{self.version}"

    def phase(self, name: str) -> str:
        return getattr(self, name)


# -----------------------
# parsing
# -----------------------
def _clean(value: Optional[str]) -> str:
    if value is None:
        return ""
    v = value.strip()
    if len(v) >= 2 and v[0] == '"' and v[-1] == '"':
        v = v[1:-1]
    return v


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(delimiters=("=",), interpolation=None, strict=False,
                                       allow_no_value=True, comment_prefixes=("#", ";"))
    try:
        with open(path, "r", encoding="utf-8") as fh:
            parser.read_file(fh)
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        raise RecipeInvalid(f"cannot parse recipe {path}: {e}") from e
    return parser


def parse_recipe(path: Path) -> Recipe:
    """Parse one recipe file; RecipeInvalid if [package] name is missing."""
    path = Path(path)
    ini = _read_ini(path)

    def get(section: str, key: str) -> str:
        if not ini.has_section(section):
            return ""
        return _clean(ini.get(section, key, fallback=""))

    name = get("package", "name")
    if not name:
        raise RecipeInvalid(f"invalid recipe {path}: [package] name is missing")
    return Recipe(
        name=name,
        version=get("package", "version"),
        homepage=get("package", "homepage"),
        desc=get("package", "desc"),
        license=get("package", "license"),
        source=get("package", "source"),
        git=get("package", "git"),
        checksum=get("package", "checksum").lower(),
        patches=_split_list(get("package", "patches")),
        strip=_as_bool(get("package", "strip")),
        fakeroot=_as_bool(get("package", "fakeroot")),
        pack=get("package", "pack").lower(),
        preconfig=get("build", "preconfig"),
        config=get("build", "config"),
        build=get("build", "build"),
        install=get("build", "install"),
        postinstall=get("build", "postinstall"),
        postremove=get("hooks", "postremove"),
        postsync=get("hooks", "postsync"),
        path=path,
    )


def read_hook(path: Path, hook: str) -> str:
    """Read one [hooks] entry from an INI file without requiring a [package] section."""
    if not Path(path).is_file():
        return ""
    ini = _read_ini(Path(path))
    if not ini.has_section("hooks"):
        return ""
    return _clean(ini.get("hooks", hook, fallback=""))


# -----------------------
# lookup
# -----------------------
def _recipe_files(paths: Paths) -> List[Path]:
    if not paths.recipes.is_dir():
        return []
    return sorted(p for p in paths.recipes.rglob("*.ini") if p.is_file())


def find_recipe(paths: Paths, name: str) -> Path:
    """Exact recipes/<name>/<name>.ini first, then the first file whose name contains `name`."""
    exact = paths.recipes / name / f"{name}.ini"
    if exact.is_file():
        return exact
    for p in _recipe_files(paths):
        if name in p.name:
            logger.debug("recipe %s resolved by substring to %s", name, p)
            return p
    raise RecipeNotFound(name)


def load_recipe(paths: Paths, name: str) -> Recipe:
    return parse_recipe(find_recipe(paths, name))


def search_recipes(paths: Paths, query: str) -> List[Path]:
    return [p for p in _recipe_files(paths) if query in p.name]


# -----------------------
# scaffold
# -----------------------
TEMPLATE = """\
# sbuild recipe (ini)
[package]
name={name}
version=1.0.0
homepage=https://example.org
license=MIT
desc=Short description.
# Prefer one of: source= (tarball URL) or git=
source=
# git=
# Optional sha256 of source archive (when using source=)
checksum=
# comma-separated list (https://..., git+https://..., file:///path)
patches=
# options
strip=true
fakeroot=true
pack=zst

[build]
# Commands run in the extracted source directory. Env: DESTDIR, PREFIX (/usr), JOBS, MAKEFLAGS
preconfig=
config=./configure --prefix=/usr
build=make -j$JOBS
install=make DESTDIR="$DESTDIR" install
postinstall=

[hooks]
postremove=
postsync=
"""


def write_template(paths: Paths, name: str) -> Tuple[Path, bool]:
    """Create recipes/<name>/<name>.ini unless it exists. Returns (path, created)."""
    target = paths.recipes / name / f"{name}.ini"
    if target.exists():
        return target, False
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(TEMPLATE.format(name=name), encoding="utf-8")
    return target, True
