# sbuild/modules/cli.py
"""
sbuild CLI - one verb per operation

Verbs (abbreviation in parentheses):
  new (ns) NAME          scaffold recipes/NAME/NAME.ini
  info NAME              show recipe fields
  search (srch) QUERY    list recipes whose file name contains QUERY
  fetch (dl) NAME        fetch + extract + patch
  extract (ex) NAME      same as fetch
  patch (pt) NAME        same as fetch
  build (b) NAME         full build/install into destdir/<name>-<version>
  install (i) NAME       same as build
  bi NAME                build/install followed by revdep
  package (pkg) NAME     tar the staging root into packages/
  remove (rm) NAME       remove staged files listed in the manifest
  revdep NAME            ldd lint of the staging root (advisory)
  sync [MESSAGE]         git add/commit/push of the working root + postsync hook
  help (h)               this help

The process exit code identifies the failing stage (see sbuild.modules.errors).
SB_STRIP in the environment forces stripping regardless of the recipe.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from sbuild import __version__
from sbuild.modules import config as config_mod
from sbuild.modules import logging as sblog
from sbuild.modules import repo_sync
from sbuild.modules.buildsystem import BuildSystem
from sbuild.modules.config import Config
from sbuild.modules.errors import EXIT_OK, EXIT_USAGE, SbuildError
from sbuild.modules.pkgtool import Packager
from sbuild.modules.recipe import load_recipe, search_recipes, write_template
from sbuild.modules.registry import Registry
from sbuild.modules.remove import Remover
from sbuild.modules.toolbox import Toolbox
from sbuild.modules.ui import Reporter

logger = sblog.get_logger("cli")


# -----------------------
# CLI Implementation
# -----------------------
class SbuildCLI:
    def __init__(self, cfg: Config, reporter: Reporter, toolbox: Optional[Toolbox] = None):
        self.cfg = cfg
        self.paths = cfg.paths
        self.reporter = reporter
        self.toolbox = toolbox or Toolbox.from_config(cfg)
        self.buildsystem = BuildSystem(cfg, self.toolbox, reporter)
        self.packager = Packager(self.paths, self.toolbox.archiver)
        self.remover = Remover(self.paths, Registry(self.paths))

    def new(self, name: str) -> int:
        path, created = write_template(self.paths, name)
        if created:
            self.reporter.ok(f"recipe created: {path}")
        else:
            self.reporter.warn(f"recipe already exists: {path}")
        return EXIT_OK

    def info(self, name: str) -> int:
        r = load_recipe(self.paths, name)
        rows = [
            ("name", r.name), ("version", r.version), ("homepage", r.homepage),
            ("license", r.license), ("desc", r.desc),
            ("source", r.git or r.source), ("checksum", r.checksum),
            ("patches", ", ".join(r.patches)), ("strip", r.strip),
            ("fakeroot", r.fakeroot), ("pack", r.pack or "gz"), ("recipe", r.path),
        ]
        self.reporter.table(f"{r.name} {r.version}", rows)
        return EXIT_OK

    def search(self, query: str) -> int:
        found = search_recipes(self.paths, query)
        if not found:
            self.reporter.warn("No matches.")
            return EXIT_OK
        for p in found:
            self.reporter.line(str(p.relative_to(self.paths.root)))
        return EXIT_OK

    def prepare(self, name: str) -> int:
        recipe = load_recipe(self.paths, name)
        source_dir = self.buildsystem.prepare(recipe)
        self.reporter.ok(f"source ready: {source_dir}")
        return EXIT_OK

    def build_install(self, name: str, revdep: bool = False) -> int:
        recipe = load_recipe(self.paths, name)
        self.buildsystem.build_install(recipe, revdep=revdep)
        return EXIT_OK

    def package(self, name: str) -> int:
        recipe = load_recipe(self.paths, name)
        self.packager.quickpkg(recipe, self.buildsystem.executor_for(recipe.key))
        return EXIT_OK

    def remove(self, name: str) -> int:
        self.remover.remove(name, self.buildsystem.executor_for)
        return EXIT_OK

    def revdep(self, name: str) -> int:
        recipe = load_recipe(self.paths, name)
        self.buildsystem.revdep.check(recipe.key, self.buildsystem.executor_for(recipe.key))
        return EXIT_OK

    def sync(self, message: Optional[str]) -> int:
        repo_sync.sync(self.paths, self.reporter, message)
        self.reporter.ok("sync complete")
        return EXIT_OK


# -----------------------
# Argparse wiring
# -----------------------
class _Parser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def make_parser() -> argparse.ArgumentParser:
    ap = _Parser(prog="sbuild", description="Per-package source builds into staging roots")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--root", help="working root (default: current directory)")
    ap.add_argument("--config", help="settings file (default: <root>/sbuild.yaml or $SBUILD_CONFIG)")
    ap.add_argument("--no-spinner", action="store_true", help="Disable spinner animations")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    sub = ap.add_subparsers(dest="cmd", parser_class=_Parser)

    def verb(name: str, aliases: List[str], help_text: str, arg: Optional[str] = "name"):
        p = sub.add_parser(name, aliases=aliases, help=help_text)
        if arg:
            p.add_argument(arg)
        p.set_defaults(verb=name)
        return p

    verb("new", ["ns"], "scaffold a recipe")
    verb("info", [], "show recipe fields")
    verb("search", ["srch"], "search recipes", arg="query")
    verb("fetch", ["dl"], "fetch, extract and patch")
    verb("extract", ["ex"], "fetch, extract and patch")
    verb("patch", ["pt"], "fetch, extract and patch")
    verb("build", ["b"], "full build/install")
    verb("install", ["i"], "full build/install")
    verb("bi", [], "full build/install, then revdep")
    verb("package", ["pkg"], "package the staging root")
    verb("remove", ["rm"], "remove by manifest")
    verb("revdep", [], "ldd lint of the staging root")
    p_sync = verb("sync", [], "git add/commit/push, then postsync hook", arg=None)
    p_sync.add_argument("message", nargs="*")
    verb("help", ["h"], "show this help", arg=None)
    return ap


def dispatch(cli: SbuildCLI, args: argparse.Namespace) -> int:
    v = args.verb
    if v == "new":
        return cli.new(args.name)
    if v == "info":
        return cli.info(args.name)
    if v == "search":
        return cli.search(args.query)
    if v in ("fetch", "extract", "patch"):
        return cli.prepare(args.name)
    if v in ("build", "install"):
        return cli.build_install(args.name)
    if v == "bi":
        return cli.build_install(args.name, revdep=True)
    if v == "package":
        return cli.package(args.name)
    if v == "remove":
        return cli.remove(args.name)
    if v == "revdep":
        return cli.revdep(args.name)
    if v == "sync":
        return cli.sync(" ".join(args.message) or None)
    raise ValueError(f"unhandled verb {v}")


def main(argv: Optional[List[str]] = None, toolbox: Optional[Toolbox] = None,
         reporter: Optional[Reporter] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)
    if getattr(args, "verb", None) in (None, "help"):
        parser.print_help()
        return EXIT_OK

    cfg = config_mod.load(args.root, explicit_path=args.config)
    sblog.configure(cfg, verbose=args.verbose)
    reporter = reporter or Reporter(spinner=bool(cfg.get("ui.spinner", True)) and not args.no_spinner)
    try:
        cli = SbuildCLI(cfg, reporter, toolbox)
        return dispatch(cli, args)
    except SbuildError as e:
        logger.debug("%s failed: %s", args.verb, e, exc_info=True)
        reporter.fail(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        reporter.fail("interrupted")
        return 130
    finally:
        sblog.shutdown()


if __name__ == "__main__":
    sys.exit(main())
