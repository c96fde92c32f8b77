"""
Tests for the command-line interface: verbs, abbreviations and exit codes.
"""

from pathlib import Path

import pytest

from conftest import FOO_URL, needs, output, write_recipe
from sbuild.modules.cli import main, make_parser
from sbuild.modules.elf import FileCommandDetector, Stripper
from sbuild.modules.errors import EXIT_FETCH, EXIT_NOT_STAGED, EXIT_RECIPE, EXIT_REGISTRY, EXIT_STRIP, EXIT_USAGE


class PresentStripper(Stripper):
    def available(self):
        return True


def run(root: Path, *argv, toolbox=None, reporter=None) -> int:
    return main(["--root", str(root), "--no-spinner", *argv], toolbox=toolbox, reporter=reporter)


class TestParser:
    @pytest.mark.parametrize("argv,verb", [
        (["ns", "x"], "new"), (["srch", "x"], "search"), (["dl", "x"], "fetch"),
        (["ex", "x"], "extract"), (["pt", "x"], "patch"), (["b", "x"], "build"),
        (["i", "x"], "install"), (["bi", "x"], "bi"), (["pkg", "x"], "package"),
        (["rm", "x"], "remove"), (["revdep", "x"], "revdep"), (["h"], "help"),
        (["sync"], "sync"),
    ])
    def test_abbreviations(self, argv, verb):
        assert make_parser().parse_args(argv).verb == verb

    def test_sync_message_words(self):
        args = make_parser().parse_args(["sync", "update", "recipes"])
        assert args.message == ["update", "recipes"]

    def test_unknown_verb_is_usage_error(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["frobnicate"])
        assert exc.value.code == EXIT_USAGE

    def test_missing_argument_is_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            main(["build"])
        assert exc.value.code == EXIT_USAGE

    def test_no_arguments_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: sbuild" in capsys.readouterr().out

    def test_help_verb(self, capsys):
        assert main(["help"]) == 0
        assert "remove" in capsys.readouterr().out

    def test_dash_h(self):
        with pytest.raises(SystemExit) as exc:
            main(["-h"])
        assert exc.value.code == 0


class TestRecipeVerbs:
    def test_new_info_search(self, root: Path, reporter):
        assert run(root, "new", "hello", reporter=reporter) == 0
        assert (root / "recipes" / "hello" / "hello.ini").is_file()
        assert run(root, "ns", "hello", reporter=reporter) == 0
        assert "already exists" in output(reporter)
        assert run(root, "info", "hello", reporter=reporter) == 0
        assert "1.0.0" in output(reporter)
        assert run(root, "search", "hel", reporter=reporter) == 0
        assert "recipes/hello/hello.ini" in output(reporter)

    def test_search_no_match(self, root: Path, reporter):
        assert run(root, "srch", "nothing", reporter=reporter) == 0
        assert "No matches." in output(reporter)

    def test_unknown_recipe(self, root: Path, reporter):
        assert run(root, "build", "ghost", reporter=reporter) == EXIT_RECIPE
        assert "recipe not found: ghost" in output(reporter)

    def test_recipe_without_name(self, root: Path, reporter, toolbox):
        write_recipe(root, "broken", "[package]\nversion=1\nsource=https://example.invalid/b.tar.gz\n")
        assert run(root, "build", "broken", toolbox=toolbox, reporter=reporter) == EXIT_RECIPE
        assert toolbox.downloader.calls == []
        assert not (root / "work").exists() or not any((root / "work").iterdir())


@needs("sh", "tar", "gzip")
class TestEndToEnd:
    def test_install_package_remove(self, root: Path, reporter, toolbox, foo_recipe):
        assert run(root, "install", "foo", toolbox=toolbox, reporter=reporter) == 0
        staging = root / "destdir" / "foo-1.0.0"
        manifest = root / ".sbuild" / "installed" / "foo-1.0.0" / "manifest.txt"
        assert (staging / "usr" / "bin" / "hello").is_file()
        assert manifest.read_text().splitlines() == ["/usr/bin/hello", "/usr/share/foo/built.txt"]
        assert (root / "logs" / "foo-1.0.0.log").is_file()

        assert run(root, "pkg", "foo", toolbox=toolbox, reporter=reporter) == 0
        assert (root / "packages" / "foo-1.0.0.tar.gz").is_file()

        assert run(root, "revdep", "foo", toolbox=toolbox, reporter=reporter) == 0

        assert run(root, "rm", "foo", toolbox=toolbox, reporter=reporter) == 0
        assert not staging.exists()
        assert not manifest.parent.exists()
        assert (root / "postremove-ran").exists()
        # the package artifact is not part of the staging root
        assert (root / "packages" / "foo-1.0.0.tar.gz").is_file()

    def test_fetch_only_prepares_source(self, root: Path, reporter, toolbox, foo_recipe):
        assert run(root, "dl", "foo", toolbox=toolbox, reporter=reporter) == 0
        assert (root / "work" / "foo-1.0.0" / "hello.sh").is_file()
        assert not (root / "destdir" / "foo-1.0.0").exists()

    def test_wrong_checksum_exits_2_without_staging(self, root: Path, reporter, toolbox, foo_recipe):
        write_recipe(root, "foo", f"[package]\nname=foo\nversion=1.0.0\nsource={FOO_URL}\nchecksum={'f' * 64}\n")
        assert run(root, "install", "foo", toolbox=toolbox, reporter=reporter) == EXIT_FETCH
        assert not (root / "destdir" / "foo-1.0.0").exists()
        assert not (root / "work" / "foo-1.0.0").exists()
        assert "sha256 mismatch" in output(reporter)

    def test_package_before_install(self, root: Path, reporter, toolbox, foo_recipe):
        assert run(root, "package", "foo", toolbox=toolbox, reporter=reporter) == EXIT_NOT_STAGED
        assert "build/install first" in output(reporter)
        assert not (root / "packages").exists() or not any((root / "packages").iterdir())

    def test_remove_unknown(self, root: Path, reporter, toolbox):
        assert run(root, "remove", "foo", toolbox=toolbox, reporter=reporter) == EXIT_REGISTRY
        assert "no registry entry for: foo" in output(reporter)

    def test_phase_failure_exit_code(self, root: Path, reporter, toolbox, foo_recipe):
        text = foo_recipe.read_text().replace("build=printf 'built\\n' > built.txt", "build=exit 2")
        foo_recipe.write_text(text)
        assert run(root, "b", "foo", toolbox=toolbox, reporter=reporter) == 7
        assert "phase build failed (code 2)" in output(reporter)
        assert output(reporter).count("[FAIL]") == 1
        assert not (root / ".sbuild" / "installed" / "foo-1.0.0").exists()

    def test_strip_without_detector_exits_10(self, root: Path, reporter, toolbox, foo_recipe, monkeypatch):
        monkeypatch.setenv("SB_STRIP", "1")
        toolbox.stripper = PresentStripper()
        toolbox.elf_detector = FileCommandDetector()
        toolbox.elf_detector.program = "sbuild-no-such-file-xyz"
        assert run(root, "install", "foo", toolbox=toolbox, reporter=reporter) == EXIT_STRIP
        assert "cannot detect ELF files" in output(reporter)
        assert output(reporter).count("[FAIL]") == 1
        assert not (root / ".sbuild" / "installed" / "foo-1.0.0").exists()
