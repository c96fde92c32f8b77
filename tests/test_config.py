"""
Tests for settings loading (sbuild.yaml) and the working-root layout.
"""

import os
from pathlib import Path

from sbuild.modules import config
from sbuild.modules.config import DEFAULTS, human_size_to_bytes


class TestLoad:
    def test_defaults_without_file(self, root: Path):
        cfg = config.load(root)
        assert cfg.source is None
        assert cfg.get("fetcher.downloader") == "curl"
        assert cfg.get("fetcher.checksum") == "sha256sum"
        assert cfg.get("tools.elf_detector") == "file"
        assert cfg.get("ui.spinner") is True
        assert cfg.get("no.such.key", "x") == "x"
        assert cfg.jobs == (os.cpu_count() or 1)

    def test_yaml_file_merged_over_defaults(self, root: Path):
        (root / "sbuild.yaml").write_text(
            "build:\n  jobs: 3\nfetcher:\n  downloader: requests\nlogging:\n  max_size: 2M\n")
        cfg = config.load(root)
        assert cfg.source == root / "sbuild.yaml"
        assert cfg.jobs == 3
        assert cfg.get("fetcher.downloader") == "requests"
        assert cfg.get("fetcher.checksum") == "sha256sum"
        assert cfg.get("logging.max_size_bytes") == 2 * 1024 * 1024

    def test_explicit_path_wins(self, root: Path, tmp_path: Path):
        (root / "sbuild.yaml").write_text("build:\n  jobs: 3\n")
        other = tmp_path / "other.yaml"
        other.write_text("build:\n  jobs: 7\n")
        assert config.load(root, explicit_path=str(other)).jobs == 7

    def test_env_variable(self, root: Path, tmp_path: Path, monkeypatch):
        other = tmp_path / "env.yaml"
        other.write_text("build:\n  jobs: 5\n")
        monkeypatch.setenv("SBUILD_CONFIG", str(other))
        assert config.load(root).jobs == 5

    def test_bad_yaml_falls_back_to_defaults(self, root: Path):
        (root / "sbuild.yaml").write_text("build: [unclosed\n")
        cfg = config.load(root)
        assert cfg.source is None
        assert cfg.get("fetcher.downloader") == "curl"

    def test_non_mapping_ignored(self, root: Path):
        (root / "sbuild.yaml").write_text("- a\n- b\n")
        assert config.load(root).source is None

    def test_scalar_section_replaced_by_defaults(self, root: Path):
        (root / "sbuild.yaml").write_text("build: 4\nlogging: x\nfetcher:\n  downloader: requests\n")
        cfg = config.load(root)
        assert cfg.jobs == (os.cpu_count() or 1)
        assert cfg.get("logging.level") == "WARNING"
        assert cfg.get("logging.max_size_bytes") == 10 * 1024 * 1024
        assert cfg.get("fetcher.downloader") == "requests"

    def test_invalid_jobs_ignored(self, root: Path):
        cfg = config.load(root, overrides={"build": {"jobs": "many"}})
        assert cfg.jobs == (os.cpu_count() or 1)

    def test_defaults_not_mutated(self, root: Path):
        config.load(root, overrides={"fetcher": {"downloader": "requests"}})
        assert DEFAULTS["fetcher"]["downloader"] == "curl"


class TestPaths:
    def test_layout(self, root: Path):
        p = config.load(root).paths
        assert p.root == root.resolve()
        assert p.recipes == p.root / "recipes"
        assert p.registry == p.root / ".sbuild" / "installed"
        assert p.cache == p.root / ".sbuild" / "cache"
        assert p.global_hooks == p.root / ".sbuild" / "hooks.ini"
        assert p.staging("foo-1.0.0") == p.root / "destdir" / "foo-1.0.0"
        assert p.work_tree("foo-1.0.0") == p.root / "work" / "foo-1.0.0"
        assert p.checkout("foo-1.0.0") == p.root / "sources" / "foo-1.0.0"
        assert p.log_file("foo-1.0.0") == p.root / "logs" / "foo-1.0.0.log"

    def test_ensure_creates_directories(self, root: Path):
        p = config.load(root).paths
        p.ensure()
        for d in ("recipes", "sources", "work", "destdir", "packages", "logs"):
            assert (p.root / d).is_dir()
        assert p.registry.is_dir() and p.cache.is_dir()


class TestHumanSize:
    def test_units(self):
        assert human_size_to_bytes("10M") == 10 * 1024 * 1024
        assert human_size_to_bytes("1.5k") == 1536
        assert human_size_to_bytes("2GB") == 2 * 1024 ** 3
        assert human_size_to_bytes(42) == 42
        assert human_size_to_bytes("512") == 512

    def test_unparsable(self):
        assert human_size_to_bytes(None) is None
        assert human_size_to_bytes("lots") is None
