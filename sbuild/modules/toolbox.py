# sbuild/modules/toolbox.py
"""
toolbox.py - the set of capabilities sbuild uses to do real work

Each field is a small object wrapping one external program (or an in-process
alternative). Toolbox.from_config() picks implementations from settings;
tests build a Toolbox with fakes instead.

  fetcher.downloader    curl (default) | requests
  fetcher.checksum      sha256sum (default) | hashlib
  tools.elf_detector    file (default) | magic
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sbuild.modules.config import Config
from sbuild.modules.elf import ElfDetector, FileCommandDetector, MagicDetector, Stripper
from sbuild.modules.fetcher import (ArchiveExtractor, ChecksumProvider, CurlDownloader, Downloader,
                                    GitClient, HashlibChecksum, RequestsDownloader, Sha256sumChecksum)
from sbuild.modules.logging import get_logger
from sbuild.modules.patches import PatchTool
from sbuild.modules.pkgtool import TarArchiver
from sbuild.modules.revdep import LddLinter

logger = get_logger("toolbox")


@dataclass
class Toolbox:
    downloader: Downloader = field(default_factory=CurlDownloader)
    vcs: GitClient = field(default_factory=GitClient)
    checksum: ChecksumProvider = field(default_factory=Sha256sumChecksum)
    extractor: ArchiveExtractor = field(default_factory=ArchiveExtractor)
    patch_tool: PatchTool = field(default_factory=PatchTool)
    elf_detector: ElfDetector = field(default_factory=FileCommandDetector)
    stripper: Stripper = field(default_factory=Stripper)
    linter: LddLinter = field(default_factory=LddLinter)
    archiver: TarArchiver = field(default_factory=TarArchiver)

    @classmethod
    def from_config(cls, cfg: Config) -> "Toolbox":
        box = cls()
        downloader = str(cfg.get("fetcher.downloader", "curl")).lower()
        if downloader == "requests":
            box.downloader = RequestsDownloader(timeout=int(cfg.get("fetcher.http_timeout", 300)))
        elif downloader != "curl":
            logger.warning("unknown fetcher.downloader %r, using curl", downloader)

        checksum = str(cfg.get("fetcher.checksum", "sha256sum")).lower()
        if checksum == "hashlib":
            box.checksum = HashlibChecksum()
        elif checksum != "sha256sum":
            logger.warning("unknown fetcher.checksum %r, using sha256sum", checksum)

        detector = str(cfg.get("tools.elf_detector", "file")).lower()
        if detector == "magic":
            box.elf_detector = MagicDetector()
        elif detector != "file":
            logger.warning("unknown tools.elf_detector %r, using file", detector)
        return box
