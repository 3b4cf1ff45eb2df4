"""Helper utilities for constructing temporary Solidity projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from sigscan.models import ScanResult, SubProjectResult
from sigscan.scanner import ProjectScanner


class ProjectBuilder:
    """Utility for writing files into a throwaway project tree and scanning it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "workspace"
        self.root.mkdir()
        self.scanner = ProjectScanner(max_workers=2)

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries below the project root."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def scan(self, relative: str = ".") -> ScanResult:
        """Scan one project below the root."""
        return self.scanner.scan_project(self.root / relative)

    def scan_all(self) -> SubProjectResult:
        """Scan every sub-project below the root."""
        return self.scanner.scan_all_sub_projects(self.root)

    def path(self, relative: str = ".") -> Path:
        return (self.root / relative).resolve()


__all__ = ["ProjectBuilder"]
