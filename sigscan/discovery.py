"""Project layout classification and sub-project discovery."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from .logging import get_logger
from .models import ProjectInfo, ProjectType

logger = get_logger("discovery")

EXCLUDED_DIRS = frozenset(
    {
        # dependencies and build output of Solidity toolchains
        "node_modules",
        "lib",
        "out",
        "cache",
        "artifacts",
        "build",
        "dist",
        "typechain",
        "typechain-types",
        "coverage",
        "broadcast",
        "forge-cache",
        "vendor",
        "dependencies",
        ".deps",
        # general tooling noise
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".idea",
        ".vscode",
        ".sigscan",
    }
)

_MARKERS: Tuple[Tuple[ProjectType, Tuple[str, ...]], ...] = (
    (ProjectType.FOUNDRY, ("foundry.toml",)),
    (
        ProjectType.HARDHAT,
        ("hardhat.config.js", "hardhat.config.ts", "hardhat.config.cjs", "hardhat.config.mjs"),
    ),
    (ProjectType.TRUFFLE, ("truffle-config.js", "truffle.js")),
)
_PLAIN_SOURCE_DIRS = ("contracts", "src")
_SOURCE_SUFFIX = ".sol"


def validate_root(root: str | Path) -> Path:
    """Resolve ``root`` or raise ``FileNotFoundError`` / ``NotADirectoryError``."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Project path not found: {root}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Project path is not a directory: {root}")
    return root_path


def find_marker(filenames: Iterable[str]) -> Optional[Tuple[ProjectType, str]]:
    """Return the highest-precedence layout marker among ``filenames``."""
    present = set(filenames)
    for project_type, markers in _MARKERS:
        for marker in markers:
            if marker in present:
                return project_type, marker
    return None


def classify_project(path: str | Path) -> ProjectInfo:
    """Classify one directory by its marker files and locate its contract sources."""
    root = validate_root(path)
    found = find_marker(entry.name for entry in root.iterdir() if entry.is_file())
    if found is not None:
        project_type, marker = found
        if project_type is ProjectType.FOUNDRY:
            source_root = _foundry_source_root(root / marker)
        else:
            source_root = _first_dir(root, ("contracts",))
        return ProjectInfo(type=project_type, root=root, source_root=source_root, marker=marker)

    for name in _PLAIN_SOURCE_DIRS:
        candidate = root / name
        if candidate.is_dir() and _contains_sources(candidate, EXCLUDED_DIRS):
            return ProjectInfo(type=ProjectType.PLAIN, root=root, source_root=candidate)
    if any(entry.is_file() and entry.name.endswith(_SOURCE_SUFFIX) for entry in root.iterdir()):
        return ProjectInfo(type=ProjectType.PLAIN, root=root, source_root=root)
    return ProjectInfo(type=ProjectType.UNKNOWN, root=root, source_root=root)


def _foundry_source_root(config_file: Path) -> Path:
    root = config_file.parent
    configured = "src"
    try:
        data = tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.debug("Ignoring unreadable %s: %s", config_file, exc)
        data = {}
    profile = data.get("profile", {}).get("default", {}) if isinstance(data.get("profile"), dict) else {}
    if isinstance(profile, dict) and isinstance(profile.get("src"), str):
        configured = profile["src"].strip("/") or "src"
    return _first_dir(root, (configured, "contracts"))


def _first_dir(root: Path, names: Sequence[str]) -> Path:
    for name in names:
        candidate = root / name
        if candidate.is_dir():
            return candidate
    # conventional directory missing: best effort over the whole project
    return root


def _contains_sources(directory: Path, excluded: FrozenSet[str]) -> bool:
    for _dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = [name for name in dirnames if name not in excluded]
        if any(name.endswith(_SOURCE_SUFFIX) for name in filenames):
            return True
    return False


@dataclass
class _Traversal:
    """State threaded through one discovery walk."""

    root: Path
    excluded: FrozenSet[str]
    max_depth: int
    found: List[Path] = field(default_factory=list)


def find_project_roots(
    root: str | Path, *, exclude_dirs: Iterable[str] = (), max_depth: int = 8
) -> List[Path]:
    """Return every marked directory under ``root`` (``root`` included), in walk order."""
    root_path = validate_root(root)
    context = _Traversal(
        root=root_path,
        excluded=EXCLUDED_DIRS | frozenset(exclude_dirs),
        max_depth=max_depth,
    )
    _walk(context)
    return context.found


def _walk(context: _Traversal) -> None:
    for dirpath, dirnames, filenames in os.walk(context.root):
        current = Path(dirpath)
        depth = len(current.relative_to(context.root).parts)
        if find_marker(filenames) is not None:
            context.found.append(current)
        if depth >= context.max_depth:
            dirnames[:] = []
            continue
        dirnames[:] = sorted(name for name in dirnames if name not in context.excluded)


def discover_sub_projects(
    root: str | Path, *, exclude_dirs: Iterable[str] = (), max_depth: int = 8
) -> List[ProjectInfo]:
    """Locate the independently scanned projects under ``root``.

    Every marked directory becomes a project whose scan skips the marked
    directories nested inside it. An unmarked ``root`` joins the list only
    when it holds Solidity files of its own outside those nested projects.
    When nothing qualifies, ``root`` itself is returned so a scan always has
    one project to work on.
    """
    exclude_dirs = tuple(exclude_dirs)
    root_path = validate_root(root)
    marked = find_project_roots(root_path, exclude_dirs=exclude_dirs, max_depth=max_depth)

    projects: List[ProjectInfo] = []
    if root_path not in marked:
        nested = _nested_under(root_path, marked)
        info = replace(classify_project(root_path), nested_projects=nested)
        if nested and _has_sources(info, exclude_dirs):
            projects.append(info)
        elif not nested:
            return [info]

    for project_root in marked:
        info = replace(classify_project(project_root), nested_projects=_nested_under(project_root, marked))
        projects.append(info)

    if not projects:
        projects.append(classify_project(root_path))
    logger.debug("Discovered %d project(s) under %s", len(projects), root_path)
    return projects


def _nested_under(parent: Path, marked: Sequence[Path]) -> Tuple[Path, ...]:
    return tuple(path for path in marked if path != parent and parent in path.parents)


def _has_sources(info: ProjectInfo, exclude_dirs: Iterable[str]) -> bool:
    return next(iter_source_files(info, exclude_dirs=exclude_dirs), None) is not None


def iter_source_files(
    info: ProjectInfo, *, exclude_dirs: Iterable[str] = (), include_tests: bool = True
) -> Iterator[Path]:
    """Yield the ``.sol`` files of one project in a stable order."""
    excluded = EXCLUDED_DIRS | frozenset(exclude_dirs)
    nested = set(info.nested_projects)
    if not info.source_root.is_dir():
        return
    for dirpath, dirnames, filenames in os.walk(info.source_root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in excluded
            and current / name not in nested
            and (include_tests or name not in {"test", "tests"})
        )
        for filename in sorted(filenames):
            if not filename.endswith(_SOURCE_SUFFIX):
                continue
            if not include_tests and filename.endswith(".t.sol"):
                continue
            yield current / filename


__all__ = [
    "EXCLUDED_DIRS",
    "classify_project",
    "discover_sub_projects",
    "find_marker",
    "find_project_roots",
    "iter_source_files",
    "validate_root",
]
