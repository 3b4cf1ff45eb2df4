"""Project scanning: discovery, per-file parsing and aggregation."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .collisions import collision_diagnostics, detect_collisions
from .config import SigscanConfig
from .discovery import classify_project, discover_sub_projects, find_project_roots, iter_source_files, validate_root
from .logging import get_logger
from .models import (
    ContractSignatures,
    Diagnostic,
    DiagnosticKind,
    ProjectInfo,
    ScanResult,
    SignatureRecord,
    SourceUnit,
    SubProjectResult,
)
from .parsing.lexer import UnparseableSourceError
from .parsing.parser import SolidityParser, encoding_diagnostic, read_source
from .parsing.types import TypeRegistry
from .stores.signature_cache import SignatureCache, content_hash

_T = TypeVar("_T")
_R = TypeVar("_R")


class ScanCancelledError(RuntimeError):
    """Raised when a scan is cancelled and the caller asked for no partial result."""


@dataclass(frozen=True)
class _FileOutcome:
    """What one file contributed during extraction."""

    path: Path
    unit: Optional[SourceUnit]
    diagnostics: Tuple[Diagnostic, ...] = ()


class ProjectScanner:
    """Scans Solidity projects and aggregates their signature records.

    Files are parsed on a thread pool in two passes: extraction per file, then
    resolution per file against a registry of every declaration the project
    made. Each task returns an immutable unit and the caller collects results
    in submission order, so no task writes to a shared collection. The parse
    cache is the only object tasks share.

    Calling ``cancel`` (or setting ``cancel_event``) stops a running scan
    before its next file. The scan then returns what it finished with
    ``partial=True``, or raises ``ScanCancelledError`` when
    ``raise_on_cancel`` is set.
    """

    def __init__(
        self,
        *,
        parser: SolidityParser | None = None,
        cache: SignatureCache | None = None,
        max_workers: int | None = None,
        exclude_dirs: Iterable[str] = (),
        max_depth: int = 8,
        include_tests: bool = True,
        cancel_event: threading.Event | None = None,
        raise_on_cancel: bool = False,
    ) -> None:
        self.parser = parser or SolidityParser()
        self.cache = cache if cache is not None else SignatureCache()
        self.max_workers = max_workers
        self.exclude_dirs = tuple(exclude_dirs)
        self.max_depth = max_depth
        self.include_tests = include_tests
        self.cancel_event = cancel_event or threading.Event()
        self.raise_on_cancel = raise_on_cancel
        self.logger = get_logger("scanner")

    @classmethod
    def from_config(cls, config: SigscanConfig, **overrides: object) -> "ProjectScanner":
        options = {
            "max_workers": config.scan.max_workers,
            "exclude_dirs": config.scan.exclude_dirs,
            "max_depth": config.scan.max_depth,
            "include_tests": config.scan.include_tests,
        }
        options.update(overrides)
        return cls(**options)  # type: ignore[arg-type]

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    # ------------------------------------------------------------------
    # Public operations

    def scan_project(self, root: str | Path) -> ScanResult:
        """Scan one project rooted at ``root``; only a bad root raises."""
        root_path = validate_root(root)
        nested = tuple(
            path
            for path in find_project_roots(root_path, exclude_dirs=self.exclude_dirs, max_depth=self.max_depth)
            if path != root_path
        )
        info = replace(classify_project(root_path), nested_projects=nested)
        return self._scan(info, label=None)

    def scan_all_sub_projects(self, root: str | Path) -> SubProjectResult:
        """Scan every independent project under ``root`` and combine the results."""
        root_path = validate_root(root)
        projects = discover_sub_projects(root_path, exclude_dirs=self.exclude_dirs, max_depth=self.max_depth)
        self.logger.info("Scanning %d project(s) under %s", len(projects), root_path)

        def _scan_one(info: ProjectInfo) -> Optional[ScanResult]:
            if self.cancelled:
                return None
            return self._scan(info, label=_label(root_path, info.root))

        results = [result for result in self._map(_scan_one, projects) if result is not None]
        if self.cancelled:
            self._cancelled_scan(root_path)

        combined_info = replace(
            classify_project(root_path),
            nested_projects=tuple(info.root for info in projects if info.root != root_path),
        )
        combined = combine_results(combined_info, results)
        combined.partial = combined.partial or len(results) < len(projects)
        return SubProjectResult(sub_projects=results, combined=combined)

    # ------------------------------------------------------------------
    # Scanning one project

    def _scan(self, info: ProjectInfo, *, label: Optional[str]) -> ScanResult:
        files = list(iter_source_files(info, exclude_dirs=self.exclude_dirs, include_tests=self.include_tests))
        self.logger.info(
            "Scanning %s project at %s (%d source files)", info.type.value, info.root, len(files)
        )

        outcomes = self._map(lambda path: self._extract(info, path), files)
        extracted = [outcome for outcome in outcomes if outcome is not None]
        units = [outcome.unit for outcome in extracted if outcome.unit is not None]

        registry = TypeRegistry.from_units(units)
        resolved = [
            unit
            for unit in self._map(lambda unit: self._resolve(unit, registry), units)
            if unit is not None
        ]
        partial = self.cancelled and (len(extracted) < len(files) or len(resolved) < len(units))
        if partial:
            self._cancelled_scan(info.root)

        result = ScanResult(project=info, files_scanned=len(extracted), partial=partial)
        for outcome in extracted:
            result.diagnostics.extend(outcome.diagnostics)
        for unit in resolved:
            _collect(result, unit, label)
        result.collisions = detect_collisions(result.records)
        result.diagnostics.extend(collision_diagnostics(result.collisions))
        for collision in result.collisions:
            self.logger.warning(
                "Selector collision %s: %s", collision.selector, ", ".join(collision.signatures)
            )
        self.logger.debug(
            "Found %d contracts and %d records in %s", result.total_contracts, len(result.records), info.root
        )
        return result

    def _extract(self, info: ProjectInfo, path: Path) -> Optional[_FileOutcome]:
        if self.cancelled:
            return None
        relative = _label(info.root, path)
        try:
            text, bad_line = read_source(path)
        except OSError as exc:
            self.logger.warning("Unable to read %s: %s", path, exc)
            return _FileOutcome(
                path=path,
                unit=None,
                diagnostics=(Diagnostic(DiagnosticKind.UNPARSEABLE_FILE, f"unreadable file: {exc}", relative),),
            )
        notes: Tuple[Diagnostic, ...] = ()
        if bad_line is not None:
            notes = (encoding_diagnostic(relative, bad_line),)
            self.logger.warning("%s", notes[0].message)

        cache_key = str(path)
        fingerprint = content_hash(text)
        cached = self.cache.get(cache_key, fingerprint=fingerprint)
        if cached is not None and cached.path == relative:
            return _FileOutcome(path=path, unit=cached, diagnostics=notes)

        try:
            unit = self.parser.extract_source(text, relative)
        except UnparseableSourceError as exc:
            self.logger.warning("Skipping unparseable file %s: %s", relative, exc)
            self.cache.invalidate(cache_key)
            return _FileOutcome(
                path=path,
                unit=None,
                diagnostics=notes
                + (Diagnostic(DiagnosticKind.UNPARSEABLE_FILE, str(exc), relative, line=exc.line),),
            )
        self.cache.store(cache_key, fingerprint=fingerprint, unit=unit)
        return _FileOutcome(path=path, unit=unit, diagnostics=notes)

    def _resolve(self, unit: SourceUnit, registry: TypeRegistry) -> Optional[SourceUnit]:
        if self.cancelled:
            return None
        return self.parser.resolve(unit, registry)

    def _map(self, func: Callable[[_T], _R], items: Sequence[_T]) -> List[_R]:
        if not items:
            return []
        if self.max_workers == 1 or len(items) == 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(func, items))

    def _cancelled_scan(self, root: Path) -> None:
        self.logger.info("Scan of %s cancelled", root)
        if self.raise_on_cancel:
            raise ScanCancelledError(f"Scan of {root} was cancelled")


def _label(base: Path, path: Path) -> str:
    try:
        relative = path.relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()
    return relative or "."


def _collect(result: ScanResult, unit: SourceUnit, project: Optional[str]) -> None:
    def _tag(records: Sequence[SignatureRecord]) -> tuple:
        if project is None:
            return tuple(records)
        return tuple(replace(record, project=project) for record in records)

    for contract in unit.contracts:
        result.contracts.append(
            ContractSignatures(
                name=contract.name,
                kind=contract.kind,
                path=unit.path,
                category=unit.category,
                bases=contract.bases,
                records=_tag(unit.records_for(contract.name)),
                special_functions=contract.special_functions,
                project=project,
            )
        )
    result.free_records.extend(_tag(unit.records_for(None)))
    result.diagnostics.extend(unit.diagnostics)


def combine_results(project: ProjectInfo, results: Sequence[ScanResult]) -> ScanResult:
    """Concatenate sub-project results, keeping provenance, and recompute collisions."""
    combined = ScanResult(project=project)
    for result in results:
        combined.contracts.extend(result.contracts)
        combined.free_records.extend(result.free_records)
        combined.diagnostics.extend(
            diagnostic
            for diagnostic in result.diagnostics
            if diagnostic.kind is not DiagnosticKind.SELECTOR_COLLISION
        )
        combined.files_scanned += result.files_scanned
        combined.partial = combined.partial or result.partial
    combined.collisions = detect_collisions(combined.records)
    combined.diagnostics.extend(collision_diagnostics(combined.collisions))
    return combined


__all__ = ["ProjectScanner", "ScanCancelledError", "combine_results"]
