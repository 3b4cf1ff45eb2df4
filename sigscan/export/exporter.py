"""Writes scan results as text, JSON, CSV and Markdown files."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from ..config import DEFAULT_FORMATS, ExportSettings
from ..logging import get_logger
from ..models import (
    ContractSignatures,
    Diagnostic,
    ScanResult,
    SelectorCollision,
    SignatureKind,
    SignatureRecord,
    SubProjectResult,
)

SUPPORTED_FORMATS = ("txt", "json", "csv", "md")
_EXTENSIONS = {"txt": "txt", "json": "json", "csv": "csv", "md": "md"}
_CSV_COLUMNS = (
    "project",
    "contract",
    "path",
    "kind",
    "name",
    "signature",
    "selector",
    "visibility",
    "state_mutability",
    "line",
)


class ExportError(RuntimeError):
    """Raised when an export cannot be produced."""


@dataclass
class ExportOptions:
    """Output encodings, destination and record filters for one export."""

    output_dir: Path
    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    include_internal: bool = False
    include_private: bool = False
    include_events: bool = True
    include_errors: bool = True
    basename: str = "signatures"

    @classmethod
    def from_settings(cls, settings: ExportSettings, default_dir: Path) -> "ExportOptions":
        return cls(
            output_dir=settings.output_dir or default_dir,
            formats=list(settings.formats),
            include_internal=settings.include_internal,
            include_private=settings.include_private,
            include_events=settings.include_events,
            include_errors=settings.include_errors,
        )

    def keeps(self, record: SignatureRecord) -> bool:
        if record.kind is SignatureKind.EVENT:
            return self.include_events
        if record.kind is SignatureKind.ERROR:
            return self.include_errors
        if record.visibility == "internal":
            return self.include_internal
        if record.visibility == "private":
            return self.include_private
        return True


@dataclass
class _View:
    """Filtered projection of a result handed to each renderer."""

    result: ScanResult
    contracts: List[ContractSignatures]
    records: Dict[int, List[SignatureRecord]]
    free_records: List[SignatureRecord]


class SignatureExporter:
    """Renders a ``ScanResult`` in the requested formats and writes the files."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.logger = get_logger("export")
        self._renderers: Dict[str, Callable[[_View], str]] = {
            "txt": self.render_text,
            "json": self.render_json,
            "csv": self.render_csv,
            "md": self.render_markdown,
        }

    def export(self, result: ScanResult | SubProjectResult, options: ExportOptions) -> List[Path]:
        """Write one file per format and return their paths."""
        if isinstance(result, SubProjectResult):
            result = result.combined
        formats = [fmt.strip().lower() for fmt in options.formats if fmt.strip()]
        unknown = [fmt for fmt in formats if fmt not in self._renderers]
        if unknown:
            raise ExportError(
                f"Unsupported export format(s): {', '.join(unknown)} "
                f"(expected one of {', '.join(SUPPORTED_FORMATS)})"
            )

        view = self._view(result, options)
        output_dir = Path(options.output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExportError(f"Unable to create output directory {output_dir}: {exc}") from exc

        written: List[Path] = []
        for fmt in dict.fromkeys(formats):
            target = output_dir / f"{options.basename}.{_EXTENSIONS[fmt]}"
            target.write_text(self._renderers[fmt](view), encoding="utf-8")
            self.logger.info("Wrote %s", target)
            written.append(target)
        return written

    def _view(self, result: ScanResult, options: ExportOptions) -> _View:
        records: Dict[int, List[SignatureRecord]] = {}
        for index, contract in enumerate(result.contracts):
            records[index] = [record for record in contract.records if options.keeps(record)]
        return _View(
            result=result,
            contracts=list(result.contracts),
            records=records,
            free_records=[record for record in result.free_records if options.keeps(record)],
        )

    # ------------------------------------------------------------------
    # Renderers

    def render_text(self, view: _View) -> str:
        lines: List[str] = [f"# {_project_title(view.result)}", ""]
        for index, contract in enumerate(view.contracts):
            lines.append(f"{contract.kind.value} {contract.name} ({contract.path})")
            for record in view.records[index]:
                lines.append(f"  {_text_line(record)}")
            if not view.records[index]:
                lines.append("  (no signatures)")
            lines.append("")
        if view.free_records:
            lines.append("file-level declarations")
            lines.extend(f"  {_text_line(record)}" for record in view.free_records)
            lines.append("")
        if view.result.collisions:
            lines.append("selector collisions")
            for collision in view.result.collisions:
                lines.append(f"  {collision.selector} {', '.join(collision.signatures)}")
        return "\n".join(lines).rstrip() + "\n"

    def render_json(self, view: _View) -> str:
        result = view.result
        document = {
            "project": {
                "type": result.project.type.value,
                "root": str(result.project.root),
                "source_root": str(result.project.source_root),
                "marker": result.project.marker,
            },
            "scanned_at": result.scanned_at.isoformat().replace("+00:00", "Z"),
            "partial": result.partial,
            "files_scanned": result.files_scanned,
            "totals": _totals(result),
            "contracts": [
                {
                    "name": contract.name,
                    "kind": contract.kind.value,
                    "path": contract.path,
                    "category": contract.category,
                    "project": contract.project,
                    "bases": list(contract.bases),
                    "special_functions": list(contract.special_functions),
                    "records": [_record_to_dict(record) for record in view.records[index]],
                }
                for index, contract in enumerate(view.contracts)
            ],
            "free_records": [_record_to_dict(record) for record in view.free_records],
            "collisions": [_collision_to_dict(collision) for collision in result.collisions],
            "diagnostics": [_diagnostic_to_dict(diagnostic) for diagnostic in result.diagnostics],
        }
        return json.dumps(document, indent=2) + "\n"

    def render_csv(self, view: _View) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(_CSV_COLUMNS)
        rows: List[SignatureRecord] = []
        for index in range(len(view.contracts)):
            rows.extend(view.records[index])
        rows.extend(view.free_records)
        for record in rows:
            writer.writerow(
                (
                    record.project or "",
                    record.contract or "",
                    record.path,
                    record.kind.value,
                    record.name,
                    record.signature,
                    record.selector,
                    record.visibility or "",
                    record.state_mutability or "",
                    record.line,
                )
            )
        return buffer.getvalue()

    def render_markdown(self, view: _View) -> str:
        template = self._env.get_template("signatures.md.j2")
        contracts = [
            {"contract": contract, "records": view.records[index]}
            for index, contract in enumerate(view.contracts)
        ]
        return template.render(
            title=_project_title(view.result),
            result=view.result,
            totals=_totals(view.result),
            contracts=contracts,
            free_records=view.free_records,
            collisions=view.result.collisions,
        ).rstrip() + "\n"


def _project_title(result: ScanResult) -> str:
    return f"{result.project.root.name or result.project.root} ({result.project.type.value})"


def _text_line(record: SignatureRecord) -> str:
    details = [record.kind.value]
    if record.visibility:
        details.append(record.visibility)
    if record.state_mutability and record.kind is SignatureKind.FUNCTION:
        details.append(record.state_mutability)
    if record.anonymous:
        details.append("anonymous")
    return f"{record.selector}  {record.signature}  [{' '.join(details)}]"


def _totals(result: ScanResult) -> Dict[str, int]:
    return {
        "contracts": result.total_contracts,
        "functions": result.total_functions,
        "external_functions": result.total_external_functions,
        "internal_functions": result.total_internal_functions,
        "events": result.total_events,
        "errors": result.total_errors,
        "collisions": len(result.collisions),
    }


def _record_to_dict(record: SignatureRecord) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": record.name,
        "kind": record.kind.value,
        "signature": record.signature,
        "selector": record.selector,
        "contract": record.contract,
        "path": record.path,
        "line": record.line,
        "inputs": [
            {"name": parameter.name, "type": parameter.type, "indexed": parameter.indexed}
            for parameter in record.inputs
        ],
    }
    if record.kind is SignatureKind.FUNCTION:
        data["visibility"] = record.visibility
        data["state_mutability"] = record.state_mutability
        data["returns"] = list(record.returns)
    if record.kind is SignatureKind.EVENT:
        data["anonymous"] = record.anonymous
    if record.project is not None:
        data["project"] = record.project
    if record.natspec is not None:
        natspec: Dict[str, Any] = {}
        if record.natspec.notice:
            natspec["notice"] = record.natspec.notice
        if record.natspec.dev:
            natspec["dev"] = record.natspec.dev
        for key in ("params", "returns", "custom"):
            value = dict(getattr(record.natspec, key))
            if value:
                natspec[key] = value
        data["natspec"] = natspec
    return data


def _collision_to_dict(collision: SelectorCollision) -> Dict[str, Any]:
    return {
        "selector": collision.selector,
        "kind": collision.kind.value,
        "signatures": list(collision.signatures),
        "locations": list(collision.locations),
    }


def _diagnostic_to_dict(diagnostic: Diagnostic) -> Dict[str, Optional[object]]:
    return {
        "kind": diagnostic.kind.value,
        "message": diagnostic.message,
        "path": diagnostic.path,
        "line": diagnostic.line,
        "construct": diagnostic.construct,
    }


def parse_formats(value: str | Sequence[str]) -> List[str]:
    """Split ``"txt,json"`` style input into a normalised list."""
    items = value.split(",") if isinstance(value, str) else list(value)
    return [item.strip().lower() for item in items if item.strip()]


__all__ = [
    "ExportError",
    "ExportOptions",
    "SUPPORTED_FORMATS",
    "SignatureExporter",
    "parse_formats",
]
