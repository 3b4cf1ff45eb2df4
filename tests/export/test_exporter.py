"""Tests for the signature exporter."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

import pytest

from sigscan.config import ExportSettings
from sigscan.export import ExportError, ExportOptions, SignatureExporter, parse_formats
from sigscan.models import ScanResult
from tests._fixtures.project_builder import ProjectBuilder

SOURCES = {
    "foundry.toml": "",
    "src/Vault.sol": """
        pragma solidity ^0.8.20;

        error Unauthorized(address caller);

        interface IVault {
            function deposit(uint256 amount) external;
        }

        contract Vault is IVault {
            event Deposited(address indexed who, uint256 amount);
            event Ping() anonymous;

            function deposit(uint256 amount) external {}
            function balanceOf(address who) public view returns (uint256) {}
            function _credit(address who, uint256 amount) internal {}
            function _secret() private {}
        }
    """,
}


@pytest.fixture
def result(project_builder: ProjectBuilder) -> ScanResult:
    project_builder.write(SOURCES)
    return project_builder.scan()


def _options(tmp_path: Path, *formats: str, **flags: bool) -> ExportOptions:
    return ExportOptions(output_dir=tmp_path / "out", formats=list(formats), **flags)


def test_export_writes_one_file_per_format(result: ScanResult, tmp_path: Path) -> None:
    written = SignatureExporter().export(result, _options(tmp_path, "txt", "json", "csv", "md", "json"))
    assert [path.name for path in written] == [
        "signatures.txt",
        "signatures.json",
        "signatures.csv",
        "signatures.md",
    ]
    assert all(path.exists() for path in written)


def test_json_document_shape(result: ScanResult, tmp_path: Path) -> None:
    (path,) = SignatureExporter().export(result, _options(tmp_path, "json"))
    document = json.loads(path.read_text(encoding="utf-8"))

    assert document["project"]["type"] == "foundry"
    assert document["scanned_at"].endswith("Z")
    assert document["partial"] is False
    assert document["files_scanned"] == 1
    assert document["totals"]["contracts"] == 2
    assert document["totals"]["internal_functions"] == 2

    vault = next(contract for contract in document["contracts"] if contract["name"] == "Vault")
    assert vault["bases"] == ["IVault"]
    signatures = [record["signature"] for record in vault["records"]]
    assert signatures == ["deposit(uint256)", "balanceOf(address)", "Deposited(address,uint256)", "Ping()"]
    balance = vault["records"][1]
    assert balance["selector"] == "0x70a08231"
    assert balance["state_mutability"] == "view"
    assert balance["returns"] == ["uint256"]
    assert vault["records"][3]["anonymous"] is True

    (free,) = document["free_records"]
    assert free["signature"] == "Unauthorized(address)"
    assert free["contract"] is None


def test_filters_control_which_records_are_written(result: ScanResult, tmp_path: Path) -> None:
    options = _options(
        tmp_path, "csv", include_internal=True, include_private=True, include_events=False, include_errors=False
    )
    (path,) = SignatureExporter().export(result, options)
    rows = list(csv.DictReader(io.StringIO(path.read_text(encoding="utf-8"))))

    assert {row["kind"] for row in rows} == {"function"}
    assert {row["name"] for row in rows if row["contract"] == "Vault"} == {
        "deposit",
        "balanceOf",
        "_credit",
        "_secret",
    }


def test_text_and_markdown_renderings(result: ScanResult, tmp_path: Path) -> None:
    txt, md = SignatureExporter().export(result, _options(tmp_path, "txt", "md"))
    text = txt.read_text(encoding="utf-8")
    markdown = md.read_text(encoding="utf-8")

    assert "contract Vault (src/Vault.sol)" in text
    assert "0x70a08231  balanceOf(address)  [function public view]" in text
    assert "file-level declarations" in text
    assert "# Signatures: workspace (foundry)" in markdown
    assert "| `0x70a08231` | `balanceOf(address)` | function | public | view |" in markdown
    assert "Inherits: IVault" in markdown
    assert "## File-level declarations" in markdown


def test_unknown_format_raises(result: ScanResult, tmp_path: Path) -> None:
    with pytest.raises(ExportError):
        SignatureExporter().export(result, _options(tmp_path, "json", "yaml"))
    assert not (tmp_path / "out").exists()


def test_options_from_settings_fall_back_to_default_dir(tmp_path: Path) -> None:
    options = ExportOptions.from_settings(ExportSettings(formats=["md"], include_private=True), tmp_path)
    assert options.output_dir == tmp_path
    assert options.formats == ["md"]
    assert options.include_private is True


def test_parse_formats() -> None:
    assert parse_formats(" TXT, json ,,md") == ["txt", "json", "md"]
    assert parse_formats(["CSV"]) == ["csv"]
