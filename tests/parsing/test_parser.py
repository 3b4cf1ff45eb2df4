"""Tests for sigscan.parsing.parser."""

from __future__ import annotations

from pathlib import Path

import pytest

from sigscan.models import DiagnosticKind, SignatureKind
from sigscan.parsing.lexer import UnparseableSourceError
from sigscan.parsing.parser import SolidityParser, categorize


def test_parse_file_returns_records(tmp_path: Path) -> None:
    source = tmp_path / "Counter.sol"
    source.write_text(
        """
        pragma solidity 0.8.24;
        error Overflow(uint256 value);
        contract Counter {
            event Incremented(uint256 by);
            function increment(uint256 by) external {}
            function current() external view returns (uint256) {}
        }
        """,
        encoding="utf-8",
    )
    unit = SolidityParser().parse_file(source)

    assert unit is not None
    assert unit.path == str(source)
    assert unit.pragma == "0.8.24"
    assert [record.signature for record in unit.records_for("Counter")] == [
        "increment(uint256)",
        "current()",
        "Incremented(uint256)",
    ]
    (free,) = unit.records_for(None)
    assert free.kind is SignatureKind.ERROR
    assert free.contract is None


def test_parse_file_returns_none_for_unparseable_source(tmp_path: Path) -> None:
    source = tmp_path / "Broken.sol"
    source.write_text("contract Broken { /* never closed", encoding="utf-8")
    assert SolidityParser().parse_file(source) is None


def test_parse_file_reports_invalid_utf8(tmp_path: Path) -> None:
    source = tmp_path / "Latin1.sol"
    source.write_bytes(b"// caf\xe9\ncontract Latin1 { function ok() external {} }\n")

    unit = SolidityParser().parse_file(source)

    assert unit is not None
    assert [record.signature for record in unit.records] == ["ok()"]
    (diagnostic,) = unit.diagnostics
    assert diagnostic.kind is DiagnosticKind.INVALID_ENCODING
    assert diagnostic.line == 1


def test_parse_file_returns_none_for_missing_file(tmp_path: Path) -> None:
    assert SolidityParser().parse_file(tmp_path / "Missing.sol") is None


def test_parse_source_raises_for_unterminated_string() -> None:
    with pytest.raises(UnparseableSourceError):
        SolidityParser().parse_source('contract A { string s = "x; }', "A.sol")


def test_extraction_diagnostics_survive_resolution() -> None:
    unit = SolidityParser().parse_source(
        "contract A { function f(uint a,  { } function g() external {} }",
        "src/A.sol",
    )
    assert [record.name for record in unit.records] == ["g"]
    assert unit.diagnostics[0].kind is DiagnosticKind.MALFORMED_DECLARATION


@pytest.mark.parametrize(
    ("path", "category"),
    [
        ("src/Token.sol", "contracts"),
        ("contracts/token/Token.sol", "contracts"),
        ("test/Token.t.sol", "tests"),
        ("src/Token.t.sol", "tests"),
        ("tests/Helper.sol", "tests"),
        ("lib/forge-std/src/Vm.sol", "libs"),
        ("contracts/libraries/Math.sol", "libs"),
        ("lib/solmate/src/ERC20.sol", "libs"),
    ],
)
def test_categorize(path: str, category: str) -> None:
    assert categorize(path) == category
