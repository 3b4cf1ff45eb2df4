"""Tests for sigscan.parsing.types."""

from __future__ import annotations

import pytest

from sigscan.models import ArrayTypeRef, DiagnosticKind, ElementaryTypeRef, MappingTypeRef, UserTypeRef
from sigscan.parsing.parser import SolidityParser
from sigscan.parsing.types import (
    InvalidParameterTypeError,
    TypeCanonicalizer,
    TypeRegistry,
    UnresolvableTypeError,
)


def _signatures(source: str, path: str = "src/Sample.sol") -> dict[str, str]:
    unit = SolidityParser().parse_source(source, path)
    return {record.name: record.signature for record in unit.records}


@pytest.mark.parametrize(
    ("written", "canonical"),
    [
        ("uint", "uint256"),
        ("int", "int256"),
        ("byte", "bytes1"),
        ("fixed", "fixed128x18"),
        ("ufixed", "ufixed128x18"),
        ("address payable", "address"),
        ("uint64", "uint64"),
        ("bytes", "bytes"),
        ("string", "string"),
        ("bool", "bool"),
        ("bytes32", "bytes32"),
    ],
)
def test_elementary_types_are_normalised(written: str, canonical: str) -> None:
    canonicalizer = TypeCanonicalizer(TypeRegistry(), "A.sol")
    assert canonicalizer.canonical(ElementaryTypeRef(written)) == canonical


def test_array_suffixes_keep_declared_order() -> None:
    canonicalizer = TypeCanonicalizer(TypeRegistry(), "A.sol")
    ref = ArrayTypeRef(ArrayTypeRef(ElementaryTypeRef("uint"), "2"), None)
    assert canonicalizer.canonical(ref) == "uint256[2][]"
    assert canonicalizer.canonical(ArrayTypeRef(ElementaryTypeRef("int"), "0x10")) == "int256[16]"


def test_mapping_and_unknown_names_raise() -> None:
    canonicalizer = TypeCanonicalizer(TypeRegistry(), "A.sol")
    with pytest.raises(InvalidParameterTypeError):
        canonicalizer.canonical(MappingTypeRef(ElementaryTypeRef("address"), ElementaryTypeRef("uint256")))
    with pytest.raises(UnresolvableTypeError):
        canonicalizer.canonical(UserTypeRef(("Missing",)))


def test_nested_structs_enums_and_contracts() -> None:
    signatures = _signatures(
        """
        interface IERC20 {}

        contract Market {
            struct Asset { address token; uint amount; }
            struct Order { Asset[] assets; Asset fee; Side side; bytes32 id; }
            enum Side { Buy, Sell }

            function place(Order calldata order, IERC20 token) external {}
        }
        """
    )
    assert signatures["place"] == "place(((address,uint256)[],(address,uint256),uint8,bytes32),address)"


def test_value_types_and_constant_array_lengths() -> None:
    signatures = _signatures(
        """
        type Price is uint128;
        uint256 constant N = 3;

        contract Quotes {
            uint256 private constant M = 0x2;
            function quote(Price p, uint[N] calldata xs, bytes32[M] calldata ys) external {}
        }
        """
    )
    assert signatures["quote"] == "quote(uint128,uint256[3],bytes32[2])"


def test_inherited_and_qualified_struct_names() -> None:
    signatures = _signatures(
        """
        contract Base {
            struct Point { int x; int y; }
        }

        contract Child is Base {
            function move(Point memory to) external {}
            function jump(Base.Point memory to) external {}
        }
        """
    )
    assert signatures["move"] == "move((int256,int256))"
    assert signatures["jump"] == "jump((int256,int256))"


def test_unresolvable_declarations_are_dropped_with_diagnostics() -> None:
    unit = SolidityParser().parse_source(
        """
        contract Broken {
            struct Node { uint value; Node[] children; }
            function recursive(Node memory node) external {}
            function unknown(Ghost memory ghost) external {}
            function dynamicLength(uint[len] memory values) external {}
            function fine(uint value) external {}
        }
        """,
        "src/Broken.sol",
    )
    assert [record.name for record in unit.records] == ["fine"]
    unresolvable = [d.construct for d in unit.diagnostics if d.kind is DiagnosticKind.UNRESOLVABLE_TYPE]
    assert unresolvable == ["function recursive", "function unknown", "function dynamicLength"]


def test_constant_expressions_are_not_usable_as_array_lengths() -> None:
    unit = SolidityParser().parse_source(
        """
        contract Sized {
            uint256 constant N = 3 * 2;
            uint256 constant K = 4;
            function f(uint256[N] calldata a) external {}
            function g(uint256[K] calldata a) external {}
        }
        """,
        "src/Sized.sol",
    )
    assert [record.signature for record in unit.records] == ["g(uint256[4])"]
    unresolvable = [d.construct for d in unit.diagnostics if d.kind is DiagnosticKind.UNRESOLVABLE_TYPE]
    assert unresolvable == ["function f"]


def test_mapping_parameters_drop_the_declaration_regardless_of_visibility() -> None:
    unit = SolidityParser().parse_source(
        """
        library Ledger {
            struct Book { mapping(address => uint256) balances; }
            function credit(mapping(address => uint256) storage balances, address who) internal {}
            function open(Book storage book) public {}
            function total(uint256 a) public pure returns (uint256) { return a; }
        }
        """,
        "src/Ledger.sol",
    )
    assert [record.name for record in unit.records] == ["total"]
    invalid = [d.construct for d in unit.diagnostics if d.kind is DiagnosticKind.INVALID_PARAMETER_TYPE]
    assert invalid == ["function credit", "function open"]


def test_project_registry_resolves_names_from_other_files() -> None:
    parser = SolidityParser()
    types_unit = parser.extract_source(
        """
        struct Order { address maker; uint256 amount; }
        enum Status { Open, Closed }
        """,
        "src/Types.sol",
    )
    exchange_unit = parser.extract_source(
        """
        import "./Types.sol";
        contract Exchange {
            function fill(Order calldata order, Status status) external {}
        }
        """,
        "src/Exchange.sol",
    )

    alone = parser.resolve(exchange_unit, TypeRegistry.from_units([exchange_unit]))
    assert alone.records == ()

    registry = TypeRegistry.from_units([types_unit, exchange_unit])
    resolved = parser.resolve(exchange_unit, registry)
    assert [record.signature for record in resolved.records] == ["fill((address,uint256),uint8)"]


def test_ambiguous_project_wide_names_are_unresolvable() -> None:
    parser = SolidityParser()
    first = parser.extract_source("struct Config { uint256 a; }", "src/A.sol")
    second = parser.extract_source("struct Config { address b; }", "src/B.sol")
    user = parser.extract_source(
        "contract User { function set(Config memory c) external {} }",
        "src/User.sol",
    )
    resolved = parser.resolve(user, TypeRegistry.from_units([first, second, user]))
    assert resolved.records == ()
    assert resolved.diagnostics[0].kind is DiagnosticKind.UNRESOLVABLE_TYPE

    # the declaring file's own definition wins over the project-wide lookup
    local = parser.resolve(
        parser.extract_source(
            "struct Config { uint256 a; }\ncontract Local { function set(Config memory c) external {} }",
            "src/A.sol",
        ),
        TypeRegistry.from_units([first, second]),
    )
    assert [record.signature for record in local.records] == ["set((uint256))"]


def test_canonicalization_is_deterministic() -> None:
    source = """
    contract Again {
        struct Pair { uint a; address b; }
        function f(Pair[] calldata pairs, uint8 x) external {}
        event E(Pair p);
    }
    """
    first = SolidityParser().parse_source(source, "src/Again.sol")
    second = SolidityParser().parse_source(source, "src/Again.sol")
    assert [(r.signature, r.selector) for r in first.records] == [
        (r.signature, r.selector) for r in second.records
    ]
