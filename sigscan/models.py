"""Core data models shared across sigscan components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set, Tuple, Union


# Type references as written in source


@dataclass(frozen=True)
class ElementaryTypeRef:
    """A built-in type keyword such as ``uint``, ``bytes32`` or ``address payable``."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UserTypeRef:
    """A (possibly qualified) identifier naming a struct, enum, value type or contract."""

    path: Tuple[str, ...]

    @property
    def name(self) -> str:
        return self.path[-1]

    def __str__(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True)
class ArrayTypeRef:
    """``base[]`` when ``length`` is None, ``base[length]`` otherwise."""

    base: "TypeRef"
    length: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.base}[{self.length or ''}]"


@dataclass(frozen=True)
class MappingTypeRef:
    key: "TypeRef"
    value: "TypeRef"

    def __str__(self) -> str:
        return f"mapping({self.key} => {self.value})"


@dataclass(frozen=True)
class FunctionTypeRef:
    """An external/internal function pointer type; kept verbatim."""

    text: str

    def __str__(self) -> str:
        return self.text


TypeRef = Union[ElementaryTypeRef, UserTypeRef, ArrayTypeRef, MappingTypeRef, FunctionTypeRef]


# Declarations


class ContractKind(str, Enum):
    CONTRACT = "contract"
    INTERFACE = "interface"
    LIBRARY = "library"
    ABSTRACT = "abstract"


class FunctionKind(str, Enum):
    FUNCTION = "function"
    CONSTRUCTOR = "constructor"
    FALLBACK = "fallback"
    RECEIVE = "receive"


class SignatureKind(str, Enum):
    FUNCTION = "function"
    EVENT = "event"
    ERROR = "error"


@dataclass(frozen=True)
class Natspec:
    """Documentation tags attached to a declaration."""

    notice: Optional[str] = None
    dev: Optional[str] = None
    params: Mapping[str, str] = field(default_factory=dict)
    returns: Mapping[str, str] = field(default_factory=dict)
    custom: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Parameter:
    """A declared parameter, struct field or return value."""

    name: str
    type: TypeRef
    indexed: bool = False


@dataclass(frozen=True)
class FunctionDecl:
    name: str
    parameters: Tuple[Parameter, ...]
    kind: FunctionKind = FunctionKind.FUNCTION
    visibility: str = "internal"
    state_mutability: str = "nonpayable"
    visibility_explicit: bool = True
    returns: Tuple[Parameter, ...] = ()
    modifiers: Tuple[str, ...] = ()
    virtual: bool = False
    override: bool = False
    line: int = 0
    natspec: Optional[Natspec] = None

    @property
    def is_special(self) -> bool:
        """Constructors, fallback and receive have no callable selector."""
        return self.kind is not FunctionKind.FUNCTION


@dataclass(frozen=True)
class EventDecl:
    name: str
    parameters: Tuple[Parameter, ...]
    anonymous: bool = False
    line: int = 0
    natspec: Optional[Natspec] = None


@dataclass(frozen=True)
class ErrorDecl:
    name: str
    parameters: Tuple[Parameter, ...]
    line: int = 0
    natspec: Optional[Natspec] = None


@dataclass(frozen=True)
class StructDecl:
    name: str
    fields: Tuple[Parameter, ...]
    line: int = 0


@dataclass(frozen=True)
class EnumDecl:
    name: str
    members: Tuple[str, ...]
    line: int = 0


@dataclass(frozen=True)
class ValueTypeDecl:
    """``type Name is <elementary>;``"""

    name: str
    underlying: TypeRef
    line: int = 0


@dataclass(frozen=True)
class ConstantDecl:
    """A named constant whose initializer is a literal, used for array lengths."""

    name: str
    value: str
    line: int = 0


@dataclass(frozen=True)
class ContractUnit:
    name: str
    kind: ContractKind
    bases: Tuple[str, ...] = ()
    functions: Tuple[FunctionDecl, ...] = ()
    events: Tuple[EventDecl, ...] = ()
    errors: Tuple[ErrorDecl, ...] = ()
    structs: Tuple[StructDecl, ...] = ()
    enums: Tuple[EnumDecl, ...] = ()
    value_types: Tuple[ValueTypeDecl, ...] = ()
    constants: Tuple[ConstantDecl, ...] = ()
    modifiers: Tuple[str, ...] = ()
    line: int = 0
    natspec: Optional[Natspec] = None

    @property
    def special_functions(self) -> Tuple[str, ...]:
        return tuple(fn.kind.value for fn in self.functions if fn.is_special)


# Diagnostics


class DiagnosticKind(str, Enum):
    UNPARSEABLE_FILE = "unparseable_file"
    MALFORMED_DECLARATION = "malformed_declaration"
    INVALID_PARAMETER_TYPE = "invalid_parameter_type"
    UNRESOLVABLE_TYPE = "unresolvable_type"
    SELECTOR_COLLISION = "selector_collision"
    IMPLICIT_VISIBILITY = "implicit_visibility"
    INVALID_ENCODING = "invalid_encoding"


@dataclass(frozen=True)
class Diagnostic:
    """Structured, recoverable problem found while scanning."""

    kind: DiagnosticKind
    message: str
    path: Optional[str] = None
    line: Optional[int] = None
    construct: Optional[str] = None


# Output records


@dataclass(frozen=True)
class CanonicalParameter:
    name: str
    type: str
    indexed: bool = False


@dataclass(frozen=True)
class SignatureRecord:
    """Final, immutable output unit: one declaration with its selector."""

    name: str
    signature: str
    selector: str
    kind: SignatureKind
    path: str
    contract: Optional[str] = None
    visibility: Optional[str] = None
    state_mutability: Optional[str] = None
    inputs: Tuple[CanonicalParameter, ...] = ()
    returns: Tuple[str, ...] = ()
    anonymous: bool = False
    line: int = 0
    natspec: Optional[Natspec] = None
    project: Optional[str] = None

    @property
    def externally_callable(self) -> bool:
        if self.kind is not SignatureKind.FUNCTION:
            return False
        return self.visibility in {"public", "external"}


@dataclass(frozen=True)
class SourceUnit:
    """One parsed file. ``records`` is empty until types have been resolved."""

    path: str
    pragma: Optional[str] = None
    imports: Tuple[str, ...] = ()
    contracts: Tuple[ContractUnit, ...] = ()
    structs: Tuple[StructDecl, ...] = ()
    enums: Tuple[EnumDecl, ...] = ()
    value_types: Tuple[ValueTypeDecl, ...] = ()
    constants: Tuple[ConstantDecl, ...] = ()
    errors: Tuple[ErrorDecl, ...] = ()
    events: Tuple[EventDecl, ...] = ()
    records: Tuple[SignatureRecord, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    category: str = "contracts"

    def contract(self, name: str) -> Optional[ContractUnit]:
        for unit in self.contracts:
            if unit.name == name:
                return unit
        return None

    def records_for(self, contract: Optional[str]) -> List[SignatureRecord]:
        return [record for record in self.records if record.contract == contract]


# Projects


class ProjectType(str, Enum):
    FOUNDRY = "foundry"
    HARDHAT = "hardhat"
    TRUFFLE = "truffle"
    PLAIN = "plain"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProjectInfo:
    """Classification of one project directory."""

    type: ProjectType
    root: Path
    source_root: Path
    marker: Optional[str] = None
    nested_projects: Tuple[Path, ...] = ()


@dataclass(frozen=True)
class ContractSignatures:
    """Records of a single contract, tagged with where it came from."""

    name: str
    kind: ContractKind
    path: str
    category: str
    bases: Tuple[str, ...] = ()
    records: Tuple[SignatureRecord, ...] = ()
    special_functions: Tuple[str, ...] = ()
    project: Optional[str] = None


@dataclass(frozen=True)
class SelectorCollision:
    """Distinct canonical signatures sharing one 4-byte selector."""

    selector: str
    kind: SignatureKind
    signatures: Tuple[str, ...]
    locations: Tuple[str, ...] = ()


@dataclass
class ScanResult:
    """Aggregated signatures of one project (or of several, when combined)."""

    project: ProjectInfo
    contracts: List[ContractSignatures] = field(default_factory=list)
    free_records: List[SignatureRecord] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    collisions: List[SelectorCollision] = field(default_factory=list)
    files_scanned: int = 0
    partial: bool = False
    scanned_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def records(self) -> List[SignatureRecord]:
        result: List[SignatureRecord] = []
        for contract in self.contracts:
            result.extend(contract.records)
        result.extend(self.free_records)
        return result

    @property
    def total_contracts(self) -> int:
        return len(self.contracts)

    @property
    def total_functions(self) -> int:
        return sum(1 for record in self.records if record.kind is SignatureKind.FUNCTION)

    @property
    def total_external_functions(self) -> int:
        return sum(1 for record in self.records if record.externally_callable)

    @property
    def total_internal_functions(self) -> int:
        return self.total_functions - self.total_external_functions

    @property
    def total_events(self) -> int:
        return sum(1 for record in self.records if record.kind is SignatureKind.EVENT)

    @property
    def total_errors(self) -> int:
        return sum(1 for record in self.records if record.kind is SignatureKind.ERROR)

    def find_contracts(self, name: str) -> List[ContractSignatures]:
        return [contract for contract in self.contracts if contract.name == name]

    def full_interface(self, name: str, project: Optional[str] = None) -> List[SignatureRecord]:
        """Return a contract's records merged with those inherited from its bases.

        Bases are visited most-derived first (right to left in the ``is`` list),
        so an override hides the base declaration with the same signature.
        """
        index: Dict[str, ContractSignatures] = {}
        for contract in self.contracts:
            if project is not None and contract.project != project:
                continue
            index.setdefault(contract.name, contract)

        merged: List[SignatureRecord] = []
        seen_signatures: Set[Tuple[SignatureKind, str]] = set()
        visited: Set[str] = set()

        def _visit(contract_name: str) -> None:
            if contract_name in visited:
                return
            visited.add(contract_name)
            contract = index.get(contract_name)
            if contract is None:
                return
            for record in contract.records:
                key = (record.kind, record.signature)
                if key in seen_signatures:
                    continue
                seen_signatures.add(key)
                merged.append(record)
            for base in reversed(contract.bases):
                _visit(base)

        _visit(name)
        return merged


@dataclass
class SubProjectResult:
    sub_projects: List[ScanResult]
    combined: ScanResult


__all__ = [
    "ArrayTypeRef",
    "CanonicalParameter",
    "ConstantDecl",
    "ContractKind",
    "ContractSignatures",
    "ContractUnit",
    "Diagnostic",
    "DiagnosticKind",
    "ElementaryTypeRef",
    "EnumDecl",
    "ErrorDecl",
    "EventDecl",
    "FunctionDecl",
    "FunctionKind",
    "FunctionTypeRef",
    "MappingTypeRef",
    "Natspec",
    "Parameter",
    "ProjectInfo",
    "ProjectType",
    "ScanResult",
    "SelectorCollision",
    "SignatureKind",
    "SignatureRecord",
    "SourceUnit",
    "StructDecl",
    "SubProjectResult",
    "TypeRef",
    "UserTypeRef",
    "ValueTypeDecl",
]
