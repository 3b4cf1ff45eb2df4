"""Canonical ABI type strings for declared parameter types.

``TypeRegistry`` indexes every struct, enum, value type, constant and contract
name of a project before anything is canonicalized, so struct expansion sees
the full set of definitions regardless of file order. ``TypeCanonicalizer``
then maps a ``TypeRef`` to its canonical string relative to one scope.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..models import (
    ArrayTypeRef,
    ConstantDecl,
    ContractUnit,
    ElementaryTypeRef,
    EnumDecl,
    FunctionTypeRef,
    MappingTypeRef,
    SourceUnit,
    StructDecl,
    TypeRef,
    UserTypeRef,
    ValueTypeDecl,
)

_ELEMENTARY_ALIASES = {
    "uint": "uint256",
    "int": "int256",
    "byte": "bytes1",
    "fixed": "fixed128x18",
    "ufixed": "ufixed128x18",
    "address payable": "address",
}
_DECIMAL = re.compile(r"^[0-9][0-9_]*$")
_HEX = re.compile(r"^0[xX][0-9a-fA-F_]+$")

STRUCT = "struct"
ENUM = "enum"
VALUE_TYPE = "value_type"
CONTRACT = "contract"
CONSTANT = "constant"


class UnresolvableTypeError(ValueError):
    """A name could not be mapped to exactly one definition, or expands forever."""


class InvalidParameterTypeError(ValueError):
    """The type can never appear in an ABI signature (mappings)."""


@dataclass(frozen=True)
class Definition:
    """A named declaration together with the scope it was declared in."""

    kind: str
    name: str
    decl: object
    path: str
    contract: Optional[str] = None

    @property
    def identity(self) -> Tuple[str, Optional[str], str]:
        return (self.path, self.contract, self.name)


class TypeRegistry:
    """Project-wide index of type-like names, grouped by declaring scope."""

    def __init__(self) -> None:
        self._file_scopes: Dict[str, Dict[str, Definition]] = {}
        self._contract_scopes: Dict[Tuple[str, str], Dict[str, Definition]] = {}
        self._contracts: Dict[str, List[Tuple[str, ContractUnit]]] = {}
        self._by_name: Dict[str, List[Definition]] = {}

    @classmethod
    def from_units(cls, units: Iterable[SourceUnit]) -> "TypeRegistry":
        registry = cls()
        for unit in units:
            registry.add(unit)
        return registry

    def add(self, unit: SourceUnit) -> None:
        file_scope = self._file_scopes.setdefault(unit.path, {})
        for definition in _definitions(unit.path, None, unit.structs, unit.enums, unit.value_types, unit.constants):
            self._register(file_scope, definition)
        for contract in unit.contracts:
            self._contracts.setdefault(contract.name, []).append((unit.path, contract))
            self._register(file_scope, Definition(CONTRACT, contract.name, contract, unit.path))
            scope = self._contract_scopes.setdefault((unit.path, contract.name), {})
            for definition in _definitions(
                unit.path,
                contract.name,
                contract.structs,
                contract.enums,
                contract.value_types,
                contract.constants,
            ):
                self._register(scope, definition)

    def _register(self, scope: Dict[str, Definition], definition: Definition) -> None:
        scope.setdefault(definition.name, definition)
        self._by_name.setdefault(definition.name, []).append(definition)

    # ------------------------------------------------------------------
    # Lookup

    def contract(self, name: str, path: Optional[str] = None) -> Optional[Tuple[str, ContractUnit]]:
        """Return the contract called ``name``, preferring one declared in ``path``."""
        candidates = self._contracts.get(name, [])
        if path is not None:
            for candidate in candidates:
                if candidate[0] == path:
                    return candidate
        if len(candidates) == 1:
            return candidates[0]
        return None

    def resolve(self, name: str, path: str, contract: Optional[str] = None) -> Definition:
        """Resolve an unqualified name: contract, its bases, the file, then the project."""
        if contract is not None:
            found = self._in_contract_chain(name, path, contract, set())
            if found is not None:
                return found
        found = self._file_scopes.get(path, {}).get(name)
        if found is not None:
            return found
        return self._unique(name)

    def resolve_qualified(self, parts: Tuple[str, ...], path: str, contract: Optional[str] = None) -> Definition:
        if len(parts) == 1:
            return self.resolve(parts[0], path, contract)
        owner = self.contract(parts[0], path)
        if owner is not None and len(parts) == 2:
            found = self._in_contract_chain(parts[1], owner[0], owner[1].name, set())
            if found is not None:
                return found
        # import aliases and deeper paths fall back to a project-wide lookup
        return self._unique(parts[-1])

    def _in_contract_chain(self, name: str, path: str, contract: str, visited: Set[Tuple[str, str]]) -> Optional[Definition]:
        key = (path, contract)
        if key in visited:
            return None
        visited.add(key)
        found = self._contract_scopes.get(key, {}).get(name)
        if found is not None:
            return found
        located = self.contract(contract, path)
        if located is None:
            return None
        for base in located[1].bases:
            base_located = self.contract(base, located[0])
            if base_located is None:
                continue
            found = self._in_contract_chain(name, base_located[0], base, visited)
            if found is not None:
                return found
        return None

    def _unique(self, name: str) -> Definition:
        candidates = self._by_name.get(name, [])
        distinct = {definition.identity: definition for definition in candidates}
        if not distinct:
            raise UnresolvableTypeError(f"unknown type '{name}'")
        kinds = {definition.kind for definition in distinct.values()}
        if len(distinct) > 1 and not (kinds == {CONTRACT} or kinds == {ENUM}):
            # duplicated contract or enum names still agree on address/uint8
            raise UnresolvableTypeError(f"ambiguous type '{name}' ({len(distinct)} definitions)")
        return next(iter(distinct.values()))


def _definitions(
    path: str,
    contract: Optional[str],
    structs: Iterable[StructDecl],
    enums: Iterable[EnumDecl],
    value_types: Iterable[ValueTypeDecl],
    constants: Iterable[ConstantDecl],
) -> List[Definition]:
    definitions: List[Definition] = []
    definitions.extend(Definition(STRUCT, decl.name, decl, path, contract) for decl in structs)
    definitions.extend(Definition(ENUM, decl.name, decl, path, contract) for decl in enums)
    definitions.extend(Definition(VALUE_TYPE, decl.name, decl, path, contract) for decl in value_types)
    definitions.extend(Definition(CONSTANT, decl.name, decl, path, contract) for decl in constants)
    return definitions


def canonical_elementary(name: str) -> str:
    return _ELEMENTARY_ALIASES.get(name, name)


def _integer_literal(text: str) -> Optional[str]:
    if _DECIMAL.match(text):
        return str(int(text.replace("_", "")))
    if _HEX.match(text):
        return str(int(text.replace("_", ""), 16))
    return None


class TypeCanonicalizer:
    """Canonicalize type references as seen from one file (and optionally one contract)."""

    def __init__(self, registry: TypeRegistry, path: str, contract: Optional[str] = None) -> None:
        self.registry = registry
        self.path = path
        self.contract = contract
        self._expanding: List[Tuple[str, Optional[str], str]] = []
        self._dispatch: Dict[type, Callable[[TypeRef, str, Optional[str]], str]] = {
            ElementaryTypeRef: self._elementary,
            UserTypeRef: self._user,
            ArrayTypeRef: self._array,
            MappingTypeRef: self._mapping,
            FunctionTypeRef: self._function,
        }

    def canonical(self, ref: TypeRef) -> str:
        """Return the canonical ABI string for ``ref``.

        Raises ``InvalidParameterTypeError`` for mappings and
        ``UnresolvableTypeError`` for unknown, ambiguous or recursive names and
        for array lengths that are not integer constants.
        """
        return self._canonical(ref, self.path, self.contract)

    def _canonical(self, ref: TypeRef, path: str, contract: Optional[str]) -> str:
        handler = self._dispatch.get(type(ref))
        if handler is None:
            raise UnresolvableTypeError(f"unsupported type reference {ref!r}")
        return handler(ref, path, contract)

    def _elementary(self, ref: ElementaryTypeRef, path: str, contract: Optional[str]) -> str:
        return canonical_elementary(ref.name)

    def _function(self, ref: FunctionTypeRef, path: str, contract: Optional[str]) -> str:
        return "function"

    def _mapping(self, ref: MappingTypeRef, path: str, contract: Optional[str]) -> str:
        raise InvalidParameterTypeError(f"mapping type '{ref}' cannot be an ABI parameter")

    def _array(self, ref: ArrayTypeRef, path: str, contract: Optional[str]) -> str:
        base = self._canonical(ref.base, path, contract)
        if ref.length is None:
            return f"{base}[]"
        return f"{base}[{self._array_length(ref.length, path, contract)}]"

    def _array_length(self, length: str, path: str, contract: Optional[str]) -> str:
        literal = _integer_literal(length)
        if literal is not None:
            return literal
        parts = tuple(length.split("."))
        if not all(part.isidentifier() for part in parts):
            raise UnresolvableTypeError(f"array length '{length}' is not an integer constant")
        definition = self.registry.resolve_qualified(parts, path, contract)
        if definition.kind != CONSTANT:
            raise UnresolvableTypeError(f"array length '{length}' is not a constant")
        literal = _integer_literal(definition.decl.value)
        if literal is None:
            raise UnresolvableTypeError(f"constant '{length}' is not an integer literal")
        return literal

    def _user(self, ref: UserTypeRef, path: str, contract: Optional[str]) -> str:
        definition = self.registry.resolve_qualified(ref.path, path, contract)
        if definition.kind == CONTRACT:
            return "address"
        if definition.kind == ENUM:
            return "uint8"
        if definition.kind == VALUE_TYPE:
            return self._canonical(definition.decl.underlying, definition.path, definition.contract)
        if definition.kind == STRUCT:
            return self._struct(definition)
        raise UnresolvableTypeError(f"'{ref}' names a constant, not a type")

    def _struct(self, definition: Definition) -> str:
        identity = definition.identity
        if identity in self._expanding:
            raise UnresolvableTypeError(f"struct '{definition.name}' is recursive")
        self._expanding.append(identity)
        try:
            fields = [
                self._canonical(field.type, definition.path, definition.contract)
                for field in definition.decl.fields
            ]
        finally:
            self._expanding.pop()
        return f"({','.join(fields)})"


__all__ = [
    "Definition",
    "InvalidParameterTypeError",
    "TypeCanonicalizer",
    "TypeRegistry",
    "UnresolvableTypeError",
    "canonical_elementary",
]
