"""Declaration extraction over the token stream.

The extractor never needs a full grammar: it recognises declarations by their
leading keyword at a known brace depth and bounds each one with the balanced
delimiters recorded by the lexer. A construct that does not match the expected
shape is skipped up to the end of its statement (or block) and reported; its
siblings are still extracted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models import (
    ArrayTypeRef,
    ConstantDecl,
    ContractKind,
    ContractUnit,
    Diagnostic,
    DiagnosticKind,
    ElementaryTypeRef,
    EnumDecl,
    ErrorDecl,
    EventDecl,
    FunctionDecl,
    FunctionKind,
    FunctionTypeRef,
    MappingTypeRef,
    Parameter,
    SourceUnit,
    StructDecl,
    TypeRef,
    UserTypeRef,
    ValueTypeDecl,
)
from .lexer import IDENT, NUMBER, PUNCT, STRING, Token
from .natspec import parse_natspec

_ELEMENTARY = re.compile(
    r"^(?:address|bool|string|bytes|byte|u?int(?:8|16|24|32|40|48|56|64|72|80|88|96|104|112|120|128"
    r"|136|144|152|160|168|176|184|192|200|208|216|224|232|240|248|256)?"
    r"|bytes(?:[1-9]|[12][0-9]|3[0-2])|u?fixed(?:\d+x\d+)?)$"
)

VISIBILITIES = ("public", "external", "internal", "private")
MUTABILITIES = ("pure", "view", "payable", "nonpayable")
_DATA_LOCATIONS = {"memory", "storage", "calldata"}
_FUNCTION_TYPE_WORDS = {"internal", "external", "pure", "view", "payable"}
_CONTRACT_KINDS = {
    "contract": ContractKind.CONTRACT,
    "interface": ContractKind.INTERFACE,
    "library": ContractKind.LIBRARY,
}


def is_elementary(name: str) -> bool:
    return bool(_ELEMENTARY.match(name))


class MalformedDeclarationError(ValueError):
    """A single construct could not be matched; siblings are unaffected."""


@dataclass
class _Members:
    """Mutable collection buffer for one scope while it is being walked."""

    functions: List[FunctionDecl] = field(default_factory=list)
    events: List[EventDecl] = field(default_factory=list)
    errors: List[ErrorDecl] = field(default_factory=list)
    structs: List[StructDecl] = field(default_factory=list)
    enums: List[EnumDecl] = field(default_factory=list)
    value_types: List[ValueTypeDecl] = field(default_factory=list)
    constants: List[ConstantDecl] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    contracts: List[ContractUnit] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    pragma: Optional[str] = None
    kind: Optional[ContractKind] = None


class DeclarationExtractor:
    """Walks tokens of one file and returns its unresolved ``SourceUnit``."""

    def __init__(self, tokens: Sequence[Token], path: str, text: str = "") -> None:
        self.tokens = tokens
        self.path = path
        self.text = text
        self.diagnostics: List[Diagnostic] = []
        self._handlers: Dict[str, Callable[[int, int, _Members], int]] = {
            "pragma": self._pragma,
            "import": self._import,
            "abstract": self._contract,
            "contract": self._contract,
            "interface": self._contract,
            "library": self._contract,
            "function": self._function,
            "constructor": self._function,
            "fallback": self._function,
            "receive": self._function,
            "modifier": self._modifier,
            "event": self._event,
            "error": self._error,
            "struct": self._struct,
            "enum": self._enum,
            "type": self._value_type,
        }

    def extract(self, category: str = "contracts") -> SourceUnit:
        top = _Members()
        self._members(0, len(self.tokens), top)
        return SourceUnit(
            path=self.path,
            pragma=top.pragma,
            imports=tuple(top.imports),
            contracts=tuple(top.contracts),
            structs=tuple(top.structs),
            enums=tuple(top.enums),
            value_types=tuple(top.value_types),
            constants=tuple(top.constants),
            errors=tuple(top.errors),
            events=tuple(top.events),
            diagnostics=tuple(self.diagnostics),
            category=category,
        )

    # ------------------------------------------------------------------
    # Scope walking

    def _members(self, index: int, end: int, members: _Members) -> None:
        tokens = self.tokens
        while index < end:
            token = tokens[index]
            if token.is_punct(";"):
                index += 1
                continue
            if token.is_punct("}"):
                # stray closer left over from unbalanced input
                index += 1
                continue
            handler = self._handlers.get(token.value) if token.kind == IDENT else None
            if handler is not None and self._starts_declaration(index, end):
                try:
                    index = handler(index, end, members)
                except MalformedDeclarationError as exc:
                    self._report(DiagnosticKind.MALFORMED_DECLARATION, str(exc), token, self._construct(index))
                    index = self._skip_statement(index + 1, end)
                continue
            index = self._statement(index, end, members)

    def _starts_declaration(self, index: int, end: int) -> bool:
        token = self.tokens[index]
        following = self.tokens[index + 1] if index + 1 < end else None
        if token.value in {"fallback", "receive", "constructor"}:
            return following is not None and following.is_punct("(")
        if token.value == "type":
            return following is not None and following.kind == IDENT
        if token.value in {"event", "error", "struct", "enum", "modifier"}:
            return following is not None and following.kind == IDENT
        return True

    def _statement(self, index: int, end: int, members: _Members) -> int:
        """Skip a statement that declares nothing exported, noting literal constants."""
        stop = self._skip_statement(index, end)
        body = self.tokens[index:stop]
        for position, token in enumerate(body):
            if not token.is_word("constant") or position + 4 >= len(body):
                continue
            name, equals, value, terminator = body[position + 1 : position + 5]
            # only a bare literal initializer; `N = 3 * 2` stays unknown
            if (
                name.kind == IDENT
                and equals.is_punct("=")
                and value.kind == NUMBER
                and terminator.is_punct(";")
            ):
                members.constants.append(ConstantDecl(name=name.value, value=value.value, line=token.line))
            break
        return stop

    def _skip_statement(self, index: int, end: int) -> int:
        """Return the index just past the statement or block starting at ``index``.

        Paren depth is not trusted here: an unbalanced ``(`` is exactly the
        kind of input being skipped, so ``;`` or a brace block ends the skip.
        """
        tokens = self.tokens
        if index >= end:
            return end
        base_depth = tokens[index].depth
        while index < end:
            token = tokens[index]
            if token.is_punct("}") and token.depth < base_depth:
                return index
            if token.is_punct(";"):
                return index + 1
            if token.is_punct("{"):
                close = self._matching_brace(index, end)
                return end if close is None else close + 1
            index += 1
        return end

    # ------------------------------------------------------------------
    # File-level directives

    def _pragma(self, index: int, end: int, members: _Members) -> int:
        stop = self._find_punct(index, end, ";")
        if stop is None:
            raise MalformedDeclarationError("pragma is missing its terminating ';'")
        if index + 1 < stop and self.tokens[index + 1].is_word("solidity") and members.pragma is None:
            if index + 2 < stop and self.text:
                members.pragma = self.text[self.tokens[index + 2].start : self.tokens[stop - 1].end].strip()
            else:
                members.pragma = "".join(token.value for token in self.tokens[index + 2 : stop])
        return stop + 1

    def _import(self, index: int, end: int, members: _Members) -> int:
        stop = self._find_punct(index, end, ";")
        if stop is None:
            raise MalformedDeclarationError("import is missing its terminating ';'")
        for token in self.tokens[index + 1 : stop]:
            if token.kind == STRING:
                members.imports.append(token.value)
                break
        return stop + 1

    # ------------------------------------------------------------------
    # Contracts

    def _contract(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        keyword = tokens[index]
        cursor = index + 1
        if keyword.value == "abstract":
            if cursor >= end or not tokens[cursor].is_word("contract"):
                raise MalformedDeclarationError("'abstract' must be followed by 'contract'")
            kind = ContractKind.ABSTRACT
            cursor += 1
        else:
            kind = _CONTRACT_KINDS[keyword.value]

        if cursor >= end or tokens[cursor].kind != IDENT:
            raise MalformedDeclarationError(f"{kind.value} declaration has no name")
        name = tokens[cursor].value
        cursor += 1

        open_index = self._find_punct(cursor, end, "{", stop_at=(";", "}"))
        if open_index is None:
            raise MalformedDeclarationError(f"{kind.value} {name} has no body")
        bases = self._bases(cursor, open_index)

        close_index = self._matching_brace(open_index, end)
        if close_index is None:
            self._report(
                DiagnosticKind.MALFORMED_DECLARATION,
                f"{kind.value} {name} body is never closed",
                keyword,
                f"{kind.value} {name}",
            )
            close_index = end

        body = _Members(kind=kind)
        self._members(open_index + 1, close_index, body)
        members.contracts.append(
            ContractUnit(
                name=name,
                kind=kind,
                bases=bases,
                functions=tuple(body.functions),
                events=tuple(body.events),
                errors=tuple(body.errors),
                structs=tuple(body.structs),
                enums=tuple(body.enums),
                value_types=tuple(body.value_types),
                constants=tuple(body.constants),
                modifiers=tuple(body.modifiers),
                line=keyword.line,
                natspec=parse_natspec(keyword.doc),
            )
        )
        return close_index + 1

    def _bases(self, start: int, stop: int) -> Tuple[str, ...]:
        tokens = self.tokens
        if start >= stop:
            return ()
        if not tokens[start].is_word("is"):
            raise MalformedDeclarationError(f"unexpected '{tokens[start].value}' before contract body")
        bases: List[str] = []
        expect_name = True
        cursor = start + 1
        while cursor < stop:
            token = tokens[cursor]
            if token.is_punct(","):
                expect_name = True
                cursor += 1
            elif token.is_punct("("):
                close = self._matching_paren(cursor, stop)
                if close is None:
                    raise MalformedDeclarationError("unbalanced base constructor arguments")
                cursor = close + 1
            elif token.kind == IDENT and expect_name:
                path, cursor = self._qualified_name(cursor, stop)
                bases.append(path[-1])
                expect_name = False
            else:
                raise MalformedDeclarationError(f"unexpected '{token.value}' in inheritance list")
        return tuple(bases)

    # ------------------------------------------------------------------
    # Functions and modifiers

    def _function(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        keyword = tokens[index]
        cursor = index + 1
        if keyword.value == "function":
            if cursor < end and tokens[cursor].kind == IDENT:
                name, kind = tokens[cursor].value, FunctionKind.FUNCTION
                cursor += 1
            else:
                name, kind = "fallback", FunctionKind.FALLBACK
        else:
            name, kind = keyword.value, FunctionKind(keyword.value)

        if cursor >= end or not tokens[cursor].is_punct("("):
            raise MalformedDeclarationError(f"function {name} has no parameter list")
        close = self._matching_paren(cursor, end, strict=True)
        if close is None:
            raise MalformedDeclarationError(f"function {name} has an unbalanced parameter list")
        parameters = self._parameters(cursor + 1, close, allow_indexed=False)

        visibility: Optional[str] = None
        mutability: Optional[str] = None
        returns: Tuple[Parameter, ...] = ()
        modifiers: List[str] = []
        virtual = override = False

        cursor = close + 1
        while cursor < end:
            token = tokens[cursor]
            if token.is_punct("{") or token.is_punct(";"):
                break
            if token.kind != IDENT:
                raise MalformedDeclarationError(f"unexpected '{token.value}' in header of function {name}")
            word = token.value
            if word in VISIBILITIES:
                visibility = visibility or word
            elif word in MUTABILITIES or word == "constant":
                # pre-0.5 'constant' functions are views
                mutability = mutability or ("view" if word == "constant" else word)
            elif word == "virtual":
                virtual = True
            elif word == "override":
                override = True
            elif word == "returns":
                if cursor + 1 >= end or not tokens[cursor + 1].is_punct("("):
                    raise MalformedDeclarationError(f"function {name} has 'returns' without a list")
                returns_close = self._matching_paren(cursor + 1, end, strict=True)
                if returns_close is None:
                    raise MalformedDeclarationError(f"function {name} has an unbalanced returns list")
                returns = self._parameters(cursor + 2, returns_close, allow_indexed=False)
                cursor = returns_close + 1
                continue
            else:
                path, cursor = self._qualified_name(cursor, end)
                modifiers.append(".".join(path))
                if cursor < end and tokens[cursor].is_punct("("):
                    args_close = self._matching_paren(cursor, end, strict=True)
                    if args_close is None:
                        raise MalformedDeclarationError(f"unbalanced arguments to modifier {path[-1]}")
                    cursor = args_close + 1
                continue
            cursor += 1
            if word == "override" and cursor < end and tokens[cursor].is_punct("("):
                override_close = self._matching_paren(cursor, end, strict=True)
                if override_close is None:
                    raise MalformedDeclarationError(f"function {name} has an unbalanced override list")
                cursor = override_close + 1

        if cursor >= end:
            raise MalformedDeclarationError(f"function {name} has neither a body nor ';'")

        if tokens[cursor].is_punct("{"):
            body_close = self._matching_brace(cursor, end)
            if body_close is None:
                raise MalformedDeclarationError(f"function {name} body is never closed")
            next_index = body_close + 1
        else:
            next_index = cursor + 1
            if keyword.value == "function" and kind is FunctionKind.FALLBACK and modifiers:
                # `function (uint) external returns (bool) callback;` is a state variable
                return next_index

        explicit = visibility is not None
        if visibility is None:
            visibility = self._default_visibility(kind, members.kind)
            if kind is FunctionKind.FUNCTION and members.kind is not ContractKind.INTERFACE and members.kind is not None:
                self._report(
                    DiagnosticKind.IMPLICIT_VISIBILITY,
                    f"function {name} declares no visibility; treated as internal",
                    keyword,
                    f"function {name}",
                )

        if members.kind is None and kind is FunctionKind.FUNCTION:
            # free functions are internal to the file and carry no selector
            return next_index

        members.functions.append(
            FunctionDecl(
                name=name,
                parameters=parameters,
                kind=kind,
                visibility=visibility,
                state_mutability=mutability or "nonpayable",
                visibility_explicit=explicit,
                returns=returns,
                modifiers=tuple(modifiers),
                virtual=virtual,
                override=override,
                line=keyword.line,
                natspec=parse_natspec(keyword.doc),
            )
        )
        return next_index

    @staticmethod
    def _default_visibility(kind: FunctionKind, container: Optional[ContractKind]) -> str:
        if kind is FunctionKind.CONSTRUCTOR:
            return "public"
        if kind in {FunctionKind.FALLBACK, FunctionKind.RECEIVE}:
            return "external"
        if container is ContractKind.INTERFACE:
            return "external"
        return "internal"

    def _modifier(self, index: int, end: int, members: _Members) -> int:
        members.modifiers.append(self.tokens[index + 1].value)
        return self._skip_statement(index + 2, end) if index + 2 < end else end

    # ------------------------------------------------------------------
    # Events, errors, structs, enums, value types

    def _event(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        keyword = tokens[index]
        name = tokens[index + 1].value
        parameters, cursor = self._parenthesised(index + 2, end, f"event {name}", allow_indexed=True)
        anonymous = False
        if cursor < end and tokens[cursor].is_word("anonymous"):
            anonymous = True
            cursor += 1
        if cursor >= end or not tokens[cursor].is_punct(";"):
            raise MalformedDeclarationError(f"event {name} is not terminated by ';'")
        members.events.append(
            EventDecl(
                name=name,
                parameters=parameters,
                anonymous=anonymous,
                line=keyword.line,
                natspec=parse_natspec(keyword.doc),
            )
        )
        return cursor + 1

    def _error(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        keyword = tokens[index]
        name = tokens[index + 1].value
        parameters, cursor = self._parenthesised(index + 2, end, f"error {name}", allow_indexed=False)
        if cursor >= end or not tokens[cursor].is_punct(";"):
            raise MalformedDeclarationError(f"error {name} is not terminated by ';'")
        members.errors.append(
            ErrorDecl(name=name, parameters=parameters, line=keyword.line, natspec=parse_natspec(keyword.doc))
        )
        return cursor + 1

    def _struct(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        name = tokens[index + 1].value
        open_index = index + 2
        if open_index >= end or not tokens[open_index].is_punct("{"):
            raise MalformedDeclarationError(f"struct {name} has no field list")
        close = self._matching_brace(open_index, end)
        if close is None:
            raise MalformedDeclarationError(f"struct {name} field list is never closed")

        fields: List[Parameter] = []
        segment: List[Token] = []
        for token in tokens[open_index + 1 : close]:
            if token.is_punct(";") and token.depth == tokens[open_index].depth + 1:
                fields.append(self._parameter(segment, f"struct {name}", allow_indexed=False))
                segment = []
            else:
                segment.append(token)
        if segment:
            raise MalformedDeclarationError(f"struct {name} has a field without ';'")
        members.structs.append(StructDecl(name=name, fields=tuple(fields), line=tokens[index].line))
        return close + 1

    def _enum(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        name = tokens[index + 1].value
        open_index = index + 2
        if open_index >= end or not tokens[open_index].is_punct("{"):
            raise MalformedDeclarationError(f"enum {name} has no member list")
        close = self._matching_brace(open_index, end)
        if close is None:
            raise MalformedDeclarationError(f"enum {name} member list is never closed")
        values = [token.value for token in tokens[open_index + 1 : close] if token.kind == IDENT]
        members.enums.append(EnumDecl(name=name, members=tuple(values), line=tokens[index].line))
        return close + 1

    def _value_type(self, index: int, end: int, members: _Members) -> int:
        tokens = self.tokens
        name = tokens[index + 1].value
        if index + 2 >= end or not tokens[index + 2].is_word("is"):
            raise MalformedDeclarationError(f"type {name} is missing 'is'")
        stop = self._find_punct(index + 3, end, ";", stop_at=("{", "}"))
        if stop is None:
            raise MalformedDeclarationError(f"type {name} is not terminated by ';'")
        segment = list(tokens[index + 3 : stop])
        underlying, consumed = self._type(segment, 0, f"type {name}")
        if consumed != len(segment):
            raise MalformedDeclarationError(f"type {name} has trailing tokens")
        members.value_types.append(ValueTypeDecl(name=name, underlying=underlying, line=tokens[index].line))
        return stop + 1

    # ------------------------------------------------------------------
    # Parameters and types

    def _parenthesised(
        self, index: int, end: int, construct: str, *, allow_indexed: bool
    ) -> Tuple[Tuple[Parameter, ...], int]:
        if index >= end or not self.tokens[index].is_punct("("):
            raise MalformedDeclarationError(f"{construct} has no parameter list")
        close = self._matching_paren(index, end, strict=True)
        if close is None:
            raise MalformedDeclarationError(f"{construct} has an unbalanced parameter list")
        return self._parameters(index + 1, close, allow_indexed=allow_indexed), close + 1

    def _parameters(self, start: int, stop: int, *, allow_indexed: bool) -> Tuple[Parameter, ...]:
        if start >= stop:
            return ()
        parameters: List[Parameter] = []
        segment: List[Token] = []
        nesting = 0
        for token in self.tokens[start:stop]:
            if token.kind == PUNCT and token.value in {"(", "["}:
                nesting += 1
            elif token.kind == PUNCT and token.value in {")", "]"}:
                nesting -= 1
            if token.is_punct(",") and nesting == 0:
                parameters.append(self._parameter(segment, "parameter list", allow_indexed=allow_indexed))
                segment = []
            else:
                segment.append(token)
        parameters.append(self._parameter(segment, "parameter list", allow_indexed=allow_indexed))
        return tuple(parameters)

    def _parameter(self, segment: Sequence[Token], construct: str, *, allow_indexed: bool) -> Parameter:
        if not segment:
            raise MalformedDeclarationError(f"empty entry in {construct}")
        type_ref, cursor = self._type(segment, 0, construct)
        name = ""
        indexed = False
        for token in segment[cursor:]:
            if token.kind != IDENT:
                raise MalformedDeclarationError(f"unexpected '{token.value}' in {construct}")
            if token.value in _DATA_LOCATIONS:
                continue
            if token.value == "indexed" and allow_indexed and not name:
                indexed = True
                continue
            if name:
                raise MalformedDeclarationError(f"unexpected '{token.value}' after '{name}' in {construct}")
            name = token.value
        return Parameter(name=name, type=type_ref, indexed=indexed)

    def _type(self, segment: Sequence[Token], cursor: int, construct: str) -> Tuple[TypeRef, int]:
        """Parse one type expression from ``segment`` and return it with the next position."""
        if cursor >= len(segment):
            raise MalformedDeclarationError(f"missing type in {construct}")
        token = segment[cursor]
        type_ref: TypeRef
        if token.is_word("mapping"):
            type_ref, cursor = self._mapping(segment, cursor, construct)
        elif token.is_word("function"):
            type_ref, cursor = self._function_type(segment, cursor, construct)
        elif token.kind == IDENT and is_elementary(token.value):
            name = token.value
            cursor += 1
            if name == "address" and cursor < len(segment) and segment[cursor].is_word("payable"):
                name = "address payable"
                cursor += 1
            type_ref = ElementaryTypeRef(name)
        elif token.kind == IDENT:
            path: List[str] = [token.value]
            cursor += 1
            while (
                cursor + 1 < len(segment)
                and segment[cursor].is_punct(".")
                and segment[cursor + 1].kind == IDENT
            ):
                path.append(segment[cursor + 1].value)
                cursor += 2
            type_ref = UserTypeRef(tuple(path))
        else:
            raise MalformedDeclarationError(f"expected a type but found '{token.value}' in {construct}")

        while cursor < len(segment) and segment[cursor].is_punct("["):
            close = _closing(segment, cursor, "[", "]")
            if close is None:
                raise MalformedDeclarationError(f"unbalanced array brackets in {construct}")
            length = "".join(part.value for part in segment[cursor + 1 : close]) or None
            type_ref = ArrayTypeRef(base=type_ref, length=length)
            cursor = close + 1
        return type_ref, cursor

    def _mapping(self, segment: Sequence[Token], cursor: int, construct: str) -> Tuple[TypeRef, int]:
        if cursor + 1 >= len(segment) or not segment[cursor + 1].is_punct("("):
            raise MalformedDeclarationError(f"mapping without '(' in {construct}")
        close = _closing(segment, cursor + 1, "(", ")")
        if close is None:
            raise MalformedDeclarationError(f"unbalanced mapping in {construct}")
        inner = list(segment[cursor + 2 : close])
        arrow = next((i for i, token in enumerate(inner) if token.is_punct("=>")), None)
        if arrow is None:
            raise MalformedDeclarationError(f"mapping without '=>' in {construct}")
        key, _ = self._type(inner[:arrow], 0, construct)
        value, _ = self._type(inner[arrow + 1 :], 0, construct)
        return MappingTypeRef(key=key, value=value), close + 1

    def _function_type(self, segment: Sequence[Token], cursor: int, construct: str) -> Tuple[TypeRef, int]:
        start = cursor
        cursor += 1
        if cursor >= len(segment) or not segment[cursor].is_punct("("):
            raise MalformedDeclarationError(f"function type without parameters in {construct}")
        close = _closing(segment, cursor, "(", ")")
        if close is None:
            raise MalformedDeclarationError(f"unbalanced function type in {construct}")
        cursor = close + 1
        while cursor < len(segment) and segment[cursor].kind == IDENT:
            word = segment[cursor].value
            if word in _FUNCTION_TYPE_WORDS:
                cursor += 1
            elif word == "returns" and cursor + 1 < len(segment) and segment[cursor + 1].is_punct("("):
                returns_close = _closing(segment, cursor + 1, "(", ")")
                if returns_close is None:
                    raise MalformedDeclarationError(f"unbalanced function type in {construct}")
                cursor = returns_close + 1
            else:
                break
        text = " ".join(token.value for token in segment[start:cursor])
        return FunctionTypeRef(text), cursor

    # ------------------------------------------------------------------
    # Token helpers

    def _qualified_name(self, cursor: int, end: int) -> Tuple[List[str], int]:
        tokens = self.tokens
        path = [tokens[cursor].value]
        cursor += 1
        while cursor + 1 < end and tokens[cursor].is_punct(".") and tokens[cursor + 1].kind == IDENT:
            path.append(tokens[cursor + 1].value)
            cursor += 2
        return path, cursor

    def _find_punct(
        self, index: int, end: int, value: str, stop_at: Tuple[str, ...] = ()
    ) -> Optional[int]:
        for position in range(index, end):
            token = self.tokens[position]
            if token.is_punct(value):
                return position
            if token.kind == PUNCT and token.value in stop_at:
                return None
        return None

    def _matching_brace(self, index: int, end: int) -> Optional[int]:
        depth = self.tokens[index].depth
        for position in range(index + 1, end):
            token = self.tokens[position]
            if token.is_punct("}") and token.depth == depth:
                return position
        return None

    def _matching_paren(self, index: int, end: int, strict: bool = False) -> Optional[int]:
        paren_depth = self.tokens[index].paren_depth
        for position in range(index + 1, end):
            token = self.tokens[position]
            if token.is_punct(")") and token.paren_depth == paren_depth:
                return position
            if strict and token.kind == PUNCT and token.value in {"{", "}", ";"}:
                return None
        return None

    def _construct(self, index: int) -> str:
        keyword = self.tokens[index].value
        if index + 1 < len(self.tokens) and self.tokens[index + 1].kind == IDENT:
            return f"{keyword} {self.tokens[index + 1].value}"
        return keyword

    def _report(self, kind: DiagnosticKind, message: str, token: Token, construct: Optional[str]) -> None:
        self.diagnostics.append(
            Diagnostic(kind=kind, message=message, path=self.path, line=token.line, construct=construct)
        )


def _closing(segment: Sequence[Token], index: int, opener: str, closer: str) -> Optional[int]:
    nesting = 0
    for position in range(index, len(segment)):
        token = segment[position]
        if token.is_punct(opener):
            nesting += 1
        elif token.is_punct(closer):
            nesting -= 1
            if nesting == 0:
                return position
    return None


__all__ = [
    "DeclarationExtractor",
    "MUTABILITIES",
    "MalformedDeclarationError",
    "VISIBILITIES",
    "is_elementary",
]
