"""Single-file parsing facade and the resolution step that emits records."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import (
    CanonicalParameter,
    ContractUnit,
    Diagnostic,
    DiagnosticKind,
    FunctionDecl,
    Natspec,
    Parameter,
    SignatureKind,
    SignatureRecord,
    SourceUnit,
)
from .extractor import DeclarationExtractor
from .lexer import UnparseableSourceError, tokenize
from .selectors import canonical_signature, selector_for
from .types import InvalidParameterTypeError, TypeCanonicalizer, TypeRegistry, UnresolvableTypeError

logger = get_logger("parser")

_TEST_DIRS = {"test", "tests"}
_LIB_DIRS = {"lib", "libraries"}


def read_source(path: Path) -> Tuple[str, Optional[int]]:
    """Read a source file as UTF-8.

    Undecodable bytes are replaced rather than failing the file; the second
    element is then the line of the first bad byte, otherwise None.
    """
    data = Path(path).read_bytes()
    try:
        return data.decode("utf-8"), None
    except UnicodeDecodeError as exc:
        line = data.count(b"\n", 0, exc.start) + 1
        return data.decode("utf-8", errors="replace"), line


def encoding_diagnostic(path: str, line: int) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.INVALID_ENCODING,
        message=f"{path} is not valid UTF-8; undecodable bytes from line {line} on were replaced",
        path=path,
        line=line,
    )


def categorize(path: str) -> str:
    """Bucket a source path into ``contracts``, ``libs`` or ``tests``."""
    posix = PurePosixPath(path.replace("\\", "/"))
    parts = {part.lower() for part in posix.parts[:-1]}
    if posix.name.endswith(".t.sol") or parts & _TEST_DIRS:
        return "tests"
    if parts & _LIB_DIRS:
        return "libs"
    return "contracts"


class SolidityParser:
    """Turns Solidity source into ``SourceUnit`` objects carrying signature records.

    Parsing happens in two steps. ``extract_source`` lexes one file and
    collects raw declarations without resolving any type names. ``resolve``
    canonicalizes those declarations against a ``TypeRegistry`` and attaches
    the final records. A project scan builds one registry from every file it
    extracted so names declared elsewhere in the project resolve; the
    single-file entry points use a registry of just that file.
    """

    def parse_file(self, path: Path) -> Optional[SourceUnit]:
        """Parse one file from disk, returning None when it cannot be tokenized or read."""
        path = Path(path)
        try:
            text, bad_line = read_source(path)
        except OSError as exc:
            logger.warning("Unable to read %s: %s", path, exc)
            return None
        try:
            unit = self.parse_source(text, str(path))
        except UnparseableSourceError as exc:
            logger.warning("Skipping unparseable file %s: %s", path, exc)
            return None
        if bad_line is None:
            return unit
        diagnostic = encoding_diagnostic(str(path), bad_line)
        logger.warning("%s", diagnostic.message)
        return replace(unit, diagnostics=(diagnostic,) + unit.diagnostics)

    def parse_source(self, text: str, path: str) -> SourceUnit:
        unit = self.extract_source(text, path)
        return self.resolve(unit, TypeRegistry.from_units([unit]))

    def extract_source(self, text: str, path: str, category: Optional[str] = None) -> SourceUnit:
        """Lex and extract declarations; raises ``UnparseableSourceError``."""
        tokens = tokenize(text)
        extractor = DeclarationExtractor(tokens, path, text)
        return extractor.extract(category=category or categorize(path))

    def resolve(self, unit: SourceUnit, registry: TypeRegistry) -> SourceUnit:
        """Return a copy of ``unit`` with signature records and resolution diagnostics."""
        builder = _RecordBuilder(unit.path, registry)
        for contract in unit.contracts:
            builder.contract(contract)
        builder.free_declarations(unit)
        for diagnostic in builder.diagnostics:
            logger.debug("%s:%s %s", diagnostic.path, diagnostic.line, diagnostic.message)
        return replace(
            unit,
            records=tuple(builder.records),
            diagnostics=unit.diagnostics + tuple(builder.diagnostics),
        )


class _RecordBuilder:
    def __init__(self, path: str, registry: TypeRegistry) -> None:
        self.path = path
        self.registry = registry
        self.records: List[SignatureRecord] = []
        self.diagnostics: List[Diagnostic] = []

    def contract(self, contract: ContractUnit) -> None:
        canonicalizer = TypeCanonicalizer(self.registry, self.path, contract.name)
        for function in contract.functions:
            if function.is_special:
                continue
            self._function(function, canonicalizer, contract.name)
        for event in contract.events:
            self._emit(
                SignatureKind.EVENT,
                event.name,
                event.parameters,
                canonicalizer,
                contract=contract.name,
                line=event.line,
                natspec=event.natspec,
                anonymous=event.anonymous,
            )
        for error in contract.errors:
            self._emit(
                SignatureKind.ERROR,
                error.name,
                error.parameters,
                canonicalizer,
                contract=contract.name,
                line=error.line,
                natspec=error.natspec,
            )

    def free_declarations(self, unit: SourceUnit) -> None:
        canonicalizer = TypeCanonicalizer(self.registry, self.path)
        for event in unit.events:
            self._emit(
                SignatureKind.EVENT,
                event.name,
                event.parameters,
                canonicalizer,
                line=event.line,
                natspec=event.natspec,
                anonymous=event.anonymous,
            )
        for error in unit.errors:
            self._emit(
                SignatureKind.ERROR,
                error.name,
                error.parameters,
                canonicalizer,
                line=error.line,
                natspec=error.natspec,
            )

    def _function(self, function: FunctionDecl, canonicalizer: TypeCanonicalizer, contract: str) -> None:
        self._emit(
            SignatureKind.FUNCTION,
            function.name,
            function.parameters,
            canonicalizer,
            contract=contract,
            line=function.line,
            natspec=function.natspec,
            visibility=function.visibility,
            state_mutability=function.state_mutability,
            returns=tuple(str(parameter.type) for parameter in function.returns),
        )

    def _emit(
        self,
        kind: SignatureKind,
        name: str,
        parameters: Sequence[Parameter],
        canonicalizer: TypeCanonicalizer,
        *,
        contract: Optional[str] = None,
        line: int = 0,
        natspec: Optional[Natspec] = None,
        visibility: Optional[str] = None,
        state_mutability: Optional[str] = None,
        returns: tuple = (),
        anonymous: bool = False,
    ) -> None:
        construct = f"{kind.value} {name}"
        try:
            types = [canonicalizer.canonical(parameter.type) for parameter in parameters]
        except InvalidParameterTypeError as exc:
            self._diagnose(DiagnosticKind.INVALID_PARAMETER_TYPE, f"{construct} dropped: {exc}", line, construct)
            return
        except UnresolvableTypeError as exc:
            self._diagnose(DiagnosticKind.UNRESOLVABLE_TYPE, f"{construct} dropped: {exc}", line, construct)
            return

        signature = canonical_signature(name, types)
        self.records.append(
            SignatureRecord(
                name=name,
                signature=signature,
                selector=selector_for(kind, signature),
                kind=kind,
                path=self.path,
                contract=contract,
                visibility=visibility,
                state_mutability=state_mutability,
                inputs=tuple(
                    CanonicalParameter(name=parameter.name, type=canonical, indexed=parameter.indexed)
                    for parameter, canonical in zip(parameters, types)
                ),
                returns=returns,
                anonymous=anonymous,
                line=line,
                natspec=natspec,
            )
        )

    def _diagnose(self, kind: DiagnosticKind, message: str, line: int, construct: str) -> None:
        self.diagnostics.append(
            Diagnostic(kind=kind, message=message, path=self.path, line=line, construct=construct)
        )


__all__ = ["SolidityParser", "categorize", "encoding_diagnostic", "read_source"]
