"""Detection of distinct signatures that share a 4-byte selector."""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from .models import Diagnostic, DiagnosticKind, SelectorCollision, SignatureKind, SignatureRecord


def _location(record: SignatureRecord) -> str:
    owner = f"{record.contract}." if record.contract else ""
    prefix = f"{record.project}:" if record.project else ""
    return f"{prefix}{record.path}:{owner}{record.signature}"


def detect_collisions(records: Iterable[SignatureRecord]) -> List[SelectorCollision]:
    """Group callable functions and errors by selector and report shared ones.

    Functions and errors are indexed separately since they never meet in one
    dispatch table. The same signature declared in several contracts is not a
    collision.
    """
    index: Dict[Tuple[SignatureKind, str], Dict[str, List[str]]] = {}
    for record in records:
        if record.kind is SignatureKind.EVENT:
            continue
        if record.kind is SignatureKind.FUNCTION and not record.externally_callable:
            continue
        by_signature = index.setdefault((record.kind, record.selector), {})
        by_signature.setdefault(record.signature, []).append(_location(record))

    collisions: List[SelectorCollision] = []
    for (kind, selector), by_signature in index.items():
        if len(by_signature) < 2:
            continue
        signatures = tuple(sorted(by_signature))
        locations = tuple(location for signature in signatures for location in by_signature[signature])
        collisions.append(
            SelectorCollision(selector=selector, kind=kind, signatures=signatures, locations=locations)
        )
    collisions.sort(key=lambda collision: (collision.selector, collision.kind.value))
    return collisions


def collision_diagnostics(collisions: Iterable[SelectorCollision]) -> List[Diagnostic]:
    return [
        Diagnostic(
            kind=DiagnosticKind.SELECTOR_COLLISION,
            message=f"{collision.kind.value} selector {collision.selector} is shared by "
            + ", ".join(collision.signatures),
            construct=collision.selector,
        )
        for collision in collisions
    ]


__all__ = ["collision_diagnostics", "detect_collisions"]
