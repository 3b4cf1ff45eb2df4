"""Signature strings and Keccak-256 derived selectors."""

from __future__ import annotations

from typing import Iterable

from eth_utils import keccak

from ..models import SignatureKind


def canonical_signature(name: str, types: Iterable[str]) -> str:
    """Join a name and canonical parameter types without any whitespace."""
    return f"{name}({','.join(types)})"


def function_selector(signature: str) -> str:
    """First four bytes of the Keccak-256 hash, as ``0x`` plus 8 hex digits."""
    return "0x" + keccak(text=signature)[:4].hex()


def event_topic(signature: str) -> str:
    """Full 32-byte Keccak-256 hash used as an event's first topic."""
    return "0x" + keccak(text=signature).hex()


def selector_for(kind: SignatureKind, signature: str) -> str:
    if kind is SignatureKind.EVENT:
        return event_topic(signature)
    return function_selector(signature)


__all__ = ["canonical_signature", "event_topic", "function_selector", "selector_for"]
