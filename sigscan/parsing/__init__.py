"""Solidity source parsing: tokens, declarations, canonical types and selectors."""

from .extractor import DeclarationExtractor, MalformedDeclarationError
from .lexer import Token, UnparseableSourceError, tokenize
from .natspec import parse_natspec
from .parser import SolidityParser, categorize
from .selectors import canonical_signature, event_topic, function_selector, selector_for
from .types import InvalidParameterTypeError, TypeCanonicalizer, TypeRegistry, UnresolvableTypeError

__all__ = [
    "DeclarationExtractor",
    "InvalidParameterTypeError",
    "MalformedDeclarationError",
    "SolidityParser",
    "Token",
    "TypeCanonicalizer",
    "TypeRegistry",
    "UnparseableSourceError",
    "UnresolvableTypeError",
    "canonical_signature",
    "categorize",
    "event_topic",
    "function_selector",
    "parse_natspec",
    "selector_for",
    "tokenize",
]
