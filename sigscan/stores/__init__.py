"""Caches shared across scans."""

from .signature_cache import DEFAULT_MAX_ENTRIES, SignatureCache, content_hash

__all__ = ["DEFAULT_MAX_ENTRIES", "SignatureCache", "content_hash"]
