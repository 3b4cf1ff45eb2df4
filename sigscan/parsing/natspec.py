"""NatSpec tag parsing for documentation comments."""

from __future__ import annotations

import re
from typing import Dict, Optional

from ..models import Natspec

_TAG_PATTERN = re.compile(r"@(\w+(?::\w+)?)\s+([^\n@]*(?:\n(?!\s*@)[^\n@]*)*)")
_FIRST_TAG = re.compile(r"@\w")


def parse_natspec(comment: Optional[str]) -> Optional[Natspec]:
    """Return the tags found in a doc comment body, or None when it carries nothing."""
    if not comment or not comment.strip():
        return None

    notice: Optional[str] = None
    dev: Optional[str] = None
    params: Dict[str, str] = {}
    returns: Dict[str, str] = {}
    custom: Dict[str, str] = {}

    first_tag = _FIRST_TAG.search(comment)
    if first_tag is None:
        notice = comment.strip()
    elif first_tag.start() > 0:
        leading = comment[: first_tag.start()].strip()
        if leading:
            notice = leading

    for match in _TAG_PATTERN.finditer(comment):
        tag = match.group(1).lower()
        value = " ".join(match.group(2).split())
        if tag == "notice":
            notice = value
        elif tag == "dev":
            dev = value
        elif tag == "param":
            name, _, description = value.partition(" ")
            if description:
                params[name] = description.strip()
        elif tag in {"return", "returns"}:
            name, _, description = value.partition(" ")
            if description:
                returns[name] = description.strip()
            else:
                returns[""] = value
        else:
            custom[tag] = value

    if not any((notice, dev, params, returns, custom)):
        return None
    return Natspec(notice=notice, dev=dev, params=params, returns=returns, custom=custom)


__all__ = ["parse_natspec"]
