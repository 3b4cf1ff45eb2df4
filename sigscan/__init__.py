"""Solidity signature and selector extraction without a compiler."""

from .discovery import classify_project, discover_sub_projects
from .models import ProjectInfo, ProjectType, ScanResult, SignatureRecord, SourceUnit, SubProjectResult
from .parsing import SolidityParser, canonical_signature, event_topic, function_selector
from .scanner import ProjectScanner, ScanCancelledError

__version__ = "0.1.0"

__all__ = [
    "ProjectInfo",
    "ProjectScanner",
    "ProjectType",
    "ScanCancelledError",
    "ScanResult",
    "SignatureRecord",
    "SolidityParser",
    "SourceUnit",
    "SubProjectResult",
    "canonical_signature",
    "classify_project",
    "discover_sub_projects",
    "event_topic",
    "function_selector",
]
