"""Configuration loading for sigscan (.sigscan.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".sigscan.yml"
DEFAULT_FORMATS = ("txt", "json")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ScanSettings:
    """Directory walking and parallelism options."""

    exclude_dirs: List[str] = field(default_factory=list)
    max_workers: Optional[int] = None
    max_depth: int = 8
    include_tests: bool = True


@dataclass
class ExportSettings:
    """Which encodings to write and which records to keep in them."""

    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    output_dir: Optional[Path] = None
    include_internal: bool = False
    include_private: bool = False
    include_events: bool = True
    include_errors: bool = True


@dataclass
class SigscanConfig:
    """Represents the settings defined in .sigscan.yml."""

    root: Path
    scan: ScanSettings = field(default_factory=ScanSettings)
    export: ExportSettings = field(default_factory=ExportSettings)


def load_config(config_path: Path) -> SigscanConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SigscanConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    scan = ScanSettings()
    scan_data = _as_dict(data.get("scan"))
    if scan_data:
        scan.exclude_dirs = _as_str_list(scan_data.get("exclude_dirs"))
        scan.max_workers = _as_int(scan_data.get("max_workers"))
        max_depth = _as_int(scan_data.get("max_depth"))
        if max_depth is not None and max_depth >= 0:
            scan.max_depth = max_depth
        include_tests = _as_bool(scan_data.get("include_tests"))
        if include_tests is not None:
            scan.include_tests = include_tests

    export = ExportSettings()
    export_data = _as_dict(data.get("export"))
    if export_data:
        formats = [fmt.lower() for fmt in _as_str_list(export_data.get("formats"))]
        if formats:
            export.formats = formats
        output_dir = _as_str(export_data.get("output_dir"))
        export.output_dir = root / output_dir if output_dir else None
        for flag in ("include_internal", "include_private", "include_events", "include_errors"):
            value = _as_bool(export_data.get(flag))
            if value is not None:
                setattr(export, flag, value)

    return SigscanConfig(root=root, scan=scan, export=export)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_FORMATS",
    "ExportSettings",
    "ScanSettings",
    "SigscanConfig",
    "load_config",
]
