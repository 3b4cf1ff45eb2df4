"""Tests for sigscan.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from sigscan.config import ConfigError, ExportSettings, ScanSettings, SigscanConfig, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, SigscanConfig)
    assert config.root == tmp_path.resolve()
    assert config.scan == ScanSettings()
    assert config.export == ExportSettings()
    assert config.export.formats == ["txt", "json"]
    assert config.export.output_dir is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".sigscan.yml"
    config_file.write_text(
        """
scan:
  exclude_dirs:
    - "vendor"
    - "scripts"
  max_workers: 4
  max_depth: 3
  include_tests: false
export:
  formats: [JSON, csv, md]
  output_dir: "build/signatures"
  include_internal: true
  include_events: "no"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.scan.exclude_dirs == ["vendor", "scripts"]
    assert config.scan.max_workers == 4
    assert config.scan.max_depth == 3
    assert config.scan.include_tests is False
    assert config.export.formats == ["json", "csv", "md"]
    assert config.export.output_dir == tmp_path.resolve() / "build" / "signatures"
    assert config.export.include_internal is True
    assert config.export.include_private is False
    assert config.export.include_events is False
    assert config.export.include_errors is True


def test_load_config_tolerates_odd_values(tmp_path: Path) -> None:
    (tmp_path / ".sigscan.yml").write_text(
        """
scan:
  exclude_dirs: "a, b"
  max_workers: true
  max_depth: -1
export: "nope"
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.scan.exclude_dirs == ["a", "b"]
    assert config.scan.max_workers is None
    assert config.scan.max_depth == 8
    assert config.export == ExportSettings()


def test_load_config_handles_empty_file(tmp_path: Path) -> None:
    (tmp_path / ".sigscan.yml").write_text("", encoding="utf-8")
    assert load_config(tmp_path).scan == ScanSettings()


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".sigscan.yml").write_text("scan: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_non_mapping_root(tmp_path: Path) -> None:
    (tmp_path / ".sigscan.yml").write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)
