"""Tests for sigscan.discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from sigscan.discovery import (
    classify_project,
    discover_sub_projects,
    find_project_roots,
    iter_source_files,
)
from sigscan.models import ProjectType
from tests._fixtures.project_builder import ProjectBuilder

CONTRACT = "contract A {}\n"


def test_foundry_marker_and_configured_source_dir(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "foundry.toml": '[profile.default]\nsrc = "contracts"\nout = "out"\n',
            "contracts/A.sol": CONTRACT,
        }
    )
    info = classify_project(project_builder.root)
    assert info.type is ProjectType.FOUNDRY
    assert info.marker == "foundry.toml"
    assert info.source_root == project_builder.path("contracts")


def test_foundry_defaults_to_src(project_builder: ProjectBuilder) -> None:
    project_builder.write({"foundry.toml": "[profile.default]\n", "src/A.sol": CONTRACT})
    assert classify_project(project_builder.root).source_root == project_builder.path("src")


def test_broken_foundry_config_still_classifies(project_builder: ProjectBuilder) -> None:
    project_builder.write({"foundry.toml": "[profile.default\n", "src/A.sol": CONTRACT})
    info = classify_project(project_builder.root)
    assert info.type is ProjectType.FOUNDRY
    assert info.source_root == project_builder.path("src")


@pytest.mark.parametrize(
    ("marker", "expected"),
    [
        ("hardhat.config.ts", ProjectType.HARDHAT),
        ("hardhat.config.js", ProjectType.HARDHAT),
        ("truffle-config.js", ProjectType.TRUFFLE),
        ("truffle.js", ProjectType.TRUFFLE),
    ],
)
def test_javascript_toolchain_markers(project_builder: ProjectBuilder, marker: str, expected: ProjectType) -> None:
    project_builder.write({marker: "module.exports = {};\n", "contracts/A.sol": CONTRACT})
    info = classify_project(project_builder.root)
    assert info.type is expected
    assert info.source_root == project_builder.path("contracts")


def test_foundry_marker_takes_precedence(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "foundry.toml": "",
            "hardhat.config.js": "module.exports = {};\n",
            "src/A.sol": CONTRACT,
        }
    )
    assert classify_project(project_builder.root).type is ProjectType.FOUNDRY


def test_plain_and_unknown_layouts(tmp_path: Path) -> None:
    with_contracts = tmp_path / "with_contracts"
    (with_contracts / "contracts").mkdir(parents=True)
    (with_contracts / "contracts" / "A.sol").write_text(CONTRACT, encoding="utf-8")
    info = classify_project(with_contracts)
    assert info.type is ProjectType.PLAIN
    assert info.source_root == (with_contracts / "contracts").resolve()

    flat = tmp_path / "flat"
    flat.mkdir()
    (flat / "A.sol").write_text(CONTRACT, encoding="utf-8")
    assert classify_project(flat).source_root == flat.resolve()

    empty = tmp_path / "empty"
    empty.mkdir()
    info = classify_project(empty)
    assert info.type is ProjectType.UNKNOWN
    assert info.source_root == empty.resolve()


def test_invalid_roots_raise(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        classify_project(tmp_path / "missing")
    target = tmp_path / "file.sol"
    target.write_text(CONTRACT, encoding="utf-8")
    with pytest.raises(NotADirectoryError):
        discover_sub_projects(target)


def test_discovers_independent_sub_projects_and_skips_dependencies(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "packages/alpha/foundry.toml": "",
            "packages/alpha/src/A.sol": CONTRACT,
            "packages/alpha/lib/forge-std/foundry.toml": "",
            "packages/beta/hardhat.config.js": "module.exports = {};\n",
            "packages/beta/contracts/B.sol": CONTRACT,
            "node_modules/@oz/contracts/hardhat.config.js": "",
        }
    )
    projects = discover_sub_projects(project_builder.root)
    assert [(info.type, info.root) for info in projects] == [
        (ProjectType.FOUNDRY, project_builder.path("packages/alpha")),
        (ProjectType.HARDHAT, project_builder.path("packages/beta")),
    ]


def test_unmarked_root_with_own_sources_is_included(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "contracts/Root.sol": CONTRACT,
            "contracts/nested/foundry.toml": "",
            "contracts/nested/src/Inner.sol": CONTRACT,
        }
    )
    root_info, nested_info = discover_sub_projects(project_builder.root)
    assert root_info.root == project_builder.path()
    assert root_info.nested_projects == (project_builder.path("contracts/nested"),)
    assert nested_info.type is ProjectType.FOUNDRY

    files = [path.name for path in iter_source_files(root_info)]
    assert files == ["Root.sol"]


def test_unmarked_root_without_sources_is_not_a_project(project_builder: ProjectBuilder) -> None:
    project_builder.write({"app/foundry.toml": "", "app/src/A.sol": CONTRACT, "README.md": "hi\n"})
    projects = discover_sub_projects(project_builder.root)
    assert [info.root for info in projects] == [project_builder.path("app")]


def test_marked_root_excludes_nested_projects(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "foundry.toml": "",
            "src/Main.sol": CONTRACT,
            "src/examples/demo/foundry.toml": "",
            "src/examples/demo/src/Demo.sol": CONTRACT,
        }
    )
    root_info, demo_info = discover_sub_projects(project_builder.root)
    assert root_info.nested_projects == (project_builder.path("src/examples/demo"),)
    assert [path.name for path in iter_source_files(root_info)] == ["Main.sol"]
    assert [path.name for path in iter_source_files(demo_info)] == ["Demo.sol"]


def test_nothing_found_returns_the_root(project_builder: ProjectBuilder) -> None:
    project_builder.write({"notes.txt": "nothing here\n"})
    (info,) = discover_sub_projects(project_builder.root)
    assert info.type is ProjectType.UNKNOWN
    assert info.root == project_builder.path()


def test_max_depth_limits_the_walk(project_builder: ProjectBuilder) -> None:
    project_builder.write({"a/b/c/foundry.toml": ""})
    assert find_project_roots(project_builder.root, max_depth=2) == []
    assert find_project_roots(project_builder.root, max_depth=3) == [project_builder.path("a/b/c")]


def test_extra_excluded_dirs_and_test_filtering(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "contracts/A.sol": CONTRACT,
            "contracts/mocks/Mock.sol": CONTRACT,
            "contracts/test/Helper.sol": CONTRACT,
            "contracts/B.t.sol": CONTRACT,
        }
    )
    info = classify_project(project_builder.root)
    names = [path.name for path in iter_source_files(info, exclude_dirs=["mocks"], include_tests=False)]
    assert names == ["A.sol"]
    all_names = [path.name for path in iter_source_files(info)]
    assert all_names == ["A.sol", "B.t.sol", "Mock.sol", "Helper.sol"]
