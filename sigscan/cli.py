"""CLI entrypoints for sigscan commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .discovery import discover_sub_projects
from .export.exporter import ExportError, ExportOptions, SignatureExporter, parse_formats
from .logging import configure_logging
from .models import ScanResult, SignatureKind
from .parsing.selectors import selector_for
from .scanner import ProjectScanner


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigscan",
        description="Extract Solidity function, event and error signatures with their selectors.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan a project tree and export its signatures.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_path_argument(scan_parser)
    scan_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Directory for exported files (defaults to <path>/signatures).",
    )
    scan_parser.add_argument(
        "-f",
        "--formats",
        default=None,
        help="Comma-separated output formats: txt, json, csv, md.",
    )
    scan_parser.add_argument(
        "--include-internal",
        action="store_true",
        default=None,
        help="Export internal functions too.",
    )
    scan_parser.add_argument(
        "--include-private",
        action="store_true",
        default=None,
        help="Export private functions too.",
    )
    scan_parser.add_argument(
        "--no-events",
        action="store_true",
        help="Leave events out of the export.",
    )
    scan_parser.add_argument(
        "--no-errors",
        action="store_true",
        help="Leave custom errors out of the export.",
    )
    scan_parser.add_argument(
        "--no-recursive",
        action="store_true",
        help="Scan only the given project instead of every sub-project below it.",
    )

    info_parser = subparsers.add_parser(
        "info",
        help="Show how a directory is classified and which sub-projects it holds.",
    )
    _add_verbose_option(info_parser, suppress_default=True)
    _add_path_argument(info_parser)

    selector_parser = subparsers.add_parser(
        "selector",
        help="Compute the selector of a canonical signature.",
    )
    _add_verbose_option(selector_parser, suppress_default=True)
    selector_parser.add_argument("signature", help="Canonical signature, e.g. transfer(address,uint256).")
    selector_parser.add_argument(
        "--kind",
        choices=[kind.value for kind in SignatureKind],
        default=SignatureKind.FUNCTION.value,
        help="Declaration kind; events produce the full 32-byte topic.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for sigscan commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "scan":
        _run_scan(parser, args)
    elif args.command == "info":
        _run_info(parser, args)
    elif args.command == "selector":
        print(selector_for(SignatureKind(args.kind), args.signature.replace(" ", "")))
    elif args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_scan(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    root = Path(args.path).expanduser()
    try:
        config = load_config(root)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    options = ExportOptions.from_settings(config.export, config.root / "signatures")
    if args.output:
        options.output_dir = Path(args.output).expanduser()
    if args.formats:
        options.formats = parse_formats(args.formats)
    if args.include_internal:
        options.include_internal = True
    if args.include_private:
        options.include_private = True
    if args.no_events:
        options.include_events = False
    if args.no_errors:
        options.include_errors = False

    scanner = ProjectScanner.from_config(config)
    try:
        if args.no_recursive:
            result = scanner.scan_project(root)
            sub_projects = [result]
        else:
            outcome = scanner.scan_all_sub_projects(root)
            result = outcome.combined
            sub_projects = outcome.sub_projects
        written = SignatureExporter().export(result, options)
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    except ExportError as exc:
        parser.exit(1, f"sigscan scan failed: {exc}\n")

    for sub_project in sub_projects:
        print(_summary_line(sub_project))
    if len(sub_projects) > 1:
        print(f"combined: {_counts(result)}")
    if result.collisions:
        print(f"{len(result.collisions)} selector collision(s) found")
    for path in written:
        print(f"Wrote {_relativize(path)}")


def _run_info(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        projects = discover_sub_projects(Path(args.path).expanduser())
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    for info in projects:
        marker = f" [{info.marker}]" if info.marker else ""
        print(f"{info.type.value}{marker} {_relativize(info.root)} (sources: {_relativize(info.source_root)})")
        for nested in info.nested_projects:
            print(f"  excludes {_relativize(nested)}")


def _summary_line(result: ScanResult) -> str:
    return f"{result.project.type.value} {_relativize(result.project.root)}: {_counts(result)}"


def _counts(result: ScanResult) -> str:
    return (
        f"{result.total_contracts} contracts, "
        f"{result.total_external_functions} external + {result.total_internal_functions} internal functions, "
        f"{result.total_events} events, {result.total_errors} errors"
        + (" (partial)" if result.partial else "")
    )


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
