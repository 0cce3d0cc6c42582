"""Memory bank CLI — inspect and edit a memory bank from the shell.

Usage:
    python -m memorybank init                       Write default content
    python -m memorybank status                     Show initialization and components
    python -m memorybank show activeContext         Print a component
    python -m memorybank set progress --file p.md   Replace a component
    python -m memorybank append decisionLog --text "..."
    python -m memorybank history activeContext --limit 5
    python -m memorybank version activeContext <version_id>
    python -m memorybank export --format yaml --output bank.yaml
    python -m memorybank import bank.yaml --format yaml
    python -m memorybank --database migrate         Copy file storage into SQLite
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

import structlog

from memorybank.config.settings import MemoryBankSettings, get_settings, load_settings
from memorybank.exceptions import MemoryBankError
from memorybank.factory import build_store, migrate_to_database
from memorybank.schemas.enums import ComponentId, ExportFormat
from memorybank.services.component_store import ComponentStore
from memorybank.utils.hashing import compute_text_hash
from memorybank.utils.logging import configure_logging

logger = structlog.get_logger()

COMPONENT_CHOICES = [c.value for c in ComponentId]
FORMAT_CHOICES = [f.value for f in ExportFormat]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="memorybank",
        description="Memory Bank — versioned component store",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML settings file",
    )
    parser.add_argument(
        "--base-path",
        type=Path,
        default=None,
        help="Directory holding component files (overrides settings)",
    )
    parser.add_argument(
        "--database",
        action="store_true",
        help="Use the SQLite backend",
    )
    parser.add_argument(
        "--database-path",
        type=Path,
        default=None,
        help="SQLite database file (default: <base-path>/memory-bank.db)",
    )
    parser.add_argument(
        "--max-history",
        type=int,
        default=None,
        help="History versions kept per component",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level",
    )
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Write default content for required components")
    subparsers.add_parser("status", help="Show initialization state and component sizes")

    show = subparsers.add_parser("show", help="Print a component")
    show.add_argument("component", choices=COMPONENT_CHOICES)

    for name, help_text in (("set", "Replace a component"), ("append", "Append to a component")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("component", choices=COMPONENT_CHOICES)
        source = sub.add_mutually_exclusive_group()
        source.add_argument("--text", default=None, help="Content given inline")
        source.add_argument("--file", type=Path, default=None, help="Read content from a file")

    history = subparsers.add_parser("history", help="List history versions, newest first")
    history.add_argument("component", choices=COMPONENT_CHOICES)
    history.add_argument("--limit", type=int, default=None)
    history.add_argument("--content-only", action="store_true")

    version = subparsers.add_parser("version", help="Print one history version")
    version.add_argument("component", choices=COMPONENT_CHOICES)
    version.add_argument("version_id")

    export = subparsers.add_parser("export", help="Export all components")
    export.add_argument("--format", choices=FORMAT_CHOICES, default=ExportFormat.JSON.value)
    export.add_argument("--output", type=Path, default=None, help="Write to a file instead of stdout")

    imp = subparsers.add_parser("import", help="Import components from an export file")
    imp.add_argument("path", type=Path)
    imp.add_argument("--format", choices=FORMAT_CHOICES, default=None, help="Default: from file extension")

    migrate = subparsers.add_parser("migrate", help="Copy file storage into the SQLite database")
    migrate.add_argument("--with-history", action="store_true", help="Also copy history versions")

    return parser.parse_args(argv)


def _build_settings(args: argparse.Namespace) -> MemoryBankSettings:
    settings = load_settings(args.config) if args.config else get_settings()

    overrides: dict = {}
    if args.base_path is not None:
        overrides["base_path"] = args.base_path
    if args.database:
        overrides["use_database"] = True
    if args.database_path is not None:
        overrides["database_path"] = args.database_path
    if args.max_history is not None:
        overrides["max_history_versions"] = args.max_history
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.console_logs:
        overrides["json_logs"] = False
    return dataclasses.replace(settings, **overrides) if overrides else settings


def _read_content(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    return sys.stdin.read()


def _cmd_init(store: ComponentStore, _args: argparse.Namespace) -> int:
    if store.is_initialized():
        print("Memory bank already initialized; rewriting defaults")
    store.initialize()
    print("Memory bank initialized")
    return 0


def _cmd_status(store: ComponentStore, _args: argparse.Namespace) -> int:
    print(f"Initialized: {'yes' if store.is_initialized() else 'no'}")
    print(f"History versions kept: {store.max_history_versions}")
    for component_id, content in store.get_all_components().items():
        versions = store.get_component_history(component_id)
        digest = compute_text_hash(content)[:12]
        print(f"  {component_id:<16} {len(content):>7} chars  {len(versions):>3} versions  {digest}")
    return 0


def _cmd_show(store: ComponentStore, args: argparse.Namespace) -> int:
    sys.stdout.write(store.get_component(args.component))
    return 0


def _cmd_set(store: ComponentStore, args: argparse.Namespace) -> int:
    store.update_component(args.component, _read_content(args))
    return 0


def _cmd_append(store: ComponentStore, args: argparse.Namespace) -> int:
    store.append_to_component(args.component, _read_content(args))
    return 0


def _cmd_history(store: ComponentStore, args: argparse.Namespace) -> int:
    if args.content_only:
        for content in store.get_component_history(args.component, limit=args.limit, content_only=True):
            print(content)
            print("---")
        return 0

    versions = store.get_component_history(args.component, limit=args.limit)
    if not versions:
        print(f"No history for {args.component}")
    for version in versions:
        print(f"{version.version_id:<32} {version.timestamp.isoformat()}  {len(version.content)} chars")
    return 0


def _cmd_version(store: ComponentStore, args: argparse.Namespace) -> int:
    sys.stdout.write(store.get_component_version(args.component, args.version_id))
    return 0


def _cmd_export(store: ComponentStore, args: argparse.Namespace) -> int:
    payload = store.export_components(args.format)
    if args.output is not None:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Exported to {args.output}")
    else:
        sys.stdout.write(payload)
    return 0


def _cmd_import(store: ComponentStore, args: argparse.Namespace) -> int:
    fmt = args.format
    if fmt is None:
        fmt = ExportFormat.YAML.value if args.path.suffix in (".yaml", ".yml") else ExportFormat.JSON.value
    count = store.import_components(args.path.read_text(encoding="utf-8"), fmt)
    print(f"Imported {count} components")
    return 0


_COMMANDS = {
    "init": _cmd_init,
    "status": _cmd_status,
    "show": _cmd_show,
    "set": _cmd_set,
    "append": _cmd_append,
    "history": _cmd_history,
    "version": _cmd_version,
    "export": _cmd_export,
    "import": _cmd_import,
}


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = _build_settings(args)
    except ValueError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 1
    configure_logging(json_output=settings.json_logs, level=settings.log_level)
    logger.debug("Settings loaded", **settings.summary())

    try:
        if args.command == "migrate":
            count = migrate_to_database(settings, include_history=args.with_history)
            print(f"Migrated {count} components to {settings.resolved_database_path}")
            return 0

        handler = _COMMANDS.get(args.command)
        if handler is None:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
        with build_store(settings) as store:
            return handler(store, args)
    except MemoryBankError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
