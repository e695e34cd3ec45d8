from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from campaigndocs.config import default_db_path
from campaigndocs.errors import ExportError, error_payload
from campaigndocs.factory import build_exporter
from campaigndocs.tabsync import MODES


def _print(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False))


def _add_target(p: argparse.ArgumentParser) -> None:
    p.add_argument("--client", type=str, required=True, help="Client id")
    p.add_argument("--campaign", type=str, required=True, help="Campaign id")
    p.add_argument("--version", type=str, required=True, help="Campaign version id")


def main(argv: list[str]) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(prog="campaigndocs", description="Export campaign versions to Google Sheets documents.")
    parser.add_argument("--db", type=str, default=default_db_path(), help="SQLite store path (default: data/campaigndocs.sqlite)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="cmd", required=True)

    export = sub.add_parser("export", help="Write campaign, hierarchy and breakdown tables to the sheet.")
    _add_target(export)
    export.add_argument("--sheet-url", type=str, required=True)
    export.add_argument("--language", type=str, default="", choices=["", "FR", "EN"])
    export.add_argument("--synced-by", type=str, default="cli")

    tabs = sub.add_parser("tabs", help="Synchronize the sheet's tabs with the hierarchy tabs.")
    _add_target(tabs)
    tabs.add_argument("--sheet-url", type=str, required=True)
    tabs.add_argument("--mode", type=str, default="refresh", choices=list(MODES))

    create = sub.add_parser("create", help="Copy a template into a new document, create its tabs and export into it.")
    _add_target(create)
    create.add_argument("--name", type=str, required=True, help="Name of the new document")
    create.add_argument("--template", type=str, required=True, help="Template id")
    create.add_argument("--created-by", type=str, default="cli")

    preview = sub.add_parser("preview", help="Print the tables an export would write.")
    _add_target(preview)
    preview.add_argument("--language", type=str, default="", choices=["", "FR", "EN"])

    sub.add_parser("shortcodes", help="Refresh the cached shortcode map from the store.")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    exporter = build_exporter(args.db)

    if args.cmd == "export":
        result = asyncio.run(
            exporter.export(
                args.client,
                args.campaign,
                args.version,
                args.sheet_url,
                export_language=args.language or None,
                synced_by=args.synced_by,
            )
        )
        _print(result.as_dict())
        return 0 if result.success else 1

    if args.cmd == "tabs":
        try:
            sync = asyncio.run(exporter.sync_tabs(args.mode, args.client, args.campaign, args.version, args.sheet_url))
        except ExportError as exc:
            _print({"success": False, **error_payload(exc)})
            return 1
        _print({"success": True, **sync.as_dict()})
        return 0

    if args.cmd == "create":
        created = asyncio.run(
            exporter.create_document(
                args.client, args.campaign, args.version, args.name, args.template, created_by=args.created_by
            )
        )
        _print(created.as_dict())
        return 0 if created.success else 1

    if args.cmd == "preview":
        try:
            tables = asyncio.run(exporter.preview(args.client, args.campaign, args.version, args.language or None))
        except ExportError as exc:
            _print({"success": False, **error_payload(exc)})
            return 1
        _print(tables)
        return 0

    if args.cmd == "shortcodes":
        count = asyncio.run(exporter.shortcodes.refresh(exporter.store))
        _print({"cached": count})
        return 0

    return 1


def cli() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(cli())
