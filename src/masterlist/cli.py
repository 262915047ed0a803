# src/masterlist/cli.py

import argparse
import logging
import sys
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from masterlist.catalog import CatalogError, CatalogSession
from masterlist.config import ConfigManager, get_config
from masterlist.utils.logging_config import setup_logging
from masterlist.utils.s3_uploader import create_s3_uploader, format_file_size

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="masterlist", description="Personal category/item lists with autosave and versioned export.")
    parser.add_argument("--profile", type=str, default=None, help="Profile name (separate persisted slot)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show the status line")
    sub.add_parser("list", help="List category names")
    sub.add_parser("report", help="Print every category with its items")

    p = sub.add_parser("show", help="Print the items of one category")
    p.add_argument("category")

    p = sub.add_parser("add-category", help="Add a category")
    p.add_argument("name")

    p = sub.add_parser("delete-category", help="Delete a category and all its items")
    p.add_argument("name")

    p = sub.add_parser("add-item", help="Append an item to a category")
    p.add_argument("category")
    p.add_argument("item")

    p = sub.add_parser("remove-item", help="Remove the first matching item (case-insensitive)")
    p.add_argument("category")
    p.add_argument("item")

    p = sub.add_parser("clear-items", help="Delete all items of a category, keeping the category")
    p.add_argument("category")

    p = sub.add_parser("edit-item", help="Replace an item (exact match)")
    p.add_argument("category")
    p.add_argument("old_item")
    p.add_argument("new_item")

    p = sub.add_parser("import", help="Replace the working set with a JSON file")
    p.add_argument("file")

    p = sub.add_parser("export", help="Write a versioned JSON export")
    p.add_argument("--sink", choices=["none", "directory", "s3"], default=None,
                   help="Optional sink to try before the exports folder (default: export.optional_sink)")
    p.add_argument("--base-name", default=None, help="Base file name (default: imported file name)")

    sub.add_parser("new", help="Start a new empty database")

    p = sub.add_parser("remote-exports", help="List exports already uploaded to S3")
    p.add_argument("--limit", type=int, default=10)

    return parser


def _run(session: CatalogSession, args: argparse.Namespace) -> str:
    command = args.command

    if command == "status":
        return session.status_text()
    if command == "list":
        return "\n".join(session.category_names()) or "No categories yet."
    if command == "report":
        return session.full_report()
    if command == "show":
        return session.category_items_text(args.category)
    if command == "add-category":
        return f"Added category: {session.add_category(args.name)}"
    if command == "delete-category":
        session.delete_category(args.name)
        return f"Deleted category: {args.name.strip()}"
    if command == "add-item":
        item = session.add_item(args.category, args.item)
        return f'Added "{item}" to {args.category.strip()}.'
    if command == "remove-item":
        item = session.remove_item(args.category, args.item)
        return f'Removed "{item}" from {args.category.strip()}.'
    if command == "clear-items":
        session.clear_items(args.category)
        return f"Cleared items in {args.category.strip()}."
    if command == "edit-item":
        session.edit_item(args.category, args.old_item, args.new_item)
        return f'Replaced "{args.old_item.strip()}" with "{args.new_item.strip()}" in {args.category.strip()}.'
    if command == "import":
        session.import_file(args.file)
        return f"Imported: {session.source_file_name}"
    if command == "export":
        result = session.export(args.base_name)
        verb = "Saved to folder" if result.sink != "download" else "Exported"
        return f"{verb}: {result.filename} ({result.location})"
    if command == "new":
        session.new_database()
        return "New empty database. Autosave is ON."
    raise ValueError(f"Unknown command: {command}")


def _list_remote_exports(config: ConfigManager, limit: int) -> int:
    uploader = create_s3_uploader(config)
    if uploader is None:
        print("Error: S3 is not configured or not reachable. Check the s3 section of your config.", file=sys.stderr)
        return 1
    try:
        files = uploader.list_exports(limit)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Listing remote exports failed: {e}", exc_info=True)
        print(f"Error: could not list remote exports: {e}", file=sys.stderr)
        return 1
    if not files:
        print("No exports found")
        return 0
    for i, file_info in enumerate(files, 1):
        modified = file_info['last_modified'].strftime('%Y-%m-%d %H:%M:%S UTC')
        print(f"{i:2d}. {file_info['filename']:<50} {format_file_size(file_info['size']):>10} {modified}")
    return 0


def main(argv: Optional[List[str]] = None, config: Optional[ConfigManager] = None) -> int:
    args = build_parser().parse_args(argv)

    config = config or get_config(args.profile)
    setup_logging(config)

    if args.command == "remote-exports":
        return _list_remote_exports(config, args.limit)

    try:
        session = CatalogSession.from_config(config, optional_sink=getattr(args, "sink", None))
    except Exception as e:
        logger.critical(f"Failed to open the catalog: {e}", exc_info=True)
        print("Error: failed to open the catalog. Check logs for details.", file=sys.stderr)
        return 1

    try:
        print(_run(session, args))
        return 0
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        session.close()
        if not session.persistence.autosave_ok:
            print(f"Warning: autosave failed ({session.persistence.last_error})", file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
