import argparse
import asyncio
import logging
import sys
from pathlib import Path

import uvicorn

from weread_sync.core.config import load_settings
from weread_sync.core.errors import ConfigurationError, MalformedPayload, PersistenceFailure
from weread_sync.integrations.weread import load_payload_bundle
from weread_sync.server import app, build_service

def start_server(host: str, port: int):
    print(f"Starting server at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)

def run_sync(args) -> int:
    settings = load_settings(
        vault_dir=args.vault,
        note_location=args.note_location,
        file_name_type=args.file_name_type,
        sub_folder_type=args.sub_folder_type,
        daily_notes=True if args.daily_notes else None,
    )
    payloads = load_payload_bundle(Path(args.export_dir))
    report = asyncio.run(build_service(settings).sync(payloads, force=args.force))

    for result in report.results:
        line = f"[{result.action}] {result.title or result.book_id}"
        if result.path:
            line += f" -> {result.path}"
        if result.error:
            line += f": {result.error}"
        print(line)
    print(f"{report.count('created')} created, {report.count('updated')} updated, "
          f"{report.count('skipped')} skipped, {len(report.failures)} failed")
    return 1 if report.failures else 0

def run_list(args) -> int:
    settings = load_settings(vault_dir=args.vault)
    files = asyncio.run(build_service(settings).file_manager.get_notebook_files())
    for file in files:
        print(f"{file.book_id}\t{file.note_count} notes\t{file.review_count} reviews\t{file.file}")
    return 0

def main(argv=None):
    parser = argparse.ArgumentParser(description="Sync WeRead highlights and reviews into a notes vault")
    parser.add_argument("--vault", help="Vault directory (default: WEREAD_VAULT_DIR)")
    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Sync an exported payload directory")
    sync_parser.add_argument("export_dir")
    sync_parser.add_argument("--force", action="store_true", help="Rewrite notes even when nothing changed")
    sync_parser.add_argument("--note-location")
    sync_parser.add_argument("--file-name-type", choices=["BOOK_NAME", "BOOK_NAME-AUTHOR", "BOOK_NAME-BOOKID"])
    sync_parser.add_argument("--sub-folder-type", choices=["none", "title", "category"])
    sync_parser.add_argument("--daily-notes", action="store_true", help="Link today's highlights from the daily note")

    subparsers.add_parser("list", help="List synced notes")

    serve_parser = subparsers.add_parser("serve", help="Start Server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8123)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        if args.command == "sync":
            return run_sync(args)
        elif args.command == "list":
            return run_list(args)
        elif args.command == "serve":
            start_server(args.host, args.port)
            return 0
        else:
            parser.print_help()
            return 2
    except (ConfigurationError, MalformedPayload, PersistenceFailure) as e:
        print(f"Error: {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
