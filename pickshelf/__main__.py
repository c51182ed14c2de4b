"""Module executed when running ``python -m pickshelf``."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import uvicorn

from app.config import settings
from app.database import Database
from app.seed import import_legacy_json, seed_demo_content


async def _with_database(action, *args):
    database = Database(settings.database_url)
    try:
        await database.create_all()
        return await action(database.session_factory, *args)
    finally:
        await database.dispose()


def serve() -> None:
    """Start the uvicorn server using the configured settings."""

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="pickshelf")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="run the web server (default)")
    commands.add_parser("seed", help="insert demo content")
    import_parser = commands.add_parser(
        "import-json", help="import a legacy JSON document store file"
    )
    import_parser.add_argument("path", type=Path)
    args = parser.parse_args(argv)

    if args.command in (None, "serve"):
        serve()
        return

    logging.basicConfig(level=logging.INFO)
    if args.command == "seed":
        created = asyncio.run(_with_database(seed_demo_content))
        print("Seeded demo content." if created else "Demo content already present.")
    elif args.command == "import-json":
        summary = asyncio.run(_with_database(import_legacy_json, args.path))
        print(
            f"Imported {summary.contents} contents and {summary.comments} comments "
            f"({summary.skipped} skipped)."
        )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
