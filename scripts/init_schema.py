#!/usr/bin/env python
"""
Schema Initialization Script

Creates the remote collections when the connectivity monitor reports that
the database tables are not set up.

Usage:
    python scripts/init_schema.py           # create missing tables
    python scripts/init_schema.py --check   # only list missing tables
"""

import argparse
import asyncio
import sys

import structlog

from pillowstore.config import get_settings
from pillowstore.config.logging import configure_logging
from pillowstore.database.connection import RemoteClient
from pillowstore.database.schema import initialize_schema, missing_tables

logger = structlog.get_logger(__name__)


async def run(check_only: bool) -> int:
    settings = get_settings()
    client = RemoteClient(settings.remote)
    await client.connect()

    try:
        missing = await missing_tables(client)
        if check_only:
            logger.info("Schema check", missing=missing)
            return 1 if missing else 0

        created = await initialize_schema(client)
        logger.info("Schema ready", created=created)
        return 0
    finally:
        await client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the Pillow Store remote schema")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report missing tables (exit code 1 when any are missing)",
    )
    args = parser.parse_args()

    configure_logging()
    sys.exit(asyncio.run(run(args.check)))
