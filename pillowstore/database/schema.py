"""
Schema Initializer

Administrative action that creates the remote collections when the
connectivity monitor reports SCHEMA_MISSING. The sync layer never calls this
on its own; it is exposed through scripts/init_schema.py and the admin API.
"""

from typing import List

import structlog
from sqlalchemy import inspect

from pillowstore.database.connection import RemoteClient
from pillowstore.database.models import TABLES, Base

logger = structlog.get_logger(__name__)


async def missing_tables(client: RemoteClient) -> List[str]:
    """Names of the required collections absent from the remote database"""
    async with client.begin() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    return [name for name in TABLES if name not in existing]


async def initialize_schema(client: RemoteClient) -> List[str]:
    """
    Create every missing collection.

    Returns:
        Names of the tables that were created (empty when already set up)
    """
    missing = await missing_tables(client)
    if not missing:
        logger.info("Remote schema already initialized")
        return []

    async with client.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Remote schema initialized", created=missing)
    return missing
