"""
Database Module
"""
from .connection import RemoteClient
from .gateway import RemoteDataGateway
from .models import TABLES, Base
from .schema import initialize_schema, missing_tables

__all__ = [
    "RemoteClient",
    "RemoteDataGateway",
    "TABLES",
    "Base",
    "initialize_schema",
    "missing_tables",
]
