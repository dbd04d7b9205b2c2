"""
Sales Orders: data-access layer

Customers, orders, order details, suppliers and dashboard read models over
SQLite (aiosqlite) or PostgreSQL (asyncpg). The HTTP layer calls into the
modules here with an explicitly constructed `Database` handle.
"""

from .config import DbType, Settings, load_settings
from .db import Database
from .errors import (
    ConfigurationError,
    ConnectionFailure,
    IntegrityFailure,
    SalesOrdersError,
    Unimplemented,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "ConnectionFailure",
    "Database",
    "DbType",
    "IntegrityFailure",
    "SalesOrdersError",
    "Settings",
    "Unimplemented",
    "ValidationError",
    "load_settings",
]
