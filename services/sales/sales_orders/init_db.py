"""
Sales Orders: schema bootstrap

Creates the tables if they do not already exist. Safe to run repeatedly:

    python -m sales_orders.init_db
"""

import asyncio
import logging

from .config import DbType, load_settings
from .db import Database
from .log import setup_logging

logger = logging.getLogger(__name__)

# generated key and floating point column types differ per backend
_TYPES = {
    DbType.SQLITE: {"serial": "INTEGER PRIMARY KEY AUTOINCREMENT", "real": "REAL"},
    DbType.POSTGRES: {"serial": "SERIAL PRIMARY KEY", "real": "DOUBLE PRECISION"},
}

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS Customer (
        id              VARCHAR(8) PRIMARY KEY,
        companyname     VARCHAR(255),
        contactname     VARCHAR(255),
        contacttitle    VARCHAR(255),
        address         VARCHAR(255),
        city            VARCHAR(255),
        region          VARCHAR(255),
        postalcode      VARCHAR(255),
        country         VARCHAR(255),
        phone           VARCHAR(255),
        fax             VARCHAR(255)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Employee (
        id              INTEGER PRIMARY KEY,
        lastname        VARCHAR(255),
        firstname       VARCHAR(255),
        title           VARCHAR(255),
        reportsto       INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Supplier (
        id              INTEGER PRIMARY KEY,
        companyname     VARCHAR(255),
        contactname     VARCHAR(255),
        contacttitle    VARCHAR(255),
        address         VARCHAR(255),
        city            VARCHAR(255),
        region          VARCHAR(255),
        postalcode      VARCHAR(255),
        country         VARCHAR(255),
        phone           VARCHAR(255),
        fax             VARCHAR(255)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Product (
        id              INTEGER PRIMARY KEY,
        productname     VARCHAR(255),
        supplierid      INTEGER,
        categoryid      INTEGER,
        quantityperunit VARCHAR(255),
        unitprice       {real},
        unitsinstock    INTEGER NOT NULL DEFAULT 0,
        unitsonorder    INTEGER NOT NULL DEFAULT 0,
        reorderlevel    INTEGER NOT NULL DEFAULT 0,
        discontinued    INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS CustomerOrder (
        id              {serial},
        customerid      VARCHAR(8),
        employeeid      INTEGER,
        orderdate       DATE,
        requireddate    DATE,
        shippeddate     DATE,
        shipvia         INTEGER,
        freight         {real},
        shipname        VARCHAR(255),
        shipaddress     VARCHAR(255),
        shipcity        VARCHAR(255),
        shipregion      VARCHAR(255),
        shippostalcode  VARCHAR(255),
        shipcountry     VARCHAR(255),
        detailseq       INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS OrderDetail (
        id              VARCHAR(32) PRIMARY KEY,
        orderid         INTEGER NOT NULL,
        productid       INTEGER NOT NULL,
        unitprice       {real} NOT NULL,
        quantity        INTEGER NOT NULL,
        discount        {real} NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_customerorder_customer ON CustomerOrder (customerid)",
    "CREATE INDEX IF NOT EXISTS idx_orderdetail_order ON OrderDetail (orderid)",
]


def schema_statements(db_type: DbType) -> list[str]:
    types = _TYPES[db_type]
    return [stmt.format(**types).strip() for stmt in _SCHEMA]


async def create_tables(db: Database) -> None:
    """Create every table and index in one transaction."""
    async with db.transaction() as tx:
        for stmt in schema_statements(db.db_type):
            await tx.execute(stmt)
    logger.info("Database schema initialized successfully.")


async def _main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    async with Database(settings) as db:
        await create_tables(db)


if __name__ == "__main__":
    asyncio.run(_main())
