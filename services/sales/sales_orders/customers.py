"""
Sales Orders: customer read paths
"""

from collections.abc import Mapping
from typing import Any

from .db import Database
from .query import CollectionOptions, contains_filter, order_by, paginate, select

ALL_CUSTOMERS_COLUMNS = ["id", "contactname", "companyname"]

CUSTOMER_SORT_COLUMNS = {
    **{name: f"c.{name}" for name in ALL_CUSTOMERS_COLUMNS},
    "ordercount": "ordercount",
}

CUSTOMER_FILTER_COLUMNS = ["c.companyname", "c.contactname"]


async def list_customers(
    db: Database,
    options: CollectionOptions | Mapping[str, Any] | None = None,
) -> list[dict]:
    """
    Customers with the number of orders each has placed.

    `filter` in the options matches company or contact name, ignoring case.
    """
    opts = CollectionOptions.parse(options)
    query = select(
        [f"c.{name}" for name in ALL_CUSTOMERS_COLUMNS] + ["COUNT(co.id) AS ordercount"],
        "Customer AS c\nLEFT JOIN CustomerOrder AS co ON co.customerid = c.id",
        where=[contains_filter(opts.filter, CUSTOMER_FILTER_COLUMNS) if opts.filter else None],
        group_by=", ".join(f"c.{name}" for name in ALL_CUSTOMERS_COLUMNS),
        order=order_by(opts, CUSTOMER_SORT_COLUMNS, tiebreak="c.id"),
        page=paginate(opts),
    )
    return await db.query_many(query)


async def get_customer(db: Database, customer_id: str) -> dict | None:
    return await db.query_one("SELECT * FROM Customer WHERE id = :id", {"id": customer_id})
