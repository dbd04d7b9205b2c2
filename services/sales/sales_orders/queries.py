"""
Sales Orders: order read paths

Collection and single-order reads over CustomerOrder joined with Customer,
Employee, OrderDetail and Product. Derived values (subtotal, line price)
are computed by the database, not here.
"""

from collections.abc import Mapping
from typing import Any

from .db import Database
from .query import (
    CollectionOptions,
    Query,
    contains_filter,
    equals,
    order_by,
    paginate,
    select,
)
from .schemas import parse_order_id

ALL_ORDERS_COLUMNS = [
    "id",
    "customerid",
    "employeeid",
    "shipcity",
    "shipcountry",
    "shippeddate",
]

ORDER_SORT_COLUMNS = {
    **{name: f"co.{name}" for name in ALL_ORDERS_COLUMNS},
    "customername": "c.contactname",
    "employeename": "e.firstname",
}

ORDER_DATE_COLUMNS = ("orderdate", "requireddate", "shippeddate")

ORDER_FILTER_COLUMNS = ["c.contactname", "c.companyname", "co.shipname"]

_ORDERS_SOURCE = """CustomerOrder AS co
LEFT JOIN Customer AS c ON co.customerid = c.id
LEFT JOIN Employee AS e ON co.employeeid = e.id"""

# line items come back in detail-sequence order ("42/2" before "42/10")
_DETAIL_ORDER = "length(od.id), od.id"

Options = CollectionOptions | Mapping[str, Any] | None


def _as_float(row: dict, *columns: str) -> dict:
    for name in columns:
        if row.get(name) is not None:
            row[name] = float(row[name])
    return row


def iso_dates(row: dict, columns=ORDER_DATE_COLUMNS) -> dict:
    """Render date columns as ISO strings; asyncpg returns date objects, SQLite text."""
    for name in columns:
        value = row.get(name)
        if value is not None and not isinstance(value, str):
            row[name] = value.isoformat()
    return row


async def list_orders(
    db: Database,
    options: Options = None,
    where: Query | None = None,
) -> list[dict]:
    """
    One page of orders with the customer's contact name and the employee's
    first name.

    `where` is a pre-built condition (for example `equals("co.customerid", ...)`)
    ANDed with the free-text filter from the options.
    """
    opts = CollectionOptions.parse(options)
    query = select(
        [f"co.{name}" for name in ALL_ORDERS_COLUMNS]
        + ["c.contactname AS customername", "e.firstname AS employeename"],
        _ORDERS_SOURCE,
        where=[
            where,
            contains_filter(opts.filter, ORDER_FILTER_COLUMNS) if opts.filter else None,
        ],
        order=order_by(opts, ORDER_SORT_COLUMNS, tiebreak="co.id"),
        page=paginate(opts),
    )
    return [iso_dates(row) for row in await db.query_many(query)]


async def list_orders_for_customer(
    db: Database,
    customer_id: str,
    options: Options = None,
) -> list[dict]:
    """Orders placed by one customer, by shipped date unless told otherwise."""
    opts = CollectionOptions.parse(options).with_default_sort("shippeddate")
    return await list_orders(db, opts, where=equals("co.customerid", "customer_id", customer_id))


async def get_order(db: Database, order_id: int | str) -> dict | None:
    """A single order with customer name, employee name and subtotal, or None."""
    order_id = parse_order_id(order_id)
    row = await db.query_one(
        """
        SELECT co.*,
               c.contactname AS customername,
               e.firstname AS employeename,
               COALESCE((
                   SELECT SUM(od.unitprice * od.quantity * (1 - od.discount))
                   FROM OrderDetail AS od
                   WHERE od.orderid = co.id
               ), 0) AS subtotal
        FROM CustomerOrder AS co
        LEFT JOIN Customer AS c ON co.customerid = c.id
        LEFT JOIN Employee AS e ON co.employeeid = e.id
        WHERE co.id = :id
        """,
        {"id": order_id},
    )
    if row is None:
        return None
    return iso_dates(_as_float(row, "freight", "subtotal"))


async def get_order_details(db: Database, order_id: int | str) -> list[dict]:
    """Line items of an order with `price` (unitprice × quantity) and product name."""
    order_id = parse_order_id(order_id)
    rows = await db.query_many(
        f"""
        SELECT od.*, od.unitprice * od.quantity AS price, p.productname
        FROM OrderDetail AS od
        LEFT JOIN Product AS p ON od.productid = p.id
        WHERE od.orderid = :id
        ORDER BY {_DETAIL_ORDER}
        """,
        {"id": order_id},
    )
    return [_as_float(row, "unitprice", "discount", "price") for row in rows]


async def get_order_with_details(
    db: Database, order_id: int | str
) -> tuple[dict, list[dict]] | None:
    """The order and its line items; None (without a second query) if absent."""
    order = await get_order(db, order_id)
    if order is None:
        return None
    return order, await get_order_details(db, order_id)
