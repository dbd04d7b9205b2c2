"""
Sales Orders: dashboard read models

Leaderboards and lists for the landing page. Sales amounts use the same
formula as an order subtotal: unitprice × quantity × (1 − discount).
"""

from .db import Database
from .errors import ValidationError
from .queries import iso_dates

_SALES = "SUM(od.unitprice * od.quantity * (1 - od.discount))"


def _check_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")
    return limit


def _amounts(rows: list[dict]) -> list[dict]:
    for row in rows:
        row["amount"] = float(row["amount"] or 0)
    return rows


async def recent_orders(db: Database, limit: int = 5) -> list[dict]:
    """Latest orders by order date, with customer, employee and subtotal."""
    rows = await db.query_many(
        """
        SELECT co.id, co.orderdate, co.shippeddate,
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
        ORDER BY co.orderdate DESC, co.id DESC
        LIMIT :limit
        """,
        {"limit": _check_limit(limit)},
    )
    for row in rows:
        row["subtotal"] = float(row["subtotal"])
    return [iso_dates(row) for row in rows]


async def employee_leaderboard(db: Database, limit: int = 5) -> list[dict]:
    rows = await db.query_many(
        f"""
        SELECT e.id, e.firstname || ' ' || e.lastname AS name, {_SALES} AS amount
        FROM CustomerOrder AS co
        JOIN Employee AS e ON co.employeeid = e.id
        JOIN OrderDetail AS od ON od.orderid = co.id
        GROUP BY e.id, e.firstname, e.lastname
        ORDER BY amount DESC, e.id
        LIMIT :limit
        """,
        {"limit": _check_limit(limit)},
    )
    return _amounts(rows)


async def customer_leaderboard(db: Database, limit: int = 5) -> list[dict]:
    rows = await db.query_many(
        f"""
        SELECT c.id, c.companyname AS name, {_SALES} AS amount
        FROM CustomerOrder AS co
        JOIN Customer AS c ON co.customerid = c.id
        JOIN OrderDetail AS od ON od.orderid = co.id
        GROUP BY c.id, c.companyname
        ORDER BY amount DESC, c.id
        LIMIT :limit
        """,
        {"limit": _check_limit(limit)},
    )
    return _amounts(rows)


async def product_leaderboard(db: Database, limit: int = 5) -> list[dict]:
    rows = await db.query_many(
        f"""
        SELECT p.id, p.productname AS name, {_SALES} AS amount
        FROM OrderDetail AS od
        JOIN Product AS p ON od.productid = p.id
        GROUP BY p.id, p.productname
        ORDER BY amount DESC, p.id
        LIMIT :limit
        """,
        {"limit": _check_limit(limit)},
    )
    return _amounts(rows)


async def reorder_list(db: Database) -> list[dict]:
    """Active products whose stock plus incoming units is below the reorder level."""
    return await db.query_many(
        """
        SELECT id, productname, unitsinstock, unitsonorder, reorderlevel
        FROM Product
        WHERE discontinued = 0
          AND unitsinstock + unitsonorder < reorderlevel
        ORDER BY productname
        """
    )
