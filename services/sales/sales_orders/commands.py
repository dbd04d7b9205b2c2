"""
Sales Orders: order write paths

Create, update and delete run inside a single transaction each, so a
CustomerOrder row and its OrderDetail rows are written or removed together.

OrderDetail ids are "<order id>/<n>", n being the 1-based position of the
line within its order. CustomerOrder.detailseq records the highest n ever
handed out, so lines added later never reuse the id of a removed line.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .db import Database, Executor
from .errors import IntegrityFailure, ValidationError
from .queries import get_order
from .schemas import (
    OrderDetailFields,
    OrderFields,
    parse_details,
    parse_order,
    parse_order_id,
)

logger = logging.getLogger(__name__)

OrderInput = OrderFields | Mapping[str, Any]
DetailInput = OrderDetailFields | Mapping[str, Any]

_INSERT_DETAIL = """
    INSERT INTO OrderDetail (id, orderid, productid, unitprice, quantity, discount)
    VALUES (:id, :orderid, :productid, :unitprice, :quantity, :discount)
"""

_UPDATE_DETAIL = """
    UPDATE OrderDetail
    SET productid = :productid, unitprice = :unitprice,
        quantity = :quantity, discount = :discount
    WHERE id = :id AND orderid = :orderid
"""


def detail_id(order_id: int, seq: int) -> str:
    return f"{order_id}/{seq}"


def _detail_seq(value: str) -> int:
    try:
        return int(value.rpartition("/")[2])
    except ValueError:
        return 0


def _line_values(line: OrderDetailFields) -> dict[str, Any]:
    return line.model_dump(include={"productid", "unitprice", "quantity", "discount"})


async def _insert_details(
    tx: Executor,
    order_id: int,
    lines: list[OrderDetailFields],
    start: int = 1,
) -> int:
    """Insert `lines` numbered from `start`; returns the last sequence used."""
    rows = [
        {"id": detail_id(order_id, seq), "orderid": order_id, **_line_values(line)}
        for seq, line in enumerate(lines, start)
    ]
    await tx.execute_many(_INSERT_DETAIL, rows)
    return start + len(rows) - 1


# ── Create ───────────────────────────────────────

async def create_order(
    db: Database,
    order: OrderInput,
    details: Iterable[DetailInput] = (),
) -> int:
    """
    Create a CustomerOrder and its OrderDetail rows atomically.

    1. Insert the order header with only the supplied columns
    2. Insert every detail line bound to the generated order id
    3. Commit; any failure rolls everything back and is re-raised

    Returns the generated order id.
    """
    lines = parse_details(details)
    fields = {**parse_order(order).supplied(), "detailseq": len(lines)}

    columns = ", ".join(fields)
    values = ", ".join(f":{name}" for name in fields)
    insert = f"INSERT INTO CustomerOrder ({columns}) VALUES ({values})"

    async with db.transaction() as tx:
        result = await tx.execute(insert, fields, returning="id")
        order_id = result.generated_id
        if order_id is None:
            raise IntegrityFailure("insertion did not return an identifier")

        await _insert_details(tx, order_id, lines)

    logger.info("Created order #%s with %d detail(s)", order_id, len(lines))
    return order_id


# ── Update ───────────────────────────────────────

async def _reconcile_details(
    tx: Executor, order_id: int, lines: list[OrderDetailFields]
) -> None:
    """Make the order's detail rows match `lines` (matched by detail id)."""
    rows = await tx.query_many(
        "SELECT id FROM OrderDetail WHERE orderid = :orderid", {"orderid": order_id}
    )
    existing = {row["id"] for row in rows}

    listed = [line.id for line in lines if line.id is not None]
    unknown = sorted(set(listed) - existing)
    if unknown:
        raise IntegrityFailure(
            f"Order #{order_id} has no detail(s) {', '.join(unknown)}"
        )

    stale = sorted(existing - set(listed))
    if stale:
        await tx.execute_many(
            "DELETE FROM OrderDetail WHERE id = :id AND orderid = :orderid",
            [{"id": value, "orderid": order_id} for value in stale],
        )

    await tx.execute_many(
        _UPDATE_DETAIL,
        [
            {"id": line.id, "orderid": order_id, **_line_values(line)}
            for line in lines
            if line.id is not None
        ],
    )

    new = [line for line in lines if line.id is None]
    if new:
        header = await tx.query_one(
            "SELECT detailseq FROM CustomerOrder WHERE id = :id", {"id": order_id}
        )
        # rows written before detailseq existed only show up in the ids
        used = max([header["detailseq"] or 0, *(_detail_seq(value) for value in existing)])
        last = await _insert_details(tx, order_id, new, used + 1)
        await tx.execute(
            "UPDATE CustomerOrder SET detailseq = :seq WHERE id = :id",
            {"seq": last, "id": order_id},
        )


async def update_order(
    db: Database,
    order_id: int | str,
    data: OrderInput,
    details: Iterable[DetailInput] | None = None,
) -> dict | None:
    """
    Update an order and reconcile its detail lines in one transaction.

    Only supplied header fields change. With `details` given, lines carrying
    an `id` are updated in place, lines without one are added and the
    order's other lines are removed; `details=None` leaves them alone.

    The header UPDATE is always the first statement, so the order row is
    locked before any detail is touched and a concurrent delete cannot
    leave lines behind.

    Returns the refreshed order, or None when the order does not exist.
    """
    order_id = parse_order_id(order_id)
    fields = parse_order(data).supplied()
    lines = parse_details(details) if details is not None else None
    if lines is not None:
        ids = [line.id for line in lines if line.id is not None]
        if len(ids) != len(set(ids)):
            raise ValidationError(f"Duplicate detail ids in update of order #{order_id}")

    assignments = ", ".join(f"{name} = :{name}" for name in fields) or "id = id"

    async with db.transaction() as tx:
        result = await tx.execute(
            f"UPDATE CustomerOrder SET {assignments} WHERE id = :order_id",
            {**fields, "order_id": order_id},
        )
        if result.affected_count == 0:
            return None

        if lines is not None:
            await _reconcile_details(tx, order_id, lines)

    logger.info("Updated order #%s", order_id)
    return await get_order(db, order_id)


# ── Delete ───────────────────────────────────────

async def delete_order(db: Database, order_id: int | str) -> int:
    """
    Delete an order together with its detail lines.

    Returns the number of CustomerOrder rows removed (0 when it did not exist).
    """
    order_id = parse_order_id(order_id)
    async with db.transaction() as tx:
        await tx.execute("DELETE FROM OrderDetail WHERE orderid = :id", {"id": order_id})
        result = await tx.execute("DELETE FROM CustomerOrder WHERE id = :id", {"id": order_id})

    if result.affected_count:
        logger.info("Deleted order #%s", order_id)
    return result.affected_count
