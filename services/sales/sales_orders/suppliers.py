"""
Sales Orders: supplier read paths

The product list is aggregated by the database: `string_agg` on PostgreSQL,
`group_concat` over name-ordered rows on SQLite.
"""

from collections.abc import Mapping
from typing import Any

from .config import DbType
from .db import Database
from .query import CollectionOptions, contains_filter, order_by, paginate, select

ALL_SUPPLIERS_COLUMNS = ["id", "contactname", "companyname"]

SUPPLIER_SORT_COLUMNS = {name: f"s.{name}" for name in ALL_SUPPLIERS_COLUMNS}

SUPPLIER_FILTER_COLUMNS = ["s.companyname", "s.contactname"]


def _product_list(db_type: DbType) -> tuple[str, str]:
    """(aggregate expression, product source) for the backend."""
    if db_type is DbType.POSTGRES:
        return (
            "string_agg(p.productname, ', ' ORDER BY p.productname) AS productlist",
            "Product AS p",
        )
    return (
        "group_concat(p.productname, ', ') AS productlist",
        "(SELECT supplierid, productname FROM Product ORDER BY productname) AS p",
    )


async def list_suppliers(
    db: Database,
    options: CollectionOptions | Mapping[str, Any] | None = None,
) -> list[dict]:
    """Suppliers with a comma-separated list of the products they supply."""
    opts = CollectionOptions.parse(options)
    aggregate, products = _product_list(db.db_type)
    query = select(
        [f"s.{name}" for name in ALL_SUPPLIERS_COLUMNS] + [aggregate],
        f"Supplier AS s\nLEFT JOIN {products} ON p.supplierid = s.id",
        where=[contains_filter(opts.filter, SUPPLIER_FILTER_COLUMNS) if opts.filter else None],
        group_by=", ".join(f"s.{name}" for name in ALL_SUPPLIERS_COLUMNS),
        order=order_by(opts, SUPPLIER_SORT_COLUMNS, tiebreak="s.id"),
        page=paginate(opts),
    )
    return await db.query_many(query)


async def get_supplier(db: Database, supplier_id: int) -> dict | None:
    return await db.query_one("SELECT * FROM Supplier WHERE id = :id", {"id": supplier_id})
