import pytest
import pytest_asyncio

from sales_orders.config import Settings
from sales_orders.db import Database
from sales_orders.init_db import create_tables

CUSTOMERS = [
    ("ALFKI", "Maria Anders", "Alfreds Futterkiste"),
    ("ANATR", "Ana Trujillo", "Ana Trujillo Emparedados y helados"),
    ("BOLID", "Martín Sommer", "Bólido Comidas preparadas"),
    ("C1", "Carla Uno", "Corner Shop"),
    ("OBRIE", "Paul O'Brien", "O'Brien & Sons"),
]

EMPLOYEES = [
    (1, "Nancy", "Davolio"),
    (2, "Andrew", "Fuller"),
    (3, "Janet", "Leverling"),
]

SUPPLIERS = [
    (1, "Charlotte Cooper", "Exotic Liquids"),
    (2, "Shelley Burke", "New Orleans Cajun Delights"),
    (3, "Nobody Home", "Empty Supplies"),
]

# id, name, supplier, price, in stock, on order, reorder level, discontinued
PRODUCTS = [
    (1, "Chai", 1, 18.0, 39, 0, 10, 0),
    (2, "Chang", 1, 19.0, 17, 40, 25, 0),
    (3, "Aniseed Syrup", 1, 10.0, 13, 70, 25, 0),
    (5, "Gumbo Mix", 2, 21.35, 0, 0, 10, 1),
    (11, "Queso Cabrales", 2, 21.0, 22, 30, 30, 0),
    (12, "Queso Manchego", 2, 38.0, 86, 0, 0, 0),
    (13, "Konbu", 2, 6.0, 5, 0, 10, 0),
]

SHIP_CITIES = ["Berlin", "London", "Madrid", "México D.F."]
ORDER_CUSTOMERS = ["ALFKI", "ANATR", "BOLID"]
ORDER_COUNT = 25


def seed_orders() -> list[dict]:
    return [
        {
            "id": i,
            "customerid": ORDER_CUSTOMERS[i % 3],
            "employeeid": i % 3 + 1,
            "orderdate": f"2024-01-{i:02d}",
            "shippeddate": None if i % 4 == 0 else f"2024-02-{i:02d}",
            "freight": float(i),
            "shipcity": SHIP_CITIES[i % 4],
            "shipcountry": "Germany",
        }
        for i in range(1, ORDER_COUNT + 1)
    ]


def seed_details() -> list[dict]:
    """Every fifth order has no lines; order 3 has a tenth line."""
    rows = []
    for i in range(1, ORDER_COUNT + 1):
        if i % 5 == 0:
            continue
        rows.append({"id": f"{i}/1", "orderid": i, "productid": 1,
                     "unitprice": 18.0, "quantity": i, "discount": 0.0})
        rows.append({"id": f"{i}/2", "orderid": i, "productid": 11,
                     "unitprice": 21.0, "quantity": 2, "discount": 0.25})
    rows.append({"id": "3/10", "orderid": 3, "productid": 12,
                 "unitprice": 38.0, "quantity": 1, "discount": 0.0})
    return rows


def expected_subtotal(order_id: int) -> float:
    return sum(
        d["unitprice"] * d["quantity"] * (1 - d["discount"])
        for d in seed_details()
        if d["orderid"] == order_id
    )


async def seed(db: Database) -> None:
    async with db.transaction() as tx:
        await tx.execute_many(
            "INSERT INTO Customer (id, contactname, companyname) VALUES (:id, :contact, :company)",
            [{"id": c[0], "contact": c[1], "company": c[2]} for c in CUSTOMERS],
        )
        await tx.execute_many(
            "INSERT INTO Employee (id, firstname, lastname) VALUES (:id, :first, :last)",
            [{"id": e[0], "first": e[1], "last": e[2]} for e in EMPLOYEES],
        )
        await tx.execute_many(
            "INSERT INTO Supplier (id, contactname, companyname) VALUES (:id, :contact, :company)",
            [{"id": s[0], "contact": s[1], "company": s[2]} for s in SUPPLIERS],
        )
        await tx.execute_many(
            """
            INSERT INTO Product (id, productname, supplierid, unitprice,
                                 unitsinstock, unitsonorder, reorderlevel, discontinued)
            VALUES (:id, :name, :supplier, :price, :stock, :onorder, :reorder, :discontinued)
            """,
            [
                dict(zip(("id", "name", "supplier", "price", "stock",
                          "onorder", "reorder", "discontinued"), p))
                for p in PRODUCTS
            ],
        )
        await tx.execute_many(
            """
            INSERT INTO CustomerOrder (id, customerid, employeeid, orderdate, shippeddate,
                                       freight, shipcity, shipcountry)
            VALUES (:id, :customerid, :employeeid, :orderdate, :shippeddate,
                    :freight, :shipcity, :shipcountry)
            """,
            seed_orders(),
        )
        await tx.execute_many(
            """
            INSERT INTO OrderDetail (id, orderid, productid, unitprice, quantity, discount)
            VALUES (:id, :orderid, :productid, :unitprice, :quantity, :discount)
            """,
            seed_details(),
        )


async def count_rows(db: Database, table: str, where: str = "", params=None) -> int:
    row = await db.query_one(f"SELECT COUNT(*) AS n FROM {table} {where}", params)
    return row["n"]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(sqlite_path=str(tmp_path / "sales.sqlite"), transaction_timeout=5)


@pytest_asyncio.fixture
async def db(settings):
    async with Database(settings) as database:
        await create_tables(database)
        await seed(database)
        yield database
