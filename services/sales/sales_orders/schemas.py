"""
Sales Orders: input models

Structured caller input for order writes. The field names double as the
allow-list of columns an INSERT or UPDATE may name.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class OrderFields(BaseModel):
    """CustomerOrder header columns a caller may write."""

    model_config = ConfigDict(extra="forbid")

    customerid: str | None = None
    employeeid: int | None = None
    orderdate: date | None = None
    requireddate: date | None = None
    shippeddate: date | None = None
    shipvia: int | None = None
    freight: float | None = Field(default=None, ge=0)
    shipname: str | None = None
    shipaddress: str | None = None
    shipcity: str | None = None
    shipregion: str | None = None
    shippostalcode: str | None = None
    shipcountry: str | None = None

    def supplied(self) -> dict[str, Any]:
        """
        Columns the caller actually supplied.

        Unset, None and empty-string fields are left out; 0 and False are kept.
        """
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None and value != ""
        }


class OrderDetailFields(BaseModel):
    """One OrderDetail line. `id` is only meaningful when updating."""

    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    productid: int
    unitprice: float = Field(ge=0)
    quantity: int = Field(gt=0)
    discount: float = Field(default=0, ge=0, lt=1)


def _validate(model: type[M], data: M | Mapping[str, Any]) -> M:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e}") from e


def parse_order(data: OrderFields | Mapping[str, Any]) -> OrderFields:
    return _validate(OrderFields, data)


def parse_details(
    items: Iterable[OrderDetailFields | Mapping[str, Any]],
) -> list[OrderDetailFields]:
    return [_validate(OrderDetailFields, item) for item in items]


def parse_order_id(value: int | str) -> int:
    """CustomerOrder ids arrive as path strings or ints; the store wants an int."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid order id: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid order id: {value!r}") from None
