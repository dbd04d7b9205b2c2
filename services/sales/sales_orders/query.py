"""
Sales Orders: query builder

Builds SQL text plus bound parameters for collection reads: projection and
join skeleton, WHERE fragments, ORDER BY and LIMIT/OFFSET. Nothing here
executes a statement.

Caller-supplied values only ever reach the statement as bind parameters.
Column names chosen by the caller (the sort field) are looked up in an
allow-list owned by the read path and rejected when unknown.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from .errors import ValidationError


class CollectionOptions(BaseModel):
    """Pagination, sorting and filtering for a multi-row read."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    sort: str = "id"
    order: Literal["asc", "desc"] = "asc"
    page: PositiveInt = 1
    per_page: PositiveInt = Field(default=20, alias="perPage")
    filter: str | None = None

    @field_validator("order", mode="before")
    @classmethod
    def _lower_order(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @classmethod
    def parse(cls, opts: "CollectionOptions | Mapping[str, Any] | None" = None) -> "CollectionOptions":
        """Apply defaults to caller options; reject malformed ones."""
        if isinstance(opts, cls):
            return opts
        try:
            return cls.model_validate(dict(opts or {}))
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid collection options: {e}") from e

    def with_default_sort(self, sort: str) -> "CollectionOptions":
        """Use `sort` unless the caller chose a sort field explicitly."""
        if "sort" in self.model_fields_set:
            return self
        return self.model_copy(update={"sort": sort})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass(frozen=True)
class Query:
    """SQL text with its bind parameters."""

    text: str
    params: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def join(cls, parts: Iterable["Query | str | None"], sep: str = " ") -> "Query":
        """Concatenate fragments, merging their parameters."""
        texts: list[str] = []
        params: dict[str, Any] = {}
        for part in parts:
            if part is None:
                continue
            if isinstance(part, str):
                part = cls(part)
            if not part.text:
                continue
            for name, value in part.params.items():
                if name in params and params[name] != value:
                    raise ValueError(f"Conflicting values for bind parameter :{name}")
                params[name] = value
            texts.append(part.text)
        return cls(sep.join(texts), params)


def equals(column: str, name: str, value: Any) -> Query:
    """`column = :name` with `value` bound."""
    return Query(f"{column} = :{name}", {name: value})


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_filter(term: str, columns: Iterable[str]) -> Query:
    """Case-insensitive "contains" match of `term` against any of `columns`."""
    columns = list(columns)
    if not columns:
        raise ValueError("contains_filter needs at least one column")
    clauses = " OR ".join(f"lower({c}) LIKE :filter ESCAPE '\\'" for c in columns)
    return Query(f"({clauses})", {"filter": f"%{_escape_like(term.lower())}%"})


def order_by(
    options: CollectionOptions,
    columns: Mapping[str, str],
    tiebreak: str | None = None,
) -> Query:
    """
    ORDER BY clause for `options.sort`.

    `columns` maps the public sort names to qualified columns; it is the
    allow-list. `tiebreak` is appended so rows with equal sort keys keep a
    stable order across pages.
    """
    try:
        column = columns[options.sort.strip().lower()]
    except KeyError:
        raise ValidationError(
            f"Unknown sort field {options.sort!r}; expected one of {sorted(columns)}"
        ) from None
    direction = options.order.upper()
    clause = f"ORDER BY {column} {direction}"
    if tiebreak and tiebreak != column:
        clause += f", {tiebreak} {direction}"
    return Query(clause)


def paginate(options: CollectionOptions) -> Query:
    return Query(
        "LIMIT :limit OFFSET :offset",
        {"limit": options.per_page, "offset": options.offset},
    )


def select(
    columns: Iterable[str],
    source: str,
    where: Iterable[Query | None] = (),
    group_by: str | None = None,
    order: Query | None = None,
    page: Query | None = None,
) -> Query:
    """Assemble a SELECT from its parts. Empty WHERE fragments are skipped."""
    conditions = Query.join(where, sep=" AND ")
    return Query.join(
        [
            f"SELECT {', '.join(columns)}",
            f"FROM {source}",
            Query(f"WHERE {conditions.text}", conditions.params) if conditions.text else None,
            f"GROUP BY {group_by}" if group_by else None,
            order,
            page,
        ],
        sep="\n",
    )
