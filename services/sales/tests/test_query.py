import pytest

from sales_orders.errors import ValidationError
from sales_orders.query import (
    CollectionOptions,
    Query,
    contains_filter,
    equals,
    order_by,
    paginate,
    select,
)

COLUMNS = {"id": "co.id", "shipcity": "co.shipcity"}


def test_defaults():
    opts = CollectionOptions.parse()
    assert (opts.sort, opts.order, opts.page, opts.per_page) == ("id", "asc", 1, 20)
    assert opts.filter is None
    assert opts.offset == 0


def test_parse_accepts_camel_and_snake_case_page_size():
    assert CollectionOptions.parse({"perPage": 5}).per_page == 5
    assert CollectionOptions.parse({"per_page": 7}).per_page == 7


def test_parse_returns_existing_instance():
    opts = CollectionOptions(page=2)
    assert CollectionOptions.parse(opts) is opts


def test_offset_is_one_indexed():
    assert CollectionOptions.parse({"page": 3, "perPage": 10}).offset == 20


def test_order_is_case_insensitive():
    assert CollectionOptions.parse({"order": "DESC"}).order == "desc"


@pytest.mark.parametrize(
    "opts",
    [
        {"page": 0},
        {"page": -1},
        {"perPage": 0},
        {"order": "sideways"},
        {"limit": 10},
        {"sort": None},
    ],
)
def test_malformed_options_are_rejected(opts):
    with pytest.raises(ValidationError):
        CollectionOptions.parse(opts)


def test_with_default_sort_only_applies_when_sort_not_given():
    assert CollectionOptions.parse({}).with_default_sort("shippeddate").sort == "shippeddate"
    assert CollectionOptions.parse({"sort": "id"}).with_default_sort("shippeddate").sort == "id"


def test_order_by_uses_allow_list():
    opts = CollectionOptions.parse({"sort": "shipcity", "order": "desc"})
    assert order_by(opts, COLUMNS).text == "ORDER BY co.shipcity DESC"
    assert order_by(opts, COLUMNS, tiebreak="co.id").text == "ORDER BY co.shipcity DESC, co.id DESC"


def test_order_by_skips_tiebreak_equal_to_sort_column():
    opts = CollectionOptions.parse({"sort": "id"})
    assert order_by(opts, COLUMNS, tiebreak="co.id").text == "ORDER BY co.id ASC"


@pytest.mark.parametrize("sort", ["customername", "id; DROP TABLE Customer", "co.id"])
def test_order_by_rejects_unknown_columns(sort):
    with pytest.raises(ValidationError):
        order_by(CollectionOptions.parse({"sort": sort}), COLUMNS)


def test_paginate_binds_limit_and_offset():
    q = paginate(CollectionOptions.parse({"page": 4, "perPage": 15}))
    assert q.text == "LIMIT :limit OFFSET :offset"
    assert q.params == {"limit": 15, "offset": 45}


def test_contains_filter_binds_the_term():
    q = contains_filter("Ana", ["c.contactname", "c.companyname"])
    assert q.text == (
        "(lower(c.contactname) LIKE :filter ESCAPE '\\' "
        "OR lower(c.companyname) LIKE :filter ESCAPE '\\')"
    )
    assert q.params == {"filter": "%ana%"}


def test_contains_filter_escapes_wildcards_and_keeps_quotes():
    q = contains_filter("50%_o'b\\", ["c.companyname"])
    assert q.params["filter"] == "%50\\%\\_o'b\\\\%"
    assert "'b" not in q.text


def test_select_assembles_parts_in_order():
    opts = CollectionOptions.parse({"page": 2, "perPage": 5, "sort": "shipcity"})
    q = select(
        ["co.id", "co.shipcity"],
        "CustomerOrder AS co",
        where=[equals("co.customerid", "customer_id", "ALFKI"), None],
        group_by="co.id",
        order=order_by(opts, COLUMNS),
        page=paginate(opts),
    )
    assert q.text.splitlines() == [
        "SELECT co.id, co.shipcity",
        "FROM CustomerOrder AS co",
        "WHERE co.customerid = :customer_id",
        "GROUP BY co.id",
        "ORDER BY co.shipcity ASC",
        "LIMIT :limit OFFSET :offset",
    ]
    assert q.params == {"customer_id": "ALFKI", "limit": 5, "offset": 5}


def test_select_without_conditions_has_no_where():
    q = select(["1"], "Customer")
    assert "WHERE" not in q.text


def test_join_rejects_conflicting_parameters():
    with pytest.raises(ValueError):
        Query.join([Query(":a", {"a": 1}), Query(":a", {"a": 2})])
