import sqlite3

import pytest

from warehouse_backoffice.database.repositories import (
    DeliveryOrdersRepo,
    InvalidStatusTransitionError,
    NotFoundError,
    SalesRepo,
    StockRepo,
    ValidationError,
)


@pytest.fixture()
def draft_do(conn, unpaid_sale) -> int:
    return DeliveryOrdersRepo(conn).create_for_sale(unpaid_sale, address="Jl. Kenanga 3")


def test_create_for_sale_numbers_the_order(conn, unpaid_sale, draft_do):
    row = DeliveryOrdersRepo(conn).get(draft_do)
    assert row["sale_id"] == unpaid_sale
    assert row["status"] == "Draft"
    assert row["do_no"] == "DO/20240501/0001"


def test_one_delivery_order_per_sale(conn, unpaid_sale, draft_do):
    with pytest.raises(ValidationError):
        DeliveryOrdersRepo(conn).create_for_sale(unpaid_sale)


def test_no_delivery_order_for_cancelled_sale(conn, unpaid_sale):
    SalesRepo(conn).cancel_sale(unpaid_sale)
    with pytest.raises(InvalidStatusTransitionError):
        DeliveryOrdersRepo(conn).create_for_sale(unpaid_sale)
    with pytest.raises(NotFoundError):
        DeliveryOrdersRepo(conn).create_for_sale(404)


def test_happy_path_stamps_times(conn, draft_do):
    repo = DeliveryOrdersRepo(conn)
    row = repo.transition(draft_do, "Shipped", at="2024-05-02T08:00:00")
    assert row["status"] == "Shipped"
    assert row["shipped_at"] == "2024-05-02T08:00:00"
    assert row["received_at"] is None

    row = repo.transition(draft_do, "Received", at="2024-05-03T10:30:00")
    assert row["status"] == "Received"
    assert row["shipped_at"] == "2024-05-02T08:00:00"
    assert row["received_at"] == "2024-05-03T10:30:00"


def test_same_state_is_a_noop(conn, draft_do):
    repo = DeliveryOrdersRepo(conn)
    repo.transition(draft_do, "Shipped", at="2024-05-02T08:00:00")
    row = repo.transition(draft_do, "Shipped", at="2024-05-09T08:00:00")
    assert row["shipped_at"] == "2024-05-02T08:00:00"


@pytest.mark.parametrize(
    "path, rejected",
    [
        ([], "Received"),
        (["Shipped", "Received"], "Shipped"),
        (["Shipped", "Received"], "Cancelled"),
        (["Cancelled"], "Shipped"),
        (["Cancelled"], "Draft"),
        (["Shipped"], "Draft"),
    ],
)
def test_invalid_transitions(conn, draft_do, path, rejected):
    repo = DeliveryOrdersRepo(conn)
    for status in path:
        repo.transition(draft_do, status)
    with pytest.raises(InvalidStatusTransitionError):
        repo.transition(draft_do, rejected)
    assert repo.get(draft_do)["status"] == (path[-1] if path else "Draft")


def test_cancel_from_shipped(conn, draft_do):
    repo = DeliveryOrdersRepo(conn)
    repo.transition(draft_do, "Shipped")
    assert repo.transition(draft_do, "Cancelled")["status"] == "Cancelled"


def test_transitions_never_touch_stock_or_sale(conn, ids, unpaid_sale, draft_do):
    repo = DeliveryOrdersRepo(conn)
    before = SalesRepo(conn).get_header(unpaid_sale)
    repo.transition(draft_do, "Shipped")
    repo.transition(draft_do, "Received")
    assert StockRepo(conn).get_quantity(ids["sp_A"]) == 4
    assert SalesRepo(conn).get_header(unpaid_sale) == before


def test_unknown_status_and_order(conn, draft_do):
    repo = DeliveryOrdersRepo(conn)
    with pytest.raises(ValidationError):
        repo.transition(draft_do, "Lost")
    with pytest.raises(NotFoundError):
        repo.transition(404, "Shipped")


def test_schema_guards_transitions_too(conn, draft_do):
    with pytest.raises(sqlite3.IntegrityError, match="Invalid delivery order status transition"):
        conn.execute("UPDATE delivery_orders SET status='Received' WHERE do_id=?", (draft_do,))
    conn.rollback()


def test_list_orders(conn, draft_do):
    repo = DeliveryOrdersRepo(conn)
    assert [o["do_id"] for o in repo.list_orders("Draft")] == [draft_do]
    assert repo.list_orders("Shipped") == []
    assert repo.list_orders()[0]["customer_name"] == "Toko Maju"
