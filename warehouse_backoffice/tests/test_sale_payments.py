import sqlite3
from decimal import Decimal

import pytest

from warehouse_backoffice.database.repositories import (
    InvalidStatusTransitionError,
    NotFoundError,
    SaleItem,
    SalePaymentsRepo,
    SalesRepo,
    ValidationError,
)


def test_600_then_400_then_overpay(conn, unpaid_sale):
    payments = SalePaymentsRepo(conn)
    sales = SalesRepo(conn)

    payments.record_payment(unpaid_sale, amount="600", method="Cash", payer_name="Budi")
    h = sales.get_header(unpaid_sale)
    assert h["amount_paid"] == Decimal("600.00")
    assert h["status"] == "Unpaid"
    assert payments.outstanding(unpaid_sale) == Decimal("400.00")

    payments.record_payment(unpaid_sale, amount=Decimal("400"), method="Transfer", payer_name="Budi")
    h = sales.get_header(unpaid_sale)
    assert h["amount_paid"] == Decimal("1000.00")
    assert h["status"] == "Paid"
    assert payments.outstanding(unpaid_sale) == Decimal("0.00")

    with pytest.raises(ValidationError, match="overpay"):
        payments.record_payment(unpaid_sale, amount="1", method="Cash", payer_name="Budi")
    assert len(payments.list_by_sale(unpaid_sale)) == 2


def test_amount_paid_matches_the_ledger(conn, unpaid_sale):
    payments = SalePaymentsRepo(conn)
    for amount in ("0.10", "0.20", "333.33", "100"):
        payments.record_payment(unpaid_sale, amount=amount, method="Cash", payer_name="Budi")
    total = sum(p["amount"] for p in payments.list_by_sale(unpaid_sale))
    assert total == Decimal("433.63")
    assert SalesRepo(conn).get_header(unpaid_sale)["amount_paid"] == total


def test_exact_remaining_after_percentage_math_is_accepted(conn, ids, make_header):
    sid = SalesRepo(conn).create_sale(
        make_header(discount_pct="7.5", tax_enabled=True), [SaleItem(ids["sp_A"], 3)]
    )
    payments = SalePaymentsRepo(conn)
    remaining = payments.outstanding(sid)
    assert remaining == Decimal("3080.25")
    payments.record_payment(sid, amount=remaining, method="Cash", payer_name="Budi")
    assert SalesRepo(conn).get_header(sid)["status"] == "Paid"


@pytest.mark.parametrize("amount", ["0", "-5", "abc", None])
def test_non_positive_or_malformed_amount_is_rejected(conn, unpaid_sale, amount):
    payments = SalePaymentsRepo(conn)
    with pytest.raises(ValidationError):
        payments.record_payment(unpaid_sale, amount=amount, method="Cash", payer_name="Budi")
    assert payments.list_by_sale(unpaid_sale) == []


@pytest.mark.parametrize("amount", ["600.004", "0.001", Decimal("399.995"), 10.125])
def test_amount_finer_than_a_cent_is_rejected_not_rounded(conn, unpaid_sale, amount):
    payments = SalePaymentsRepo(conn)
    with pytest.raises(ValidationError, match="decimal places"):
        payments.record_payment(unpaid_sale, amount=amount, method="Cash", payer_name="Budi")
    assert payments.list_by_sale(unpaid_sale) == []
    assert SalesRepo(conn).get_header(unpaid_sale)["amount_paid"] == Decimal("0.00")


def test_amount_with_trailing_zeros_is_accepted(conn, unpaid_sale):
    payments = SalePaymentsRepo(conn)
    payments.record_payment(unpaid_sale, amount="600.000", method="Cash", payer_name="Budi")
    assert [p["amount"] for p in payments.list_by_sale(unpaid_sale)] == [Decimal("600.00")]


def test_method_and_payer_are_required(conn, unpaid_sale):
    payments = SalePaymentsRepo(conn)
    with pytest.raises(ValidationError):
        payments.record_payment(unpaid_sale, amount="10", method="Card", payer_name="Budi")
    with pytest.raises(ValidationError):
        payments.record_payment(unpaid_sale, amount="10", method="Cash", payer_name="  ")


def test_cancelled_sale_takes_no_payment(conn, unpaid_sale):
    SalesRepo(conn).cancel_sale(unpaid_sale)
    with pytest.raises(InvalidStatusTransitionError):
        SalePaymentsRepo(conn).record_payment(unpaid_sale, amount="10", method="Cash", payer_name="Budi")


def test_unknown_sale(conn):
    payments = SalePaymentsRepo(conn)
    with pytest.raises(NotFoundError):
        payments.record_payment(404, amount="10", method="Cash", payer_name="Budi")
    with pytest.raises(NotFoundError):
        payments.outstanding(404)


def test_payments_are_append_only(conn, unpaid_sale):
    SalePaymentsRepo(conn).record_payment(unpaid_sale, amount="10", method="Cash", payer_name="Budi")
    with pytest.raises(sqlite3.IntegrityError, match="append-only"):
        conn.execute("UPDATE sale_payments SET amount='1.00'")
    conn.rollback()


def test_receivables_list(conn, ids, make_header):
    sales = SalesRepo(conn)
    late = sales.create_sale(make_header(due_date="2024-05-10"), [SaleItem(ids["sp_A"], 1)])
    later = sales.create_sale(make_header(due_date="2024-07-01"), [SaleItem(ids["sp_B"], 2)])
    sales.create_sale(make_header(status="Paid", due_date=None), [SaleItem(ids["sp_B"], 1)])
    SalePaymentsRepo(conn).record_payment(later, amount="500", method="Cash", payer_name="Budi")

    rows = SalePaymentsRepo(conn).list_receivables(as_of="2024-06-01")
    assert [r["sale_id"] for r in rows] == [late, later]
    assert rows[0]["overdue"] is True
    assert rows[1]["overdue"] is False
    assert rows[1]["remaining"] == Decimal("1500.00")
    assert rows[0]["customer_name"] == "Toko Maju"
