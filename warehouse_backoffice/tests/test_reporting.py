from decimal import Decimal

import pytest

from warehouse_backoffice.database.repositories import (
    DeliveryOrdersRepo,
    InvalidStatusTransitionError,
    NotFoundError,
    PurchaseHeader,
    PurchaseItem,
    PurchasesRepo,
    ReportingRepo,
    SaleItem,
    SalePaymentsRepo,
    SalesRepo,
)


def test_sale_document(conn, ids, make_header):
    sid = SalesRepo(conn).create_sale(
        make_header(tax_enabled=True), [SaleItem(ids["sp_A"], 2), SaleItem(ids["sp_B"], 1)]
    )
    SalePaymentsRepo(conn).record_payment(sid, amount="1000", method="Cash", payer_name="Budi")

    doc = ReportingRepo(conn).sale_document(sid)
    assert doc["customer_name"] == "Toko Maju"
    assert doc["invoice_no"] == "INV/20240501/0001"
    assert [i["product_name"] for i in doc["items"]] == ["Widget A", "Widget B"]
    assert doc["total"] == Decimal("3000.00")
    assert doc["total_after_tax"] == Decimal("3330.00")
    assert doc["remaining"] == Decimal("2330.00")
    assert [p["amount"] for p in doc["payments"]] == [Decimal("1000.00")]


def test_purchase_document(conn, ids):
    pid = PurchasesRepo(conn).create_purchase(
        PurchaseHeader(supplier_id=ids["supplier_id"], date="2024-05-02"), [PurchaseItem(ids["sp_B"], 3)]
    )
    doc = ReportingRepo(conn).purchase_document(pid)
    assert doc["supplier_name"] == "PT Sumber"
    assert doc["total"] == Decimal("1200.00")
    assert doc["items"][0]["subtotal"] == Decimal("1200.00")


def test_delivery_order_and_bast(conn, ids, make_header):
    sid = SalesRepo(conn).create_sale(make_header(pickup_method="Delivery"), [SaleItem(ids["sp_A"], 2)])
    do_repo = DeliveryOrdersRepo(conn)
    do_id = do_repo.get_by_sale(sid)["do_id"]
    reporting = ReportingRepo(conn)

    doc = reporting.delivery_order_document(do_id)
    assert doc["address"] == "Jl. Merdeka 1"
    assert doc["total_qty"] == 2
    assert "price" not in doc["items"][0]

    with pytest.raises(InvalidStatusTransitionError):
        reporting.bast_document(do_id)

    do_repo.transition(do_id, "Shipped")
    do_repo.transition(do_id, "Received", at="2024-05-03T10:00:00")
    assert reporting.bast_document(do_id)["received_at"] == "2024-05-03T10:00:00"


def test_missing_documents(conn):
    reporting = ReportingRepo(conn)
    with pytest.raises(NotFoundError):
        reporting.sale_document(1)
    with pytest.raises(NotFoundError):
        reporting.purchase_document(1)
    with pytest.raises(NotFoundError):
        reporting.delivery_order_document(1)
