import threading

from warehouse_backoffice.database import get_connection
from warehouse_backoffice.database.repositories import (
    DocNumbersRepo,
    InsufficientStockError,
    SaleHeader,
    SaleItem,
    SalePaymentsRepo,
    SalesRepo,
    StockRepo,
)


def _run_concurrently(db_path, worker, n=2):
    """Run worker(conn) in n threads, each with its own connection, released together."""
    barrier = threading.Barrier(n)
    results, errors = [], []
    lock = threading.Lock()

    def target():
        conn = get_connection(db_path)
        try:
            barrier.wait()
            out = worker(conn)
            with lock:
                results.append(out)
        except Exception as e:  # collected for the assertions below
            with lock:
                errors.append(e)
        finally:
            conn.close()

    threads = [threading.Thread(target=target) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results, errors


def test_two_sales_of_three_against_stock_of_five(conn, db_path, ids):
    def sell(c):
        header = SaleHeader(customer_id=ids["customer_id"], date="2024-05-01", status="Unpaid",
                            due_date="2024-05-31")
        return SalesRepo(c).create_sale(header, [SaleItem(ids["sp_A"], 3)])

    results, errors = _run_concurrently(db_path, sell)

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InsufficientStockError)
    assert errors[0].available == 2
    assert StockRepo(conn).get_quantity(ids["sp_A"]) == 2
    assert len(SalesRepo(conn).list_sales()) == 1


def test_concurrent_document_numbers_are_unique(conn, db_path):
    results, errors = _run_concurrently(
        db_path, lambda c: [DocNumbersRepo(c).next("INV", "2024-05-01") for _ in range(10)], n=4
    )
    assert errors == []
    issued = [num for batch in results for num in batch]
    assert len(issued) == 40
    assert len(set(issued)) == 40


def test_concurrent_payments_never_overpay(conn, db_path, unpaid_sale):
    def pay(c):
        return SalePaymentsRepo(c).record_payment(unpaid_sale, amount="600", method="Cash", payer_name="Budi")

    results, errors = _run_concurrently(db_path, pay)

    assert len(results) == 1
    assert len(errors) == 1
    assert "overpay" in str(errors[0])
    assert SalesRepo(conn).get_header(unpaid_sale)["amount_paid"] == 600
