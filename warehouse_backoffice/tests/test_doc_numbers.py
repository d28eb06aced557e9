from datetime import date

import pytest

from warehouse_backoffice.database.repositories import DocNumbersRepo, ValidationError


def test_format_is_prefix_date_and_four_digit_sequence():
    assert DocNumbersRepo.format("INV", date(2024, 5, 1), 7) == "INV/20240501/0007"


def test_sequence_is_per_kind_and_per_day(conn):
    repo = DocNumbersRepo(conn)
    assert repo.next("INV", "2024-05-01") == "INV/20240501/0001"
    assert repo.next("INV", "2024-05-01") == "INV/20240501/0002"
    assert repo.next("NPB", "2024-05-01") == "NPB/20240501/0001"
    assert repo.next("INV", date(2024, 5, 2)) == "INV/20240502/0001"
    assert repo.next("DO", "2024-05-01") == "DO/20240501/0001"


def test_peek_does_not_reserve(conn):
    repo = DocNumbersRepo(conn)
    assert repo.peek("DO", "2024-06-01") == "DO/20240601/0001"
    assert repo.peek("DO", "2024-06-01") == "DO/20240601/0001"
    assert repo.next("DO", "2024-06-01") == "DO/20240601/0001"
    assert repo.peek("DO", "2024-06-01") == "DO/20240601/0002"


def test_numbers_survive_a_new_connection(conn, db_path):
    from warehouse_backoffice.database import get_connection

    DocNumbersRepo(conn).next("INV", "2024-05-01")
    other = get_connection(db_path)
    try:
        assert DocNumbersRepo(other).next("INV", "2024-05-01") == "INV/20240501/0002"
    finally:
        other.close()


def test_unknown_kind_and_bad_date_are_rejected(conn):
    repo = DocNumbersRepo(conn)
    with pytest.raises(ValidationError):
        repo.next("PO", "2024-05-01")
    with pytest.raises(ValidationError):
        repo.next("INV", "01/05/2024")


def test_claim_moves_the_counter_past_a_typed_number(conn):
    repo = DocNumbersRepo(conn)
    assert repo.claim("INV/20240501/0005")
    assert repo.next("INV", "2024-05-01") == "INV/20240501/0006"
    # a lower number never moves the counter back
    assert repo.claim("INV/20240501/0002")
    assert repo.next("INV", "2024-05-01") == "INV/20240501/0007"


@pytest.mark.parametrize("number", [None, "", "INV-X", "PO/20240501/0003", "INV/20241350/0003", "INV/20240501/0000"])
def test_claim_ignores_numbers_of_another_shape(conn, number):
    repo = DocNumbersRepo(conn)
    assert not repo.claim(number)
    assert repo.next("INV", "2024-05-01") == "INV/20240501/0001"


def test_sequence_stops_at_four_digits(conn):
    repo = DocNumbersRepo(conn)
    assert repo.claim("DO/20240501/9999")
    with pytest.raises(ValidationError, match="9999"):
        repo.next("DO", "2024-05-01")
    with pytest.raises(ValidationError):
        repo.peek("DO", "2024-05-01")
    row = conn.execute(
        "SELECT last_value FROM document_sequences WHERE kind='DO' AND seq_date='2024-05-01'"
    ).fetchone()
    assert row["last_value"] == 9999
    assert repo.next("DO", "2024-05-02") == "DO/20240502/0001"


def test_format_rejects_a_five_digit_sequence():
    with pytest.raises(ValidationError):
        DocNumbersRepo.format("INV", date(2024, 5, 1), 10000)


def test_peek_validates_kind_and_date(conn):
    repo = DocNumbersRepo(conn)
    with pytest.raises(ValidationError):
        repo.peek("PO", "2024-05-01")
    with pytest.raises(ValidationError):
        repo.peek("INV", "not a date")
