import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from schedule_table import ScheduleTable


@pytest.fixture
def payment_table():
    table = ScheduleTable()
    table.register("payment", 4)
    return table


def test_header_is_framed_by_borders(payment_table):
    border = "+-----------+\n"
    assert payment_table.border() == border
    assert payment_table.header() == border + "|  PAYMENT  |\n" + border


def test_row_centers_values_with_odd_padding_on_the_left(payment_table):
    assert payment_table.row({"payment": "1000.00"}) == "|  1000.00  |\n"
    assert payment_table.row({"PAYMENT": "100.00"}) == "|   100.00  |\n"


def test_row_skips_missing_columns_and_ignores_unknown_values():
    table = ScheduleTable()
    table.register("period", 4)
    table.register("date", 8)
    table.register("balance")
    assert table.labels == ["PERIOD", "DATE", "BALANCE"]
    assert table.row({"period": 1, "balance": "5.00", "other": "x"}) == "|     1    |   5.00  |\n"


def test_empty_row_renders_nothing(payment_table):
    assert payment_table.row({}) == ""


def test_values_wider_than_column_overflow(payment_table):
    assert payment_table.row({"payment": "1234567890.00"}) == "|1234567890.00|\n"


def test_register_rejects_duplicates_and_negative_spacing(payment_table):
    with pytest.raises(ValueError):
        payment_table.register("Payment")
    with pytest.raises(ValueError):
        payment_table.register("interest", -2)


def test_header_matches_border_width_with_odd_spacing():
    table = ScheduleTable()
    table.register("rate", 3)
    table.register("balance", 4)
    border, header, _ = table.header().splitlines()
    assert border == "+-------+-----------+"
    assert header == "|  RATE |  BALANCE  |"
    assert len(header) == len(border)
