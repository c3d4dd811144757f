"""
Tests for shared helpers.
"""
import re
from datetime import datetime, timezone

import pytest

from dental_lab.utils.helpers import (
    calculate_pages, clamp_pagination, generate_case_number, generate_invoice_number,
    round_half_up, to_base36
)


@pytest.mark.parametrize("page, limit, expected", [
    (None, None, (1, 20)),
    (0, 0, (1, 1)),
    (-3, 500, (1, 100)),
    (4, 25, (4, 25)),
])
def test_clamp_pagination(page, limit, expected):
    assert clamp_pagination(page, limit) == expected


def test_calculate_pages():
    assert calculate_pages(0, 20) == 0
    assert calculate_pages(41, 20) == 3


@pytest.mark.parametrize("value, expected", [(12.5, 13), (33.333, 33), (66.666, 67), (0.5, 1), (2.5, 3)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"


def test_reference_numbers():
    now = datetime(2024, 3, 9, 12, 0, tzinfo=timezone.utc)

    case_number = generate_case_number(now)
    invoice_number = generate_invoice_number(now)

    assert case_number.startswith(f"CASE-{to_base36(int(now.timestamp() * 1000))}-")
    assert re.match(r"^INV-202403-[0-9A-F]{8}$", invoice_number)
