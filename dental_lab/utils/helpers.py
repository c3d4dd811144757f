"""
Small shared helpers: clock, reference numbers, pagination.
"""
import math
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_BASE36 = string.digits + string.ascii_uppercase


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_case_number(now: Optional[datetime] = None) -> str:
    """Human-readable case number: ``CASE-<base36 ms timestamp>-<8 hex>``.

    Uniqueness is probabilistic; collisions are not checked against storage.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"CASE-{to_base36(millis)}-{secrets.token_hex(4).upper()}"


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """Invoice number: ``INV-<YYYYMM>-<8 hex>``."""
    now = now or utcnow()
    return f"INV-{now.year}{now.month:02d}-{secrets.token_hex(4).upper()}"


def clamp_pagination(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Floor ``page`` to 1 and clamp ``limit`` into [1, MAX_PAGE_SIZE]."""
    page = 1 if page is None else max(1, page)
    limit = DEFAULT_PAGE_SIZE if limit is None else max(1, min(MAX_PAGE_SIZE, limit))
    return page, limit


def calculate_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def round_half_up(value: float) -> int:
    # round() uses banker's rounding; progress percentages round 0.5 up
    return int(math.floor(value + 0.5))
