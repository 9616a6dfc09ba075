"""Year-scoped order numbers of the form ``ORD-<year>-<5 digits>``.

The next number is read from the highest existing one, so it is only safe
together with the unique constraint on ``order.order_number`` and the
retry loop in ``OrderService.place_order``.
"""

from typing import Optional

from ..errors import OrderSequenceExhausted
from ..models.order import Order


PREFIX = "ORD"
SEQUENCE_WIDTH = 5
MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1


def year_prefix(year: int) -> str:
    return f"{PREFIX}-{year}-"


def format_order_number(year: int, sequence: int) -> str:
    if sequence < 1 or sequence > MAX_SEQUENCE:
        raise OrderSequenceExhausted(year)
    return f"{year_prefix(year)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(order_number: str) -> int:
    return int(order_number.rsplit("-", 1)[-1])


class OrderNumberGenerator:
    """Read-latest-and-increment sequence backed by the order table."""

    def latest(self, session, year: int) -> Optional[str]:
        row = (
            session.query(Order.order_number)
            .filter(Order.order_number.like(f"{year_prefix(year)}%"))
            .order_by(Order.order_number.desc())
            .first()
        )
        return row[0] if row else None

    def next_number(self, session, year: int) -> str:
        latest = self.latest(session, year)
        sequence = parse_sequence(latest) + 1 if latest else 1
        return format_order_number(year, sequence)
