"""
Cost guardrails and limits enforcement.

Enforcement Order:
1. Daily budget - checked before any upstream call is admitted
2. Per-content ceiling - checked by the pipeline before each rewrite
"""

import logging
from decimal import Decimal
from typing import Union

logger = logging.getLogger(__name__)

Amount = Union[Decimal, float, int, str]


class BudgetExceeded(Exception):
    """Raised when the daily cost ceiling has been reached.

    Not retryable within the same UTC day; callers should distinguish this
    from upstream failures, which may be worth retrying.
    """

    def __init__(self, current_cost: Decimal, limit: Decimal):
        super().__init__(
            f"Daily cost limit reached: ${current_cost:.2f} / ${limit:.2f}"
        )
        self.current_cost = current_cost
        self.limit = limit


def to_amount(value: Amount) -> Decimal:
    """Coerce a dollar amount to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def enforce_daily_budget(current_cost: Decimal, limit: Decimal) -> None:
    """Reject further calls once today's spend has reached the limit.

    Raises:
        BudgetExceeded: If ``current_cost >= limit``
    """
    if current_cost >= limit:
        logger.warning(
            "Daily budget exhausted: $%.4f spent of $%.2f", current_cost, limit
        )
        raise BudgetExceeded(current_cost, limit)


def within_content_budget(spent: Decimal, max_cost_per_content: Decimal) -> bool:
    """Whether one content piece may spend more on further calls."""
    return spent < max_cost_per_content
