"""
Tests for budget guardrail enforcement.
"""
import pytest
from decimal import Decimal

from content_engine.core.guardrails import (
    BudgetExceeded,
    enforce_daily_budget,
    to_amount,
    within_content_budget,
)


class TestDailyBudget:
    """Test the daily budget check."""

    def test_under_limit_passes(self):
        """Spend below the limit is allowed."""
        enforce_daily_budget(Decimal("4.99"), Decimal("5.00"))

    def test_at_limit_raises(self):
        """Reaching the limit exactly is already over budget."""
        with pytest.raises(BudgetExceeded) as excinfo:
            enforce_daily_budget(Decimal("5.00"), Decimal("5.00"))

        assert excinfo.value.current_cost == Decimal("5.00")
        assert excinfo.value.limit == Decimal("5.00")
        assert "Daily cost limit reached: $5.00 / $5.00" in str(excinfo.value)

    def test_over_limit_raises(self):
        """Spend above the limit is rejected."""
        with pytest.raises(BudgetExceeded):
            enforce_daily_budget(Decimal("7.25"), Decimal("5.00"))


class TestContentBudget:
    """Test the per-content ceiling."""

    def test_within_budget(self):
        assert within_content_budget(Decimal("0.10"), Decimal("0.50"))

    def test_ceiling_reached(self):
        assert not within_content_budget(Decimal("0.50"), Decimal("0.50"))


class TestAmounts:
    """Test dollar amount coercion."""

    def test_float_has_no_binary_artefacts(self):
        """0.1 stays 0.1 rather than 0.1000000000000000055..."""
        assert to_amount(0.1) == Decimal("0.1")

    def test_decimal_passes_through(self):
        value = Decimal("1.23")
        assert to_amount(value) is value

    def test_string_and_int(self):
        assert to_amount("2.50") == Decimal("2.50")
        assert to_amount(3) == Decimal("3")
