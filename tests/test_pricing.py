"""
Unit tests for pricing calculations.

Tests cost accuracy, alias resolution and the default pricing row.
"""

import pytest
from decimal import Decimal

from content_engine.core.pricing import (
    MODEL_ALIASES,
    PRICING_TABLE,
    ModelPricing,
    PricingTable,
    calculate_cost,
    resolve_model,
)
from content_engine.core.token_counter import TokenUsage


class TestTokenUsage:
    """Test TokenUsage dataclass."""

    def test_total_tokens_calculation(self):
        """Verify total_tokens is computed correctly."""
        usage = TokenUsage(input_tokens=100, output_tokens=50)
        assert usage.total_tokens == 150

    def test_zero_tokens(self):
        """Verify zero token handling."""
        usage = TokenUsage(input_tokens=0, output_tokens=0)
        assert usage.total_tokens == 0

    def test_negative_tokens_rejected(self):
        """Negative counts are invalid."""
        with pytest.raises(ValueError):
            TokenUsage(input_tokens=-1, output_tokens=0)


class TestPricingTable:
    """Test pricing table functionality."""

    def test_get_supported_model(self):
        """Verify pricing retrieval for a known model."""
        pricing = PRICING_TABLE.get_pricing("claude-3-5-sonnet-20241022")
        assert pricing.input_per_million == Decimal("3.00")
        assert pricing.output_per_million == Decimal("15.00")

    def test_unknown_model_uses_default_row(self):
        """Unknown models are billed at the default row, not rejected."""
        pricing = PRICING_TABLE.get_pricing("some-future-model")
        assert pricing == PRICING_TABLE.get_pricing(PRICING_TABLE.default_model)
        assert not PRICING_TABLE.is_known("some-future-model")

    def test_default_row_must_exist(self):
        """A table without its default row is rejected."""
        with pytest.raises(ValueError, match="no pricing row"):
            PricingTable(
                prices={"a": ModelPricing(Decimal("1"), Decimal("1"))},
                default_model="b",
            )


class TestModelAliases:
    """Test tier alias resolution."""

    def test_aliases_resolve(self):
        """Tier names map to full model ids."""
        assert resolve_model("haiku") == MODEL_ALIASES["haiku"]
        assert resolve_model("sonnet") == "claude-3-5-sonnet-20241022"

    def test_non_alias_passes_through(self):
        """Full model ids are returned unchanged."""
        assert resolve_model("gpt-4o") == "gpt-4o"

    def test_every_alias_is_priced(self):
        """No alias falls back to the default row by accident."""
        for model_id in MODEL_ALIASES.values():
            assert PRICING_TABLE.is_known(model_id)


class TestCostCalculation:
    """Test cost calculation accuracy."""

    def test_one_million_each_on_haiku(self):
        """$1 input + $5 output per million tokens."""
        usage = TokenUsage(input_tokens=1_000_000, output_tokens=1_000_000)
        assert calculate_cost("haiku", usage) == Decimal("6")

    def test_small_call_is_not_rounded(self):
        """Costs keep full precision instead of rounding to cents."""
        usage = TokenUsage(input_tokens=100, output_tokens=200)
        # 100 * 1 / 1M + 200 * 5 / 1M
        assert calculate_cost("haiku", usage) == Decimal("0.0011")

    def test_opus_cost(self):
        """Verify exact cost calculation for the opus tier."""
        usage = TokenUsage(input_tokens=2000, output_tokens=1000)
        # 2000 * 15 / 1M + 1000 * 75 / 1M = 0.03 + 0.075
        assert calculate_cost("opus", usage) == Decimal("0.105")

    def test_zero_tokens_cost_zero(self):
        """Verify zero tokens result in zero cost."""
        assert calculate_cost("sonnet", TokenUsage(0, 0)) == Decimal("0")

    def test_custom_table(self):
        """A caller-supplied table is honoured."""
        table = PricingTable(
            prices={"m": ModelPricing(Decimal("2"), Decimal("4"))},
            default_model="m",
        )
        usage = TokenUsage(input_tokens=500_000, output_tokens=250_000)
        assert calculate_cost("m", usage, table) == Decimal("2")
