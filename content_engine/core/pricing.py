"""
Pricing calculations and model resolution.

Converts token counts into dollar costs using a static, model-keyed table.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Mapping

from .token_counter import TokenUsage

ONE_MILLION = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    input_per_million: Decimal  # Cost per 1M input tokens
    output_per_million: Decimal  # Cost per 1M output tokens


@dataclass(frozen=True)
class PricingTable:
    """Pricing table with a designated fallback row."""
    prices: Dict[str, ModelPricing]
    default_model: str

    def __post_init__(self):
        if self.default_model not in self.prices:
            raise ValueError(f"Default model {self.default_model!r} has no pricing row")

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Unknown models are billed at the default row rather than rejected,
        so a new model id never breaks cost recording.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model, or the default row
        """
        return self.prices.get(model, self.prices[self.default_model])

    def is_known(self, model: str) -> bool:
        return model in self.prices


# Tier aliases used throughout the pipeline configuration
MODEL_ALIASES: Mapping[str, str] = {
    "haiku": "claude-3-5-haiku-20241022",
    "sonnet": "claude-3-5-sonnet-20241022",
    "opus": "claude-3-opus-20240229",
}

PRICING_TABLE = PricingTable(
    prices={
        "claude-3-5-haiku-20241022": ModelPricing(
            input_per_million=Decimal("1.00"),
            output_per_million=Decimal("5.00"),
        ),
        "claude-3-5-sonnet-20241022": ModelPricing(
            input_per_million=Decimal("3.00"),
            output_per_million=Decimal("15.00"),
        ),
        "claude-3-opus-20240229": ModelPricing(
            input_per_million=Decimal("15.00"),
            output_per_million=Decimal("75.00"),
        ),
        "gpt-4o-mini": ModelPricing(
            input_per_million=Decimal("0.15"),
            output_per_million=Decimal("0.60"),
        ),
        "gpt-4o": ModelPricing(
            input_per_million=Decimal("2.50"),
            output_per_million=Decimal("10.00"),
        ),
    },
    default_model="claude-3-5-haiku-20241022",
)


def resolve_model(name: str) -> str:
    """Map a tier alias (``haiku``, ``sonnet``, ``opus``) to a model id.

    Anything that is not an alias is returned unchanged.
    """
    return MODEL_ALIASES.get(name, name)


def calculate_cost(
    model: str,
    usage: TokenUsage,
    table: PricingTable = PRICING_TABLE,
) -> Decimal:
    """Calculate the exact cost of one call.

    Args:
        model: Model identifier or tier alias
        usage: Token usage data
        table: Pricing table to bill against

    Returns:
        Unrounded cost in USD
    """
    pricing = table.get_pricing(resolve_model(model))

    input_cost = Decimal(usage.input_tokens) * pricing.input_per_million
    output_cost = Decimal(usage.output_tokens) * pricing.output_per_million

    return (input_cost + output_cost) / ONE_MILLION
