"""
Budgeted, rate-limited generation client.

The single point of contact with the upstream text-generation service.
Every call is checked against the daily budget, admitted through the rate
limiter and recorded in the cost tracker.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from ..core.cost_tracker import CostObserver, CostTracker
from ..core.guardrails import Amount, enforce_daily_budget, to_amount
from ..core.models import CostRecord, DailyCostSummary, Operation, RateBudget
from ..core.pricing import PRICING_TABLE, PricingTable, calculate_cost, resolve_model
from ..core.rate_limiter import RateLimiter
from ..core.token_counter import TokenUsage
from .backends import Message, UpstreamBackend

logger = logging.getLogger(__name__)

DEFAULT_DAILY_COST_LIMIT = Decimal("50.00")
DEFAULT_RATE_BUDGET = RateBudget(requests_per_minute=50, max_concurrent=5)
DEFAULT_MAX_TOKENS = 4096
ASSESS_MAX_TOKENS = 2048


@dataclass(frozen=True)
class MessageResult:
    """Outcome of one upstream call."""
    content: str
    usage: TokenUsage
    cost: Decimal
    model: str


class GenerationClient:
    """Upstream client wrapper that enforces budget and rate limits.

    Construct one per process and share it between pipeline runs so they
    share one rate limiter and one cost tracker.
    """

    def __init__(
        self,
        backend: UpstreamBackend,
        rate_limiter: Optional[RateLimiter] = None,
        cost_tracker: Optional[CostTracker] = None,
        daily_cost_limit: Amount = DEFAULT_DAILY_COST_LIMIT,
        pricing: PricingTable = PRICING_TABLE,
        on_cost_record: Optional[CostObserver] = None,
    ):
        """Initialize the generation client.

        Args:
            backend: Provider adapter performing the actual call
            rate_limiter: Shared limiter (defaults to 50 rpm / 5 concurrent)
            cost_tracker: Shared ledger (created if omitted)
            daily_cost_limit: Daily budget in USD
            pricing: Pricing table for estimates and new trackers
            on_cost_record: Observer for a tracker created here

        Raises:
            ValueError: If the daily limit is not positive
        """
        limit = to_amount(daily_cost_limit)
        if limit <= 0:
            raise ValueError("daily_cost_limit must be > 0")

        self.backend = backend
        self.rate_limiter = rate_limiter or RateLimiter(DEFAULT_RATE_BUDGET)
        self.cost_tracker = cost_tracker or CostTracker(on_record=on_cost_record, pricing=pricing)
        self.pricing = pricing
        self._daily_cost_limit = limit

    @property
    def daily_cost_limit(self) -> Decimal:
        return self._daily_cost_limit

    @daily_cost_limit.setter
    def daily_cost_limit(self, value: Amount) -> None:
        limit = to_amount(value)
        if limit <= 0:
            raise ValueError("daily_cost_limit must be > 0")
        self._daily_cost_limit = limit

    def check_budget(self) -> None:
        """Fail fast if today's spend has reached the daily limit.

        Raises:
            BudgetExceeded: If the limit has been reached
        """
        enforce_daily_budget(self.cost_tracker.get_daily_cost(), self._daily_cost_limit)

    def send_message(
        self,
        model: str,
        messages: List[Message],
        system: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = 0.7,
        operation: Operation = Operation.GENERATE,
        content_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> MessageResult:
        """Send one request upstream with budget, rate limit and cost tracking.

        The budget is checked before a rate-limit slot is taken, and the slot
        is released on every exit path.

        Args:
            model: Model id or tier alias
            messages: Conversation messages (required)
            system: Optional system prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            operation: Cost attribution category
            content_id: Content the call belongs to, for attribution
            timeout: Maximum seconds to wait for a rate-limit slot

        Returns:
            MessageResult with text, usage, cost and resolved model id

        Raises:
            ValueError: If messages is empty
            BudgetExceeded: If the daily limit has been reached
            RateLimitTimeout: If no slot was granted within ``timeout``
            Upstream errors: Propagated without modification
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        self.check_budget()

        model_id = resolve_model(model)
        self.rate_limiter.acquire(timeout=timeout)
        try:
            response = self.backend.invoke(
                model=model_id,
                system=system,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
            record = self.cost_tracker.record_cost(
                model_id,
                response.input_tokens,
                response.output_tokens,
                operation,
                content_id,
            )
        finally:
            self.rate_limiter.release()

        return MessageResult(
            content=response.text,
            usage=TokenUsage(response.input_tokens, response.output_tokens),
            cost=record.cost,
            model=model_id,
        )

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: str = "haiku",
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = 0.7,
        content_id: Optional[str] = None,
    ) -> MessageResult:
        """Draft new content on the fast tier."""
        return self.send_message(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            system=system,
            max_tokens=max_tokens,
            temperature=temperature,
            operation=Operation.GENERATE,
            content_id=content_id,
        )

    def assess(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: str = "sonnet",
        content_id: Optional[str] = None,
    ) -> MessageResult:
        """Assess content on the stronger tier at low temperature for consistency."""
        return self.send_message(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            system=system,
            max_tokens=ASSESS_MAX_TOKENS,
            temperature=0.3,
            operation=Operation.ASSESS,
            content_id=content_id,
        )

    def rewrite(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: str = "haiku",
        max_tokens: int = DEFAULT_MAX_TOKENS,
        content_id: Optional[str] = None,
    ) -> MessageResult:
        """Revise content against assessment feedback."""
        return self.send_message(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            system=system,
            max_tokens=max_tokens,
            temperature=0.7,
            operation=Operation.REWRITE,
            content_id=content_id,
        )

    def estimate_cost(
        self, model: str, estimated_input_tokens: int, estimated_output_tokens: int
    ) -> Decimal:
        """Price a hypothetical call without recording it."""
        return calculate_cost(
            model,
            TokenUsage(estimated_input_tokens, estimated_output_tokens),
            self.pricing,
        )

    def can_afford(self, estimated_cost: Amount) -> bool:
        """Whether a call of this cost still fits in today's budget."""
        return self.cost_tracker.get_daily_cost() + to_amount(estimated_cost) <= self._daily_cost_limit

    def get_daily_cost_summary(self) -> DailyCostSummary:
        return self.cost_tracker.get_daily_summary(self._daily_cost_limit)

    def get_cost_records(self) -> List[CostRecord]:
        return self.cost_tracker.get_records()
