"""
Cost tracking for upstream calls.

Keeps an append-only ledger of cost records for the process lifetime and a
running total per UTC calendar day for O(1) budget checks.
"""

import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from .guardrails import Amount, to_amount
from .models import CostRecord, DailyCostSummary, Operation, new_id
from .pricing import PRICING_TABLE, PricingTable, calculate_cost, resolve_model
from .token_counter import TokenUsage

logger = logging.getLogger(__name__)

CostObserver = Callable[[CostRecord], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _day_key(moment: datetime) -> str:
    """UTC calendar day for a timestamp, as YYYY-MM-DD."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()


class CostTracker:
    """Thread-safe ledger of upstream spend.

    The record list and the day totals are only ever changed together under
    one lock, so a day's running total always equals the sum of that day's
    retained records.
    """

    def __init__(
        self,
        on_record: Optional[CostObserver] = None,
        pricing: PricingTable = PRICING_TABLE,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._on_record = on_record
        self._pricing = pricing
        self._now = now
        self._records: List[CostRecord] = []
        self._daily_costs: Dict[str, Decimal] = {}
        self._lock = threading.Lock()

    def record_cost(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        operation: Operation,
        content_id: Optional[str] = None,
    ) -> CostRecord:
        """Price one completed call and append it to the ledger.

        Unknown models are billed at the pricing table's default row.
        The observer, if any, is called before this method returns. Its
        failures are logged and never undo or hide the recorded call.
        """
        model_id = resolve_model(model)
        cost = calculate_cost(
            model_id, TokenUsage(input_tokens, output_tokens), self._pricing
        )
        record = CostRecord(
            id=new_id("cost"),
            model=model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost,
            operation=Operation(operation),
            timestamp=self._now(),
            content_id=content_id,
        )

        with self._lock:
            self._records.append(record)
            key = _day_key(record.timestamp)
            self._daily_costs[key] = self._daily_costs.get(key, Decimal("0")) + cost

        logger.debug(
            "Recorded %s call on %s: %d in / %d out tokens, $%.6f",
            record.operation.value, model_id, input_tokens, output_tokens, cost,
        )

        if self._on_record is not None:
            try:
                self._on_record(record)
            except Exception:
                logger.exception("Cost observer failed for record %s", record.id)

        return record

    def get_daily_cost(self) -> Decimal:
        """Running total for the current UTC day."""
        key = _day_key(self._now())
        with self._lock:
            return self._daily_costs.get(key, Decimal("0"))

    def get_daily_summary(self, limit: Amount) -> DailyCostSummary:
        """Break down today's spend by model and operation.

        Args:
            limit: Daily budget used to compute ``remaining``
        """
        limit = to_amount(limit)
        key = _day_key(self._now())
        by_model: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        by_operation: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        content_ids = set()

        with self._lock:
            total = self._daily_costs.get(key, Decimal("0"))
            for record in self._records:
                if _day_key(record.timestamp) != key:
                    continue
                by_model[record.model] += record.cost
                by_operation[record.operation.value] += record.cost
                if record.content_id:
                    content_ids.add(record.content_id)

        return DailyCostSummary(
            date=key,
            total_cost=total,
            by_model=dict(by_model),
            by_operation=dict(by_operation),
            content_count=len(content_ids),
            limit=limit,
            remaining=max(Decimal("0"), limit - total),
        )

    def get_records(self) -> List[CostRecord]:
        """Copy of every retained record, oldest first."""
        with self._lock:
            return list(self._records)

    def clear_old_records(self, days_to_keep: int = 30) -> int:
        """Drop records from UTC days older than ``days_to_keep`` days.

        Trimming works on whole days so every retained day keeps its
        running total in step with its records.

        Returns:
            Number of records removed
        """
        if days_to_keep < 0:
            raise ValueError("days_to_keep cannot be negative")

        cutoff: date = _now_date(self._now()) - timedelta(days=days_to_keep)
        cutoff_key = cutoff.isoformat()

        with self._lock:
            before = len(self._records)
            self._records = [
                r for r in self._records if _day_key(r.timestamp) >= cutoff_key
            ]
            for key in [k for k in self._daily_costs if k < cutoff_key]:
                del self._daily_costs[key]
            removed = before - len(self._records)

        if removed:
            logger.info("Trimmed %d cost records older than %s", removed, cutoff_key)
        return removed


def _now_date(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()
