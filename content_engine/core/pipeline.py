"""
Content pipeline: brief in, assessed and possibly rewritten content out.

One run is strictly sequential (draft, assess, then a bounded rewrite
loop). Concurrency only happens across runs, which share the client's rate
limiter and cost tracker.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..sdk.backends import PROVIDERS, UpstreamBackend, build_backend
from ..sdk.client import GenerationClient
from .cost_tracker import CostTracker
from .guardrails import BudgetExceeded, to_amount, within_content_budget
from .models import (
    ContentBrief,
    ContentStatus,
    DailyCostSummary,
    GeneratedContent,
    QualityAssessment,
    RateBudget,
    RewriteRecord,
    new_id,
    slugify,
)
from .prompts import build_draft_prompt, build_rewrite_prompt, build_system_prompt
from .quality import AssessmentResult, QualityGate
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

QUALITY_NOT_MET = "Quality threshold not met"

_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


class EventType(str, Enum):
    """Pipeline progress events, in the order a run emits them."""
    DRAFT_START = "draft_start"
    DRAFT_COMPLETE = "draft_complete"
    QUALITY_START = "quality_start"
    QUALITY_COMPLETE = "quality_complete"
    REWRITE_START = "rewrite_start"
    REWRITE_COMPLETE = "rewrite_complete"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class PipelineEvent:
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)


EventHandler = Callable[[PipelineEvent], None]


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one run.

    ``content`` is always the best version produced, even when ``success``
    is False.
    """
    content: GeneratedContent
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PipelineConfig:
    """Pipeline settings.

    ``quality_threshold`` of None disables quality gating entirely.
    """
    draft_model: str = "haiku"
    quality_model: str = "sonnet"
    rewrite_model: str = "haiku"
    quality_threshold: Optional[int] = 75
    auto_publish_threshold: int = 90
    max_rewrites: int = 3
    max_cost_per_content: Decimal = Decimal("0.50")
    daily_cost_limit: Decimal = Decimal("50.00")
    requests_per_minute: int = 50
    max_concurrent: int = 5
    provider: str = "anthropic"

    def __post_init__(self):
        """Validate ranges and normalise money fields to Decimal."""
        for name in ("draft_model", "quality_model", "rewrite_model"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string")

        if self.quality_threshold is not None and not 0 <= self.quality_threshold <= 100:
            raise ValueError("quality_threshold must be between 0 and 100")
        if not 0 <= self.auto_publish_threshold <= 100:
            raise ValueError("auto_publish_threshold must be between 0 and 100")
        if not 0 <= self.max_rewrites <= 10:
            raise ValueError("max_rewrites must be between 0 and 10")

        object.__setattr__(self, "max_cost_per_content", to_amount(self.max_cost_per_content))
        object.__setattr__(self, "daily_cost_limit", to_amount(self.daily_cost_limit))
        if self.max_cost_per_content <= 0:
            raise ValueError("max_cost_per_content must be > 0")
        if self.daily_cost_limit <= 0:
            raise ValueError("daily_cost_limit must be > 0")

        RateBudget(self.requests_per_minute, self.max_concurrent)

        if self.provider not in PROVIDERS:
            raise ValueError(f"provider must be one of: {sorted(PROVIDERS)}")

    @property
    def rate_budget(self) -> RateBudget:
        return RateBudget(self.requests_per_minute, self.max_concurrent)


def extract_title(content: str) -> str:
    """First level-one Markdown heading, or "Untitled"."""
    match = _TITLE.search(content)
    return match.group(1).strip() if match else "Untitled"


class ContentPipeline:
    """Runs briefs through draft, assessment and the rewrite loop."""

    def __init__(
        self,
        client: GenerationClient,
        config: Optional[PipelineConfig] = None,
        quality_gate: Optional[QualityGate] = None,
    ):
        self.client = client
        self.config = config or PipelineConfig()
        self.quality_gate = quality_gate or QualityGate(
            client,
            model=self.config.quality_model,
            threshold=self._gate_threshold(self.config),
            auto_publish_threshold=self.config.auto_publish_threshold,
        )
        self._handlers: List[EventHandler] = []
        self._handlers_lock = threading.Lock()

    @staticmethod
    def _gate_threshold(config: PipelineConfig) -> int:
        return config.quality_threshold if config.quality_threshold is not None else 0

    def on_event(self, handler: EventHandler) -> Callable[[], None]:
        """Register an event handler.

        Returns:
            A callable that unregisters the handler; calling it twice is harmless
        """
        with self._handlers_lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._handlers_lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def _emit(self, event_type: EventType, **data: Any) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers)
        event = PipelineEvent(type=event_type, data=data)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Pipeline event handler failed on %s", event_type.value)

    def generate(self, brief: ContentBrief) -> PipelineResult:
        """Produce content for a brief.

        Falling short of the quality bar, or running out of daily budget
        once a draft exists, returns ``success=False`` with the best content
        so far. Any other failure is emitted as an ``error`` event and
        re-raised.

        Raises:
            BudgetExceeded: If the daily limit is reached before a draft exists
            Upstream errors: Propagated without modification
        """
        config = self.config
        content: Optional[GeneratedContent] = None
        try:
            self._emit(EventType.DRAFT_START, brief_id=brief.id, type=brief.type.value)
            content = self._generate_draft(brief)
            self._emit(
                EventType.DRAFT_COMPLETE,
                content_id=content.id,
                tokens_used=content.tokens_used,
                cost=content.estimated_cost,
            )

            if config.quality_threshold is None:
                self._emit(EventType.COMPLETE, content_id=content.id, success=True)
                return PipelineResult(content=content, success=True)

            self._emit(EventType.QUALITY_START, content_id=content.id, version=content.version)
            assessment = self._assess(content, brief)
            self._emit(
                EventType.QUALITY_COMPLETE,
                content_id=content.id,
                version=content.version,
                score=assessment.overall_score,
                passed=assessment.passed,
            )

            attempt = 0
            while assessment.overall_score < config.quality_threshold:
                if attempt >= config.max_rewrites:
                    return self._finish(content, False, QUALITY_NOT_MET)
                if not within_content_budget(content.estimated_cost, config.max_cost_per_content):
                    return self._finish(
                        content,
                        False,
                        f"Per-content cost ceiling reached: ${content.estimated_cost:.4f} "
                        f"/ ${config.max_cost_per_content:.2f}",
                    )

                attempt += 1
                self._emit(EventType.REWRITE_START, content_id=content.id, attempt=attempt)
                assessment = self._rewrite(content, assessment, brief)
                self._emit(
                    EventType.REWRITE_COMPLETE,
                    content_id=content.id,
                    attempt=attempt,
                    version=content.version,
                    score=assessment.overall_score,
                )

            return self._finish(content, True)

        except BudgetExceeded as e:
            if content is None:
                self._emit(EventType.ERROR, error=str(e), error_type=type(e).__name__)
                raise
            logger.warning("Stopping %s early: %s", content.id, e)
            return self._finish(content, False, str(e))
        except Exception as e:
            self._emit(EventType.ERROR, error=str(e), error_type=type(e).__name__)
            raise

    def _finish(
        self, content: GeneratedContent, success: bool, error: Optional[str] = None
    ) -> PipelineResult:
        content.status = self._final_status(content.quality_assessment)
        self._emit(
            EventType.COMPLETE,
            content_id=content.id,
            success=success,
            version=content.version,
            status=content.status.value,
        )
        if not success:
            logger.info("Content %s finished without passing: %s", content.id, error)
        return PipelineResult(content=content, success=success, error=error)

    def _final_status(self, assessment: Optional[QualityAssessment]) -> ContentStatus:
        if assessment is None:
            return ContentStatus.DRAFT
        if self.quality_gate.should_auto_publish(assessment):
            return ContentStatus.APPROVED
        if assessment.passed:
            return ContentStatus.PENDING_REVIEW
        return ContentStatus.DRAFT

    def _generate_draft(self, brief: ContentBrief) -> GeneratedContent:
        content_id = new_id("content")
        started = time.monotonic()
        response = self.client.generate(
            prompt=build_draft_prompt(brief),
            system=build_system_prompt(brief),
            model=self.config.draft_model,
            content_id=content_id,
        )
        return GeneratedContent(
            id=content_id,
            brief_id=brief.id,
            type=brief.type,
            site_id=brief.site_id,
            title=extract_title(response.content),
            content=response.content,
            target_keyword=brief.target_keyword,
            secondary_keywords=brief.secondary_keywords,
            slug=slugify(brief.target_keyword),
            generated_by=response.model,
            max_rewrites=self.config.max_rewrites,
            tokens_used=response.usage.total_tokens,
            estimated_cost=response.cost,
            generation_time_ms=_elapsed_ms(started),
        )

    def _assess(self, content: GeneratedContent, brief: ContentBrief) -> QualityAssessment:
        started = time.monotonic()
        result: AssessmentResult = self.quality_gate.assess(content.content, brief, content.id)
        content.quality_assessment = result.assessment
        content.tokens_used += result.tokens_used
        content.estimated_cost += result.cost
        content.generation_time_ms += _elapsed_ms(started)
        return result.assessment

    def _rewrite(
        self,
        content: GeneratedContent,
        assessment: QualityAssessment,
        brief: ContentBrief,
    ) -> QualityAssessment:
        """Rewrite the latest version in place and re-assess it."""
        issues = self.quality_gate.get_rewrite_issues(assessment)
        started = time.monotonic()
        response = self.client.rewrite(
            prompt=build_rewrite_prompt(content.content, issues, assessment.suggestions, brief),
            system=build_system_prompt(brief),
            model=self.config.rewrite_model,
            content_id=content.id,
        )
        rewrite_tokens = response.usage.total_tokens

        content.content = response.content
        content.title = extract_title(response.content)
        content.version += 1
        content.rewrite_count += 1
        content.generated_by = response.model
        content.tokens_used += rewrite_tokens
        content.estimated_cost += response.cost
        content.generation_time_ms += _elapsed_ms(started)

        new_assessment = self._assess(content, brief)
        content.rewrite_history.append(RewriteRecord(
            version=content.version,
            issues=tuple(issues),
            previous_score=assessment.overall_score,
            new_score=new_assessment.overall_score,
            tokens_used=rewrite_tokens,
            model=response.model,
        ))
        logger.info(
            "Rewrite %d of %s: score %d -> %d",
            content.rewrite_count, content.id,
            assessment.overall_score, new_assessment.overall_score,
        )
        return new_assessment

    def get_cost_summary(self) -> DailyCostSummary:
        return self.client.get_daily_cost_summary()

    def get_config(self) -> PipelineConfig:
        return self.config

    def update_config(self, **changes: Any) -> PipelineConfig:
        """Apply validated changes to the running configuration.

        Thresholds are pushed into the quality gate and the daily limit into
        the client. Rate limits are fixed once the limiter exists.

        Raises:
            ValueError: If a key is unknown or a value is invalid
        """
        known = {f.name for f in fields(PipelineConfig)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")

        config = replace(self.config, **changes)
        self.config = config
        self.quality_gate.model = config.quality_model
        self.quality_gate.set_thresholds(
            self._gate_threshold(config), config.auto_publish_threshold
        )
        self.client.daily_cost_limit = config.daily_cost_limit
        return config


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def create_pipeline(
    config: Optional[PipelineConfig] = None,
    backend: Optional[UpstreamBackend] = None,
) -> ContentPipeline:
    """Wire a pipeline with its own limiter, tracker, client and gate.

    Args:
        config: Pipeline settings (defaults used if omitted)
        backend: Upstream backend; built from ``config.provider`` if omitted
    """
    config = config or PipelineConfig()
    client = GenerationClient(
        backend=backend or build_backend(config.provider),
        rate_limiter=RateLimiter(config.rate_budget),
        cost_tracker=CostTracker(),
        daily_cost_limit=config.daily_cost_limit,
    )
    quality_gate = QualityGate(
        client,
        model=config.quality_model,
        threshold=ContentPipeline._gate_threshold(config),
        auto_publish_threshold=config.auto_publish_threshold,
    )
    return ContentPipeline(client, config=config, quality_gate=quality_gate)
