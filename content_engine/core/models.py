"""
Data models for the content engine.

Defines the value objects that flow between the client, the quality gate
and the pipeline.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class Operation(str, Enum):
    """Upstream call categories used for cost attribution."""
    GENERATE = "generate"
    ASSESS = "assess"
    REWRITE = "rewrite"


class ContentType(str, Enum):
    """Categories of content the engine can produce."""
    DESTINATION = "destination"
    CATEGORY = "category"
    EXPERIENCE = "experience"
    BLOG = "blog"
    META_DESCRIPTION = "meta_description"
    SEO_TITLE = "seo_title"


class Tone(str, Enum):
    """Base tone requested for generated copy."""
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    ENTHUSIASTIC = "enthusiastic"
    INFORMATIVE = "informative"


class ContentStatus(str, Enum):
    """Lifecycle status of a piece of generated content."""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    PUBLISHED = "published"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class IssueType(str, Enum):
    """Quality categories an issue can belong to."""
    FACTUAL = "factual"
    SEO = "seo"
    READABILITY = "readability"
    UNIQUENESS = "uniqueness"
    ENGAGEMENT = "engagement"


class Severity(str, Enum):
    """Issue severity, ordered low < medium < high < critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric rank for ordering (critical is highest)."""
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Short random identifier such as ``content_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class RateBudget:
    """Admission budget for the upstream text-generation service."""
    requests_per_minute: int
    max_concurrent: int

    def __post_init__(self):
        """Validate both bounds are positive."""
        if self.requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be > 0")
        if self.max_concurrent <= 0:
            raise ValueError("max_concurrent must be > 0")


@dataclass(frozen=True)
class CostRecord:
    """Immutable record of one completed upstream call.

    Append-only: once handed to the cost tracker a record is never modified.
    """
    id: str
    model: str
    input_tokens: int
    output_tokens: int
    cost: Decimal
    operation: Operation
    timestamp: datetime
    content_id: Optional[str] = None

    def __post_init__(self):
        """Reject negative token counts and costs."""
        if self.input_tokens < 0:
            raise ValueError("input_tokens cannot be negative")
        if self.output_tokens < 0:
            raise ValueError("output_tokens cannot be negative")
        if self.cost < 0:
            raise ValueError("cost cannot be negative")

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class DailyCostSummary:
    """Aggregated spend for one UTC calendar day."""
    date: str
    total_cost: Decimal
    by_model: Dict[str, Decimal]
    by_operation: Dict[str, Decimal]
    content_count: int
    limit: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class TargetLength:
    """Requested length range in words."""
    min: int
    max: int

    def __post_init__(self):
        if self.min <= 0 or self.max <= 0:
            raise ValueError("target length bounds must be positive")
        if self.min > self.max:
            raise ValueError("target length min cannot exceed max")


@dataclass(frozen=True)
class BrandContext:
    """Optional brand voice guidance woven into prompts."""
    site_name: Optional[str] = None
    personality: Tuple[str, ...] = ()
    writing_style: Optional[str] = None
    do_list: Tuple[str, ...] = ()
    dont_list: Tuple[str, ...] = ()
    mission: Optional[str] = None
    target_audience: Optional[str] = None
    unique_selling_points: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ContentBrief:
    """Input to one pipeline run. Never mutated once created."""
    type: ContentType
    site_id: str
    target_keyword: str
    tone: Tone
    target_length: TargetLength
    secondary_keywords: Tuple[str, ...] = ()
    destination: Optional[str] = None
    category: Optional[str] = None
    experience_id: Optional[str] = None
    include_elements: Tuple[str, ...] = ()
    source_data: Optional[Mapping[str, Any]] = None
    brand_context: Optional[BrandContext] = None
    id: str = field(default_factory=lambda: new_id("brief"))

    def __post_init__(self):
        """Validate required fields and coerce enums and sequences."""
        if not self.site_id or not str(self.site_id).strip():
            raise ValueError("site_id is required and cannot be empty")
        if not self.target_keyword or not str(self.target_keyword).strip():
            raise ValueError("target_keyword is required and cannot be empty")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "type", ContentType(self.type))
        object.__setattr__(self, "tone", Tone(self.tone))
        object.__setattr__(self, "secondary_keywords", tuple(self.secondary_keywords))
        object.__setattr__(self, "include_elements", tuple(self.include_elements))


@dataclass(frozen=True)
class QualityScoreBreakdown:
    """Per-category scores, each 0-100."""
    factual_accuracy: int = 0
    seo_compliance: int = 0
    readability: int = 0
    uniqueness: int = 0
    engagement: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "factual_accuracy": self.factual_accuracy,
            "seo_compliance": self.seo_compliance,
            "readability": self.readability,
            "uniqueness": self.uniqueness,
            "engagement": self.engagement,
        }


@dataclass(frozen=True)
class QualityIssue:
    """A single problem identified in a piece of content."""
    type: IssueType
    severity: Severity
    description: str
    location: Optional[str] = None
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class QualityAssessment:
    """Structured verdict produced by the quality gate."""
    overall_score: int
    breakdown: QualityScoreBreakdown
    passed: bool
    issues: Tuple[QualityIssue, ...]
    suggestions: Tuple[str, ...]
    assessed_by: str
    assessed_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class RewriteRecord:
    """History entry for one rewrite iteration."""
    version: int
    issues: Tuple[QualityIssue, ...]
    previous_score: int
    new_score: int
    tokens_used: int
    model: str
    rewritten_at: datetime = field(default_factory=_utcnow)


@dataclass
class GeneratedContent:
    """Result of a pipeline run, versioned in place by the rewrite loop."""
    brief_id: str
    type: ContentType
    site_id: str
    title: str
    content: str
    target_keyword: str
    slug: str
    generated_by: str
    max_rewrites: int
    secondary_keywords: Tuple[str, ...] = ()
    id: str = field(default_factory=lambda: new_id("content"))
    version: int = 1
    status: ContentStatus = ContentStatus.DRAFT
    quality_assessment: Optional[QualityAssessment] = None
    tokens_used: int = 0
    estimated_cost: Decimal = Decimal("0")
    generation_time_ms: int = 0
    rewrite_count: int = 0
    rewrite_history: List[RewriteRecord] = field(default_factory=list)
    generated_at: datetime = field(default_factory=_utcnow)


_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Derive a URL-safe slug from a keyword."""
    return _SLUG_SEPARATORS.sub("-", text.lower()).strip("-")
