"""
Quality gate for generated content.

Turns a free-form assessment response into a weighted score and a
classified issue list, and answers the publish / rewrite policy questions.
A response that cannot be parsed yields a conservative failing assessment;
it is never raised as an error.
"""

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .json_extract import ParseFailed, extract_json_object
from .models import (
    ContentBrief,
    IssueType,
    QualityAssessment,
    QualityIssue,
    QualityScoreBreakdown,
    Severity,
)
from .prompts import QUALITY_ASSESSOR_SYSTEM, build_quality_assessment_prompt

logger = logging.getLogger(__name__)

# Weights for the overall score; they sum to exactly 1
SCORE_WEIGHTS: Dict[str, Decimal] = {
    "factual_accuracy": Decimal("0.25"),
    "seo_compliance": Decimal("0.20"),
    "readability": Decimal("0.15"),
    "uniqueness": Decimal("0.20"),
    "engagement": Decimal("0.20"),
}

# A category score strictly below a threshold gets an issue of that severity
SEVERITY_THRESHOLDS: Dict[Severity, int] = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 60,
    Severity.MEDIUM: 75,
}

DEFAULT_THRESHOLD = 75
DEFAULT_AUTO_PUBLISH_THRESHOLD = 90
MIN_REWRITABLE_SCORE = 20

# (breakdown field, response key, issue type, label)
_CATEGORIES: Tuple[Tuple[str, str, IssueType, str], ...] = (
    ("factual_accuracy", "factualAccuracy", IssueType.FACTUAL, "Factual accuracy"),
    ("seo_compliance", "seoCompliance", IssueType.SEO, "SEO compliance"),
    ("readability", "readability", IssueType.READABILITY, "Readability"),
    ("uniqueness", "uniqueness", IssueType.UNIQUENESS, "Content uniqueness"),
    ("engagement", "engagement", IssueType.ENGAGEMENT, "Engagement level"),
)

_ISSUE_TYPE_ALIASES = {
    "fact": IssueType.FACTUAL,
    "facts": IssueType.FACTUAL,
    "factualaccuracy": IssueType.FACTUAL,
    "accuracy": IssueType.FACTUAL,
    "seocompliance": IssueType.SEO,
    "keyword": IssueType.SEO,
    "keywords": IssueType.SEO,
    "readable": IssueType.READABILITY,
    "clarity": IssueType.READABILITY,
    "unique": IssueType.UNIQUENESS,
    "originality": IssueType.UNIQUENESS,
    "engaging": IssueType.ENGAGEMENT,
    "cta": IssueType.ENGAGEMENT,
}

_SEVERITY_ALIASES = {
    "minor": Severity.LOW,
    "moderate": Severity.MEDIUM,
    "major": Severity.HIGH,
    "severe": Severity.HIGH,
    "blocker": Severity.CRITICAL,
}

MANUAL_REVIEW_SUGGESTION = "Manual review required due to assessment error"


@dataclass(frozen=True)
class AssessmentResult:
    """Assessment plus the accounting of the call that produced it."""
    assessment: QualityAssessment
    raw_response: str
    tokens_used: int
    cost: Decimal


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def normalize_score(score: Any) -> int:
    """Clamp a raw score to 0-100 and round; non-numeric values become 0."""
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return 0
    if isinstance(score, float) and not math.isfinite(score):
        return 0
    # Clamp before any float conversion; huge JSON ints overflow a float
    clamped = max(0, min(100, score))
    return _round_half_up(Decimal(str(clamped)))


def calculate_overall_score(breakdown: QualityScoreBreakdown) -> int:
    """Weighted average of the breakdown, rounded half up."""
    scores = breakdown.as_dict()
    weighted = sum(Decimal(scores[key]) * weight for key, weight in SCORE_WEIGHTS.items())
    total_weight = sum(SCORE_WEIGHTS.values())
    return _round_half_up(weighted / total_weight)


def _alias_key(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch.isalnum())


def normalize_issue_type(value: Any) -> IssueType:
    """Map a reported issue type to the closest category (default: factual)."""
    if isinstance(value, str):
        key = _alias_key(value)
        for issue_type in IssueType:
            if key == issue_type.value:
                return issue_type
        if key in _ISSUE_TYPE_ALIASES:
            return _ISSUE_TYPE_ALIASES[key]
    return IssueType.FACTUAL


def normalize_severity(value: Any) -> Severity:
    """Map a reported severity to the closest level (default: medium)."""
    if isinstance(value, str):
        key = _alias_key(value)
        for severity in Severity:
            if key == severity.value:
                return severity
        if key in _SEVERITY_ALIASES:
            return _SEVERITY_ALIASES[key]
    return Severity.MEDIUM


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def score_based_issues(breakdown: QualityScoreBreakdown) -> List[QualityIssue]:
    """Synthesize one issue per category scoring below a severity threshold."""
    scores = breakdown.as_dict()
    issues = []
    for field_name, _, issue_type, label in _CATEGORIES:
        score = scores[field_name]
        if score < SEVERITY_THRESHOLDS[Severity.CRITICAL]:
            issues.append(QualityIssue(
                type=issue_type,
                severity=Severity.CRITICAL,
                description=f"{label} score is critically low ({score}/100)",
                suggestion=f"Significant improvements needed in {label.lower()}",
            ))
        elif score < SEVERITY_THRESHOLDS[Severity.HIGH]:
            issues.append(QualityIssue(
                type=issue_type,
                severity=Severity.HIGH,
                description=f"{label} score needs improvement ({score}/100)",
                suggestion=f"Address {label.lower()} issues for better quality",
            ))
        elif score < SEVERITY_THRESHOLDS[Severity.MEDIUM]:
            issues.append(QualityIssue(
                type=issue_type,
                severity=Severity.MEDIUM,
                description=f"{label} score is below target ({score}/100)",
                suggestion=f"Minor improvements to {label.lower()} recommended",
            ))
    return issues


class QualityGate:
    """Scores content through the client and applies publish/rewrite policy."""

    def __init__(
        self,
        client,
        model: str = "sonnet",
        threshold: int = DEFAULT_THRESHOLD,
        auto_publish_threshold: int = DEFAULT_AUTO_PUBLISH_THRESHOLD,
    ):
        self.client = client
        self.model = model
        self.threshold = DEFAULT_THRESHOLD
        self.auto_publish_threshold = DEFAULT_AUTO_PUBLISH_THRESHOLD
        self.set_thresholds(threshold, auto_publish_threshold)

    def assess(
        self,
        content: str,
        brief: ContentBrief,
        content_id: Optional[str] = None,
    ) -> AssessmentResult:
        """Ask the assessor model for a verdict on ``content``.

        Upstream and budget errors propagate; a malformed response does not.
        """
        prompt = build_quality_assessment_prompt(content, brief, brief.source_data)
        response = self.client.assess(
            prompt=prompt,
            system=QUALITY_ASSESSOR_SYSTEM,
            model=self.model,
            content_id=content_id,
        )
        return AssessmentResult(
            assessment=self.parse_assessment_response(response.content),
            raw_response=response.content,
            tokens_used=response.usage.total_tokens,
            cost=response.cost,
        )

    def parse_assessment_response(self, response_text: str) -> QualityAssessment:
        """Interpret raw assessor output, falling back to a failing verdict."""
        try:
            parsed = extract_json_object(response_text)
            return self._build_assessment(parsed)
        except (ParseFailed, TypeError, ValueError, AttributeError) as e:
            logger.warning("Failed to parse quality assessment: %s", e)
            return self._failed_assessment()

    def _build_assessment(self, parsed: Mapping[str, Any]) -> QualityAssessment:
        raw_scores = parsed.get("scores")
        if not isinstance(raw_scores, Mapping):
            raw_scores = parsed.get("breakdown")
        if not isinstance(raw_scores, Mapping):
            raw_scores = {}

        breakdown = QualityScoreBreakdown(**{
            field_name: normalize_score(raw_scores.get(camel_key, raw_scores.get(field_name)))
            for field_name, camel_key, _, _ in _CATEGORIES
        })
        overall_score = calculate_overall_score(breakdown)

        issues: List[QualityIssue] = []
        raw_issues = parsed.get("issues") or []
        if not isinstance(raw_issues, list):
            raw_issues = []
        for raw in raw_issues:
            if not isinstance(raw, Mapping):
                continue
            issues.append(QualityIssue(
                type=normalize_issue_type(raw.get("type")),
                severity=normalize_severity(raw.get("severity")),
                description=_optional_text(raw.get("description")) or "Unspecified issue",
                location=_optional_text(raw.get("location")),
                suggestion=_optional_text(raw.get("suggestion")),
            ))

        seen = {(issue.type, issue.severity) for issue in issues}
        for synthetic in score_based_issues(breakdown):
            if (synthetic.type, synthetic.severity) not in seen:
                issues.append(synthetic)
                seen.add((synthetic.type, synthetic.severity))

        raw_suggestions = parsed.get("suggestions") or []
        if not isinstance(raw_suggestions, list):
            raw_suggestions = []

        return QualityAssessment(
            overall_score=overall_score,
            breakdown=breakdown,
            passed=overall_score >= self.threshold,
            issues=tuple(issues),
            suggestions=tuple(str(s) for s in raw_suggestions),
            assessed_by=self.model,
        )

    def _failed_assessment(self) -> QualityAssessment:
        return QualityAssessment(
            overall_score=0,
            breakdown=QualityScoreBreakdown(),
            passed=False,
            issues=(QualityIssue(
                type=IssueType.FACTUAL,
                severity=Severity.CRITICAL,
                description="Quality assessment failed to parse - content requires manual review",
                suggestion="Please review the content manually or regenerate",
            ),),
            suggestions=(MANUAL_REVIEW_SUGGESTION,),
            assessed_by=self.model,
        )

    def should_auto_publish(self, assessment: QualityAssessment) -> bool:
        """Passed, above the auto-publish bar, and nothing high or critical."""
        if not assessment.passed:
            return False
        if assessment.overall_score < self.auto_publish_threshold:
            return False
        return not any(issue.severity >= Severity.HIGH for issue in assessment.issues)

    def should_rewrite(self, assessment: QualityAssessment) -> bool:
        """Whether an incremental rewrite is worthwhile.

        Scores below 20 are better regenerated from scratch.
        """
        has_critical = any(issue.severity == Severity.CRITICAL for issue in assessment.issues)
        if assessment.passed and not has_critical:
            return False
        if assessment.overall_score < MIN_REWRITABLE_SCORE:
            return False
        return True

    def get_rewrite_issues(self, assessment: QualityAssessment) -> List[QualityIssue]:
        """High and critical issues, critical first."""
        blocking = [issue for issue in assessment.issues if issue.severity >= Severity.HIGH]
        return sorted(blocking, key=lambda issue: -issue.severity.rank)

    @staticmethod
    def calculate_improvement(previous: QualityAssessment, current: QualityAssessment) -> int:
        return current.overall_score - previous.overall_score

    def set_thresholds(self, threshold: int, auto_publish_threshold: int) -> None:
        """Clamp both bars to 0-100, keeping auto-publish at or above pass."""
        self.threshold = max(0, min(100, threshold))
        self.auto_publish_threshold = max(self.threshold, min(100, auto_publish_threshold))

    def get_config(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "threshold": self.threshold,
            "auto_publish_threshold": self.auto_publish_threshold,
        }


def quick_assess(client, content: str, brief: ContentBrief, content_id: Optional[str] = None) -> AssessmentResult:
    """Cheaper assessment on the fast tier."""
    return QualityGate(client, model="haiku").assess(content, brief, content_id)


def thorough_assess(client, content: str, brief: ContentBrief, content_id: Optional[str] = None) -> AssessmentResult:
    """Detailed assessment on the stronger tier."""
    return QualityGate(client, model="sonnet").assess(content, brief, content_id)
