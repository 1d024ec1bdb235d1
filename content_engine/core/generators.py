"""
Per-content-type generators.

Thin helpers that fill in the tone and target length each content type
usually wants, then hand the brief to a shared pipeline.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .models import BrandContext, ContentBrief, ContentType, DailyCostSummary, TargetLength, Tone
from .pipeline import ContentPipeline, EventHandler, PipelineResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentDefaults:
    tone: Tone
    target_length: TargetLength


CONTENT_DEFAULTS: Dict[ContentType, ContentDefaults] = {
    ContentType.DESTINATION: ContentDefaults(Tone.ENTHUSIASTIC, TargetLength(600, 900)),
    ContentType.CATEGORY: ContentDefaults(Tone.INFORMATIVE, TargetLength(400, 600)),
    ContentType.EXPERIENCE: ContentDefaults(Tone.ENTHUSIASTIC, TargetLength(300, 500)),
    ContentType.BLOG: ContentDefaults(Tone.CASUAL, TargetLength(1000, 1500)),
    ContentType.META_DESCRIPTION: ContentDefaults(Tone.PROFESSIONAL, TargetLength(150, 160)),
    ContentType.SEO_TITLE: ContentDefaults(Tone.PROFESSIONAL, TargetLength(50, 60)),
}

BLOG_TYPES = ("listicle", "guide", "comparison")

EXPERIENCE_FIELDS = (
    "title", "duration", "price", "location", "highlights", "inclusions", "exclusions",
)


def build_brief(
    content_type: ContentType,
    site_id: str,
    target_keyword: str,
    tone: Optional[Tone] = None,
    **extra: Any,
) -> ContentBrief:
    """Build a brief using the defaults for ``content_type``.

    Args:
        content_type: Kind of content to produce
        site_id: Site the content belongs to
        target_keyword: Primary keyword
        tone: Overrides the type's default tone
        **extra: Any other ContentBrief field

    Returns:
        Validated ContentBrief
    """
    content_type = ContentType(content_type)
    defaults = CONTENT_DEFAULTS[content_type]
    extra.setdefault("target_length", defaults.target_length)
    return ContentBrief(
        type=content_type,
        site_id=site_id,
        target_keyword=target_keyword,
        tone=tone or defaults.tone,
        **extra,
    )


class ContentGenerator:
    """Generates each content type for one site through one pipeline.

    All methods share the pipeline, so concurrent calls share its rate
    limiter and daily budget.
    """

    def __init__(
        self,
        pipeline: ContentPipeline,
        site_id: str,
        tone: Optional[Tone] = None,
        brand_context: Optional[BrandContext] = None,
    ):
        if not site_id:
            raise ValueError("site_id is required")
        self.pipeline = pipeline
        self.site_id = site_id
        self.tone = Tone(tone) if tone else None
        self.brand_context = brand_context

    def _run(self, content_type: ContentType, target_keyword: str, tone=None, **extra) -> PipelineResult:
        brief = build_brief(
            content_type,
            self.site_id,
            target_keyword,
            tone=tone or self.tone,
            brand_context=self.brand_context,
            **extra,
        )
        logger.info("Generating %s for %s: %s", content_type.value, self.site_id, target_keyword)
        return self.pipeline.generate(brief)

    def destination(
        self,
        destination: str,
        target_keyword: str,
        secondary_keywords: Sequence[str] = (),
        source_data: Optional[Mapping[str, Any]] = None,
        tone: Optional[Tone] = None,
    ) -> PipelineResult:
        return self._run(
            ContentType.DESTINATION, target_keyword, tone,
            destination=destination,
            secondary_keywords=tuple(secondary_keywords),
            source_data=source_data,
        )

    def category(
        self,
        category: str,
        target_keyword: str,
        destination: Optional[str] = None,
        secondary_keywords: Sequence[str] = (),
        source_data: Optional[Mapping[str, Any]] = None,
        tone: Optional[Tone] = None,
    ) -> PipelineResult:
        return self._run(
            ContentType.CATEGORY, target_keyword, tone,
            category=category,
            destination=destination,
            secondary_keywords=tuple(secondary_keywords),
            source_data=source_data,
        )

    def experience(
        self,
        experience: Mapping[str, Any],
        target_keyword: str,
        secondary_keywords: Sequence[str] = (),
        tone: Optional[Tone] = None,
    ) -> PipelineResult:
        """Describe a bookable experience.

        ``experience`` must carry an ``id``; its other known fields become
        the fact-checking source data.
        """
        if not experience.get("id"):
            raise ValueError("experience data must include an 'id'")
        source_data = {key: experience.get(key) for key in EXPERIENCE_FIELDS}
        return self._run(
            ContentType.EXPERIENCE, target_keyword, tone,
            experience_id=str(experience["id"]),
            secondary_keywords=tuple(secondary_keywords),
            source_data=source_data,
        )

    def blog(
        self,
        target_keyword: str,
        blog_type: str,
        destination: Optional[str] = None,
        category: Optional[str] = None,
        secondary_keywords: Sequence[str] = (),
        source_data: Optional[Mapping[str, Any]] = None,
        tone: Optional[Tone] = None,
    ) -> PipelineResult:
        if blog_type not in BLOG_TYPES:
            raise ValueError(f"blog_type must be one of: {list(BLOG_TYPES)}")
        return self._run(
            ContentType.BLOG, target_keyword, tone,
            destination=destination,
            category=category,
            secondary_keywords=tuple(secondary_keywords),
            include_elements=(blog_type,),
            source_data=source_data,
        )

    def meta_description(
        self,
        target_keyword: str,
        destination: Optional[str] = None,
        category: Optional[str] = None,
        source_data: Optional[Mapping[str, Any]] = None,
    ) -> PipelineResult:
        return self._run(
            ContentType.META_DESCRIPTION, target_keyword,
            destination=destination,
            category=category,
            source_data=source_data,
        )

    def seo_title(
        self,
        target_keyword: str,
        destination: Optional[str] = None,
        category: Optional[str] = None,
        source_data: Optional[Mapping[str, Any]] = None,
    ) -> PipelineResult:
        return self._run(
            ContentType.SEO_TITLE, target_keyword,
            destination=destination,
            category=category,
            source_data=source_data,
        )

    def complete_page(
        self,
        content_type: ContentType,
        target_keyword: str,
        destination: Optional[str] = None,
        category: Optional[str] = None,
        secondary_keywords: Sequence[str] = (),
        source_data: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, PipelineResult]:
        """Generate main content, meta description and SEO title in parallel.

        Only destination and category pages are supported as main content.

        Returns:
            Dict with ``content``, ``meta_description`` and ``seo_title`` results

        Raises:
            ValueError: If content_type is not destination or category
        """
        content_type = ContentType(content_type)
        if content_type == ContentType.DESTINATION:
            if not destination:
                raise ValueError("destination is required for a destination page")
            main = partial(
                self.destination, destination, target_keyword, secondary_keywords, source_data
            )
        elif content_type == ContentType.CATEGORY:
            if not category:
                raise ValueError("category is required for a category page")
            main = partial(
                self.category, category, target_keyword, destination, secondary_keywords, source_data
            )
        else:
            raise ValueError("complete_page supports destination and category pages only")

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="content_page") as executor:
            futures = {
                "content": executor.submit(main),
                "meta_description": executor.submit(
                    self.meta_description, target_keyword, destination, category, source_data
                ),
                "seo_title": executor.submit(
                    self.seo_title, target_keyword, destination, category, source_data
                ),
            }
            return {name: future.result() for name, future in futures.items()}

    def get_cost_summary(self) -> DailyCostSummary:
        return self.pipeline.get_cost_summary()

    def on_event(self, handler: EventHandler) -> Callable[[], None]:
        return self.pipeline.on_event(handler)
