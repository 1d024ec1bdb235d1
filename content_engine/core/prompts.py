"""
Prompt builders for drafting, assessing and rewriting content.
"""

import json
from typing import Any, Mapping, Optional, Sequence

from .models import BrandContext, ContentBrief, ContentType, QualityIssue

CONTENT_WRITER_SYSTEM = (
    "You are an expert travel content writer specializing in engaging, "
    "SEO-optimized content for experience and activity booking websites. "
    "Never make up facts about experiences, prices, or logistics; use the "
    "provided source data as the single source of truth."
)

QUALITY_ASSESSOR_SYSTEM = (
    "You are an expert content quality assessor for travel and tourism "
    "content. Be critical and specific. Output your assessment as valid JSON only."
)

_TYPE_INSTRUCTIONS = {
    ContentType.DESTINATION: "a destination landing page that sells the place and its top experiences",
    ContentType.CATEGORY: "a category page introducing a type of experience and why to book it",
    ContentType.EXPERIENCE: "an experience description covering highlights, logistics and what is included",
    ContentType.BLOG: "a blog post",
    ContentType.META_DESCRIPTION: "a meta description; return a single line of plain text",
    ContentType.SEO_TITLE: "an SEO page title; return a single line of plain text",
}


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _brand_section(brand: Optional[BrandContext]) -> str:
    if brand is None:
        return ""
    lines = ["## BRAND VOICE"]
    if brand.site_name:
        lines.append(f"Brand: {brand.site_name}")
    lines.append(f"Personality: {', '.join(brand.personality) or 'professional, trustworthy'}")
    lines.append(f"Writing Style: {brand.writing_style or 'Clear and authoritative'}")
    if brand.do_list:
        lines.append("DO:\n" + _bullets(brand.do_list))
    if brand.dont_list:
        lines.append("DON'T:\n" + _bullets(brand.dont_list))
    if brand.mission:
        lines.append(f"Mission: {brand.mission}")
    if brand.target_audience:
        lines.append(f"Target Audience: {brand.target_audience}")
    if brand.unique_selling_points:
        lines.append("Unique selling points to weave in naturally:\n" + _bullets(brand.unique_selling_points))
    return "\n".join(lines)


def _source_section(source_data: Optional[Mapping[str, Any]], heading: str) -> str:
    if not source_data:
        return ""
    return f"## {heading}\n{json.dumps(dict(source_data), indent=2, default=str)}"


def build_system_prompt(brief: ContentBrief) -> str:
    brand = brief.brand_context
    if brand is None or not (brand.personality or brand.writing_style):
        return CONTENT_WRITER_SYSTEM
    return (
        f"{CONTENT_WRITER_SYSTEM}\n\n"
        f"Your writing style is: {brand.writing_style or 'clear, authoritative, and trustworthy'}\n"
        f"Your personality traits are: {', '.join(brand.personality) or 'professional, knowledgeable, helpful'}"
    )


def build_draft_prompt(brief: ContentBrief) -> str:
    """Prompt for the first draft of a brief."""
    sections = [
        f"Create {_TYPE_INSTRUCTIONS[brief.type]} for: {brief.target_keyword}",
        "## CONTENT REQUIREMENTS\n"
        f"Primary Keyword: {brief.target_keyword}\n"
        f"Secondary Keywords: {', '.join(brief.secondary_keywords) or 'none'}\n"
        f"Word Count: {brief.target_length.min}-{brief.target_length.max} words\n"
        f"Tone: {brief.tone.value}",
    ]
    context = []
    if brief.destination:
        context.append(f"Destination: {brief.destination}")
    if brief.category:
        context.append(f"Category: {brief.category}")
    if brief.include_elements:
        context.append(f"Include: {', '.join(brief.include_elements)}")
    if context:
        sections.append("\n".join(context))
    for extra in (_source_section(brief.source_data, "SOURCE DATA"), _brand_section(brief.brand_context)):
        if extra:
            sections.append(extra)
    if brief.type in (ContentType.META_DESCRIPTION, ContentType.SEO_TITLE):
        sections.append("## OUTPUT INSTRUCTIONS\n- Return the text only, no quotes or commentary")
    else:
        sections.append(
            "## OUTPUT INSTRUCTIONS\n"
            "- Return markdown content only\n"
            "- Start with an engaging H1 title\n"
            "- Use H2 and H3 subheadings for structure\n"
            "- Naturally incorporate keywords without stuffing\n"
            "- Include compelling calls-to-action"
        )
    return "\n\n".join(sections)


def build_quality_assessment_prompt(
    content: str,
    brief: ContentBrief,
    source_data: Optional[Mapping[str, Any]] = None,
) -> str:
    """Prompt asking the assessor for a JSON verdict on ``content``."""
    sections = [
        "Assess the quality of this content against our standards.",
        f"## Content to Assess\n{content}",
        "## Original Brief\n"
        f"- Type: {brief.type.value}\n"
        f"- Target keyword: {brief.target_keyword}\n"
        f"- Secondary keywords: {', '.join(brief.secondary_keywords)}\n"
        f"- Target length: {brief.target_length.min}-{brief.target_length.max} words\n"
        f"- Tone: {brief.tone.value}",
    ]
    source = _source_section(source_data, "Source Data (for fact-checking)")
    if source:
        sections.append(source)
    sections.append(
        "## Output Format (JSON only)\n"
        "{\n"
        '  "scores": {"factualAccuracy": <0-100>, "seoCompliance": <0-100>, '
        '"readability": <0-100>, "uniqueness": <0-100>, "engagement": <0-100>},\n'
        '  "issues": [{"type": "<factual|seo|readability|uniqueness|engagement>", '
        '"severity": "<low|medium|high|critical>", "description": "<specific issue>", '
        '"location": "<where>", "suggestion": "<how to fix>"}],\n'
        '  "suggestions": ["<general improvement suggestions>"]\n'
        "}\n\n"
        "Return ONLY valid JSON, no markdown code blocks or explanation."
    )
    return "\n\n".join(sections)


def build_rewrite_prompt(
    content: str,
    issues: Sequence[QualityIssue],
    suggestions: Sequence[str],
    brief: ContentBrief,
) -> str:
    """Prompt asking for a revision of ``content`` that fixes ``issues``."""
    issue_lines = []
    for number, issue in enumerate(issues, start=1):
        line = f"{number}. [{issue.severity.value.upper()}] {issue.type.value}: {issue.description}"
        if issue.suggestion:
            line += f" -> {issue.suggestion}"
        issue_lines.append(line)

    sections = [
        "Rewrite this content to address the identified issues while preserving its strengths.",
        f"## Current Content\n{content}",
        "## Issues to Address\n" + ("\n".join(issue_lines) or "- none reported"),
    ]
    if suggestions:
        sections.append("## Improvement Suggestions\n" + _bullets(suggestions))
    brand = _brand_section(brief.brand_context)
    if brand:
        sections.append(brand)
    sections.append(
        "## Requirements\n"
        f"- Maintain primary keyword: {brief.target_keyword}\n"
        f"- Tone: {brief.tone.value}\n"
        f"- Target length: {brief.target_length.min}-{brief.target_length.max} words\n"
        "- Keep the same structure unless structure was flagged\n"
        "- Return the rewritten content only, no commentary"
    )
    return "\n\n".join(sections)
