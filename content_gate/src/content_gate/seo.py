"""
SEO field validation.

Checks title/meta length bands, focus keyphrase placement, templated
("generic") titles, location/service presence in the title and, when the
caller enforces them, agreement with pre-approved SEO drafts.
"""

import re
from typing import Optional

from .document import Document
from .logging_conf import get_logger
from .requirements import Requirements
from .violations import Category, GateCode, Severity, Violation

logger = get_logger(__name__)


# Boilerplate openers/closers that mark a templated title
GENERIC_TITLE_PATTERNS = [
    r"^the ultimate guide",
    r"^everything you need to know",
    r"^(?:a |the )?complete guide to",
    r"^a guide to",
    r"^introduction to",
    r"^understanding\b",
    r"^why you need",
    r"^what is\b",
    r"^how to get",
    r"^discover\b",
    r"^unlock\b",
    r"^transform\b",
    r"^elevate\b",
    r"best \w+ services$",
    r"professional \w+ services$",
    r"quality \w+ services$",
    r"expert \w+ services$",
    r"top \w+ services$",
    r"your .*journey$",
    r"^guide$",
    r"^services$",
    r"^overview$",
    r"^introduction$",
    r"services\s*\|",
]

_GENERIC_TITLE_PATTERNS = [re.compile(p, re.IGNORECASE) for p in GENERIC_TITLE_PATTERNS]

_LOCATIVE_PATTERN = re.compile(r"\b(?:in|near)\s+[A-Z][\w'-]+")
_WORD_PATTERN = re.compile(r"[a-z0-9]+")


def _v(code: GateCode, severity: Severity, message: str, field: Optional[str] = None,
       suggestion: Optional[str] = None) -> Violation:
    return Violation(code, severity, message, Category.SEO, field, suggestion)


def match_generic_title(title: str) -> Optional[str]:
    """Return the boilerplate fragment a title matches, or None."""
    cleaned = title.strip()
    for pattern in _GENERIC_TITLE_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            return match.group(0)
    return None


def title_mentions_location(title: str, location: str) -> bool:
    """Full location, its first comma segment, or an in/near place phrase."""
    title_lower = title.lower()
    location_lower = location.lower().strip()
    if location_lower and location_lower in title_lower:
        return True
    first_segment = location_lower.split(",")[0].strip()
    if first_segment and first_segment in title_lower:
        return True
    return bool(_LOCATIVE_PATTERN.search(title))


def title_mentions_service(title: str, service: str) -> bool:
    """Service name, or any of its words longer than three characters."""
    title_lower = title.lower()
    service_lower = service.lower().strip()
    if service_lower in title_lower:
        return True
    return any(word in title_lower for word in service_lower.split() if len(word) > 3)


def word_overlap(expected: str, actual: str) -> float:
    """Share of the expected text's words found in the actual text."""
    expected_words = set(_WORD_PATTERN.findall(expected.lower()))
    if not expected_words:
        return 1.0
    actual_words = set(_WORD_PATTERN.findall(actual.lower()))
    return len(expected_words & actual_words) / len(expected_words)


def check_title_length(title: str, req: Requirements) -> list[Violation]:
    if not title:
        return [_v(
            GateCode.SEO_TITLE_MISSING, Severity.ERROR,
            "SEO title is empty",
            field="seo.title",
            suggestion="Write a 30-60 character title naming the service and location",
        )]
    if len(title) < req.seo_title_min_chars:
        return [_v(
            GateCode.SEO_TITLE_TOO_SHORT, Severity.WARNING,
            f"SEO title is {len(title)} chars (minimum {req.seo_title_min_chars})",
            field="seo.title",
            suggestion="Add the location or a differentiator",
        )]
    if len(title) > req.seo_title_max_chars:
        return [_v(
            GateCode.SEO_TITLE_TOO_LONG, Severity.WARNING,
            f"SEO title is {len(title)} chars (maximum {req.seo_title_max_chars})",
            field="seo.title",
            suggestion="Cut filler words so the title is not truncated in results",
        )]
    return []


def check_meta_length(meta: str, req: Requirements) -> list[Violation]:
    if not meta:
        return []
    if len(meta) < req.meta_description_min_chars:
        return [_v(
            GateCode.META_DESCRIPTION_TOO_SHORT, Severity.WARNING,
            f"Meta description is {len(meta)} chars (minimum {req.meta_description_min_chars})",
            field="seo.meta_description",
            suggestion="Add a concrete benefit and a call to action",
        )]
    if len(meta) > req.meta_description_max_chars:
        return [_v(
            GateCode.META_DESCRIPTION_TOO_LONG, Severity.WARNING,
            f"Meta description is {len(meta)} chars (maximum {req.meta_description_max_chars})",
            field="seo.meta_description",
            suggestion="Trim the meta description to avoid truncation",
        )]
    return []


def check_keyphrase(document: Document, req: Requirements) -> list[Violation]:
    keyphrase = document.seo.focus_keyphrase
    if not keyphrase:
        return []

    violations = []
    keyphrase_lower = keyphrase.lower()

    if len(keyphrase.split()) > req.max_keyphrase_words:
        violations.append(_v(
            GateCode.KEYPHRASE_TOO_LONG, Severity.WARNING,
            f"Focus keyphrase has {len(keyphrase.split())} words (maximum {req.max_keyphrase_words})",
            field="seo.focus_keyphrase",
            suggestion="Use a 2-4 word keyphrase",
        ))
    if document.seo.title and keyphrase_lower not in document.seo.title.lower():
        violations.append(_v(
            GateCode.KEYPHRASE_NOT_IN_TITLE, Severity.WARNING,
            f"Focus keyphrase '{keyphrase}' not in SEO title",
            field="seo.title",
            suggestion="Put the keyphrase near the start of the title",
        ))
    if document.seo.meta_description and keyphrase_lower not in document.seo.meta_description.lower():
        violations.append(_v(
            GateCode.KEYPHRASE_NOT_IN_META, Severity.INFO,
            f"Focus keyphrase '{keyphrase}' not in meta description",
            field="seo.meta_description",
            suggestion="Mention the keyphrase once in the meta description",
        ))
    return violations


def check_generic_title(title: str, req: Requirements) -> list[Violation]:
    if not title:
        return []
    matched = match_generic_title(title)
    if not matched:
        return []
    return [_v(
        GateCode.SEO_TITLE_GENERIC, req.generic_title_severity,
        f"SEO title is templated boilerplate ('{matched}')",
        field="seo.title",
        suggestion="Lead with the specific service, place or outcome instead of a stock phrase",
    )]


def check_title_context(title: str, req: Requirements) -> list[Violation]:
    if not title:
        return []
    violations = []
    if req.require_geo_in_title and req.location and not title_mentions_location(title, req.location):
        violations.append(_v(
            GateCode.SEO_TITLE_MISSING_GEO, Severity.ERROR,
            f"SEO title does not mention '{req.location}'",
            field="seo.title",
            suggestion=f"Add '{req.location.split(',')[0].strip()}' to the title",
        ))
    if req.require_service_in_title and req.service and not title_mentions_service(title, req.service):
        violations.append(_v(
            GateCode.SEO_TITLE_MISSING_SERVICE, Severity.ERROR,
            f"SEO title does not mention the service '{req.service}'",
            field="seo.title",
            suggestion="Name the service in the first half of the title",
        ))
    return violations


def check_seo_drafts(document: Document, req: Requirements) -> list[Violation]:
    """Produced fields must stay close to the drafts agreed before generation."""
    if not req.enforce_seo_drafts or req.seo_drafts is None:
        return []

    pairs = [
        (GateCode.SEO_TITLE_DRAFT_MISMATCH, "seo.title", req.seo_drafts.seo_title, document.seo.title),
        (GateCode.H1_DRAFT_MISMATCH, "seo.h1", req.seo_drafts.h1, document.h1),
        (GateCode.META_DESCRIPTION_DRAFT_MISMATCH, "seo.meta_description",
         req.seo_drafts.meta_description, document.seo.meta_description),
    ]

    violations = []
    for code, field, expected, actual in pairs:
        if not expected:
            continue
        overlap = word_overlap(expected, actual or "")
        if overlap < req.seo_draft_min_overlap:
            violations.append(_v(
                code, Severity.ERROR,
                f"Expected '{expected}', got '{actual}' ({overlap:.0%} word overlap)",
                field=field,
                suggestion="Use the approved draft wording",
            ))
    return violations


def validate_seo(document: Document, requirements: Requirements) -> list[Violation]:
    """
    Run every SEO field rule.

    Args:
        document: Document to check
        requirements: Bands, strictness and context for this call

    Returns:
        List of violations
    """
    title = document.seo.title

    violations: list[Violation] = []
    violations.extend(check_title_length(title, requirements))
    violations.extend(check_meta_length(document.seo.meta_description, requirements))
    violations.extend(check_keyphrase(document, requirements))
    violations.extend(check_generic_title(title, requirements))
    violations.extend(check_title_context(title, requirements))
    violations.extend(check_seo_drafts(document, requirements))

    logger.debug("seo_checked", title=title[:60], violations=len(violations))

    return violations
