"""
Section-level checks: AEO FAQ block, heading contract and GEO signals.

These read the document outline (headings and the blocks beneath them)
rather than individual blocks.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from .document import BlockKind, ContentBlock, Document, count_words
from .logging_conf import get_logger
from .requirements import HeadingType, Requirements
from .violations import Category, GateCode, Severity, Violation

logger = get_logger(__name__)


FAQ_HEADING_PATTERN = re.compile(r"\b(?:faqs?|questions?|ask(?:ed)?)\b", re.IGNORECASE)

# Heading text patterns per section type
HEADING_TYPE_PATTERNS = {
    HeadingType.INTENT: [
        r"\b(?:what|why|how|who|when|which)\b",
        r"\b(?:guide|choosing|need to know|explained)\b",
    ],
    HeadingType.EVIDENCE: [
        r"what we(?:'ve|’ve| have)? (?:seen|observed|found|learned)",
        r"\b(?:in practice|on the ground|local evidence|case stud(?:y|ies)|on-site)\b",
        r"\bfrom (?:our|recent) (?:experience|visits|work)\b",
    ],
    HeadingType.GEO: [
        r"\b(?:local|nearby|area|areas|neighbourhoods?|neighborhoods?|around|across)\b",
        r"\b(?:in|near)\s+[A-Z][\w'-]+",
    ],
    HeadingType.PROCESS: [
        r"\b(?:process|steps?|how it works|what to expect|timeline|approach|stages?)\b",
    ],
    HeadingType.FAQ: [
        r"\b(?:faqs?|frequently asked|questions?)\b",
    ],
    HeadingType.COMPARISON: [
        r"\b(?:compar\w*|vs\.?|versus|options|alternatives|pros and cons)\b",
    ],
    HeadingType.PRICING: [
        r"\b(?:pric\w*|costs?|fees?|budget\w*|quotes?|how much)\b",
    ],
    HeadingType.TRUST: [
        r"\b(?:why choose|why us|reviews?|testimonials?|accredit\w*|qualifi\w*|trusted|experience)\b",
    ],
    HeadingType.CTA: [
        r"\b(?:get in touch|contact|book|enquire|next steps?|ready to|call us|get started)\b",
    ],
}

_HEADING_TYPE_PATTERNS = {
    heading_type: [re.compile(p, re.IGNORECASE) for p in patterns]
    for heading_type, patterns in HEADING_TYPE_PATTERNS.items()
}

DECISION_FACTOR_PATTERN = re.compile(
    r"\b(?:compare[sd]?|comparison|versus|vs\.?|checklist|consider|pros and cons|trade-offs?)\b",
    re.IGNORECASE,
)

ANSWER_KINDS = frozenset({
    BlockKind.PARAGRAPH.value,
    BlockKind.LIST.value,
    BlockKind.LIST_ITEM.value,
    BlockKind.QUOTE.value,
})


# =====================================================
# OUTLINE
# =====================================================

def flatten_blocks(document: Document) -> list[ContentBlock]:
    """Heading and leaf text blocks in reading order."""
    flat = []
    for block in document.walk_blocks():
        if block.kind == BlockKind.HEADING.value:
            flat.append(block)
        elif block.kind in ANSWER_KINDS and not block.children:
            flat.append(block)
    return flat


def headings(document: Document) -> list[tuple[int, str]]:
    """(level, text) of every heading, in order."""
    return [
        (block.heading_level, block.text)
        for block in document.walk_blocks()
        if block.kind == BlockKind.HEADING.value and block.text
    ]


@dataclass
class FaqQuestion:
    question: str
    answer_words: int = 0


@dataclass
class FaqSection:
    """An FAQ H2 and the H3 questions beneath it."""
    heading: str
    questions: list[FaqQuestion] = field(default_factory=list)


def find_faq_section(document: Document) -> Optional[FaqSection]:
    """
    Locate the FAQ section.

    Questions are H3 headings after the FAQ H2 and before the next H2;
    an answer is the text of the blocks beneath its question.
    """
    section = None
    current = None

    for block in flatten_blocks(document):
        if block.kind == BlockKind.HEADING.value:
            level = block.heading_level
            if section is None:
                if level == 2 and FAQ_HEADING_PATTERN.search(block.text):
                    section = FaqSection(heading=block.text)
                continue
            if level <= 2:
                break
            if level == 3:
                current = FaqQuestion(question=block.text)
                section.questions.append(current)
            continue

        if current is not None:
            current.answer_words += count_words(block.text)

    return section


# =====================================================
# AEO
# =====================================================

def check_aeo(document: Document, req: Requirements) -> list[Violation]:
    """FAQ block rules, applied only when the caller requires AEO."""
    if not req.require_aeo:
        return []

    section = find_faq_section(document)
    if section is None:
        return [Violation(
            GateCode.AEO_FAQ_MISSING, Severity.ERROR,
            "No FAQ section (H2 mentioning FAQ or questions)",
            Category.NARRATIVE,
            suggestion=f"Add an FAQ H2 with {req.faq_min_questions}-{req.faq_max_questions} H3 questions",
        )]

    violations = []
    count = len(section.questions)
    if count < req.faq_min_questions:
        violations.append(Violation(
            GateCode.AEO_FAQ_TOO_FEW, Severity.ERROR,
            f"FAQ has {count} questions (minimum {req.faq_min_questions})",
            Category.NARRATIVE,
            suggestion="Add questions buyers actually ask, each as an H3",
        ))
    elif count > req.faq_max_questions:
        violations.append(Violation(
            GateCode.AEO_FAQ_TOO_MANY, Severity.WARNING,
            f"FAQ has {count} questions (maximum {req.faq_max_questions})",
            Category.NARRATIVE,
            suggestion="Merge or drop the weakest questions",
        ))

    for question in section.questions:
        if question.answer_words < req.faq_answer_min_words:
            violations.append(Violation(
                GateCode.AEO_ANSWER_TOO_SHORT, Severity.WARNING,
                f"Answer to '{question.question[:60]}' is {question.answer_words} words "
                f"(minimum {req.faq_answer_min_words})",
                Category.NARRATIVE,
                suggestion="Answer directly in the first sentence, then add one concrete detail",
            ))
        elif question.answer_words > req.faq_answer_max_words:
            violations.append(Violation(
                GateCode.AEO_ANSWER_TOO_LONG, Severity.WARNING,
                f"Answer to '{question.question[:60]}' is {question.answer_words} words "
                f"(maximum {req.faq_answer_max_words})",
                Category.NARRATIVE,
                suggestion="Trim the answer so it can be quoted on its own",
            ))

    return violations


# =====================================================
# HEADING CONTRACT
# =====================================================

def heading_matches_type(text: str, heading_type: HeadingType) -> bool:
    return any(p.search(text) for p in _HEADING_TYPE_PATTERNS[heading_type])


def check_heading_contract(document: Document, req: Requirements) -> list[Violation]:
    if not req.required_headings:
        return []

    outline = headings(document)
    violations = []
    for required in req.required_headings:
        found = any(
            level == required.level and heading_matches_type(text, required.type)
            for level, text in outline
        )
        if not found:
            violations.append(Violation(
                GateCode.MISSING_REQUIRED_HEADING, Severity.ERROR,
                f"Missing required H{required.level} '{required.type.value}' section",
                Category.NARRATIVE,
                field="blocks",
                suggestion=f"Add an H{required.level} introducing the {required.type.value} section",
            ))
    return violations


# =====================================================
# GEO
# =====================================================

def _mentions(text_lower: str, term: str) -> bool:
    term = term.lower().strip()
    return bool(term) and re.search(r"(?<!\w)" + re.escape(term) + r"(?!\w)", text_lower) is not None


def location_terms(req: Requirements) -> list[str]:
    """Location, its first comma segment, and any extra geo terms."""
    terms = []
    if req.location:
        terms.append(req.location)
        first_segment = req.location.split(",")[0].strip()
        if first_segment and first_segment != req.location:
            terms.append(first_segment)
    terms.extend(t for t in req.geo_terms if t.strip())
    return terms


def has_decision_factors(document: Document, text: str) -> bool:
    """A table, a list, or comparison/checklist language."""
    for block in document.walk_blocks():
        if block.kind in (BlockKind.TABLE.value, BlockKind.LIST.value):
            return True
    return DECISION_FACTOR_PATTERN.search(text) is not None


def check_geo(document: Document, req: Requirements, text: Optional[str] = None) -> list[Violation]:
    """Local relevance rules, applied only when the caller requires GEO."""
    if not req.require_geo:
        return []

    text = text if text is not None else document.to_text()
    text_lower = text.lower()
    violations = []

    terms = location_terms(req)
    if terms and not any(_mentions(text_lower, term) for term in terms):
        violations.append(Violation(
            GateCode.GEO_MISSING_LOCAL_REFERENCE, Severity.ERROR,
            f"Content never mentions {terms[0]!r}",
            Category.GEO,
            suggestion="Name the town or area in the introduction and one body section",
        ))

    nearby = [area for area in req.nearby_areas if area.strip()]
    if nearby and not any(_mentions(text_lower, area) for area in nearby):
        violations.append(Violation(
            GateCode.GEO_MISSING_NEARBY_AREA, Severity.WARNING,
            "No nearby areas mentioned",
            Category.GEO,
            suggestion="Mention one of: " + ", ".join(nearby[:5]),
        ))

    if not has_decision_factors(document, text):
        violations.append(Violation(
            GateCode.GEO_MISSING_DECISION_FACTORS, Severity.WARNING,
            "No local decision factors (comparison, checklist or list)",
            Category.GEO,
            suggestion="Add a short checklist of what to consider locally",
        ))

    logger.debug("geo_checked", violations=len(violations))

    return violations


def validate_sections(document: Document, requirements: Requirements, text: Optional[str] = None) -> list[Violation]:
    """AEO and heading contract (narrative category), then GEO."""
    violations = []
    violations.extend(check_aeo(document, requirements))
    violations.extend(check_heading_contract(document, requirements))
    violations.extend(check_geo(document, requirements, text))
    return violations
