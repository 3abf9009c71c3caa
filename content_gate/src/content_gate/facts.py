"""
Fact fuzzy-matching against document text.

A supplied fact counts as "used" when any of:
1. enough of its significant words appear in the text
   (at least max(min(2, n), ceil(n * threshold)) of n keywords)
2. any number in the fact appears in the text as a whole number
3. the whole fact appears verbatim (case and punctuation ignored) and
   holds at least one word that is not a stop-word

Significant words are lowercased, punctuation-stripped words of at least
four characters that are not stop-words.

Two callers share the matcher:
- vision facts: observations from image analysis or site visits
  (min(3, N) must be used, plus evidence marker phrasing)
- user facts: hard facts the client insists on (min(2, N), always an error)
"""

import math
import re
from dataclasses import dataclass, field, asdict
from typing import Optional

from .document import BlockKind, Document
from .logging_conf import get_logger
from .requirements import Requirements
from .violations import Category, GateCode, Severity, Violation

logger = get_logger(__name__)


STOP_WORDS = frozenset({
    "the", "a", "an", "is", "was", "are", "were", "been", "be", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "must", "shall", "can", "need", "dare", "ought", "used", "to",
    "of", "in", "for", "on", "with", "at", "by", "from", "as", "into", "through",
    "during", "before", "after", "above", "below", "between", "under", "again",
    "further", "then", "once", "here", "there", "when", "where", "why", "how",
    "all", "each", "every", "both", "few", "more", "most", "other", "some",
    "such", "no", "nor", "not", "only", "own", "same", "so", "than", "too",
    "very", "just", "also", "now", "and", "but", "or", "if", "this", "that",
    "these", "those", "what", "which", "who", "whom", "whose", "their", "them",
    "they", "with", "about", "over", "your", "our", "its",
})

# Phrases that frame content as first-hand evidence
EVIDENCE_MARKERS = [
    "in practice",
    "from the visuals",
    "we often see",
    "from recent site visits",
    "on the ground",
    "based on local inspections",
    "we've observed",
    "we have observed",
    "during recent work",
    "from our experience on-site",
    "local evidence",
    "what we see",
    "visual evidence",
    "as shown",
    "photographed",
    "documented",
]

# Heading phrases that introduce a dedicated evidence section
EVIDENCE_HEADINGS = [
    "what we've seen",
    "what we have seen",
    "in practice",
    "local evidence",
    "from our experience",
    "on-site observations",
    "on the ground",
]

_EVIDENCE_MARKERS = [
    (marker, re.compile(r"\b" + re.escape(marker) + r"\b", re.IGNORECASE))
    for marker in EVIDENCE_MARKERS
]

_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
_NUMBER_PATTERN = re.compile(r"\d+(?:[.,]\d+)?")


@dataclass
class FactMatch:
    """How one fact matched the text."""
    fact: str
    used: bool
    keywords: list[str] = field(default_factory=list)
    matched_keywords: list[str] = field(default_factory=list)
    required_matches: int = 0
    matched_numbers: list[str] = field(default_factory=list)
    verbatim: bool = False


@dataclass
class FactUsageReport:
    """Usage of a list of facts against a minimum."""
    matches: list[FactMatch] = field(default_factory=list)
    required: int = 0

    @property
    def used_count(self) -> int:
        return sum(1 for m in self.matches if m.used)

    @property
    def passed(self) -> bool:
        return self.used_count >= self.required

    @property
    def missing_facts(self) -> list[str]:
        return [m.fact for m in self.matches if not m.used]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            **asdict(self),
            "used_count": self.used_count,
            "passed": self.passed,
        }


def extract_fact_keywords(fact: str, min_word_length: int = 4) -> list[str]:
    """Significant words of a fact, in order, without duplicates."""
    words = _PUNCTUATION_PATTERN.sub(" ", fact.lower()).split()
    keywords = []
    for word in words:
        if len(word) >= min_word_length and word not in STOP_WORDS and word not in keywords:
            keywords.append(word)
    return keywords


def normalize_fact_text(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    return " ".join(_PUNCTUATION_PATTERN.sub(" ", text.lower()).split())


def _verbatim_in_text(fact: str, text: str) -> bool:
    normalized = normalize_fact_text(fact)
    if not any(word not in STOP_WORDS for word in normalized.split()):
        return False
    return re.search(r"\b" + re.escape(normalized) + r"\b", normalize_fact_text(text)) is not None


def extract_numbers(fact: str) -> list[str]:
    """Numeric tokens in a fact (integers and decimals)."""
    return _NUMBER_PATTERN.findall(fact)


def _number_in_text(number: str, text: str) -> bool:
    pattern = r"(?<![\d.,])" + re.escape(number) + r"(?![\d]|[.,]\d)"
    return re.search(pattern, text) is not None


def match_fact(
    fact: str,
    text: str,
    threshold: float = 0.5,
    min_word_length: int = 4,
) -> FactMatch:
    """
    Decide whether a fact is reflected in the text.

    Args:
        fact: Short factual claim
        text: Document plain text
        threshold: Share of keywords that must appear
        min_word_length: Shortest word counted as significant

    Returns:
        FactMatch with the evidence for the decision
    """
    text_lower = text.lower()
    keywords = extract_fact_keywords(fact, min_word_length)
    required = max(min(2, len(keywords)), math.ceil(len(keywords) * threshold)) if keywords else 0

    matched_keywords = [kw for kw in keywords if kw in text_lower]
    matched_numbers = [n for n in extract_numbers(fact) if _number_in_text(n, text)]

    verbatim = _verbatim_in_text(fact, text)

    used = (
        bool(matched_numbers)
        or verbatim
        or (bool(keywords) and len(matched_keywords) >= required)
    )

    return FactMatch(
        fact=fact,
        used=used,
        keywords=keywords,
        matched_keywords=matched_keywords,
        required_matches=required,
        matched_numbers=matched_numbers,
        verbatim=verbatim,
    )


def check_phrases(
    phrases: list[str],
    text: str,
    threshold: float = 0.6,
    min_word_length: int = 4,
) -> list[FactMatch]:
    """Match free-form "must-say" phrases against the text."""
    return [match_fact(p, text, threshold, min_word_length) for p in phrases if p.strip()]


def check_fact_usage(
    facts: list[str],
    text: str,
    minimum: int,
    threshold: float,
    min_word_length: int = 4,
) -> FactUsageReport:
    """Match every fact and require min(minimum, len(facts)) of them."""
    matches = check_phrases(facts, text, threshold, min_word_length)
    return FactUsageReport(matches=matches, required=min(minimum, len(matches)))


def find_evidence_markers(text: str) -> list[str]:
    """Evidence marker phrases present in the text."""
    return [marker for marker, pattern in _EVIDENCE_MARKERS if pattern.search(text)]


def has_evidence_heading(document: Document) -> bool:
    """Check for a heading that introduces first-hand evidence."""
    for block in document.walk_blocks():
        if block.kind != BlockKind.HEADING.value:
            continue
        heading = block.text.lower().replace("’", "'")
        if any(phrase in heading for phrase in EVIDENCE_HEADINGS):
            return True
    return False


def validate_vision_facts(
    document: Document,
    requirements: Requirements,
    text: Optional[str] = None,
) -> tuple[list[Violation], FactUsageReport]:
    """
    Check that supplied vision facts are traceably used.

    Returns:
        Tuple of (violations, usage report)
    """
    facts = [f for f in requirements.vision_facts if f.strip()]
    text = text if text is not None else document.to_text()

    report = check_fact_usage(
        facts,
        text,
        requirements.min_vision_facts,
        requirements.vision_fact_threshold,
        requirements.fact_min_word_length,
    )
    if not facts:
        return [], report

    violations = []
    if not report.passed:
        violations.append(Violation(
            GateCode.VISION_FACTS_MIN_NOT_MET, Severity.ERROR,
            f"Only {report.used_count}/{len(facts)} vision facts used (need {report.required})",
            Category.AUTHORITY,
            field="vision_facts",
            suggestion="Work these observations into the body: " + "; ".join(report.missing_facts[:3]),
        ))

    if requirements.require_evidence_markers:
        if not find_evidence_markers(text):
            violations.append(Violation(
                GateCode.VISION_MISSING_MARKERS, Severity.WARNING,
                "Vision facts are not framed as first-hand evidence",
                Category.AUTHORITY,
                suggestion="Introduce observations with phrasing like 'in practice' or 'from recent site visits'",
            ))
        if len(facts) >= 2 and not has_evidence_heading(document):
            violations.append(Violation(
                GateCode.VISION_MISSING_EVIDENCE_HEADER, Severity.WARNING,
                "No dedicated evidence section heading",
                Category.AUTHORITY,
                suggestion="Add an H2 such as \"What We've Seen in Practice\"",
            ))

    logger.debug(
        "vision_facts_checked",
        facts=len(facts),
        used=report.used_count,
        required=report.required,
    )

    return violations, report


def validate_user_facts(
    document: Document,
    requirements: Requirements,
    text: Optional[str] = None,
) -> tuple[list[Violation], FactUsageReport]:
    """
    Check that user-provided hard facts are used.

    A shortfall is always an error.

    Returns:
        Tuple of (violations, usage report)
    """
    facts = [f for f in requirements.user_facts if f.strip()]
    text = text if text is not None else document.to_text()

    report = check_fact_usage(
        facts,
        text,
        requirements.min_user_facts,
        requirements.user_fact_threshold,
        requirements.fact_min_word_length,
    )
    if not facts or report.passed:
        return [], report

    logger.debug("user_facts_missing", used=report.used_count, required=report.required)

    return [Violation(
        GateCode.USER_FACTS_NOT_USED, Severity.ERROR,
        f"Only {report.used_count}/{len(facts)} user facts used (need {report.required})",
        Category.AUTHORITY,
        field="user_facts",
        suggestion="State these facts explicitly: " + "; ".join(report.missing_facts[:3]),
    )], report
