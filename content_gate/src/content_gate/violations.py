"""
Violation vocabulary for the quality gate.

Every rule in the gate reports through a Violation carrying a stable
GateCode. Codes are the public contract: callers branch on them, e.g. to
decide whether a failed document is sent back for regeneration or needs a
deterministic fix first.

Severity is fixed at the point of detection:
- error: blocks publication
- warning: surfaced, non-blocking
- info: advisory only
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Severity(str, Enum):
    """How much a violation matters to the verdict."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(str, Enum):
    """Scoring categories of the gate (20 points each)."""
    STRUCTURE = "structure"      # Size, shape and markup safety
    SEO = "seo"                  # Title, meta, keyphrase, drafts
    AUTHORITY = "authority"      # EEAT score, vision and user facts
    NARRATIVE = "narrative"      # Narrative outcomes, AEO, heading contract
    GEO = "geo"                  # Local specificity


class GateCode(str, Enum):
    """Stable violation codes."""
    # Structure
    BLOCK_COUNT_EXCEEDED = "BLOCK_COUNT_EXCEEDED"
    HTML_SIZE_EXCEEDED = "HTML_SIZE_EXCEEDED"
    EXCESSIVE_H2_COUNT = "EXCESSIVE_H2_COUNT"
    TABLE_TOO_LARGE = "TABLE_TOO_LARGE"
    PARAGRAPH_TOO_LONG = "PARAGRAPH_TOO_LONG"
    FORBIDDEN_MARKUP = "FORBIDDEN_MARKUP"
    FORBIDDEN_BLOCK_TYPE = "FORBIDDEN_BLOCK_TYPE"
    UNKNOWN_BLOCK_KIND = "UNKNOWN_BLOCK_KIND"
    MALFORMED_BLOCK = "MALFORMED_BLOCK"
    IMAGE_MISSING_REFERENCE = "IMAGE_MISSING_REFERENCE"
    IMAGE_EMPTY_MARKUP = "IMAGE_EMPTY_MARKUP"
    IMAGE_INVALID_SRC = "IMAGE_INVALID_SRC"
    EMPTY_PARAGRAPH = "EMPTY_PARAGRAPH"
    EXCERPT_TOO_LONG = "EXCERPT_TOO_LONG"
    MISSING_CTA = "MISSING_CTA"
    CONTENT_TOO_SHORT = "CONTENT_TOO_SHORT"
    READING_TIME_TOO_LOW = "READING_TIME_TOO_LOW"
    MISSING_INTERNAL_LINKS = "MISSING_INTERNAL_LINKS"
    EXCESSIVE_INTERNAL_LINKS = "EXCESSIVE_INTERNAL_LINKS"
    INSUFFICIENT_KEYPHRASE = "INSUFFICIENT_KEYPHRASE"

    # SEO
    SEO_TITLE_MISSING = "SEO_TITLE_MISSING"
    SEO_TITLE_TOO_SHORT = "SEO_TITLE_TOO_SHORT"
    SEO_TITLE_TOO_LONG = "SEO_TITLE_TOO_LONG"
    META_DESCRIPTION_TOO_SHORT = "META_DESCRIPTION_TOO_SHORT"
    META_DESCRIPTION_TOO_LONG = "META_DESCRIPTION_TOO_LONG"
    KEYPHRASE_TOO_LONG = "KEYPHRASE_TOO_LONG"
    KEYPHRASE_NOT_IN_TITLE = "KEYPHRASE_NOT_IN_TITLE"
    KEYPHRASE_NOT_IN_META = "KEYPHRASE_NOT_IN_META"
    SEO_TITLE_GENERIC = "SEO_TITLE_GENERIC"
    SEO_TITLE_MISSING_GEO = "SEO_TITLE_MISSING_GEO"
    SEO_TITLE_MISSING_SERVICE = "SEO_TITLE_MISSING_SERVICE"
    SEO_TITLE_DRAFT_MISMATCH = "SEO_TITLE_DRAFT_MISMATCH"
    H1_DRAFT_MISMATCH = "H1_DRAFT_MISMATCH"
    META_DESCRIPTION_DRAFT_MISMATCH = "META_DESCRIPTION_DRAFT_MISMATCH"

    # Authority
    EEAT_SCORE_LOW = "EEAT_SCORE_LOW"
    EEAT_SIGNAL_MISSING = "EEAT_SIGNAL_MISSING"
    MISSING_DECISION_SUPPORT = "MISSING_DECISION_SUPPORT"
    VISION_FACTS_MIN_NOT_MET = "VISION_FACTS_MIN_NOT_MET"
    VISION_MISSING_MARKERS = "VISION_MISSING_MARKERS"
    VISION_MISSING_EVIDENCE_HEADER = "VISION_MISSING_EVIDENCE_HEADER"
    USER_FACTS_NOT_USED = "USER_FACTS_NOT_USED"

    # Narrative / AEO
    VISION_WITHOUT_OUTCOME = "VISION_WITHOUT_OUTCOME"
    VAGUE_OUTCOME = "VAGUE_OUTCOME"
    OUTCOME_BELOW_CASE_STUDY_THRESHOLD = "OUTCOME_BELOW_CASE_STUDY_THRESHOLD"
    OUTCOME_WITHOUT_VISION = "OUTCOME_WITHOUT_VISION"
    NARRATIVE_WEAK_CAUSATION = "NARRATIVE_WEAK_CAUSATION"
    NARRATIVE_WEAK_OUTCOME = "NARRATIVE_WEAK_OUTCOME"
    AEO_FAQ_MISSING = "AEO_FAQ_MISSING"
    AEO_FAQ_TOO_FEW = "AEO_FAQ_TOO_FEW"
    AEO_FAQ_TOO_MANY = "AEO_FAQ_TOO_MANY"
    AEO_ANSWER_TOO_SHORT = "AEO_ANSWER_TOO_SHORT"
    AEO_ANSWER_TOO_LONG = "AEO_ANSWER_TOO_LONG"
    MISSING_REQUIRED_HEADING = "MISSING_REQUIRED_HEADING"

    # Geo
    GEO_MISSING_LOCAL_REFERENCE = "GEO_MISSING_LOCAL_REFERENCE"
    GEO_MISSING_NEARBY_AREA = "GEO_MISSING_NEARBY_AREA"
    GEO_MISSING_DECISION_FACTORS = "GEO_MISSING_DECISION_FACTORS"


# Violations that an expand/regeneration pass is expected to fix
REGENERATION_CODES = frozenset({
    GateCode.CONTENT_TOO_SHORT,
    GateCode.READING_TIME_TOO_LOW,
    GateCode.VISION_FACTS_MIN_NOT_MET,
    GateCode.MISSING_DECISION_SUPPORT,
    GateCode.GEO_MISSING_DECISION_FACTORS,
    GateCode.AEO_FAQ_MISSING,
    GateCode.AEO_FAQ_TOO_FEW,
    GateCode.SEO_TITLE_DRAFT_MISMATCH,
    GateCode.H1_DRAFT_MISMATCH,
    GateCode.META_DESCRIPTION_DRAFT_MISMATCH,
    GateCode.VISION_MISSING_MARKERS,
    GateCode.VISION_MISSING_EVIDENCE_HEADER,
})

# Violations the auto-repair synthesizer can patch without a new generation
NARRATIVE_REPAIR_CODES = frozenset({
    GateCode.VISION_WITHOUT_OUTCOME,
})

# Violations that need a deterministic fix (strip or rebuild the block)
TERMINAL_CODES = frozenset({
    GateCode.MALFORMED_BLOCK,
    GateCode.FORBIDDEN_MARKUP,
    GateCode.UNKNOWN_BLOCK_KIND,
    GateCode.IMAGE_MISSING_REFERENCE,
    GateCode.IMAGE_EMPTY_MARKUP,
    GateCode.IMAGE_INVALID_SRC,
})


@dataclass(frozen=True)
class Violation:
    """A single rule violation."""
    code: GateCode
    severity: Severity
    message: str
    category: Category
    field: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def triggers_regeneration(self) -> bool:
        return is_regeneration_trigger(self.code)

    @property
    def is_terminal(self) -> bool:
        return self.code in TERMINAL_CODES

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "field": self.field,
            "suggestion": self.suggestion,
        }

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.code.value}: {self.message}"


def is_regeneration_trigger(code: Union[GateCode, str]) -> bool:
    """Check whether a violation code belongs to the regeneration allow-list."""
    try:
        return GateCode(code) in REGENERATION_CODES
    except ValueError:
        return False
