"""
Requirements bundle for a single gate call.

Assembled by the caller from task configuration and passed explicitly to
the gate. Frozen: every field is read-only input. Field constraints reject
limits that would make the gate meaningless (e.g. max_blocks < 10).
"""

import re
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .config import Settings, get_settings
from .violations import Severity


class GateStrictness(str, Enum):
    """How hard the SEO title rules bite."""
    STRICT = "strict"        # Generic titles are errors
    STANDARD = "standard"    # Generic titles are warnings


class HeadingType(str, Enum):
    """Section types a heading contract can require."""
    INTENT = "intent"
    EVIDENCE = "evidence"
    GEO = "geo"
    PROCESS = "process"
    FAQ = "faq"
    COMPARISON = "comparison"
    PRICING = "pricing"
    TRUST = "trust"
    CTA = "cta"


CASE_STUDY_PAGE_PATTERN = re.compile(
    r"case.?study|what we (?:saw|observed|captured)|local.?case",
    re.IGNORECASE,
)


class RequiredHeading(BaseModel):
    """A heading the article must contain."""

    model_config = ConfigDict(frozen=True)

    type: HeadingType
    level: int = Field(2, ge=1, le=6)


class SeoDrafts(BaseModel):
    """SEO drafts agreed before generation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    seo_title: Optional[str] = Field(
        None, validation_alias=AliasChoices("seo_title", "seoTitleDraft", "seo_title_draft"),
    )
    h1: Optional[str] = Field(
        None, validation_alias=AliasChoices("h1", "h1Draft", "h1_draft"),
    )
    meta_description: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("meta_description", "metaDescriptionDraft", "meta_description_draft"),
    )


class Requirements(BaseModel):
    """Caller-supplied configuration for one validation call."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Structure
    max_blocks: int = Field(60, ge=10)
    max_html_bytes: int = Field(60_000, ge=5000)
    max_h2_count: int = Field(10, ge=1)
    max_table_rows: int = Field(8, ge=1)
    max_paragraph_words: int = Field(300, ge=1)
    max_excerpt_chars: int = Field(160, ge=1)
    max_internal_links: int = Field(5, ge=0)
    min_keyphrase_occurrences: int = Field(2, ge=0)
    min_word_count: int = Field(0, ge=0)
    min_reading_minutes: int = Field(0, ge=0)
    words_per_minute: int = Field(200, ge=1)
    required_internal_links: list[str] = Field(default_factory=list)
    require_cta: bool = True
    allow_empty_paragraphs: bool = False

    # SEO
    seo_title_min_chars: int = Field(30, ge=0)
    seo_title_max_chars: int = Field(60, ge=1)
    meta_description_min_chars: int = Field(120, ge=0)
    meta_description_max_chars: int = Field(160, ge=1)
    max_keyphrase_words: int = Field(4, ge=1)
    gate_strictness: GateStrictness = GateStrictness.STRICT
    require_geo_in_title: bool = False
    require_service_in_title: bool = False
    seo_drafts: Optional[SeoDrafts] = None
    enforce_seo_drafts: bool = False
    seo_draft_min_overlap: float = Field(0.75, gt=0, le=1)

    # Context
    service: Optional[str] = None
    location: Optional[str] = None
    nearby_areas: list[str] = Field(default_factory=list)
    geo_terms: list[str] = Field(default_factory=list)
    require_geo: bool = False
    page_type: Optional[str] = None

    # Authority and evidence
    min_authority_score: int = Field(70, ge=0, le=100)
    required_authority_signals: list[str] = Field(default_factory=list)
    vision_facts: list[str] = Field(default_factory=list)
    user_facts: list[str] = Field(default_factory=list)
    vision_fact_threshold: float = Field(0.5, gt=0, le=1)
    user_fact_threshold: float = Field(0.6, gt=0, le=1)
    min_vision_facts: int = Field(3, ge=1)
    min_user_facts: int = Field(2, ge=1)
    fact_min_word_length: int = Field(4, ge=1)
    require_evidence_markers: bool = True

    # AEO and heading contract
    require_aeo: bool = False
    faq_min_questions: int = Field(5, ge=1)
    faq_max_questions: int = Field(7, ge=1)
    faq_answer_min_words: int = Field(80, ge=0)
    faq_answer_max_words: int = Field(120, ge=1)
    required_headings: list[RequiredHeading] = Field(default_factory=list)

    # Narrative outcomes
    check_narrative: bool = True
    strict_outcomes: bool = False
    missing_outcome_severity: Severity = Severity.ERROR
    vague_outcome_severity: Severity = Severity.ERROR

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "Requirements":
        """
        Build requirements from configured defaults.

        Args:
            settings: Settings to read (cached settings when omitted)
            **overrides: Per-call values that win over settings

        Returns:
            Requirements
        """
        settings = settings or get_settings()
        values = settings.requirement_defaults()
        values.update(overrides)
        return cls(**values)

    @property
    def is_case_study(self) -> bool:
        """Case-study pages need a stronger narrative outcome."""
        if self.strict_outcomes:
            return True
        return bool(self.page_type and CASE_STUDY_PAGE_PATTERN.search(self.page_type))

    @property
    def generic_title_severity(self) -> Severity:
        if self.gate_strictness == GateStrictness.STRICT:
            return Severity.ERROR
        return Severity.WARNING
