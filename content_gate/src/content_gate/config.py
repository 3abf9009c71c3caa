"""
Configuration management using Pydantic Settings.

Default gate limits are loaded from environment variables (or a .env file)
and used to build a Requirements bundle. The gate itself never reads
settings; callers pass an explicit Requirements object.
"""

from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Structural limits
    max_blocks: int = Field(60, description="Maximum number of blocks (recursive)")
    max_html_bytes: int = Field(60_000, description="Maximum rendered markup size in bytes")
    max_h2_count: int = Field(10, description="Maximum H2 headings before warning")
    max_table_rows: int = Field(8, description="Maximum rows in any table before warning")
    max_paragraph_words: int = Field(300, description="Longest paragraph allowed before warning")
    max_excerpt_chars: int = Field(160, description="Maximum excerpt length")
    max_internal_links: int = Field(5, description="Internal links before warning")
    min_keyphrase_occurrences: int = Field(2, description="Focus keyphrase occurrences expected")
    min_word_count: int = Field(0, description="Minimum words (0 disables)")
    min_reading_minutes: int = Field(0, description="Minimum reading time in minutes (0 disables)")
    words_per_minute: int = Field(200, description="Reading speed used for reading time")

    # SEO
    seo_title_min_chars: int = Field(30, description="Shortest SEO title before warning")
    seo_title_max_chars: int = Field(60, description="Longest SEO title before warning")
    meta_description_min_chars: int = Field(120, description="Shortest meta description before warning")
    meta_description_max_chars: int = Field(160, description="Longest meta description before warning")
    max_keyphrase_words: int = Field(4, description="Focus keyphrase word limit")
    gate_strictness: str = Field("strict", description="strict = generic titles are errors, standard = warnings")
    seo_draft_min_overlap: float = Field(0.75, description="Word overlap required against SEO drafts")

    # Authority / evidence
    min_authority_score: int = Field(70, description="Minimum EEAT score (0-100)")
    vision_fact_threshold: float = Field(0.5, description="Keyword overlap for a vision fact to count as used")
    user_fact_threshold: float = Field(0.6, description="Keyword overlap for a user fact to count as used")

    # AEO
    faq_min_questions: int = Field(5, description="Minimum FAQ questions when AEO is required")
    faq_max_questions: int = Field(7, description="Maximum FAQ questions before warning")
    faq_answer_min_words: int = Field(80, description="Shortest FAQ answer before warning")
    faq_answer_max_words: int = Field(120, description="Longest FAQ answer before warning")

    # Auto-repair
    repair_seed: Optional[int] = Field(None, description="Seed for repair template selection (unset = random)")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Output logs as JSON")

    @field_validator("gate_strictness")
    @classmethod
    def validate_strictness(cls, v: str) -> str:
        """Validate gate strictness level."""
        value = v.strip().lower()
        if value not in ("strict", "standard"):
            raise ValueError(f"Invalid gate_strictness: {v!r} (expected 'strict' or 'standard')")
        return value

    @field_validator("vision_fact_threshold", "user_fact_threshold", "seo_draft_min_overlap")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        """Ratios must fall in (0, 1]."""
        if not 0 < v <= 1:
            raise ValueError(f"Ratio {v} not in range (0, 1]")
        return v

    def requirement_defaults(self) -> dict:
        """Get the settings that map onto Requirements fields."""
        return self.model_dump(exclude={"repair_seed", "log_level", "log_json"})


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Clear cache to allow re-reading settings (useful for tests)
def clear_settings_cache():
    """Clear the settings cache."""
    get_settings.cache_clear()
