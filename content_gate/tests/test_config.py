"""
Tests for settings and the requirements bundle.
"""

import pytest
from pydantic import ValidationError

from content_gate.config import Settings, clear_settings_cache, get_settings
from content_gate.requirements import GateStrictness, Requirements
from content_gate.violations import Severity


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        """Should expose the documented default limits."""
        settings = Settings(_env_file=None)

        assert settings.max_blocks == 60
        assert settings.max_html_bytes == 60_000
        assert settings.min_authority_score == 70
        assert settings.gate_strictness == "strict"
        assert settings.repair_seed is None

    def test_env_override(self, monkeypatch):
        """Should read limits from environment variables."""
        monkeypatch.setenv("MAX_BLOCKS", "80")
        monkeypatch.setenv("GATE_STRICTNESS", "Standard")
        clear_settings_cache()
        try:
            settings = get_settings()
            assert settings.max_blocks == 80
            assert settings.gate_strictness == "standard"
        finally:
            clear_settings_cache()

    def test_invalid_strictness(self):
        """Should reject unknown strictness levels."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, gate_strictness="lenient")

    def test_invalid_ratio(self):
        """Should reject thresholds outside (0, 1]."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, vision_fact_threshold=1.5)

    def test_requirement_defaults_map_onto_requirements(self):
        """Every default should be a Requirements field."""
        defaults = Settings(_env_file=None).requirement_defaults()

        assert "log_level" not in defaults
        assert "repair_seed" not in defaults
        assert set(defaults) <= set(Requirements.model_fields)


class TestRequirements:
    """Tests for the requirements bundle."""

    def test_from_settings_with_overrides(self):
        """Overrides should win over settings."""
        settings = Settings(_env_file=None, max_blocks=80, gate_strictness="standard")

        requirements = Requirements.from_settings(settings, max_h2_count=4, service="plumber")

        assert requirements.max_blocks == 80
        assert requirements.max_h2_count == 4
        assert requirements.gate_strictness == GateStrictness.STANDARD
        assert requirements.generic_title_severity == Severity.WARNING
        assert requirements.service == "plumber"

    def test_from_settings_accepts_draft_aliases(self):
        """Should accept camelCase draft keys from JSON requirement files."""
        requirements = Requirements.from_settings(
            Settings(_env_file=None),
            seo_drafts={"seoTitleDraft": "Selling in Bath"},
            enforce_seo_drafts=True,
        )

        assert requirements.seo_drafts.seo_title == "Selling in Bath"

    def test_rejects_meaningless_limits(self):
        """Should refuse limits below their floors."""
        with pytest.raises(ValidationError):
            Requirements(max_blocks=5)
        with pytest.raises(ValidationError):
            Requirements(min_authority_score=120)

    def test_frozen(self):
        """Should be read-only."""
        requirements = Requirements()

        with pytest.raises(ValidationError):
            requirements.max_blocks = 100

    @pytest.mark.parametrize("page_type,strict,expected", [
        (None, False, False),
        ("service page", False, False),
        ("Local Case Study", False, True),
        ("what we saw", False, True),
        ("service page", True, True),
    ])
    def test_is_case_study(self, page_type, strict, expected):
        """Should treat case-study page types and strict outcomes alike."""
        requirements = Requirements(page_type=page_type, strict_outcomes=strict)

        assert requirements.is_case_study is expected
