"""
Tests for authority (EEAT) scoring.
"""

import pytest

from content_gate.authority import (
    DEFAULT_AUTHORITY_SIGNALS,
    AuthoritySignal,
    AuthorityScorer,
)
from content_gate.document import Document
from content_gate.requirements import Requirements
from content_gate.violations import Category, GateCode, Severity


FULL_TEXT = (
    "## Frequently asked questions\n"
    "| Option | Cost |\n"
    "- Check the survey\n"
    "If you're selling, in our experience the process takes weeks. However, it varies."
)


def codes(violations):
    return [v.code for v in violations]


class TestScore:
    """Tests for the weighted score."""

    def test_default_weights_sum_to_100(self):
        """Default signals should add up to 100."""
        assert sum(s.weight for s in DEFAULT_AUTHORITY_SIGNALS) == 100

    def test_all_signals_present(self):
        """Should award full marks when every signal is present."""
        result = AuthorityScorer().score(FULL_TEXT, Requirements())

        assert result.score == 100
        assert result.missing == []

    def test_local_context_is_free_without_geo(self):
        """Should award local context when geo is not required."""
        result = AuthorityScorer().score("Nothing here.", Requirements())

        assert result.score == 10
        assert result.found == ["local_context"]

    @pytest.mark.parametrize("text,present", [
        ("Homes in Bath sell fast.", True),
        ("Homes nearby sell fast.", True),
        ("Homes sell fast.", False),
    ])
    def test_local_context_with_geo(self, text, present):
        """Should need the location or local language when geo is required."""
        result = AuthorityScorer().score(text, Requirements(require_geo=True, location="Bath"))

        assert ("local_context" in result.found) is present

    def test_weight_override_renormalizes(self):
        """Should normalize to 100 after weights change."""
        text = "In our experience it varies."

        default = AuthorityScorer().score(text, Requirements())
        heavier = AuthorityScorer(weights={"first_party_experience": 40}).score(text, Requirements())

        assert default.score == 30
        assert heavier.score == 42

    def test_unknown_weight_rejected(self):
        """Should refuse weights for signals that do not exist."""
        with pytest.raises(ValueError):
            AuthorityScorer(weights={"backlinks": 10})

    def test_to_dict(self):
        """Should serialise score and signal lists."""
        data = AuthorityScorer().score("Nothing here.", Requirements()).to_dict()

        assert data["score"] == 10
        assert data["max_score"] == 100
        assert "first_party_experience" in data["missing"]


class TestEvaluate:
    """Tests for authority violations."""

    def test_low_score_and_missing_decision_support(self):
        """A bare document should fail EEAT and lack decision support."""
        document = Document(title="Bare")

        violations, result = AuthorityScorer().evaluate(document, Requirements(), text="Nothing here.")

        assert codes(violations) == [GateCode.EEAT_SCORE_LOW, GateCode.MISSING_DECISION_SUPPORT]
        assert violations[0].severity == Severity.ERROR
        assert violations[1].severity == Severity.WARNING
        assert all(v.category == Category.AUTHORITY for v in violations)
        assert "first_party_experience" in violations[0].suggestion

    def test_full_text_passes(self):
        """Should raise nothing for a fully signalled text."""
        violations, _ = AuthorityScorer().evaluate(Document(title="Full"), Requirements(), text=FULL_TEXT)

        assert violations == []

    def test_required_signals(self):
        """Should fail missing required signals and skip unknown names."""
        text = FULL_TEXT.replace("However, it varies.", "")
        requirements = Requirements(required_authority_signals=["trade_offs", "bogus", "checklist"])

        violations, _ = AuthorityScorer().evaluate(Document(title="Doc"), requirements, text=text)

        assert codes(violations) == [GateCode.EEAT_SIGNAL_MISSING]
        assert "trade_offs" in violations[0].message

    def test_custom_signals_without_decision_signals(self):
        """Should not report missing decision support when no decision signals are configured."""
        scorer = AuthorityScorer(signals=[AuthoritySignal("awards", 10, (r"\baward",))])

        violations, result = scorer.evaluate(Document(title="Doc"), Requirements(), text="Plain text.")

        assert result.score == 0
        assert codes(violations) == [GateCode.EEAT_SCORE_LOW]
