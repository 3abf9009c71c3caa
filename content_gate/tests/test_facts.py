"""
Tests for fact fuzzy-matching.

Tests:
- Keyword extraction and required-match arithmetic
- Number matching
- Vision fact and user fact validation
"""

from content_gate.document import ContentBlock, Document
from content_gate.facts import (
    check_fact_usage,
    extract_fact_keywords,
    extract_numbers,
    find_evidence_markers,
    has_evidence_heading,
    match_fact,
    validate_user_facts,
    validate_vision_facts,
)
from content_gate.requirements import Requirements
from content_gate.violations import Category, GateCode, Severity


SASH_FACT = "Sash windows overlooking the canal towpath garden"


def article(*paragraphs: str, heading: str = "") -> Document:
    blocks = []
    if heading:
        blocks.append(ContentBlock(kind="heading", attributes={"level": 2}, markup=f"<h2>{heading}</h2>"))
    blocks.extend(ContentBlock(kind="paragraph", markup=f"<p>{p}</p>") for p in paragraphs)
    return Document(title="Canal homes", blocks=blocks)


class TestKeywords:
    """Tests for keyword extraction."""

    def test_drops_stop_words_and_short_words(self):
        """Should keep significant words of four or more characters."""
        assert extract_fact_keywords(SASH_FACT) == ["sash", "windows", "overlooking", "canal", "towpath", "garden"]

    def test_strips_punctuation_and_duplicates(self):
        """Should strip punctuation and keep the first occurrence of a word."""
        assert extract_fact_keywords("Damp, damp patches (rear wall).") == ["damp", "patches", "rear", "wall"]

    def test_numbers(self):
        """Should pull integers and decimals."""
        assert extract_numbers("A 2.5 acre plot sold for 425,000 in 3 weeks") == ["2.5", "425,000", "3"]


class TestMatchFact:
    """Tests for single-fact matching."""

    def test_six_keywords_need_three(self):
        """With six keywords at 0.5, three matches should count as used and two should not."""
        used = match_fact(SASH_FACT, "The windows look onto a garden by the canal.", threshold=0.5)
        unused = match_fact(SASH_FACT, "The windows look onto the canal.", threshold=0.5)

        assert used.required_matches == 3
        assert used.matched_keywords == ["windows", "canal", "garden"]
        assert used.used
        assert not unused.used

    def test_small_facts_need_all_keywords(self):
        """A fact with two keywords should need both."""
        match = match_fact("Damp patches", "Some damp in the hall.", threshold=0.1)

        assert match.required_matches == 2
        assert not match.used

    def test_raising_threshold_never_adds_matches(self):
        """Used should be monotonically non-increasing in the threshold."""
        text = "The windows look onto a garden by the canal towpath."
        flags = [match_fact(SASH_FACT, text, threshold=t / 10).used for t in range(1, 11)]

        assert flags == sorted(flags, reverse=True)
        assert flags[0] and not flags[-1]

    def test_number_alone_counts(self):
        """Should count a fact as used when one of its numbers appears."""
        match = match_fact("Sold for 425,000 after two viewings", "It went for 425,000.")

        assert match.used
        assert match.matched_numbers == ["425,000"]

    def test_number_must_be_whole(self):
        """Should not match a number embedded in a larger one."""
        match = match_fact("2.5 acre plot", "A 12.5 acre estate.")

        assert match.matched_numbers == []
        assert not match.used

    def test_fact_without_keywords_or_numbers(self):
        """Should never count an empty fact as used."""
        assert not match_fact("it is at the", "it is at the").used

    def test_short_words_match_verbatim(self):
        """Should count a fact of short content words when it appears as written."""
        match = match_fact("big red van", "On arrival the Big Red van was parked outside.")

        assert match.keywords == []
        assert match.verbatim
        assert match.used

    def test_verbatim_is_word_bounded(self):
        """Should not match a short fact inside longer words."""
        assert not match_fact("red van", "Their hatred vanished overnight.").used

    def test_stop_words_never_match_verbatim(self):
        """Should not count a phrase made only of stop-words."""
        match = match_fact("at the top of", "We stood at the top of the hill.")

        assert not match.verbatim
        assert not match.used


class TestFactUsage:
    """Tests for usage reports."""

    def test_required_is_capped_by_fact_count(self):
        """Should require min(minimum, number of facts)."""
        report = check_fact_usage(["Damp patches on the rear wall"], "No match here.", minimum=3, threshold=0.5)

        assert report.required == 1
        assert not report.passed
        assert report.missing_facts == ["Damp patches on the rear wall"]

    def test_to_dict(self):
        """Should include derived counts."""
        report = check_fact_usage([SASH_FACT], "windows garden canal", minimum=3, threshold=0.5)

        data = report.to_dict()
        assert data["used_count"] == 1
        assert data["passed"] is True


class TestVisionFacts:
    """Tests for vision fact validation."""

    def test_no_facts_no_violations(self):
        """Should pass silently when no vision facts are supplied."""
        violations, report = validate_vision_facts(article("Body."), Requirements())

        assert violations == []
        assert report.required == 0

    def test_unused_facts_fail_with_markers_and_heading_warnings(self):
        """Should report the shortfall as an error plus the framing warnings."""
        requirements = Requirements(vision_facts=[
            "Damp patches along the rear wall of the kitchen",
            "Original sash windows on the upper floor",
        ])

        violations, report = validate_vision_facts(article("A lovely family home."), requirements)

        assert [v.code for v in violations] == [
            GateCode.VISION_FACTS_MIN_NOT_MET,
            GateCode.VISION_MISSING_MARKERS,
            GateCode.VISION_MISSING_EVIDENCE_HEADER,
        ]
        assert violations[0].severity == Severity.ERROR
        assert violations[0].category == Category.AUTHORITY
        assert report.used_count == 0

    def test_used_facts_with_evidence_framing_pass(self):
        """Should pass when facts are used, framed and headed."""
        requirements = Requirements(vision_facts=[
            "Damp patches along the rear wall of the kitchen",
            "Original sash windows on the upper floor",
        ])
        document = article(
            "In practice, damp patches showed along the rear kitchen wall.",
            "The original sash windows on the upper floor were intact.",
            heading="What We've Seen in Practice",
        )

        violations, report = validate_vision_facts(document, requirements)

        assert violations == []
        assert report.used_count == 2

    def test_short_vision_fact_used_verbatim(self):
        """Should count a short vision fact quoted word for word."""
        requirements = Requirements(vision_facts=["big red van"])

        violations, report = validate_vision_facts(
            article("In practice, the big red van was parked outside."),
            requirements,
        )

        assert report.used_count == 1
        assert GateCode.VISION_FACTS_MIN_NOT_MET not in [v.code for v in violations]

    def test_markers_can_be_disabled(self):
        """Should skip framing checks when evidence markers are not required."""
        requirements = Requirements(vision_facts=["Original sash windows on the upper floor"],
                                    require_evidence_markers=False)

        violations, _ = validate_vision_facts(article("Original sash windows upstairs."), requirements)

        assert violations == []

    def test_evidence_markers_are_word_bounded(self):
        """Should find marker phrases case-insensitively."""
        assert find_evidence_markers("We've observed that, On the ground, rooms feel small.") == [
            "on the ground",
            "we've observed",
        ]

    def test_evidence_heading_accepts_curly_apostrophe(self):
        """Should normalize typographic apostrophes in headings."""
        assert has_evidence_heading(article(heading="What We’ve Seen"))
        assert not has_evidence_heading(article("What we've seen is not a heading here."))


class TestUserFacts:
    """Tests for user fact validation."""

    def test_shortfall_is_error(self):
        """Should fail when fewer than min(2, N) user facts are used."""
        requirements = Requirements(user_facts=["Chain-free sale", "Offers over 425,000"])

        violations, report = validate_user_facts(article("The sale is chain-free."), requirements)

        assert [v.code for v in violations] == [GateCode.USER_FACTS_NOT_USED]
        assert violations[0].is_error
        assert report.used_count == 1

    def test_all_used_passes(self):
        """Should pass when enough user facts are used."""
        requirements = Requirements(user_facts=["Chain-free sale", "Offers over 425,000"])

        violations, _ = validate_user_facts(
            article("The sale is chain-free.", "We are inviting offers over 425,000."),
            requirements,
        )

        assert violations == []
