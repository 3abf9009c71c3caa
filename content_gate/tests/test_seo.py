"""
Tests for SEO field validation.
"""

import pytest

from content_gate.document import Document, SeoFields
from content_gate.requirements import GateStrictness, Requirements, SeoDrafts
from content_gate.seo import (
    match_generic_title,
    title_mentions_location,
    title_mentions_service,
    validate_seo,
    word_overlap,
)
from content_gate.violations import Category, GateCode, Severity


def doc(title: str = "", meta: str = "", keyphrase: str = "", h1: str = "") -> Document:
    return Document(
        title="Article",
        seo=SeoFields(title=title, meta_description=meta, focus_keyphrase=keyphrase, h1=h1),
    )


def codes(violations):
    return [v.code for v in violations]


class TestGenericTitles:
    """Tests for templated title detection."""

    def test_professional_services_title_is_error_under_strict(self):
        """A 30-char boilerplate title should produce only SEO_TITLE_GENERIC, as an error."""
        violations = validate_seo(doc("Professional Plumbing Services"), Requirements())

        assert codes(violations) == [GateCode.SEO_TITLE_GENERIC]
        assert violations[0].severity == Severity.ERROR
        assert violations[0].category == Category.SEO

    def test_standard_strictness_downgrades_to_warning(self):
        """Should warn rather than fail under standard strictness."""
        requirements = Requirements(gate_strictness=GateStrictness.STANDARD)

        violations = validate_seo(doc("Professional Plumbing Services"), requirements)

        assert violations[0].severity == Severity.WARNING

    @pytest.mark.parametrize("title", [
        "The Ultimate Guide to Selling in Bath",
        "Everything You Need to Know About Surveys",
        "Unlock Your Dream Wedding Venue",
        "Plumbing Services | Bath",
    ])
    def test_boilerplate_titles_match(self, title):
        """Should match stock openers and suffixes."""
        assert match_generic_title(title) is not None

    def test_specific_title_does_not_match(self):
        """Should not flag a specific title."""
        assert match_generic_title("Selling a Canal-Side Home in Bath: What Buyers Want") is None


class TestLengthBands:
    """Tests for title and meta length bands."""

    def test_missing_title_is_error(self):
        """Should fail when the SEO title is empty."""
        violations = validate_seo(doc(""), Requirements())

        assert codes(violations) == [GateCode.SEO_TITLE_MISSING]
        assert violations[0].is_error

    def test_short_and_long_titles_warn(self):
        """Should warn outside the 30-60 band."""
        short = validate_seo(doc("Canal homes in Bath"), Requirements())
        long = validate_seo(doc("Selling a Canal-Side Home in Bath: What Buyers Want to See in 2024"), Requirements())

        assert codes(short) == [GateCode.SEO_TITLE_TOO_SHORT]
        assert codes(long) == [GateCode.SEO_TITLE_TOO_LONG]
        assert short[0].severity == Severity.WARNING

    def test_meta_bands(self):
        """Should warn on meta descriptions outside the band and skip empty ones."""
        title = "Selling a Canal-Side Home in Bath: What Buyers Want"

        assert validate_seo(doc(title, meta=""), Requirements()) == []
        assert codes(validate_seo(doc(title, meta="Too short."), Requirements())) == [
            GateCode.META_DESCRIPTION_TOO_SHORT,
        ]
        assert codes(validate_seo(doc(title, meta="x" * 161), Requirements())) == [
            GateCode.META_DESCRIPTION_TOO_LONG,
        ]


class TestKeyphrase:
    """Tests for focus keyphrase placement."""

    def test_keyphrase_missing_from_title_and_meta(self):
        """Should warn for the title and inform for the meta."""
        meta = "Find out what buyers look for in waterside property and how to prepare your home before listing it."
        violations = validate_seo(
            doc("Selling a Canal-Side Home in Bath: What Buyers Want", meta=meta + " Call us today.",
                keyphrase="marina flats"),
            Requirements(),
        )

        by_code = {v.code: v for v in violations}
        assert by_code[GateCode.KEYPHRASE_NOT_IN_TITLE].severity == Severity.WARNING
        assert by_code[GateCode.KEYPHRASE_NOT_IN_META].severity == Severity.INFO

    def test_keyphrase_too_long(self):
        """Should warn on keyphrases longer than four words."""
        title = "Canal side homes for sale in Bath: a buyer's view"

        violations = validate_seo(doc(title, keyphrase="canal side homes for sale"), Requirements())

        assert codes(violations) == [GateCode.KEYPHRASE_TOO_LONG]


class TestTitleContext:
    """Tests for location and service presence."""

    def test_missing_location_and_service(self):
        """Should fail when required location and service are absent."""
        requirements = Requirements(
            location="Bath, Somerset",
            service="estate agent",
            require_geo_in_title=True,
            require_service_in_title=True,
        )

        violations = validate_seo(doc("What buyers want from a waterside home"), requirements)

        assert codes(violations) == [GateCode.SEO_TITLE_MISSING_GEO, GateCode.SEO_TITLE_MISSING_SERVICE]

    def test_location_first_segment_counts(self):
        """Should accept the first comma segment of the location."""
        assert title_mentions_location("Selling homes by the canal in bath", "Bath, Somerset")

    def test_locative_phrase_counts(self):
        """Should accept an 'in <Place>' phrase."""
        assert title_mentions_location("Wedding photography in Cotswolds villages", "Gloucestershire")

    def test_service_word_counts(self):
        """Should accept a long word of the service name."""
        assert title_mentions_service("Choosing an agent for your canal home", "estate agent")
        assert not title_mentions_service("Choosing help for your canal home", "estate agent")


class TestSeoDrafts:
    """Tests for draft enforcement."""

    def test_draft_mismatch_only_when_enforced(self):
        """Should compare against drafts only when enforcement is on."""
        drafts = SeoDrafts(seo_title="Selling a Canal-Side Home in Bath", h1="Canal homes in Bath")
        document = doc("A Totally Different Title About Gardens", h1="Canal homes in Bath")

        relaxed = validate_seo(document, Requirements(seo_drafts=drafts))
        enforced = validate_seo(document, Requirements(seo_drafts=drafts, enforce_seo_drafts=True))

        assert GateCode.SEO_TITLE_DRAFT_MISMATCH not in codes(relaxed)
        assert GateCode.SEO_TITLE_DRAFT_MISMATCH in codes(enforced)
        assert GateCode.H1_DRAFT_MISMATCH not in codes(enforced)

    def test_drafts_accept_camel_case(self):
        """Should read camelCase draft keys."""
        drafts = SeoDrafts.model_validate({"seoTitleDraft": "Title", "h1Draft": "Heading"})

        assert drafts.seo_title == "Title"
        assert drafts.h1 == "Heading"

    def test_word_overlap(self):
        """Should measure the share of expected words present."""
        assert word_overlap("canal homes bath", "Homes in Bath") == pytest.approx(2 / 3)
        assert word_overlap("", "anything") == 1.0
