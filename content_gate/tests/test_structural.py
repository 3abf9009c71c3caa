"""
Tests for the structural and safety validator.

Tests:
- Size and shape limits
- Forbidden markup and block kinds
- Image block sanity
- Links, CTA, keyphrase density
- Independence and monotonicity of rules
"""

import pytest

from content_gate.document import ContentBlock, Document, SeoFields, LinkUsage
from content_gate.requirements import Requirements
from content_gate.structural import (
    has_call_to_action,
    iter_blocks_with_path,
    validate_structure,
)
from content_gate.violations import Category, GateCode, Severity


def para(text: str) -> ContentBlock:
    return ContentBlock(kind="paragraph", markup=f"<p>{text}</p>")


def codes(violations):
    return [v.code for v in violations]


def lenient(**overrides) -> Requirements:
    """Requirements that switch off the document-level nags."""
    values = {"require_cta": False, "min_keyphrase_occurrences": 0}
    values.update(overrides)
    return Requirements(**values)


class TestSizeLimits:
    """Tests for stats-based limits."""

    def test_block_count_exceeded_alone(self):
        """60 blocks against a limit of 50 should raise exactly one error and nothing else."""
        document = Document(title="Long", blocks=[para(f"Line {i} of the article body.") for i in range(60)])

        violations = validate_structure(document, lenient(max_blocks=50))

        assert codes(violations) == [GateCode.BLOCK_COUNT_EXCEEDED]
        assert violations[0].severity == Severity.ERROR
        assert violations[0].category == Category.STRUCTURE

    def test_block_count_at_limit_passes(self):
        """Exactly max_blocks blocks should pass."""
        document = Document(title="Even", blocks=[para("Short line here.") for _ in range(50)])

        assert validate_structure(document, lenient(max_blocks=50)) == []

    def test_html_size_exceeded(self):
        """Should flag markup larger than the byte limit."""
        document = Document(title="Big", blocks=[para("x" * 6000)])

        violations = validate_structure(document, lenient(max_html_bytes=5000))

        assert GateCode.HTML_SIZE_EXCEEDED in codes(violations)

    def test_excessive_h2_count_is_warning(self):
        """Should warn when H2 headings exceed the limit."""
        headings = [ContentBlock(kind="heading", attributes={"level": 2}, markup=f"<h2>Part {i}</h2>") for i in range(4)]
        document = Document(title="Parts", blocks=headings)

        violations = validate_structure(document, lenient(max_h2_count=3))

        assert codes(violations) == [GateCode.EXCESSIVE_H2_COUNT]
        assert violations[0].severity == Severity.WARNING

    def test_table_too_large(self):
        """Should warn on tables with too many rows."""
        rows = "".join(f"<tr><td>{i}</td></tr>" for i in range(10))
        document = Document(title="Table", blocks=[ContentBlock(kind="table", markup=f"<table>{rows}</table>")])

        violations = validate_structure(document, lenient())

        assert codes(violations) == [GateCode.TABLE_TOO_LARGE]

    def test_paragraph_too_long(self):
        """Should warn on paragraphs over the word limit."""
        document = Document(title="Wordy", blocks=[para(" ".join(["word"] * 301))])

        violations = validate_structure(document, lenient())

        assert codes(violations) == [GateCode.PARAGRAPH_TOO_LONG]

    def test_content_too_short_when_minimum_set(self):
        """Should raise CONTENT_TOO_SHORT only when a minimum is configured."""
        document = Document(title="Thin", blocks=[para("Only a few words.")])

        assert validate_structure(document, lenient()) == []
        violations = validate_structure(document, lenient(min_word_count=500, min_reading_minutes=3))

        assert GateCode.CONTENT_TOO_SHORT in codes(violations)
        assert GateCode.READING_TIME_TOO_LOW in codes(violations)


class TestForbiddenMarkup:
    """Tests for forbidden markup detection."""

    @pytest.mark.parametrize("markup", [
        "<p>Hi<script>alert(1)</script></p>",
        "<iframe src=\"https://example.com\"></iframe>",
        "<embed src=\"movie.swf\">",
        "<object data=\"x\"></object>",
        "<div style=\"position: fixed; top: 0\">Banner</div>",
        "<div style=\"z-index: 99999\">Overlay</div>",
        "<a href=\"javascript:void(0)\">Click</a>",
        "<p onclick=\"track()\">Tap</p>",
    ])
    def test_each_pattern_is_an_error(self, markup):
        """Should raise FORBIDDEN_MARKUP for every forbidden construct."""
        document = Document(title="Unsafe", blocks=[ContentBlock(kind="paragraph", markup=markup)])

        errors = [v for v in validate_structure(document, lenient()) if v.is_error]

        assert codes(errors) == [GateCode.FORBIDDEN_MARKUP]
        assert errors[0].field == "blocks[0]"

    def test_one_violation_per_pattern(self):
        """Should report each distinct pattern in a block once."""
        markup = "<p onclick=\"a()\" onmouseover=\"b()\"><script>x</script><script>y</script></p>"
        document = Document(title="Unsafe", blocks=[ContentBlock(kind="paragraph", markup=markup)])

        violations = validate_structure(document, lenient())

        assert codes(violations) == [GateCode.FORBIDDEN_MARKUP, GateCode.FORBIDDEN_MARKUP]

    def test_nested_block_path(self):
        """Should report the path of nested offending blocks."""
        group = ContentBlock(kind="group", children=[para("fine"), ContentBlock(kind="paragraph", markup="<iframe></iframe>")])
        document = Document(title="Nested", blocks=[para("intro"), group])

        violations = validate_structure(document, lenient())

        assert violations[0].field == "blocks[1].children[1]"

    def test_plain_text_mentioning_onboarding_is_safe(self):
        """Should not mistake words starting with 'on' for event handlers."""
        document = Document(title="Words", blocks=[para("Our onboarding process is ongoing = simple.")])

        assert validate_structure(document, lenient()) == []

    def test_adding_forbidden_block_never_reduces_errors(self):
        """Adding a block with forbidden markup should only add errors."""
        base = Document(title="Base", blocks=[para("Clean text."), ContentBlock(kind="image")])
        worse = base.model_copy(update={"blocks": base.blocks + [ContentBlock(kind="html", markup="<script></script>")]})

        base_errors = [v for v in validate_structure(base, lenient()) if v.is_error]
        worse_errors = [v for v in validate_structure(worse, lenient()) if v.is_error]

        assert len(worse_errors) > len(base_errors)
        assert all(v in worse_errors for v in base_errors)


class TestBlockKinds:
    """Tests for block kind rules."""

    def test_malformed_block(self):
        """Should flag blocks with no kind."""
        document = Document(title="Bad", blocks=[ContentBlock(markup="<p>text</p>")])

        assert codes(validate_structure(document, lenient())) == [GateCode.MALFORMED_BLOCK]

    def test_unknown_block_kind(self):
        """Should reject kinds outside the allow-list."""
        document = Document(title="Bad", blocks=[ContentBlock(kind="core/embed", markup="<div>x</div>")])

        violations = validate_structure(document, lenient())

        assert codes(violations) == [GateCode.UNKNOWN_BLOCK_KIND]
        assert violations[0].severity == Severity.ERROR

    @pytest.mark.parametrize("kind", ["html", "freeform"])
    def test_discouraged_kinds_warn(self, kind):
        """Should warn (not fail) on raw HTML and freeform blocks."""
        document = Document(title="Raw", blocks=[ContentBlock(kind=kind, markup="<div>plain</div>")])

        violations = validate_structure(document, lenient())

        assert codes(violations) == [GateCode.FORBIDDEN_BLOCK_TYPE]
        assert violations[0].severity == Severity.WARNING

    def test_empty_paragraph_warns(self):
        """Should warn on empty paragraphs unless allowed."""
        document = Document(title="Gap", blocks=[ContentBlock(kind="paragraph", markup="<p> </p>")])

        assert codes(validate_structure(document, lenient())) == [GateCode.EMPTY_PARAGRAPH]
        assert validate_structure(document, lenient(allow_empty_paragraphs=True)) == []


class TestImageBlocks:
    """Tests for image block sanity."""

    def test_image_without_reference(self):
        """Should fail an image with neither URL nor placeholder."""
        document = Document(title="Img", blocks=[ContentBlock(kind="image", markup="<figure></figure>")])

        assert codes(validate_structure(document, lenient())) == [GateCode.IMAGE_MISSING_REFERENCE]

    def test_image_with_empty_markup(self):
        """Should fail an image block with no markup even when it has a URL."""
        document = Document(title="Img", blocks=[
            ContentBlock(kind="image", attributes={"url": "https://example.com/a.jpg"}),
        ])

        assert codes(validate_structure(document, lenient())) == [GateCode.IMAGE_EMPTY_MARKUP]

    def test_image_with_relative_src(self):
        """Should fail an image whose src is neither absolute nor root-relative."""
        document = Document(title="Img", blocks=[ContentBlock(kind="image", markup='<img src="photo.jpg"/>')])

        assert codes(validate_structure(document, lenient())) == [GateCode.IMAGE_INVALID_SRC]

    @pytest.mark.parametrize("markup", [
        '<img src="https://cdn.example.com/a.jpg"/>',
        '<img src="/uploads/a.jpg"/>',
        '<img src="PLACEHOLDER: garden at dusk"/>',
    ])
    def test_valid_images(self, markup):
        """Should accept absolute URLs, root paths and placeholders."""
        document = Document(title="Img", blocks=[ContentBlock(kind="image", markup=markup)])

        assert validate_structure(document, lenient()) == []


class TestDocumentLevelRules:
    """Tests for excerpt, CTA, links and keyphrase rules."""

    def test_excerpt_too_long(self):
        """Should warn on long excerpts."""
        document = Document(title="Ex", excerpt="x" * 161, blocks=[para("Body.")])

        assert codes(validate_structure(document, lenient())) == [GateCode.EXCERPT_TOO_LONG]

    def test_missing_cta(self):
        """Should warn when no call to action exists."""
        document = Document(title="No CTA", blocks=[para("Just information.")])

        violations = validate_structure(document, lenient(require_cta=True))

        assert codes(violations) == [GateCode.MISSING_CTA]

    @pytest.mark.parametrize("block", [
        ContentBlock(kind="buttons"),
        ContentBlock(kind="paragraph", markup='<p class="cta-box">Talk to us</p>'),
        ContentBlock(kind="paragraph", markup="<p>Get in touch for a valuation.</p>"),
        ContentBlock(kind="paragraph", markup="<p>Book a consultation today.</p>"),
    ])
    def test_cta_detection(self, block):
        """Should recognise buttons, CTA classes and CTA phrases."""
        document = Document(title="CTA", blocks=[para("Intro."), block])

        assert has_call_to_action(document)

    def test_required_internal_link_missing(self):
        """Should fail when a required link is neither declared nor linked."""
        document = Document(
            title="Links",
            blocks=[para('See <a href="/about">about us</a>.')],
            internal_links_used=[LinkUsage(url="/about/")],
        )

        violations = validate_structure(document, lenient(required_internal_links=["/about", "/valuations"]))

        assert codes(violations) == [GateCode.MISSING_INTERNAL_LINKS]
        assert "/valuations" in violations[0].message

    def test_required_internal_link_found_in_markup(self):
        """Should accept a required link present only in markup."""
        document = Document(title="Links", blocks=[para('See <a href="/valuations">valuations</a>.')])

        assert validate_structure(document, lenient(required_internal_links=["/valuations"])) == []

    def test_excessive_internal_links(self):
        """Should warn when more internal links are used than allowed."""
        document = Document(
            title="Links",
            blocks=[para("Body.")],
            internal_links_used=[LinkUsage(url=f"/page-{i}") for i in range(6)],
        )

        assert codes(validate_structure(document, lenient())) == [GateCode.EXCESSIVE_INTERNAL_LINKS]

    def test_insufficient_keyphrase(self):
        """Should warn when the focus keyphrase appears fewer than twice."""
        document = Document(
            title="Keys",
            seo=SeoFields(focus_keyphrase="canal homes"),
            blocks=[para("Canal homes sell fast.")],
        )

        violations = validate_structure(document, Requirements(require_cta=False))

        assert codes(violations) == [GateCode.INSUFFICIENT_KEYPHRASE]


class TestBlockPaths:
    """Tests for block path iteration."""

    def test_paths(self):
        """Should yield dotted paths for nested blocks."""
        blocks = [para("a"), ContentBlock(kind="group", children=[para("b")])]

        paths = [path for path, _ in iter_blocks_with_path(blocks)]

        assert paths == ["blocks[0]", "blocks[1]", "blocks[1].children[0]"]
