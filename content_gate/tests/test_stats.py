"""
Tests for the structural stats extractor.
"""

from content_gate.document import parse_document
from content_gate.stats import count_occurrences, extract_stats


def build_document():
    return parse_document({
        "title": "Canal homes",
        "seo": {"focusKeyphrase": "canal homes"},
        "internalLinksUsed": ["/valuations", "/contact"],
        "blocks": [
            {"kind": "heading", "attributes": {"level": 2}, "markup": "<h2>Why canal homes sell</h2>"},
            {"kind": "paragraph", "markup": "<p>Canal homes attract <a href=\"/buyers\">buyers</a> quickly.</p>"},
            {"kind": "heading", "attributes": {"level": 3}, "markup": "<h3>Viewings</h3>"},
            {"kind": "list", "markup": "<ul><li>Light</li><li>Garden space</li></ul>"},
            {"kind": "table", "markup": "<table><tr><td>a</td></tr><tr><td>b</td></tr><tr><td>c</td></tr></table>"},
            {
                "kind": "group",
                "children": [
                    {"kind": "paragraph", "markup": "<p>One two three four five six.</p>"},
                    {"kind": "image", "attributes": {"url": "https://example.com/a.jpg"}, "markup": "<img/>"},
                ],
            },
        ],
    })


class TestExtractStats:
    """Tests for extract_stats."""

    def test_counts_blocks_recursively(self):
        """Should count nested blocks."""
        stats = extract_stats(build_document())

        assert stats.block_count == 8

    def test_heading_counts(self):
        """Should split heading counts by level."""
        stats = extract_stats(build_document())

        assert stats.heading_count == 2
        assert stats.h2_count == 1
        assert stats.h3_count == 1

    def test_word_count_uses_leaf_text_blocks(self):
        """Should count words in paragraphs and lists only."""
        stats = extract_stats(build_document())

        # 5 + 3 (list) + 6
        assert stats.word_count == 14
        assert stats.paragraph_count == 2
        assert stats.max_paragraph_words == 6

    def test_tables_images_links(self):
        """Should count tables, rows, images and links."""
        stats = extract_stats(build_document())

        assert stats.table_count == 1
        assert stats.max_table_rows == 3
        assert stats.image_count == 1
        assert stats.link_count == 1
        assert stats.internal_link_count == 2

    def test_keyphrase_occurrences_case_insensitive(self):
        """Should count the focus keyphrase across markup, ignoring case."""
        stats = extract_stats(build_document())

        assert stats.keyphrase_occurrences == 2

    def test_explicit_keyphrase_overrides_focus(self):
        """Should count an explicitly passed keyphrase."""
        stats = extract_stats(build_document(), keyphrase="garden")

        assert stats.keyphrase_occurrences == 1

    def test_reading_time_rounds_up(self):
        """Should round reading time up to whole minutes."""
        stats = extract_stats(build_document(), words_per_minute=10)

        assert stats.reading_time_minutes == 2

    def test_html_bytes_are_utf8(self):
        """Should measure markup size in UTF-8 bytes."""
        document = parse_document({"blocks": [{"kind": "paragraph", "markup": "<p>£</p>"}]})

        assert extract_stats(document).html_bytes == len("<p>£</p>".encode("utf-8"))

    def test_empty_document(self):
        """Should return zeros for an empty document."""
        stats = extract_stats(parse_document({"title": "Empty"}))

        assert stats.block_count == 0
        assert stats.word_count == 0
        assert stats.reading_time_minutes == 0

    def test_deterministic(self):
        """Should return identical stats for identical input."""
        document = build_document()

        assert extract_stats(document).to_dict() == extract_stats(document).to_dict()


class TestCountOccurrences:
    """Tests for count_occurrences."""

    def test_empty_needle(self):
        """Should return zero for an empty needle."""
        assert count_occurrences("anything", "") == 0

    def test_non_overlapping(self):
        """Should count non-overlapping matches."""
        assert count_occurrences("aaaa", "aa") == 2
