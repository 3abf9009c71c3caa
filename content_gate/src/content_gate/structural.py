"""
Structural and safety validation.

Applies size/shape limits to the stats record and forbidden-content rules
to the raw blocks. Every rule is an independent predicate returning a list
of violations; rules are cumulative and their order does not matter.

Forbidden markup (error, one violation per matching pattern per block):
- script/iframe/embed/object tags
- inline position: fixed|absolute
- z-index with four or more digits
- javascript: URIs
- inline event-handler attributes (onclick=, onload=, ...)
"""

import re
from typing import Iterator, Optional

from .document import (
    BlockKind,
    ContentBlock,
    Document,
    FORBIDDEN_BLOCK_KINDS,
    PLACEHOLDER_TOKEN,
)
from .logging_conf import get_logger
from .requirements import Requirements
from .stats import DocumentStats, extract_stats
from .violations import Category, GateCode, Severity, Violation

logger = get_logger(__name__)


FORBIDDEN_MARKUP_PATTERNS = [
    ("script tag", r"<script\b"),
    ("iframe tag", r"<iframe\b"),
    ("embed tag", r"<embed\b"),
    ("object tag", r"<object\b"),
    ("fixed/absolute positioning", r"""style\s*=\s*["'][^"']*position\s*:\s*(?:fixed|absolute)"""),
    ("excessive z-index", r"""style\s*=\s*["'][^"']*z-index\s*:\s*\d{4,}"""),
    ("javascript: URI", r"javascript\s*:"),
    ("inline event handler", r"<[^>]*\son[a-z]+\s*="),
]

_FORBIDDEN_MARKUP = [(name, re.compile(p, re.IGNORECASE)) for name, p in FORBIDDEN_MARKUP_PATTERNS]

CTA_PHRASES = [
    r"\bcontact us\b",
    r"\bget in touch\b",
    r"\bbook (?:a|an|your)\b",
    r"\bcall (?:us|today|now)\b",
    r"\brequest (?:a|your) (?:quote|callback|consultation|valuation)\b",
    r"\bget (?:a|your) (?:free )?(?:quote|estimate|valuation)\b",
    r"\bschedule (?:a|your)\b",
    r"\benquire (?:now|today)\b",
]

_CTA_PHRASES = [re.compile(p, re.IGNORECASE) for p in CTA_PHRASES]
_CTA_CLASS = re.compile(r"""class\s*=\s*["'][^"']*\b(?:cta|call-to-action)\b""", re.IGNORECASE)

CTA_BLOCK_KINDS = frozenset({BlockKind.BUTTONS.value, BlockKind.BUTTON.value})


def _v(code: GateCode, severity: Severity, message: str, field: Optional[str] = None,
       suggestion: Optional[str] = None) -> Violation:
    return Violation(code, severity, message, Category.STRUCTURE, field, suggestion)


def iter_blocks_with_path(blocks: list[ContentBlock], prefix: str = "blocks") -> Iterator[tuple[str, ContentBlock]]:
    """Yield (path, block) pairs, e.g. ('blocks[2].children[0]', block)."""
    for index, block in enumerate(blocks):
        path = f"{prefix}[{index}]"
        yield path, block
        yield from iter_blocks_with_path(block.children, f"{path}.children")


# =====================================================
# SIZE AND SHAPE RULES (stats-based)
# =====================================================

def check_block_count(stats: DocumentStats, req: Requirements) -> list[Violation]:
    if stats.block_count <= req.max_blocks:
        return []
    return [_v(
        GateCode.BLOCK_COUNT_EXCEEDED, Severity.ERROR,
        f"Block count {stats.block_count} exceeds maximum {req.max_blocks}",
        suggestion="Merge short paragraphs or remove decorative blocks",
    )]


def check_html_size(stats: DocumentStats, req: Requirements) -> list[Violation]:
    if stats.html_bytes <= req.max_html_bytes:
        return []
    return [_v(
        GateCode.HTML_SIZE_EXCEEDED, Severity.ERROR,
        f"Rendered markup is {stats.html_bytes} bytes, maximum is {req.max_html_bytes}",
        suggestion="Remove inline styling or shorten sections",
    )]


def check_h2_count(stats: DocumentStats, req: Requirements) -> list[Violation]:
    if stats.h2_count <= req.max_h2_count:
        return []
    return [_v(
        GateCode.EXCESSIVE_H2_COUNT, Severity.WARNING,
        f"{stats.h2_count} H2 headings (maximum {req.max_h2_count})",
        suggestion="Demote minor sections to H3",
    )]


def check_table_rows(stats: DocumentStats, req: Requirements) -> list[Violation]:
    if stats.max_table_rows <= req.max_table_rows:
        return []
    return [_v(
        GateCode.TABLE_TOO_LARGE, Severity.WARNING,
        f"Largest table has {stats.max_table_rows} rows (maximum {req.max_table_rows})",
        suggestion="Split the table or keep only the decisive rows",
    )]


def check_paragraph_length(stats: DocumentStats, req: Requirements) -> list[Violation]:
    if stats.max_paragraph_words <= req.max_paragraph_words:
        return []
    return [_v(
        GateCode.PARAGRAPH_TOO_LONG, Severity.WARNING,
        f"Longest paragraph has {stats.max_paragraph_words} words (maximum {req.max_paragraph_words})",
        suggestion="Break long paragraphs into two or three shorter ones",
    )]


def check_content_length(stats: DocumentStats, req: Requirements) -> list[Violation]:
    violations = []
    if req.min_word_count and stats.word_count < req.min_word_count:
        violations.append(_v(
            GateCode.CONTENT_TOO_SHORT, Severity.ERROR,
            f"Content has {stats.word_count} words, minimum is {req.min_word_count}",
            suggestion="Expand the thinnest sections with specifics",
        ))
    if req.min_reading_minutes and stats.reading_time_minutes < req.min_reading_minutes:
        violations.append(_v(
            GateCode.READING_TIME_TOO_LOW, Severity.ERROR,
            f"Reading time {stats.reading_time_minutes} min, minimum is {req.min_reading_minutes} min",
            suggestion="Expand the thinnest sections with specifics",
        ))
    return violations


def check_internal_links(document: Document, stats: DocumentStats, req: Requirements) -> list[Violation]:
    violations = []

    if req.required_internal_links:
        used = {_normalize_url(link.url) for link in document.internal_links_used}
        markup = " ".join(block.markup for block in document.walk_blocks()).lower()
        missing = [
            url for url in req.required_internal_links
            if _normalize_url(url) not in used and _normalize_url(url) not in markup
        ]
        if missing:
            violations.append(_v(
                GateCode.MISSING_INTERNAL_LINKS, Severity.ERROR,
                f"Required internal links not used: {', '.join(missing)}",
                field="internal_links_used",
                suggestion="Link to the required pages with descriptive anchor text",
            ))

    if stats.internal_link_count > req.max_internal_links:
        violations.append(_v(
            GateCode.EXCESSIVE_INTERNAL_LINKS, Severity.WARNING,
            f"{stats.internal_link_count} internal links (maximum {req.max_internal_links})",
            field="internal_links_used",
            suggestion="Keep only the most relevant internal links",
        ))

    return violations


def check_keyphrase_density(document: Document, stats: DocumentStats, req: Requirements) -> list[Violation]:
    if not document.seo.focus_keyphrase or not req.min_keyphrase_occurrences:
        return []
    if stats.keyphrase_occurrences >= req.min_keyphrase_occurrences:
        return []
    return [_v(
        GateCode.INSUFFICIENT_KEYPHRASE, Severity.WARNING,
        f"Focus keyphrase appears {stats.keyphrase_occurrences} time(s), "
        f"expected at least {req.min_keyphrase_occurrences}",
        field="seo.focus_keyphrase",
        suggestion="Use the keyphrase naturally in the intro and one subheading",
    )]


def _normalize_url(url: str) -> str:
    return url.strip().lower().rstrip("/")


# =====================================================
# BLOCK SAFETY RULES (block-based)
# =====================================================

def check_forbidden_markup(path: str, block: ContentBlock) -> list[Violation]:
    """One violation per forbidden pattern found in the block's markup."""
    violations = []
    for name, pattern in _FORBIDDEN_MARKUP:
        if pattern.search(block.markup):
            violations.append(_v(
                GateCode.FORBIDDEN_MARKUP, Severity.ERROR,
                f"Forbidden markup ({name}) in {block.kind or 'block'}",
                field=path,
                suggestion=f"Strip the {name} from the block",
            ))
    return violations


def check_block_kind(path: str, block: ContentBlock) -> list[Violation]:
    if not block.kind:
        return [_v(
            GateCode.MALFORMED_BLOCK, Severity.ERROR,
            "Block has no kind",
            field=path,
            suggestion="Give the block a kind or drop it",
        )]
    if block.kind in FORBIDDEN_BLOCK_KINDS:
        return [_v(
            GateCode.FORBIDDEN_BLOCK_TYPE, Severity.WARNING,
            f"Discouraged block kind '{block.kind}'",
            field=path,
            suggestion="Convert raw HTML/freeform content into native blocks",
        )]
    if not block.is_allowed:
        return [_v(
            GateCode.UNKNOWN_BLOCK_KIND, Severity.ERROR,
            f"Block kind '{block.kind}' is not allowed",
            field=path,
            suggestion="Use paragraph, heading, list, table, image, buttons or quote blocks",
        )]
    return []


def check_image_block(path: str, block: ContentBlock) -> list[Violation]:
    if block.kind != BlockKind.IMAGE.value:
        return []

    violations = []
    if not block.markup.strip():
        violations.append(_v(
            GateCode.IMAGE_EMPTY_MARKUP, Severity.ERROR,
            "Image block has empty markup",
            field=path,
            suggestion="Render a <figure><img></figure> or use a placeholder paragraph",
        ))

    src = block.image_src
    if not src and not block.has_placeholder:
        violations.append(_v(
            GateCode.IMAGE_MISSING_REFERENCE, Severity.ERROR,
            "Image block has neither a URL nor a placeholder token",
            field=path,
            suggestion=f"Set a URL or a '{PLACEHOLDER_TOKEN} description' token",
        ))
    elif src and not block.has_placeholder and not src.startswith(("http://", "https://", "/")):
        violations.append(_v(
            GateCode.IMAGE_INVALID_SRC, Severity.ERROR,
            f"Image src '{src[:60]}' is not an absolute URL, root path or placeholder",
            field=path,
            suggestion="Use an https:// URL, a /path, or a placeholder token",
        ))
    return violations


def check_empty_paragraph(path: str, block: ContentBlock, req: Requirements) -> list[Violation]:
    if req.allow_empty_paragraphs or block.kind != BlockKind.PARAGRAPH.value:
        return []
    if block.text or block.children:
        return []
    return [_v(
        GateCode.EMPTY_PARAGRAPH, Severity.WARNING,
        "Empty paragraph block",
        field=path,
        suggestion="Remove empty paragraphs; use a spacer block for spacing",
    )]


# =====================================================
# DOCUMENT-LEVEL RULES
# =====================================================

def check_excerpt(document: Document, req: Requirements) -> list[Violation]:
    if len(document.excerpt) <= req.max_excerpt_chars:
        return []
    return [_v(
        GateCode.EXCERPT_TOO_LONG, Severity.WARNING,
        f"Excerpt is {len(document.excerpt)} chars (maximum {req.max_excerpt_chars})",
        field="excerpt",
        suggestion="Trim the excerpt to one sentence",
    )]


def has_call_to_action(document: Document) -> bool:
    """A buttons block, a cta-classed element, or a CTA phrase anywhere."""
    for block in document.walk_blocks():
        if block.kind in CTA_BLOCK_KINDS:
            return True
        if _CTA_CLASS.search(block.markup):
            return True
        text = block.text
        if any(p.search(text) for p in _CTA_PHRASES):
            return True
    return False


def check_call_to_action(document: Document, req: Requirements) -> list[Violation]:
    if not req.require_cta or has_call_to_action(document):
        return []
    return [_v(
        GateCode.MISSING_CTA, Severity.WARNING,
        "No call to action found",
        suggestion="Close with a buttons block or a clear 'contact us' line",
    )]


def validate_structure(
    document: Document,
    requirements: Requirements,
    stats: Optional[DocumentStats] = None,
) -> list[Violation]:
    """
    Run every structural and safety rule.

    Args:
        document: Document to check
        requirements: Limits for this call
        stats: Precomputed stats (extracted when omitted)

    Returns:
        List of violations (empty when the document is clean)
    """
    if stats is None:
        stats = extract_stats(document, words_per_minute=requirements.words_per_minute)

    violations: list[Violation] = []
    violations.extend(check_block_count(stats, requirements))
    violations.extend(check_html_size(stats, requirements))
    violations.extend(check_h2_count(stats, requirements))
    violations.extend(check_table_rows(stats, requirements))
    violations.extend(check_paragraph_length(stats, requirements))
    violations.extend(check_content_length(stats, requirements))

    for path, block in iter_blocks_with_path(document.blocks):
        violations.extend(check_block_kind(path, block))
        violations.extend(check_forbidden_markup(path, block))
        violations.extend(check_image_block(path, block))
        violations.extend(check_empty_paragraph(path, block, requirements))

    violations.extend(check_excerpt(document, requirements))
    violations.extend(check_call_to_action(document, requirements))
    violations.extend(check_internal_links(document, stats, requirements))
    violations.extend(check_keyphrase_density(document, stats, requirements))

    logger.debug(
        "structure_checked",
        violations=len(violations),
        errors=sum(1 for v in violations if v.is_error),
    )

    return violations
