"""
Document model for generated articles.

Generated output arrives as loosely shaped JSON: WordPress block style
(blockName/innerHTML/innerBlocks/attrs) or our own field names. It is
normalized here, at the ingestion boundary, so the gate only ever sees a
well-formed Document:
- block kinds are lowercased and lose their "core/" prefix
- missing markup, attributes and children default to empty values
- SEO fields and link usage accept camelCase or snake_case keys
- a missing slug is derived from the title

Anything that cannot be coerced (not JSON, not an object) raises
pydantic.ValidationError from parse_document().
"""

import hashlib
import html
import re
from enum import Enum
from typing import Any, Iterator, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


class BlockKind(str, Enum):
    """Block kinds the gate accepts."""
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    LIST_ITEM = "list-item"
    TABLE = "table"
    IMAGE = "image"
    BUTTONS = "buttons"
    BUTTON = "button"
    QUOTE = "quote"
    GROUP = "group"
    COLUMNS = "columns"
    COLUMN = "column"
    SEPARATOR = "separator"
    SPACER = "spacer"
    HTML = "html"            # Raw HTML, allowed but discouraged
    FREEFORM = "freeform"    # Classic editor, allowed but discouraged


ALLOWED_BLOCK_KINDS = frozenset(k.value for k in BlockKind)
FORBIDDEN_BLOCK_KINDS = frozenset({BlockKind.HTML.value, BlockKind.FREEFORM.value})

PLACEHOLDER_TOKEN = "PLACEHOLDER:"

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_HEADING_TAG_PATTERN = re.compile(r"<h([1-6])\b", re.IGNORECASE)
_SRC_PATTERN = re.compile(r"""\bsrc\s*=\s*["']([^"']*)["']""", re.IGNORECASE)
_LIST_ITEM_PATTERN = re.compile(r"<li\b[^>]*>(.*?)</li>", re.IGNORECASE | re.DOTALL)
_TABLE_ROW_PATTERN = re.compile(r"<tr\b[^>]*>(.*?)</tr>", re.IGNORECASE | re.DOTALL)
_TABLE_CELL_PATTERN = re.compile(r"<t[hd]\b[^>]*>(.*?)</t[hd]>", re.IGNORECASE | re.DOTALL)
_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_markup(markup: str) -> str:
    """Remove tags and entities, collapsing whitespace."""
    if not markup:
        return ""
    text = _TAG_PATTERN.sub(" ", markup)
    return _WHITESPACE_PATTERN.sub(" ", html.unescape(text)).strip()


def count_words(text: str) -> int:
    """A word is any non-empty whitespace-delimited token."""
    return len(text.split())


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated slug."""
    slug = re.sub(r"[^a-z0-9\s-]", "", (text or "").lower())
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def clean_json_response(raw: str) -> str:
    """Strip markdown code fences that generators wrap around JSON."""
    return _CODE_FENCE_PATTERN.sub("", raw.strip()).strip()


class ContentBlock(BaseModel):
    """A typed content block; parents own their children."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: str = Field(
        "",
        validation_alias=AliasChoices("kind", "blockKind", "block_kind", "blockName", "block_name"),
    )
    attributes: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("attributes", "attrs"),
    )
    markup: str = Field(
        "",
        validation_alias=AliasChoices("markup", "renderedMarkup", "rendered_markup", "innerHTML"),
    )
    children: list["ContentBlock"] = Field(
        default_factory=list,
        validation_alias=AliasChoices("children", "innerBlocks", "inner_blocks"),
    )

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> str:
        if v is None:
            return ""
        kind = str(v).strip().lower()
        if kind.startswith("core/"):
            kind = kind[len("core/"):]
        return kind

    @field_validator("attributes", mode="before")
    @classmethod
    def default_attributes(cls, v: Any) -> dict:
        return v if isinstance(v, dict) else {}

    @field_validator("markup", mode="before")
    @classmethod
    def default_markup(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("children", mode="before")
    @classmethod
    def default_children(cls, v: Any) -> list:
        return v if isinstance(v, list) else []

    @property
    def text(self) -> str:
        """Plain text of this block's own markup."""
        return strip_markup(self.markup)

    @property
    def is_allowed(self) -> bool:
        return self.kind in ALLOWED_BLOCK_KINDS

    @property
    def heading_level(self) -> int:
        """Heading level from attributes, markup tag, or the editor default of 2."""
        level = self.attributes.get("level")
        if level is not None:
            try:
                return int(level)
            except (TypeError, ValueError):
                pass
        match = _HEADING_TAG_PATTERN.search(self.markup)
        if match:
            return int(match.group(1))
        return 2

    @property
    def image_src(self) -> Optional[str]:
        """Image reference from attributes or the first src attribute in markup."""
        for key in ("url", "src"):
            value = self.attributes.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        match = _SRC_PATTERN.search(self.markup)
        if match and match.group(1).strip():
            return match.group(1).strip()
        return None

    @property
    def has_placeholder(self) -> bool:
        src = self.image_src or ""
        return src.startswith(PLACEHOLDER_TOKEN) or PLACEHOLDER_TOKEN in self.markup

    def walk(self) -> Iterator["ContentBlock"]:
        """Yield this block and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class SeoFields(BaseModel):
    """SEO metadata produced alongside the article."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = Field("", validation_alias=AliasChoices("title", "seoTitle", "seo_title"))
    meta_description: str = Field(
        "",
        validation_alias=AliasChoices("meta_description", "metaDescription", "metaDesc", "meta_desc"),
    )
    focus_keyphrase: str = Field(
        "",
        validation_alias=AliasChoices("focus_keyphrase", "focusKeyphrase", "focus_keyword", "focusKeyword"),
    )
    h1: str = Field("", validation_alias=AliasChoices("h1", "H1"))

    @field_validator("title", "meta_description", "focus_keyphrase", "h1", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()


class LinkUsage(BaseModel):
    """An internal link the generator claims to have used."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field("", validation_alias=AliasChoices("url", "href"))
    anchor_text: str = Field("", validation_alias=AliasChoices("anchor_text", "anchorText", "anchor"))

    @model_validator(mode="before")
    @classmethod
    def accept_bare_url(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"url": data}
        return data


class Document(BaseModel):
    """A generated article: block tree plus SEO metadata."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = ""
    slug: str = Field("", validate_default=True)
    excerpt: str = ""
    blocks: list[ContentBlock] = Field(default_factory=list)
    seo: SeoFields = Field(default_factory=SeoFields)
    internal_links_used: list[LinkUsage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("internal_links_used", "internalLinksUsed", "internal_links"),
    )

    @field_validator("title", "excerpt", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("blocks", "internal_links_used", mode="before")
    @classmethod
    def default_list(cls, v: Any) -> list:
        return v if isinstance(v, list) else []

    @field_validator("seo", mode="before")
    @classmethod
    def default_seo(cls, v: Any) -> Any:
        return v if v is not None else {}

    @field_validator("slug", mode="before")
    @classmethod
    def derive_slug(cls, v: Any, info: ValidationInfo) -> str:
        if v:
            return slugify(str(v))
        return slugify(info.data.get("title", ""))

    @property
    def h1(self) -> str:
        return self.seo.h1 or self.title

    def walk_blocks(self) -> Iterator[ContentBlock]:
        """Yield every block in the tree, depth first."""
        for block in self.blocks:
            yield from block.walk()

    @property
    def content_hash(self) -> str:
        """Stable hash of the document, for change detection between passes."""
        payload = self.model_dump_json()
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_text(self) -> str:
        """Plain-text rendering used by the text-level checks."""
        return render_text(self)


ContentBlock.model_rebuild()


def parse_document(raw: Union[str, bytes, dict]) -> Document:
    """
    Build a Document from generator output.

    Args:
        raw: JSON string (optionally wrapped in code fences), bytes, or dict

    Returns:
        Normalized Document

    Raises:
        pydantic.ValidationError: if the payload is not a JSON object
    """
    if isinstance(raw, dict):
        return Document.model_validate(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return Document.model_validate_json(clean_json_response(raw))


# =====================================================
# PLAIN-TEXT RENDERING
# =====================================================

def _render_block(block: ContentBlock) -> list[str]:
    """Render one block as light markdown lines."""
    kind = block.kind

    if kind == BlockKind.HEADING.value:
        text = block.text
        return [f"{'#' * block.heading_level} {text}"] if text else []

    if kind in (BlockKind.LIST.value, BlockKind.LIST_ITEM.value) and not block.children:
        items = [strip_markup(item) for item in _LIST_ITEM_PATTERN.findall(block.markup)]
        items = [item for item in items if item]
        if items:
            return [f"- {item}" for item in items]
        return [f"- {block.text}"] if block.text else []

    if kind == BlockKind.TABLE.value:
        lines = []
        for row in _TABLE_ROW_PATTERN.findall(block.markup):
            cells = [strip_markup(cell) for cell in _TABLE_CELL_PATTERN.findall(row)]
            if cells:
                lines.append("| " + " | ".join(cells) + " |")
        return lines

    if kind in (BlockKind.IMAGE.value, BlockKind.SEPARATOR.value, BlockKind.SPACER.value):
        return []

    if block.children:
        lines = []
        for child in block.children:
            lines.extend(_render_block(child))
        return lines

    return [block.text] if block.text else []


def render_blocks(blocks: list[ContentBlock]) -> str:
    """Render blocks as light markdown, one blank line between blocks."""
    chunks = []
    for block in blocks:
        lines = _render_block(block)
        if lines:
            chunks.append("\n".join(lines))
    return "\n\n".join(chunks)


def render_text(document: Document) -> str:
    """Render the whole document (title as H1, then blocks)."""
    body = render_blocks(document.blocks)
    if document.title:
        return f"# {document.title}\n\n{body}" if body else f"# {document.title}"
    return body


# =====================================================
# BLOCK NORMALIZATION (deterministic repair)
# =====================================================

def _placeholder_paragraph(block: ContentBlock) -> ContentBlock:
    alt = block.attributes.get("alt") or "image"
    return ContentBlock(
        kind=BlockKind.PARAGRAPH.value,
        markup=f"<p>[{PLACEHOLDER_TOKEN} {alt}]</p>",
    )


def _is_valid_image(block: ContentBlock) -> bool:
    src = block.image_src
    if not block.markup.strip():
        return False
    if block.has_placeholder:
        return True
    return bool(src) and (src.startswith(("http://", "https://", "/")))


def normalize_blocks(blocks: list[ContentBlock]) -> list[ContentBlock]:
    """
    Apply deterministic fixes that do not need a regeneration pass.

    - blocks without a kind become paragraphs (or are dropped when empty)
    - invalid image blocks become placeholder paragraphs
    - children are normalized recursively
    """
    normalized = []
    for block in blocks:
        children = normalize_blocks(block.children)

        if not block.kind:
            if not block.text and not children:
                continue
            block = block.model_copy(update={"kind": BlockKind.PARAGRAPH.value})

        if block.kind == BlockKind.IMAGE.value and not _is_valid_image(block):
            normalized.append(_placeholder_paragraph(block))
            continue

        normalized.append(block.model_copy(update={"children": children}))
    return normalized
