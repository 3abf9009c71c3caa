"""
Narrative-outcome auto-repair.

When an article shows first-hand observation but never says what happened
as a result, a short intro / causal middle / close paragraph is
synthesized from vertical templates and inserted after the first
paragraph that carries a vision signal. The result is a draft for review,
never a final artifact:
- no specific numbers or dates are invented
- the synthesized text is re-checked with the detector before use
- applying a repair to an already repaired document is a no-op

Also provides the deterministic evidence-section fallback used when
supplied vision facts did not make it into the article.
"""

import html
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .document import BlockKind, ContentBlock, Document, render_blocks
from .facts import has_evidence_heading
from .logging_conf import get_logger
from .narrative import NarrativeDetection, NarrativeOutcomeDetector
from .requirements import Requirements
from .verticals import DEFAULT_REGISTRY, VerticalVocabulary, VocabularyRegistry, find_terms

logger = get_logger(__name__)


EVIDENCE_SECTION_HEADING = "What We've Seen in Practice"
EVIDENCE_SECTION_INTRO = (
    "From recent site visits and inspections in the local area, "
    "we've observed some consistent patterns that are worth noting:"
)


@dataclass(frozen=True)
class NarrativeTemplates:
    """Template set for one vertical; every middle line is a causal outcome."""
    intro: tuple[str, ...]
    middle: tuple[str, ...]
    close: tuple[str, ...]
    actors: tuple[str, ...]
    impacts: tuple[str, ...]


WEDDING_TEMPLATES = NarrativeTemplates(
    intro=(
        "What surprised us was how {actor} responded to {detail}.",
        "The moment that stayed with us came when {actor} noticed {detail}.",
        "After the gallery went live, something unexpected happened.",
    ),
    middle=(
        "Because {cause}, {actor} {impact}, and that changed the feel of the whole day.",
        "{actor} {impact} soon after, largely because {cause}.",
        "Because {cause}, {actor} {impact} after seeing the preview.",
    ),
    close=(
        "That feedback has shaped how we approach every wedding since.",
        "It's moments like these that remind us why the details matter.",
        "{actor} later mentioned {detail} as the reason the photos felt genuine.",
    ),
    actors=("the couple", "couples", "guests", "the family"),
    impacts=("shared the gallery first", "requested extra prints", "referred friends", "confirmed the booking"),
)

ESTATE_TEMPLATES = NarrativeTemplates(
    intro=(
        "What we noticed during viewings was how {actor} responded to {detail}.",
        "The first few days on the market told an interesting story.",
        "When we listed this property, we paid close attention to how buyers behaved.",
    ),
    middle=(
        "Because {cause}, {actor} {impact} faster than we typically see.",
        "{actor} {impact} by the end of the first week, largely because {cause}.",
    ),
    close=(
        "{actor} specifically mentioned {detail} as a deciding factor.",
        "The outcome reinforced how we present properties like this.",
    ),
    actors=("buyers", "the buyer", "applicants"),
    impacts=("booked a second viewing", "submitted an offer", "proceeded quickly", "arranged a second viewing"),
)

TRADE_TEMPLATES = NarrativeTemplates(
    intro=(
        "What stood out on this job was how {actor} reacted to {detail}.",
        "The customer's response to the finished work was telling.",
    ),
    middle=(
        "Because {cause}, {actor} {impact} and asked about further work.",
        "{actor} {impact} after seeing the finished result, because {cause}.",
    ),
    close=(
        "{actor} later mentioned {detail} as why they chose to go ahead.",
        "That kind of feedback is why we document our work.",
    ),
    actors=("the customer", "the homeowner", "clients"),
    impacts=("approved the quote", "referred neighbours", "requested more work", "confirmed on the spot"),
)

GENERIC_TEMPLATES = NarrativeTemplates(
    intro=(
        "What we noticed was how {actor} responded to {detail}.",
        "After delivery, we kept track of what happened next.",
    ),
    middle=(
        "Because {cause}, {actor} {impact}.",
        "{actor} {impact} soon after, because {cause}.",
    ),
    close=(
        "{actor} specifically referenced {detail} as a key factor.",
        "That outcome has informed our approach since.",
    ),
    actors=("clients", "the client", "customers", "patients"),
    impacts=("proceeded", "booked a follow-up", "confirmed", "contacted us again", "instructed us", "recommended us"),
)

VERTICAL_TEMPLATES = {
    "wedding-photographer": WEDDING_TEMPLATES,
    "estate-agent": ESTATE_TEMPLATES,
    "trade-services": TRADE_TEMPLATES,
}


def templates_for(vocabulary: VerticalVocabulary) -> NarrativeTemplates:
    return VERTICAL_TEMPLATES.get(vocabulary.id, GENERIC_TEMPLATES)


def _capitalize(sentence: str) -> str:
    return sentence[:1].upper() + sentence[1:] if sentence else sentence


@dataclass
class RepairProposal:
    """A draft narrative insertion; always needs human review."""
    narrative: str
    inserted_block: ContentBlock
    insert_after: int
    strategy: str
    repaired_document: Document
    reason: str
    requires_review: bool = True

    def to_dict(self) -> dict:
        return {
            "narrative": self.narrative,
            "insert_after": self.insert_after,
            "strategy": self.strategy,
            "reason": self.reason,
            "requires_review": self.requires_review,
            "inserted_block": self.inserted_block.model_dump(),
        }


class NarrativeRepairSynthesizer:
    """
    Template-based narrative synthesizer.

    Randomness is injectable: pass a seed for reproducible output, or a
    chooser that picks one item from a sequence.
    """

    def __init__(
        self,
        registry: VocabularyRegistry = DEFAULT_REGISTRY,
        seed: Optional[int] = None,
        chooser: Optional[Callable[[Sequence[str]], str]] = None,
    ):
        self.registry = registry
        self.detector = NarrativeOutcomeDetector(registry)
        self._random = random.Random(seed)
        self._choose = chooser or self._random.choice

    def _options(self, candidates: Sequence[str], terms: tuple[str, ...]) -> list[str]:
        """Candidates that the vocabulary itself recognizes."""
        usable = [c for c in candidates if find_terms(terms, c)]
        if usable:
            return usable
        return [f"the {terms[0]}"] if terms else list(candidates)

    def build_context(
        self,
        vocabulary: VerticalVocabulary,
        vision_signals: Sequence[str],
        user_facts: Sequence[str],
        location: Optional[str],
    ) -> dict[str, str]:
        """Placeholder values for one synthesis."""
        templates = templates_for(vocabulary)

        detail = (
            next((s for s in vision_signals if len(s) > 15), None)
            or next((f for f in user_facts if len(f) > 15), None)
            or location
            or "the attention to detail"
        )

        if location:
            causes = (
                f"of the setting in {location}",
                f"of the local character of {location}",
                "of what we highlighted",
            )
        else:
            causes = (
                "of how we approached it",
                "of the way it was presented",
                "of the details we captured",
            )

        actors = self._options(templates.actors, vocabulary.actor_terms)
        impacts = [i for i in templates.impacts if find_terms(vocabulary.impact_verbs, i)]
        if not impacts:
            impacts = [vocabulary.impact_verbs[0]]

        return {
            "detail": detail.lower().rstrip("."),
            "actor": self._choose(actors),
            "impact": self._choose(impacts),
            "cause": self._choose(causes),
            "location": location or "",
        }

    def synthesize(
        self,
        vocabulary: VerticalVocabulary,
        vision_signals: Sequence[str] = (),
        user_facts: Sequence[str] = (),
        location: Optional[str] = None,
    ) -> str:
        """
        Build an intro / causal middle / close paragraph.

        Args:
            vocabulary: Vertical vocabulary to write for
            vision_signals: Observed details to reference
            user_facts: Client-supplied facts (preferred for detail)
            location: Place name for the cause phrase

        Returns:
            Narrative text that the detector accepts as a valid outcome
        """
        templates = templates_for(vocabulary)
        context = self.build_context(vocabulary, vision_signals, user_facts, location)

        sentences = [
            self._choose(templates.intro),
            self._choose(templates.middle),
            self._choose(templates.close),
        ]
        narrative = " ".join(_capitalize(s.format(**context)) for s in sentences)

        detection = self.detector.detect(narrative, vocabulary=vocabulary)
        if detection.has_narrative_outcome:
            return narrative

        fallback = _capitalize(f"Because {context['cause']}, {context['actor']} {context['impact']}.")
        logger.debug("narrative_template_rejected", vocabulary=vocabulary.id, narrative=narrative[:80])
        return fallback

    def propose(
        self,
        document: Document,
        requirements: Requirements,
        detection: Optional[NarrativeDetection] = None,
    ) -> Optional[RepairProposal]:
        """
        Propose a narrative insertion for a document.

        Returns:
            RepairProposal, or None when there is no vision or a valid
            outcome already exists
        """
        vocabulary = self.registry.resolve(requirements.service)
        if detection is None:
            detection = self.detector.detect(document.to_text(), vocabulary=vocabulary)

        if not detection.has_vision:
            logger.debug("repair_skipped", reason="no_vision")
            return None
        if detection.has_narrative_outcome:
            logger.debug("repair_skipped", reason="outcome_present")
            return None

        signals = detection.vision.signals
        narrative = self.synthesize(vocabulary, signals, requirements.user_facts, requirements.location)
        block = ContentBlock(
            kind=BlockKind.PARAGRAPH.value,
            markup=f"<p>{html.escape(narrative, quote=False)}</p>",
        )

        insert_after, strategy = find_insertion_point(document.blocks, signals)
        blocks = list(document.blocks)
        blocks.insert(insert_after + 1, block)
        repaired = document.model_copy(update={"blocks": blocks})

        logger.info("narrative_repair_proposed", strategy=strategy, insert_after=insert_after)

        return RepairProposal(
            narrative=narrative,
            inserted_block=block,
            insert_after=insert_after,
            strategy=strategy,
            repaired_document=repaired,
            reason="Vision evidence present without a narrative outcome",
        )


# =====================================================
# INSERTION
# =====================================================

def _is_prose(block: ContentBlock) -> bool:
    return block.kind not in (BlockKind.HEADING.value, BlockKind.IMAGE.value, BlockKind.TABLE.value)


def find_insertion_point(blocks: Sequence[ContentBlock], vision_signals: Sequence[str]) -> tuple[int, str]:
    """
    Index of the top-level block to insert after, and the strategy used.

    1. after the first prose block containing a vision signal
    2. at the end of the first H2 section
    3. after the first paragraph (or at the start of an empty document)
    """
    needles = [s.lower()[:20] for s in vision_signals if s.strip()]

    for index, block in enumerate(blocks):
        if not _is_prose(block):
            continue
        text = render_blocks([block]).lower()
        if text and any(needle in text for needle in needles):
            return index, "after_vision_paragraph"

    for index, block in enumerate(blocks):
        if block.kind == BlockKind.HEADING.value and block.heading_level == 2:
            end = index
            for later in range(index + 1, len(blocks)):
                if blocks[later].kind == BlockKind.HEADING.value and blocks[later].heading_level <= 2:
                    break
                end = later
            if end > index:
                return end, "end_of_first_section"
            break

    for index, block in enumerate(blocks):
        if block.kind == BlockKind.PARAGRAPH.value:
            return index, "after_first_paragraph"

    return len(blocks) - 1, "append"


def inject_evidence_section(document: Document, vision_facts: Sequence[str]) -> Document:
    """
    Insert a "What We've Seen in Practice" group carrying the vision facts.

    Placed before the FAQ section when there is one, otherwise at the end.
    Documents that already have an evidence heading are returned unchanged.
    """
    facts = [f.strip().rstrip(".") for f in vision_facts if f.strip()]
    if not facts or has_evidence_heading(document):
        return document

    paragraph = f"{EVIDENCE_SECTION_INTRO} {'; '.join(facts)}."
    section = ContentBlock(
        kind=BlockKind.GROUP.value,
        children=[
            ContentBlock(
                kind=BlockKind.HEADING.value,
                attributes={"level": 2},
                markup=f"<h2>{html.escape(EVIDENCE_SECTION_HEADING, quote=False)}</h2>",
            ),
            ContentBlock(
                kind=BlockKind.PARAGRAPH.value,
                markup=f"<p>{html.escape(paragraph, quote=False)}</p>",
            ),
        ],
    )

    blocks = list(document.blocks)
    insert_at = len(blocks)
    for index, block in enumerate(blocks):
        text = render_blocks([block]).lower()
        if "frequently asked" in text or "faq" in text:
            insert_at = index
            break
    blocks.insert(insert_at, section)

    logger.debug("evidence_section_injected", facts=len(facts), position=insert_at)

    return document.model_copy(update={"blocks": blocks})
