"""
Narrative-outcome detection.

Decides whether an article contains at least one credible claim of
result: a sentence naming an actor, an action that actor took and,
ideally, a causal anchor ("Because the garden backs onto the canal,
buyers booked viewings within 48 hours"), as opposed to vague performance
language ("This generated strong interest").

Pipeline:
1. Vision signals: first-person observation phrases, visual descriptors
   and scene anchors. An article "has vision" with 3+ distinct signals,
   any first-person observation, or 2+ visual descriptor groups.
2. Segmentation: headings, table rows and bullet markers are dropped,
   abbreviations and decimals are protected, fragments of 10 chars or
   fewer are discarded.
3. Scoring against the vertical vocabulary:
   actor +2, impact verb +2, cause anchor +2, qualifier +1,
   first person or quoted speech +1, proof word +2 (max 10).
4. Vague-pattern rejection (independent of score).
5. Classification: >= 6 and not vague is valid, >= 6 and vague is a
   rejected outcome, 4-5 is weak and earns a repair suggestion.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from .document import Document
from .logging_conf import get_logger
from .requirements import Requirements
from .verticals import (
    DEFAULT_REGISTRY,
    VaguePattern,
    VerticalVocabulary,
    VocabularyRegistry,
    find_terms,
)
from .violations import Category, GateCode, Severity, Violation

logger = get_logger(__name__)


VALID_OUTCOME_SCORE = 6
WEAK_OUTCOME_SCORE = 4
CASE_STUDY_OUTCOME_SCORE = 7
MAX_OUTCOME_SCORE = 10
MIN_SENTENCE_CHARS = 11
MAX_VISION_SIGNALS = 8

_MONTHS = (
    "January|February|March|April|May|June|July|August|"
    "September|October|November|December"
)

FIRST_PERSON_OBSERVATION_PATTERNS = [
    r"\b(?:I|we|my|our)\s+(?:observed|noticed|saw|captured|photographed|documented|recorded|witnessed)\b",
    r"\bduring (?:the|our|my)\s+(?:shoot|session|visit|assessment|viewing|inspection|survey)\b",
    r"\bon (?:the|that) day\b",
    r"\bwhen (?:I|we) (?:arrived|visited|met|saw)\b",
    r"\b(?:I|we) (?:found|discovered|realised|realized|noted)\b",
]

# (group name, pattern); a group counts once however many words match
VISUAL_DESCRIPTOR_PATTERNS = [
    ("lighting", r"\b(?:natural light|golden hour|soft light|harsh light|diffused|backlit|silhouette)\b"),
    ("architecture", r"\b(?:architecture|facade|interior|exterior|layout|floorplan|garden|grounds)\b"),
    ("scene", r"\b(?:ceremony|reception|venue|location|setting|backdrop|scene)\b"),
    ("furnishing", r"\b(?:dress|suit|bouquet|flowers|decor|table|chairs|furniture)\b"),
    ("weather", r"\b(?:weather|sunshine|rain|clouds|wind|morning|afternoon|evening)\b"),
    ("neighbourhood", r"\b(?:street|road|neighbourhood|neighborhood|area|district|town|village|city)\b"),
    ("rooms", r"\b(?:kitchen|bathroom|bedroom|living room|lounge|dining|hallway)\b"),
]

# Capitalized names stay case-sensitive; the lead-in words do not
SCENE_ANCHOR_PATTERNS = [
    r"\b(?i:at|near|by|overlooking|facing)\s+(?!(?:The|This|That|A|An|Our|Their)\b)[A-Z][a-z]+",
    r"\b(?!(?:The|This|That|A|An|Our|Their|Your|Its|Every|Each)\b)[A-Z][a-z]+(?:'s|s)?\s+"
    r"(?i:barn|hall|manor|house|hotel|church|venue|garden)s?\b",
    r"\b(?i:in|around)\s+(?:" + _MONTHS + r")\b",
    r"\b(?:Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)\b",
    r"\b\d{1,2}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:" + _MONTHS + r")\b",
]

_FIRST_PERSON_OBSERVATION = [re.compile(p, re.IGNORECASE) for p in FIRST_PERSON_OBSERVATION_PATTERNS]
_VISUAL_DESCRIPTORS = [(name, re.compile(p, re.IGNORECASE)) for name, p in VISUAL_DESCRIPTOR_PATTERNS]
_SCENE_ANCHORS = [re.compile(p) for p in SCENE_ANCHOR_PATTERNS]

_HEADING_LINE = re.compile(r"^\s{0,3}#{1,6}\s+")
_TABLE_LINE = re.compile(r"^\s*\|")
_BULLET_PREFIX = re.compile(r"^\s*(?:[-*+>]|\d+[.)])\s+")
_ABBREVIATIONS = re.compile(r"\b(?:Mr|Mrs|Ms|Dr|St|Prof|Sr|Jr|vs|etc|approx|e\.g|i\.e)\.")
_DECIMAL_POINT = re.compile(r"(?<=\d)\.(?=\d)")
_SENTENCE_END = re.compile(r"[.!?]+[\"'”’)\]]*(?=\s|$)")
_MASK = "․"

_FIRST_PERSON_PRONOUN = re.compile(r"(?<!\w)(?:I|[Ww]e|[Oo]ur|[Mm]y)(?!\w)")
_QUOTED_SPEECH = re.compile(r"[\"“][^\"“”]{10,}[\"”]|(?<!\w)'[^']{10,}'(?!\w)")
_DIGIT = re.compile(r"\d+")


# =====================================================
# DATA
# =====================================================

@dataclass
class VisionSignals:
    """First-hand observation evidence found in the text."""
    signals: list[str] = field(default_factory=list)
    first_person: list[str] = field(default_factory=list)
    visual_groups: list[str] = field(default_factory=list)
    scene_anchors: list[str] = field(default_factory=list)
    distinct_count: int = 0

    @property
    def has_vision(self) -> bool:
        return (
            self.distinct_count >= 3
            or bool(self.first_person)
            or len(self.visual_groups) >= 2
        )


@dataclass
class Sentence:
    """A prose sentence and its character range in the source text."""
    text: str
    start: int
    end: int


@dataclass
class OutcomeSpan:
    """A scored sentence."""
    text: str
    char_range: tuple[int, int]
    score: int
    matched_signals: list[str] = field(default_factory=list)
    is_vague: bool = False
    vague_match: Optional[str] = None
    vague_pattern: Optional[str] = None

    def has_signal(self, kind: str) -> bool:
        """Check for a signal kind such as 'actor' or 'cause'."""
        prefix = f"{kind}:"
        return any(s == kind or s.startswith(prefix) for s in self.matched_signals)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "char_range": list(self.char_range),
            "score": self.score,
            "matched_signals": list(self.matched_signals),
            "is_vague": self.is_vague,
            "vague_match": self.vague_match,
            "vague_pattern": self.vague_pattern,
        }


@dataclass
class RecommendedFix:
    """A concrete rewrite suggestion."""
    type: str  # add-outcome, fix-vague, add-cause, add-actor
    message: str
    target_sentence: Optional[str] = None


@dataclass
class NarrativeDetection:
    """Everything the detector found in one text."""
    vocabulary_id: str
    vision: VisionSignals = field(default_factory=VisionSignals)
    outcome_spans: list[OutcomeSpan] = field(default_factory=list)
    valid_outcomes: list[OutcomeSpan] = field(default_factory=list)
    vague_outcomes: list[OutcomeSpan] = field(default_factory=list)
    weak_outcomes: list[OutcomeSpan] = field(default_factory=list)
    recommended_fixes: list[RecommendedFix] = field(default_factory=list)

    @property
    def has_vision(self) -> bool:
        return self.vision.has_vision

    @property
    def has_narrative_outcome(self) -> bool:
        return bool(self.valid_outcomes)

    @property
    def best_score(self) -> int:
        """Best score among valid outcomes (0 when there are none)."""
        return max((span.score for span in self.valid_outcomes), default=0)

    @property
    def rejected_outcomes(self) -> list[OutcomeSpan]:
        """Vague sentences that otherwise scored as outcomes."""
        return [span for span in self.vague_outcomes if span.score >= VALID_OUTCOME_SCORE]

    @property
    def requires_repair(self) -> bool:
        return self.has_vision and not self.has_narrative_outcome

    def summary(self) -> str:
        """One-line summary."""
        if not self.has_vision:
            return "No vision signals"
        if self.has_narrative_outcome:
            return (
                f"Vision with {len(self.valid_outcomes)} narrative outcome(s), "
                f"best score {self.best_score}/{MAX_OUTCOME_SCORE}"
            )
        if self.rejected_outcomes:
            return f"Vision with {len(self.rejected_outcomes)} vague outcome(s), none valid"
        return "Vision without narrative outcome"

    def to_dict(self) -> dict:
        return {
            "vocabulary_id": self.vocabulary_id,
            "has_vision": self.has_vision,
            "has_narrative_outcome": self.has_narrative_outcome,
            "vision_signals": list(self.vision.signals),
            "best_score": self.best_score,
            "valid_outcomes": [s.to_dict() for s in self.valid_outcomes],
            "vague_outcomes": [s.to_dict() for s in self.vague_outcomes],
            "weak_outcomes": [s.to_dict() for s in self.weak_outcomes],
            "recommended_fixes": [
                {"type": f.type, "message": f.message, "target_sentence": f.target_sentence}
                for f in self.recommended_fixes
            ],
        }


# =====================================================
# VISION SIGNALS
# =====================================================

def detect_vision_signals(content: str) -> VisionSignals:
    """
    Scan text for first-hand observation evidence.

    Args:
        content: Article text (markdown headings allowed)

    Returns:
        VisionSignals (signals deduplicated, at most 8 kept)
    """
    result = VisionSignals()
    seen: list[str] = []

    def add(signal: str) -> None:
        key = signal.lower()
        if key not in seen:
            seen.append(key)
            result.signals.append(signal)

    for pattern in _FIRST_PERSON_OBSERVATION:
        match = pattern.search(content)
        if match:
            result.first_person.append(match.group(0))
            add(match.group(0))

    for name, pattern in _VISUAL_DESCRIPTORS:
        match = pattern.search(content)
        if match:
            result.visual_groups.append(name)
            add(match.group(0))

    for pattern in _SCENE_ANCHORS:
        match = pattern.search(content)
        if match:
            result.scene_anchors.append(match.group(0))
            add(match.group(0))

    result.distinct_count = len(seen)
    result.signals = result.signals[:MAX_VISION_SIGNALS]
    return result


# =====================================================
# SEGMENTATION
# =====================================================

def _mask_protected(text: str) -> str:
    """Hide abbreviation and decimal periods without shifting offsets."""
    masked = _ABBREVIATIONS.sub(lambda m: m.group(0).replace(".", _MASK), text)
    return _DECIMAL_POINT.sub(_MASK, masked)


def _append_sentence(sentences: list[Sentence], line: str, line_offset: int, start: int, end: int) -> None:
    segment = line[start:end]
    stripped = segment.strip()
    if len(stripped) < MIN_SENTENCE_CHARS:
        return
    lead = len(segment) - len(segment.lstrip())
    begin = line_offset + start + lead
    sentences.append(Sentence(text=stripped, start=begin, end=begin + len(stripped)))


def split_sentences(content: str) -> list[Sentence]:
    """
    Split prose into sentences with character ranges into ``content``.

    Heading lines and table rows are skipped; bullet markers are stripped.
    """
    sentences: list[Sentence] = []
    offset = 0

    for raw_line in content.splitlines(keepends=True):
        line_offset = offset
        offset += len(raw_line)
        line = raw_line.rstrip("\r\n")

        if not line.strip() or _HEADING_LINE.match(line) or _TABLE_LINE.match(line):
            continue

        bullet = _BULLET_PREFIX.match(line)
        start = bullet.end() if bullet else 0
        masked = _mask_protected(line)

        for match in _SENTENCE_END.finditer(masked, start):
            _append_sentence(sentences, line, line_offset, start, match.end())
            start = match.end()
        _append_sentence(sentences, line, line_offset, start, len(line))

    return sentences


# =====================================================
# SCORING
# =====================================================

def has_first_person_or_quote(sentence: str) -> Optional[str]:
    """Return 'quote' or 'first-person' when present."""
    if _QUOTED_SPEECH.search(sentence):
        return "quote"
    if _FIRST_PERSON_PRONOUN.search(sentence):
        return "first-person"
    return None


def find_qualifier(sentence: str, vocabulary: VerticalVocabulary) -> Optional[str]:
    """A number, a percent sign, or a qualifier word."""
    number = _DIGIT.search(sentence)
    if number:
        return number.group(0)
    if "%" in sentence:
        return "%"
    terms = find_terms(vocabulary.evidence_qualifiers, sentence)
    return terms[0] if terms else None


def score_sentence(sentence: str, vocabulary: VerticalVocabulary) -> tuple[int, list[str]]:
    """
    Score a sentence against a vocabulary.

    Args:
        sentence: One sentence of prose
        vocabulary: Vertical vocabulary

    Returns:
        Tuple of (score 0-10, matched signals like 'actor:buyers')
    """
    score = 0
    signals: list[str] = []

    actors = find_terms(vocabulary.actor_terms, sentence)
    if actors:
        score += 2
        signals.append(f"actor:{actors[0]}")

    impacts = find_terms(vocabulary.impact_verbs, sentence)
    if impacts:
        score += 2
        signals.append(f"impact:{impacts[0]}")

    causes = find_terms(vocabulary.cause_anchors, sentence)
    if causes:
        score += 2
        signals.append(f"cause:{causes[0]}")

    qualifier = find_qualifier(sentence, vocabulary)
    if qualifier:
        score += 1
        signals.append(f"qualifier:{qualifier}")

    voice = has_first_person_or_quote(sentence)
    if voice:
        score += 1
        signals.append(voice)

    proofs = find_terms(vocabulary.proof_words, sentence)
    if proofs:
        score += 2
        signals.append(f"proof:{proofs[0]}")

    return min(score, MAX_OUTCOME_SCORE), signals


def check_vague(sentence: str, vocabulary: VerticalVocabulary) -> Optional[tuple[VaguePattern, str]]:
    """First vague pattern that matches, with the matched text."""
    for pattern in vocabulary.vague_patterns:
        matched = pattern.search(sentence)
        if matched:
            return pattern, matched
    return None


# =====================================================
# DETECTOR
# =====================================================

class NarrativeOutcomeDetector:
    """
    Finds credible narrative outcomes in article text.

    Holds only the injected vocabulary registry; every call is independent.
    """

    def __init__(self, registry: VocabularyRegistry = DEFAULT_REGISTRY):
        self.registry = registry

    def score(self, sentence: str, service: Optional[str] = None) -> OutcomeSpan:
        """Score a single sentence (handy for debugging vocabularies)."""
        vocabulary = self.registry.resolve(service)
        return self._span(Sentence(sentence, 0, len(sentence)), vocabulary)

    def _span(self, sentence: Sentence, vocabulary: VerticalVocabulary) -> OutcomeSpan:
        score, signals = score_sentence(sentence.text, vocabulary)
        vague = check_vague(sentence.text, vocabulary)
        return OutcomeSpan(
            text=sentence.text,
            char_range=(sentence.start, sentence.end),
            score=score,
            matched_signals=signals,
            is_vague=vague is not None,
            vague_match=vague[1] if vague else None,
            vague_pattern=vague[0].name if vague else None,
        )

    def detect(
        self,
        content: str,
        service: Optional[str] = None,
        vocabulary: Optional[VerticalVocabulary] = None,
    ) -> NarrativeDetection:
        """
        Detect vision signals and narrative outcomes in text.

        Args:
            content: Article text
            service: Free-text service/niche used to pick a vocabulary
            vocabulary: Explicit vocabulary (wins over service)

        Returns:
            NarrativeDetection
        """
        vocabulary = vocabulary or self.registry.resolve(service)
        detection = NarrativeDetection(
            vocabulary_id=vocabulary.id,
            vision=detect_vision_signals(content),
        )

        for sentence in split_sentences(content):
            span = self._span(sentence, vocabulary)

            if span.score < WEAK_OUTCOME_SCORE:
                if span.is_vague:
                    detection.vague_outcomes.append(span)
                continue

            detection.outcome_spans.append(span)

            if span.is_vague:
                detection.vague_outcomes.append(span)
                if span.score >= VALID_OUTCOME_SCORE:
                    detection.recommended_fixes.append(RecommendedFix(
                        type="fix-vague",
                        message=f"Rewrite to remove vague phrasing \"{span.vague_match}\"; "
                                "name who acted, what they did and why.",
                        target_sentence=span.text[:80],
                    ))
            elif span.score >= VALID_OUTCOME_SCORE:
                detection.valid_outcomes.append(span)
            else:
                detection.weak_outcomes.append(span)
                if not span.has_signal("cause"):
                    detection.recommended_fixes.append(RecommendedFix(
                        type="add-cause",
                        message=f"Add a cause anchor (because, due to, which meant) to: \"{span.text[:60]}\"",
                        target_sentence=span.text[:80],
                    ))
                if not span.has_signal("actor"):
                    detection.recommended_fixes.append(RecommendedFix(
                        type="add-actor",
                        message=f"Say who acted ({', '.join(vocabulary.actor_terms[:3])}) in: \"{span.text[:60]}\"",
                        target_sentence=span.text[:80],
                    ))

        if detection.requires_repair:
            detection.recommended_fixes.append(RecommendedFix(
                type="add-outcome",
                message="Add a narrative outcome after the first observation: "
                        "\"Because [cause], [actor] [impact].\"",
            ))

        logger.debug(
            "narrative_detected",
            vocabulary=vocabulary.id,
            has_vision=detection.has_vision,
            valid=len(detection.valid_outcomes),
            vague=len(detection.vague_outcomes),
            best_score=detection.best_score,
        )

        return detection

    def evaluate(
        self,
        document: Document,
        requirements: Requirements,
        text: Optional[str] = None,
    ) -> tuple[list[Violation], NarrativeDetection]:
        """
        Run detection over a document and turn it into violations.

        Returns:
            Tuple of (violations, detection)
        """
        text = text if text is not None else document.to_text()
        detection = self.detect(text, service=requirements.service)
        if not requirements.check_narrative:
            return [], detection
        return narrative_violations(detection, requirements), detection


def narrative_violations(detection: NarrativeDetection, requirements: Requirements) -> list[Violation]:
    """
    Turn a detection into gate violations.

    - vision without a valid outcome: VISION_WITHOUT_OUTCOME
    - high-scoring but vague outcomes: VAGUE_OUTCOME (a warning when a
      valid outcome also exists)
    - case-study pages below score 7: OUTCOME_BELOW_CASE_STUDY_THRESHOLD
    - valid outcomes without a cause: NARRATIVE_WEAK_CAUSATION
    - outcomes without vision: OUTCOME_WITHOUT_VISION
    - weak (4-5) outcomes: NARRATIVE_WEAK_OUTCOME
    """
    violations = []
    is_case_study = requirements.is_case_study

    if detection.requires_repair:
        violations.append(Violation(
            GateCode.VISION_WITHOUT_OUTCOME, requirements.missing_outcome_severity,
            "Page shows first-hand observation but no narrative outcome",
            Category.NARRATIVE,
            suggestion="Add one sentence naming who acted, what they did and why "
                       "(e.g. 'Because [cause], [actor] [impact].')",
        ))

    rejected = detection.rejected_outcomes
    if rejected:
        phrases = ", ".join(f"'{span.vague_match}'" for span in rejected[:3])
        severity = Severity.WARNING if detection.has_narrative_outcome else requirements.vague_outcome_severity
        violations.append(Violation(
            GateCode.VAGUE_OUTCOME, severity,
            f"Outcome sentences use vague phrasing ({phrases})",
            Category.NARRATIVE,
            suggestion="Replace vague claims with a specific actor, impact verb and cause",
        ))

    if is_case_study and detection.best_score < CASE_STUDY_OUTCOME_SCORE:
        violations.append(Violation(
            GateCode.OUTCOME_BELOW_CASE_STUDY_THRESHOLD, Severity.ERROR,
            f"Case study needs an outcome scoring {CASE_STUDY_OUTCOME_SCORE}+ "
            f"(best is {detection.best_score}/{MAX_OUTCOME_SCORE})",
            Category.NARRATIVE,
            suggestion="Add a qualifier (time, count, comparison) and a proof word to the strongest outcome",
        ))

    uncaused = [span for span in detection.valid_outcomes if not span.has_signal("cause")]
    if uncaused and not is_case_study:
        violations.append(Violation(
            GateCode.NARRATIVE_WEAK_CAUSATION, Severity.WARNING,
            f"{len(uncaused)} outcome(s) lack a cause anchor",
            Category.NARRATIVE,
            suggestion="Add 'because', 'due to' or 'which meant' to tie the outcome to its cause",
        ))

    if detection.has_narrative_outcome and not detection.has_vision:
        violations.append(Violation(
            GateCode.OUTCOME_WITHOUT_VISION, Severity.WARNING,
            "Outcomes are claimed without first-hand observation",
            Category.NARRATIVE,
            suggestion="Describe what was seen on site before stating the result",
        ))

    for span in detection.weak_outcomes[:3]:
        missing = [kind for kind in ("cause", "actor") if not span.has_signal(kind)]
        violations.append(Violation(
            GateCode.NARRATIVE_WEAK_OUTCOME, Severity.INFO,
            f"Weak outcome ({span.score}/{MAX_OUTCOME_SCORE}): \"{span.text[:60]}\"",
            Category.NARRATIVE,
            suggestion=f"Add {' and '.join(missing)}" if missing else "Add a qualifier or proof word",
        ))

    return violations


def vision_eeat_adjustment(detection: NarrativeDetection) -> int:
    """
    EEAT points earned (or lost) by the vision evidence.

    0 without vision, -25 for vision without an outcome, otherwise
    60 / 50 / 40 depending on outcome strength and causation.
    """
    if not detection.has_vision:
        return 0
    if not detection.has_narrative_outcome:
        return -25
    has_cause = any(span.has_signal("cause") for span in detection.valid_outcomes)
    if detection.best_score >= CASE_STUDY_OUTCOME_SCORE and has_cause:
        return 60
    if has_cause:
        return 50
    return 40
