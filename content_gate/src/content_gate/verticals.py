"""
Vertical vocabularies for narrative-outcome scoring.

Each business vertical has its own actors (who acts), impact verbs (what
they did), proof words (domain nouns that make a claim checkable) and
vague-outcome patterns. Vocabularies are frozen lookup tables; the
registry that selects one is built once and injected into the detector.

Lookup order for a free-text service/niche string:
1. Exact alias (e.g. "plumber" -> trade-services)
2. Substring match in either direction
3. Keyword heuristics
4. Generic fallback (unknown verticals never fail, they degrade)
"""

import re
from dataclasses import dataclass, field
from functools import cached_property, lru_cache
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Sequence


@dataclass(frozen=True)
class VaguePattern:
    """A named vague-outcome rule."""
    name: str
    category: str
    pattern: str

    @cached_property
    def regex(self) -> re.Pattern:
        return re.compile(self.pattern, re.IGNORECASE)

    def search(self, sentence: str) -> Optional[str]:
        """Return the matched text, or None."""
        match = self.regex.search(sentence)
        return match.group(0) if match else None


@dataclass(frozen=True)
class VerticalVocabulary:
    """Term lists used to score sentences for one vertical."""
    id: str
    name: str
    actor_terms: tuple[str, ...]
    impact_verbs: tuple[str, ...]
    cause_anchors: tuple[str, ...]
    evidence_qualifiers: tuple[str, ...]
    proof_words: tuple[str, ...]
    vague_patterns: tuple[VaguePattern, ...] = field(default=())

    def describe(self) -> dict:
        """Summary for display."""
        return {
            "id": self.id,
            "name": self.name,
            "actors": len(self.actor_terms),
            "impact_verbs": len(self.impact_verbs),
            "proof_words": len(self.proof_words),
            "vague_patterns": len(self.vague_patterns),
        }


@lru_cache(maxsize=None)
def compile_terms(terms: tuple[str, ...]) -> re.Pattern:
    """Compile a term list into one word-bounded, case-insensitive matcher."""
    ordered = sorted(set(terms), key=len, reverse=True)
    alternation = "|".join(re.escape(term) for term in ordered)
    return re.compile(r"(?<!\w)(?:" + alternation + r")(?!\w)", re.IGNORECASE)


def find_terms(terms: tuple[str, ...], text: str) -> list[str]:
    """All distinct terms from the list found in the text, lowercased."""
    if not terms:
        return []
    found = []
    for match in compile_terms(terms).finditer(text):
        term = match.group(0).lower()
        if term not in found:
            found.append(term)
    return found


# =====================================================
# SHARED TERM LISTS
# =====================================================

BASE_CAUSE_ANCHORS = (
    "because", "due to", "which meant", "so", "that led to",
    "resulting in", "as a result", "that's why", "which is why",
    "since", "after seeing", "after viewing", "having seen",
    "once they saw", "when they noticed",
)

BASE_EVIDENCE_QUALIFIERS = (
    "within", "after", "before", "same day", "same week",
    "first", "later", "then", "compared", "more than",
    "fewer than", "less than", "over", "under",
    "percent", "hours", "days", "weeks", "months",
)

BASE_VAGUE_PATTERNS = (
    VaguePattern(
        "generated_interest", "generic_performance",
        r"\b(?:generated|created|drove|boosted)\s+(?:\w+\s+)?(?:interest|engagement|results|growth|awareness)\b",
    ),
    VaguePattern(
        "audience_loved_it", "empty_praise",
        r"\b(?:clients|people|couples|buyers|guests|customers)\s+(?:loved|liked|enjoyed|were happy|were pleased)\b",
    ),
    VaguePattern(
        "performed_well", "generic_performance",
        r"\b(?:went|performed)\s+(?:really\s+)?(?:well|great|better|strongly)\b",
    ),
    VaguePattern(
        "strong_results", "generic_performance",
        r"\b(?:strong|great|amazing|excellent|fantastic|positive|good)\s+(?:results|performance|response|feedback|outcomes?)\b",
    ),
    VaguePattern("within_this_timeframe", "circular", r"\bwithin (?:this|that|the same) (?:timeframe|time frame|period)\b"),
    VaguePattern("driven_by_observation", "circular", r"\bdriven by (?:we|our|what we) (?:observed|documented|noted)\b"),
    VaguePattern("as_expected", "circular", r"\bas expected\b"),
    VaguePattern("trailing_observation", "circular", r"\b(?:as observed|we observed|we noted)\s*[.!?]?$"),
    VaguePattern("was_successful", "non_causal", r"\b(?:this|it|that) was (?:successful|effective|a success)\b"),
    VaguePattern(
        "thanks_to_our", "self_referential",
        r"\bthanks to our (?:expertise|approach|style|brand|experience|team)\b",
    ),
    VaguePattern(
        "due_to_our", "self_referential",
        r"\bdue to our (?:reputation|experience|quality|expertise)\b",
    ),
    VaguePattern(
        "resulted_in_positive", "missing_actor",
        r"\b(?:resulted in|led to)\s+(?:a\s+|an\s+)?(?:strong|positive|good|great|better|increased)\b",
    ),
    VaguePattern(
        "unanchored_time", "unanchored_time",
        r"\bwithin (?:days|weeks|hours|no time)\b(?!\s+(?:of|after|because|following))",
    ),
)


# =====================================================
# VERTICALS
# =====================================================

WEDDING_PHOTOGRAPHER = VerticalVocabulary(
    id="wedding-photographer",
    name="Wedding Photographer",
    actor_terms=(
        "couple", "couples", "bride", "groom", "guests", "guest",
        "parents", "family", "families", "planner", "coordinator",
        "venue", "venues", "enquiry", "enquiries", "consultation",
        "consultations", "booking", "bookings", "client", "clients",
        "bridesmaids", "groomsmen", "wedding party",
    ),
    impact_verbs=(
        "booked", "confirmed", "enquired", "requested", "chose", "chosen",
        "upgraded", "shared", "ordered", "referred", "shortlisted", "selected",
        "decided", "picked", "went with", "recommended", "contacted",
        "reached out", "messaged", "called", "emailed", "purchased",
        "bought", "added",
    ),
    cause_anchors=BASE_CAUSE_ANCHORS,
    evidence_qualifiers=BASE_EVIDENCE_QUALIFIERS,
    proof_words=(
        "enquiry", "booking", "consultation", "gallery", "album", "prints",
        "referral", "portfolio", "package", "deposit", "contract", "signed",
        "wedding day", "ceremony", "reception", "first dance", "confetti", "vows",
    ),
    vague_patterns=BASE_VAGUE_PATTERNS + (
        VaguePattern("couples_loved_it", "empty_praise", r"\bcouples? (?:loved|liked|enjoyed) (?:it|the|our|this)\b"),
        VaguePattern("beautiful_results", "empty_praise", r"\bbeautiful (?:results|photos|images)\b"),
        VaguePattern("stunning_shots", "empty_praise", r"\bstunning (?:shots|images|photos)\b"),
    ),
)

ESTATE_AGENT = VerticalVocabulary(
    id="estate-agent",
    name="Estate Agent / Property",
    actor_terms=(
        "buyer", "buyers", "seller", "sellers", "vendor", "vendors",
        "landlord", "landlords", "tenant", "tenants", "viewing", "viewings",
        "enquiry", "enquiries", "offer", "offers", "applicant", "applicants",
        "chain", "chains", "purchaser", "purchasers",
    ),
    impact_verbs=(
        "booked", "viewed", "offered", "accepted", "reduced", "listed",
        "sold", "completed", "exchanged", "agreed", "confirmed", "proceeded",
        "instructed", "committed", "secured", "submitted", "requested",
        "registered", "shortlisted", "arranged", "scheduled",
    ),
    cause_anchors=BASE_CAUSE_ANCHORS,
    evidence_qualifiers=BASE_EVIDENCE_QUALIFIERS + (
        "asking price", "guide price", "over asking", "under offer", "sold stc", "chain-free",
    ),
    proof_words=(
        "viewing", "offer", "sold", "asking price", "guide price", "chain",
        "completion", "exchange", "under offer", "sold stc", "memorandum",
        "survey", "mortgage", "stamp duty", "conveyancing",
    ),
    vague_patterns=BASE_VAGUE_PATTERNS + (
        VaguePattern("property_did_well", "generic_performance", r"\bproperty (?:performed|did) (?:well|great)\b"),
        VaguePattern("strong_interest", "generic_performance", r"\bstrong (?:interest|demand)\b"),
        VaguePattern("lots_of_interest", "generic_performance", r"\blots of (?:interest|viewings|enquiries)\b"),
    ),
)

SOLICITOR = VerticalVocabulary(
    id="solicitor",
    name="Solicitor / Legal Services",
    actor_terms=(
        "client", "clients", "claimant", "claimants", "defendant", "defendants",
        "party", "parties", "enquiry", "enquiries", "case", "cases",
        "matter", "matters", "instruction", "instructions",
    ),
    impact_verbs=(
        "instructed", "engaged", "retained", "settled", "resolved", "concluded",
        "completed", "proceeded", "agreed", "signed", "executed", "exchanged",
        "referred", "recommended", "contacted",
    ),
    cause_anchors=BASE_CAUSE_ANCHORS,
    evidence_qualifiers=BASE_EVIDENCE_QUALIFIERS,
    proof_words=(
        "settlement", "completion", "exchange", "instruction", "retainer",
        "brief", "hearing", "court", "tribunal", "mediation", "negotiation",
    ),
    vague_patterns=BASE_VAGUE_PATTERNS,
)

TRADE_SERVICES = VerticalVocabulary(
    id="trade-services",
    name="Trade Services",
    actor_terms=(
        "customer", "customers", "client", "clients", "homeowner", "homeowners",
        "property owner", "property owners", "enquiry", "enquiries",
        "quote", "quotes", "job", "jobs", "project", "projects",
    ),
    impact_verbs=(
        "booked", "confirmed", "requested", "agreed", "proceeded", "approved",
        "signed off", "accepted", "chose", "referred", "recommended",
        "contacted", "called back", "scheduled", "arranged",
    ),
    cause_anchors=BASE_CAUSE_ANCHORS,
    evidence_qualifiers=BASE_EVIDENCE_QUALIFIERS,
    proof_words=(
        "quote", "estimate", "job", "project", "installation", "repair",
        "completion", "sign-off", "warranty", "guarantee", "certificate",
    ),
    vague_patterns=BASE_VAGUE_PATTERNS,
)

DENTAL = VerticalVocabulary(
    id="dental",
    name="Dental / Medical Services",
    actor_terms=(
        "patient", "patients", "client", "clients", "enquiry", "enquiries",
        "appointment", "appointments", "consultation", "consultations",
        "referral", "referrals",
    ),
    impact_verbs=(
        "booked", "scheduled", "confirmed", "proceeded", "chose", "selected",
        "referred", "recommended", "returned", "completed", "continued", "upgraded",
    ),
    cause_anchors=BASE_CAUSE_ANCHORS,
    evidence_qualifiers=BASE_EVIDENCE_QUALIFIERS,
    proof_words=(
        "appointment", "treatment", "procedure", "consultation", "check-up",
        "follow-up", "referral", "recommendation",
    ),
    vague_patterns=BASE_VAGUE_PATTERNS,
)

GENERIC = VerticalVocabulary(
    id="generic",
    name="Generic Business",
    actor_terms=(
        "client", "clients", "customer", "customers", "enquiry", "enquiries",
        "lead", "leads", "prospect", "prospects", "user", "users",
        "visitor", "visitors",
    ),
    impact_verbs=(
        "booked", "confirmed", "purchased", "signed up", "registered",
        "contacted", "enquired", "requested", "chose", "selected", "decided",
        "proceeded", "referred", "recommended", "converted",
    ),
    cause_anchors=BASE_CAUSE_ANCHORS,
    evidence_qualifiers=BASE_EVIDENCE_QUALIFIERS,
    proof_words=("sale", "conversion", "booking", "enquiry", "lead", "signup"),
    vague_patterns=BASE_VAGUE_PATTERNS,
)


# =====================================================
# REGISTRY
# =====================================================

class VocabularyRegistry:
    """
    Immutable lookup from free-text service strings to vocabularies.

    Built once and passed to whatever needs it; nothing mutates it after
    construction.
    """

    def __init__(
        self,
        vocabularies: Iterable[VerticalVocabulary],
        aliases: Mapping[str, str],
        keyword_rules: Sequence[tuple[str, str]] = (),
        fallback_id: str = "generic",
    ):
        """
        Initialize registry.

        Args:
            vocabularies: Vocabularies to register (ids must be unique)
            aliases: Lowercase alias -> vocabulary id, checked in order
            keyword_rules: (regex, vocabulary id) heuristics, checked in order
            fallback_id: Vocabulary used when nothing matches
        """
        by_id = {v.id: v for v in vocabularies}
        if fallback_id not in by_id:
            raise ValueError(f"Fallback vocabulary '{fallback_id}' not registered")

        alias_map = {v.id: v.id for v in by_id.values()}
        for alias, vocab_id in aliases.items():
            if vocab_id not in by_id:
                raise ValueError(f"Alias '{alias}' points at unknown vocabulary '{vocab_id}'")
            alias_map[alias.lower()] = vocab_id

        self._vocabularies = MappingProxyType(by_id)
        self._aliases = MappingProxyType(alias_map)
        self._keyword_rules = tuple((re.compile(p, re.IGNORECASE), vid) for p, vid in keyword_rules)
        self._fallback_id = fallback_id

    @property
    def fallback(self) -> VerticalVocabulary:
        return self._vocabularies[self._fallback_id]

    def get(self, vocab_id: str) -> Optional[VerticalVocabulary]:
        """Get a vocabulary by id."""
        return self._vocabularies.get(vocab_id)

    def resolve(self, service: Optional[str]) -> VerticalVocabulary:
        """
        Pick the vocabulary for a service/niche string.

        Args:
            service: Free text such as "Wedding photography" or "plumber"

        Returns:
            Matching vocabulary, or the fallback
        """
        if not service or not service.strip():
            return self.fallback

        key = service.lower().strip()

        if key in self._aliases:
            return self._vocabularies[self._aliases[key]]

        for alias, vocab_id in self._aliases.items():
            if alias in key or key in alias:
                return self._vocabularies[vocab_id]

        for pattern, vocab_id in self._keyword_rules:
            if pattern.search(key):
                return self._vocabularies[vocab_id]

        return self.fallback

    def __iter__(self) -> Iterator[VerticalVocabulary]:
        return iter(self._vocabularies.values())

    def __len__(self) -> int:
        return len(self._vocabularies)

    def __contains__(self, vocab_id: str) -> bool:
        return vocab_id in self._vocabularies


DEFAULT_ALIASES = {
    "wedding": WEDDING_PHOTOGRAPHER.id,
    "photography": WEDDING_PHOTOGRAPHER.id,
    "photographer": WEDDING_PHOTOGRAPHER.id,
    "videographer": WEDDING_PHOTOGRAPHER.id,
    "estate": ESTATE_AGENT.id,
    "property": ESTATE_AGENT.id,
    "letting": ESTATE_AGENT.id,
    "solicitor": SOLICITOR.id,
    "legal": SOLICITOR.id,
    "law": SOLICITOR.id,
    "trade": TRADE_SERVICES.id,
    "plumber": TRADE_SERVICES.id,
    "electrician": TRADE_SERVICES.id,
    "builder": TRADE_SERVICES.id,
    "dentist": DENTAL.id,
    "medical": DENTAL.id,
}

DEFAULT_KEYWORD_RULES = (
    (r"wedding|photography|photo|video|film", WEDDING_PHOTOGRAPHER.id),
    (r"estate|property|letting|rental|valuation", ESTATE_AGENT.id),
    (r"solicitor|legal|lawyer|conveyanc", SOLICITOR.id),
    (r"plumb|electric|build|trade|roof|carpent|heating|boiler", TRADE_SERVICES.id),
    (r"dental|dentist|medical|doctor|clinic", DENTAL.id),
)

DEFAULT_REGISTRY = VocabularyRegistry(
    vocabularies=(WEDDING_PHOTOGRAPHER, ESTATE_AGENT, SOLICITOR, TRADE_SERVICES, DENTAL, GENERIC),
    aliases=DEFAULT_ALIASES,
    keyword_rules=DEFAULT_KEYWORD_RULES,
    fallback_id=GENERIC.id,
)


def get_vocabulary(service: Optional[str], registry: VocabularyRegistry = DEFAULT_REGISTRY) -> VerticalVocabulary:
    """Resolve a vocabulary through the default registry."""
    return registry.resolve(service)
