"""
Authority (EEAT) scoring.

Additive score out of 100 over eight presence checks. Each signal is a
set of regexes tested against the light-markdown rendering of the
document; the first pattern that hits awards the signal's full weight.

Default weights:
- aeo_qa                  15  (FAQ / question headings)
- comparison_table        10  (a table row with 2+ columns)
- checklist               10  (bullet list or "checklist")
- decision_support        15  ("if you", "depending on", "best for" ...)
- first_party_experience  20  ("we've seen", "in our experience" ...)
- trade_offs              10  ("however", "the downside" ...)
- process                 10  ("how it works", "step 1" ...)
- local_context           10  (awarded automatically when geo is not required)
"""

import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Mapping, Optional, Sequence

from .document import Document
from .logging_conf import get_logger
from .requirements import Requirements
from .sections import location_terms
from .violations import Category, GateCode, Severity, Violation

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthoritySignal:
    """A named, weighted presence check."""
    name: str
    weight: int
    patterns: tuple[str, ...]
    description: str = ""

    @cached_property
    def regexes(self) -> list[re.Pattern]:
        return [re.compile(p, re.IGNORECASE | re.MULTILINE) for p in self.patterns]

    def present(self, text: str) -> bool:
        return any(r.search(text) for r in self.regexes)


LOCAL_CONTEXT = "local_context"
DECISION_SIGNALS = ("comparison_table", "checklist", "decision_support")

DEFAULT_AUTHORITY_SIGNALS = (
    AuthoritySignal(
        "aeo_qa", 15,
        (
            r"^#{2,4}\s.*\b(?:faqs?|frequently asked|questions?)\b",
            r"^#{2,4}\s[^\n]+\?\s*$",
        ),
        "Question-and-answer section",
    ),
    AuthoritySignal(
        "comparison_table", 10,
        (r"^\|[^|\n]+\|[^|\n]+\|",),
        "Comparison table",
    ),
    AuthoritySignal(
        "checklist", 10,
        (r"^-\s+\S", r"\bchecklist\b"),
        "Checklist or bullet list",
    ),
    AuthoritySignal(
        "decision_support", 15,
        (
            r"\b(?:if you(?:'re| are)?|depending on|whether you|best for|best suited|ideal for|worth it)\b",
            r"\b(?:choose|choosing|consider|considering|decide|deciding)\b",
        ),
        "Decision-support language",
    ),
    AuthoritySignal(
        "first_party_experience", 20,
        (
            r"\bwe(?:'ve| have) (?:seen|found|noticed|observed|worked|photographed|helped)\b",
            r"\bin (?:our|my) experience\b",
            r"\bwe (?:often|usually|regularly|typically) (?:see|find|notice)\b",
            r"\b(?:we|I) (?:observed|noticed|saw|found)\b",
            r"\b(?:in practice|on the ground|from recent (?:site )?visits|on-site)\b",
        ),
        "First-party experience markers",
    ),
    AuthoritySignal(
        "trade_offs", 10,
        (
            r"\b(?:however|on the other hand|trade-?offs?|downside|drawback|the catch|pros and cons|whereas)\b",
        ),
        "Trade-off language",
    ),
    AuthoritySignal(
        "process", 10,
        (
            r"\b(?:how it works|what to expect|step-by-step|timeline|our process|the process)\b",
            r"\bsteps?\s+\d\b",
            r"^(?:-\s+)?(?:first|next|finally),",
        ),
        "Process explanation",
    ),
    AuthoritySignal(
        LOCAL_CONTEXT, 10,
        (r"\b(?:local|locally|nearby|in the area|neighbourhood|neighborhood)\b",),
        "Local context",
    ),
)


@dataclass
class AuthorityScore:
    """Result of an authority scoring run."""
    score: int
    max_score: int = 100
    found: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "max_score": self.max_score,
            "found": list(self.found),
            "missing": list(self.missing),
        }


class AuthorityScorer:
    """
    Weighted EEAT presence scorer.

    Signals and weights are the tuning surface: pass a different signal
    set, or override individual weights by name.
    """

    def __init__(
        self,
        signals: Sequence[AuthoritySignal] = DEFAULT_AUTHORITY_SIGNALS,
        weights: Optional[Mapping[str, int]] = None,
    ):
        weights = weights or {}
        unknown = set(weights) - {s.name for s in signals}
        if unknown:
            raise ValueError(f"Unknown authority signals: {', '.join(sorted(unknown))}")
        self.signals = tuple(signals)
        self.weights = {s.name: weights.get(s.name, s.weight) for s in self.signals}

    @property
    def total_weight(self) -> int:
        return sum(self.weights.values())

    def _local_context_present(self, text: str, requirements: Requirements) -> bool:
        if not requirements.require_geo:
            return True
        text_lower = text.lower()
        if any(term.lower() in text_lower for term in location_terms(requirements)):
            return True
        signal = next(s for s in self.signals if s.name == LOCAL_CONTEXT)
        return signal.present(text)

    def score(self, text: str, requirements: Requirements) -> AuthorityScore:
        """
        Score plain text.

        Args:
            text: Light-markdown rendering of the document
            requirements: Supplies geo requirement and location

        Returns:
            AuthorityScore normalized to 0-100
        """
        found = []
        missing = []
        earned = 0

        for signal in self.signals:
            if signal.name == LOCAL_CONTEXT:
                present = self._local_context_present(text, requirements)
            else:
                present = signal.present(text)

            if present:
                found.append(signal.name)
                earned += self.weights[signal.name]
            else:
                missing.append(signal.name)

        total = self.total_weight
        score = round(earned * 100 / total) if total else 0

        return AuthorityScore(score=score, max_score=100, found=found, missing=missing)

    def evaluate(
        self,
        document: Document,
        requirements: Requirements,
        text: Optional[str] = None,
    ) -> tuple[list[Violation], AuthorityScore]:
        """
        Score a document and report authority violations.

        Returns:
            Tuple of (violations, score)
        """
        text = text if text is not None else document.to_text()
        result = self.score(text, requirements)
        violations = []

        if result.score < requirements.min_authority_score:
            violations.append(Violation(
                GateCode.EEAT_SCORE_LOW, Severity.ERROR,
                f"Authority score {result.score}/100 below {requirements.min_authority_score} "
                f"(missing: {', '.join(result.missing)})",
                Category.AUTHORITY,
                suggestion="Add the missing signals, starting with the heaviest: "
                           + ", ".join(sorted(result.missing, key=lambda n: -self.weights[n])[:3]),
            ))

        for name in requirements.required_authority_signals:
            if name not in self.weights:
                logger.debug("authority_signal_unknown", signal=name)
                continue
            if name in result.missing:
                violations.append(Violation(
                    GateCode.EEAT_SIGNAL_MISSING, Severity.ERROR,
                    f"Required authority signal '{name}' not found",
                    Category.AUTHORITY,
                    suggestion=f"Add {name.replace('_', ' ')} to the article",
                ))

        decision = [name for name in DECISION_SIGNALS if name in self.weights]
        if decision and all(name in result.missing for name in decision):
            violations.append(Violation(
                GateCode.MISSING_DECISION_SUPPORT, Severity.WARNING,
                "No comparison table, checklist or decision-support language",
                Category.AUTHORITY,
                suggestion="Add a comparison table or a 'what to consider' checklist",
            ))

        logger.debug(
            "authority_scored",
            score=result.score,
            found=len(result.found),
            missing=result.missing,
        )

        return violations, result
