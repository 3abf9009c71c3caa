"""
Quality-gate aggregation.

Runs every validator over the same document and requirement bundle and
folds the results into one verdict:
- passed: no error-level violation anywhere
- score: 20 points per category (structure, seo, authority, narrative,
  geo) that raised no error, whatever its own sub-score
- violations: errors; warnings: warnings then info; both ordered by
  category, then detection order
- action: accept / regenerate / hard_fail

The gate is a pure function of (Document, Requirements). It reads no
settings and performs no I/O; repair proposals are only attached when
asked for.
"""

import json
from dataclasses import dataclass, field
from typing import Optional

from .authority import AuthorityScore, AuthorityScorer
from .document import Document
from .facts import FactUsageReport, validate_user_facts, validate_vision_facts
from .logging_conf import get_logger
from .narrative import NarrativeDetection, NarrativeOutcomeDetector, vision_eeat_adjustment
from .repair import NarrativeRepairSynthesizer, RepairProposal
from .requirements import Requirements
from .sections import validate_sections
from .seo import validate_seo
from .stats import DocumentStats, extract_stats
from .structural import validate_structure
from .verticals import DEFAULT_REGISTRY, VocabularyRegistry
from .violations import (
    NARRATIVE_REPAIR_CODES,
    REGENERATION_CODES,
    Category,
    GateCode,
    Severity,
    Violation,
)

logger = get_logger(__name__)


CATEGORY_POINTS = 20
CATEGORY_ORDER = list(Category)

ACTION_ACCEPT = "accept"
ACTION_REGENERATE = "regenerate"
ACTION_HARD_FAIL = "hard_fail"


def _category_rank(violation: Violation) -> int:
    return CATEGORY_ORDER.index(violation.category)


def classify_action(violations: list[Violation]) -> str:
    """
    Decide what the caller should do with a document.

    - accept: no errors
    - hard_fail: any terminal error (unsafe or malformed markup that needs
      a deterministic fix), or an error nothing automatic can address
    - regenerate: every error is regeneration-triggering, or patchable by
      the narrative repair synthesizer
    """
    errors = [v for v in violations if v.is_error]
    if not errors:
        return ACTION_ACCEPT
    if any(v.is_terminal for v in errors):
        return ACTION_HARD_FAIL
    repairable = REGENERATION_CODES | NARRATIVE_REPAIR_CODES
    if all(v.code in repairable for v in errors):
        return ACTION_REGENERATE
    return ACTION_HARD_FAIL


@dataclass
class GateVerdict:
    """Outcome of a quality-gate run."""
    passed: bool
    score: int
    violations: list[Violation] = field(default_factory=list)
    warnings: list[Violation] = field(default_factory=list)
    category_passes: dict[str, bool] = field(default_factory=dict)
    stats: Optional[DocumentStats] = None
    authority: Optional[AuthorityScore] = None
    narrative: Optional[NarrativeDetection] = None
    vision_facts: Optional[FactUsageReport] = None
    user_facts: Optional[FactUsageReport] = None
    regeneration_codes: list[GateCode] = field(default_factory=list)
    action: str = ACTION_ACCEPT
    repair: Optional[RepairProposal] = None
    content_hash: str = ""

    @property
    def all_violations(self) -> list[Violation]:
        return self.violations + self.warnings

    @property
    def error_codes(self) -> list[str]:
        return [v.code.value for v in self.violations]

    @property
    def should_regenerate(self) -> bool:
        return self.action == ACTION_REGENERATE

    @property
    def vision_eeat_adjustment(self) -> int:
        return vision_eeat_adjustment(self.narrative) if self.narrative else 0

    def summary(self) -> str:
        """One-line summary for logs and CLI output."""
        status = "PASS" if self.passed else "FAIL"
        failed = [name for name, ok in self.category_passes.items() if not ok]
        line = (
            f"{status} {self.score}/100 ({self.action}): "
            f"{len(self.violations)} error(s), {len(self.warnings)} warning(s)"
        )
        if failed:
            line += f"; failing: {', '.join(failed)}"
        return line

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "passed": self.passed,
            "score": self.score,
            "action": self.action,
            "summary": self.summary(),
            "content_hash": self.content_hash,
            "category_passes": dict(self.category_passes),
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [v.to_dict() for v in self.warnings],
            "regeneration_codes": [c.value for c in self.regeneration_codes],
            "stats": self.stats.to_dict() if self.stats else None,
            "authority": self.authority.to_dict() if self.authority else None,
            "narrative": self.narrative.to_dict() if self.narrative else None,
            "vision_eeat_adjustment": self.vision_eeat_adjustment,
            "vision_facts": self.vision_facts.to_dict() if self.vision_facts else None,
            "user_facts": self.user_facts.to_dict() if self.user_facts else None,
            "repair": self.repair.to_dict() if self.repair else None,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class QualityGate:
    """
    Composes the validators into a single verdict.

    Collaborators are injected so callers can swap vocabularies, authority
    weights or the repair randomness; none of them hold mutable state.
    """

    def __init__(
        self,
        registry: VocabularyRegistry = DEFAULT_REGISTRY,
        authority_scorer: Optional[AuthorityScorer] = None,
        synthesizer: Optional[NarrativeRepairSynthesizer] = None,
    ):
        self.registry = registry
        self.detector = NarrativeOutcomeDetector(registry)
        self.authority_scorer = authority_scorer or AuthorityScorer()
        self.synthesizer = synthesizer or NarrativeRepairSynthesizer(registry)

    def evaluate(
        self,
        document: Document,
        requirements: Optional[Requirements] = None,
        propose_repair: bool = False,
    ) -> GateVerdict:
        """
        Run the full gate.

        Args:
            document: Normalized document
            requirements: Requirement bundle (library defaults when omitted)
            propose_repair: Attach a narrative repair proposal when one applies

        Returns:
            GateVerdict
        """
        requirements = requirements or Requirements()
        text = document.to_text()

        stats = extract_stats(document, words_per_minute=requirements.words_per_minute)

        collected: list[Violation] = []
        collected.extend(validate_structure(document, requirements, stats))
        collected.extend(validate_seo(document, requirements))

        authority_violations, authority = self.authority_scorer.evaluate(document, requirements, text)
        collected.extend(authority_violations)

        vision_violations, vision_report = validate_vision_facts(document, requirements, text)
        collected.extend(vision_violations)
        user_violations, user_report = validate_user_facts(document, requirements, text)
        collected.extend(user_violations)

        narrative_violations, detection = self.detector.evaluate(document, requirements, text)
        collected.extend(narrative_violations)
        collected.extend(validate_sections(document, requirements, text))

        ordered = sorted(collected, key=_category_rank)
        errors = [v for v in ordered if v.severity == Severity.ERROR]
        warnings = (
            [v for v in ordered if v.severity == Severity.WARNING]
            + [v for v in ordered if v.severity == Severity.INFO]
        )

        category_passes = {
            category.value: not any(v.category == category for v in errors)
            for category in CATEGORY_ORDER
        }
        score = CATEGORY_POINTS * sum(1 for ok in category_passes.values() if ok)

        regeneration_codes: list[GateCode] = []
        for violation in ordered:
            if violation.code in REGENERATION_CODES and violation.code not in regeneration_codes:
                regeneration_codes.append(violation.code)

        repair = None
        if propose_repair and requirements.check_narrative:
            repair = self.synthesizer.propose(document, requirements, detection)

        verdict = GateVerdict(
            passed=not errors,
            score=score,
            violations=errors,
            warnings=warnings,
            category_passes=category_passes,
            stats=stats,
            authority=authority,
            narrative=detection,
            vision_facts=vision_report,
            user_facts=user_report,
            regeneration_codes=regeneration_codes,
            action=classify_action(errors),
            repair=repair,
            content_hash=document.content_hash,
        )

        logger.info(
            "quality_gate_evaluated",
            slug=document.slug,
            passed=verdict.passed,
            score=verdict.score,
            action=verdict.action,
            errors=len(errors),
            warnings=len(warnings),
        )

        return verdict


def run_quality_gate(
    document: Document,
    requirements: Optional[Requirements] = None,
    propose_repair: bool = False,
    registry: VocabularyRegistry = DEFAULT_REGISTRY,
) -> GateVerdict:
    """Evaluate a document with a default-configured gate."""
    return QualityGate(registry).evaluate(document, requirements, propose_repair)
