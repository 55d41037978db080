"""
Brand Strategy Auditor — Evidence-Quality Audit of a Strategy Document

Runs the three engines over a loosely structured brand strategy and
scores it on five weighted dimensions:

  1. Source quality         (0.30)  tier-based credibility of cited sources
  2. Fact verification      (0.25)  share of specific, checkable numeric facts
  3. Data recency           (0.15)  share of dated sources from the last 2 years
  4. Cross verification     (0.15)  numeric claims that agree across mentions
  5. Production readiness   (0.15)  presence of the seven core components

Every audit builds its own findings and recommendations, so a single
auditor instance can serve concurrent requests.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from brandaudit.config import settings
from brandaudit.extractor import (
    FactTriple,
    FactTripleExtractor,
    fact_extractor,
    format_value,
)
from brandaudit.scorer import (
    CONSISTENCY_LADDER,
    FULL_LADDER,
    QUALITY_LADDER,
    RECENCY_LADDER,
    calculate_overall_score,
    dimension_status,
)
from brandaudit.sources import (
    SourceAssessment,
    SourcePortfolioSummary,
    SourceQualityAssessor,
    SourceRecord,
    source_assessor,
)
from brandaudit.variance import (
    NumericVarianceValidator,
    ValidationReport,
    variance_validator,
)

logger = logging.getLogger(__name__)


# ============================================================
# DATA STRUCTURES
# ============================================================

AUDIT_MODES = ("quick", "standard", "comprehensive")

REQUIRED_COMPONENTS = (
    "purpose",
    "mission",
    "vision",
    "values",
    "positioning",
    "proofPoints",
    "differentiators",
)

# camelCase key -> accepted snake_case alias
_ALIASES = {
    "proofPoints": "proof_points",
    "keyMessages": "key_messages",
    "sourceUrl": "source_url",
}

VERIFIED_CONFIDENCE = 0.7
RECENT_YEARS = 2
REQUIRED_EXPERTISE = "Mid-level analyst with fact-checking experience"
MAX_PLAN_STEPS = 5
STEP_IMPROVEMENT = 0.3

_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")


@dataclass
class AuditOptions:
    mode: str = "standard"   # informational only


@dataclass
class ScoreDimension:
    score: float          # 0 to 10
    weight: float
    status: str           # excellent | good | needs-work | critical
    details: str


@dataclass
class AuditFinding:
    severity: str         # critical | warning | info | success
    category: str         # sources | facts | verification | quality
    message: str
    details: str = ""


@dataclass
class Recommendation:
    priority: str         # high | medium | low
    action: str
    impact: str
    estimated_effort: str  # e.g. "2-4 hours"


@dataclass
class ImprovementStep:
    step: int
    action: str
    expected_improvement: float
    estimated_time: str


@dataclass
class ImprovementPlan:
    current_score: float
    target_score: float
    total_effort: str
    required_expertise: str
    steps: list[ImprovementStep] = field(default_factory=list)


@dataclass
class FactAnalysis:
    extracted_triples: list[FactTriple]
    extraction_rate: float
    high_priority_facts: list[FactTriple]
    unstructured_claims: list[str] = field(default_factory=list)


@dataclass
class VarianceSummary:
    total_claims: int
    flagged_claims: int
    average_variance: float


@dataclass
class AuditResult:
    brand_name: str
    audit_date: str
    mode: str
    overall_score: float
    score_breakdown: dict[str, ScoreDimension]
    findings: list[AuditFinding]
    recommendations: list[Recommendation]
    quality_improvement: ImprovementPlan
    fact_analysis: FactAnalysis
    variance_analysis: VarianceSummary
    source_analysis: SourcePortfolioSummary


# ============================================================
# STRATEGY ACCESS
# ============================================================

def _get(data: Mapping[str, Any], key: str) -> Any:
    """Read a strategy field by camelCase name or its snake_case alias."""
    value = data.get(key)
    if value is None and key in _ALIASES:
        value = data.get(_ALIASES[key])
    return value


def _as_texts(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [str(value)]


def combine_strategy_text(strategy: Mapping[str, Any]) -> str:
    """All narrative text in the strategy, joined with spaces."""
    texts: list[str] = []
    for key in ("purpose", "mission", "vision", "values", "positioning"):
        texts.extend(_as_texts(_get(strategy, key)))

    for point in _get(strategy, "proofPoints") or []:
        if not isinstance(point, Mapping):
            continue
        texts.extend(_as_texts(point.get("claim")))
        texts.extend(_as_texts(point.get("evidence")))

    texts.extend(_as_texts(_get(strategy, "differentiators")))
    texts.extend(_as_texts(_get(strategy, "keyMessages")))
    return " ".join(texts)


def extract_sources(strategy: Mapping[str, Any]) -> list[SourceRecord]:
    """Proof points that cite a source, as assessable source records."""
    sources = []
    for point in _get(strategy, "proofPoints") or []:
        if not isinstance(point, Mapping):
            continue
        url = _get(point, "sourceUrl")
        if not (point.get("source") or url):
            continue
        content = (
            " ".join(_as_texts(point.get("evidence")))
            or " ".join(_as_texts(point.get("claim")))
        )
        sources.append(SourceRecord(url=url or None, type="proof-point", content=content or None))
    return sources


def check_components(strategy: Mapping[str, Any]) -> tuple[list[str], list[str]]:
    """(present, missing) among the seven core strategy components."""
    present, missing = [], []
    for component in REQUIRED_COMPONENTS:
        (present if _get(strategy, component) else missing).append(component)
    return present, missing


def extract_year(text: str) -> Optional[int]:
    match = _YEAR.search(text or "")
    return int(match.group(0)) if match else None


# ============================================================
# THE AUDITOR
# ============================================================

class BrandStrategyAuditor:
    """Composes extractor, validator and assessor into one audit."""

    def __init__(
        self,
        extractor: Optional[FactTripleExtractor] = None,
        validator: Optional[NumericVarianceValidator] = None,
        assessor: Optional[SourceQualityAssessor] = None,
    ):
        self.extractor = extractor or fact_extractor
        self.validator = validator or variance_validator
        self.assessor = assessor or source_assessor

    async def audit(
        self,
        strategy: Mapping[str, Any],
        brand_name: str,
        options: Optional[AuditOptions] = None,
        as_of: Optional[datetime] = None,
    ) -> AuditResult:
        """
        Audit a brand strategy.

        Args:
            strategy: Mapping with purpose, mission, vision, values,
                positioning, differentiators, keyMessages and proofPoints.
                Unknown keys are ignored.
            brand_name: Name reported back in the result.
            options: AuditOptions; mode is recorded, not acted on.
            as_of: Reference time for recency (defaults to now, UTC).
        """
        options = options or AuditOptions()
        as_of = as_of or datetime.now(timezone.utc)
        findings: list[AuditFinding] = []
        recommendations: list[Recommendation] = []

        extraction = self.extractor.extract_triples(combine_strategy_text(strategy))
        priorities = self.extractor.analyze_for_verification(extraction.triples)

        sources = extract_sources(strategy)
        assessments = await self.assessor.assess_sources_concurrently(sources)

        numeric = [t for t in extraction.triples if t.type == "numeric"]
        report = self.validator.validate_cross_source(
            self.validator.extract_numeric_claims(numeric)
        )

        breakdown = {
            "sourceQuality": self._audit_source_quality(
                assessments, findings, recommendations,
            ),
            "factVerification": self._audit_fact_verification(
                numeric, priorities.high_priority, findings, recommendations,
            ),
            "dataRecency": self._audit_data_recency(sources, as_of),
            "crossVerification": self._audit_cross_verification(
                report, findings, recommendations,
            ),
            "productionReadiness": self._audit_production_readiness(strategy, findings),
        }

        overall_score = calculate_overall_score(breakdown)

        result = AuditResult(
            brand_name=brand_name,
            audit_date=as_of.isoformat(),
            mode=options.mode,
            overall_score=overall_score,
            score_breakdown=breakdown,
            findings=findings,
            recommendations=recommendations,
            quality_improvement=self.build_improvement_plan(overall_score, recommendations),
            fact_analysis=FactAnalysis(
                extracted_triples=extraction.triples,
                extraction_rate=extraction.extraction_rate,
                high_priority_facts=priorities.high_priority,
                unstructured_claims=extraction.unstructured_claims,
            ),
            variance_analysis=VarianceSummary(
                total_claims=report.total_claims,
                flagged_claims=report.flagged_claims,
                average_variance=report.average_variance,
            ),
            source_analysis=self.assessor.summarize(assessments),
        )

        logger.info(
            "Audit complete: %s scored %.1f", brand_name, overall_score,
            extra={
                "brand": brand_name,
                "mode": options.mode,
                "overall_score": overall_score,
                "triples_count": len(extraction.triples),
                "sources_count": len(sources),
                "engine_version": settings.ENGINE_VERSION,
            },
        )
        return result

    # --------------------------------------------------------
    # Dimensions
    # --------------------------------------------------------

    @staticmethod
    def _audit_source_quality(
        assessments: list[SourceAssessment],
        findings: list[AuditFinding],
        recommendations: list[Recommendation],
    ) -> ScoreDimension:
        total = len(assessments)
        tier_counts = {1: 0, 2: 0, 3: 0, 4: 0}
        for a in assessments:
            tier_counts[a.tier] += 1

        average_score = sum(a.score for a in assessments) / total if total else 0.2
        score = average_score * 10
        average_tier = sum(a.tier for a in assessments) / total if total else 4.0

        if tier_counts[4] > total * 0.3:
            findings.append(AuditFinding(
                severity="critical",
                category="sources",
                message="High proportion of Tier 4 (low credibility) sources",
                details=f"{tier_counts[4]}/{total} sources are social media or unverified",
            ))
        if tier_counts[1] < total * 0.2:
            findings.append(AuditFinding(
                severity="warning",
                category="sources",
                message="Limited Tier 1 (highest credibility) sources",
                details="Add peer-reviewed, government, or academic sources",
            ))

        if score < 6:
            recommendations.append(Recommendation(
                priority="high",
                action="Upgrade source quality",
                impact="Increases credibility and trust",
                estimated_effort="2-4 hours",
            ))

        return ScoreDimension(
            score=score,
            weight=0.30,
            status=dimension_status(score, FULL_LADDER),
            details=f"{total} sources assessed. Average tier: {average_tier:.1f}",
        )

    @staticmethod
    def _audit_fact_verification(
        numeric: list[FactTriple],
        high_priority: list[FactTriple],
        findings: list[AuditFinding],
        recommendations: list[Recommendation],
    ) -> ScoreDimension:
        verified = [t for t in numeric if t.confidence > VERIFIED_CONFIDENCE]
        rate = len(verified) / len(numeric) if numeric else 0.5
        score = 5 + rate * 5

        unverified = [t for t in high_priority if t.confidence < VERIFIED_CONFIDENCE]
        if unverified:
            findings.append(AuditFinding(
                severity="warning",
                category="facts",
                message=f"{len(unverified)} high-priority facts need verification",
                details="; ".join(
                    f"{t.subject} {t.predicate} {format_value(t.value)}" for t in unverified[:3]
                ),
            ))

        if high_priority:
            recommendations.append(Recommendation(
                priority="high",
                action="Verify high-priority numeric claims",
                impact="Ensures accuracy of key metrics",
                estimated_effort="1-2 hours",
            ))

        return ScoreDimension(
            score=score,
            weight=0.25,
            status=dimension_status(score, QUALITY_LADDER),
            details=f"{len(verified)}/{len(numeric)} numeric facts verified",
        )

    @staticmethod
    def _audit_data_recency(sources: list[SourceRecord], as_of: datetime) -> ScoreDimension:
        dated = 0
        recent = 0
        for source in sources:
            year = extract_year(source.content or source.url or "")
            if year is None:
                continue
            dated += 1
            if as_of.year - year <= RECENT_YEARS:
                recent += 1

        score = 5 + (recent / dated) * 5 if dated else 5.0

        return ScoreDimension(
            score=score,
            weight=0.15,
            status=dimension_status(score, RECENCY_LADDER),
            details=f"{recent}/{dated} sources are recent",
        )

    def _audit_cross_verification(
        self,
        report: ValidationReport,
        findings: list[AuditFinding],
        recommendations: list[Recommendation],
    ) -> ScoreDimension:
        total = report.total_claims
        rate = (total - report.flagged_claims) / total if total else 0.5
        score = 4 + rate * 6

        if report.flagged_claims > 0:
            findings.append(AuditFinding(
                severity="warning",
                category="verification",
                message=f"{report.flagged_claims} claims show significant variance",
                details=f"Average variance: {report.average_variance * 100:.1f}%",
            ))

        if report.average_variance > self.validator.variance_threshold:
            recommendations.append(Recommendation(
                priority="high",
                action="Reconcile conflicting numeric claims",
                impact="Improves consistency and accuracy",
                estimated_effort="2-3 hours",
            ))

        return ScoreDimension(
            score=score,
            weight=0.15,
            status=dimension_status(score, CONSISTENCY_LADDER),
            details=f"{report.flagged_claims}/{total} claims flagged for variance",
        )

    @staticmethod
    def _audit_production_readiness(
        strategy: Mapping[str, Any], findings: list[AuditFinding],
    ) -> ScoreDimension:
        present, missing = check_components(strategy)
        total = len(REQUIRED_COMPONENTS)
        score = 3 + (len(present) / total) * 7

        if missing:
            findings.append(AuditFinding(
                severity="info",
                category="quality",
                message=f"Missing {len(missing)} components",
                details=", ".join(missing),
            ))

        return ScoreDimension(
            score=score,
            weight=0.15,
            status=dimension_status(score, QUALITY_LADDER),
            details=f"{len(present)}/{total} components present",
        )

    # --------------------------------------------------------
    # Improvement plan
    # --------------------------------------------------------

    @staticmethod
    def build_improvement_plan(
        current_score: float, recommendations: list[Recommendation],
    ) -> ImprovementPlan:
        """High-priority actions first, at most five steps."""
        ordered = sorted(recommendations, key=lambda r: r.priority != "high")

        total_effort = sum(_effort_lower_bound(r.estimated_effort) for r in ordered)

        return ImprovementPlan(
            current_score=current_score,
            target_score=min(9.5, current_score + 1.5),
            total_effort=f"{total_effort}-{format_value(total_effort * 1.5)} hours",
            required_expertise=REQUIRED_EXPERTISE,
            steps=[
                ImprovementStep(
                    step=i + 1,
                    action=rec.action,
                    expected_improvement=STEP_IMPROVEMENT,
                    estimated_time=rec.estimated_effort,
                )
                for i, rec in enumerate(ordered[:MAX_PLAN_STEPS])
            ],
        )


def _effort_lower_bound(estimate: str) -> int:
    """Leading integer of an estimate like "2-4 hours"; 0 if there is none."""
    match = re.match(r"\s*(\d+)", estimate or "")
    return int(match.group(1)) if match else 0


# ============================================================
# SINGLETON
# ============================================================

brand_auditor = BrandStrategyAuditor()
