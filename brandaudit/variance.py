"""
Numeric Variance Validator — Cross-Source Consistency

Groups numeric claims that describe the same quantity and checks
whether independent sources agree on it.

For every group with enough sources:
  - mean, population variance, standard deviation
  - relative error (std / |mean|), the normalized spread
  - outliers: claims far from the rest of the group
  - a recommendation scaled to how bad the spread is

Groups with a single source are never "valid": one source cannot
corroborate itself.
"""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from brandaudit.config import settings
from brandaudit.extractor import FactTriple, format_value

logger = logging.getLogger(__name__)

# Recommendation bands around the configurable validity threshold
CONSISTENT_BELOW = 0.05
HIGH_VARIANCE_FROM = 0.25


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class NumericClaim:
    """One source's value for a numeric claim."""
    value: float
    source: str
    confidence: float
    context: str
    extracted_from: str
    source_url: Optional[str] = None
    date: Optional[str] = None


@dataclass
class VarianceResult:
    """Cross-source statistics for one claim group."""
    claim: str
    values: list[float]
    sources: list[str]
    mean: float
    variance: float
    standard_deviation: float
    relative_error: float
    is_valid: bool
    flagged_claims: list[NumericClaim]
    recommendation: str


@dataclass
class ValidationReport:
    """Result of validate_cross_source()."""
    total_claims: int
    validated_claims: int
    flagged_claims: int
    average_variance: float
    results: list[VarianceResult] = field(default_factory=list)
    summary: str = ""


@dataclass
class ExternalVerification:
    """Consistency of a single claim against externally sourced values."""
    is_consistent: bool
    variance: float        # relative error across claim + external values
    details: str


# ============================================================
# STATISTICS HELPERS
# ============================================================

def calculate_mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.fmean(values)


def calculate_variance(values: Sequence[float]) -> float:
    """Population variance: mean of squared deviations from the mean."""
    if not values:
        return 0.0
    return float(statistics.pvariance(values))


def relative_error(mean: float, standard_deviation: float) -> float:
    return standard_deviation / abs(mean) if mean != 0 else 0.0


# ============================================================
# THE VALIDATOR
# ============================================================

class NumericVarianceValidator:
    """
    Cross-source validator. Policy thresholds are constructor
    parameters so tests and deployments can vary them.
    """

    def __init__(
        self,
        variance_threshold: Optional[float] = None,
        minimum_sources: Optional[int] = None,
        z_score_threshold: Optional[float] = None,
    ):
        self.variance_threshold = (
            settings.VARIANCE_THRESHOLD if variance_threshold is None else variance_threshold
        )
        self.minimum_sources = (
            settings.MINIMUM_SOURCES if minimum_sources is None else minimum_sources
        )
        self.z_score_threshold = (
            settings.Z_SCORE_THRESHOLD if z_score_threshold is None else z_score_threshold
        )

    def validate_cross_source(
        self, claims_map: Mapping[str, Sequence[NumericClaim]]
    ) -> ValidationReport:
        """
        Validate every claim group in claims_map.

        Args:
            claims_map: group key -> claims from different sources.
                Usually built by extract_numeric_claims().

        Returns:
            ValidationReport with one VarianceResult per group.
        """
        results: list[VarianceResult] = []
        total_claims = 0
        validated_claims = 0
        flagged_claims = 0
        relative_error_sum = 0.0

        for claim_key, claims in claims_map.items():
            total_claims += 1

            if len(claims) < self.minimum_sources:
                results.append(self._single_source_result(claim_key, claims))
                continue

            validated_claims += 1
            result = self.analyze_variance(claim_key, claims)
            relative_error_sum += result.relative_error
            if not result.is_valid:
                flagged_claims += 1
                logger.debug(
                    "Claim %s failed cross-source check", claim_key,
                    extra={"claim_key": claim_key, "flagged_count": len(result.flagged_claims)},
                )
            results.append(result)

        average_variance = (
            relative_error_sum / validated_claims if validated_claims > 0 else 0.0
        )

        return ValidationReport(
            total_claims=total_claims,
            validated_claims=validated_claims,
            flagged_claims=flagged_claims,
            average_variance=average_variance,
            results=results,
            summary=self._build_summary(
                total_claims, validated_claims, flagged_claims, average_variance,
            ),
        )

    def analyze_variance(self, claim: str, claims: Sequence[NumericClaim]) -> VarianceResult:
        """Compute spread statistics and outliers for one group."""
        values = [c.value for c in claims]
        mean = calculate_mean(values)
        variance = calculate_variance(values)
        standard_deviation = math.sqrt(variance)
        rel_error = relative_error(mean, standard_deviation)

        flagged = self.identify_outliers(claims, standard_deviation)

        return VarianceResult(
            claim=claim,
            values=values,
            sources=[c.source for c in claims],
            mean=mean,
            variance=variance,
            standard_deviation=standard_deviation,
            relative_error=rel_error,
            is_valid=rel_error <= self.variance_threshold,
            flagged_claims=flagged,
            recommendation=self._build_recommendation(rel_error, flagged),
        )

    def identify_outliers(
        self, claims: Sequence[NumericClaim], standard_deviation: float
    ) -> list[NumericClaim]:
        """
        Flag claims whose z-score exceeds the threshold.

        Each claim is measured against the mean of the *other* claims in
        its group, in units of the group's standard deviation. That is
        n/(n-1) times the plain z-score; the plain score is bounded by
        sqrt(n - 1) and cannot flag anything in groups of five or fewer.
        """
        n = len(claims)
        if standard_deviation == 0 or n < 2:
            return []

        total = sum(c.value for c in claims)
        outliers = []
        for claim in claims:
            others_mean = (total - claim.value) / (n - 1)
            z_score = abs(claim.value - others_mean) / standard_deviation
            if z_score > self.z_score_threshold:
                outliers.append(claim)
        return outliers

    def _build_recommendation(
        self, rel_error: float, flagged: Sequence[NumericClaim]
    ) -> str:
        if rel_error < CONSISTENT_BELOW:
            return "Claims are highly consistent across sources. No action needed."
        if rel_error < self.variance_threshold:
            return (
                "Minor variance detected but within acceptable range. "
                "Consider noting the range in documentation."
            )
        if rel_error < HIGH_VARIANCE_FROM:
            return (
                f"Significant variance detected ({rel_error * 100:.1f}%). "
                "Verify with primary sources and use the most authoritative value."
            )
        outlier_sources = ", ".join(c.source for c in flagged) or "none isolated"
        return (
            f"High variance detected ({rel_error * 100:.1f}%). "
            f"Review sources: {outlier_sources}. "
            "Consider removing outliers or investigating discrepancies."
        )

    def _single_source_result(
        self, claim: str, claims: Sequence[NumericClaim]
    ) -> VarianceResult:
        return VarianceResult(
            claim=claim,
            values=[c.value for c in claims],
            sources=[c.source for c in claims],
            mean=claims[0].value if claims else 0.0,
            variance=0.0,
            standard_deviation=0.0,
            relative_error=0.0,
            is_valid=False,
            flagged_claims=list(claims),
            recommendation=(
                "Only one source available. "
                "Seek additional sources for cross-verification."
            ),
        )

    @staticmethod
    def _build_summary(
        total: int, validated: int, flagged: int, average_variance: float
    ) -> str:
        validation_rate = f"{validated / total * 100:.1f}" if total > 0 else "0"
        flag_rate = f"{flagged / validated * 100:.1f}" if validated > 0 else "0"
        return (
            f"Analyzed {total} numeric claims. "
            f"{validated} ({validation_rate}%) had multiple sources for cross-verification. "
            f"{flagged} ({flag_rate}% of validated) showed significant variance. "
            f"Average relative error: {average_variance * 100:.1f}%."
        )

    # --------------------------------------------------------
    # Claim preparation
    # --------------------------------------------------------

    def extract_numeric_claims(
        self, triples: Sequence[FactTriple], source: str = "extracted"
    ) -> dict[str, list[NumericClaim]]:
        """Group numeric triples by lowercased "subject_predicate"."""
        claims_map: dict[str, list[NumericClaim]] = {}

        for triple in triples:
            if triple.type != "numeric" or not isinstance(triple.value, (int, float)):
                continue
            key = f"{triple.subject}_{triple.predicate}".lower()
            claims_map.setdefault(key, []).append(NumericClaim(
                value=float(triple.value),
                source=source,
                confidence=triple.confidence,
                context=triple.source_text,
                extracted_from=triple.source_text,
            ))

        return claims_map

    def group_similar_claims(
        self,
        claims: Sequence[NumericClaim],
        similarity_threshold: Optional[float] = None,
    ) -> list[list[NumericClaim]]:
        """
        Group claims by context similarity instead of by key.

        Each claim joins the first group whose first member it
        resembles (Jaccard similarity of context words).
        """
        threshold = (
            settings.SIMILARITY_THRESHOLD if similarity_threshold is None
            else similarity_threshold
        )
        groups: list[list[NumericClaim]] = []

        for claim in claims:
            for group in groups:
                if context_similarity(claim.context, group[0].context) >= threshold:
                    group.append(claim)
                    break
            else:
                groups.append([claim])

        return groups

    @staticmethod
    def calculate_weighted_mean(claims: Sequence[NumericClaim]) -> float:
        """Confidence-weighted mean: sum(value * confidence) / sum(confidence)."""
        total_weight = sum(c.confidence for c in claims)
        if not claims or total_weight <= 0:
            return 0.0
        return sum(c.value * c.confidence for c in claims) / total_weight

    def verify_with_external_sources(
        self, claim: NumericClaim, external_sources: Sequence[NumericClaim]
    ) -> ExternalVerification:
        """Check one claim against values gathered from other sources."""
        values = [claim.value] + [s.value for s in external_sources]
        mean = calculate_mean(values)
        rel_error = relative_error(mean, math.sqrt(calculate_variance(values)))

        return ExternalVerification(
            is_consistent=rel_error <= self.variance_threshold,
            variance=rel_error,
            details=(
                f"Claim value: {format_value(claim.value)}, "
                f"External average: {mean:.2f}, "
                f"Relative error: {rel_error * 100:.1f}%"
            ),
        )

    # --------------------------------------------------------
    # Reporting
    # --------------------------------------------------------

    def format_report(self, report: ValidationReport) -> str:
        """Render a validation report as markdown."""
        lines = [
            "# Numeric Variance Validation Report\n",
            report.summary,
            "\n## Flagged Claims\n",
        ]

        flagged = [r for r in report.results if not r.is_valid]
        if not flagged:
            lines.append("✅ No significant variances detected.\n")
        for result in flagged:
            lines.append(f"### {result.claim}")
            lines.append(f"- **Values**: {_join_values(result.values)}")
            lines.append(f"- **Sources**: {', '.join(result.sources)}")
            lines.append(f"- **Mean**: {result.mean:.2f}")
            lines.append(f"- **Relative Error**: {result.relative_error * 100:.1f}%")
            lines.append(f"- **Recommendation**: {result.recommendation}\n")

        lines.append("## All Claims\n")
        for result in report.results:
            status = "✅" if result.is_valid else "⚠️"
            lines.append(
                f"{status} **{result.claim}**: {_join_values(result.values)} "
                f"(Error: {result.relative_error * 100:.1f}%)"
            )

        return "\n".join(lines)


def context_similarity(context_a: str, context_b: str) -> float:
    """Jaccard similarity of the lowercased word sets of two contexts."""
    words_a = set(context_a.lower().split())
    words_b = set(context_b.lower().split())
    union = words_a | words_b
    if not union:
        return 1.0  # Two empty contexts are indistinguishable
    return len(words_a & words_b) / len(union)


def _join_values(values: Sequence[float]) -> str:
    return ", ".join(format_value(v) for v in values)


# ============================================================
# SINGLETON
# ============================================================

variance_validator = NumericVarianceValidator()
