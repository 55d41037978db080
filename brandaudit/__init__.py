"""
BrandAudit — Evidence-Quality Engine for Brand Strategy Documents

Deterministic, rule-driven analysis of the claims a brand makes and
the sources it cites. No LLM calls, no network access.

Public API:
  - fact_extractor:     Fact triples from free text (subject, predicate, value)
  - variance_validator: Cross-source consistency of numeric claims
  - source_assessor:    Four-tier credibility classification of sources
  - brand_auditor:      Five-dimension audit of a whole brand strategy
  - calculate_overall_score: Weighted composite over audit dimensions

Usage:
    from brandaudit import fact_extractor, variance_validator
    from brandaudit import source_assessor, brand_auditor
"""

__version__ = "1.0.0"

from brandaudit.extractor import (
    fact_extractor,
    FactTripleExtractor,
    FactTriple,
    ExtractionResult,
    VerificationPriorities,
    EXTRACTION_PATTERNS,
)
from brandaudit.variance import (
    variance_validator,
    NumericVarianceValidator,
    NumericClaim,
    VarianceResult,
    ValidationReport,
)
from brandaudit.sources import (
    source_assessor,
    SourceQualityAssessor,
    SourceRecord,
    SourceAssessment,
    SourceBatchResult,
    TIER_RULES,
)
from brandaudit.auditor import (
    brand_auditor,
    BrandStrategyAuditor,
    AuditOptions,
    AuditResult,
)
from brandaudit.scorer import calculate_overall_score

__all__ = [
    "fact_extractor",
    "FactTripleExtractor",
    "FactTriple",
    "ExtractionResult",
    "VerificationPriorities",
    "EXTRACTION_PATTERNS",
    "variance_validator",
    "NumericVarianceValidator",
    "NumericClaim",
    "VarianceResult",
    "ValidationReport",
    "source_assessor",
    "SourceQualityAssessor",
    "SourceRecord",
    "SourceAssessment",
    "SourceBatchResult",
    "TIER_RULES",
    "brand_auditor",
    "BrandStrategyAuditor",
    "AuditOptions",
    "AuditResult",
    "calculate_overall_score",
]
