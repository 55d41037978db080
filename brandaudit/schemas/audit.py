"""
API Schemas — Request and Response Models

Pydantic models for the BrandAudit API.
"""

from __future__ import annotations

from typing import Any, Optional, Union
from pydantic import BaseModel, Field


# ============================================================
# EXTRACT
# ============================================================

class ExtractRequest(BaseModel):
    """POST /extract request body."""
    text: str = Field(..., min_length=1, max_length=100_000,
                      description="Narrative text to extract fact triples from.")

    model_config = {"json_schema_extra": {"examples": [
        {"text": "Acme serves 12,000 customers. Revenue grew by 35% since 2019."},
    ]}}


class FactTripleResponse(BaseModel):
    subject: str
    predicate: str
    value: Union[int, float, str]
    type: str
    confidence: float
    source_text: str


class ExtractResponse(BaseModel):
    """POST /extract response body."""
    triples: list[FactTripleResponse]
    unstructured_claims: list[str]
    total_claims: int
    extraction_rate: float
    high_priority: list[FactTripleResponse]
    medium_priority: list[FactTripleResponse]
    low_priority: list[FactTripleResponse]


# ============================================================
# VALIDATE
# ============================================================

class NumericClaimModel(BaseModel):
    value: float
    source: str = Field(..., min_length=1)
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    context: str = ""
    extracted_from: str = ""
    source_url: Optional[str] = None
    date: Optional[str] = None


class ValidateRequest(BaseModel):
    """POST /validate request body."""
    claims: dict[str, list[NumericClaimModel]] = Field(
        ..., description="Claim key -> values reported by different sources.",
    )

    model_config = {"json_schema_extra": {"examples": [
        {"claims": {"acme_customers": [
            {"value": 5_000_000, "source": "annual-report"},
            {"value": 5_200_000, "source": "press-kit"},
        ]}},
    ]}}


class VarianceResultResponse(BaseModel):
    claim: str
    values: list[float]
    sources: list[str]
    mean: float
    variance: float
    standard_deviation: float
    relative_error: float
    is_valid: bool
    flagged_claims: list[NumericClaimModel]
    recommendation: str


class ValidateResponse(BaseModel):
    """POST /validate response body."""
    total_claims: int
    validated_claims: int
    flagged_claims: int
    average_variance: float
    results: list[VarianceResultResponse]
    summary: str
    report: str


# ============================================================
# SOURCES
# ============================================================

class SourceRequest(BaseModel):
    """POST /sources/assess request body."""
    url: Optional[str] = Field(None, max_length=4_096)
    type: Optional[str] = None
    content: Optional[str] = Field(None, max_length=50_000)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"json_schema_extra": {"examples": [
        {"url": "https://www.nature.com/articles/s41586-020-2649-2", "type": "peer-reviewed"},
    ]}}


class SourceBatchRequest(BaseModel):
    """POST /sources/assess/batch request body."""
    sources: list[SourceRequest] = Field(..., min_length=1, max_length=200)


class SourceAssessmentResponse(BaseModel):
    url: Optional[str] = None
    domain: Optional[str] = None
    tier: int
    score: float
    confidence: float
    matched_rules: list[str]
    issues: list[str]
    recommendation: str
    report: Optional[str] = None


class SourcePortfolioSummaryResponse(BaseModel):
    average_tier: float
    average_score: float
    tier1_count: int
    tier2_count: int
    tier3_count: int
    tier4_count: int
    recommendations: list[str]


class SourceBatchResponse(BaseModel):
    assessments: list[SourceAssessmentResponse]
    summary: SourcePortfolioSummaryResponse


# ============================================================
# AUDIT
# ============================================================

class AuditRequest(BaseModel):
    """POST /audit request body."""
    brand_name: str = Field(..., min_length=1, max_length=200)
    strategy: dict[str, Any] = Field(
        ..., description="Brand strategy: purpose, mission, vision, values, "
                         "positioning, differentiators, keyMessages, proofPoints.",
    )
    mode: str = Field("standard", pattern="^(quick|standard|comprehensive)$")

    model_config = {"json_schema_extra": {"examples": [
        {
            "brand_name": "Acme",
            "mode": "standard",
            "strategy": {
                "purpose": "Make logistics effortless.",
                "mission": "Acme serves 12,000 customers across Europe.",
                "proofPoints": [{
                    "claim": "Acme has 12000 customers",
                    "evidence": "Audited customer count, 2024 annual report",
                    "source": "Annual report",
                    "sourceUrl": "https://acme.example.com/annual-report-2024",
                }],
            },
        },
    ]}}


class ScoreDimensionResponse(BaseModel):
    score: float
    weight: float
    status: str
    details: str


class AuditFindingResponse(BaseModel):
    severity: str
    category: str
    message: str
    details: str = ""


class RecommendationResponse(BaseModel):
    priority: str
    action: str
    impact: str
    estimated_effort: str


class ImprovementStepResponse(BaseModel):
    step: int
    action: str
    expected_improvement: float
    estimated_time: str


class ImprovementPlanResponse(BaseModel):
    current_score: float
    target_score: float
    total_effort: str
    required_expertise: str
    steps: list[ImprovementStepResponse]


class FactAnalysisResponse(BaseModel):
    extracted_triples: list[FactTripleResponse]
    extraction_rate: float
    high_priority_facts: list[FactTripleResponse]
    unstructured_claims: list[str]


class VarianceSummaryResponse(BaseModel):
    total_claims: int
    flagged_claims: int
    average_variance: float


class AuditResponse(BaseModel):
    """POST /audit response body."""
    brand_name: str
    audit_date: str
    mode: str
    overall_score: float
    score_breakdown: dict[str, ScoreDimensionResponse]
    findings: list[AuditFindingResponse]
    recommendations: list[RecommendationResponse]
    quality_improvement: ImprovementPlanResponse
    fact_analysis: FactAnalysisResponse
    variance_analysis: VarianceSummaryResponse
    source_analysis: SourcePortfolioSummaryResponse
    engine_version: str


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    engine_version: str
    thresholds: dict[str, float]
