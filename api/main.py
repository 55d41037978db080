"""
BrandAudit API — Main Application

POST /extract               — Extract fact triples from narrative text
POST /validate              — Cross-source variance check of numeric claims
POST /sources/assess        — Credibility tier of one source
POST /sources/assess/batch  — Tier a batch of sources concurrently
POST /audit                 — Full five-dimension brand strategy audit
GET  /health                — Health check
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from brandaudit import __version__
from brandaudit.auditor import AuditOptions, brand_auditor
from brandaudit.config import settings
from brandaudit.extractor import fact_extractor
from brandaudit.logging import setup_logging, get_logger
from brandaudit.sources import SourceRecord, source_assessor
from brandaudit.variance import NumericClaim, variance_validator
from brandaudit.schemas.audit import (
    ExtractRequest,
    ExtractResponse,
    ValidateRequest,
    ValidateResponse,
    SourceRequest,
    SourceBatchRequest,
    SourceAssessmentResponse,
    SourceBatchResponse,
    AuditRequest,
    AuditResponse,
    HealthResponse,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("BrandAudit API starting",
                extra={"engine_version": settings.ENGINE_VERSION})
    yield
    logger.info("BrandAudit API shutting down")


app = FastAPI(
    title="BrandAudit API",
    description="Evidence-quality auditing for brand strategy documents",
    version=f"{__version__} (engine {settings.ENGINE_VERSION})",
    lifespan=lifespan,
)

# CORS — set BRANDAUDIT_CORS_ORIGINS in production (e.g. "https://app.example.com")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions — return structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The request could not be completed."},
    )


# ============================================================
# ROUTES
# ============================================================

@app.post("/extract", response_model=ExtractResponse)
async def extract(request: ExtractRequest):
    """Extract fact triples and bucket them by verification priority."""
    result = fact_extractor.extract_triples(request.text)
    priorities = fact_extractor.analyze_for_verification(result.triples)

    return {
        **asdict(result),
        **asdict(priorities),
    }


@app.post("/validate", response_model=ValidateResponse)
async def validate(request: ValidateRequest):
    """Check whether independent sources agree on each numeric claim."""
    claims_map = {
        key: [NumericClaim(**claim.model_dump()) for claim in claims]
        for key, claims in request.claims.items()
    }
    report = variance_validator.validate_cross_source(claims_map)

    logger.info(
        f"Validation complete: {report.flagged_claims}/{report.total_claims} flagged",
        extra={"claims_count": report.total_claims, "flagged_count": report.flagged_claims},
    )

    return {
        **asdict(report),
        "report": variance_validator.format_report(report),
    }


@app.post("/sources/assess", response_model=SourceAssessmentResponse)
async def assess_source(request: SourceRequest):
    """Assign one source to a credibility tier."""
    assessment = source_assessor.assess_source(SourceRecord(**request.model_dump()))
    return {
        **asdict(assessment),
        "report": source_assessor.format_assessment_report(assessment),
    }


@app.post("/sources/assess/batch", response_model=SourceBatchResponse)
async def assess_sources_batch(request: SourceBatchRequest):
    """Assess many sources concurrently and summarise the portfolio."""
    records = [SourceRecord(**s.model_dump()) for s in request.sources]
    assessments = await source_assessor.assess_sources_concurrently(records)
    summary = source_assessor.summarize(assessments)

    logger.info(
        f"Batch assessment complete: {len(assessments)} sources",
        extra={"sources_count": len(assessments)},
    )

    return {
        "assessments": [asdict(a) for a in assessments],
        "summary": asdict(summary),
    }


@app.post("/audit", response_model=AuditResponse)
async def audit(request: AuditRequest):
    """Run the full brand strategy audit."""
    start = time.time()

    result = await brand_auditor.audit(
        request.strategy,
        request.brand_name,
        options=AuditOptions(mode=request.mode),
    )

    duration = int((time.time() - start) * 1000)
    logger.info(
        f"Audit served: score={result.overall_score} mode={request.mode}",
        extra={
            "brand": request.brand_name,
            "overall_score": result.overall_score,
            "mode": request.mode,
            "duration_ms": duration,
        },
    )

    return {
        **asdict(result),
        "engine_version": settings.ENGINE_VERSION,
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    return {
        "status": "operational",
        "version": __version__,
        "engine_version": settings.ENGINE_VERSION,
        "thresholds": {
            "variance_threshold": variance_validator.variance_threshold,
            "minimum_sources": variance_validator.minimum_sources,
            "z_score_threshold": variance_validator.z_score_threshold,
            "similarity_threshold": settings.SIMILARITY_THRESHOLD,
            "max_source_age_days": source_assessor.max_source_age_days,
        },
    }


# --- Security + Version Headers Middleware ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security and version headers to all responses."""
    response = await call_next(request)
    response.headers["X-BrandAudit-Version"] = __version__
    response.headers["X-Engine-Version"] = settings.ENGINE_VERSION
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# --- Body Size Limit Middleware ---
_MAX_BODY_BYTES = 1_048_576  # 1 MB


@app.middleware("http")
async def enforce_body_size_limit(request: Request, call_next):
    """Reject requests exceeding 1MB."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > _MAX_BODY_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large."},
                )
        except ValueError:
            pass  # Malformed content-length; let the framework handle it

    return await call_next(request)


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
