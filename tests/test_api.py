"""
API Integration Tests — Endpoint Verification

Tests every public API endpoint using FastAPI's TestClient.

These tests catch:
  - Schema mismatches (response model vs actual data)
  - Route registration issues
  - Request validation regressions
  - Response format regressions
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


# --- Fixtures ---

@pytest.fixture(scope="module")
def client():
    """Create a test client for the BrandAudit API."""
    from api.main import app
    with TestClient(app) as c:
        yield c


# ============================================================
# HEALTH & META
# ============================================================

class TestHealth:

    def test_health_returns_200(self, client):
        r = client.get("/health")
        assert r.status_code == 200

    def test_health_fields(self, client):
        data = client.get("/health").json()
        assert data["status"] == "operational"
        assert data["engine_version"] == "1.0.0"
        assert data["thresholds"]["variance_threshold"] == pytest.approx(0.10)
        assert data["thresholds"]["max_source_age_days"] == 730

    def test_version_headers(self, client):
        r = client.get("/health")
        assert r.headers["X-Engine-Version"] == "1.0.0"
        assert r.headers["X-Content-Type-Options"] == "nosniff"


# ============================================================
# EXTRACT
# ============================================================

class TestExtract:

    def test_extract_triples(self, client):
        r = client.post("/extract", json={"text": "Acme has 5000000 customers."})
        assert r.status_code == 200
        data = r.json()
        assert data["total_claims"] == 1
        assert data["extraction_rate"] == 1.0
        subjects = {t["subject"] for t in data["triples"]}
        assert subjects == {"Acme", "company"}
        assert len(data["high_priority"]) == 2

    def test_extract_unstructured(self, client):
        data = client.post("/extract", json={"text": "We are the leading brand."}).json()
        assert data["triples"] == []
        assert data["unstructured_claims"] == ["We are the leading brand"]

    def test_extract_string_value_survives(self, client):
        data = client.post(
            "/extract", json={"text": "Our platform is faster than legacy tools."},
        ).json()
        assert data["triples"][0]["value"] == "legacy tools"

    def test_empty_text_rejected(self, client):
        assert client.post("/extract", json={"text": ""}).status_code == 422

    def test_missing_text_rejected(self, client):
        assert client.post("/extract", json={}).status_code == 422


# ============================================================
# VALIDATE
# ============================================================

class TestValidate:

    def test_consistent_claims(self, client):
        r = client.post("/validate", json={"claims": {"acme_customers": [
            {"value": 5_000_000, "source": "annual-report"},
            {"value": 5_200_000, "source": "press-kit"},
        ]}})
        assert r.status_code == 200
        data = r.json()
        assert data["validated_claims"] == 1
        assert data["flagged_claims"] == 0
        assert data["results"][0]["mean"] == pytest.approx(5_100_000)
        assert data["results"][0]["is_valid"] is True
        assert data["report"].startswith("# Numeric Variance Validation Report")

    def test_outlier_claims(self, client):
        claims = [{"value": v, "source": f"s{i}"} for i, v in enumerate([100, 100, 100, 1000])]
        data = client.post("/validate", json={"claims": {"stores": claims}}).json()
        result = data["results"][0]
        assert result["is_valid"] is False
        assert [c["source"] for c in result["flagged_claims"]] == ["s3"]

    def test_empty_claims(self, client):
        data = client.post("/validate", json={"claims": {}}).json()
        assert data["total_claims"] == 0
        assert data["average_variance"] == 0.0

    def test_confidence_out_of_range(self, client):
        r = client.post("/validate", json={"claims": {"x": [
            {"value": 1, "source": "a", "confidence": 2.0},
        ]}})
        assert r.status_code == 422


# ============================================================
# SOURCES
# ============================================================

class TestSources:

    def test_assess_tier1(self, client):
        r = client.post("/sources/assess", json={"url": "https://nature.com/article"})
        assert r.status_code == 200
        data = r.json()
        assert data["tier"] == 1
        assert data["domain"] == "nature.com"
        assert "**Tier**: 1 (Excellent)" in data["report"]

    def test_assess_empty(self, client):
        data = client.post("/sources/assess", json={}).json()
        assert data["tier"] == 4
        assert data["score"] == pytest.approx(0.2)

    def test_batch(self, client):
        r = client.post("/sources/assess/batch", json={"sources": [
            {"url": "https://twitter.com/a"},
            {"url": "https://nature.com/b"},
        ]})
        assert r.status_code == 200
        data = r.json()
        assert [a["tier"] for a in data["assessments"]] == [4, 1]
        assert data["summary"]["tier1_count"] == 1
        assert data["summary"]["tier4_count"] == 1

    def test_batch_empty_rejected(self, client):
        assert client.post("/sources/assess/batch", json={"sources": []}).status_code == 422

    def test_batch_too_large_rejected(self, client):
        sources = [{"url": "https://nature.com/a"}] * 201
        assert client.post("/sources/assess/batch", json={"sources": sources}).status_code == 422


# ============================================================
# AUDIT
# ============================================================

class TestAudit:

    def test_audit_returns_breakdown(self, client):
        r = client.post("/audit", json={
            "brand_name": "Acme",
            "strategy": {
                "purpose": "Make logistics effortless.",
                "mission": "Acme has 5000000 customers.",
                "proofPoints": [{
                    "claim": "Acme has 5200000 customers.",
                    "source": "SEC filing",
                    "sourceUrl": "https://www.sec.gov/acme-10k",
                }],
            },
        })
        assert r.status_code == 200
        data = r.json()
        assert data["brand_name"] == "Acme"
        assert data["mode"] == "standard"
        assert data["engine_version"] == "1.0.0"
        assert set(data["score_breakdown"]) == {
            "sourceQuality", "factVerification", "dataRecency",
            "crossVerification", "productionReadiness",
        }
        assert 0.0 <= data["overall_score"] <= 10.0
        assert data["source_analysis"]["tier1_count"] == 1

    def test_audit_empty_strategy(self, client):
        data = client.post("/audit", json={"brand_name": "Empty", "strategy": {}}).json()
        assert data["overall_score"] == 4.7

    def test_invalid_mode(self, client):
        r = client.post("/audit", json={"brand_name": "Acme", "strategy": {}, "mode": "turbo"})
        assert r.status_code == 422

    def test_missing_brand_name(self, client):
        assert client.post("/audit", json={"strategy": {}}).status_code == 422
