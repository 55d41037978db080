"""
Tests for the Numeric Variance Validator.

Statistics, outlier detection, recommendation bands, claim grouping
and the extractor -> validator pipeline.
"""

import pytest
from brandaudit.extractor import fact_extractor
from brandaudit.variance import (
    variance_validator,
    NumericClaim,
    NumericVarianceValidator,
    context_similarity,
)


def _claims(*values, context="acme customers"):
    return [
        NumericClaim(
            value=v, source=f"s{i}", confidence=1.0,
            context=context, extracted_from=context,
        )
        for i, v in enumerate(values)
    ]


class TestCrossSourceValidation:

    def test_identical_values_are_valid(self):
        report = variance_validator.validate_cross_source({"x": _claims(100, 100, 100)})
        result = report.results[0]
        assert result.variance == 0
        assert result.relative_error == 0
        assert result.is_valid is True
        assert result.flagged_claims == []
        assert "highly consistent" in result.recommendation

    def test_outlier_flagged(self):
        claims = _claims(100, 100, 100, 1000)
        report = variance_validator.validate_cross_source({"x": claims})
        result = report.results[0]
        assert result.is_valid is False
        assert result.mean == pytest.approx(325)
        assert result.variance == pytest.approx(151_875)
        assert result.flagged_claims == [claims[3]]
        assert result.recommendation.startswith("High variance detected (119.9%)")
        assert "Review sources: s3" in result.recommendation
        assert report.flagged_claims == 1

    def test_single_source_is_invalid(self):
        claims = _claims(42)
        report = variance_validator.validate_cross_source({"x": claims})
        result = report.results[0]
        assert result.is_valid is False
        assert result.flagged_claims == claims
        assert result.mean == 42
        assert "Only one source" in result.recommendation
        assert report.validated_claims == 0
        assert report.flagged_claims == 0

    def test_empty_group(self):
        report = variance_validator.validate_cross_source({"x": []})
        assert report.results[0].mean == 0.0
        assert report.results[0].is_valid is False

    def test_empty_map(self):
        report = variance_validator.validate_cross_source({})
        assert report.total_claims == 0
        assert report.average_variance == 0.0
        assert report.results == []
        assert report.summary.startswith("Analyzed 0 numeric claims")

    def test_zero_mean(self):
        report = variance_validator.validate_cross_source({"x": _claims(-5, 5)})
        assert report.results[0].relative_error == 0.0
        assert report.results[0].is_valid is True

    def test_average_variance_over_validated_groups(self):
        report = variance_validator.validate_cross_source({
            "a": _claims(100, 100),
            "b": _claims(100, 120),
            "c": _claims(7),
        })
        assert report.total_claims == 3
        assert report.validated_claims == 2
        # (0 + 10/110) / 2
        assert report.average_variance == pytest.approx((10 / 110) / 2)


class TestRecommendationBands:

    def test_minor_variance(self):
        result = variance_validator.analyze_variance("x", _claims(100, 120))
        assert result.is_valid is True
        assert result.recommendation.startswith("Minor variance")

    def test_significant_variance(self):
        result = variance_validator.analyze_variance("x", _claims(100, 140))
        assert result.is_valid is False
        assert result.recommendation.startswith("Significant variance detected (16.7%)")

    def test_custom_threshold(self):
        strict = NumericVarianceValidator(variance_threshold=0.01)
        assert strict.analyze_variance("x", _claims(100, 110)).is_valid is False

    def test_custom_minimum_sources(self):
        validator = NumericVarianceValidator(minimum_sources=3)
        report = validator.validate_cross_source({"x": _claims(100, 100)})
        assert report.validated_claims == 0
        assert report.results[0].is_valid is False


class TestPipeline:

    def test_extracted_claims_validate(self):
        extraction = fact_extractor.extract_triples(
            "Acme has 5000000 customers. Acme has 5200000 customers."
        )
        claims_map = variance_validator.extract_numeric_claims(extraction.triples)
        assert set(claims_map) == {"acme_has customers", "company_has"}

        report = variance_validator.validate_cross_source(claims_map)
        result = next(r for r in report.results if r.claim == "acme_has customers")
        assert result.mean == pytest.approx(5_100_000)
        assert result.relative_error == pytest.approx(0.0196, abs=1e-4)
        assert result.is_valid is True
        assert report.flagged_claims == 0

    def test_non_numeric_triples_ignored(self):
        extraction = fact_extractor.extract_triples(
            "Our service is better than theirs. Acme has operated since 2015."
        )
        assert variance_validator.extract_numeric_claims(extraction.triples) == {}

    def test_empty_pipeline_never_raises(self):
        claims_map = variance_validator.extract_numeric_claims([])
        report = variance_validator.validate_cross_source(claims_map)
        assert report.total_claims == 0

    def test_source_label(self):
        extraction = fact_extractor.extract_triples("Acme has 500 stores")
        claims_map = variance_validator.extract_numeric_claims(
            extraction.triples, source="annual-report",
        )
        assert claims_map["acme_has stores"][0].source == "annual-report"


class TestClaimHelpers:

    def test_weighted_mean(self):
        claims = [
            NumericClaim(100, "a", 1.0, "", ""),
            NumericClaim(200, "b", 0.5, "", ""),
        ]
        assert variance_validator.calculate_weighted_mean(claims) == pytest.approx(400 / 3)

    def test_weighted_mean_empty(self):
        assert variance_validator.calculate_weighted_mean([]) == 0.0

    def test_weighted_mean_zero_weight(self):
        claims = [NumericClaim(100, "a", 0.0, "", "")]
        assert variance_validator.calculate_weighted_mean(claims) == 0.0

    def test_group_similar_claims(self):
        same_a = _claims(1, context="Acme has 500 stores")[0]
        same_b = _claims(2, context="acme HAS 500 stores")[0]
        other = _claims(3, context="Totally different words here")[0]
        groups = variance_validator.group_similar_claims([same_a, other, same_b])
        assert groups == [[same_a, same_b], [other]]

    def test_group_similar_claims_threshold(self):
        a = _claims(1, context="one two three four")[0]
        b = _claims(2, context="one two three five")[0]
        assert len(variance_validator.group_similar_claims([a, b])) == 2
        assert len(variance_validator.group_similar_claims([a, b], similarity_threshold=0.5)) == 1

    def test_context_similarity_empty(self):
        assert context_similarity("", "") == 1.0
        assert context_similarity("a b", "c d") == 0.0

    def test_verify_with_external_sources(self):
        claim = _claims(100)[0]
        external = _claims(102, 98)
        verification = variance_validator.verify_with_external_sources(claim, external)
        assert verification.is_consistent is True
        assert verification.variance == pytest.approx(0.01633, abs=1e-4)
        assert "Claim value: 100" in verification.details

    def test_verify_inconsistent(self):
        verification = variance_validator.verify_with_external_sources(
            _claims(100)[0], _claims(300),
        )
        assert verification.is_consistent is False


class TestReport:

    def test_report_lists_flagged(self):
        report = variance_validator.validate_cross_source({
            "acme_stores": _claims(100, 100, 100, 1000),
        })
        md = variance_validator.format_report(report)
        assert md.startswith("# Numeric Variance Validation Report")
        assert "### acme_stores" in md
        assert "100, 100, 100, 1000" in md

    def test_report_all_clear(self):
        report = variance_validator.validate_cross_source({"x": _claims(5, 5)})
        md = variance_validator.format_report(report)
        assert "No significant variances detected" in md
        assert "✅ **x**" in md
