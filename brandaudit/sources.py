"""
Source Quality Assessor — Four-Tier Credibility Classification

Classifies a cited source into a credibility tier from an ordered,
data-only rule table. Deterministic, no network access.

  Tier 1: Peer-reviewed, government, academic, international bodies
  Tier 2: Premium business press, major news, consultancies, analysts
  Tier 3: Blogs, whitepapers, press releases, company sites
  Tier 4: Social media, forums, anonymous or unverified content

Tiers are checked 1 -> 4 and the first tier with any matching rule
wins. A source that also matches lower-tier rules keeps the higher
tier.

Source-level issues (missing URL, tracking parameters, staleness,
sponsored content) are detected independently of the tier.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union
from urllib.parse import urlparse

from brandaudit.config import settings

logger = logging.getLogger(__name__)


# ============================================================
# DATA STRUCTURES
# ============================================================

SOURCE_TYPES = (
    "peer-reviewed",
    "official-report",
    "industry-report",
    "case-study",
    "whitepaper",
    "blog",
    "press-release",
    "company-website",
    "trade-publication",
    "social-media",
    "forum",
    "user-generated",
    "anonymous",
    "proof-point",
)


@dataclass
class SourceRecord:
    """A cited source as supplied by the caller. Every field is optional."""
    url: Optional[str] = None
    type: Optional[str] = None
    content: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SourceRecord":
        return cls(
            url=data.get("url") or None,
            type=data.get("type") or None,
            content=str(data["content"]) if data.get("content") else None,
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass(frozen=True)
class SourceTierRule:
    """
    One credibility rule. Any condition that is present may match:
    URL regex, host name, declared type, or a content indicator.
    """
    description: str
    weight: float
    pattern: Optional[re.Pattern] = None
    domains: tuple[str, ...] = ()
    type: Optional[str] = None
    indicators: tuple[str, ...] = ()


@dataclass
class SourceAssessment:
    """Result of assessing a single source."""
    url: Optional[str]
    domain: Optional[str]
    tier: int                   # 1 (best) to 4
    score: float                # 0.0 to 1.0
    confidence: float           # 0.1 to 1.0
    matched_rules: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    recommendation: str = ""


@dataclass
class SourcePortfolioSummary:
    """Aggregate view over a batch of assessments."""
    average_tier: float
    average_score: float
    tier1_count: int
    tier2_count: int
    tier3_count: int
    tier4_count: int
    recommendations: list[str] = field(default_factory=list)


@dataclass
class SourceBatchResult:
    assessments: list[SourceAssessment]
    summary: SourcePortfolioSummary


SourceInput = Union[SourceRecord, Mapping[str, Any]]


# ============================================================
# TIER RULE TABLE (ordered, tier 1 checked first)
# ============================================================

def _url_pattern(regex: str) -> re.Pattern:
    return re.compile(regex, re.IGNORECASE)


# Host suffix at the end of the authority part of a URL
_HOST_END = r"(?=[/:?#]|$)"

TIER_RULES: dict[int, list[SourceTierRule]] = {
    1: [
        SourceTierRule("Government domain", 1.0, pattern=_url_pattern(r"\.gov" + _HOST_END)),
        SourceTierRule("Educational institution", 0.95, pattern=_url_pattern(r"\.edu" + _HOST_END)),
        SourceTierRule(
            "DOI (Digital Object Identifier) - peer-reviewed", 1.0,
            pattern=_url_pattern(r"doi\.org"),
        ),
        SourceTierRule(
            "PubMed/NCBI - medical research", 1.0,
            pattern=_url_pattern(r"pubmed|ncbi\.nlm\.nih\.gov"),
        ),
        SourceTierRule(
            "Academic publisher", 0.95,
            domains=(
                "nature.com", "science.org", "ieee.org", "acm.org",
                "springer.com", "elsevier.com", "wiley.com",
            ),
        ),
        SourceTierRule("Peer-reviewed publication", 1.0, type="peer-reviewed"),
        SourceTierRule("Official institutional report", 0.95, type="official-report"),
        SourceTierRule(
            "Academic publication indicators", 0.9,
            indicators=("ISBN", "ISSN", "peer review", "journal"),
        ),
        SourceTierRule(
            "International organization", 0.95,
            domains=("who.int", "un.org", "worldbank.org", "imf.org", "oecd.org"),
        ),
    ],
    2: [
        SourceTierRule(
            "Premium business publication", 0.75,
            domains=(
                "wsj.com", "ft.com", "bloomberg.com", "reuters.com",
                "economist.com", "businessweek.com", "forbes.com", "fortune.com",
            ),
        ),
        SourceTierRule(
            "Major news outlet", 0.7,
            domains=(
                "nytimes.com", "washingtonpost.com", "theguardian.com", "bbc.com",
                "npr.org", "apnews.com", "cnn.com",
            ),
        ),
        SourceTierRule(
            "Top consulting firm", 0.75,
            domains=(
                "mckinsey.com", "bcg.com", "bain.com", "deloitte.com",
                "pwc.com", "ey.com", "kpmg.com", "accenture.com",
            ),
        ),
        SourceTierRule(
            "Research/analytics firm", 0.7,
            domains=("gartner.com", "forrester.com", "idc.com", "statista.com", "emarketer.com"),
        ),
        SourceTierRule("Industry research report", 0.65, type="industry-report"),
        SourceTierRule("Documented case study", 0.6, type="case-study"),
        SourceTierRule(
            "Research indicators", 0.6,
            indicators=("survey", "study", "research", "analysis"),
        ),
    ],
    3: [
        SourceTierRule("Company whitepaper", 0.5, type="whitepaper"),
        SourceTierRule("Professional blog", 0.4, type="blog"),
        SourceTierRule(
            "Blog platform", 0.35,
            domains=("medium.com", "substack.com", "wordpress.com", "blogspot.com"),
        ),
        SourceTierRule("Company press release", 0.45, type="press-release"),
        SourceTierRule("Company website", 0.4, type="company-website"),
        SourceTierRule("Crowdsourced encyclopedia", 0.45, domains=("wikipedia.org",)),
        SourceTierRule(
            "Opinion piece", 0.35,
            indicators=("opinion", "perspective", "thoughts", "believe"),
        ),
        SourceTierRule("Industry trade publication", 0.5, type="trade-publication"),
    ],
    4: [
        SourceTierRule("Social media post", 0.2, type="social-media"),
        SourceTierRule(
            "Social media platform", 0.2,
            domains=(
                "facebook.com", "twitter.com", "x.com", "instagram.com",
                "tiktok.com", "reddit.com",
            ),
        ),
        SourceTierRule("Discussion forum", 0.25, type="forum"),
        SourceTierRule("User-generated content", 0.2, type="user-generated"),
        SourceTierRule(
            "Unverified content", 0.15,
            indicators=("rumor", "allegedly", "unconfirmed", "speculation"),
        ),
        SourceTierRule(
            "Free/suspicious domain", 0.1,
            pattern=_url_pattern(r"\.(?:tk|ml|ga|cf)" + _HOST_END),
        ),
        SourceTierRule("Anonymous source", 0.1, type="anonymous"),
    ],
}

DEFAULT_TIER = 4
DEFAULT_SCORE = 0.2
DEFAULT_CONFIDENCE = 0.5

TIER_LABELS = {1: "Excellent", 2: "Good", 3: "Moderate", 4: "Poor"}


# ============================================================
# ISSUE DETECTION
# ============================================================

_SHORTENER = re.compile(r"bit\.ly|tinyurl|short\.link", re.IGNORECASE)
_TRACKING_PARAMS = re.compile(r"[?&](?:utm_|campaign=)", re.IGNORECASE)
_HTTPS = re.compile(r"^https://", re.IGNORECASE)
_FALLBACK_HOST = re.compile(r"^(?:[a-z][a-z0-9+.-]*://)?(?:www\.)?([^/?#:\s]+)", re.IGNORECASE)

BIAS_INDICATORS = (
    "sponsored",
    "advertisement",
    "promoted",
    "affiliate",
    "partner content",
)


def extract_domain(url: Optional[str]) -> Optional[str]:
    """
    Best-effort lowercase host name for a URL. Never raises.

    Falls back to a regex when the URL has no scheme or cannot be parsed.
    """
    if not url:
        return None

    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    if host:
        return host.lower()

    match = _FALLBACK_HOST.match(url.strip())
    return match.group(1).lower() if match else None


def domain_matches(domain: Optional[str], candidates: Sequence[str]) -> bool:
    """True if any candidate occurs as a substring of the host name."""
    if not domain:
        return False
    return any(d in domain for d in candidates)


def _parse_publish_date(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        published = raw
    elif isinstance(raw, date):
        published = datetime(raw.year, raw.month, raw.day)
    elif isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            published = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def source_age_days(publish_date: Any, now: Optional[datetime] = None) -> int:
    """Age in whole days. Unparseable dates count as 0 days old."""
    published = _parse_publish_date(publish_date)
    if published is None:
        return 0
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - published).days


# ============================================================
# THE ASSESSOR
# ============================================================

class SourceQualityAssessor:
    """
    Rule-table credibility classifier. Holds no mutable state; each
    assessment is a pure function of one source record.
    """

    def __init__(
        self,
        tier_rules: Optional[dict[int, list[SourceTierRule]]] = None,
        max_source_age_days: Optional[int] = None,
    ):
        self._tier_rules = tier_rules if tier_rules is not None else TIER_RULES
        self.max_source_age_days = (
            settings.MAX_SOURCE_AGE_DAYS if max_source_age_days is None
            else max_source_age_days
        )

    def assess_source(
        self, source: Optional[SourceInput] = None, now: Optional[datetime] = None,
    ) -> SourceAssessment:
        """
        Assess the credibility of one source.

        Args:
            source: SourceRecord or mapping with optional url, type,
                content and metadata keys.
            now: Reference time for staleness checks (defaults to now, UTC).

        Returns:
            SourceAssessment. Unknown sources default to tier 4, score 0.2.
        """
        record = _as_record(source)
        domain = extract_domain(record.url)

        assessment = SourceAssessment(
            url=record.url,
            domain=domain,
            tier=DEFAULT_TIER,
            score=DEFAULT_SCORE,
            confidence=DEFAULT_CONFIDENCE,
        )

        for tier in sorted(self._tier_rules):
            matches = self._match_rules(record, domain, self._tier_rules[tier])
            if matches:
                assessment.tier = tier
                assessment.score = self.calculate_tier_score(matches)
                assessment.matched_rules = [m.description for m in matches]
                assessment.confidence = self.calculate_confidence(matches, record)
                break  # Best tier wins

        assessment.issues = self.identify_issues(record, assessment.tier, now=now)
        assessment.recommendation = self._build_recommendation(assessment)

        logger.debug(
            "Assessed source %s as tier %d", domain or "(no url)", assessment.tier,
            extra={"tier": assessment.tier, "score": assessment.score},
        )
        return assessment

    @staticmethod
    def _match_rules(
        record: SourceRecord, domain: Optional[str], rules: Sequence[SourceTierRule],
    ) -> list[SourceTierRule]:
        content_lower = record.content.lower() if record.content else ""
        matches = []

        for rule in rules:
            if rule.pattern is not None and record.url and rule.pattern.search(record.url):
                matches.append(rule)
            elif rule.domains and domain_matches(domain, rule.domains):
                matches.append(rule)
            elif rule.type and record.type == rule.type:
                matches.append(rule)
            elif rule.indicators and content_lower and any(
                i.lower() in content_lower for i in rule.indicators
            ):
                matches.append(rule)

        return matches

    @staticmethod
    def calculate_tier_score(matches: Sequence[SourceTierRule]) -> float:
        """Highest matched weight plus a small bonus for corroborating rules."""
        if not matches:
            return DEFAULT_SCORE
        max_weight = max(m.weight for m in matches)
        multi_match_bonus = min(0.1, (len(matches) - 1) * 0.02)
        return round(min(1.0, max_weight + multi_match_bonus), 3)

    @staticmethod
    def calculate_confidence(
        matches: Sequence[SourceTierRule], record: SourceRecord,
    ) -> float:
        confidence = 0.5
        if record.url:
            confidence += 0.2
        if len(matches) > 1:
            confidence += 0.15
        if record.type:
            confidence += 0.1
        if not record.metadata:
            confidence -= 0.1
        return round(max(0.1, min(1.0, confidence)), 3)

    def identify_issues(
        self, record: SourceRecord, tier: int, now: Optional[datetime] = None,
    ) -> list[str]:
        """Source-level problems, independent of the tier decision."""
        issues: list[str] = []

        if not record.url:
            issues.append("No URL provided for verification")

        if tier >= 3:
            issues.append(f"Low credibility tier (Tier {tier})")

        if record.url:
            if _SHORTENER.search(record.url):
                issues.append("URL shortener detected - original source unclear")
            if _TRACKING_PARAMS.search(record.url):
                issues.append("Marketing tracking parameters in URL")
            if not _HTTPS.match(record.url):
                issues.append("Non-HTTPS URL - potential security concern")

        publish_date = record.metadata.get("publishDate") or record.metadata.get("publish_date")
        if publish_date:
            age = source_age_days(publish_date, now=now)
            if age > self.max_source_age_days:
                issues.append(f"Source is {age // 365} years old")

        if record.content:
            content_lower = record.content.lower()
            for indicator in BIAS_INDICATORS:
                if indicator in content_lower:
                    issues.append(f'Potential bias: contains "{indicator}"')
                    break

        return issues

    @staticmethod
    def _build_recommendation(assessment: SourceAssessment) -> str:
        if assessment.tier == 1:
            return "Excellent source. Use with high confidence."
        if assessment.tier == 2:
            if not assessment.issues:
                return "Good source. Suitable for business documentation."
            return f"Good source but note: {assessment.issues[0]}"
        if assessment.tier == 3:
            return "Moderate credibility. Verify claims with additional sources."
        if assessment.tier == 4:
            return (
                "Low credibility. Should not be primary source. "
                "Find authoritative alternatives."
            )
        return "Unable to assess. Treat with caution."

    # --------------------------------------------------------
    # Batch assessment
    # --------------------------------------------------------

    def assess_multiple_sources(self, sources: Sequence[SourceInput]) -> SourceBatchResult:
        """Assess every source and summarise the portfolio."""
        assessments = [self.assess_source(s) for s in sources]
        return SourceBatchResult(
            assessments=assessments,
            summary=self.summarize(assessments),
        )

    async def assess_sources_concurrently(
        self, sources: Sequence[SourceInput],
    ) -> list[SourceAssessment]:
        """Fire-and-collect assessment; results keep the input order."""

        async def _assess(source: SourceInput) -> SourceAssessment:
            return self.assess_source(source)

        return list(await asyncio.gather(*(_assess(s) for s in sources)))

    @staticmethod
    def summarize(assessments: Sequence[SourceAssessment]) -> SourcePortfolioSummary:
        """Tier distribution, averages and portfolio-level advice."""
        tier_counts = {1: 0, 2: 0, 3: 0, 4: 0}
        for a in assessments:
            tier_counts[a.tier] = tier_counts.get(a.tier, 0) + 1

        total = len(assessments)
        if total == 0:
            return SourcePortfolioSummary(
                average_tier=0.0, average_score=0.0,
                tier1_count=0, tier2_count=0, tier3_count=0, tier4_count=0,
            )

        average_tier = sum(a.tier for a in assessments) / total
        average_score = sum(a.score for a in assessments) / total

        recommendations = []
        if tier_counts[4] > total * 0.3:
            recommendations.append(
                "High proportion of low-credibility sources. "
                "Seek more authoritative references."
            )
        if tier_counts[1] < total * 0.2:
            recommendations.append(
                "Limited high-credibility sources. "
                "Add peer-reviewed or official sources."
            )
        if average_tier > 2.5:
            recommendations.append(
                "Overall source quality below recommended threshold. Upgrade sources."
            )

        return SourcePortfolioSummary(
            average_tier=average_tier,
            average_score=average_score,
            tier1_count=tier_counts[1],
            tier2_count=tier_counts[2],
            tier3_count=tier_counts[3],
            tier4_count=tier_counts[4],
            recommendations=recommendations,
        )

    # --------------------------------------------------------
    # Reporting
    # --------------------------------------------------------

    @staticmethod
    def format_assessment_report(assessment: SourceAssessment) -> str:
        """Render one assessment as markdown."""
        lines = [
            "## Source Assessment\n",
            f"- **URL**: {assessment.url or 'Not provided'}",
            f"- **Domain**: {assessment.domain or 'N/A'}",
            f"- **Tier**: {assessment.tier} ({TIER_LABELS.get(assessment.tier, 'Unknown')})",
            f"- **Score**: {assessment.score * 100:.0f}%",
            f"- **Confidence**: {assessment.confidence * 100:.0f}%\n",
        ]

        if assessment.matched_rules:
            lines.append("### Matched Criteria")
            lines.extend(f"- {rule}" for rule in assessment.matched_rules)
            lines.append("")

        if assessment.issues:
            lines.append("### ⚠️ Issues")
            lines.extend(f"- {issue}" for issue in assessment.issues)
            lines.append("")

        lines.append("### Recommendation")
        lines.append(assessment.recommendation)
        return "\n".join(lines)


def _as_record(source: Optional[SourceInput]) -> SourceRecord:
    if source is None:
        return SourceRecord()
    if isinstance(source, SourceRecord):
        return source
    return SourceRecord.from_mapping(source)


# ============================================================
# SINGLETON
# ============================================================

source_assessor = SourceQualityAssessor()
