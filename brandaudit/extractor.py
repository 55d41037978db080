"""
Fact Triple Extractor — Structured Claims From Free Text

Turns narrative strategy text into (subject, predicate, value) triples
using a fixed, ordered set of lexical patterns. Deterministic, no LLM.

The extractor:
  1. Splits text into sentences
  2. Runs every extraction pattern against every sentence
  3. Converts each match into a FactTriple via the pattern's own builder
  4. Keeps claim-like sentences that no pattern could parse, so they
     can be reviewed by hand

Recall is bounded on purpose. A sentence that looks like a claim but
does not fit a template is surfaced, not guessed at.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

TripleValue = Union[str, int, float]


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class FactTriple:
    """A single structured fact extracted from a sentence."""
    subject: str
    predicate: str
    value: TripleValue
    type: str              # "numeric", "categorical", "comparative", "temporal"
    confidence: float      # 0.3 to 1.0
    source_text: str       # The sentence the fact came from

    @property
    def key(self) -> tuple:
        return (self.subject, self.predicate, self.value)


@dataclass
class ExtractionResult:
    """Result of one extract_triples() call."""
    triples: list[FactTriple]
    unstructured_claims: list[str]
    total_claims: int
    extraction_rate: float


@dataclass
class VerificationPriorities:
    """Triples bucketed by how urgently they should be fact-checked."""
    high_priority: list[FactTriple] = field(default_factory=list)
    medium_priority: list[FactTriple] = field(default_factory=list)
    low_priority: list[FactTriple] = field(default_factory=list)


# (subject, predicate, value, type) produced by a pattern builder
TripleFields = tuple[str, str, Optional[TripleValue], str]


@dataclass(frozen=True)
class ExtractionPattern:
    """
    A lexical template paired with the function that maps its match
    groups onto triple fields. The pairing is fixed at definition time.
    """
    id: str
    description: str
    regex: re.Pattern
    build: Callable[[re.Match], TripleFields]


# ============================================================
# VALUE PARSING
# ============================================================

CURRENCY_MULTIPLIERS = {
    "thousand": 1_000,
    "k": 1_000,
    "million": 1_000_000,
    "m": 1_000_000,
    "billion": 1_000_000_000,
    "b": 1_000_000_000,
}

PLACEHOLDER_SUBJECTS = frozenset({"company", "we"})
SPECIFIC_PREDICATES = frozenset({"serves", "has", "owns", "equals"})

BASE_CONFIDENCE = 0.7
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 1.0

_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Collapse whitespace and drop a leading article."""
    collapsed = _WHITESPACE.sub(" ", text.strip())
    return _LEADING_ARTICLE.sub("", collapsed)


def parse_numeric_value(text: str) -> float:
    """
    Parse a number written with thousands separators and/or a trailing %.

    Raises ValueError for strings that are not a number once cleaned
    (e.g. "1.2.3"); callers treat that as a failed match.
    """
    cleaned = text.replace(",", "").strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    return float(cleaned)


def parse_currency_value(amount: str, multiplier: Optional[str] = None) -> float:
    """Parse a currency amount, applying K/M/B or thousand/million/billion."""
    base = parse_numeric_value(amount)
    if not multiplier:
        return base
    return base * CURRENCY_MULTIPLIERS.get(multiplier.lower(), 1)


# ============================================================
# PATTERN BUILDERS
# ============================================================

def _possession(m: re.Match) -> TripleFields:
    predicate = m.group(2).lower()
    if m.group(4):
        predicate += " " + m.group(4).lower()  # unit
    return clean_text(m.group(1)), predicate, parse_numeric_value(m.group(3)), "numeric"


def _percentage(m: re.Match) -> TripleFields:
    return clean_text(m.group(2)), "percentage", parse_numeric_value(m.group(1)), "numeric"


def _comparative(m: re.Match) -> TripleFields:
    return (
        clean_text(m.group(1)),
        f"is {m.group(2).lower()} than",
        clean_text(m.group(3)),
        "comparative",
    )


def _ranking(m: re.Match) -> TripleFields:
    return (
        clean_text(m.group(1)),
        f"rank in {clean_text(m.group(3))}",
        int(m.group(2)),
        "numeric",
    )


def _growth(m: re.Match) -> TripleFields:
    return clean_text(m.group(1)), m.group(2).lower(), parse_numeric_value(m.group(3)), "numeric"


def _temporal(m: re.Match) -> TripleFields:
    return clean_text(m.group(1)), m.group(2).lower(), int(m.group(3)), "temporal"


def _currency(m: re.Match) -> TripleFields:
    return "value", "equals", parse_currency_value(m.group(1), m.group(2)), "numeric"


def _rating(m: re.Match) -> TripleFields:
    predicate = m.group(2).lower()
    if m.group(4):
        predicate += f" out of {m.group(4)}"
    return clean_text(m.group(1)), predicate, float(m.group(3)), "numeric"


def _customer_base(m: re.Match) -> TripleFields:
    return "company", "has", parse_numeric_value(m.group(1)), "numeric"


def _duration(m: re.Match) -> TripleFields:
    return (
        clean_text(m.group(3)),
        "duration",
        f"{int(m.group(1))} {m.group(2).lower()}",
        "temporal",
    )


# ============================================================
# EXTRACTION PATTERNS (ordered, evaluated top to bottom)
# ============================================================

def _compile(regex: str) -> re.Pattern:
    return re.compile(regex, re.IGNORECASE)


EXTRACTION_PATTERNS: list[ExtractionPattern] = [
    ExtractionPattern(
        id="NUMERIC_POSSESSION",
        description="X has/serves/owns N [units]",
        regex=_compile(
            r"(\w[\w\s]*?)\s+(has|have|serves?|owns?|operates?|manages?|"
            r"delivers?|produces?|generates?)\s+(\d+[\d,.]*)\s*(\w+)?"
        ),
        build=_possession,
    ),
    ExtractionPattern(
        id="PERCENTAGE",
        description="N% of X",
        regex=_compile(r"(\d+(?:\.\d+)?%?)\s+of\s+([\w\s]+?)(?:\.|,|$)"),
        build=_percentage,
    ),
    ExtractionPattern(
        id="COMPARATIVE",
        description="X is better/worse/... than Y",
        regex=_compile(
            r"([\w\s]+?)\s+is\s+(better|worse|higher|lower|faster|slower|"
            r"more|less|greater|smaller)\s+than\s+([\w\s]+?)(?:\.|,|$)"
        ),
        build=_comparative,
    ),
    ExtractionPattern(
        id="RANKING",
        description="X is #N in Y",
        regex=_compile(r"([\w\s]+?)\s+is\s+#?(\d+)\s+in\s+([\w\s]+?)(?:\.|,|$)"),
        build=_ranking,
    ),
    ExtractionPattern(
        id="GROWTH",
        description="X grew/increased/decreased by N%",
        regex=_compile(
            r"([\w\s]+?)\s+(grew|increased|decreased|expanded|reduced)\s+"
            r"by\s+(\d+(?:\.\d+)?%?)"
        ),
        build=_growth,
    ),
    ExtractionPattern(
        id="TEMPORAL",
        description="X since/in YYYY",
        regex=_compile(r"([\w\s]+?)\s+(since|in|from|after|before)\s+(\d{4})\b"),
        build=_temporal,
    ),
    ExtractionPattern(
        id="CURRENCY",
        description="$N [thousand/million/billion]",
        regex=_compile(
            r"\$(\d+(?:[\d,.]*)?)(?:\s*(million|billion|thousand|M|B|K)\b)?"
        ),
        build=_currency,
    ),
    ExtractionPattern(
        id="RATING",
        description="X rated/scored N [out of M]",
        regex=_compile(
            r"([\w\s]+?)\s+(rated|scored|achieved|received)\s+"
            r"(\d+(?:\.\d+)?)\s*(?:out of\s+(\d+))?"
        ),
        build=_rating,
    ),
    ExtractionPattern(
        id="CUSTOMER_BASE",
        description="N customers/users/clients",
        regex=_compile(
            r"(\d+[\d,.]*)\s+(customers?|users?|clients?|members?|"
            r"subscribers?|partners?)"
        ),
        build=_customer_base,
    ),
    ExtractionPattern(
        id="DURATION",
        description="N years/months of X",
        regex=_compile(r"(\d+)\s+(years?|months?|days?|hours?)\s+of\s+([\w\s]+?)(?:\.|,|$)"),
        build=_duration,
    ),
]


# ============================================================
# CLAIM HEURISTIC
# ============================================================

CLAIM_INDICATORS: list[re.Pattern] = [
    _compile(r"\d"),                                         # numbers
    _compile(r"\b(?:first|best|leading|top|only)\b"),        # superlatives
    _compile(r"\b(?:has|have|serves|owns)\b"),               # possession
    _compile(r"\b(?:more|less|better|worse)\b"),             # comparatives
    _compile(r"\b(?:since|from)\b|\bin \d{4}\b"),            # temporal markers
    _compile(r"\b(?:customers|revenue|growth|market)\b"),    # business terms
]

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+(?=\s|$)")

HIGH_PRIORITY_VALUE = 1_000_000
HIGH_PRIORITY_PREDICATE_TERMS = ("revenue", "customers", "rank")


# ============================================================
# THE EXTRACTOR
# ============================================================

class FactTripleExtractor:
    """
    Pattern-driven fact extractor. Holds only its immutable pattern
    table, so one instance can be shared across requests.
    """

    def __init__(self, patterns: Optional[list[ExtractionPattern]] = None):
        self._patterns = list(patterns) if patterns is not None else EXTRACTION_PATTERNS

    def extract_triples(self, text: str) -> ExtractionResult:
        """
        Extract fact triples from free text.

        Args:
            text: Narrative text, typically every strategy field joined
                with spaces.

        Returns:
            ExtractionResult. Never raises for malformed text; the worst
            case is an empty result.
        """
        triples: list[FactTriple] = []
        seen: set[tuple] = set()
        unstructured_claims: list[str] = []
        total_claims = 0

        for sentence in self.split_into_sentences(text or ""):
            parsed = False

            for pattern in self._patterns:
                for match in pattern.regex.finditer(sentence):
                    triple = self._parse_match(match, sentence, pattern)
                    if triple is None:
                        continue
                    parsed = True
                    if triple.key in seen:
                        continue  # First occurrence wins
                    seen.add(triple.key)
                    triples.append(triple)

            is_claim = self.looks_like_claim(sentence)
            if is_claim:
                total_claims += 1
                if not parsed:
                    unstructured_claims.append(sentence)

        extraction_rate = (
            min(1.0, len(triples) / total_claims) if total_claims > 0 else 0.0
        )

        logger.debug(
            "Extracted %d triples from %d claims", len(triples), total_claims,
            extra={"triples_count": len(triples), "extraction_rate": extraction_rate},
        )

        return ExtractionResult(
            triples=triples,
            unstructured_claims=unstructured_claims,
            total_claims=total_claims,
            extraction_rate=extraction_rate,
        )

    def _parse_match(
        self, match: re.Match, sentence: str, pattern: ExtractionPattern
    ) -> Optional[FactTriple]:
        """Build a triple from one match. Failed matches are skipped, not raised."""
        try:
            subject, predicate, value, triple_type = pattern.build(match)
        except (ValueError, TypeError, IndexError) as e:
            logger.debug(
                "Skipping unparseable %s match %r: %s",
                pattern.id, match.group(0), e,
                extra={"pattern": pattern.id, "error": str(e)},
            )
            return None

        if not subject or not predicate or value is None:
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None

        return FactTriple(
            subject=subject,
            predicate=predicate,
            value=value,
            type=triple_type,
            confidence=self.calculate_confidence(subject, predicate, value, triple_type),
            source_text=sentence,
        )

    @staticmethod
    def calculate_confidence(
        subject: str, predicate: str, value: TripleValue, triple_type: str
    ) -> float:
        """
        Score how specific a triple is.

        Numeric facts with a real number are easier to check; vague
        subjects ("we", "company") are harder to attribute.
        """
        confidence = BASE_CONFIDENCE

        if triple_type == "numeric" and isinstance(value, (int, float)):
            confidence += 0.1

        if len(subject) < 3 or subject.lower() in PLACEHOLDER_SUBJECTS:
            confidence -= 0.1

        if predicate in SPECIFIC_PREDICATES:
            confidence += 0.05

        return round(max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence)), 3)

    @staticmethod
    def split_into_sentences(text: str) -> list[str]:
        """Split on ., ! and ? boundaries. Decimal points are not boundaries."""
        return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]

    @staticmethod
    def looks_like_claim(sentence: str) -> bool:
        """Heuristic: does this sentence assert something checkable?"""
        return any(indicator.search(sentence) for indicator in CLAIM_INDICATORS)

    # --------------------------------------------------------
    # Verification helpers
    # --------------------------------------------------------

    def analyze_for_verification(self, triples: list[FactTriple]) -> VerificationPriorities:
        """Bucket triples by fact-checking priority."""
        priorities = VerificationPriorities()

        for triple in triples:
            if triple.type == "numeric":
                is_number = isinstance(triple.value, (int, float))
                if is_number and (
                    triple.value > HIGH_PRIORITY_VALUE
                    or any(t in triple.predicate for t in HIGH_PRIORITY_PREDICATE_TERMS)
                ):
                    priorities.high_priority.append(triple)
                else:
                    priorities.medium_priority.append(triple)
            elif triple.type in ("comparative", "temporal"):
                priorities.medium_priority.append(triple)
            else:
                priorities.low_priority.append(triple)

        return priorities

    def group_related_triples(self, triples: list[FactTriple]) -> dict[str, list[FactTriple]]:
        """Group triples by lowercased subject for cross-checking."""
        groups: dict[str, list[FactTriple]] = {}
        for triple in triples:
            groups.setdefault(triple.subject.lower(), []).append(triple)
        return groups

    def export_for_verification(self, triples: list[FactTriple]) -> str:
        """Render a prioritized markdown checklist of facts to verify."""
        priorities = self.analyze_for_verification(triples)
        lines = ["# Facts to Verify\n"]

        if priorities.high_priority:
            lines.append("## High Priority\n")
            for t in priorities.high_priority:
                lines.append(f"- **{t.subject}** {t.predicate} **{format_value(t.value)}**")
                lines.append(f'  - Source: "{t.source_text}"')
                lines.append(f"  - Confidence: {t.confidence * 100:.0f}%\n")

        if priorities.medium_priority:
            lines.append("## Medium Priority\n")
            for t in priorities.medium_priority:
                lines.append(f"- {t.subject} {t.predicate} {format_value(t.value)}")
                lines.append(f"  - Confidence: {t.confidence * 100:.0f}%\n")

        if priorities.low_priority:
            lines.append("## Low Priority\n")
            for t in priorities.low_priority:
                lines.append(f"- {t.subject} {t.predicate} {format_value(t.value)}\n")

        return "\n".join(lines)


def format_value(value: TripleValue) -> str:
    """Render whole-number floats without a trailing .0"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ============================================================
# SINGLETON
# ============================================================

fact_extractor = FactTripleExtractor()
