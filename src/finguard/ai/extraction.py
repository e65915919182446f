"""
Field extraction from free-form model output.

Model text is read two ways:

* scalar fields (probabilities, scores, risk keywords) come from a table of
  ``ScalarField(name, pattern, default)`` entries; a missing or unparseable
  match yields the default.
* list fields (recommendations, patterns, factors) come from labeled sections:
  a ``Label: rest`` line opens a section, and bullet, numbered or plain lines
  that follow are its items. List entries are normalized to lowercase.

Labels match case-insensitively; free-text scalars such as the reasoning keep
the model's casing.

Nothing in this module raises on malformed text.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .types import (
    AnalysisDomain,
    AnalysisFactor,
    AnalysisResponse,
    CreditEnhancement,
    FraudAnalysis,
    GeneralInsight,
    RawModelResponse,
    RiskLevel,
    SecurityAssessment,
)

MAX_LIST_ITEMS = 5
MAX_HEADING_WORDS = 4
PLACEHOLDER_ITEMS = {"none", "n/a", "na", "nil", "none identified", "none detected", "not applicable"}

DEFAULT_REASONING = "Analysis completed based on provided data patterns"
DEFAULT_LENDING_RECOMMENDATION = "Standard lending terms recommended"

# Optional "(0-100%)" style hint, separator, optional "is"
_LABEL_TAIL = r"(?:\s*\([^)\n]*\))?[:\s]*(?:is\s+|of\s+)?"
_NUMBER = r"(\d+(?:\.\d+)?)"

_EMPHASIS = re.compile(r"\*\*|__|`")
_BULLET = re.compile(r"^(?:[-•]|\*(?!\*))\s+")
_NUMBERED = re.compile(r"^\d+[.)]\s+")
_HEADING = re.compile(r"^([a-z][a-z0-9 /&()'-]*?)\s*:\s*(.*)$", re.IGNORECASE)


def _labeled(label: str, value: str) -> re.Pattern:
    return re.compile(label + _LABEL_TAIL + value, re.IGNORECASE)


def _clamp(low: float, high: float) -> Callable[[str], float]:
    def convert(raw: str) -> float:
        return max(low, min(high, float(raw)))

    return convert


def _clamp_int(low: int, high: int) -> Callable[[str], int]:
    def convert(raw: str) -> int:
        return int(max(low, min(high, float(raw))))

    return convert


def _risk_level(raw: str) -> RiskLevel:
    return RiskLevel(raw.lower())


def _sentence(raw: str) -> str:
    value = raw.strip()
    if not value:
        raise ValueError("empty value")
    return value


@dataclass(frozen=True)
class ScalarField:
    name: str
    pattern: re.Pattern
    default: Any
    convert: Callable[[str], Any] = str

    def extract(self, text: str) -> Any:
        match = self.pattern.search(text)
        if not match:
            return self.default
        try:
            return self.convert(match.group(1))
        except (TypeError, ValueError):
            return self.default


FRAUD_PROBABILITY = ScalarField("fraud_probability", _labeled(r"fraud probability", _NUMBER), 25.0, _clamp(0, 100))
RISK_LEVEL = ScalarField(
    "risk_level",
    _labeled(r"risk (?:level|assessment)", r"(low|medium|high|critical)\b"),
    RiskLevel.MEDIUM,
    _risk_level,
)
ENHANCED_SCORE = ScalarField(
    "enhanced_score", _labeled(r"(?:enhanced )?credit score", r"(\d{3})\b"), 650, _clamp_int(300, 850)
)
LENDING_RECOMMENDATION = ScalarField(
    "lending_recommendation",
    _labeled(r"lending recommendation", r"([^\n]+)"),
    DEFAULT_LENDING_RECOMMENDATION,
    _sentence,
)
THREAT_LEVEL = ScalarField("threat_level", _labeled(r"threat level", _NUMBER), 30.0, _clamp(0, 100))
REASONING = ScalarField(
    "reasoning", re.compile(r"reasoning[^:\n]*:\s*([^\n]+)", re.IGNORECASE), DEFAULT_REASONING, _sentence
)


@dataclass
class Section:
    label: str
    items: list[str] = field(default_factory=list)


def normalize_text(text: str) -> str:
    return _EMPHASIS.sub("", text or "")


def parse_sections(text: str) -> list[Section]:
    """Split normalized text into labeled sections. Labels are lowercased; items keep their case.

    Lines before the first label are dropped.
    """
    sections: list[Section] = []
    current: Section | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        is_bullet = bool(_BULLET.match(line))
        body = _NUMBERED.sub("", _BULLET.sub("", line)).lstrip("#").strip()
        if not body:
            continue

        heading = None if is_bullet else _HEADING.match(body)
        if heading and len(heading.group(1).split()) <= MAX_HEADING_WORDS:
            current = Section(label=heading.group(1).strip().lower())
            sections.append(current)
            rest = heading.group(2).strip()
            if rest:
                current.items.append(rest)
        elif current is not None:
            current.items.append(body)

    return sections


def _clean_item(item: str) -> str:
    return item.strip().rstrip(".;,").strip()


def list_items(sections: list[Section], *keywords: str, limit: int = MAX_LIST_ITEMS) -> list[str]:
    """Lowercased items of every section whose label contains one of ``keywords``, deduplicated, at most ``limit``."""
    items: list[str] = []
    visited: set[int] = set()
    for keyword in keywords:
        for index, section in enumerate(sections):
            if index in visited or keyword not in section.label:
                continue
            visited.add(index)
            for raw in section.items:
                item = _clean_item(raw).lower()
                if len(item) <= 3 or item.endswith(":") or item in PLACEHOLDER_ITEMS or item in items:
                    continue
                items.append(item)
    return items[:limit]


def extract_factors(sections: list[Section]) -> tuple[AnalysisFactor, ...]:
    return tuple(
        AnalysisFactor(
            factor=item[:50],
            impact=max(10, min(90, 50 + index * 10)),
            explanation=item,
        )
        for index, item in enumerate(list_items(sections, "key factors", "factors"))
    )


def _common_fields(raw: RawModelResponse, text: str, sections: list[Section]) -> dict:
    return {
        "confidence": max(0.0, min(100.0, float(raw.confidence_hint))),
        "risk_level": RISK_LEVEL.extract(text),
        "reasoning": REASONING.extract(text),
        "factors": extract_factors(sections),
    }


def parse_fraud_analysis(raw: RawModelResponse) -> FraudAnalysis:
    text = normalize_text(raw.text)
    sections = parse_sections(text)
    prevention = tuple(list_items(sections, "recommendations", "prevention"))
    return FraudAnalysis(
        **_common_fields(raw, text, sections),
        recommendations=prevention,
        fraud_probability=FRAUD_PROBABILITY.extract(text),
        suspicious_patterns=tuple(list_items(sections, "suspicious patterns", "patterns identified")),
        prevention_actions=prevention,
    )


def parse_credit_enhancement(raw: RawModelResponse) -> CreditEnhancement:
    text = normalize_text(raw.text)
    sections = parse_sections(text)
    common = _common_fields(raw, text, sections)
    return CreditEnhancement(
        **common,
        recommendations=tuple(list_items(sections, "recommendations", "suggestions")),
        enhanced_score=ENHANCED_SCORE.extract(text),
        score_factors=common["factors"],
        lending_recommendation=LENDING_RECOMMENDATION.extract(text),
    )


def parse_security_assessment(raw: RawModelResponse) -> SecurityAssessment:
    text = normalize_text(raw.text)
    sections = parse_sections(text)
    mitigation = tuple(list_items(sections, "mitigation", "recommendations"))
    return SecurityAssessment(
        **_common_fields(raw, text, sections),
        recommendations=mitigation,
        threat_level=THREAT_LEVEL.extract(text),
        vulnerabilities=tuple(list_items(sections, "vulnerabilities")),
        mitigation_steps=mitigation,
    )


def parse_general_insight(raw: RawModelResponse) -> GeneralInsight:
    text = normalize_text(raw.text)
    sections = parse_sections(text)
    return GeneralInsight(
        **_common_fields(raw, text, sections),
        recommendations=tuple(list_items(sections, "recommendations", "suggestions")),
    )


PARSERS: dict[AnalysisDomain, Callable[[RawModelResponse], AnalysisResponse]] = {
    AnalysisDomain.FRAUD: parse_fraud_analysis,
    AnalysisDomain.CREDIT: parse_credit_enhancement,
    AnalysisDomain.SECURITY: parse_security_assessment,
    AnalysisDomain.GENERAL: parse_general_insight,
}


def parse_assessment(domain: AnalysisDomain, raw: RawModelResponse) -> AnalysisResponse:
    return PARSERS[domain](raw)
