"""
Tests for finguard.ai.extraction - best-effort parsing of model text.
"""

import pytest

from finguard.ai.extraction import (
    DEFAULT_LENDING_RECOMMENDATION,
    DEFAULT_REASONING,
    FRAUD_PROBABILITY,
    list_items,
    normalize_text,
    parse_assessment,
    parse_credit_enhancement,
    parse_fraud_analysis,
    parse_general_insight,
    parse_sections,
    parse_security_assessment,
)
from finguard.ai.types import AnalysisDomain, RawModelResponse, RiskLevel


def _raw(text: str, confidence: float = 85.0) -> RawModelResponse:
    return RawModelResponse(text=text, confidence_hint=confidence)


FRAUD_REPORT = """**Fraud probability:** 72%
**Risk level:** High

Suspicious patterns identified:
- Transaction amount far above the account average
- New device first seen minutes before the transfer
* SIM swap reported on the number yesterday

Key factors:
1. Amount anomaly
2. Device change

Recommendations:
1. Hold the transaction pending verification
2. Contact the customer on a registered channel
- Hold the transaction pending verification

Confidence score: 80%
Reasoning: several high-risk signals coincide within one session.
"""


class TestFraudParsing:
    def test_minimal_scenario(self):
        analysis = parse_fraud_analysis(
            _raw("Fraud probability: 15%\nRisk level: low\nRecommendations: Continue monitoring")
        )

        assert analysis.fraud_probability == 15
        assert analysis.risk_level == RiskLevel.LOW
        assert "continue monitoring" in analysis.recommendations
        assert analysis.prevention_actions == analysis.recommendations

    def test_full_report(self):
        analysis = parse_fraud_analysis(_raw(FRAUD_REPORT, confidence=92))

        assert analysis.fraud_probability == 72
        assert analysis.risk_level == RiskLevel.HIGH
        assert analysis.confidence == 92
        assert analysis.suspicious_patterns == (
            "transaction amount far above the account average",
            "new device first seen minutes before the transfer",
            "sim swap reported on the number yesterday",
        )
        assert analysis.recommendations == (
            "hold the transaction pending verification",
            "contact the customer on a registered channel",
        )
        assert analysis.reasoning == "several high-risk signals coincide within one session."
        assert [f.factor for f in analysis.factors] == ["amount anomaly", "device change"]
        assert [f.impact for f in analysis.factors] == [50, 60]

    def test_defaults_when_nothing_matches(self):
        analysis = parse_fraud_analysis(_raw("I cannot help with that."))

        assert analysis.fraud_probability == 25
        assert analysis.risk_level == RiskLevel.MEDIUM
        assert analysis.reasoning == DEFAULT_REASONING
        assert analysis.recommendations == ()
        assert analysis.factors == ()

    def test_probability_is_clamped(self):
        assert parse_fraud_analysis(_raw("Fraud probability: 250%")).fraud_probability == 100

    def test_parenthetical_label_hint(self):
        assert FRAUD_PROBABILITY.extract(normalize_text("**Fraud probability (0-100%):** 40%")) == 40

    def test_recommendations_capped_at_five(self):
        lines = "\n".join(f"- recommendation number {i}" for i in range(8))
        analysis = parse_fraud_analysis(_raw(f"Recommendations:\n{lines}"))

        assert len(analysis.recommendations) == 5

    def test_placeholder_items_filtered(self):
        analysis = parse_fraud_analysis(_raw("Suspicious patterns: None\nRecommendations:\n- n/a\n- keep watching"))

        assert analysis.suspicious_patterns == ()
        assert analysis.recommendations == ("keep watching",)

    def test_uppercase_labels_and_reasoning_casing(self):
        analysis = parse_fraud_analysis(
            _raw(
                "RISK LEVEL: CRITICAL\n"
                "REASONING: Card used in Lagos and London within an hour\n"
                "RECOMMENDATIONS:\n"
                "- Freeze the card via the MTN MoMo console\n"
                "- freeze the card via the mtn momo console\n"
                "- N/A\n"
            )
        )

        assert analysis.risk_level == RiskLevel.CRITICAL
        assert analysis.reasoning == "Card used in Lagos and London within an hour"
        assert analysis.recommendations == ("freeze the card via the mtn momo console",)


class TestOtherDomains:
    def test_credit(self):
        text = (
            "Enhanced credit score (300-850 scale): 712\n"
            "Risk assessment: medium\n"
            "Key factors affecting creditworthiness:\n"
            "- Consistent mobile money inflows\n"
            "Lending recommendation: Approve with a moderate limit\n"
            "Improvement suggestions:\n"
            "- Build a formal repayment record\n"
        )
        credit = parse_credit_enhancement(_raw(text))

        assert credit.enhanced_score == 712
        assert credit.risk_level == RiskLevel.MEDIUM
        assert credit.lending_recommendation == "Approve with a moderate limit"
        assert credit.recommendations == ("build a formal repayment record",)
        assert credit.score_factors == credit.factors
        assert credit.factors[0].factor == "consistent mobile money inflows"

    def test_credit_defaults(self):
        credit = parse_credit_enhancement(_raw("No structured output"))

        assert credit.enhanced_score == 650
        assert credit.lending_recommendation == DEFAULT_LENDING_RECOMMENDATION

    def test_credit_score_clamped(self):
        assert parse_credit_enhancement(_raw("Credit score: 990")).enhanced_score == 850

    def test_security(self):
        text = (
            "Threat level: 65%\n"
            "Risk assessment: high\n"
            "Identified vulnerabilities:\n"
            "- Repeated failed logins\n"
            "Mitigation recommendations:\n"
            "- Enforce two-factor authentication\n"
        )
        assessment = parse_security_assessment(_raw(text))

        assert assessment.threat_level == 65
        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.vulnerabilities == ("repeated failed logins",)
        assert assessment.mitigation_steps == ("enforce two-factor authentication",)

    def test_general(self):
        insight = parse_general_insight(_raw("Risk assessment: low\nRecommendations:\n- Keep going"))

        assert insight.risk_level == RiskLevel.LOW
        assert insight.recommendations == ("keep going",)

    @pytest.mark.parametrize("domain", list(AnalysisDomain))
    def test_garbage_never_raises(self, domain):
        result = parse_assessment(domain, _raw("::::\n- \n1.\n**\n%%%", confidence=150))

        assert 0 <= result.confidence <= 100
        assert len(result.recommendations) <= 5


class TestSections:
    def test_heading_with_inline_value(self):
        sections = parse_sections("risk level: low\nrecommendations:\n- a thing\n- other thing")

        assert [s.label for s in sections] == ["risk level", "recommendations"]
        assert sections[1].items == ["a thing", "other thing"]

    def test_long_sentence_with_colon_is_not_a_heading(self):
        sections = parse_sections(
            "recommendations:\n- verify\nthe customer should be told the following today: call back"
        )

        assert len(sections) == 1
        assert sections[0].items[-1].startswith("the customer")

    def test_list_items_deduplicates_across_keywords(self):
        sections = parse_sections("recommendations:\n- verify identity\nprevention:\n- verify identity\n- block card")

        assert list_items(sections, "recommendations", "prevention") == ["verify identity", "block card"]

    def test_labels_are_lowercased_items_are_not(self):
        sections = parse_sections("Key Factors:\n- Device seen in Nairobi")

        assert sections[0].label == "key factors"
        assert sections[0].items == ["Device seen in Nairobi"]
