"""
Role prompts for remote analysis.

Each domain gets a role instruction listing the labeled fields the extractor
later looks for ("Fraud probability", "Risk level", "Recommendations", ...).
"""

from __future__ import annotations

import json
from typing import Any

from .types import AnalysisContext, AnalysisDomain

ROLE_PROMPTS: dict[AnalysisDomain, str] = {
    AnalysisDomain.FRAUD: """You are an expert fraud detection analyst for African mobile money systems. Analyze the following transaction data and provide:
1. Fraud probability (0-100%)
2. Risk level (low/medium/high/critical)
3. Suspicious patterns identified
4. Confidence score (0-100%)
5. Specific recommendations for prevention
6. Reasoning for your assessment

Focus on patterns common in African mobile money fraud including SIM swapping, social engineering, and merchant fraud.""",
    AnalysisDomain.CREDIT: """You are an expert credit analyst specializing in African financial markets. Analyze the following financial data and provide:
1. Enhanced credit score (300-850 scale)
2. Risk assessment (low/medium/high/critical)
3. Key factors affecting creditworthiness
4. Lending recommendation
5. Confidence score (0-100%)
6. Improvement suggestions
7. Reasoning for your assessment

Consider factors relevant to African markets including mobile money usage, informal income, and limited credit history.""",
    AnalysisDomain.SECURITY: """You are a cybersecurity expert specializing in device fingerprinting and behavioral analysis. Analyze the following security data and provide:
1. Threat level (0-100%)
2. Risk assessment (low/medium/high/critical)
3. Identified vulnerabilities
4. Device risk score
5. Confidence score (0-100%)
6. Mitigation recommendations
7. Reasoning for your assessment

Focus on mobile device security, behavioral anomalies, and emerging threats in African markets.""",
    AnalysisDomain.GENERAL: """You are an AI assistant specializing in financial technology and security. Analyze the provided data and give insights with:
1. Key findings
2. Risk assessment
3. Confidence score (0-100%)
4. Recommendations
5. Reasoning for your assessment""",
}

CONNECTION_TEST_PROMPT = 'Respond with "Connection successful" if you can read this message.'


def role_prompt(domain: AnalysisDomain) -> str:
    return ROLE_PROMPTS.get(domain, ROLE_PROMPTS[AnalysisDomain.GENERAL])


def build_prompt(prompt: str, context: AnalysisContext | None = None, data: Any = None) -> str:
    """
    Assemble the full prompt sent to the model.

    Layout: optional ``Context:`` block, the role prompt, then the serialized
    payload under ``Data to analyze:``.
    """
    full_prompt = prompt
    if context is not None:
        full_prompt = f"Context: {json.dumps(context.to_dict(), indent=2)}\n\n{full_prompt}"
    if data is not None:
        full_prompt += f"\n\nData to analyze:\n{json.dumps(data, indent=2, default=str)}"
    return full_prompt
