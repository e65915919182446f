"""
Request and response validation for the remote analysis client.

Domain payloads are validated with pydantic models (camelCase aliases, unknown
keys allowed); failures are converted into ``ValidationError`` with a
per-field error map.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import ValidationError
from .types import AnalysisDomain, RawModelResponse

MAX_PROMPT_LENGTH = 10000

HARMFUL_PROMPT_PATTERNS = [
    re.compile(r"ignore\s+previous\s+instructions", re.IGNORECASE),
    re.compile(r"forget\s+everything", re.IGNORECASE),
    re.compile(r"system\s+prompt", re.IGNORECASE),
    re.compile(r"jailbreak", re.IGNORECASE),
    re.compile(r"DROP\s+TABLE", re.IGNORECASE),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"DELETE\s+FROM", re.IGNORECASE),
    re.compile(r"System:\s+Override", re.IGNORECASE),
]

# Applied in order; the final tag strip catches anything the targeted rules miss.
SANITIZE_RULES = [
    (re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE), ""),
    (re.compile(r"javascript:", re.IGNORECASE), ""),
    (re.compile(r"data:text/html", re.IGNORECASE), ""),
    (re.compile(r"on\w+\s*=", re.IGNORECASE), ""),
    (re.compile(r"['\";].*DROP\s+TABLE.*[';]", re.IGNORECASE), ""),
    (re.compile(r"['\";].*DELETE\s+FROM.*[';]", re.IGNORECASE), ""),
    (re.compile(r"['\"]--"), ""),
    (re.compile(r"<[^>]*>"), ""),
    (re.compile(r"alert\s*\(", re.IGNORECASE), ""),
]

IPV4_PATTERN = r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class TransactionPayload(_Payload):
    """Fraud analysis input."""

    amount: float = Field(..., ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    timestamp: datetime | None = None


class CreditPayload(_Payload):
    """Credit scoring input."""

    income: float | None = Field(default=None, ge=0)
    expenses: float | None = Field(default=None, ge=0)
    existing_debts: float | None = Field(default=None, ge=0, alias="existingDebts")
    credit_score: int | None = Field(default=None, ge=300, le=850, alias="creditScore")
    credit_history: list | None = Field(default=None, alias="creditHistory")


class SecurityPayload(_Payload):
    """Security assessment input."""

    device_id: str | None = Field(default=None, min_length=1, max_length=100, alias="deviceId")
    ip_address: str | None = Field(default=None, pattern=IPV4_PATTERN, alias="ipAddress")
    user_agent: str | None = Field(default=None, max_length=500, alias="userAgent")
    login_patterns: list | None = Field(default=None, alias="loginPatterns")
    risk_indicators: list | None = Field(default=None, alias="riskIndicators")


PAYLOAD_MODELS: dict[AnalysisDomain, type[_Payload]] = {
    AnalysisDomain.FRAUD: TransactionPayload,
    AnalysisDomain.CREDIT: CreditPayload,
    AnalysisDomain.SECURITY: SecurityPayload,
}

PAYLOAD_LABELS = {
    AnalysisDomain.FRAUD: "Transaction data validation",
    AnalysisDomain.CREDIT: "Credit data validation",
    AnalysisDomain.SECURITY: "Security data validation",
}


def validate_prompt(prompt: Any) -> None:
    """Reject empty, oversized or injection-bearing prompts."""
    if prompt is None or (isinstance(prompt, str) and not prompt.strip()):
        raise ValidationError("Prompt cannot be empty")
    if not isinstance(prompt, str):
        raise ValidationError("Prompt must be a string")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError(f"Prompt exceeds maximum length of {MAX_PROMPT_LENGTH} characters")
    for pattern in HARMFUL_PROMPT_PATTERNS:
        if pattern.search(prompt):
            raise ValidationError("Prompt contains potentially harmful content")


def validate_generation_params(temperature: float | None = None, max_tokens: int | None = None) -> None:
    if temperature is not None and not 0 <= temperature <= 2:
        raise ValidationError("Temperature must be between 0 and 2")
    if max_tokens is not None and not 1 <= max_tokens <= 4096:
        raise ValidationError("Max tokens must be between 1 and 4096")


def sanitize_input(value: Any) -> Any:
    """Strip markup, script and SQL fragments from every string; returns a copy."""
    if isinstance(value, str):
        for pattern, replacement in SANITIZE_RULES:
            value = pattern.sub(replacement, value)
        return value.strip()
    if isinstance(value, (list, tuple)):
        return [sanitize_input(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize_input(item) for key, item in value.items()}
    return value


def validate_payload(domain: AnalysisDomain, data: Any) -> None:
    """
    Validate a payload against its domain model.

    General payloads are not constrained.

    Raises:
        ValidationError: ``field_errors`` maps dotted field paths to messages
    """
    model = PAYLOAD_MODELS.get(domain)
    if model is None:
        return
    label = PAYLOAD_LABELS[domain]
    if not isinstance(data, dict):
        raise ValidationError(f"{label}: payload must be an object")
    try:
        model.model_validate(data)
    except pydantic.ValidationError as e:
        field_errors = {".".join(str(part) for part in err["loc"]): err["msg"] for err in e.errors()}
        details = ", ".join(f"{name}: {msg}" for name, msg in field_errors.items())
        raise ValidationError(f"{label}: {details}", field_errors=field_errors) from e


def validate_transaction_data(data: Any) -> None:
    validate_payload(AnalysisDomain.FRAUD, data)


def validate_credit_data(data: Any) -> None:
    validate_payload(AnalysisDomain.CREDIT, data)


def validate_security_data(data: Any) -> None:
    validate_payload(AnalysisDomain.SECURITY, data)


def validate_response(response: RawModelResponse) -> None:
    """Check a processed model response before it leaves the client."""
    if not response.text or not response.text.strip():
        raise ValidationError("Response must have non-empty content")
    if not 0 <= response.confidence_hint <= 100:
        raise ValidationError("Confidence must be a number between 0 and 100")
    usage = response.usage
    if usage is not None:
        for name in ("prompt_tokens", "completion_tokens", "total_tokens"):
            if getattr(usage, name) < 0:
                raise ValidationError(f"{name} must be a non-negative number")
