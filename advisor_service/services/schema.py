"""Structured advisory response contract.

``RESPONSE_SCHEMA`` is handed to the completion provider's structured-output
mechanism; ``validate_response`` re-checks whatever comes back independently,
since provider-side enforcement is not trusted on its own.
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

CONFIDENCE_LEVELS = ("low", "medium", "high")
KEY_NUMBER_FIELDS = ("label", "value", "unit", "evidence")
ACTION_FIELDS = ("action", "why", "tradeoff")
KEY_NUMBER_COUNT = 3
ACTION_COUNT = 2
DISCLAIMER_COUNT = 2


class KeyNumber(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str
    value: str
    unit: str
    evidence: str


class PossibleAction(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: str
    why: str
    tradeoff: str


class StructuredAdvisoryResponse(BaseModel):
    # Unknown fields from the provider are carried through untouched.
    model_config = ConfigDict(extra="allow")

    summary: str
    key_numbers: tuple[KeyNumber, KeyNumber, KeyNumber]
    interpretation: str
    possible_actions: tuple[PossibleAction, PossibleAction]
    missing_data: list[Any]
    confidence: Literal["low", "medium", "high"]
    disclaimers: tuple[str, str]


RESPONSE_SCHEMA = {
    "name": "copilot_response",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "summary": {
                "type": "string",
                "description": "Concise summary of the main answer, 2 sentences maximum",
            },
            "key_numbers": {
                "type": "array",
                "description": "Exactly 3 key figures taken from the portfolio data",
                "items": {
                    "type": "object",
                    "properties": {
                        "label": {
                            "type": "string",
                            "description": 'Metric name (e.g. "Top 1 concentration")',
                        },
                        "value": {
                            "type": "string",
                            "description": 'Formatted value (e.g. "18.5%", "€46,250")',
                        },
                        "unit": {
                            "type": "string",
                            "description": 'Unit or short context (e.g. "of portfolio", "of P&L")',
                        },
                        "evidence": {
                            "type": "string",
                            "description": "Source of, or explanation for, this figure",
                        },
                    },
                    "required": list(KEY_NUMBER_FIELDS),
                    "additionalProperties": False,
                },
                "minItems": KEY_NUMBER_COUNT,
                "maxItems": KEY_NUMBER_COUNT,
            },
            "interpretation": {
                "type": "string",
                "description": "What these figures mean for the investor, in 2-5 sentences",
            },
            "possible_actions": {
                "type": "array",
                "description": "Exactly 2 lines of thought (no buy/sell recommendations)",
                "items": {
                    "type": "object",
                    "properties": {
                        "action": {
                            "type": "string",
                            "description": "The suggested action or line of thought",
                        },
                        "why": {
                            "type": "string",
                            "description": "Why this is relevant",
                        },
                        "tradeoff": {
                            "type": "string",
                            "description": "Counterpart or point of attention",
                        },
                    },
                    "required": list(ACTION_FIELDS),
                    "additionalProperties": False,
                },
                "minItems": ACTION_COUNT,
                "maxItems": ACTION_COUNT,
            },
            "missing_data": {
                "type": "array",
                "description": "Information that is missing for a more complete analysis",
                "items": {"type": "string"},
            },
            "confidence": {
                "type": "string",
                "enum": list(CONFIDENCE_LEVELS),
                "description": "Confidence in the analysis given the available data",
            },
            "disclaimers": {
                "type": "array",
                "description": "Exactly 2 legal/prudential warnings",
                "items": {"type": "string"},
                "minItems": DISCLAIMER_COUNT,
                "maxItems": DISCLAIMER_COUNT,
            },
        },
        "required": [
            "summary",
            "key_numbers",
            "interpretation",
            "possible_actions",
            "missing_data",
            "confidence",
            "disclaimers",
        ],
        "additionalProperties": False,
    },
}


def _has_text_fields(item: Any, fields: tuple[str, ...]) -> bool:
    if not isinstance(item, dict):
        return False
    return all(isinstance(item.get(field), str) for field in fields)


def schema_violation(payload: Any) -> str | None:
    """Return the first contract check the payload fails, or None if it conforms."""
    if not isinstance(payload, dict):
        return "payload_not_object"
    if not isinstance(payload.get("summary"), str):
        return "summary"
    key_numbers = payload.get("key_numbers")
    if not isinstance(key_numbers, list) or len(key_numbers) != KEY_NUMBER_COUNT:
        return "key_numbers_cardinality"
    if not all(_has_text_fields(kn, KEY_NUMBER_FIELDS) for kn in key_numbers):
        return "key_numbers_fields"
    if not isinstance(payload.get("interpretation"), str):
        return "interpretation"
    actions = payload.get("possible_actions")
    if not isinstance(actions, list) or len(actions) != ACTION_COUNT:
        return "possible_actions_cardinality"
    if not all(_has_text_fields(pa, ACTION_FIELDS) for pa in actions):
        return "possible_actions_fields"
    if not isinstance(payload.get("missing_data"), list):
        return "missing_data"
    if payload.get("confidence") not in CONFIDENCE_LEVELS:
        return "confidence"
    disclaimers = payload.get("disclaimers")
    if not isinstance(disclaimers, list) or len(disclaimers) != DISCLAIMER_COUNT:
        return "disclaimers_cardinality"
    if not all(isinstance(d, str) for d in disclaimers):
        return "disclaimers_fields"
    return None


def validate_response(payload: Any) -> StructuredAdvisoryResponse | None:
    """Narrow an arbitrary parsed payload to the response contract, or None."""
    if schema_violation(payload) is not None:
        return None
    return StructuredAdvisoryResponse.model_validate(payload)
