from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft202012Validator

from .contracts import ACTION_TYPES, INTENT_VALUES

# Wire shape returned by the language-understanding service.
INTENT_ANALYSIS_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["intent", "confidence", "reasoning", "needsClarification", "extracted_data", "actions"],
    "properties": {
        "intent": {"type": "string", "enum": INTENT_VALUES},
        "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
        "reasoning": {"type": "string"},
        "needsClarification": {"type": "boolean"},
        "clarificationQuestion": {"type": ["string", "null"]},
        "extracted_data": {"type": "object"},
        "actions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["type"],
                "properties": {
                    "type": {"type": "string", "enum": ACTION_TYPES},
                    "data": {"type": "object"},
                    "priority": {"type": "string", "enum": ["high", "medium", "low"]},
                },
            },
        },
        "suggestions": {"type": "array", "items": {"type": "string"}},
        "response_message": {"type": ["string", "null"]},
    },
}

_validator = Draft202012Validator(INTENT_ANALYSIS_JSON_SCHEMA)


def validate_intent_analysis_payload(payload: Dict[str, Any]) -> list[str]:
    errors = sorted(_validator.iter_errors(payload), key=lambda item: list(item.path))
    messages: list[str] = []
    for item in errors:
        path = ".".join(str(part) for part in item.path)
        location = path if path else "$"
        messages.append(f"{location}: {item.message}")
    return messages
