"""JSON schemas for the success envelopes of the edit actions."""

from __future__ import annotations

from typing import Any

import jsonschema

from .errors import MalformedResponse

_SUCCESS = {"enum": [1, True]}
_REVISION = {"type": "integer", "minimum": 0}

TERM_EDIT_RESPONSE_SCHEMA = {
    "type": "object",
    "required": ["success", "entity"],
    "properties": {
        "success": _SUCCESS,
        "entity": {
            "type": "object",
            "required": ["lastrevid"],
            "properties": {"lastrevid": _REVISION},
        },
    },
}

ENTITY_RESPONSE_SCHEMA = {
    "type": "object",
    "required": ["success", "entity"],
    "properties": {
        "success": _SUCCESS,
        "entity": {
            "type": "object",
            "required": ["type", "id", "lastrevid"],
            "properties": {"type": {"type": "string"}, "id": {"type": "string"}, "lastrevid": _REVISION},
        },
    },
}

_PAGEINFO = {
    "type": "object",
    "required": ["lastrevid"],
    "properties": {"lastrevid": _REVISION},
}

SET_CLAIM_RESPONSE_SCHEMA = {
    "type": "object",
    "required": ["success", "pageinfo", "claim"],
    "properties": {"success": _SUCCESS, "pageinfo": _PAGEINFO, "claim": {"type": "object", "required": ["mainsnak"]}},
}

REMOVE_CLAIMS_RESPONSE_SCHEMA = {
    "type": "object",
    "required": ["success", "pageinfo", "claims"],
    "properties": {
        "success": _SUCCESS,
        "pageinfo": _PAGEINFO,
        "claims": {"type": "array", "items": {"type": "string"}},
    },
}


def validate_response(payload: Any, schema: dict[str, Any], action: str) -> None:
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda e: len(list(e.absolute_path)))
    if errors:
        error = errors[0]
        details = {
            "action": action,
            "path": list(error.absolute_path),
            "message": error.message,
        }
        raise MalformedResponse(f"Unusable {action} response.", details)
