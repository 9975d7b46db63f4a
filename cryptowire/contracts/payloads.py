"""Payload contracts for data crossing process boundaries.

Defines JSON Schemas for:
- CryptoPanic feed items (upstream -> ingestion)
- HTTP request bodies served by `web_app.py`

Validators return human-readable error lists (empty means valid) so callers can
decide whether to drop, log, or reject with a 400.
"""

from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft202012Validator


FEED_ITEM_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["title", "url", "published_at", "source"],
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "url": {"type": "string", "minLength": 1},
        "published_at": {"type": "string", "minLength": 1},
        "source": {
            "type": "object",
            "required": ["title", "domain"],
            "properties": {
                "title": {"type": "string"},
                "domain": {"type": "string"},
            },
            "additionalProperties": True,
        },
    },
    "additionalProperties": True,
}

FETCH_CONTENT_REQUEST_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["url"],
    "properties": {"url": {"type": "string", "minLength": 1}},
    "additionalProperties": True,
}

ANALYZE_REQUEST_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["prompt"],
    "properties": {"prompt": {"type": "string", "minLength": 1}},
    "additionalProperties": True,
}

CHAT_REQUEST_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["messages"],
    "properties": {
        "messages": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["role", "content"],
                "properties": {
                    "role": {"type": "string", "enum": ["system", "user", "assistant"]},
                    "content": {"type": "string"},
                },
                "additionalProperties": True,
            },
        },
        "context": {"type": ["string", "null"]},
    },
    "additionalProperties": True,
}


_FEED_ITEM_VALIDATOR = Draft202012Validator(FEED_ITEM_SCHEMA)
_FETCH_CONTENT_VALIDATOR = Draft202012Validator(FETCH_CONTENT_REQUEST_SCHEMA)
_ANALYZE_VALIDATOR = Draft202012Validator(ANALYZE_REQUEST_SCHEMA)
_CHAT_VALIDATOR = Draft202012Validator(CHAT_REQUEST_SCHEMA)


def _collect(validator: Draft202012Validator, payload: Any) -> List[str]:
    errors = []
    for e in sorted(validator.iter_errors(payload), key=lambda x: [str(p) for p in x.path]):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


def validate_feed_item(payload: Any) -> List[str]:
    """Return validation errors for one item of the feed's `results` list."""
    return _collect(_FEED_ITEM_VALIDATOR, payload)


def validate_fetch_content_request(payload: Any) -> List[str]:
    return _collect(_FETCH_CONTENT_VALIDATOR, payload)


def validate_analyze_request(payload: Any) -> List[str]:
    return _collect(_ANALYZE_VALIDATOR, payload)


def validate_chat_request(payload: Any) -> List[str]:
    return _collect(_CHAT_VALIDATOR, payload)
