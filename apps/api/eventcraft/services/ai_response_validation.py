"""Parsing and validation of JSON returned by the text-generation service."""

from __future__ import annotations

import json
import logging
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

# Keys a model sometimes wraps a checklist array in
ARRAY_WRAPPER_KEYS = ("checklist", "steps", "items")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```)."""
    content = text.strip()
    if content.startswith("```"):
        lines = content.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        content = "\n".join(lines).strip()
    return content


def _loads(content: str, pattern: re.Pattern, label: str):
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        match = pattern.search(content)
        if not match:
            logger.warning(f"Failed to parse JSON {label}: {exc}")
            return None
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError as inner_exc:
            logger.warning(f"Failed to parse JSON {label}: {inner_exc}")
            return None


def parse_json_object(text: str | None) -> dict | None:
    if not text:
        return None
    data = _loads(strip_code_fences(text), _OBJECT_PATTERN, "object")
    return data if isinstance(data, dict) else None


def parse_json_array(text: str | None) -> list | None:
    """Parse a JSON array, also accepting ``{"checklist": [...]}`` style wrappers."""
    if not text:
        return None
    content = strip_code_fences(text)
    data = _loads(content, _ARRAY_PATTERN, "array")
    if isinstance(data, list):
        return data

    wrapped = _loads(content, _OBJECT_PATTERN, "object")
    if isinstance(wrapped, dict):
        for key in ARRAY_WRAPPER_KEYS:
            if isinstance(wrapped.get(key), list):
                return wrapped[key]
    return None


def validate_model(model_cls: type[ModelT], data: dict | None) -> ModelT | None:
    if data is None:
        return None
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        logger.warning(f"{model_cls.__name__} validation failed: {exc}")
        return None


def validate_model_list(model_cls: type[ModelT], items: list | None) -> list[ModelT]:
    """Validate each dict entry, dropping entries that fail."""
    validated: list[ModelT] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        model = validate_model(model_cls, item)
        if model is not None:
            validated.append(model)
    return validated
