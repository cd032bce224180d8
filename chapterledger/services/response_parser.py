"""Salvage a JSON object from free-form model output.

Models wrap JSON in Markdown fences, add commentary after it, or get cut off
near the end of a long answer. :func:`parse_model_json` strips fences, tries
a direct parse and then narrows the text to the outermost braces, trimming
from the end until something parses. Content is never rewritten, only cut.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 30
EXCERPT_LENGTH = 400

_JSON_FENCE_PATTERN = re.compile(r"```json", re.IGNORECASE)


class ModelResponseParseError(ValueError):
    """Raised when no JSON object can be recovered from model output."""


def strip_code_fences(text: str) -> str:
    """Remove every ```json and bare ``` marker from ``text``."""

    cleaned = _JSON_FENCE_PATTERN.sub("", text)
    return cleaned.replace("```", "").strip()


def parse_model_json(text: Any, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> Dict[str, Any]:
    """Return the JSON object contained in ``text``.

    Parameters
    ----------
    text:
        Raw model output.
    max_attempts:
        How many trimmed candidates to try once the direct parse has failed.
    """

    if not isinstance(text, str):
        raise ModelResponseParseError("Model output is not a string.")

    cleaned = strip_code_fences(text)

    try:
        return _require_object(json.loads(cleaned), cleaned)
    except json.JSONDecodeError as exc:
        LOGGER.warning("Direct JSON parse of model output failed: %s", exc.msg)

    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise ModelResponseParseError(
            "Model did not return JSON. First 400 chars: " + cleaned[:EXCERPT_LENGTH]
        )

    candidate = cleaned[first : last + 1]
    for attempt in range(max_attempts):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            candidate = _trim_candidate(candidate)
            if len(candidate) <= 2:
                break
            continue
        if attempt:
            LOGGER.info("Recovered JSON from model output after %d trims.", attempt)
        return _require_object(parsed, cleaned)

    raise ModelResponseParseError(
        "Unable to parse JSON from model output. First 400 chars: " + cleaned[:EXCERPT_LENGTH]
    )


def _trim_candidate(candidate: str) -> str:
    # Prefer cutting at a line boundary so a token is not split in half.
    newline = candidate.rfind("\n")
    if newline > 0:
        return candidate[:newline].strip()
    return candidate[:-1].strip()


def _require_object(parsed: Any, cleaned: str) -> Dict[str, Any]:
    if not isinstance(parsed, dict):
        raise ModelResponseParseError(
            "Model returned JSON that is not an object. First 400 chars: " + cleaned[:EXCERPT_LENGTH]
        )
    return parsed


__all__ = ["ModelResponseParseError", "parse_model_json", "strip_code_fences"]
