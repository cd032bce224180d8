"""Adapter around the OpenAI SDK used for every generation stage.

Each stage sends a pair of strings (instructions and input) and gets back
the model's raw text. Models in the GPT-5 / o3 / o4 / 4.1 families go
through the Responses API, which accepts that pair natively; older chat
models get a system + user message pair through Chat Completions.

No retries happen here; callers decide what to do with a
:class:`ModelCallError`.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from flask import current_app

try:
    import openai  # type: ignore
except ImportError:  # pragma: no cover - optional at import time
    openai = None  # type: ignore

LOGGER = logging.getLogger(__name__)

_RESPONSES_PREFIXES = ("gpt-5", "o3", "o4", "gpt-4.1")
_CLIENT_CACHE_KEY = "_MODEL_CLIENT_INSTANCE"


class ModelCallError(RuntimeError):
    """Raised when the external model fails or returns no text."""


class ModelClient:
    def __init__(
        self,
        model_name: str,
        api_key: str,
        *,
        temperature: Optional[float] = 0.8,
        max_output_tokens: Optional[int] = None,
    ) -> None:
        if openai is None:
            raise ModelCallError("Install the 'openai' package to call the model.")
        self.model_name = (model_name or "").strip()
        if not self.model_name:
            raise ModelCallError("No model name configured.")
        self.api_key = (api_key or "").strip()
        if not self.api_key:
            raise ModelCallError("OPENAI_API_KEY is not configured.")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = openai.OpenAI(api_key=self.api_key)

    def uses_responses_api(self) -> bool:
        return self.model_name.lower().startswith(_RESPONSES_PREFIXES)

    def complete(self, instructions: str, input_text: str) -> str:
        """Send one request and return the model's text."""

        LOGGER.info("Calling model %s", self.model_name)
        try:
            if self.uses_responses_api():
                text = self._call_responses(instructions, input_text)
            else:
                text = self._call_chat(instructions, input_text)
        except ModelCallError:
            raise
        except Exception as exc:
            LOGGER.error("Model call to %s failed: %s", self.model_name, exc)
            raise ModelCallError(f"Model call failed: {exc}") from exc

        text = (text or "").strip()
        LOGGER.info("Model returned %d characters", len(text))
        if not text:
            raise ModelCallError("Empty model output")
        return text

    def _call_responses(self, instructions: str, input_text: str) -> str:
        payload = {
            "model": self.model_name,
            "instructions": instructions,
            "input": input_text,
            "max_output_tokens": self.max_output_tokens,
        }
        payload = {key: value for key, value in payload.items() if value is not None}
        resp = self._client.responses.create(**payload)
        return getattr(resp, "output_text", None) or ""

    def _call_chat(self, instructions: str, input_text: str) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": input_text},
            ],
        }
        if self.temperature is not None:
            kwargs["temperature"] = float(self.temperature)
        if self.max_output_tokens:
            kwargs["max_tokens"] = int(self.max_output_tokens)

        resp = self._client.chat.completions.create(**kwargs)
        return _extract_text_from_chat(resp)


def _extract_text_from_chat(resp: Any) -> str:
    choices = getattr(resp, "choices", []) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, list):
        parts: List[str] = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text") or ""))
        return "\n".join(part for part in parts if part)
    return str(content or "")


def _get_model_client() -> ModelClient:  # pragma: no cover - integration point
    app = current_app
    cached = app.config.get(_CLIENT_CACHE_KEY)
    if cached is not None:
        return cached

    client = ModelClient(
        app.config.get("OPENAI_MODEL", ""),
        app.config.get("OPENAI_API_KEY", ""),
        temperature=app.config.get("MODEL_TEMPERATURE"),
        max_output_tokens=app.config.get("MODEL_MAX_OUTPUT_TOKENS"),
    )
    app.logger.info("Initialised model client for %s", client.model_name)
    app.config[_CLIENT_CACHE_KEY] = client
    return client


__all__ = ["ModelCallError", "ModelClient"]
