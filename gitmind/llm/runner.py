"""Adapter around an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from ..errors import AIError, NetworkError
from ..http import HttpRequest, Transport, json_body, urllib_transport

_AUTO_API_KEY = object()


@dataclass
class LLMRequest:
    """Represents a single model call."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]
    schema: Optional[Dict[str, Any]] = None
    schema_name: Optional[str] = None


class LLMRunner:
    """Executes prompts against the configured generative model."""

    DEFAULT_MODEL = "gemini-2.5-pro"
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"
    ENV_MODEL_KEYS = ("GITMIND_LLM_MODEL", "GEMINI_MODEL")
    ENV_BASE_URL_KEYS = ("GITMIND_LLM_BASE_URL",)
    ENV_API_KEY_KEYS = ("GITMIND_LLM_API_KEY", "GEMINI_API_KEY", "API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[LLMRequest], str] | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.model = self._resolve_model(model)
        self.base_url = self._resolve_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self._transport = transport or urllib_transport
        self._runner = runner or self._http_runner

    def run(
        self,
        prompt: str,
        *,
        system: str | None = None,
        schema: Dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        """Send the prompt to the model and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
            schema=schema,
            schema_name=schema_name,
        )
        return self._runner(request)

    def _http_runner(self, request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": request.schema_name or "response",
                    "strict": True,
                    "schema": request.schema,
                },
            }

        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        try:
            response = self._transport(
                HttpRequest(
                    method="POST",
                    url=endpoint,
                    headers=headers,
                    body=json_body(payload),
                    timeout=request.request_timeout,
                )
            )
        except NetworkError as exc:
            raise AIError(f"Model request failed: {exc}") from exc

        if not response.ok:
            detail = response.text().strip()
            raise AIError(f"Model request failed with status {response.status}: {detail}")

        try:
            response_payload = response.json()
        except ValueError as exc:
            raise AIError("Model endpoint returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise AIError("Model endpoint returned an empty response")
        return content.strip()

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_model(self, model: str | None) -> str:
        if model:
            return model
        return self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL

    def _resolve_base_url(self, base_url: str | None) -> str:
        url = base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        return url.rstrip("/")

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


def parse_json_reply(text: str) -> Any:
    """Decode a model reply that should be a JSON document.

    Some models wrap JSON in a fenced block even when a schema is requested;
    the fence is removed before decoding.
    """
    body = text.strip()
    if body.startswith("```"):
        body = body.split("\n", 1)[1] if "\n" in body else ""
        if body.rstrip().endswith("```"):
            body = body.rstrip()[:-3]
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise AIError(f"Model returned malformed JSON: {exc}") from exc


__all__ = ["LLMRequest", "LLMRunner", "parse_json_reply"]
