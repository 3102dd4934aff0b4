"""One-shot calls to the completion provider with an enforced output schema.

Clients never raise for upstream trouble and never retry; every outcome,
good or bad, comes back as a ``CompletionOutcome`` so the retry policy can
live one level up.
"""
from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Protocol

import anthropic
import httpx
import structlog

from ..config import Settings
from .schema import RESPONSE_SCHEMA

log = structlog.get_logger()

FAILURE_HTTP_STATUS = "http_status"
FAILURE_TRANSPORT = "transport"
FAILURE_EMPTY = "empty"
FAILURE_MALFORMED_JSON = "malformed_json"

STRICT_JSON_DIRECTIVE = (
    "IMPORTANT: Your response MUST be valid JSON conforming to the schema. "
    "No text before or after the JSON."
)


@dataclass
class CompletionOutcome:
    payload: Any = None
    failure: str | None = None
    latency_ms: int = 0
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class CompletionClient(Protocol):
    provider: str

    async def complete(
        self, system_prompt: str, context: str, question: str, strict: bool = False
    ) -> CompletionOutcome: ...


def build_user_message(context: str, question: str, strict: bool = False) -> str:
    """Context block, then the verbatim question, then the strict-JSON directive on retries."""
    parts = []
    if context:
        parts.append(context)
    parts.append(f"## USER QUESTION\n{question}")
    if strict:
        parts.append(STRICT_JSON_DIRECTIVE)
    return "\n\n".join(parts)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _decode_json(content: str, latency_ms: int) -> CompletionOutcome:
    try:
        return CompletionOutcome(payload=json.loads(content), latency_ms=latency_ms)
    except json.JSONDecodeError as e:
        return CompletionOutcome(failure=FAILURE_MALFORMED_JSON, latency_ms=latency_ms, detail=str(e))


def _log_outcome(provider: str, strict: bool, outcome: CompletionOutcome) -> CompletionOutcome:
    if outcome.ok:
        log.info("copilot_completion_ok", provider=provider, strict=strict, latency_ms=outcome.latency_ms)
    else:
        log.warning(
            "copilot_completion_failed",
            provider=provider,
            strict=strict,
            category=outcome.failure,
            latency_ms=outcome.latency_ms,
            detail=outcome.detail,
        )
    return outcome


class AnthropicCompletionClient:
    """Claude Messages API; the schema is enforced as a single forced tool call."""

    provider = "anthropic"
    tool_name = RESPONSE_SCHEMA["name"]

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1500,
        temperature: float = 0.2,
        timeout: float = 30.0,
        client=None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        # SDK retries off; run_with_retry owns the attempt count.
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(self, system_prompt: str, context: str, question: str, strict: bool = False) -> CompletionOutcome:
        start = time.monotonic()
        try:
            message = await asyncio.wait_for(
                self._client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": build_user_message(context, question, strict)}],
                    tools=[{
                        "name": self.tool_name,
                        "description": "Return the structured advisory answer.",
                        "input_schema": RESPONSE_SCHEMA["schema"],
                    }],
                    tool_choice={"type": "tool", "name": self.tool_name},
                ),
                timeout=self.timeout,
            )
        except anthropic.APIStatusError as e:
            outcome = CompletionOutcome(
                failure=FAILURE_HTTP_STATUS, latency_ms=_elapsed_ms(start), detail=f"{e.status_code}: {e}"
            )
            return _log_outcome(self.provider, strict, outcome)
        except anthropic.APIConnectionError as e:
            outcome = CompletionOutcome(failure=FAILURE_TRANSPORT, latency_ms=_elapsed_ms(start), detail=str(e))
            return _log_outcome(self.provider, strict, outcome)
        except asyncio.TimeoutError:
            outcome = CompletionOutcome(
                failure=FAILURE_TRANSPORT, latency_ms=_elapsed_ms(start), detail=f"no response within {self.timeout}s"
            )
            return _log_outcome(self.provider, strict, outcome)
        except anthropic.APIError as e:
            # Response arrived but the SDK could not decode it.
            outcome = CompletionOutcome(
                failure=FAILURE_MALFORMED_JSON, latency_ms=_elapsed_ms(start), detail=f"{type(e).__name__}: {e}"
            )
            return _log_outcome(self.provider, strict, outcome)
        return _log_outcome(self.provider, strict, self._extract(message, _elapsed_ms(start)))

    def _extract(self, message, latency_ms: int) -> CompletionOutcome:
        blocks = getattr(message, "content", None) or []
        for block in blocks:
            if getattr(block, "type", None) == "tool_use":
                payload = block.input
                if isinstance(payload, str):
                    return _decode_json(payload, latency_ms)
                if payload in (None, {}):
                    return CompletionOutcome(failure=FAILURE_EMPTY, latency_ms=latency_ms)
                return CompletionOutcome(payload=payload, latency_ms=latency_ms)
        # No tool call: fall back to whatever text came back.
        text = "".join(getattr(b, "text", "") for b in blocks if getattr(b, "type", None) == "text").strip()
        if not text:
            return CompletionOutcome(failure=FAILURE_EMPTY, latency_ms=latency_ms)
        return _decode_json(text, latency_ms)


class OpenAICompletionClient:
    """Chat Completions endpoint with ``response_format=json_schema``."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        max_tokens: int = 1500,
        temperature: float = 0.2,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    def _body(self, system_prompt: str, context: str, question: str, strict: bool) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": build_user_message(context, question, strict)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_schema", "json_schema": RESPONSE_SCHEMA},
        }

    async def _post(self, body: dict, headers: dict) -> httpx.Response:
        # Body is read inside the client so the deadline covers the whole response.
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(self.url, json=body, headers=headers)

    async def complete(self, system_prompt: str, context: str, question: str, strict: bool = False) -> CompletionOutcome:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        body = self._body(system_prompt, context, question, strict)
        start = time.monotonic()
        try:
            r = await asyncio.wait_for(self._post(body, headers), timeout=self.timeout)
        except httpx.HTTPError as e:
            outcome = CompletionOutcome(
                failure=FAILURE_TRANSPORT, latency_ms=_elapsed_ms(start), detail=f"{type(e).__name__}: {e}"
            )
            return _log_outcome(self.provider, strict, outcome)
        except asyncio.TimeoutError:
            outcome = CompletionOutcome(
                failure=FAILURE_TRANSPORT, latency_ms=_elapsed_ms(start), detail=f"no response within {self.timeout}s"
            )
            return _log_outcome(self.provider, strict, outcome)
        latency_ms = _elapsed_ms(start)
        if r.status_code != 200:
            outcome = CompletionOutcome(
                failure=FAILURE_HTTP_STATUS, latency_ms=latency_ms, detail=f"{r.status_code}: {r.text[:500]}"
            )
            return _log_outcome(self.provider, strict, outcome)
        return _log_outcome(self.provider, strict, self._extract(r, latency_ms))

    def _extract(self, r: httpx.Response, latency_ms: int) -> CompletionOutcome:
        if not r.content:
            return CompletionOutcome(failure=FAILURE_EMPTY, latency_ms=latency_ms)
        try:
            data = r.json()
        except ValueError as e:
            return CompletionOutcome(failure=FAILURE_MALFORMED_JSON, latency_ms=latency_ms, detail=str(e))
        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            return CompletionOutcome(failure=FAILURE_EMPTY, latency_ms=latency_ms)
        return _decode_json(content, latency_ms)


def build_completion_client(settings: Settings) -> CompletionClient | None:
    """Client for the configured provider, or None when its credential is missing."""
    api_key = settings.api_key()
    if not api_key:
        return None
    if settings.provider == "openai":
        return OpenAICompletionClient(
            api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.timeout_seconds,
        )
    return AnthropicCompletionClient(
        api_key,
        model=settings.anthropic_model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout=settings.timeout_seconds,
    )
