"""Provider-agnostic LLM client for the AI-assisted flows.

Supported providers (selected via settings.llm_provider):
  - "anthropic"  - Anthropic Claude (default)
  - "openai"     - OpenAI ChatGPT (gpt-4o-mini by default)
  - "ollama"     - Local Ollama
  - "mock"       - no model; every flow uses its simulated fallback

If no valid key/endpoint is found the client resolves to ``MockAdapter``,
which is marked unavailable so each flow goes straight to its simulated
fallback instead of failing.

Usage
-----
    client = get_llm_client()
    raw_text = await client.invoke("Your prompt here", flow="distance")
    data = extract_json_object(raw_text)
"""

from __future__ import annotations

import json
import logging
import re
import time
import uuid

import httpx

from fruitflow.config import settings

logger = logging.getLogger(__name__)

_LLM_LOG_MAX_CHARS = 4000


# ── LLM adapter base ──────────────────────────────────────────────────


class BaseLLMAdapter:
    provider: str = "base"
    model: str = "unknown"
    available: bool = True

    async def _raw_invoke(self, prompt: str) -> str:
        raise NotImplementedError

    async def invoke(self, prompt: str, flow: str | None = None) -> str:
        call_id = uuid.uuid4().hex[:8]
        start = time.perf_counter()
        logger.info(
            "LLM request id=%s flow=%s provider=%s model=%s prompt_len=%d",
            call_id,
            flow,
            self.provider,
            self.model,
            len(prompt),
        )
        try:
            response = await self._raw_invoke(prompt)
        except Exception as exc:
            elapsed = int((time.perf_counter() - start) * 1000)
            logger.exception(
                "LLM error id=%s flow=%s provider=%s model=%s elapsed_ms=%d",
                call_id,
                flow,
                self.provider,
                self.model,
                elapsed,
            )
            _persist_llm_log(
                call_id, flow, self.provider, self.model, prompt, None, "error", elapsed, str(exc)
            )
            raise
        elapsed = int((time.perf_counter() - start) * 1000)
        logger.info(
            "LLM response id=%s flow=%s provider=%s elapsed_ms=%d response_len=%d",
            call_id,
            flow,
            self.provider,
            elapsed,
            len(response),
        )
        _persist_llm_log(
            call_id, flow, self.provider, self.model, prompt, response, "success", elapsed, None
        )
        return response


# Every flow parses a single JSON object out of the reply.
SYSTEM_INSTRUCTION = (
    "You are the analysis engine of a fruit trading marketplace. "
    "Reply with one JSON object and nothing else."
)


# ── Hosted providers ──────────────────────────────────────────────────


class AnthropicAdapter(BaseLLMAdapter):
    provider = "anthropic"

    def __init__(self):
        from anthropic import AsyncAnthropic

        self.model = settings.anthropic_model
        self._client = AsyncAnthropic(
            api_key=settings.anthropic_api_key, timeout=settings.llm_timeout_seconds
        )

    async def _raw_invoke(self, prompt: str) -> str:
        msg = await self._client.messages.create(
            model=self.model,
            system=SYSTEM_INSTRUCTION,
            max_tokens=settings.llm_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in msg.content if block.type == "text")


class OpenAIAdapter(BaseLLMAdapter):
    """Also serves OpenAI-compatible gateways through ``openai_base_url``."""

    provider = "openai"

    def __init__(self):
        from openai import AsyncOpenAI

        self.model = settings.openai_model
        self._client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
            timeout=settings.llm_timeout_seconds,
        )

    async def _raw_invoke(self, prompt: str) -> str:
        completion = await self._client.chat.completions.create(
            model=self.model,
            max_tokens=settings.llm_max_tokens,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""


# ── Local Ollama ──────────────────────────────────────────────────────


class OllamaAdapter(BaseLLMAdapter):
    provider = "ollama"

    def __init__(self):
        self.model = settings.ollama_model
        self._endpoint = settings.ollama_base_url.rstrip("/") + "/api/generate"

    async def _raw_invoke(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "system": SYSTEM_INSTRUCTION,
            "prompt": prompt,
            "format": "json",
            "stream": False,
            "options": {"num_predict": settings.llm_max_tokens},
        }
        async with httpx.AsyncClient(timeout=settings.llm_timeout_seconds) as client:
            r = await client.post(self._endpoint, json=payload)
        r.raise_for_status()
        return r.json().get("response") or ""


class MockAdapter(BaseLLMAdapter):
    """Stands in when no provider is configured; flows fall back to simulation."""

    provider = "mock"
    model = "mock"
    available = False

    async def _raw_invoke(self, prompt: str) -> str:
        raise RuntimeError("No LLM provider configured")


# ── Factory ───────────────────────────────────────────────────────────

_cached_client: BaseLLMAdapter | None = None


def _resolve_adapter() -> BaseLLMAdapter:
    provider = (settings.llm_provider or "").lower()
    if provider == "mock":
        return MockAdapter()
    if provider == "ollama":
        return OllamaAdapter()
    if provider == "openai" and settings.openai_api_key:
        return OpenAIAdapter()
    # Anthropic first, then any OpenAI key as a fallback.
    if settings.anthropic_api_key:
        return AnthropicAdapter()
    if settings.openai_api_key:
        return OpenAIAdapter()
    logger.warning("No LLM credentials found - AI flows will use simulated fallbacks.")
    return MockAdapter()


def get_llm_client() -> BaseLLMAdapter:
    global _cached_client
    if _cached_client is None:
        _cached_client = _resolve_adapter()
        logger.info(
            "LLM client: provider=%s model=%s requested=%s",
            _cached_client.provider,
            _cached_client.model,
            settings.llm_provider,
        )
    return _cached_client


def reset_llm_client() -> None:
    """Force re-initialisation on next call (useful after config change in tests)."""
    global _cached_client
    _cached_client = None


# ── Response parsing ──────────────────────────────────────────────────


def extract_json_object(text: str) -> dict | None:
    """Return the first JSON object embedded in an LLM response, if any."""
    if not text:
        return None
    cleaned = re.sub(r"```(?:json)?", "", text)
    m = re.search(r"\{[\s\S]*\}", cleaned)
    if m:
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError:
            return None
        if isinstance(data, dict):
            return data
    return None


# ── LLM log persistence (best effort) ─────────────────────────────────


def _persist_llm_log(
    call_id: str,
    flow: str | None,
    provider: str,
    model: str,
    prompt: str,
    response: str | None,
    status: str,
    elapsed_ms: int,
    error_message: str | None,
) -> None:
    from sqlalchemy.exc import SQLAlchemyError

    from fruitflow.database import SessionLocal
    from fruitflow.models.llm_log import LlmLog

    db = SessionLocal()
    try:
        row = LlmLog(
            call_id=call_id,
            flow=flow,
            provider=provider,
            model=model,
            prompt=prompt[:_LLM_LOG_MAX_CHARS],
            response=response[:_LLM_LOG_MAX_CHARS] if response else None,
            status=status,
            elapsed_ms=elapsed_ms,
            error_message=error_message,
        )
        db.add(row)
        db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to persist LLM log")
        db.rollback()
    finally:
        db.close()
