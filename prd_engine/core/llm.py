"""Anthropic completion client with overload-aware retry."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from anthropic import AsyncAnthropic

from prd_engine.core.config import get_settings
from prd_engine.core.logging import get_logger
from prd_engine.core.retry import with_retry

logger = get_logger(__name__)

OVERLOADED_ERROR_TYPE = "overloaded_error"
_OVERLOADED_STATUS = 529


@dataclass
class CompletionResult:
    """Text returned by the provider plus what it reported about the call."""

    text: str
    finish_reason: str | None = None
    model: str | None = None
    usage: dict[str, int] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0

    def to_blob(self) -> dict[str, Any]:
        """Fields persisted alongside the generated text."""
        return {
            "model": self.model,
            "finish_reason": self.finish_reason,
            "usage": dict(self.usage),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class StageConfig:
    """Model parameters for one generation stage."""

    model: str
    max_tokens: int
    temperature: float
    cache_prompt: bool = False


def stage_config(stage: str) -> StageConfig:
    """Resolve model parameters for a stage from settings."""
    settings = get_settings()
    if stage == "intro":
        return StageConfig(
            model=settings.INTRO_MODEL,
            max_tokens=settings.INTRO_MAX_TOKENS,
            temperature=settings.INTRO_TEMPERATURE,
            cache_prompt=True,
        )
    if stage == "section":
        return StageConfig(
            model=settings.SECTION_MODEL,
            max_tokens=settings.SECTION_MAX_TOKENS,
            temperature=settings.SECTION_TEMPERATURE,
        )
    if stage == "implementation":
        return StageConfig(
            model=settings.IMPLEMENTATION_MODEL,
            max_tokens=settings.IMPLEMENTATION_MAX_TOKENS,
            temperature=settings.IMPLEMENTATION_TEMPERATURE,
            cache_prompt=True,
        )
    raise ValueError(f"Unknown generation stage: {stage}")


@lru_cache(maxsize=1)
def get_anthropic_client() -> AsyncAnthropic:
    """
    Get AsyncAnthropic client instance (cached singleton).

    SDK-level retries are disabled; ``complete_with_retry`` owns the policy.
    """
    settings = get_settings()
    return AsyncAnthropic(
        api_key=settings.ANTHROPIC_API_KEY,
        timeout=settings.ANTHROPIC_TIMEOUT_SECONDS,
        max_retries=0,
    )


def provider_error_type(exc: BaseException) -> str | None:
    """
    Read the provider classification string carried by an error.

    Checks an explicit ``type`` attribute first, then the decoded error body
    (``{"type": "error", "error": {"type": "overloaded_error", ...}}``), then
    the 529 status Anthropic uses for overload.
    """
    explicit = getattr(exc, "type", None)
    if isinstance(explicit, str) and explicit and explicit != "error":
        return explicit

    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("type"), str):
            return error["type"]
        body_type = body.get("type")
        if isinstance(body_type, str) and body_type != "error":
            return body_type

    if getattr(exc, "status_code", None) == _OVERLOADED_STATUS:
        return OVERLOADED_ERROR_TYPE
    return None


def is_overloaded_error(exc: BaseException) -> bool:
    """True when the provider reported a transient overload."""
    return provider_error_type(exc) == OVERLOADED_ERROR_TYPE


async def complete(
    prompt: str,
    *,
    model: str,
    max_tokens: int,
    temperature: float,
    cache_prompt: bool = False,
) -> CompletionResult:
    """
    Send a single user message and return the generated text.

    Args:
        prompt: Filled prompt text
        model: Anthropic model id
        max_tokens: Output token ceiling
        temperature: Sampling temperature
        cache_prompt: Mark the prompt block for ephemeral prompt caching

    Returns:
        CompletionResult with text, stop reason, usage and cache metadata

    Raises:
        anthropic.APIError: On any provider failure (not retried here)
    """
    client = get_anthropic_client()

    block: dict[str, Any] = {"type": "text", "text": prompt}
    if cache_prompt:
        block["cache_control"] = {"type": "ephemeral"}

    t0 = time.monotonic()
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[{"role": "user", "content": [block]}],
    )
    elapsed_ms = int((time.monotonic() - t0) * 1000)

    text = "".join(
        getattr(b, "text", "") for b in response.content if getattr(b, "type", None) == "text"
    )

    usage = response.usage
    return CompletionResult(
        text=text,
        finish_reason=response.stop_reason,
        model=getattr(response, "model", None) or model,
        usage={
            "input_tokens": getattr(usage, "input_tokens", 0) or 0,
            "output_tokens": getattr(usage, "output_tokens", 0) or 0,
        },
        metadata={
            "cache_creation_input_tokens": getattr(usage, "cache_creation_input_tokens", 0) or 0,
            "cache_read_input_tokens": getattr(usage, "cache_read_input_tokens", 0) or 0,
        },
        duration_ms=elapsed_ms,
    )


async def complete_with_retry(
    prompt: str,
    stage: str,
    document_id: str | None = None,
) -> CompletionResult:
    """
    Run ``complete`` for a stage under the configured retry policy.

    Only overload errors are retried; anything else fails on the first
    attempt. Successful calls are recorded in the usage log.
    """
    settings = get_settings()
    config = stage_config(stage)

    result = await with_retry(
        lambda: complete(
            prompt,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            cache_prompt=config.cache_prompt,
        ),
        is_retryable=is_overloaded_error,
        max_attempts=settings.LLM_MAX_ATTEMPTS,
        base_delay=settings.LLM_RETRY_BASE_DELAY,
        jitter=settings.LLM_RETRY_JITTER,
    )

    logger.info(
        f"Completion for {stage} finished in {result.duration_ms}ms "
        f"(finish_reason={result.finish_reason}, in={result.usage.get('input_tokens', 0)}, "
        f"out={result.usage.get('output_tokens', 0)}, "
        f"cache_read={result.metadata.get('cache_read_input_tokens', 0)})",
        extra={"stage": stage, "document_id": document_id},
    )

    from prd_engine.core.llm_usage import log_llm_usage

    log_llm_usage(
        workflow="prd_generation",
        chain=stage,
        model=result.model or config.model,
        provider="anthropic",
        tokens_input=result.usage.get("input_tokens", 0),
        tokens_output=result.usage.get("output_tokens", 0),
        tokens_cache_read=result.metadata.get("cache_read_input_tokens", 0),
        tokens_cache_create=result.metadata.get("cache_creation_input_tokens", 0),
        duration_ms=result.duration_ms,
        document_id=document_id,
    )

    return result
