"""Chat-completion calls against an OpenAI-compatible endpoint (OpenRouter)."""

from __future__ import annotations

import os
from typing import Optional, Protocol, Sequence

import httpx
from dotenv import load_dotenv
from openai import APIError, AsyncOpenAI
from pydantic import BaseModel

from colosseum.domain.models import ChatMessage

load_dotenv()  # nosec: loads .env into process env if present

OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
FALLBACK_MODEL = os.getenv("FALLBACK_MODEL", "anthropic/claude-opus-4.6")
DEFAULT_TIMEOUT_SECONDS = 60.0
APP_TITLE = "Agent Colosseum"
APP_REFERER = "http://localhost:3000"


class CompletionResult(BaseModel):
    content: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CompletionCapability(Protocol):
    async def complete(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult: ...


def get_api_key() -> Optional[str]:
    return os.getenv("OPENROUTER_API_KEY") or None


def _timeout_seconds() -> float:
    override = os.getenv("COMPLETION_TIMEOUT_SECONDS")
    return float(override) if override else DEFAULT_TIMEOUT_SECONDS


class OpenRouterCompletion:
    """Completion capability backed by ``AsyncOpenAI`` with a tuned httpx client.

    Transport failures and non-2xx responses come back as a
    :class:`CompletionResult` carrying ``error``; this method never raises
    for provider problems.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or get_api_key()
        self.base_url = base_url or OPENROUTER_BASE_URL
        self._client = client
        self._owns_client = False

    async def __aenter__(self) -> "OpenRouterCompletion":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the client this instance created; an injected client is left open."""
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None
            self._owns_client = False

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise RuntimeError("Missing OPENROUTER_API_KEY environment variable")

        timeout_val = _timeout_seconds()
        # SDK-level retries stay off: the only retry is the fallback model.
        max_retries = int(os.getenv("COMPLETION_MAX_RETRIES", "0"))
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_val, connect=30.0, read=timeout_val, write=timeout_val)
        )
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            http_client=http_client,
            timeout=timeout_val,
            max_retries=max_retries,
            default_headers={"HTTP-Referer": APP_REFERER, "X-Title": APP_TITLE},
        )
        self._owns_client = True
        return self._client

    async def complete(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        print(f"[completion] Calling model={model}")
        try:
            response = await self._get_client().chat.completions.create(
                model=model,
                messages=[message.model_dump() for message in messages],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except (APIError, httpx.HTTPError) as exc:
            print(f"[completion] model={model} failed: {exc}")
            return CompletionResult(content=None, model=model, error=str(exc))

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        return CompletionResult(content=content, model=model)


async def complete_with_fallback(
    capability: CompletionCapability,
    model: str,
    messages: Sequence[ChatMessage],
    *,
    max_tokens: int,
    temperature: float,
    fallback_model: str = FALLBACK_MODEL,
) -> CompletionResult:
    """Call ``model``; on failure call ``fallback_model`` once; then give up.

    A successful call that returns no text is not retried.
    """
    first = await capability.complete(model, messages, max_tokens, temperature)
    if first.ok or model == fallback_model:
        return first

    print(f"[completion] {model} failed, falling back to {fallback_model}")
    second = await capability.complete(fallback_model, messages, max_tokens, temperature)
    if second.ok:
        return second
    return CompletionResult(content=None, model=fallback_model, error="Both models failed")


__all__ = [
    "CompletionCapability",
    "CompletionResult",
    "FALLBACK_MODEL",
    "OpenRouterCompletion",
    "complete_with_fallback",
    "get_api_key",
]
