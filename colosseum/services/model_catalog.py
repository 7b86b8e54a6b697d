"""Cached listing of the models the completion provider offers."""

from __future__ import annotations

import os
import time
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel

from colosseum.services.completion import OPENROUTER_BASE_URL, get_api_key

DEFAULT_TTL_SECONDS = float(os.getenv("MODEL_CATALOG_TTL_SECONDS", "3600"))
NON_TEXT_MODALITIES = ("image", "audio")


class ModelPricing(BaseModel):
    input: float  # per million tokens
    output: float  # per million tokens


class ModelInfo(BaseModel):
    id: str
    name: str
    provider: str
    pricing: ModelPricing
    context_window: int = 0
    is_free: bool = False


class ModelListing(BaseModel):
    models: list[ModelInfo]
    cached: bool


def _per_million(value: Any) -> float:
    try:
        return float(value or 0) * 1_000_000
    except (TypeError, ValueError):
        return 0.0


def parse_model(raw: dict[str, Any]) -> ModelInfo:
    model_id = str(raw.get("id", ""))
    parts = model_id.split("/")
    provider = parts[0] if len(parts) > 1 else "unknown"
    pricing = raw.get("pricing") or {}
    input_pm = _per_million(pricing.get("prompt"))
    output_pm = _per_million(pricing.get("completion"))
    return ModelInfo(
        id=model_id,
        name=raw.get("name") or model_id,
        provider=provider,
        pricing=ModelPricing(input=round(input_pm, 2), output=round(output_pm, 2)),
        context_window=int(raw.get("context_length") or 0),
        is_free=input_pm == 0 and output_pm == 0,
    )


class ModelCatalog:
    """Populate-on-miss cache with a fixed validity window.

    Only successful, non-empty fetches are cached. ``invalidate()`` forces the
    next call to hit the provider again.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.base_url = (base_url or OPENROUTER_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else get_api_key()
        self._http_client = http_client
        self._clock = clock
        self._cache: Optional[tuple[list[ModelInfo], float]] = None

    def invalidate(self) -> None:
        self._cache = None

    async def get_models(self) -> ModelListing:
        now = self._clock()
        if self._cache is not None:
            models, fetched_at = self._cache
            if now - fetched_at < self.ttl_seconds:
                return ModelListing(models=models, cached=True)

        models = await self._fetch_models()
        if models:
            self._cache = (models, now)
        return ModelListing(models=models, cached=False)

    async def _fetch_models(self) -> list[ModelInfo]:
        if not self.api_key:
            print("[model_catalog] No OPENROUTER_API_KEY found")
            return []

        headers = {"Authorization": f"Bearer {self.api_key}"}
        client = self._http_client or httpx.AsyncClient(timeout=30.0)
        try:
            res = await client.get(f"{self.base_url}/models", headers=headers)
        except httpx.HTTPError as exc:
            print(f"[model_catalog] Failed to fetch model list: {exc}")
            return []
        finally:
            if self._http_client is None:
                await client.aclose()

        if res.status_code >= 400:
            print(f"[model_catalog] Provider returned {res.status_code}")
            return []

        try:
            body = res.json()
        except ValueError as exc:
            print(f"[model_catalog] Provider returned a non-JSON body: {exc}")
            return []
        raw_models = body.get("data") if isinstance(body, dict) else None
        if not isinstance(raw_models, list):
            print("[model_catalog] Provider response has no model list")
            return []
        models = [
            parse_model(raw)
            for raw in raw_models
            if isinstance(raw, dict)
            and ((raw.get("architecture") or {}).get("modality") or "") not in NON_TEXT_MODALITIES
        ]
        models.sort(key=lambda m: (not m.is_free, m.pricing.input))
        return models


__all__ = ["ModelCatalog", "ModelInfo", "ModelListing", "parse_model"]
