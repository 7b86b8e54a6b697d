"""Company and macro news generation with a deterministic fallback path."""

from __future__ import annotations

import random
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from colosseum.domain.errors import ImpactValidationError
from colosseum.domain.models import ChatMessage, NewsEvent, Severity, StockInfo
from colosseum.parsing.extractor import extract_json
from colosseum.parsing.impact_validator import (
    company_headline_and_target,
    validate_impacts,
    validate_macro_impacts,
)
from colosseum.prompts.prompts import Prompts
from colosseum.services.completion import complete_with_fallback
from colosseum.services.context_builder import RoundContext
from colosseum.services.fallback_impacts import (
    MACRO_NEGATIVE_WORDS,
    MACRO_POSITIVE_WORDS,
    generate_fallback_impacts,
    generate_macro_fallback_impacts,
    sentiment_sign,
)

COMPANY_NEWS_AGENT = "company_news"
MACRO_NEWS_AGENT = "macro_news"
NEWS_MAX_TOKENS = 512
NEWS_TEMPERATURE = 0.8

COMPANY_FALLBACK_HEADLINES = (
    "{name} beats earnings expectations on record demand",
    "{name} faces product recall after safety warning",
    "{name} wins landmark contract, shares surge",
)
MACRO_FALLBACK_HEADLINES = (
    "Central bank signals rate cut as growth cools",
    "New tariff package rattles global supply chains",
    "Jobs report beats forecasts, boosting growth outlook",
    "Inflation surprise revives recession fears",
)


def _numeric_mapping(value: Any) -> dict[str, float]:
    if not isinstance(value, Mapping):
        return {}
    result: dict[str, float] = {}
    for key, raw in value.items():
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            result[str(key)] = float(raw)
    return result


def _direction_label(sign: int) -> str:
    return "POSITIVE" if sign >= 0 else "NEGATIVE"


async def _request_payload(
    ctx: RoundContext,
    agent_id: str,
    user_message: str,
    *,
    tag: str,
) -> tuple[Optional[dict[str, Any]], str, Optional[int]]:
    """Compose, resolve and call the news agent; returns (payload, model, version)."""
    effective = ctx.composer.compose(agent_id)
    model = ctx.resolver.resolve_model(agent_id)
    active = ctx.store.get_active_version(agent_id)
    version = active.version if active else None

    if not ctx.completion_available:
        print(f"[{tag}] No API key, falling back to rule-based news")
        return None, model, version

    print(f"[{tag}] Using '{agent_id}' v{version}, model: {model}")
    result = await complete_with_fallback(
        ctx.completion,
        model,
        [
            ChatMessage(role="system", content=effective.text),
            ChatMessage(role="user", content=user_message),
        ],
        max_tokens=NEWS_MAX_TOKENS,
        temperature=NEWS_TEMPERATURE,
    )
    if not result.content:
        print(f"[{tag}] API call failed ({result.error}), falling back to rule-based news")
        return None, model, version

    payload = extract_json(result.content, required_key="headline")
    if payload is None:
        print(f"[{tag}] Could not parse response, falling back to rule-based news")
    return payload, result.model or model, version


def fallback_company_event(
    stocks: Sequence[StockInfo],
    round_number: int,
    used_tickers: Sequence[str] = (),
    *,
    model: Optional[str] = None,
    version: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> NewsEvent:
    """Rule-based company event for the first stock not yet targeted this round."""
    if not stocks:
        raise ValueError("stocks must not be empty")
    used = set(used_tickers)
    target = next((s for s in stocks if s.ticker not in used), stocks[0])
    template = COMPANY_FALLBACK_HEADLINES[(max(round_number, 1) - 1) % len(COMPANY_FALLBACK_HEADLINES)]
    headline = template.format(name=target.name or target.ticker)
    impacts = generate_fallback_impacts(headline, target.ticker, stocks, rng=rng)
    return NewsEvent(
        headline=headline,
        category="EARNINGS",
        ticker_affected=target.ticker,
        severity=Severity.MODERATE.value,
        direction=_direction_label(sentiment_sign(headline)),
        sector_impacts={target.sector: impacts[target.ticker] / 100},
        per_stock_impacts=impacts,
        reasoning="Rule-based fallback",
        version=version,
        model=model,
        fallback=True,
    )


def fallback_macro_event(
    stocks: Sequence[StockInfo],
    used_headlines: Sequence[str] = (),
    *,
    model: Optional[str] = None,
    version: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> NewsEvent:
    used = set(used_headlines)
    headline = next((h for h in MACRO_FALLBACK_HEADLINES if h not in used), MACRO_FALLBACK_HEADLINES[0])
    sign = sentiment_sign(headline, MACRO_POSITIVE_WORDS, MACRO_NEGATIVE_WORDS)
    return NewsEvent(
        headline=headline,
        category="ECONOMIC_DATA",
        severity=Severity.MODERATE.value,
        direction=_direction_label(sign),
        per_stock_impacts=generate_macro_fallback_impacts(headline, stocks, rng=rng),
        reasoning="Rule-based fallback",
        version=version,
        model=model,
        fallback=True,
    )


async def generate_company_news(
    ctx: RoundContext,
    *,
    stocks: Sequence[StockInfo],
    round_number: int,
    used_tickers: Sequence[str] = (),
    rng: Optional[random.Random] = None,
) -> NewsEvent:
    """One company-specific event whose impact table covers every stock."""
    user_message = Prompts.company_news_user_message(
        stocks=stocks, round_number=round_number, used_tickers=used_tickers
    )
    payload, model, version = await _request_payload(
        ctx, COMPANY_NEWS_AGENT, user_message, tag="company_news"
    )

    def fallback() -> NewsEvent:
        return fallback_company_event(
            stocks, round_number, used_tickers, model=model, version=version, rng=rng
        )

    if payload is None:
        return fallback()

    tickers = [s.ticker for s in stocks]
    try:
        headline, target = company_headline_and_target(payload, tickers)
        if isinstance(payload.get("per_stock_impacts"), Mapping):
            impacts = validate_impacts(
                payload,
                tickers,
                {s.ticker: s.sector for s in stocks},
                {s.ticker: s.beta for s in stocks},
                rng=rng,
            )
        else:
            print("[company_news] AI response missing per_stock_impacts, using rule-based impacts")
            impacts = generate_fallback_impacts(headline, target, stocks, rng=rng)
    except ImpactValidationError as exc:
        print(f"[company_news] Invalid payload: {exc}")
        return fallback()

    target_sector = next(s.sector for s in stocks if s.ticker == target)
    # Legacy display-only field; never reconciled with per_stock_impacts
    sector_impacts = _numeric_mapping(payload.get("sectorImpacts")) or {
        target_sector: (impacts.get(target) or 5) / 100
    }
    severity = str(payload.get("severity") or Severity.MODERATE.value)
    print(
        f'[company_news] Generated: "{headline}" | Target: {target} | '
        f"Severity: {severity} | Impacts: {impacts}"
    )
    return NewsEvent(
        headline=headline,
        category=str(payload.get("category") or "EARNINGS"),
        ticker_affected=target,
        severity=severity,
        direction=str(payload.get("direction") or "POSITIVE"),
        sector_impacts=sector_impacts,
        per_stock_impacts=impacts,
        reasoning=str(payload.get("reasoning") or ""),
        version=version,
        model=model,
        fallback=False,
    )


async def generate_macro_news(
    ctx: RoundContext,
    *,
    stocks: Sequence[StockInfo],
    round_number: int,
    used_headlines: Sequence[str] = (),
    rng: Optional[random.Random] = None,
) -> NewsEvent:
    """One economy-wide event whose impact table covers every stock."""
    user_message = Prompts.macro_news_user_message(
        stocks=stocks, round_number=round_number, used_headlines=used_headlines
    )
    payload, model, version = await _request_payload(
        ctx, MACRO_NEWS_AGENT, user_message, tag="macro_news"
    )
    if payload is None:
        return fallback_macro_event(stocks, used_headlines, model=model, version=version, rng=rng)

    tickers = [s.ticker for s in stocks]
    try:
        if isinstance(payload.get("per_stock_impacts"), Mapping):
            impacts = validate_macro_impacts(payload, tickers, {s.ticker: s.beta for s in stocks})
        else:
            validate_macro_impacts(payload, [], {})
            print("[macro_news] AI response missing per_stock_impacts, using rule-based impacts")
            impacts = generate_macro_fallback_impacts(payload["headline"], stocks, rng=rng)
    except ImpactValidationError as exc:
        print(f"[macro_news] Invalid payload: {exc}")
        return fallback_macro_event(stocks, used_headlines, model=model, version=version, rng=rng)

    headline = payload["headline"]
    severity = str(payload.get("severity") or Severity.MODERATE.value)
    print(f'[macro_news] Generated: "{headline}" | Severity: {severity} | Impacts: {impacts}')
    return NewsEvent(
        headline=headline,
        category=str(payload.get("category") or "ECONOMIC_DATA"),
        severity=severity,
        direction=str(payload.get("direction") or "MIXED"),
        sector_impacts=_numeric_mapping(payload.get("sectorImpacts")),
        per_stock_impacts=impacts,
        reasoning=str(payload.get("reasoning") or ""),
        version=version,
        model=model,
        fallback=False,
    )


__all__ = [
    "fallback_company_event",
    "fallback_macro_event",
    "generate_company_news",
    "generate_macro_news",
]
