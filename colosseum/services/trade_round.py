"""Ask a trading agent for its decision and turn the reply into orders."""

from __future__ import annotations

from typing import Optional, Sequence

from colosseum.domain.errors import ParseFailure, TradeValidationError
from colosseum.domain.models import (
    ChatMessage,
    LatestEvent,
    PortfolioState,
    Standing,
    StockInfo,
    TradeDecision,
    TradeOrder,
)
from colosseum.parsing.extractor import extract_json
from colosseum.parsing.trade_validator import validate_trades
from colosseum.prompts.prompts import Prompts
from colosseum.services.completion import complete_with_fallback
from colosseum.services.context_builder import RoundContext

TRADE_MAX_TOKENS = 512
TRADE_TEMPERATURE = 0.7


def hold_decision(reasoning: str, *, model: Optional[str] = None, version: Optional[int] = None) -> TradeDecision:
    return TradeDecision(
        trades=[], reasoning=reasoning, model=model, prompt_version=version, fallback=True
    )


def parse_trade_decision(
    content: str,
    *,
    stocks: Sequence[StockInfo],
    cash: float,
) -> tuple[list[TradeOrder], str]:
    """Extract and validate a trade reply.

    Raises:
        ParseFailure: no JSON object with a ``trades`` key in ``content``.
        TradeValidationError: the object is not a usable trade batch.
    """
    payload = extract_json(content, required_key="trades")
    if payload is None:
        raise ParseFailure("no JSON object with 'trades' found in reply")
    prices = {s.ticker: s.price for s in stocks if s.price is not None}
    trades = validate_trades(payload, {s.ticker for s in stocks}, cash, prices)
    reasoning = payload.get("reasoning")
    return trades, str(reasoning) if reasoning else "Executing strategy"


async def decide_trades(
    ctx: RoundContext,
    agent_id: str,
    *,
    stocks: Sequence[StockInfo],
    portfolio: PortfolioState,
    news_headlines: Sequence[str] = (),
    latest_event: Optional[LatestEvent] = None,
    standings: Sequence[Standing] = (),
    total_value: Optional[float] = None,
    user_custom_prompt: Optional[str] = None,
) -> TradeDecision:
    """Run one agent's decision for the current event.

    Registry problems (unknown agent, broken hierarchy, no model) propagate.
    Model, parse and validation problems end in an empty "hold" decision.
    """
    effective = ctx.composer.compose(agent_id, user_custom_prompt=user_custom_prompt)
    model = ctx.resolver.resolve_model(agent_id)
    active = ctx.store.get_active_version(agent_id)
    version = active.version if active else None

    if not ctx.completion_available:
        return hold_decision("No API key configured", model=model, version=version)

    print(f"[trade_round] Loading '{agent_id}' prompt v{version} with model {model}")
    system_prompt = Prompts.trade_system_prompt(
        effective_prompt=effective.text,
        stocks=stocks,
        portfolio=portfolio,
        news_headlines=news_headlines,
        latest_event=latest_event,
        standings=standings,
        total_value=total_value,
    )
    messages = [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=Prompts.TRADE_USER_MESSAGE),
    ]

    result = await complete_with_fallback(
        ctx.completion,
        model,
        messages,
        max_tokens=TRADE_MAX_TOKENS,
        temperature=TRADE_TEMPERATURE,
    )
    if not result.content:
        print(f"[trade_round] Trade call failed for '{agent_id}' ({model}): {result.error}")
        return hold_decision(f"API error for {model}, holding position", model=model, version=version)

    try:
        trades, reasoning = parse_trade_decision(result.content, stocks=stocks, cash=portfolio.cash)
    except (ParseFailure, TradeValidationError) as exc:
        print(f"[trade_round] Could not use reply from '{agent_id}': {exc}")
        return hold_decision("Could not parse response, holding", model=result.model, version=version)

    print(f"[trade_round] '{agent_id}' submitted {len(trades)} valid trades")
    return TradeDecision(
        trades=trades,
        reasoning=reasoning,
        model=result.model,
        prompt_version=version,
        fallback=False,
    )


__all__ = ["decide_trades", "hold_decision", "parse_trade_decision"]
