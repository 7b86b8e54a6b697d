from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from colosseum.domain.models import LatestEvent, PortfolioState, Standing, StockInfo

STARTING_CASH = 100_000.0


def _df_to_text(df) -> str:
    """Render a DataFrame-like object as a plain-text table."""
    if df is None or getattr(df, "empty", True):
        return ""
    try:
        return df.to_string(index=False)
    except Exception:
        return ""


def stocks_frame(stocks: Sequence[StockInfo]) -> pd.DataFrame:
    """One row per stock with the columns agents are shown."""
    rows = []
    for s in stocks:
        rows.append(
            {
                "ticker": s.ticker,
                "name": s.name,
                "sector": f"{s.sector}/{s.sub_sector}" if s.sub_sector else s.sector,
                "beta": s.beta,
                "price": None if s.price is None else round(s.price, 2),
                "change_pct": round(s.change_pct * 100, 2),
                "pe": s.pe_ratio,
                "eps": s.eps,
                "debt_ebitda": s.debt_ebitda,
                "mkt_cap": s.market_cap,
            }
        )
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    # Drop columns nobody filled in (news rounds usually have no prices yet)
    return df.dropna(axis=1, how="all")


def _round_escalation(round_number: int, *, macro: bool) -> str:
    if macro:
        if round_number <= 1:
            return "Round 1: Generate LOW to MODERATE severity events."
        if round_number == 2:
            return "Round 2: Generate MODERATE to HIGH severity."
        return "Round 3: Generate HIGH to EXTREME severity, make it dramatic, this is the finale."
    if round_number <= 1:
        return "Round 1: Generate normal company news."
    if round_number == 2:
        return "Round 2: Generate dramatic company news."
    return "Round 3: Generate very dramatic company news with big moves, this is the finale."


def _position_lines(portfolio: PortfolioState, stocks: Sequence[StockInfo]) -> str:
    if not portfolio.positions:
        return "  No open positions."
    prices = {s.ticker: s.price for s in stocks}
    lines = []
    for ticker, pos in portfolio.positions.items():
        cur_price = prices.get(ticker) or pos.avg_cost
        direction = 1 if pos.side == "long" else -1
        pnl = (cur_price - pos.avg_cost) * pos.qty * direction
        pnl_pct = ((cur_price - pos.avg_cost) / pos.avg_cost * 100 * direction) if pos.avg_cost else 0.0
        lines.append(
            f"  - {pos.side.upper()} {pos.qty} shares {ticker} @ ${pos.avg_cost:.2f} "
            f"(current: ${cur_price:.2f}, P&L: {pnl:+.0f}, {pnl_pct:+.1f}%)"
        )
    return "\n".join(lines)


def _standing_lines(standings: Sequence[Standing]) -> str:
    if not standings:
        return "  No data"
    lines = []
    for s in standings:
        model = f" ({s.model})" if s.model else ""
        if s.pnl_pct is not None:
            result = f"{s.pnl_pct * 100:.2f}%"
        else:
            result = f"{s.pnl:+.0f}$"
        lines.append(f"  - {s.name}{model}: {result} return")
    return "\n".join(lines)


class Prompts:
    """Centralized builders for the per-round messages sent to agents.

    The registry supplies the composed system prompt; these builders append
    the live match state and the required response format.
    """

    TRADE_USER_MESSAGE = (
        "Review your portfolio and make your trading decision. Respond with JSON only."
    )

    @staticmethod
    def trade_system_prompt(
        *,
        effective_prompt: str,
        stocks: Sequence[StockInfo],
        portfolio: PortfolioState,
        news_headlines: Sequence[str] = (),
        latest_event: Optional[LatestEvent] = None,
        standings: Sequence[Standing] = (),
        total_value: Optional[float] = None,
    ) -> str:
        total = total_value or STARTING_CASH
        return_pct = (total - STARTING_CASH) / STARTING_CASH * 100

        prior = list(news_headlines[:-1] if latest_event else news_headlines)
        prior_block = (
            "\nPRIOR NEWS (already priced in): " + " | ".join(f'"{h}"' for h in prior)
            if prior
            else ""
        )

        latest_block = ""
        if latest_event is not None:
            target = f" | Target: {latest_event.target_ticker}" if latest_event.target_ticker else ""
            latest_block = (
                f"\n>>> NEW EVENT (Event #{latest_event.event_index + 1}) - REACT TO THIS <<<\n"
                f'"{latest_event.headline}"\n'
                f"Type: {latest_event.news_type.upper()}{target}\n"
                "Prices shown have NOT yet moved in response to this event. "
                "Decide now and trade before prices change."
            )

        stock_block = _df_to_text(stocks_frame(stocks)) or "[no stocks]"

        return (
            f"{effective_prompt}\n\n"
            "CURRENT MARKET STATE (prices are PRE-NEWS):\n"
            f"{stock_block}\n"
            f"{prior_block}\n"
            f"{latest_block}\n\n"
            "YOUR CURRENT PORTFOLIO:\n"
            f"{_position_lines(portfolio, stocks)}\n"
            f"Available Cash: ${portfolio.cash:.0f}\n"
            f"Total Portfolio Value: ${total:.0f}\n"
            f"Total Return: {return_pct:+.2f}%\n\n"
            "COMPETITOR STANDINGS:\n"
            f"{_standing_lines(standings)}\n\n"
            "Respond with ONLY a JSON object:\n"
            '{"trades": [{"action": "LONG" | "SHORT" | "CLOSE_LONG" | "CLOSE_SHORT", '
            '"ticker": "SYMBOL", "qty": NUMBER, "reason": "short reason"}], '
            '"reasoning": "1-2 sentences"}\n\n'
            "Rules:\n"
            "- Only use tickers from the stocks listed\n"
            "- qty must be > 0 and affordable (each share costs its current price)\n"
            "- An empty trades list means you hold"
        )

    @staticmethod
    def company_news_user_message(
        *,
        stocks: Sequence[StockInfo],
        round_number: int,
        used_tickers: Sequence[str] = (),
    ) -> str:
        available = [s.ticker for s in stocks if s.ticker not in set(used_tickers)]
        all_tickers = ", ".join(s.ticker for s in stocks)
        used = (
            "\nStocks already targeted this round (DO NOT use as target): " + ", ".join(used_tickers)
            if used_tickers
            else ""
        )
        return (
            f"Generate 1 company-specific news event for Round {round_number} of 3.\n"
            f"{_round_escalation(round_number, macro=False)}{used}\n\n"
            "STOCKS IN THIS MATCH:\n"
            f"{_df_to_text(stocks_frame(stocks))}\n\n"
            f"Pick ONE target stock from the available tickers: {', '.join(available)}\n"
            f"You MUST include ALL of these tickers in per_stock_impacts: {all_tickers}\n"
            "The target stock gets the biggest impact. Same-sector stocks get sympathy moves. "
            "Others get minimal noise.\n\n"
            "Return ONLY valid JSON, no markdown, no code fences, no explanation."
        )

    @staticmethod
    def macro_news_user_message(
        *,
        stocks: Sequence[StockInfo],
        round_number: int,
        used_headlines: Sequence[str] = (),
    ) -> str:
        all_tickers = ", ".join(s.ticker for s in stocks)
        used = (
            "\nPrevious headlines (DO NOT repeat): " + " | ".join(used_headlines)
            if used_headlines
            else ""
        )
        return (
            f"Generate 1 macro-economic news headline for Round {round_number} of 3.\n"
            f"{_round_escalation(round_number, macro=True)}{used}\n\n"
            "STOCKS IN THIS MATCH:\n"
            f"{_df_to_text(stocks_frame(stocks))}\n\n"
            f"You MUST include ALL of these tickers in per_stock_impacts: {all_tickers}\n\n"
            "Return ONLY valid JSON, no markdown, no code fences, no explanation."
        )

    @staticmethod
    def lieutenant_order_message(
        *,
        order_text: str,
        reports: Sequence[tuple[str, str, str]] = (),
    ) -> str:
        """User message for a lieutenant handling an admin order.

        ``reports`` holds ``(agent_id, name, current_prompt)`` for each soldier
        the lieutenant may rewrite.
        """
        if reports:
            current = "\n\n".join(
                f"### {name} (agent_id: {agent_id})\n{prompt}" for agent_id, name, prompt in reports
            )
        else:
            current = "(No soldiers currently assigned to you.)"
        return (
            f"Order from the commander:\n\n{order_text}\n\n"
            "CURRENT PROMPTS OF YOUR SOLDIERS:\n"
            f"{current}\n\n"
            "Decide which soldiers must change to carry out this order. For each one, "
            "write the COMPLETE replacement prompt, not a diff.\n"
            'Respond with JSON only: {"summary": "...", "changes": [{"agent_id": "...", '
            '"agent_name": "...", "what_changed": "...", "new_prompt": "..."}]}\n'
            'Use "changes": [] when no soldier needs to change.'
        )
