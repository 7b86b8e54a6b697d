"""Turn an extracted trade payload into affordable, well-formed orders."""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

from colosseum.domain.errors import TradeValidationError
from colosseum.domain.models import TradeAction, TradeOrder

ALLOWED_ACTIONS = frozenset(action.value for action in TradeAction)


def _as_quantity(value: Any) -> Optional[float]:
    # bool is an int subclass; "true" is not a share count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


def _affordable_qty(qty: int, price: Optional[float], available_cash: float) -> int:
    if price is None or price <= 0:
        return 0
    max_affordable = math.floor(max(available_cash, 0.0) / price)
    return min(qty, max_affordable)


def validate_trades(
    candidate: Any,
    allowed_tickers: Iterable[str],
    available_cash: float,
    price_by_ticker: Mapping[str, float],
) -> list[TradeOrder]:
    """Filter and clamp the ``trades`` entries of a model reply.

    Entries with an unknown action or ticker, or a non-positive / non-numeric
    ``qty`` are dropped. Quantities are floored. ``LONG`` and ``SHORT`` are
    capped so that ``qty * price <= available_cash``, each order on its own;
    orders that end up at zero shares are dropped. An empty list means
    "no trades", which is a valid outcome.

    ``candidate`` is either the reply object carrying a ``trades`` list or
    that list on its own.

    Raises:
        TradeValidationError: ``candidate`` is neither a list nor an object
            with a ``trades`` list.
    """
    if isinstance(candidate, list):
        entries = candidate
    elif isinstance(candidate, Mapping):
        entries = candidate.get("trades")
        if not isinstance(entries, list):
            raise TradeValidationError("trade payload has no 'trades' list")
    else:
        raise TradeValidationError("trade payload is not a JSON object or list")

    tickers = set(allowed_tickers)
    orders: list[TradeOrder] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        action = entry.get("action")
        ticker = entry.get("ticker")
        raw_qty = _as_quantity(entry.get("qty"))
        if not isinstance(action, str) or not isinstance(ticker, str):
            continue
        if action not in ALLOWED_ACTIONS or ticker not in tickers or raw_qty is None:
            continue

        trade_action = TradeAction(action)
        qty = math.floor(raw_qty)
        if trade_action.opens_exposure:
            qty = _affordable_qty(qty, price_by_ticker.get(ticker), float(available_cash))
        if qty <= 0:
            continue

        reason = entry.get("reason")
        orders.append(
            TradeOrder(
                action=trade_action,
                ticker=ticker,
                qty=qty,
                reason=str(reason) if reason else None,
            )
        )
    return orders


__all__ = ["ALLOWED_ACTIONS", "validate_trades"]
