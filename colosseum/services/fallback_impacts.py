"""Rule-based impact tables used when no usable AI payload is available."""

from __future__ import annotations

import random
from typing import Iterable, Optional

from colosseum.domain.models import StockInfo

COMPANY_POSITIVE_WORDS = (
    "beats", "surges", "growth", "upgrade", "approval", "record",
    "boost", "wins", "soars", "patent", "split", "insider",
)
COMPANY_NEGATIVE_WORDS = (
    "misses", "crashes", "recession", "downgrade", "reject", "fraud",
    "recall", "resign", "short", "warning", "disruption", "slump",
)
MACRO_POSITIVE_WORDS = (
    "beats", "surges", "growth", "upgrade", "approval", "record",
    "boost", "stimulus", "cut", "expansion", "wins", "soars",
)
MACRO_NEGATIVE_WORDS = (
    "misses", "crashes", "recession", "downgrade", "reject", "fraud",
    "tariff", "war", "inflation", "investigation", "recall", "slump",
)

TARGET_MOVE = 5.0
TARGET_JITTER = 2.0
SECTOR_JITTER = 0.5
NOISE_BAND = 0.3
MACRO_MOVE = 2.0
MACRO_JITTER = 0.5


def sentiment_sign(
    headline: str,
    positive_words: Iterable[str] = COMPANY_POSITIVE_WORDS,
    negative_words: Iterable[str] = COMPANY_NEGATIVE_WORDS,
) -> int:
    """+1 when positive keywords are at least as frequent as negative ones."""
    lower = (headline or "").lower()
    score = sum(1 for word in positive_words if word in lower)
    score -= sum(1 for word in negative_words if word in lower)
    return 1 if score >= 0 else -1


def _jitter(rng: random.Random, width: float) -> float:
    return (rng.random() - 0.5) * width


def generate_fallback_impacts(
    headline: str,
    target_ticker: Optional[str],
    stocks: Iterable[StockInfo],
    *,
    rng: Optional[random.Random] = None,
) -> dict[str, float]:
    """Company-news impacts from headline keywords.

    The target moves ``±5%`` (plus up to one point of jitter), same-sector
    names follow with a beta-scaled sympathy move, everything else gets
    direction-free noise. Never fails and always covers every stock given.
    """
    rng = rng or random.Random()
    stocks = list(stocks)
    sign = sentiment_sign(headline)
    target_sector = next((s.sector for s in stocks if s.ticker == target_ticker), None)

    impacts: dict[str, float] = {}
    for stock in stocks:
        if stock.ticker == target_ticker:
            value = TARGET_MOVE * sign + _jitter(rng, TARGET_JITTER)
        elif target_sector is not None and stock.sector == target_sector:
            value = 1.0 * sign * stock.beta + _jitter(rng, SECTOR_JITTER)
        else:
            value = _jitter(rng, NOISE_BAND)
        impacts[stock.ticker] = round(value, 2)
    return impacts


def generate_macro_fallback_impacts(
    headline: str,
    stocks: Iterable[StockInfo],
    *,
    rng: Optional[random.Random] = None,
) -> dict[str, float]:
    """Macro-news impacts: every stock moves with the market, scaled by beta."""
    rng = rng or random.Random()
    sign = sentiment_sign(headline, MACRO_POSITIVE_WORDS, MACRO_NEGATIVE_WORDS)
    impacts: dict[str, float] = {}
    for stock in stocks:
        impacts[stock.ticker] = round(MACRO_MOVE * sign * stock.beta + _jitter(rng, MACRO_JITTER), 2)
    return impacts


__all__ = [
    "generate_fallback_impacts",
    "generate_macro_fallback_impacts",
    "sentiment_sign",
]
