"""Validate news payloads into a complete, clamped per-ticker impact table."""

from __future__ import annotations

import math
import random
from typing import Any, Iterable, Mapping, Optional

from colosseum.domain.errors import ImpactValidationError
from colosseum.domain.models import Severity

# Severity -> max absolute % move per stock
COMPANY_SEVERITY_BOUNDS: dict[str, float] = {
    Severity.LOW.value: 6.0,
    Severity.MODERATE.value: 8.0,
    Severity.HIGH.value: 10.0,
    Severity.EXTREME.value: 14.0,
}
MACRO_SEVERITY_BOUNDS: dict[str, float] = {
    Severity.LOW.value: 2.0,
    Severity.MODERATE.value: 4.0,
    Severity.HIGH.value: 6.0,
    Severity.EXTREME.value: 10.0,
}

SECTOR_SYMPATHY_FACTOR = 0.8
MISSING_NOISE_BAND = 0.2


def severity_bound(severity: Optional[str], bounds: Mapping[str, float]) -> float:
    """Max absolute impact for ``severity``; unknown or missing means MODERATE."""
    key = str(severity or Severity.MODERATE.value).strip().upper()
    return float(bounds.get(key, bounds[Severity.MODERATE.value]))


def clamp(value: float, max_abs: float) -> float:
    return max(-max_abs, min(max_abs, float(value)))


def direction_sign(direction: Any) -> int:
    return -1 if str(direction or "").strip().upper() == "NEGATIVE" else 1


def _as_percent(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _beta(beta_of: Mapping[str, Any], ticker: str) -> float:
    # unknown beta moves with the market; a zero beta does not move
    beta = _as_percent(beta_of.get(ticker))
    return 1.0 if beta is None else beta


def _require_headline(candidate: Any) -> str:
    if not isinstance(candidate, Mapping):
        raise ImpactValidationError("news payload is not a JSON object")
    headline = candidate.get("headline")
    if not isinstance(headline, str) or not headline.strip():
        raise ImpactValidationError("news payload has no headline")
    return headline


def _impact_table(candidate: Mapping[str, Any]) -> Mapping[str, Any]:
    table = candidate.get("per_stock_impacts")
    return table if isinstance(table, Mapping) else {}


def target_ticker_of(candidate: Mapping[str, Any]) -> Optional[str]:
    target = candidate.get("target_ticker") or candidate.get("tickerAffected")
    return target if isinstance(target, str) else None


def company_headline_and_target(candidate: Any, all_tickers: Iterable[str]) -> tuple[str, str]:
    """Headline and target ticker of a company-news payload, or ImpactValidationError."""
    headline = _require_headline(candidate)
    target = target_ticker_of(candidate)
    if target is None or target not in set(all_tickers):
        raise ImpactValidationError(f"invalid target ticker: {target!r}")
    return headline, target


def validate_impacts(
    candidate: Any,
    all_tickers: Iterable[str],
    sector_of: Mapping[str, str],
    beta_of: Mapping[str, float],
    severity: Optional[str] = None,
    *,
    rng: Optional[random.Random] = None,
) -> dict[str, float]:
    """Company-news flavor: one target ticker, sector sympathy for the rest.

    Requires a ``headline`` and a ``target_ticker`` (or legacy
    ``tickerAffected``) from ``all_tickers``. Tickers missing from
    ``per_stock_impacts`` are filled with ``sign * 0.8 * beta`` when they
    share the target's sector and with small symmetric noise otherwise.
    Every value is then clamped to the severity bound; ``severity`` defaults
    to the payload's own field. The result has exactly ``all_tickers`` as keys.

    Raises:
        ImpactValidationError: headline or target ticker missing/invalid.
    """
    tickers = list(dict.fromkeys(all_tickers))
    _, target = company_headline_and_target(candidate, tickers)

    rng = rng or random.Random()
    table = _impact_table(candidate)
    sign = direction_sign(candidate.get("direction"))
    target_sector = sector_of.get(target)
    max_abs = severity_bound(
        severity if severity is not None else candidate.get("severity"),
        COMPANY_SEVERITY_BOUNDS,
    )

    impacts: dict[str, float] = {}
    for ticker in tickers:
        value = _as_percent(table.get(ticker))
        if value is None:
            if sector_of.get(ticker) == target_sector:
                beta = _beta(beta_of, ticker)
                value = round(sign * SECTOR_SYMPATHY_FACTOR * beta, 2)
            else:
                value = round((rng.random() - 0.5) * MISSING_NOISE_BAND, 2)
        impacts[ticker] = clamp(value, max_abs)
    return impacts


def validate_macro_impacts(
    candidate: Any,
    all_tickers: Iterable[str],
    beta_of: Mapping[str, float],
    severity: Optional[str] = None,
) -> dict[str, float]:
    """Macro-news flavor: no target; missing tickers move ``sign * beta``."""
    _require_headline(candidate)
    tickers = list(dict.fromkeys(all_tickers))
    table = _impact_table(candidate)
    sign = direction_sign(candidate.get("direction"))
    max_abs = severity_bound(
        severity if severity is not None else candidate.get("severity"),
        MACRO_SEVERITY_BOUNDS,
    )

    impacts: dict[str, float] = {}
    for ticker in tickers:
        value = _as_percent(table.get(ticker))
        if value is None:
            beta = _beta(beta_of, ticker)
            value = round(sign * beta, 2)
        impacts[ticker] = clamp(value, max_abs)
    return impacts


__all__ = [
    "COMPANY_SEVERITY_BOUNDS",
    "MACRO_SEVERITY_BOUNDS",
    "clamp",
    "company_headline_and_target",
    "direction_sign",
    "severity_bound",
    "target_ticker_of",
    "validate_impacts",
    "validate_macro_impacts",
]
