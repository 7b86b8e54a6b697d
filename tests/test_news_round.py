"""
Tests for the company and macro news flows
"""
import json
import random

import pytest

from colosseum.services.news_round import (
    MACRO_FALLBACK_HEADLINES,
    generate_company_news,
    generate_macro_news,
)
from conftest import FakeCompletion, make_context


def _reply(payload):
    return json.dumps(payload)


async def test_company_news_from_ai_payload(seeded_store, stocks):
    fake = FakeCompletion(
        [
            _reply(
                {
                    "headline": "Alpha Chips lands record order",
                    "category": "CONTRACT",
                    "target_ticker": "AAA",
                    "severity": "LOW",
                    "direction": "POSITIVE",
                    "per_stock_impacts": {"AAA": 9.4, "CCC": 0.05},
                    "reasoning": "big order",
                }
            )
        ]
    )
    ctx = make_context(seeded_store, fake)

    event = await generate_company_news(ctx, stocks=stocks, round_number=1, rng=random.Random(0))

    assert event.fallback is False
    assert event.ticker_affected == "AAA"
    assert event.per_stock_impacts == {"AAA": 6.0, "BBB": 0.96, "CCC": 0.05}
    assert event.sector_impacts == {"Tech": 0.06}
    assert event.category == "CONTRACT"
    assert event.version == 1
    assert fake.calls[0]["temperature"] == 0.8
    assert "You MUST include ALL of these tickers" in fake.calls[0]["messages"][1].content


async def test_company_news_without_table_uses_rule_based_impacts(seeded_store, stocks):
    fake = FakeCompletion([_reply({"headline": "Beta Systems hit by fraud inquiry", "target_ticker": "BBB"})])
    ctx = make_context(seeded_store, fake)

    event = await generate_company_news(ctx, stocks=stocks, round_number=2, rng=random.Random(0))

    assert event.fallback is False
    assert event.headline == "Beta Systems hit by fraud inquiry"
    assert set(event.per_stock_impacts) == {"AAA", "BBB", "CCC"}
    assert event.per_stock_impacts["BBB"] < 0
    assert event.category == "EARNINGS"
    assert event.severity == "MODERATE"


async def test_company_news_invalid_target_falls_back(seeded_store, stocks):
    fake = FakeCompletion([_reply({"headline": "Zeta soars", "target_ticker": "ZZZ", "per_stock_impacts": {}})])
    ctx = make_context(seeded_store, fake)

    event = await generate_company_news(ctx, stocks=stocks, round_number=1, used_tickers=["AAA"])

    assert event.fallback is True
    assert event.ticker_affected == "BBB"
    assert set(event.per_stock_impacts) == {"AAA", "BBB", "CCC"}


async def test_company_news_without_key(seeded_store, stocks):
    fake = FakeCompletion(configured=False)
    ctx = make_context(seeded_store, fake)

    event = await generate_company_news(ctx, stocks=stocks, round_number=1)

    assert event.fallback is True
    assert event.ticker_affected == "AAA"
    assert fake.calls == []


async def test_company_fallback_needs_stocks(seeded_store):
    ctx = make_context(seeded_store, FakeCompletion(configured=False))
    with pytest.raises(ValueError):
        await generate_company_news(ctx, stocks=[], round_number=1)


async def test_macro_news_from_ai_payload(seeded_store, stocks):
    fake = FakeCompletion(
        [
            "Sure! " + _reply(
                {
                    "headline": "Central bank hikes rates",
                    "category": "MONETARY_POLICY",
                    "severity": "MODERATE",
                    "direction": "NEGATIVE",
                    "per_stock_impacts": {"AAA": -7.5},
                    "sectorImpacts": {"Tech": -0.03},
                }
            )
        ]
    )
    ctx = make_context(seeded_store, fake)

    event = await generate_macro_news(ctx, stocks=stocks, round_number=2)

    assert event.fallback is False
    assert event.ticker_affected is None
    assert event.per_stock_impacts == {"AAA": -4.0, "BBB": -1.2, "CCC": -0.8}
    assert event.sector_impacts == {"Tech": -0.03}


async def test_macro_news_parse_failure_uses_unused_headline(seeded_store, stocks):
    ctx = make_context(seeded_store, FakeCompletion(["no json here"]))

    event = await generate_macro_news(
        ctx, stocks=stocks, round_number=1, used_headlines=[MACRO_FALLBACK_HEADLINES[0]]
    )

    assert event.fallback is True
    assert event.headline == MACRO_FALLBACK_HEADLINES[1]
    assert set(event.per_stock_impacts) == {"AAA", "BBB", "CCC"}
    assert event.direction == "NEGATIVE"
