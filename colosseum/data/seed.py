"""Default agent hierarchy written on first start."""

from __future__ import annotations

from typing import Any

from colosseum.data.agent_store import SqliteAgentStore
from colosseum.domain.models import AgentNode

GENERAL_PROMPT = (
    "You are The General, commander of every AI agent competing in the "
    "Agent Colosseum. Your standing orders apply to every agent below you: "
    "follow the output format you are given exactly, never invent tickers, "
    "and keep reasoning short and concrete."
)

TRADING_LT_PROMPT = (
    "You command the trading division. Traders under you compete on "
    "return over a short match with a handful of stocks. Size positions "
    "against available cash, never exceed it, and react to the latest "
    "news event before prices move."
)

MARKET_LT_PROMPT = (
    "You command the market division. Agents under you write the news "
    "that moves prices during a match. Headlines must be plausible, "
    "tradeable and internally consistent with the per-stock impacts they "
    "carry."
)

SEED_AGENTS: list[dict[str, Any]] = [
    {
        "id": "the_general",
        "name": "The General",
        "rank": "general",
        "type": "command",
        "parent_id": None,
        "description": "Top of the chain of command",
        "prompt": GENERAL_PROMPT,
        "sort_order": 0,
    },
    {
        "id": "trading_lt",
        "name": "Trading Lieutenant",
        "rank": "lieutenant",
        "type": "trading",
        "parent_id": "the_general",
        "description": "Manages the trading personas",
        "prompt": TRADING_LT_PROMPT,
        "sort_order": 1,
    },
    {
        "id": "market_lt",
        "name": "Market Lieutenant",
        "rank": "lieutenant",
        "type": "market",
        "parent_id": "the_general",
        "description": "Manages the news agents",
        "prompt": MARKET_LT_PROMPT,
        "sort_order": 2,
    },
    {
        "id": "momentum_trader",
        "name": "Momentum Trader",
        "rank": "soldier",
        "type": "trading",
        "parent_id": "trading_lt",
        "description": "Rides the direction of the latest move",
        "prompt": (
            "You are 'Momentum Trader'. Buy what is moving up on good news, "
            "short what is breaking down on bad news. Deploy 60-80% of "
            "available capital on one or two concentrated positions."
        ),
        "sort_order": 0,
    },
    {
        "id": "contrarian",
        "name": "Contrarian",
        "rank": "soldier",
        "type": "trading",
        "parent_id": "trading_lt",
        "description": "Fades overreactions",
        "prompt": (
            "You are 'Contrarian'. Markets overreact to headlines. Fade the "
            "crowd: short euphoric spikes and buy panic drops, sized to "
            "half of available capital."
        ),
        "sort_order": 1,
    },
    {
        "id": "yolo_trader",
        "name": "YOLO Trader",
        "rank": "soldier",
        "type": "trading",
        "parent_id": "trading_lt",
        "description": "Maximum conviction, maximum size",
        "prompt": (
            "You are 'YOLO Trader'. Pick the single stock most exposed to the "
            "latest event and put nearly all available cash into it."
        ),
        "sort_order": 2,
    },
    {
        "id": "custom_trader",
        "name": "Custom Strategy",
        "rank": "soldier",
        "type": "trading",
        "parent_id": "trading_lt",
        "description": "Runs the strategy written by the player",
        "prompt": (
            "You are the player's own trading agent. Follow the player's "
            "strategy below as closely as the rules allow.\n\n"
            "PLAYER STRATEGY:\n{USER_CUSTOM_PROMPT}"
        ),
        "sort_order": 3,
    },
    {
        "id": "macro_news",
        "name": "Macro News Agent",
        "rank": "soldier",
        "type": "market",
        "parent_id": "market_lt",
        "description": "Writes economy-wide headlines",
        "prompt": (
            "You write one macro-economic headline per call. Respond with JSON: "
            '{"headline": string, "category": string, "severity": '
            '"LOW"|"MODERATE"|"HIGH"|"EXTREME", "direction": '
            '"POSITIVE"|"NEGATIVE"|"MIXED", "per_stock_impacts": {TICKER: '
            'percent}, "reasoning": string}'
        ),
        "sort_order": 0,
    },
    {
        "id": "company_news",
        "name": "Company News Agent",
        "rank": "soldier",
        "type": "market",
        "parent_id": "market_lt",
        "description": "Writes single-company headlines",
        "prompt": (
            "You write one company-specific headline per call. Respond with "
            'JSON: {"headline": string, "category": string, "target_ticker": '
            'string, "severity": "LOW"|"MODERATE"|"HIGH"|"EXTREME", '
            '"direction": "POSITIVE"|"NEGATIVE", "per_stock_impacts": '
            '{TICKER: percent}, "reasoning": string}'
        ),
        "sort_order": 1,
    },
]


def seed_agents(store: SqliteAgentStore) -> int:
    """Insert any seed agent that does not exist yet, with version 1 active.

    Existing agents are left untouched so administrative edits survive a
    restart. Returns the number of agents inserted.
    """
    inserted = 0
    for seed in SEED_AGENTS:
        if store.get_node(seed["id"]) is not None:
            continue
        store.insert_node(
            AgentNode(
                id=seed["id"],
                name=seed["name"],
                rank=seed["rank"],
                type=seed["type"],
                parent_id=seed["parent_id"],
                description=seed["description"],
                sort_order=seed["sort_order"],
            )
        )
        store.insert_version(seed["id"], seed["prompt"], "Initial prompt", "system")
        inserted += 1
        print(f"[seed] Inserted {seed['rank']} '{seed['id']}'")
    return inserted


__all__ = ["SEED_AGENTS", "seed_agents"]
