"""Domain models shared across the agent colosseum."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Rank(str, Enum):
    GENERAL = "general"
    LIEUTENANT = "lieutenant"
    SOLDIER = "soldier"

    @property
    def level(self) -> int:
        """Higher value = higher in the chain of command."""
        return {"general": 3, "lieutenant": 2, "soldier": 1}[self.value]

    def outranks(self, other: "Rank") -> bool:
        return self.level > other.level


class AgentNode(BaseModel):
    id: str
    name: str
    rank: Rank
    type: str = "trading"
    parent_id: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0
    model_override: Optional[str] = None
    created_at: Optional[str] = None


class PromptVersion(BaseModel):
    agent_id: str
    version: int = Field(..., ge=1)
    prompt_text: str = Field(..., min_length=1)
    notes: Optional[str] = None
    created_by: str = "admin"
    created_at: Optional[str] = None
    is_active: bool = False


class PromptSection(BaseModel):
    agent_id: str
    agent_name: str
    rank: Rank
    text: str


class EffectivePrompt(BaseModel):
    text: str
    sections: list[PromptSection]


class AgentTreeNode(BaseModel):
    id: str
    name: str
    rank: Rank
    type: str
    description: Optional[str] = None
    effective_model: Optional[str] = None
    model_override: Optional[str] = None
    is_active: bool
    active_version: Optional[int] = None
    prompt_preview: str = ""
    children: list["AgentTreeNode"] = Field(default_factory=list)


class ChatMessage(BaseModel):
    role: str
    content: str


class TradeAction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    CLOSE_LONG = "CLOSE_LONG"
    CLOSE_SHORT = "CLOSE_SHORT"

    @property
    def opens_exposure(self) -> bool:
        return self in (TradeAction.LONG, TradeAction.SHORT)


class TradeOrder(BaseModel):
    action: TradeAction
    ticker: str
    qty: int = Field(..., gt=0)
    reason: Optional[str] = None


class TradeDecision(BaseModel):
    trades: list[TradeOrder]
    reasoning: str
    model: Optional[str] = None
    prompt_version: Optional[int] = None
    fallback: bool = False


class StockInfo(BaseModel):
    ticker: str
    name: str = ""
    sector: str
    sub_sector: Optional[str] = None
    beta: float = 1.0
    price: Optional[float] = None
    start_price: Optional[float] = None
    change_pct: float = 0.0
    pe_ratio: Optional[float] = None
    eps: Optional[float] = None
    debt_ebitda: Optional[float] = None
    market_cap: Optional[str] = None


class PositionInfo(BaseModel):
    qty: int
    side: str
    avg_cost: float


class PortfolioState(BaseModel):
    cash: float
    positions: dict[str, PositionInfo] = Field(default_factory=dict)


class Standing(BaseModel):
    name: str
    model: Optional[str] = None
    pnl: float = 0.0
    pnl_pct: Optional[float] = None


class LatestEvent(BaseModel):
    headline: str
    event_index: int = 0
    news_type: str = "macro"
    target_ticker: Optional[str] = None


class Severity(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class NewsEvent(BaseModel):
    headline: str
    category: str
    ticker_affected: Optional[str] = None
    severity: str = Severity.MODERATE.value
    direction: str = "POSITIVE"
    sector_impacts: dict[str, float] = Field(default_factory=dict)
    per_stock_impacts: dict[str, float]
    reasoning: str = ""
    version: Optional[int] = None
    model: Optional[str] = None
    fallback: bool = False


AgentTreeNode.model_rebuild()


class OrderStatus(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    REJECTED = "rejected"


class ChangeAction(str, Enum):
    UPDATE_PROMPT = "update_prompt"
    CREATE_AGENT = "create_agent"
    DELETE_AGENT = "delete_agent"


class ProposedChange(BaseModel):
    """One agent edit a lieutenant proposes in reply to an admin order."""

    agent_id: str
    agent_name: str = ""
    what_changed: str = "Updated"
    new_prompt: str = ""
    action: ChangeAction = ChangeAction.UPDATE_PROMPT
    new_name: Optional[str] = None
    new_description: Optional[str] = None
    rank: Optional[Rank] = None
    type: Optional[str] = None
    parent_id: Optional[str] = None
    old_prompt: Optional[str] = None


class AgentOrder(BaseModel):
    id: int
    order_text: str
    lieutenant_id: Optional[str] = None
    lieutenant_response: Optional[str] = None
    affected_agents: list[str] = Field(default_factory=list)
    proposed_changes: list[ProposedChange] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[str] = None
    executed_at: Optional[str] = None
