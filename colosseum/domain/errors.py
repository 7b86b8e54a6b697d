"""Error taxonomy for the agent registry and the AI response pipeline."""

from __future__ import annotations


class ColosseumError(Exception):
    pass


class NotFound(ColosseumError):
    pass


class AgentNotFound(NotFound):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent '{agent_id}' not found")
        self.agent_id = agent_id


class PromptVersionNotFound(NotFound):
    def __init__(self, agent_id: str, version: int | None = None):
        if version is None:
            message = f"Agent '{agent_id}' has no active prompt version"
        else:
            message = f"Agent '{agent_id}' has no prompt version {version}"
        super().__init__(message)
        self.agent_id = agent_id
        self.version = version


class BrokenHierarchy(ColosseumError):
    """Raised when an ancestor chain cannot be walked back to a root."""


class NoModelConfigured(ColosseumError):
    def __init__(self, agent_id: str):
        super().__init__(
            f"No model override in the chain of '{agent_id}' and no system model configured"
        )
        self.agent_id = agent_id


class RegistryError(ColosseumError):
    """Rejected administrative write (invalid rank, parent, duplicate id...)."""


class OrderNotFound(NotFound):
    def __init__(self, order_id: int):
        super().__init__(f"Order #{order_id} not found")
        self.order_id = order_id


class ParseFailure(ColosseumError):
    pass


class ValidationFailure(ColosseumError):
    pass


class TradeValidationError(ValidationFailure):
    pass


class ImpactValidationError(ValidationFailure):
    pass


__all__ = [
    "AgentNotFound",
    "BrokenHierarchy",
    "ColosseumError",
    "ImpactValidationError",
    "NoModelConfigured",
    "NotFound",
    "OrderNotFound",
    "ParseFailure",
    "PromptVersionNotFound",
    "RegistryError",
    "TradeValidationError",
    "ValidationFailure",
]
