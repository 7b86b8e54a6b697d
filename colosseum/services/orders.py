"""Admin orders: a lieutenant proposes agent changes, which are then approved or rejected."""

from __future__ import annotations

from typing import Iterable, Optional

from colosseum.data.agent_store import SqliteAgentStore
from colosseum.domain.errors import AgentNotFound, ColosseumError, RegistryError
from colosseum.domain.models import (
    AgentOrder,
    ChangeAction,
    ChatMessage,
    OrderStatus,
    ProposedChange,
    Rank,
)
from colosseum.parsing.change_parser import extract_agent_metadata, parse_proposed_changes
from colosseum.prompts.prompts import Prompts
from colosseum.services.completion import complete_with_fallback
from colosseum.services.context_builder import RoundContext
from colosseum.services.registry import AgentRegistry

AUTO_APPROVE_KEY = "auto_approve"
ORDER_MAX_TOKENS = 3000
ORDER_TEMPERATURE = 0.7


class OrderDesk:
    """Records lieutenant proposals and applies them through the registry."""

    def __init__(self, store: SqliteAgentStore, registry: Optional[AgentRegistry] = None):
        self.store = store
        self.registry = registry or AgentRegistry(store)

    def auto_approve_enabled(self) -> bool:
        return (self.store.get_config(AUTO_APPROVE_KEY, "false") or "").lower() == "true"

    def set_auto_approve(self, enabled: bool) -> None:
        self.store.set_config(AUTO_APPROVE_KEY, "true" if enabled else "false")

    def _require_pending(self, order_id: int) -> AgentOrder:
        order = self.store.require_order(order_id)
        if order.status is not OrderStatus.PENDING:
            raise RegistryError(f"Order #{order_id} is already {order.status.value}")
        return order

    def record_proposal(
        self,
        order_text: str,
        lieutenant_id: str,
        lieutenant_response: Optional[str],
        *,
        auto_approve: Optional[bool] = None,
    ) -> AgentOrder:
        """Store an order with the changes parsed from the lieutenant's reply.

        An explicit ``auto_approve`` is persisted as the new system default.
        When auto-approve is on and the reply carried changes, they are
        applied immediately.
        """
        if auto_approve is not None:
            self.set_auto_approve(auto_approve)

        changes = parse_proposed_changes(lieutenant_response)
        for change in changes:
            active = self.store.get_active_version(change.agent_id)
            change.old_prompt = active.prompt_text if active else None

        order = self.store.create_order(order_text)
        order = self.store.update_order(
            order.id,
            lieutenant_id=lieutenant_id,
            lieutenant_response=lieutenant_response,
            affected_agents=list(dict.fromkeys(c.agent_id for c in changes)),
            proposed_changes=changes,
        )
        print(f"[orders] Order #{order.id} recorded with {len(changes)} proposed changes")

        if changes and self.auto_approve_enabled():
            print(f"[orders] Auto-approving order #{order.id}")
            self.approve_order(order.id)
            order = self.store.require_order(order.id)
        return order

    def _apply_change(self, order: AgentOrder, change: ProposedChange) -> None:
        if change.action is ChangeAction.CREATE_AGENT:
            self.registry.create_agent(
                change.agent_id,
                change.new_name or change.agent_name or change.agent_id,
                change.rank or Rank.SOLDIER,
                change.type or "trading",
                change.parent_id or order.lieutenant_id,
                change.new_description,
                change.new_prompt,
            )
            return
        if change.action is ChangeAction.DELETE_AGENT:
            self.registry.deactivate_agent(change.agent_id)
            return

        author = order.lieutenant_id or "admin"
        self.registry.create_prompt_version(
            change.agent_id,
            change.new_prompt,
            f"Updated via Order #{order.id} from {author}",
            author,
        )
        name, description = extract_agent_metadata(change)
        if name or description:
            self.registry.update_agent_metadata(change.agent_id, name=name, description=description)

    def approve_order(
        self, order_id: int, agent_ids: Optional[Iterable[str]] = None
    ) -> tuple[list[str], OrderStatus]:
        """Apply the order's changes, optionally only those for ``agent_ids``.

        A change that the registry rejects is reported and skipped. The order
        is marked executed once every change has been approved; otherwise it
        stays pending. Returns the approved agent ids and the resulting status.
        """
        order = self._require_pending(order_id)
        if not order.proposed_changes:
            raise RegistryError(f"Order #{order_id} has no changes to approve")

        selected = order.proposed_changes
        if agent_ids is not None:
            wanted = set(agent_ids)
            selected = [c for c in order.proposed_changes if c.agent_id in wanted]

        approved: list[str] = []
        for change in selected:
            try:
                self._apply_change(order, change)
            except (ColosseumError, ValueError) as exc:
                print(f"[orders] Order #{order_id}: skipped change for '{change.agent_id}': {exc}")
                continue
            approved.append(change.agent_id)

        if approved:
            self.registry.sync_chain_of_command()

        if len(selected) == len(order.proposed_changes) and len(approved) == len(selected):
            self.store.mark_order_executed(order_id)
            status = OrderStatus.EXECUTED
        else:
            status = OrderStatus.PENDING
        print(f"[orders] Order #{order_id}: approved {approved} -> {status.value}")
        return approved, status

    def reject_order(self, order_id: int) -> AgentOrder:
        self._require_pending(order_id)
        order = self.store.update_order(order_id, status=OrderStatus.REJECTED)
        print(f"[orders] Order #{order_id} rejected")
        return order


def _lieutenant_reports(store: SqliteAgentStore, lieutenant_id: str) -> list[tuple[str, str, str]]:
    reports = []
    for node in store.list_nodes(include_inactive=False):
        if node.parent_id != lieutenant_id or node.rank is not Rank.SOLDIER:
            continue
        active = store.get_active_version(node.id)
        reports.append((node.id, node.name, active.prompt_text if active else ""))
    return reports


async def issue_order(
    ctx: RoundContext,
    lieutenant_id: str,
    order_text: str,
    *,
    auto_approve: Optional[bool] = None,
    desk: Optional[OrderDesk] = None,
) -> AgentOrder:
    """Send ``order_text`` to a lieutenant and record the changes it proposes.

    Without a completion capability, or when both models fail, the order is
    still recorded (pending, no changes) with the failure as the response.
    """
    if not order_text or not order_text.strip():
        raise ValueError("order text must be a non-empty string")
    desk = desk or OrderDesk(ctx.store)
    lieutenant = ctx.store.get_node(lieutenant_id)
    if lieutenant is None:
        raise AgentNotFound(lieutenant_id)
    if lieutenant.rank is not Rank.LIEUTENANT:
        raise RegistryError(f"'{lieutenant_id}' is a {lieutenant.rank.value}, not a lieutenant")

    if not ctx.completion_available:
        print("[orders] No API key, order recorded without a lieutenant reply")
        return desk.record_proposal(
            order_text, lieutenant_id, "Failed to reach Lieutenant: no API key", auto_approve=auto_approve
        )

    effective = ctx.composer.compose(lieutenant_id)
    model = ctx.resolver.resolve_model(lieutenant_id)
    print(f"[orders] Sending order to '{lieutenant_id}', model: {model}")
    result = await complete_with_fallback(
        ctx.completion,
        model,
        [
            ChatMessage(role="system", content=effective.text),
            ChatMessage(
                role="user",
                content=Prompts.lieutenant_order_message(
                    order_text=order_text,
                    reports=_lieutenant_reports(ctx.store, lieutenant_id),
                ),
            ),
        ],
        max_tokens=ORDER_MAX_TOKENS,
        temperature=ORDER_TEMPERATURE,
    )
    response = result.content if result.content else f"Failed to reach Lieutenant: {result.error}"
    return desk.record_proposal(order_text, lieutenant_id, response, auto_approve=auto_approve)


__all__ = ["AUTO_APPROVE_KEY", "OrderDesk", "issue_order"]
