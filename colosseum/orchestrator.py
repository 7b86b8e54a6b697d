import argparse
import asyncio
import os
import sys

if (
    __package__ is None or __package__ == ""
):  # pragma: no cover - script execution fallback
    sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from colosseum.data.agent_store import SqliteAgentStore
from colosseum.data.seed import seed_agents
from colosseum.domain.errors import ColosseumError
from colosseum.prompts.composer import PromptComposer
from colosseum.prompts.model_resolver import ModelResolver
from colosseum.services.completion import OpenRouterCompletion
from colosseum.services.context_builder import RoundContext
from colosseum.services.model_catalog import ModelCatalog
from colosseum.services.orders import OrderDesk, issue_order
from colosseum.services.registry import AgentRegistry


def _print_tree(nodes, depth=0):
    for node in nodes:
        indent = "  " * depth
        status = "" if node.is_active else " [inactive]"
        override = f" (override: {node.model_override})" if node.model_override else ""
        print(
            f"{indent}- {node.name} <{node.id}> {node.rank.value} "
            f"v{node.active_version} model={node.effective_model}{override}{status}"
        )
        _print_tree(node.children, depth + 1)


def _print_orders(orders):
    if not orders:
        print("[orchestrator] No orders")
    for order in orders:
        changes = ", ".join(c.agent_id for c in order.proposed_changes) or "(no changes)"
        print(f"#{order.id} [{order.status.value}] via {order.lieutenant_id}: {order.order_text} -> {changes}")


async def _issue_order(store, lieutenant_id, text, auto_approve):
    async with OpenRouterCompletion() as completion:
        ctx = RoundContext(
            store=store,
            composer=PromptComposer(store),
            resolver=ModelResolver(store),
            completion=completion,
        )
        return await issue_order(ctx, lieutenant_id, text, auto_approve=auto_approve)


def run_command(args, store):
    """Execute one parsed subcommand against ``store``."""
    registry = AgentRegistry(store)

    if args.command == "seed":
        inserted = seed_agents(store)
        print(f"[orchestrator] Seeded {inserted} agents")
    elif args.command == "tree":
        _print_tree(registry.agent_tree())
    elif args.command == "compose":
        composed = PromptComposer(store).compose(args.agent, user_custom_prompt=args.custom)
        for section in composed.sections:
            print(f"[orchestrator] section: {section.agent_name} ({section.rank.value})")
        print(composed.text)
    elif args.command == "model":
        print(ModelResolver(store).resolve_model(args.agent))
    elif args.command == "history":
        df = store.versions_frame(args.agent)
        if df.empty:
            print(f"[orchestrator] No prompt versions for '{args.agent}'")
        else:
            print(df[["version", "is_active", "created_by", "created_at", "notes"]].to_string(index=False))
    elif args.command == "set-prompt":
        with open(args.file, "r", encoding="utf-8") as fh:
            text = fh.read()
        registry.create_prompt_version(args.agent, text, args.notes or "", "admin")
    elif args.command == "activate":
        registry.activate_prompt_version(args.agent, args.version)
    elif args.command == "set-model":
        model = None if args.model.lower() in ("none", "inherit", "") else args.model
        if args.agent == "all":
            registry.set_all_model_overrides(model)
        else:
            registry.set_model_override(args.agent, model)
    elif args.command == "sync-chain":
        updated = registry.sync_chain_of_command()
        print(f"[orchestrator] Chain of command synced, {len(updated)} prompts updated")
    elif args.command == "models":
        listing = asyncio.run(ModelCatalog().get_models())
        for m in listing.models:
            price = "free" if m.is_free else f"${m.pricing.input}/${m.pricing.output} per 1M"
            print(f"{m.id:<50} {price:<24} ctx={m.context_window}")
        if not listing.models:
            print("[orchestrator] No models available (missing key or provider error)")
    elif args.command == "order":
        order = asyncio.run(_issue_order(store, args.lieutenant, args.text, args.auto_approve))
        _print_orders([order])
        for change in order.proposed_changes:
            print(f"  - {change.agent_id}: {change.what_changed}")
    elif args.command == "orders":
        if args.agent:
            _print_orders(store.orders_for_agent(args.agent, limit=args.limit))
        else:
            _print_orders(store.list_orders(limit=args.limit))
    elif args.command == "approve":
        approved, status = OrderDesk(store, registry).approve_order(args.order_id, args.agents)
        print(f"[orchestrator] Order #{args.order_id}: approved {len(approved)} changes, status {status.value}")
    elif args.command == "reject":
        OrderDesk(store, registry).reject_order(args.order_id)


def build_parser():
    parser = argparse.ArgumentParser(description="Manage the agent colosseum hierarchy")
    parser.add_argument("--db", default=None, help="SQLite database path (default: $DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("seed", help="Insert the default hierarchy if missing")
    sub.add_parser("tree", help="Show the agent tree")

    compose = sub.add_parser("compose", help="Print the composed prompt for an agent")
    compose.add_argument("agent")
    compose.add_argument("--custom", default=None, help="Text substituted for {USER_CUSTOM_PROMPT}")

    model = sub.add_parser("model", help="Print the model an agent would use")
    model.add_argument("agent")

    history = sub.add_parser("history", help="List an agent's prompt versions")
    history.add_argument("agent")

    set_prompt = sub.add_parser("set-prompt", help="Create and activate a new prompt version from a file")
    set_prompt.add_argument("agent")
    set_prompt.add_argument("file")
    set_prompt.add_argument("--notes", default="")

    activate = sub.add_parser("activate", help="Roll an agent to an existing prompt version")
    activate.add_argument("agent")
    activate.add_argument("version", type=int)

    set_model = sub.add_parser("set-model", help="Set (or clear with 'none') a model override; agent 'all' for every agent")
    set_model.add_argument("agent")
    set_model.add_argument("model")

    sub.add_parser("sync-chain", help="Refresh DIRECT REPORTS blocks in leader prompts")
    sub.add_parser("models", help="List models available from the provider")

    order = sub.add_parser("order", help="Send an order to a lieutenant and record its proposed changes")
    order.add_argument("lieutenant")
    order.add_argument("text")
    order.add_argument(
        "--auto-approve",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Apply proposed changes immediately (persisted as the new default)",
    )

    orders = sub.add_parser("orders", help="List recent orders")
    orders.add_argument("--agent", default=None, help="Only orders affecting this agent")
    orders.add_argument("--limit", type=int, default=20)

    approve = sub.add_parser("approve", help="Apply a pending order's changes")
    approve.add_argument("order_id", type=int)
    approve.add_argument("--agents", nargs="+", default=None, help="Approve only these agents' changes")

    reject = sub.add_parser("reject", help="Reject a pending order")
    reject.add_argument("order_id", type=int)
    return parser


def main(argv=None):
    """CLI entry for registry administration.

    Examples:
      - colosseum tree
      - python -m colosseum.orchestrator compose momentum_trader
    """
    args = build_parser().parse_args(argv)
    store = SqliteAgentStore(args.db)
    seed_agents(store)
    try:
        run_command(args, store)
    except (ColosseumError, ValueError, OSError) as exc:
        print(f"[orchestrator] Error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
