"""CLI commands for inspecting and maintaining user memory.

Provides subcommands for listing, setting and deleting facts, and for
running the summary and consolidation jobs by hand.
"""

import argparse
import asyncio
import os

from .app import MemoryApp
from .config import config_from_env, load_config
from .memory import ConsolidationOutcome, LimitReachedError, MemoryStoreError


def _get_app() -> MemoryApp:
    """Create a MemoryApp with config loaded from disk and environment."""
    return MemoryApp(config_from_env(load_config()))


def _print_error(error: MemoryStoreError) -> None:
    if isinstance(error, LimitReachedError):
        print(f"Error: {error.code} (max {error.max})")
    else:
        print(f"Error: {error.code}")


def cmd_list(args: argparse.Namespace) -> int:
    """List a user's facts and summary."""
    app = _get_app()
    try:
        facts = app.store.list(args.user)
        summary = app.store.get_summary(args.user)
    finally:
        app.close()

    if not facts:
        print("No memories stored.")
    else:
        width = max(len(f.key) for f in facts)
        for fact in facts:
            value = fact.value
            if len(value) > 60:
                value = value[:57] + "..."
            print(f"{fact.key:<{width}}  {value}")

    print(f"\nTotal: {len(facts)}/{app.config.max_memories} memories")
    if summary:
        print(f"\nSummary:\n{summary}")
    return 0


def cmd_set(args: argparse.Namespace) -> int:
    """Store a fact and run the jobs it triggers."""
    app = _get_app()
    try:
        fact = app.store.set(args.user, args.key, args.value)
        print(f"Saved: {fact.key} = {fact.value}")
        asyncio.run(app.scheduler.drain())
    except MemoryStoreError as e:
        _print_error(e)
        return 1
    finally:
        app.close()
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a fact and refresh the summary."""
    app = _get_app()
    try:
        app.store.delete(args.user, args.key)
        print(f"Deleted: {args.key}")
        asyncio.run(app.scheduler.drain())
    except MemoryStoreError as e:
        _print_error(e)
        return 1
    finally:
        app.close()
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    """Regenerate the profile summary now."""
    app = _get_app()
    try:
        summary = asyncio.run(app.summaries.run(user_id=args.user))
    finally:
        app.close()

    if summary is None:
        print("No summary generated.")
        return 1
    print(summary)
    return 0


def cmd_consolidate(args: argparse.Namespace) -> int:
    """Run consolidation now and report the outcome."""
    app = _get_app()

    async def _run() -> ConsolidationOutcome:
        result = await app.consolidation.run(user_id=args.user)
        await app.scheduler.drain()
        if result.outcome is ConsolidationOutcome.APPLIED:
            print(f"Consolidated {result.before} -> {result.after} memories")
        else:
            print(f"Consolidation skipped: {result.outcome.value}")
        return result.outcome

    try:
        outcome = asyncio.run(_run())
    finally:
        app.close()
    return 0 if outcome is ConsolidationOutcome.APPLIED else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(_get_app()), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memoir",
        description="Persistent per-user memory for AI assistants",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_list = subparsers.add_parser("list", help="List a user's memories")
    p_list.add_argument("user", help="User id")
    p_list.set_defaults(func=cmd_list)

    p_set = subparsers.add_parser("set", help="Create or update a memory")
    p_set.add_argument("user", help="User id")
    p_set.add_argument("key", help="Memory key")
    p_set.add_argument("value", help="Memory value")
    p_set.set_defaults(func=cmd_set)

    p_delete = subparsers.add_parser("delete", help="Delete a memory")
    p_delete.add_argument("user", help="User id")
    p_delete.add_argument("key", help="Memory key")
    p_delete.set_defaults(func=cmd_delete)

    p_summary = subparsers.add_parser("summary", help="Regenerate the profile summary")
    p_summary.add_argument("user", help="User id")
    p_summary.set_defaults(func=cmd_summary)

    p_consolidate = subparsers.add_parser("consolidate", help="Consolidate memories now")
    p_consolidate.add_argument("user", help="User id")
    p_consolidate.set_defaults(func=cmd_consolidate)

    p_serve = subparsers.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=os.getenv("MEMOIR_HOST", "127.0.0.1"))
    p_serve.add_argument("--port", type=int, default=int(os.getenv("MEMOIR_PORT", "8000")))
    p_serve.set_defaults(func=cmd_serve)

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Parse arguments and run the selected command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)
