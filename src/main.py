# src/main.py - v2
"""CLI entry point: status, generate, pipeline, usage commands.

Usage:
    storegen status
    storegen generate "<prompt>" [--system ...] [--tenant ...]
    storegen pipeline <product.json> --tenant <id> [--stage ...] [--language ar|en] [--force]
    storegen usage [--limit N] [--tenant <id>]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from storegen.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="storegen",
        description=f"storegen v{__version__} - AI product content generation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Show provider, kill switch and configuration problems",
    )
    p_status.set_defaults(func=_cmd_status)

    # --- generate ---
    p_generate = subparsers.add_parser(
        "generate", help="Send one prompt through the gateway",
    )
    p_generate.add_argument("prompt", help="User prompt")
    p_generate.add_argument("--system", default=None, help="System prompt")
    p_generate.add_argument("--max-tokens", type=int, default=None)
    p_generate.add_argument("--temperature", type=float, default=None)
    p_generate.add_argument("--tenant", default=None, help="Tenant ID for rate limits")
    p_generate.add_argument("--user", default=None, help="User ID for rate limits")
    p_generate.set_defaults(func=_cmd_generate)

    # --- pipeline ---
    p_pipeline = subparsers.add_parser(
        "pipeline", help="Run the generation pipeline for a product",
    )
    p_pipeline.add_argument("product", type=Path, help="Path to product JSON file")
    p_pipeline.add_argument("--tenant", required=True, help="Tenant ID")
    p_pipeline.add_argument("--user", default=None, help="User ID for rate limits")
    p_pipeline.add_argument(
        "--stage", choices=["intelligence", "landing", "ads"], default=None,
        help="Run a single stage (default: full pipeline)",
    )
    p_pipeline.add_argument(
        "--language", choices=["ar", "en"], default=None,
        help="Output language (default: PIPELINE_DEFAULT_LANGUAGE)",
    )
    p_pipeline.add_argument(
        "--force", action="store_true",
        help="Regenerate even if a cached version exists",
    )
    p_pipeline.set_defaults(func=_cmd_pipeline)

    # --- usage ---
    p_usage = subparsers.add_parser(
        "usage", help="Show recorded AI usage",
    )
    p_usage.add_argument("--limit", type=int, default=20)
    p_usage.add_argument("--tenant", default=None)
    p_usage.set_defaults(func=_cmd_usage)

    return parser


def _load_cli_settings():
    from storegen.config.settings import load_settings

    # The CLI has no billing backend to ask, so add-on quotas are not enforced.
    return load_settings(entitlements_enforced=False)


async def _cmd_status(args: argparse.Namespace) -> int:
    """Print gateway status and configuration problems."""
    from storegen.api.facade import build_gateway

    gateway = build_gateway(_load_cli_settings())
    status = gateway.status()
    print("\nAI gateway:")
    print(f"  Provider:    {status.provider}")
    print(f"  Model:       {status.model}")
    print(f"  Configured:  {status.configured}")
    print(f"  Enabled:     {status.enabled}")
    problems = gateway.validate()
    for problem in problems:
        print(f"  ! {problem}")
    return 0 if not problems else 2


async def _cmd_generate(args: argparse.Namespace) -> int:
    """Run one text generation through the gateway."""
    from storegen.api.facade import build_gateway
    from storegen.gateway.models import CallContext
    from storegen.llm.models import GenerationRequest, Message

    gateway = build_gateway(_load_cli_settings())
    messages = []
    if args.system:
        messages.append(Message(role="system", content=args.system))
    messages.append(Message(role="user", content=args.prompt))

    result = await gateway.generate_text(
        GenerationRequest(
            messages=messages, max_tokens=args.max_tokens, temperature=args.temperature,
        ),
        CallContext(feature_key="cli_generate", tenant_id=args.tenant, user_id=args.user),
    )
    print(result.content)
    print(
        f"\n[{result.provider}/{result.model}] {result.usage.total_tokens} tokens",
        file=sys.stderr,
    )
    return 0


async def _cmd_pipeline(args: argparse.Namespace) -> int:
    """Run one stage or the full pipeline for a product file."""
    from storegen.api.facade import build_services
    from storegen.pipeline.products import InMemoryProductRepository, load_product_file

    product_path: Path = args.product
    if not product_path.exists():
        logger.error("File not found: %s", product_path)
        return 1

    settings = _load_cli_settings()
    product = load_product_file(product_path, tenant_id=args.tenant)
    services = build_services(settings, products=InMemoryProductRepository([product]))
    language = args.language or settings.pipeline_default_language

    try:
        if args.stage:
            result = await services.pipeline.run_stage(
                args.stage, args.tenant, product.id, language=language,
                force_regenerate=args.force, user_id=args.user,
            )
            _print_stage(result)
        else:
            full = await services.pipeline.run_full_pipeline(
                args.tenant, product.id, language=language,
                force_regenerate=args.force, user_id=args.user,
            )
            for stage_result in (full.intelligence, full.landing, full.ads):
                _print_stage(stage_result)
            print(f"\nTokens used: {full.total_tokens_used}")
    finally:
        services.close()
    return 0


async def _cmd_usage(args: argparse.Namespace) -> int:
    """Print recent usage entries and a summary from the durable store."""
    from storegen.tracking.call_logger import create_usage_store
    from storegen.tracking.cost_calculator import summarize_usage

    store = create_usage_store(_load_cli_settings())
    if store is None:
        print("No usage store configured (USAGE_STORE_BACKEND=none)")
        return 1

    try:
        entries = await store.query(tenant_id=args.tenant, limit=args.limit)
    finally:
        store.close()

    for e in entries:
        print(
            f"{e.created_at:%Y-%m-%d %H:%M:%S} {e.provider}/{e.model} {e.feature_key} "
            f"{e.total_tokens} tokens ${e.estimated_cost_usd:.4f} {e.status}"
        )
    summary = summarize_usage(entries)
    print(f"\nRequests: {summary.total_requests}")
    print(f"Tokens:   {summary.total_tokens}")
    print(f"Cost:     ${summary.total_cost_usd:.4f}")
    return 0


def _print_stage(result: object) -> None:
    """Print a stage result as a header plus pretty JSON."""
    source = "cache" if result.from_cache else "generated"
    print(f"\n== {result.stage} v{result.version} ({source}) ==")
    print(json.dumps(result.content, ensure_ascii=False, indent=2))


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage from settings."""
    from storegen.config.settings import Settings
    from storegen.logging.logger import setup_logging

    settings = Settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
