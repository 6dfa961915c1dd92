"""CLI interface for the Solana plan translator.

Plan a single prompt from the command line without running the server.

Usage:
    python -m solplan.cli "swap 2 SOL to USDC"
    python -m solplan.cli --mode pro "swap 2 SOL to USDC with 1% slippage"
    python -m solplan.cli --output json --constraints '{"max_slippage_bps": 50}' "..."
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from solplan.api import build_pipeline
from solplan.cli_output import CLIOutput, OutputFormat
from solplan.config import load_settings
from solplan.errors import PlanError
from solplan.pipeline import PlanPipeline
from solplan.plan_types import NLPlanRequest
from solplan.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Translate a natural-language Solana request into an action plan",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m solplan.cli "swap 2 SOL to USDC"
  python -m solplan.cli --mode pro "swap 2 SOL to USDC"
  python -m solplan.cli --stdin < prompt.txt
        """,
    )
    parser.add_argument("prompt", nargs="?", help="Natural language request")
    parser.add_argument(
        "-m", "--mode", choices=["lite", "pro"], default="lite", help="Plan mode"
    )
    parser.add_argument("-w", "--wallet", help="Wallet address (pro mode context)")
    parser.add_argument(
        "-c", "--constraints", help="Constraints as a JSON object"
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--no-cache", action="store_true", help="Bypass the response cache"
    )
    parser.add_argument("--stdin", action="store_true", help="Read prompt from stdin")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show extracted entities"
    )
    return parser


def build_payload(args: argparse.Namespace, prompt: str) -> Dict[str, Any]:
    """Shape CLI arguments like an HTTP request body."""
    payload: Dict[str, Any] = {"prompt": prompt, "mode": args.mode}
    if args.wallet:
        payload["wallet"] = args.wallet
    if args.constraints:
        try:
            payload["constraints"] = json.loads(args.constraints)
        except json.JSONDecodeError as exc:
            raise ValueError(f"--constraints is not valid JSON: {exc}") from exc
    return payload


async def run_single_prompt(
    pipeline: PlanPipeline,
    payload: Dict[str, Any],
    output: CLIOutput,
    no_cache: bool = False,
) -> int:
    """Plan one prompt and print the result. Returns the process exit code."""
    try:
        request = NLPlanRequest.from_payload(payload)
        output.status(f"Planning: {request.prompt}")
        response = await pipeline.process_plan(request, no_cache=no_cache)
    except PlanError as exc:
        output.error(exc.message, exc.error_code)
        if exc.detail:
            output.warning(exc.detail)
        return 1

    output.result(response)
    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    output = CLIOutput(format=OutputFormat(args.output), verbose=args.verbose)

    prompt: Optional[str] = args.prompt
    if args.stdin:
        prompt = sys.stdin.read().strip()
    if not prompt:
        parser.print_help()
        return 1

    try:
        payload = build_payload(args, prompt)
    except ValueError as exc:
        output.error(str(exc))
        return 1

    try:
        settings = load_settings()
    except RuntimeError as exc:
        output.error(f"Failed to load settings: {exc}")
        return 1

    configure_logging(
        "DEBUG" if args.verbose else settings.log_level, stream=sys.stderr
    )

    pipeline = build_pipeline(settings)
    try:
        await pipeline.registry.refresh()
        return await run_single_prompt(pipeline, payload, output, no_cache=args.no_cache)
    finally:
        await pipeline.aclose()


def cli_main() -> None:
    """Synchronous wrapper for CLI entry."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli_main()
