"""CLI output formatting for terminal display.

Provides formatters for plain text and JSON output of plan responses.
"""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any, Dict, List, Optional


class OutputFormat(Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"


class CLIOutput:
    """Unified output handler for CLI."""

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TEXT,
        verbose: bool = False,
        stream: Any = None,
        err_stream: Any = None,
    ) -> None:
        self.format = format
        self.verbose = verbose
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr

    def result(self, response: Dict[str, Any]) -> None:
        """Output a plan response."""
        if self.format == OutputFormat.JSON:
            print(json.dumps(response, indent=2), file=self.stream)
        else:
            print(format_plan_text(response, verbose=self.verbose), file=self.stream)

    def status(self, message: str) -> None:
        if self.format == OutputFormat.JSON:
            return  # Suppress status in JSON mode
        print(f"... {message}", file=self.err_stream)

    def warning(self, message: str) -> None:
        if self.format == OutputFormat.JSON:
            print(json.dumps({"warning": message}), file=self.err_stream)
            return
        print(f"WARNING: {message}", file=self.err_stream)

    def error(self, message: str, error_code: Optional[str] = None) -> None:
        """Output an error message."""
        if self.format == OutputFormat.JSON:
            payload: Dict[str, Any] = {"error": message}
            if error_code:
                payload["error_code"] = error_code
            print(json.dumps(payload), file=self.err_stream)
            return
        prefix = f"ERROR [{error_code}]" if error_code else "ERROR"
        print(f"{prefix}: {message}", file=self.err_stream)


def _describe_token(token: Dict[str, Any], amount_key: str = "amount") -> str:
    amount = token.get(amount_key)
    ticker = token.get("ticker") or "?"
    return f"{amount} {ticker}" if amount is not None else ticker


def _format_step(step: Dict[str, Any]) -> List[str]:
    hint = step.get("protocol_hint") or "any"
    lines = [f"  {step.get('step')}. {step.get('step_type')} ({hint})"]

    inputs = step.get("inputs") or {}
    outputs = step.get("outputs") or {}
    source = inputs.get("input_token") or inputs.get("token")
    if source:
        lines.append(f"     in: {_describe_token(source)}")
    if outputs.get("output_token"):
        lines.append(
            f"     out: {_describe_token(outputs['output_token'], 'amount_estimate')}"
        )
    if inputs.get("destination"):
        lines.append(f"     to: {inputs['destination']}")

    if step.get("user_confirmations_needed"):
        lines.append("     confirm: " + "; ".join(step["user_confirmations_needed"]))
    if step.get("safety_flags"):
        lines.append("     flags: " + ", ".join(step["safety_flags"]))
    return lines


def format_plan_text(response: Dict[str, Any], verbose: bool = False) -> str:
    """Format a plan response for plain text output."""
    lines = [
        f"Intent: {response.get('intent', '')}",
        f"Feasibility: {response.get('feasibility')}  Risk: {response.get('risk_level')}",
    ]

    steps = response.get("action_plan") or []
    if steps:
        lines.append("Steps:")
        for step in steps:
            lines.extend(_format_step(step))

    reasons = response.get("reasons") or []
    if reasons:
        lines.append("Reasons:")
        lines.extend(f"  - {reason}" for reason in reasons)

    quote = response.get("quote_summary")
    if quote:
        lines.append(
            f"Quote: {quote['input_amount']} {quote['input_token']} -> "
            f"~{quote['output_amount_estimate']} {quote['output_token']} "
            f"via {quote['route_description']} (impact {quote['price_impact_pct']}%)"
        )
    elif "quote_summary" in response:
        lines.append("Quote: unavailable")

    simulation = response.get("simulation_summary")
    if simulation:
        lines.append(f"Estimated SOL change: {simulation['sol_change']}")
        lines.append(f"  {simulation['note']}")

    if response.get("share_text"):
        lines.append("")
        lines.append(response["share_text"])

    if verbose:
        lines.append("")
        lines.append("Extracted entities:")
        lines.append(json.dumps(response.get("extracted_entities", {}), indent=2))

    return "\n".join(lines)
