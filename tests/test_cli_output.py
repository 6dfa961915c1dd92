"""Tests for CLI output formatting."""

import io
import json

from solplan.cli_output import CLIOutput, OutputFormat, format_plan_text

RESPONSE = {
    "intent": "Swap 2 SOL → USDC via Jupiter",
    "action_plan": [
        {
            "step": 1,
            "step_type": "swap",
            "protocol_hint": "jupiter",
            "inputs": {"input_token": {"ticker": "SOL", "mint": "So1", "amount": 2}},
            "outputs": {
                "output_token": {"ticker": "USDC", "mint": "EPj", "amount_estimate": None}
            },
            "required_data": ["jupiter_quote"],
            "safety_flags": ["unknown_token:ZZZ"],
            "user_confirmations_needed": ["Token 'ZZZ' is not in the known token registry."],
        }
    ],
    "extracted_entities": {"tickers": ["SOL", "USDC"]},
    "feasibility": "medium",
    "risk_level": "medium",
    "reasons": ["Explicit amount provided"],
    "share_text": "I asked an AI to plan my Solana swap",
}


class TestCLIOutput:
    """Tests for CLIOutput class."""

    def test_text_output_basic(self):
        """Test basic text output."""
        stream = io.StringIO()
        output = CLIOutput(format=OutputFormat.TEXT, stream=stream)

        output.result(RESPONSE)

        content = stream.getvalue()
        assert "Intent: Swap 2 SOL → USDC via Jupiter" in content
        assert "Feasibility: medium  Risk: medium" in content
        assert "1. swap (jupiter)" in content
        assert "in: 2 SOL" in content
        assert "out: USDC" in content
        assert "flags: unknown_token:ZZZ" in content
        assert "- Explicit amount provided" in content

    def test_text_output_verbose_shows_entities(self):
        """Test verbose mode shows extracted entities."""
        stream = io.StringIO()
        output = CLIOutput(format=OutputFormat.TEXT, verbose=True, stream=stream)

        output.result(RESPONSE)

        assert "Extracted entities" in stream.getvalue()

    def test_json_output_format(self):
        """Test JSON output format."""
        stream = io.StringIO()
        output = CLIOutput(format=OutputFormat.JSON, stream=stream)

        output.result(RESPONSE)

        assert json.loads(stream.getvalue()) == RESPONSE

    def test_json_mode_suppresses_status(self):
        """Test that status is suppressed in JSON mode."""
        err = io.StringIO()
        output = CLIOutput(format=OutputFormat.JSON, err_stream=err)

        output.status("Processing...")

        assert err.getvalue() == ""

    def test_error_goes_to_error_stream(self):
        err = io.StringIO()
        output = CLIOutput(format=OutputFormat.JSON, err_stream=err)

        output.error("boom", "EXTRACTION_FAILED")

        assert json.loads(err.getvalue()) == {
            "error": "boom",
            "error_code": "EXTRACTION_FAILED",
        }


class TestFormatPlanText:
    def test_pro_summaries(self):
        response = dict(
            RESPONSE,
            quote_summary={
                "input_amount": 2,
                "input_token": "SOL",
                "output_amount_estimate": 342.18,
                "output_token": "USDC",
                "route_description": "SOL → USDC (direct)",
                "price_impact_pct": 0.001,
            },
            simulation_summary={"sol_change": -2.000005, "note": "Estimated from quote."},
        )

        text = format_plan_text(response)

        assert "Quote: 2 SOL -> ~342.18 USDC" in text
        assert "Estimated SOL change: -2.000005" in text

    def test_missing_quote(self):
        text = format_plan_text(dict(RESPONSE, quote_summary=None))
        assert "Quote: unavailable" in text

    def test_blocked_plan(self):
        text = format_plan_text(
            {
                "intent": "blocked",
                "action_plan": [],
                "feasibility": "low",
                "risk_level": "high",
                "reasons": ["Request appears to contain prompt injection."],
                "share_text": "",
            }
        )
        assert "Steps:" not in text
        assert "prompt injection" in text
