"""Live quote and cost estimate for swap plans (pro mode only)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from solplan.plan_types import (
    NATIVE_MINT,
    ActionPlan,
    ActionType,
    QuoteSummary,
    SimulationSummary,
)
from solplan.utils.formatting import format_amount

DEFAULT_QUOTE_URL = "https://quote-api.jup.ag/v6/quote"
DEFAULT_SLIPPAGE_BPS = 50
NATIVE_DECIMALS = 9
DEFAULT_DECIMALS = 6
ESTIMATED_SWAP_COMPUTE_UNITS = 200_000
ESTIMATED_TX_FEE_SOL = 0.000005  # 5000 lamports
ESTIMATE_NOTE = "Estimated from quote. No on-chain simulation was performed."


@dataclass
class EnrichmentResult:
    quote_summary: Optional[QuoteSummary] = None
    simulation_summary: Optional[SimulationSummary] = None
    error: Optional[str] = None


def to_smallest_unit(amount: float, decimals: int) -> int:
    return round(amount * 10**decimals)


def decimals_for(mint: str, decimals_map: Mapping[str, int]) -> int:
    """Caller-supplied precision, else 9 for SOL and 6 for everything else."""
    if mint in decimals_map:
        return decimals_map[mint]
    return NATIVE_DECIMALS if mint == NATIVE_MINT else DEFAULT_DECIMALS


class ProEnricher:
    """Attach a quote-derived summary to swap plans.

    Every failure degrades to an :class:`EnrichmentResult` with an ``error``
    string; the base plan is never affected.
    """

    def __init__(
        self,
        quote_url: str = DEFAULT_QUOTE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.quote_url = quote_url
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout

    async def enrich(
        self,
        plan: ActionPlan,
        wallet: Optional[str] = None,
        decimals_map: Optional[Mapping[str, int]] = None,
    ) -> EnrichmentResult:
        step = plan.action_plan[0] if plan.action_plan else None
        if step is None or step.step_type is not ActionType.SWAP:
            return EnrichmentResult()

        input_token = step.inputs.get("input_token") or {}
        output_token = step.outputs.get("output_token") or {}
        input_mint = input_token.get("mint")
        output_mint = output_token.get("mint")
        amount = input_token.get("amount")
        if not input_mint or not output_mint or amount is None:
            return EnrichmentResult()

        decimals_map = decimals_map or {}
        slippage = plan.extracted_entities.get("slippage_bps")
        quote, error = await self._fetch_quote(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount,
            input_ticker=input_token.get("ticker") or "?",
            output_ticker=output_token.get("ticker") or "?",
            input_decimals=decimals_for(input_mint, decimals_map),
            output_decimals=decimals_for(output_mint, decimals_map),
            slippage_bps=DEFAULT_SLIPPAGE_BPS if slippage is None else slippage,
        )

        simulation = None
        if wallet and quote is not None:
            simulation = estimate_transaction_cost(
                amount=amount,
                input_mint=input_mint,
                input_ticker=quote.input_token,
                output_ticker=quote.output_token,
                estimated_output=quote.output_amount_estimate,
            )

        return EnrichmentResult(
            quote_summary=quote, simulation_summary=simulation, error=error
        )

    async def _fetch_quote(
        self,
        *,
        input_mint: str,
        output_mint: str,
        amount: float,
        input_ticker: str,
        output_ticker: str,
        input_decimals: int,
        output_decimals: int,
        slippage_bps: float,
    ) -> Tuple[Optional[QuoteSummary], Optional[str]]:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(to_smallest_unit(amount, input_decimals)),
            "slippageBps": format_amount(slippage_bps),
        }
        try:
            response = await self._get_client().get(self.quote_url, params=params)
            if not response.is_success:
                return None, f"Jupiter API returned {response.status_code}"
            data: Dict[str, Any] = response.json()
            out_amount = int(data["outAmount"])
            price_impact = float(data.get("priceImpactPct") or 0.0)
            labels = [
                leg["swapInfo"]["label"]
                for leg in data.get("routePlan") or []
                if leg.get("swapInfo", {}).get("label")
            ]
        except (
            httpx.HTTPError,
            ValueError,
            KeyError,
            TypeError,
            AttributeError,
        ) as exc:
            return None, f"Jupiter fetch failed: {exc}"

        route = " → ".join(labels) or "direct"
        quote = QuoteSummary(
            source="jupiter",
            input_amount=amount,
            input_token=input_ticker,
            output_amount_estimate=round(
                out_amount / 10**output_decimals, output_decimals
            ),
            output_token=output_ticker,
            price_impact_pct=price_impact,
            route_description=f"{input_ticker} → {output_ticker} ({route})",
            fetched_at=datetime.now(timezone.utc).isoformat(),
        )
        return quote, None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def estimate_transaction_cost(
    *,
    amount: float,
    input_mint: str,
    input_ticker: str,
    output_ticker: str,
    estimated_output: float,
) -> SimulationSummary:
    """Rough SOL and token deltas; labelled as an estimate, not a simulation."""
    spends_native = input_mint == NATIVE_MINT
    sol_spent = ESTIMATED_TX_FEE_SOL + (amount if spends_native else 0)

    token_changes = []
    if not spends_native:
        token_changes.append(
            {"token": input_ticker, "change": f"-{format_amount(amount)}"}
        )
    token_changes.append(
        {"token": output_ticker, "change": f"+{format_amount(estimated_output)}"}
    )

    return SimulationSummary(
        status="estimated",
        sol_change=-round(sol_spent, NATIVE_DECIMALS),
        token_changes=token_changes,
        estimated_compute_units=ESTIMATED_SWAP_COMPUTE_UNITS,
        note=ESTIMATE_NOTE,
    )


__all__ = [
    "DEFAULT_QUOTE_URL",
    "ESTIMATE_NOTE",
    "EnrichmentResult",
    "ProEnricher",
    "decimals_for",
    "estimate_transaction_cost",
    "to_smallest_unit",
]
