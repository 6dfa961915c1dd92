"""Turn a validation result into the final, display-ready action plan."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from solplan.plan_types import (
    NATIVE_MINT,
    NATIVE_TICKER,
    ActionPlan,
    ActionStep,
    ActionType,
    ExtractedEntities,
    RiskLevel,
    TokenRef,
    TokenRole,
    ValidationResult,
)
from solplan.risk import classify_risk
from solplan.utils.formatting import capitalize, format_amount, shorten_address
from solplan.utils.protocols import (
    get_protocol_display_name,
    required_data_for,
    resolve_protocol_hint,
)
from solplan.validator import (
    DENYLISTED_TOKEN_FLAG,
    INVALID_DESTINATION_FLAG,
    LOW_CONFIDENCE_THRESHOLD,
    UNKNOWN_TOKEN_FLAG,
)

STAKING_ACTIONS = (ActionType.STAKE, ActionType.UNSTAKE)


def assemble_plan(validation: ValidationResult) -> ActionPlan:
    """Build the single-step plan for the first extracted action."""
    entities = validation.entities
    protocol_hint = resolve_protocol_hint(
        entities.action_type, entities.protocol_preference
    )
    risk_level = classify_risk(
        entities.action_type,
        validation.safety_flags,
        validation.user_confirmations_needed,
    )

    return ActionPlan(
        intent=build_intent(entities, protocol_hint),
        action_plan=[build_step(1, protocol_hint, validation)],
        extracted_entities=_flatten_entities(validation),
        feasibility=validation.feasibility,
        risk_level=risk_level,
        reasons=generate_reasons(validation, protocol_hint, risk_level),
        share_text=build_share_text(entities, protocol_hint),
    )


def _flatten_entities(validation: ValidationResult) -> Dict[str, Any]:
    entities = validation.entities
    return {
        "amounts": [amount.to_dict() for amount in entities.amounts],
        "tickers": [token.ticker.upper() for token in entities.tokens],
        "mints": {
            ticker: entry.mint for ticker, entry in validation.resolved_tokens.items()
        },
        "slippage_bps": entities.slippage_bps,
        "priority_fee": entities.priority_fee_lamports,
        "destinations": [entities.destination] if entities.destination else [],
    }


def _token_descriptor(
    token: Optional[TokenRef],
    validation: ValidationResult,
    amount: Any = None,
) -> Dict[str, Any]:
    """Ticker/mint/amount triple with explicit nulls for missing parts."""
    if token is None:
        return {"ticker": None, "mint": None, "amount": amount}
    ticker = token.ticker.upper()
    entry = validation.resolved_tokens.get(ticker)
    return {
        "ticker": ticker,
        "mint": entry.mint if entry else None,
        "amount": amount,
    }


def build_step(
    step_number: int, protocol_hint: Optional[str], validation: ValidationResult
) -> ActionStep:
    entities = validation.entities
    action = entities.action_type
    inputs: Dict[str, Any] = {}
    outputs: Dict[str, Any] = {}
    first_amount = entities.amounts[0].value if entities.amounts else None

    if action is ActionType.SWAP:
        source = entities.first_token(TokenRole.SOURCE)
        destination = entities.first_token(TokenRole.DESTINATION)
        inputs["input_token"] = _token_descriptor(
            source,
            validation,
            entities.amount_for(source.ticker) if source else None,
        )
        if entities.slippage_bps is not None:
            inputs["slippage_bps"] = entities.slippage_bps
        output = _token_descriptor(destination, validation)
        outputs["output_token"] = {
            "ticker": output["ticker"],
            "mint": output["mint"],
            "amount_estimate": None,
        }
    elif action is ActionType.TRANSFER:
        source = entities.first_token(TokenRole.SOURCE)
        inputs["token"] = _token_descriptor(source, validation, first_amount)
        inputs["destination"] = entities.destination
    elif action in STAKING_ACTIONS:
        inputs["token"] = {
            "ticker": NATIVE_TICKER,
            "mint": NATIVE_MINT,
            "amount": first_amount,
        }
    else:
        for token in entities.tokens:
            inputs[token.role.value] = _token_descriptor(
                token, validation, entities.amount_for(token.ticker)
            )

    return ActionStep(
        step=step_number,
        step_type=action,
        protocol_hint=protocol_hint,
        inputs=inputs,
        outputs=outputs,
        required_data=required_data_for(action, protocol_hint),
        safety_flags=list(validation.safety_flags),
        user_confirmations_needed=list(validation.user_confirmations_needed),
    )


def generate_reasons(
    validation: ValidationResult,
    protocol_hint: Optional[str],
    risk_level: RiskLevel,
) -> List[str]:
    """Deterministic rationale derived from validation state."""
    entities = validation.entities
    reasons: List[str] = []

    known = len(validation.resolved_tokens)
    if known > 0 and known == len(entities.tokens):
        reasons.append("Well-known tokens")
    if entities.amounts:
        reasons.append("Explicit amount provided")
    if entities.slippage_bps is not None:
        reasons.append("Explicit slippage provided")
    if protocol_hint:
        reasons.append(f"Standard {protocol_hint} {entities.action_type.value}")

    for flag in validation.safety_flags:
        kind, _, subject = flag.partition(":")
        if kind == UNKNOWN_TOKEN_FLAG:
            reasons.append(f"Unknown token: {subject}")
        elif kind == DENYLISTED_TOKEN_FLAG:
            reasons.append(f"Denylisted token: {subject}")
        elif kind == INVALID_DESTINATION_FLAG:
            reasons.append("Invalid destination address")

    if entities.raw_confidence < LOW_CONFIDENCE_THRESHOLD:
        reasons.append("Low extraction confidence")
    if risk_level is RiskLevel.HIGH and not reasons:
        reasons.append("Action type could not be determined")

    return reasons


def build_intent(entities: ExtractedEntities, protocol_hint: Optional[str]) -> str:
    """One-line summary of the intent; display only."""
    action = entities.action_type
    via = f" via {get_protocol_display_name(protocol_hint)}" if protocol_hint else ""

    if action is ActionType.SWAP and entities.amounts:
        amount = entities.amounts[0]
        destination = entities.first_token(TokenRole.DESTINATION)
        target = destination.ticker.upper() if destination else "?"
        return (
            f"Swap {format_amount(amount.value)} {amount.ticker.upper()} → "
            f"{target}{via}"
        )

    if action is ActionType.TRANSFER and entities.amounts:
        amount = entities.amounts[0]
        recipient = (
            f" to {shorten_address(entities.destination)}"
            if entities.destination
            else ""
        )
        return (
            f"Transfer {format_amount(amount.value)} {amount.ticker.upper()}"
            f"{recipient}"
        )

    if action in STAKING_ACTIONS:
        parts = [capitalize(action.value)]
        if entities.amounts:
            parts.append(f"{format_amount(entities.amounts[0].value)} {NATIVE_TICKER}")
        return " ".join(parts) + via

    return f"{capitalize(action.value)} action"


def build_share_text(
    entities: ExtractedEntities, protocol_hint: Optional[str]
) -> str:
    """Shareable one-liner; never fed back into validation."""
    action = entities.action_type
    via = f" via {protocol_hint}" if protocol_hint else ""

    if action is ActionType.SWAP and entities.amounts:
        amount = entities.amounts[0]
        destination = entities.first_token(TokenRole.DESTINATION)
        target = destination.ticker.upper() if destination else "?"
        return (
            "I asked an AI to plan my Solana swap in plain English: "
            f"{format_amount(amount.value)} {amount.ticker.upper()} → {target}{via}, "
            "no code needed"
        )

    if action is ActionType.TRANSFER and entities.amounts:
        amount = entities.amounts[0]
        return (
            f"I just planned a {format_amount(amount.value)} "
            f"{amount.ticker.upper()} transfer on Solana using plain English"
        )

    if action in STAKING_ACTIONS:
        stake_amount = (
            f"{format_amount(entities.amounts[0].value)} {NATIVE_TICKER} "
            if entities.amounts
            else ""
        )
        return (
            f"I planned a {stake_amount}{action.value}{via} on Solana "
            "using plain English"
        )

    return (
        f"I used an AI to plan a Solana {action.value} action "
        "in plain English"
    )


__all__ = [
    "assemble_plan",
    "build_intent",
    "build_share_text",
    "build_step",
    "generate_reasons",
]
