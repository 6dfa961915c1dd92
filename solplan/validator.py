"""Validate extracted entities against the registry and user constraints."""

from __future__ import annotations

import dataclasses
import re
from typing import Dict, List, Optional

from solplan.plan_types import (
    ActionType,
    Constraints,
    ExtractedEntities,
    Feasibility,
    TokenRegistryEntry,
    ValidationResult,
)
from solplan.token_registry import ResolutionStatus, TokenRegistry

BASE58_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
LOW_CONFIDENCE_THRESHOLD = 0.5

UNKNOWN_TOKEN_FLAG = "unknown_token"
DENYLISTED_TOKEN_FLAG = "denylisted_token"
INVALID_DESTINATION_FLAG = "invalid_destination"


def is_valid_address(value: str) -> bool:
    """Shape check for a base58 Solana public key."""
    return bool(BASE58_ADDRESS_PATTERN.match(value))


class _Findings:
    """Accumulates flags and confirmations while lowering feasibility."""

    def __init__(self) -> None:
        self.safety_flags: List[str] = []
        self.confirmations: List[str] = []
        self.feasibility = Feasibility.HIGH

    def record(
        self,
        confirmation: str,
        downgrade_to: Feasibility,
        flag: Optional[str] = None,
    ) -> None:
        if flag is not None:
            self.safety_flags.append(flag)
        self.confirmations.append(confirmation)
        self.feasibility = self.feasibility.downgrade(downgrade_to)


def validate_entities(
    entities: ExtractedEntities,
    constraints: Optional[Constraints],
    registry: TokenRegistry,
) -> ValidationResult:
    """Resolve tokens and collect safety flags in a fixed order.

    The checks run as: token resolution, denylist, amount presence, transfer
    destination, slippage cap, extraction confidence. Flags and confirmations
    come out in that order so downstream rationale text is deterministic.
    """
    policy = constraints or Constraints()
    findings = _Findings()
    resolved: Dict[str, TokenRegistryEntry] = {}

    for token in entities.tokens:
        ticker = token.ticker.upper()
        resolution = registry.lookup(ticker)

        if resolution.status is ResolutionStatus.AMBIGUOUS:
            findings.record(
                f"Multiple tokens match '{ticker}'. Please provide the mint address.",
                Feasibility.MEDIUM,
            )
        elif resolution.status is ResolutionStatus.RESOLVED:
            resolved[ticker] = resolution.entry
        elif not policy.allow_unknown_tokens:
            findings.record(
                f"Token '{ticker}' is not in the known token registry. Please "
                "provide the mint address or enable allow_unknown_tokens.",
                Feasibility.MEDIUM,
                flag=f"{UNKNOWN_TOKEN_FLAG}:{ticker}",
            )

    if policy.denylist_mints:
        denied = set(policy.denylist_mints)
        for ticker, entry in resolved.items():
            if entry.mint in denied:
                findings.record(
                    f"Token '{ticker}' ({entry.mint}) is on your denylist.",
                    Feasibility.LOW,
                    flag=f"{DENYLISTED_TOKEN_FLAG}:{ticker}",
                )

    if not entities.amounts:
        findings.record(
            f"Amount not specified for {entities.action_type.value}. How much?",
            Feasibility.LOW,
        )

    if entities.action_type is ActionType.TRANSFER:
        if not entities.destination:
            findings.record(
                "No destination address provided for transfer.", Feasibility.LOW
            )
        elif not is_valid_address(entities.destination):
            findings.record(
                f"Destination '{entities.destination}' does not appear to be a "
                "valid Solana address.",
                Feasibility.LOW,
                flag=INVALID_DESTINATION_FLAG,
            )

    # Slippage above the user's ceiling is clamped without a flag
    if (
        policy.max_slippage_bps is not None
        and entities.slippage_bps is not None
        and entities.slippage_bps > policy.max_slippage_bps
    ):
        ceiling = policy.max_slippage_bps
        entities = dataclasses.replace(
            entities,
            slippage_bps=int(ceiling) if float(ceiling).is_integer() else ceiling,
        )

    if entities.raw_confidence < LOW_CONFIDENCE_THRESHOLD:
        findings.record(
            "Low confidence in intent extraction. Please rephrase or provide more "
            "detail.",
            Feasibility.MEDIUM,
        )

    return ValidationResult(
        entities=entities,
        resolved_tokens=resolved,
        safety_flags=findings.safety_flags,
        user_confirmations_needed=findings.confirmations,
        feasibility=findings.feasibility,
    )


__all__ = [
    "BASE58_ADDRESS_PATTERN",
    "DENYLISTED_TOKEN_FLAG",
    "INVALID_DESTINATION_FLAG",
    "UNKNOWN_TOKEN_FLAG",
    "is_valid_address",
    "validate_entities",
]
