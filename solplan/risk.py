"""Risk classification for an assembled action."""

from __future__ import annotations

from typing import Sequence

from solplan.plan_types import ActionType, RiskLevel
from solplan.validator import DENYLISTED_TOKEN_FLAG, INVALID_DESTINATION_FLAG

HIGH_RISK_FLAG_PREFIXES = (INVALID_DESTINATION_FLAG, DENYLISTED_TOKEN_FLAG)

# Protocol or counterparty exposure even when validation is clean
INHERENTLY_RISKY_ACTIONS = frozenset(
    {ActionType.LEND, ActionType.BORROW, ActionType.NFT_BUY, ActionType.NFT_SELL}
)


def classify_risk(
    action_type: ActionType,
    safety_flags: Sequence[str],
    confirmations_needed: Sequence[str],
) -> RiskLevel:
    """Return the risk level; the first matching rule wins."""
    if len(safety_flags) >= 2:
        return RiskLevel.HIGH
    if action_type is ActionType.UNKNOWN:
        return RiskLevel.HIGH
    if any(flag.startswith(HIGH_RISK_FLAG_PREFIXES) for flag in safety_flags):
        return RiskLevel.HIGH

    if safety_flags:
        return RiskLevel.MEDIUM
    if confirmations_needed:
        return RiskLevel.MEDIUM
    if action_type in INHERENTLY_RISKY_ACTIONS:
        return RiskLevel.MEDIUM

    return RiskLevel.LOW


__all__ = ["HIGH_RISK_FLAG_PREFIXES", "INHERENTLY_RISKY_ACTIONS", "classify_risk"]
