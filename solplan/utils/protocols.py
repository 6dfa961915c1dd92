"""Helpers for resolving protocol hints per action type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from solplan.plan_types import ActionType
from solplan.utils.formatting import capitalize


@dataclass(frozen=True)
class ProtocolRoute:
    """Default venue for an action and the preferences it accepts."""

    default: Optional[str]
    aliases: Dict[str, str]


_STAKING_ALIASES = {"marinade": "marinade", "jito": "jito"}
_LENDING_ALIASES = {"marginfi": "marginfi", "kamino": "kamino"}
_NFT_ALIASES = {"tensor": "tensor"}

PROTOCOL_ROUTES: Dict[ActionType, ProtocolRoute] = {
    ActionType.SWAP: ProtocolRoute(
        default="jupiter",
        aliases={
            "raydium": "raydium",
            "pump": "pumpswap",
            "pumpfun": "pumpswap",
            "pumpswap": "pumpswap",
        },
    ),
    ActionType.TRANSFER: ProtocolRoute(default=None, aliases={}),
    ActionType.STAKE: ProtocolRoute(default="sanctum", aliases=_STAKING_ALIASES),
    ActionType.UNSTAKE: ProtocolRoute(default="sanctum", aliases=_STAKING_ALIASES),
    ActionType.LEND: ProtocolRoute(default=None, aliases=_LENDING_ALIASES),
    ActionType.BORROW: ProtocolRoute(default=None, aliases=_LENDING_ALIASES),
    ActionType.NFT_BUY: ProtocolRoute(default=None, aliases=_NFT_ALIASES),
    ActionType.NFT_SELL: ProtocolRoute(default=None, aliases=_NFT_ALIASES),
}

# What must still be fetched before a plan of each type could be executed
REQUIRED_DATA: Dict[ActionType, Tuple[str, ...]] = {
    ActionType.TRANSFER: ("recipient_account_check",),
    ActionType.STAKE: ("validator_info",),
    ActionType.UNSTAKE: ("validator_info",),
    ActionType.LEND: ("protocol_rates",),
    ActionType.BORROW: ("protocol_rates",),
    ActionType.NFT_BUY: ("nft_listing_info",),
    ActionType.NFT_SELL: ("nft_listing_info",),
}

SUPPORTED_PROTOCOLS: List[str] = [
    "jupiter",
    "sanctum",
    "pumpfun",
    "pumpswap",
    "raydium",
    "tensor",
    "marinade",
    "jito",
]


def resolve_protocol_hint(
    action_type: ActionType, preference: Optional[str] = None
) -> Optional[str]:
    """Pick the venue for ``action_type``, honouring a recognised preference.

    Args:
        action_type: The extracted action.
        preference: Free-text protocol the user named, if any.

    Returns:
        Protocol key (e.g. "jupiter") or None when the action has no venue.
    """
    route = PROTOCOL_ROUTES.get(action_type)
    if route is None:
        return None

    if preference:
        key = route.aliases.get(preference.strip().lower())
        if key:
            return key

    return route.default


def required_data_for(
    action_type: ActionType, protocol_hint: Optional[str]
) -> List[str]:
    if action_type is ActionType.SWAP:
        return ["jupiter_quote"] if protocol_hint == "jupiter" else ["quote"]
    return list(REQUIRED_DATA.get(action_type, ()))


def get_protocol_display_name(protocol_key: str) -> str:
    """Human-friendly name for a protocol key (e.g. "jupiter" -> "Jupiter")."""
    return capitalize(protocol_key)


__all__ = [
    "PROTOCOL_ROUTES",
    "ProtocolRoute",
    "REQUIRED_DATA",
    "SUPPORTED_PROTOCOLS",
    "get_protocol_display_name",
    "required_data_for",
    "resolve_protocol_hint",
]
