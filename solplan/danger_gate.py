"""Pre-extraction safety gate over the raw prompt text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

INJECTION_REASON = "Request appears to contain prompt injection. No plan generated."
DRAIN_REASON = (
    "Request contains a potentially dangerous full-balance or unlimited approval "
    "pattern."
)

# Attempts to steer the extractor or obtain signable output
INJECTION_PATTERNS: Sequence[Pattern[str]] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"ignore\s+.*(instructions|rules|safety)",
        r"override\s+.*(safety|rules)",
        r"(disregard|forget)\s+.*instructions",
        r"bypass\s+.*safety",
        r"generate\s+.*sign",
        r"return\s+.*(transaction|raw\s*bytes)",
        r"raw\s+.*bytes",
        r"system\s*prompt",
        r"you\s+are\s+now",
        r"new\s+instructions",
    )
)

# Full-balance transfers and unlimited authority grants
DRAIN_PATTERNS: Sequence[Pattern[str]] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(send|transfer)\s+(all|everything)",
        r"approve\s+unlimited",
        r"delegate\s+authority",
        r"max\s+amount",
        r"(entire\s+balance|all\s+my\s+(sol|tokens|funds|balance))",
        r"drain",
        r"sweep\s+all",
    )
)


@dataclass(frozen=True)
class DangerVerdict:
    """Outcome of :func:`detect_danger`."""

    is_dangerous: bool
    reason: Optional[str] = None
    family: Optional[str] = None  # "injection" or "drain"
    pattern: Optional[str] = None


SAFE = DangerVerdict(is_dangerous=False)


def _first_match(
    prompt: str, patterns: Sequence[Pattern[str]]
) -> Optional[Pattern[str]]:
    for pattern in patterns:
        if pattern.search(prompt):
            return pattern
    return None


def detect_danger(prompt: str) -> DangerVerdict:
    """Classify ``prompt``; injection patterns take priority over drain ones."""
    matched = _first_match(prompt, INJECTION_PATTERNS)
    if matched is not None:
        return DangerVerdict(True, INJECTION_REASON, "injection", matched.pattern)

    matched = _first_match(prompt, DRAIN_PATTERNS)
    if matched is not None:
        return DangerVerdict(True, DRAIN_REASON, "drain", matched.pattern)

    return SAFE


__all__ = [
    "DRAIN_PATTERNS",
    "DRAIN_REASON",
    "DangerVerdict",
    "INJECTION_PATTERNS",
    "INJECTION_REASON",
    "detect_danger",
]
