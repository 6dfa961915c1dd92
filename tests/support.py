"""Test doubles: scripted extractors and an offline HTTP transport."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx

from solplan.errors import ExtractionError
from solplan.plan_types import Constraints, ExtractedEntities

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
VALID_DESTINATION = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def swap_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "action_type": "swap",
        "tokens": [
            {"ticker": "SOL", "role": "source"},
            {"ticker": "USDC", "role": "destination"},
        ],
        "amounts": [{"value": 2, "ticker": "SOL"}],
        "destination": None,
        "slippage_bps": 100,
        "priority_fee_lamports": None,
        "protocol_preference": None,
        "raw_confidence": 0.95,
    }
    payload.update(overrides)
    return payload


class DummyExtractor:
    """Returns a fixed payload and counts calls."""

    def __init__(self, payload: Optional[Dict[str, Any]] = None) -> None:
        self.payload = payload or swap_payload()
        self.calls: List[str] = []

    async def extract(
        self, prompt: str, constraints: Optional[Constraints] = None
    ) -> ExtractedEntities:
        self.calls.append(prompt)
        return ExtractedEntities.from_payload(self.payload)


class FailingExtractor:
    def __init__(self, message: str = "model unavailable") -> None:
        self.message = message
        self.calls = 0

    async def extract(
        self, prompt: str, constraints: Optional[Constraints] = None
    ) -> ExtractedEntities:
        self.calls += 1
        raise ExtractionError(self.message)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def empty_token_list(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=[])



class FakeModel:
    """Replays scripted Gemini replies; an Exception entry is raised instead."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def generate_content_async(self, contents, generation_config=None):
        self.calls.append({"contents": contents, "config": generation_config})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)
