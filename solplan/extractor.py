"""Gemini-backed extraction of structured intent from a free-text prompt."""

from __future__ import annotations

import json
import textwrap
from typing import Any, Dict, List, Optional, Protocol

import google.generativeai as genai

from solplan.errors import ExtractionError
from solplan.plan_types import Constraints, ExtractedEntities
from solplan.utils.json_utils import parse_llm_json
from solplan.utils.logging import get_logger

logger = get_logger(__name__)

MAX_INPUT_CHARS = 4096
MAX_OUTPUT_TOKENS = 512
MAX_ATTEMPTS = 2


class EntityExtractor(Protocol):
    """Protocol for extractor implementations.

    Implementations return well-formed entities or raise
    :class:`~solplan.errors.ExtractionError`; the pipeline treats both
    malformed output and call failures as a degraded service.
    """

    async def extract(
        self, prompt: str, constraints: Optional[Constraints] = None
    ) -> ExtractedEntities:
        ...


SYSTEM_PROMPT = textwrap.dedent(
    """
    You are a Solana transaction intent extractor. Given a user's natural language
    prompt describing a Solana blockchain action, extract the structured intent.

    Return ONLY valid JSON matching this exact schema, with no markdown and no
    explanation:

    {
      "action_type": "swap" | "transfer" | "stake" | "unstake" | "lend" | "borrow" | "nft_buy" | "nft_sell" | "unknown",
      "tokens": [{"ticker": "string", "role": "source" | "destination"}],
      "amounts": [{"value": number, "ticker": "string"}],
      "destination": "base58 wallet address or null",
      "slippage_bps": "number or null",
      "priority_fee_lamports": "number or null",
      "protocol_preference": "string or null",
      "raw_confidence": 0.0 to 1.0
    }

    Rules:
    - action_type must be one of the listed values. Use "unknown" if you cannot determine the action.
    - tokens lists each token mentioned with its role in the action.
    - amounts lists each amount mentioned. value must be a number, not a string.
    - slippage_bps: convert percentages to basis points (1% = 100 bps).
    - protocol_preference: extract if the user names a protocol (jupiter, raydium, sanctum, marinade, jito, tensor, pumpfun, marginfi, kamino).
    - raw_confidence: how sure you are that you understood the intent (0.0 = no idea, 1.0 = certain).
    - If the prompt contains multiple actions, extract only the FIRST one.
    - NEVER invent or guess mint addresses. Only extract ticker symbols.
    """
).strip()

RETRY_ACKNOWLEDGEMENT = "I apologize, let me return only the valid JSON object:"
RETRY_INSTRUCTION = (
    "You returned invalid JSON on your previous attempt. Return ONLY the raw JSON "
    "object, no markdown, no explanation."
)


def build_user_prompt(prompt: str, constraints: Optional[Constraints] = None) -> str:
    text = f'User prompt: "{prompt[:MAX_INPUT_CHARS]}"'
    if constraints is not None:
        rendered = json.dumps(constraints.model_dump(exclude_unset=True), sort_keys=True)
        text += f"\n\nUser constraints: {rendered}"
    return text


def _message(role: str, text: str) -> Dict[str, Any]:
    return {"role": role, "parts": [{"text": text}]}


class GeminiExtractor:
    """Ask Gemini for the entity JSON, retrying once on malformed output."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "gemini-2.0-flash",
        system_prompt: Optional[str] = None,
        model: Any = None,
    ) -> None:
        if model is None:
            if not api_key:
                raise ValueError("GeminiExtractor requires an API key or a model")
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(
                model_name=model_name,
                system_instruction=system_prompt or SYSTEM_PROMPT,
            )
        self.model = model

    async def extract(
        self, prompt: str, constraints: Optional[Constraints] = None
    ) -> ExtractedEntities:
        user_message = build_user_prompt(prompt, constraints)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            contents: List[Dict[str, Any]] = [_message("user", user_message)]
            if attempt > 1:
                contents.append(_message("model", RETRY_ACKNOWLEDGEMENT))
                contents.append(_message("user", RETRY_INSTRUCTION))

            text = await self._generate(contents)
            try:
                return ExtractedEntities.from_payload(parse_llm_json(text))
            except (ValueError, TypeError) as exc:
                logger.warning(
                    "extraction_parse_failed", attempt=attempt, error=str(exc)
                )

        raise ExtractionError("Failed to parse entity extraction response after retry")

    async def _generate(self, contents: List[Dict[str, Any]]) -> str:
        """Single model call; any client failure is surfaced, not retried."""
        try:
            response = await self.model.generate_content_async(
                contents,
                generation_config={
                    "temperature": 0,
                    "max_output_tokens": MAX_OUTPUT_TOKENS,
                    "response_mime_type": "application/json",
                },
            )
            return response.text
        except Exception as exc:
            raise ExtractionError(f"Entity extraction API error: {exc}") from exc


__all__ = [
    "EntityExtractor",
    "GeminiExtractor",
    "MAX_INPUT_CHARS",
    "SYSTEM_PROMPT",
    "build_user_prompt",
]
