"""Tests for the Gemini entity extractor."""

import json

import pytest

from solplan.errors import ExtractionError
from solplan.extractor import (
    MAX_INPUT_CHARS,
    RETRY_INSTRUCTION,
    GeminiExtractor,
    build_user_prompt,
)
from solplan.plan_types import ActionType, Constraints, ExtractedEntities, TokenRole
from solplan.utils.json_utils import parse_llm_json
from support import FakeModel, swap_payload


class TestGeminiExtractor:
    @pytest.mark.asyncio
    async def test_parses_json_reply(self):
        model = FakeModel([json.dumps(swap_payload())])
        extractor = GeminiExtractor(model=model)

        entities = await extractor.extract("swap 2 SOL to USDC")

        assert entities.action_type is ActionType.SWAP
        assert entities.first_token(TokenRole.DESTINATION).ticker == "USDC"
        assert entities.amounts[0].value == 2
        assert entities.raw_confidence == 0.95
        assert len(model.calls) == 1
        assert model.calls[0]["config"]["temperature"] == 0

    @pytest.mark.asyncio
    async def test_accepts_fenced_json(self):
        reply = "```json\n" + json.dumps(swap_payload()) + "\n```"
        extractor = GeminiExtractor(model=FakeModel([reply]))

        entities = await extractor.extract("swap 2 SOL to USDC")

        assert entities.action_type is ActionType.SWAP

    @pytest.mark.asyncio
    async def test_retries_once_on_malformed_reply(self):
        model = FakeModel(["Sure! Here you go", json.dumps(swap_payload())])
        extractor = GeminiExtractor(model=model)

        entities = await extractor.extract("swap 2 SOL to USDC")

        assert entities.action_type is ActionType.SWAP
        assert len(model.calls) == 2
        retry_contents = model.calls[1]["contents"]
        assert retry_contents[-1]["parts"][0]["text"] == RETRY_INSTRUCTION
        assert retry_contents[1]["role"] == "model"

    @pytest.mark.asyncio
    async def test_gives_up_after_second_malformed_reply(self):
        model = FakeModel(["nope", "[1, 2, 3]"])
        extractor = GeminiExtractor(model=model)

        with pytest.raises(ExtractionError, match="after retry"):
            await extractor.extract("swap 2 SOL to USDC")
        assert len(model.calls) == 2

    @pytest.mark.asyncio
    async def test_api_error_is_not_retried(self):
        model = FakeModel([RuntimeError("quota exceeded"), json.dumps(swap_payload())])
        extractor = GeminiExtractor(model=model)

        with pytest.raises(ExtractionError, match="quota exceeded"):
            await extractor.extract("swap 2 SOL to USDC")
        assert len(model.calls) == 1

    @pytest.mark.asyncio
    async def test_non_array_rows_are_retried_then_rejected(self):
        reply = json.dumps(swap_payload(tokens=5))
        model = FakeModel([reply, reply])
        extractor = GeminiExtractor(model=model)

        with pytest.raises(ExtractionError, match="after retry"):
            await extractor.extract("swap 2 SOL to USDC")
        assert len(model.calls) == 2

    @pytest.mark.asyncio
    async def test_non_array_amounts_recovered_on_retry(self):
        model = FakeModel(
            [json.dumps(swap_payload(amounts={"value": 2})), json.dumps(swap_payload())]
        )
        extractor = GeminiExtractor(model=model)

        entities = await extractor.extract("swap 2 SOL to USDC")

        assert entities.amounts[0].value == 2
        assert len(model.calls) == 2

    def test_requires_key_or_model(self):
        with pytest.raises(ValueError):
            GeminiExtractor()


class TestBuildUserPrompt:
    def test_prompt_is_truncated(self):
        text = build_user_prompt("a" * (MAX_INPUT_CHARS + 100))
        assert text.count("a") == MAX_INPUT_CHARS

    def test_constraints_are_included(self):
        text = build_user_prompt("swap", Constraints(max_slippage_bps=50))
        assert 'User constraints: {"max_slippage_bps": 50}' in text

    def test_no_constraints(self):
        assert "constraints" not in build_user_prompt("swap")


class TestEntityPayload:
    def test_malformed_rows_are_dropped(self):
        entities = ExtractedEntities.from_payload(
            {
                "action_type": "SWAP",
                "tokens": [{"ticker": "SOL", "role": "source"}, {"ticker": "X"}, "bad"],
                "amounts": [{"value": "1.5", "ticker": "SOL"}, {"value": "lots", "ticker": "SOL"}],
                "raw_confidence": 7,
            }
        )

        assert entities.action_type is ActionType.SWAP
        assert len(entities.tokens) == 1
        assert [a.value for a in entities.amounts] == [1.5]
        assert entities.raw_confidence == 1.0

    def test_oversized_numbers_are_dropped(self):
        huge = 10**400
        entities = ExtractedEntities.from_payload(
            json.loads(
                json.dumps(
                    swap_payload(
                        amounts=[{"value": huge, "ticker": "SOL"}],
                        slippage_bps=huge,
                        raw_confidence=huge,
                    )
                )
            )
        )

        assert entities.amounts == []
        assert entities.slippage_bps is None
        assert entities.raw_confidence == 0.0

    def test_missing_rows_are_empty(self):
        entities = ExtractedEntities.from_payload({"action_type": "swap", "tokens": None})
        assert entities.tokens == []
        assert entities.amounts == []

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            ExtractedEntities.from_payload([])


def test_parse_llm_json_rejects_arrays():
    with pytest.raises(json.JSONDecodeError):
        parse_llm_json("[1]")
