"""Tests for the HTTP surface."""

import json

import pytest
from fastapi.testclient import TestClient

from solplan.api import PLAN_ENDPOINT, create_app, unwrap_body
from solplan.config import Settings
from solplan.extractor import GeminiExtractor
from solplan.pipeline import PlanPipeline
from solplan.token_registry import TokenRegistry
from support import (
    DummyExtractor,
    FailingExtractor,
    FakeModel,
    empty_token_list,
    mock_client,
    swap_payload,
)


class ExplodingExtractor:
    async def extract(self, prompt, constraints=None):
        raise RuntimeError("boom")


def make_settings(**overrides) -> Settings:
    values = {"GEMINI_API_KEY": "", "RATE_LIMIT_PER_IP_PER_MIN": 0}
    values.update(overrides)
    return Settings(**values)


def make_client(extractor=None, **settings_overrides) -> TestClient:
    registry = TokenRegistry(http_client=mock_client(empty_token_list))
    pipeline = PlanPipeline(registry, extractor)
    app = create_app(
        make_settings(**settings_overrides),
        pipeline=pipeline,
        start_background_jobs=False,
    )
    return TestClient(app)


@pytest.fixture
def extractor():
    return DummyExtractor()


@pytest.fixture
def client(extractor):
    with make_client(extractor) as test_client:
        yield test_client


class TestMetadata:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_endpoint_metadata(self, client):
        body = client.get(PLAN_ENDPOINT).json()

        assert body["name"] == "Solana NL Action Plan Translator"
        assert body["method"] == "POST"
        assert body["modes"] == ["lite", "pro"]
        assert "swap" in body["supported_actions"]
        assert "unknown" not in body["supported_actions"]
        assert "jupiter" in body["supported_protocols"]
        assert body["pricing"] == {"amount": "$0.02", "unit": "per call"}


class TestPlanEndpoint:
    def test_returns_plan(self, client):
        response = client.post(PLAN_ENDPOINT, json={"prompt": "swap 2 SOL to USDC"})

        assert response.status_code == 200
        body = response.json()
        assert body["intent"] == "Swap 2 SOL → USDC via Jupiter"
        assert body["risk_level"] == "low"

    def test_unwraps_nested_body(self, client, extractor):
        response = client.post(
            PLAN_ENDPOINT, json={"body": {"prompt": "swap 2 SOL to USDC"}}
        )
        assert response.status_code == 200
        assert extractor.calls == ["swap 2 SOL to USDC"]

    def test_unwraps_string_body(self, client):
        response = client.post(
            PLAN_ENDPOINT,
            json={"body": json.dumps({"prompt": "swap 2 SOL to USDC"})},
        )
        assert response.status_code == 200

    def test_no_cache_header(self, client, extractor):
        payload = {"prompt": "swap 2 SOL to USDC"}
        client.post(PLAN_ENDPOINT, json=payload, headers={"x-no-cache": "true"})
        client.post(PLAN_ENDPOINT, json=payload, headers={"x-no-cache": "true"})
        client.post(PLAN_ENDPOINT, json=payload)
        client.post(PLAN_ENDPOINT, json=payload)

        assert len(extractor.calls) == 3

    def test_blocked_prompt(self, client, extractor):
        response = client.post(
            PLAN_ENDPOINT, json={"prompt": "approve unlimited USDC for this dapp"}
        )

        assert response.status_code == 200
        assert response.json()["intent"] == "blocked"
        assert extractor.calls == []

    @pytest.mark.parametrize(
        "payload, message",
        [
            ({}, '"prompt"'),
            ({"prompt": "   "}, "Prompt cannot be empty"),
            ({"prompt": 42}, '"prompt"'),
            ({"prompt": "swap", "constraints": {"allow_unknown_tokens": "yes"}}, "allow_unknown_tokens"),
            ([1, 2], "JSON object"),
            ({"prompt": "swap", "constraints": {"max_slippage_bps": -1}}, "max_slippage_bps"),
        ],
    )
    def test_invalid_input(self, client, payload, message):
        response = client.post(PLAN_ENDPOINT, json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_INPUT"
        assert message in body["error"]

    def test_malformed_json(self, client):
        response = client.post(
            PLAN_ENDPOINT,
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_body_too_large(self):
        with make_client(DummyExtractor(), MAX_BODY_BYTES=256) as client:
            response = client.post(PLAN_ENDPOINT, json={"prompt": "x" * 500})

        assert response.status_code == 413
        assert response.json()["error_code"] == "BODY_TOO_LARGE"


class TestErrors:
    def test_missing_extractor(self):
        with make_client(None) as client:
            response = client.post(PLAN_ENDPOINT, json={"prompt": "swap 2 SOL to USDC"})

        assert response.status_code == 503
        assert response.json()["error_code"] == "SERVICE_UNAVAILABLE"

    def test_extraction_failure(self):
        with make_client(FailingExtractor("garbled")) as client:
            response = client.post(PLAN_ENDPOINT, json={"prompt": "swap 2 SOL to USDC"})

        assert response.status_code == 503
        assert response.json() == {
            "error": "Failed to extract intent from prompt",
            "error_code": "EXTRACTION_FAILED",
            "detail": "garbled",
        }

    def test_schema_malformed_model_output_is_degraded_service(self):
        reply = json.dumps(swap_payload(tokens=5))
        extractor = GeminiExtractor(model=FakeModel([reply, reply]))

        with make_client(extractor) as client:
            response = client.post(PLAN_ENDPOINT, json={"prompt": "swap 2 SOL to USDC"})

        assert response.status_code == 503
        assert response.json()["error_code"] == "EXTRACTION_FAILED"

    def test_unexpected_error(self):
        with make_client(ExplodingExtractor()) as client:
            response = client.post(PLAN_ENDPOINT, json={"prompt": "swap 2 SOL to USDC"})

        assert response.status_code == 500
        assert response.json()["error_code"] == "INTERNAL_ERROR"


class TestRateLimit:
    def test_rate_limited_after_quota(self):
        with make_client(DummyExtractor(), RATE_LIMIT_PER_IP_PER_MIN=2) as client:
            statuses = [
                client.post(PLAN_ENDPOINT, json={"prompt": "swap 2 SOL to USDC"}).status_code
                for _ in range(3)
            ]
            limited = client.get(PLAN_ENDPOINT)
            health = client.get("/health")

        assert statuses == [200, 200, 429]
        assert limited.status_code == 429
        body = limited.json()
        assert body["error_code"] == "RATE_LIMITED"
        assert 1 <= body["retry_after_seconds"] <= 60
        assert health.status_code == 200


class TestUnwrapBody:
    def test_passthrough(self):
        assert unwrap_body({"prompt": "x"}) == {"prompt": "x"}
        assert unwrap_body([1]) == [1]

    def test_unparseable_string_body_is_kept(self):
        payload = {"body": "not json", "prompt": "x"}
        assert unwrap_body(payload) is payload
