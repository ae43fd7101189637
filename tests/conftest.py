"""
pytest configuration and shared fixtures for the VoxGuard API tests.

Key concern: tests must not require a Gemini API key or wait on real backoff.
We achieve this by:
  1. Setting AI_MOCK_MODE=true so GeminiClient returns canned responses.
  2. Setting RETRY_INITIAL_DELAY_SECONDS=0 so retry paths don't sleep.
  3. Resetting the slowapi limiter before each test so request counts
     don't bleed between tests.

Pipeline-level tests inject a fake client (see `fake_client`) instead of
touching the module singleton.
"""

import json
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RETRY_INITIAL_DELAY_SECONDS", "0")

VALID_KEY = "test-key-1234"  # ≥ 10 chars
AUDIO_B64 = "A" * 200


def model_item(confidence: float = 0.92, classification: str = "AI_GENERATED", **extra) -> dict:
    """One element of the model's forensic array."""
    item = {
        "language": "English",
        "classification": classification,
        "confidenceScore": confidence,
        "explanation": "Vocoder smoothing across formant transitions.",
    }
    item.update(extra)
    return item


def model_reply(*items: dict) -> str:
    return json.dumps(list(items))


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from voxguard.core.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture()
def fake_client():
    """Stand-in GeminiClient; set .generate_with_audio.return_value / side_effect per test."""
    client = MagicMock()
    client.generate_with_audio = AsyncMock(return_value=model_reply(model_item()))
    client.generate = AsyncMock(return_value="{}")
    return client


@pytest.fixture()
def pipeline(fake_client):
    from voxguard.ai.forensic_pipeline import ForensicPipeline

    return ForensicPipeline(client=fake_client, max_attempts=3, initial_delay=0, sleep=AsyncMock())


@pytest.fixture()
async def client():
    """
    HTTPX async test client wired to the FastAPI app.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from voxguard.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
