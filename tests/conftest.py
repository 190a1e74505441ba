"""
pytest configuration and shared fixtures for the chat API tests.

Tests never talk to Gemini: the app's provider factory is swapped for a
FakeProvider that records calls, and each test gets its own RateLimiter
driven by a FakeClock.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up
os.environ.setdefault("GOOGLE_GENAI_API_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeClock:
    def __init__(self, start_ms: float = 1_700_000_000_000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


class FakeProvider:
    """Stands in for GeminiProvider; records every completion request."""

    def __init__(self, output: str = "Here is your answer.", error: Exception | None = None):
        self.output = output
        self.error = error
        self.calls: list[dict] = []

    def complete(self, model_id, input_text, system_instruction=None):
        self.calls.append(
            {"model_id": model_id, "input_text": input_text, "system_instruction": system_instruction}
        )
        if self.error is not None:
            raise self.error
        return self.output

    def factory(self, api_key):
        return self


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def limiter(clock):
    from rate_limit import RateLimiter

    return RateLimiter(clock=clock)


@pytest.fixture()
def fake_provider():
    return FakeProvider()


@pytest.fixture()
async def client(limiter, fake_provider, monkeypatch):
    """
    HTTPX async test client wired to the FastAPI app with an isolated
    limiter and the fake provider.
    """
    import main

    monkeypatch.setattr(main.settings, "API_KEY", "test-key")
    monkeypatch.setattr(main.app.state, "rate_limiter", limiter)
    monkeypatch.setattr(main.app.state, "provider_factory", fake_provider.factory)

    async with AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as ac:
        yield ac
