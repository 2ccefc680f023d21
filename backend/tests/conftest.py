import pytest

from script_engine.app import create_app
from script_engine.config import Settings


class StubGenerator:
    """Records every call and returns a canned completion (or raises)."""

    def __init__(self, text="mocked script content", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate(self, prompt, *, system, max_tokens, temperature):
        self.calls.append({
            "prompt": prompt,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def settings():
    return Settings(
        anthropic_api_key="sk-ant-test-key-0000000000",
        model="claude-test",
        max_tokens=777,
        shared_api_key="client-key-123",
        credential_access_token="let-me-in",
    )


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def app(settings, generator):
    return create_app(settings=settings, generator=generator)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client(settings):
    """Factory for a test client backed by a fresh StubGenerator."""
    def _make(**stub_kwargs):
        stub = StubGenerator(**stub_kwargs)
        return create_app(settings=settings, generator=stub).test_client(), stub
    return _make
