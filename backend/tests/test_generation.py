"""
Tests for the Claude wrapper. The anthropic client is mocked so nothing hits the network.
"""

import inspect
import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from script_engine.generation import (
    AUTH_FAILED,
    GENERATION_FAILED,
    QUOTA_EXCEEDED,
    REDACTED,
    UNREACHABLE,
    GenerationError,
    ScriptGenerator,
    redact,
)

API_KEY = "sk-ant-secret-0123456789"
_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status, message):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


def _message(*blocks):
    return SimpleNamespace(content=[SimpleNamespace(type=t, text=text) for t, text in blocks])


@pytest.fixture
def mock_client():
    with patch("script_engine.generation.anthropic.Anthropic") as mock_cls:
        client = MagicMock()
        mock_cls.return_value = client
        yield mock_cls, client


def test_generate_returns_text_and_passes_parameters(mock_client):
    mock_cls, client = mock_client
    client.messages.create.return_value = _message(("text", "0-3s\nVoiceover: Hi"))

    text = ScriptGenerator(API_KEY, "claude-test").generate(
        "the prompt", system="house style", max_tokens=500, temperature=0.4
    )

    assert text == "0-3s\nVoiceover: Hi"
    mock_cls.assert_called_once_with(api_key=API_KEY, max_retries=0)
    client.messages.create.assert_called_once_with(
        model="claude-test",
        max_tokens=500,
        temperature=0.4,
        system="house style",
        messages=[{"role": "user", "content": "the prompt"}],
    )


def test_generate_joins_text_blocks_and_skips_others(mock_client):
    _, client = mock_client
    client.messages.create.return_value = _message(("text", "part one "), ("thinking", "hidden"), ("text", "part two"))

    assert ScriptGenerator(API_KEY, "m").generate("p", system="s", max_tokens=10, temperature=0.0) == "part one part two"


def test_client_is_created_once(mock_client):
    mock_cls, client = mock_client
    client.messages.create.return_value = _message(("text", "ok"))
    generator = ScriptGenerator(API_KEY, "m")

    generator.generate("p", system="s", max_tokens=10, temperature=0.5)
    generator.generate("p", system="s", max_tokens=10, temperature=0.5)

    assert mock_cls.call_count == 1
    assert client.messages.create.call_count == 2


def test_missing_api_key_is_auth_failure(mock_client):
    mock_cls, _ = mock_client

    with pytest.raises(GenerationError) as exc_info:
        ScriptGenerator(None, "m").generate("p", system="s", max_tokens=10, temperature=0.5)

    assert exc_info.value.category == AUTH_FAILED
    mock_cls.assert_not_called()


def test_empty_completion_is_failure(mock_client):
    _, client = mock_client
    client.messages.create.return_value = _message()

    with pytest.raises(GenerationError) as exc_info:
        ScriptGenerator(API_KEY, "m").generate("p", system="s", max_tokens=10, temperature=0.5)

    assert exc_info.value.category == GENERATION_FAILED


@pytest.mark.parametrize("error, category", [
    (_status_error(anthropic.AuthenticationError, 401, "invalid x-api-key"), AUTH_FAILED),
    (_status_error(anthropic.PermissionDeniedError, 403, "forbidden"), AUTH_FAILED),
    (_status_error(anthropic.RateLimitError, 429, "rate limited"), QUOTA_EXCEEDED),
    (anthropic.APIConnectionError(request=_REQUEST), UNREACHABLE),
    (anthropic.APITimeoutError(request=_REQUEST), UNREACHABLE),
    (_status_error(anthropic.InternalServerError, 500, "overloaded"), GENERATION_FAILED),
])
def test_api_errors_map_to_categories(mock_client, error, category):
    _, client = mock_client
    client.messages.create.side_effect = error

    with pytest.raises(GenerationError) as exc_info:
        ScriptGenerator(API_KEY, "m").generate("p", system="s", max_tokens=10, temperature=0.5)

    assert exc_info.value.category == category
    assert exc_info.value.__cause__ is error
    assert client.messages.create.call_count == 1


def test_error_details_never_contain_the_key(mock_client):
    _, client = mock_client
    client.messages.create.side_effect = _status_error(
        anthropic.AuthenticationError, 401, f"invalid key {API_KEY}"
    )

    with pytest.raises(GenerationError) as exc_info:
        ScriptGenerator(API_KEY, "m").generate("p", system="s", max_tokens=10, temperature=0.5)

    assert API_KEY not in exc_info.value.details
    assert REDACTED in exc_info.value.details


def test_redact_removes_configured_and_key_shaped_secrets():
    message = "used custom-secret and sk-proj-abcdefgh12345 and sk-ant-api03-xyzxyzxyz"

    cleaned = redact(message, "custom-secret", None)

    assert "custom-secret" not in cleaned
    assert "sk-proj" not in cleaned
    assert "sk-ant" not in cleaned
    assert cleaned.count(REDACTED) == 3


def test_generation_error_to_dict():
    assert GenerationError(UNREACHABLE).to_dict() == {"error": UNREACHABLE}
    assert GenerationError(QUOTA_EXCEEDED, "slow down").to_dict() == {"error": QUOTA_EXCEEDED, "details": "slow down"}


def test_call_matches_installed_sdk_signature(mock_client):
    _, client = mock_client
    client.messages.create.return_value = _message(("text", "ok"))

    ScriptGenerator(API_KEY, "m").generate("p", system="s", max_tokens=10, temperature=0.5)

    accepted = inspect.signature(anthropic.resources.messages.Messages.create).parameters
    sent = client.messages.create.call_args.kwargs
    assert set(sent) <= set(accepted)


# ─────────────────────────────────────────────
# REAL CLIENT OVER A MOCK TRANSPORT
# ─────────────────────────────────────────────

class CountingTransport(httpx.MockTransport):
    """Answers every request with the same handler and counts how many were sent."""

    def __init__(self, handler):
        self.requests = []

        def _record(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def _real_generator(handler):
    transport = CountingTransport(handler)
    generator = ScriptGenerator(API_KEY, "claude-test", http_client=httpx.Client(transport=transport))
    return generator, transport


def _api_error(status, error_type):
    return lambda request: httpx.Response(
        status, json={"type": "error", "error": {"type": error_type, "message": "nope"}}
    )


def test_real_client_sends_one_request_with_temperature():
    def ok(request):
        return httpx.Response(200, json={
            "id": "msg_1",
            "type": "message",
            "role": "assistant",
            "model": "claude-test",
            "content": [{"type": "text", "text": "0-3s\nVoiceover: Hello"}],
            "stop_reason": "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 3, "output_tokens": 5},
        })

    generator, transport = _real_generator(ok)

    text = generator.generate("the prompt", system="house", max_tokens=50, temperature=0.4)

    assert text == "0-3s\nVoiceover: Hello"
    assert len(transport.requests) == 1
    body = json.loads(transport.requests[0].content)
    assert body["temperature"] == 0.4
    assert body["max_tokens"] == 50
    assert body["system"] == "house"
    assert body["messages"] == [{"role": "user", "content": "the prompt"}]


@pytest.mark.parametrize("handler, category", [
    (_api_error(429, "rate_limit_error"), QUOTA_EXCEEDED),
    (_api_error(529, "overloaded_error"), GENERATION_FAILED),
    (_api_error(500, "api_error"), GENERATION_FAILED),
    (_api_error(401, "authentication_error"), AUTH_FAILED),
])
def test_failed_call_is_not_retried(handler, category):
    generator, transport = _real_generator(handler)

    with pytest.raises(GenerationError) as exc_info:
        generator.generate("p", system="s", max_tokens=10, temperature=0.5)

    assert exc_info.value.category == category
    assert len(transport.requests) == 1


def test_connection_failure_is_not_retried():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    generator, transport = _real_generator(refuse)

    with pytest.raises(GenerationError) as exc_info:
        generator.generate("p", system="s", max_tokens=10, temperature=0.5)

    assert exc_info.value.category == UNREACHABLE
    assert len(transport.requests) == 1
