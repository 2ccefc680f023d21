"""
Thin wrapper around the Anthropic Messages API.

One prompt in, one completion out. Every failure comes back as a
GenerationError carrying a caller-safe category and a redacted detail
message, so routes never have to know about anthropic's exception types.
"""

import re

import anthropic
import httpx

AUTH_FAILED = "Generation service authentication failed"
QUOTA_EXCEEDED = "Generation quota exceeded"
UNREACHABLE = "Generation service unreachable"
GENERATION_FAILED = "Script generation failed"

_SECRET_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")
REDACTED = "[redacted]"


def redact(message: str, *secrets: str | None) -> str:
    """Strip known secrets and anything shaped like an API key from a message."""
    for secret in secrets:
        if secret:
            message = message.replace(secret, REDACTED)
    return _SECRET_PATTERN.sub(REDACTED, message)


class GenerationError(Exception):
    def __init__(self, category: str, details: str | None = None):
        super().__init__(category if not details else f"{category}: {details}")
        self.category = category
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.category}
        if self.details:
            body["details"] = self.details
        return body


class ScriptGenerator:
    def __init__(self, api_key: str | None, model: str, http_client: httpx.Client | None = None):
        self.api_key = api_key
        self.model = model
        self.http_client = http_client
        self._client: anthropic.Anthropic | None = None

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise GenerationError(AUTH_FAILED, "Server missing ANTHROPIC_API_KEY")
        # one outbound call per request: failures surface immediately
        kwargs = {"api_key": self.api_key, "max_retries": 0}
        if self.http_client is not None:
            kwargs["http_client"] = self.http_client
        self._client = anthropic.Anthropic(**kwargs)
        return self._client

    def _fail(self, category: str, exc: Exception) -> GenerationError:
        return GenerationError(category, redact(str(exc), self.api_key))

    def generate(self, prompt: str, *, system: str, max_tokens: int, temperature: float) -> str:
        client = self._get_client()
        try:
            message = client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise self._fail(AUTH_FAILED, e) from e
        except anthropic.RateLimitError as e:
            raise self._fail(QUOTA_EXCEEDED, e) from e
        except anthropic.APIConnectionError as e:  # includes APITimeoutError
            raise self._fail(UNREACHABLE, e) from e
        except anthropic.APIError as e:
            raise self._fail(GENERATION_FAILED, e) from e

        text = "".join(
            block.text for block in (message.content or []) if getattr(block, "type", None) == "text"
        )
        if not text:
            raise GenerationError(GENERATION_FAILED, "Model returned no text")
        return text
