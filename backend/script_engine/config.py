"""
Runtime settings, read from the environment (and a local .env if present).
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_MODEL = "claude-opus-4-6"
DEFAULT_MAX_TOKENS = 1024
DEFAULT_PORT = 5000


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    shared_api_key: str | None = None
    credential_access_token: str | None = None
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            model=os.getenv("SCRIPT_MODEL") or DEFAULT_MODEL,
            max_tokens=_int_env("SCRIPT_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            shared_api_key=os.getenv("SHARED_API_KEY") or None,
            credential_access_token=os.getenv("CREDENTIAL_ACCESS_TOKEN") or None,
            port=_int_env("PORT", DEFAULT_PORT),
        )
