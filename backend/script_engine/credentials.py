"""
Stored API key lookup for the callable /api-key endpoint.
"""

import hmac

from .config import Settings


class CredentialError(Exception):
    def __init__(self, code: str, status: int, details: str | None = None):
        super().__init__(details or code)
        self.code = code
        self.status = status
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.code}
        if self.details:
            body["details"] = self.details
        return body


def _bearer_token(auth_header: str | None) -> str:
    scheme, _, token = (auth_header or "").partition(" ")
    return token.strip() if scheme.lower() == "bearer" else ""


def get_shared_api_key(settings: Settings, auth_header: str | None) -> str:
    expected = settings.credential_access_token
    token = _bearer_token(auth_header)
    if not expected or not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise CredentialError("unauthenticated", 401)

    if not settings.shared_api_key:
        raise CredentialError(
            "not-found",
            404,
            "API key is not configured. Set SHARED_API_KEY in the server environment.",
        )
    return settings.shared_api_key
