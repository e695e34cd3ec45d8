"""Google access-token acquisition for the Sheets API.

Authorization is an explicit step: ``authorize()`` may wait on the flow,
``get_token()`` never does. Tokens are kept in an injected cache with a soft
expiry shorter than Google's one-hour lifetime.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Protocol

import httpx

from campaigndocs.errors import AuthorizationError

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
TOKEN_CACHE_KEY = "google_sheets_access_token"
DEFAULT_TTL_SECONDS = 50 * 60


def classify_auth_error(code: str, message: str) -> str | None:
    """Map a sign-in failure to an ``AuthorizationError`` reason.

    Returns None when the failure does not look like an authentication error.
    """
    code = code or ""
    message = message or ""
    if code == "auth/popup-blocked" or "popup-blocked" in message or "popup_blocked_by_browser" in message:
        return "popup_blocked"
    if code == "auth/unauthorized-domain":
        return "unauthorized_domain"
    if code == "auth/operation-not-allowed":
        return "operation_not_allowed"
    if code == "auth/network-request-failed" or "network" in message:
        return "network"
    if code == "auth/user-token-expired" or "token" in message:
        return "session_expired"
    if code.startswith("auth/"):
        return "generic"
    return None


class AuthFlow(Protocol):
    async def fetch_token(self) -> str: ...


class RefreshTokenFlow:
    """Exchange a stored OAuth refresh token for an access token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        token_url: str = TOKEN_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.token_url = token_url
        self.transport = transport
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "RefreshTokenFlow":
        return cls(
            client_id=os.environ.get("GOOGLE_SHEETS_CLIENT_ID", "").strip(),
            client_secret=os.environ.get("GOOGLE_SHEETS_CLIENT_SECRET", "").strip(),
            refresh_token=os.environ.get("GOOGLE_SHEETS_REFRESH_TOKEN", "").strip(),
        )

    async def fetch_token(self) -> str:
        if not (self.client_id and self.client_secret and self.refresh_token):
            raise AuthorizationError(
                "authorization_required",
                "Google OAuth credentials are missing (GOOGLE_SHEETS_CLIENT_ID, "
                "GOOGLE_SHEETS_CLIENT_SECRET, GOOGLE_SHEETS_REFRESH_TOKEN).",
            )
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
            "grant_type": "refresh_token",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.token_url, data=payload)

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            error = str(body.get("error") or "") if isinstance(body, dict) else ""
            description = str(body.get("error_description") or resp.text[:200]) if isinstance(body, dict) else ""
            if error == "invalid_grant":
                raise AuthorizationError("session_expired")
            raise AuthorizationError("denied", f"Google authorization was denied: {description or error}")

        token = str(resp.json().get("access_token") or "").strip()
        if not token:
            raise AuthorizationError("token_missing")
        return token


class AccessTokenProvider:
    def __init__(self, cache: Any, flow: AuthFlow, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        self.cache = cache
        self.flow = flow
        self.ttl = ttl

    def cached_token(self) -> str | None:
        token = self.cache.get(TOKEN_CACHE_KEY)
        return str(token) if token else None

    async def authorize(self) -> str:
        """Return a usable token, running the authorization flow on a cache miss."""
        token = self.cached_token()
        if token:
            return token

        logger.info("[AUTH] no cached Google token, starting authorization")
        try:
            token = await self.flow.fetch_token()
        except AuthorizationError:
            self.invalidate()
            raise
        except httpx.TransportError as exc:
            self.invalidate()
            raise AuthorizationError("network") from exc
        except Exception as exc:
            self.invalidate()
            reason = classify_auth_error(str(getattr(exc, "code", "") or ""), str(exc))
            if reason is None:
                raise
            message = f"Google authentication error: {exc}" if reason == "generic" else ""
            raise AuthorizationError(reason, message) from exc

        if not token:
            self.invalidate()
            raise AuthorizationError("token_missing")
        self.cache.set(TOKEN_CACHE_KEY, token, self.ttl)
        return token

    async def get_token(self) -> str:
        token = self.cached_token()
        if not token:
            raise AuthorizationError("authorization_required")
        return token

    def invalidate(self) -> None:
        self.cache.invalidate(TOKEN_CACHE_KEY)
