"""Spotify OAuth 2.0 with PKCE — no client secret needed.

Flow:
  1. ``begin_login``     → LoginContext with verifier + authorize URL
  2. user authorizes on Spotify, which redirects back with ``?code=…``
  3. ``complete_login``  → consume the context, exchange code for a token
  4. access token stays in memory on the controller, never persisted

A ``LoginContext`` belongs to exactly one login attempt: it expires after
``login_ttl_seconds`` and is discarded by the first ``complete_login``,
whatever the outcome.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from app.config import Settings, get_settings
from core.errors import AuthError, ValidationError
from core.pkce import generate_pkce_pair

logger = logging.getLogger(__name__)

SCOPES = " ".join(
    [
        "playlist-read-private",
        "playlist-read-collaborative",
        "playlist-modify-public",
        "playlist-modify-private",
    ]
)

# Parameters that must not linger in the address bar after the callback.
_CALLBACK_PARAMS = ("code", "state")


# ---------------------------------------------------------------------------
# Controller states
# ---------------------------------------------------------------------------

class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Login context
# ---------------------------------------------------------------------------

class LoginContext:
    """Everything the callback needs from the login that started it."""

    __slots__ = ("client_id", "redirect_uri", "verifier", "challenge", "created_at", "ttl")

    def __init__(
        self,
        *,
        client_id: str,
        redirect_uri: str,
        verifier: str,
        challenge: str,
        ttl: float,
        created_at: float | None = None,
    ):
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.verifier = verifier
        self.challenge = challenge
        self.ttl = ttl
        self.created_at = time.time() if created_at is None else created_at

    def is_expired(self, now: float | None = None) -> bool:
        return (time.time() if now is None else now) >= self.created_at + self.ttl

    def authorize_params(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": SCOPES,
            "code_challenge_method": "S256",
            "code_challenge": self.challenge,
        }


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class AuthFlowController:
    """Drives one browser session through the PKCE handshake."""

    def __init__(
        self,
        *,
        auth_url: str,
        token_url: str,
        login_ttl: float = 600,
        timeout: float = 30.0,
    ):
        self.auth_url = auth_url
        self.token_url = token_url
        self.login_ttl = login_ttl
        self.timeout = timeout
        self.state = AuthState.UNAUTHENTICATED
        self.access_token: str | None = None
        self.error: AuthError | None = None
        self._pending: LoginContext | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AuthFlowController":
        settings = settings or get_settings()
        return cls(
            auth_url=settings.spotify_auth_url,
            token_url=settings.spotify_token_url,
            login_ttl=settings.login_ttl_seconds,
            timeout=settings.http_timeout,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED and self.access_token is not None

    @property
    def pending_login(self) -> LoginContext | None:
        return self._pending

    def authorize_url(self, context: LoginContext) -> str:
        return f"{self.auth_url}?{urlencode(context.authorize_params())}"

    def begin_login(self, client_id: str, redirect_uri: str) -> LoginContext:
        """Start a fresh login attempt; any earlier token or attempt is dropped."""
        client_id = (client_id or "").strip()
        if not client_id:
            raise ValidationError("Spotify client ID is required")

        pair = generate_pkce_pair()
        context = LoginContext(
            client_id=client_id,
            redirect_uri=redirect_uri,
            verifier=pair.verifier,
            challenge=pair.challenge,
            ttl=self.login_ttl,
        )
        self._pending = context
        self.access_token = None
        self.error = None
        self.state = AuthState.AWAITING_REDIRECT
        return context

    async def complete_login(self, code: str) -> str | None:
        """Exchange *code* for an access token.

        Returns ``None`` without any request when no login is in progress
        (or it expired).  Raises ``AuthError`` when Spotify rejects the
        exchange.  The pending context is consumed either way.
        """
        context, self._pending = self._pending, None

        if context is None or context.is_expired():
            if context is not None:
                logger.info("Login context expired before callback")
            if self.state is not AuthState.AUTHENTICATED:
                self.state = AuthState.UNAUTHENTICATED
            return None

        self.state = AuthState.EXCHANGING
        form = {
            "client_id": context.client_id,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": context.redirect_uri,
            "code_verifier": context.verifier,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.token_url, data=form)
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            error = AuthError("token_request_failed", str(exc) or type(exc).__name__)
            self._fail(error)
            raise error from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            payload = data if isinstance(data, dict) else {}
            error = AuthError(
                payload.get("error") or f"http_{resp.status_code}",
                payload.get("error_description") or "",
            )
            self._fail(error)
            raise error

        self.access_token = token
        self.state = AuthState.AUTHENTICATED
        logger.info("Token exchange succeeded")
        return token

    def abort_login(self, error: str, description: str = "") -> None:
        """Spotify redirected back with ``?error=…`` instead of a code."""
        self._pending = None
        exc = AuthError(error, description)
        self._fail(exc)
        raise exc

    def logout(self) -> None:
        self._pending = None
        self.access_token = None
        self.error = None
        self.state = AuthState.UNAUTHENTICATED

    def _fail(self, error: AuthError) -> None:
        logger.warning("Spotify login failed: %s", error)
        self.access_token = None
        self.error = error
        self.state = AuthState.FAILED


# ---------------------------------------------------------------------------
# Callback URL handling
# ---------------------------------------------------------------------------

def _strip_callback_params(part: str) -> str:
    pairs = parse_qsl(part, keep_blank_values=True)
    if not any(key in _CALLBACK_PARAMS for key, _ in pairs):
        return part
    return urlencode([(k, v) for k, v in pairs if k not in _CALLBACK_PARAMS])


def extract_authorization_code(url: str) -> tuple[str | None, str]:
    """Find ``code`` in the fragment or, failing that, the query of *url*.

    Returns ``(code, clean_url)`` where *clean_url* no longer carries
    ``code`` or ``state`` in either part.
    """
    parts = urlsplit(url)
    fragment = dict(parse_qsl(parts.fragment.lstrip("?"), keep_blank_values=True))
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    code = fragment.get("code") or query.get("code") or None

    clean = urlunsplit(
        (
            parts.scheme,
            parts.netloc,
            parts.path,
            _strip_callback_params(parts.query),
            _strip_callback_params(parts.fragment.lstrip("?")),
        )
    )
    return code, clean
