"""Login routes: /login, /callback, /me, /logout."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from app.auth import extract_authorization_code
from app.config import get_settings
from app.session import drop_session, get_session
from core.errors import AuthError

router = APIRouter(tags=["auth"])


class CallbackRelay(BaseModel):
    """Full callback URL as seen by the browser (fragment included)."""

    url: str


# ---------------------------------------------------------------------------
# GET /login
# ---------------------------------------------------------------------------

@router.get("/login")
async def login(request: Request, client_id: str | None = None):
    """Start the Spotify PKCE login flow.

    ``client_id`` comes from the query string, else ``SPOTIFY_CLIENT_ID``.
    """
    settings = get_settings()
    session = get_session(request)

    context = session.auth.begin_login(
        client_id or settings.spotify_client_id, settings.redirect_uri
    )
    session.clear_library()
    return RedirectResponse(session.auth.authorize_url(context))


# ---------------------------------------------------------------------------
# /callback
# ---------------------------------------------------------------------------

@router.get("/callback")
async def callback(
    request: Request,
    error: str | None = None,
    error_description: str | None = None,
):
    """Handle Spotify's redirect after the user authorizes."""
    session = get_session(request)
    if error:
        if session.auth.pending_login is None:
            # Stray error redirect; an existing login stays as it is.
            raise HTTPException(
                status_code=400,
                detail=f"Ignored Spotify error {error!r}: no login in progress",
            )
        session.auth.abort_login(error, error_description or "")

    code, _ = extract_authorization_code(str(request.url))
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    await session.auth.complete_login(code)
    if not session.auth.is_authenticated:
        raise HTTPException(status_code=400, detail="No login in progress — restart at /login")

    # Redirect so the code does not stay in the address bar.
    return RedirectResponse("/playlists", status_code=303)


@router.post("/callback")
async def callback_relay(request: Request, body: CallbackRelay):
    """Complete a fragment-style callback relayed by the browser.

    Returns the URL the browser should show instead, without ``code``,
    also when the exchange fails (401).
    """
    session = get_session(request)
    code, clean_url = extract_authorization_code(body.url)
    if code:
        try:
            await session.auth.complete_login(code)
        except AuthError as exc:
            return JSONResponse(
                {
                    "state": session.auth.state.value,
                    "clean_url": clean_url,
                    "detail": f"Spotify auth error: {exc}",
                    "error": exc.error,
                },
                status_code=401,
            )
    return JSONResponse({"state": session.auth.state.value, "clean_url": clean_url})


# ---------------------------------------------------------------------------
# GET /me, GET /logout
# ---------------------------------------------------------------------------

@router.get("/me")
async def me(request: Request):
    """Current login state of this browser session."""
    auth = get_session(request).auth
    return JSONResponse(
        {
            "state": auth.state.value,
            "authenticated": auth.is_authenticated,
            "error": str(auth.error) if auth.error else None,
        }
    )


@router.get("/logout")
async def logout(request: Request):
    """Forget the token and the session, then redirect home."""
    get_session(request).auth.logout()
    drop_session(request)
    return RedirectResponse("/")
