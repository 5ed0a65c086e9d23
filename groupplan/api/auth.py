"""
groupplan/api/auth.py
OAuth login: redirect to the provider, then turn its callback into a session cookie.
"""

import logging
import secrets
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from groupplan.core.auth import SESSION_COOKIE, SessionIssuer, get_session_issuer, get_user_manager
from groupplan.core.config import AppConfig, settings
from groupplan.core.errors import NotFoundError, UnauthorizedError
from groupplan.core.secid import secure_identifier
from groupplan.features.auth.providers import OAuthProvider, OAuthProviderError
from groupplan.features.users.service import UserManager

logger = logging.getLogger("groupplan.auth")

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_COOKIE = "groupplan_oauth_state"


def get_oauth_providers(request: Request) -> Dict[str, OAuthProvider]:
    return request.app.state.oauth_providers


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.app_config


def _resolve_provider(name: str, providers: Dict[str, OAuthProvider]) -> OAuthProvider:
    provider = providers.get(name)
    if provider is None:
        raise NotFoundError(f"unknown authentication provider [{name}]")
    return provider


@router.get("/{provider}")
def start_auth(provider: str, providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers)):
    """Send the browser to the provider's consent page"""
    oauth = _resolve_provider(provider, providers)
    state = secure_identifier(24)
    response = RedirectResponse(oauth.authorization_url(state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=settings.OAUTH_STATE_TTL_SECONDS,
        path="/auth",
        httponly=True,
        secure=True,
        samesite="lax",
    )
    return response


@router.get("/{provider}/callback")
async def auth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers),
    app_config: AppConfig = Depends(get_app_config),
    issuer: SessionIssuer = Depends(get_session_issuer),
    users: UserManager = Depends(get_user_manager),
):
    """Complete the login, set the session cookie and go back to the app"""
    oauth = _resolve_provider(provider, providers)
    if error:
        raise UnauthorizedError(f"Login with {provider} was not completed: {error}")

    expected_state = request.cookies.get(STATE_COOKIE)
    if not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
        raise UnauthorizedError("Login expired or was tampered with, please try again")

    try:
        identity = await oauth.fetch_identity(code)
    except OAuthProviderError as e:
        logger.warning(f"Failed completing user authentication with [{provider}]: {e}")
        raise UnauthorizedError(f"Could not log in with {provider}")

    user = await run_in_threadpool(users.authenticate, identity, provider)
    token = issuer.issue(user)

    response = RedirectResponse(f"{app_config.base_url}/", status_code=302)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=issuer.ttl_seconds,
        domain=app_config.hostname or None,
        httponly=True,
        secure=True,
        samesite="lax",
    )
    response.delete_cookie(STATE_COOKIE, path="/auth")
    return response
