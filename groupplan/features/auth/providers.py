"""
OAuth providers used for login.

Each provider is a plain object built from the app config and handed to the
auth router; nothing is registered globally. Only the authorization-code
flow is supported: build the consent URL, then trade the returned code for
an access token and read the user's profile.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence
from urllib.parse import urlencode

import httpx

from groupplan.core.config import AppConfig
from groupplan.models.user import OAuthIdentity

logger = logging.getLogger("groupplan.auth")

HTTP_TIMEOUT_SECONDS = 10.0


class OAuthProviderError(Exception):
    """The provider rejected the exchange or returned an unusable profile."""


class OAuthProvider(ABC):
    name = ""
    authorize_url = ""
    token_url = ""
    profile_url = ""
    scopes: Sequence[str] = ()

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": " ".join(self.scopes),
                "state": state,
            }
        )
        return f"{self.authorize_url}?{query}"

    async def fetch_identity(self, code: str) -> OAuthIdentity:
        """Exchange `code` for a token and return the logged-in user's identity.

        Raises:
            OAuthProviderError: The provider refused the code or the profile lacks an email
            httpx.TransportError: The provider could not be reached
        """
        async with httpx.AsyncClient(transport=self._transport, timeout=HTTP_TIMEOUT_SECONDS) as client:
            try:
                token_response = await client.post(
                    self.token_url,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise OAuthProviderError(f"{self.name} returned no access token")

                profile_response = await client.get(
                    self.profile_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise OAuthProviderError(
                    f"{self.name} answered {e.response.status_code} for {e.request.url}"
                ) from e
        return self.parse_identity(profile_response.json())

    @abstractmethod
    def parse_identity(self, profile: dict) -> OAuthIdentity:
        """Map the provider's profile JSON to an identity."""


class DiscordProvider(OAuthProvider):
    name = "discord"
    authorize_url = "https://discord.com/api/oauth2/authorize"
    token_url = "https://discord.com/api/oauth2/token"
    profile_url = "https://discord.com/api/users/@me"
    scopes = ("identify", "email")

    def parse_identity(self, profile: dict) -> OAuthIdentity:
        user_id = profile.get("id")
        email = profile.get("email")
        if not user_id or not email:
            raise OAuthProviderError("discord profile is missing an id or a verified email")

        avatar = profile.get("avatar")
        avatar_url = f"https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png" if avatar else None
        return OAuthIdentity(
            provider_user_id=str(user_id),
            email=email,
            name=profile.get("global_name") or profile.get("username"),
            avatar_url=avatar_url,
        )


def build_providers(
    app_config: AppConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, OAuthProvider]:
    """Providers keyed by the name used in /auth/{provider} routes."""
    providers: Dict[str, OAuthProvider] = {}
    if app_config.discord_key and app_config.discord_secret:
        providers[DiscordProvider.name] = DiscordProvider(
            client_id=app_config.discord_key,
            client_secret=app_config.discord_secret,
            redirect_uri=f"{app_config.base_url}/auth/{DiscordProvider.name}/callback",
            transport=transport,
        )
    else:
        logger.warning("Discord credentials are not configured, login is disabled")
    return providers
