from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class PublicUser(BaseModel):
    """What other participants get to see about a user."""
    model_config = ConfigDict(frozen=True)

    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    def public(self) -> PublicUser:
        return PublicUser(display_name=self.display_name, avatar_url=self.avatar_url)


class AuthenticationProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class UserAuthPoint(BaseModel):
    """Links a user to the provider-specific id they logged in with."""
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    provider_id: int
    identifier: str


class OAuthIdentity(BaseModel):
    """Profile returned by an OAuth provider after a successful login."""
    model_config = ConfigDict(frozen=True)

    provider_user_id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
