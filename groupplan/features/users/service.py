"""
User manager.
- authenticate(identity, provider_name): get-or-create user and auth point
- get_authenticated_user(email): re-resolve a session's user
"""

import logging

from groupplan.core.errors import UnauthorizedError
from groupplan.features.users.repository import UserRepository
from groupplan.models.user import OAuthIdentity, User

logger = logging.getLogger("groupplan.users")


class UserManager:
    def __init__(self, repository: UserRepository):
        self.repository = repository

    def authenticate(self, identity: OAuthIdentity, provider_name: str) -> User:
        """Record a successful OAuth login and return the user it belongs to.

        Email is the de-duplication key: a returning user is recognized
        whatever id the provider hands out.
        """
        provider = self.repository.get_provider(provider_name)
        if provider is None:
            # Providers are seeded at startup, so this is a deployment fault
            raise LookupError(f"authentication provider [{provider_name}] is not seeded")

        user = self.repository.get_or_create_user(identity.email, identity.name, identity.avatar_url)
        self.repository.user_authorized_with(user, provider, identity.provider_user_id)
        logger.info("User [%s] authenticated with [%s]", user.id, provider_name)
        return user

    def get_authenticated_user(self, email: str) -> User:
        user = self.repository.get_user_by_email(email)
        if user is None:
            raise UnauthorizedError("Please log in")
        return user
