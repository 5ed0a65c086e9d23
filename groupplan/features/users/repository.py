"""
groupplan/features/users/repository.py

Storage for users, authentication providers and auth points.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from groupplan.core.database import users, authentication_providers, user_auth_points
from groupplan.models.user import User, AuthenticationProvider, UserAuthPoint

logger = logging.getLogger("groupplan.users")

# Providers that exist in every database
DEFAULT_PROVIDERS = ("discord",)


def user_from_row(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        created_at=row.created_at,
    )


class UserRepository:
    """Users and their login identities, backed by one SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def seed_providers(self, names: Iterable[str] = DEFAULT_PROVIDERS) -> None:
        """Insert any missing provider rows (idempotent)."""
        existing = set(self.session.execute(select(authentication_providers.c.name)).scalars())
        missing = [name for name in names if name not in existing]
        for name in missing:
            self.session.execute(insert(authentication_providers).values(name=name))
        self.session.commit()
        if missing:
            logger.info("Seeded authentication providers: %s", ", ".join(missing))

    def get_providers(self) -> List[AuthenticationProvider]:
        rows = self.session.execute(
            select(authentication_providers).order_by(authentication_providers.c.id)
        ).all()
        return [AuthenticationProvider(id=row.id, name=row.name) for row in rows]

    def get_provider(self, name: str) -> Optional[AuthenticationProvider]:
        row = self.session.execute(
            select(authentication_providers).where(authentication_providers.c.name == name)
        ).first()
        if not row:
            return None
        return AuthenticationProvider(id=row.id, name=row.name)

    def get_user_by_email(self, email: str) -> Optional[User]:
        row = self.session.execute(select(users).where(users.c.email == email)).first()
        return user_from_row(row) if row else None

    def get_users(self, user_ids: Iterable[int]) -> Dict[int, User]:
        """Map of id -> User for the given ids."""
        ids = set(user_ids)
        if not ids:
            return {}
        rows = self.session.execute(select(users).where(users.c.id.in_(ids))).all()
        return {row.id: user_from_row(row) for row in rows}

    def get_or_create_user(self, email: str, display_name: Optional[str], avatar_url: Optional[str]) -> User:
        """Return the user with `email`, creating it on first sight.

        An existing row is returned untouched; display name and avatar are
        only recorded at creation.
        """
        existing = self.get_user_by_email(email)
        if existing:
            return existing

        try:
            self.session.execute(
                insert(users).values(email=email, display_name=display_name, avatar_url=avatar_url)
            )
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent login for the same email
            self.session.rollback()

        created = self.get_user_by_email(email)
        if created is None:
            raise RuntimeError(f"user [{email}] missing right after insert")
        return created

    def get_auth_point(self, user: User, provider: AuthenticationProvider) -> Optional[UserAuthPoint]:
        row = self.session.execute(
            select(user_auth_points).where(
                user_auth_points.c.user_id == user.id,
                user_auth_points.c.provider_id == provider.id,
            )
        ).first()
        if not row:
            return None
        return UserAuthPoint(
            id=row.id,
            user_id=row.user_id,
            provider_id=row.provider_id,
            identifier=row.identifier,
        )

    def user_authorized_with(self, user: User, provider: AuthenticationProvider, identifier: str) -> UserAuthPoint:
        """Get or create the auth point linking `user` to `provider`."""
        existing = self.get_auth_point(user, provider)
        if existing:
            return existing

        try:
            self.session.execute(
                insert(user_auth_points).values(
                    user_id=user.id,
                    provider_id=provider.id,
                    identifier=identifier,
                )
            )
            self.session.commit()
        except IntegrityError:
            self.session.rollback()

        created = self.get_auth_point(user, provider)
        if created is None:
            raise RuntimeError(f"auth point for user [{user.id}] and provider [{provider.name}] missing right after insert")
        return created
