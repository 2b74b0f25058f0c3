from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import AuthenticationError, NotFoundError
from core.security import PROFILE_CLAIMS
from domain.models import UserRole, utcnow
from services.persistence.repositories import UserRepository
from services.persistence.tables import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """Local mirror of identity-provider users."""

    def __init__(self, session: Session):
        self.session = session
        self.repo = UserRepository(session)

    def upsert_from_claims(self, claims: Mapping[str, Any]) -> User:
        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("token has no subject")
        profile = {k: claims.get(k) for k in PROFILE_CLAIMS if k in claims}

        try:
            return self._upsert(str(user_id), profile)
        except IntegrityError:
            self.session.rollback()
            if not profile.get("email"):
                raise
            # email is unique; another account already holds it
            logger.warning("email %s already belongs to another user, not stored for %s", profile["email"], user_id)
            profile.pop("email")
            return self._upsert(str(user_id), profile)

    def _upsert(self, user_id: str, profile: dict[str, Any]) -> User:
        user = self.repo.get(user_id)
        if user is None:
            user = self.repo.add(User(id=user_id, role=UserRole.EMPLOYER.value, **profile))
            logger.info("registered user %s", user.id)
        elif any(getattr(user, k) != v for k, v in profile.items()):
            # profile refresh only; role is managed out of band
            for k, v in profile.items():
                setattr(user, k, v)
            user.updated_at = utcnow()
            self.session.flush()
        else:
            return user
        self.session.commit()
        return user

    def get(self, user_id: str) -> User:
        user = self.repo.get(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        return user

    def set_role(self, user_id: str, role: UserRole | str) -> User:
        user = self.get(user_id)
        user.role = UserRole(role).value
        user.updated_at = utcnow()
        self.session.commit()
        logger.info("user %s role set to %s", user_id, user.role)
        return user
