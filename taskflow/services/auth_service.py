import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskflow.core.clock import utcnow
from taskflow.core.config import settings
from taskflow.core.exceptions import Conflict, InvalidArgument, Unauthenticated
from taskflow.core.security import (
    create_access_token,
    generate_refresh_token,
    get_password_hash,
    hash_refresh_token,
    verify_password,
)
from taskflow.models.token import RefreshToken
from taskflow.models.user import User, UserRole

logger = logging.getLogger(__name__)


@dataclass
class IssuedTokens:
    access_token: str
    refresh_token: str
    user: User


class AuthService:
    """
    Identity and session lifecycle.

    Access tokens are stateless JWTs. Refresh tokens are random, stored only
    as SHA-256 digests, and single use: every refresh consumes the presented
    token and issues exactly one replacement.
    """

    def __init__(self, db: Session):
        self.db = db

    def register(self, email: str, name: str, password: str) -> User:
        email = (email or "").strip().lower()
        name = (name or "").strip()
        if not email or not name or not password:
            raise InvalidArgument("Missing required fields: email, name, password", code="missing_fields")
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise InvalidArgument(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters",
                code="password_too_short"
            )
        if self.db.query(User).filter(User.email == email).first():
            raise Conflict("User with this email already exists", code="email_taken")

        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
            role=UserRole.WORKER
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("User with this email already exists", code="email_taken") from None
        self.db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    def _issue(self, user: User, now: datetime) -> IssuedTokens:
        pair = generate_refresh_token(now)
        self.db.add(RefreshToken(
            hashed_token=pair.hashed,
            user_id=user.id,
            expires_at=pair.expires_at,
            created_at=now
        ))
        return IssuedTokens(
            access_token=create_access_token(user.id),
            refresh_token=pair.raw,
            user=user
        )

    def login(self, email: str, password: str, now: Optional[datetime] = None) -> IssuedTokens:
        now = now or utcnow()
        email = (email or "").strip().lower()
        if not email or not password:
            raise InvalidArgument("Missing required fields: email, password", code="missing_fields")

        user = self.db.query(User).filter(User.email == email).first()
        # Same answer for unknown email and wrong password
        if user is None or not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid email or password", code="invalid_credentials")

        tokens = self._issue(user, now)
        self.db.commit()
        self.db.refresh(user)
        return tokens

    def refresh(self, raw_token: str, now: Optional[datetime] = None) -> IssuedTokens:
        """Rotate a refresh token: consume it and issue a new access/refresh pair"""
        now = now or utcnow()
        if not raw_token:
            raise InvalidArgument("Refresh token is required", code="missing_refresh_token")

        stored = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.hashed_token == hash_refresh_token(raw_token))
            .first()
        )
        if stored is None:
            raise Unauthenticated("Invalid refresh token", code="invalid_refresh_token")

        if now >= stored.expires_at:
            # Lazy cleanup of expired tokens
            self.db.delete(stored)
            self.db.commit()
            raise Unauthenticated("Refresh token expired", code="refresh_token_expired")

        if stored.revoked_at is not None:
            raise Unauthenticated("Refresh token has been revoked", code="refresh_token_revoked")

        user = stored.user

        # Consume and reissue in one transaction. The conditional delete loses
        # to any concurrent rotation of the same token.
        consumed = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.id == stored.id, RefreshToken.revoked_at.is_(None))
            .delete(synchronize_session=False)
        )
        if consumed != 1:
            self.db.rollback()
            raise Unauthenticated("Invalid refresh token", code="invalid_refresh_token")

        tokens = self._issue(user, now)
        self.db.commit()
        self.db.refresh(user)
        return tokens

    def logout(self, raw_token: str, now: Optional[datetime] = None) -> None:
        """Revoke a refresh token. Unknown or already revoked tokens are ignored."""
        now = now or utcnow()
        if not raw_token:
            raise InvalidArgument("Refresh token is required", code="missing_refresh_token")

        self.db.query(RefreshToken).filter(
            RefreshToken.hashed_token == hash_refresh_token(raw_token),
            RefreshToken.revoked_at.is_(None)
        ).update({RefreshToken.revoked_at: now}, synchronize_session=False)
        self.db.commit()

    def revoke_all(self, user_id: int) -> int:
        """Delete every refresh token of a user, forcing a new login; caller commits"""
        return (
            self.db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id)
            .delete(synchronize_session=False)
        )
