from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from taskflow.core.exceptions import Unauthenticated
from taskflow.core.security import verify_access_token
from taskflow.db.base import get_db
from taskflow.models.user import User


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the raw token from an ``Authorization: Bearer <token>`` header"""
    if not authorization:
        raise Unauthenticated("Authorization header is required", code="missing_authorization")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        raise Unauthenticated("Invalid authorization format. Use: Bearer <token>", code="invalid_authorization")
    token = token.strip()
    if not token:
        raise Unauthenticated("Token is required", code="missing_token")
    return token


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db)
) -> User:
    user_id = verify_access_token(token)
    if user_id is None:
        raise Unauthenticated("Invalid or expired token", code="invalid_token")

    # The token may outlive its user
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthenticated("User not found", code="user_not_found")
    return user


