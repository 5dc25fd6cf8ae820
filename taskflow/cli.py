"""
Admin bootstrap commands.

    python -m taskflow.cli create-user admin@company.com "Admin" 'S3cret!pw' --role admin
    python -m taskflow.cli set-role worker@company.com supervisor

Registration always creates workers, so the first admin comes from here.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from taskflow.core.config import settings
from taskflow.core.logging import setup_logging
from taskflow.core.security import get_password_hash
from taskflow.db.base import Base, SessionLocal, engine
from taskflow.models import User, UserRole

logger = logging.getLogger(__name__)

ROLE_CHOICES = [r.value for r in UserRole]


def create_user(email: str, name: str, password: str, role: str) -> int:
    db = SessionLocal()
    try:
        email = email.strip().lower()
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"User '{email}' already exists with role '{existing.role.value}'.")
            return 1

        user = User(email=email, name=name, password_hash=get_password_hash(password), role=UserRole(role))
        db.add(user)
        db.commit()
        print(f"Created user: {email} (role: {role})")
        return 0
    finally:
        db.close()


def set_role(email: str, role: str) -> int:
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if user is None:
            print(f"User '{email}' not found.")
            return 1
        user.role = UserRole(role)
        db.commit()
        print(f"Updated {email} to role '{role}'.")
        return 0
    finally:
        db.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="taskflow", description="Taskflow admin commands.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_create = sub.add_parser("create-user", help="Create a user with any role")
    p_create.add_argument("email")
    p_create.add_argument("name")
    p_create.add_argument("password")
    p_create.add_argument("--role", choices=ROLE_CHOICES, default=UserRole.WORKER.value)

    p_role = sub.add_parser("set-role", help="Change the role of an existing user")
    p_role.add_argument("email")
    p_role.add_argument("role", choices=ROLE_CHOICES)

    args = parser.parse_args(argv)
    setup_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)

    if args.command == "create-user":
        return create_user(args.email, args.name, args.password, args.role)
    return set_role(args.email, args.role)


if __name__ == "__main__":
    sys.exit(main())
