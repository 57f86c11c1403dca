# Overview: Service-layer operations for auth; user accounts and password checks.

"""
Authentication Service

WHY: Every sale, adjustment and purchase is attributed to a user, so
accounts and logins have to be trustworthy.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..errors import ConflictError, InvalidInput, NotFound
from ..extensions import db
from ..models import User
from ..models.auth import ROLE_CASHIER, ROLES
from ..time_utils import utcnow
from .concurrency import unit_of_work


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise InvalidInput("Password must be at least 8 characters long", "password")
    if not re.search(r"[A-Za-z]", password):
        raise InvalidInput("Password must contain at least one letter", "password")
    if not re.search(r"\d", password):
        raise InvalidInput("Password must contain at least one digit", "password")


def hash_password(password: str, rounds: int = 12) -> str:
    """Validate strength, then bcrypt-hash. Stored as a str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash
        return False


def create_user(
    username: str,
    password: str,
    role: str = ROLE_CASHIER,
    full_name: str | None = None,
    bcrypt_rounds: int = 12,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        InvalidInput: blank username, unknown role or weak password
        ConflictError: username taken
    """
    username = (username or "").strip()
    if not username:
        raise InvalidInput("Username is required", "username")
    if role not in ROLES:
        raise InvalidInput(f"role must be one of: {', '.join(ROLES)}", "role")

    password_hash = hash_password(password, rounds=bcrypt_rounds)

    with unit_of_work():
        if db.session.query(User.id).filter_by(username=username).first():
            raise ConflictError("Username already exists", detail=username)

        user = User(
            username=username,
            full_name=full_name,
            password_hash=password_hash,
            role=role,
        )
        db.session.add(user)

    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Check credentials. Returns the active User, or None.

    Updates last_login_at on success.
    """
    user = (
        db.session.query(User)
        .filter(User.username == (username or "").strip(), User.is_active.is_(True))
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        return None

    with unit_of_work():
        user.last_login_at = utcnow()

    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def set_user_active(user_id: int, is_active: bool) -> User:
    with unit_of_work():
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound("user", user_id)
        user.is_active = is_active
    return user
