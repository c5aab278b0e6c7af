"""
Staff accounts for attributing sales and refunds.

Passwords are stored as bcrypt hashes. There are no session tokens: a
terminal has at most one signed-in cashier (see terminal_service).
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import AuthenticationFailed
from ..models import User
from ..validation import ConflictError, ValidationError

ROLES = ("admin", "cashier")


def hash_password(password: str) -> str:
    if not password:
        raise ValidationError("password required")
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def create_user(username: str, name: str, password: str, role: str = "cashier") -> User:
    username = (username or "").strip()
    if not username:
        raise ValidationError("username required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")
    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError(f"User {username} already exists")

    user = User(username=username, name=name or username, role=role, password_hash=hash_password(password))
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User:
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not user.is_active or not verify_password(password or "", user.password_hash):
        raise AuthenticationFailed("Invalid username or password")
    return user
