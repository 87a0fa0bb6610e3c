"""
users.py — CRUD for the 'users' table
"""

import uuid
from typing import Optional

from sqlalchemy import select

from talkify.database.models import User
from talkify.errors import ConflictError, NotFoundError
from talkify.utils.db_utils import safe_db_operation
from talkify.utils.logger_config import database_logger as dblog


# CREATE
@safe_db_operation
def create_user(db, username: str, email: str, phone: str, password_hash: str) -> User:
    """Inserts a user. email and phone arrive already sealed by the caller."""
    if get_user_by_username(db, username):
        raise ConflictError(f"Username '{username}' is already taken")

    user = User(username=username, email=email, phone=phone, password_hash=password_hash)
    db.add(user)
    db.commit()
    db.refresh(user)
    dblog.info(f"[CREATE_USER] {username} ({user.id})")
    return user


# READ
def get_user(db, user_id: uuid.UUID) -> Optional[User]:
    return db.get(User, user_id)


def get_user_or_404(db, user_id: uuid.UUID) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_username(db, username: str) -> Optional[User]:
    return db.scalars(select(User).where(User.username == username)).first()


def list_users(db, search: Optional[str] = None) -> list[User]:
    stmt = select(User).where(User.is_active.is_(True)).order_by(User.username)
    if search:
        stmt = stmt.where(User.username.ilike(f"%{search}%"))
    return list(db.scalars(stmt))


# UPDATE
@safe_db_operation
def update_user(db, user: User, **changes) -> User:
    """Applies the given column values; None means 'leave unchanged'."""
    new_username = changes.get("username")
    if new_username and new_username != user.username:
        if get_user_by_username(db, new_username):
            raise ConflictError(f"Username '{new_username}' is already taken")

    for field, value in changes.items():
        if value is not None:
            setattr(user, field, value)
    db.commit()
    db.refresh(user)
    dblog.info(f"[UPDATE_USER] {user.id} fields={sorted(k for k, v in changes.items() if v is not None)}")
    return user
