"""
users.py
--------

User routes, mounted under /api/users.

Endpoints:
    - POST /api/users: create a user (password hashed, email/phone encrypted)
    - GET /api/users: list active users, optional username search
    - GET /api/users/me: the acting user
    - PUT /api/users/me: update the acting user's profile
    - GET /api/users/{user_id}: one user
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from talkify.crypto.passwords import hash_password
from talkify.database.models import User
from talkify.database.queries import users as user_queries
from talkify.handlers.schemas import ErrorOut, UserCreate, UserOut, UserUpdate


def register_user_routes(h, router: APIRouter) -> None:

    @router.post(
        "",
        response_model=UserOut,
        status_code=status.HTTP_201_CREATED,
        responses={409: {"model": ErrorOut}},
        summary="Create a user",
    )
    def create_user(payload: UserCreate, db: Session = Depends(h.db)):
        user = user_queries.create_user(
            db,
            username=payload.username,
            email=h.seal(payload.email),
            phone=h.seal(payload.phone),
            password_hash=hash_password(payload.password),
        )
        return h.user_out(user)

    @router.get("", response_model=List[UserOut], summary="List users")
    def list_users(
        search: Optional[str] = Query(None, description="Username substring"),
        db: Session = Depends(h.db),
    ):
        return [h.user_out(u) for u in user_queries.list_users(db, search)]

    @router.get("/me", response_model=UserOut, responses={401: {"model": ErrorOut}}, summary="Current user")
    def get_me(me: User = Depends(h.current_user)):
        return h.user_out(me)

    @router.put(
        "/me",
        response_model=UserOut,
        responses={401: {"model": ErrorOut}, 409: {"model": ErrorOut}},
        summary="Update current user",
    )
    def update_me(payload: UserUpdate, me: User = Depends(h.current_user), db: Session = Depends(h.db)):
        user = user_queries.update_user(
            db,
            me,
            username=payload.username,
            email=h.seal(payload.email),
            phone=h.seal(payload.phone),
            status=payload.status,
        )
        return h.user_out(user)

    @router.get("/{user_id}", response_model=UserOut, responses={404: {"model": ErrorOut}}, summary="Get a user")
    def get_user(user_id: uuid.UUID, db: Session = Depends(h.db)):
        return h.user_out(user_queries.get_user_or_404(db, user_id))
