"""
handler.py
----------

The handler set: binds the database handle and the optional encryptor into
route-registration functions for users, conversations and messages.

The acting user comes from the X-User-ID header, declared as an API-key
security scheme so it shows up in Swagger. The header only identifies the
caller; there is no credential check behind it.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from talkify.crypto.manager import DecryptionError, EncryptionManager
from talkify.database.connection import Database
from talkify.database.models import ConversationParticipant, Message, User
from talkify.errors import UnauthorizedError
from talkify.handlers import conversations, messages, users
from talkify.handlers.schemas import MessageOut, ParticipantOut, ReactionOut, UserOut
from talkify.utils.logger_config import crypto_logger

user_id_header = APIKeyHeader(name="X-User-ID", auto_error=False, description="ID of the acting user")


class Handler:
    def __init__(self, database: Database, encryptor: Optional[EncryptionManager] = None):
        self.database = database
        self.encryptor = encryptor
        self.db = database.session

        def current_user(
            raw_user_id: Optional[str] = Security(user_id_header),
            db: Session = Depends(self.db),
        ) -> User:
            if not raw_user_id:
                raise UnauthorizedError("Missing X-User-ID header")
            try:
                user_id = uuid.UUID(raw_user_id)
            except ValueError:
                raise UnauthorizedError("X-User-ID is not a valid user id") from None
            user = db.get(User, user_id)
            if user is None or not user.is_active:
                raise UnauthorizedError("Unknown user")
            return user

        self.current_user = current_user

    # ======================================================
    # Route registration
    # ======================================================
    def register_user_routes(self, router: APIRouter) -> None:
        users.register_user_routes(self, router)

    def register_conversation_routes(self, router: APIRouter) -> None:
        conversations.register_conversation_routes(self, router)

    def register_message_routes(self, router: APIRouter) -> None:
        messages.register_message_routes(self, router)

    # ======================================================
    # Encryption at rest
    # ======================================================
    def seal(self, value: Optional[str]) -> Optional[str]:
        if value is None or self.encryptor is None:
            return value
        return self.encryptor.encrypt_string(value)

    def unseal(self, value: str) -> str:
        if self.encryptor is None:
            return value
        try:
            return self.encryptor.decrypt_string(value)
        except (DecryptionError, UnicodeDecodeError):
            # rows written before encryption was enabled; talkify-encrypt-users migrates them
            crypto_logger.warning("[DECRYPT_FALLBACK] Stored value is not ciphertext, returning it as is")
            return value

    # ======================================================
    # Serialization
    # ======================================================
    def user_out(self, user: User) -> UserOut:
        return UserOut(
            id=user.id,
            username=user.username,
            email=self.unseal(user.email),
            phone=self.unseal(user.phone),
            status=user.status,
            last_seen=user.last_seen,
            is_online=user.is_online,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def participant_out(self, participant: ConversationParticipant) -> ParticipantOut:
        return ParticipantOut(
            conversation_id=participant.conversation_id,
            user_id=participant.user_id,
            role=participant.role,
            joined_at=participant.joined_at,
            last_read_at=participant.last_read_at,
            user=self.user_out(participant.user) if participant.user else None,
        )

    def message_out(self, message: Message) -> MessageOut:
        return MessageOut(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            sender_username=message.sender.username,
            reply_to_id=message.reply_to_id,
            content="" if message.is_deleted else self.unseal(message.content),
            type=message.message_type,
            media_url=message.media_url,
            media_thumbnail_url=message.media_thumbnail_url,
            media_size=message.media_size,
            media_duration=message.media_duration,
            is_edited=message.is_edited,
            is_deleted=message.is_deleted,
            created_at=message.created_at,
            updated_at=message.updated_at,
            reactions=[
                ReactionOut(
                    id=r.id, message_id=r.message_id, user_id=r.user_id,
                    emoji=r.emoji, created_at=r.created_at,
                )
                for r in message.reactions
            ],
        )
