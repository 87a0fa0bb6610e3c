"""
messages.py — CRUD for the 'messages' and 'message_reactions' tables
--------------------------------------------------------------------

Content arrives here already sealed by the handler layer, so nothing in this
module sees plaintext when encryption is enabled.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select

from talkify.database.models import Message, MessageReaction, MessageType
from talkify.errors import ConflictError, NotFoundError
from talkify.utils.db_utils import safe_db_operation
from talkify.utils.logger_config import database_logger as dblog


# ======================================================
# READ
# ======================================================
def get_message_or_404(db, conversation_id: uuid.UUID, message_id: uuid.UUID) -> Message:
    message = db.get(Message, message_id)
    if message is None or message.conversation_id != conversation_id:
        raise NotFoundError("Message not found")
    return message


def list_messages(db, conversation_id: uuid.UUID, limit: int = 50,
                  before: Optional[datetime] = None) -> list[Message]:
    """The newest 'limit' messages (optionally older than 'before'), oldest first."""
    stmt = select(Message).where(Message.conversation_id == conversation_id)
    if before is not None:
        stmt = stmt.where(Message.created_at < before)
    stmt = stmt.order_by(Message.created_at.desc()).limit(limit)
    newest_first = list(db.scalars(stmt).unique())
    newest_first.reverse()
    return newest_first


# ======================================================
# CREATE
# ======================================================
@safe_db_operation
def create_message(db, conversation_id: uuid.UUID, sender_id: uuid.UUID, content: str,
                   message_type: MessageType = MessageType.text,
                   reply_to_id: Optional[uuid.UUID] = None, **media) -> Message:
    """Stores a message. media may carry media_url, media_thumbnail_url, media_size, media_duration."""
    if reply_to_id is not None:
        get_message_or_404(db, conversation_id, reply_to_id)

    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        message_type=message_type,
        reply_to_id=reply_to_id,
        **media,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    dblog.info(f"[CREATE_MESSAGE] {message.id} {sender_id} -> {conversation_id} type={message_type.value}")
    return message


# ======================================================
# UPDATE / DELETE
# ======================================================
@safe_db_operation
def edit_message(db, message: Message, content: str) -> Message:
    message.content = content
    message.is_edited = True
    db.commit()
    db.refresh(message)
    dblog.info(f"[EDIT_MESSAGE] {message.id}")
    return message


@safe_db_operation
def soft_delete_message(db, message: Message) -> Message:
    """Keeps the row but drops its content and media."""
    message.content = ""
    message.media_url = None
    message.media_thumbnail_url = None
    message.is_deleted = True
    db.commit()
    dblog.info(f"[DELETE_MESSAGE] {message.id}")
    return message


# ======================================================
# REACTIONS
# ======================================================
def _find_reaction(db, message_id: uuid.UUID, user_id: uuid.UUID, emoji: str) -> Optional[MessageReaction]:
    stmt = select(MessageReaction).where(
        MessageReaction.message_id == message_id,
        MessageReaction.user_id == user_id,
        MessageReaction.emoji == emoji,
    )
    return db.scalars(stmt).first()


@safe_db_operation
def add_reaction(db, message: Message, user_id: uuid.UUID, emoji: str) -> MessageReaction:
    if _find_reaction(db, message.id, user_id, emoji) is not None:
        raise ConflictError("Reaction already exists")

    reaction = MessageReaction(message_id=message.id, user_id=user_id, emoji=emoji)
    db.add(reaction)
    db.commit()
    db.refresh(reaction)
    dblog.info(f"[ADD_REACTION] {user_id} {emoji} -> {message.id}")
    return reaction


@safe_db_operation
def remove_reaction(db, message: Message, user_id: uuid.UUID, emoji: str) -> bool:
    reaction = _find_reaction(db, message.id, user_id, emoji)
    if reaction is None:
        raise NotFoundError("Reaction not found")
    db.delete(reaction)
    db.commit()
    dblog.info(f"[REMOVE_REACTION] {user_id} {emoji} <- {message.id}")
    return True
