"""
conversations.py — CRUD for conversations and their participants
----------------------------------------------------------------

Includes:
- Direct conversations, reused when the same two users already share one
- Group conversations, whose creator becomes the owner
- Participant add / remove / role change
- Read markers (last_read_at) and unread counters
"""

import uuid
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select

from talkify.database.models import (
    Conversation, ConversationParticipant, ConversationType, Message,
    ParticipantRole, User, utcnow,
)
from talkify.errors import APIError, ConflictError, NotFoundError
from talkify.utils.db_utils import safe_db_operation
from talkify.utils.logger_config import database_logger as dblog


# ======================================================
# READ
# ======================================================
def get_conversation(db, conversation_id: uuid.UUID) -> Optional[Conversation]:
    return db.get(Conversation, conversation_id)


def get_conversation_or_404(db, conversation_id: uuid.UUID) -> Conversation:
    conversation = get_conversation(db, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    return conversation


def get_participant(db, conversation_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ConversationParticipant]:
    return db.get(ConversationParticipant, (conversation_id, user_id))


def find_direct_conversation(db, user_a: uuid.UUID, user_b: uuid.UUID) -> Optional[Conversation]:
    """Returns the direct conversation shared by exactly these two users, if any."""
    of_a = select(ConversationParticipant.conversation_id).where(ConversationParticipant.user_id == user_a)
    of_b = select(ConversationParticipant.conversation_id).where(ConversationParticipant.user_id == user_b)
    stmt = (
        select(Conversation)
        .where(Conversation.type == ConversationType.direct)
        .where(Conversation.id.in_(of_a))
        .where(Conversation.id.in_(of_b))
    )
    return db.scalars(stmt).first()


def list_conversations_for_user(db, user_id: uuid.UUID) -> list[Conversation]:
    """Conversations the user takes part in, most recent activity first."""
    last_activity = (
        select(func.max(Message.created_at))
        .where(Message.conversation_id == Conversation.id)
        .correlate(Conversation)
        .scalar_subquery()
    )
    stmt = (
        select(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .where(ConversationParticipant.user_id == user_id)
        .order_by(func.coalesce(last_activity, Conversation.created_at).desc())
    )
    return list(db.scalars(stmt).unique())


def get_last_message(db, conversation_id: uuid.UUID) -> Optional[Message]:
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc())
        .limit(1)
    )
    return db.scalars(stmt).unique().first()


def count_unread(db, conversation_id: uuid.UUID, user_id: uuid.UUID, since: datetime) -> int:
    """Messages from other users, not deleted, posted after 'since'."""
    stmt = (
        select(func.count(Message.id))
        .where(Message.conversation_id == conversation_id)
        .where(Message.sender_id != user_id)
        .where(Message.is_deleted.is_(False))
        .where(Message.created_at > since)
    )
    return db.scalar(stmt) or 0


# ======================================================
# CREATE
# ======================================================
def _require_users(db, user_ids: Iterable[uuid.UUID]) -> None:
    for user_id in user_ids:
        if db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")


@safe_db_operation
def create_conversation(db, creator_id: uuid.UUID, user_ids: Iterable[uuid.UUID], name: Optional[str] = None):
    """
    Creates a conversation between the creator and user_ids.

    One other user and no name gives a direct conversation; an existing direct
    conversation between the pair is returned instead of a new one. Anything
    else is a group owned by the creator.

    Returns:
        (conversation, created) where created is False for a reused conversation.
    """
    others = list(dict.fromkeys(uid for uid in user_ids if uid != creator_id))
    if not others and not name:
        raise APIError("A conversation needs at least one other participant")
    _require_users(db, others)

    if len(others) == 1 and not name:
        existing = find_direct_conversation(db, creator_id, others[0])
        if existing is not None:
            dblog.info(f"[REUSE_DIRECT] {creator_id} <-> {others[0]} ({existing.id})")
            return existing, False

        conversation = Conversation(created_by=creator_id, type=ConversationType.direct)
        conversation.participants = [
            ConversationParticipant(user_id=creator_id, role=ParticipantRole.member),
            ConversationParticipant(user_id=others[0], role=ParticipantRole.member),
        ]
    else:
        conversation = Conversation(created_by=creator_id, type=ConversationType.group, name=name)
        conversation.participants = [ConversationParticipant(user_id=creator_id, role=ParticipantRole.owner)] + [
            ConversationParticipant(user_id=uid, role=ParticipantRole.member) for uid in others
        ]

    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    dblog.info(
        f"[CREATE_CONVERSATION] {conversation.id} type={conversation.type.value} "
        f"participants={len(conversation.participants)}"
    )
    return conversation, True


# ======================================================
# PARTICIPANTS
# ======================================================
@safe_db_operation
def add_participant(db, conversation: Conversation, user_id: uuid.UUID,
                    role: ParticipantRole = ParticipantRole.member) -> ConversationParticipant:
    _require_users(db, [user_id])
    if get_participant(db, conversation.id, user_id) is not None:
        raise ConflictError("User is already a participant")

    participant = ConversationParticipant(conversation_id=conversation.id, user_id=user_id, role=role)
    db.add(participant)
    db.commit()
    db.refresh(participant)
    dblog.info(f"[ADD_PARTICIPANT] {user_id} -> {conversation.id} role={role.value}")
    return participant


def _participant_or_404(db, conversation_id: uuid.UUID, user_id: uuid.UUID) -> ConversationParticipant:
    participant = get_participant(db, conversation_id, user_id)
    if participant is None:
        raise NotFoundError("Participant not found")
    return participant


@safe_db_operation
def update_participant_role(db, conversation_id: uuid.UUID, user_id: uuid.UUID,
                            role: ParticipantRole) -> ConversationParticipant:
    participant = _participant_or_404(db, conversation_id, user_id)
    participant.role = role
    db.commit()
    db.refresh(participant)
    dblog.info(f"[UPDATE_ROLE] {user_id} in {conversation_id} -> {role.value}")
    return participant


@safe_db_operation
def remove_participant(db, conversation_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    participant = _participant_or_404(db, conversation_id, user_id)
    db.delete(participant)
    db.commit()
    dblog.info(f"[REMOVE_PARTICIPANT] {user_id} <- {conversation_id}")
    return True


@safe_db_operation
def mark_read(db, conversation_id: uuid.UUID, user_id: uuid.UUID) -> ConversationParticipant:
    participant = _participant_or_404(db, conversation_id, user_id)
    participant.last_read_at = utcnow()
    db.commit()
    return participant
