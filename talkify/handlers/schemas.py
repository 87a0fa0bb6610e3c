"""
schemas.py
----------

Pydantic request and response models shared by the route modules.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from talkify.database.models import ConversationType, MessageType, ParticipantRole


# -------------------------
# Users
# -------------------------
class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: str = ""
    password: str


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = Field(None, max_length=50)


class UserOut(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    phone: str
    status: str
    last_seen: Optional[datetime] = None
    is_online: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


# -------------------------
# Messages
# -------------------------
class MessageCreate(BaseModel):
    content: str
    type: MessageType = MessageType.text
    reply_to_id: Optional[uuid.UUID] = None
    media_url: Optional[str] = None
    media_thumbnail_url: Optional[str] = None
    media_size: Optional[int] = None
    media_duration: Optional[int] = None


class MessageUpdate(BaseModel):
    content: str


class ReactionCreate(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32)


class ReactionOut(BaseModel):
    id: uuid.UUID
    message_id: uuid.UUID
    user_id: uuid.UUID
    emoji: str
    created_at: datetime


class MessageOut(BaseModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    sender_username: str
    reply_to_id: Optional[uuid.UUID] = None
    content: str
    type: MessageType
    media_url: Optional[str] = None
    media_thumbnail_url: Optional[str] = None
    media_size: Optional[int] = None
    media_duration: Optional[int] = None
    is_edited: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    reactions: List[ReactionOut] = []


# -------------------------
# Conversations
# -------------------------
class ConversationCreate(BaseModel):
    user_ids: List[uuid.UUID]
    name: Optional[str] = Field(None, max_length=255)


class ParticipantAdd(BaseModel):
    user_id: uuid.UUID
    role: ParticipantRole = ParticipantRole.member


class RoleUpdate(BaseModel):
    role: ParticipantRole


class ParticipantOut(BaseModel):
    conversation_id: uuid.UUID
    user_id: uuid.UUID
    role: ParticipantRole
    joined_at: datetime
    last_read_at: datetime
    user: Optional[UserOut] = None


class ConversationOut(BaseModel):
    id: uuid.UUID
    created_by: uuid.UUID
    name: Optional[str] = None
    type: ConversationType
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    participants: List[ParticipantOut] = []
    last_message: Optional[MessageOut] = None
    unread_count: int = 0


class ErrorOut(BaseModel):
    error: str
