"""
messages.py
-----------

Message routes, mounted under /api/messages. Content is sealed with the
encryptor before it is stored and opened again on the way out.

Endpoints:
    - GET /api/messages/{conversation_id}: message history, oldest first
    - POST /api/messages/{conversation_id}: send a message
    - PUT /api/messages/{conversation_id}/{message_id}: edit own message
    - DELETE /api/messages/{conversation_id}/{message_id}: delete own message
    - POST /api/messages/{conversation_id}/{message_id}/reactions: react
    - DELETE /api/messages/{conversation_id}/{message_id}/reactions/{emoji}: withdraw a reaction
"""

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from talkify.database.models import User
from talkify.database.queries import conversations as conv_queries
from talkify.database.queries import messages as msg_queries
from talkify.errors import ForbiddenError, NotFoundError
from talkify.handlers.schemas import (
    ErrorOut, MessageCreate, MessageOut, MessageUpdate, ReactionCreate, ReactionOut,
)


def register_message_routes(h, router: APIRouter) -> None:

    def own_message(db: Session, conversation_id: uuid.UUID, message_id: uuid.UUID, me: User):
        message = msg_queries.get_message_or_404(db, conversation_id, message_id)
        if message.is_deleted:
            raise NotFoundError("Message not found")
        if message.sender_id != me.id:
            raise ForbiddenError("Only the sender can change this message")
        return message

    @router.get(
        "/{conversation_id}",
        response_model=List[MessageOut],
        responses={404: {"model": ErrorOut}},
        summary="Message history",
    )
    def list_messages(
        conversation_id: uuid.UUID,
        limit: int = Query(50, ge=1, le=200),
        before: Optional[datetime] = Query(None, description="Only messages older than this"),
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        conv_queries.get_conversation_or_404(db, conversation_id)
        return [h.message_out(m) for m in msg_queries.list_messages(db, conversation_id, limit, before)]

    @router.post(
        "/{conversation_id}",
        response_model=MessageOut,
        status_code=status.HTTP_201_CREATED,
        responses={404: {"model": ErrorOut}},
        summary="Send a message",
    )
    def send_message(
        conversation_id: uuid.UUID,
        payload: MessageCreate,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        conv_queries.get_conversation_or_404(db, conversation_id)
        message = msg_queries.create_message(
            db,
            conversation_id=conversation_id,
            sender_id=me.id,
            content=h.seal(payload.content),
            message_type=payload.type,
            reply_to_id=payload.reply_to_id,
            media_url=payload.media_url,
            media_thumbnail_url=payload.media_thumbnail_url,
            media_size=payload.media_size,
            media_duration=payload.media_duration,
        )
        return h.message_out(message)

    @router.put(
        "/{conversation_id}/{message_id}",
        response_model=MessageOut,
        responses={403: {"model": ErrorOut}, 404: {"model": ErrorOut}},
        summary="Edit a message",
    )
    def edit_message(
        conversation_id: uuid.UUID,
        message_id: uuid.UUID,
        payload: MessageUpdate,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        message = own_message(db, conversation_id, message_id, me)
        return h.message_out(msg_queries.edit_message(db, message, h.seal(payload.content)))

    @router.delete(
        "/{conversation_id}/{message_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        responses={403: {"model": ErrorOut}, 404: {"model": ErrorOut}},
        summary="Delete a message",
    )
    def delete_message(
        conversation_id: uuid.UUID,
        message_id: uuid.UUID,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        msg_queries.soft_delete_message(db, own_message(db, conversation_id, message_id, me))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post(
        "/{conversation_id}/{message_id}/reactions",
        response_model=ReactionOut,
        status_code=status.HTTP_201_CREATED,
        responses={404: {"model": ErrorOut}, 409: {"model": ErrorOut}},
        summary="React to a message",
    )
    def add_reaction(
        conversation_id: uuid.UUID,
        message_id: uuid.UUID,
        payload: ReactionCreate,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        message = msg_queries.get_message_or_404(db, conversation_id, message_id)
        reaction = msg_queries.add_reaction(db, message, me.id, payload.emoji)
        return ReactionOut(
            id=reaction.id, message_id=reaction.message_id, user_id=reaction.user_id,
            emoji=reaction.emoji, created_at=reaction.created_at,
        )

    @router.delete(
        "/{conversation_id}/{message_id}/reactions/{emoji}",
        status_code=status.HTTP_204_NO_CONTENT,
        responses={404: {"model": ErrorOut}},
        summary="Withdraw a reaction",
    )
    def remove_reaction(
        conversation_id: uuid.UUID,
        message_id: uuid.UUID,
        emoji: str,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        message = msg_queries.get_message_or_404(db, conversation_id, message_id)
        msg_queries.remove_reaction(db, message, me.id, emoji)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
