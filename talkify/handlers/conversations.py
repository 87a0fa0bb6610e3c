"""
conversations.py
----------------

Conversation routes, mounted under /api/conversations.

Endpoints:
    - GET /api/conversations: the caller's conversations with last message and unread count
    - POST /api/conversations: start a direct or group conversation
    - GET /api/conversations/{id}: one conversation
    - POST /api/conversations/{id}/participants: add a participant
    - PUT /api/conversations/{id}/participants/{user_id}/role: change a participant's role
    - DELETE /api/conversations/{id}/participants/{user_id}: remove a participant
    - POST /api/conversations/{id}/read: mark the conversation read for the caller
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from talkify.database.models import Conversation, User
from talkify.database.queries import conversations as conv_queries
from talkify.handlers.schemas import (
    ConversationCreate, ConversationOut, ErrorOut, ParticipantAdd, ParticipantOut, RoleUpdate,
)


def register_conversation_routes(h, router: APIRouter) -> None:

    def conversation_out(db: Session, conversation: Conversation, viewer: User) -> ConversationOut:
        last = conv_queries.get_last_message(db, conversation.id)
        me = conv_queries.get_participant(db, conversation.id, viewer.id)
        unread = conv_queries.count_unread(db, conversation.id, viewer.id, me.last_read_at) if me else 0
        return ConversationOut(
            id=conversation.id,
            created_by=conversation.created_by,
            name=conversation.name,
            type=conversation.type,
            avatar_url=conversation.avatar_url,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            participants=[h.participant_out(p) for p in conversation.participants],
            last_message=h.message_out(last) if last else None,
            unread_count=unread,
        )

    @router.get("", response_model=List[ConversationOut], summary="List my conversations")
    def list_conversations(me: User = Depends(h.current_user), db: Session = Depends(h.db)):
        return [conversation_out(db, c, me) for c in conv_queries.list_conversations_for_user(db, me.id)]

    @router.post(
        "",
        response_model=ConversationOut,
        status_code=status.HTTP_201_CREATED,
        responses={200: {"model": ConversationOut, "description": "Existing direct conversation"},
                   404: {"model": ErrorOut}},
        summary="Start a conversation",
    )
    def create_conversation(
        payload: ConversationCreate,
        response: Response,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        conversation, created = conv_queries.create_conversation(db, me.id, payload.user_ids, payload.name)
        if not created:
            response.status_code = status.HTTP_200_OK
        return conversation_out(db, conversation, me)

    @router.get(
        "/{conversation_id}",
        response_model=ConversationOut,
        responses={404: {"model": ErrorOut}},
        summary="Get a conversation",
    )
    def get_conversation(conversation_id: uuid.UUID, me: User = Depends(h.current_user), db: Session = Depends(h.db)):
        return conversation_out(db, conv_queries.get_conversation_or_404(db, conversation_id), me)

    @router.post(
        "/{conversation_id}/participants",
        response_model=ParticipantOut,
        status_code=status.HTTP_201_CREATED,
        responses={404: {"model": ErrorOut}, 409: {"model": ErrorOut}},
        summary="Add a participant",
    )
    def add_participant(
        conversation_id: uuid.UUID,
        payload: ParticipantAdd,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        conversation = conv_queries.get_conversation_or_404(db, conversation_id)
        return h.participant_out(conv_queries.add_participant(db, conversation, payload.user_id, payload.role))

    @router.put(
        "/{conversation_id}/participants/{user_id}/role",
        response_model=ParticipantOut,
        responses={404: {"model": ErrorOut}},
        summary="Change a participant's role",
    )
    def update_role(
        conversation_id: uuid.UUID,
        user_id: uuid.UUID,
        payload: RoleUpdate,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        conv_queries.get_conversation_or_404(db, conversation_id)
        return h.participant_out(conv_queries.update_participant_role(db, conversation_id, user_id, payload.role))

    @router.delete(
        "/{conversation_id}/participants/{user_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        responses={404: {"model": ErrorOut}},
        summary="Remove a participant",
    )
    def remove_participant(
        conversation_id: uuid.UUID,
        user_id: uuid.UUID,
        me: User = Depends(h.current_user),
        db: Session = Depends(h.db),
    ):
        conv_queries.get_conversation_or_404(db, conversation_id)
        conv_queries.remove_participant(db, conversation_id, user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post(
        "/{conversation_id}/read",
        status_code=status.HTTP_204_NO_CONTENT,
        responses={404: {"model": ErrorOut}},
        summary="Mark as read",
    )
    def mark_read(conversation_id: uuid.UUID, me: User = Depends(h.current_user), db: Session = Depends(h.db)):
        conv_queries.get_conversation_or_404(db, conversation_id)
        conv_queries.mark_read(db, conversation_id, me.id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
