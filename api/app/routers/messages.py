"""Private messaging endpoints. Every route requires authentication."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.messages import MessageService

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.get("/conversations", response_model=schemas.ApiResponse[schemas.ConversationList])
def list_conversations(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.ConversationList]:
    """The caller's conversations, most recently active first, with unread counts."""
    conversations = MessageService(db).list_for_user(current_user.id)
    return schemas.ApiResponse(data=schemas.ConversationList(conversations=conversations))


@router.post(
    "/conversations",
    response_model=schemas.ApiResponse[schemas.Conversation],
    status_code=status.HTTP_201_CREATED,
)
def open_conversation(
    payload: schemas.ConversationCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.Conversation]:
    """
    Get or create the direct conversation with another user.

    Returns 201 when the conversation is new and 200 when it already existed.
    """
    conversation, created = MessageService(db).open_direct(current_user, payload.user_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return schemas.ApiResponse(data=conversation)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=schemas.ApiResponse[schemas.MessageList],
)
def list_messages(
    conversation_id: UUID,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.MessageList]:
    """Messages oldest first within the newest `limit`. Marks the conversation read."""
    messages = MessageService(db).messages(
        conversation_id, current_user.id, limit=page.limit, offset=page.offset
    )
    return schemas.ApiResponse(
        data=schemas.MessageList(messages=messages, limit=page.limit, offset=page.offset)
    )


@router.put("/conversations/{conversation_id}/read", response_model=schemas.ApiResponse[None])
def mark_conversation_read(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    MessageService(db).mark_read(conversation_id, current_user.id)
    return schemas.ApiResponse(message="Marked as read")


@router.post(
    "/messages",
    response_model=schemas.ApiResponse[schemas.Message],
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    payload: schemas.MessageCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.Message]:
    message = MessageService(db).send(current_user, payload)
    return schemas.ApiResponse(data=message)


@router.delete("/messages/{message_id}", response_model=schemas.ApiResponse[None])
def delete_message(
    message_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Delete one of your own messages."""
    MessageService(db).delete(message_id, current_user.id)
    return schemas.ApiResponse(message="Message deleted successfully")


@router.get("/unread-count", response_model=schemas.ApiResponse[schemas.UnreadCount])
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.UnreadCount]:
    """Number of conversations with unread messages."""
    count = MessageService(db).unread_count(current_user.id)
    return schemas.ApiResponse(data=schemas.UnreadCount(count=count))
