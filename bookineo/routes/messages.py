from bookineo import models
from bookineo import schemas
from bookineo.auth import get_current_user
from bookineo.database import get_db
from bookineo.dependencies import get_message_service
from bookineo.services.messages import MessageService

from typing import List
from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, Query, status


router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=schemas.Message, status_code=status.HTTP_201_CREATED)
def send_message(
    message: schemas.MessageCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """
    Send a message from the caller.

    Raises:
        404 if the recipient does not exist, 400 when messaging oneself
    """
    return service.send_message(db, current_user, message)


@router.get("", response_model=List[schemas.Message])
def list_messages(
    direction: schemas.MessageDirection = Query(schemas.MessageDirection.ALL),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """List the caller's sent, received or all messages, newest first."""
    return service.get_messages(db, current_user, direction)


@router.get("/unread-count", response_model=schemas.UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return {"unread": service.get_unread_count(db, current_user)}


@router.get("/{message_id}", response_model=schemas.Message)
def get_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """
    Read one message. Reading as the recipient marks it read.

    Raises:
        404 if missing, 403 if the caller is not a participant
    """
    return service.get_message_by_id(db, current_user, message_id)


@router.post("/{message_id}/read", response_model=schemas.Message)
def mark_message_read(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return service.mark_as_read(db, current_user, message_id)


@router.delete("/{message_id}", response_model=schemas.Detail)
def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    service.delete_message(db, current_user, message_id)
    return {"message": "Message deleted"}
