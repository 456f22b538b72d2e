import logging
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from bookineo import models, schemas
from bookineo.errors import AuthorizationError, NotFoundError, ValidationError
from bookineo.mailer import Mailer
from bookineo.services.users import normalize_email


logger = logging.getLogger(__name__)


def display_name(user: models.User) -> str:
    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return name or user.email


class MessageService:
    """
    Direct messages between users.

    A message is unread until its recipient opens it or marks it read.
    Only the two participants can see or delete a message.
    """

    def __init__(self, mailer: Mailer):
        self.mailer = mailer

    def send_message(
        self, db: Session, sender: models.User, data: schemas.MessageCreate
    ) -> models.Message:
        """
        Send a message and notify the recipient by email.

        Raises:
            NotFoundError: if the recipient does not exist
            ValidationError: if the sender addresses themselves
        """
        if data.recipient_id is not None:
            recipient = db.get(models.User, data.recipient_id)
            missing = f"Recipient with id {data.recipient_id} not found"
        else:
            recipient = (
                db.query(models.User)
                .filter(models.User.email == normalize_email(data.recipient_email))
                .first()
            )
            missing = "Recipient not found"
        if recipient is None:
            raise NotFoundError(missing)

        if recipient.id == sender.id:
            raise ValidationError("You cannot send a message to yourself")

        message = models.Message(
            sender_id=sender.id,
            recipient_id=recipient.id,
            subject=data.subject,
            content=data.content,
            is_read=False,
        )
        db.add(message)
        db.commit()
        db.refresh(message)

        logger.info("Message %s sent from %s to %s", message.id, sender.id, recipient.id)
        self.mailer.send_new_message(
            recipient.email,
            display_name(recipient),
            display_name(sender),
            message.subject,
            message.content,
        )
        return message

    def get_messages(
        self,
        db: Session,
        user: models.User,
        direction: schemas.MessageDirection = schemas.MessageDirection.ALL,
    ) -> List[models.Message]:
        """List the user's messages, newest first."""
        query = db.query(models.Message).options(
            joinedload(models.Message.sender), joinedload(models.Message.recipient)
        )

        if direction == schemas.MessageDirection.SENT:
            query = query.filter(models.Message.sender_id == user.id)
        elif direction == schemas.MessageDirection.RECEIVED:
            query = query.filter(models.Message.recipient_id == user.id)
        else:
            query = query.filter(
                or_(
                    models.Message.sender_id == user.id,
                    models.Message.recipient_id == user.id,
                )
            )

        return query.order_by(
            models.Message.sent_at.desc(), models.Message.id.desc()
        ).all()

    def get_message_by_id(
        self, db: Session, user: models.User, message_id: int
    ) -> models.Message:
        """
        Fetch one message. Opening it as the recipient marks it read.

        Raises:
            NotFoundError: if the message does not exist
            AuthorizationError: if the user is not a participant
        """
        message = self._get_for_participant(db, user, message_id)
        if message.recipient_id == user.id and not message.is_read:
            message.is_read = True
            db.commit()
            db.refresh(message)
        return message

    def mark_as_read(
        self, db: Session, user: models.User, message_id: int
    ) -> models.Message:
        """
        Mark a received message read. Marking twice is harmless.

        Raises:
            AuthorizationError: if the user is not the recipient
        """
        message = self._get_for_participant(db, user, message_id)
        if message.recipient_id != user.id:
            raise AuthorizationError("Only the recipient can mark a message as read")

        if not message.is_read:
            message.is_read = True
            db.commit()
            db.refresh(message)
        return message

    def delete_message(self, db: Session, user: models.User, message_id: int) -> None:
        message = self._get_for_participant(db, user, message_id)
        db.delete(message)
        db.commit()
        logger.info("Message %s deleted by user %s", message_id, user.id)

    def get_unread_count(self, db: Session, user: models.User) -> int:
        return (
            db.query(models.Message)
            .filter(
                models.Message.recipient_id == user.id,
                models.Message.is_read.is_(False),
            )
            .count()
        )

    def _get_for_participant(
        self, db: Session, user: models.User, message_id: int
    ) -> models.Message:
        message = db.get(models.Message, message_id)
        if message is None:
            raise NotFoundError(f"Message with id {message_id} not found")

        if user.id not in (message.sender_id, message.recipient_id):
            logger.warning(
                "User %s tried to access message %s without being a participant",
                user.id,
                message_id,
            )
            raise AuthorizationError("You do not have access to this message")
        return message
