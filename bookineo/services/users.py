import logging
from datetime import timedelta
from typing import Optional, Tuple

from jose import JWTError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookineo import models, schemas
from bookineo.auth import (
    ACCESS_TOKEN_TYPE,
    PASSWORD_RESET_TOKEN_TYPE,
    PasswordHasher,
    TokenCodec,
)
from bookineo.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from bookineo.mailer import Mailer


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_TOKEN = "Invalid or expired token"
RESET_REQUESTED = "If this email exists, a reset link has been sent"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """
    Account registration, login, profile management and password reset.

    The service holds no per-request state. Every method takes the request's
    database session and commits its own unit of work.
    """

    def __init__(
        self,
        hasher: PasswordHasher,
        codec: TokenCodec,
        mailer: Mailer,
        access_token_ttl: timedelta,
        reset_token_ttl: timedelta,
    ):
        self.hasher = hasher
        self.codec = codec
        self.mailer = mailer
        self.access_token_ttl = access_token_ttl
        self.reset_token_ttl = reset_token_ttl
        self._dummy_hash: Optional[str] = None

    def get_by_email(self, db: Session, email: str) -> Optional[models.User]:
        return (
            db.query(models.User)
            .filter(models.User.email == normalize_email(email))
            .first()
        )

    def register(self, db: Session, data: schemas.UserCreate) -> models.User:
        """
        Create an account and send the welcome email.

        Raises:
            ConflictError: if the email is already registered
        """
        email = normalize_email(data.email)
        if self.get_by_email(db, email):
            raise ConflictError("Email is already registered")

        user = models.User(
            email=email,
            password=self.hasher.hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            birth_date=data.birth_date,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Email is already registered")
        db.refresh(user)

        logger.info("Registered user %s", user.id)
        self.mailer.send_welcome(user.email, user.first_name)
        return user

    def login(self, db: Session, email: str, password: str) -> Tuple[str, models.User]:
        """
        Check credentials and issue an access token.

        Unknown email and wrong password fail with the same error, and an
        unknown email still pays for one hash verification so response
        times do not tell the two apart.

        Raises:
            AuthenticationError: on any credential mismatch
        """
        user = self.get_by_email(db, email)
        if user is None:
            self.hasher.verify(password, self._get_dummy_hash())
            logger.warning("Failed login attempt")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not self.hasher.verify(password, user.password):
            logger.warning("Failed login attempt for user %s", user.id)
            raise AuthenticationError(INVALID_CREDENTIALS)

        token = self.codec.encode(
            {"sub": str(user.id), "email": user.email},
            ACCESS_TOKEN_TYPE,
            self.access_token_ttl,
        )
        return token, user

    def get_profile(self, db: Session, user_id: int) -> models.User:
        user = db.get(models.User, user_id)
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    def update_profile(
        self,
        db: Session,
        caller: models.User,
        user_id: int,
        data: schemas.UserUpdate,
    ) -> models.User:
        """
        Partially update names and birth date.

        Raises:
            AuthorizationError: if the caller edits someone else's profile
            NotFoundError: if the user does not exist
        """
        if caller.id != user_id:
            raise AuthorizationError("You can only update your own profile")
        user = self.get_profile(db, user_id)

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user

    def delete_user(self, db: Session, caller: models.User, user_id: int) -> None:
        """
        Delete an account with its books, rentals and messages.

        Raises:
            AuthorizationError: if the caller deletes someone else's account
            ConflictError: while a rental involving the user is still open
        """
        if caller.id != user_id:
            raise AuthorizationError("You can only delete your own account")
        user = self.get_profile(db, user_id)

        open_rental = (
            db.query(models.Rental)
            .join(models.Book, models.Rental.book_id == models.Book.id)
            .filter(
                models.Rental.status.in_(models.OPEN_RENTAL_STATUSES),
                or_(
                    models.Rental.renter_id == user_id,
                    models.Book.owner_id == user_id,
                ),
            )
            .first()
        )
        if open_rental:
            raise ConflictError(
                "Account has open rentals; return or cancel them before deleting it"
            )

        db.delete(user)
        db.commit()
        logger.info("Deleted user %s", user_id)

    def request_password_reset(self, db: Session, email: str) -> None:
        """
        Store a one-hour reset token and email it.

        Returns silently when no account matches, so callers cannot probe
        which emails are registered.
        """
        user = self.get_by_email(db, email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        token = self.codec.encode(
            {"sub": str(user.id), "email": user.email},
            PASSWORD_RESET_TOKEN_TYPE,
            self.reset_token_ttl,
        )
        user.reset_token = token
        user.reset_token_expires = models.utcnow() + self.reset_token_ttl
        db.commit()

        logger.info("Password reset token issued for user %s", user.id)
        self.mailer.send_password_reset(user.email, user.first_name, token)

    def reset_password(self, db: Session, token: str, new_password: str) -> None:
        """
        Replace the password using a reset token. A token works once.

        Raises:
            ValidationError: if the token is invalid, expired, or superseded
        """
        try:
            payload = self.codec.decode(token, PASSWORD_RESET_TOKEN_TYPE)
            user_id = int(payload["sub"])
        except (JWTError, KeyError, ValueError):
            raise ValidationError(INVALID_RESET_TOKEN)

        user = db.get(models.User, user_id)
        if (
            user is None
            or user.reset_token != token
            or user.reset_token_expires is None
            or user.reset_token_expires <= models.utcnow()
        ):
            raise ValidationError(INVALID_RESET_TOKEN)

        user.password = self.hasher.hash(new_password)
        user.reset_token = None
        user.reset_token_expires = None
        db.commit()
        logger.info("Password reset for user %s", user.id)

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("bookineo-dummy-password")
        return self._dummy_hash
