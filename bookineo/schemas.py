import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from bookineo.models import BookStatus, RentalStatus


class MessageDirection(str, enum.Enum):
    SENT = "sent"
    RECEIVED = "received"
    ALL = "all"


class PublicUser(BaseModel):
    """
    Name-only identity shown on book and rental listings.

    Listings are readable without logging in, so the email stays out.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserSummary(PublicUser):
    """Identity of a message participant, email included."""

    email: str


class UserCreate(BaseModel):
    """
    Schema for registering an account.

    EmailStr rejects malformed addresses before the request reaches the
    service. The password is only ever stored hashed.
    """

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    birth_date: Optional[date] = None


class UserUpdate(BaseModel):
    """
    Schema for profile updates.

    All fields are optional to support partial updates. Email and password
    are not editable here.
    """

    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    birth_date: Optional[date] = None


class User(BaseModel):
    """Profile response. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class LoginRequest(BaseModel):
    """
    Credentials for login.

    The email is a plain string, not EmailStr, so a malformed address fails
    with the same 401 as a wrong password.
    """

    email: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    user: User


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=100)


class PasswordReset(BaseModel):
    """Body of the reset form: {"token": ..., "newPassword": ...}."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=1)
    new_password: str = Field(..., alias="newPassword", min_length=6, max_length=72)


class Detail(BaseModel):
    message: str


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryUpdate(CategoryCreate):
    pass


class Category(CategoryCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


class BookBase(BaseModel):
    """Base schema with common book fields."""

    title: str = Field(..., min_length=1, max_length=255)
    author: Optional[str] = Field(None, max_length=255)
    isbn: Optional[str] = Field(None, min_length=10, max_length=13)
    publication_year: Optional[int] = Field(None, ge=0, le=9999)
    category_id: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = None


class BookCreate(BookBase):
    """
    Schema for publishing a book.

    The owner is the authenticated caller, so owner_id is not part of the
    body. New books are available unless stated otherwise.
    """

    status: BookStatus = BookStatus.AVAILABLE


class BookUpdate(BaseModel):
    """
    Schema for updating a book.

    Only provided fields are updated. Title and status may be omitted but
    never cleared.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    author: Optional[str] = Field(None, max_length=255)
    isbn: Optional[str] = Field(None, min_length=10, max_length=13)
    publication_year: Optional[int] = Field(None, ge=0, le=9999)
    category_id: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    status: Optional[BookStatus] = None
    image_url: Optional[str] = None


class Book(BookBase):
    """Book response including owner and category."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: BookStatus
    owner_id: int
    owner: PublicUser
    category: Optional[Category] = None
    created_at: datetime
    updated_at: datetime


class BookSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: Optional[str] = None
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    owner_id: int


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_books: int
    limit: int
    has_next_page: bool
    has_previous_page: bool


class BookPage(BaseModel):
    books: List[Book]
    pagination: Pagination


class RentalCreate(BaseModel):
    """
    Schema for renting a book.

    The renter is the caller. Give either expected_return_date or
    duration_days (or both, if they agree); the other is derived.
    """

    book_id: int = Field(..., gt=0)
    rental_date: date
    expected_return_date: Optional[date] = None
    duration_days: Optional[int] = Field(None, ge=1)
    comment: Optional[str] = Field(None, max_length=2000)
    status: RentalStatus = RentalStatus.ACTIVE


class RentalReturn(BaseModel):
    actual_return_date: Optional[date] = None
    comment: Optional[str] = Field(None, max_length=2000)


class Rental(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    renter_id: int
    rental_date: date
    expected_return_date: Optional[date] = None
    actual_return_date: Optional[date] = None
    duration_days: Optional[int] = None
    status: RentalStatus
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    book: BookSummary
    renter: PublicUser


class MessageCreate(BaseModel):
    """
    Schema for sending a message.

    The recipient can be addressed by id or by email; the sender is the
    caller.
    """

    recipient_id: Optional[int] = Field(None, gt=0)
    recipient_email: Optional[EmailStr] = None
    subject: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)

    @model_validator(mode="after")
    def check_recipient(self):
        if self.recipient_id is None and self.recipient_email is None:
            raise ValueError("recipient_id or recipient_email is required")
        return self


class Message(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    recipient_id: int
    subject: Optional[str] = None
    content: str
    is_read: bool
    sent_at: datetime
    created_at: datetime
    updated_at: datetime
    sender: UserSummary
    recipient: UserSummary


class UnreadCount(BaseModel):
    unread: int
