import enum
from datetime import datetime, timezone
from bookineo.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    Date,
    DateTime,
    Boolean,
    Numeric,
    Enum,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookStatus(str, enum.Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    UNAVAILABLE = "unavailable"


class RentalStatus(str, enum.Enum):
    """
    Lifecycle of a rental.

    pending -> active -> returned, with cancelled reachable from pending or
    active. pending and active rentals are "open": they hold the book.
    """

    PENDING = "pending"
    ACTIVE = "active"
    RETURNED = "returned"
    CANCELLED = "cancelled"


OPEN_RENTAL_STATUSES = (RentalStatus.PENDING, RentalStatus.ACTIVE)


def _enum_column(enum_cls):
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
    )


class User(Base):
    """
    User model for marketplace members.

    Relationships:
    - One user owns many books (owner_id)
    - One user has many rentals as renter (renter_id)
    - One user has sent and received messages (sender_id / recipient_id)

    Every relationship cascades deletes, so removing a user removes the
    books they own, their rentals and their conversations.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    birth_date = Column(Date, nullable=True)
    reset_token = Column(Text, nullable=True)
    reset_token_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    books = relationship(
        "Book",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    rentals = relationship(
        "Rental",
        back_populates="renter",
        cascade="all, delete-orphan",
    )

    sent_messages = relationship(
        "Message",
        back_populates="sender",
        foreign_keys="Message.sender_id",
        cascade="all, delete-orphan",
    )

    received_messages = relationship(
        "Message",
        back_populates="recipient",
        foreign_keys="Message.recipient_id",
        cascade="all, delete-orphan",
    )


class Category(Base):
    """
    Category model grouping books.

    Deleting a category keeps its books: the ORM sets their category_id
    to NULL because the relationship has no delete cascade.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    books = relationship("Book", back_populates="category")


class Book(Base):
    """
    Book model representing a copy offered for rent.

    Relationships:
    - Many books belong to one owner (many-to-one)
    - Many books belong to one optional category (many-to-one)
    - One book has many rentals (one-to-many)

    status mirrors the rental state: a book with an open rental is "rented".
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    isbn = Column(String(13), nullable=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    author = Column(String(255), nullable=True, index=True)
    publication_year = Column(Integer, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    status = Column(
        _enum_column(BookStatus),
        default=BookStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="books")
    category = relationship("Category", back_populates="books")

    rentals = relationship(
        "Rental",
        back_populates="book",
        cascade="all, delete-orphan",
    )


class Rental(Base):
    """
    Rental model linking one book to one renting user for a period.

    rental_date is when the period starts; expected_return_date and
    duration_days describe the agreed length, actual_return_date is set
    when the book comes back.
    """

    __tablename__ = "rentals"

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    renter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    rental_date = Column(Date, nullable=False)
    expected_return_date = Column(Date, nullable=True)
    actual_return_date = Column(Date, nullable=True)
    duration_days = Column(Integer, nullable=True)
    status = Column(
        _enum_column(RentalStatus),
        default=RentalStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    book = relationship("Book", back_populates="rentals")
    renter = relationship("User", back_populates="rentals")


class Message(Base):
    """Direct message between two distinct users."""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subject = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    sent_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sender = relationship(
        "User", back_populates="sent_messages", foreign_keys=[sender_id]
    )
    recipient = relationship(
        "User", back_populates="received_messages", foreign_keys=[recipient_id]
    )
