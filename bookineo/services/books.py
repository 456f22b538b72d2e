import logging
import math
from typing import Optional, Tuple, List

from sqlalchemy.orm import Session, joinedload

from bookineo import models, schemas
from bookineo.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = ("title", "status")


class BookService:
    """
    Books published by their owners.

    The "rented" status belongs to the rental workflow: owners can switch a
    book between available and unavailable, but never while it is rented.
    """

    def create_book(
        self, db: Session, owner: models.User, data: schemas.BookCreate
    ) -> models.Book:
        """
        Publish a book owned by the caller.

        Raises:
            NotFoundError: if category_id does not exist
            ValidationError: if the book is created as rented
        """
        if data.status == models.BookStatus.RENTED:
            raise ValidationError("A new book cannot start as rented")
        self._check_category(db, data.category_id)

        book = models.Book(**data.model_dump(), owner_id=owner.id)
        db.add(book)
        db.commit()
        db.refresh(book)
        logger.info("User %s published book %s", owner.id, book.id)
        return book

    def list_books(
        self,
        db: Session,
        page: int = 1,
        limit: int = 12,
        status: Optional[models.BookStatus] = None,
        category_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
    ) -> Tuple[List[models.Book], schemas.Pagination]:
        """
        Filter and paginate books, newest first.

        title and author match case-insensitive substrings; the other
        filters match exactly.
        """
        query = db.query(models.Book)

        if status:
            query = query.filter(models.Book.status == status)
        if category_id:
            query = query.filter(models.Book.category_id == category_id)
        if owner_id:
            query = query.filter(models.Book.owner_id == owner_id)
        if title:
            query = query.filter(models.Book.title.ilike(f"%{title}%"))
        if author:
            query = query.filter(models.Book.author.ilike(f"%{author}%"))

        total = query.count()
        books = (
            query.options(
                joinedload(models.Book.owner), joinedload(models.Book.category)
            )
            .order_by(models.Book.created_at.desc(), models.Book.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        total_pages = math.ceil(total / limit)
        pagination = schemas.Pagination(
            current_page=page,
            total_pages=total_pages,
            total_books=total,
            limit=limit,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )
        return books, pagination

    def get_book(self, db: Session, book_id: int) -> models.Book:
        book = db.get(models.Book, book_id)
        if book is None:
            raise NotFoundError(f"Book with id {book_id} not found")
        return book

    def update_book(
        self,
        db: Session,
        caller: models.User,
        book_id: int,
        data: schemas.BookUpdate,
    ) -> models.Book:
        """
        Partially update a book.

        Raises:
            AuthorizationError: if the caller does not own the book
            NotFoundError: if the book or the new category does not exist
            ValidationError: if status is set to rented by hand,
                or title or status is cleared
            ConflictError: if status changes while the book is rented
        """
        book = self._get_owned(db, caller, book_id)
        update_data = data.model_dump(exclude_unset=True)

        for key in NON_NULLABLE_FIELDS:
            if key in update_data and update_data[key] is None:
                raise ValidationError(f"{key} cannot be null")

        if "status" in update_data and update_data["status"] != book.status:
            if update_data["status"] == models.BookStatus.RENTED:
                raise ValidationError("Status 'rented' is set by renting the book")
            if self.has_open_rental(db, book.id):
                raise ConflictError("Book is currently rented")

        if update_data.get("category_id") is not None:
            self._check_category(db, update_data["category_id"])

        for key, value in update_data.items():
            setattr(book, key, value)

        db.commit()
        db.refresh(book)
        return book

    def delete_book(self, db: Session, caller: models.User, book_id: int) -> None:
        """
        Delete a book with its rental history.

        Raises:
            ConflictError: while the book has an open rental
        """
        book = self._get_owned(db, caller, book_id)
        if self.has_open_rental(db, book.id):
            raise ConflictError("Book is currently rented and cannot be deleted")

        db.delete(book)
        db.commit()
        logger.info("User %s deleted book %s", caller.id, book_id)

    def has_open_rental(self, db: Session, book_id: int) -> bool:
        return (
            db.query(models.Rental)
            .filter(
                models.Rental.book_id == book_id,
                models.Rental.status.in_(models.OPEN_RENTAL_STATUSES),
            )
            .first()
            is not None
        )

    def _get_owned(self, db: Session, caller: models.User, book_id: int) -> models.Book:
        book = self.get_book(db, book_id)
        if book.owner_id != caller.id:
            raise AuthorizationError("Only the owner can modify this book")
        return book

    def _check_category(self, db: Session, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        if db.get(models.Category, category_id) is None:
            raise NotFoundError(f"Category with id {category_id} not found")
