from bookineo import models
from bookineo import schemas
from bookineo.auth import get_current_user
from bookineo.database import get_db
from bookineo.dependencies import get_book_service
from bookineo.services.books import BookService

from typing import Optional
from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, Query, status


router = APIRouter(prefix="/books", tags=["books"])


@router.post("", response_model=schemas.Book, status_code=status.HTTP_201_CREATED)
def create_book(
    book: schemas.BookCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: BookService = Depends(get_book_service),
):
    """
    Publish a book owned by the caller.

    Raises:
        404 if category_id does not exist
    """
    return service.create_book(db, current_user, book)


@router.get("", response_model=schemas.BookPage)
def list_books(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    status: Optional[models.BookStatus] = Query(None),
    category_id: Optional[int] = Query(None, gt=0),
    owner_id: Optional[int] = Query(None, gt=0),
    title: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    service: BookService = Depends(get_book_service),
):
    """
    List books with filters and page-based pagination.

    title and author are case-insensitive substring filters.
    """
    books, pagination = service.list_books(
        db,
        page=page,
        limit=limit,
        status=status,
        category_id=category_id,
        owner_id=owner_id,
        title=title,
        author=author,
    )
    return {"books": books, "pagination": pagination}


@router.get("/{book_id}", response_model=schemas.Book)
def get_book(
    book_id: int,
    db: Session = Depends(get_db),
    service: BookService = Depends(get_book_service),
):
    return service.get_book(db, book_id)


@router.put("/{book_id}", response_model=schemas.Book)
def update_book(
    book_id: int,
    book_update: schemas.BookUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: BookService = Depends(get_book_service),
):
    """
    Partially update a book (owner only).

    Raises:
        403 if the caller is not the owner, 409 when changing the status
        of a rented book
    """
    return service.update_book(db, current_user, book_id, book_update)


@router.delete("/{book_id}", response_model=schemas.Detail)
def delete_book(
    book_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: BookService = Depends(get_book_service),
):
    service.delete_book(db, current_user, book_id)
    return {"message": "Book deleted"}
