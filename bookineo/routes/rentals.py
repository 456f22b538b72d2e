from bookineo import models
from bookineo import schemas
from bookineo.auth import get_current_user
from bookineo.database import get_db
from bookineo.dependencies import get_rental_service
from bookineo.services.rentals import RentalService

from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, Query, status


router = APIRouter(
    prefix="/rentals",
    tags=["rentals"],
    dependencies=[Depends(get_current_user)],
)


@router.post("", response_model=schemas.Rental, status_code=status.HTTP_201_CREATED)
def rent_book(
    rental: schemas.RentalCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: RentalService = Depends(get_rental_service),
):
    """
    Rent a book for the caller.

    Business Logic:
    1. The book must exist and not belong to the caller
    2. The book must be available with no open rental
    3. The rental is created and the book marked rented in one commit

    Raises:
        404 if the book is missing, 409 if it is already rented,
        400 for an invalid period or renting one's own book
    """
    return service.rent_book(db, current_user, rental)


@router.get("", response_model=List[schemas.Rental])
def list_rentals(
    renter_id: Optional[int] = Query(None, gt=0),
    book_id: Optional[int] = Query(None, gt=0),
    status: Optional[models.RentalStatus] = Query(None),
    db: Session = Depends(get_db),
    service: RentalService = Depends(get_rental_service),
):
    """List rentals, most recent rental_date first."""
    return service.list_rentals(db, renter_id=renter_id, book_id=book_id, status=status)


@router.get("/{rental_id}", response_model=schemas.Rental)
def get_rental(
    rental_id: int,
    db: Session = Depends(get_db),
    service: RentalService = Depends(get_rental_service),
):
    return service.get_rental(db, rental_id)


@router.post("/{rental_id}/activate", response_model=schemas.Rental)
def activate_rental(
    rental_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: RentalService = Depends(get_rental_service),
):
    return service.activate(db, current_user, rental_id)


@router.post("/{rental_id}/return", response_model=schemas.Rental)
def return_book(
    rental_id: int,
    body: Optional[schemas.RentalReturn] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: RentalService = Depends(get_rental_service),
):
    """
    Mark an active rental returned.

    Raises:
        409 if the rental is not active
    """
    return service.return_book(
        db, current_user, rental_id, body or schemas.RentalReturn()
    )


@router.post("/{rental_id}/cancel", response_model=schemas.Rental)
def cancel_rental(
    rental_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: RentalService = Depends(get_rental_service),
):
    return service.cancel(db, current_user, rental_id)
