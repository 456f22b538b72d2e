import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from bookineo import models, schemas
from bookineo.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)

TRANSITIONS = {
    models.RentalStatus.PENDING: {
        models.RentalStatus.ACTIVE,
        models.RentalStatus.CANCELLED,
    },
    models.RentalStatus.ACTIVE: {
        models.RentalStatus.RETURNED,
        models.RentalStatus.CANCELLED,
    },
}


def resolve_period(
    rental_date: date,
    expected_return_date: Optional[date],
    duration_days: Optional[int],
) -> Tuple[Optional[date], Optional[int]]:
    """
    Complete the rental period from whichever bound was given.

    Raises:
        ValidationError: if the return date precedes the start or the two
            bounds disagree
    """
    if expected_return_date is not None:
        if expected_return_date < rental_date:
            raise ValidationError("expected_return_date cannot be before rental_date")
        days = (expected_return_date - rental_date).days
        if duration_days is not None and duration_days != days:
            raise ValidationError(
                "duration_days does not match rental_date and expected_return_date"
            )
        return expected_return_date, days

    if duration_days is not None:
        return rental_date + timedelta(days=duration_days), duration_days

    return None, None


class RentalService:
    """
    Rental workflow: pending -> active -> returned, or cancelled from
    pending or active.

    An open (pending or active) rental holds its book: the book is marked
    rented and nobody else can rent it until the rental is returned or
    cancelled.
    """

    def rent_book(
        self, db: Session, renter: models.User, data: schemas.RentalCreate
    ) -> models.Rental:
        """
        Open a rental for the caller.

        The availability check and the insert happen in one transaction with
        the book row locked, so two renters cannot both get the book.

        Raises:
            NotFoundError: if the book does not exist
            ValidationError: for a bad period, a closed status, or renting
                one's own book
            ConflictError: if the book is not available
        """
        if data.status not in models.OPEN_RENTAL_STATUSES:
            raise ValidationError("A rental starts as pending or active")

        book = (
            db.query(models.Book)
            .filter(models.Book.id == data.book_id)
            .with_for_update()
            .first()
        )
        if not book:
            raise NotFoundError(f"Book with id {data.book_id} not found")

        if book.owner_id == renter.id:
            raise ValidationError("You cannot rent your own book")

        open_rental = (
            db.query(models.Rental)
            .filter(
                models.Rental.book_id == book.id,
                models.Rental.status.in_(models.OPEN_RENTAL_STATUSES),
            )
            .first()
        )
        if book.status != models.BookStatus.AVAILABLE or open_rental:
            raise ConflictError("Book is not available for rent")

        expected_return_date, duration_days = resolve_period(
            data.rental_date, data.expected_return_date, data.duration_days
        )

        rental = models.Rental(
            book_id=book.id,
            renter_id=renter.id,
            rental_date=data.rental_date,
            expected_return_date=expected_return_date,
            duration_days=duration_days,
            status=data.status,
            comment=data.comment,
        )
        book.status = models.BookStatus.RENTED
        db.add(rental)
        db.commit()
        db.refresh(rental)

        logger.info(
            "User %s rented book %s (rental %s, %s)",
            renter.id,
            book.id,
            rental.id,
            rental.status.value,
        )
        return rental

    def activate(self, db: Session, caller: models.User, rental_id: int) -> models.Rental:
        rental = self._transition(db, caller, rental_id, models.RentalStatus.ACTIVE)
        db.commit()
        db.refresh(rental)
        return rental

    def return_book(
        self,
        db: Session,
        caller: models.User,
        rental_id: int,
        data: schemas.RentalReturn,
    ) -> models.Rental:
        """Close an active rental and make the book available again."""
        rental = self._transition(db, caller, rental_id, models.RentalStatus.RETURNED)
        actual_return_date = data.actual_return_date or models.utcnow().date()
        if actual_return_date < rental.rental_date:
            raise ValidationError("actual_return_date cannot be before rental_date")

        rental.actual_return_date = actual_return_date
        if data.comment is not None:
            rental.comment = data.comment
        rental.book.status = models.BookStatus.AVAILABLE
        db.commit()
        db.refresh(rental)

        logger.info("Rental %s returned, book %s available", rental.id, rental.book_id)
        return rental

    def cancel(self, db: Session, caller: models.User, rental_id: int) -> models.Rental:
        rental = self._transition(db, caller, rental_id, models.RentalStatus.CANCELLED)
        rental.book.status = models.BookStatus.AVAILABLE
        db.commit()
        db.refresh(rental)

        logger.info("Rental %s cancelled by user %s", rental.id, caller.id)
        return rental

    def get_rental(self, db: Session, rental_id: int) -> models.Rental:
        rental = db.get(models.Rental, rental_id)
        if rental is None:
            raise NotFoundError(f"Rental with id {rental_id} not found")
        return rental

    def list_rentals(
        self,
        db: Session,
        renter_id: Optional[int] = None,
        book_id: Optional[int] = None,
        status: Optional[models.RentalStatus] = None,
    ) -> List[models.Rental]:
        query = db.query(models.Rental).options(
            joinedload(models.Rental.book), joinedload(models.Rental.renter)
        )

        if renter_id:
            query = query.filter(models.Rental.renter_id == renter_id)
        if book_id:
            query = query.filter(models.Rental.book_id == book_id)
        if status:
            query = query.filter(models.Rental.status == status)

        return query.order_by(
            models.Rental.rental_date.desc(), models.Rental.id.desc()
        ).all()

    def _transition(
        self,
        db: Session,
        caller: models.User,
        rental_id: int,
        target: models.RentalStatus,
    ) -> models.Rental:
        rental = self.get_rental(db, rental_id)

        if caller.id not in (rental.renter_id, rental.book.owner_id):
            raise AuthorizationError("Only the renter or the book owner can change this rental")

        if target not in TRANSITIONS.get(rental.status, set()):
            raise ConflictError(
                f"Cannot change rental from {rental.status.value} to {target.value}"
            )

        rental.status = target
        return rental
