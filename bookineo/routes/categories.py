from bookineo import models
from bookineo import schemas
from bookineo.auth import get_current_user
from bookineo.database import get_db
from bookineo.dependencies import get_category_service
from bookineo.services.categories import CategoryService

from typing import List
from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, status


router = APIRouter(prefix="/categories", tags=["categories"])


@router.post(
    "", response_model=schemas.Category, status_code=status.HTTP_201_CREATED
)
def create_category(
    category: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """
    Create a category.

    Raises:
        409 if a category with this name exists
    """
    return service.create_category(db, category)


@router.get("", response_model=List[schemas.Category])
def list_categories(
    db: Session = Depends(get_db),
    service: CategoryService = Depends(get_category_service),
):
    return service.list_categories(db)


@router.get("/{category_id}", response_model=schemas.Category)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    service: CategoryService = Depends(get_category_service),
):
    return service.get_category(db, category_id)


@router.put("/{category_id}", response_model=schemas.Category)
def update_category(
    category_id: int,
    category: schemas.CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return service.update_category(db, category_id, category)


@router.delete("/{category_id}", response_model=schemas.Detail)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Delete a category; its books are kept without a category."""
    service.delete_category(db, category_id)
    return {"message": "Category deleted"}
