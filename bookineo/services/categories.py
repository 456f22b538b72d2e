import logging
from typing import List

from sqlalchemy.orm import Session

from bookineo import models, schemas
from bookineo.errors import ConflictError, NotFoundError


logger = logging.getLogger(__name__)


class CategoryService:
    """CRUD for book categories. Names are unique."""

    def create_category(self, db: Session, data: schemas.CategoryCreate) -> models.Category:
        name = data.name.strip()
        self._ensure_name_free(db, name)

        category = models.Category(name=name)
        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info("Created category %s (%s)", category.id, category.name)
        return category

    def list_categories(self, db: Session) -> List[models.Category]:
        return db.query(models.Category).order_by(models.Category.name).all()

    def get_category(self, db: Session, category_id: int) -> models.Category:
        category = db.get(models.Category, category_id)
        if category is None:
            raise NotFoundError(f"Category with id {category_id} not found")
        return category

    def update_category(
        self, db: Session, category_id: int, data: schemas.CategoryUpdate
    ) -> models.Category:
        category = self.get_category(db, category_id)
        name = data.name.strip()
        if name != category.name:
            self._ensure_name_free(db, name)

        category.name = name
        db.commit()
        db.refresh(category)
        return category

    def delete_category(self, db: Session, category_id: int) -> None:
        """Delete a category. Its books stay, without a category."""
        category = self.get_category(db, category_id)
        db.delete(category)
        db.commit()
        logger.info("Deleted category %s", category_id)

    def _ensure_name_free(self, db: Session, name: str) -> None:
        existing = db.query(models.Category).filter(models.Category.name == name).first()
        if existing:
            raise ConflictError(f"Category '{name}' already exists")
