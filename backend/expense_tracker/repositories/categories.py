from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from expense_tracker import models
from expense_tracker.domain.category import (
    PATH_SEPARATOR,
    Category,
    CategoryFilter,
    segment_marker,
)
from expense_tracker.repositories.base import CategoryRepository
from expense_tracker.repositories.common import store_errors


def category_from_row(row: models.Category) -> Category:
    return Category(
        id=row.id,
        name=row.name,
        icon=row.icon,
        parent_id=row.parent_id,
        path=row.path,
        level=row.level,
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
    )


class SqlCategoryRepository(CategoryRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, category_id: str) -> Optional[Category]:
        with store_errors(self.db, "get category"):
            row = self.db.query(models.Category).filter(models.Category.id == category_id).first()
        return category_from_row(row) if row is not None else None

    def get_all(self, category_filter: CategoryFilter) -> List[Category]:
        query = self.db.query(models.Category)
        if category_filter.find_all:
            pass
        elif category_filter.find_children_of:
            marker = segment_marker(category_filter.find_children_of)
            query = query.filter(models.Category.path.contains(marker, autoescape=True))
        elif category_filter.category_ids:
            query = query.filter(models.Category.id.in_(category_filter.category_ids))
        elif category_filter.parent_id:
            query = query.filter(models.Category.parent_id == category_filter.parent_id)
        else:
            query = query.filter(models.Category.parent_id.is_(None))

        with store_errors(self.db, "find categories"):
            rows = query.order_by(models.Category.level, models.Category.name, models.Category.id).all()
        return [category_from_row(row) for row in rows]

    def insert(self, category: Category) -> str:
        row = models.Category(
            id=category.id,
            name=category.name,
            icon=category.icon,
            parent_id=category.parent_id,
            path=category.path,
            level=category.level,
            created_at=category.created_at,
            created_by=category.created_by,
        )
        with store_errors(self.db, "insert category"):
            self.db.add(row)
            self.db.commit()
        return category.id

    def update(self, category: Category) -> int:
        with store_errors(self.db, "update category"):
            count = (
                self.db.query(models.Category)
                .filter(models.Category.id == category.id)
                .update(
                    {
                        models.Category.name: category.name,
                        models.Category.icon: category.icon,
                        models.Category.parent_id: category.parent_id,
                        models.Category.path: category.path,
                        models.Category.level: category.level,
                        models.Category.updated_at: category.updated_at,
                        models.Category.updated_by: category.updated_by,
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        return count

    def rename(self, category: Category) -> int:
        with store_errors(self.db, "rename category"):
            count = (
                self.db.query(models.Category)
                .filter(models.Category.id == category.id)
                .update(
                    {
                        models.Category.name: category.name,
                        models.Category.icon: category.icon,
                        models.Category.updated_at: category.updated_at,
                        models.Category.updated_by: category.updated_by,
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        return count

    def delete_subtree(self, category: Category) -> int:
        # LIKE treats '|' literally; autoescape covers '%' and '_' in the path.
        descendants_prefix = category.path + PATH_SEPARATOR
        with store_errors(self.db, "delete categories"):
            count = (
                self.db.query(models.Category)
                .filter(
                    or_(
                        models.Category.path == category.path,
                        models.Category.path.startswith(descendants_prefix, autoescape=True),
                    )
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
        return count
