"""
Category tree commands and queries.

Structural changes go through ``move`` only; ``update`` renames and changes
the icon in place.
"""
import logging
import threading
import time
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from expense_tracker.domain.category import (
    PATH_SEPARATOR,
    ROOT_DESTINATION,
    Category,
    CategoryFilter,
    child_path,
    root_path,
)
from expense_tracker.errors import (
    CategoryMoveError,
    DependencyError,
    IncorrectInputError,
    NotFoundError,
)
from expense_tracker.models import utcnow
from expense_tracker.repositories.base import CategoryRepository

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class CategoryService:
    """Service for reading and mutating the category tree."""

    # Per-document write attempts during a move
    WRITE_ATTEMPTS = 3
    RETRY_DELAY_SECONDS = 0.05

    def __init__(
        self,
        repo: CategoryRepository,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.repo = repo
        self.clock = clock
        self.sleep = sleep

    # Queries

    def find(self, category_id: str) -> Optional[Category]:
        return self.repo.get(category_id)

    def find_all(self, category_filter: CategoryFilter) -> List[Category]:
        return self.repo.get_all(category_filter)

    def find_with_parents(self, category_id: str) -> Category:
        """
        Get a category with its ancestors attached, root first.

        Raises:
            NotFoundError: If the category does not exist
        """
        category = self.repo.get(category_id)
        if category is None:
            raise NotFoundError(f"category {category_id} not found")
        ancestor_ids = category.ancestor_ids()
        if ancestor_ids:
            parents = self.repo.get_all(CategoryFilter(category_ids=ancestor_ids))
            category.parents = sorted(parents, key=lambda parent: parent.level)
        return category

    def find_usages(self, category_id: str) -> List[Category]:
        """All descendants of a category, shallowest first."""
        return self.repo.get_all(CategoryFilter(find_children_of=category_id))

    # Commands

    def create(
        self,
        name: str,
        parent_id: Optional[str] = None,
        icon: Optional[str] = None,
        level: Optional[int] = None,
        path: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> str:
        """
        Create a category and return its new id.

        ``path`` is the parent's path ("" for a root), or a full path whose
        last segment stands in for the id generated here. ``level`` is the new
        node's level. Both are optional; when given they must agree with the
        parent, otherwise IncorrectInputError is raised.
        """
        parent = None
        if parent_id:
            parent = self.repo.get(parent_id)
            if parent is None:
                raise IncorrectInputError(f"parent category {parent_id} does not exist")

        category_id = new_id()
        expected_prefix = parent.path if parent else ""
        if path and path != expected_prefix and path.rsplit(PATH_SEPARATOR, 1)[0] != expected_prefix:
            raise IncorrectInputError(
                f"path {path!r} does not match the parent path {expected_prefix!r}"
            )
        full_path = child_path(parent.path, category_id) if parent else root_path(category_id)

        category = Category(
            id=category_id,
            name=name,
            icon=icon,
            parent_id=parent.id if parent else None,
            path=full_path,
            level=level if level is not None else full_path.count("|"),
            created_at=self.clock(),
            created_by=created_by,
        )
        category.check_parent(parent)

        self.repo.insert(category)
        logger.info(f"[CATEGORY] Created category {category.id} at {category.path}")
        return category.id

    def update(
        self,
        category_id: str,
        name: str,
        icon: Optional[str] = None,
        updated_by: Optional[str] = None,
    ) -> Category:
        category = self.repo.get(category_id)
        if category is None:
            raise NotFoundError(f"category {category_id} not found")
        category.rename(name, icon, updated_by, self.clock())
        if self.repo.rename(category) == 0:
            raise NotFoundError(f"category {category_id} not found")
        return category

    def delete(self, category_id: str) -> Optional[int]:
        """
        Delete a category and its whole subtree.

        Returns the number of removed categories, or None when the category
        does not exist. Expenses of removed categories are left in place.
        """
        category = self.repo.get(category_id)
        if category is None:
            return None
        count = self.repo.delete_subtree(category)
        logger.info(f"[CATEGORY] Deleted {count} categories under {category.path}")
        return count

    def move(
        self,
        category_id: str,
        destination_id: str,
        moved_by: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        """
        Re-parent a category and rewrite the paths of its whole subtree.

        Args:
            category_id: Category to move
            destination_id: New parent id, or ``"root"``
            moved_by: Recorded as ``updated_by`` on every rewritten node
            cancel: When set, the move stops before the next write

        Returns:
            Number of categories rewritten; 0 when the category or the
            destination does not exist.

        Raises:
            IncorrectInputError: If the destination is the category itself
                or one of its descendants
            CategoryMoveError: If a write keeps failing or the move is
                cancelled; already rewritten nodes stay rewritten and calling
                move again with the same arguments finishes the job
        """
        target = self.repo.get(category_id)
        if target is None:
            logger.info(f"[MOVE] Category {category_id} not found, nothing to move")
            return 0

        destination = None
        if destination_id != ROOT_DESTINATION:
            destination = self.repo.get(destination_id)
            if destination is None:
                logger.info(f"[MOVE] Destination {destination_id} not found, nothing to move")
                return 0
            if destination.id == target.id or destination.is_descendant_of(target.id):
                raise IncorrectInputError(
                    "cannot move a category under itself or one of its descendants"
                )

        # Matched by id segment, so descendants left behind by an interrupted
        # move are found whether or not they were rewritten already.
        descendants = self.repo.get_all(CategoryFilter(find_children_of=target.id))

        if destination is None:
            new_prefix = root_path(target.id)
            new_parent_id = None
        else:
            new_prefix = child_path(destination.path, target.id)
            new_parent_id = destination.id

        now = self.clock()
        pending: List[Category] = []
        moved = target.relocated(target.id, new_prefix, new_parent_id)
        if moved.path != target.path or moved.parent_id != target.parent_id:
            pending.append(moved)
        for descendant in descendants:
            relocated = descendant.relocated(target.id, new_prefix)
            if relocated.path != descendant.path:
                pending.append(relocated)
        for category in pending:
            category.updated_at = now
            category.updated_by = moved_by

        logger.info(
            f"[MOVE] Moving {target.path} to {new_prefix}: "
            f"{len(pending)} of {len(descendants) + 1} categories to rewrite"
        )

        written = 0
        for category in pending:
            if cancel is not None and cancel.is_set():
                logger.warning(f"[MOVE] Cancelled after {written} of {len(pending)} writes")
                raise CategoryMoveError("move cancelled", update_count=written)
            try:
                written += self._write_with_retry(category)
            except DependencyError as e:
                logger.error(
                    f"[MOVE] Stopped after {written} of {len(pending)} writes: {e}"
                )
                raise CategoryMoveError(
                    f"move stopped after {written} of {len(pending)} updates",
                    update_count=written,
                    cause=e,
                )
        return written

    def _write_with_retry(self, category: Category) -> int:
        for attempt in range(1, self.WRITE_ATTEMPTS + 1):
            try:
                return self.repo.update(category)
            except DependencyError as e:
                if attempt == self.WRITE_ATTEMPTS:
                    raise
                logger.warning(
                    f"[MOVE] Write of {category.id} failed (attempt {attempt}): {e}. Retrying."
                )
                self.sleep(self.RETRY_DELAY_SECONDS * attempt)
        return 0
