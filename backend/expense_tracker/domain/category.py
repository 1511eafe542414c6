"""
Category tree model.

Each category stores its materialized path ``|a1|a2|...|self``: the ids of
every ancestor from the root down, followed by its own id. Roots have
``path == "|" + id`` and ``level == 1``; ``level`` always equals the number
of ids in the path.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from expense_tracker.errors import IncorrectInputError

PATH_SEPARATOR = "|"
ROOT_DESTINATION = "root"


def path_segments(path: str) -> List[str]:
    return [segment for segment in path.split(PATH_SEPARATOR) if segment]


def child_path(parent_path: str, category_id: str) -> str:
    return f"{parent_path}{PATH_SEPARATOR}{category_id}"


def root_path(category_id: str) -> str:
    return f"{PATH_SEPARATOR}{category_id}"


def segment_marker(category_id: str) -> str:
    """Substring present in the path of every descendant of ``category_id``."""
    return f"{PATH_SEPARATOR}{category_id}{PATH_SEPARATOR}"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Category:
    id: str
    name: str
    path: str
    level: int
    parent_id: Optional[str] = None
    icon: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    # Ancestor snapshot attached by queries; never persisted.
    parents: List["Category"] = field(default_factory=list, compare=False, repr=False)

    def __post_init__(self):
        if not self.id or PATH_SEPARATOR in self.id:
            raise IncorrectInputError(f"invalid category id: {self.id!r}")
        name = _clean(self.name)
        if not name:
            raise IncorrectInputError("category name should not be empty")
        self.name = name
        self.icon = _clean(self.icon)
        self.parent_id = _clean(self.parent_id)
        self._check_path()

    def _check_path(self) -> None:
        if not self.path.startswith(PATH_SEPARATOR):
            raise IncorrectInputError(f"category path must start with '{PATH_SEPARATOR}'")
        segments = path_segments(self.path)
        if not segments or segments[-1] != self.id:
            raise IncorrectInputError("category path must end with the category id")
        if self.level != len(segments):
            raise IncorrectInputError(
                f"category level {self.level} does not match path depth {len(segments)}"
            )
        if self.parent_id is None and len(segments) != 1:
            raise IncorrectInputError("root category path must contain only its own id")
        if self.parent_id is not None and (len(segments) < 2 or segments[-2] != self.parent_id):
            raise IncorrectInputError("category path must end with its parent id and its own id")

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def ancestor_ids(self) -> List[str]:
        """Ancestor ids from the root down to the direct parent."""
        return path_segments(self.path)[:-1]

    def is_descendant_of(self, other_id: str) -> bool:
        return other_id in self.ancestor_ids()

    def check_parent(self, parent: Optional["Category"]) -> None:
        """Verify the path and level were derived from ``parent``."""
        if parent is None:
            if self.parent_id is not None:
                raise IncorrectInputError(f"parent category {self.parent_id} does not exist")
            if self.path != root_path(self.id) or self.level != 1:
                raise IncorrectInputError("root category must have level 1 and path '|<id>'")
            return
        if self.parent_id != parent.id:
            raise IncorrectInputError("parent id does not match the given parent")
        if self.path != child_path(parent.path, self.id) or self.level != parent.level + 1:
            raise IncorrectInputError(
                "category path and level must extend the parent's path and level"
            )

    def rename(self, name: str, icon: Optional[str], updated_by: Optional[str], updated_at: datetime) -> None:
        name = _clean(name)
        if not name:
            raise IncorrectInputError("category name should not be empty")
        self.name = name
        self.icon = _clean(icon)
        self.updated_by = updated_by
        self.updated_at = updated_at

    def relocated(self, moved_id: str, new_prefix: str, new_parent_id: Optional[str] = None) -> "Category":
        """
        Return this node with the subtree rooted at ``moved_id`` re-anchored at ``new_prefix``.

        ``new_prefix`` is the moved node's new path. For the moved node itself
        ``new_parent_id`` becomes its parent; descendants keep theirs. The
        rewrite depends only on the node's own path after ``moved_id``, so it
        gives the same answer for nodes that were already relocated.
        """
        if self.id == moved_id:
            segments = path_segments(new_prefix)
            return replace(
                self,
                parent_id=new_parent_id,
                path=new_prefix,
                level=len(segments),
                parents=[],
            )

        marker = segment_marker(moved_id)
        position = self.path.find(marker)
        if position < 0:
            raise IncorrectInputError(f"category {self.id} is not under {moved_id}")
        remainder = self.path[position + len(marker) - 1:]
        new_path = new_prefix + remainder
        return replace(self, path=new_path, level=len(path_segments(new_path)), parents=[])


@dataclass
class CategoryFilter:
    """
    Category selection.

    When several fields are set the first of ``find_all``,
    ``find_children_of``, ``category_ids``, ``parent_id`` wins. With nothing
    set the filter selects root categories.
    """

    parent_id: Optional[str] = None
    category_ids: List[str] = field(default_factory=list)
    find_children_of: Optional[str] = None
    find_all: bool = False
