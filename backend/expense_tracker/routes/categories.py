import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from expense_tracker.domain.category import CategoryFilter
from expense_tracker.routes.dependencies import get_actor, get_category_service
from expense_tracker.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CountResponse,
    CreatedResponse,
)
from expense_tracker.services.categories import CategoryService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[CategoryResponse], response_model_exclude_none=True)
def list_categories(
    parent_id: Optional[str] = Query(default=None, alias="parentId"),
    all_children: bool = Query(default=False, alias="allChildren"),
    find_all: bool = Query(default=False, alias="all"),
    service: CategoryService = Depends(get_category_service),
):
    """List root categories, the children of a parent, or every category."""
    category_filter = CategoryFilter(parent_id=parent_id, find_all=find_all)
    if all_children:
        if parent_id:
            category_filter.find_children_of = parent_id
        else:
            category_filter.find_all = True
    return service.find_all(category_filter)


@router.get("/{category_id}", response_model=CategoryResponse, response_model_exclude_none=True)
def get_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """Get a category with its ancestors."""
    return service.find_with_parents(category_id)


@router.post("", response_model=CreatedResponse, status_code=201)
def create_category(
    category: CategoryCreate,
    actor: Optional[str] = Depends(get_actor),
    service: CategoryService = Depends(get_category_service),
):
    """Create a new category."""
    category_id = service.create(
        name=category.name,
        parent_id=category.parent_id,
        icon=category.icon,
        level=category.level,
        path=category.path,
        created_by=actor,
    )
    return CreatedResponse(id=category_id)


@router.put("/{category_id}", status_code=204)
def update_category(
    category_id: str,
    category: CategoryUpdate,
    actor: Optional[str] = Depends(get_actor),
    service: CategoryService = Depends(get_category_service),
):
    """Rename a category or change its icon."""
    service.update(category_id, name=category.name, icon=category.icon, updated_by=actor)
    return Response(status_code=204)


@router.delete("/{category_id}", response_model=CountResponse)
def delete_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """Delete a category and all of its descendants."""
    count = service.delete(category_id)
    if count is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return CountResponse(count=count)


@router.put("/{category_id}/move", response_model=CountResponse)
def move_category(
    category_id: str,
    destination_id: str = Query(alias="destinationId", min_length=1),
    actor: Optional[str] = Depends(get_actor),
    service: CategoryService = Depends(get_category_service),
):
    """Move a category subtree under another category, or to the root with destinationId=root."""
    count = service.move(category_id, destination_id, moved_by=actor)
    return CountResponse(count=count)


@router.get("/{category_id}/usages", response_model=List[CategoryResponse], response_model_exclude_none=True)
def list_category_usages(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """List every descendant of a category."""
    return service.find_usages(category_id)
