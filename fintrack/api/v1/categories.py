"""
Category API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.application.categories import (
    CreateCategoryUseCase, UpdateCategoryUseCase, DeleteCategoryUseCase,
    get_category, list_categories,
)
from fintrack.domain.category import CATEGORY_TYPES
from fintrack.infrastructure.db.models import User, Category


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


class CategoryRequest(BaseModel):
    name: str
    type: str  # income / expense

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in CATEGORY_TYPES:
            raise ValueError(f"type must be income or expense, got: {v}")
        return v


class CategoryResponse(BaseModel):
    id: int
    name: str
    type: str


def _to_response(c: Category) -> CategoryResponse:
    return CategoryResponse(id=c.id, name=c.name, type=c.type)


@router.get("/", response_model=list[CategoryResponse])
def list_categories_endpoint(
    type: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Categories ordered by type, then name"""
    return [_to_response(c) for c in list_categories(db, user.id, category_type=type)]


@router.post("/", response_model=CategoryResponse, status_code=201)
def create_category(
    req: CategoryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    category_id = CreateCategoryUseCase(db).execute(
        user_id=user.id, name=req.name, category_type=req.type
    )
    return _to_response(get_category(db, category_id, user.id))


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    req: CategoryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UpdateCategoryUseCase(db).execute(
        category_id=category_id, user_id=user.id, name=req.name, category_type=req.type
    )
    return _to_response(get_category(db, category_id, user.id))


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Transactions of the category stay, uncategorized"""
    DeleteCategoryUseCase(db).execute(category_id=category_id, user_id=user.id)
