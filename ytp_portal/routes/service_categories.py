import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_role
from ..database import get_db
from ..models import ServiceCategory, User, UserRole
from ..schemas import (
    CategoryReorderRequest,
    ServiceCategoryCreate,
    ServiceCategoryUpdate,
)
from ..utils.serialization import to_millis

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/service-categories", tags=["service-categories"])

staff_only = require_role(UserRole.ADMIN, UserRole.LAWYER)


def serialize_category(category: ServiceCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "display_order": category.display_order,
        "is_active": category.is_active,
        "created_at": to_millis(category.created_at),
        "updated_at": to_millis(category.updated_at),
    }


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name is required")
    return name


def _clean_description(description):
    return (description or "").strip() or None


@router.get("")
def list_categories(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    categories = (
        db.query(ServiceCategory)
        .filter(ServiceCategory.is_active.is_(True))
        .order_by(ServiceCategory.display_order.asc(), ServiceCategory.name.asc())
        .all()
    )
    return {"categories": [serialize_category(c) for c in categories]}


@router.post("/reorder")
def reorder_categories(
    body: CategoryReorderRequest,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    """Apply display_order values in input order; unknown ids abort the whole batch"""
    if not body.categories:
        raise HTTPException(status_code=400, detail="Categories array is required")

    for item in body.categories:
        category = db.query(ServiceCategory).filter(ServiceCategory.id == item.id).first()
        if not category:
            db.rollback()
            raise HTTPException(status_code=404, detail=f"Category {item.id} not found")
        category.display_order = item.display_order

    db.commit()
    logger.info(f"↕️ Reordered {len(body.categories)} service categories by {current_user.id}")
    return {"success": True}


@router.post("")
def create_category(
    body: ServiceCategoryCreate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    name = _clean_name(body.name)

    # Inactive categories still own their name
    if db.query(ServiceCategory).filter(ServiceCategory.name == name).first():
        raise HTTPException(status_code=409, detail="A category with this name already exists")

    max_order = db.query(func.max(ServiceCategory.display_order)).scalar()
    category = ServiceCategory(
        name=name,
        description=_clean_description(body.description),
        display_order=(max_order or 0) + 1,
        is_active=True,
    )
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info(f"🏷️ Service category {category.id} created by {current_user.id}")
    return {"success": True, "category": serialize_category(category)}


@router.put("/{category_id}")
def update_category(
    category_id: str,
    body: ServiceCategoryUpdate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    name = _clean_name(body.name)

    category = db.query(ServiceCategory).filter(ServiceCategory.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    duplicate = (
        db.query(ServiceCategory)
        .filter(ServiceCategory.name == name, ServiceCategory.id != category.id)
        .first()
    )
    if duplicate:
        raise HTTPException(status_code=409, detail="A category with this name already exists")

    category.name = name
    category.description = _clean_description(body.description)
    if body.display_order is not None:
        category.display_order = body.display_order
    category.is_active = body.is_active if body.is_active is not None else True

    db.commit()
    return {"success": True}


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    category = db.query(ServiceCategory).filter(ServiceCategory.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    category.is_active = False
    db.commit()

    logger.info(f"🗑️ Service category {category_id} deactivated by {current_user.id}")
    return {"success": True}
