import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import (
    ADMIN_LEVEL_ROLES,
    FULL_ADMIN_LEVEL,
    get_current_user,
    has_full_admin_access,
    hash_password,
    require_admin_access,
    require_role,
)
from ..database import get_db
from ..models import User, UserRole
from ..schemas import UserCreate, UserUpdate
from ..utils.serialization import serialize_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All users without password hashes (ADMIN/LAWYER or admin level 2+)"""
    if current_user.role not in {UserRole.ADMIN.value, UserRole.LAWYER.value} and not has_full_admin_access(
        current_user
    ):
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    users = db.query(User).order_by(User.created_at.desc()).all()
    return {"users": [serialize_user(u) for u in users]}


@router.post("")
def create_user(
    body: UserCreate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    email = body.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    if body.admin_level > 0 and body.role not in ADMIN_LEVEL_ROLES:
        raise HTTPException(
            status_code=400,
            detail="Admin levels can only be assigned to staff roles (Lawyer, Advisor)",
        )

    user = User(
        email=email,
        password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=body.role,
        status=body.status,
        admin_level=body.admin_level,
    )
    db.add(user)
    db.commit()

    logger.info(f"👤 User {user.id} created by {current_user.id}")
    return {"success": True, "user_id": user.id}


@router.put("/{user_id}")
def update_user(
    user_id: str,
    body: UserUpdate,
    current_user: User = Depends(require_admin_access),
    db: Session = Depends(get_db),
):
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    data = body.model_dump(exclude_unset=True)
    admin_level = data.pop("admin_level", None)
    role = data.pop("role", None)
    password = data.pop("password", None)
    effective_role = role or target.role
    own_level = current_user.admin_level or 0

    if admin_level is not None and admin_level > 0:
        if effective_role not in ADMIN_LEVEL_ROLES:
            raise HTTPException(
                status_code=400,
                detail="Admin levels can only be assigned to staff roles (Lawyer, Advisor)",
            )
        if own_level < FULL_ADMIN_LEVEL:
            raise HTTPException(status_code=403, detail="Admin level 2+ required to modify admin levels")
        if target.id == current_user.id and admin_level > own_level:
            raise HTTPException(status_code=403, detail="Cannot elevate your own admin level")
        if admin_level > own_level:
            raise HTTPException(status_code=403, detail="Cannot set admin level higher than your own")

    if "email" in data and data["email"]:
        email = data["email"].lower()
        duplicate = db.query(User).filter(User.email == email, User.id != target.id).first()
        if duplicate:
            raise HTTPException(status_code=400, detail="Email already exists")
        data["email"] = email

    for field, value in data.items():
        setattr(target, field, value)

    if role is not None:
        target.role = role
        # Non-staff roles cannot keep an admin level
        if role not in ADMIN_LEVEL_ROLES and (target.admin_level or 0) > 0:
            target.admin_level = 0

    if admin_level is not None:
        target.admin_level = admin_level

    if password:
        target.password = hash_password(password)

    db.commit()
    logger.info(f"✏️ User {target.id} updated by {current_user.id}")
    return {"success": True}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    current_user: User = Depends(require_admin_access),
    db: Session = Depends(get_db),
):
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    if target.id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    db.delete(target)
    db.commit()

    logger.info(f"🗑️ User {user_id} deleted by {current_user.id}")
    return {"success": True}
