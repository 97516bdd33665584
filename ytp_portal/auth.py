import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import SECRET_KEY, SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_MAX_AGE
from .database import get_db
from .models import User, UserRole, UserStatus

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
session_serializer = URLSafeTimedSerializer(SECRET_KEY, salt="ytp-session")

# Roles that see every client's data
STAFF_ROLES = {UserRole.LAWYER.value, UserRole.ADMIN.value}

# Roles that may hold an admin_level above zero
ADMIN_LEVEL_ROLES = {UserRole.LAWYER.value, UserRole.ADVISOR.value}

FULL_ADMIN_LEVEL = 2


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def session_user_payload(user: User) -> dict:
    """The user snapshot kept in the session cookie"""
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "admin_level": user.admin_level or 0,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "status": user.status,
    }


def read_session(request: Request) -> dict:
    """Decode the signed session cookie; an empty dict when absent, tampered or expired"""
    raw = request.cookies.get(SESSION_COOKIE_NAME)
    if not raw:
        return {}
    try:
        data = session_serializer.loads(raw, max_age=SESSION_MAX_AGE)
    except SignatureExpired:
        logger.info("⏰ Session cookie expired")
        return {}
    except BadSignature:
        logger.warning("⚠️ Session cookie with invalid signature")
        return {}
    return data if isinstance(data, dict) else {}


def write_session(response: Response, data: dict) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_serializer.dumps(data),
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def open_session(response: Response, user: User) -> None:
    write_session(
        response,
        {"user": session_user_payload(user), "logged_in_at": int(datetime.utcnow().timestamp() * 1000)},
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the signed-in user from the session cookie, 401 otherwise"""
    session = read_session(request)
    user_id = (session.get("user") or {}).get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.status == UserStatus.INACTIVE.value:
        logger.warning(f"⚠️ Session for missing or inactive user {user_id}")
        raise HTTPException(status_code=401, detail="Authentication required")

    return user


def require_role(*roles: str):
    """
    Dependency factory for the per-route role guard.

    Usage:
        @router.get("", dependencies=[Depends(require_role("LAWYER", "ADMIN"))])
    or
        current_user: User = Depends(require_role("ADMIN"))
    """
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(
                f"🚫 Role {current_user.role} of user {current_user.id} not in {sorted(allowed)}"
            )
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user

    return dependency


def has_full_admin_access(user: User) -> bool:
    return user.role == UserRole.ADMIN.value or (user.admin_level or 0) >= FULL_ADMIN_LEVEL


def require_admin_access(current_user: User = Depends(get_current_user)) -> User:
    """ADMIN role or admin_level >= 2"""
    if not has_full_admin_access(current_user):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return current_user


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES


def require_client_access(user: User, client_id: Optional[str]) -> None:
    """Lawyers and admins see every client; anyone else only their own records"""
    if is_staff(user):
        return
    if client_id and user.id == client_id:
        return
    logger.warning(f"🚫 User {user.id} denied access to client {client_id}")
    raise HTTPException(status_code=403, detail="Access denied")
