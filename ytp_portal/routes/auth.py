import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from ..auth import clear_session, hash_password, open_session, read_session, verify_password
from ..database import get_db
from ..models import User, UserRole, UserStatus
from ..schemas import LoginRequest, RegisterRequest
from ..utils.serialization import serialize_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register")
def register(body: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """Self sign-up; new accounts start as PROSPECT until a lawyer engages them"""
    email = body.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(
        email=email,
        password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=UserRole.PROSPECT.value,
        status=UserStatus.PROSPECT.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    open_session(response, user)
    logger.info(f"🆕 Registered user {user.id}")
    return {"user": serialize_user(user)}


@router.post("/login")
def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user or not verify_password(body.password, user.password):
        logger.warning("⚠️ Failed login attempt")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.status == UserStatus.INACTIVE.value:
        raise HTTPException(status_code=403, detail="Account is inactive")

    open_session(response, user)
    logger.info(f"✅ User {user.id} logged in")
    return {"user": serialize_user(user)}


@router.post("/logout")
def logout(response: Response):
    clear_session(response)
    return {"success": True}


@router.get("/session")
def get_session(request: Request, response: Response, db: Session = Depends(get_db)):
    """Current session user, re-read from the database so role and status changes apply"""
    session = read_session(request)
    user_id = (session.get("user") or {}).get("id")
    if not user_id:
        return {"user": None}

    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.status == UserStatus.INACTIVE.value:
        clear_session(response)
        return {"user": None}

    return {"user": {**serialize_user(user), "has_password": bool(user.password)}}
