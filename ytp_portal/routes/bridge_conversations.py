"""
Bridge conversations
Message thread between the client and counsel attached to the progress row
of a BRIDGE step.
"""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_client_access
from ..database import get_db
from ..models import User
from ..models_journey import BridgeConversation, ClientJourney, JourneyStepProgress
from ..schemas import BridgeMessageCreate
from ..utils.sanitization import html_to_text, sanitize_html
from ..utils.serialization import parse_json, to_millis

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bridge-conversations", tags=["bridge-conversations"])


def serialize_message(conversation: BridgeConversation, author: User | None) -> dict:
    return {
        "id": conversation.id,
        "step_progress_id": conversation.step_progress_id,
        "user_id": conversation.user_id,
        "message": conversation.message,
        "is_ai_response": conversation.is_ai_response,
        "metadata": parse_json(conversation.metadata_json),
        "created_at": to_millis(conversation.created_at),
        "first_name": author.first_name if author else None,
        "last_name": author.last_name if author else None,
        "role": author.role if author else None,
        "avatar": author.avatar if author else None,
    }


def _get_progress_with_access(db: Session, step_progress_id: str, user: User) -> JourneyStepProgress:
    row = (
        db.query(JourneyStepProgress, ClientJourney.client_id)
        .join(ClientJourney, JourneyStepProgress.client_journey_id == ClientJourney.id)
        .filter(JourneyStepProgress.id == step_progress_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Step progress not found")

    progress, client_id = row
    require_client_access(user, client_id)
    return progress


@router.get("/{step_progress_id}")
def list_messages(
    step_progress_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    progress = _get_progress_with_access(db, step_progress_id, current_user)

    rows = (
        db.query(BridgeConversation, User)
        .outerjoin(User, BridgeConversation.user_id == User.id)
        .filter(BridgeConversation.step_progress_id == progress.id)
        .order_by(BridgeConversation.created_at.asc())
        .all()
    )
    return {"messages": [serialize_message(conversation, author) for conversation, author in rows]}


@router.post("/{step_progress_id}")
def post_message(
    step_progress_id: str,
    body: BridgeMessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    progress = _get_progress_with_access(db, step_progress_id, current_user)

    message = sanitize_html(body.message)
    if not html_to_text(message):
        raise HTTPException(status_code=400, detail="Message is required")

    conversation = BridgeConversation(
        step_progress_id=progress.id,
        user_id=current_user.id,
        message=message,
        is_ai_response=False,
        metadata_json=json.dumps(body.metadata) if body.metadata is not None else None,
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)

    logger.info(f"💬 Bridge message {conversation.id} on progress {progress.id} by {current_user.id}")
    return {"message": serialize_message(conversation, current_user)}
