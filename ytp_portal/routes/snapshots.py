"""
Snapshot versions
A snapshot is a versioned, structured summary of a client's plan that both
the client and the attorney approve. Deleting one archives it.
"""
import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, is_staff, require_client_access, require_role
from ..database import get_db
from ..models import User, UserRole
from ..models_journey import ClientJourney, SnapshotStatus, SnapshotVersion
from ..schemas import SnapshotCreate, SnapshotFeedback
from ..utils.serialization import parse_json, to_millis
from .client_journeys import get_client_journey_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/snapshots", tags=["snapshots"])


def serialize_snapshot(snapshot: SnapshotVersion) -> dict:
    return {
        "id": snapshot.id,
        "client_journey_id": snapshot.client_journey_id,
        "version_number": snapshot.version_number,
        "content": parse_json(snapshot.content),
        "generated_pdf_path": snapshot.generated_pdf_path,
        "status": snapshot.status,
        "sent_at": to_millis(snapshot.sent_at),
        "approved_at": to_millis(snapshot.approved_at),
        "approved_by_client": snapshot.approved_by_client,
        "approved_by_attorney": snapshot.approved_by_attorney,
        "client_feedback": snapshot.client_feedback,
        "attorney_notes": snapshot.attorney_notes,
        "created_at": to_millis(snapshot.created_at),
        "updated_at": to_millis(snapshot.updated_at),
    }


def _load_for_review(db: Session, snapshot_id: str, user: User):
    """Live snapshot plus whether the caller reviews it as the client"""
    row = (
        db.query(SnapshotVersion, ClientJourney.client_id)
        .join(ClientJourney, SnapshotVersion.client_journey_id == ClientJourney.id)
        .filter(
            SnapshotVersion.id == snapshot_id,
            SnapshotVersion.status != SnapshotStatus.ARCHIVED.value,
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Snapshot not found")

    snapshot, client_id = row
    is_client = user.id == client_id
    if not is_client and not is_staff(user):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return snapshot, is_client


@router.post("")
def create_snapshot(
    body: SnapshotCreate,
    current_user: User = Depends(require_role(UserRole.LAWYER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    if body.content is None:
        raise HTTPException(status_code=400, detail="Snapshot content is required")

    client_journey = get_client_journey_or_404(db, body.client_journey_id)

    latest = (
        db.query(func.max(SnapshotVersion.version_number))
        .filter(SnapshotVersion.client_journey_id == client_journey.id)
        .scalar()
    )
    snapshot = SnapshotVersion(
        client_journey_id=client_journey.id,
        version_number=(latest or 0) + 1,
        content=json.dumps(body.content),
        status=SnapshotStatus.DRAFT.value,
        attorney_notes=body.attorney_notes,
    )
    db.add(snapshot)
    db.commit()
    db.refresh(snapshot)

    logger.info(
        f"📸 Snapshot v{snapshot.version_number} created for client journey {client_journey.id}"
    )
    return {"snapshot": serialize_snapshot(snapshot)}


@router.get("/client-journey/{client_journey_id}")
def list_snapshots(
    client_journey_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    client_journey = get_client_journey_or_404(db, client_journey_id)
    require_client_access(current_user, client_journey.client_id)

    snapshots = (
        db.query(SnapshotVersion)
        .filter(
            SnapshotVersion.client_journey_id == client_journey.id,
            SnapshotVersion.status != SnapshotStatus.ARCHIVED.value,
        )
        .order_by(SnapshotVersion.version_number.desc())
        .all()
    )
    return {"snapshots": [serialize_snapshot(s) for s in snapshots]}


@router.post("/{snapshot_id}/approve")
def approve_snapshot(
    snapshot_id: str,
    body: Optional[SnapshotFeedback] = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    snapshot, is_client = _load_for_review(db, snapshot_id, current_user)
    body = body or SnapshotFeedback()

    if is_client:
        snapshot.approved_by_client = True
        snapshot.client_feedback = body.feedback or None
    else:
        snapshot.approved_by_attorney = True
        snapshot.attorney_notes = body.notes or None

    both_approved = bool(snapshot.approved_by_client and snapshot.approved_by_attorney)
    if both_approved:
        snapshot.status = SnapshotStatus.APPROVED.value
        snapshot.approved_at = datetime.utcnow()
    else:
        snapshot.status = SnapshotStatus.UNDER_REVISION.value

    db.commit()
    logger.info(f"✅ Snapshot {snapshot.id} approved by {current_user.id} (both: {both_approved})")
    return {"success": True, "both_approved": both_approved}


@router.post("/{snapshot_id}/request-revision")
def request_revision(
    snapshot_id: str,
    body: Optional[SnapshotFeedback] = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    snapshot, is_client = _load_for_review(db, snapshot_id, current_user)
    body = body or SnapshotFeedback()
    feedback = body.feedback or body.notes or "Revision requested"

    snapshot.status = SnapshotStatus.UNDER_REVISION.value
    if is_client:
        snapshot.client_feedback = feedback
    else:
        snapshot.attorney_notes = feedback

    db.commit()
    logger.info(f"🔁 Revision requested on snapshot {snapshot.id} by {current_user.id}")
    return {"success": True}


@router.delete("/{snapshot_id}")
def delete_snapshot(
    snapshot_id: str,
    current_user: User = Depends(require_role(UserRole.LAWYER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    snapshot = (
        db.query(SnapshotVersion)
        .filter(
            SnapshotVersion.id == snapshot_id,
            SnapshotVersion.status != SnapshotStatus.ARCHIVED.value,
        )
        .first()
    )
    if not snapshot:
        raise HTTPException(status_code=404, detail="Snapshot not found")

    snapshot.status = SnapshotStatus.ARCHIVED.value
    db.commit()

    logger.info(f"🗑️ Snapshot {snapshot_id} archived by {current_user.id}")
    return {"success": True}
