import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, aliased

from ..auth import get_current_user, require_client_access, require_role
from ..database import get_db
from ..models import Matter, MatterStatus, User, UserRole
from ..models_journey import ClientJourney
from ..schemas import MatterCreate, MatterUpdate
from ..utils.serialization import naive_utc, to_millis

logger = logging.getLogger(__name__)
router = APIRouter(tags=["matters"])

staff_only = require_role(UserRole.LAWYER, UserRole.ADMIN)


def serialize_matter(matter: Matter) -> dict:
    return {
        "id": matter.id,
        "client_id": matter.client_id,
        "title": matter.title,
        "matter_number": matter.matter_number,
        "description": matter.description,
        "status": matter.status,
        "lead_attorney_id": matter.lead_attorney_id,
        "contract_date": to_millis(matter.contract_date),
        "google_drive_folder_id": matter.google_drive_folder_id,
        "google_drive_sync_status": matter.google_drive_sync_status,
        "created_at": to_millis(matter.created_at),
        "updated_at": to_millis(matter.updated_at),
    }


def get_matter_or_404(db: Session, matter_id: str) -> Matter:
    matter = db.query(Matter).filter(Matter.id == matter_id).first()
    if not matter:
        raise HTTPException(status_code=404, detail="Matter not found")
    return matter


def _check_lead_attorney(db: Session, lead_attorney_id: str) -> None:
    attorney = db.query(User).filter(User.id == lead_attorney_id).first()
    if not attorney:
        raise HTTPException(status_code=404, detail="Lead attorney not found")


@router.get("/matters")
def list_matters(
    status: Optional[MatterStatus] = None,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    query = db.query(Matter, User).join(User, Matter.client_id == User.id)
    if status:
        query = query.filter(Matter.status == status.value)

    rows = query.order_by(Matter.created_at.desc()).all()
    return {
        "matters": [
            {
                **serialize_matter(matter),
                "client_first_name": client.first_name,
                "client_last_name": client.last_name,
                "client_email": client.email,
            }
            for matter, client in rows
        ]
    }


@router.get("/my-matters")
def list_my_matters(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Matters where the signed-in user is the client"""
    matters = (
        db.query(Matter)
        .filter(Matter.client_id == current_user.id)
        .order_by(Matter.created_at.desc())
        .all()
    )
    return {"matters": [serialize_matter(m) for m in matters]}


@router.post("/matters")
def create_matter(
    body: MatterCreate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    client = db.query(User).filter(User.id == body.client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    if body.lead_attorney_id:
        _check_lead_attorney(db, body.lead_attorney_id)

    matter = Matter(
        client_id=client.id,
        title=body.title,
        matter_number=body.matter_number,
        description=body.description,
        status=body.status,
        lead_attorney_id=body.lead_attorney_id or None,
        contract_date=naive_utc(body.contract_date),
    )
    db.add(matter)
    db.commit()
    db.refresh(matter)

    logger.info(f"📁 Matter {matter.id} created for client {client.id} by {current_user.id}")
    return {"success": True, "matter": serialize_matter(matter)}


@router.get("/matters/{matter_id}")
def get_matter(
    matter_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    client = aliased(User)
    lead_attorney = aliased(User)
    row = (
        db.query(Matter, client, lead_attorney)
        .outerjoin(client, Matter.client_id == client.id)
        .outerjoin(lead_attorney, Matter.lead_attorney_id == lead_attorney.id)
        .filter(Matter.id == matter_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Matter not found")

    matter, client_row, attorney_row = row
    require_client_access(current_user, matter.client_id)

    return {
        "matter": {
            **serialize_matter(matter),
            "client_first_name": client_row.first_name if client_row else None,
            "client_last_name": client_row.last_name if client_row else None,
            "client_email": client_row.email if client_row else None,
            "lead_attorney_first_name": attorney_row.first_name if attorney_row else None,
            "lead_attorney_last_name": attorney_row.last_name if attorney_row else None,
            "lead_attorney_email": attorney_row.email if attorney_row else None,
        }
    }


@router.put("/matters/{matter_id}")
def update_matter(
    matter_id: str,
    body: MatterUpdate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    matter = get_matter_or_404(db, matter_id)
    data = body.model_dump(exclude_unset=True)

    if "lead_attorney_id" in data:
        lead_attorney_id = data.pop("lead_attorney_id") or None
        if lead_attorney_id:
            _check_lead_attorney(db, lead_attorney_id)
        matter.lead_attorney_id = lead_attorney_id

    if "contract_date" in data:
        matter.contract_date = naive_utc(data.pop("contract_date"))

    for field, value in data.items():
        setattr(matter, field, value)

    db.commit()
    logger.info(f"✏️ Matter {matter.id} updated by {current_user.id}")
    return {"success": True}


@router.delete("/matters/{matter_id}")
def delete_matter(
    matter_id: str,
    confirm: Optional[str] = None,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    if confirm != "true":
        raise HTTPException(
            status_code=400,
            detail="Deletion requires confirmation. Add ?confirm=true to the request.",
        )

    matter = get_matter_or_404(db, matter_id)

    # Client journeys first, their progress rows and snapshots go with them
    for client_journey in db.query(ClientJourney).filter(ClientJourney.matter_id == matter.id).all():
        db.delete(client_journey)
    db.flush()
    db.delete(matter)
    db.commit()

    logger.info(f"🗑️ Matter {matter_id} deleted by {current_user.id}")
    return {"success": True, "message": "Matter deleted successfully"}
