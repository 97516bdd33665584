import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_role
from ..database import get_db
from ..models import User, UserRole
from ..models_journey import ClientJourney, ClientJourneyStatus, Journey, JourneyStep
from ..schemas import JourneyCreate, JourneyUpdate
from ..utils.serialization import to_millis
from .journey_steps import serialize_step

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/journeys", tags=["journeys"])

staff_only = require_role(UserRole.LAWYER, UserRole.ADMIN)


def serialize_journey(journey: Journey) -> dict:
    return {
        "id": journey.id,
        "name": journey.name,
        "description": journey.description,
        "journey_type": journey.journey_type,
        "is_active": journey.is_active,
        "estimated_duration_days": journey.estimated_duration_days,
        "created_at": to_millis(journey.created_at),
        "updated_at": to_millis(journey.updated_at),
    }


def get_journey_or_404(db: Session, journey_id: str) -> Journey:
    journey = db.query(Journey).filter(Journey.id == journey_id).first()
    if not journey:
        raise HTTPException(status_code=404, detail="Journey not found")
    return journey


@router.get("")
def list_journeys(current_user: User = Depends(staff_only), db: Session = Depends(get_db)):
    """Active journeys with their step count and number of clients in progress"""
    step_count = (
        db.query(func.count(JourneyStep.id))
        .filter(JourneyStep.journey_id == Journey.id)
        .correlate(Journey)
        .scalar_subquery()
    )
    active_clients = (
        db.query(func.count(ClientJourney.id))
        .filter(
            ClientJourney.journey_id == Journey.id,
            ClientJourney.status == ClientJourneyStatus.IN_PROGRESS.value,
        )
        .correlate(Journey)
        .scalar_subquery()
    )

    rows = (
        db.query(Journey, step_count, active_clients)
        .filter(Journey.is_active.is_(True))
        .order_by(Journey.created_at.desc())
        .all()
    )
    return {
        "journeys": [
            {**serialize_journey(journey), "step_count": steps or 0, "active_clients": clients or 0}
            for journey, steps, clients in rows
        ]
    }


@router.post("")
def create_journey(
    body: JourneyCreate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    journey = Journey(
        name=body.name,
        description=body.description,
        journey_type=body.journey_type,
        estimated_duration_days=body.estimated_duration_days,
    )
    db.add(journey)
    db.commit()
    db.refresh(journey)

    logger.info(f"🧭 Journey {journey.id} created by {current_user.id}")
    return {"journey": serialize_journey(journey)}


@router.get("/{journey_id}")
def get_journey(
    journey_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    journey = get_journey_or_404(db, journey_id)
    steps = (
        db.query(JourneyStep)
        .filter(JourneyStep.journey_id == journey.id)
        .order_by(JourneyStep.step_order.asc())
        .all()
    )
    return {"journey": serialize_journey(journey), "steps": [serialize_step(s) for s in steps]}


@router.put("/{journey_id}")
def update_journey(
    journey_id: str,
    body: JourneyUpdate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    journey = get_journey_or_404(db, journey_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(journey, field, value)
    db.commit()
    logger.info(f"✏️ Journey {journey.id} updated by {current_user.id}")
    return {"success": True}


@router.delete("/{journey_id}")
def delete_journey(
    journey_id: str,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    """Soft delete: the journey disappears from lists, client journeys keep their history"""
    journey = get_journey_or_404(db, journey_id)
    journey.is_active = False
    db.commit()

    logger.info(f"🗑️ Journey {journey_id} deactivated by {current_user.id}")
    return {"success": True}
