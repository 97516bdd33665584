import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_client_access, require_role
from ..database import get_db
from ..models import Matter, User, UserRole
from ..models_journey import (
    ClientJourney,
    ClientJourneyStatus,
    Journey,
    JourneyStep,
    JourneyStepProgress,
    Priority,
    StepProgressStatus,
)
from ..schemas import ClientJourneyCreate, MoveToStepRequest
from ..utils.serialization import to_millis
from .journey_steps import serialize_step
from .matters import get_matter_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/client-journeys", tags=["client-journeys"])

staff_only = require_role(UserRole.LAWYER, UserRole.ADMIN)

PRIORITY_RANK = {
    Priority.URGENT.value: 3,
    Priority.HIGH.value: 2,
    Priority.MEDIUM.value: 1,
    Priority.LOW.value: 0,
}


def serialize_client_journey(client_journey: ClientJourney) -> dict:
    return {
        "id": client_journey.id,
        "client_id": client_journey.client_id,
        "matter_id": client_journey.matter_id,
        "journey_id": client_journey.journey_id,
        "current_step_id": client_journey.current_step_id,
        "status": client_journey.status,
        "priority": client_journey.priority,
        "started_at": to_millis(client_journey.started_at),
        "completed_at": to_millis(client_journey.completed_at),
        "paused_at": to_millis(client_journey.paused_at),
        "created_at": to_millis(client_journey.created_at),
        "updated_at": to_millis(client_journey.updated_at),
    }


def get_client_journey_or_404(db: Session, client_journey_id: str) -> ClientJourney:
    client_journey = db.query(ClientJourney).filter(ClientJourney.id == client_journey_id).first()
    if not client_journey:
        raise HTTPException(status_code=404, detail="Client journey not found")
    return client_journey


def _start_step(db: Session, client_journey: ClientJourney, step: JourneyStep, now: datetime) -> None:
    client_journey.current_step_id = step.id
    db.add(
        JourneyStepProgress(
            client_journey_id=client_journey.id,
            step_id=step.id,
            status=StepProgressStatus.IN_PROGRESS.value,
            started_at=now,
        )
    )


@router.post("")
def start_client_journey(
    body: ClientJourneyCreate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    client = db.query(User).filter(User.id == body.client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    journey = db.query(Journey).filter(Journey.id == body.journey_id, Journey.is_active.is_(True)).first()
    if not journey:
        raise HTTPException(status_code=404, detail="Journey not found")

    if body.matter_id:
        matter = db.query(Matter).filter(Matter.id == body.matter_id).first()
        if not matter:
            raise HTTPException(status_code=404, detail="Matter not found")
        if matter.client_id != client.id:
            raise HTTPException(status_code=400, detail="Matter does not belong to this client")

        existing = (
            db.query(ClientJourney)
            .filter(
                ClientJourney.matter_id == matter.id,
                ClientJourney.journey_id == journey.id,
                ClientJourney.status != ClientJourneyStatus.CANCELLED.value,
            )
            .first()
        )
        if existing:
            raise HTTPException(status_code=400, detail="A journey already exists for this matter")

    now = datetime.utcnow()
    client_journey = ClientJourney(
        client_id=client.id,
        matter_id=body.matter_id or None,
        journey_id=journey.id,
        status=ClientJourneyStatus.IN_PROGRESS.value,
        priority=body.priority,
        started_at=now,
    )
    db.add(client_journey)
    db.flush()

    first_step = (
        db.query(JourneyStep)
        .filter(JourneyStep.journey_id == journey.id)
        .order_by(JourneyStep.step_order.asc())
        .first()
    )
    if first_step:
        _start_step(db, client_journey, first_step, now)

    db.commit()
    db.refresh(client_journey)

    logger.info(f"🚀 Client {client.id} started journey {journey.id} ({client_journey.id})")
    return {"client_journey": serialize_client_journey(client_journey)}


@router.get("/client/{client_id}")
def list_client_journeys(
    client_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_client_access(current_user, client_id)

    total_steps = (
        db.query(func.count(JourneyStep.id))
        .filter(JourneyStep.journey_id == Journey.id)
        .correlate(Journey)
        .scalar_subquery()
    )
    rows = (
        db.query(ClientJourney, Journey, JourneyStep, Matter, total_steps)
        .join(Journey, ClientJourney.journey_id == Journey.id)
        .outerjoin(JourneyStep, ClientJourney.current_step_id == JourneyStep.id)
        .outerjoin(Matter, ClientJourney.matter_id == Matter.id)
        .filter(
            ClientJourney.client_id == client_id,
            ClientJourney.status != ClientJourneyStatus.CANCELLED.value,
        )
        .order_by(ClientJourney.created_at.desc())
        .all()
    )
    # Most urgent first, newest first within a priority
    rows.sort(key=lambda row: PRIORITY_RANK.get(row[0].priority, 0), reverse=True)

    journeys = []
    for client_journey, journey, step, matter, steps in rows:
        journeys.append(
            {
                **serialize_client_journey(client_journey),
                "journey_name": journey.name,
                "journey_description": journey.description,
                "estimated_duration_days": journey.estimated_duration_days,
                "current_step_name": step.name if step else None,
                "current_step_type": step.step_type if step else None,
                "current_step_order": step.step_order if step else None,
                "total_steps": steps or 0,
                "matter_title": matter.title if matter else None,
                "matter_number": matter.matter_number if matter else None,
            }
        )
    return {"journeys": journeys}


@router.get("/matter/{matter_id}")
def list_matter_journeys(
    matter_id: str,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    matter = get_matter_or_404(db, matter_id)

    rows = (
        db.query(ClientJourney, Journey, JourneyStep, User)
        .outerjoin(Journey, ClientJourney.journey_id == Journey.id)
        .outerjoin(JourneyStep, ClientJourney.current_step_id == JourneyStep.id)
        .outerjoin(User, ClientJourney.client_id == User.id)
        .filter(ClientJourney.matter_id == matter.id)
        .order_by(ClientJourney.created_at.desc())
        .all()
    )

    journeys = []
    for client_journey, journey, step, client in rows:
        journeys.append(
            {
                **serialize_client_journey(client_journey),
                "journey_name": journey.name if journey else None,
                "journey_description": journey.description if journey else None,
                "estimated_duration_days": journey.estimated_duration_days if journey else None,
                "current_step_name": step.name if step else None,
                "current_step_type": step.step_type if step else None,
                "first_name": client.first_name if client else None,
                "last_name": client.last_name if client else None,
                "email": client.email if client else None,
            }
        )
    return {"journeys": journeys}


@router.get("/{client_journey_id}/progress")
def get_client_journey_progress(
    client_journey_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Every step of the journey in order, each with this client's progress row.
    The progress id is what bridge conversations are keyed on.
    """
    client_journey = get_client_journey_or_404(db, client_journey_id)
    require_client_access(current_user, client_journey.client_id)

    journey = db.query(Journey).filter(Journey.id == client_journey.journey_id).first()
    steps = (
        db.query(JourneyStep)
        .filter(JourneyStep.journey_id == client_journey.journey_id)
        .order_by(JourneyStep.step_order.asc())
        .all()
    )
    progress_rows = (
        db.query(JourneyStepProgress)
        .filter(JourneyStepProgress.client_journey_id == client_journey.id)
        .order_by(JourneyStepProgress.created_at.asc())
        .all()
    )
    # Latest row wins when a step was revisited
    progress_by_step = {progress.step_id: progress for progress in progress_rows}

    steps_with_progress = []
    for step in steps:
        progress = progress_by_step.get(step.id)
        steps_with_progress.append(
            {
                **serialize_step(step),
                "progress_id": progress.id if progress else None,
                "progress_status": progress.status if progress else None,
                "client_approved": bool(progress and progress.client_approved),
                "attorney_approved": bool(progress and progress.attorney_approved),
                "iteration_count": progress.iteration_count if progress else 0,
                "progress_started_at": to_millis(progress.started_at) if progress else None,
                "progress_completed_at": to_millis(progress.completed_at) if progress else None,
            }
        )

    return {
        "client_journey": {
            **serialize_client_journey(client_journey),
            "journey_name": journey.name if journey else None,
            "journey_description": journey.description if journey else None,
        },
        "steps": steps_with_progress,
    }


def _complete_current_step(db: Session, client_journey: ClientJourney, now: datetime) -> None:
    if not client_journey.current_step_id:
        return
    progress_rows = (
        db.query(JourneyStepProgress)
        .filter(
            JourneyStepProgress.client_journey_id == client_journey.id,
            JourneyStepProgress.step_id == client_journey.current_step_id,
        )
        .all()
    )
    for progress in progress_rows:
        progress.status = StepProgressStatus.COMPLETE.value
        progress.completed_at = now


@router.post("/{client_journey_id}/advance")
def advance_client_journey(
    client_journey_id: str,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    """Complete the current step and start the next one, or finish the journey"""
    client_journey = get_client_journey_or_404(db, client_journey_id)
    if client_journey.status != ClientJourneyStatus.IN_PROGRESS.value:
        raise HTTPException(
            status_code=400, detail=f"Client journey is {client_journey.status.lower().replace('_', ' ')}"
        )

    current_step = None
    if client_journey.current_step_id:
        current_step = db.query(JourneyStep).filter(JourneyStep.id == client_journey.current_step_id).first()
    if not current_step:
        raise HTTPException(status_code=400, detail="Current step not found")

    now = datetime.utcnow()
    _complete_current_step(db, client_journey, now)

    next_step = (
        db.query(JourneyStep)
        .filter(
            JourneyStep.journey_id == client_journey.journey_id,
            JourneyStep.step_order > current_step.step_order,
        )
        .order_by(JourneyStep.step_order.asc())
        .first()
    )

    if next_step:
        _start_step(db, client_journey, next_step, now)
        db.commit()
        logger.info(f"➡️ Client journey {client_journey.id} advanced to step {next_step.id} by {current_user.id}")
        return {"success": True, "next_step": serialize_step(next_step)}

    client_journey.status = ClientJourneyStatus.COMPLETED.value
    client_journey.completed_at = now
    db.commit()
    logger.info(f"🏁 Client journey {client_journey.id} completed by {current_user.id}")
    return {"success": True, "completed": True}


@router.post("/{client_journey_id}/move-to-step")
def move_client_journey_to_step(
    client_journey_id: str,
    body: MoveToStepRequest,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    """
    Jump to any step of the journey, forwards or back.

    The current step is marked complete. The target step's latest progress row
    is reopened, or a new one is created when the client never reached it.
    A completed journey is reopened; a cancelled one cannot be moved.
    """
    client_journey = get_client_journey_or_404(db, client_journey_id)
    if client_journey.status == ClientJourneyStatus.CANCELLED.value:
        raise HTTPException(status_code=400, detail="Client journey is cancelled")

    target = (
        db.query(JourneyStep)
        .filter(JourneyStep.id == body.step_id, JourneyStep.journey_id == client_journey.journey_id)
        .first()
    )
    if not target:
        raise HTTPException(status_code=404, detail="Journey step not found")

    now = datetime.utcnow()
    _complete_current_step(db, client_journey, now)

    existing = (
        db.query(JourneyStepProgress)
        .filter(
            JourneyStepProgress.client_journey_id == client_journey.id,
            JourneyStepProgress.step_id == target.id,
        )
        .order_by(JourneyStepProgress.created_at.desc())
        .first()
    )
    if existing:
        client_journey.current_step_id = target.id
        existing.status = StepProgressStatus.IN_PROGRESS.value
        existing.started_at = now
        existing.completed_at = None
    else:
        _start_step(db, client_journey, target, now)

    client_journey.status = ClientJourneyStatus.IN_PROGRESS.value
    client_journey.completed_at = None
    db.commit()

    logger.info(f"↪️ Client journey {client_journey.id} moved to step {target.id} by {current_user.id}")
    return {"success": True}
