import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import require_role
from ..database import get_db
from ..models import User, UserRole
from ..models_journey import ClientJourney, Journey, JourneyStep, JourneyStepProgress
from ..schemas import JourneyStepCreate, JourneyStepUpdate, StepReorderRequest
from ..utils.serialization import dump_json, parse_json, to_millis

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/journey-steps", tags=["journey-steps"])

staff_only = require_role(UserRole.LAWYER, UserRole.ADMIN)


def serialize_step(step: JourneyStep) -> dict:
    return {
        "id": step.id,
        "journey_id": step.journey_id,
        "step_type": step.step_type,
        "name": step.name,
        "description": step.description,
        "step_order": step.step_order,
        "responsible_party": step.responsible_party,
        "expected_duration_days": step.expected_duration_days,
        "automation_config": parse_json(step.automation_config),
        "help_content": step.help_content,
        "allow_multiple_iterations": step.allow_multiple_iterations,
        "created_at": to_millis(step.created_at),
        "updated_at": to_millis(step.updated_at),
    }


def get_step_or_404(db: Session, step_id: str) -> JourneyStep:
    step = db.query(JourneyStep).filter(JourneyStep.id == step_id).first()
    if not step:
        raise HTTPException(status_code=404, detail="Journey step not found")
    return step


# Registered before "/{step_id}" routes so "reorder" is never taken for an id
@router.post("/reorder")
def reorder_steps(
    body: StepReorderRequest,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    """Apply the new step_order values in input order; unknown ids abort the whole batch"""
    if not body.steps:
        raise HTTPException(status_code=400, detail="Steps array is required")

    for item in body.steps:
        step = db.query(JourneyStep).filter(JourneyStep.id == item.id).first()
        if not step:
            db.rollback()
            raise HTTPException(status_code=404, detail=f"Journey step {item.id} not found")
        step.step_order = item.step_order

    db.commit()
    logger.info(f"↕️ Reordered {len(body.steps)} journey steps by {current_user.id}")
    return {"success": True}


@router.post("")
def create_step(
    body: JourneyStepCreate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    journey = db.query(Journey).filter(Journey.id == body.journey_id).first()
    if not journey:
        raise HTTPException(status_code=404, detail="Journey not found")

    step_order = body.step_order
    if step_order is None:
        max_order = (
            db.query(func.max(JourneyStep.step_order))
            .filter(JourneyStep.journey_id == journey.id)
            .scalar()
        )
        step_order = (max_order or 0) + 1

    step = JourneyStep(
        journey_id=journey.id,
        name=body.name,
        description=body.description,
        step_type=body.step_type,
        step_order=step_order,
        responsible_party=body.responsible_party,
        expected_duration_days=body.expected_duration_days,
        automation_config=dump_json(body.automation_config),
        help_content=body.help_content,
        allow_multiple_iterations=body.allow_multiple_iterations,
    )
    db.add(step)
    db.commit()
    db.refresh(step)

    logger.info(f"➕ Step {step.id} added to journey {journey.id} by {current_user.id}")
    return {"step": serialize_step(step)}


@router.put("/{step_id}")
def update_step(
    step_id: str,
    body: JourneyStepUpdate,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    step = get_step_or_404(db, step_id)

    data = body.model_dump(exclude_unset=True)
    if "automation_config" in data:
        data["automation_config"] = dump_json(data["automation_config"])

    for field, value in data.items():
        setattr(step, field, value)

    db.commit()
    logger.info(f"✏️ Journey step {step.id} updated by {current_user.id}")
    return {"success": True}


@router.delete("/{step_id}")
def delete_step(
    step_id: str,
    current_user: User = Depends(staff_only),
    db: Session = Depends(get_db),
):
    step = get_step_or_404(db, step_id)

    # Client progress and bridge messages reference the step
    in_use = (
        db.query(ClientJourney.id).filter(ClientJourney.current_step_id == step.id).first()
        or db.query(JourneyStepProgress.id).filter(JourneyStepProgress.step_id == step.id).first()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="Step is in use by client journeys")

    db.delete(step)
    db.commit()

    logger.info(f"🗑️ Journey step {step_id} deleted by {current_user.id}")
    return {"success": True}
