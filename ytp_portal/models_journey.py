"""
Journey Models
Journeys are reusable workflows made of ordered steps. A client journey tracks
one client's position in a journey; snapshots and bridge conversations hang off it.
"""
import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base
from .models import generate_id


class JourneyType(str, enum.Enum):
    ENGAGEMENT = "ENGAGEMENT"
    SERVICE = "SERVICE"


class StepType(str, enum.Enum):
    MILESTONE = "MILESTONE"
    BRIDGE = "BRIDGE"


class ResponsibleParty(str, enum.Enum):
    CLIENT = "CLIENT"
    COUNSEL = "COUNSEL"
    STAFF = "STAFF"
    BOTH = "BOTH"


class ClientJourneyStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class StepProgressStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_CLIENT = "WAITING_CLIENT"
    WAITING_ATTORNEY = "WAITING_ATTORNEY"
    COMPLETE = "COMPLETE"
    SKIPPED = "SKIPPED"


class SnapshotStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    UNDER_REVISION = "UNDER_REVISION"
    APPROVED = "APPROVED"
    ARCHIVED = "ARCHIVED"  # Soft delete


class Journey(Base):
    __tablename__ = "journeys"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    journey_type = Column(String(20), nullable=False, default=JourneyType.SERVICE.value)
    is_active = Column(Boolean, nullable=False, default=True)  # Soft delete flag
    estimated_duration_days = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    steps = relationship(
        "JourneyStep",
        back_populates="journey",
        cascade="all, delete-orphan",
        order_by="JourneyStep.step_order",
    )
    client_journeys = relationship("ClientJourney", back_populates="journey")


class JourneyStep(Base):
    __tablename__ = "journey_steps"

    id = Column(String(36), primary_key=True, default=generate_id)
    journey_id = Column(String(36), ForeignKey("journeys.id"), nullable=False, index=True)
    step_type = Column(String(20), nullable=False, default=StepType.MILESTONE.value)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    step_order = Column(Integer, nullable=False, default=0)
    responsible_party = Column(String(20), nullable=False, default=ResponsibleParty.CLIENT.value)
    expected_duration_days = Column(Integer, nullable=True)
    automation_config = Column(Text, nullable=True)  # JSON
    help_content = Column(Text, nullable=True)
    allow_multiple_iterations = Column(Boolean, nullable=False, default=False)  # BRIDGE steps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    journey = relationship("Journey", back_populates="steps")
    progress = relationship("JourneyStepProgress", back_populates="step")


class ClientJourney(Base):
    __tablename__ = "client_journeys"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    matter_id = Column(String(36), ForeignKey("matters.id"), nullable=True, index=True)
    journey_id = Column(String(36), ForeignKey("journeys.id"), nullable=False)
    current_step_id = Column(String(36), ForeignKey("journey_steps.id"), nullable=True)
    status = Column(String(20), nullable=False, default=ClientJourneyStatus.NOT_STARTED.value)
    priority = Column(String(10), nullable=False, default=Priority.MEDIUM.value)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    paused_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    client = relationship("User", back_populates="client_journeys")
    matter = relationship("Matter", back_populates="client_journeys")
    journey = relationship("Journey", back_populates="client_journeys")
    current_step = relationship("JourneyStep", foreign_keys=[current_step_id])
    step_progress = relationship(
        "JourneyStepProgress", back_populates="client_journey", cascade="all, delete-orphan"
    )
    snapshots = relationship(
        "SnapshotVersion", back_populates="client_journey", cascade="all, delete-orphan"
    )


class JourneyStepProgress(Base):
    __tablename__ = "journey_step_progress"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_journey_id = Column(
        String(36), ForeignKey("client_journeys.id"), nullable=False, index=True
    )
    step_id = Column(String(36), ForeignKey("journey_steps.id"), nullable=False)
    status = Column(String(20), nullable=False, default=StepProgressStatus.PENDING.value)
    client_approved = Column(Boolean, nullable=False, default=False)
    attorney_approved = Column(Boolean, nullable=False, default=False)
    iteration_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    client_journey = relationship("ClientJourney", back_populates="step_progress")
    step = relationship("JourneyStep", back_populates="progress")
    conversations = relationship(
        "BridgeConversation",
        back_populates="step_progress",
        cascade="all, delete-orphan",
        order_by="BridgeConversation.created_at",
    )


class BridgeConversation(Base):
    """Messages exchanged between client and counsel inside a BRIDGE step"""

    __tablename__ = "bridge_conversations"

    id = Column(String(36), primary_key=True, default=generate_id)
    step_progress_id = Column(
        String(36), ForeignKey("journey_step_progress.id"), nullable=False, index=True
    )
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)  # null for AI responses
    message = Column(Text, nullable=False)
    is_ai_response = Column(Boolean, nullable=False, default=False)
    metadata_json = Column("metadata", Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    step_progress = relationship("JourneyStepProgress", back_populates="conversations")
    user = relationship("User")


class SnapshotVersion(Base):
    __tablename__ = "snapshot_versions"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_journey_id = Column(
        String(36), ForeignKey("client_journeys.id"), nullable=False, index=True
    )
    version_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)  # JSON: structured snapshot data
    generated_pdf_path = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=SnapshotStatus.DRAFT.value)
    sent_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by_client = Column(Boolean, nullable=False, default=False)
    approved_by_attorney = Column(Boolean, nullable=False, default=False)
    client_feedback = Column(Text, nullable=True)
    attorney_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    client_journey = relationship("ClientJourney", back_populates="snapshots")
