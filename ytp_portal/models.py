import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_id():
    """Generate a UUID4 primary key"""
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    LAWYER = "LAWYER"
    STAFF = "STAFF"
    ADVISOR = "ADVISOR"
    CLIENT = "CLIENT"
    LEAD = "LEAD"
    PROSPECT = "PROSPECT"


class UserStatus(str, enum.Enum):
    PROSPECT = "PROSPECT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class MatterStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PENDING = "PENDING"


class DocumentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    SIGNED = "SIGNED"
    COMPLETED = "COMPLETED"


class PaymentType(str, enum.Enum):
    CONSULTATION = "CONSULTATION"
    DEPOSIT_50 = "DEPOSIT_50"
    FINAL_50 = "FINAL_50"
    MAINTENANCE = "MAINTENANCE"
    CUSTOM = "CUSTOM"


class PaymentMethod(str, enum.Enum):
    LAWPAY = "LAWPAY"
    CHECK = "CHECK"
    WIRE = "WIRE"
    CREDIT_CARD = "CREDIT_CARD"
    ACH = "ACH"
    OTHER = "OTHER"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=True)
    password = Column(String(255), nullable=True)  # Null for OAuth-only accounts
    firebase_uid = Column(String(255), unique=True, nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.PROSPECT.value)
    admin_level = Column(Integer, nullable=False, default=0)  # 0=none, 1=basic, 2=full, 3+=super
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=UserStatus.PROSPECT.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    matters = relationship(
        "Matter",
        back_populates="client",
        foreign_keys="Matter.client_id",
        cascade="all, delete-orphan",
    )
    documents = relationship("Document", back_populates="client", cascade="all, delete-orphan")
    client_journeys = relationship(
        "ClientJourney", back_populates="client", cascade="all, delete-orphan"
    )
    lawpay_connections = relationship(
        "LawPayConnection", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Matter(Base):
    __tablename__ = "matters"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    matter_number = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=MatterStatus.OPEN.value)
    lead_attorney_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    contract_date = Column(DateTime, nullable=True)

    # Google Drive sync tracking
    google_drive_folder_id = Column(String(255), nullable=True)
    google_drive_sync_status = Column(String(20), nullable=True, default="NOT_SYNCED")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    client = relationship("User", back_populates="matters", foreign_keys=[client_id])
    lead_attorney = relationship("User", foreign_keys=[lead_attorney_id])
    documents = relationship("Document", back_populates="matter")
    payments = relationship("Payment", back_populates="matter", cascade="all, delete-orphan")
    client_journeys = relationship(
        "ClientJourney", back_populates="matter", cascade="all, delete-orphan"
    )


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=DocumentStatus.DRAFT.value)
    matter_id = Column(String(36), ForeignKey("matters.id"), nullable=True, index=True)
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    file_path = Column(String(500), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    variable_values = Column(Text, nullable=True)  # JSON string
    docx_blob_key = Column(String(500), nullable=True)
    signed_pdf_blob_key = Column(String(500), nullable=True)
    requires_notary = Column(Boolean, nullable=False, default=False)
    notarization_status = Column(String(20), nullable=True)
    signed_at = Column(DateTime, nullable=True)
    viewed_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)

    # Google Drive sync tracking
    google_drive_file_id = Column(String(255), nullable=True)
    google_drive_sync_status = Column(String(20), nullable=True, default="NOT_SYNCED")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    client = relationship("User", back_populates="documents")
    matter = relationship("Matter", back_populates="documents")


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)  # Soft delete flag
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class OAuthProvider(Base):
    """Sign-in providers shown on the login page (e.g. google.com, facebook.com)"""

    __tablename__ = "oauth_providers"

    id = Column(String(36), primary_key=True, default=generate_id)
    provider_id = Column(String(100), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    logo_url = Column(Text, nullable=True)  # data URI or external URL
    button_color = Column(String(7), nullable=False, default="#4285F4")
    is_enabled = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    matter_id = Column(String(36), ForeignKey("matters.id"), nullable=False, index=True)
    payment_type = Column(String(20), nullable=False, default=PaymentType.CUSTOM.value)
    amount = Column(Integer, nullable=False)  # cents
    payment_method = Column(String(20), nullable=True)
    lawpay_transaction_id = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    fund_source = Column(String(10), nullable=False, default="DIRECT")  # TRUST, DIRECT, SPLIT
    invoice_id = Column(String(36), nullable=True)
    check_number = Column(String(100), nullable=True)
    reference_number = Column(String(255), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    matter = relationship("Matter", back_populates="payments")
