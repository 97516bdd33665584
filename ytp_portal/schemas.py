from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models import MatterStatus, PaymentMethod, PaymentType, UserRole, UserStatus
from .models_google_drive import DEFAULT_MATTER_SUBFOLDERS, DEFAULT_ROOT_FOLDER_NAME
from .models_journey import JourneyType, Priority, ResponsibleParty, StepType

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CamelModel(BaseModel):
    """Request bodies arrive camelCased from the portal frontend; snake_case is accepted too"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


# Auth
class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


# Users
class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.CLIENT
    status: UserStatus = UserStatus.ACTIVE
    admin_level: int = Field(default=0, ge=0, le=10)


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    admin_level: Optional[int] = Field(default=None, ge=0, le=10)


# Matters
class MatterCreate(CamelModel):
    title: str = Field(min_length=1, max_length=500)
    client_id: str = Field(min_length=1)
    matter_number: Optional[str] = None
    description: Optional[str] = None
    status: MatterStatus = MatterStatus.OPEN
    lead_attorney_id: Optional[str] = None
    contract_date: Optional[datetime] = None


class MatterUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    matter_number: Optional[str] = None
    description: Optional[str] = None
    status: Optional[MatterStatus] = None
    lead_attorney_id: Optional[str] = None  # "" clears the lead attorney
    contract_date: Optional[datetime] = None


# Documents
class DocumentCreate(CamelModel):
    title: str = Field(min_length=1, max_length=500)
    client_id: str = Field(min_length=1)
    matter_id: Optional[str] = None
    content: str = ""
    description: Optional[str] = None


class DocumentStatusUpdate(CamelModel):
    # Validated in the handler for a descriptive message
    status: Optional[str] = None


class DocumentDeleteRequest(CamelModel):
    confirm_delete: bool = False


# Journeys
class JourneyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    journey_type: JourneyType = JourneyType.SERVICE
    estimated_duration_days: Optional[int] = Field(default=None, ge=0)


class JourneyUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    journey_type: Optional[JourneyType] = None
    estimated_duration_days: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class JourneyStepCreate(CamelModel):
    journey_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    step_type: StepType = StepType.MILESTONE
    step_order: Optional[int] = Field(default=None, ge=0)  # appended when omitted
    responsible_party: ResponsibleParty = ResponsibleParty.CLIENT
    description: Optional[str] = None
    expected_duration_days: Optional[int] = Field(default=None, ge=0)
    automation_config: Optional[Dict[str, Any]] = None
    help_content: Optional[str] = None
    allow_multiple_iterations: bool = False


class JourneyStepUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    step_type: Optional[StepType] = None
    step_order: Optional[int] = Field(default=None, ge=0)
    responsible_party: Optional[ResponsibleParty] = None
    description: Optional[str] = None
    expected_duration_days: Optional[int] = Field(default=None, ge=0)
    automation_config: Optional[Dict[str, Any]] = None
    help_content: Optional[str] = None
    allow_multiple_iterations: Optional[bool] = None


class StepOrderItem(CamelModel):
    id: str
    step_order: int = Field(ge=0)


class StepReorderRequest(CamelModel):
    steps: List[StepOrderItem]


class ClientJourneyCreate(CamelModel):
    client_id: str = Field(min_length=1)
    journey_id: str = Field(min_length=1)
    matter_id: Optional[str] = None
    priority: Priority = Priority.MEDIUM


class MoveToStepRequest(CamelModel):
    step_id: str = Field(min_length=1)


# Snapshots
class SnapshotCreate(CamelModel):
    client_journey_id: str = Field(min_length=1)
    content: Any
    attorney_notes: Optional[str] = None


class SnapshotFeedback(CamelModel):
    feedback: Optional[str] = None
    notes: Optional[str] = None


# Service categories
class ServiceCategoryCreate(CamelModel):
    name: Optional[str] = None  # blank names get a 400 with a message
    description: Optional[str] = None


class ServiceCategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class CategoryOrderItem(CamelModel):
    id: str
    display_order: int = Field(ge=0)


class CategoryReorderRequest(CamelModel):
    categories: List[CategoryOrderItem]


# Bridge conversations
class BridgeMessageCreate(CamelModel):
    message: str
    metadata: Optional[Dict[str, Any]] = None


# OAuth providers
class OAuthProviderCreate(CamelModel):
    provider_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    logo_url: Optional[str] = None
    button_color: str = Field(default="#4285F4", pattern=HEX_COLOR_PATTERN)
    is_enabled: bool = False
    display_order: int = 0


class OAuthProviderUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    logo_url: Optional[str] = None
    button_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    is_enabled: Optional[bool] = None
    display_order: Optional[int] = None


# Payments
class PaymentCreate(CamelModel):
    matter_id: str = Field(min_length=1)
    amount: int = Field(gt=0)  # cents
    payment_type: PaymentType
    payment_method: PaymentMethod
    invoice_id: Optional[str] = None
    check_number: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None


# Google Drive
class GoogleDriveConfigure(CamelModel):
    is_enabled: bool
    service_account_email: Optional[EmailStr] = None
    service_account_private_key: Optional[str] = None  # kept when omitted
    shared_drive_id: Optional[str] = None
    root_folder_id: Optional[str] = None
    root_folder_name: str = Field(default=DEFAULT_ROOT_FOLDER_NAME, min_length=1)
    impersonation_email: Optional[EmailStr] = None
    matter_subfolders: List[str] = Field(default_factory=lambda: list(DEFAULT_MATTER_SUBFOLDERS))
    sync_generated_documents: bool = True
    sync_client_uploads: bool = True
    sync_signed_documents: bool = True
