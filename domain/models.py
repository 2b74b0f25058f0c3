from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(str, Enum):
    EMPLOYER = "employer"
    ADMINISTRATOR = "administrator"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


PENDING_STATUSES = frozenset({ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW})
TERMINAL_STATUSES = frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED})
REVIEW_TARGETS = frozenset(
    {ApplicationStatus.UNDER_REVIEW, ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
)

# source status -> statuses reachable from it
STATUS_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: frozenset({ApplicationStatus.SUBMITTED}),
    ApplicationStatus.SUBMITTED: REVIEW_TARGETS,
    ApplicationStatus.UNDER_REVIEW: REVIEW_TARGETS,
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}


class ApplicationType(str, Enum):
    NEW = "new_application"
    RENEWAL = "renewal_application"


class DocumentType(str, Enum):
    INSURANCE = "insurance"
    TRAINING = "training"
    SUPPORTING = "supporting"
    OTHER = "other"


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: UserRole = UserRole.EMPLOYER


class ApplicationCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    application_type: ApplicationType
    number_of_workers: int = Field(ge=0)
    number_of_certified_workers: int = Field(ge=0)
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_business_address: Optional[str] = None
    services_description: str = Field(min_length=1)


class ApplicationUpdate(BaseModel):
    """Owner-editable fields. Status and review fields are not part of this set."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    application_type: Optional[ApplicationType] = None
    number_of_workers: Optional[int] = Field(default=None, ge=0)
    number_of_certified_workers: Optional[int] = Field(default=None, ge=0)
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_business_address: Optional[str] = None
    services_description: Optional[str] = Field(default=None, min_length=1)


class StatusUpdate(BaseModel):
    # checked against the state machine by ReviewWorkflow
    status: str
    review_comments: Optional[str] = None


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    original_name: str
    mime_type: str
    size: int
    document_type: str
    created_at: datetime


class FileRejectionRead(BaseModel):
    filename: str
    reason: str


class UploadResponse(BaseModel):
    documents: List[DocumentRead] = []
    rejected: List[FileRejectionRead] = []


class TriageChecklistData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Section 1 - decision
    date_of_decision: Optional[date] = None
    decision: Optional[str] = None
    prepared_by: Optional[str] = None
    job_title: Optional[str] = None
    # Section 2 - employer information
    employer_legal_name: Optional[str] = None
    employer_trade_name: Optional[str] = None
    employer_id: Optional[str] = None
    active_status: Optional[bool] = None
    account_coverage: Optional[str] = None
    firm_type: Optional[str] = None
    employer_start_date: Optional[date] = None
    classification_units: Optional[str] = None
    employer_cu_start_date: Optional[date] = None
    overdue_balance: Optional[str] = None
    current_account_balance: Optional[str] = None
    # Section 3 - review checklist
    bc_company_summary: Optional[bool] = None
    is_applicant_in_scope: Optional[bool] = None
    classification_unit_related: Optional[bool] = None
    review_amounts_owing: Optional[bool] = None
    review_number_of_workers: Optional[bool] = None
    review_certified_workers: Optional[bool] = None
    lat_screen_capture: Optional[bool] = None
    review_lat_escalation: Optional[bool] = None
    review_injunction_violations: Optional[bool] = None
    review_referrals_from_pfs: Optional[bool] = None
    review_renewals_consistency: Optional[bool] = None
    review_associated_firms: Optional[bool] = None
    has_noph_information: Optional[bool] = None
    transport_acms: Optional[bool] = None


class TriageChecklistRead(TriageChecklistData):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    application_id: str
    created_at: datetime
    updated_at: datetime


class ApplicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reference_number: str
    user_id: str
    application_type: ApplicationType
    number_of_workers: int
    number_of_certified_workers: int
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_business_address: Optional[str] = None
    services_description: str
    status: ApplicationStatus
    review_comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[UserRead] = None
    reviewer: Optional[UserRead] = None
    documents: List[DocumentRead] = []
    triaging_checklist: Optional[TriageChecklistRead] = None

    @computed_field  # type: ignore[misc]
    @property
    def allowed_transitions(self) -> List[ApplicationStatus]:
        return sorted(STATUS_TRANSITIONS[self.status], key=lambda s: s.value)


class UserStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    draft: int


class AdminStats(BaseModel):
    pending: int
    processed_today: int
    overdue: int
    this_week: int


class AuditEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: str
    actor: str
    action: str
    payload: Optional[dict[str, Any]] = None
    at: datetime
