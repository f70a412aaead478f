from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from uuid import UUID

from planejar.models import (
    Role, ClientType, DocumentCategory, ProjectStatus, PostCompletionStatus, PhaseStatus,
    TaskStatus, DocumentType, DocumentStatus, ChatType, NotificationType,
)
from planejar.pipeline.phase_data import AIAnalysisResult


# ============= User Schemas =============
class QualificationData(BaseModel):
    cpf: Optional[str] = None
    rg: Optional[str] = None
    marital_status: Optional[str] = None
    property_regime: Optional[str] = None
    birth_date: Optional[str] = None
    nationality: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    declares_income_tax: Optional[bool] = None


class UserDocumentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    category: DocumentCategory
    url: str = Field(..., min_length=1, max_length=1000)


class UserDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    category: DocumentCategory
    url: str
    uploaded_at: datetime


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255, description="User's full name")
    email: EmailStr
    # Provisional password is used when omitted
    password: Optional[str] = Field(None, min_length=6, max_length=100)
    role: Role
    client_type: Optional[ClientType] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    client_type: Optional[ClientType] = None
    avatar_url: Optional[str] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: EmailStr
    role: Role
    client_type: Optional[ClientType] = None
    avatar_url: Optional[str] = None
    requires_password_change: bool = False
    qualification_data: Optional[Dict[str, Any]] = None
    documents: List[UserDocumentResponse] = []
    data_complete: bool = False
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TemporaryPasswordResponse(BaseModel):
    temporary_password: str


# ============= Auth Schemas =============
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class ChangePasswordRequest(BaseModel):
    user_id: UUID
    current_password: Optional[str] = None
    new_password: str = Field(..., min_length=6, max_length=100)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6, max_length=100)


class MessageResponse(BaseModel):
    message: str


# ============= Project Schemas =============
class NewClientData(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    client_type: ClientType = ClientType.PARTNER


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=500, description="Project name")
    main_client: NewClientData
    additional_clients: List[NewClientData] = []
    consultant_id: Optional[UUID] = None
    auxiliary_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[ProjectStatus] = None
    current_phase_id: Optional[int] = Field(None, ge=1, le=10)
    auxiliary_id: Optional[UUID] = None
    post_completion_status: Optional[PostCompletionStatus] = None


class ClientAddRequest(BaseModel):
    """Either an existing user id or the data of a new client"""
    user_id: Optional[UUID] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    client_type: ClientType = ClientType.PARTNER


class PhaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    phase_number: int
    title: str
    description: Optional[str] = None
    status: PhaseStatus
    phase_data: Dict[str, Any] = {}
    updated_at: datetime


class PhaseUpdate(BaseModel):
    status: Optional[PhaseStatus] = None
    phase_data: Optional[Dict[str, Any]] = None


class ActivityLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: Optional[UUID] = None
    actor_name: str
    action: str
    created_at: datetime


class ActivityLogCreate(BaseModel):
    action: str = Field(..., min_length=1)


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    status: ProjectStatus
    current_phase_id: int
    consultant_id: UUID
    auxiliary_id: Optional[UUID] = None
    client_ids: List[UUID] = []
    post_completion_status: Optional[PostCompletionStatus] = None
    phases: List[PhaseResponse] = []
    activity_log: List[ActivityLogResponse] = []
    created_at: datetime
    updated_at: datetime


class AdvancePhaseRequest(BaseModel):
    phase_number: int = Field(..., ge=1, le=10)


class PostCompletionChoiceRequest(BaseModel):
    choice: Literal["quotas", "agreement"]


# ============= Chat Schemas =============
class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    chat_type: ChatType
    author_id: Optional[UUID] = None
    author_name: str
    author_role: Role
    content: str
    created_at: datetime


# ============= Task Schemas =============
class TaskCreate(BaseModel):
    phase_number: int = Field(..., ge=1, le=10)
    description: str = Field(..., min_length=1)
    assignee_id: Optional[UUID] = None
    related_document_id: Optional[UUID] = None


class TaskUpdate(BaseModel):
    description: Optional[str] = None
    assignee_id: Optional[UUID] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    phase_number: int
    description: str
    status: TaskStatus
    assignee_id: Optional[UUID] = None
    assignee_role: Optional[Role] = None
    created_by_id: Optional[UUID] = None
    related_document_id: Optional[UUID] = None
    created_by_ai: bool = False
    completed_by_id: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    approved_by_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    created_at: datetime


class SuggestedTasksConfirm(BaseModel):
    phase_number: int = Field(..., ge=1, le=10)
    descriptions: List[str] = Field(..., min_length=1)
    related_document_id: Optional[UUID] = None


# ============= Document Schemas =============
class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    phase_number: int
    name: str
    url: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    type: DocumentType
    uploaded_by_id: Optional[UUID] = None
    version: int
    status: DocumentStatus
    uploaded_at: datetime


# ============= Notification Schemas =============
class NotificationCreate(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    link: Optional[str] = None
    type: Optional[NotificationType] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    message: str
    link: Optional[str] = None
    type: Optional[NotificationType] = None
    is_read: bool
    created_at: datetime


# ============= AI Schemas =============
class AIHistoryItem(BaseModel):
    role: Literal["user", "model"]
    content: str


class AIHelpRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    history: List[AIHistoryItem] = []


class AIHelpResponse(BaseModel):
    response: str


class AIDraftRequest(BaseModel):
    instructions: str = Field(..., min_length=1)
    context: Optional[str] = None


class AIDraftResponse(BaseModel):
    draft: Optional[str] = None
    error: Optional[str] = None


class AIAnalyzeRequest(BaseModel):
    document_id: UUID


class AIAnalyzeResponse(BaseModel):
    result: Optional[AIAnalysisResult] = None
    error: Optional[str] = None


# ============= Phase action Schemas =============
class DocumentAttach(BaseModel):
    document_id: UUID


class SlotDocumentAttach(BaseModel):
    slot: str
    document_id: UUID


class DiagnosticFormRequest(BaseModel):
    diagnostic_summary: Optional[str] = None
    objective: Optional[str] = None
    family_composition: Optional[str] = None
    main_assets: Optional[str] = None
    partners: Optional[str] = None
    existing_companies: Optional[str] = None


class MeetingRequest(BaseModel):
    meeting_date_time: datetime
    meeting_link: Optional[str] = None


class MinutesRequest(BaseModel):
    meeting_minutes: str = Field(..., min_length=1)
    consultant_checklist: Optional[Dict[str, bool]] = None


class CompanyUpdateRequest(BaseModel):
    company_data: Optional[Dict[str, Any]] = None
    partners: Optional[List[Dict[str, Any]]] = None


class ITBIProcessUpdate(BaseModel):
    process_type: Optional[Literal["isencao", "pagamento", ""]] = None
    observations: Optional[str] = None
    protocol_date: Optional[str] = None
    protocol_number: Optional[str] = None


class RegistrationProcessUpdate(BaseModel):
    registry_office: Optional[str] = None
    registration_date: Optional[str] = None
    registration_number: Optional[str] = None
    observations: Optional[str] = None


class FinalizeRequest(BaseModel):
    consultant_observations: Optional[str] = None


class FeedbackRequest(BaseModel):
    rating: int
    comment: str = ""
    would_recommend: Optional[bool] = None


class TransferCreate(BaseModel):
    type: Literal["doacao", "venda"]
    donor_or_seller_id: UUID
    beneficiary_or_buyer_ids: List[UUID] = []
    percentage: Optional[float] = Field(None, gt=0, le=100)
    transaction_value: Optional[float] = Field(None, ge=0)
    observations: str = ""


class TransferUpdate(BaseModel):
    beneficiary_or_buyer_ids: Optional[List[str]] = None
    percentage: Optional[float] = Field(None, gt=0, le=100)
    transaction_value: Optional[float] = Field(None, ge=0)
    observations: Optional[str] = None


class AgreementTermsUpdate(BaseModel):
    included_clauses: Optional[List[str]] = None
    consultant_observations: Optional[str] = None


class ClientFeedbackRequest(BaseModel):
    client_feedback: str = Field(..., min_length=1)


class SupportRequestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: Optional[Literal["alteration", "query", "document_request", "other"]] = None
    priority: Optional[Literal["low", "medium", "high"]] = None


class SupportRequestUpdate(BaseModel):
    status: Optional[Literal["open", "in-progress", "closed"]] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    assigned_to_id: Optional[str] = None
