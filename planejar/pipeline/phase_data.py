"""
Typed payloads for the ten phases.

Each phase stores its own workflow data in ``Phase.phase_data``. The payload
is a tagged union keyed by the ``phase`` field, so code reaches a phase's
data through ``load_phase_data(number, raw)`` and gets back the model for
that number instead of picking dictionary keys by hand.
"""
from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)


# ============= Shared pieces =============
class ChatEntry(_Payload):
    id: str
    author_id: str
    author_name: str
    author_role: str
    content: str
    timestamp: datetime


class DocumentRef(_Payload):
    """Snapshot of a Document row embedded in a phase payload"""
    id: str
    name: str
    url: Optional[str] = None
    version: int = 1
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class AIKeyInfo(_Payload):
    label: str
    value: str


class AIAnalysisResult(_Payload):
    summary: str = ""
    key_info: List[AIKeyInfo] = Field(default_factory=list)
    suggested_tasks: List[str] = Field(default_factory=list)


ReviewStatus = Literal["pending_client", "pending_consultant_review", "approved"]
DraftStatus = Literal["pending_draft", "in_review", "approved"]


# ============= Phase 1: Diagnóstico =============
class Phase1Data(_Payload):
    phase: Literal[1] = 1
    diagnostic_summary: Optional[str] = None
    objective: Optional[str] = None
    family_composition: Optional[str] = None
    main_assets: Optional[str] = None
    partners: Optional[str] = None
    existing_companies: Optional[str] = None
    is_form_completed: bool = False
    meeting_scheduled: bool = False
    meeting_date_time: Optional[datetime] = None
    meeting_link: Optional[str] = None
    meeting_minutes: Optional[str] = None
    consultant_checklist: Dict[str, bool] = Field(default_factory=dict)
    ai_analysis_result: Optional[AIAnalysisResult] = None
    analyzed_document_id: Optional[str] = None


# ============= Phase 2: Constituição =============
class CompanyData(_Payload):
    name: str = ""
    trade_name: Optional[str] = None
    capital: Optional[float] = None
    type: Literal["LTDA", "S/A", "SLU", ""] = ""
    address: str = ""
    cnaes: str = ""


class Phase2Partner(_Payload):
    user_id: str
    name: str
    is_administrator: bool = False
    participation: Optional[float] = None
    data_status: Literal["pending", "completed"] = "pending"


class Phase2Data(_Payload):
    phase: Literal[2] = 2
    company_data: CompanyData = Field(default_factory=CompanyData)
    partners: List[Phase2Partner] = Field(default_factory=list)
    # slots: "contract", "cnpj"
    documents: Dict[str, DocumentRef] = Field(default_factory=dict)
    status: ReviewStatus = "pending_client"
    process_status: Literal["pending_start", "in_progress", "completed"] = "pending_start"


# ============= Phase 3: Integralização =============
AssetStatus = Literal["pendente", "completo", "em_correcao", "validado"]


class _BaseAsset(_Payload):
    id: str
    owner_partner_id: str
    description: str = ""
    value: Optional[float] = None
    market_value: Optional[float] = None
    status: AssetStatus = "pendente"
    consultant_observations: Optional[str] = None
    document_id: Optional[str] = None


class PropertyAsset(_BaseAsset):
    type: Literal["property"] = "property"
    property_type: Literal["casa", "apartamento", "terreno", "sala_comercial", ""] = ""
    address: Optional[str] = None
    registration_number: Optional[str] = None
    registry_office: Optional[str] = None
    certificate_date: Optional[str] = None
    usage: Optional[str] = None


class VehicleAsset(_BaseAsset):
    type: Literal["vehicle"] = "vehicle"
    year: Optional[int] = None
    license_plate: Optional[str] = None
    renavam: Optional[str] = None


class CashAsset(_BaseAsset):
    type: Literal["cash"] = "cash"


class OtherAsset(_BaseAsset):
    type: Literal["other"] = "other"
    registration_details: Optional[str] = None


Asset = Annotated[Union[PropertyAsset, VehicleAsset, CashAsset, OtherAsset], Field(discriminator="type")]
asset_adapter = TypeAdapter(Asset)


class Phase3Data(_Payload):
    phase: Literal[3] = 3
    assets: List[Asset] = Field(default_factory=list)
    documents: List[DocumentRef] = Field(default_factory=list)
    status: ReviewStatus = "pending_client"

    def properties(self) -> List[PropertyAsset]:
        return [asset for asset in self.assets if isinstance(asset, PropertyAsset)]


# ============= Phase 4: Minuta =============
class Phase4Data(_Payload):
    phase: Literal[4] = 4
    analysis_drafts: List[DocumentRef] = Field(default_factory=list)
    final_draft: Optional[DocumentRef] = None
    discussion: List[ChatEntry] = Field(default_factory=list)
    # changes_requested is accepted on input but no operation produces it
    status: Literal["pending_draft", "in_review", "approved", "changes_requested"] = "pending_draft"
    approvals: Dict[str, bool] = Field(default_factory=dict)


# ============= Phase 5: ITBI =============
class ITBIProcess(_Payload):
    property_id: str
    process_type: Literal["isencao", "pagamento", ""] = ""
    status: Literal["pending_guide", "pending_payment", "completed", "exemption_approved"] = "pending_guide"
    observations: str = ""
    protocol_date: Optional[str] = None
    protocol_number: Optional[str] = None
    guide_doc_id: Optional[str] = None
    receipt_doc_id: Optional[str] = None


class Phase5Data(_Payload):
    phase: Literal[5] = 5
    itbi_processes: List[ITBIProcess] = Field(default_factory=list)


# ============= Phase 6: Registro =============
class RegistrationProcess(_Payload):
    property_id: str
    registry_office: str = ""
    status: Literal["pending_fee_guide", "pending_fee_payment", "pending_registration", "completed"] = "pending_fee_guide"
    fee_guide_doc_id: Optional[str] = None
    fee_receipt_doc_id: Optional[str] = None
    updated_certificate_doc_id: Optional[str] = None
    registration_date: Optional[str] = None
    registration_number: Optional[str] = None
    observations: Optional[str] = None


class Phase6Data(_Payload):
    phase: Literal[6] = 6
    registration_processes: List[RegistrationProcess] = Field(default_factory=list)


# ============= Phase 7: Conclusão =============
class Feedback(_Payload):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    would_recommend: Optional[bool] = None


class Phase7Data(_Payload):
    phase: Literal[7] = 7
    status: Literal["pending", "completed"] = "pending"
    consultant_observations: Optional[str] = None
    conclusion_date: Optional[datetime] = None
    feedback: Optional[Feedback] = None
    dossie_final_url: Optional[str] = None
    additional_documents: List[DocumentRef] = Field(default_factory=list)


# ============= Phase 8: Quotas =============
class QuotaTransferProcess(_Payload):
    id: str
    type: Literal["doacao", "venda"]
    donor_or_seller_id: str
    beneficiary_or_buyer_ids: List[str] = Field(default_factory=list)
    percentage: Optional[float] = None
    transaction_value: Optional[float] = None
    observations: str = ""
    drafts: List[DocumentRef] = Field(default_factory=list)
    discussion: List[ChatEntry] = Field(default_factory=list)
    approvals: Dict[str, bool] = Field(default_factory=dict)
    status: DraftStatus = "pending_draft"
    tax_guide_doc_id: Optional[str] = None
    tax_receipt_doc_id: Optional[str] = None
    tax_payment_status: Literal["pending_guide", "pending_payment", "completed", "exempt"] = "pending_guide"


class Phase8Data(_Payload):
    phase: Literal[8] = 8
    transfer_processes: List[QuotaTransferProcess] = Field(default_factory=list)


# ============= Phase 9: Acordo de Sócios =============
class Phase9Data(_Payload):
    phase: Literal[9] = 9
    drafts: List[DocumentRef] = Field(default_factory=list)
    discussion: List[ChatEntry] = Field(default_factory=list)
    status: DraftStatus = "pending_draft"
    approvals: Dict[str, bool] = Field(default_factory=dict)
    included_clauses: List[str] = Field(default_factory=list)
    consultant_observations: Optional[str] = None
    client_feedback: Optional[str] = None
    final_signed_document_id: Optional[str] = None
    signature_date: Optional[datetime] = None


# ============= Phase 10: Suporte =============
class SupportRequest(_Payload):
    id: str
    title: str
    description: str = ""
    status: Literal["open", "in-progress", "closed"] = "open"
    priority: Literal["low", "medium", "high"] = "medium"
    category: Literal["alteration", "query", "document_request", "other"] = "other"
    requester_id: str
    created_at: datetime
    messages: List[ChatEntry] = Field(default_factory=list)
    documents: List[DocumentRef] = Field(default_factory=list)
    assigned_to_id: Optional[str] = None


class Phase10Data(_Payload):
    phase: Literal[10] = 10
    requests: List[SupportRequest] = Field(default_factory=list)


PhaseData = Annotated[
    Union[
        Phase1Data, Phase2Data, Phase3Data, Phase4Data, Phase5Data,
        Phase6Data, Phase7Data, Phase8Data, Phase9Data, Phase10Data,
    ],
    Field(discriminator="phase"),
]
phase_data_adapter = TypeAdapter(PhaseData)

PHASE_DATA_MODELS = {
    1: Phase1Data,
    2: Phase2Data,
    3: Phase3Data,
    4: Phase4Data,
    5: Phase5Data,
    6: Phase6Data,
    7: Phase7Data,
    8: Phase8Data,
    9: Phase9Data,
    10: Phase10Data,
}


def load_phase_data(phase_number: int, raw: Optional[dict]):
    """Validate a stored payload as the variant for ``phase_number``."""
    if phase_number not in PHASE_DATA_MODELS:
        raise ValueError(f"Unknown phase number: {phase_number}")
    payload = dict(raw or {})
    payload["phase"] = phase_number
    return phase_data_adapter.validate_python(payload)


def dump_phase_data(data) -> dict:
    return data.model_dump(mode="json", exclude_none=True)


def initial_phase_data(phase_number: int) -> dict:
    return dump_phase_data(PHASE_DATA_MODELS[phase_number]())
