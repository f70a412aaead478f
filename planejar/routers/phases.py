from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session
from typing import Any, Dict
from uuid import UUID

from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.models import User
from planejar.schemas import (
    AgreementTermsUpdate, ChatMessageCreate, ClientFeedbackRequest, CompanyUpdateRequest, DiagnosticFormRequest,
    DocumentAttach, FeedbackRequest, FinalizeRequest, ITBIProcessUpdate, MeetingRequest, MinutesRequest,
    PhaseResponse, PhaseUpdate, ProjectResponse, RegistrationProcessUpdate, SlotDocumentAttach,
    SupportRequestCreate, SupportRequestUpdate, TransferCreate, TransferUpdate,
)
from planejar.services import phase_service

router = APIRouter(prefix="/projects/{project_id}/phases", tags=["phases"])

PhaseNumber = Path(..., ge=1, le=10)
ReviewPhase = Path(..., ge=4, le=9, description="4 (minuta) or 9 (acordo de sócios)")


@router.get("/{phase_number}", response_model=PhaseResponse)
def get_phase(
    project_id: UUID,
    phase_number: int = PhaseNumber,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    _, phase = phase_service.get_phase_for(db, project_id, phase_number, current_user)
    return phase


@router.put("/{phase_number}", response_model=PhaseResponse)
def update_phase(
    project_id: UUID,
    data: PhaseUpdate,
    phase_number: int = PhaseNumber,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Partial update of a phase.
    - status: staff only, forward transitions only
    - phase_data: merged into the stored payload and validated for the phase
    """
    return phase_service.update_phase(db, project_id, phase_number, data, current_user)


# ============= Phase 1 =============
@router.get("/1/steps", response_model=Dict[str, bool])
def diagnostic_steps(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.diagnostic_steps(db, project_id, current_user)


@router.post("/1/diagnostic-form", response_model=PhaseResponse)
def submit_diagnostic_form(
    project_id: UUID,
    data: DiagnosticFormRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.submit_diagnostic_form(db, project_id, data.model_dump(exclude_unset=True), current_user)


@router.post("/1/meeting", response_model=PhaseResponse)
def schedule_meeting(
    project_id: UUID,
    data: MeetingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.schedule_meeting(db, project_id, data.meeting_date_time, data.meeting_link, current_user)


@router.post("/1/minutes", response_model=PhaseResponse)
def record_minutes(
    project_id: UUID,
    data: MinutesRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.record_minutes(
        db, project_id, data.meeting_minutes, data.consultant_checklist, current_user
    )


# ============= Phase 2 =============
@router.put("/2/company", response_model=PhaseResponse)
def update_company(
    project_id: UUID,
    data: CompanyUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_company(db, project_id, data.company_data, data.partners, current_user)


@router.post("/2/submit", response_model=PhaseResponse)
def submit_constitution(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.submit_constitution(db, project_id, current_user)


@router.post("/2/approve", response_model=PhaseResponse)
def approve_constitution(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.approve_constitution(db, project_id, current_user)


@router.post("/2/start-process", response_model=PhaseResponse)
def start_constitution_process(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.start_constitution_process(db, project_id, current_user)


@router.post("/2/documents", response_model=PhaseResponse)
def attach_constitution_document(
    project_id: UUID,
    data: SlotDocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Attach the contract or CNPJ card (slot ``contract`` or ``cnpj``)"""
    return phase_service.attach_constitution_document(db, project_id, data.slot, data.document_id, current_user)


# ============= Phase 3 =============
@router.post("/3/assets", response_model=PhaseResponse, status_code=status.HTTP_201_CREATED)
def add_asset(
    project_id: UUID,
    data: Dict[str, Any],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.add_asset(db, project_id, data, current_user)


@router.put("/3/assets/{asset_id}", response_model=PhaseResponse)
def update_asset(
    project_id: UUID,
    asset_id: str,
    data: Dict[str, Any],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_asset(db, project_id, asset_id, data, current_user)


@router.delete("/3/assets/{asset_id}", response_model=PhaseResponse)
def remove_asset(
    project_id: UUID,
    asset_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.remove_asset(db, project_id, asset_id, current_user)


@router.post("/3/submit", response_model=PhaseResponse)
def submit_assets(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.submit_assets(db, project_id, current_user)


@router.post("/3/approve", response_model=PhaseResponse)
def approve_assets(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.approve_assets(db, project_id, current_user)


@router.post("/3/request-corrections", response_model=PhaseResponse)
def request_asset_corrections(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.request_asset_corrections(db, project_id, current_user)


# ============= Phases 4 and 9: draft review =============
@router.post("/{phase_number}/drafts", response_model=PhaseResponse)
def add_draft(
    project_id: UUID,
    data: DocumentAttach,
    phase_number: int = ReviewPhase,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.add_draft(db, project_id, phase_number, data.document_id, current_user)


@router.post("/{phase_number}/approve-draft", response_model=PhaseResponse)
def approve_draft(
    project_id: UUID,
    phase_number: int = ReviewPhase,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Record the current partner's approval"""
    return phase_service.approve_draft(db, project_id, phase_number, current_user)


@router.post("/{phase_number}/close-review", response_model=PhaseResponse)
def close_review(
    project_id: UUID,
    phase_number: int = ReviewPhase,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.close_review(db, project_id, phase_number, current_user)


@router.post("/{phase_number}/discussion", response_model=PhaseResponse)
def add_discussion_message(
    project_id: UUID,
    data: ChatMessageCreate,
    phase_number: int = ReviewPhase,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.add_discussion_message(db, project_id, phase_number, data.content, current_user)


# ============= Phase 5 =============
@router.put("/5/processes/{property_id}", response_model=PhaseResponse)
def update_itbi_process(
    project_id: UUID,
    property_id: str,
    data: ITBIProcessUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_itbi_process(
        db, project_id, property_id, data.model_dump(exclude_unset=True), current_user
    )


@router.post("/5/processes/{property_id}/documents", response_model=PhaseResponse)
def attach_itbi_document(
    project_id: UUID,
    property_id: str,
    data: SlotDocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Slots: ``guide`` (staff) then ``receipt`` (client)"""
    return phase_service.attach_itbi_document(
        db, project_id, property_id, data.slot, data.document_id, current_user
    )


@router.post("/5/processes/{property_id}/approve-exemption", response_model=PhaseResponse)
def approve_itbi_exemption(
    project_id: UUID,
    property_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.approve_itbi_exemption(db, project_id, property_id, current_user)


# ============= Phase 6 =============
@router.put("/6/processes/{property_id}", response_model=PhaseResponse)
def update_registration_process(
    project_id: UUID,
    property_id: str,
    data: RegistrationProcessUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_registration_process(
        db, project_id, property_id, data.model_dump(exclude_unset=True), current_user
    )


@router.post("/6/processes/{property_id}/documents", response_model=PhaseResponse)
def attach_registration_document(
    project_id: UUID,
    property_id: str,
    data: SlotDocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Slots: ``fee_guide`` (staff), ``fee_receipt`` (client), ``certificate`` (staff)"""
    return phase_service.attach_registration_document(
        db, project_id, property_id, data.slot, data.document_id, current_user
    )


# ============= Phase 7 =============
@router.post("/7/finalize", response_model=ProjectResponse)
def finalize_project(
    project_id: UUID,
    data: FinalizeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.finalize_project(db, project_id, data.consultant_observations, current_user)


@router.post("/7/feedback", response_model=PhaseResponse)
def submit_feedback(
    project_id: UUID,
    data: FeedbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.submit_feedback(
        db, project_id, data.rating, data.comment, data.would_recommend, current_user
    )


@router.post("/7/documents", response_model=PhaseResponse)
def attach_conclusion_document(
    project_id: UUID,
    data: DocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.attach_conclusion_document(db, project_id, data.document_id, current_user)


# ============= Phase 8 =============
@router.post("/8/transfers", response_model=PhaseResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    project_id: UUID,
    data: TransferCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.create_transfer(db, project_id, data.model_dump(mode="json"), current_user)


@router.put("/8/transfers/{transfer_id}", response_model=PhaseResponse)
def update_transfer(
    project_id: UUID,
    transfer_id: str,
    data: TransferUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_transfer(
        db, project_id, transfer_id, data.model_dump(exclude_unset=True), current_user
    )


@router.post("/8/transfers/{transfer_id}/drafts", response_model=PhaseResponse)
def add_transfer_draft(
    project_id: UUID,
    transfer_id: str,
    data: DocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.add_transfer_draft(db, project_id, transfer_id, data.document_id, current_user)


@router.post("/8/transfers/{transfer_id}/approve", response_model=PhaseResponse)
def approve_transfer(
    project_id: UUID,
    transfer_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Partner approval; the transfer is approved once every partner agreed"""
    return phase_service.approve_transfer(db, project_id, transfer_id, current_user)


@router.post("/8/transfers/{transfer_id}/discussion", response_model=PhaseResponse)
def add_transfer_message(
    project_id: UUID,
    transfer_id: str,
    data: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.add_transfer_message(db, project_id, transfer_id, data.content, current_user)


@router.post("/8/transfers/{transfer_id}/tax-documents", response_model=PhaseResponse)
def attach_tax_document(
    project_id: UUID,
    transfer_id: str,
    data: SlotDocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Slots: ``guide`` (staff) then ``receipt`` (client)"""
    return phase_service.attach_tax_document(
        db, project_id, transfer_id, data.slot, data.document_id, current_user
    )


@router.post("/8/transfers/{transfer_id}/tax-exempt", response_model=PhaseResponse)
def mark_tax_exempt(
    project_id: UUID,
    transfer_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.mark_tax_exempt(db, project_id, transfer_id, current_user)


# ============= Phase 9 =============
@router.put("/9/terms", response_model=PhaseResponse)
def update_agreement_terms(
    project_id: UUID,
    data: AgreementTermsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_agreement_terms(
        db, project_id, data.included_clauses, data.consultant_observations, current_user
    )


@router.post("/9/client-feedback", response_model=PhaseResponse)
def set_agreement_feedback(
    project_id: UUID,
    data: ClientFeedbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.set_agreement_feedback(db, project_id, data.client_feedback, current_user)


@router.post("/9/signed", response_model=PhaseResponse)
def register_signed_agreement(
    project_id: UUID,
    data: DocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.register_signed_agreement(db, project_id, data.document_id, current_user)


# ============= Phase 10 =============
@router.post("/10/requests", response_model=PhaseResponse, status_code=status.HTTP_201_CREATED)
def open_support_request(
    project_id: UUID,
    data: SupportRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.open_support_request(db, project_id, data.model_dump(), current_user)


@router.put("/10/requests/{request_id}", response_model=PhaseResponse)
def update_support_request(
    project_id: UUID,
    request_id: str,
    data: SupportRequestUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.update_support_request(
        db, project_id, request_id, data.model_dump(exclude_unset=True), current_user
    )


@router.post("/10/requests/{request_id}/messages", response_model=PhaseResponse)
def add_support_message(
    project_id: UUID,
    request_id: str,
    data: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.add_support_message(db, project_id, request_id, data.content, current_user)


@router.post("/10/requests/{request_id}/documents", response_model=PhaseResponse)
def attach_support_document(
    project_id: UUID,
    request_id: str,
    data: DocumentAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.attach_support_document(db, project_id, request_id, data.document_id, current_user)
