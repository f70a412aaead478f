"""
Phase 2: company data, partner table and the incorporation documents.
"""
from typing import Iterable, List, Optional

from planejar.exceptions import BusinessLogicError, ValidationError
from planejar.pipeline.phase_data import CompanyData, DocumentRef, Phase2Data, Phase2Partner
from planejar.pipeline.qualification import user_is_data_complete

DOCUMENT_SLOTS = ("contract", "cnpj")


def sync_partners(data: Phase2Data, partners: Iterable) -> None:
    """Keep the partner table aligned with the project's partner members."""
    members = {str(p.id): p for p in partners}
    kept: List[Phase2Partner] = []
    for row in data.partners:
        user = members.pop(row.user_id, None)
        if user is None:
            continue
        row.name = user.name
        row.data_status = "completed" if user_is_data_complete(user) else "pending"
        kept.append(row)
    for user_id, user in members.items():
        kept.append(Phase2Partner(
            user_id=user_id,
            name=user.name,
            data_status="completed" if user_is_data_complete(user) else "pending",
        ))
    data.partners = kept


def update_company(
    data: Phase2Data,
    company_data: Optional[dict],
    partners: Optional[list],
    actor_is_staff: bool,
) -> None:
    if data.status == "approved":
        raise BusinessLogicError("A constituição já foi aprovada")
    if not actor_is_staff and data.status != "pending_client":
        raise BusinessLogicError("Os dados estão em análise pelo consultor")
    if company_data is not None:
        merged = {**data.company_data.model_dump(), **company_data}
        data.company_data = CompanyData.model_validate(merged)
    if partners is not None:
        known = {row.user_id: row for row in data.partners}
        for item in partners:
            row = known.get(str(item.get("user_id")))
            if row is None:
                raise ValidationError("Sócio não pertence ao projeto", details={"user_id": item.get("user_id")})
            if "is_administrator" in item:
                row.is_administrator = bool(item["is_administrator"])
            if "participation" in item:
                row.participation = item["participation"]


def submit_constitution(data: Phase2Data) -> None:
    if data.status != "pending_client":
        raise BusinessLogicError("Os dados já foram enviados para análise")
    if not data.company_data.name:
        raise BusinessLogicError("Informe o nome da empresa")
    data.status = "pending_consultant_review"


def approve_constitution(data: Phase2Data) -> None:
    if data.status != "pending_consultant_review":
        raise BusinessLogicError("Os dados não estão aguardando análise")
    data.status = "approved"


def refresh_process_status(data: Phase2Data) -> None:
    attached = sum(1 for slot in DOCUMENT_SLOTS if slot in data.documents)
    if attached == len(DOCUMENT_SLOTS):
        data.process_status = "completed"
    elif attached or data.process_status == "in_progress":
        data.process_status = "in_progress"


def start_process(data: Phase2Data) -> None:
    if data.process_status != "pending_start":
        raise BusinessLogicError("O processo de registro já foi iniciado")
    data.process_status = "in_progress"


def attach_document(data: Phase2Data, slot: str, document: DocumentRef) -> None:
    if slot not in DOCUMENT_SLOTS:
        raise ValidationError(f"Documento inválido: {slot}", details={"slots": list(DOCUMENT_SLOTS)})
    data.documents[slot] = document
    refresh_process_status(data)
