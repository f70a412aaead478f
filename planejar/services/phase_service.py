"""
Phase actions.

Every write goes through ``_mutate``: load the project with access checks,
refuse read-only viewers, validate the stored payload as the phase's typed
variant, run the pure workflow step from ``planejar.pipeline`` and store the
result back.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from planejar.exceptions import AuthorizationError, BusinessLogicError, NotFoundError, ValidationError
from planejar.models import ClientType, Phase, PhaseStatus, PostCompletionStatus, Project, User
from planejar.pipeline import (
    agreement, approvals, conclusion, constitution, diagnostic, handoff, integralization, quotas, support,
)
from planejar.pipeline.phase_data import dump_phase_data, load_phase_data
from planejar.pipeline.phases import CONCLUSION_PHASE, PHASE_BY_NUMBER, SUPPORT_PHASE, phase_title
from planejar.pipeline.state_machine import (
    READ_ONLY_PROJECT_STATUSES, advance_phase, enter_phase, is_read_only, log_activity,
)
from planejar.rbac import is_interested_client, is_staff, require_permission
from planejar.schemas import PhaseUpdate
from planejar.services.document_service import get_project_document, to_ref
from planejar.services.project_service import get_project_for

logger = logging.getLogger(__name__)

READ_ONLY_MESSAGE = "Fase disponível somente para leitura"


def partners_of(project: Project) -> List[User]:
    return [client for client in project.clients if client.client_type == ClientType.PARTNER]


def get_phase_for(db: Session, project_id: UUID, phase_number: int, user: User):
    if phase_number not in PHASE_BY_NUMBER:
        raise NotFoundError("Phase", str(phase_number))
    project = get_project_for(db, project_id, user)
    return project, project.get_phase(phase_number)


def store_phase_data(phase: Phase, data) -> None:
    phase.phase_data = dump_phase_data(data)
    flag_modified(phase, "phase_data")


def _check_writable(user: User, project: Project, phase: Phase, require_started: bool, allow_completed: bool) -> None:
    if allow_completed:
        if project.status in READ_ONLY_PROJECT_STATUSES or is_interested_client(user):
            raise AuthorizationError(READ_ONLY_MESSAGE)
    elif is_read_only(user, project, phase):
        raise AuthorizationError(READ_ONLY_MESSAGE)
    if require_started and phase.status == PhaseStatus.PENDING:
        raise BusinessLogicError("Esta fase ainda não foi iniciada")


def _mutate(
    db: Session,
    project_id: UUID,
    phase_number: int,
    user: User,
    mutate: Callable,
    action: Optional[str] = None,
    staff_only: bool = False,
    require_started: bool = True,
    allow_completed: bool = False,
) -> Phase:
    project, phase = get_phase_for(db, project_id, phase_number, user)
    if staff_only and not is_staff(user):
        raise AuthorizationError("Ação restrita à equipe")
    _check_writable(user, project, phase, require_started, allow_completed)

    data = load_phase_data(phase_number, phase.phase_data)
    mutate(project, data)
    store_phase_data(phase, data)
    if action:
        log_activity(db, project, user, action)
    project.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(phase)
    logger.info(
        "Phase %d updated", phase_number,
        extra={"project_id": str(project.id), "phase": phase_number, "user_id": str(user.id)},
    )
    return phase


# ============= Generic =============
# Payload keys with no workflow action behind them. Everything else in a
# phase payload (statuses, approvals, drafts, process steps, document slots)
# only changes through the phase actions below.
FREE_FIELDS = {
    1: {"consultant_checklist"},
    7: {"consultant_observations", "dossie_final_url"},
}


def update_phase(db: Session, project_id: UUID, phase_number: int, data: PhaseUpdate, user: User) -> Phase:
    project, phase = get_phase_for(db, project_id, phase_number, user)
    if is_read_only(user, project, phase):
        raise AuthorizationError(READ_ONLY_MESSAGE)

    if data.status is not None and data.status != phase.status:
        if not is_staff(user):
            raise AuthorizationError("Somente a equipe pode alterar o status da fase")
        # advance_phase and finalize keep exactly one phase in progress
        raise BusinessLogicError(
            "O status da fase muda apenas pelo avanço do projeto",
            details={"from": phase.status.value, "to": data.status.value},
        )

    if data.phase_data is not None:
        if not is_staff(user):
            raise AuthorizationError("Somente a equipe pode editar os dados da fase diretamente")
        locked = sorted(set(data.phase_data) - FREE_FIELDS.get(phase_number, set()) - {"phase"})
        if locked:
            raise ValidationError(
                "Campos controlados pelo fluxo da fase",
                details={"fields": locked, "phase": phase_number},
            )
        merged = {**(phase.phase_data or {}), **data.phase_data}
        try:
            validated = load_phase_data(phase_number, merged)
        except ValueError as exc:
            raise ValidationError("Dados da fase inválidos", details={"errors": str(exc)}) from exc
        store_phase_data(phase, validated)

    project.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(phase)
    return phase


def advance(db: Session, project_id: UUID, phase_number: int, user: User) -> Project:
    require_permission(user, "advance_phase", "Somente o consultor pode avançar fases")
    project = get_project_for(db, project_id, user)
    advance_phase(db, project.id, phase_number, actor=user)
    db.refresh(project)
    return project


# ============= Phase 1: Diagnóstico =============
def diagnostic_steps(db: Session, project_id: UUID, user: User) -> dict:
    project, phase = get_phase_for(db, project_id, 1, user)
    return diagnostic.diagnostic_steps(partners_of(project), load_phase_data(1, phase.phase_data))


def submit_diagnostic_form(db: Session, project_id: UUID, form: dict, user: User) -> Phase:
    def mutate(project, data):
        diagnostic.submit_diagnostic_form(data, form, partners_of(project), is_staff(user))
    return _mutate(db, project_id, 1, user, mutate, "preencheu o formulário de diagnóstico.")


def schedule_meeting(db: Session, project_id: UUID, when: datetime, link: Optional[str], user: User) -> Phase:
    def mutate(project, data):
        diagnostic.schedule_meeting(data, when, link)
    return _mutate(db, project_id, 1, user, mutate, "agendou a reunião de diagnóstico.", staff_only=True)


def record_minutes(db: Session, project_id: UUID, minutes: str, checklist: Optional[dict], user: User) -> Phase:
    def mutate(project, data):
        diagnostic.record_minutes(data, minutes, checklist)
    return _mutate(db, project_id, 1, user, mutate, "registrou a ata da reunião.", staff_only=True)


def store_analysis(db: Session, project: Project, document_id: str, result) -> None:
    """Keep the AI analysis of a phase 1 document on the phase payload"""
    phase = project.get_phase(1)
    data = load_phase_data(1, phase.phase_data)
    data.ai_analysis_result = result
    data.analyzed_document_id = document_id
    store_phase_data(phase, data)
    db.commit()


# ============= Phase 2: Constituição =============
def update_company(db: Session, project_id: UUID, company_data, partners, user: User) -> Phase:
    def mutate(project, data):
        constitution.sync_partners(data, partners_of(project))
        constitution.update_company(data, company_data, partners, is_staff(user))
    return _mutate(db, project_id, 2, user, mutate)


def submit_constitution(db: Session, project_id: UUID, user: User) -> Phase:
    def mutate(project, data):
        constitution.sync_partners(data, partners_of(project))
        constitution.submit_constitution(data)
    return _mutate(db, project_id, 2, user, mutate, "enviou os dados da holding para análise.")


def approve_constitution(db: Session, project_id: UUID, user: User) -> Phase:
    def mutate(project, data):
        constitution.approve_constitution(data)
    return _mutate(db, project_id, 2, user, mutate, "aprovou os dados da holding.", staff_only=True)


def start_constitution_process(db: Session, project_id: UUID, user: User) -> Phase:
    def mutate(project, data):
        constitution.start_process(data)
    return _mutate(db, project_id, 2, user, mutate, "iniciou o registro da holding.", staff_only=True)


def attach_constitution_document(db: Session, project_id: UUID, slot: str, document_id, user: User) -> Phase:
    def mutate(project, data):
        document = get_project_document(db, project, document_id, 2)
        constitution.attach_document(data, slot, to_ref(document))
    return _mutate(db, project_id, 2, user, mutate, f"anexou o documento {slot} da holding.", staff_only=True)


# ============= Phase 3: Integralização =============
def add_asset(db: Session, project_id: UUID, payload: dict, user: User) -> Phase:
    def mutate(project, data):
        integralization.add_asset(data, payload, str(user.id), is_staff(user))
    return _mutate(db, project_id, 3, user, mutate)


def update_asset(db: Session, project_id: UUID, asset_id: str, changes: dict, user: User) -> Phase:
    def mutate(project, data):
        integralization.update_asset(data, asset_id, changes, is_staff(user))
    return _mutate(db, project_id, 3, user, mutate)


def remove_asset(db: Session, project_id: UUID, asset_id: str, user: User) -> Phase:
    def mutate(project, data):
        integralization.remove_asset(data, asset_id, is_staff(user))
    return _mutate(db, project_id, 3, user, mutate)


def submit_assets(db: Session, project_id: UUID, user: User) -> Phase:
    def mutate(project, data):
        integralization.submit_assets(data)
    return _mutate(db, project_id, 3, user, mutate, "enviou os bens para análise.")


def approve_assets(db: Session, project_id: UUID, user: User) -> Phase:
    def mutate(project, data):
        integralization.approve_assets(data)
    return _mutate(db, project_id, 3, user, mutate, "aprovou os bens para integralização.", staff_only=True)


def request_asset_corrections(db: Session, project_id: UUID, user: User) -> Phase:
    def mutate(project, data):
        integralization.request_corrections(data)
    return _mutate(db, project_id, 3, user, mutate, "solicitou correções nos bens.", staff_only=True)


# ============= Phases 4 and 9: minuta / acordo de sócios =============
def add_draft(db: Session, project_id: UUID, phase_number: int, document_id, user: User) -> Phase:
    _check_review_phase(phase_number)

    def mutate(project, data):
        document = get_project_document(db, project, document_id, phase_number)
        approvals.add_draft(data, to_ref(document))
    return _mutate(db, project_id, phase_number, user, mutate, "enviou uma nova versão da minuta.", staff_only=True)


def approve_draft(db: Session, project_id: UUID, phase_number: int, user: User) -> Phase:
    _check_review_phase(phase_number)

    def mutate(project, data):
        approvals.record_approval(data, str(user.id), approvals.partner_ids_of(project))
    return _mutate(db, project_id, phase_number, user, mutate, "aprovou a minuta.")


def close_review(db: Session, project_id: UUID, phase_number: int, user: User) -> Phase:
    _check_review_phase(phase_number)

    def mutate(project, data):
        approvals.close_review(data, approvals.partner_ids_of(project))
    return _mutate(db, project_id, phase_number, user, mutate, "encerrou a revisão da minuta.", staff_only=True)


def add_discussion_message(db: Session, project_id: UUID, phase_number: int, content: str, user: User) -> Phase:
    _check_review_phase(phase_number)

    def mutate(project, data):
        approvals.add_discussion_message(data, user, content)
    return _mutate(db, project_id, phase_number, user, mutate)


def _check_review_phase(phase_number: int) -> None:
    if phase_number not in (4, 9):
        raise NotFoundError("Review phase", str(phase_number))


# ============= Phase 5: ITBI =============
def update_itbi_process(db: Session, project_id: UUID, property_id: str, changes: dict, user: User) -> Phase:
    def mutate(project, data):
        process = handoff.find_itbi_process(data, property_id)
        if "process_type" in changes and process.status != "pending_guide":
            raise BusinessLogicError("O tipo do processo não pode mais ser alterado")
        for key, value in changes.items():
            setattr(process, key, value)
    return _mutate(db, project_id, 5, user, mutate, staff_only=True)


def attach_itbi_document(db: Session, project_id: UUID, property_id: str, slot: str, document_id, user: User) -> Phase:
    def mutate(project, data):
        process = handoff.find_itbi_process(data, property_id)
        document = get_project_document(db, project, document_id, 5)
        handoff.attach_itbi_document(process, slot, str(document.id), is_staff(user))
    return _mutate(db, project_id, 5, user, mutate, "anexou um documento do ITBI.")


def approve_itbi_exemption(db: Session, project_id: UUID, property_id: str, user: User) -> Phase:
    def mutate(project, data):
        handoff.approve_exemption(handoff.find_itbi_process(data, property_id))
    return _mutate(db, project_id, 5, user, mutate, "registrou o deferimento da isenção de ITBI.", staff_only=True)


# ============= Phase 6: Registro =============
def update_registration_process(db: Session, project_id: UUID, property_id: str, changes: dict, user: User) -> Phase:
    def mutate(project, data):
        process = handoff.find_registration_process(data, property_id)
        for key, value in changes.items():
            setattr(process, key, value)
    return _mutate(db, project_id, 6, user, mutate, staff_only=True)


def attach_registration_document(db: Session, project_id: UUID, property_id: str, slot: str, document_id, user: User) -> Phase:
    def mutate(project, data):
        process = handoff.find_registration_process(data, property_id)
        document = get_project_document(db, project, document_id, 6)
        handoff.REGISTRATION_RELAY.attach(process, slot, str(document.id), is_staff(user))
    return _mutate(db, project_id, 6, user, mutate, "anexou um documento do registro.")


# ============= Phase 7: Conclusão =============
def finalize_project(db: Session, project_id: UUID, observations: Optional[str], user: User) -> Project:
    require_permission(user, "finalize_project", "Somente o consultor pode concluir o projeto")

    def mutate(project, data):
        conclusion.finalize(project, data, observations)
        project.get_phase(CONCLUSION_PHASE).status = PhaseStatus.COMPLETED
        project.post_completion_status = PostCompletionStatus.PENDING_CHOICE

    phase = _mutate(db, project_id, CONCLUSION_PHASE, user, mutate, "concluiu o projeto.")
    return phase.project


def submit_feedback(db: Session, project_id: UUID, rating: int, comment: str, would_recommend, user: User) -> Phase:
    def mutate(project, data):
        conclusion.submit_feedback(data, rating, comment, would_recommend)
    return _mutate(
        db, project_id, CONCLUSION_PHASE, user, mutate, "enviou a avaliação do projeto.", allow_completed=True
    )


def attach_conclusion_document(db: Session, project_id: UUID, document_id, user: User) -> Phase:
    def mutate(project, data):
        document = get_project_document(db, project, document_id, CONCLUSION_PHASE)
        data.additional_documents.append(to_ref(document))
    return _mutate(db, project_id, CONCLUSION_PHASE, user, mutate, staff_only=True)


def choose_post_completion(db: Session, project_id: UUID, choice: str, user: User) -> Project:
    project = get_project_for(db, project_id, user)
    if project.status in READ_ONLY_PROJECT_STATUSES or is_interested_client(user):
        raise AuthorizationError(READ_ONLY_MESSAGE)
    target = conclusion.post_completion_target(project, choice)
    project.post_completion_status = PostCompletionStatus.IN_PROGRESS
    enter_phase(project, target)
    log_activity(db, project, user, f"escolheu seguir para a Fase {target}: {phase_title(target)}.")
    project.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(project)
    return project


# ============= Phase 8: Transferência de Quotas =============
def create_transfer(db: Session, project_id: UUID, payload: dict, user: User) -> Phase:
    def mutate(project, data):
        quotas.create_transfer(data, payload, approvals.partner_ids_of(project))
    return _mutate(db, project_id, 8, user, mutate, "criou uma transferência de quotas.", staff_only=True)


def update_transfer(db: Session, project_id: UUID, transfer_id: str, changes: dict, user: User) -> Phase:
    def mutate(project, data):
        quotas.update_transfer(quotas.find_transfer(data, transfer_id), changes)
    return _mutate(db, project_id, 8, user, mutate, staff_only=True)


def add_transfer_draft(db: Session, project_id: UUID, transfer_id: str, document_id, user: User) -> Phase:
    def mutate(project, data):
        document = get_project_document(db, project, document_id, 8)
        approvals.add_draft(quotas.find_transfer(data, transfer_id), to_ref(document))
    return _mutate(db, project_id, 8, user, mutate, "enviou a minuta da transferência.", staff_only=True)


def approve_transfer(db: Session, project_id: UUID, transfer_id: str, user: User) -> Phase:
    def mutate(project, data):
        quotas.approve_transfer(quotas.find_transfer(data, transfer_id), str(user.id), approvals.partner_ids_of(project))
    return _mutate(db, project_id, 8, user, mutate, "aprovou a minuta da transferência.")


def add_transfer_message(db: Session, project_id: UUID, transfer_id: str, content: str, user: User) -> Phase:
    def mutate(project, data):
        approvals.add_discussion_message(quotas.find_transfer(data, transfer_id), user, content)
    return _mutate(db, project_id, 8, user, mutate)


def attach_tax_document(db: Session, project_id: UUID, transfer_id: str, slot: str, document_id, user: User) -> Phase:
    def mutate(project, data):
        transfer = quotas.find_transfer(data, transfer_id)
        document = get_project_document(db, project, document_id, 8)
        handoff.attach_tax_document(transfer, slot, str(document.id), is_staff(user))
    return _mutate(db, project_id, 8, user, mutate, "anexou um documento do ITCD.")


def mark_tax_exempt(db: Session, project_id: UUID, transfer_id: str, user: User) -> Phase:
    def mutate(project, data):
        handoff.mark_tax_exempt(quotas.find_transfer(data, transfer_id))
    return _mutate(db, project_id, 8, user, mutate, staff_only=True)


# ============= Phase 9: Acordo de Sócios =============
def update_agreement_terms(db: Session, project_id: UUID, clauses, observations, user: User) -> Phase:
    def mutate(project, data):
        agreement.update_terms(data, clauses, observations)
    return _mutate(db, project_id, 9, user, mutate, staff_only=True)


def set_agreement_feedback(db: Session, project_id: UUID, feedback: str, user: User) -> Phase:
    def mutate(project, data):
        agreement.set_client_feedback(data, feedback)
    return _mutate(db, project_id, 9, user, mutate)


def register_signed_agreement(db: Session, project_id: UUID, document_id, user: User) -> Phase:
    def mutate(project, data):
        document = get_project_document(db, project, document_id, 9)
        agreement.register_signed_agreement(data, str(document.id))
    return _mutate(db, project_id, 9, user, mutate, "registrou o acordo de sócios assinado.", staff_only=True)


# ============= Phase 10: Suporte =============
def _support(db, project_id, user, mutate, action=None, staff_only=False) -> Phase:
    def guarded(project, data):
        if not support.is_available(project):
            raise BusinessLogicError("O suporte fica disponível após a conclusão do projeto")
        mutate(project, data)
    # Tickets stay open regardless of where the post-completion phases are
    return _mutate(
        db, project_id, SUPPORT_PHASE, user, guarded, action,
        staff_only=staff_only, require_started=False, allow_completed=True,
    )


def open_support_request(db: Session, project_id: UUID, payload: dict, user: User) -> Phase:
    def mutate(project, data):
        support.open_request(
            data, str(user.id), payload["title"], payload.get("description") or "",
            payload.get("category"), payload.get("priority"),
        )
    return _support(db, project_id, user, mutate, "abriu uma solicitação de suporte.")


def update_support_request(db: Session, project_id: UUID, request_id: str, changes: dict, user: User) -> Phase:
    def mutate(project, data):
        support.update_request(support.find_request(data, request_id), changes)
    return _support(db, project_id, user, mutate, staff_only=True)


def add_support_message(db: Session, project_id: UUID, request_id: str, content: str, user: User) -> Phase:
    def mutate(project, data):
        support.add_request_message(support.find_request(data, request_id), user, content)
    return _support(db, project_id, user, mutate)


def attach_support_document(db: Session, project_id: UUID, request_id: str, document_id, user: User) -> Phase:
    def mutate(project, data):
        document = get_project_document(db, project, document_id, SUPPORT_PHASE)
        support.attach_request_document(support.find_request(data, request_id), to_ref(document))
    return _support(db, project_id, user, mutate)
