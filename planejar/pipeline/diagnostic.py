"""
Phase 1: diagnostic form, kickoff meeting and meeting minutes.

The four steps are sequential: partner data verified, form completed,
meeting scheduled, minutes recorded.
"""
from datetime import datetime
from typing import Dict, Iterable, Optional

from planejar.exceptions import BusinessLogicError
from planejar.pipeline.phase_data import Phase1Data
from planejar.pipeline.qualification import user_is_data_complete

FORM_FIELDS = (
    "diagnostic_summary",
    "objective",
    "family_composition",
    "main_assets",
    "partners",
    "existing_companies",
)


def pending_partners(partners: Iterable) -> list:
    return [p for p in partners if not user_is_data_complete(p)]


def diagnostic_steps(partners: Iterable, data: Phase1Data) -> Dict[str, bool]:
    return {
        "data_verified": not pending_partners(partners),
        "form_completed": data.is_form_completed,
        "meeting_scheduled": data.meeting_scheduled,
        "minutes_recorded": bool(data.meeting_minutes),
    }


def submit_diagnostic_form(data: Phase1Data, form: Dict, partners: Iterable, actor_is_staff: bool) -> None:
    if not actor_is_staff:
        pending = pending_partners(partners)
        if pending:
            raise BusinessLogicError(
                "Todos os sócios precisam completar seus dados de qualificação antes do formulário",
                details={"pending_partner_ids": [str(p.id) for p in pending]},
            )
    for field in FORM_FIELDS:
        if form.get(field) is not None:
            setattr(data, field, form[field])
    data.is_form_completed = True


def schedule_meeting(data: Phase1Data, when: datetime, link: Optional[str]) -> None:
    if not data.is_form_completed:
        raise BusinessLogicError("O formulário de diagnóstico ainda não foi preenchido")
    data.meeting_date_time = when
    data.meeting_link = link
    data.meeting_scheduled = True


def record_minutes(data: Phase1Data, minutes: str, checklist: Optional[Dict[str, bool]] = None) -> None:
    if not data.meeting_scheduled:
        raise BusinessLogicError("A reunião ainda não foi agendada")
    data.meeting_minutes = minutes
    if checklist:
        data.consultant_checklist.update(checklist)
