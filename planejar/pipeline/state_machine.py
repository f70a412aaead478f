"""
Single source of truth for phase order and phase status transitions.
All phase advancement must go through advance_phase().
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from planejar.models import (
    ActivityLogEntry,
    Phase,
    PhaseStatus,
    PostCompletionStatus,
    Project,
    ProjectStatus,
)
from planejar.pipeline import handoff
from planejar.pipeline.phase_data import dump_phase_data, initial_phase_data, load_phase_data
from planejar.pipeline.phases import (
    CONCLUSION_PHASE,
    FIRST_PHASE,
    LAST_PHASE,
    PHASES,
    SUPPORT_PHASE,
    phase_title,
)
from planejar.rbac import is_interested_client, is_staff

logger = logging.getLogger(__name__)

PHASE_ORDER: List[int] = [p["number"] for p in PHASES]

# Outer status moves forward only; awaiting-approval is never entered
VALID_NEXT: Dict[PhaseStatus, List[PhaseStatus]] = {
    PhaseStatus.PENDING: [PhaseStatus.IN_PROGRESS],
    PhaseStatus.IN_PROGRESS: [PhaseStatus.COMPLETED],
    PhaseStatus.AWAITING_APPROVAL: [PhaseStatus.COMPLETED],
    PhaseStatus.COMPLETED: [],
}

READ_ONLY_PROJECT_STATUSES = (ProjectStatus.COMPLETED, ProjectStatus.ARCHIVED)


def get_next_phase(phase_number: int) -> Optional[int]:
    if phase_number not in PHASE_ORDER:
        return None
    index = PHASE_ORDER.index(phase_number)
    return PHASE_ORDER[index + 1] if index + 1 < len(PHASE_ORDER) else None


def can_transition(from_status: PhaseStatus, to_status: PhaseStatus) -> bool:
    return to_status in VALID_NEXT.get(from_status, [])


def can_advance(project: Project, phase_number: int) -> bool:
    """Only the current phase advances, and never past the last phase."""
    if project.current_phase_id != phase_number:
        return False
    if phase_number == CONCLUSION_PHASE:
        return False
    return phase_number < LAST_PHASE


def build_phases() -> List[Phase]:
    """The ten phases of a new project: phase 1 in progress, the rest pending."""
    return [
        Phase(
            phase_number=p["number"],
            title=p["title"],
            description=p["description"],
            status=PhaseStatus.IN_PROGRESS if p["number"] == FIRST_PHASE else PhaseStatus.PENDING,
            phase_data=initial_phase_data(p["number"]),
        )
        for p in PHASES
    ]


def is_read_only(viewer, project: Project, phase: Phase) -> bool:
    """Whether ``viewer`` may only look at ``phase``."""
    if project.status in READ_ONLY_PROJECT_STATUSES:
        return True
    if is_interested_client(viewer):
        return True
    return phase.status == PhaseStatus.COMPLETED and not is_staff(viewer)


def log_activity(db: Session, project: Project, actor, action: str) -> ActivityLogEntry:
    entry = ActivityLogEntry(
        project_id=project.id,
        actor_id=actor.id if actor is not None else None,
        actor_name=actor.name if actor is not None else "Sistema",
        action=action,
        created_at=datetime.utcnow(),
    )
    db.add(entry)
    return entry


def _seed_property_processes(project: Project, entering: int) -> None:
    """Phases 5 and 6 carry one sub-process per property declared in phase 3."""
    phase3 = project.get_phase(3)
    target = project.get_phase(entering)
    if phase3 is None or target is None:
        return
    properties = load_phase_data(3, phase3.phase_data).properties()
    data = load_phase_data(entering, target.phase_data)
    if entering == 5:
        handoff.sync_itbi_processes(data, properties)
    else:
        handoff.sync_registration_processes(data, properties)
    target.phase_data = dump_phase_data(data)
    flag_modified(target, "phase_data")


def enter_phase(project: Project, phase_number: int) -> None:
    """Make ``phase_number`` the current, in-progress phase."""
    phase = project.get_phase(phase_number)
    if phase.status == PhaseStatus.PENDING:
        phase.status = PhaseStatus.IN_PROGRESS
    project.current_phase_id = phase_number
    if phase_number in (5, 6):
        _seed_property_processes(project, phase_number)
    if phase_number == SUPPORT_PHASE and project.post_completion_status == PostCompletionStatus.IN_PROGRESS:
        project.post_completion_status = PostCompletionStatus.COMPLETED


def advance_phase(
    db: Session,
    project_id: UUID,
    phase_number: int,
    actor=None,
) -> bool:
    """
    Complete ``phase_number`` and start the next one.

    Returns True if the transition was applied, False if it was a no-op
    (the phase is not the project's current phase, e.g. a repeated click).
    """
    project = db.query(Project).filter(Project.id == project_id).with_for_update().first()
    if not project:
        logger.warning("advance_phase: project not found %s", project_id)
        return False

    if not can_advance(project, phase_number):
        logger.warning(
            "advance_phase: ignored project=%s current=%s requested=%s",
            project_id, project.current_phase_id, phase_number,
        )
        return False

    current = project.get_phase(phase_number)
    next_number = get_next_phase(phase_number)
    current.status = PhaseStatus.COMPLETED
    enter_phase(project, next_number)
    project.updated_at = datetime.utcnow()

    log_activity(db, project, actor, f"concluiu e avançou a Fase {phase_number}.")
    db.commit()
    logger.info(
        "advance_phase: project=%s %s -> %s (%s)",
        project_id, phase_number, next_number, phase_title(next_number),
        extra={"project_id": str(project_id), "phase": next_number},
    )
    return True
