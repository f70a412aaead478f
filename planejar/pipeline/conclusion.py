"""
Phase 7: project conclusion, client feedback and the post-completion choice.
"""
from datetime import datetime
from typing import Optional

from planejar.exceptions import BusinessLogicError, ValidationError
from planejar.models import PhaseStatus, PostCompletionStatus
from planejar.pipeline.phase_data import Feedback, Phase7Data
from planejar.pipeline.phases import CONCLUSION_PHASE, FIRST_PHASE, POST_COMPLETION_PHASES


def previous_phases_completed(project) -> bool:
    for number in range(FIRST_PHASE, CONCLUSION_PHASE):
        phase = project.get_phase(number)
        if phase is None or phase.status != PhaseStatus.COMPLETED:
            return False
    return True


def finalize(project, data: Phase7Data, observations: Optional[str]) -> None:
    if data.status == "completed":
        raise BusinessLogicError("O projeto já foi concluído")
    if not previous_phases_completed(project):
        raise BusinessLogicError("As fases 1 a 6 precisam estar concluídas")
    data.status = "completed"
    data.conclusion_date = datetime.utcnow()
    if observations is not None:
        data.consultant_observations = observations


def submit_feedback(data: Phase7Data, rating: int, comment: str = "", would_recommend: Optional[bool] = None) -> None:
    if data.status != "completed":
        raise BusinessLogicError("O projeto ainda não foi concluído")
    try:
        data.feedback = Feedback(rating=rating, comment=comment or "", would_recommend=would_recommend)
    except ValueError as exc:
        raise ValidationError("A nota deve estar entre 1 e 5") from exc


def post_completion_target(project, choice: str) -> int:
    """Phase number the chosen path leads to."""
    if project.post_completion_status != PostCompletionStatus.PENDING_CHOICE:
        raise BusinessLogicError("Não há escolha pendente para este projeto")
    if choice not in POST_COMPLETION_PHASES:
        raise ValidationError(
            "Escolha inválida",
            details={"choices": sorted(POST_COMPLETION_PHASES)},
        )
    return POST_COMPLETION_PHASES[choice]
