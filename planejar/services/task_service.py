import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from planejar.exceptions import AuthorizationError, BusinessLogicError, NotFoundError, ValidationError
from planejar.models import Project, Task, TaskStatus, User
from planejar.rbac import can_access_project, is_staff, require_permission, require_project_access
from planejar.schemas import TaskCreate, TaskUpdate
from planejar.services.project_service import get_project_for

logger = logging.getLogger(__name__)


def _resolve_assignee(db: Session, project: Project, assignee_id: Optional[UUID], actor: User) -> User:
    """Explicit assignee, else the project's auxiliary, else whoever created the task"""
    if assignee_id is None:
        return project.auxiliary or actor
    assignee = db.query(User).filter(User.id == assignee_id).first()
    if not assignee:
        raise NotFoundError("User", str(assignee_id))
    if not can_access_project(assignee, project):
        raise ValidationError("O responsável não tem acesso ao projeto")
    return assignee


def _get_task(db: Session, task_id: UUID, user: User) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task", str(task_id))
    require_project_access(user, task.project)
    return task


def create_task(
    db: Session,
    project_id: UUID,
    data: TaskCreate,
    user: User,
    created_by_ai: bool = False,
) -> Task:
    require_permission(user, "manage_tasks", "Somente a equipe pode criar tarefas")
    project = get_project_for(db, project_id, user)
    assignee = _resolve_assignee(db, project, data.assignee_id, user)
    task = Task(
        project_id=project.id,
        phase_number=data.phase_number,
        description=data.description.strip(),
        status=TaskStatus.PENDING,
        assignee_id=assignee.id,
        assignee_role=assignee.role,
        created_by_id=user.id,
        related_document_id=data.related_document_id,
        created_by_ai=created_by_ai,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info(
        "Task created%s", " from AI suggestion" if created_by_ai else "",
        extra={"project_id": str(project.id), "phase": data.phase_number, "user_id": str(user.id)},
    )
    return task


def create_suggested_tasks(
    db: Session,
    project_id: UUID,
    phase_number: int,
    descriptions: List[str],
    related_document_id: Optional[UUID],
    user: User,
) -> List[Task]:
    """Turn AI suggestions the user confirmed into real tasks"""
    return [
        create_task(
            db, project_id,
            TaskCreate(phase_number=phase_number, description=description, related_document_id=related_document_id),
            user, created_by_ai=True,
        )
        for description in descriptions
        if description and description.strip()
    ]


def get_tasks_by_project(db: Session, project_id: UUID, user: User, phase_number: Optional[int] = None) -> List[Task]:
    project = get_project_for(db, project_id, user)
    query = db.query(Task).filter(Task.project_id == project.id)
    if phase_number is not None:
        query = query.filter(Task.phase_number == phase_number)
    return query.order_by(Task.created_at.desc()).all()


def get_pending_tasks_for(db: Session, user: User) -> List[Task]:
    return db.query(Task).filter(
        Task.assignee_id == user.id,
        Task.status == TaskStatus.PENDING,
    ).order_by(Task.created_at.desc()).all()


def complete_task(db: Session, task_id: UUID, user: User) -> Task:
    task = _get_task(db, task_id, user)
    if task.assignee_id != user.id and not is_staff(user):
        raise AuthorizationError("Somente o responsável pode concluir a tarefa")
    if task.status != TaskStatus.PENDING:
        raise BusinessLogicError("A tarefa não está pendente")
    task.status = TaskStatus.COMPLETED
    task.completed_by_id = user.id
    task.completed_at = datetime.utcnow()
    db.commit()
    db.refresh(task)
    return task


def approve_task(db: Session, task_id: UUID, user: User) -> Task:
    task = _get_task(db, task_id, user)
    require_permission(user, "manage_tasks", "Somente a equipe pode aprovar tarefas")
    if task.status != TaskStatus.COMPLETED:
        raise BusinessLogicError("Somente tarefas concluídas podem ser aprovadas")
    task.status = TaskStatus.APPROVED
    task.approved_by_id = user.id
    task.approved_at = datetime.utcnow()
    db.commit()
    db.refresh(task)
    return task


def update_task(db: Session, task_id: UUID, data: TaskUpdate, user: User) -> Task:
    task = _get_task(db, task_id, user)
    require_permission(user, "manage_tasks", "Somente a equipe pode alterar tarefas")
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("description") is not None:
        task.description = update_data["description"].strip()
    if "assignee_id" in update_data:
        assignee = _resolve_assignee(db, task.project, update_data["assignee_id"], user)
        task.assignee_id = assignee.id
        task.assignee_role = assignee.role
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task_id: UUID, user: User) -> None:
    task = _get_task(db, task_id, user)
    require_permission(user, "manage_tasks", "Somente a equipe pode excluir tarefas")
    db.delete(task)
    db.commit()
