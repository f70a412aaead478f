"""
Project lifecycle and membership.

Creating a project also provisions its client accounts: every client email
that does not exist yet becomes a client user with the provisional password
and a forced password change on first login.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from planejar.auth import get_password_hash
from planejar.config import settings
from planejar.exceptions import (
    AuthorizationError, BusinessLogicError, ConflictError, NotFoundError, ValidationError,
)
from planejar.models import (
    PhaseStatus, Project, ProjectStatus, Role, User, project_clients,
)
from planejar.pipeline.phases import CONCLUSION_PHASE, phase_title
from planejar.pipeline.state_machine import build_phases, enter_phase, log_activity
from planejar.rbac import require_permission, require_project_access
from planejar.schemas import ClientAddRequest, NewClientData, ProjectCreate, ProjectUpdate
from planejar.services.email_service import send_welcome_email
from planejar.services.storage import get_storage_backend

logger = logging.getLogger(__name__)


def get_project(db: Session, project_id: UUID) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project", str(project_id))
    return project


def get_project_for(db: Session, project_id: UUID, user: User) -> Project:
    return require_project_access(user, get_project(db, project_id))


def list_projects_for(db: Session, user: User) -> List[Project]:
    """Admin sees everything, staff their own projects, clients the ones they belong to"""
    query = db.query(Project)
    if user.role == Role.CONSULTANT:
        query = query.filter(Project.consultant_id == user.id)
    elif user.role == Role.AUXILIARY:
        query = query.filter(Project.auxiliary_id == user.id)
    elif user.role == Role.CLIENT:
        query = query.join(project_clients, project_clients.c.project_id == Project.id).filter(
            project_clients.c.user_id == user.id
        )
    return query.order_by(Project.updated_at.desc()).all()


def _staff_user(db: Session, user_id: Optional[UUID], roles, label: str) -> Optional[User]:
    if user_id is None:
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User", str(user_id))
    if user.role not in roles:
        raise ValidationError(f"{label} inválido", details={"user_id": str(user_id)})
    return user


def _get_or_create_client(db: Session, data: NewClientData, created: List[User]) -> User:
    email = data.email.lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        if user.role != Role.CLIENT:
            raise ConflictError(f"O e-mail {email} pertence a um membro da equipe")
        return user
    user = User(
        name=data.name.strip(),
        email=email,
        password_hash=get_password_hash(settings.DEFAULT_CLIENT_PASSWORD),
        role=Role.CLIENT,
        client_type=data.client_type,
        requires_password_change=True,
        qualification_data={},
    )
    db.add(user)
    db.flush()
    created.append(user)
    return user


def create_project(db: Session, data: ProjectCreate, actor: User) -> Project:
    require_permission(actor, "manage_projects", "Somente consultores podem criar projetos")

    consultant_id = actor.id
    if data.consultant_id and actor.role == Role.ADMINISTRATOR:
        consultant_id = _staff_user(
            db, data.consultant_id, (Role.CONSULTANT, Role.ADMINISTRATOR), "Consultor"
        ).id
    _staff_user(db, data.auxiliary_id, (Role.AUXILIARY,), "Auxiliar")

    created: List[User] = []
    clients: List[User] = []
    for client_data in [data.main_client, *data.additional_clients]:
        user = _get_or_create_client(db, client_data, created)
        if user not in clients:
            clients.append(user)

    project = Project(
        name=data.name,
        status=ProjectStatus.IN_PROGRESS,
        current_phase_id=1,
        consultant_id=consultant_id,
        auxiliary_id=data.auxiliary_id,
    )
    project.phases = build_phases()
    db.add(project)
    db.flush()
    # one insert per client keeps the main client first in client_ids
    linked_at = datetime.utcnow()
    for position, user in enumerate(clients):
        db.execute(project_clients.insert().values(
            project_id=project.id, user_id=user.id, created_at=linked_at + timedelta(microseconds=position)
        ))
    log_activity(db, project, actor, "criou o projeto.")
    db.commit()
    db.refresh(project)

    for user in created:
        send_welcome_email(user.email, user.name, project.name, settings.DEFAULT_CLIENT_PASSWORD)

    logger.info(
        "Project created with %d clients (%d new)", len(clients), len(created),
        extra={"project_id": str(project.id), "user_id": str(actor.id)},
    )
    return project


def update_project(db: Session, project_id: UUID, data: ProjectUpdate, actor: User) -> Project:
    require_permission(actor, "manage_projects", "Somente consultores podem alterar o projeto")
    project = get_project_for(db, project_id, actor)
    changes = data.model_dump(exclude_unset=True)

    new_phase = changes.pop("current_phase_id", None)
    if "auxiliary_id" in changes:
        _staff_user(db, changes["auxiliary_id"], (Role.AUXILIARY,), "Auxiliar")
    for key, value in changes.items():
        setattr(project, key, value)

    if new_phase is not None and new_phase != project.current_phase_id:
        if new_phase < project.current_phase_id:
            raise BusinessLogicError("A fase atual só pode avançar")
        # 8-10 open from the conclusion: finalize, then the post-completion choice
        if new_phase > CONCLUSION_PHASE or project.current_phase_id >= CONCLUSION_PHASE:
            raise BusinessLogicError(
                "As fases após a conclusão são abertas pela finalização do projeto",
                details={"current_phase_id": project.current_phase_id, "requested": new_phase},
            )
        for number in range(project.current_phase_id, new_phase):
            project.get_phase(number).status = PhaseStatus.COMPLETED
        enter_phase(project, new_phase)
        log_activity(db, project, actor, f"avançou o projeto para a Fase {new_phase}: {phase_title(new_phase)}.")

    project.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project_id: UUID, actor: User) -> None:
    require_permission(actor, "manage_projects", "Somente consultores podem excluir projetos")
    project = get_project_for(db, project_id, actor)
    storage_keys = [doc.storage_key for doc in project.documents]
    db.delete(project)
    db.commit()

    storage = get_storage_backend()
    for key in storage_keys:
        try:
            storage.delete(key)
        except (OSError, RuntimeError) as exc:
            logger.warning("Could not delete stored file %s: %s", key, exc)
    logger.info("Project deleted", extra={"project_id": str(project_id), "user_id": str(actor.id)})


def add_client(db: Session, project_id: UUID, data: ClientAddRequest, actor: User) -> Project:
    require_permission(actor, "manage_projects", "Somente consultores podem alterar os membros")
    project = get_project_for(db, project_id, actor)

    created: List[User] = []
    if data.user_id:
        user = db.query(User).filter(User.id == data.user_id).first()
        if not user:
            raise NotFoundError("User", str(data.user_id))
        if user.role != Role.CLIENT:
            raise ValidationError("Somente clientes podem ser membros do projeto")
    elif data.email and data.name:
        user = _get_or_create_client(
            db, NewClientData(name=data.name, email=data.email, client_type=data.client_type), created
        )
    else:
        raise ValidationError("Informe o usuário ou os dados do novo cliente")

    if user.id in project.client_ids:
        raise ConflictError("Cliente já é membro do projeto")

    db.execute(project_clients.insert().values(
        project_id=project.id, user_id=user.id, created_at=datetime.utcnow()
    ))
    log_activity(db, project, actor, f"adicionou {user.name} ao projeto.")
    db.commit()
    db.refresh(project)
    for new_user in created:
        send_welcome_email(new_user.email, new_user.name, project.name, settings.DEFAULT_CLIENT_PASSWORD)
    return project


def remove_client(db: Session, project_id: UUID, user_id: UUID, actor: User) -> Project:
    require_permission(actor, "manage_projects", "Somente consultores podem alterar os membros")
    project = get_project_for(db, project_id, actor)
    user = next((client for client in project.clients if client.id == user_id), None)
    if user is None:
        raise NotFoundError("Project client", str(user_id))
    if len(project.clients) == 1:
        raise BusinessLogicError("O projeto precisa ter ao menos um cliente")

    project.clients.remove(user)
    log_activity(db, project, actor, f"removeu {user.name} do projeto.")
    db.commit()
    db.refresh(project)
    return project


def list_activity(db: Session, project_id: UUID, user: User):
    return get_project_for(db, project_id, user).activity_log


def append_activity(db: Session, project_id: UUID, action: str, actor: User):
    project = get_project_for(db, project_id, actor)
    if not actor.is_staff:
        raise AuthorizationError("Somente a equipe pode registrar atividades")
    entry = log_activity(db, project, actor, action)
    db.commit()
    db.refresh(entry)
    return entry
