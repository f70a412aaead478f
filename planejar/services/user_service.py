import logging
import secrets
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from planejar.auth import get_password_hash
from planejar.config import settings
from planejar.exceptions import AuthorizationError, ConflictError, NotFoundError
from planejar.models import (
    ActivityLogEntry, ChatMessage, ClientType, Document, Project, Role, Task, User, UserDocument,
    project_clients,
)
from planejar.rbac import check_full_access, has_permission, require_permission
from planejar.schemas import QualificationData, UserCreate, UserDocumentCreate, UserUpdate
from planejar.services.storage import get_storage_backend, user_document_key

logger = logging.getLogger(__name__)


def get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User", str(user_id))
    return user


def _shares_project(db: Session, a: User, b: User) -> bool:
    mine = db.query(project_clients.c.project_id).filter(project_clients.c.user_id == a.id)
    return db.query(Project).filter(
        Project.id.in_(mine),
        or_(
            Project.consultant_id == b.id,
            Project.auxiliary_id == b.id,
            Project.clients.any(User.id == b.id),
        ),
    ).first() is not None


def _require_self_or_manager(actor: User, user: User) -> None:
    if actor.id != user.id and not has_permission(actor.role, "manage_users"):
        raise AuthorizationError("Você só pode alterar os seus próprios dados")


def list_users(db: Session, actor: User) -> List[User]:
    require_permission(actor, "list_users", "Clientes não podem listar usuários")
    return db.query(User).order_by(User.name.asc()).all()


def get_user(db: Session, user_id: UUID, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    if actor.id == user.id or actor.is_staff:
        return user
    if not _shares_project(db, actor, user):
        raise AuthorizationError("Acesso negado")
    return user


def create_user(db: Session, data: UserCreate, actor: User) -> User:
    require_permission(actor, "manage_users", "Somente consultores podem criar usuários")
    if data.role == Role.ADMINISTRATOR and not check_full_access(actor.role):
        raise AuthorizationError("Somente administradores podem criar administradores")
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Já existe um usuário com este e-mail")

    client_type = data.client_type
    if data.role == Role.CLIENT and client_type is None:
        client_type = ClientType.PARTNER
    user = User(
        name=data.name,
        email=email,
        password_hash=get_password_hash(data.password or settings.DEFAULT_CLIENT_PASSWORD),
        role=data.role,
        client_type=client_type if data.role == Role.CLIENT else None,
        requires_password_change=data.password is None,
        qualification_data={},
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created", extra={"user_id": str(user.id)})
    return user


def update_user(db: Session, user_id: UUID, data: UserUpdate, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    _require_self_or_manager(actor, user)
    changes = data.model_dump(exclude_unset=True)

    if "role" in changes and changes["role"] != user.role and not check_full_access(actor.role):
        raise AuthorizationError("Somente administradores podem alterar o perfil de acesso")
    if "is_active" in changes and not has_permission(actor.role, "manage_users"):
        raise AuthorizationError("Acesso negado")
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        other = db.query(User).filter(User.email == changes["email"], User.id != user.id).first()
        if other:
            raise ConflictError("Já existe um usuário com este e-mail")

    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: UUID, actor: User) -> None:
    """
    Remove a user account.

    Clients are taken out of every project they belong to; the deletion is
    refused when the user is a project's consultant or would leave a
    project without clients.
    """
    require_permission(actor, "delete_users", "Somente administradores podem excluir usuários")
    user = get_user_or_404(db, user_id)
    if user.id == actor.id:
        raise ConflictError("Você não pode excluir a sua própria conta")

    consulting = db.query(Project).filter(Project.consultant_id == user.id).count()
    if consulting:
        raise ConflictError(
            "O usuário é consultor responsável por projetos",
            details={"projects": consulting},
        )
    for project in user.projects:
        if len(project.clients) == 1:
            raise ConflictError(
                "O usuário é o único cliente de um projeto",
                details={"project_id": str(project.id)},
            )

    db.execute(project_clients.delete().where(project_clients.c.user_id == user.id))
    db.query(Project).filter(Project.auxiliary_id == user.id).update({"auxiliary_id": None})
    for column in (Task.assignee_id, Task.created_by_id, Task.completed_by_id, Task.approved_by_id):
        db.query(Task).filter(column == user.id).update({column: None}, synchronize_session=False)
    db.query(Document).filter(Document.uploaded_by_id == user.id).update({"uploaded_by_id": None})
    db.query(ChatMessage).filter(ChatMessage.author_id == user.id).update({"author_id": None})
    db.query(ActivityLogEntry).filter(ActivityLogEntry.actor_id == user.id).update({"actor_id": None})
    db.expire(user, ["projects"])
    db.delete(user)
    db.commit()
    logger.info("User deleted", extra={"user_id": str(user_id)})


def reset_password(db: Session, user_id: UUID, actor: User) -> str:
    """Give the user a temporary password that must be changed on next login"""
    require_permission(actor, "delete_users", "Somente administradores podem redefinir senhas")
    user = get_user_or_404(db, user_id)
    temporary = secrets.token_urlsafe(8)
    user.password_hash = get_password_hash(temporary)
    user.requires_password_change = True
    db.commit()
    logger.info("Temporary password issued", extra={"user_id": str(user.id)})
    return temporary


def update_qualification(db: Session, user_id: UUID, data: QualificationData, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    _require_self_or_manager(actor, user)
    qualification = dict(user.qualification_data or {})
    qualification.update(data.model_dump(exclude_unset=True))
    user.qualification_data = qualification
    flag_modified(user, "qualification_data")
    db.commit()
    db.refresh(user)
    return user


def add_user_document(db: Session, user_id: UUID, data: UserDocumentCreate, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    _require_self_or_manager(actor, user)
    db.add(UserDocument(user_id=user.id, name=data.name, category=data.category, url=data.url))
    db.commit()
    db.refresh(user)
    return user


def upload_user_document(
    db: Session,
    user_id: UUID,
    category,
    filename: str,
    content: bytes,
    content_type: Optional[str],
    actor: User,
) -> User:
    user = get_user_or_404(db, user_id)
    _require_self_or_manager(actor, user)
    stored = get_storage_backend().save_bytes(user_document_key(user.id, filename), content, content_type)
    document = UserDocument(
        user_id=user.id,
        name=filename,
        category=category,
        url=stored.url or stored.storage_key,
    )
    db.add(document)
    db.commit()
    db.refresh(user)
    return user


def remove_user_document(db: Session, user_id: UUID, document_id: UUID, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    _require_self_or_manager(actor, user)
    document = db.query(UserDocument).filter(
        UserDocument.id == document_id, UserDocument.user_id == user.id
    ).first()
    if not document:
        raise NotFoundError("User document", str(document_id))
    db.delete(document)
    db.commit()
    db.refresh(user)
    return user
