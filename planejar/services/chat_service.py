from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from planejar.exceptions import AuthorizationError, ValidationError
from planejar.models import ChatMessage, ChatType, User
from planejar.pipeline.state_machine import READ_ONLY_PROJECT_STATUSES
from planejar.rbac import is_interested_client, is_staff
from planejar.services.project_service import get_project_for


def _check_thread(user: User, chat_type: ChatType) -> None:
    if chat_type == ChatType.INTERNAL and not is_staff(user):
        raise AuthorizationError("O chat interno é restrito à equipe")


def list_messages(db: Session, project_id: UUID, chat_type: ChatType, user: User) -> List[ChatMessage]:
    project = get_project_for(db, project_id, user)
    _check_thread(user, chat_type)
    return db.query(ChatMessage).filter(
        ChatMessage.project_id == project.id,
        ChatMessage.chat_type == chat_type,
    ).order_by(ChatMessage.created_at.asc()).all()


def post_message(db: Session, project_id: UUID, chat_type: ChatType, content: str, user: User) -> ChatMessage:
    project = get_project_for(db, project_id, user)
    _check_thread(user, chat_type)
    if project.status in READ_ONLY_PROJECT_STATUSES or is_interested_client(user):
        raise AuthorizationError("Projeto disponível somente para leitura")
    content = (content or "").strip()
    if not content:
        raise ValidationError("Mensagem não pode ser vazia")
    message = ChatMessage(
        project_id=project.id,
        chat_type=chat_type,
        author_id=user.id,
        author_name=user.name,
        author_role=user.role,
        content=content,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message
