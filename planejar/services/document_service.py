"""
Project documents: upload through the storage backend with per-name versioning.
"""
import logging
import os
import uuid
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from planejar.config import settings
from planejar.exceptions import AuthorizationError, NotFoundError, ValidationError
from planejar.models import Document, DocumentStatus, DocumentType, Project, User
from planejar.pipeline.phase_data import DocumentRef
from planejar.pipeline.phases import PHASE_BY_NUMBER
from planejar.pipeline.state_machine import is_read_only
from planejar.rbac import is_staff, require_project_access
from planejar.services.project_service import get_project_for
from planejar.services.storage import get_storage_backend, project_document_key

logger = logging.getLogger(__name__)

_EXTENSION_TYPES = {
    ".pdf": DocumentType.PDF,
    ".doc": DocumentType.DOC,
    ".docx": DocumentType.DOC,
}


def document_type_for(filename: str) -> DocumentType:
    extension = os.path.splitext(filename or "")[1].lower()
    return _EXTENSION_TYPES.get(extension, DocumentType.OTHER)


def to_ref(document: Document) -> DocumentRef:
    return DocumentRef(
        id=str(document.id),
        name=document.name,
        url=document.url,
        version=document.version,
        uploaded_by=str(document.uploaded_by_id) if document.uploaded_by_id else None,
        uploaded_at=document.uploaded_at,
    )


def upload_document(
    db: Session,
    project_id: UUID,
    phase_number: int,
    filename: str,
    content: bytes,
    content_type: Optional[str],
    user: User,
) -> Document:
    if phase_number not in PHASE_BY_NUMBER:
        raise ValidationError(f"Fase inválida: {phase_number}")
    project = get_project_for(db, project_id, user)
    phase = project.get_phase(phase_number)
    if is_read_only(user, project, phase):
        raise AuthorizationError("Fase disponível somente para leitura")
    if not content:
        raise ValidationError("O arquivo está vazio")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(
            "O arquivo excede o tamanho máximo permitido",
            details={"max_bytes": settings.MAX_UPLOAD_SIZE},
        )

    name = os.path.basename(filename or "").strip() or "arquivo"
    active = db.query(Document).filter(
        Document.project_id == project.id,
        Document.phase_number == phase_number,
        Document.name == name,
        Document.status == DocumentStatus.ACTIVE,
    ).all()
    version = max((doc.version for doc in active), default=0) + 1

    stored = get_storage_backend().save_bytes(
        project_document_key(project.id, phase_number, name), content, content_type
    )
    for previous in active:
        previous.status = DocumentStatus.DEPRECATED

    document_id = uuid.uuid4()
    document = Document(
        id=document_id,
        project_id=project.id,
        phase_number=phase_number,
        name=name,
        url=stored.url or f"/documents/{document_id}/download",
        storage_key=stored.storage_key,
        content_type=stored.content_type,
        size_bytes=stored.size_bytes,
        type=document_type_for(name),
        uploaded_by_id=user.id,
        version=version,
        status=DocumentStatus.ACTIVE,
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info(
        "Document uploaded: %s v%d", name, version,
        extra={"project_id": str(project.id), "phase": phase_number, "user_id": str(user.id)},
    )
    return document


def get_document(db: Session, document_id: UUID, user: User) -> Document:
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise NotFoundError("Document", str(document_id))
    require_project_access(user, document.project)
    return document


def get_project_document(db: Session, project: Project, document_id, phase_number: Optional[int] = None) -> Document:
    """A document of ``project`` (and of ``phase_number`` when given) referenced by a phase action"""
    document = db.query(Document).filter(
        Document.id == UUID(str(document_id)),
        Document.project_id == project.id,
    ).first()
    if not document:
        raise NotFoundError("Document", str(document_id))
    if phase_number is not None and document.phase_number != phase_number:
        raise ValidationError("O documento pertence a outra fase", details={"phase": document.phase_number})
    return document


def list_documents(
    db: Session,
    project_id: UUID,
    user: User,
    phase_number: Optional[int] = None,
    include_deprecated: bool = False,
) -> List[Document]:
    project = get_project_for(db, project_id, user)
    query = db.query(Document).filter(Document.project_id == project.id)
    if phase_number is not None:
        query = query.filter(Document.phase_number == phase_number)
    if not include_deprecated:
        query = query.filter(Document.status == DocumentStatus.ACTIVE)
    return query.order_by(Document.uploaded_at.desc()).all()


def list_versions(db: Session, document_id: UUID, user: User) -> List[Document]:
    document = get_document(db, document_id, user)
    return db.query(Document).filter(
        Document.project_id == document.project_id,
        Document.phase_number == document.phase_number,
        Document.name == document.name,
    ).order_by(Document.version.desc()).all()


def download_document(db: Session, document_id: UUID, user: User) -> Tuple[Document, bytes]:
    document = get_document(db, document_id, user)
    try:
        content = get_storage_backend().read_bytes(document.storage_key)
    except FileNotFoundError:
        raise NotFoundError("Document file", str(document_id))
    return document, content


def delete_document(db: Session, document_id: UUID, user: User) -> Document:
    """Deprecate the document; the stored file is kept for the version history"""
    document = get_document(db, document_id, user)
    if not is_staff(user) and document.uploaded_by_id != user.id:
        raise AuthorizationError("Somente quem enviou o documento pode removê-lo")
    document.status = DocumentStatus.DEPRECATED
    db.commit()
    db.refresh(document)
    return document
