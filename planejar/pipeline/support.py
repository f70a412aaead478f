"""
Phase 10: support tickets opened after the project is concluded.
"""
import uuid
from datetime import datetime
from typing import Optional

from planejar.exceptions import BusinessLogicError, NotFoundError, ValidationError
from planejar.pipeline.approvals import make_chat_entry
from planejar.pipeline.phase_data import DocumentRef, Phase10Data, SupportRequest
from planejar.pipeline.phases import CONCLUSION_PHASE


def is_available(project) -> bool:
    phase = project.get_phase(CONCLUSION_PHASE)
    return phase is not None and (phase.phase_data or {}).get("status") == "completed"


def open_request(
    data: Phase10Data,
    requester_id: str,
    title: str,
    description: str = "",
    category: Optional[str] = None,
    priority: Optional[str] = None,
) -> SupportRequest:
    if not title or not title.strip():
        raise ValidationError("Informe o título da solicitação")
    try:
        request = SupportRequest(
            id=str(uuid.uuid4()),
            title=title.strip(),
            description=description or "",
            category=category or "other",
            priority=priority or "medium",
            requester_id=requester_id,
            created_at=datetime.utcnow(),
        )
    except ValueError as exc:
        raise ValidationError("Dados da solicitação inválidos", details={"errors": str(exc)}) from exc
    data.requests.append(request)
    return request


def find_request(data: Phase10Data, request_id: str) -> SupportRequest:
    for request in data.requests:
        if request.id == request_id:
            return request
    raise NotFoundError("Support request", request_id)


def update_request(request: SupportRequest, changes: dict) -> None:
    try:
        for field in ("status", "priority", "assigned_to_id"):
            if field in changes:
                setattr(request, field, changes[field])
    except ValueError as exc:
        raise ValidationError("Dados da solicitação inválidos", details={"errors": str(exc)}) from exc


def add_request_message(request: SupportRequest, author, content: str) -> None:
    if request.status == "closed":
        raise BusinessLogicError("A solicitação está encerrada")
    request.messages.append(make_chat_entry(author, content))


def attach_request_document(request: SupportRequest, document: DocumentRef) -> None:
    request.documents.append(document)
