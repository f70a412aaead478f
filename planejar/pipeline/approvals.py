"""
Draft review block shared by phase 4 (minuta), each phase 8 transfer and
phase 9 (partner agreement).

Staff upload draft versions, partners approve independently and everybody
talks in the block's discussion thread. Approvals are keyed by user id and
never revoked; members who are not partners are ignored when deciding
whether the draft is approved by everyone.
"""
import uuid
from datetime import datetime
from typing import Iterable, List, Mapping

from planejar.exceptions import AuthorizationError, BusinessLogicError, ValidationError
from planejar.models import ClientType
from planejar.pipeline.phase_data import ChatEntry, DocumentRef


def partner_ids_of(project) -> List[str]:
    return [str(client.id) for client in project.clients if client.client_type == ClientType.PARTNER]


def all_approved(approvals: Mapping[str, bool], partner_ids: Iterable[str]) -> bool:
    partners = [str(pid) for pid in partner_ids]
    if not partners:
        return False
    return all(approvals.get(pid) is True for pid in partners)


def _drafts(block) -> List[DocumentRef]:
    # phase 4 keeps its versions under analysis_drafts
    return block.analysis_drafts if hasattr(block, "analysis_drafts") else block.drafts


def add_draft(block, document: DocumentRef) -> DocumentRef:
    if block.status == "approved":
        raise BusinessLogicError("A minuta já foi aprovada")
    drafts = _drafts(block)
    document.version = len(drafts) + 1
    drafts.append(document)
    if block.status == "pending_draft":
        block.status = "in_review"
    return document


def record_approval(block, user_id: str, partner_ids: Iterable[str]) -> bool:
    """Returns True when this approval completed the partner set."""
    user_id = str(user_id)
    partners = [str(pid) for pid in partner_ids]
    if user_id not in partners:
        raise AuthorizationError("Somente sócios podem aprovar a minuta")
    if block.status == "pending_draft" or not _drafts(block):
        raise BusinessLogicError("Não há minuta para aprovar")
    block.approvals[user_id] = True
    return all_approved(block.approvals, partners)


def close_review(block, partner_ids: Iterable[str]) -> None:
    if block.status != "in_review":
        raise BusinessLogicError("A minuta não está em revisão")
    if not all_approved(block.approvals, partner_ids):
        raise BusinessLogicError("Aguardando a aprovação de todos os sócios")
    block.status = "approved"


def make_chat_entry(author, content: str) -> ChatEntry:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Mensagem não pode ser vazia")
    return ChatEntry(
        id=str(uuid.uuid4()),
        author_id=str(author.id),
        author_name=author.name,
        author_role=getattr(author.role, "value", author.role),
        content=content,
        timestamp=datetime.utcnow(),
    )


def add_discussion_message(block, author, content: str) -> ChatEntry:
    entry = make_chat_entry(author, content)
    block.discussion.append(entry)
    return entry
