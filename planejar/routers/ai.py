from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.models import User
from planejar.rate_limit import AI_RATE_LIMIT, limiter
from planejar.schemas import (
    AIAnalyzeRequest, AIAnalyzeResponse, AIDraftRequest, AIDraftResponse, AIHelpRequest, AIHelpResponse,
)
from planejar.services import ai_service, document_service, phase_service

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/help", response_model=AIHelpResponse)
@limiter.limit(AI_RATE_LIMIT)
def ai_help(
    data: AIHelpRequest,
    request: Request,
    current_user: User = Depends(get_current_active_user)
):
    """Ask the assistant; failures come back as a friendly message, never as an error"""
    return AIHelpResponse(response=ai_service.get_ai_help(data.prompt, data.history))


@router.post("/draft", response_model=AIDraftResponse)
@limiter.limit(AI_RATE_LIMIT)
def ai_draft(
    data: AIDraftRequest,
    request: Request,
    current_user: User = Depends(get_current_active_user)
):
    draft = ai_service.generate_draft(data.instructions, data.context)
    if draft is None:
        return AIDraftResponse(error=ai_service.DRAFT_ERROR_MESSAGE)
    return AIDraftResponse(draft=draft)


@router.post("/analyze", response_model=AIAnalyzeResponse)
@limiter.limit(AI_RATE_LIMIT)
def ai_analyze(
    data: AIAnalyzeRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Analyze a project document.

    Suggested tasks are only returned; they become tasks once confirmed
    through /projects/{id}/tasks/confirm-suggestions. Analyses of
    diagnostic (phase 1) documents are kept on the phase.
    """
    document, content = document_service.download_document(db, data.document_id, current_user)
    result = ai_service.analyze_document(document.name, content, document.content_type)
    if result is None:
        return AIAnalyzeResponse(error=ai_service.ANALYSIS_ERROR_MESSAGE)
    if document.phase_number == 1:
        phase_service.store_analysis(db, document.project, str(document.id), result)
    return AIAnalyzeResponse(result=result)
