from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.models import User
from planejar.schemas import DocumentResponse
from planejar.services import document_service

router = APIRouter(tags=["documents"])


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    project_id: UUID,
    phase_number: int = Form(..., ge=1, le=10),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Upload a file to a project phase.

    A file with the same name as an active document of the phase becomes
    its next version; the previous one is deprecated.
    """
    content = await file.read()
    return document_service.upload_document(
        db, project_id, phase_number, file.filename, content, file.content_type, current_user
    )


@router.get("/projects/{project_id}/documents", response_model=List[DocumentResponse])
def list_documents(
    project_id: UUID,
    phase_number: Optional[int] = Query(None, ge=1, le=10),
    include_deprecated: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return document_service.list_documents(db, project_id, current_user, phase_number, include_deprecated)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return document_service.get_document(db, document_id, current_user)


@router.get("/documents/{document_id}/versions", response_model=List[DocumentResponse])
def list_versions(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Every version of the document, newest first"""
    return document_service.list_versions(db, document_id, current_user)


@router.get("/documents/{document_id}/download")
def download_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    document, content = document_service.download_document(db, document_id, current_user)
    headers = {"Content-Disposition": f'attachment; filename="{document.name}"'}
    return Response(
        content=content,
        media_type=document.content_type or "application/octet-stream",
        headers=headers,
    )


@router.delete("/documents/{document_id}", response_model=DocumentResponse)
def delete_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Mark the document as deprecated"""
    return document_service.delete_document(db, document_id, current_user)
