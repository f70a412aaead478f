from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from planejar.config import settings
from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.exceptions import ValidationError
from planejar.models import DocumentCategory, User
from planejar.schemas import (
    QualificationData, TemporaryPasswordResponse, UserCreate, UserDocumentCreate, UserResponse, UserUpdate,
)
from planejar.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """List all users (staff only; clients get 403)"""
    return user_service.list_users(db, current_user)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return user_service.create_user(db, data, current_user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return user_service.get_user(db, user_id, current_user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Update a user (self, or staff; role changes are admin only)"""
    return user_service.update_user(db, user_id, data, current_user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    user_service.delete_user(db, user_id, current_user)


@router.post("/{user_id}/reset-password", response_model=TemporaryPasswordResponse)
def reset_user_password(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Issue a temporary password (admin only)"""
    return TemporaryPasswordResponse(temporary_password=user_service.reset_password(db, user_id, current_user))


@router.put("/{user_id}/qualification", response_model=UserResponse)
def update_qualification(
    user_id: UUID,
    data: QualificationData,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return user_service.update_qualification(db, user_id, data, current_user)


@router.post("/{user_id}/documents", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def add_user_document(
    user_id: UUID,
    data: UserDocumentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return user_service.add_user_document(db, user_id, data, current_user)


@router.post("/{user_id}/documents/upload", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def upload_user_document(
    user_id: UUID,
    category: DocumentCategory = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    content = await file.read()
    if not content:
        raise ValidationError("O arquivo está vazio")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError("O arquivo excede o tamanho máximo permitido")
    return user_service.upload_user_document(
        db, user_id, category, file.filename, content, file.content_type, current_user
    )


@router.delete("/{user_id}/documents/{document_id}", response_model=UserResponse)
def remove_user_document(
    user_id: UUID,
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return user_service.remove_user_document(db, user_id, document_id, current_user)
