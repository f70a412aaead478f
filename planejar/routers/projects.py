from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.models import ChatType, User
from planejar.schemas import (
    ActivityLogCreate, ActivityLogResponse, AdvancePhaseRequest, ChatMessageCreate, ChatMessageResponse,
    ClientAddRequest, PostCompletionChoiceRequest, ProjectCreate, ProjectResponse, ProjectUpdate,
)
from planejar.services import chat_service, phase_service, project_service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=List[ProjectResponse])
def list_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Projects visible to the current user"""
    return project_service.list_projects_for(db, current_user)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Create a project and its client accounts (consultant/admin)"""
    return project_service.create_project(db, data, current_user)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return project_service.get_project_for(db, project_id, current_user)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return project_service.update_project(db, project_id, data, current_user)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    project_service.delete_project(db, project_id, current_user)


@router.post("/{project_id}/advance-phase", response_model=ProjectResponse)
def advance_phase(
    project_id: UUID,
    data: AdvancePhaseRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Complete ``phase_number`` and start the next phase.

    Repeating the call for a phase that is no longer current changes
    nothing and returns the project as it is.
    """
    return phase_service.advance(db, project_id, data.phase_number, current_user)


@router.post("/{project_id}/post-completion-choice", response_model=ProjectResponse)
def choose_post_completion(
    project_id: UUID,
    data: PostCompletionChoiceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return phase_service.choose_post_completion(db, project_id, data.choice, current_user)


# ============= Members =============
@router.post("/{project_id}/clients", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def add_client(
    project_id: UUID,
    data: ClientAddRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return project_service.add_client(db, project_id, data, current_user)


@router.delete("/{project_id}/clients/{user_id}", response_model=ProjectResponse)
def remove_client(
    project_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Remove a client; the last remaining client cannot be removed"""
    return project_service.remove_client(db, project_id, user_id, current_user)


# ============= Activity log =============
@router.get("/{project_id}/activity-log", response_model=List[ActivityLogResponse])
def list_activity(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Newest first"""
    return project_service.list_activity(db, project_id, current_user)


@router.post("/{project_id}/activity-log", response_model=ActivityLogResponse, status_code=status.HTTP_201_CREATED)
def append_activity(
    project_id: UUID,
    data: ActivityLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return project_service.append_activity(db, project_id, data.action, current_user)


# ============= Chat =============
@router.get("/{project_id}/chat/{chat_type}", response_model=List[ChatMessageResponse])
def list_chat(
    project_id: UUID,
    chat_type: ChatType,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return chat_service.list_messages(db, project_id, chat_type, current_user)


@router.post("/{project_id}/chat/{chat_type}", response_model=ChatMessageResponse, status_code=status.HTTP_201_CREATED)
def post_chat(
    project_id: UUID,
    chat_type: ChatType,
    data: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return chat_service.post_message(db, project_id, chat_type, data.content, current_user)
