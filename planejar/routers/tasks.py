from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.models import User
from planejar.schemas import SuggestedTasksConfirm, TaskCreate, TaskResponse, TaskUpdate
from planejar.services import task_service

router = APIRouter(tags=["tasks"])


@router.get("/tasks", response_model=List[TaskResponse])
def get_my_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Pending tasks assigned to the current user"""
    return task_service.get_pending_tasks_for(db, current_user)


@router.get("/projects/{project_id}/tasks", response_model=List[TaskResponse])
def get_project_tasks(
    project_id: UUID,
    phase_number: Optional[int] = Query(None, ge=1, le=10),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return task_service.get_tasks_by_project(db, project_id, current_user, phase_number)


@router.post("/projects/{project_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: UUID,
    data: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Create a task; without an assignee it goes to the project's auxiliary"""
    return task_service.create_task(db, project_id, data, current_user)


@router.post(
    "/projects/{project_id}/tasks/confirm-suggestions",
    response_model=List[TaskResponse],
    status_code=status.HTTP_201_CREATED,
)
def confirm_suggested_tasks(
    project_id: UUID,
    data: SuggestedTasksConfirm,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return task_service.create_suggested_tasks(
        db, project_id, data.phase_number, data.descriptions, data.related_document_id, current_user
    )


@router.put("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return task_service.update_task(db, task_id, data, current_user)


@router.post("/tasks/{task_id}/complete", response_model=TaskResponse)
def complete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return task_service.complete_task(db, task_id, current_user)


@router.post("/tasks/{task_id}/approve", response_model=TaskResponse)
def approve_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return task_service.approve_task(db, task_id, current_user)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    task_service.delete_task(db, task_id, current_user)
