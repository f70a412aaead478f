from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.models import Role, User
from planejar.rbac import require_any_role
from planejar.schemas import NotificationCreate, NotificationResponse
from planejar.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get all notifications for current user"""
    return notification_service.list_for(db, current_user, skip, limit)


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    data: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    require_any_role(current_user, [Role.CONSULTANT, Role.AUXILIARY], "Somente a equipe pode enviar notificações")
    return notification_service.notify(db, data.user_id, data.title, data.message, data.link, data.type)


@router.put("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    count = notification_service.mark_all_read(db, current_user)
    return {"success": True, "count": count}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return notification_service.mark_read(db, notification_id, current_user)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    notification_service.delete(db, notification_id, current_user)


@router.delete("")
def delete_all_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    count = notification_service.delete_all(db, current_user)
    return {"success": True, "count": count}
