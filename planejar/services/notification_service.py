"""
Per-user notifications.

Nothing inside the application produces notifications on its own; they
arrive through ``notify()``, which is what the staff-facing POST
/notifications endpoint calls.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from planejar.exceptions import NotFoundError
from planejar.models import Notification, NotificationType, User

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    user_id: UUID,
    title: str,
    message: str,
    link: Optional[str] = None,
    type: Optional[NotificationType] = None,
) -> Notification:
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFoundError("User", str(user_id))
    notification = Notification(user_id=user_id, title=title, message=message, link=link, type=type)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    logger.info("Notification created", extra={"user_id": str(user_id)})
    return notification


def list_for(db: Session, user: User, skip: int = 0, limit: int = 50) -> List[Notification]:
    return db.query(Notification).filter(
        Notification.user_id == user.id
    ).order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()


def _get_own(db: Session, notification_id: UUID, user: User) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user.id,
    ).first()
    if not notification:
        raise NotFoundError("Notification", str(notification_id))
    return notification


def mark_read(db: Session, notification_id: UUID, user: User) -> Notification:
    notification = _get_own(db, notification_id, user)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user: User) -> int:
    count = db.query(Notification).filter(
        Notification.user_id == user.id,
        Notification.is_read == False,  # noqa: E712
    ).update({"is_read": True})
    db.commit()
    return count


def delete(db: Session, notification_id: UUID, user: User) -> None:
    db.delete(_get_own(db, notification_id, user))
    db.commit()


def delete_all(db: Session, user: User) -> int:
    count = db.query(Notification).filter(Notification.user_id == user.id).delete()
    db.commit()
    return count
