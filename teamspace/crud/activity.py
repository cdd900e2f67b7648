# teamspace/crud/activity.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from teamspace.models.activity import ActivityRecord
from teamspace.models.user import User
from teamspace.core.exceptions import (
    ActivityNotFound,
    NotAuthenticatedError,
    PermissionDeniedError,
    ValidationError,
)
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger("Teamspace.Activity")

def record_activity(
    db: Session,
    user_id: int,
    action_type: str,
    description: str,
    target_id: Optional[Any] = None,
    target_type: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ActivityRecord:
    """
    Добавляет запись активности в текущую транзакцию (без commit).
    Вызывается из мутаций задач, комментариев и т.д.
    """
    record = ActivityRecord(
        user_id=user_id,
        action_type=action_type,
        target_id=str(target_id) if target_id is not None else None,
        target_type=target_type,
        description=description,
        meta=metadata or {},
    )
    db.add(record)
    db.flush()
    return record

def create_activity(db: Session, data: dict, actor: Optional[User]) -> ActivityRecord:
    """
    Создать запись активности от имени текущего пользователя.
    """
    if actor is None:
        raise NotAuthenticatedError()
    action_type = (data.get("action_type") or "").strip()
    description = (data.get("description") or "").strip()
    if not action_type or not description:
        raise ValidationError("Activity action_type and description are required.")
    try:
        record = record_activity(
            db,
            user_id=actor.id,
            action_type=action_type,
            description=description,
            target_id=data.get("target_id"),
            target_type=data.get("target_type"),
            metadata=data.get("metadata"),
        )
        db.commit()
        logger.info(f"Created activity {record.id} ({record.action_type}) for user {actor.id}")
        return record
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create activity: {e}")
        raise

def get_activity(db: Session, activity_id: int) -> ActivityRecord:
    record = db.get(ActivityRecord, activity_id)
    if not record:
        raise ActivityNotFound(f"Activity {activity_id} not found.")
    return record

def get_activities(db: Session, filters: Optional[Dict[str, Any]] = None) -> List[ActivityRecord]:
    """
    Лента активности с фильтрами (user_id, action_type, target_type, target_id).
    Новые записи — первыми.
    """
    filters = filters or {}
    query = db.query(ActivityRecord)
    if "user_id" in filters:
        query = query.filter(ActivityRecord.user_id == filters["user_id"])
    if "action_type" in filters:
        query = query.filter(ActivityRecord.action_type == filters["action_type"])
    if "target_type" in filters:
        query = query.filter(ActivityRecord.target_type == filters["target_type"])
    if "target_id" in filters:
        query = query.filter(ActivityRecord.target_id == str(filters["target_id"]))
    return query.order_by(ActivityRecord.created_at.desc(), ActivityRecord.id.desc()).all()

def get_activities_by_company(db: Session, company_id: int) -> List[ActivityRecord]:
    """
    Вся активность пользователей компании.
    """
    user_ids = [row.id for row in db.query(User.id).filter(User.company_id == company_id).all()]
    if not user_ids:
        return []
    return (
        db.query(ActivityRecord)
        .filter(ActivityRecord.user_id.in_(user_ids))
        .order_by(ActivityRecord.created_at.desc(), ActivityRecord.id.desc())
        .all()
    )

def delete_activity(db: Session, activity_id: int, actor: Optional[User]) -> bool:
    """
    Удалить запись активности. Разрешено только владельцу записи.
    """
    if actor is None:
        raise NotAuthenticatedError()
    record = get_activity(db, activity_id)
    if record.user_id != actor.id:
        raise PermissionDeniedError("Not authorized to delete this activity.")
    try:
        db.delete(record)
        db.commit()
        logger.info(f"Deleted activity {activity_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete activity {activity_id}: {e}")
        raise
