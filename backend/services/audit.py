from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import AuditLog
from backend.app.db.models.core_types import AuditAction
from backend.services.paging import paginate

logger = logging.getLogger(__name__)


def record(
    db: Session,
    *,
    user_id: int | None,
    organization_id: int,
    action: AuditAction,
    entity_type: str,
    entity_id: int | str | None,
    description: str,
    old_value: str | None = None,
    new_value: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog:
    entry = AuditLog(
        user_id=user_id,
        organization_id=organization_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        description=description,
        old_value=old_value,
        new_value=new_value,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.commit()
    return entry


def record_safely(db: Session, **kwargs) -> AuditLog | None:
    """
    Best-effort audit write.

    Runs after the business transaction has committed. A failure here is
    logged and rolled back on its own; it never reaches the caller.
    """
    try:
        return record(db, **kwargs)
    except Exception:
        logger.warning(
            "audit log write failed (action=%s entity=%s:%s)",
            kwargs.get("action"),
            kwargs.get("entity_type"),
            kwargs.get("entity_id"),
            exc_info=True,
        )
        db.rollback()
        return None


def list_logs(
    db: Session,
    organization_id: int,
    *,
    page: int = 1,
    limit: int = 50,
    user_id: int | None = None,
    action: AuditAction | None = None,
    entity_type: str | None = None,
) -> dict:
    stmt = (
        select(AuditLog)
        .options(selectinload(AuditLog.user))
        .where(AuditLog.organization_id == organization_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    )
    if user_id is not None:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if action is not None:
        stmt = stmt.where(AuditLog.action == action)
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)

    return paginate(db, stmt, page=page, limit=limit)
