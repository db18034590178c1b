from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.app.db.models.core_types import AuditAction
from backend.app.db.models.models_v1 import User
from backend.app.schemas.audit_log import AuditLogRead
from backend.app.schemas.common import Page
from backend.services import audit

router = APIRouter(prefix="/audit-logs")


@router.get("", response_model=Page[AuditLogRead])
def list_audit_logs(
    page: int = 1,
    limit: int = 50,
    user_id: int | None = None,
    action: AuditAction | None = None,
    entity_type: str | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return audit.list_logs(
        db,
        admin.organization_id,
        page=page,
        limit=limit,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
    )
