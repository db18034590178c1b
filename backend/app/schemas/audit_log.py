from datetime import datetime

from pydantic import BaseModel

from backend.app.db.models.core_types import AuditAction
from backend.app.schemas.user import UserBrief


class AuditLogRead(BaseModel):
    id: int
    organization_id: int
    user_id: int | None
    action: AuditAction
    entity_type: str
    entity_id: str | None
    description: str
    old_value: str | None
    new_value: str | None
    created_at: datetime
    user: UserBrief | None = None

    class Config:
        from_attributes = True
