from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_admin
from backend.app.db.models.core_types import AuditAction, MovementType, ProductStatus
from backend.app.db.models.models_v1 import User
from backend.services import exports

router = APIRouter(prefix="/exports")


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


@router.get("/products")
def export_products(
    search: str | None = None,
    category_id: int | None = None,
    status: ProductStatus | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    body = exports.export_products(
        db,
        user.organization_id,
        search=search,
        category_id=category_id,
        status=status,
    )
    return _csv_response(body, f"products-{_today()}.csv")


@router.get("/history")
def export_history(
    entity_type: str | None = None,
    action: AuditAction | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    body = exports.export_history(
        db,
        admin.organization_id,
        entity_type=entity_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
    )
    return _csv_response(body, f"history-{_today()}.csv")


@router.get("/stock-history")
def export_stock_history(
    type: MovementType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    body = exports.export_stock_history(
        db,
        admin.organization_id,
        movement_type=type,
        start_date=start_date,
        end_date=end_date,
    )
    return _csv_response(body, f"stock-history-{_today()}.csv")
