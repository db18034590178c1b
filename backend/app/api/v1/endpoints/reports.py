from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db
from backend.app.db.models.models_v1 import User
from backend.app.schemas.product import ProductRead
from backend.services import reports

router = APIRouter(prefix="/reports")


@router.get("/low-stock")
def low_stock(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    report = reports.low_stock_report(db, user.organization_id)
    return {
        "count": report["count"],
        "products": [ProductRead.model_validate(p) for p in report["products"]],
    }


@router.get("/stock-summary")
def stock_summary(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return reports.stock_summary(db, user.organization_id)


@router.get("/monthly-kpis")
def monthly_kpis(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return reports.monthly_kpis(db, user.organization_id)


@router.get("/inventory-distribution")
def inventory_distribution(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return reports.inventory_distribution(db, user.organization_id)
