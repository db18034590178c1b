from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.auth import router as auth_router
from backend.app.api.v1.endpoints.users import router as users_router
from backend.app.api.v1.endpoints.categories import router as categories_router
from backend.app.api.v1.endpoints.products import router as products_router
from backend.app.api.v1.endpoints.stock_movements import router as stock_movements_router
from backend.app.api.v1.endpoints.audit_logs import router as audit_logs_router
from backend.app.api.v1.endpoints.reports import router as reports_router
from backend.app.api.v1.endpoints.exports import router as exports_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(users_router, tags=["users"])
router.include_router(categories_router, tags=["categories"])
router.include_router(products_router, tags=["products"])
router.include_router(stock_movements_router, tags=["stock_movements"])
router.include_router(audit_logs_router, tags=["audit_logs"])
router.include_router(reports_router, tags=["reports"])
router.include_router(exports_router, tags=["exports"])
