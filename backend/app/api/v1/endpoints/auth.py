from __future__ import annotations

import json
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, require_admin
from backend.app.core import config
from backend.app.db.models.models_v1 import User
from backend.app.schemas.user import (
    AuthResponse,
    LoginRequest,
    OAuthStatus,
    RegisterRequest,
    StaffCreate,
    UserRead,
)
from backend.services import auth as auth_service
from backend.services import oauth
from backend.services.errors import InventoryError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def _frontend_login_error(error: str, provider: str | None = None) -> RedirectResponse:
    url = f"{config.FRONTEND_URL}/login?error={error}"
    if provider:
        url += f"&provider={provider}"
    return RedirectResponse(url)


@router.post("/register", response_model=AuthResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    return auth_service.register_organization(
        db,
        organization_name=payload.organization_name,
        email=payload.email,
        password=payload.password,
        name=payload.name,
    )


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    return auth_service.login(
        db,
        organization_name=payload.organization_name,
        email=payload.email,
        password=payload.password,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post("/register-staff", response_model=UserRead)
def register_staff(
    payload: StaffCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return auth_service.register_staff(
        db,
        admin,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
    )


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/oauth-status", response_model=OAuthStatus)
def oauth_status():
    providers = oauth.get_providers()
    return {name: {"enabled": p.enabled} for name, p in providers.items()}


@router.get("/{provider}")
def oauth_start(provider: str):
    p = oauth.get_provider(provider)
    if not p.enabled:
        return _frontend_login_error("oauth_not_configured", provider)
    return RedirectResponse(p.authorization_url())


@router.get("/{provider}/callback")
def oauth_callback(
    provider: str,
    code: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
):
    p = oauth.get_provider(provider)
    if not p.enabled:
        return _frontend_login_error("oauth_not_configured", provider)
    if error or not code:
        return _frontend_login_error("oauth_failed")

    try:
        profile = oauth.fetch_profile(p, code)
        result = auth_service.validate_oauth_login(db, profile)
    except InventoryError as exc:
        logger.warning("%s oauth login failed: %s", provider, exc.message)
        return _frontend_login_error("oauth_failed")

    user = AuthResponse.model_validate(result).user.model_dump(mode="json")
    token = quote(result["access_token"])
    return RedirectResponse(
        f"{config.FRONTEND_URL}/auth/callback?token={token}&user={quote(json.dumps(user))}"
    )
