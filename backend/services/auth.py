"""
Account flows: organization sign-up, login, staff registration and social
(OAuth) login.

Every successful flow ends with ``issue_token`` so the response shape is the
same whichever way the user got in.
"""

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.core.security import create_access_token, get_password_hash, verify_password
from backend.app.db.models.core_types import AuditAction, UserRole
from backend.app.db.models.models_v1 import Organization, User
from backend.services import audit
from backend.services.errors import AuthError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid organization name, email, or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_organization_by_name(db: Session, name: str) -> Organization | None:
    name = name.strip()
    org = db.execute(select(Organization).where(Organization.name == name)).scalar_one_or_none()
    if org:
        return org
    return (
        db.execute(select(Organization).where(func.lower(Organization.name) == name.lower()))
        .scalars()
        .first()
    )


def issue_token(user: User) -> dict:
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role.value,
        organization_id=user.organization_id,
    )
    org = user.organization
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "organization_id": user.organization_id,
            "organization_name": org.name if org else "",
            "organization": {"id": org.id, "name": org.name} if org else None,
        },
    }


def register_organization(
    db: Session,
    *,
    organization_name: str,
    email: str,
    password: str,
    name: str,
) -> dict:
    """Public sign-up: new organization with its first ADMIN."""
    organization_name = organization_name.strip()
    email = normalize_email(email)
    if not organization_name:
        raise ValidationError("Organization name is required")

    if find_organization_by_name(db, organization_name):
        raise ConflictError(
            "Organization with this name already exists. Please choose a different name."
        )

    # emails are globally unique for organization owners
    if db.execute(select(User).where(User.email == email)).scalars().first():
        raise ConflictError("User with this email already exists. Please use a different email.")

    org = Organization(name=organization_name)
    db.add(org)
    db.flush()

    user = User(
        organization_id=org.id,
        email=email,
        name=name.strip(),
        password_hash=get_password_hash(password),
        role=UserRole.admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("organization registered: org=%s admin=%s", org.id, user.id)
    return issue_token(user)


def login(
    db: Session,
    *,
    organization_name: str,
    email: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> dict:
    org = find_organization_by_name(db, organization_name)
    if not org:
        raise AuthError(INVALID_CREDENTIALS)

    user = db.execute(
        select(User)
        .where(User.email == normalize_email(email))
        .where(User.organization_id == org.id)
    ).scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        raise AuthError(INVALID_CREDENTIALS)

    result = issue_token(user)

    audit.record_safely(
        db,
        user_id=user.id,
        organization_id=user.organization_id,
        action=AuditAction.login,
        entity_type="User",
        entity_id=user.id,
        description=f'User "{user.name}" logged in',
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return result


def register_staff(
    db: Session,
    admin: User,
    *,
    email: str,
    password: str,
    name: str,
    role: UserRole = UserRole.staff,
) -> User:
    if admin.role is not UserRole.admin:
        raise AuthError("Only admins can register new users")

    email = normalize_email(email)
    exists = db.execute(
        select(User)
        .where(User.email == email)
        .where(User.organization_id == admin.organization_id)
    ).scalar_one_or_none()
    if exists:
        raise ConflictError("User with this email already exists in your organization")

    user = User(
        organization_id=admin.organization_id,
        email=email,
        name=name.strip(),
        password_hash=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    audit.record_safely(
        db,
        user_id=admin.id,
        organization_id=admin.organization_id,
        action=AuditAction.create,
        entity_type="User",
        entity_id=user.id,
        description=f'User "{user.name}" ({user.email}) registered as {user.role.value}',
    )
    return user


def validate_oauth_login(db: Session, profile: dict) -> dict:
    """
    Log in (or sign up) from a provider profile ``{email, name, provider}``.

    Unknown emails get a fresh organization with the user as ADMIN.
    """
    email = profile.get("email")
    if not email:
        raise AuthError("Email not provided by OAuth provider")
    email = normalize_email(email)
    name = (profile.get("name") or email.split("@")[0]).strip()
    provider = profile.get("provider", "oauth")

    user = db.execute(select(User).where(User.email == email)).scalars().first()
    if not user:
        org = Organization(name=f"{name}'s Organization {int(time.time() * 1000)}")
        db.add(org)
        db.flush()
        user = User(
            organization_id=org.id,
            email=email,
            name=name,
            # never used: social accounts log in through the provider
            password_hash=get_password_hash(secrets.token_urlsafe(32)),
            role=UserRole.admin,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("organization created from %s login: org=%s user=%s", provider, org.id, user.id)

    result = issue_token(user)

    audit.record_safely(
        db,
        user_id=user.id,
        organization_id=user.organization_id,
        action=AuditAction.login,
        entity_type="User",
        entity_id=user.id,
        description=f'User "{user.name}" logged in via OAuth ({provider})',
    )
    return result
