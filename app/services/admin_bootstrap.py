from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.models.admin import Admin

_LOG = logging.getLogger("app.auth")


def normalize_admin_email(raw: str | None) -> str:
    return str(raw or "").strip().lower()


def get_active_admin_by_email(db: Session, email: str) -> Admin | None:
    normalized = normalize_admin_email(email)
    if not normalized:
        return None
    return (
        db.query(Admin)
        .filter(func.lower(Admin.email) == normalized, Admin.status == "active")
        .first()
    )


def ensure_bootstrap_admin(db: Session) -> Admin | None:
    """Create the default super admin when the admins table is empty."""
    if not settings.ADMIN_BOOTSTRAP_ENABLED:
        return None
    if db.query(func.count(Admin.id)).scalar():
        return None

    admin = Admin(
        first_name=settings.ADMIN_BOOTSTRAP_FIRST_NAME,
        last_name=settings.ADMIN_BOOTSTRAP_LAST_NAME,
        email=normalize_admin_email(settings.ADMIN_BOOTSTRAP_EMAIL),
        password_hash=hash_password(settings.ADMIN_BOOTSTRAP_PASSWORD),
        role="super_admin",
        status="active",
    )
    db.add(admin)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return get_active_admin_by_email(db, settings.ADMIN_BOOTSTRAP_EMAIL)
    db.refresh(admin)
    _LOG.info("default admin created email=%s", admin.email)
    return admin
