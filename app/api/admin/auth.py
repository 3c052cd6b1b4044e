import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_admin
from app.core.errors import ApiError, ValidationError
from app.core.security import create_jwt, parse_ttl, verify_password
from app.db.session import get_db
from app.models.common import utcnow
from app.schemas.admin import AdminLogin, AdminOut, AdminToken
from app.services.admin_bootstrap import ensure_bootstrap_admin, get_active_admin_by_email

router = APIRouter()
_LOG = logging.getLogger("app.auth")


class InvalidCredentials(ApiError):
    status_code = 401
    default_message = "Invalid credentials"


@router.post("/login", response_model=AdminToken)
def login(payload: AdminLogin, db: Session = Depends(get_db)):
    if not payload.username or not payload.password:
        raise ValidationError("Email and password are required")

    ensure_bootstrap_admin(db)
    admin = get_active_admin_by_email(db, payload.username)
    if not admin or not verify_password(payload.password, admin.password_hash):
        _LOG.info("login rejected email=%s", payload.username)
        raise InvalidCredentials()

    admin.last_login_at = utcnow()
    db.add(admin)
    db.commit()

    token = create_jwt(
        {
            "sub": str(admin.id),
            "adminId": admin.id,
            "email": admin.email,
            "firstName": admin.first_name,
            "lastName": admin.last_name,
            "role": admin.role,
        },
        settings.JWT_SECRET,
        parse_ttl(settings.JWT_EXPIRE),
    )
    return AdminToken(
        token=token,
        admin=AdminOut(
            id=admin.id,
            first_name=admin.first_name,
            last_name=admin.last_name,
            email=admin.email,
            role=admin.role,
            status=admin.status,
        ),
    )


@router.get("/verify")
def verify(admin: dict = Depends(get_current_admin)):
    return {"success": True, "message": "Token is valid", "admin": admin}
