# backend/pulse/auth.py
# Sign-in happens upstream; requests arrive with the caller's role already resolved.
from fastapi import Header, HTTPException

from .models import UserRole

ROLE_HEADER = "X-Role"


def parse_role(role_str: str | None) -> UserRole | None:
    if not role_str:
        return None
    try:
        return UserRole(role_str.strip().lower())
    except Exception:
        raise HTTPException(
            status_code=400,
            detail="Invalid role. Use one of: bhw, admin.",
        )


def current_role(x_role: str | None = Header(default=None, alias=ROLE_HEADER)) -> UserRole:
    return parse_role(x_role) or UserRole.bhw


def require_admin(x_role: str | None = Header(default=None, alias=ROLE_HEADER)) -> UserRole:
    role = parse_role(x_role)
    if role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Admin privileges required.")
    return role
