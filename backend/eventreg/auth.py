# backend/eventreg/auth.py
"""Caller identity as resolved by the upstream auth gateway.

Credentials are never checked here: the gateway in front of this service
authenticates the user and forwards `X-User-Id` / `X-User-Role`. Operators
and the payment webhook relay use `X-Admin-Key`.
"""
import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status

from eventreg.errors import ValidationError
from eventreg.models import UserRole

ADMIN_KEY = os.getenv("ADMIN_KEY", "change_me_admin_key")

Role = UserRole


@dataclass(frozen=True)
class CallerIdentity:
    user_id: Optional[int]
    role: Role = Role.PARTICIPANT

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def parse_role(value: Optional[str]) -> Role:
    if not value:
        return Role.PARTICIPANT
    try:
        return Role(value.strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown role {value!r}. Must be one of: {', '.join(r.value for r in Role)}")


def get_caller(
    x_user_id: Optional[int] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_admin_key: Optional[str] = Header(None),
) -> Optional[CallerIdentity]:
    """Return the caller identity, or None for guests."""
    if x_admin_key is not None and x_admin_key == ADMIN_KEY:
        return CallerIdentity(user_id=x_user_id, role=Role.ADMIN)
    if x_user_id is None:
        return None
    return CallerIdentity(user_id=x_user_id, role=parse_role(x_user_role))


def require_admin(x_admin_key: Optional[str] = Header(None)):
    if x_admin_key is None or x_admin_key != ADMIN_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="admin auth required")
