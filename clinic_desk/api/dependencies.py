"""FastAPI auth dependencies - cookie JWT + API key dual-auth."""

from __future__ import annotations

import hmac
import uuid

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.config import get_settings
from clinic_desk.core.auth import ACCESS_COOKIE, decode_token
from clinic_desk.core.database import get_db
from clinic_desk.core.models import StaffRole, StaffUser


async def _load_active(db: AsyncSession, user_id: uuid.UUID) -> StaffUser | None:
    result = await db.execute(
        select(StaffUser).where(StaffUser.id == user_id, StaffUser.active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> StaffUser:
    """Resolve the authenticated staff user.

    Priority:
    1. clinic_access cookie → decode JWT → load StaffUser
    2. API key (Bearer / X-API-Key) + X-Staff-Id header → load StaffUser
    3. Raise 401
    """
    # --- Path 1: JWT cookie ---
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        claims = decode_token(token)
        if claims and claims.get("type") == "access":
            user_id = claims.get("sub")
            if user_id:
                try:
                    uid = uuid.UUID(user_id)
                except ValueError:
                    raise HTTPException(status_code=401, detail="Invalid token subject")
                user = await _load_active(db, uid)
                if user:
                    return user

    # --- Path 2: API key ---
    settings = get_settings()
    if settings.has_api_key:
        auth_header = request.headers.get("Authorization")
        api_key_header = request.headers.get("X-API-Key")

        provided_key = None
        if auth_header and auth_header.startswith("Bearer "):
            provided_key = auth_header[7:]
        elif api_key_header:
            provided_key = api_key_header

        if provided_key and hmac.compare_digest(provided_key, settings.api_key):
            # Machine client must say which staff account it acts as
            staff_id_str = request.headers.get("X-Staff-Id")
            if not staff_id_str:
                raise HTTPException(status_code=400, detail="X-Staff-Id header required")
            try:
                uid = uuid.UUID(staff_id_str)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid X-Staff-Id")
            user = await _load_active(db, uid)
            if user:
                return user

    raise HTTPException(status_code=401, detail="Not authenticated")


async def require_doctor(
    current_user: StaffUser = Depends(get_current_user),
) -> StaffUser:
    """Require a doctor account linked to a doctor profile."""
    if current_user.role != StaffRole.doctor.value:
        raise HTTPException(status_code=403, detail="Doctor access required")
    if current_user.doctor_id is None:
        raise HTTPException(status_code=403, detail="No doctor profile linked to this account")
    return current_user


async def require_staff(
    current_user: StaffUser = Depends(get_current_user),
) -> StaffUser:
    """Require a receptionist or doctor account."""
    if current_user.role not in (StaffRole.receptionist.value, StaffRole.doctor.value):
        raise HTTPException(status_code=403, detail="Staff access required")
    return current_user
