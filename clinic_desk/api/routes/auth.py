"""Auth routes - login page hint, login, token refresh, logout, session."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_desk.api.dependencies import get_current_user
from clinic_desk.core.auth import (
    REFRESH_COOKIE,
    clear_auth_cookies,
    create_access_token,
    create_refresh_token,
    decode_token,
    set_auth_cookies,
    verify_password,
)
from clinic_desk.core.database import get_db
from clinic_desk.core.models import StaffRole, StaffUser
from clinic_desk.core.repository import StaffRepository

router = APIRouter()

DASHBOARDS = {
    StaffRole.doctor.value: "/doctor-dashboard",
    StaffRole.receptionist.value: "/receptionist-dashboard",
}


# --- Request / Response schemas ---

class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    doctor_id: Optional[str]
    dashboard: str


def _session(user: StaffUser) -> SessionResponse:
    return SessionResponse(
        id=str(user.id),
        name=user.name,
        email=user.email,
        role=user.role,
        doctor_id=str(user.doctor_id) if user.doctor_id else None,
        dashboard=DASHBOARDS.get(user.role, "/"),
    )


# --- Endpoints ---

@router.get("/login")
async def login_page() -> dict:
    """Landing target for the dashboard redirect."""
    return {
        "login_required": True,
        "login_url": "/auth/login",
        "method": "POST",
    }


@router.post("/auth/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    user = await StaffRepository(db).get_active_by_email(body.email.strip().lower())

    if not user or not user.password_hash:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    access = create_access_token(str(user.id), user.role)
    refresh = create_refresh_token(str(user.id))
    set_auth_cookies(response, access, refresh)

    return _session(user)


@router.post("/auth/refresh", response_model=SessionResponse)
async def refresh(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Issue a fresh access/refresh pair from the refresh cookie."""
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="No refresh token")

    claims = decode_token(token)
    if not claims or claims.get("type") != "refresh" or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    try:
        uid = uuid.UUID(claims["sub"])
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = await StaffRepository(db).get_by_id(uid)
    if not user or not user.active:
        raise HTTPException(status_code=401, detail="User not found")

    set_auth_cookies(
        response,
        create_access_token(str(user.id), user.role),
        create_refresh_token(str(user.id)),
    )
    return _session(user)


@router.post("/auth/logout")
async def logout(response: Response) -> dict:
    clear_auth_cookies(response)
    return {"ok": True}


@router.get("/auth/session", response_model=SessionResponse)
async def current_session(
    current_user: StaffUser = Depends(get_current_user),
) -> SessionResponse:
    return _session(current_user)
