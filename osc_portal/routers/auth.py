"""Authentication router — register, login, logout and the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.response import DataResponse
from osc_portal.core.security import Principal, get_current_user, get_principal
from osc_portal.db.base import get_db
from osc_portal.domain.user import User
from osc_portal.schemas.auth import LoginRequest, RegisterRequest, TokenOut, UserOut
from osc_portal.services.auth import AuthService

router = APIRouter(tags=["Auth"])


def _svc(session: AsyncSession) -> AuthService:
    return AuthService(session)


@router.post(
    "/auth/register",
    response_model=DataResponse[TokenOut],
    status_code=status.HTTP_201_CREATED,
)
async def register(body: RegisterRequest, session: AsyncSession = Depends(get_db)):
    """Create an applicant account (unverified) and return a bearer token."""
    user, token = await _svc(session).register(
        name=body.name, email=body.email, password=body.password, ic_no=body.ic_no
    )
    return {
        "data": TokenOut(user=UserOut.model_validate(user), token=token),
        "message": "Registration successful",
    }


@router.post("/auth/login", response_model=DataResponse[TokenOut])
async def login(body: LoginRequest, session: AsyncSession = Depends(get_db)):
    user, token = await _svc(session).login(body.email, body.password)
    return {
        "data": TokenOut(user=UserOut.model_validate(user), token=token),
        "message": "Login successful",
    }


@router.post("/auth/logout", response_model=DataResponse[None])
async def logout(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_db),
):
    """Revoke the token used for this request."""
    await _svc(session).logout(principal.user, principal.jti)
    return {"data": None, "message": "Logged out successfully"}


@router.get("/user", response_model=DataResponse[UserOut])
async def current_user(user: User = Depends(get_current_user)):
    return {"data": UserOut.model_validate(user)}
