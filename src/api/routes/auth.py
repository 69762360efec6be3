"""
Account endpoints
=================

POST  /api/v1/auth/register        -- create an account, returns a session token
POST  /api/v1/auth/login           -- exchange credentials for a session token
POST  /api/v1/auth/logout          -- revoke the current token
GET   /api/v1/auth/me              -- current user
PATCH /api/v1/auth/me              -- update profile / contact channels
POST  /api/v1/auth/reset-password  -- change password (requires current one)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials

from src.api.dependencies import (
    bearer,
    get_account_service,
    get_current_user,
    get_session_store,
)
from src.api.middleware import limiter
from src.api.schemas import (
    LoginRequest,
    PasswordResetRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from src.domain.accounts import AccountService
from src.domain.entities import User
from src.infrastructure.sessions import SessionStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201, response_model=TokenResponse)
@limiter.limit("10/minute")
async def register(
    request: Request,
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionStore = Depends(get_session_store),
):
    user = await accounts.register(**body.model_dump())
    token = await sessions.create(user.id)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionStore = Depends(get_session_store),
):
    user = await accounts.authenticate(body.username, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    token = await sessions.create(user.id)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout", status_code=204)
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    sessions: SessionStore = Depends(get_session_store),
):
    if credentials is not None:
        await sessions.revoke(credentials.credentials)
    return Response(status_code=204)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    updated = await accounts.update_profile(
        user.id, body.model_dump(exclude_unset=True)
    )
    return UserResponse.model_validate(updated)


@router.post("/reset-password", status_code=204)
@limiter.limit("10/minute")
async def reset_password(
    request: Request,
    body: PasswordResetRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.change_password(user.id, body.current_password, body.new_password)
    return Response(status_code=204)
