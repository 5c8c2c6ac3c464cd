from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.cache import Cache, get_cache
from app.core.database import get_db
from app.core.rate_limit import client_ip, login_rate_limiter
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.auth import (
    AuthResult,
    ChangePasswordRequest,
    CurrentUserOut,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPairOut,
)
from app.schemas.common import Envelope, MessageResponse
from app.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(cache: Cache = Depends(get_cache)) -> AuthService:
    return AuthService(cache)


@router.post("/register", response_model=Envelope[AuthResult], status_code=201)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> Envelope[AuthResult]:
    return Envelope[AuthResult](message="Registration successful", data=service.register(db, payload))


@router.post("/login", response_model=Envelope[AuthResult])
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    service: AuthService = Depends(get_auth_service),
) -> Envelope[AuthResult]:
    login_rate_limiter.hit(cache, f"{client_ip(request)}-{payload.email}")
    return Envelope[AuthResult](message="Login successful", data=service.login(db, payload))


@router.post("/refresh", response_model=Envelope[TokenPairOut])
def refresh_tokens(
    payload: RefreshRequest,
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> Envelope[TokenPairOut]:
    tokens = service.refresh_token(db, payload.refresh_token)
    return Envelope[TokenPairOut](
        data=TokenPairOut(access_token=tokens.access_token, refresh_token=tokens.refresh_token)
    )


@router.get("/me", response_model=Envelope[CurrentUserOut])
def me(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> Envelope[CurrentUserOut]:
    return Envelope[CurrentUserOut](data=service.get_current_user(db, user.id))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.change_password(db, user.id, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(
    payload: LogoutRequest,
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.logout(user.id, payload.refresh_token)
    return MessageResponse(message="Logged out successfully")
