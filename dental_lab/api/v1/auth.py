"""
Authentication API endpoints.
"""
from fastapi import APIRouter, Depends, status

from dental_lab.dependencies import get_auth_service, get_token_identity
from dental_lab.schemas.auth import (
    AuthTokens, CurrentUser, ForgotPasswordRequest, LoginRequest, RefreshTokenRequest,
    RegisterRequest, ResetPasswordRequest, UpdatePasswordRequest
)
from dental_lab.schemas.common import ApiResponse
from dental_lab.services.auth_service import AuthService
from dental_lab.services.token_service import TokenIdentity

router = APIRouter()


@router.post("/register", response_model=ApiResponse[AuthTokens], status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Register a new user account."""
    tokens = auth_service.register(payload)
    return ApiResponse(data=tokens, message="User registered successfully")


@router.post("/login", response_model=ApiResponse[AuthTokens])
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Authenticate with email and password."""
    tokens = auth_service.login(payload.email, payload.password)
    return ApiResponse(data=tokens, message="Login successful")


@router.post("/refresh-token", response_model=ApiResponse[AuthTokens])
async def refresh_token(
    payload: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Exchange a refresh token for a new token pair."""
    tokens = auth_service.refresh_token(payload.refresh_token)
    return ApiResponse(data=tokens, message="Token refreshed successfully")


@router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(
    payload: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    message = auth_service.forgot_password(payload.email)
    return ApiResponse(message=message)


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(
    payload: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.reset_password_with_token(payload.token, payload.new_password)
    return ApiResponse(message="Password reset successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    identity: TokenIdentity = Depends(get_token_identity),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Revoke every refresh session of the current user."""
    auth_service.logout(identity.id)
    return ApiResponse(message="Logged out successfully")


@router.post("/update-password", response_model=ApiResponse[None])
async def update_password(
    payload: UpdatePasswordRequest,
    identity: TokenIdentity = Depends(get_token_identity),
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.update_password(identity.id, payload.old_password, payload.new_password)
    return ApiResponse(message="Password updated successfully")


@router.get("/me", response_model=ApiResponse[CurrentUser])
async def get_me(
    identity: TokenIdentity = Depends(get_token_identity),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Get current user information."""
    user = auth_service.get_current_user(identity.id)
    return ApiResponse(data=CurrentUser.model_validate(user))
