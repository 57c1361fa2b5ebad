"""
Authentication API routes
"""

from fastapi import APIRouter, Depends

from contenthub.api.deps import get_auth_provider, get_current_user
from contenthub.schemas import (
    AuthUser,
    RefreshRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
    UpdateUserRequest,
)
from contenthub.services.auth_service import AuthProvider
from contenthub.utils.responses import success_response
from contenthub.utils.security import enforce_rate_limit, get_bearer_token, is_admin_token

router = APIRouter()

@router.post("/signup", dependencies=[Depends(enforce_rate_limit)])
async def sign_up(
    payload: SignUpRequest,
    auth: AuthProvider = Depends(get_auth_provider)
):
    """Create a user account"""
    user = auth.sign_up(
        payload.email,
        payload.password,
        {"name": payload.name, "role": payload.role},
    )
    return success_response(
        message="User created successfully",
        data={"user": user},
        status_code=201
    )

@router.post("/auth/login")
async def login(
    payload: SignInRequest,
    auth: AuthProvider = Depends(get_auth_provider)
):
    """Sign in with email and password"""
    session = auth.sign_in_with_password(payload.email, payload.password)
    return success_response(message="Signed in", data=session)

@router.post("/auth/refresh")
async def refresh(
    payload: RefreshRequest,
    auth: AuthProvider = Depends(get_auth_provider)
):
    session = auth.refresh_session(payload.refresh_token)
    return success_response(message="Session refreshed", data=session)

@router.post("/auth/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    user: AuthUser = Depends(get_current_user),
    auth: AuthProvider = Depends(get_auth_provider)
):
    """Invalidate the caller's sessions"""
    if not is_admin_token(token):
        auth.sign_out(token)
    return success_response(message="Signed out")

@router.post("/auth/reset-password")
async def reset_password(
    payload: ResetPasswordRequest,
    auth: AuthProvider = Depends(get_auth_provider)
):
    """Send a password reset link; the answer does not reveal whether the address exists"""
    auth.reset_password_for_email(payload.email, payload.redirect_to)
    return success_response(message="If the address is registered, a reset link has been sent")

@router.get("/auth/user")
async def read_user(user: AuthUser = Depends(get_current_user)):
    return success_response(message="User retrieved", data={"user": user})

@router.put("/auth/user")
async def update_user(
    payload: UpdateUserRequest,
    token: str = Depends(get_bearer_token),
    user: AuthUser = Depends(get_current_user),
    auth: AuthProvider = Depends(get_auth_provider)
):
    if is_admin_token(token):
        return success_response(message="User updated", data={"user": user})
    updated = auth.update_user(token, data=payload.data, password=payload.password)
    return success_response(message="User updated", data={"user": updated})
