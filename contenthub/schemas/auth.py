"""
Authentication request and session schemas
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, EmailStr, Field

class AuthUser(BaseModel):
    id: str
    email: str
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

class AuthSession(BaseModel):
    """Issued session; expires_at is epoch seconds"""
    access_token: str
    refresh_token: str
    expires_at: int
    token_type: str = "bearer"
    user: AuthUser

class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = ""
    role: str = "editor"

class SignInRequest(BaseModel):
    email: EmailStr
    password: str

class RefreshRequest(BaseModel):
    refresh_token: str

class ResetPasswordRequest(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None

class UpdateUserRequest(BaseModel):
    data: Optional[Dict[str, Any]] = None
    password: Optional[str] = Field(None, min_length=6)
