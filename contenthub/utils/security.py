"""
Security utilities and authentication
"""

import time
from collections import defaultdict
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from contenthub.core.config import settings
from contenthub.core.errors import AuthorizationError, RateLimitError
from contenthub.schemas import AuthUser

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer(auto_error=False)

SERVICE_ADMIN = AuthUser(id="service-admin", email="admin@localhost", user_metadata={"role": "admin"})

def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    """Extract the bearer token or fail with 401"""
    if credentials is None or not credentials.credentials:
        raise AuthorizationError("Missing authorization token")
    return credentials.credentials

def is_admin_token(token: str) -> bool:
    return bool(settings.ADMIN_TOKEN) and token == settings.ADMIN_TOKEN

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    # Check limit
    if len(rate_limiter[client_ip]) >= limit:
        return False

    # Add current request
    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request: Request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # Check for real IP header
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fall back to direct client IP
    return request.client.host if request.client else "unknown"

def enforce_rate_limit(request: Request) -> None:
    """Dependency for anonymous write endpoints"""
    if not rate_limit_check(get_client_ip(request)):
        raise RateLimitError()
