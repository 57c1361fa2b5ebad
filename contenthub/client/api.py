"""
HTTP client for the ContentHub API.

Unwraps the {"success", "message", "data"} envelope and turns error
envelopes back into ContentHubError subclasses.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from contenthub.core.errors import (
    AuthorizationError,
    CapacityError,
    CheckInWindowError,
    ContentHubError,
    EventCapacityExceeded,
    NotFoundError,
    RateLimitError,
    RegistrationClosedError,
    StorageError,
    TicketCapacityExceeded,
    TicketUnavailable,
    UpstreamError,
    ValidationError,
)
from contenthub.schemas import AuthSession, AuthUser, BlogPost

logger = logging.getLogger(__name__)

_CONFLICTS = {
    "ticket_unavailable": TicketUnavailable,
    "ticket_capacity_exceeded": TicketCapacityExceeded,
    "event_capacity_exceeded": EventCapacityExceeded,
    "registration_closed": RegistrationClosedError,
    "check_in_unavailable": CheckInWindowError,
}


def error_from_response(status_code: int, body: Dict[str, Any]) -> ContentHubError:
    """Rebuild the server-side error from an error envelope"""
    message = body.get("error") or f"Request failed with status {status_code}"
    code = body.get("error_code")
    details = body.get("details")

    if status_code == 401:
        return AuthorizationError(message, code=code, details=details)
    if status_code == 404:
        resource = message[:-len(" not found")] if message.endswith(" not found") else "Resource"
        return NotFoundError(resource)
    if status_code == 422:
        field = details.get("field") if isinstance(details, dict) else None
        return ValidationError(message, field=field, code=code)
    if status_code == 409:
        return _CONFLICTS.get(code, CapacityError)(message, details=details)
    if status_code == 429:
        return RateLimitError(message)
    if code == "storage_error":
        return StorageError(message, details=details)

    error = ContentHubError(message, code=code, details=details)
    error.status_code = status_code
    return error


class ContentHubClient:
    """Async client for auth and post calls"""

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    def set_access_token(self, access_token: Optional[str]) -> None:
        self.access_token = access_token

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} could not reach the server: {e!r}")
            raise UpstreamError("Could not reach the server") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            error = error_from_response(response.status_code, body if isinstance(body, dict) else {})
            logger.debug(f"{method} {path} failed: {response.status_code} {error.message}")
            raise error
        return body.get("data") if isinstance(body, dict) else body

    @staticmethod
    def _parse(model, data):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise UpstreamError("Unexpected response from the server") from e

    # -------- Auth --------

    async def sign_up(self, email: str, password: str, name: str = "", role: str = "editor") -> AuthUser:
        data = await self._request("POST", "/signup", json={
            "email": email, "password": password, "name": name, "role": role,
        })
        return self._parse(AuthUser, (data or {}).get("user"))

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._parse(AuthSession, data)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        data = await self._request("POST", "/auth/refresh", json={"refresh_token": refresh_token})
        return self._parse(AuthSession, data)

    async def sign_out(self) -> None:
        await self._request("POST", "/auth/logout")

    async def get_user(self) -> AuthUser:
        data = await self._request("GET", "/auth/user")
        return self._parse(AuthUser, (data or {}).get("user"))

    # -------- Posts --------

    async def list_posts(self) -> List[BlogPost]:
        data = await self._request("GET", "/posts")
        return [self._parse(BlogPost, p) for p in data or []]

    async def get_post(self, slug: str) -> BlogPost:
        return self._parse(BlogPost, await self._request("GET", f"/posts/{slug}"))

    async def create_post(self, post: Dict[str, Any]) -> BlogPost:
        return self._parse(BlogPost, await self._request("POST", "/posts", json=post))

    async def update_post(self, post_id: str, changes: Dict[str, Any]) -> BlogPost:
        return self._parse(BlogPost, await self._request("PUT", f"/posts/{post_id}", json=changes))

    async def delete_post(self, post_id: str) -> None:
        await self._request("DELETE", f"/posts/{post_id}")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
