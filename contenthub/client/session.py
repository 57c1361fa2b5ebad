"""
Client-side session lifecycle: refresh ahead of expiry, sign out on failure
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from contenthub.client.api import ContentHubClient
from contenthub.core.errors import ContentHubError
from contenthub.schemas import AuthSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Holds the current session and keeps it fresh.

    A refresh is scheduled REFRESH_MARGIN seconds before ``expires_at``. If
    the refresh fails the session is dropped and ``on_signed_out`` is called.
    The scheduled refresh must be cancelled with ``close()``.
    """

    REFRESH_MARGIN = 5 * 60

    def __init__(
        self,
        client: ContentHubClient,
        on_signed_out: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.on_signed_out = on_signed_out
        self.clock = clock
        self.session: Optional[AuthSession] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def is_signed_in(self) -> bool:
        return self.session is not None

    def refresh_delay(self) -> float:
        """Seconds until the scheduled refresh (0 when already due)"""
        if self.session is None:
            return 0.0
        return max(self.session.expires_at - self.REFRESH_MARGIN - self.clock(), 0.0)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        session = await self.client.sign_in(email, password)
        self.start(session)
        return session

    def start(self, session: AuthSession) -> None:
        """Adopt a session and schedule its refresh; must run inside the event loop"""
        self.session = session
        self.client.set_access_token(session.access_token)
        self._cancel_refresh()
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_later(self.refresh_delay()))

    async def _refresh_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.refresh()

    async def refresh(self) -> Optional[AuthSession]:
        if self.session is None:
            return None
        try:
            session = await self.client.refresh_session(self.session.refresh_token)
        except ContentHubError as e:
            logger.warning(f"Session refresh failed, signing out: {e.message}")
            self._clear()
            return None
        self.start(session)
        return session

    async def sign_out(self) -> None:
        self._cancel_refresh()
        if self.session is not None:
            try:
                await self.client.sign_out()
            finally:
                self._clear()

    async def close(self) -> None:
        """Stop the refresh timer without touching the session"""
        task = self._refresh_task
        self._cancel_refresh()
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _cancel_refresh(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _clear(self) -> None:
        self._cancel_refresh()
        self.session = None
        self.client.set_access_token(None)
        if self.on_signed_out is not None:
            self.on_signed_out()
