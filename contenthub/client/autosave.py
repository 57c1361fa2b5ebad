"""
Debounced auto-save for the post editor
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from contenthub.core.errors import ContentHubError

logger = logging.getLogger(__name__)

SaveCallback = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class AutoSaver:
    """Saves edits to an existing post once typing pauses for ``delay`` seconds.

    Each schedule() replaces the pending save. Posts without an id are never
    auto-saved. close() drops the pending save without running it.
    """

    def __init__(self, save: SaveCallback, delay: float = 3.0):
        self._save = save
        self.delay = delay
        self._pending: Optional[asyncio.Task] = None
        self.last_error: Optional[ContentHubError] = None
        self.saves = 0

    @property
    def has_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def schedule(self, post_id: Optional[str], changes: Dict[str, Any]) -> bool:
        """Queue a save; returns False when there is nothing to auto-save into"""
        if not post_id:
            return False
        self._cancel()
        self._pending = asyncio.get_running_loop().create_task(self._save_later(post_id, dict(changes)))
        return True

    async def _save_later(self, post_id: str, changes: Dict[str, Any]) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self._save(post_id, changes)
        except ContentHubError as e:
            logger.warning(f"Auto-save of post {post_id} failed: {e.message}")
            self.last_error = e
            return
        self.last_error = None
        self.saves += 1

    async def close(self) -> None:
        task = self._pending
        self._cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _cancel(self) -> None:
        if self.has_pending:
            self._pending.cancel()
        self._pending = None
