"""
Cooperative cancellation for in-flight requests.
"""

import asyncio
from typing import Optional


class CancelToken:
    """
    One-shot cancellation signal shared between a caller and the executor.

    The underlying event is created lazily so a token can be built outside
    a running loop.
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "Request cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancelToken({state})"
