"""Per-call deadlines for provider requests."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

_T = TypeVar("_T")


@dataclass(frozen=True)
class Deadline:
    """Absolute point on the event-loop clock a call must finish by."""

    when: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        """Create a deadline ``seconds`` from now."""
        return cls(when=asyncio.get_running_loop().time() + seconds)

    def remaining(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self.when - asyncio.get_running_loop().time())

    def expired(self) -> bool:
        """Return True once the deadline has passed."""
        return self.remaining() == 0.0

    async def run(self, awaitable: Awaitable[_T]) -> _T:
        """Await within the deadline; the awaitable is cancelled on expiry."""
        async with asyncio.timeout_at(self.when):
            return await awaitable
