"""Best-effort writes that run after the primary response.

Handlers return ``DeferredWrite`` objects next to their result instead of
firing background tasks themselves. The HTTP layer schedules them; tests can
run them inline. A failing deferred write is logged and never re-raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class DeferredWrite:
    """A named coroutine factory for one best-effort write."""

    name: str
    func: Callable[[], Awaitable[Any]]
    details: Dict[str, Any] = field(default_factory=dict)

    async def run(self) -> bool:
        """Execute the write. Returns False (after logging) if it failed."""
        try:
            await self.func()
        except Exception as e:
            logger.warning(
                f"Deferred write '{self.name}' failed: {e}",
                extra={"deferred_write": self.name, **self.details},
                exc_info=True,
            )
            return False
        return True


async def run_deferred(writes: List[DeferredWrite]) -> int:
    """Run writes in order; returns how many succeeded."""
    succeeded = 0
    for write in writes:
        if await write.run():
            succeeded += 1
    return succeeded
