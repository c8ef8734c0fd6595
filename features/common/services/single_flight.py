import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

class FetchCoordinator(Generic[T]):
    """Coalesces concurrent refresh requests into one in-flight fetch.

    While a fetch runs, later callers queue a result slot instead of
    starting another one. When the fetch finishes, the slot list is
    detached and every slot is resolved with the same outcome in the order
    the callers arrived. A failure is delivered the same way and the next
    caller starts a fresh attempt.

    State changes happen on the event loop without awaiting in between,
    so IDLE -> IN_FLIGHT and the drain back to IDLE are each atomic.
    """

    def __init__(self, name: str = "fetch"):
        self.name = name
        self._waiters: Optional[List[asyncio.Future]] = None  # None while idle
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._waiters is not None

    @property
    def waiter_count(self) -> int:
        return len(self._waiters) if self._waiters else 0

    async def ensure_fresh(self, trigger: Callable[[], Awaitable[T]]) -> T:
        """Run `trigger` unless a run is already in flight, then wait for its outcome."""
        loop = asyncio.get_running_loop()
        slot: asyncio.Future = loop.create_future()

        if self._waiters is None:
            self._waiters = [slot]
            logger.info(f"🔄 Starting {self.name}")
            self._task = asyncio.create_task(self._run(trigger))
        else:
            self._waiters.append(slot)
            logger.debug(f"{self.name} already in flight, queued waiter #{len(self._waiters)}")

        return await slot

    async def _run(self, trigger: Callable[[], Awaitable[T]]) -> None:
        try:
            result = await trigger()
        except asyncio.CancelledError:
            self._drain(cancelled=True)
            raise
        except Exception as e:
            logger.error(f"❌ {self.name} failed: {str(e)}")
            self._drain(error=e)
        else:
            self._drain(result=result)

    def _drain(
        self,
        result: Optional[T] = None,
        error: Optional[Exception] = None,
        cancelled: bool = False
    ) -> None:
        """Detach the waiter list, go idle, then resolve waiters in FIFO order."""
        waiters, self._waiters = self._waiters or [], None
        self._task = None

        logger.debug(f"Resolving {len(waiters)} waiters for {self.name}")
        for slot in waiters:
            # Callers that gave up waiting have already cancelled their slot
            if slot.done():
                continue
            if cancelled:
                slot.cancel()
            elif error is not None:
                slot.set_exception(error)
            else:
                slot.set_result(result)

    async def close(self) -> None:
        """Cancel an in-flight run, cancelling its waiters."""
        task = self._task
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        # A run cancelled before it started never reached its own drain
        if self._waiters is not None:
            self._drain(cancelled=True)
