"""Service wrapper that limits the number and total size of in-flight requests."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class InFlightService:
    """Wraps an async service and caps concurrent requests.

    ``max_cap`` limits how many requests run at once and ``max_size`` the
    total of ``size_of(request)`` over running requests; zero disables a limit.
    The wrapped ``service`` is an async callable; optional ``is_ready``,
    ``ready`` and ``shutdown`` members on it are honoured.
    """

    def __init__(
        self,
        max_cap: int,
        max_size: int,
        service: Callable[[Any], Awaitable[Any]],
        size_of: Callable[[Any], int] | None = None,
    ) -> None:
        self.max_cap = max_cap
        self.max_size = max_size
        self.service = service
        self.size_of = size_of
        self._cur_cap = 0
        self._cur_size = 0
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def in_flight(self) -> int:
        return self._cur_cap

    @property
    def in_flight_size(self) -> int:
        return self._cur_size

    def _available(self) -> bool:
        return (self.max_cap == 0 or self._cur_cap < self.max_cap) and (
            self.max_size == 0 or self._cur_size <= self.max_size
        )

    def is_ready(self) -> bool:
        """Whether a new request may be started right now."""
        service_ready = getattr(self.service, "is_ready", None)
        if service_ready is not None and not service_ready():
            return False
        if not self._available():
            logger.debug("InFlight limit exceeded")
            return False
        return True

    async def ready(self) -> None:
        """Wait until a new request may be started."""
        service_ready = getattr(self.service, "ready", None)
        if service_ready is not None:
            result = service_ready()
            if inspect.isawaitable(result):
                await result
        while not self._available():
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            finally:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)

    def call(self, request: Any) -> asyncio.Task[Any]:
        """Start handling ``request``; its capacity is reserved at once.

        Returns a task resolving to the service's response.
        """
        size = self.size_of(request) if self.max_size > 0 and self.size_of else 0
        self._cur_cap += 1
        self._cur_size += size
        return asyncio.ensure_future(self._run(request, size))

    async def _run(self, request: Any, size: int) -> Any:
        try:
            return await self.service(request)
        finally:
            self._release(size)

    def _release(self, size: int) -> None:
        self._cur_cap -= 1
        self._cur_size -= size
        if self._available():
            waiters, self._waiters = self._waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)

    async def shutdown(self, is_error: bool = False) -> None:
        """Shut the wrapped service down."""
        service_shutdown = getattr(self.service, "shutdown", None)
        if service_shutdown is not None:
            result = service_shutdown(is_error)
            if inspect.isawaitable(result):
                await result