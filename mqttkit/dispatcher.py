"""Connection dispatcher: decodes incoming frames, calls a service, writes responses in order."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from .errors import PeerDisconnected
from .items import (
    DecoderError,
    Disconnect,
    DispatcherError,
    DispatchItem,
    Item,
    KeepAliveTimeout,
    ResponseQueue,
)

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024


class _Stopped(Exception):
    """The dispatcher was asked to stop."""


class _KeepAliveExpired(Exception):
    """Nothing arrived within the keep-alive period."""


class Dispatcher:
    """Drives one connection over an asyncio stream pair.

    Incoming bytes are turned into frames by ``codec.decode`` and handed to
    ``service`` wrapped in :class:`~mqttkit.items.Item`. Service calls run
    concurrently, but their responses are written in the order the frames
    arrived; a ``None`` response writes nothing. Keep-alive expiry, decoder
    errors and disconnects are handed to the service as their own items and
    stop the dispatcher. A ``keepalive_timeout`` or ``disconnect_timeout`` of
    zero disables that timeout.

    The service may define ``ready()`` (awaited before each read) and
    ``shutdown(is_error)`` (called once the connection is closed).
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        codec: Any,
        service: Any,
        keepalive_timeout: float = 30.0,
        disconnect_timeout: float = 1.0,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._codec = codec
        self._service = service
        self.keepalive_timeout = keepalive_timeout
        self.disconnect_timeout = disconnect_timeout
        self._buffer = bytearray()
        self._queue = ResponseQueue(self._write)
        self._tasks: set[asyncio.Task[None]] = set()
        self._stop = asyncio.Event()
        self._deadline: float | None = None

    @property
    def error(self) -> DispatcherError | None:
        """Why the dispatcher stopped, if it stopped because of an error."""
        return self._queue.error

    def send(self, item: Any) -> None:
        """Encode ``item`` and write it to the peer."""
        if self._writer.is_closing():
            raise PeerDisconnected()
        self._writer.write(self._codec.encode(item))

    def close(self) -> None:
        """Ask the dispatcher to stop reading and close the connection."""
        self._stop.set()

    async def run(self) -> None:
        """Serve the connection until it ends.

        Raises the last error the service raised, if any.
        """
        self._touch_keepalive()
        await self._process()
        await self._drain()
        await self._shutdown_io()
        await self._shutdown_service()

        error = self._queue.error
        if error is not None and error.kind == DispatcherError.SERVICE:
            if isinstance(error.error, BaseException):
                raise error.error
            raise error

    def _write(self, item: Any) -> None:
        if self._writer.is_closing():
            logger.debug("peer is gone, dropping response")
            return
        self._writer.write(self._codec.encode(item))

    def _touch_keepalive(self) -> None:
        if self.keepalive_timeout > 0:
            loop = asyncio.get_running_loop()
            self._deadline = loop.time() + self.keepalive_timeout
        else:
            self._deadline = None

    async def _process(self) -> None:
        while True:
            if not await self._service_ready():
                return
            item, stop = await self._next_item()
            if item is not None:
                self._dispatch(item)
            if stop:
                return

    async def _service_ready(self) -> bool:
        ready = getattr(self._service, "ready", None)
        if ready is None:
            return True
        try:
            result = ready()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.debug("service readiness check failed, stopping")
            self._queue.error = DispatcherError(DispatcherError.SERVICE, exc)
            return False
        return True

    async def _next_item(self) -> tuple[DispatchItem | None, bool]:
        while True:
            try:
                frame = self._codec.decode(self._buffer)
            except Exception as exc:
                return DecoderError(exc), True
            if frame is not None:
                self._touch_keepalive()
                return Item(frame), False

            try:
                data = await self._read_chunk()
            except _Stopped:
                logger.debug("dispatcher is instructed to stop")
                return None, True
            except _KeepAliveExpired:
                logger.debug("keepalive timeout")
                if self._queue.error is None:
                    self._queue.error = DispatcherError(DispatcherError.KEEP_ALIVE)
                return KeepAliveTimeout(), True
            except OSError as exc:
                return Disconnect(exc), True
            if not data:
                return Disconnect(None), True
            self._buffer.extend(data)

    async def _read_chunk(self) -> bytes:
        if self._stop.is_set():
            raise _Stopped()
        timeout = None
        if self._deadline is not None:
            timeout = max(0.0, self._deadline - asyncio.get_running_loop().time())

        read = asyncio.ensure_future(self._reader.read(READ_SIZE))
        stop = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait(
                {read, stop}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (read, stop):
                if not task.done():
                    task.cancel()
            await asyncio.gather(read, stop, return_exceptions=True)

        if read in done and not read.cancelled():
            return read.result()
        if stop in done:
            raise _Stopped()
        raise _KeepAliveExpired()

    def _dispatch(self, item: DispatchItem) -> None:
        index = self._queue.reserve()
        task = asyncio.ensure_future(self._call(index, item))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _call(self, index: int, item: DispatchItem) -> None:
        try:
            result = self._service(item)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._queue.fail(index, exc)
        else:
            self._queue.complete(index, result)

    async def _drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _shutdown_io(self) -> None:
        timeout = self.disconnect_timeout if self.disconnect_timeout > 0 else None
        writer = self._writer
        try:
            if not writer.is_closing():
                await asyncio.wait_for(writer.drain(), timeout)
        except (OSError, asyncio.TimeoutError):
            pass
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout)
        except (OSError, asyncio.TimeoutError):
            pass
        logger.debug("io shutdown completed")

    async def _shutdown_service(self) -> None:
        shutdown = getattr(self._service, "shutdown", None)
        if shutdown is None:
            return
        result = shutdown(self._queue.error is not None)
        if inspect.isawaitable(result):
            await result
        logger.debug("service shutdown is completed, stop")