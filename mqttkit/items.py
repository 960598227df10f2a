"""Items handed to connection services, a plain bytes codec, and in-order response queueing."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from .errors import EncodeError


class DispatchItem:
    """Base class of everything a dispatcher hands to its service."""

    __slots__ = ()


@dataclass(frozen=True)
class Item(DispatchItem):
    """A decoded frame received from the peer."""

    item: Any


@dataclass(frozen=True)
class KeepAliveTimeout(DispatchItem):
    """Nothing was received from the peer within the keep-alive period."""


@dataclass(frozen=True)
class DecoderError(DispatchItem):
    """The incoming byte stream could not be decoded."""

    error: Exception


@dataclass(frozen=True)
class Disconnect(DispatchItem):
    """The peer is gone; ``error`` holds the I/O error, if any."""

    error: OSError | None = None


class BytesCodec:
    """Codec that passes raw bytes through unchanged."""

    def decode(self, buffer: bytearray) -> bytes | None:
        """Take every buffered byte as one frame, or return ``None`` if there are none."""
        if not buffer:
            return None
        data = bytes(buffer)
        del buffer[:]
        return data

    def encode(self, item: bytes | bytearray | memoryview) -> bytes:
        """Return the wire form of ``item``, which is the bytes themselves."""
        return bytes(item)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BytesCodec)

    def __hash__(self) -> int:
        return hash(BytesCodec)


class DispatcherError(Exception):
    """Why a dispatcher stopped: keep-alive expiry, an encoder error or a service error."""

    KEEP_ALIVE = "keep_alive"
    ENCODER = "encoder"
    SERVICE = "service"

    _KINDS = (KEEP_ALIVE, ENCODER, SERVICE)

    def __init__(self, kind: str, error: Any = None) -> None:
        if kind not in self._KINDS:
            raise ValueError(f"unknown dispatcher error kind: {kind!r}")
        super().__init__(kind, error)
        self.kind = kind
        self.error = error

    def __str__(self) -> str:
        if self.kind == self.KEEP_ALIVE:
            return "Keep-alive timeout"
        if self.kind == self.ENCODER:
            return f"Encoder error: {self.error}"
        return f"Service error: {self.error!r}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DispatcherError):
            return NotImplemented
        return self.kind == other.kind and self.error == other.error

    def __hash__(self) -> int:
        return hash((DispatcherError, self.kind))


_PENDING = object()


@dataclass(frozen=True)
class _Outcome:
    value: Any
    failed: bool = False


class ResponseQueue:
    """Writes service responses in the order their requests arrived.

    Each request reserves a slot; responses that finish early wait until every
    earlier slot is settled. ``write`` receives each non-``None`` response; an
    :class:`EncodeError` it raises is recorded in ``error``, as is any service
    failure, the latest one winning.
    """

    def __init__(self, write: Callable[[Any], Any]) -> None:
        self._write = write
        self._base = 0
        self._slots: deque[Any] = deque()
        self.error: DispatcherError | None = None

    def reserve(self) -> int:
        """Reserve the next slot and return its index."""
        index = self._base + len(self._slots)
        self._slots.append(_PENDING)
        return index

    def complete(self, index: int, result: Any) -> None:
        """Settle slot ``index`` with a response; ``None`` means nothing to write."""
        self._settle(index, _Outcome(result))

    def fail(self, index: int, error: Any) -> None:
        """Settle slot ``index`` with a service error."""
        self._settle(index, _Outcome(error, failed=True))

    def is_empty(self) -> bool:
        """Whether no reserved slot is waiting to be written."""
        return not self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def _settle(self, index: int, outcome: _Outcome) -> None:
        offset = index - self._base
        if not 0 <= offset < len(self._slots):
            raise IndexError(f"no reserved response slot {index}")
        if self._slots[offset] is not _PENDING:
            raise ValueError(f"response slot {index} is already settled")
        self._slots[offset] = outcome
        while self._slots and self._slots[0] is not _PENDING:
            ready = self._slots.popleft()
            self._base += 1
            self._apply(ready)

    def _apply(self, outcome: _Outcome) -> None:
        if outcome.failed:
            self.error = DispatcherError(DispatcherError.SERVICE, outcome.value)
            return
        if outcome.value is None:
            return
        try:
            self._write(outcome.value)
        except EncodeError as exc:
            self.error = DispatcherError(DispatcherError.ENCODER, exc)