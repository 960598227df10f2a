"""Error types raised while handling MQTT connections."""

from __future__ import annotations

import enum
from typing import Any


class DecodeErrorKind(enum.Enum):
    """Reasons a packet could not be decoded."""

    INVALID_PROTOCOL = "InvalidProtocol"
    INVALID_LENGTH = "InvalidLength"
    MALFORMED_PACKET = "MalformedPacket"
    UNSUPPORTED_PROTOCOL_LEVEL = "UnsupportedProtocolLevel"
    CONNECT_RESERVED_FLAG_SET = "ConnectReservedFlagSet"
    CONNACK_RESERVED_FLAG_SET = "ConnAckReservedFlagSet"
    INVALID_CLIENT_ID = "InvalidClientId"
    UNSUPPORTED_PACKET_TYPE = "UnsupportedPacketType"
    PACKET_ID_REQUIRED = "PacketIdRequired"
    MAX_SIZE_EXCEEDED = "MaxSizeExceeded"
    UTF8_ERROR = "Utf8Error"


class EncodeErrorKind(enum.Enum):
    """Reasons a packet could not be encoded."""

    INVALID_LENGTH = "InvalidLength"
    MALFORMED_PACKET = "MalformedPacket"
    PACKET_ID_REQUIRED = "PacketIdRequired"
    UNSUPPORTED_VERSION = "UnsupportedVersion"


class ProtocolErrorKind(enum.Enum):
    """Categories of protocol level errors."""

    DECODE = "decode"
    ENCODE = "encode"
    UNEXPECTED = "unexpected"
    PACKET_ID_MISMATCH = "packet_id_mismatch"
    MAX_TOPIC_ALIAS = "max_topic_alias"
    RECEIVE_MAXIMUM_EXCEEDED = "receive_maximum_exceeded"
    UNKNOWN_TOPIC_ALIAS = "unknown_topic_alias"
    KEEP_ALIVE_TIMEOUT = "keep_alive_timeout"


_FIXED_DESCRIPTIONS = {
    ProtocolErrorKind.PACKET_ID_MISMATCH: (
        "Packet id of publish ack packet does not match of send publish packet"
    ),
    ProtocolErrorKind.MAX_TOPIC_ALIAS: "Topic alias is greater than max topic alias",
    ProtocolErrorKind.RECEIVE_MAXIMUM_EXCEEDED: "Number of in-flight messages exceeded",
    ProtocolErrorKind.UNKNOWN_TOPIC_ALIAS: "Unknown topic alias",
    ProtocolErrorKind.KEEP_ALIVE_TIMEOUT: "Keep alive timeout",
}


class DecodeError(Exception):
    """A packet could not be decoded."""

    def __init__(self, kind: DecodeErrorKind) -> None:
        self.kind = DecodeErrorKind(kind)
        super().__init__(self.kind.value)

    def __str__(self) -> str:
        return self.kind.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecodeError):
            return NotImplemented
        return self.kind is other.kind

    def __hash__(self) -> int:
        return hash((DecodeError, self.kind))


class EncodeError(Exception):
    """A packet could not be encoded."""

    def __init__(self, kind: EncodeErrorKind) -> None:
        self.kind = EncodeErrorKind(kind)
        super().__init__(self.kind.value)

    def __str__(self) -> str:
        return self.kind.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncodeError):
            return NotImplemented
        return self.kind is other.kind

    def __hash__(self) -> int:
        return hash((EncodeError, self.kind))


class MqttError(Exception):
    """Base class of errors that end the handling of an MQTT connection."""


class ServiceError(MqttError):
    """A handler service failed; the original error is kept in ``error``."""

    def __init__(self, error: Any) -> None:
        super().__init__(error)
        self.error = error

    def __str__(self) -> str:
        return "Service error"


class ProtocolError(MqttError):
    """The peer violated the MQTT protocol, or a packet failed to encode or decode."""

    def __init__(
        self,
        kind: ProtocolErrorKind,
        cause: DecodeError | EncodeError | None = None,
        packet_type: int | None = None,
        message: str | None = None,
    ) -> None:
        kind = ProtocolErrorKind(kind)
        if kind is ProtocolErrorKind.DECODE and not isinstance(cause, DecodeError):
            raise TypeError("decode protocol error requires a DecodeError cause")
        if kind is ProtocolErrorKind.ENCODE and not isinstance(cause, EncodeError):
            raise TypeError("encode protocol error requires an EncodeError cause")
        if kind is ProtocolErrorKind.UNEXPECTED and packet_type is None:
            raise TypeError("unexpected packet error requires a packet type")
        super().__init__(kind, cause, packet_type, message)
        self.kind = kind
        self.cause = cause
        self.packet_type = packet_type
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def decode(cls, error: DecodeError) -> ProtocolError:
        return cls(ProtocolErrorKind.DECODE, cause=error)

    @classmethod
    def encode(cls, error: EncodeError) -> ProtocolError:
        return cls(ProtocolErrorKind.ENCODE, cause=error)

    @classmethod
    def unexpected(cls, packet_type: int, message: str) -> ProtocolError:
        return cls(ProtocolErrorKind.UNEXPECTED, packet_type=packet_type, message=message)

    @property
    def description(self) -> str:
        """Text describing the protocol violation itself."""
        if self.kind is ProtocolErrorKind.DECODE:
            return f"Decode error: {self.cause}"
        if self.kind is ProtocolErrorKind.ENCODE:
            return f"Encode error: {self.cause}"
        if self.kind is ProtocolErrorKind.UNEXPECTED:
            return f"Unexpected packet {self.packet_type}, {self.message}"
        return _FIXED_DESCRIPTIONS[self.kind]

    def __str__(self) -> str:
        return f"Mqtt protocol error: {self.description}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProtocolError):
            return NotImplemented
        return (self.kind, self.cause, self.packet_type, self.message) == (
            other.kind,
            other.cause,
            other.packet_type,
            other.message,
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.cause, self.packet_type, self.message))


class HandshakeTimeout(MqttError):
    """The peer did not complete the handshake in time."""

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return "HandshakeTimeout"


class Disconnected(MqttError):
    """The peer is gone; ``cause`` holds the I/O error, if any."""

    def __init__(self, cause: OSError | None = None) -> None:
        super().__init__(cause)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"Peer is disconnected, error: {self.cause!r}"


class ServerError(MqttError):
    """The server failed for a reason described by ``message``."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Server error: {self.message}"


class SendPacketError(Exception):
    """Base class of errors raised when a packet cannot be sent."""


class SendEncodeError(SendPacketError):
    """The packet could not be encoded."""

    def __init__(self, error: EncodeError) -> None:
        super().__init__(error)
        self.error = error
        self.__cause__ = error

    def __str__(self) -> str:
        return str(self.error)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SendEncodeError):
            return NotImplemented
        return self.error == other.error

    def __hash__(self) -> int:
        return hash((SendEncodeError, self.error))


class PacketIdInUse(SendPacketError):
    """The requested packet id is already in use."""

    def __init__(self, packet_id: int) -> None:
        super().__init__(packet_id)
        self.packet_id = packet_id

    def __str__(self) -> str:
        return "Provided packet id is in use"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PacketIdInUse):
            return NotImplemented
        return self.packet_id == other.packet_id

    def __hash__(self) -> int:
        return hash((PacketIdInUse, self.packet_id))


class PeerDisconnected(SendPacketError):
    """The peer disconnected before the packet could be sent."""

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return "Peer disconnected"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PeerDisconnected):
            return NotImplemented
        return True

    def __hash__(self) -> int:
        return hash(PeerDisconnected)


def to_mqtt_error(error: Any) -> MqttError:
    """Turn any error raised while handling a connection into an MqttError."""
    if isinstance(error, MqttError):
        return error
    if isinstance(error, DecodeError):
        return ProtocolError.decode(error)
    if isinstance(error, EncodeError):
        return ProtocolError.encode(error)
    if isinstance(error, OSError):
        return Disconnected(error)
    return ServiceError(error)