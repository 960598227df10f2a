import pytest

from mqttkit.errors import (
    DecodeError,
    DecodeErrorKind,
    Disconnected,
    EncodeError,
    EncodeErrorKind,
    HandshakeTimeout,
    MqttError,
    PacketIdInUse,
    PeerDisconnected,
    ProtocolError,
    ProtocolErrorKind,
    SendEncodeError,
    SendPacketError,
    ServerError,
    ServiceError,
    to_mqtt_error,
)


def test_decode_error_equality_by_kind():
    assert DecodeError(DecodeErrorKind.INVALID_LENGTH) == DecodeError(
        DecodeErrorKind.INVALID_LENGTH
    )
    assert DecodeError(DecodeErrorKind.INVALID_LENGTH) != DecodeError(
        DecodeErrorKind.MALFORMED_PACKET
    )
    assert len({DecodeError(k) for k in DecodeErrorKind}) == len(DecodeErrorKind)


def test_decode_error_display_is_variant_name():
    assert str(DecodeError(DecodeErrorKind.UTF8_ERROR)) == "Utf8Error"
    assert str(DecodeError(DecodeErrorKind.CONNACK_RESERVED_FLAG_SET)) == "ConnAckReservedFlagSet"


def test_encode_error_equality_and_display():
    err = EncodeError(EncodeErrorKind.UNSUPPORTED_VERSION)
    assert err == EncodeError(EncodeErrorKind.UNSUPPORTED_VERSION)
    assert str(err) == "UnsupportedVersion"
    assert err != EncodeError(EncodeErrorKind.INVALID_LENGTH)


def test_protocol_error_decode_wraps_cause():
    cause = DecodeError(DecodeErrorKind.MALFORMED_PACKET)
    err = ProtocolError.decode(cause)
    assert err.kind is ProtocolErrorKind.DECODE
    assert err.cause is cause
    assert err.description == "Decode error: MalformedPacket"
    assert str(err) == "Mqtt protocol error: " + err.description
    assert isinstance(err, MqttError)


def test_protocol_error_encode_wraps_cause():
    cause = EncodeError(EncodeErrorKind.PACKET_ID_REQUIRED)
    err = ProtocolError.encode(cause)
    assert err.kind is ProtocolErrorKind.ENCODE
    assert err.description == "Encode error: PacketIdRequired"
    assert err == ProtocolError.encode(EncodeError(EncodeErrorKind.PACKET_ID_REQUIRED))


def test_protocol_error_unexpected_mentions_packet_and_message():
    err = ProtocolError.unexpected(3, "publish packet is not expected")
    assert err.packet_type == 3
    assert err.message == "publish packet is not expected"
    assert "3" in err.description
    assert err.description.endswith("publish packet is not expected")


def test_protocol_error_fixed_descriptions():
    assert ProtocolError(ProtocolErrorKind.KEEP_ALIVE_TIMEOUT).description == "Keep alive timeout"
    assert (
        ProtocolError(ProtocolErrorKind.UNKNOWN_TOPIC_ALIAS).description
        == "Unknown topic alias"
    )
    assert (
        ProtocolError(ProtocolErrorKind.RECEIVE_MAXIMUM_EXCEEDED).description
        == "Number of in-flight messages exceeded"
    )


def test_protocol_error_requires_matching_cause():
    with pytest.raises(TypeError):
        ProtocolError(ProtocolErrorKind.DECODE, cause=EncodeError(EncodeErrorKind.INVALID_LENGTH))
    with pytest.raises(TypeError):
        ProtocolError(ProtocolErrorKind.ENCODE)
    with pytest.raises(TypeError):
        ProtocolError(ProtocolErrorKind.UNEXPECTED)


def test_mqtt_error_variants_display():
    assert str(ServiceError(ValueError("x"))) == "Service error"
    assert str(ServerError("Unsupported protocol")) == "Server error: Unsupported protocol"
    assert str(HandshakeTimeout()) == "HandshakeTimeout"
    assert str(Disconnected()).startswith("Peer is disconnected, error:")


def test_disconnected_keeps_cause():
    cause = ConnectionResetError("reset")
    err = Disconnected(cause)
    assert err.cause is cause
    assert err.__cause__ is cause
    assert Disconnected().cause is None


def test_send_packet_errors():
    enc = SendEncodeError(EncodeError(EncodeErrorKind.INVALID_LENGTH))
    assert str(enc) == "InvalidLength"
    assert enc == SendEncodeError(EncodeError(EncodeErrorKind.INVALID_LENGTH))
    assert str(PacketIdInUse(5)) == "Provided packet id is in use"
    assert PacketIdInUse(5) == PacketIdInUse(5)
    assert PacketIdInUse(5) != PacketIdInUse(6)
    assert str(PeerDisconnected()) == "Peer disconnected"
    assert PeerDisconnected() == PeerDisconnected()
    assert all(
        isinstance(e, SendPacketError) and not isinstance(e, MqttError)
        for e in (enc, PacketIdInUse(1), PeerDisconnected())
    )


def test_to_mqtt_error_conversions():
    decode = DecodeError(DecodeErrorKind.INVALID_PROTOCOL)
    assert to_mqtt_error(decode) == ProtocolError.decode(decode)

    encode = EncodeError(EncodeErrorKind.MALFORMED_PACKET)
    assert to_mqtt_error(encode) == ProtocolError.encode(encode)

    io_err = BrokenPipeError("pipe")
    converted = to_mqtt_error(io_err)
    assert isinstance(converted, Disconnected)
    assert converted.cause is io_err

    already = ServerError("Http server error")
    assert to_mqtt_error(already) is already

    other = RuntimeError("boom")
    wrapped = to_mqtt_error(other)
    assert isinstance(wrapped, ServiceError)
    assert wrapped.error is other