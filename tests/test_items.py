import pytest

from mqttkit.errors import EncodeError, EncodeErrorKind
from mqttkit.items import (
    BytesCodec,
    DecoderError,
    Disconnect,
    DispatcherError,
    DispatchItem,
    Item,
    KeepAliveTimeout,
    ResponseQueue,
)


def make_queue():
    written = []
    return ResponseQueue(written.append), written


def test_bytes_codec_decode_takes_whole_buffer():
    codec = BytesCodec()
    buffer = bytearray(b"GET /test HTTP/1\r\n\r\n")
    assert codec.decode(buffer) == b"GET /test HTTP/1\r\n\r\n"
    assert buffer == bytearray()


def test_bytes_codec_decode_empty_returns_none():
    assert BytesCodec().decode(bytearray()) is None


def test_bytes_codec_encode_round_trip():
    codec = BytesCodec()
    buffer = bytearray(codec.encode(bytearray(b"test")))
    assert codec.decode(buffer) == b"test"


def test_dispatch_items_compare_by_content():
    assert Item(b"abc") == Item(b"abc")
    assert Item(b"abc") != Item(b"abd")
    assert KeepAliveTimeout() == KeepAliveTimeout()
    assert isinstance(Disconnect(None), DispatchItem)
    assert Disconnect().error is None


def test_decoder_error_keeps_error():
    err = ValueError("bad")
    assert DecoderError(err).error is err


def test_immediate_response_is_written():
    queue, written = make_queue()
    index = queue.reserve()
    queue.complete(index, b"test")
    assert written == [b"test"]
    assert queue.is_empty()
    assert queue.error is None


def test_responses_are_written_in_request_order():
    queue, written = make_queue()
    first, second, third = queue.reserve(), queue.reserve(), queue.reserve()
    queue.complete(third, b"c")
    queue.complete(second, b"b")
    assert written == []
    assert len(queue) == 3
    queue.complete(first, b"a")
    assert written == [b"a", b"b", b"c"]
    assert queue.is_empty()


def test_indices_keep_increasing_after_drain():
    queue, written = make_queue()
    first = queue.reserve()
    queue.complete(first, b"a")
    second = queue.reserve()
    assert second == first + 1
    queue.complete(second, b"b")
    assert written == [b"a", b"b"]


def test_none_response_writes_nothing():
    queue, written = make_queue()
    index = queue.reserve()
    queue.complete(index, None)
    assert written == []
    assert queue.is_empty()


def test_service_failure_is_recorded():
    queue, written = make_queue()
    first, second = queue.reserve(), queue.reserve()
    queue.fail(first, "boom")
    queue.complete(second, b"ok")
    assert queue.error == DispatcherError(DispatcherError.SERVICE, "boom")
    assert written == [b"ok"]


def test_encoder_failure_is_recorded():
    def write(item):
        raise EncodeError(EncodeErrorKind.INVALID_LENGTH)

    queue = ResponseQueue(write)
    queue.complete(queue.reserve(), b"x")
    assert queue.error.kind == DispatcherError.ENCODER
    assert queue.error.error == EncodeError(EncodeErrorKind.INVALID_LENGTH)


def test_unknown_slot_raises():
    queue, _ = make_queue()
    with pytest.raises(IndexError):
        queue.complete(0, b"x")


def test_settling_twice_raises():
    queue, _ = make_queue()
    first = queue.reserve()
    second = queue.reserve()
    queue.complete(second, b"b")
    with pytest.raises(ValueError):
        queue.complete(second, b"b")
    queue.complete(first, b"a")
    with pytest.raises(IndexError):
        queue.complete(first, b"a")


def test_dispatcher_error_kinds():
    assert DispatcherError(DispatcherError.KEEP_ALIVE).error is None
    assert DispatcherError(DispatcherError.KEEP_ALIVE) == DispatcherError(DispatcherError.KEEP_ALIVE)
    with pytest.raises(ValueError):
        DispatcherError("nope")