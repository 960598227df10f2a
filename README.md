# mqttkit

Building blocks for writing MQTT servers on top of `asyncio`. The package has no
third-party dependencies.

## What is inside

- `mqttkit.topic`: `Topic` and `Level`. They parse topic filters such as
  `sport/+/player1` or `sport/tennis/#`, check that a filter is valid, match a filter
  against other topics (`Topic.matches`) or plain topic names (`Topic.matches_str`),
  and write topics out with `str()` or to a binary stream with `write_topic`.
  Wildcards never match levels that start with `$`.
- `mqttkit.wire`: primitives of the MQTT wire format. `Reader` is a cursor over a
  byte buffer. The decoders are `decode_bool`, `decode_u16`, `decode_u32`,
  `decode_nonzero_u16`, `decode_nonzero_u32`, `decode_bytes`, `decode_string` and
  `take_properties`. The encoders are `encode_bool`, `encode_u16`, `encode_u32`,
  `encode_bytes`, `encode_string` and `encode_string_pair`, and `encoded_size` gives
  the size of a value's wire form. Variable byte integers are handled by
  `read_variable_length`, `decode_variable_length` and `write_variable_length`.
- `mqttkit.errors`: the error hierarchy. `MqttError` is the base class of
  `ProtocolError`, `Disconnected`, `HandshakeTimeout`, `ServerError` and
  `ServiceError`. The module also defines `DecodeError` and `EncodeError`, which each
  carry a kind enum, and `SendPacketError` with its subclasses `SendEncodeError`,
  `PacketIdInUse` and `PeerDisconnected`. `to_mqtt_error` turns any exception into
  an `MqttError`.
- `mqttkit.session`: `Session`. It holds a connection's application `state`, its
  outgoing `sink` and the negotiated receive and topic-alias maximums (`params()`).
  If an attribute is not on the session itself, it is looked up on `state`.
- `mqttkit.inflight`: `InFlightService`. It wraps an async handler and caps how many
  requests, and how many bytes in total, can be in flight at once. A limit of zero
  turns that limit off.
- `mqttkit.items`: the items a dispatcher hands to its service. These are `Item`,
  `KeepAliveTimeout`, `DecoderError` and `Disconnect`, all subclasses of
  `DispatchItem`. The module also has `BytesCodec`, a codec that passes raw bytes
  through, and `ResponseQueue`, which writes responses in request order.
- `mqttkit.dispatcher`: `Dispatcher`. It drives one connection over an asyncio
  stream pair. It decodes frames with a codec and calls the service for each one
  concurrently. Responses are written back in the order the frames arrived, even when
  handlers finish out of order. It also handles keep-alive expiry and closing the
  connection.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Topics

```python
from mqttkit.topic import Topic, TopicError

t = Topic.parse("sport/tennis/+")
assert t.matches_str("sport/tennis/player1")
assert not t.matches_str("sport/tennis/player1/ranking")

assert Topic.parse("sport/#").matches_str("sport")
assert not Topic.parse("#").matches_str("$SYS")   # wildcards never match $-topics

try:
    Topic.parse("sport/tennis/#/ranking")
except TopicError:
    pass
```

## Variable-length integers

```python
from mqttkit.wire import write_variable_length, decode_variable_length

assert write_variable_length(129) == b"\x81\x01"
assert decode_variable_length(b"\xff\x7f") == (16383, 2)
assert decode_variable_length(b"\xff\xff\xff") is None   # more bytes needed
```

## Limiting in-flight work

```python
from mqttkit.inflight import InFlightService

async def handle(request):
    ...

service = InFlightService(max_cap=16, max_size=0, service=handle, size_of=len)
await service.ready()            # waits until a slot is free
result = await service.call(b"payload")
```

## Dispatching a connection

The service gets each `DispatchItem`. Whatever it returns, other than `None`, is
encoded with the codec and written back to the peer.

```python
import asyncio

from mqttkit.dispatcher import Dispatcher
from mqttkit.items import BytesCodec, Item

async def echo(item):
    if isinstance(item, Item):
        return item.item
    return None

async def on_connect(reader, writer):
    await Dispatcher(reader, writer, BytesCodec(), echo, keepalive_timeout=30).run()

async def main():
    server = await asyncio.start_server(on_connect, "127.0.0.1", 1883)
    async with server:
        await server.serve_forever()
```

`Dispatcher.run()` re-raises the last error the service raised. `Dispatcher.close()`
asks the dispatcher to stop. `Dispatcher.send()` writes an item to the peer outside
the request/response flow.

## What it does not do

The package contains no MQTT packet codec: it does not encode or decode CONNECT,
PUBLISH, SUBSCRIBE or other control packets. It has no connection handshake, no
protocol-version selection, no ready-made server and no client. To get a working
broker or client, you supply the packet codec and the handlers yourself and run them
through `Dispatcher`.