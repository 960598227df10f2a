"""Building blocks for MQTT servers: topics, wire format, errors, sessions, in-flight limits and dispatching."""

__version__ = "0.1.0"

__all__ = [
    "dispatcher",
    "errors",
    "inflight",
    "items",
    "session",
    "topic",
    "wire",
]