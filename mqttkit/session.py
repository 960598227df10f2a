"""Per-connection session shared by the handlers of one MQTT connection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, eq=False)
class Session:
    """Application state and outgoing sink of one connection.

    Attributes not defined on the session are looked up on ``state``.
    """

    state: Any
    sink: Any
    max_receive: int = 0
    max_topic_alias: int = 0

    def params(self) -> tuple[int, int]:
        """The negotiated receive maximum and topic alias maximum."""
        return self.max_receive, self.max_topic_alias

    def __getattr__(self, name: str) -> Any:
        if name in ("state", "sink", "max_receive", "max_topic_alias") or name.startswith("__"):
            raise AttributeError(name)
        return getattr(self.state, name)