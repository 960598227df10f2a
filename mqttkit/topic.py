"""MQTT topic names and filters, with wildcard matching."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import IO, Iterable, Iterator


class TopicError(ValueError):
    """A topic or topic level could not be parsed."""

    INVALID_TOPIC = "InvalidTopic"
    INVALID_LEVEL = "InvalidLevel"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class LevelKind(enum.Enum):
    NORMAL = "normal"
    METADATA = "metadata"
    BLANK = "blank"
    SINGLE_WILDCARD = "single_wildcard"
    MULTI_WILDCARD = "multi_wildcard"


def _is_metadata(text: str) -> bool:
    return text.startswith("$")


def _has_wildcard(text: str) -> bool:
    return "+" in text or "#" in text


@dataclass(frozen=True)
class Level:
    """One level of a topic: a name, ``$`` metadata, blank, ``+`` or ``#``."""

    kind: LevelKind
    text: str | None = None

    @classmethod
    def parse(cls, text: str) -> Level:
        if text == "+":
            return cls.SINGLE_WILDCARD
        if text == "#":
            return cls.MULTI_WILDCARD
        if text == "":
            return cls.BLANK
        if _has_wildcard(text):
            raise TopicError(TopicError.INVALID_LEVEL)
        if _is_metadata(text):
            return cls(LevelKind.METADATA, text)
        return cls(LevelKind.NORMAL, text)

    @classmethod
    def normal(cls, text: str) -> Level:
        if _has_wildcard(text):
            raise ValueError(f"invalid normal level `{text}` contains +|#")
        if _is_metadata(text):
            raise ValueError(f"invalid normal level `{text}` starts with $")
        return cls(LevelKind.NORMAL, text)

    @classmethod
    def metadata(cls, text: str) -> Level:
        if _has_wildcard(text):
            raise ValueError(f"invalid metadata level `{text}` contains +|#")
        if not _is_metadata(text):
            raise ValueError(f"invalid metadata level `{text}` not starts with $")
        return cls(LevelKind.METADATA, text)

    def value(self) -> str | None:
        if self.kind in (LevelKind.NORMAL, LevelKind.METADATA):
            return self.text
        return None

    def is_normal(self) -> bool:
        return self.kind is LevelKind.NORMAL

    def is_metadata(self) -> bool:
        return self.kind is LevelKind.METADATA

    def is_valid(self) -> bool:
        if self.kind is LevelKind.NORMAL:
            text = self.text or ""
            return not _is_metadata(text) and not _has_wildcard(text)
        if self.kind is LevelKind.METADATA:
            text = self.text or ""
            return _is_metadata(text) and not _has_wildcard(text)
        return True

    def __str__(self) -> str:
        if self.kind in (LevelKind.NORMAL, LevelKind.METADATA):
            return self.text or ""
        if self.kind is LevelKind.SINGLE_WILDCARD:
            return "+"
        if self.kind is LevelKind.MULTI_WILDCARD:
            return "#"
        return ""


Level.BLANK = Level(LevelKind.BLANK)  # type: ignore[attr-defined]
Level.SINGLE_WILDCARD = Level(LevelKind.SINGLE_WILDCARD)  # type: ignore[attr-defined]
Level.MULTI_WILDCARD = Level(LevelKind.MULTI_WILDCARD)  # type: ignore[attr-defined]


def match_level(value: Level | str, level: Level) -> bool:
    """Whether ``value`` (a level or a plain topic segment) matches ``level``."""
    if isinstance(value, Level):
        if level.kind is LevelKind.NORMAL:
            return value.kind is LevelKind.NORMAL and value.text == level.text
        if level.kind is LevelKind.METADATA:
            return value.kind is LevelKind.METADATA and value.text == level.text
        if level.kind is LevelKind.BLANK:
            return True
        return not value.is_metadata()

    if level.kind is LevelKind.NORMAL:
        return not _is_metadata(value) and level.text == value
    if level.kind is LevelKind.METADATA:
        return _is_metadata(value) and level.text == value
    if level.kind is LevelKind.BLANK:
        return value == ""
    return not _is_metadata(value)


class Topic:
    """A sequence of levels forming a topic name or filter."""

    __slots__ = ("_levels",)

    def __init__(self, levels: Iterable[Level]) -> None:
        self._levels: tuple[Level, ...] = tuple(levels)

    @classmethod
    def parse(cls, text: str) -> Topic:
        topic = cls(Level.parse(part) for part in text.split("/"))
        if not topic.is_valid():
            raise TopicError(TopicError.INVALID_TOPIC)
        return topic

    def levels(self) -> list[Level]:
        return list(self._levels)

    def is_valid(self) -> bool:
        if not all(level.is_valid() for level in self._levels):
            return False
        last = len(self._levels) - 1
        for pos, level in enumerate(self._levels):
            if level.kind is LevelKind.MULTI_WILDCARD and pos != last:
                return False
            if level.kind is LevelKind.METADATA and pos != 0:
                return False
        return True

    def _matches(self, parts: Iterable[Level | str]) -> bool:
        lhs = iter(self._levels)
        for rhs in parts:
            level = next(lhs, None)
            if level is None:
                return False
            if level.kind is LevelKind.SINGLE_WILDCARD:
                if not match_level(rhs, Level.SINGLE_WILDCARD):  # type: ignore[attr-defined]
                    break
            elif level.kind is LevelKind.MULTI_WILDCARD:
                return match_level(rhs, Level.MULTI_WILDCARD)  # type: ignore[attr-defined]
            elif not match_level(rhs, level):
                return False

        rest = next(lhs, None)
        return rest is None or rest.kind is LevelKind.MULTI_WILDCARD

    def matches(self, topic: Topic) -> bool:
        return self._matches(topic._levels)

    def matches_str(self, topic: str) -> bool:
        return self._matches(topic.split("/"))

    def __str__(self) -> str:
        return "/".join(str(level) for level in self._levels)

    def __repr__(self) -> str:
        return f"Topic({list(self._levels)!r})"

    def __iter__(self) -> Iterator[Level]:
        return iter(self._levels)

    def __len__(self) -> int:
        return len(self._levels)

    def __getitem__(self, index: int) -> Level:
        return self._levels[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Topic):
            return NotImplemented
        return self._levels == other._levels

    def __hash__(self) -> int:
        return hash(self._levels)


def write_level(stream: IO[bytes], level: Level) -> int:
    """Write one level to a binary stream and return the number of bytes written."""
    data = str(level).encode("utf-8")
    if data:
        stream.write(data)
    return len(data)


def write_topic(stream: IO[bytes], topic: Topic) -> int:
    """Write a topic to a binary stream and return the number of bytes written."""
    written = 0
    for index, level in enumerate(topic):
        if index:
            stream.write(b"/")
            written += 1
        written += write_level(stream, level)
    return written