"""Topics, partitions and offsets, and an ordered list of them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

__all__ = [
    "KafkaError",
    "SetPartitionOffsetError",
    "OffsetFetchError",
    "OffsetKind",
    "Offset",
    "TopicPartition",
    "TopicPartitionList",
]

PARTITION_UNASSIGNED = -1

_OFFSET_BEGINNING = -2
_OFFSET_END = -1
_OFFSET_STORED = -1000
_OFFSET_INVALID = -1001
_OFFSET_TAIL_BASE = -2000

_INVALID_ARGUMENT = "InvalidArgument"
_UNKNOWN_PARTITION = "UnknownPartition"

TopicMap = Dict[Tuple[str, int], "Offset"]


class KafkaError(Exception):
    """Base class for errors raised by this package."""


class SetPartitionOffsetError(KafkaError):
    """An offset could not be set on a topic partition."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Failed to set partition offset: {code}")
        self.code = code


class OffsetFetchError(KafkaError):
    """A topic partition carries an error from an offset fetch."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Offset fetch error: {code}")
        self.code = code


class OffsetKind(enum.Enum):
    """The kinds of offset a partition can be positioned at."""

    BEGINNING = "beginning"
    END = "end"
    STORED = "stored"
    INVALID = "invalid"
    OFFSET = "offset"
    OFFSET_TAIL = "offset_tail"


_SPECIAL_RAW = {
    OffsetKind.BEGINNING: _OFFSET_BEGINNING,
    OffsetKind.END: _OFFSET_END,
    OffsetKind.STORED: _OFFSET_STORED,
    OffsetKind.INVALID: _OFFSET_INVALID,
}
_RAW_SPECIAL = {raw: kind for kind, raw in _SPECIAL_RAW.items()}


@dataclass(frozen=True)
class Offset:
    """A Kafka offset: a logical position, an absolute offset or one from the end.

    ``value`` is set only for the ``OFFSET`` and ``OFFSET_TAIL`` kinds.
    """

    kind: OffsetKind
    value: Optional[int] = None

    def __post_init__(self) -> None:
        needs_value = self.kind in (OffsetKind.OFFSET, OffsetKind.OFFSET_TAIL)
        if needs_value and not isinstance(self.value, int):
            raise TypeError(f"{self.kind.name} offsets need an integer value")
        if not needs_value and self.value is not None:
            raise TypeError(f"{self.kind.name} offsets take no value")

    @classmethod
    def beginning(cls) -> "Offset":
        return cls(OffsetKind.BEGINNING)

    @classmethod
    def end(cls) -> "Offset":
        return cls(OffsetKind.END)

    @classmethod
    def stored(cls) -> "Offset":
        return cls(OffsetKind.STORED)

    @classmethod
    def invalid(cls) -> "Offset":
        return cls(OffsetKind.INVALID)

    @classmethod
    def at(cls, n: int) -> "Offset":
        """A specific offset; negative values are not representable."""
        return cls(OffsetKind.OFFSET, n)

    @classmethod
    def tail(cls, n: int) -> "Offset":
        """An offset ``n`` messages before the end of the partition."""
        return cls(OffsetKind.OFFSET_TAIL, n)

    @classmethod
    def from_raw(cls, raw_offset: int) -> "Offset":
        """Decode the integer wire representation of an offset."""
        kind = _RAW_SPECIAL.get(raw_offset)
        if kind is not None:
            return cls(kind)
        if raw_offset <= _OFFSET_TAIL_BASE:
            return cls.tail(_OFFSET_TAIL_BASE - raw_offset)
        return cls.at(raw_offset)

    def to_raw(self) -> Optional[int]:
        """The integer wire representation, or ``None`` if it has none."""
        if self.kind in _SPECIAL_RAW:
            return _SPECIAL_RAW[self.kind]
        assert self.value is not None
        if self.kind is OffsetKind.OFFSET:
            return self.value if self.value >= 0 else None
        return _OFFSET_TAIL_BASE - self.value if self.value > 0 else None

    def __repr__(self) -> str:
        if self.kind is OffsetKind.OFFSET:
            return f"Offset.at({self.value})"
        if self.kind is OffsetKind.OFFSET_TAIL:
            return f"Offset.tail({self.value})"
        return f"Offset.{self.kind.value}()"


def _check_topic(topic: str) -> str:
    if "\0" in topic:
        raise ValueError("topic name must not contain NUL characters")
    return topic


@dataclass(eq=True)
class TopicPartition:
    """One entry of a topic partition list.

    Two entries are equal when topic, partition and offset match.
    """

    topic: str
    partition: int
    offset: Offset = field(default_factory=Offset.invalid)
    error: Optional[str] = field(default=None, compare=False)

    def set_offset(self, offset: Offset) -> None:
        """Set the offset; raise SetPartitionOffsetError if it is unrepresentable."""
        if offset.to_raw() is None:
            raise SetPartitionOffsetError(_INVALID_ARGUMENT)
        self.offset = offset

    def check_error(self) -> None:
        """Raise OffsetFetchError if this entry carries an error."""
        if self.error is not None:
            raise OffsetFetchError(self.error)


class TopicPartitionList:
    """An ordered list of topic partitions with optional offsets."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 0:
            raise ValueError("capacity cannot be negative")
        self._elems: List[TopicPartition] = []
        self._capacity = capacity

    @classmethod
    def from_topic_map(cls, topic_map: Mapping[Tuple[str, int], Offset]) -> "TopicPartitionList":
        """Build a list from a mapping of (topic, partition) to offset."""
        tpl = cls(len(topic_map))
        for (topic, partition), offset in topic_map.items():
            tpl.add_partition_offset(topic, partition, offset)
        return tpl

    def __len__(self) -> int:
        return len(self._elems)

    def __iter__(self) -> Iterator[TopicPartition]:
        return iter(self._elems)

    @property
    def capacity(self) -> int:
        """The number of entries the list holds before it grows."""
        return self._capacity

    def _grow(self) -> None:
        add = 2
        if add < self._capacity:
            add = max(self._capacity, 32)
        self._capacity += add

    def add_topic_unassigned(self, topic: str) -> TopicPartition:
        """Add a topic whose partition is not assigned."""
        return self.add_partition(topic, PARTITION_UNASSIGNED)

    def add_partition(self, topic: str, partition: int) -> TopicPartition:
        """Append a topic partition with an invalid offset and return it."""
        if len(self._elems) == self._capacity:
            self._grow()
        elem = TopicPartition(_check_topic(topic), partition)
        self._elems.append(elem)
        return elem

    def add_partition_range(self, topic: str, start_partition: int, stop_partition: int) -> None:
        """Add partitions ``start_partition`` to ``stop_partition`` inclusive."""
        for partition in range(start_partition, stop_partition + 1):
            self.add_partition(topic, partition)

    def set_partition_offset(self, topic: str, partition: int, offset: Offset) -> None:
        """Set the offset of a partition already in the list."""
        _check_topic(topic)
        if offset.to_raw() is None:
            raise SetPartitionOffsetError(_INVALID_ARGUMENT)
        elem = self.find_partition(topic, partition)
        if elem is None:
            raise SetPartitionOffsetError(_UNKNOWN_PARTITION)
        elem.offset = offset

    def add_partition_offset(self, topic: str, partition: int, offset: Offset) -> None:
        """Add a topic partition and set its offset."""
        self.add_partition(topic, partition)
        self.set_partition_offset(topic, partition, offset)

    def find_partition(self, topic: str, partition: int) -> Optional[TopicPartition]:
        """The first entry for ``topic`` and ``partition``, or ``None``."""
        _check_topic(topic)
        return next(
            (e for e in self._elems if e.topic == topic and e.partition == partition),
            None,
        )

    def set_all_offsets(self, offset: Offset) -> None:
        """Set every entry to ``offset``."""
        for elem in self._elems:
            elem.set_offset(offset)

    def elements(self) -> List[TopicPartition]:
        """All entries, in order."""
        return list(self._elems)

    def elements_for_topic(self, topic: str) -> List[TopicPartition]:
        """The entries that belong to ``topic``, in order."""
        return [e for e in self._elems if e.topic == topic]

    def to_topic_map(self) -> TopicMap:
        """A mapping of (topic, partition) to offset."""
        return {(e.topic, e.partition): e.offset for e in self._elems}

    def copy(self) -> "TopicPartitionList":
        """An independent copy of the list."""
        new = TopicPartitionList(self._capacity)
        new._elems = [
            TopicPartition(e.topic, e.partition, e.offset, e.error) for e in self._elems
        ]
        return new

    __copy__ = copy

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TopicPartitionList):
            return NotImplemented
        if len(self) != len(other):
            return False
        return all(
            other.find_partition(e.topic, e.partition) == e for e in self._elems
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = "".join(f"({e.topic}, {e.partition}): {e.offset!r}, " for e in self._elems)
        return f"TPL {{{body}}}"