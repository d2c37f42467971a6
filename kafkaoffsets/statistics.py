"""Client-wide statistics documents, as emitted periodically by a Kafka client."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .stats_types import (
    Broker,
    ConsumerGroup,
    ExactlyOnceSemantics,
    StatisticsError,
    Topic,
    _decode,
)

__all__ = ["Statistics", "parse_statistics"]

# Fields whose JSON key differs from the attribute name: attribute -> JSON key.
_RENAMED = {"client_type": "type"}


@dataclass(frozen=True)
class Statistics:
    """Overall client statistics.

    ``ts`` is the client's monotonic clock in microseconds; ``time`` is wall
    clock seconds since the Unix epoch. ``cgrp`` and ``eos`` are ``None`` when
    the document does not carry them.
    """

    name: str
    client_id: str
    client_type: str
    ts: int
    time: int
    replyq: int
    msg_cnt: int
    msg_size: int
    msg_max: int
    msg_size_max: int
    tx: int
    tx_bytes: int
    rx: int
    rx_bytes: int
    txmsgs: int
    txmsg_bytes: int
    rxmsgs: int
    rxmsg_bytes: int
    simple_cnt: int
    metadata_cache_cnt: int
    brokers: Dict[str, Broker]
    topics: Dict[str, Topic]
    cgrp: Optional[ConsumerGroup]
    eos: Optional[ExactlyOnceSemantics]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Statistics":
        """Build statistics from a decoded JSON object; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise StatisticsError(f"value: expected an object, got {data!r}")
        renamed_keys = set(_RENAMED.values())
        remapped = {
            key: value
            for key, value in data.items()
            if key not in _RENAMED and key not in renamed_keys
        }
        for attribute, json_key in _RENAMED.items():
            if json_key in data:
                remapped[attribute] = data[json_key]
        return _decode(cls, remapped, "")

    @classmethod
    def from_json(cls, text: str | bytes) -> "Statistics":
        """Parse a JSON statistics document."""
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StatisticsError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)


def parse_statistics(text: str | bytes) -> Statistics:
    """Parse a JSON statistics document into a Statistics record."""
    return Statistics.from_json(text)