"""Typed records for the per-broker, per-topic and per-group parts of client statistics."""

import dataclasses
import functools
import re
import types
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Mapping, Optional, Union, get_args, get_origin

from .topic_partition_list import KafkaError

__all__ = [
    "StatisticsError",
    "Window",
    "TopicPartition",
    "Broker",
    "Partition",
    "Topic",
    "ConsumerGroup",
    "ExactlyOnceSemantics",
]


class StatisticsError(KafkaError, ValueError):
    """A statistics document does not have the expected shape."""


class _Bits:
    """Marks an integer field with a signed bit width."""

    def __init__(self, bits: int) -> None:
        self.low = -(2 ** (bits - 1))
        self.high = 2 ** (bits - 1) - 1
        self.name = f"i{bits}"


_I32_MARK = _Bits(32)
_I64_MARK = _Bits(64)
I32 = Annotated[int, _I32_MARK]

_INT_KEY = re.compile(r"[+-]?\d+")
_GENERIC = re.compile(r"(\w+)\[(.*)\]", re.DOTALL)


def _where(path: str) -> str:
    return path or "value"


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _split_args(text: str) -> list:
    """Split a comma-separated list of type arguments at the top level."""
    parts, current, depth = [], [], 0
    for ch in text:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    parts.append("".join(current).strip())
    return [p for p in parts if p]


_GENERICS = {
    "Optional": lambda args: Optional[args[0]],
    "Dict": lambda args: Dict[args[0], args[1]],
    "dict": lambda args: Dict[args[0], args[1]],
    "Mapping": lambda args: Dict[args[0], args[1]],
    "Union": lambda args: Union[tuple(args)],
}


def _resolve(text: str) -> Any:
    """Turn a textual annotation into a type, using the names this module knows."""
    text = text.strip()
    if "|" in text and not _GENERIC.fullmatch(text):
        members = [_resolve(part) for part in text.split("|")]
        return Union[tuple(members)]
    if text == "None":
        return type(None)
    match = _GENERIC.fullmatch(text)
    if match:
        name, inner = match.groups()
        if name not in _GENERICS:
            raise TypeError(f"unsupported field type {text!r}")
        return _GENERICS[name]([_resolve(arg) for arg in _split_args(inner)])
    try:
        return _NAMES[text]
    except KeyError:
        raise TypeError(f"unsupported field type {text!r}") from None


@functools.lru_cache(maxsize=None)
def _hints(cls: type) -> Dict[str, Any]:
    return {
        f.name: _resolve(f.type) if isinstance(f.type, str) else f.type
        for f in dataclasses.fields(cls)
    }


def _unwrap_optional(hint: Any) -> tuple:
    if get_origin(hint) in (Union, types.UnionType):
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1 and len(get_args(hint)) == 2:
            return True, args[0]
    return False, hint


def _check_int(value: Any, mark: _Bits, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise StatisticsError(f"{_where(path)}: expected an integer, got {value!r}")
    if not mark.low <= value <= mark.high:
        raise StatisticsError(f"{_where(path)}: {value} is out of range for {mark.name}")
    return value


def _convert_key(key: Any, hint: Any, path: str) -> Any:
    if hint is str:
        if not isinstance(key, str):
            raise StatisticsError(f"{_where(path)}: expected a string key, got {key!r}")
        return key
    mark = _I64_MARK
    if get_origin(hint) is Annotated:
        mark = get_args(hint)[1]
    if isinstance(key, str):
        if not _INT_KEY.fullmatch(key):
            raise StatisticsError(f"{_where(path)}: key {key!r} is not an integer")
        key = int(key)
    return _check_int(key, mark, path)


def _convert(value: Any, hint: Any, path: str) -> Any:
    origin = get_origin(hint)
    if origin is Annotated:
        base, mark = get_args(hint)[:2]
        if base is int and isinstance(mark, _Bits):
            return _check_int(value, mark, path)
        return _convert(value, base, path)
    if hint is bool:
        if not isinstance(value, bool):
            raise StatisticsError(f"{_where(path)}: expected a boolean, got {value!r}")
        return value
    if hint is int:
        return _check_int(value, _I64_MARK, path)
    if hint is str:
        if not isinstance(value, str):
            raise StatisticsError(f"{_where(path)}: expected a string, got {value!r}")
        return value
    if origin is dict:
        key_hint, value_hint = get_args(hint)
        if not isinstance(value, Mapping):
            raise StatisticsError(f"{_where(path)}: expected an object, got {value!r}")
        return {
            _convert_key(k, key_hint, path): _convert(v, value_hint, _join(path, str(k)))
            for k, v in value.items()
        }
    if dataclasses.is_dataclass(hint):
        return _decode(hint, value, path)
    raise TypeError(f"unsupported field type {hint!r}")


def _decode(cls: type, data: Any, path: str) -> Any:
    if not isinstance(data, Mapping):
        raise StatisticsError(f"{_where(path)}: expected an object, got {data!r}")
    hints = _hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        sub = _join(path, f.name)
        optional, inner = _unwrap_optional(hints[f.name])
        raw = data.get(f.name)
        if raw is None and optional:
            kwargs[f.name] = None
            continue
        if f.name not in data:
            raise StatisticsError(f"{sub}: missing field")
        kwargs[f.name] = _convert(raw, inner, sub)
    return cls(**kwargs)


class _FromDict:
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Build the record from a decoded JSON object; unknown keys are ignored."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class Window(_FromDict):
    """Rolling window statistics sampled from a histogram."""

    min: int
    max: int
    avg: int
    sum: int
    cnt: int
    stddev: int
    hdrsize: int
    p50: int
    p75: int
    p90: int
    p95: int
    p99: int
    p99_99: int
    outofrange: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Window":
        """Build a window from a decoded JSON object; unknown keys are ignored."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class TopicPartition(_FromDict):
    """A topic and partition handled by a broker."""

    topic: str
    partition: I32

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TopicPartition":
        """Build a topic partition from a decoded JSON object."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class Broker(_FromDict):
    """Per-broker statistics. Latencies are in microseconds, throttle in milliseconds."""

    name: str
    nodeid: I32
    nodename: str
    source: str
    state: str
    stateage: int
    outbuf_cnt: int
    outbuf_msg_cnt: int
    waitresp_cnt: int
    waitresp_msg_cnt: int
    tx: int
    txbytes: int
    txerrs: int
    txretries: int
    req_timeouts: int
    rx: int
    rxbytes: int
    rxerrs: int
    rxcorriderrs: int
    rxpartial: int
    req: Dict[str, int]
    zbuf_grow: int
    buf_grow: int
    wakeups: Optional[int]
    connects: Optional[int]
    disconnects: Optional[int]
    int_latency: Optional[Window]
    outbuf_latency: Optional[Window]
    rtt: Optional[Window]
    throttle: Optional[Window]
    toppars: Dict[str, TopicPartition]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Broker":
        """Build broker statistics from a decoded JSON object."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class Partition(_FromDict):
    """Per-partition statistics."""

    partition: I32
    broker: I32
    leader: I32
    desired: bool
    unknown: bool
    msgq_cnt: int
    msgq_bytes: int
    xmit_msgq_cnt: int
    xmit_msgq_bytes: int
    fetchq_cnt: int
    fetchq_size: int
    fetch_state: str
    query_offset: int
    next_offset: int
    app_offset: int
    stored_offset: int
    committed_offset: int
    eof_offset: int
    lo_offset: int
    hi_offset: int
    ls_offset: int
    consumer_lag: int
    txmsgs: int
    txbytes: int
    rxmsgs: int
    rxbytes: int
    msgs: int
    rx_ver_drops: int
    msgs_inflight: int
    next_ack_seq: int
    next_err_seq: int
    acked_msgid: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Partition":
        """Build partition statistics from a decoded JSON object."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class Topic(_FromDict):
    """Per-topic statistics; partitions are keyed by partition id."""

    topic: str
    metadata_age: int
    batchsize: Window
    batchcnt: Window
    partitions: Dict[I32, Partition]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Topic":
        """Build topic statistics from a decoded JSON object."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class ConsumerGroup(_FromDict):
    """Consumer group manager statistics."""

    state: str
    stateage: int
    join_state: str
    rebalance_age: int
    rebalance_cnt: int
    rebalance_reason: str
    assignment_size: I32

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConsumerGroup":
        """Build consumer group statistics from a decoded JSON object."""
        return _decode(cls, data, "")


@dataclass(frozen=True)
class ExactlyOnceSemantics(_FromDict):
    """Idempotent and transactional producer statistics."""

    idemp_state: str
    idemp_stateage: int
    txn_state: str
    txn_stateage: int
    txn_may_enq: bool
    producer_id: int
    producer_epoch: int
    epoch_cnt: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExactlyOnceSemantics":
        """Build exactly-once statistics from a decoded JSON object."""
        return _decode(cls, data, "")


_NAMES: Dict[str, Any] = {
    "int": int,
    "str": str,
    "bool": bool,
    "I32": I32,
    "Window": Window,
    "TopicPartition": TopicPartition,
    "Broker": Broker,
    "Partition": Partition,
    "Topic": Topic,
    "ConsumerGroup": ConsumerGroup,
    "ExactlyOnceSemantics": ExactlyOnceSemantics,
}