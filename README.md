# kafkaoffsets

Pure-Python building blocks for code that works with Kafka clients. The package
has no dependencies outside the standard library.

| Module | Contents |
| --- | --- |
| `kafkaoffsets.topic_partition_list` | `Offset`, `OffsetKind`, `TopicPartition`, `TopicPartitionList` and the errors `KafkaError`, `SetPartitionOffsetError`, `OffsetFetchError` |
| `kafkaoffsets.util` | `Timeout`, `millis_to_epoch`, `current_time_millis`, `NaiveRuntime` |
| `kafkaoffsets.statistics` | `Statistics`, `parse_statistics` |
| `kafkaoffsets.stats_types` | `StatisticsError`, `Window`, `TopicPartition`, `Broker`, `Partition`, `Topic`, `ConsumerGroup`, `ExactlyOnceSemantics` |

## Installation

```
pip install .
```

## Offsets

An `Offset` is a frozen value with a `kind` (an `OffsetKind`) and, for the
`OFFSET` and `OFFSET_TAIL` kinds, an integer `value`.

```python
from kafkaoffsets.topic_partition_list import Offset

Offset.beginning().to_raw()    # -2
Offset.end().to_raw()          # -1
Offset.stored().to_raw()       # -1000
Offset.invalid().to_raw()      # -1001
Offset.at(123).to_raw()        # 123
Offset.tail(10).to_raw()       # -2010
Offset.from_raw(-2010)         # Offset.tail(10)
Offset.at(-1).to_raw()         # None: not representable
Offset.tail(0).to_raw()        # None: not representable
```

`Offset.from_raw` decodes any integer: the four special values map to their
kinds, values at or below -2000 become tail offsets, and everything else becomes
an absolute offset.

## Topic partition lists

```python
from kafkaoffsets.topic_partition_list import (
    Offset,
    SetPartitionOffsetError,
    TopicPartitionList,
)

tpl = TopicPartitionList()
tpl.add_partition("topic1", 0)
tpl.add_partition_range("topic1", 1, 3)      # partitions 1, 2 and 3
tpl.set_partition_offset("topic1", 0, Offset.at(42))

tp = tpl.find_partition("topic1", 0)
tp.offset                      # Offset.at(42)
len(tpl)                       # 4
[e.partition for e in tpl]     # [0, 1, 2, 3]

try:
    tpl.set_partition_offset("missing", 0, Offset.at(0))
except SetPartitionOffsetError as exc:
    exc.code                   # "UnknownPartition"

topic_map = tpl.to_topic_map()          # {("topic1", 0): Offset.at(42), ...}
assert TopicPartitionList.from_topic_map(topic_map) == tpl
```

- A new entry starts with `Offset.invalid()`. `add_topic_unassigned(topic)` adds
  an entry with partition `-1`.
- `add_partition_offset(topic, partition, offset)` adds an entry and sets its
  offset in one step.
- Setting an offset that has no raw representation, through
  `set_partition_offset`, `add_partition_offset`, `set_all_offsets` or
  `TopicPartition.set_offset`, raises `SetPartitionOffsetError` with code
  `"InvalidArgument"`.
- `elements()` and `elements_for_topic(topic)` return the entries in order.
- Two lists are equal when they have the same length and every entry of one
  has a matching topic, partition and offset in the other.
- `copy()` returns a list that shares no state with the original.
- `capacity` is a property; the list grows as entries are added.
- A `TopicPartition` may carry an `error` string; `check_error()` raises
  `OffsetFetchError` when it does.
- Topic names containing NUL characters are rejected with `ValueError`.

## Timeouts

```python
from datetime import timedelta
from kafkaoffsets.util import Timeout

Timeout.after(timedelta(seconds=2)).as_millis()   # 2000
Timeout.after(1.5).as_millis()                    # 1500 (numbers are seconds)
Timeout.never().as_millis()                       # -1
Timeout.from_value(None)                          # Timeout.never()
Timeout.after(1) < Timeout.never()                # True
```

Subtracting a finite timeout from `Timeout.never()` leaves it unchanged.
Subtracting `Timeout.never()`, or a longer finite timeout from a shorter one,
raises `ValueError`. Negative durations are rejected with `ValueError`.

`millis_to_epoch(datetime)` returns milliseconds since the Unix epoch (0 for
earlier times; naive datetimes are taken as UTC). `current_time_millis()`
returns the current time in the same unit.

`NaiveRuntime` runs each spawned coroutine on its own thread with its own event
loop (`spawn` returns the thread), and `delay_for(duration)` returns an
awaitable that completes after the duration; it can also be waited on from
ordinary code with `.wait()`.

## Statistics

```python
from kafkaoffsets.statistics import parse_statistics

stats = parse_statistics(json_text)     # str or bytes
stats.client_type                       # "producer" (the document's "type" key)
for name, broker in stats.brokers.items():
    print(name, broker.state, broker.rtt.p99 if broker.rtt else None)
for topic in stats.topics.values():
    for partition_id, partition in topic.partitions.items():
        print(topic.topic, partition_id, partition.msgq_cnt)
```

`Statistics.from_dict` and the `from_dict` class methods of the records in
`kafkaoffsets.stats_types` build the same records from already decoded JSON.
Unknown keys are ignored. Topic partitions are keyed by integer partition id.
Invalid JSON, a missing required field, a value of the wrong type, or an
integer out of range for its field raises `StatisticsError`, which is both a
`KafkaError` and a `ValueError`.

## What this package does not do

It does not connect to Kafka brokers. There is no producer, consumer or admin
client and no command-line tool; the package only models offsets, topic
partition lists, timeouts and statistics documents.

## Running the tests

```
pip install .[test]
pytest
```