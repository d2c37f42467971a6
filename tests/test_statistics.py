import json

import pytest

from kafkaoffsets.statistics import Statistics, parse_statistics
from kafkaoffsets.stats_types import StatisticsError

_WINDOW_KEYS = (
    "min", "max", "avg", "sum", "stddev", "p50", "p75", "p90",
    "p95", "p99", "p99_99", "outofrange", "hdrsize", "cnt",
)

_REQUEST_TYPES = (
    "Produce", "Offset", "Metadata", "FindCoordinator", "SaslHandshake",
    "ApiVersion", "InitProducerId", "AddPartitionsToTxn", "AddOffsetsToTxn",
    "EndTxn", "TxnOffsetCommit", "SaslAuthenticate",
)

_UNSET_OFFSETS = (
    "query_offset", "app_offset", "stored_offset", "commited_offset",
    "committed_offset", "eof_offset", "lo_offset", "hi_offset", "ls_offset",
)


def _window(*values):
    return dict(zip(_WINDOW_KEYS, values))


def _partition(pid, *, msgq, tx, msgs, inflight=0):
    owner = min(pid, 0)
    data = dict(
        partition=pid, broker=owner, leader=owner, desired=False, unknown=False,
        msgq_cnt=msgq[0], msgq_bytes=msgq[1], xmit_msgq_cnt=0, xmit_msgq_bytes=0,
        fetchq_cnt=0, fetchq_size=0, fetch_state="none", next_offset=0,
        consumer_lag=-1, txmsgs=tx[0], txbytes=tx[1], rxmsgs=0, rxbytes=0,
        msgs=msgs, rx_ver_drops=0, msgs_inflight=inflight,
        next_ack_seq=0, next_err_seq=0, acked_msgid=0,
    )
    data.update(dict.fromkeys(_UNSET_OFFSETS, -1001))
    return data


def _example_dict():
    requests = dict.fromkeys(_REQUEST_TYPES, 0)
    requests.update(Produce=31307, Metadata=2, ApiVersion=2)
    broker = dict(
        name="localhost:9092/0", nodeid=0, nodename="localhost:9092",
        source="configured", state="UP", stateage=8005652,
        outbuf_cnt=0, outbuf_msg_cnt=0, waitresp_cnt=1, waitresp_msg_cnt=126,
        tx=31311, txbytes=463869957, txerrs=0, txretries=0, req_timeouts=0,
        rx=31310, rxbytes=1753668, rxerrs=0, rxcorriderrs=0, rxpartial=0,
        zbuf_grow=0, buf_grow=0, wakeups=131568, connects=1, disconnects=0,
        int_latency=_window(2, 9193, 605, 874202325, 1080, 319, 481, 1135,
                            3023, 5919, 9087, 0, 15472, 1443154),
        outbuf_latency=_window(1, 308, 22, 107311, 21, 22, 29, 36,
                               44, 111, 309, 0, 11376, 4740),
        rtt=_window(94, 3279, 237, 1124867, 198, 193, 245, 329,
                    393, 1183, 3279, 0, 13424, 4739),
        throttle=_window(*([0] * 12), 17520, 4739),
        req=requests,
        toppars={f"test-{n}": dict(topic="test", partition=n) for n in range(3)},
    )
    topic = dict(
        topic="test",
        metadata_age=7014,
        batchsize=_window(99, 240276, 11871, 56260370, 13137, 10431, 11583,
                          12799, 13823, 72191, 240639, 0, 14448, 4739),
        batchcnt=_window(1, 6161, 304, 1442353, 336, 267, 297, 329,
                         353, 1847, 6175, 0, 8304, 4739),
        partitions={
            "0": _partition(0, msgq=(845, 26195), tx=(3950967, 122479977),
                            msgs=3951812, inflight=1067),
            "1": _partition(1, msgq=(229, 7099), tx=(3950656, 122470336), msgs=3952618),
            "2": _partition(2, msgq=(1816, 56296), tx=(3952027, 122512837), msgs=3953855),
            "-1": _partition(-1, msgq=(0, 0), tx=(0, 0), msgs=500000),
        },
    )
    return dict(
        name="rdkafka#producer-1", client_id="rdkafka", type="producer",
        ts=1163982743268, time=1589652530, replyq=0,
        msg_cnt=320, msg_size=9920, msg_max=500000, msg_size_max=1073741824,
        simple_cnt=0, metadata_cache_cnt=1,
        brokers={"localhost:9092/0": broker},
        topics={"test": topic},
        tx=31311, tx_bytes=463869957, rx=31310, rx_bytes=1753668,
        txmsgs=11853650, txmsg_bytes=367463150, rxmsgs=0, rxmsg_bytes=0,
    )


EXAMPLE = json.dumps(_example_dict(), indent=2)


@pytest.fixture
def stats():
    return Statistics.from_json(EXAMPLE)


def test_statistics(stats):
    identity = (stats.name, stats.client_type)
    assert identity == ("rdkafka#producer-1", "producer")
    clocks = (stats.ts, stats.time, stats.replyq)
    assert clocks == (1163982743268, 1589652530, 0)
    queue = (stats.msg_cnt, stats.msg_size, stats.msg_max, stats.msg_size_max)
    assert queue == (320, 9920, 500000, 1073741824)
    assert stats.simple_cnt == 0

    assert len(stats.brokers) == 1
    (only_broker,) = stats.brokers.values()
    assert set(only_broker.req) == set(_REQUEST_TYPES)
    nonzero = {kind: count for kind, count in only_broker.req.items() if count}
    assert nonzero == {"Produce": 31307, "Metadata": 2, "ApiVersion": 2}

    assert len(stats.topics) == 1


def test_top_level_counters(stats):
    assert stats.client_id == "rdkafka"
    assert stats.metadata_cache_cnt == 1
    assert (stats.tx, stats.tx_bytes, stats.rx, stats.rx_bytes) == (
        31311,
        463869957,
        31310,
        1753668,
    )
    assert (stats.txmsgs, stats.txmsg_bytes, stats.rxmsgs, stats.rxmsg_bytes) == (
        11853650,
        367463150,
        0,
        0,
    )


def test_optional_sections_absent(stats):
    assert stats.cgrp is None
    assert stats.eos is None


def test_broker_windows_and_toppars(stats):
    broker = stats.brokers["localhost:9092/0"]
    assert broker.nodeid == 0
    assert broker.wakeups == 131568
    assert broker.rtt.p99_99 == 3279
    assert broker.int_latency.cnt == 1443154
    assert broker.throttle.hdrsize == 17520
    assert sorted(broker.toppars) == ["test-0", "test-1", "test-2"]
    assert broker.toppars["test-2"].partition == 2
    assert broker.toppars["test-2"].topic == "test"


def test_topic_partitions_keyed_by_int(stats):
    topic = stats.topics["test"]
    assert sorted(topic.partitions) == [-1, 0, 1, 2]
    assert topic.partitions[0].msgs_inflight == 1067
    assert topic.partitions[-1].msgs == 500000
    assert topic.partitions[-1].leader == -1
    assert topic.partitions[1].committed_offset == -1001
    assert topic.batchsize.max == 240276


def test_parse_statistics_matches_from_json(stats):
    assert parse_statistics(EXAMPLE) == stats


def test_from_dict_matches_from_json(stats):
    assert Statistics.from_dict(_example_dict()) == stats


def test_bytes_input(stats):
    assert Statistics.from_json(EXAMPLE.encode("utf-8")) == stats


def test_consumer_group_and_eos_sections():
    data = _example_dict()
    data["cgrp"] = dict(
        state="up", stateage=1200, join_state="steady", rebalance_age=900,
        rebalance_cnt=1, rebalance_reason="", assignment_size=3,
    )
    data["eos"] = dict(
        idemp_state="Assigned", idemp_stateage=10, txn_state="Ready",
        txn_stateage=20, txn_may_enq=True, producer_id=7, producer_epoch=0,
        epoch_cnt=1,
    )
    result = Statistics.from_dict(data)
    assert result.cgrp.join_state == "steady"
    assert result.cgrp.assignment_size == 3
    assert result.eos.txn_may_enq is True
    assert result.eos.producer_id == 7


def test_null_optional_section_is_none():
    data = _example_dict()
    data["cgrp"] = None
    assert Statistics.from_dict(data).cgrp is None


def test_client_type_key_is_ignored():
    data = _example_dict()
    data["client_type"] = "consumer"
    assert Statistics.from_dict(data).client_type == "producer"


def test_missing_type_raises():
    data = _example_dict()
    del data["type"]
    with pytest.raises(StatisticsError, match="client_type"):
        Statistics.from_dict(data)


def test_missing_field_raises():
    data = _example_dict()
    del data["msg_cnt"]
    with pytest.raises(StatisticsError, match="msg_cnt"):
        Statistics.from_dict(data)


def test_wrong_field_type_raises():
    data = _example_dict()
    data["ts"] = "soon"
    with pytest.raises(StatisticsError, match="ts"):
        Statistics.from_dict(data)


def test_out_of_range_nodeid_raises():
    data = _example_dict()
    data["brokers"]["localhost:9092/0"]["nodeid"] = 2**31
    with pytest.raises(StatisticsError, match="nodeid"):
        Statistics.from_dict(data)


def test_invalid_json_raises():
    with pytest.raises(StatisticsError, match="invalid JSON"):
        parse_statistics("{not json")


def test_non_object_document_raises():
    with pytest.raises(StatisticsError):
        parse_statistics("[1, 2, 3]")