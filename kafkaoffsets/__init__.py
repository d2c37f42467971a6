"""Kafka offsets, topic partition lists, timeouts and client statistics parsing."""

__version__ = "0.1.0"
__all__ = ["statistics", "stats_types", "topic_partition_list", "util"]