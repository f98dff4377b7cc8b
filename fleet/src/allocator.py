"""
Identifier allocation for stored entities.

Every row gets two identifiers:
- an internal, time sortable 63 bit integer used as primary key, laid out as
  41 bits of milliseconds since `SNOWFLAKE_EPOCH`, 10 bits of node id and a
  12 bit per-millisecond sequence;
- an external random UUID (version 4), the only identifier callers see.

The node id comes from `SNOWFLAKE_NODE_ID`, or is derived from the host name
when the variable is unset. Processes sharing a database must run with
distinct node ids.
"""

import socket, threading, time, uuid
from datetime import date, datetime, timedelta, timezone
from zlib import crc32

from fleet.src import exceptions
from fleet.src.constants import (
    SNOWFLAKE_NODE_ID,
    SNOWFLAKE_EPOCH,
    SNOWFLAKE_NODE_BITS,
    SNOWFLAKE_SEQUENCE_BITS,
)

MAX_NODE_ID = (1 << SNOWFLAKE_NODE_BITS) - 1
MAX_SEQUENCE = (1 << SNOWFLAKE_SEQUENCE_BITS) - 1
TIMESTAMP_SHIFT = SNOWFLAKE_NODE_BITS + SNOWFLAKE_SEQUENCE_BITS


def nodeID(value: str | None = SNOWFLAKE_NODE_ID) -> int:
    """
    Resolve the node id of this process.

    Raises:
        exceptions.AllocatorUnavailable: If the configured value is not an
            integer in 0..1023, or no host name is available to derive one.
    """
    if value is not None and value != "":
        try:
            node = int(value)
        except ValueError:
            raise exceptions.AllocatorUnavailable(f"Invalid node id {value!r}")
        if not 0 <= node <= MAX_NODE_ID:
            raise exceptions.AllocatorUnavailable(f"Node id {node} is out of range")
        return node
    try:
        hostname = socket.gethostname()
    except OSError as e:
        raise exceptions.AllocatorUnavailable(f"Host name is unavailable: {e}")
    if not hostname:
        raise exceptions.AllocatorUnavailable("Host name is unavailable")
    return crc32(hostname.encode("utf-8")) & MAX_NODE_ID


class Snowflake:
    """Thread safe generator of strictly increasing 63 bit identifiers."""

    def __init__(self, node: int, epoch: int = SNOWFLAKE_EPOCH):
        if not 0 <= node <= MAX_NODE_ID:
            raise exceptions.AllocatorUnavailable(f"Node id {node} is out of range")
        self.node = node
        self.epoch = epoch
        self.lastTimestamp = -1
        self.sequence = 0
        self.lock = threading.Lock()

    def _millis(self) -> int:
        return time.time_ns() // 1_000_000 - self.epoch

    def next(self) -> int:
        with self.lock:
            timestamp = self._millis()
            # A clock that moved backwards keeps issuing from the last timestamp
            if timestamp < self.lastTimestamp:
                timestamp = self.lastTimestamp
            if timestamp == self.lastTimestamp:
                self.sequence = (self.sequence + 1) & MAX_SEQUENCE
                # Sequence exhausted, wait for the next millisecond
                if self.sequence == 0:
                    while timestamp <= self.lastTimestamp:
                        time.sleep(0.0001)
                        timestamp = self._millis()
            else:
                self.sequence = 0
            self.lastTimestamp = timestamp
            return (
                (timestamp << TIMESTAMP_SHIFT)
                | (self.node << SNOWFLAKE_SEQUENCE_BITS)
                | self.sequence
            )


class MonotonicClock:
    """
    Process wide UTC clock whose readings strictly increase.

    Two readings falling on the same microsecond are separated by bumping the
    later one by one microsecond.
    """

    def __init__(self):
        self.last = None
        self.lock = threading.Lock()

    def now(self) -> datetime:
        with self.lock:
            current = datetime.now(timezone.utc)
            if self.last is not None and current <= self.last:
                current = self.last + timedelta(microseconds=1)
            self.last = current
            return current


_generator = None
_generatorLock = threading.Lock()
_clock = MonotonicClock()


def generator() -> Snowflake:
    global _generator
    with _generatorLock:
        if _generator is None:
            _generator = Snowflake(nodeID())
        return _generator


def allocate() -> tuple[int, uuid.UUID]:
    """
    Allocate the identifiers of a new row.

    Returns:
        tuple[int, uuid.UUID]: `(internal_id, external_id)`.

    Raises:
        exceptions.AllocatorUnavailable: If the node id can not be resolved or
            the OS random source fails. Never retried.
    """
    internalID = generator().next()
    try:
        externalID = uuid.uuid4()
    except NotImplementedError as e:
        raise exceptions.AllocatorUnavailable(f"Random source is unavailable: {e}")
    return internalID, externalID


def monotonicNow() -> datetime:
    """Current UTC time, strictly later than every previous reading."""
    return _clock.now()


def utcToday() -> date:
    """Current calendar day in UTC."""
    return datetime.now(timezone.utc).date()
