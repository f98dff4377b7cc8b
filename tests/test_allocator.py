"""
Tests for identifier allocation and the store clock.
"""

import threading
import pytest
from uuid import UUID

from fleet.src import allocator, exceptions
from fleet.src.allocator import MonotonicClock, Snowflake, nodeID


class TestNodeID:
    def test_configured_value(self):
        assert nodeID("7") == 7
        assert nodeID("1023") == 1023

    def test_out_of_range(self):
        with pytest.raises(exceptions.AllocatorUnavailable):
            nodeID("1024")
        with pytest.raises(exceptions.AllocatorUnavailable):
            nodeID("-1")

    def test_not_a_number(self):
        with pytest.raises(exceptions.AllocatorUnavailable):
            nodeID("node-a")

    def test_derived_from_hostname(self, monkeypatch):
        monkeypatch.setattr(allocator.socket, "gethostname", lambda: "worker-1")
        first = nodeID(None)
        assert 0 <= first <= allocator.MAX_NODE_ID
        assert nodeID("") == first

    def test_missing_hostname(self, monkeypatch):
        monkeypatch.setattr(allocator.socket, "gethostname", lambda: "")
        with pytest.raises(exceptions.AllocatorUnavailable):
            nodeID(None)


class TestSnowflake:
    def test_strictly_increasing(self):
        generator = Snowflake(node=3)
        ids = [generator.next() for _ in range(5000)]
        assert all(a < b for a, b in zip(ids, ids[1:]))

    def test_layout(self):
        generator = Snowflake(node=5)
        value = generator.next()
        assert value < (1 << 63)
        assert (value >> allocator.SNOWFLAKE_SEQUENCE_BITS) & allocator.MAX_NODE_ID == 5

    def test_clock_moving_backwards(self, monkeypatch):
        generator = Snowflake(node=1)
        readings = iter([1000, 1000, 990, 995])
        monkeypatch.setattr(generator, "_millis", lambda: next(readings))
        ids = [generator.next() for _ in range(4)]
        assert all(a < b for a, b in zip(ids, ids[1:]))

    def test_unique_across_threads(self):
        generator = Snowflake(node=9)
        results = []
        lock = threading.Lock()

        def work():
            local = [generator.next() for _ in range(1000)]
            with lock:
                results.extend(local)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(set(results)) == 8000

    def test_invalid_node(self):
        with pytest.raises(exceptions.AllocatorUnavailable):
            Snowflake(node=2048)


class TestAllocate:
    def test_pair(self):
        internalID, externalID = allocator.allocate()
        assert isinstance(internalID, int) and internalID > 0
        assert isinstance(externalID, UUID)
        assert externalID.version == 4

    def test_external_ids_are_random(self):
        assert len({allocator.allocate()[1] for _ in range(100)}) == 100


class TestMonotonicClock:
    def test_readings_strictly_increase(self):
        clock = MonotonicClock()
        readings = [clock.now() for _ in range(1000)]
        assert all(a < b for a, b in zip(readings, readings[1:]))
        assert readings[0].tzinfo is not None
