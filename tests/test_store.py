"""
State store and event bus tests: namespacing, atomic calls, committed-only events.
"""

import pytest

from ordvault.events import BurnRecorded, Event, EventBus, Minted
from ordvault.store import StateStore


class TestSlots:
    """Namespaced maps and singleton values."""

    def test_unset_slots_read_as_zero(self):
        store = StateStore()
        assert store.map("m").get(42) == 0
        assert store.value("v").value == 0

    def test_namespaces_do_not_collide(self):
        store = StateStore()
        store.map("a").set(1, "x")
        store.map("b").set(1, "y")
        assert store.map("a").get(1) == "x"
        assert store.map("b").get(1) == "y"

    def test_contains(self):
        store = StateStore()
        m = store.map("m")
        assert 5 not in m
        m.set(5, 0)
        assert 5 in m

    def test_value_default(self):
        store = StateStore()
        assert store.value("settings", None).value is None


class TestTransactions:
    """All-or-nothing calls."""

    def test_commit_on_success(self):
        store = StateStore()
        with store.transaction():
            store.map("m").set(1, 10)
        assert store.map("m").get(1) == 10

    def test_reads_see_pending_writes(self):
        store = StateStore()
        with store.transaction():
            store.map("m").set(1, 10)
            assert store.map("m").get(1) == 10
            assert store.in_transaction
        assert not store.in_transaction

    def test_rollback_on_exception(self):
        store = StateStore()
        store.map("m").set(1, 1)

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.map("m").set(1, 2)
                store.map("m").set(2, 2)
                raise RuntimeError("abort")

        assert store.map("m").get(1) == 1
        assert 2 not in store.map("m")

    def test_nested_transaction_joins_outer(self):
        store = StateStore()
        with pytest.raises(ValueError):
            with store.transaction():
                with store.transaction():
                    store.map("m").set(1, 1)
                raise ValueError("outer fails")
        assert store.map("m").get(1) == 0


class TestEvents:
    """Events surface only when their call commits."""

    def test_event_published_after_commit(self):
        store = StateStore()
        seen = []
        store.event_bus.subscribe(Minted)(seen.append)

        with store.transaction():
            store.emit(Minted(claim_id="x", token_id=1))
            assert seen == []

        assert [e.token_id for e in seen] == [1]
        assert len(store.events) == 1

    def test_event_discarded_on_rollback(self):
        store = StateStore()
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.emit(Minted(claim_id="x", token_id=1))
                raise RuntimeError("abort")
        assert store.events == []

    def test_typed_subscription(self):
        bus = EventBus()
        minted, everything = [], []
        bus.subscribe(Minted)(minted.append)
        bus.subscribe()(everything.append)

        bus.publish(Minted(claim_id="x", token_id=1))
        bus.publish(BurnRecorded(claim_id="x"))

        assert len(minted) == 1
        assert len(everything) == 2

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("handler bug")

        bus.subscribe(Minted, priority=10)(broken)
        bus.subscribe(Minted)(seen.append)
        bus.publish(Minted(claim_id="x", token_id=1))

        assert len(seen) == 1

    def test_unsubscribe_and_stats(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("handler bug")

        bus.subscribe(Minted)(seen.append)
        bus.subscribe(Minted)(broken)
        bus.publish(Minted(claim_id="x", token_id=1))
        assert bus.get_stats() == {"handlers": 2, "published": 1, "errors": 1}

        assert bus.unsubscribe(broken)
        assert not bus.unsubscribe(broken)
        bus.publish(Minted(claim_id="y", token_id=2))

        assert len(seen) == 2
        assert bus.get_stats() == {"handlers": 1, "published": 2, "errors": 1}

    def test_digest_ignores_envelope(self):
        a = Minted(claim_id="x", token_id=1, height=5)
        b = Minted(claim_id="x", token_id=1, height=5)
        assert a.event_id != b.event_id
        assert a.digest() == b.digest()
        assert a.digest() != Minted(claim_id="x", token_id=2, height=5).digest()

    def test_to_dict_renders_bytes_as_hex(self):
        event = BurnRecorded(claim_id="x", claimant=bytes([0x22]) * 32)
        d = event.to_dict()
        assert d["event_type"] == "BurnRecorded"
        assert d["claimant"] == "0x" + "22" * 32
        assert isinstance(Event().to_json(), str)
