"""
tests/unit/test_events.py - Event payloads and sinks.
"""

import logging
from decimal import Decimal

from core.constants import EventKind
from core.events import (
    EVENT_LOG,
    EVENT_PRICE_UPDATE,
    EVENT_STATUS_UPDATE,
    BroadcastEventSink,
    ChainPrice,
    LoggingEventSink,
    PriceSnapshot,
    StatusSnapshot,
)


class TestPayloads:

    def test_price_snapshot_payload(self):
        snapshot = PriceSnapshot(ChainPrice("ethereum", Decimal("0.97")), ChainPrice("polygon", None))
        assert snapshot.to_payload() == {
            "chainA": {"name": "ethereum", "price": "0.97"},
            "chainB": {"name": "polygon", "price": None},
        }

    def test_status_payload(self):
        assert StatusSnapshot("Idle", busy=False).to_payload() == {"status": "Idle", "busy": False}


class TestLoggingEventSink:

    def test_levels(self, caplog):
        sink = LoggingEventSink("xarb.test.events")
        with caplog.at_level(logging.INFO, logger="xarb.test.events"):
            sink.emit(EventKind.INFO, "hello")
            sink.emit("warn", "careful")
            sink.emit(EventKind.ERROR, "broken")
            sink.emit(EventKind.OPPORTUNITY, "found one")

        levels = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert levels == [
            (logging.INFO, "hello"),
            (logging.WARNING, "careful"),
            (logging.ERROR, "broken"),
            (logging.INFO, "found one"),
        ]
        assert caplog.records[-1].context == {"event": "opportunity"}


class TestBroadcastEventSink:

    def test_fans_out_to_all_observers(self):
        sink = BroadcastEventSink()
        first, second = [], []
        sink.subscribe(lambda e, p: first.append((e, p)))
        sink.subscribe(lambda e, p: second.append((e, p)))

        sink.emit(EventKind.INFO, "tick")

        assert first == second == [(EVENT_LOG, {"type": "info", "message": "tick"})]

    def test_remembers_last_snapshots(self):
        sink = BroadcastEventSink()
        assert sink.last_status == StatusSnapshot("Idle", busy=False)
        assert sink.last_prices is None

        prices = PriceSnapshot(ChainPrice("a", Decimal("1")), ChainPrice("b", Decimal("2")))
        sink.publish_prices(prices)
        sink.publish_status(StatusSnapshot("Executing trade", busy=True))

        assert sink.last_prices == prices
        assert sink.last_status.busy is True

    def test_event_names(self):
        sink = BroadcastEventSink()
        seen = []
        sink.subscribe(lambda e, p: seen.append(e))

        sink.publish_prices(PriceSnapshot(ChainPrice("a", None), ChainPrice("b", None)))
        sink.publish_status(StatusSnapshot("Idle", busy=False))
        sink.emit(EventKind.WARN, "w")

        assert seen == [EVENT_PRICE_UPDATE, EVENT_STATUS_UPDATE, EVENT_LOG]

    def test_failing_observer_is_dropped(self):
        sink = BroadcastEventSink()
        healthy = []

        def broken(event, payload):
            raise ConnectionError("gone")

        sink.subscribe(broken)
        sink.subscribe(lambda e, p: healthy.append(e))

        sink.emit(EventKind.INFO, "one")
        sink.emit(EventKind.INFO, "two")

        assert sink.observer_count == 1
        assert healthy == [EVENT_LOG, EVENT_LOG]

    def test_subscribe_is_idempotent(self):
        sink = BroadcastEventSink()

        def observer(event, payload):
            pass

        sink.subscribe(observer)
        sink.subscribe(observer)
        assert sink.observer_count == 1
        sink.unsubscribe(observer)
        sink.unsubscribe(observer)
        assert sink.observer_count == 0
