# PATH: core/events.py
"""
Status events for XARB.

EVENT CONTRACT:
===============
  EventSink.emit(kind, message)  kind in {info, warn, error, opportunity}

Push payloads for UI observers ({"event": name, "data": payload}):
  priceUpdate   {"chainA": {"name", "price"}, "chainB": {"name", "price"}}
  statusUpdate  {"status": text, "busy": bool}
  log           {"type": kind, "message": text}
===============
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from core.constants import EventKind
from core.logging import get_logger

logger = get_logger(__name__)

EVENT_PRICE_UPDATE = "priceUpdate"
EVENT_STATUS_UPDATE = "statusUpdate"
EVENT_LOG = "log"


@dataclass(frozen=True)
class LogEvent:
    kind: EventKind
    message: str

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class ChainPrice:
    name: str
    price: Optional[Decimal]  # Target-token units per trade amount, None if unavailable


@dataclass(frozen=True)
class PriceSnapshot:
    chain_a: ChainPrice
    chain_b: ChainPrice

    def to_payload(self) -> Dict[str, Any]:
        def _price(p: ChainPrice) -> Dict[str, Any]:
            return {"name": p.name, "price": str(p.price) if p.price is not None else None}

        return {"chainA": _price(self.chain_a), "chainB": _price(self.chain_b)}


@dataclass(frozen=True)
class StatusSnapshot:
    status: str
    busy: bool

    def to_payload(self) -> Dict[str, Any]:
        return {"status": self.status, "busy": self.busy}


class EventSink(Protocol):
    """Anything the engine can report status to."""

    def emit(self, kind: Union[EventKind, str], message: str) -> None: ...

    def publish_prices(self, snapshot: PriceSnapshot) -> None: ...

    def publish_status(self, snapshot: StatusSnapshot) -> None: ...


_LEVELS = {
    EventKind.INFO: "info",
    EventKind.OPPORTUNITY: "info",
    EventKind.WARN: "warning",
    EventKind.ERROR: "error",
}


class LoggingEventSink:
    """Mirrors every emission into the structured log."""

    def __init__(self, name: str = "xarb.events"):
        self._logger = get_logger(name)

    def emit(self, kind: Union[EventKind, str], message: str) -> None:
        kind = EventKind(kind)
        log = getattr(self._logger, _LEVELS[kind])
        log(message, extra={"context": {"event": kind.value}})

    def publish_prices(self, snapshot: PriceSnapshot) -> None:
        self._logger.debug("Price snapshot", extra={"context": snapshot.to_payload()})

    def publish_status(self, snapshot: StatusSnapshot) -> None:
        self._logger.debug("Status snapshot", extra={"context": snapshot.to_payload()})


Observer = Callable[[str, Dict[str, Any]], None]


class BroadcastEventSink:
    """
    Fan-out sink: logs every emission and forwards it to all observers.

    Observers are plain callables taking (event_name, payload) and must not
    block; async consumers hand the payload to a queue. An observer that
    raises is dropped.
    """

    def __init__(self, log_sink: Optional[LoggingEventSink] = None):
        self._log_sink = log_sink or LoggingEventSink()
        self._observers: List[Observer] = []
        self.last_prices: Optional[PriceSnapshot] = None
        self.last_status: StatusSnapshot = StatusSnapshot("Idle", busy=False)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        for observer in list(self._observers):
            try:
                observer(event, payload)
            except Exception as e:
                logger.warning(
                    f"Dropping observer after error: {e}",
                    extra={"context": {"event": event}},
                )
                self.unsubscribe(observer)

    def emit(self, kind: Union[EventKind, str], message: str) -> None:
        event = LogEvent(EventKind(kind), message)
        self._log_sink.emit(event.kind, message)
        self._broadcast(EVENT_LOG, event.to_payload())

    def publish_prices(self, snapshot: PriceSnapshot) -> None:
        self.last_prices = snapshot
        self._log_sink.publish_prices(snapshot)
        self._broadcast(EVENT_PRICE_UPDATE, snapshot.to_payload())

    def publish_status(self, snapshot: StatusSnapshot) -> None:
        self.last_status = snapshot
        self._log_sink.publish_status(snapshot)
        self._broadcast(EVENT_STATUS_UPDATE, snapshot.to_payload())
