"""
Ordinals Vault Events

Typed notifications emitted by vault calls. Events are immutable facts and are
published only after the call that produced them commits; a rejected call
publishes nothing.

Usage
─────

    from ordvault.events import EventBus, Transferred

    bus = EventBus()

    @bus.subscribe(Transferred)
    def on_transfer(event: Transferred):
        print(f"token {event.token_id} -> {event.to}")

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Type

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════════
# EVENT BASE
# ════════════════════════════════════════════════════════════════════════════


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, int) and not isinstance(value, bool) and value >= 1 << 53:
        return hex(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class Event:
    """
    Base class for all vault events.

    Each event carries a unique ID, timestamp and the block height at which
    the emitting call ran.
    """

    height: int = 0
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = None

    @property
    def event_type(self) -> str:
        """Get the event type name."""
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to a JSON-compatible dictionary."""
        data = _jsonable(asdict(self))
        data["event_type"] = self.event_type
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def digest(self) -> str:
        """Deterministic digest of the event payload, excluding delivery metadata."""
        data = self.to_dict()
        for key in ("event_id", "event_timestamp", "correlation_id"):
            data.pop(key, None)
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ════════════════════════════════════════════════════════════════════════════
# DOMAIN EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Transferred(Event):
    """Token moved; from_address is the zero address for a mint."""
    operator: bytes = b""
    from_address: bytes = b""
    to: bytes = b""
    token_id: int = 0


@dataclass(frozen=True)
class BurnRecorded(Event):
    """An oracle attestation was accepted for a claim."""
    claim_id: str = ""
    claimant: bytes = b""
    nonce: int = 0
    deadline: int = 0


@dataclass(frozen=True)
class Minted(Event):
    """A recorded burn was consumed to create a token."""
    claim_id: str = ""
    token_id: int = 0


@dataclass(frozen=True)
class OracleRotated(Event):
    """The trusted oracle key fingerprint was replaced."""
    old_key_hash: int = 0
    new_key_hash: int = 0


# ════════════════════════════════════════════════════════════════════════════
# EVENT BUS
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]


@dataclass
class EventHandlerRegistration:
    """Registration for an event handler."""
    handler: EventHandler
    event_types: Set[Type[Event]]
    priority: int = 0


class EventBus:
    """
    In-memory event bus for pub/sub notification.

    Handlers run synchronously in priority order. A failing handler is
    logged and does not affect other handlers or the call that emitted
    the event, which has already committed.
    """

    def __init__(self):
        self._handlers: List[EventHandlerRegistration] = []
        self._lock = threading.RLock()
        self._published_count = 0
        self._error_count = 0

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator to subscribe a handler to event types (all events if none given)."""
        def decorator(handler: EventHandler) -> EventHandler:
            registration = EventHandlerRegistration(
                handler=handler,
                event_types=set(event_types) if event_types else {Event},
                priority=priority,
            )
            with self._lock:
                self._handlers.append(registration)
                self._handlers.sort(key=lambda r: -r.priority)
            return handler
        return decorator

    def unsubscribe(self, handler: EventHandler) -> bool:
        with self._lock:
            original_len = len(self._handlers)
            self._handlers = [r for r in self._handlers if r.handler != handler]
            return len(self._handlers) < original_len

    def publish(self, event: Event) -> None:
        with self._lock:
            self._published_count += 1
            handlers = [
                r.handler for r in self._handlers
                if any(isinstance(event, t) for t in r.event_types)
            ]

        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:
                with self._lock:
                    self._error_count += 1
                logger.error(
                    "Event handler %s failed for %s: %s",
                    getattr(handler, "__name__", repr(handler)), event.event_type, exc,
                    exc_info=True,
                )

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "handlers": len(self._handlers),
                "published": self._published_count,
                "errors": self._error_count,
            }
