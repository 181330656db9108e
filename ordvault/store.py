"""
Ordinals Vault State Store

Namespaced key-value state with whole-call atomicity. Every slot the vault
owns (ledger maps, nonce set, singleton configuration) lives under a namespace
of one injected store; nothing is kept in module globals.

    store = StateStore()
    nonces = store.map("used_nonces")

    with store.transaction():
        nonces.set(nonce, 1)
        store.emit(event)
        raise VaultError(...)   # nonce write and event are both discarded

Reads inside a transaction see its own pending writes. Calls are serialized by
a re-entrant lock, so a transaction is never observed half-applied. Nested
transactions join the outermost one.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ordvault.events import Event, EventBus


class StateStore:
    """Namespaced key-value state with all-or-nothing transactions."""

    def __init__(self, event_bus: Optional[EventBus] = None):
        self._committed: Dict[str, Dict[Any, Any]] = defaultdict(dict)
        self._pending: Optional[Dict[Tuple[str, Any], Any]] = None
        self._pending_events: List[Event] = []
        self._events: List[Event] = []
        self._lock = threading.RLock()
        self.event_bus = event_bus or EventBus()

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    def get(self, namespace: str, key: Any, default: Any = 0) -> Any:
        with self._lock:
            if self._pending is not None and (namespace, key) in self._pending:
                return self._pending[(namespace, key)]
            return self._committed[namespace].get(key, default)

    def set(self, namespace: str, key: Any, value: Any) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending[(namespace, key)] = value
            else:
                self._committed[namespace][key] = value

    def map(self, namespace: str) -> "StoredMap":
        return StoredMap(self, namespace)

    def value(self, namespace: str, default: Any = 0) -> "StoredValue":
        return StoredValue(self, namespace, default)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def emit(self, event: Event) -> None:
        """Record an event; published only if the enclosing call commits."""
        with self._lock:
            if self._pending is not None:
                self._pending_events.append(event)
                return
        self._publish([event])

    @property
    def events(self) -> List[Event]:
        """Committed events in emission order."""
        with self._lock:
            return list(self._events)

    def _publish(self, events: List[Event]) -> None:
        with self._lock:
            self._events.extend(events)
        for event in events:
            self.event_bus.publish(event)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        with self._lock:
            return self._pending is not None

    @contextmanager
    def transaction(self) -> Iterator["StateStore"]:
        """Apply every write and event of the block only if it exits cleanly."""
        with self._lock:
            if self._pending is not None:
                yield self
                return

            self._pending = {}
            self._pending_events = []
            try:
                yield self
            except BaseException:
                self._pending = None
                self._pending_events = []
                raise

            for (namespace, key), value in self._pending.items():
                self._committed[namespace][key] = value
            events = self._pending_events
            self._pending = None
            self._pending_events = []

        self._publish(events)


class StoredMap:
    """View of one namespace as a map."""

    def __init__(self, store: StateStore, namespace: str):
        self._store = store
        self.namespace = namespace

    def get(self, key: Any, default: Any = 0) -> Any:
        return self._store.get(self.namespace, key, default)

    def set(self, key: Any, value: Any) -> None:
        self._store.set(self.namespace, key, value)

    def __contains__(self, key: Any) -> bool:
        sentinel = object()
        return self._store.get(self.namespace, key, sentinel) is not sentinel


class StoredValue:
    """Singleton slot."""

    def __init__(self, store: StateStore, namespace: str, default: Any = 0):
        self._store = store
        self.namespace = namespace
        self._default = default

    @property
    def value(self) -> Any:
        return self._store.get(self.namespace, None, self._default)

    @value.setter
    def value(self, new_value: Any) -> None:
        self._store.set(self.namespace, None, new_value)
