"""Ordinals Vault host environment.

The destination ledger as seen by a vault instance: the current block height,
the instance's own 32-byte address, and which recipient addresses are contracts
that must acknowledge incoming tokens.

Usage:
    from ordvault.runtime import Chain

    chain = Chain(contract_address=bytes(32), height=840_000)
    chain.advance()          # one block later
    chain.register_receiver(wallet_contract, hook)
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from ordvault.hardening import ADDRESS_LENGTH, InvariantViolation, Validators

ZERO_ADDRESS = bytes(ADDRESS_LENGTH)

# (operator, from_address, token_id, data) -> acceptance selector
ReceiverHook = Callable[[bytes, bytes, int, bytes], bytes]


class Chain:
    """
    Height source and contract registry for vault calls.

    Height only moves forward. Receiver hooks stand in for recipient contracts
    and are invoked synchronously by the token primitive during a mint.
    """

    def __init__(self, contract_address: bytes, height: int = 0):
        self.contract_address = Validators.validate_address(contract_address, "contract_address")
        self._height = Validators.validate_u64(height, "height")
        self._receivers: Dict[bytes, ReceiverHook] = {}
        self._lock = threading.Lock()

    @property
    def height(self) -> int:
        with self._lock:
            return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the chain forward and return the new height."""
        if blocks < 0:
            raise InvariantViolation(f"height cannot move backward by {blocks}")
        with self._lock:
            self._height += blocks
            return self._height

    def register_receiver(self, address: bytes, hook: ReceiverHook) -> None:
        """Mark an address as a contract recipient with a receive hook."""
        address = Validators.validate_address(address, "address")
        with self._lock:
            self._receivers[address] = hook

    def receiver_hook(self, address: bytes) -> Optional[ReceiverHook]:
        with self._lock:
            return self._receivers.get(address)

    def is_contract(self, address: bytes) -> bool:
        return self.receiver_hook(address) is not None
