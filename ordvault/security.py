"""
Ordinals Vault Security Layer

Replay and trust controls that gate burn recording:

1. Nonce Guard - each attestation nonce is accepted once, forever
2. Oracle Key Registry - the single trusted oracle key fingerprint
3. Collection Binding - optional scoping of an instance to one collection

Security Model:
    - Fail-secure: an unknown key never reaches signature verification
    - No expiry: a consumed nonce stays consumed
    - State changes ride the caller's transaction and roll back with it

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from ordvault.hardening import CryptoUtils, VaultError, VaultErrorKind, u256_hex
from ordvault.hashing import oracle_key_hash
from ordvault.store import StateStore

USED = 1


# =============================================================================
# NONCE GUARD
# =============================================================================

class NonceGuard:
    """
    Set of consumed attestation nonces.

    consume() checks and marks in one step. Run it inside the recording
    call's transaction so that a later rejection releases the nonce again.
    """

    def __init__(self, store: StateStore):
        self._nonces = store.map("used_nonces")

    def consume(self, nonce: int) -> None:
        """Mark nonce used. Raises NONCE_REUSED if it already was."""
        if self.is_used(nonce):
            raise VaultError(VaultErrorKind.NONCE_REUSED, f"nonce {u256_hex(nonce)} already used")
        self._nonces.set(nonce, USED)

    def is_used(self, nonce: int) -> bool:
        return self._nonces.get(nonce) != 0


# =============================================================================
# ORACLE KEY REGISTRY
# =============================================================================

class OracleKeyRegistry:
    """Holds the fingerprint (SHA-256) of the trusted oracle public key."""

    def __init__(self, store: StateStore):
        self._key_hash = store.value("oracle_key_hash")

    @property
    def fingerprint(self) -> int:
        return self._key_hash.value

    def rotate(self, new_fingerprint: int) -> int:
        """Replace the trusted fingerprint immediately. Returns the old one."""
        old = self._key_hash.value
        self._key_hash.value = new_fingerprint
        return old

    def is_trusted(self, public_key: bytes) -> bool:
        return CryptoUtils.secure_compare_u256(oracle_key_hash(public_key), self.fingerprint)

    def require_trusted(self, public_key: bytes) -> None:
        if not self.is_trusted(public_key):
            raise VaultError(VaultErrorKind.UNKNOWN_ORACLE_KEY, "unknown oracle public key")


# =============================================================================
# COLLECTION BINDING
# =============================================================================

class CollectionBinding:
    """
    Collection identifier this instance accepts attestations for.

    Zero means unscoped: any collection binding in an attestation is accepted
    (it is still covered by the signature).
    """

    def __init__(self, store: StateStore):
        self._collection_id = store.value("collection_id_hash")

    @property
    def value(self) -> int:
        return self._collection_id.value

    @property
    def is_scoped(self) -> bool:
        return self.value != 0

    def initialize(self, collection_id: int) -> None:
        self._collection_id.value = collection_id

    def check(self, collection_id: int) -> None:
        """Raise COLLECTION_MISMATCH when scoped and the value differs."""
        if self.is_scoped and collection_id != self.value:
            raise VaultError(
                VaultErrorKind.COLLECTION_MISMATCH,
                f"collection {u256_hex(collection_id)} does not match {u256_hex(self.value)}",
            )
