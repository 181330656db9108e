"""
Ordinals Vault Validation and Hardening Module

Error taxonomy, call results and input validation for the vault. It addresses:

1. Named rejection reasons for every entry point
2. Result values instead of revert-as-control-flow
3. Input validation for fixed-width integers, addresses and byte blobs
4. Constant-time comparison of fingerprints

Security Model:
    - All inputs are untrusted until validated
    - Every rejection is terminal for the call and names its reason
    - All cryptographic comparisons are constant-time

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union


U64_MAX = (1 << 64) - 1
U256_MAX = (1 << 256) - 1
ADDRESS_LENGTH = 32


# =============================================================================
# ERROR TYPES
# =============================================================================

class VaultErrorKind(Enum):
    """Reasons a vault call can be rejected."""
    EXPIRED = "expired"
    NONCE_REUSED = "nonce_reused"
    ALREADY_RECORDED = "already_recorded"
    ALREADY_MINTED = "already_minted"
    COLLECTION_MISMATCH = "collection_mismatch"
    UNKNOWN_ORACLE_KEY = "unknown_oracle_key"
    INVALID_SIGNATURE = "invalid_signature"
    NOT_RECORDED = "not_recorded"
    WRONG_CLAIMANT = "wrong_claimant"
    CONFIRMATION_PENDING = "confirmation_pending"
    SUPPLY_EXHAUSTED = "supply_exhausted"
    UNAUTHORIZED = "unauthorized"
    RECEIVER_REJECTED = "receiver_rejected"
    NOT_DEPLOYED = "not_deployed"
    ALREADY_DEPLOYED = "already_deployed"
    INVALID_INPUT = "invalid_input"


class VaultError(Exception):
    """A vault call was rejected. Aborts the whole call."""

    def __init__(self, kind: VaultErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {self.message}")


class ValidationError(VaultError):
    """Malformed input to an entry point."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(VaultErrorKind.INVALID_INPUT, f"{field}: {message}")


class InvariantViolation(Exception):
    """State machine invariant violated."""
    pass


# =============================================================================
# CALL RESULT
# =============================================================================

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of a vault entry point: a value or a named rejection."""
    ok: bool
    value: Optional[T] = None
    error: Optional[VaultErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, value: Optional[T] = None) -> "CallResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: VaultErrorKind, message: str = "") -> "CallResult[T]":
        return cls(ok=False, error=kind, message=message or kind.value)

    @classmethod
    def from_error(cls, error: VaultError) -> "CallResult[T]":
        return cls.failure(error.kind, error.message)

    def raise_if_failed(self) -> None:
        """Raise VaultError if the call was rejected."""
        if not self.ok:
            raise VaultError(self.error, self.message)

    def unwrap(self) -> T:
        """Return the value, raising VaultError on rejection."""
        self.raise_if_failed()
        return self.value

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "value": self.value}
        return {"ok": False, "error": self.error.value, "message": self.message}


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators. Each returns the sanitized value or raises."""

    MAX_STRING_LENGTH = 4096

    @classmethod
    def validate_uint(cls, value: Any, field_name: str, max_value: int) -> int:
        """Validate an unsigned integer within [0, max_value]."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(field_name, f"Expected integer, got {type(value).__name__}", value)
        if value < 0:
            raise ValidationError(field_name, "Must be non-negative", value)
        if value > max_value:
            raise ValidationError(field_name, f"Exceeds maximum ({max_value.bit_length()} bits)", value)
        return value

    @classmethod
    def validate_u64(cls, value: Any, field_name: str) -> int:
        return cls.validate_uint(value, field_name, U64_MAX)

    @classmethod
    def validate_u256(cls, value: Any, field_name: str) -> int:
        return cls.validate_uint(value, field_name, U256_MAX)

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> bytes:
        """Validate a 32-byte address given as bytes or (0x-prefixed) hex."""
        return cls.validate_bytes(value, field_name, min_length=ADDRESS_LENGTH, max_length=ADDRESS_LENGTH)

    @classmethod
    def validate_bytes(
        cls,
        value: Any,
        field_name: str,
        min_length: int = 0,
        max_length: int = 65536,
    ) -> bytes:
        """Validate bytes, accepting hex strings."""
        if isinstance(value, str):
            text = value[2:] if value.startswith("0x") else value
            try:
                value = bytes.fromhex(text)
            except ValueError:
                raise ValidationError(field_name, "Invalid hex string", value)

        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)

        if not isinstance(value, bytes):
            raise ValidationError(field_name, f"Expected bytes, got {type(value).__name__}", value)

        if len(value) < min_length:
            raise ValidationError(field_name, f"Too short (min {min_length} bytes)", len(value))

        if len(value) > max_length:
            raise ValidationError(field_name, f"Too long (max {max_length} bytes)", len(value))

        return value

    @classmethod
    def validate_claim_id(cls, value: Any, max_bytes: Optional[int] = None) -> str:
        """Validate a claim identifier; the bound applies to its UTF-8 encoding."""
        max_bytes = max_bytes or cls.MAX_STRING_LENGTH
        if not isinstance(value, str):
            raise ValidationError("claim_id", f"Expected string, got {type(value).__name__}", value)
        try:
            encoded = value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValidationError("claim_id", "Not encodable as UTF-8", value)
        if len(encoded) > max_bytes:
            raise ValidationError("claim_id", f"Too long (max {max_bytes} bytes)", len(encoded))
        return value

    @classmethod
    def parse_u256(cls, value: Union[int, str], field_name: str) -> int:
        """Parse a u256 given as int, decimal string or 0x-prefixed hex."""
        if isinstance(value, str):
            try:
                value = int(value, 16) if value.lower().startswith("0x") else int(value)
            except ValueError:
                raise ValidationError(field_name, "Not an integer", value)
        return cls.validate_u256(value, field_name)


# =============================================================================
# CRYPTOGRAPHIC UTILITIES
# =============================================================================

class CryptoUtils:
    """Cryptographic utility functions with security hardening."""

    @staticmethod
    def secure_compare(a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return hmac.compare_digest(a, b)

    @staticmethod
    def secure_compare_u256(a: int, b: int) -> bool:
        """Constant-time comparison of two 256-bit values."""
        return hmac.compare_digest(a.to_bytes(32, "big"), b.to_bytes(32, "big"))


def u256_hex(value: int) -> str:
    """Render a u256 as 0x-prefixed, zero-padded hex."""
    return "0x" + value.to_bytes(32, "big").hex()
