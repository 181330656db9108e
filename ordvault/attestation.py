"""
Ordinals Vault Oracle Attestations

An attestation is the oracle's signed statement that a specific inscription
was burned on Bitcoin by a specific claimant, usable until a deadline height
and carrying a single-use nonce.

Signed layout (all big-endian, byte-for-byte compatible with the oracle):

    ┌──────────────────┬──────────┬───────────┬──────────┬──────────┬─────────┬───────────────┐
    │ contract address │ len(id)  │ claim id  │ claimant │ deadline │ nonce   │ collection id │
    │ 32               │ 4 (u32)  │ n (UTF-8) │ 32       │ 8 (u64)  │ 32      │ 32            │
    └──────────────────┴──────────┴───────────┴──────────┴──────────┴─────────┴───────────────┘

The oracle signs sha256(layout) with ML-DSA-44 (FIPS 204, security level 2).
The vault accepts a signature only if sha256(public key) equals the stored
oracle fingerprint; unknown keys are rejected before verification.

Wire record (GET /attestation/<txid>):

    {
      "inscriptionId": "<txid>i0",
      "burner": "0x<32 bytes>",
      "deadline": 840100,
      "nonce": "0x<32 bytes>",
      "collectionIdHash": "0x<32 bytes>",
      "oraclePublicKey": "0x<1312 bytes>",
      "oracleSig": "0x<2420 bytes>"
    }

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator
from pqcrypto.sign import ml_dsa_44

from ordvault.hardening import (
    ADDRESS_LENGTH,
    ValidationError,
    Validators,
    VaultError,
    VaultErrorKind,
    u256_hex,
)
from ordvault.hashing import oracle_key_hash
from ordvault.observability import VaultLayer, get_logger
from ordvault.security import OracleKeyRegistry

logger = get_logger("attestation", VaultLayer.ORACLE)


# =============================================================================
# SIGNATURE SCHEME
# =============================================================================

class MLDSA44:
    """ML-DSA-44 with the sizes FIPS 204 mandates for security level 2."""

    NAME = "ML-DSA-44"
    PUBLIC_KEY_SIZE = 1312
    SECRET_KEY_SIZE = 2560
    SIGNATURE_SIZE = 2420

    @staticmethod
    def generate_keypair() -> Tuple[bytes, bytes]:
        """Return (public_key, secret_key)."""
        public_key, secret_key = ml_dsa_44.generate_keypair()
        return bytes(public_key), bytes(secret_key)

    @classmethod
    def sign(cls, secret_key: bytes, message: bytes) -> bytes:
        if len(secret_key) != cls.SECRET_KEY_SIZE:
            raise ValidationError("secret_key", f"Expected {cls.SECRET_KEY_SIZE} bytes", len(secret_key))
        return bytes(ml_dsa_44.sign(secret_key, message))

    @classmethod
    def verify(cls, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Check a detached signature. Wrong-length inputs are rejected up front."""
        if len(public_key) != cls.PUBLIC_KEY_SIZE or len(signature) != cls.SIGNATURE_SIZE:
            return False
        try:
            return ml_dsa_44.verify(public_key, message, signature) is True
        except (TypeError, ValueError) as exc:
            logger.debug("ML-DSA verification raised", error=str(exc))
            return False


# =============================================================================
# SIGNED LAYOUT
# =============================================================================

def build_attestation_message(
    contract_address: bytes,
    claim_id: str,
    claimant: bytes,
    deadline: int,
    nonce: int,
    collection_id: int,
) -> bytes:
    """Canonical bytes the oracle signs over (before hashing)."""
    claim_bytes = claim_id.encode("utf-8")
    return b"".join((
        contract_address,
        len(claim_bytes).to_bytes(4, "big"),
        claim_bytes,
        claimant,
        deadline.to_bytes(8, "big"),
        nonce.to_bytes(32, "big"),
        collection_id.to_bytes(32, "big"),
    ))


def attestation_digest(
    contract_address: bytes,
    claim_id: str,
    claimant: bytes,
    deadline: int,
    nonce: int,
    collection_id: int,
) -> bytes:
    """SHA-256 of the canonical layout. This is the signed message."""
    message = build_attestation_message(
        contract_address, claim_id, claimant, deadline, nonce, collection_id,
    )
    return hashlib.sha256(message).digest()


# =============================================================================
# ATTESTATION RECORD
# =============================================================================

def _hex_pattern(n_bytes: int) -> str:
    return f"^(0x)?[0-9a-fA-F]{{{n_bytes * 2}}}$"


ATTESTATION_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://schemas.ordvault.dev/attestation.schema.json",
    "title": "Oracle burn attestation",
    "type": "object",
    "required": [
        "inscriptionId",
        "burner",
        "deadline",
        "nonce",
        "oraclePublicKey",
        "oracleSig",
    ],
    "properties": {
        "inscriptionId": {"type": "string"},
        "burner": {"type": "string", "pattern": _hex_pattern(ADDRESS_LENGTH)},
        "deadline": {"type": "integer", "minimum": 0, "maximum": (1 << 64) - 1},
        "nonce": {"type": "string", "pattern": _hex_pattern(32)},
        "collectionIdHash": {"type": "string", "pattern": _hex_pattern(32)},
        "oraclePublicKey": {"type": "string", "pattern": _hex_pattern(MLDSA44.PUBLIC_KEY_SIZE)},
        "oracleSig": {"type": "string", "pattern": _hex_pattern(MLDSA44.SIGNATURE_SIZE)},
    },
}

_SCHEMA_VALIDATOR = Draft202012Validator(ATTESTATION_SCHEMA)


def validate_wire(record: Any) -> List[str]:
    """Schema errors for a wire record, empty when valid."""
    errors = []
    for e in sorted(_SCHEMA_VALIDATOR.iter_errors(record), key=str):
        errors.append(f"{list(e.absolute_path)}: {e.message}")
    return errors


@dataclass(frozen=True)
class Attestation:
    """An oracle attestation as fetched from the oracle and submitted to a vault."""
    claim_id: str
    claimant: bytes
    deadline: int
    nonce: int
    oracle_public_key: bytes
    oracle_signature: bytes
    collection_id: int = 0

    def digest(self, contract_address: bytes) -> bytes:
        """Signed digest for the given vault address."""
        return attestation_digest(
            contract_address,
            self.claim_id,
            self.claimant,
            self.deadline,
            self.nonce,
            self.collection_id,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "inscriptionId": self.claim_id,
            "burner": "0x" + self.claimant.hex(),
            "deadline": self.deadline,
            "nonce": u256_hex(self.nonce),
            "collectionIdHash": u256_hex(self.collection_id),
            "oraclePublicKey": "0x" + self.oracle_public_key.hex(),
            "oracleSig": "0x" + self.oracle_signature.hex(),
        }

    @classmethod
    def from_wire(cls, record: Any) -> "Attestation":
        """Parse a wire record, raising ValidationError on schema violations."""
        errors = validate_wire(record)
        if errors:
            raise ValidationError("attestation", "; ".join(errors))

        return cls(
            claim_id=record["inscriptionId"],
            claimant=Validators.validate_address(record["burner"], "burner"),
            deadline=record["deadline"],
            nonce=Validators.parse_u256(_prefixed(record["nonce"]), "nonce"),
            oracle_public_key=Validators.validate_bytes(record["oraclePublicKey"], "oraclePublicKey"),
            oracle_signature=Validators.validate_bytes(record["oracleSig"], "oracleSig"),
            collection_id=Validators.parse_u256(
                _prefixed(record.get("collectionIdHash", "0x0")), "collectionIdHash",
            ),
        )


def _prefixed(hex_text: str) -> str:
    return hex_text if hex_text.lower().startswith("0x") else "0x" + hex_text


# =============================================================================
# VERIFIER
# =============================================================================

class AttestationVerifier:
    """
    Decides whether the trusted oracle signed exactly a given claim.

    The layout is rebuilt with this instance's own contract address, so an
    attestation for one vault never verifies at another.
    """

    def __init__(self, registry: OracleKeyRegistry, contract_address: bytes):
        self._registry = registry
        self._contract_address = contract_address

    def digest(
        self,
        claim_id: str,
        claimant: bytes,
        deadline: int,
        nonce: int,
        collection_id: int,
    ) -> bytes:
        return attestation_digest(
            self._contract_address, claim_id, claimant, deadline, nonce, collection_id,
        )

    def require_valid(
        self,
        claim_id: str,
        claimant: bytes,
        deadline: int,
        nonce: int,
        collection_id: int,
        oracle_public_key: bytes,
        oracle_signature: bytes,
    ) -> None:
        """Raise UNKNOWN_ORACLE_KEY or INVALID_SIGNATURE unless accepted."""
        self._registry.require_trusted(oracle_public_key)

        digest = self.digest(claim_id, claimant, deadline, nonce, collection_id)
        if not MLDSA44.verify(oracle_public_key, digest, oracle_signature):
            raise VaultError(VaultErrorKind.INVALID_SIGNATURE, "invalid oracle signature")

    def verify(self, attestation: Attestation) -> bool:
        """Accept or reject; no partial success."""
        try:
            self.require_valid(
                attestation.claim_id,
                attestation.claimant,
                attestation.deadline,
                attestation.nonce,
                attestation.collection_id,
                attestation.oracle_public_key,
                attestation.oracle_signature,
            )
        except VaultError:
            return False
        return True


# =============================================================================
# ORACLE SIGNER
# =============================================================================

class OracleSigner:
    """
    Oracle-side attestation producer.

    Holds the ML-DSA-44 keypair and signs the canonical layout for a target
    vault. The oracle never submits transactions; the claimant submits the
    returned attestation.
    """

    def __init__(self, public_key: bytes, secret_key: bytes):
        if len(public_key) != MLDSA44.PUBLIC_KEY_SIZE:
            raise ValidationError("public_key", f"Expected {MLDSA44.PUBLIC_KEY_SIZE} bytes", len(public_key))
        self.public_key = public_key
        self._secret_key = secret_key

    @classmethod
    def generate(cls) -> "OracleSigner":
        public_key, secret_key = MLDSA44.generate_keypair()
        return cls(public_key, secret_key)

    @property
    def secret_key(self) -> bytes:
        return self._secret_key

    @property
    def key_hash(self) -> int:
        return oracle_key_hash(self.public_key)

    def attest(
        self,
        contract_address: bytes,
        claim_id: str,
        claimant: bytes,
        deadline: int,
        nonce: Optional[int] = None,
        collection_id: int = 0,
    ) -> Attestation:
        """Sign an attestation; a random 256-bit nonce is drawn when none is given."""
        contract_address = Validators.validate_address(contract_address, "contract_address")
        claimant = Validators.validate_address(claimant, "claimant")
        claim_id = Validators.validate_claim_id(claim_id)
        deadline = Validators.validate_u64(deadline, "deadline")
        nonce = secrets.randbits(256) if nonce is None else Validators.validate_u256(nonce, "nonce")
        collection_id = Validators.validate_u256(collection_id, "collection_id")

        digest = attestation_digest(
            contract_address, claim_id, claimant, deadline, nonce, collection_id,
        )
        signature = MLDSA44.sign(self._secret_key, digest)

        logger.info(
            "Attestation signed",
            operation="attest",
            claim_id=claim_id,
            deadline=deadline,
            nonce=u256_hex(nonce),
        )

        return Attestation(
            claim_id=claim_id,
            claimant=claimant,
            deadline=deadline,
            nonce=nonce,
            oracle_public_key=self.public_key,
            oracle_signature=signature,
            collection_id=collection_id,
        )
