"""
Attestation Test Suite

1. Signed layout and reference digests
2. ML-DSA-44 wrapper
3. Verifier (key binding, signature, cross-vault isolation)
4. Wire format

Copyright (c) 2026 Momentum. All rights reserved.
"""

import json

import pytest
from pqcrypto.sign import ml_dsa_44

from conftest import CLAIMANT, CONTRACT, INSCRIPTION, STRANGER
from ordvault.attestation import (
    MLDSA44,
    Attestation,
    AttestationVerifier,
    OracleSigner,
    attestation_digest,
    build_attestation_message,
    validate_wire,
)
from ordvault.hardening import ValidationError, VaultError, VaultErrorKind
from ordvault.hashing import collection_id_from_slug
from ordvault.security import OracleKeyRegistry
from ordvault.store import StateStore


# =============================================================================
# SIGNED LAYOUT
# =============================================================================

class TestSignedLayout:
    """Byte-for-byte layout the oracle signs."""

    def test_layout_fields(self):
        message = build_attestation_message(CONTRACT, INSCRIPTION, CLAIMANT, 1000, 1, 0)

        assert len(message) == 32 + 4 + 66 + 32 + 8 + 32 + 32
        assert message[:32] == CONTRACT
        assert message[32:36] == (66).to_bytes(4, "big")
        assert message[36:102] == INSCRIPTION.encode()
        assert message[102:134] == CLAIMANT
        assert message[134:142] == bytes.fromhex("00000000000003e8")
        assert message[142:174] == bytes(31) + b"\x01"
        assert message[174:] == bytes(32)

    def test_reference_digest(self):
        """Known inputs hash to a known digest."""
        digest = attestation_digest(CONTRACT, INSCRIPTION, CLAIMANT, 1000, 1, 0)
        assert digest.hex() == "69031c7ffa25f75eceb5cbf7a440f1c5e31a0095c53fa75dce8d2d3fa555ec69"

    def test_reference_digest_with_collection(self):
        collection = collection_id_from_slug("bitcoin-puppets")
        digest = attestation_digest(CONTRACT, INSCRIPTION, CLAIMANT, 1000, 1, collection)
        assert digest.hex() == "ef21224fb0d2902979413af72d1a6176b54586b8f2cd1c5afb621c01d4864b5e"

    def test_length_prefix_counts_utf8_bytes(self):
        message = build_attestation_message(CONTRACT, "é", CLAIMANT, 0, 0, 0)
        assert message[32:36] == (2).to_bytes(4, "big")

    @pytest.mark.parametrize("field_index,changed", [
        (0, (bytes([0x12]) * 32, INSCRIPTION, CLAIMANT, 1000, 1, 0)),
        (1, (CONTRACT, INSCRIPTION[:-1] + "1", CLAIMANT, 1000, 1, 0)),
        (2, (CONTRACT, INSCRIPTION, STRANGER, 1000, 1, 0)),
        (3, (CONTRACT, INSCRIPTION, CLAIMANT, 1001, 1, 0)),
        (4, (CONTRACT, INSCRIPTION, CLAIMANT, 1000, 2, 0)),
        (5, (CONTRACT, INSCRIPTION, CLAIMANT, 1000, 1, 1)),
    ])
    def test_every_field_is_bound(self, field_index, changed):
        base = attestation_digest(CONTRACT, INSCRIPTION, CLAIMANT, 1000, 1, 0)
        assert attestation_digest(*changed) != base


# =============================================================================
# ML-DSA-44
# =============================================================================

class TestMLDSA44:
    """Signature scheme wrapper."""

    def test_key_and_signature_sizes(self, oracle):
        assert len(oracle.public_key) == MLDSA44.PUBLIC_KEY_SIZE
        signature = MLDSA44.sign(oracle.secret_key, b"\x00" * 32)
        assert len(signature) == MLDSA44.SIGNATURE_SIZE

    def test_sign_verify(self, oracle):
        signature = MLDSA44.sign(oracle.secret_key, b"message")
        assert MLDSA44.verify(oracle.public_key, b"message", signature)
        assert not MLDSA44.verify(oracle.public_key, b"massage", signature)

    def test_wrong_lengths_rejected_before_verification(self, oracle):
        signature = MLDSA44.sign(oracle.secret_key, b"message")
        assert not MLDSA44.verify(oracle.public_key[:-1], b"message", signature)
        assert not MLDSA44.verify(oracle.public_key, b"message", signature + b"\x00")

    def test_backend_api(self):
        """The installed ml_dsa_44 module reports validity as a plain bool."""
        public_key, secret_key = ml_dsa_44.generate_keypair()
        signature = ml_dsa_44.sign(secret_key, b"digest")

        assert ml_dsa_44.PUBLIC_KEY_SIZE == MLDSA44.PUBLIC_KEY_SIZE
        assert ml_dsa_44.SECRET_KEY_SIZE == MLDSA44.SECRET_KEY_SIZE
        assert ml_dsa_44.SIGNATURE_SIZE == MLDSA44.SIGNATURE_SIZE
        assert ml_dsa_44.verify(public_key, b"digest", signature) is True
        assert ml_dsa_44.verify(public_key, b"digesT", signature) is False
        assert MLDSA44.verify(public_key, b"digest", signature) is True

    def test_sign_rejects_malformed_secret_key(self):
        with pytest.raises(ValidationError):
            MLDSA44.sign(b"\x00" * 10, b"message")


# =============================================================================
# VERIFIER
# =============================================================================

def _verifier(signer: OracleSigner, contract: bytes = CONTRACT) -> AttestationVerifier:
    registry = OracleKeyRegistry(StateStore())
    registry.rotate(signer.key_hash)
    return AttestationVerifier(registry, contract)


class TestVerifier:
    """Accept exactly what the trusted oracle signed for this vault."""

    def test_accepts_valid_attestation(self, oracle):
        attestation = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1)
        assert _verifier(oracle).verify(attestation)

    def test_unknown_key_fails_closed(self, oracle, rogue_oracle):
        attestation = rogue_oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1)
        with pytest.raises(VaultError) as exc:
            _verifier(oracle).require_valid(
                attestation.claim_id,
                attestation.claimant,
                attestation.deadline,
                attestation.nonce,
                attestation.collection_id,
                attestation.oracle_public_key,
                attestation.oracle_signature,
            )
        assert exc.value.kind is VaultErrorKind.UNKNOWN_ORACLE_KEY

    def test_tampered_claimant_is_invalid_signature(self, oracle):
        attestation = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1)
        with pytest.raises(VaultError) as exc:
            _verifier(oracle).require_valid(
                attestation.claim_id,
                STRANGER,
                attestation.deadline,
                attestation.nonce,
                attestation.collection_id,
                attestation.oracle_public_key,
                attestation.oracle_signature,
            )
        assert exc.value.kind is VaultErrorKind.INVALID_SIGNATURE

    def test_attestation_for_another_vault_is_rejected(self, oracle):
        attestation = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1)
        assert not _verifier(oracle, contract=bytes([0x99]) * 32).verify(attestation)

    def test_truncated_signature(self, oracle):
        attestation = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1)
        truncated = Attestation(
            claim_id=attestation.claim_id,
            claimant=attestation.claimant,
            deadline=attestation.deadline,
            nonce=attestation.nonce,
            oracle_public_key=attestation.oracle_public_key,
            oracle_signature=attestation.oracle_signature[:100],
        )
        assert not _verifier(oracle).verify(truncated)


# =============================================================================
# SIGNER
# =============================================================================

class TestOracleSigner:

    def test_random_nonces(self, oracle):
        a = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000)
        b = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000)
        assert a.nonce != b.nonce

    def test_digest_matches_layout(self, oracle):
        attestation = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1)
        assert attestation.digest(CONTRACT).hex() == (
            "69031c7ffa25f75eceb5cbf7a440f1c5e31a0095c53fa75dce8d2d3fa555ec69"
        )

    def test_rejects_malformed_inputs(self, oracle):
        with pytest.raises(ValidationError):
            oracle.attest(CONTRACT, "", CLAIMANT, deadline=1000)
        with pytest.raises(ValidationError):
            oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT[:31], deadline=1000)
        with pytest.raises(ValidationError):
            oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1 << 64)

    def test_rejects_wrong_size_public_key(self):
        with pytest.raises(ValidationError):
            OracleSigner(b"\x00" * 10, b"\x00" * MLDSA44.SECRET_KEY_SIZE)


# =============================================================================
# WIRE FORMAT
# =============================================================================

class TestWireFormat:
    """JSON record served by the oracle."""

    def test_round_trip(self, oracle):
        collection = collection_id_from_slug("bitcoin-puppets")
        original = oracle.attest(
            CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1, collection_id=collection,
        )
        record = json.loads(json.dumps(original.to_wire()))

        assert record["burner"] == "0x" + "22" * 32
        assert record["deadline"] == 1000
        assert Attestation.from_wire(record) == original

    def test_collection_id_optional(self, oracle):
        record = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1).to_wire()
        del record["collectionIdHash"]
        assert Attestation.from_wire(record).collection_id == 0

    def test_schema_reports_missing_and_malformed_fields(self, oracle):
        record = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1).to_wire()
        del record["oracleSig"]
        record["burner"] = "0x1234"

        errors = validate_wire(record)
        assert any("oracleSig" in e for e in errors)
        assert any("burner" in e for e in errors)

        with pytest.raises(ValidationError):
            Attestation.from_wire(record)

    def test_deadline_must_be_integer(self, oracle):
        record = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=1000, nonce=1).to_wire()
        record["deadline"] = "1000"
        assert validate_wire(record)

    def test_non_object_rejected(self):
        assert validate_wire([])
