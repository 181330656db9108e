"""
Storage-key derivation and fingerprints.

Two families of digests live here and must not be confused:

    Storage keys   digest_of / address_digest. Fast mixing hash (FNV-1a 64)
                   widened to 256 bits, or SHA-256 when the deployment opts in.
                   Only used to address ledger slots.

    Fingerprints   oracle_key_hash / collection_id_from_slug. SHA-256 read as a
                   big-endian 256-bit integer. Compared against trusted values.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Union

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_U64_MASK = (1 << 64) - 1


class KeyDerivation(Enum):
    """Storage-key hash selected at deployment."""
    FNV1A64 = "fnv1a64"
    SHA256 = "sha256"


def fnv1a64(data: bytes) -> int:
    """FNV-1a 64-bit hash."""
    h = FNV64_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV64_PRIME) & _U64_MASK
    return h


def sha256_u256(data: bytes) -> int:
    """SHA-256 digest as a big-endian 256-bit integer."""
    return int.from_bytes(hashlib.sha256(data).digest(), "big")


def digest_of(data: bytes, derivation: KeyDerivation = KeyDerivation.FNV1A64) -> int:
    """Storage key for a byte sequence."""
    if derivation is KeyDerivation.SHA256:
        return sha256_u256(data)
    return fnv1a64(data)


def claim_key(claim_id: str, derivation: KeyDerivation = KeyDerivation.FNV1A64) -> int:
    """Storage key for a claim (inscription) identifier."""
    return digest_of(claim_id.encode("utf-8"), derivation)


def address_hex(address: bytes) -> str:
    """Lowercase 0x-prefixed hex of an address."""
    return "0x" + address.hex()


def address_digest(address: bytes, derivation: KeyDerivation = KeyDerivation.FNV1A64) -> int:
    """Storage fingerprint of an address, hashed over its hex form."""
    return digest_of(address_hex(address).encode("utf-8"), derivation)


def oracle_key_hash(public_key: bytes) -> int:
    """Fingerprint of an oracle public key."""
    return sha256_u256(public_key)


def collection_id_from_slug(slug: Union[str, bytes]) -> int:
    """Collection binding value for a collection slug."""
    if isinstance(slug, str):
        slug = slug.encode("utf-8")
    return sha256_u256(slug)
