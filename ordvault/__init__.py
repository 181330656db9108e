"""
Ordinals Vault: Attestation-Gated Burn-to-Mint Bridge

Turns a Bitcoin Ordinals inscription that was provably burned into exactly
one token on a destination ledger. A trusted oracle watches Bitcoin and signs
post-quantum (ML-DSA-44) attestations; the vault verifies them, remembers each
burn, and lets the original burner mint once.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                           ORDINALS VAULT                                 │
    │                                                                          │
    │  ENTRY POINTS                                                            │
    │    vault.py         deploy, record_burn, claim_mint, set_oracle, queries │
    │                                                                          │
    │  PROTOCOL                                                                │
    │    ledger.py        Per-claim burn records: unset -> recorded -> minted  │
    │    security.py      Nonce guard, oracle key registry, collection binding │
    │    attestation.py   Signed layout, ML-DSA-44 verifier, oracle signer     │
    │    token.py         Minimal token primitive with receiver callback       │
    │                                                                          │
    │  FOUNDATION                                                              │
    │    store.py         Namespaced state with whole-call transactions        │
    │    runtime.py       Block height, contract address, receiver hooks       │
    │    events.py        Committed-only event notifications                   │
    │    hashing.py       Storage keys and fingerprints                        │
    │    hardening.py     Error kinds, call results, input validation          │
    │                                                                          │
    │  TOOLING                                                                 │
    │    config.py        YAML + ORDVAULT_* configuration                      │
    │    oracle_client.py Attestation lookup by burn transaction id            │
    │    cli.py           ordvault command                                     │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    Fail Closed: An unknown oracle key is rejected before any signature work.
    A rejected call leaves no trace, not even its consumed nonce.

    Once Only: Every nonce, every burn record and every mint happens at most
    once, and records are never deleted.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

__version__ = "0.1.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import vault modules on first access."""

    if name in ("OrdinalsVault", "VaultDeployment", "BurnStatus", "deployed_vault"):
        from ordvault import vault
        return getattr(vault, name)

    if name in ("Attestation", "AttestationVerifier", "OracleSigner", "MLDSA44",
                "attestation_digest", "build_attestation_message"):
        from ordvault import attestation
        return getattr(attestation, name)

    if name in ("VaultError", "VaultErrorKind", "ValidationError", "InvariantViolation",
                "CallResult", "Validators"):
        from ordvault import hardening
        return getattr(hardening, name)

    if name in ("KeyDerivation", "collection_id_from_slug", "oracle_key_hash"):
        from ordvault import hashing
        return getattr(hashing, name)

    if name in ("StateStore",):
        from ordvault import store
        return getattr(store, name)

    if name in ("Chain", "ZERO_ADDRESS"):
        from ordvault import runtime
        return getattr(runtime, name)

    if name in ("OracleClient", "OracleClientError"):
        from ordvault import oracle_client
        return getattr(oracle_client, name)

    raise AttributeError(f"module 'ordvault' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Vault
    "OrdinalsVault",
    "VaultDeployment",
    "BurnStatus",
    "deployed_vault",
    # Attestations
    "Attestation",
    "AttestationVerifier",
    "OracleSigner",
    "MLDSA44",
    "attestation_digest",
    "build_attestation_message",
    # Errors
    "VaultError",
    "VaultErrorKind",
    "ValidationError",
    "InvariantViolation",
    "CallResult",
    "Validators",
    # Hashing
    "KeyDerivation",
    "collection_id_from_slug",
    "oracle_key_hash",
    # Host
    "StateStore",
    "Chain",
    "ZERO_ADDRESS",
    # Oracle
    "OracleClient",
    "OracleClientError",
]
