"""
Ordinals Vault

Attestation-gated burn-to-mint bridge. A Bitcoin inscription burned to an
unspendable address becomes one freshly minted token on the destination
ledger, once the trusted oracle has attested the burn.

Flow:
    1. Claimant burns the inscription on Bitcoin
    2. Oracle signs an attestation (claim id, claimant, deadline, nonce)
    3. Claimant submits it: record_burn()          UNSET -> RECORDED
    4. At least one block later: claim_mint()      RECORDED -> MINTED

Every entry point runs as one store transaction. A rejection is returned as a
failed CallResult naming the reason, and nothing the call wrote survives it,
including the consumed nonce.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ordvault.attestation import Attestation, AttestationVerifier
from ordvault.events import BurnRecorded, Minted, OracleRotated
from ordvault.hardening import (
    CallResult,
    InvariantViolation,
    ValidationError,
    Validators,
    VaultError,
    VaultErrorKind,
    u256_hex,
)
from ordvault.hashing import KeyDerivation, address_digest, claim_key
from ordvault.ledger import BurnLedger, BurnRecord
from ordvault.observability import (
    VaultLayer,
    get_correlation_id,
    get_logger,
    timed_operation,
)
from ordvault.runtime import Chain
from ordvault.security import CollectionBinding, NonceGuard, OracleKeyRegistry
from ordvault.store import StateStore
from ordvault.token import CollectionInfo, TokenCollection

logger = get_logger("vault", VaultLayer.VAULT)


@dataclass(frozen=True)
class VaultDeployment:
    """One-time deployment parameters."""
    name: str
    symbol: str
    base_uri: str
    max_supply: int
    burn_address: str
    oracle_key_hash: int
    collection_id_hash: int = 0
    key_derivation: KeyDerivation = KeyDerivation.FNV1A64
    confirmation_blocks: int = 1
    max_claim_id_bytes: int = 4096

    def validate(self) -> None:
        """Raise ValidationError on the first malformed parameter."""
        for field_name in ("name", "symbol", "burn_address"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value:
                raise ValidationError(field_name, "Must be a non-empty string", value)
        if not isinstance(self.base_uri, str):
            raise ValidationError("base_uri", "Must be a string", self.base_uri)
        Validators.validate_u256(self.max_supply, "max_supply")
        Validators.validate_u256(self.oracle_key_hash, "oracle_key_hash")
        Validators.validate_u256(self.collection_id_hash, "collection_id_hash")
        if not isinstance(self.key_derivation, KeyDerivation):
            raise ValidationError("key_derivation", "Unknown key derivation", self.key_derivation)
        if Validators.validate_u64(self.confirmation_blocks, "confirmation_blocks") < 1:
            raise ValidationError("confirmation_blocks", "Must be at least 1", self.confirmation_blocks)
        if Validators.validate_u64(self.max_claim_id_bytes, "max_claim_id_bytes") < 1:
            raise ValidationError("max_claim_id_bytes", "Must be at least 1", self.max_claim_id_bytes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "base_uri": self.base_uri,
            "max_supply": self.max_supply,
            "burn_address": self.burn_address,
            "oracle_key_hash": u256_hex(self.oracle_key_hash),
            "collection_id_hash": u256_hex(self.collection_id_hash),
            "key_derivation": self.key_derivation.value,
            "confirmation_blocks": self.confirmation_blocks,
            "max_claim_id_bytes": self.max_claim_id_bytes,
        }


@dataclass(frozen=True)
class BurnStatus:
    """Query answer for one claim."""
    verified: bool
    minted: bool


class OrdinalsVault:
    """
    The bridge instance.

    Construction only wires component handles onto the store; deploy() is the
    single initialization entry point.
    """

    def __init__(self, store: StateStore, chain: Chain):
        self._store = store
        self._chain = chain
        self._deployer = store.value("deployer", None)
        self._settings = store.value("settings", None)
        self._nonces = NonceGuard(store)
        self._oracle = OracleKeyRegistry(store)
        self._binding = CollectionBinding(store)
        self._ledger = BurnLedger(store)
        self._token = TokenCollection(store, chain)
        self._verifier = AttestationVerifier(self._oracle, chain.contract_address)

    @property
    def address(self) -> bytes:
        return self._chain.contract_address

    @property
    def token(self) -> TokenCollection:
        return self._token

    @property
    def is_deployed(self) -> bool:
        return self._settings.value is not None

    @property
    def deployment(self) -> VaultDeployment:
        settings = self._settings.value
        if settings is None:
            raise VaultError(VaultErrorKind.NOT_DEPLOYED, "vault not deployed")
        return settings

    @property
    def oracle_key_hash(self) -> int:
        return self._oracle.fingerprint

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    @timed_operation(logger, "deploy")
    def deploy(self, sender: bytes, deployment: VaultDeployment) -> CallResult[bool]:
        """One-time initialization. The sender becomes the rotation authority."""
        return self._call("deploy", self._deploy, sender, deployment)

    @timed_operation(logger, "record_burn")
    def record_burn(
        self,
        sender: bytes,
        claim_id: str,
        claimant: bytes,
        deadline: int,
        nonce: int,
        collection_id: int,
        oracle_public_key: bytes,
        oracle_signature: bytes,
    ) -> CallResult[bool]:
        """
        Record an attested burn.

        Checks run in a fixed order and the first failure wins:
        expiry, nonce, ledger state, collection binding, oracle key and
        signature. Anyone may submit; the claimant is taken from the
        attestation, not from the sender.
        """
        return self._call(
            "record_burn",
            self._record_burn,
            sender,
            claim_id,
            claimant,
            deadline,
            nonce,
            collection_id,
            oracle_public_key,
            oracle_signature,
        )

    def submit_attestation(self, sender: bytes, attestation: Attestation) -> CallResult[bool]:
        """record_burn() fed from an attestation record."""
        return self.record_burn(
            sender,
            attestation.claim_id,
            attestation.claimant,
            attestation.deadline,
            attestation.nonce,
            attestation.collection_id,
            attestation.oracle_public_key,
            attestation.oracle_signature,
        )

    @timed_operation(logger, "claim_mint")
    def claim_mint(self, sender: bytes, claim_id: str) -> CallResult[int]:
        """Mint the token for a recorded burn to its claimant. Returns the token id."""
        return self._call("claim_mint", self._claim_mint, sender, claim_id)

    @timed_operation(logger, "set_oracle")
    def set_oracle(self, sender: bytes, new_key_hash: int) -> CallResult[bool]:
        """Replace the trusted oracle fingerprint. Deployer only, effective immediately."""
        return self._call("set_oracle", self._set_oracle, sender, new_key_hash)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_burn_status(self, claim_id: str) -> BurnStatus:
        record = self.burn_record(claim_id)
        return BurnStatus(verified=record.is_recorded, minted=record.is_minted)

    def get_burn_address(self) -> str:
        return self.deployment.burn_address

    def get_collection_id(self) -> int:
        self._require_deployed()
        return self._binding.value

    def burn_record(self, claim_id: str) -> BurnRecord:
        return self._ledger.get(self._claim_key(claim_id))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> CallResult[Any]:
        get_correlation_id()
        try:
            with self._store.transaction():
                value = func(*args)
        except VaultError as e:
            logger.warning(
                f"Call rejected: {e.kind.value}",
                operation=operation,
                error_code=e.kind.value,
                reason=e.message,
                height=self._chain.height,
            )
            return CallResult.from_error(e)
        return CallResult.success(value)

    def _require_deployed(self) -> VaultDeployment:
        return self.deployment

    def _claim_key(self, claim_id: str) -> int:
        settings = self.deployment
        claim_id = Validators.validate_claim_id(claim_id, settings.max_claim_id_bytes)
        return claim_key(claim_id, settings.key_derivation)

    def _deploy(self, sender: bytes, deployment: VaultDeployment) -> bool:
        sender = Validators.validate_address(sender, "sender")
        if self.is_deployed:
            raise VaultError(VaultErrorKind.ALREADY_DEPLOYED, "vault already deployed")
        deployment.validate()

        self._settings.value = deployment
        self._deployer.value = sender
        self._oracle.rotate(deployment.oracle_key_hash)
        self._binding.initialize(deployment.collection_id_hash)
        self._token.instantiate(CollectionInfo(
            name=deployment.name,
            symbol=deployment.symbol,
            base_uri=deployment.base_uri,
            max_supply=deployment.max_supply,
        ))

        logger.info(
            "Vault deployed",
            operation="deploy",
            address="0x" + self.address.hex(),
            oracle_key_hash=u256_hex(deployment.oracle_key_hash),
            collection_id=u256_hex(deployment.collection_id_hash),
            key_derivation=deployment.key_derivation.value,
        )
        return True

    def _record_burn(
        self,
        sender: bytes,
        claim_id: str,
        claimant: bytes,
        deadline: int,
        nonce: int,
        collection_id: int,
        oracle_public_key: bytes,
        oracle_signature: bytes,
    ) -> bool:
        key = self._claim_key(claim_id)
        claimant = Validators.validate_address(claimant, "claimant")
        deadline = Validators.validate_u64(deadline, "deadline")
        nonce = Validators.validate_u256(nonce, "nonce")
        collection_id = Validators.validate_u256(collection_id, "collection_id")
        oracle_public_key = Validators.validate_bytes(oracle_public_key, "oracle_public_key")
        oracle_signature = Validators.validate_bytes(oracle_signature, "oracle_signature")

        height = self._chain.height
        if height > deadline:
            raise VaultError(VaultErrorKind.EXPIRED, f"deadline {deadline} passed at height {height}")

        self._nonces.consume(nonce)

        if self._ledger.get(key).is_recorded:
            raise VaultError(VaultErrorKind.ALREADY_RECORDED, f"{claim_id} already recorded")

        self._binding.check(collection_id)

        self._verifier.require_valid(
            claim_id,
            claimant,
            deadline,
            nonce,
            collection_id,
            oracle_public_key,
            oracle_signature,
        )

        derivation = self.deployment.key_derivation
        self._ledger.record(key, address_digest(claimant, derivation), height)
        self._store.emit(BurnRecorded(
            height=height,
            correlation_id=get_correlation_id(),
            claim_id=claim_id,
            claimant=claimant,
            nonce=nonce,
            deadline=deadline,
        ))

        logger.info(
            "Burn recorded",
            operation="record_burn",
            claim_id=claim_id,
            claimant="0x" + claimant.hex(),
            height=height,
        )
        return True

    def _claim_mint(self, sender: bytes, claim_id: str) -> int:
        sender = Validators.validate_address(sender, "sender")
        key = self._claim_key(claim_id)
        settings = self.deployment

        record = self._ledger.get(key)
        if not record.is_recorded:
            raise VaultError(VaultErrorKind.NOT_RECORDED, f"{claim_id} has no recorded burn")
        if address_digest(sender, settings.key_derivation) != record.burner_fingerprint:
            raise VaultError(VaultErrorKind.WRONG_CLAIMANT, "caller is not the attested claimant")

        height = self._chain.height
        if height - record.recorded_at_height < settings.confirmation_blocks:
            raise VaultError(
                VaultErrorKind.CONFIRMATION_PENDING,
                f"recorded at {record.recorded_at_height}, "
                f"needs {settings.confirmation_blocks} block(s), now {height}",
            )
        if record.is_minted:
            raise VaultError(VaultErrorKind.ALREADY_MINTED, f"{claim_id} already minted")
        if self._token.supply_exhausted:
            raise VaultError(VaultErrorKind.SUPPLY_EXHAUSTED, "max supply reached")

        # ledger first: the receiver hook may call back into the vault
        token_id = self._token.next_token_id
        self._ledger.mark_minted(key, token_id)
        minted_id = self._token.mint(sender, sender)
        if minted_id != token_id:
            raise InvariantViolation(f"minted token {minted_id}, ledger expects {token_id}")
        self._token.set_token_uri(token_id, claim_id)
        self._store.emit(Minted(
            height=height,
            correlation_id=get_correlation_id(),
            claim_id=claim_id,
            token_id=token_id,
        ))

        logger.info(
            "Token minted",
            operation="claim_mint",
            claim_id=claim_id,
            token_id=token_id,
            height=height,
        )
        return token_id

    def _set_oracle(self, sender: bytes, new_key_hash: int) -> bool:
        sender = Validators.validate_address(sender, "sender")
        self._require_deployed()
        new_key_hash = Validators.validate_u256(new_key_hash, "new_key_hash")
        if sender != self._deployer.value:
            raise VaultError(VaultErrorKind.UNAUTHORIZED, "only the deployer may rotate the oracle key")

        old_key_hash = self._oracle.rotate(new_key_hash)
        self._store.emit(OracleRotated(
            height=self._chain.height,
            correlation_id=get_correlation_id(),
            old_key_hash=old_key_hash,
            new_key_hash=new_key_hash,
        ))

        logger.info(
            "Oracle key rotated",
            operation="set_oracle",
            old_key_hash=u256_hex(old_key_hash),
            new_key_hash=u256_hex(new_key_hash),
        )
        return True


def deployed_vault(
    chain: Chain,
    deployer: bytes,
    deployment: VaultDeployment,
    store: Optional[StateStore] = None,
) -> Tuple[OrdinalsVault, StateStore]:
    """Build a store and vault and deploy it, raising on rejection."""
    store = store or StateStore()
    vault = OrdinalsVault(store, chain)
    vault.deploy(deployer, deployment).raise_if_failed()
    return vault, store
