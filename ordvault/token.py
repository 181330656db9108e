"""
Ordinals Vault Token Collection

The minimal non-fungible token primitive a vault mints through. Only what the
bridge needs is here: collection metadata, token creation with the recipient
acknowledgement callback, existence / owner / URI lookups and the supply
counter. Transfers, approvals and enumeration are out of scope.

Token ids start at 1. The supply is exhausted once max_supply tokens exist.
"""

from __future__ import annotations

from dataclasses import dataclass

from ordvault.events import Transferred
from ordvault.hardening import InvariantViolation, VaultError, VaultErrorKind
from ordvault.observability import VaultLayer, get_logger
from ordvault.runtime import ZERO_ADDRESS, Chain
from ordvault.store import StateStore

logger = get_logger("token", VaultLayer.TOKEN)

# Selector a contract recipient must return to accept a token:
# first four bytes of sha256("onOP721Received(address,address,uint256,bytes)")
ON_RECEIVED_SELECTOR = bytes.fromhex("5349f6de")

FIRST_TOKEN_ID = 1


@dataclass(frozen=True)
class CollectionInfo:
    """Immutable collection parameters."""
    name: str
    symbol: str
    base_uri: str
    max_supply: int


class TokenCollection:
    """Token state in the shared store, mutated only inside vault calls."""

    def __init__(self, store: StateStore, chain: Chain):
        self._store = store
        self._chain = chain
        self._info = store.value("token.info", None)
        self._next_token_id = store.value("token.next_token_id", FIRST_TOKEN_ID)
        self._owners = store.map("token.owners")
        self._balances = store.map("token.balances")
        self._uris = store.map("token.uris")

    def instantiate(self, info: CollectionInfo) -> None:
        if self._info.value is not None:
            raise InvariantViolation("collection already instantiated")
        self._info.value = info

    @property
    def info(self) -> CollectionInfo:
        info = self._info.value
        if info is None:
            raise VaultError(VaultErrorKind.NOT_DEPLOYED, "collection not instantiated")
        return info

    @property
    def max_supply(self) -> int:
        return self.info.max_supply

    @property
    def next_token_id(self) -> int:
        return self._next_token_id.value

    @property
    def total_supply(self) -> int:
        return self.next_token_id - FIRST_TOKEN_ID

    @property
    def supply_exhausted(self) -> bool:
        return self.total_supply >= self.max_supply

    def exists(self, token_id: int) -> bool:
        return self._owners.get(token_id, None) is not None

    def owner_of(self, token_id: int) -> bytes:
        owner = self._owners.get(token_id, None)
        if owner is None:
            raise VaultError(VaultErrorKind.INVALID_INPUT, f"token {token_id} does not exist")
        return owner

    def balance_of(self, owner: bytes) -> int:
        return self._balances.get(owner)

    def token_uri(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self.info.base_uri + self._uris.get(token_id, "")

    def set_token_uri(self, token_id: int, uri: str) -> None:
        self.owner_of(token_id)
        self._uris.set(token_id, uri)

    def mint(self, operator: bytes, to: bytes, data: bytes = b"") -> int:
        """
        Create the next token for `to` and advance the counter.

        Contract recipients must acknowledge through their receive hook; any
        other answer, or an exception from the hook, aborts the mint.
        """
        if self.supply_exhausted:
            raise VaultError(VaultErrorKind.SUPPLY_EXHAUSTED, "max supply reached")
        if to == ZERO_ADDRESS:
            raise VaultError(VaultErrorKind.INVALID_INPUT, "cannot mint to the zero address")

        token_id = self.next_token_id
        if self.exists(token_id):
            raise InvariantViolation(f"token {token_id} already exists")

        self._owners.set(token_id, to)
        self._balances.set(to, self.balance_of(to) + 1)
        self._next_token_id.value = token_id + 1

        self._check_receiver(operator, to, token_id, data)

        self._store.emit(Transferred(
            height=self._chain.height,
            operator=operator,
            from_address=ZERO_ADDRESS,
            to=to,
            token_id=token_id,
        ))
        logger.debug("Token created", operation="mint", token_id=token_id)
        return token_id

    def _check_receiver(self, operator: bytes, to: bytes, token_id: int, data: bytes) -> None:
        hook = self._chain.receiver_hook(to)
        if hook is None:
            return

        try:
            response = hook(operator, ZERO_ADDRESS, token_id, data)
        except Exception as exc:
            raise VaultError(VaultErrorKind.RECEIVER_REJECTED, f"receiver hook failed: {exc}") from exc

        if not isinstance(response, (bytes, bytearray)) or bytes(response) != ON_RECEIVED_SELECTOR:
            raise VaultError(VaultErrorKind.RECEIVER_REJECTED, "recipient did not accept the token")
