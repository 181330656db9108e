"""
Ordinals Vault Burn Ledger

Per-claim durable state the bridge protocol revolves around.

    claim key ──► burner fingerprint   (0 = not recorded)
              ──► recorded height
              ──► minted marker        (0 = not minted, else token id + 1)

Lifecycle:

    UNSET ──record()──► RECORDED ──mark_minted()──► MINTED

No transition goes backward and entries are never deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Set

from ordvault.hardening import InvariantViolation
from ordvault.store import StateStore


class BurnState(Enum):
    """Position of a claim in its lifecycle."""
    UNSET = "unset"
    RECORDED = "recorded"
    MINTED = "minted"


VALID_TRANSITIONS: Dict[BurnState, Set[BurnState]] = {
    BurnState.UNSET: {BurnState.RECORDED},
    BurnState.RECORDED: {BurnState.MINTED},
    BurnState.MINTED: set(),
}


@dataclass(frozen=True)
class BurnRecord:
    """Snapshot of one claim's ledger slots."""
    claim_key: int
    burner_fingerprint: int = 0
    recorded_at_height: int = 0
    minted_marker: int = 0

    @property
    def state(self) -> BurnState:
        if self.minted_marker != 0:
            return BurnState.MINTED
        if self.burner_fingerprint != 0:
            return BurnState.RECORDED
        return BurnState.UNSET

    @property
    def is_recorded(self) -> bool:
        return self.burner_fingerprint != 0

    @property
    def is_minted(self) -> bool:
        return self.minted_marker != 0

    @property
    def token_id(self) -> int:
        """Token created for this claim. Only meaningful once minted."""
        if not self.is_minted:
            raise InvariantViolation("claim has not been minted")
        return self.minted_marker - 1


class BurnLedger:
    """Burn records keyed by claim key."""

    def __init__(self, store: StateStore):
        self._burners = store.map("verified_burns")
        self._heights = store.map("burn_block_heights")
        self._minted = store.map("minted_inscriptions")

    def get(self, claim_key: int) -> BurnRecord:
        return BurnRecord(
            claim_key=claim_key,
            burner_fingerprint=self._burners.get(claim_key),
            recorded_at_height=self._heights.get(claim_key),
            minted_marker=self._minted.get(claim_key),
        )

    def record(self, claim_key: int, burner_fingerprint: int, height: int) -> BurnRecord:
        """UNSET -> RECORDED."""
        if burner_fingerprint == 0:
            raise InvariantViolation("burner fingerprint 0 is reserved for unset records")
        self._transition(self.get(claim_key), BurnState.RECORDED)
        self._burners.set(claim_key, burner_fingerprint)
        self._heights.set(claim_key, height)
        return self.get(claim_key)

    def mark_minted(self, claim_key: int, token_id: int) -> BurnRecord:
        """RECORDED -> MINTED, storing token_id + 1 as the marker."""
        self._transition(self.get(claim_key), BurnState.MINTED)
        self._minted.set(claim_key, token_id + 1)
        return self.get(claim_key)

    @staticmethod
    def _transition(record: BurnRecord, target: BurnState) -> None:
        if target not in VALID_TRANSITIONS[record.state]:
            raise InvariantViolation(
                f"Invalid burn transition: {record.state.value} -> {target.value}"
            )
