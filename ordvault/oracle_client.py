"""
Oracle HTTP client.

Claimants fetch the attestation for their burn transaction from the oracle
and submit it to the vault themselves:

    client = OracleClient("https://oracle.example")
    attestation = client.fetch_attestation(burn_txid)
    vault.submit_attestation(claimant, attestation)
"""

from __future__ import annotations

import json
import re
import urllib.error
import urllib.request
from typing import Any, Dict

from ordvault.attestation import Attestation
from ordvault.hardening import ValidationError
from ordvault.observability import VaultLayer, get_logger

logger = get_logger("oracle_client", VaultLayer.ORACLE)

TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class OracleClientError(Exception):
    """The oracle could not produce a usable attestation."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class OracleClient:
    """Read-only client for the oracle's attestation endpoint."""

    def __init__(self, endpoint: str, timeout: float = 10.0):
        if not endpoint.startswith(("http://", "https://")):
            raise OracleClientError(f"Unsupported oracle endpoint: {endpoint}")
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    def attestation_url(self, txid: str) -> str:
        if not TXID_RE.match(txid or ""):
            raise OracleClientError(f"Not a Bitcoin transaction id: {txid!r}")
        return f"{self.endpoint}/attestation/{txid.lower()}"

    def fetch_record(self, txid: str) -> Dict[str, Any]:
        """Raw wire record for a burn transaction."""
        url = self.attestation_url(txid)
        request = urllib.request.Request(url, headers={"Accept": "application/json"})
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise OracleClientError(f"Oracle returned HTTP {e.code} for {txid}", status=e.code) from e
        except urllib.error.URLError as e:
            raise OracleClientError(f"Oracle unreachable: {e.reason}") from e

        try:
            record = json.loads(body)
        except ValueError as e:
            raise OracleClientError(f"Oracle response is not JSON: {e}") from e
        if not isinstance(record, dict):
            raise OracleClientError("Oracle response is not a JSON object")

        logger.debug("Attestation fetched", operation="fetch", txid=txid)
        return record

    def fetch_attestation(self, txid: str) -> Attestation:
        """Fetch and validate the attestation for a burn transaction."""
        record = self.fetch_record(txid)
        try:
            return Attestation.from_wire(record)
        except ValidationError as e:
            raise OracleClientError(f"Malformed attestation for {txid}: {e.message}") from e
