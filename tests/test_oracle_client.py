"""
Oracle HTTP client tests. The network is replaced by a patched urlopen.
"""

import io
import json
import urllib.error
from unittest import mock

import pytest

from conftest import CLAIMANT, CONTRACT, INSCRIPTION
from ordvault.attestation import MLDSA44
from ordvault.oracle_client import OracleClient, OracleClientError

TXID = "AB" * 32
URLOPEN = "ordvault.oracle_client.urllib.request.urlopen"


class FakeResponse(io.BytesIO):
    """Context-managed response body."""


def respond(body):
    if not isinstance(body, bytes):
        body = json.dumps(body).encode()
    return mock.patch(URLOPEN, return_value=FakeResponse(body))


@pytest.fixture
def client():
    return OracleClient("https://oracle.test/", timeout=3.0)


class TestEndpoint:

    def test_url_normalized(self, client):
        assert client.attestation_url(TXID) == "https://oracle.test/attestation/" + TXID.lower()

    def test_rejects_non_http(self):
        with pytest.raises(OracleClientError):
            OracleClient("ftp://oracle.test")

    @pytest.mark.parametrize("txid", ["", "ab" * 31, "zz" * 32, None])
    def test_rejects_bad_txid(self, client, txid):
        with pytest.raises(OracleClientError):
            client.attestation_url(txid)


class TestFetch:

    def test_fetch_attestation(self, client, oracle):
        record = oracle.attest(CONTRACT, INSCRIPTION, CLAIMANT, deadline=900, nonce=7).to_wire()
        with respond(record) as urlopen:
            attestation = client.fetch_attestation(TXID)

        request = urlopen.call_args[0][0]
        assert request.full_url.endswith("/attestation/" + TXID.lower())
        assert request.get_header("Accept") == "application/json"
        assert urlopen.call_args[1]["timeout"] == 3.0
        assert attestation.claim_id == INSCRIPTION
        assert attestation.nonce == 7
        assert MLDSA44.verify(attestation.oracle_public_key, attestation.digest(CONTRACT), attestation.oracle_signature)

    def test_http_error(self, client):
        error = urllib.error.HTTPError("https://oracle.test", 404, "Not Found", {}, None)
        with mock.patch(URLOPEN, side_effect=error):
            with pytest.raises(OracleClientError) as exc:
                client.fetch_record(TXID)
        assert exc.value.status == 404

    def test_unreachable(self, client):
        with mock.patch(URLOPEN, side_effect=urllib.error.URLError("refused")):
            with pytest.raises(OracleClientError) as exc:
                client.fetch_record(TXID)
        assert "unreachable" in str(exc.value)
        assert exc.value.status == 0

    def test_not_json(self, client):
        with respond(b"<html>"):
            with pytest.raises(OracleClientError):
                client.fetch_record(TXID)

    def test_not_an_object(self, client):
        with respond([1, 2]):
            with pytest.raises(OracleClientError):
                client.fetch_record(TXID)

    def test_malformed_attestation(self, client):
        with respond({"inscriptionId": INSCRIPTION}):
            with pytest.raises(OracleClientError) as exc:
                client.fetch_attestation(TXID)
        assert "Malformed" in str(exc.value)
