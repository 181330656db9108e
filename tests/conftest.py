import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import ordvault`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from ordvault.attestation import OracleSigner  # noqa: E402
from ordvault.config import ConfigManager  # noqa: E402
from ordvault.hashing import KeyDerivation  # noqa: E402
from ordvault.runtime import Chain  # noqa: E402
from ordvault.store import StateStore  # noqa: E402
from ordvault.vault import OrdinalsVault, VaultDeployment  # noqa: E402


CONTRACT = bytes([0x11]) * 32
DEPLOYER = bytes([0xD0]) * 32
CLAIMANT = bytes([0x22]) * 32
STRANGER = bytes([0x33]) * 32
INSCRIPTION = "6fb976ab49dcec017f1e201e84395983204ae1a7c2abf7ced0a85d692e442799i0"
START_HEIGHT = 840_000


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless ORDVAULT_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('ORDVAULT_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set ORDVAULT_RUN_SLOW=1 to enable'))


# =============================================================================
# ORACLE KEYS
# =============================================================================

@pytest.fixture(scope="session")
def oracle() -> OracleSigner:
    """The trusted oracle."""
    return OracleSigner.generate()


@pytest.fixture(scope="session")
def rogue_oracle() -> OracleSigner:
    """A well-formed oracle key the vault does not trust."""
    return OracleSigner.generate()


# =============================================================================
# VAULTS
# =============================================================================

@pytest.fixture
def chain() -> Chain:
    return Chain(contract_address=CONTRACT, height=START_HEIGHT)


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def make_vault(chain, store, oracle):
    """Factory deploying a vault on the test chain with overridable parameters."""
    def _make(**overrides) -> OrdinalsVault:
        params = dict(
            name="Vaulted Puppets",
            symbol="VPUP",
            base_uri="https://ordinals.com/content/",
            max_supply=10,
            burn_address="bc1p-burn",
            oracle_key_hash=oracle.key_hash,
            collection_id_hash=0,
            key_derivation=KeyDerivation.FNV1A64,
            confirmation_blocks=1,
        )
        params.update(overrides)
        vault = OrdinalsVault(store, chain)
        vault.deploy(DEPLOYER, VaultDeployment(**params)).raise_if_failed()
        return vault
    return _make


@pytest.fixture
def vault(make_vault) -> OrdinalsVault:
    return make_vault()


@pytest.fixture
def attest(oracle, chain):
    """Sign an attestation for the test vault; defaults to a valid fresh claim."""
    def _attest(
        claim_id: str = INSCRIPTION,
        claimant: bytes = CLAIMANT,
        deadline: int = None,
        nonce: int = None,
        collection_id: int = 0,
        signer: OracleSigner = None,
    ):
        signer = signer or oracle
        return signer.attest(
            contract_address=chain.contract_address,
            claim_id=claim_id,
            claimant=claimant,
            deadline=chain.height + 100 if deadline is None else deadline,
            nonce=nonce,
            collection_id=collection_id,
        )
    return _attest


@pytest.fixture
def config_manager():
    """The configuration singleton, reset around each test."""
    mgr = ConfigManager()
    mgr.reset()
    yield mgr
    mgr.reset()
