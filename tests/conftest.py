"""
Shared pytest fixtures for the multisig test suite.
"""

import pytest

from multisig_core.crypto_utils import generate_keypair
from multisig_core.transaction import Transaction
from multisig_core.wallet import MultisigWallet


@pytest.fixture(scope="session")
def keypairs():
    """Four key-pairs: A, B, C are wallet members, D is an outsider."""
    return [generate_keypair() for _ in range(4)]


@pytest.fixture
def wallet(keypairs):
    """Fresh 2-of-3 wallet over A, B, C."""
    return MultisigWallet.create([pub for _, pub in keypairs[:3]], 2)


@pytest.fixture
def tx():
    """Transfer of 100 to rRecipient."""
    return Transaction.propose("rRecipient", 100)


@pytest.fixture
def proposed(wallet, tx):
    """(wallet, tx) with tx already proposed."""
    wallet.propose(tx)
    return wallet, tx
