"""
Multisig Core - M-of-N threshold authorisation for transactions.

Key features:
- secp256k1 ECDSA signing and verification (via ``ecdsa``)
- Immutable transactions with deterministic SHA-256 digests
- Wallet state machine: proposed -> executable -> executed / rejected
- Distinct-signer threshold counting with replay and duplicate protection
- Typed, code-carrying errors for every rejection
- JSON round-trip of wallet state with invariant re-checking on load
"""

from multisig_core.errors import (
    AlreadyExecuted,
    DuplicateSignature,
    DuplicateTransaction,
    ErrorCode,
    InvalidAmount,
    InvalidConfiguration,
    InvalidSignature,
    MultisigError,
    SerializationError,
    ThresholdNotMet,
    TransactionFinalized,
    UnknownTransaction,
    UntrustedSigner,
)
from multisig_core.transaction import AmountPolicy, Transaction
from multisig_core.wallet import ExecutionReceipt, MultisigWallet, TxState, WalletInfo

__version__ = "0.1.0"
__all__ = [
    "AlreadyExecuted",
    "AmountPolicy",
    "DuplicateSignature",
    "DuplicateTransaction",
    "ErrorCode",
    "ExecutionReceipt",
    "InvalidAmount",
    "InvalidConfiguration",
    "InvalidSignature",
    "MultisigError",
    "MultisigWallet",
    "SerializationError",
    "ThresholdNotMet",
    "Transaction",
    "TransactionFinalized",
    "TxState",
    "UnknownTransaction",
    "UntrustedSigner",
    "WalletInfo",
]
