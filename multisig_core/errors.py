"""
Error taxonomy for the multisig wallet.

Every rejection the engine can produce has its own exception class with a
stable integer code, so callers can tell "wrong signer" apart from "bad
signature" apart from "not enough signatures yet" without string matching.

Hierarchy:
  MultisigError
    InvalidConfiguration   bad M/N, duplicate or malformed signer key
    InvalidAmount          malformed transaction amount
    DuplicateTransaction   transaction id already tracked
    UnknownTransaction     transaction id not tracked
    UntrustedSigner        key outside the signer set
    DuplicateSignature     signer already counted for this transaction
    InvalidSignature       signature does not verify
    TransactionFinalized   transaction executed or abandoned
    ThresholdNotMet        execute before M signatures
    AlreadyExecuted        execute / abandon after execution
    SerializationError     persisted document is malformed or inconsistent
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Mapping


class ErrorCode(IntEnum):
    """Stable codes for programmatic handling."""
    GENERIC = 1000
    INVALID_CONFIGURATION = 1001
    INVALID_AMOUNT = 1002
    DUPLICATE_TRANSACTION = 1003
    UNKNOWN_TRANSACTION = 1004
    UNTRUSTED_SIGNER = 1005
    DUPLICATE_SIGNATURE = 1006
    INVALID_SIGNATURE = 1007
    TRANSACTION_FINALIZED = 1008
    THRESHOLD_NOT_MET = 1009
    ALREADY_EXECUTED = 1010
    SERIALIZATION = 1011


class MultisigError(Exception):
    """
    Base class for all wallet rejections.

    Parameters
    ----------
    message : str
        Human-readable description.
    context : Mapping[str, Any] | None
        Small dict of structured fields (tx id, signer hex, counts).
    """

    code: ErrorCode = ErrorCode.GENERIC

    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context) if context else {}

    def __str__(self) -> str:
        tail = f" context={self.context}" if self.context else ""
        return f"[{int(self.code)}] {self.message}{tail}"

    def to_dict(self) -> dict[str, Any]:
        """Structured view suitable for logs or API error bodies."""
        return {
            "code": int(self.code),
            "error": type(self).__name__,
            "message": self.message,
            "context": dict(self.context),
        }


class InvalidConfiguration(MultisigError):
    code = ErrorCode.INVALID_CONFIGURATION

    def __init__(self, reason: str, *, threshold: Any = None, signers: int | None = None):
        super().__init__(
            f"Invalid wallet configuration: {reason}",
            context={"threshold": threshold, "signers": signers},
        )
        self.reason = reason
        self.threshold = threshold
        self.signers = signers


class InvalidAmount(MultisigError):
    code = ErrorCode.INVALID_AMOUNT

    def __init__(self, amount: Any, reason: str):
        super().__init__(f"Invalid amount {amount!r}: {reason}", context={"amount": repr(amount)})
        self.amount = amount
        self.reason = reason


class DuplicateTransaction(MultisigError):
    code = ErrorCode.DUPLICATE_TRANSACTION

    def __init__(self, tx_id: str):
        super().__init__(f"Transaction {tx_id} already proposed", context={"tx_id": tx_id})
        self.tx_id = tx_id


class UnknownTransaction(MultisigError):
    code = ErrorCode.UNKNOWN_TRANSACTION

    def __init__(self, tx_id: str):
        super().__init__(f"Transaction {tx_id} not found", context={"tx_id": tx_id})
        self.tx_id = tx_id


class UntrustedSigner(MultisigError):
    code = ErrorCode.UNTRUSTED_SIGNER

    def __init__(self, tx_id: str, signer: bytes):
        super().__init__(
            "Signer not authorized",
            context={"tx_id": tx_id, "signer": signer.hex()},
        )
        self.tx_id = tx_id
        self.signer = signer


class DuplicateSignature(MultisigError):
    code = ErrorCode.DUPLICATE_SIGNATURE

    def __init__(self, tx_id: str, signer: bytes):
        super().__init__(
            "Signer has already signed this transaction",
            context={"tx_id": tx_id, "signer": signer.hex()},
        )
        self.tx_id = tx_id
        self.signer = signer


class InvalidSignature(MultisigError):
    code = ErrorCode.INVALID_SIGNATURE

    def __init__(self, tx_id: str, signer: bytes):
        super().__init__(
            "Signature does not verify against signer key and transaction digest",
            context={"tx_id": tx_id, "signer": signer.hex()},
        )
        self.tx_id = tx_id
        self.signer = signer


class TransactionFinalized(MultisigError):
    code = ErrorCode.TRANSACTION_FINALIZED

    def __init__(self, tx_id: str, state: str):
        super().__init__(
            f"Transaction {tx_id} is finalized ({state})",
            context={"tx_id": tx_id, "state": state},
        )
        self.tx_id = tx_id
        self.state = state


class ThresholdNotMet(MultisigError):
    code = ErrorCode.THRESHOLD_NOT_MET

    def __init__(self, tx_id: str, required: int, actual: int):
        super().__init__(
            f"Insufficient signatures: required {required}, got {actual}",
            context={"tx_id": tx_id, "required": required, "actual": actual},
        )
        self.tx_id = tx_id
        self.required = required
        self.actual = actual


class AlreadyExecuted(MultisigError):
    code = ErrorCode.ALREADY_EXECUTED

    def __init__(self, tx_id: str):
        super().__init__(f"Transaction {tx_id} already executed", context={"tx_id": tx_id})
        self.tx_id = tx_id


class SerializationError(MultisigError):
    code = ErrorCode.SERIALIZATION

    def __init__(self, reason: str, *, tx_id: str | None = None):
        super().__init__(
            f"Cannot restore wallet state: {reason}",
            context={"tx_id": tx_id} if tx_id else None,
        )
        self.reason = reason
        self.tx_id = tx_id
