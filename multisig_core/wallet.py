"""
M-of-N multisig wallet for authorising transactions.

A wallet holds a fixed set of N signer public keys and a threshold M.
Transactions move through a small state machine:

    proposed   --add_signature (count < M)-->  proposed
    proposed   --add_signature (count >= M)--> executable
    executable --add_signature (late signer)--> executable
    executable --execute-->                     executed   (terminal)
    proposed | executable --abandon-->          rejected   (terminal)

The threshold counts distinct signers, never distinct signatures: each
member contributes at most one accepted signature per transaction.  Every
rejected call leaves the wallet exactly as it was.

All public methods run under a per-wallet lock, so the duplicate-signer check
and the proposed -> executable transition are atomic with respect to
concurrent callers.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from multisig_core.clock import LogicalClock
from multisig_core.crypto_utils import (
    DEFAULT_PROVIDER,
    CryptoProvider,
    normalize_public_key,
    sha256,
)
from multisig_core.errors import (
    AlreadyExecuted,
    DuplicateSignature,
    DuplicateTransaction,
    InvalidAmount,
    InvalidConfiguration,
    InvalidSignature,
    SerializationError,
    ThresholdNotMet,
    TransactionFinalized,
    UnknownTransaction,
    UntrustedSigner,
)
from multisig_core.transaction import Transaction

logger = logging.getLogger("multisig_wallet")

SCHEMA_VERSION = 1


class TxState(str, Enum):
    """Lifecycle of a proposed transaction."""
    PROPOSED = "proposed"
    EXECUTABLE = "executable"
    EXECUTED = "executed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (TxState.EXECUTED, TxState.REJECTED)


@dataclass(frozen=True)
class ExecutionReceipt:
    """Proof that a transaction met its threshold and was sealed."""
    tx_id: str
    signers: frozenset[bytes]
    executed_at: int
    transaction: Transaction

    def to_dict(self) -> dict:
        return {
            "tx_id": self.tx_id,
            "signers": sorted(pk.hex() for pk in self.signers),
            "executed_at": self.executed_at,
        }


@dataclass(frozen=True)
class WalletInfo:
    wallet_id: str
    threshold: int
    total_signers: int
    pending_count: int
    executed_count: int

    def to_dict(self) -> dict:
        return {
            "wallet_id": self.wallet_id,
            "threshold": self.threshold,
            "total_signers": self.total_signers,
            "pending_count": self.pending_count,
            "executed_count": self.executed_count,
        }


@dataclass
class PendingTransaction:
    """A tracked transaction with its authorization record."""
    transaction: Transaction
    state: TxState = TxState.PROPOSED
    # signer public key -> accepted signature, insertion ordered
    signatures: dict[bytes, bytes] = field(default_factory=dict)
    receipt: ExecutionReceipt | None = None


def derive_wallet_id(signers: Iterable[bytes], threshold: int) -> str:
    """Stable id for a signer set and threshold (order of signers ignored)."""
    blob = threshold.to_bytes(4, "big") + b"".join(sorted(signers))
    return sha256(blob).hex()


def _short(key: bytes) -> str:
    return key.hex()[2:14]


def _canonical_key(public_key: Any) -> bytes | None:
    """65-byte form of *public_key*, or None if it is not a secp256k1 key."""
    try:
        return normalize_public_key(public_key)
    except ValueError:
        return None


class MultisigWallet:
    """Threshold authorisation engine. Build with ``MultisigWallet.create``."""

    def __init__(
        self,
        signers: tuple[bytes, ...],
        threshold: int,
        crypto: CryptoProvider | None = None,
    ):
        self._signers = signers
        self._signer_set = frozenset(signers)
        self._threshold = threshold
        self._crypto = crypto or DEFAULT_PROVIDER
        self._wallet_id = derive_wallet_id(signers, threshold)
        self._clock = LogicalClock()
        self._lock = threading.Lock()
        self._transactions: dict[str, PendingTransaction] = {}

    # ---- construction ----

    @classmethod
    def create(
        cls,
        signer_public_keys: Iterable[bytes],
        threshold: int,
        *,
        crypto: CryptoProvider | None = None,
    ) -> MultisigWallet:
        """
        Create an M-of-N wallet.

        Raises InvalidConfiguration when the key list is empty, contains a
        duplicate or a malformed key, or when the threshold is outside 1..N.
        """
        raw_keys = list(signer_public_keys)
        n = len(raw_keys)
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidConfiguration("threshold must be an integer", threshold=threshold, signers=n)
        if n == 0:
            raise InvalidConfiguration("signer set is empty", threshold=threshold, signers=n)
        if threshold < 1:
            raise InvalidConfiguration(
                f"M={threshold} must be at least 1", threshold=threshold, signers=n,
            )
        if threshold > n:
            raise InvalidConfiguration(
                f"M={threshold} must be <= N={n}", threshold=threshold, signers=n,
            )

        keys: list[bytes] = []
        for i, raw in enumerate(raw_keys):
            try:
                keys.append(normalize_public_key(raw))
            except ValueError as exc:
                raise InvalidConfiguration(
                    f"signer #{i} is not a valid public key", threshold=threshold, signers=n,
                ) from exc
        if len(set(keys)) != n:
            raise InvalidConfiguration("duplicate signer keys", threshold=threshold, signers=n)

        wallet = cls(tuple(keys), threshold, crypto)
        logger.info(f"Wallet {wallet.wallet_id[:12]}... created ({threshold}-of-{n})")
        return wallet

    # ---- properties ----

    @property
    def wallet_id(self) -> str:
        return self._wallet_id

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def signers(self) -> tuple[bytes, ...]:
        return self._signers

    def is_authorized(self, public_key: bytes) -> bool:
        return _canonical_key(public_key) in self._signer_set

    # ---- protocol ----

    def propose(self, transaction: Transaction) -> str:
        """Register *transaction* as proposed. Returns its id."""
        if not isinstance(transaction, Transaction):
            raise TypeError("propose() expects a Transaction")
        with self._lock:
            if transaction.tx_id in self._transactions:
                logger.warning(f"Rejected re-proposal of TX {transaction.tx_id[:12]}...")
                raise DuplicateTransaction(transaction.tx_id)
            self._transactions[transaction.tx_id] = PendingTransaction(transaction)
        logger.info(
            f"TX {transaction.tx_id[:12]}... proposed to wallet {self._wallet_id[:12]}...",
            extra={"tx_id": transaction.tx_id, "wallet_id": self._wallet_id},
        )
        return transaction.tx_id

    def add_signature(self, tx_id: str, signer_public_key: bytes, signature: bytes) -> TxState:
        """
        Record *signer_public_key*'s signature on *tx_id*.

        Checks run in order and stop at the first failure:
        unknown id, finalized state, untrusted signer, duplicate signer,
        invalid signature.  Returns the transaction's state afterwards.
        """
        with self._lock:
            pending = self._get(tx_id)
            if pending.state.is_terminal:
                logger.warning(f"TX {tx_id[:12]}... is {pending.state.value}; signature refused")
                raise TransactionFinalized(tx_id, pending.state.value)
            signer = _canonical_key(signer_public_key)
            if signer is None or signer not in self._signer_set:
                raw = bytes(signer_public_key) if isinstance(signer_public_key, (bytes, bytearray)) else b""
                logger.warning(f"TX {tx_id[:12]}... untrusted signer {_short(raw)}")
                raise UntrustedSigner(tx_id, raw)
            if signer in pending.signatures:
                logger.warning(f"TX {tx_id[:12]}... duplicate signer {_short(signer)}")
                raise DuplicateSignature(tx_id, signer)
            digest = pending.transaction.digest()
            if not self._crypto.verify(signer, digest, signature):
                logger.warning(f"TX {tx_id[:12]}... invalid signature from {_short(signer)}")
                raise InvalidSignature(tx_id, signer)

            pending.signatures[signer] = bytes(signature)
            count = len(pending.signatures)
            logger.info(f"TX {tx_id[:12]}... signed by {_short(signer)} ({count}/{self._threshold})")
            if count >= self._threshold and pending.state is TxState.PROPOSED:
                pending.state = TxState.EXECUTABLE
                logger.info(
                    f"TX {tx_id[:12]}... reached threshold; now executable",
                    extra={"tx_id": tx_id, "wallet_id": self._wallet_id},
                )
            return pending.state

    def verify_transaction(self, tx_id: str) -> bool:
        """
        True iff *tx_id* has met its threshold (executable or executed).

        Stored signatures are not re-verified: each one was checked when it
        was accepted and the record is append-only.
        """
        with self._lock:
            return self._get(tx_id).state in (TxState.EXECUTABLE, TxState.EXECUTED)

    def execute(self, tx_id: str) -> ExecutionReceipt:
        """Seal an executable transaction and return its receipt."""
        with self._lock:
            pending = self._get(tx_id)
            if pending.state is TxState.EXECUTED:
                raise AlreadyExecuted(tx_id)
            if pending.state is TxState.REJECTED:
                raise TransactionFinalized(tx_id, pending.state.value)
            if pending.state is TxState.PROPOSED:
                raise ThresholdNotMet(tx_id, self._threshold, len(pending.signatures))
            receipt = ExecutionReceipt(
                tx_id=tx_id,
                signers=frozenset(pending.signatures),
                executed_at=self._clock.tick(),
                transaction=pending.transaction,
            )
            pending.state = TxState.EXECUTED
            pending.receipt = receipt
        logger.info(
            f"TX {tx_id[:12]}... executed with {len(receipt.signers)} signers",
            extra={"tx_id": tx_id, "wallet_id": self._wallet_id},
        )
        return receipt

    def abandon(self, tx_id: str) -> None:
        """Move a proposed or executable transaction to rejected."""
        with self._lock:
            pending = self._get(tx_id)
            if pending.state is TxState.EXECUTED:
                raise AlreadyExecuted(tx_id)
            if pending.state is TxState.REJECTED:
                raise TransactionFinalized(tx_id, pending.state.value)
            pending.state = TxState.REJECTED
        logger.info(f"TX {tx_id[:12]}... abandoned")

    # ---- queries ----

    def get_state(self, tx_id: str) -> TxState:
        with self._lock:
            return self._get(tx_id).state

    def get_transaction(self, tx_id: str) -> Transaction:
        with self._lock:
            return self._get(tx_id).transaction

    def get_receipt(self, tx_id: str) -> ExecutionReceipt | None:
        with self._lock:
            return self._get(tx_id).receipt

    def signature_count(self, tx_id: str) -> int:
        with self._lock:
            return len(self._get(tx_id).signatures)

    def has_enough_signatures(self, tx_id: str) -> bool:
        with self._lock:
            return len(self._get(tx_id).signatures) >= self._threshold

    def accepted_signers(self, tx_id: str) -> frozenset[bytes]:
        with self._lock:
            return frozenset(self._get(tx_id).signatures)

    def pending_transactions(self) -> list[str]:
        """Ids of transactions that are still proposed or executable."""
        with self._lock:
            return [tid for tid, p in self._transactions.items() if not p.state.is_terminal]

    def info(self) -> WalletInfo:
        with self._lock:
            states = [p.state for p in self._transactions.values()]
        return WalletInfo(
            wallet_id=self._wallet_id,
            threshold=self._threshold,
            total_signers=len(self._signers),
            pending_count=sum(1 for s in states if not s.is_terminal),
            executed_count=states.count(TxState.EXECUTED),
        )

    def _get(self, tx_id: str) -> PendingTransaction:
        pending = self._transactions.get(tx_id)
        if pending is None:
            raise UnknownTransaction(tx_id)
        return pending

    # ---- serialisation ----

    def to_dict(self) -> dict:
        with self._lock:
            txs = []
            for pending in self._transactions.values():
                txs.append({
                    "transaction": pending.transaction.to_dict(),
                    "digest": pending.transaction.digest().hex(),
                    "state": pending.state.value,
                    "signatures": {pk.hex(): sig.hex() for pk, sig in pending.signatures.items()},
                    "receipt": pending.receipt.to_dict() if pending.receipt else None,
                })
        return {
            "version": SCHEMA_VERSION,
            "wallet_id": self._wallet_id,
            "threshold": self._threshold,
            "signers": [pk.hex() for pk in self._signers],
            "transactions": txs,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict, *, crypto: CryptoProvider | None = None) -> MultisigWallet:
        """
        Rebuild a wallet from ``to_dict`` output.

        Every invariant is re-checked: digests must match their contents,
        each stored signature must come from a member and verify, and each
        state must agree with its signature count.
        """
        if not isinstance(data, dict):
            raise SerializationError(f"expected a JSON object, got {type(data).__name__}")
        version = data.get("version")
        if version != SCHEMA_VERSION:
            raise SerializationError(f"unsupported schema version {version!r}")
        try:
            signers = [bytes.fromhex(h) for h in data["signers"]]
            threshold = data["threshold"]
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"malformed wallet header: {exc}") from exc
        try:
            wallet = cls.create(signers, threshold, crypto=crypto)
        except InvalidConfiguration as exc:
            raise SerializationError(exc.message) from exc
        if data.get("wallet_id") not in (None, wallet.wallet_id):
            raise SerializationError("wallet_id does not match signer set")

        entries = data.get("transactions", [])
        if not isinstance(entries, list):
            raise SerializationError("transactions must be a list")
        for entry in entries:
            pending = wallet._restore_entry(entry)
            wallet._transactions[pending.transaction.tx_id] = pending
        logger.info(
            f"Wallet {wallet.wallet_id[:12]}... restored with "
            f"{len(wallet._transactions)} transactions"
        )
        return wallet

    @classmethod
    def from_json(cls, text: str, *, crypto: CryptoProvider | None = None) -> MultisigWallet:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data, crypto=crypto)

    def _restore_entry(self, entry: dict[str, Any]) -> PendingTransaction:
        if not isinstance(entry, dict) or not isinstance(entry.get("transaction"), dict):
            raise SerializationError("transaction entry must be an object")
        raw_tx = entry["transaction"]
        try:
            tx = Transaction.from_dict(raw_tx)
            state = TxState(entry["state"])
            signatures = {
                bytes.fromhex(pk): bytes.fromhex(sig)
                for pk, sig in entry.get("signatures", {}).items()
            }
            stored_digest = entry.get("digest")
        except InvalidAmount as exc:
            raise SerializationError(exc.message, tx_id=raw_tx.get("id")) from exc
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"malformed transaction entry: {exc}") from exc

        tx_id = tx.tx_id
        if tx_id in self._transactions:
            raise SerializationError("duplicate transaction id", tx_id=tx_id)
        if stored_digest is not None and stored_digest != tx.digest().hex():
            raise SerializationError("digest does not match transaction contents", tx_id=tx_id)
        for pk, sig in signatures.items():
            if pk not in self._signer_set:
                raise SerializationError("signature from non-member key", tx_id=tx_id)
            if not self._crypto.verify(pk, tx.digest(), sig):
                raise SerializationError("stored signature does not verify", tx_id=tx_id)

        met = len(signatures) >= self._threshold
        if state is TxState.PROPOSED and met:
            raise SerializationError("proposed transaction already meets threshold", tx_id=tx_id)
        if state in (TxState.EXECUTABLE, TxState.EXECUTED) and not met:
            raise SerializationError(f"{state.value} transaction below threshold", tx_id=tx_id)

        receipt = None
        if state is TxState.EXECUTED:
            raw = entry.get("receipt")
            executed_at = raw.get("executed_at") if isinstance(raw, dict) else None
            if isinstance(executed_at, bool) or not isinstance(executed_at, int):
                raise SerializationError("executed transaction has no receipt", tx_id=tx_id)
            self._clock.observe(executed_at)
            receipt = ExecutionReceipt(
                tx_id=tx_id,
                signers=frozenset(signatures),
                executed_at=executed_at,
                transaction=tx,
            )
        return PendingTransaction(tx, state, signatures, receipt)

    def __repr__(self) -> str:
        return (
            f"MultisigWallet({self._wallet_id[:12]}..., "
            f"{self._threshold}-of-{len(self._signers)})"
        )
