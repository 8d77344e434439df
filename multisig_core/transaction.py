"""
Transaction model for the multisig wallet.

A Transaction is an immutable proposed transfer.  Its digest is the SHA-256
of a canonical JSON encoding of every field (id included), so any change to
the contents would produce a different digest and invalidate every signature
collected for it.

Canonical encoding (UTF-8, keys sorted, no whitespace):
    {"amount":100,"created_at":7,"id":"<32 hex>","metadata":"<hex>"|null,
     "recipient":"...","v":1}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from multisig_core.clock import GLOBAL_CLOCK, LogicalClock
from multisig_core.crypto_utils import DEFAULT_PROVIDER, CryptoProvider, generate_nonce, sha256
from multisig_core.errors import InvalidAmount

logger = logging.getLogger("multisig_transaction")

CANONICAL_VERSION = 1
MAX_AMOUNT = 2**64 - 1


@dataclass(frozen=True)
class AmountPolicy:
    """Which amounts ``Transaction.propose`` accepts."""
    allow_zero: bool = False
    max_amount: int = MAX_AMOUNT

    def check(self, amount: Any) -> None:
        _check_amount_type(amount)
        if amount == 0 and not self.allow_zero:
            raise InvalidAmount(amount, "zero amount not allowed by policy")
        if amount > self.max_amount:
            raise InvalidAmount(amount, f"exceeds maximum {self.max_amount}")


DEFAULT_POLICY = AmountPolicy()


def _check_amount_type(amount: Any) -> None:
    # bool is an int subclass; True is not an amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(amount, "must be an integer")
    if amount < 0:
        raise InvalidAmount(amount, "must be non-negative")


@dataclass(frozen=True)
class Transaction:
    """A proposed transfer. Create with ``Transaction.propose``."""
    tx_id: str
    recipient: str
    amount: int
    metadata: bytes | None = None
    created_at: int = 0
    _digest: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.tx_id, str) or not self.tx_id:
            raise ValueError("tx_id must be a non-empty string")
        if not isinstance(self.recipient, str) or not self.recipient:
            raise ValueError("recipient must be a non-empty string")
        _check_amount_type(self.amount)
        if self.metadata is not None and not isinstance(self.metadata, bytes):
            raise TypeError("metadata must be bytes or None")
        if isinstance(self.created_at, bool) or not isinstance(self.created_at, int) \
                or self.created_at < 0:
            raise ValueError("created_at must be a non-negative integer")
        object.__setattr__(self, "_digest", sha256(self.canonical_bytes()))

    # ---- factory ----

    @classmethod
    def propose(
        cls,
        recipient: str,
        amount: int,
        metadata: bytes | str | None = None,
        *,
        policy: AmountPolicy | None = None,
        clock: LogicalClock | None = None,
    ) -> Transaction:
        """
        Build a new transaction with a fresh 128-bit id and logical timestamp.

        Raises InvalidAmount if *amount* is rejected by *policy*
        (default: positive integers up to 2**64 - 1).
        """
        (policy or DEFAULT_POLICY).check(amount)
        if isinstance(metadata, str):
            metadata = metadata.encode("utf-8")
        tx = cls(
            tx_id=generate_nonce(16),
            recipient=recipient,
            amount=amount,
            metadata=metadata,
            created_at=(clock or GLOBAL_CLOCK).tick(),
        )
        logger.debug(f"Created TX {tx.tx_id[:12]}... ({amount} -> {recipient[:16]})")
        return tx

    # ---- hashing / signing ----

    def canonical_bytes(self) -> bytes:
        return json.dumps(
            {
                "v": CANONICAL_VERSION,
                "id": self.tx_id,
                "recipient": self.recipient,
                "amount": self.amount,
                "metadata": self.metadata.hex() if self.metadata is not None else None,
                "created_at": self.created_at,
            },
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def digest(self) -> bytes:
        return self._digest

    def sign(self, private_key: bytes, crypto: CryptoProvider | None = None) -> bytes:
        """Sign this transaction's digest. The key is used for this call only."""
        return (crypto or DEFAULT_PROVIDER).sign(private_key, self._digest)

    # ---- serialisation ----

    def to_dict(self) -> dict:
        return {
            "id": self.tx_id,
            "recipient": self.recipient,
            "amount": self.amount,
            "metadata": self.metadata.hex() if self.metadata is not None else None,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Transaction:
        metadata = data.get("metadata")
        return cls(
            tx_id=data["id"],
            recipient=data["recipient"],
            amount=data["amount"],
            metadata=bytes.fromhex(metadata) if metadata is not None else None,
            created_at=data.get("created_at", 0),
        )
