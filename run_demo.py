#!/usr/bin/env python3
"""
Multisig demo runner — walks one transaction through an M-of-N wallet:
  - generates N throwaway key-pairs
  - creates the wallet and proposes a transfer
  - signs with the first M keys
  - executes and prints a JSON summary

Usage:
    python run_demo.py --signers 3 --threshold 2 --amount 1000 \\
                       --recipient rBob --metadata "rent"

Environment variables (see multisig_core.config):
    MULTISIG_LOG_LEVEL, MULTISIG_LOG_FMT, MULTISIG_ALLOW_ZERO_AMOUNT
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from multisig_core.config import MultisigConfig, load_config
from multisig_core.crypto_utils import generate_keypair
from multisig_core.errors import MultisigError
from multisig_core.logging_config import setup_logging
from multisig_core.transaction import Transaction
from multisig_core.wallet import MultisigWallet

logger = logging.getLogger("demo")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Multisig wallet demo")
    p.add_argument("--config", default=None, help="Path to multisig.toml config file")
    p.add_argument("--signers", type=int, default=3, help="Number of signers (N)")
    p.add_argument("--threshold", type=int, default=2, help="Required signatures (M)")
    p.add_argument("--amount", type=int, default=1000, help="Transfer amount")
    p.add_argument("--recipient", default="rRecipient", help="Recipient address")
    p.add_argument("--metadata", default=None, help="Optional memo")
    p.add_argument("--log-level", default=None, help="Override logging level")
    p.add_argument("--log-format", default=None, choices=["human", "json"],
                   help="Override logging format")
    return p.parse_args(argv)


def run(args: argparse.Namespace, cfg: MultisigConfig | None = None) -> dict:
    """Execute the demo flow and return a summary dict."""
    cfg = cfg or load_config(args.config)
    keys = [generate_keypair() for _ in range(args.signers)]
    wallet = MultisigWallet.create([pub for _, pub in keys], args.threshold)

    tx = Transaction.propose(
        args.recipient, args.amount, args.metadata,
        policy=cfg.policy.amount_policy(),
    )
    wallet.propose(tx)

    for priv, pub in keys:
        if wallet.verify_transaction(tx.tx_id):
            break
        wallet.add_signature(tx.tx_id, pub, tx.sign(priv))
        logger.info(f"Signature {wallet.signature_count(tx.tx_id)}/{wallet.threshold} added")

    receipt = wallet.execute(tx.tx_id)
    return {
        "wallet": wallet.info().to_dict(),
        "transaction": tx.to_dict(),
        "digest": tx.digest().hex(),
        "receipt": receipt.to_dict(),
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)
    setup_logging(
        level=args.log_level or cfg.logging.level,
        fmt=args.log_format or cfg.logging.format,
        log_file=cfg.logging.file,
    )
    try:
        summary = run(args, cfg)
    except MultisigError as exc:
        logger.error(f"Demo failed: {exc}")
        print(json.dumps(exc.to_dict(), indent=2))
        return 1
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
