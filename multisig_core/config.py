"""
TOML-based configuration for the multisig wallet.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from multisig_core.config import load_config
    cfg = load_config("multisig.toml")
    tx = Transaction.propose("rBob", 100, policy=cfg.policy.amount_policy())

Example file:
    [policy]
    allow_zero_amount = false
    max_amount = 1_000_000

    [logging]
    level = "DEBUG"
    format = "json"
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import,no-redef]

from multisig_core.transaction import MAX_AMOUNT, AmountPolicy

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class PolicyConfig:
    """Transaction amount policy."""
    allow_zero_amount: bool = False
    max_amount: int = MAX_AMOUNT

    def amount_policy(self) -> AmountPolicy:
        return AmountPolicy(allow_zero=self.allow_zero_amount, max_amount=self.max_amount)


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class MultisigConfig:
    """Top-level configuration container."""
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> MultisigConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        MULTISIG_ALLOW_ZERO_AMOUNT -> policy.allow_zero_amount
        MULTISIG_MAX_AMOUNT        -> policy.max_amount
        MULTISIG_LOG_LEVEL         -> logging.level
        MULTISIG_LOG_FMT           -> logging.format
        MULTISIG_LOG_FILE          -> logging.file

    A missing file is not an error; defaults apply.
    """
    cfg = MultisigConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("policy", cfg.policy),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("MULTISIG_ALLOW_ZERO_AMOUNT"):
        cfg.policy.allow_zero_amount = v.strip().lower() in _TRUE
    if v := os.environ.get("MULTISIG_MAX_AMOUNT"):
        cfg.policy.max_amount = int(v)
    if v := os.environ.get("MULTISIG_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("MULTISIG_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("MULTISIG_LOG_FILE"):
        cfg.logging.file = v

    if cfg.policy.max_amount < 0:
        raise ValueError(f"policy.max_amount must be non-negative, got {cfg.policy.max_amount}")
    return cfg
