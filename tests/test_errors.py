"""Tests for multisig_core.errors — the rejection taxonomy."""

import pytest

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

KEY = b"\x04" + b"\xab" * 64

ALL_ERRORS = [
    InvalidConfiguration("M=4 must be <= N=3", threshold=4, signers=3),
    InvalidAmount(-1, "must be non-negative"),
    DuplicateTransaction("tx1"),
    UnknownTransaction("tx1"),
    UntrustedSigner("tx1", KEY),
    DuplicateSignature("tx1", KEY),
    InvalidSignature("tx1", KEY),
    TransactionFinalized("tx1", "executed"),
    ThresholdNotMet("tx1", 2, 1),
    AlreadyExecuted("tx1"),
    SerializationError("bad digest", tx_id="tx1"),
]


class TestTaxonomy:
    def test_all_are_multisig_errors(self):
        for err in ALL_ERRORS:
            assert isinstance(err, MultisigError)

    def test_codes_unique(self):
        codes = [err.code for err in ALL_ERRORS]
        assert len(set(codes)) == len(codes)
        assert ErrorCode.GENERIC not in codes

    def test_distinguishable_by_type(self):
        assert len({type(err) for err in ALL_ERRORS}) == len(ALL_ERRORS)

    @pytest.mark.parametrize("err", ALL_ERRORS, ids=lambda e: type(e).__name__)
    def test_to_dict(self, err):
        d = err.to_dict()
        assert d["code"] == int(err.code)
        assert d["error"] == type(err).__name__
        assert d["message"] == err.message


class TestContext:
    def test_threshold_not_met_counts(self):
        err = ThresholdNotMet("tx1", 3, 1)
        assert err.required == 3
        assert err.actual == 1
        assert "required 3, got 1" in str(err)

    def test_signer_hex_in_context(self):
        err = UntrustedSigner("tx1", KEY)
        assert err.context["signer"] == KEY.hex()
        assert err.signer == KEY

    def test_str_includes_code(self):
        assert str(UnknownTransaction("tx9")).startswith("[1004]")

    def test_catchable_as_base(self):
        with pytest.raises(MultisigError):
            raise DuplicateSignature("tx1", KEY)
