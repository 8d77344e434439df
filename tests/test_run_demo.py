"""Tests for the run_demo.py demo runner."""

import json
import logging
import os
from unittest.mock import patch

import pytest

import run_demo


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _clean_env():
    env = {k: v for k, v in os.environ.items() if not k.startswith("MULTISIG_")}
    with patch.dict(os.environ, env, clear=True):
        yield


def test_run_two_of_three():
    summary = run_demo.run(run_demo.parse_args(["--signers", "3", "--threshold", "2"]))
    assert summary["wallet"]["threshold"] == 2
    assert summary["wallet"]["executed_count"] == 1
    assert len(summary["receipt"]["signers"]) == 2
    assert summary["receipt"]["tx_id"] == summary["transaction"]["id"]


def test_main_prints_summary(capsys):
    code = run_demo.main(["--signers", "2", "--threshold", "2", "--amount", "7",
                          "--metadata", "memo"])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["transaction"]["amount"] == 7
    assert out["transaction"]["metadata"] == b"memo".hex()


def test_main_reports_configuration_error(capsys):
    code = run_demo.main(["--signers", "2", "--threshold", "3"])
    assert code == 1
    out = json.loads(capsys.readouterr().out)
    assert out["error"] == "InvalidConfiguration"


def test_main_reports_zero_amount(capsys):
    code = run_demo.main(["--amount", "0"])
    assert code == 1
    assert json.loads(capsys.readouterr().out)["error"] == "InvalidAmount"
