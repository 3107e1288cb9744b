"""Journal rollback and the collateral / outcome token ledgers."""

import pytest

from conftest import OTHER, USER
from ctfmarket.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientCollateral,
    InvalidAmount,
    InvalidOutcome,
)
from ctfmarket.ledger import CollateralLedger, Journal, OutcomeTokenLedger

CID = "0x" + "cd" * 32


def test_journal_restores_all_writes_on_error():
    journal = Journal()
    table = {"a": 1}
    items = ["x"]
    with pytest.raises(ValueError):
        with journal.transaction():
            journal.write(table, "a", 5)
            journal.write(table, "b", 7)
            journal.write(table, "a", 0)
            journal.append(items, "y")
            raise ValueError("boom")
    assert table == {"a": 1}
    assert items == ["x"]
    assert not journal.active


def test_journal_nested_transaction_joins_outer():
    journal = Journal()
    table = {}
    with pytest.raises(KeyError):
        with journal.transaction():
            with journal.transaction():
                journal.write(table, "k", 1)
            assert table == {"k": 1}
            raise KeyError("k")
    assert table == {}


def test_journal_commit_keeps_writes():
    journal = Journal()
    table = {}
    with journal.transaction():
        journal.write(table, "k", 3)
    assert table == {"k": 3}


def test_collateral_transfer_from_consumes_allowance():
    ledger = CollateralLedger(custody="custody")
    ledger.mint(USER, 100)
    ledger.approve(USER, OTHER, 60)
    ledger.transfer_from(OTHER, USER, OTHER, 40)
    assert ledger.balance_of(USER) == 60
    assert ledger.balance_of(OTHER) == 40
    assert ledger.allowance(USER, OTHER) == 20
    with pytest.raises(InsufficientAllowance):
        ledger.transfer_from(OTHER, USER, OTHER, 21)
    assert ledger.total_supply == 100


def test_collateral_debit_checks_balance_before_allowance():
    ledger = CollateralLedger(custody="custody")
    ledger.mint(USER, 5)
    with pytest.raises(InsufficientCollateral):
        ledger.debit(USER, 6)
    with pytest.raises(InsufficientAllowance):
        ledger.debit(USER, 5)
    ledger.approve(USER, "custody", 5)
    ledger.debit(USER, 5)
    assert ledger.balance_of("custody") == 5
    ledger.credit(USER, 2)
    assert ledger.balance_of(USER) == 2


def test_collateral_rejects_bad_amounts():
    ledger = CollateralLedger(custody="custody")
    with pytest.raises(InvalidAmount):
        ledger.mint(USER, 0)
    with pytest.raises(InvalidAmount):
        ledger.approve(USER, OTHER, -1)
    ledger.approve(USER, OTHER, 0)
    assert ledger.allowance(USER, OTHER) == 0


def test_outcome_mint_burn_tracks_supply():
    tokens = OutcomeTokenLedger()
    tokens.mint(CID, 0, USER, 10)
    tokens.mint(CID, 0, OTHER, 5)
    tokens.burn(CID, 0, USER, 10)
    assert tokens.balance_of(CID, 0, USER) == 0
    assert tokens.total_supply(CID, 0) == 5
    assert [p.holder for p in tokens.positions(CID)] == [OTHER]
    assert tokens.holders(CID, 0) == [OTHER]
    assert tokens.holders(CID, 1) == []
    with pytest.raises(InsufficientBalance):
        tokens.burn(CID, 0, OTHER, 6)


def test_outcome_index_out_of_range():
    tokens = OutcomeTokenLedger()
    with pytest.raises(InvalidOutcome):
        tokens.mint(CID, 2, USER, 1)
    with pytest.raises(InvalidOutcome):
        tokens.balance_of(CID, -1, USER)
