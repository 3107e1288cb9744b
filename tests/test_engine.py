"""Position engine: conservation, write-once resolution, redeem idempotence, rollback."""

import threading

import pytest

from conftest import ORACLE, OTHER, QUESTION, USER
from ctfmarket import ids
from ctfmarket.errors import (
    AlreadyResolved,
    ConditionNotResolved,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientCollateral,
    InvalidAmount,
    InvalidPayouts,
    NotOracle,
    UnknownCondition,
)
from ctfmarket.models import ConditionState, EventKind


def test_split_moves_collateral_and_mints_both_outcomes(engine, condition_id, funded):
    funded(USER, 1000)
    engine.split(condition_id, USER, 100)
    assert engine.collateral.balance_of(USER) == 900
    assert engine.collateral.balance_of(engine.collateral.custody) == 100
    assert engine.balance_of(condition_id, 0, USER) == 100
    assert engine.balance_of(condition_id, 1, USER) == 100
    assert engine.locked(condition_id) == 100
    assert engine.check_conservation(condition_id)


def test_conservation_over_split_merge_sequence(engine, condition_id, funded):
    funded(USER, 500)
    funded(OTHER, 500)
    debited = credited = 0
    for holder, op, amount in [
        (USER, "split", 120),
        (OTHER, "split", 80),
        (USER, "merge", 20),
        (OTHER, "split", 15),
        (OTHER, "merge", 95),
        (USER, "split", 1),
    ]:
        getattr(engine, op)(condition_id, holder, amount)
        if op == "split":
            debited += amount
        else:
            credited += amount
        supply0 = sum(p.balance for p in engine.positions(condition_id) if p.outcome_index == 0)
        supply1 = sum(p.balance for p in engine.positions(condition_id) if p.outcome_index == 1)
        assert debited - credited == supply0 == supply1
        assert engine.check_conservation(condition_id)
    assert engine.collateral.balance_of(USER) + engine.collateral.balance_of(OTHER) == 1000 - (debited - credited)


def test_resolution_is_write_once(engine, condition_id):
    engine.resolve(condition_id, [1, 0], caller=ORACLE)
    with pytest.raises(AlreadyResolved):
        engine.resolve(condition_id, [0, 1], caller=ORACLE)
    assert engine.registry.payouts(condition_id) == (1, 0)
    assert engine.condition_state(condition_id) is ConditionState.RESOLVED


def test_resolve_rejections_leave_condition_unresolved(engine, condition_id):
    with pytest.raises(NotOracle):
        engine.resolve(condition_id, [1, 0], caller=USER)
    for bad in ([0, 0], [1], [1, 0, 0], [-1, 2]):
        with pytest.raises(InvalidPayouts):
            engine.resolve(condition_id, bad, caller=ORACLE)
    with pytest.raises(UnknownCondition):
        engine.resolve("0x" + "00" * 32, [1, 0], caller=ORACLE)
    assert engine.condition_state(condition_id) is ConditionState.UNRESOLVED
    assert [e.kind for e in engine.events] == [EventKind.CONDITION_PREPARATION]


def test_redeem_is_idempotent(engine, condition_id, funded):
    funded(USER, 100)
    engine.split(condition_id, USER, 100)
    engine.resolve(condition_id, [1, 0], caller=ORACLE)
    assert engine.redeem(condition_id, USER) == 100
    assert engine.redeem(condition_id, USER) == 0
    assert engine.balance_of(condition_id, 0, USER) == 0
    assert engine.balance_of(condition_id, 1, USER) == 0
    assert engine.collateral.balance_of(USER) == 100


def test_no_value_creation_winner_paid_one_to_one(engine, condition_id, funded):
    funded(USER, 1000)
    engine.split(condition_id, USER, 100)
    engine.transfer(condition_id, 1, USER, OTHER, 100)  # USER keeps only YES
    engine.resolve(condition_id, [1, 0], caller=ORACLE)
    assert engine.redeem(condition_id, USER) == 100
    assert engine.redeem(condition_id, OTHER) == 0
    assert engine.balance_of(condition_id, 1, OTHER) == 0  # losing side still burned
    assert engine.collateral.balance_of(USER) == 1000
    assert engine.locked(condition_id) == 0


def test_merge_exit_restores_collateral(engine, condition_id, funded):
    funded(USER, 50)
    engine.split(condition_id, USER, 50)
    engine.merge(condition_id, USER, 50)
    assert engine.collateral.balance_of(USER) == 50
    assert engine.positions(condition_id, USER) == []
    assert engine.locked(condition_id) == 0


def test_merge_allowed_after_resolution(engine, condition_id, funded):
    funded(USER, 30)
    engine.split(condition_id, USER, 30)
    engine.resolve(condition_id, [0, 1], caller=ORACLE)
    engine.merge(condition_id, USER, 10)
    assert engine.collateral.balance_of(USER) == 10
    assert engine.redeem(condition_id, USER) == 20


def test_premature_redeem_rejected_and_balances_unchanged(engine, condition_id, funded):
    funded(USER, 40)
    engine.split(condition_id, USER, 40)
    with pytest.raises(ConditionNotResolved):
        engine.redeem(condition_id, USER)
    assert engine.balance_of(condition_id, 0, USER) == 40
    assert engine.balance_of(condition_id, 1, USER) == 40
    assert engine.collateral.balance_of(USER) == 0


def test_split_funding_failures_roll_back(engine, condition_id):
    engine.collateral.mint(USER, 10)
    with pytest.raises(InsufficientAllowance):
        engine.split(condition_id, USER, 10)
    engine.collateral.approve(USER, engine.collateral.custody, 100)
    with pytest.raises(InsufficientCollateral):
        engine.split(condition_id, USER, 11)
    assert engine.collateral.balance_of(USER) == 10
    assert engine.collateral.allowance(USER, engine.collateral.custody) == 100
    assert engine.positions(condition_id) == []
    assert engine.locked(condition_id) == 0
    assert len(engine.events) == 1


def test_failure_midway_rolls_back_earlier_writes(engine, condition_id, funded, monkeypatch):
    funded(USER, 100)
    calls = []
    original_mint = engine.tokens.mint

    def failing_mint(cid, index, holder, amount):
        calls.append(index)
        if index == 1:
            raise RuntimeError("storage fault")
        original_mint(cid, index, holder, amount)

    monkeypatch.setattr(engine.tokens, "mint", failing_mint)
    with pytest.raises(RuntimeError):
        engine.split(condition_id, USER, 60)
    assert calls == [0, 1]
    assert engine.collateral.balance_of(USER) == 100
    assert engine.collateral.allowance(USER, engine.collateral.custody) == 100
    assert engine.tokens.balance_of(condition_id, 0, USER) == 0
    assert engine.tokens.total_supply(condition_id, 0) == 0


def test_invalid_amounts_rejected(engine, condition_id, funded):
    funded(USER, 10)
    for amount in (0, -5, 1.5, True):
        with pytest.raises(InvalidAmount):
            engine.split(condition_id, USER, amount)
    with pytest.raises(InvalidAmount):
        engine.merge(condition_id, USER, 0)


def test_merge_requires_both_outcomes(engine, condition_id, funded):
    funded(USER, 10)
    engine.split(condition_id, USER, 10)
    engine.transfer(condition_id, 0, USER, OTHER, 4)
    with pytest.raises(InsufficientBalance):
        engine.merge(condition_id, USER, 10)
    assert engine.balance_of(condition_id, 1, USER) == 10
    engine.merge(condition_id, USER, 6)
    assert engine.collateral.balance_of(USER) == 6


def test_split_unknown_condition(engine, funded):
    funded(USER, 10)
    with pytest.raises(UnknownCondition):
        engine.split("0x" + "ab" * 32, USER, 5)
    assert engine.collateral.balance_of(USER) == 10


def test_split_after_resolution_permitted(engine, condition_id, funded):
    funded(USER, 10)
    engine.resolve(condition_id, [1, 0], caller=ORACLE)
    engine.split(condition_id, USER, 10)
    assert engine.redeem(condition_id, USER) == 10


def test_fractional_weights_floor_and_stay_backed(engine, condition_id, funded):
    funded(USER, 7)
    funded(OTHER, 7)
    engine.split(condition_id, USER, 7)
    engine.split(condition_id, OTHER, 7)
    engine.resolve(condition_id, [1, 2], caller=ORACLE)
    # floor(7*1/3) + floor(7*2/3) = 2 + 4
    assert engine.redeem(condition_id, USER) == 6
    assert engine.check_conservation(condition_id)
    assert engine.redeem(condition_id, OTHER) == 6
    assert engine.locked(condition_id) == 2  # rounding dust stays in custody
    assert engine.check_conservation(condition_id)


def test_events_recorded_in_order(engine, condition_id, funded):
    funded(USER, 10)
    engine.split(condition_id, USER, 10)
    engine.resolve(condition_id, [1, 0], caller=ORACLE)
    engine.redeem(condition_id, USER)
    engine.redeem(condition_id, USER)  # no-op, no event
    kinds = [e.kind for e in engine.events]
    assert kinds == [
        EventKind.CONDITION_PREPARATION,
        EventKind.POSITION_SPLIT,
        EventKind.CONDITION_RESOLUTION,
        EventKind.PAYOUT_REDEMPTION,
    ]
    assert [e.seq for e in engine.events] == [1, 2, 3, 4]
    assert engine.events[-1].payload["burned"] == [10, 10]


def test_condition_state_machine(engine):
    cid = ids.condition_id(ORACLE, QUESTION)
    assert engine.condition_state(cid) is ConditionState.UNPREPARED
    engine.prepare_condition(ORACLE, QUESTION)
    assert engine.condition_state(cid) is ConditionState.UNRESOLVED
    engine.resolve(cid, [0, 1], caller=ORACLE)
    assert engine.condition_state(cid) is ConditionState.RESOLVED


def test_reads_never_see_half_a_split(engine, condition_id, funded):
    funded(USER, 10**6 + 1)
    engine.split(condition_id, USER, 10**6)
    done = threading.Event()

    def churn():
        try:
            for _ in range(2000):
                engine.split(condition_id, USER, 1)
                engine.merge(condition_id, USER, 1)
        finally:
            done.set()

    writer = threading.Thread(target=churn)
    writer.start()
    bad = []
    while not done.is_set():
        with engine.reading():
            supply = (engine.total_supply(condition_id, 0), engine.total_supply(condition_id, 1))
        if supply[0] != supply[1]:
            bad.append(supply)
        if not engine.check_conservation(condition_id):
            bad.append("conservation")
    writer.join()
    assert bad == []
    assert engine.locked(condition_id) == 10**6


def test_events_for_accepts_any_id_case(engine, condition_id, funded):
    funded(USER, 5)
    engine.split(condition_id, USER, 5)
    mixed = "0x" + condition_id[2:].upper()
    assert [e.kind for e in engine.events_for(mixed)] == [EventKind.CONDITION_PREPARATION, EventKind.POSITION_SPLIT]
    assert len(engine.events_for(mixed, limit=1)) == 1
    with pytest.raises(UnknownCondition):
        engine.events_for("0x" + "ee" * 32)
