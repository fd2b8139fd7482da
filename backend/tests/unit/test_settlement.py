"""
Unit Tests: Resolution Engine

Test cases:
- Proportional payouts and half-up cent rounding
- Rounded payouts never add up to more than the pool
- Orphaned pool when nobody picked the winning side
- Precondition failures (caller, status, deadline, outcome)
- Resolution never mutates the input duel
"""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from predictduel.exceptions import InvalidInputError, InvalidStateError, UnauthorizedError
from predictduel.models import Duel, Participant
from predictduel.settlement import (
    check_invariants,
    compute_payouts,
    normalize_outcome,
    resolve_duel,
    round_cents,
    validate_resolution,
)

DEADLINE = datetime(2026, 3, 2, tzinfo=timezone.utc)


def make_duel(positions: list[tuple[str, str, str]], **overrides) -> Duel:
    """positions: (user_id, prediction, stake)"""
    participants = [
        Participant(user_id=user, prediction=side, stake=Decimal(stake))
        for user, side, stake in positions
    ]
    fields = dict(
        creator_id="creator",
        question="Will it rain tomorrow?",
        stake=participants[0].stake if participants else Decimal("1"),
        deadline=DEADLINE,
        status="active",
        pool_size=sum((p.stake for p in participants), Decimal("0")),
        participants=participants,
    )
    fields.update(overrides)
    return Duel(**fields)


def payouts_by_user(duel: Duel, outcome: str) -> dict[str, Decimal]:
    return {p.user_id: p.payout for p in compute_payouts(duel, outcome)}


def test_single_winner_takes_whole_pool():
    duel = make_duel([("a", "yes", "30"), ("b", "no", "70")])

    resolved, payouts = resolve_duel(duel, "yes", DEADLINE)

    a, b = resolved.participants
    assert a.won is True and a.payout == Decimal("100.00")
    assert b.won is False and b.payout == Decimal("0")
    assert resolved.status == "resolved"
    assert resolved.outcome == "yes"
    assert [p.payout for p in payouts] == [Decimal("100.00"), Decimal("0")]


def test_three_winners_split_proportionally():
    duel = make_duel(
        [
            ("a", "yes", "10"),
            ("b", "yes", "20"),
            ("c", "yes", "30"),
            ("d", "no", "60"),
        ]
    )
    assert duel.pool_size == Decimal("120")

    payouts = payouts_by_user(duel, "yes")

    assert payouts == {
        "a": Decimal("20.00"),
        "b": Decimal("40.00"),
        "c": Decimal("60.00"),
        "d": Decimal("0"),
    }


def test_orphaned_pool_pays_nobody():
    duel = make_duel([("a", "yes", "5"), ("b", "yes", "15")])

    resolved, payouts = resolve_duel(duel, "no", DEADLINE)

    assert all(p.payout == 0 for p in payouts)
    assert all(not p.won for p in resolved.participants)
    assert resolved.status == "resolved"


def test_round_cents_is_half_up():
    assert round_cents(Decimal("12.345")) == Decimal("12.35")
    assert round_cents(Decimal("12.344")) == Decimal("12.34")
    assert round_cents(Decimal("0.005")) == Decimal("0.01")
    assert round_cents(Decimal("33.3333")) == Decimal("33.33")


def test_payout_rounds_half_up_on_the_cent():
    # 14.814 * 1 / 1.2 = 12.345 exactly
    duel = make_duel(
        [
            ("a", "yes", "1"),
            ("b", "yes", "0.1"),
            ("c", "yes", "0.1"),
            ("d", "no", "13.614"),
        ]
    )

    payouts = payouts_by_user(duel, "yes")

    assert payouts["a"] == Decimal("12.35")
    assert payouts["b"] == Decimal("1.23")
    assert sum(payouts.values()) <= duel.pool_size


def test_rounded_payouts_never_exceed_the_pool():
    # Each exact share is 0.015, which rounds up to 0.02 on its own
    duel = make_duel([("a", "yes", "0.01"), ("b", "yes", "0.01"), ("c", "no", "0.01")])

    payouts = [p.payout for p in compute_payouts(duel, "yes")]

    assert duel.pool_size == Decimal("0.03")
    assert payouts == [Decimal("0.02"), Decimal("0.01"), Decimal("0")]
    assert sum(payouts) == duel.pool_size


def test_excess_cent_comes_from_the_largest_round_up():
    # 0.016 and 0.017 both round to 0.02; a rounded up by more, so a pays
    duel = make_duel([("a", "yes", "0.016"), ("b", "yes", "0.017")])

    payouts = [p.payout for p in compute_payouts(duel, "yes")]

    assert payouts == [Decimal("0.01"), Decimal("0.02")]
    assert sum(payouts) <= duel.pool_size


@pytest.mark.parametrize("seed", range(25))
def test_winner_payouts_match_pool_within_rounding(seed):
    rng = random.Random(seed)
    positions = [
        (f"u{i}", rng.choice(["yes", "no"]), f"{rng.randint(1, 50000) / 100:.2f}")
        for i in range(rng.randint(1, 12))
    ]
    duel = make_duel(positions)
    outcome = rng.choice(["yes", "no"])

    payouts = compute_payouts(duel, outcome)
    total = sum((p.payout for p in payouts), Decimal("0"))
    winners = sum(1 for p in payouts if p.won)

    assert total <= duel.pool_size
    if winners:
        assert duel.pool_size - total < Decimal("0.01") * winners
    else:
        assert total == 0
    assert all(p.payout == 0 for p in payouts if not p.won)


def test_resolve_does_not_mutate_input():
    duel = make_duel([("a", "yes", "30"), ("b", "no", "70")])
    before = duel.model_dump()

    resolve_duel(duel, "yes", DEADLINE)

    assert duel.model_dump() == before


def test_validate_accepts_deadline_boundary_and_normalizes_outcome():
    duel = make_duel([("creator", "yes", "10")])

    assert validate_resolution(duel, "creator", " YES ", DEADLINE) == "yes"


@pytest.mark.parametrize(
    "overrides, caller, outcome, now, error, reason",
    [
        ({}, "someone-else", "yes", DEADLINE, UnauthorizedError, "not_creator"),
        ({}, "creator", "maybe", DEADLINE, InvalidInputError, "invalid_outcome"),
        ({}, "creator", None, DEADLINE, InvalidInputError, "invalid_outcome"),
        (
            {},
            "creator",
            "no",
            DEADLINE - timedelta(seconds=1),
            InvalidStateError,
            "before_deadline",
        ),
        ({"status": "cancelled"}, "creator", "yes", DEADLINE, InvalidStateError, "cancelled"),
        ({"status": "resolving"}, "creator", "yes", DEADLINE, InvalidStateError, "not_resolvable"),
        (
            {"status": "resolved", "outcome": "no"},
            "creator",
            "yes",
            DEADLINE,
            InvalidStateError,
            "already_resolved",
        ),
    ],
)
def test_validate_rejects(overrides, caller, outcome, now, error, reason):
    duel = make_duel([("creator", "yes", "10"), ("x", "no", "5")], **overrides)

    with pytest.raises(error) as exc_info:
        validate_resolution(duel, caller, outcome, now)

    assert exc_info.value.reason == reason


def test_invariants_catch_pool_mismatch():
    duel = make_duel([("a", "yes", "10")], pool_size=Decimal("11"))

    with pytest.raises(InvalidStateError) as exc_info:
        check_invariants(duel)

    assert exc_info.value.reason == "pool_mismatch"


def test_invariants_catch_outcome_without_resolution():
    duel = make_duel([("a", "yes", "10")], outcome="yes")

    with pytest.raises(InvalidStateError) as exc_info:
        check_invariants(duel)

    assert exc_info.value.reason == "outcome_status_mismatch"


def test_normalize_outcome_names_the_field():
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_outcome("up", field="prediction")

    assert exc_info.value.reason == "invalid_prediction"
    assert exc_info.value.code == "invalid_input"
