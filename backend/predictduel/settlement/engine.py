"""Resolution engine.

Pure functions over a Duel model. ``resolve_duel`` never mutates its input:
it returns a fully settled copy, so a caller either persists the whole
resolved duel or nothing at all.

Payout formula for a winner:
    payout = pool_size * stake / winning_pool, rounded half-up to the cent
then trimmed by a cent where the rounded payouts would exceed the pool.
Losers get 0. If nobody picked the winning side the pool is orphaned and
every payout is 0.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

from predictduel.exceptions import InvalidInputError, InvalidStateError, UnauthorizedError
from predictduel.models import Duel, Money, Prediction

CENT = Decimal("0.01")
ZERO = Decimal("0")


class ParticipantPayout(BaseModel):
    """Settled result for one participant entry."""

    id: str
    user_id: str
    prediction: Prediction
    stake: Money
    won: bool
    payout: Money


def round_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_outcome(outcome: str | None, field: str = "outcome") -> Prediction:
    """Lower-case and validate an outcome/prediction value."""
    value = (outcome or "").strip().lower()
    if value not in ("yes", "no"):
        raise InvalidInputError(
            f'{field.capitalize()} must be "yes" or "no"',
            reason=f"invalid_{field}",
            value=outcome,
        )
    return value  # type: ignore[return-value]


def check_invariants(duel: Duel) -> None:
    """Explicit structural checks, independent of any storage-side schema."""
    for participant in duel.participants:
        if participant.stake <= ZERO:
            raise InvalidStateError(
                f"Participant {participant.id} has a non-positive stake",
                reason="invalid_stake",
                participant_id=participant.id,
            )
        if participant.claimed and not (
            duel.status == "resolved" and participant.won and (participant.payout or ZERO) > ZERO
        ):
            raise InvalidStateError(
                f"Participant {participant.id} is claimed without a payout",
                reason="invalid_claim",
                participant_id=participant.id,
            )

    if (duel.outcome is not None) != (duel.status == "resolved"):
        raise InvalidStateError(
            f"Duel {duel.id} outcome and status disagree",
            reason="outcome_status_mismatch",
        )

    if duel.status != "resolved" and duel.pool_size != duel.total_stakes:
        raise InvalidStateError(
            f"Duel {duel.id} pool {duel.pool_size} != stakes {duel.total_stakes}",
            reason="pool_mismatch",
            pool_size=str(duel.pool_size),
            total_stakes=str(duel.total_stakes),
        )


def validate_resolution(
    duel: Duel, caller_id: str, outcome: str | None, now: datetime
) -> Prediction:
    """Check every resolution precondition; returns the normalized outcome."""
    final_outcome = normalize_outcome(outcome)

    if duel.creator_id != caller_id:
        raise UnauthorizedError(
            "Only the creator can resolve this duel", reason="not_creator"
        )
    if duel.status == "resolved":
        raise InvalidStateError("Duel is already resolved", reason="already_resolved")
    if duel.status == "cancelled":
        raise InvalidStateError("Duel has been cancelled", reason="cancelled")
    if not duel.is_unresolved:
        raise InvalidStateError(
            "Duel must be active or pending to resolve",
            reason="not_resolvable",
            status=duel.status,
        )
    if now < duel.deadline:
        raise InvalidStateError(
            "Cannot resolve duel before deadline",
            reason="before_deadline",
            deadline=duel.deadline.isoformat(),
        )

    check_invariants(duel)
    return final_outcome


def compute_payouts(duel: Duel, outcome: Prediction) -> list[ParticipantPayout]:
    """Win flags and proportional payouts for every participant entry.

    Each winner's share is rounded half-up on its own, which can overshoot
    the pool by a few cents. The overshoot is taken back one cent at a time
    from the winners whose share was rounded up the most (later entries
    first on ties), so the payouts never add up to more than the pool.
    """
    winning_pool = sum(
        (p.stake for p in duel.participants if p.prediction == outcome), ZERO
    )

    payouts: list[Decimal] = []
    exact: list[Decimal] = []
    for participant in duel.participants:
        if participant.prediction == outcome and winning_pool > ZERO:
            share = duel.pool_size * participant.stake / winning_pool
            exact.append(share)
            payouts.append(round_cents(share))
        else:
            exact.append(ZERO)
            payouts.append(ZERO)

    excess = sum(payouts, ZERO) - duel.pool_size
    if excess > ZERO:
        rounded_up = sorted(
            (i for i, payout in enumerate(payouts) if payout > exact[i]),
            key=lambda i: (payouts[i] - exact[i], i),
            reverse=True,
        )
        for i in rounded_up:
            if excess <= ZERO:
                break
            payouts[i] -= CENT
            excess -= CENT

    return [
        ParticipantPayout(
            id=participant.id,
            user_id=participant.user_id,
            prediction=participant.prediction,
            stake=participant.stake,
            won=participant.prediction == outcome,
            payout=payout,
        )
        for participant, payout in zip(duel.participants, payouts)
    ]


def resolve_duel(
    duel: Duel,
    outcome: Prediction,
    resolved_at: datetime,
    signature: str | None = None,
) -> tuple[Duel, list[ParticipantPayout]]:
    """Return a resolved copy of ``duel`` plus the per-participant payouts."""
    payouts = compute_payouts(duel, outcome)
    by_id = {p.id: p for p in payouts}

    resolved = duel.model_copy(deep=True)
    for participant in resolved.participants:
        result = by_id[participant.id]
        participant.won = result.won
        participant.payout = result.payout

    resolved.status = "resolved"
    resolved.outcome = outcome
    resolved.resolved_at = resolved_at
    resolved.resolution_signature = signature
    resolved.updated_at = resolved_at
    return resolved, payouts
