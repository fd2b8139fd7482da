"""Duel settlement: payout computation and lifetime stats folding."""

from .engine import (
    ParticipantPayout,
    check_invariants,
    compute_payouts,
    normalize_outcome,
    resolve_duel,
    round_cents,
    validate_resolution,
)
from .stats import UserOutcome, apply_outcome, compute_win_rate, fold_outcomes, merge_user_outcomes

__all__ = [
    "ParticipantPayout",
    "check_invariants",
    "compute_payouts",
    "normalize_outcome",
    "resolve_duel",
    "round_cents",
    "validate_resolution",
    "UserOutcome",
    "apply_outcome",
    "compute_win_rate",
    "fold_outcomes",
    "merge_user_outcomes",
]
