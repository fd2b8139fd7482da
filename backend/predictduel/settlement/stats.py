"""Lifetime stats folding for users."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from predictduel.models import Participant, UserStats


@dataclass
class UserOutcome:
    """One user's merged result for a single duel."""

    user_id: str
    won: bool
    payout: Decimal


def merge_user_outcomes(participants: Iterable[Participant]) -> dict[str, UserOutcome]:
    """Collapse entries per user: won is OR-ed, payouts are summed."""
    merged: dict[str, UserOutcome] = {}
    for participant in participants:
        payout = participant.payout or Decimal("0")
        existing = merged.get(participant.user_id)
        if existing is None:
            merged[participant.user_id] = UserOutcome(
                user_id=participant.user_id, won=participant.won, payout=payout
            )
        else:
            existing.won = existing.won or participant.won
            existing.payout += payout
    return merged


def compute_win_rate(wins: int, losses: int) -> float:
    games = wins + losses
    return (wins / games) * 100 if games > 0 else 0.0


def apply_outcome(stats: UserStats, won: bool, payout: Decimal) -> UserStats:
    """Return new stats with one duel result folded in."""
    updated = stats.model_copy()
    if won:
        updated.wins += 1
        updated.total_earned = stats.total_earned + payout
        updated.current_streak += 1
        updated.best_streak = max(updated.best_streak, updated.current_streak)
    else:
        updated.losses += 1
        updated.current_streak = 0
    updated.win_rate = compute_win_rate(updated.wins, updated.losses)
    return updated


def fold_outcomes(outcomes: Iterable[UserOutcome]) -> UserStats:
    """Recompute stats from scratch; outcomes must be in resolution order."""
    stats = UserStats()
    for outcome in outcomes:
        stats = apply_outcome(stats, outcome.won, outcome.payout)
    return stats
