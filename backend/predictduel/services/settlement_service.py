"""Settlement service: resolution, claims and lifetime stats upkeep.

Resolution order of effects:
1. validate every precondition (no writes on failure)
2. compute the fully resolved duel in memory
3. commit it with a conditional write (status still unresolved, revision unchanged)
4. fold each participant's merged outcome into their user stats, one user
   at a time and isolated from each other
5. send notifications

Once step 3 succeeds the duel stays resolved. Each participant entry
carries a ``stats_applied`` flag that is claimed with a conditional update
before the user's stats are touched, so a duel is folded into a user at
most once. Users whose stats failed to update are logged, their flag is
released and they are returned in ``stats_failures``; ``retry_stats`` and
``reconcile_user_stats`` repair them.
"""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from pydantic import BaseModel, Field

from predictduel.config import SettlementConfig
from predictduel.database import DuelRepository, UserRepository
from predictduel.exceptions import (
    InvalidStateError,
    UnauthorizedError,
    VerificationError,
)
from predictduel.models import Duel, Money, Prediction, UNRESOLVED_STATUSES, User, utcnow
from predictduel.services.solana import TransactionVerification, TransactionVerifier
from predictduel.settlement import (
    ParticipantPayout,
    UserOutcome,
    apply_outcome,
    check_invariants,
    fold_outcomes,
    merge_user_outcomes,
    normalize_outcome,
    resolve_duel,
    validate_resolution,
)

from .duel_service import require_signature
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class ResolutionResult(BaseModel):
    duel_id: str
    status: str
    outcome: Prediction
    pool_size: Money
    participants: list[ParticipantPayout]
    verified: bool
    verification_warning: str | None = None
    stats_failures: list[str] = Field(default_factory=list)

    @property
    def total_paid(self) -> Decimal:
        return sum((p.payout for p in self.participants), Decimal("0"))


class ClaimResult(BaseModel):
    duel_id: str
    participant_id: str
    payout: Money
    claimed: bool = True
    verified: bool
    verification_warning: str | None = None


class SettlementService:
    def __init__(
        self,
        duels: DuelRepository,
        users: UserRepository,
        verifier: TransactionVerifier,
        notifier: NotificationService,
        config: SettlementConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.duels = duels
        self.users = users
        self.verifier = verifier
        self.notifier = notifier
        self.config = config or SettlementConfig()
        self.clock = clock

    async def _verify(
        self, signature: str, market: str | None, action: str
    ) -> TransactionVerification:
        verification = await self.verifier.verify(signature, market)
        if not verification.ok:
            if self.config.enforce_tx_verification:
                raise VerificationError(
                    verification.describe(),
                    reason="unverified_transaction",
                    signature=signature,
                )
            # Advisory only: a failed lookup is reported, not enforced
            logger.warning(f"{action}: {verification.describe()}; continuing")
        return verification

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(
        self,
        duel_id: str,
        caller_id: str,
        outcome: str | None,
        tx_signature: str | None,
    ) -> ResolutionResult:
        normalize_outcome(outcome)
        signature = require_signature(tx_signature)

        await self.users.require(caller_id)
        duel = await self.duels.require(duel_id)

        now = self.clock()
        final_outcome = validate_resolution(duel, caller_id, outcome, now)
        verification = await self._verify(signature, duel.market_pda, f"Resolve {duel_id}")

        resolved, payouts = resolve_duel(duel, final_outcome, now, signature)
        check_invariants(resolved)

        stored = await self.duels.commit(duel, resolved, UNRESOLVED_STATUSES)
        if stored is None:
            current = await self.duels.require(duel_id)
            if current.status == "resolved":
                raise InvalidStateError("Duel is already resolved", reason="already_resolved")
            raise InvalidStateError(
                "Duel changed during resolution, please retry", reason="conflict"
            )

        total_paid = sum((p.payout for p in payouts), Decimal("0"))
        winners = sum(1 for p in payouts if p.won)
        logger.info(
            f"Resolved duel {duel_id}: {final_outcome.upper()} "
            f"({winners}/{len(payouts)} winning entries, paid {total_paid} of {stored.pool_size})"
        )
        if not winners:
            logger.warning(f"Duel {duel_id}: no winners, pool of {stored.pool_size} is orphaned")

        failures = await self.apply_stats(stored)
        await self.notifier.notify_resolution(stored, payouts)

        return ResolutionResult(
            duel_id=stored.id,
            status=stored.status,
            outcome=final_outcome,
            pool_size=stored.pool_size,
            participants=payouts,
            verified=verification.ok,
            verification_warning=None if verification.ok else verification.describe(),
            stats_failures=failures,
        )

    # ------------------------------------------------------------------
    # Stats aggregation
    # ------------------------------------------------------------------

    async def _apply_user_outcome(self, duel_id: str, outcome: UserOutcome) -> bool:
        """Fold one duel into one user's stats. Returns False if already applied."""
        if not await self.duels.set_stats_applied(duel_id, outcome.user_id):
            logger.debug(f"Duel {duel_id} already applied to user {outcome.user_id}")
            return False

        try:
            for attempt in range(self.config.stats_update_retries):
                user = await self.users.require(outcome.user_id)
                updated = user.model_copy(
                    update={
                        "stats": apply_outcome(user.stats, outcome.won, outcome.payout),
                        "updated_at": self.clock(),
                    }
                )
                if await self.users.commit(user, updated) is not None:
                    return True
                logger.info(
                    f"Stats write conflict for user {user.id} "
                    f"(attempt {attempt + 1}/{self.config.stats_update_retries})"
                )
            raise InvalidStateError(
                f"Could not update stats for user {outcome.user_id}", reason="conflict"
            )
        except Exception:
            # Hand the entry back so retry_stats picks it up again
            await self.duels.set_stats_applied(duel_id, outcome.user_id, applied=False)
            raise

    async def apply_stats(self, duel: Duel) -> list[str]:
        """Update every participant's stats; returns user ids that failed."""
        outcomes = list(merge_user_outcomes(duel.participants).values())
        results = await asyncio.gather(
            *(self._apply_user_outcome(duel.id, o) for o in outcomes),
            return_exceptions=True,
        )

        failures = []
        for outcome, result in zip(outcomes, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Stats update failed for user {outcome.user_id} on duel {duel.id}: {result}"
                )
                failures.append(outcome.user_id)

        if failures:
            logger.error(
                f"Duel {duel.id} resolved but stats are stale for users {failures}; "
                f"run 'python -m predictduel retry-stats {duel.id}' to reconcile"
            )
        return failures

    async def retry_stats(self, duel_id: str) -> list[str]:
        duel = await self.duels.require(duel_id)
        if duel.status != "resolved":
            raise InvalidStateError("Duel is not resolved", reason="not_resolved")
        return await self.apply_stats(duel)

    async def reconcile_user_stats(self, user_id: str) -> User:
        """Rebuild a user's stats from the authoritative participant records.

        The user is read before the duels and written conditionally, so a
        duel resolved in between changes the user's revision and forces
        another pass over fresh data.
        """
        for attempt in range(self.config.stats_update_retries):
            user = await self.users.require(user_id)
            duels = await self.duels.find_resolved_for_user(user_id)
            outcomes = [merge_user_outcomes(d.participants)[user_id] for d in duels]

            updated = user.model_copy(
                update={"stats": fold_outcomes(outcomes), "updated_at": self.clock()}
            )
            stored = await self.users.commit(user, updated)
            if stored is None:
                logger.info(
                    f"User {user_id} changed during reconcile "
                    f"(attempt {attempt + 1}/{self.config.stats_update_retries})"
                )
                continue

            for duel in duels:
                if duel.stats_pending_for(user_id):
                    await self.duels.set_stats_applied(duel.id, user_id)
            logger.info(f"Reconciled stats for user {user_id} from {len(duels)} resolved duels")
            return stored

        raise InvalidStateError(
            f"Could not reconcile stats for user {user_id}", reason="conflict"
        )

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    async def claim(
        self, duel_id: str, caller_id: str, tx_signature: str | None
    ) -> ClaimResult:
        signature = require_signature(tx_signature)

        await self.users.require(caller_id)
        duel = await self.duels.require(duel_id)

        if duel.status != "resolved":
            raise InvalidStateError(
                "Duel must be resolved before claiming winnings", reason="not_resolved"
            )
        if duel.outcome is None:
            raise InvalidStateError("Duel outcome not set", reason="outcome_unset")

        entries = duel.entries_for(caller_id)
        if not entries:
            raise UnauthorizedError(
                "You did not participate in this duel", reason="not_participant"
            )

        winning = [p for p in entries if p.won]
        if not winning:
            raise InvalidStateError("Only winners can claim winnings", reason="not_winner")

        unclaimed = [p for p in winning if not p.claimed]
        if not unclaimed:
            raise InvalidStateError(
                "Winnings have already been claimed", reason="already_claimed"
            )

        entry = unclaimed[0]
        if not entry.payout or entry.payout <= 0:
            raise InvalidStateError("No winnings to claim", reason="no_payout")

        verification = await self._verify(signature, duel.market_pda, f"Claim {duel_id}")

        stored = await self.duels.claim_entry(duel_id, entry.id, signature, self.clock())
        if stored is None:
            current = await self.duels.require(duel_id)
            current_entry = current.participant(entry.id)
            if current_entry is not None and current_entry.claimed:
                raise InvalidStateError(
                    "Winnings have already been claimed", reason="already_claimed"
                )
            raise InvalidStateError("Duel changed during claim, please retry", reason="conflict")

        logger.info(f"Claimed {entry.payout} on duel {duel_id} for user {caller_id}")
        await self.notifier.notify_claim(stored, caller_id, entry.payout)

        return ClaimResult(
            duel_id=stored.id,
            participant_id=entry.id,
            payout=entry.payout,
            verified=verification.ok,
            verification_warning=None if verification.ok else verification.describe(),
        )
