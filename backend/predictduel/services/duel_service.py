"""Duel lifecycle outside settlement: users, creation, bets, cancellation, reads."""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from predictduel.database import DuelRepository, UserRepository
from predictduel.exceptions import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from predictduel.models import (
    CATEGORIES,
    Duel,
    Participant,
    UNRESOLVED_STATUSES,
    User,
    utcnow,
)
from predictduel.settlement import check_invariants, normalize_outcome

from .notification_service import NotificationService

logger = logging.getLogger(__name__)

MIN_STAKE = Decimal("0.01")
MAX_QUESTION_LENGTH = 200


def to_amount(value: Any, field: str = "stake") -> Decimal:
    """Parse a user-supplied amount without going through binary floats."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"Invalid {field}: {value!r}", reason=f"invalid_{field}")
    if not amount.is_finite():
        raise InvalidInputError(f"Invalid {field}: {value!r}", reason=f"invalid_{field}")
    return amount


def require_signature(signature: str | None) -> str:
    if not signature or not signature.strip():
        raise InvalidInputError(
            "Transaction signature is required", reason="missing_signature"
        )
    return signature.strip()


def map_category(category: str | None) -> str:
    """Case-insensitive category lookup; unknown values fall back to Other."""
    lookup = {c.lower(): c for c in CATEGORIES}
    return lookup.get((category or "").strip().lower(), "Other")


class DuelService:
    def __init__(
        self,
        duels: DuelRepository,
        users: UserRepository,
        notifier: NotificationService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.duels = duels
        self.users = users
        self.notifier = notifier
        self.clock = clock

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_or_create_user(
        self,
        privy_id: str,
        wallet_address: str | None = None,
        username: str | None = None,
    ) -> User:
        if not privy_id:
            raise InvalidInputError("User authentication required", reason="missing_privy_id")

        existing = await self.users.get_by_privy_id(privy_id)
        if existing:
            return existing

        user = User(
            privy_id=privy_id,
            username=username or f"user_{privy_id[:8]}",
            wallet_address=wallet_address,
            created_at=self.clock(),
            updated_at=self.clock(),
        )
        await self.users.insert(user)
        logger.info(f"Created user {user.id} ({user.username})")
        return user

    async def get_user(self, user_id: str) -> User:
        return await self.users.require(user_id)

    async def user_for_privy_id(self, privy_id: str | None) -> User:
        """Resolve the calling user from their login identity."""
        if not privy_id:
            raise InvalidInputError("User authentication required", reason="missing_privy_id")
        user = await self.users.get_by_privy_id(privy_id)
        if user is None:
            raise NotFoundError("user", privy_id)
        return user

    # ------------------------------------------------------------------
    # Duels
    # ------------------------------------------------------------------

    async def create_duel(
        self,
        creator_id: str,
        question: str,
        category: str | None,
        stake: Any,
        deadline: datetime,
        prediction: str | None,
        duel_type: str = "public",
        challenged_user_id: str | None = None,
        market_pda: str | None = None,
        tx_signature: str | None = None,
    ) -> Duel:
        """Open a duel; the creator's stake is recorded as the first position."""
        question = (question or "").strip()
        if not question or len(question) > MAX_QUESTION_LENGTH:
            raise InvalidInputError(
                f"Question must be 1-{MAX_QUESTION_LENGTH} characters",
                reason="invalid_question",
            )

        amount = to_amount(stake)
        if amount < MIN_STAKE:
            raise InvalidInputError(
                f"Stake must be at least {MIN_STAKE}", reason="invalid_stake"
            )

        side = normalize_outcome(prediction, field="prediction")

        if deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=timezone.utc)
        now = self.clock()
        if deadline <= now:
            raise InvalidInputError("Deadline must be in the future", reason="invalid_deadline")

        if duel_type not in ("public", "friend"):
            raise InvalidInputError(f"Unknown duel type: {duel_type}", reason="invalid_duel_type")

        creator = await self.users.require(creator_id)

        if duel_type == "friend":
            if not challenged_user_id:
                raise InvalidInputError(
                    "Friend duels need a challenged user", reason="missing_challenged_user"
                )
            if challenged_user_id == creator.id:
                raise InvalidInputError(
                    "You cannot challenge yourself", reason="invalid_challenged_user"
                )
            await self.users.require(challenged_user_id)

        duel = Duel(
            creator_id=creator.id,
            question=question,
            category=map_category(category),
            duel_type=duel_type,
            challenged_user_id=challenged_user_id if duel_type == "friend" else None,
            stake=amount,
            deadline=deadline,
            status="pending",
            pool_size=amount,
            yes_count=1 if side == "yes" else 0,
            no_count=1 if side == "no" else 0,
            participants=[
                Participant(
                    user_id=creator.id,
                    prediction=side,
                    stake=amount,
                    tx_signatures=[tx_signature] if tx_signature else [],
                )
            ],
            market_pda=market_pda,
            tx_signature=tx_signature,
            created_at=now,
            updated_at=now,
        )
        check_invariants(duel)
        await self.duels.insert(duel)
        logger.info(f"Created duel {duel.id} by {creator.id}: {question!r} ({amount})")

        await self.notifier.notify_challenge(duel)
        return duel

    async def place_bet(
        self,
        duel_id: str,
        user_id: str,
        prediction: str | None,
        stake: Any,
        tx_signature: str | None,
    ) -> Duel:
        side = normalize_outcome(prediction, field="prediction")
        amount = to_amount(stake)
        if amount <= 0:
            raise InvalidInputError("Valid stake amount is required", reason="invalid_stake")
        signature = require_signature(tx_signature)

        user = await self.users.require(user_id)
        duel = await self.duels.require(duel_id)

        if not duel.is_unresolved:
            raise InvalidStateError(
                "Duel is not accepting bets", reason="not_accepting_bets", status=duel.status
            )
        if self.clock() >= duel.deadline:
            raise InvalidStateError("Duel deadline has passed", reason="deadline_passed")
        if duel.creator_id == user.id:
            raise UnauthorizedError(
                "You cannot bet on your own duel", reason="creator_cannot_bet"
            )
        if duel.duel_type == "friend" and duel.challenged_user_id != user.id:
            raise UnauthorizedError(
                "Only the challenged user can join this duel", reason="not_challenged_user"
            )

        updated = duel.model_copy(deep=True)
        entry = next(
            (p for p in updated.entries_for(user.id) if p.prediction == side), None
        )
        if entry is not None:
            entry.stake += amount
            entry.tx_signatures.append(signature)
        else:
            updated.participants.append(
                Participant(
                    user_id=user.id,
                    prediction=side,
                    stake=amount,
                    tx_signatures=[signature],
                )
            )

        updated.pool_size += amount
        if side == "yes":
            updated.yes_count += 1
        else:
            updated.no_count += 1
        if updated.status == "pending":
            updated.status = "active"

        updated.updated_at = self.clock()
        check_invariants(updated)
        stored = await self.duels.commit(duel, updated, UNRESOLVED_STATUSES)
        if stored is None:
            raise InvalidStateError(
                "Duel changed while placing the bet, please retry", reason="conflict"
            )

        logger.info(f"Bet placed on {duel.id}: {user.id} {side} {amount}")
        await self.notifier.notify_bet(stored, user.id, side)
        return stored

    async def cancel_duel(self, duel_id: str, caller_id: str) -> Duel:
        duel = await self.duels.require(duel_id)
        if duel.creator_id != caller_id:
            raise UnauthorizedError("Only the creator can cancel this duel", reason="not_creator")
        if not duel.is_unresolved:
            raise InvalidStateError(
                "Only pending or active duels can be cancelled",
                reason="not_cancellable",
                status=duel.status,
            )

        cancelled = duel.model_copy(update={"status": "cancelled", "updated_at": self.clock()})
        stored = await self.duels.commit(duel, cancelled, UNRESOLVED_STATUSES)
        if stored is None:
            raise InvalidStateError("Duel changed while cancelling", reason="conflict")
        logger.info(f"Cancelled duel {duel.id}")
        return stored

    async def get_duel(self, duel_id: str) -> Duel:
        return await self.duels.require(duel_id)

    async def list_duels(
        self,
        status: str = "active",
        category: str | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Duel]:
        """Public duels, newest first."""
        return await self.duels.list_public(
            status=status,
            category=map_category(category) if category else None,
            search=search.strip() if search and search.strip() else None,
            now=self.clock(),
            skip=skip,
            limit=limit,
        )
