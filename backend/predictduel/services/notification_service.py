"""Notification sink and inbox queries.

``notify`` is fire-and-forget: a failed write is logged and swallowed so
it never fails the resolution or claim that triggered it.
"""

import logging
from decimal import Decimal

from predictduel.database import NotificationRepository
from predictduel.exceptions import NotFoundError
from predictduel.models import Duel, Notification, NotificationType
from predictduel.settlement import ParticipantPayout

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, notifications: NotificationRepository, currency_symbol: str = "SOL"):
        self.notifications = notifications
        self.currency_symbol = currency_symbol

    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        related_duel_id: str | None = None,
        related_user_id: str | None = None,
    ) -> Notification | None:
        try:
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                action_url=f"/duel/{related_duel_id}" if related_duel_id else None,
                related_duel_id=related_duel_id,
                related_user_id=related_user_id,
            )
            return await self.notifications.insert(notification)
        except Exception as e:
            logger.warning(f"Failed to create notification for user {user_id}: {e}")
            return None

    def _amount(self, amount: Decimal) -> str:
        return f"{amount:.2f} {self.currency_symbol}"

    async def notify_resolution(self, duel: Duel, payouts: list[ParticipantPayout]) -> None:
        outcome = (duel.outcome or "").upper()
        # The creator hears about it once, through duel_resolved below
        notified: set[str] = {duel.creator_id}

        # One notification per user, even with entries on both sides
        for payout in payouts:
            if payout.user_id in notified:
                continue
            notified.add(payout.user_id)
            user_total = sum(
                (p.payout for p in payouts if p.user_id == payout.user_id), Decimal("0")
            )
            user_won = any(p.won for p in payouts if p.user_id == payout.user_id)

            if user_won:
                await self.notify(
                    payout.user_id,
                    "win",
                    "You Won!",
                    f'You won {self._amount(user_total)} in "{duel.question}"! '
                    f"The outcome was {outcome}.",
                    related_duel_id=duel.id,
                )
            else:
                await self.notify(
                    payout.user_id,
                    "system",
                    "Duel Resolved",
                    f'The duel "{duel.question}" has been resolved. '
                    f"The outcome was {outcome}. Better luck next time!",
                    related_duel_id=duel.id,
                )

        message = f'Your duel "{duel.question}" has been resolved. The outcome was {outcome}.'
        creator_total = sum(
            (p.payout for p in payouts if p.user_id == duel.creator_id and p.won), Decimal("0")
        )
        if creator_total > 0:
            message += f" You won {self._amount(creator_total)}."
        await self.notify(
            duel.creator_id,
            "duel_resolved",
            "Your Duel Has Been Resolved",
            message,
            related_duel_id=duel.id,
        )

    async def notify_claim(self, duel: Duel, user_id: str, payout: Decimal) -> None:
        await self.notify(
            user_id,
            "system",
            "Winnings Claimed!",
            f'You successfully claimed {self._amount(payout)} from "{duel.question}"',
            related_duel_id=duel.id,
        )

    async def notify_bet(self, duel: Duel, bettor_id: str, prediction: str) -> None:
        await self.notify(
            duel.creator_id,
            "bet",
            "New Bet On Your Duel",
            f'Someone bet {prediction.upper()} on "{duel.question}".',
            related_duel_id=duel.id,
            related_user_id=bettor_id,
        )

    async def notify_challenge(self, duel: Duel) -> None:
        if not duel.challenged_user_id:
            return
        await self.notify(
            duel.challenged_user_id,
            "challenge",
            "You Have Been Challenged",
            f'You were challenged to a duel: "{duel.question}"',
            related_duel_id=duel.id,
            related_user_id=duel.creator_id,
        )

    async def list_for_user(self, user_id: str, limit: int = 50) -> tuple[list[Notification], int]:
        """Newest notifications plus the user's total unread count."""
        items = await self.notifications.for_user(user_id, limit=limit)
        unread = await self.notifications.count_unread(user_id)
        return items, unread

    async def mark_read(
        self, user_id: str, notification_id: str | None = None, mark_all: bool = False
    ) -> int:
        if mark_all:
            return await self.notifications.mark_all_read(user_id)
        if notification_id is None:
            return 0
        if not await self.notifications.mark_read(user_id, notification_id):
            raise NotFoundError("notification", notification_id)
        return 1
