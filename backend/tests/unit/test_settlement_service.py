"""
Unit Tests: SettlementService

Test cases:
- Resolution pays winners and updates everyone's stats once
- Failed preconditions leave the stored duel untouched
- Concurrent resolutions: exactly one commits
- Claims are one-shot and limited to winners
- Stats failures are isolated and repairable
- Reconcile survives a duel resolved while it runs
- Verification advisory vs enforced
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from predictduel.config import SettlementConfig
from predictduel.exceptions import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    VerificationError,
)
from predictduel.models import UserStats
from predictduel.services.notification_service import NotificationService
from predictduel.services.settlement_service import SettlementService
from predictduel.services.solana import TransactionVerification

from fakes import InMemoryUserRepository


class StubVerifier:
    def __init__(self, ok: bool = True, pause: bool = False):
        self.ok = ok
        self.pause = pause
        self.calls: list[str] = []

    async def verify(self, signature, market=None):
        self.calls.append(signature)
        if self.pause:
            # let a concurrent request reach the same point
            await asyncio.sleep(0)
        if self.ok:
            return TransactionVerification(signature=signature, found=True, succeeded=True)
        return TransactionVerification(signature=signature, found=False)


class FlakyUserRepository(InMemoryUserRepository):
    def __init__(self, shared, failing_user_id):
        super().__init__()
        self.items = shared.items
        self.failing_user_id = failing_user_id

    async def commit(self, current, updated):
        if current.id == self.failing_user_id:
            raise RuntimeError("database unavailable")
        return await super().commit(current, updated)


class InterruptedUserRepository(InMemoryUserRepository):
    """Runs ``interruption`` once, just before the first commit lands."""

    def __init__(self, shared, interruption):
        super().__init__()
        self.items = shared.items
        self.interruption = interruption

    async def commit(self, current, updated):
        interruption, self.interruption = self.interruption, None
        if interruption is not None:
            await interruption()
        return await super().commit(current, updated)


def settlement_with(repos, clock, verifier=None, users=None, **config):
    return SettlementService(
        repos.duels,
        users or repos.users,
        verifier or StubVerifier(),
        NotificationService(repos.notifications),
        config=SettlementConfig(**config),
        clock=clock,
    )


async def seed(services, clock, bets=(("bob", "no", "70"),), creator_stake="30"):
    """Creator (alice) backs YES; bettors join; the clock moves past the deadline."""
    users = {}
    for name in ("alice", "bob", "carol", "dave"):
        users[name] = await services.duels.get_or_create_user(f"privy-{name}", username=name)

    duel = await services.duels.create_duel(
        creator_id=users["alice"].id,
        question="Will BTC close above 100k on Friday?",
        category="crypto",
        stake=creator_stake,
        deadline=clock() + timedelta(days=1),
        prediction="yes",
        market_pda="Market111",
        tx_signature="sig-create",
    )
    for i, (name, side, amount) in enumerate(bets):
        duel = await services.duels.place_bet(
            duel.id, users[name].id, side, amount, f"sig-bet-{i}"
        )

    clock.advance(days=1)
    return users, duel


def test_resolve_pays_winner_and_updates_stats(services, clock):
    async def run():
        users, duel = await seed(services, clock)

        result = await services.settlement.resolve(
            duel.id, users["alice"].id, "YES", "sig-resolve"
        )

        assert result.status == "resolved"
        assert result.outcome == "yes"
        assert result.verified is True
        assert result.stats_failures == []
        assert result.total_paid == Decimal("100.00")

        stored = await services.duels.get_duel(duel.id)
        assert stored.status == "resolved"
        assert stored.outcome == "yes"
        assert stored.resolved_at == clock()
        assert stored.resolution_signature == "sig-resolve"
        payouts = {p.user_id: (p.won, p.payout) for p in stored.participants}
        assert payouts == {
            users["alice"].id: (True, Decimal("100.00")),
            users["bob"].id: (False, Decimal("0")),
        }

        alice = await services.duels.get_user(users["alice"].id)
        bob = await services.duels.get_user(users["bob"].id)
        assert alice.stats.wins == 1
        assert alice.stats.total_earned == Decimal("100.00")
        assert alice.stats.current_streak == 1
        assert alice.stats.win_rate == 100.0
        assert bob.stats.losses == 1
        assert bob.stats.win_rate == 0.0
        assert all(p.stats_applied for p in stored.participants)

        alice_items, _ = await services.notifications.list_for_user(alice.id)
        assert [n.type for n in alice_items].count("duel_resolved") == 1
        assert "win" not in [n.type for n in alice_items]
        resolved_note = next(n for n in alice_items if n.type == "duel_resolved")
        assert "You won 100.00 SOL" in resolved_note.message

    asyncio.run(run())


def test_resolve_splits_pool_across_three_winners(services, clock):
    async def run():
        users, duel = await seed(
            services,
            clock,
            bets=[("bob", "yes", "20"), ("carol", "yes", "30"), ("dave", "no", "60")],
            creator_stake="10",
        )

        result = await services.settlement.resolve(
            duel.id, users["alice"].id, "yes", "sig-resolve"
        )

        payouts = {p.user_id: p.payout for p in result.participants}
        assert result.pool_size == Decimal("120")
        assert payouts[users["alice"].id] == Decimal("20.00")
        assert payouts[users["bob"].id] == Decimal("40.00")
        assert payouts[users["carol"].id] == Decimal("60.00")
        assert payouts[users["dave"].id] == Decimal("0")

    asyncio.run(run())


def test_resolve_with_no_winners_still_resolves(services, clock):
    async def run():
        users, duel = await seed(services, clock, bets=[("bob", "yes", "5")])

        result = await services.settlement.resolve(
            duel.id, users["alice"].id, "no", "sig-resolve"
        )

        assert result.total_paid == Decimal("0")
        alice = await services.duels.get_user(users["alice"].id)
        assert alice.stats.losses == 1

    asyncio.run(run())


def test_resolution_notifies_each_user_once(services, clock):
    async def run():
        users, duel = await seed(services, clock)

        await services.settlement.resolve(duel.id, users["alice"].id, "no", "sig-resolve")

        bob_items, bob_unread = await services.notifications.list_for_user(users["bob"].id)
        alice_items, _ = await services.notifications.list_for_user(users["alice"].id)
        assert [n.type for n in bob_items] == ["win"]
        assert bob_unread == 1
        assert "100.00 SOL" in bob_items[0].message
        # the creator gets duel_resolved only, not a second result notification
        assert sorted(n.type for n in alice_items) == ["bet", "duel_resolved"]

    asyncio.run(run())


@pytest.mark.parametrize(
    "caller, outcome, signature, error, reason",
    [
        ("bob", "yes", "sig", UnauthorizedError, "not_creator"),
        ("alice", "maybe", "sig", InvalidInputError, "invalid_outcome"),
        ("alice", "yes", "  ", InvalidInputError, "missing_signature"),
        ("alice", "yes", None, InvalidInputError, "missing_signature"),
    ],
)
def test_rejected_resolution_writes_nothing(
    services, repos, clock, caller, outcome, signature, error, reason
):
    async def run():
        users, duel = await seed(services, clock)
        before = await repos.duels.get(duel.id)

        with pytest.raises(error) as exc_info:
            await services.settlement.resolve(duel.id, users[caller].id, outcome, signature)

        assert exc_info.value.reason == reason
        assert await repos.duels.get(duel.id) == before
        alice = await services.duels.get_user(users["alice"].id)
        assert alice.stats == UserStats()

    asyncio.run(run())


def test_resolve_before_deadline_is_rejected(services, clock):
    async def run():
        users, duel = await seed(services, clock)
        clock.advance(seconds=-1)

        with pytest.raises(InvalidStateError) as exc_info:
            await services.settlement.resolve(duel.id, users["alice"].id, "yes", "sig")

        assert exc_info.value.reason == "before_deadline"
        assert (await services.duels.get_duel(duel.id)).status == "active"

    asyncio.run(run())


def test_resolve_unknown_duel_and_unknown_user(services, clock):
    async def run():
        users, _ = await seed(services, clock)

        with pytest.raises(NotFoundError):
            await services.settlement.resolve("duel_missing", users["alice"].id, "yes", "sig")
        with pytest.raises(NotFoundError) as exc_info:
            await services.settlement.resolve("duel_missing", "user_missing", "yes", "sig")
        assert exc_info.value.reason == "user_not_found"

    asyncio.run(run())


def test_resolving_twice_fails_and_keeps_first_outcome(services, clock):
    async def run():
        users, duel = await seed(services, clock)
        await services.settlement.resolve(duel.id, users["alice"].id, "yes", "sig-1")

        with pytest.raises(InvalidStateError) as exc_info:
            await services.settlement.resolve(duel.id, users["alice"].id, "no", "sig-2")

        assert exc_info.value.reason == "already_resolved"
        stored = await services.duels.get_duel(duel.id)
        assert stored.outcome == "yes"
        alice = await services.duels.get_user(users["alice"].id)
        assert alice.stats.wins == 1

    asyncio.run(run())


def test_concurrent_resolutions_only_one_commits(services, repos, clock):
    async def run():
        users, duel = await seed(services, clock)
        settlement = settlement_with(repos, clock, verifier=StubVerifier(pause=True))

        results = await asyncio.gather(
            settlement.resolve(duel.id, users["alice"].id, "yes", "sig-yes"),
            settlement.resolve(duel.id, users["alice"].id, "no", "sig-no"),
            return_exceptions=True,
        )

        committed = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(committed) == 1
        assert len(rejected) == 1
        assert isinstance(rejected[0], InvalidStateError)
        assert rejected[0].reason == "already_resolved"

        stored = await services.duels.get_duel(duel.id)
        assert stored.outcome == committed[0].outcome
        alice = await services.duels.get_user(users["alice"].id)
        assert alice.stats.games == 1

    asyncio.run(run())


def test_claim_once(services, clock):
    async def run():
        users, duel = await seed(services, clock)
        await services.settlement.resolve(duel.id, users["alice"].id, "no", "sig-resolve")

        result = await services.settlement.claim(duel.id, users["bob"].id, "sig-claim")

        assert result.payout == Decimal("100.00")
        assert result.claimed is True
        stored = await services.duels.get_duel(duel.id)
        entry = stored.participant(result.participant_id)
        assert entry.claimed is True
        assert entry.claim_signature == "sig-claim"

        with pytest.raises(InvalidStateError) as exc_info:
            await services.settlement.claim(duel.id, users["bob"].id, "sig-claim-2")
        assert exc_info.value.reason == "already_claimed"
        entry = (await services.duels.get_duel(duel.id)).participant(result.participant_id)
        assert entry.claim_signature == "sig-claim"

    asyncio.run(run())


def test_claim_rejections(services, clock):
    async def run():
        users, duel = await seed(services, clock)

        with pytest.raises(InvalidStateError) as exc_info:
            await services.settlement.claim(duel.id, users["bob"].id, "sig")
        assert exc_info.value.reason == "not_resolved"

        await services.settlement.resolve(duel.id, users["alice"].id, "no", "sig-resolve")

        with pytest.raises(InvalidStateError) as exc_info:
            await services.settlement.claim(duel.id, users["alice"].id, "sig")
        assert exc_info.value.reason == "not_winner"

        with pytest.raises(UnauthorizedError) as exc_info:
            await services.settlement.claim(duel.id, users["carol"].id, "sig")
        assert exc_info.value.reason == "not_participant"

        with pytest.raises(InvalidInputError):
            await services.settlement.claim(duel.id, users["bob"].id, "")

    asyncio.run(run())


def test_stats_failure_is_isolated_and_repairable(services, repos, clock):
    async def run():
        users, duel = await seed(services, clock, bets=[("bob", "no", "70"), ("carol", "yes", "10")])
        flaky = settlement_with(
            repos, clock, users=FlakyUserRepository(repos.users, users["bob"].id)
        )

        result = await flaky.resolve(duel.id, users["alice"].id, "yes", "sig-resolve")

        assert result.stats_failures == [users["bob"].id]
        assert (await services.duels.get_duel(duel.id)).status == "resolved"
        carol = await services.duels.get_user(users["carol"].id)
        bob = await services.duels.get_user(users["bob"].id)
        assert carol.stats.wins == 1
        assert bob.stats == UserStats()
        applied = {
            p.user_id: p.stats_applied
            for p in (await services.duels.get_duel(duel.id)).participants
        }
        assert applied[users["bob"].id] is False
        assert applied[users["carol"].id] is True

        failures = await services.settlement.retry_stats(duel.id)

        assert failures == []
        bob = await services.duels.get_user(users["bob"].id)
        carol = await services.duels.get_user(users["carol"].id)
        assert bob.stats.losses == 1
        # already applied users are not counted twice
        assert carol.stats.wins == 1
        assert carol.stats.total_earned == Decimal("27.50")

    asyncio.run(run())


def test_retry_stats_requires_resolved_duel(services, clock):
    async def run():
        _, duel = await seed(services, clock)

        with pytest.raises(InvalidStateError) as exc_info:
            await services.settlement.retry_stats(duel.id)

        assert exc_info.value.reason == "not_resolved"

    asyncio.run(run())


RECONCILE_SECOND_DUEL = dict(
    question="Will it snow on Monday?",
    category="weather",
    stake="10",
    prediction="yes",
)


async def second_duel_against(services, clock, users):
    """Bob opens a duel that alice bets against; the clock passes its deadline."""
    duel = await services.duels.create_duel(
        creator_id=users["bob"].id,
        deadline=clock() + timedelta(hours=1),
        **RECONCILE_SECOND_DUEL,
    )
    await services.duels.place_bet(duel.id, users["alice"].id, "no", "10", "sig-b")
    clock.advance(hours=1)
    return duel


def test_reconcile_rebuilds_stats_from_duels(services, repos, clock):
    async def run():
        users, first = await seed(services, clock)
        await services.settlement.resolve(first.id, users["alice"].id, "yes", "sig-1")
        second = await second_duel_against(services, clock, users)
        await services.settlement.resolve(second.id, users["bob"].id, "yes", "sig-2")

        alice = await services.duels.get_user(users["alice"].id)
        corrupted = alice.model_copy(update={"stats": UserStats(wins=9)})
        assert await repos.users.commit(alice, corrupted) is not None
        assert await repos.duels.set_stats_applied(first.id, alice.id, applied=False)

        rebuilt = await services.settlement.reconcile_user_stats(users["alice"].id)

        assert rebuilt.stats.wins == 1
        assert rebuilt.stats.losses == 1
        assert rebuilt.stats.total_earned == Decimal("100.00")
        assert rebuilt.stats.current_streak == 0
        assert rebuilt.stats.best_streak == 1
        for duel_id in (first.id, second.id):
            duel = await services.duels.get_duel(duel_id)
            assert not duel.stats_pending_for(alice.id)

        # resolution order is preserved and a second run is a no-op
        again = await services.settlement.reconcile_user_stats(users["alice"].id)
        assert again.stats == rebuilt.stats

        # the reconciled duel is not folded in a second time
        assert await services.settlement.retry_stats(first.id) == []
        assert (await services.duels.get_user(alice.id)).stats == rebuilt.stats

    asyncio.run(run())


def test_reconcile_includes_duel_resolved_while_it_runs(services, repos, clock):
    async def run():
        users, first = await seed(services, clock)
        await services.settlement.resolve(first.id, users["alice"].id, "yes", "sig-1")
        second = await second_duel_against(services, clock, users)

        async def resolve_second():
            await services.settlement.resolve(second.id, users["bob"].id, "yes", "sig-2")

        reconciler = settlement_with(
            repos, clock, users=InterruptedUserRepository(repos.users, resolve_second)
        )

        rebuilt = await reconciler.reconcile_user_stats(users["alice"].id)

        assert (await services.duels.get_duel(second.id)).status == "resolved"
        assert (rebuilt.stats.wins, rebuilt.stats.losses) == (1, 1)
        assert rebuilt.stats.current_streak == 0
        stored = await services.duels.get_user(users["alice"].id)
        assert stored.stats == rebuilt.stats

    asyncio.run(run())


def test_unverified_transaction_is_a_warning_by_default(repos, services, clock):
    async def run():
        users, duel = await seed(services, clock)
        settlement = settlement_with(repos, clock, verifier=StubVerifier(ok=False))

        result = await settlement.resolve(duel.id, users["alice"].id, "yes", "sig-unknown")

        assert result.verified is False
        assert "not found" in result.verification_warning
        assert result.status == "resolved"

    asyncio.run(run())


def test_enforced_verification_blocks_resolution(repos, services, clock):
    async def run():
        users, duel = await seed(services, clock)
        settlement = settlement_with(
            repos, clock, verifier=StubVerifier(ok=False), enforce_tx_verification=True
        )
        before = await repos.duels.get(duel.id)

        with pytest.raises(VerificationError) as exc_info:
            await settlement.resolve(duel.id, users["alice"].id, "yes", "sig-unknown")

        assert exc_info.value.http_status == 402
        assert await repos.duels.get(duel.id) == before

    asyncio.run(run())
