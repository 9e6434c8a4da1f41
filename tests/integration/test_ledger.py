"""
Integration tests for the ledger: maturation, event log and reconciliation.

Tests cover:
- Maturation sweep, lazy maturation and reconciliation
- Balance conservation across a full commission and withdrawal lifecycle
- Affiliate row lock conflicts (retry, ConflictError, skipped by the sweep)
- Payout holds and their release
"""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.exc import DBAPIError

from app.config.operational_constants import AFFILIATE_LOCK_MAX_RETRIES
from app.models.enums import CommissionStatus, LedgerEventType
from app.repositories.commission_repository import CommissionRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.ledger.balance_calculator import Balances
from app.services.ledger.events import WithdrawalDebited
from app.utils.exceptions import (
    ConflictError,
    InvalidTransition,
    InvariantViolation,
    NotFoundError,
)


MATURED = timedelta(days=30)


class TestMaturation:
    """Test the maturation sweep and lazy maturation."""

    @pytest.mark.asyncio
    async def test_sweep_confirms_due_commissions(self, pay, ledger, affiliate, now):
        affiliate_id = affiliate.id
        code = affiliate.referral_code
        await pay("ord-1", code, "100.00")
        await pay("ord-2", code, "200.00", at=now + timedelta(days=1))

        early = await ledger.run_maturation_sweep(now + MATURED - timedelta(seconds=1))
        assert early.confirmed_count == 0

        result = await ledger.run_maturation_sweep(now + MATURED)

        assert result.confirmed_count == 1
        assert result.affiliates_processed == 1
        balances = await ledger.get_balances(affiliate_id)
        assert balances.total_earnings == Decimal("25.00")
        assert balances.available_balance == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_sweep_rerun_is_noop(self, pay, ledger, affiliate, elite_affiliate, now):
        await pay("ord-a", affiliate.referral_code, "100.00")
        await pay("ord-b", elite_affiliate.referral_code, "100.00")
        sweep_time = now + MATURED

        first = await ledger.run_maturation_sweep(sweep_time, batch_size=1)
        balances_after_first = await ledger.get_balances(affiliate.id)
        second = await ledger.run_maturation_sweep(sweep_time)

        assert first.confirmed_count == 2
        assert first.affiliates_processed == 2
        assert second.confirmed_count == 0
        assert await ledger.get_balances(affiliate.id) == balances_after_first

    @pytest.mark.asyncio
    async def test_lazy_maturation(self, pay, ledger, affiliate, now):
        affiliate_id = affiliate.id
        outcome = await pay("ord-lazy", affiliate.referral_code, "100.00")

        confirmed = await ledger.run_lazy_maturation(affiliate_id, now + MATURED)

        assert confirmed == 1
        assert outcome.commission.status == CommissionStatus.CONFIRMED.value
        assert outcome.commission.confirmed_at == now + MATURED
        assert await ledger.run_lazy_maturation(affiliate_id, now + MATURED) == 0


class TestEventLog:
    """Test the ledger event trail."""

    @pytest.mark.asyncio
    async def test_events_record_running_balances(
        self, pay, refund, ledger, affiliate, now
    ):
        affiliate_id = affiliate.id
        await pay("ord-e1", affiliate.referral_code, "100.00")
        await ledger.run_lazy_maturation(affiliate_id, now + MATURED)
        await refund("ord-e1", at=now + MATURED)

        events = await ledger.event_history(affiliate_id)

        assert [e.event_type for e in events] == [
            LedgerEventType.COMMISSION_CREATED.value,
            LedgerEventType.COMMISSION_CONFIRMED.value,
            LedgerEventType.COMMISSION_CANCELLED.value,
        ]
        assert events[1].available_balance_after == Decimal("25.00")
        assert events[2].available_balance_after == Decimal("0")

    @pytest.mark.asyncio
    async def test_overdraft_is_an_invariant_violation(
        self, ledger, session, affiliate, alert_service
    ):
        """A debit past the available balance never reaches the cache."""
        affiliate_id = affiliate.id

        with pytest.raises(InvariantViolation):
            await ledger.apply(
                WithdrawalDebited(
                    affiliate_id=affiliate_id, amount=Decimal("10.00"), withdrawal_id=1
                )
            )
        await session.rollback()

        alert_service.notify_invariant_violation.assert_awaited_once()
        assert (await ledger.get_balances(affiliate_id)).available_balance == Decimal("0")


class TestReconciliation:
    """Test cache vs history reconciliation."""

    @pytest.mark.asyncio
    async def test_no_drift_after_normal_flow(self, pay, ledger, affiliate, now):
        affiliate_id = affiliate.id
        await pay("ord-c1", affiliate.referral_code, "100.00")
        await ledger.run_lazy_maturation(affiliate_id, now + MATURED)

        report = await ledger.reconcile(affiliate_id)

        assert report.has_drift is False
        assert report.rebuilt.available_balance == Decimal("25.00")
        assert await ledger.reconcile_all() == []

    @pytest.mark.asyncio
    async def test_drift_is_reported_not_fixed(
        self, ledger, session, affiliate, alert_service
    ):
        affiliate_id = affiliate.id
        affiliate.available_balance = Decimal("99.00")
        await session.commit()

        drifted = await ledger.reconcile_all()

        assert [r.affiliate_id for r in drifted] == [affiliate_id]
        assert drifted[0].rebuilt.available_balance == Decimal("0")
        assert drifted[0].to_dict()["has_drift"] is True
        alert_service.notify_reconciliation_drift.assert_awaited_once()
        balances = await ledger.get_balances(affiliate_id)
        assert balances.available_balance == Decimal("99.00")

    @pytest.mark.asyncio
    async def test_unknown_affiliate(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.reconcile(424242)


class TestConservation:
    """Balances stay equal to their rebuild through a full lifecycle."""

    @pytest.mark.asyncio
    async def test_every_step_conserves_balances(
        self, pay, refund, ledger, withdrawals, session, affiliate, paypal_details, now
    ):
        affiliate_id = affiliate.id
        code = affiliate.referral_code
        later = now + MATURED
        commissions = CommissionRepository(session)
        withdrawal_rows = WithdrawalRepository(session)

        async def assert_conserved(total: str, withdrawn: str, available: str):
            assert (await ledger.reconcile(affiliate_id)).has_drift is False
            balances = await ledger.get_balances(affiliate_id)
            earned = await commissions.sum_earned(affiliate_id)
            completed = await withdrawal_rows.sum_completed(affiliate_id)
            reserved = await withdrawal_rows.sum_reserved(affiliate_id)
            assert balances.total_earnings == earned
            assert balances.withdrawn_balance == completed
            assert balances.available_balance == earned - completed - reserved
            assert balances == Balances(Decimal(total), Decimal(withdrawn), Decimal(available))

        await pay("ord-s1", code, "800.00")
        await pay("ord-s2", code, "400.00")
        await assert_conserved("0", "0", "0")

        await ledger.run_lazy_maturation(affiliate_id, later)
        await assert_conserved("300.00", "0", "300.00")

        await refund("ord-s2", at=later)
        await assert_conserved("200.00", "0", "200.00")

        first = await withdrawals.request(
            affiliate_id, Decimal("200.00"), "paypal", paypal_details, later
        )
        first_id = first.id
        await assert_conserved("200.00", "0", "0")

        await withdrawals.resolve(first_id, "rejected", "Account mismatch", later)
        await assert_conserved("200.00", "0", "200.00")

        second = await withdrawals.request(
            affiliate_id, Decimal("200.00"), "paypal", paypal_details, later
        )
        second_id = second.id
        await assert_conserved("200.00", "0", "0")

        await withdrawals.start_processing(second_id, later)
        await withdrawals.resolve(second_id, "completed", "PP-1", later)
        await assert_conserved("200.00", "200.00", "0")

        await refund("ord-s1", at=later + timedelta(days=1))
        await assert_conserved("0", "200.00", "-200.00")


class LockNotAvailable(Exception):
    """Driver error carrying PostgreSQL's lock_not_available state."""

    sqlstate = "55P03"


def lock_conflict() -> DBAPIError:
    return DBAPIError(
        "SELECT affiliates.id FROM affiliates FOR UPDATE NOWAIT",
        {},
        LockNotAvailable("could not obtain lock on row in relation \"affiliates\""),
    )


def hold_lock(ledger, monkeypatch, locked_ids: set[int], failures: int | None = None):
    """Make ``get_for_update`` fail for ``locked_ids`` as if another writer held them."""
    original = ledger.affiliate_repo.get_for_update
    attempts: list[int] = []

    async def get_for_update(id: int, nowait: bool = True):
        if id in locked_ids and (failures is None or len(attempts) < failures):
            attempts.append(id)
            raise lock_conflict()
        return await original(id, nowait)

    monkeypatch.setattr(ledger.affiliate_repo, "get_for_update", get_for_update)
    return attempts


class TestLockConflicts:
    """Test NOWAIT row lock conflicts on the affiliate row."""

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, pay, ledger, affiliate, now, monkeypatch):
        affiliate_id = affiliate.id
        await pay("ord-l1", affiliate.referral_code, "100.00")
        attempts = hold_lock(ledger, monkeypatch, {affiliate_id}, failures=1)

        confirmed = await ledger.run_lazy_maturation(affiliate_id, now + MATURED)

        assert confirmed == 1
        assert attempts == [affiliate_id]
        balances = await ledger.get_balances(affiliate_id)
        assert balances.available_balance == Decimal("25.00")
        assert not (await ledger.reconcile(affiliate_id)).has_drift

    @pytest.mark.asyncio
    async def test_conflict_error_when_lock_stays_taken(
        self, pay, ledger, session, affiliate, now, monkeypatch
    ):
        affiliate_id = affiliate.id
        await pay("ord-l2", affiliate.referral_code, "100.00")
        attempts = hold_lock(ledger, monkeypatch, {affiliate_id})

        with pytest.raises(ConflictError):
            await ledger.run_lazy_maturation(affiliate_id, now + MATURED)

        assert len(attempts) == AFFILIATE_LOCK_MAX_RETRIES
        commission = await CommissionRepository(session).get_by_order_id("ord-l2")
        assert commission.status == CommissionStatus.PENDING.value
        assert (await ledger.get_balances(affiliate_id)).total_earnings == Decimal("0")

    @pytest.mark.asyncio
    async def test_sweep_skips_locked_affiliate(
        self, pay, ledger, affiliate, elite_affiliate, now, monkeypatch
    ):
        locked_id = affiliate.id
        free_id = elite_affiliate.id
        await pay("ord-l3", affiliate.referral_code, "100.00")
        await pay("ord-l4", elite_affiliate.referral_code, "100.00")
        hold_lock(ledger, monkeypatch, {locked_id})

        result = await ledger.run_maturation_sweep(now + MATURED)

        assert result.skipped_affiliates == [locked_id]
        assert result.confirmed_count == 1
        assert result.affiliates_processed == 1
        assert (await ledger.get_balances(free_id)).available_balance == Decimal("50.00")
        assert (await ledger.get_balances(locked_id)).available_balance == Decimal("0")

        monkeypatch.undo()
        retry = await ledger.run_maturation_sweep(now + MATURED)

        assert retry.confirmed_count == 1
        assert retry.skipped_affiliates == []
        assert (await ledger.get_balances(locked_id)).available_balance == Decimal("25.00")


class TestPayoutHolds:
    """Test commissions held while the affiliate subscription is overdue."""

    @pytest_asyncio.fixture
    async def held_affiliate_id(self, pay, registry, affiliate, now):
        """Overdue affiliate with one held $25 commission (order ord-h1)."""
        affiliate_id = affiliate.id
        code = affiliate.referral_code
        await registry.set_subscription_standing(affiliate_id, True, now)
        await pay("ord-h1", code, "100.00")
        return affiliate_id

    @pytest.mark.asyncio
    async def test_held_commission_never_matures(self, ledger, held_affiliate_id, now):
        result = await ledger.run_maturation_sweep(now + MATURED)

        assert result.confirmed_count == 0
        assert await ledger.run_lazy_maturation(held_affiliate_id, now + MATURED) == 0
        balances = await ledger.get_balances(held_affiliate_id)
        assert balances.total_earnings == Decimal("0")
        assert balances.available_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_release_requires_good_standing(self, ledger, held_affiliate_id, now):
        with pytest.raises(InvalidTransition):
            await ledger.release_holds(held_affiliate_id, now + MATURED)

    @pytest.mark.asyncio
    async def test_release_confirms_matured_commission(
        self, ledger, registry, session, held_affiliate_id, now
    ):
        later = now + MATURED + timedelta(days=5)
        await registry.set_subscription_standing(held_affiliate_id, False, later)

        released = await ledger.release_holds(held_affiliate_id, later)

        assert [c.order_id for c in released] == ["ord-h1"]
        commission = await CommissionRepository(session).get_by_order_id("ord-h1")
        assert commission.payment_held is False
        assert commission.released_at == later
        assert commission.status == CommissionStatus.CONFIRMED.value
        balances = await ledger.get_balances(held_affiliate_id)
        assert balances.available_balance == Decimal("25.00")
        events = await ledger.event_history(held_affiliate_id)
        assert [e.event_type for e in events] == [
            LedgerEventType.COMMISSION_CREATED.value,
            LedgerEventType.COMMISSION_RELEASED.value,
            LedgerEventType.COMMISSION_CONFIRMED.value,
        ]
        assert events[1].available_delta == Decimal("0")
        assert not (await ledger.reconcile(held_affiliate_id)).has_drift

    @pytest.mark.asyncio
    async def test_release_before_maturity_waits_for_sweep(
        self, ledger, registry, session, held_affiliate_id, now
    ):
        released_at = now + timedelta(days=1)
        await registry.set_subscription_standing(held_affiliate_id, False, released_at)

        await ledger.release_holds(held_affiliate_id, released_at)

        commission = await CommissionRepository(session).get_by_order_id("ord-h1")
        assert commission.status == CommissionStatus.PENDING.value
        result = await ledger.run_maturation_sweep(now + MATURED)
        assert result.confirmed_count == 1

    @pytest.mark.asyncio
    async def test_refunded_held_commission_is_not_released(
        self, ledger, registry, refund, held_affiliate_id, now
    ):
        cancellation = await refund("ord-h1", at=now + timedelta(days=1))
        assert cancellation.clawed_back == Decimal("0")
        await registry.set_subscription_standing(held_affiliate_id, False, now)

        assert await ledger.release_holds(held_affiliate_id, now + MATURED) == []
        assert (await ledger.get_balances(held_affiliate_id)).total_earnings == Decimal("0")

    @pytest.mark.asyncio
    async def test_standing_change_alone_keeps_hold(
        self, ledger, registry, held_affiliate_id, now
    ):
        await registry.set_subscription_standing(held_affiliate_id, False, now)

        result = await ledger.run_maturation_sweep(now + MATURED)

        assert result.confirmed_count == 0
