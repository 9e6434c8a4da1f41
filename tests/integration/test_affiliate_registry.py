"""
Integration tests for affiliate registration and administration.
"""

from decimal import Decimal

import pytest

from app.models.enums import AffiliateStatus, AffiliateTier
from app.services.affiliate.code_generator import looks_like_referral_code
from app.utils.exceptions import InvalidTransition, NotFoundError, ValidationError


class TestRegistration:
    """Test register / accept_terms / enroll."""

    @pytest.mark.asyncio
    async def test_register_is_pending_until_terms(self, registry, now):
        affiliate = await registry.register(2001)

        assert affiliate.status == AffiliateStatus.PENDING.value
        assert affiliate.tier == AffiliateTier.PRIME.value
        assert looks_like_referral_code(affiliate.referral_code)
        assert await registry.resolve_code(affiliate.referral_code) is None

        activated = await registry.accept_terms(affiliate.id, "2026-01", now)

        assert activated.status == AffiliateStatus.ACTIVE.value
        assert activated.terms_version == "2026-01"
        resolved = await registry.resolve_code(affiliate.referral_code.lower())
        assert resolved.id == affiliate.id

    @pytest.mark.asyncio
    async def test_enroll_is_idempotent_per_user(self, registry, now):
        first = await registry.enroll(2002, "2026-01", now)
        second = await registry.enroll(2002, "2026-01", now)

        assert first.id == second.id
        assert first.referral_code == second.referral_code

    @pytest.mark.asyncio
    async def test_new_affiliate_starts_with_zero_balances(self, registry, ledger, now):
        affiliate = await registry.enroll(2003, "2026-01", now)

        balances = await ledger.get_balances(affiliate.id)

        assert balances.total_earnings == Decimal("0")
        assert balances.available_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_blank_terms_version(self, registry):
        with pytest.raises(ValidationError):
            await registry.enroll(2004, "  ")

    @pytest.mark.asyncio
    async def test_unknown_affiliate(self, registry):
        with pytest.raises(NotFoundError):
            await registry.accept_terms(999999, "2026-01")

    @pytest.mark.asyncio
    async def test_issue_code_replaces_old_code(self, registry, affiliate):
        affiliate_id = affiliate.id
        old_code = affiliate.referral_code

        new_code = await registry.issue_code(affiliate_id)

        assert new_code != old_code
        assert await registry.resolve_code(old_code) is None
        assert (await registry.resolve_code(new_code)).id == affiliate_id


class TestAdministration:
    """Test tier changes and suspension."""

    @pytest.mark.asyncio
    async def test_suspend_and_reactivate(self, registry, affiliate, now):
        affiliate_id = affiliate.id
        code = affiliate.referral_code

        suspended = await registry.suspend(affiliate_id, "Spam traffic", now)

        assert suspended.status == AffiliateStatus.SUSPENDED.value
        assert suspended.suspension_reason == "Spam traffic"
        assert await registry.resolve_code(code) is None

        reactivated = await registry.reactivate(affiliate_id)

        assert reactivated.status == AffiliateStatus.ACTIVE.value
        assert reactivated.suspension_reason is None
        assert (await registry.resolve_code(code)).id == affiliate_id

    @pytest.mark.asyncio
    async def test_double_suspend(self, registry, affiliate, now):
        affiliate_id = affiliate.id
        await registry.suspend(affiliate_id, "Review", now)

        with pytest.raises(InvalidTransition):
            await registry.suspend(affiliate_id, "Review", now)

    @pytest.mark.asyncio
    async def test_reactivate_active(self, registry, affiliate):
        with pytest.raises(InvalidTransition):
            await registry.reactivate(affiliate.id)

    @pytest.mark.asyncio
    async def test_suspended_keeps_suspension_on_new_terms(self, registry, affiliate, now):
        affiliate_id = affiliate.id
        await registry.suspend(affiliate_id, "Review", now)

        updated = await registry.accept_terms(affiliate_id, "2026-02", now)

        assert updated.status == AffiliateStatus.SUSPENDED.value
        assert updated.terms_version == "2026-02"

    @pytest.mark.asyncio
    async def test_set_tier(self, registry, affiliate):
        updated = await registry.set_tier(affiliate.id, "elite")

        assert updated.tier == AffiliateTier.ELITE.value

    @pytest.mark.asyncio
    async def test_set_unknown_tier(self, registry, affiliate):
        with pytest.raises(ValidationError):
            await registry.set_tier(affiliate.id, "platinum")
