"""
Integration tests for first-touch attribution.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from app.services.attribution import AttributionTracker
from app.services.attribution.decision import AttributionAction
from app.services.attribution.tracker import CaptureMetadata


@pytest_asyncio.fixture
async def second_affiliate(registry, now):
    return await registry.enroll(1003, "2026-01", now)


class TestCapture:
    """Test AttributionTracker.capture."""

    @pytest.mark.asyncio
    async def test_first_touch_wins(self, tracker, affiliate, second_affiliate, now):
        first_id = affiliate.id

        first = await tracker.capture("visitor-1", affiliate.referral_code, now)
        second = await tracker.capture(
            "visitor-1", second_affiliate.referral_code, now + timedelta(days=3)
        )

        assert first.action == AttributionAction.CREATED
        assert first.expires_at == now + timedelta(days=30)
        assert second.action == AttributionAction.KEPT_EXISTING
        assert second.affiliate_id == first_id

    @pytest.mark.asyncio
    async def test_binding_expires_after_window(
        self, tracker, affiliate, second_affiliate, now
    ):
        second_id = second_affiliate.id
        await tracker.capture("visitor-2", affiliate.referral_code, now)

        later = now + timedelta(days=31)
        assert await tracker.lookup("visitor-2", later) is None

        result = await tracker.capture("visitor-2", second_affiliate.referral_code, later)

        assert result.action == AttributionAction.CREATED
        assert result.affiliate_id == second_id

    @pytest.mark.asyncio
    async def test_expiry_boundary_is_exclusive(self, tracker, affiliate, now):
        await tracker.capture("visitor-3", affiliate.referral_code, now)

        assert await tracker.lookup("visitor-3", now + timedelta(days=30, seconds=-1))
        assert await tracker.lookup("visitor-3", now + timedelta(days=30)) is None

    @pytest.mark.asyncio
    async def test_invalid_code_is_ignored(self, tracker, now):
        result = await tracker.capture("visitor-4", "NOSUCHCODE", now)

        assert result.action == AttributionAction.NO_ATTRIBUTION
        assert result.is_attributed is False

    @pytest.mark.asyncio
    async def test_suspended_code_is_ignored(self, tracker, registry, affiliate, now):
        code = affiliate.referral_code
        await registry.suspend(affiliate.id, "Review", now)

        result = await tracker.capture("visitor-5", code, now)

        assert result.action == AttributionAction.NO_ATTRIBUTION

    @pytest.mark.asyncio
    async def test_binding_to_suspended_affiliate_is_replaced(
        self, tracker, registry, affiliate, second_affiliate, now
    ):
        second_id = second_affiliate.id
        first = await tracker.capture("visitor-7", affiliate.referral_code, now)
        first_binding = first.attribution
        await registry.suspend(affiliate.id, "Review", now + timedelta(hours=1))
        later = now + timedelta(days=1)

        assert await tracker.lookup("visitor-7", later) is None

        result = await tracker.capture(
            "visitor-7", second_affiliate.referral_code, later
        )

        assert result.action == AttributionAction.CREATED
        assert result.affiliate_id == second_id
        assert first_binding.expires_at == later
        assert (await tracker.lookup("visitor-7", later)).affiliate_id == second_id

    @pytest.mark.asyncio
    async def test_binding_to_suspended_affiliate_without_new_code(
        self, tracker, registry, affiliate, now
    ):
        await tracker.capture("visitor-8", affiliate.referral_code, now)
        await registry.suspend(affiliate.id, "Review", now + timedelta(hours=1))

        result = await tracker.capture("visitor-8", None, now + timedelta(days=1))

        assert result.action == AttributionAction.NO_ATTRIBUTION

    @pytest.mark.asyncio
    async def test_metadata_and_user_link(self, session, affiliate, now):
        tracker = AttributionTracker(session)

        result = await tracker.capture(
            "visitor-6",
            affiliate.referral_code.lower(),
            now,
            metadata=CaptureMetadata(
                source="landing", ip_address="203.0.113.7", user_agent="pytest"
            ),
            user_id=4242,
        )

        attribution = result.attribution
        assert attribution.referral_code == affiliate.referral_code
        assert attribution.source == "landing"
        assert attribution.ip_address == "203.0.113.7"
        assert attribution.user_id == 4242
