"""
Unit tests for model mappings and column types.
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import inspect

from app.models import Affiliate, Commission, Withdrawal
from app.models.types import UTCDateTime


class TestRelationships:
    """Relationships are never loaded implicitly."""

    @pytest.mark.parametrize(
        "model, name",
        [
            (Affiliate, "commissions"),
            (Affiliate, "withdrawals"),
            (Commission, "affiliate"),
            (Withdrawal, "affiliate"),
        ],
    )
    def test_lazy_raise(self, model, name):
        assert inspect(model).relationships[name].lazy == "raise"


class TestUTCDateTime:
    """Test UTCDateTime."""

    def test_naive_value_rejected(self):
        with pytest.raises(ValueError):
            UTCDateTime().process_bind_param(datetime(2026, 3, 1), None)

    def test_naive_result_tagged_utc(self):
        value = UTCDateTime().process_result_value(datetime(2026, 3, 1, 12), None)
        assert value == datetime(2026, 3, 1, 12, tzinfo=UTC)
