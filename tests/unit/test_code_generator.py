"""Unit tests for referral code generation."""

from app.config.business_constants import REFERRAL_CODE_ALPHABET
from app.services.affiliate.code_generator import (
    generate_referral_code,
    looks_like_referral_code,
    normalize_referral_code,
)


class TestReferralCodes:
    """Tests for referral code helpers."""

    def test_default_length_and_alphabet(self):
        """Codes use the unambiguous alphabet."""
        code = generate_referral_code()
        assert len(code) == 8
        assert all(ch in REFERRAL_CODE_ALPHABET for ch in code)

    def test_no_ambiguous_characters(self):
        """0, O, 1, I and L never appear."""
        codes = "".join(generate_referral_code(length=32) for _ in range(50))
        assert not set(codes) & set("0O1IL")

    def test_codes_are_unpredictable(self):
        """Consecutive codes differ."""
        codes = {generate_referral_code() for _ in range(100)}
        assert len(codes) == 100

    def test_custom_length(self):
        assert len(generate_referral_code(length=12)) == 12

    def test_normalize(self):
        assert normalize_referral_code("  ab2cd3ef\n") == "AB2CD3EF"

    def test_looks_like_referral_code(self):
        assert looks_like_referral_code("AB2CD3EF") is True
        assert looks_like_referral_code("AB0CD3EF") is False
        assert looks_like_referral_code("AB2") is False
