"""
First-touch attribution decision.

Pure function: given what the tracker knows about a visitor, decide
whether the incoming referral code binds it. Persistence lives in
AttributionTracker.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Protocol

from app.config.business_constants import ATTRIBUTION_WINDOW_DAYS


class AttributionAction(StrEnum):
    """What the tracker must do with a visit."""

    KEPT_EXISTING = "kept_existing"  # First touch wins
    CREATED = "created"  # New binding
    NO_ATTRIBUTION = "no_attribution"


class Binding(Protocol):
    """Anything with a capture window (Attribution rows, test doubles)."""

    captured_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AttributionDecision:
    """Decision plus the window of the binding to create, if any."""

    action: AttributionAction
    captured_at: datetime | None = None
    expires_at: datetime | None = None
    # New binding takes over from one whose affiliate can no longer earn
    replaces_existing: bool = False


def is_binding_active(binding: Binding | None, now: datetime) -> bool:
    """Whether a binding exists and ``now`` falls inside its window."""
    return binding is not None and binding.captured_at <= now < binding.expires_at


def decide_attribution(
    visitor_token: str,
    incoming_code: str | None,
    now: datetime,
    existing_binding: Binding | None,
    code_is_valid: bool,
    existing_is_valid: bool = True,
    window_days: int = ATTRIBUTION_WINDOW_DAYS,
) -> AttributionDecision:
    """
    Decide the attribution of a visit.

    1. No code, or an invalid one: keep the unexpired binding if there is
       one, otherwise no attribution.
    2. Valid code and an unexpired binding: keep the binding.
    3. Valid code and no unexpired binding: bind for ``window_days``.

    A binding whose affiliate is no longer active counts as absent, so
    a valid code replaces it.

    Args:
        visitor_token: Visitor identifier
        incoming_code: Code carried by the visit
        now: Visit time
        existing_binding: Most relevant binding for the visitor
        code_is_valid: Code resolves to an active affiliate
        existing_is_valid: Existing binding points at an active affiliate
        window_days: Attribution window

    Returns:
        AttributionDecision
    """
    if not visitor_token:
        return AttributionDecision(AttributionAction.NO_ATTRIBUTION)

    has_binding = is_binding_active(existing_binding, now)

    if has_binding and existing_is_valid:
        return AttributionDecision(
            AttributionAction.KEPT_EXISTING,
            captured_at=existing_binding.captured_at,
            expires_at=existing_binding.expires_at,
        )

    if not incoming_code or not code_is_valid:
        return AttributionDecision(AttributionAction.NO_ATTRIBUTION)

    return AttributionDecision(
        AttributionAction.CREATED,
        captured_at=now,
        expires_at=now + timedelta(days=window_days),
        replaces_existing=has_binding,
    )
