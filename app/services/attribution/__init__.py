"""
Attribution services package.

- decision: Pure first-touch decision
- tracker: Persistence of visitor bindings
"""

from app.services.attribution.decision import (
    AttributionAction,
    AttributionDecision,
    decide_attribution,
)
from app.services.attribution.tracker import (
    AttributionResult,
    AttributionTracker,
    CaptureMetadata,
)


__all__ = [
    "AttributionAction",
    "AttributionDecision",
    "AttributionResult",
    "AttributionTracker",
    "CaptureMetadata",
    "decide_attribution",
]
