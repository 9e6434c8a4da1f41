"""Helpers shared by handlers."""

import json
from typing import TypeVar

from aiohttp import web
from pydantic import BaseModel

from app.config.operational_constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.models.affiliate import Affiliate
from app.services.admin_alert_service import AdminAlertService
from app.utils.exceptions import ValidationError
from web.keys import ALERT_SERVICE

ModelT = TypeVar("ModelT", bound=BaseModel)


async def parse_body(request: web.Request, model: type[ModelT]) -> ModelT:
    """
    Parse and validate a JSON body.

    Raises:
        ValidationError: Body is not JSON
        pydantic.ValidationError: Body does not match the model
    """
    try:
        data = await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError(f"Request body is not valid JSON: {e.msg}")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return model.model_validate(data)


def path_id(request: web.Request, name: str) -> int:
    """Integer path parameter (routes constrain it to digits)."""
    return int(request.match_info[name])


def pagination(request: web.Request) -> tuple[int, int]:
    """
    Read ``page`` and ``per_page`` query parameters.

    Raises:
        ValidationError: Non-numeric or out of range values
    """
    try:
        page = int(request.query.get("page", 1))
        per_page = int(request.query.get("per_page", DEFAULT_PAGE_SIZE))
    except ValueError:
        raise ValidationError("page and per_page must be integers")
    if page < 1 or not 1 <= per_page <= MAX_PAGE_SIZE:
        raise ValidationError(
            f"page must be >= 1 and per_page between 1 and {MAX_PAGE_SIZE}",
            page=page,
            per_page=per_page,
        )
    return page, per_page


def alert_service(request: web.Request) -> AdminAlertService:
    return request.app[ALERT_SERVICE]


def serialize_affiliate(affiliate: Affiliate) -> dict:
    """Profile fields returned by registry operations."""
    return {
        "id": affiliate.id,
        "user_id": affiliate.user_id,
        "referral_code": affiliate.referral_code,
        "tier": affiliate.tier,
        "status": affiliate.status,
        "terms_version": affiliate.terms_version,
        "terms_accepted_at": (
            affiliate.terms_accepted_at.isoformat()
            if affiliate.terms_accepted_at
            else None
        ),
        "suspended_at": (
            affiliate.suspended_at.isoformat() if affiliate.suspended_at else None
        ),
        "suspension_reason": affiliate.suspension_reason,
        "subscription_overdue_since": (
            affiliate.subscription_overdue_since.isoformat()
            if affiliate.subscription_overdue_since
            else None
        ),
    }
