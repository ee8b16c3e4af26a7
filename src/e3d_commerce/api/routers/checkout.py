"""
e3d_commerce.api.routers.checkout

Checkout endpoints.

Responsibilities:
- Validate a single checkout step so clients can gate navigation between steps.
- Place the order for the signed-in user's cart.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from e3d_commerce.api import serializers
from e3d_commerce.api.deps import db_session, settings_dep
from e3d_commerce.auth.deps import get_principal
from e3d_commerce.auth.models import Principal
from e3d_commerce.services.checkout import (
    CheckoutRequest,
    CheckoutService,
    CheckoutStep,
    validate_step,
)
from e3d_commerce.settings import Settings

router = APIRouter(prefix="/v1/checkout", tags=["checkout"])


@router.post("/steps/{step}/validate", dependencies=[Depends(get_principal)])
async def validate_checkout_step(
    step: CheckoutStep,
    payload: dict[str, Any] | None = Body(default=None),
) -> dict[str, Any]:
    # Field problems are data here, not a failed request.
    errors = validate_step(step, payload or {})
    next_step = step.next_step
    return {
        "step": step.value,
        "valid": not errors,
        "errors": errors,
        "next_step": next_step.value if next_step is not None and not errors else None,
    }


@router.post("", status_code=HTTP_201_CREATED)
async def place_order(
    body: CheckoutRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    order = await CheckoutService(session=session, settings=settings).place_order(
        user_id=principal.user_id, checkout=body
    )
    return serializers.order(order)
