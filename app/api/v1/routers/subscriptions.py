from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# 💳 StreamGate — Subscription State
# ──────────────────────────────────────────────────────────────────────────────
#  Endpoints
#   - GET /subscriptions/me    → caller's resolved subscription state
#   - GET /subscriptions/plans → plan catalog (duration, price)
# ──────────────────────────────────────────────────────────────────────────────

from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.http_utils import enforce_public_api_key, respond_json
from app.core.config import settings
from app.core.dependencies import require_viewer_id
from app.schemas.enums import SubscriptionPlan
from app.schemas.playback import PlanOut, SubscriptionState
from app.services.subscription_state import get_subscription_state_model

router = APIRouter(tags=["Subscriptions"])


@router.get("/subscriptions/me", response_model=SubscriptionState, summary="My subscription state")
async def get_my_subscription(
    request: Request,
    viewer_id: str = Depends(require_viewer_id),
    _key=Depends(enforce_public_api_key),
) -> JSONResponse:
    state = await get_subscription_state_model().resolve(viewer_id)
    return respond_json(state, request=request)


@router.get("/subscriptions/plans", response_model=List[PlanOut], summary="Available plans")
async def list_plans(request: Request, _key=Depends(enforce_public_api_key)) -> JSONResponse:
    plans = [
        PlanOut(
            plan=plan,
            duration_days=settings.plan_duration_days[plan.value],
            price=settings.plan_prices[plan.value],
        )
        for plan in SubscriptionPlan
    ]
    return respond_json([p.model_dump(by_alias=True, mode="json") for p in plans], request=request)
