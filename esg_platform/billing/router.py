"""
FastAPI Router for subscription plan endpoints.
Exposes the configured tier table for pricing pages and quota checks.
"""
from fastapi import APIRouter, Depends, HTTPException, Request

from esg_platform.billing.schemas import PlanListResponse, PlanResponse
from esg_platform.billing.service import UnknownPlanError, describe_plan, get_plan
from esg_platform.core.config import Config
from esg_platform.core.dependencies import get_config
from esg_platform.core.i18n import translate_request

router = APIRouter(tags=["Plans"])


@router.get("", response_model=PlanListResponse)
def list_plans(config: Config = Depends(get_config)) -> PlanListResponse:
    """
    Lists every subscription tier with limits, net and VAT-inclusive prices.
    """
    plans = config.business.subscription_plans
    return PlanListResponse(
        trial_duration_days=config.business.trial_duration_days,
        currency=config.locale.currency,
        plans=[
            PlanResponse(**describe_plan(tier, plans.get(tier), config.locale))
            for tier in plans.tiers()
        ],
    )


@router.get("/{tier}", response_model=PlanResponse)
def get_plan_details(tier: str, request: Request, config: Config = Depends(get_config)) -> PlanResponse:
    """
    Returns a single tier. Unknown tiers answer 404.
    """
    try:
        plan = get_plan(config.business, tier)
    except UnknownPlanError:
        raise HTTPException(status_code=404, detail=translate_request(request, "errors:planNotFound", tier=tier))

    return PlanResponse(**describe_plan(tier, plan, config.locale))
