"""
Subscription plan rules.
Resolves tiers from the configured plan table, enforces resource limits and prices plans with VAT.
"""
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
from esg_platform.core.config import BusinessConfig, LocaleConfig, SubscriptionPlan
from esg_platform.core.logger import logger

UNLIMITED = -1

RESOURCES = {
    "organizations": "max_organizations",
    "users": "max_users",
    "reports_per_month": "max_reports_per_month",
}


class UnknownPlanError(LookupError):
    """Raised when a tier name is not part of the plan table."""

    def __init__(self, tier: str):
        self.tier = tier
        super().__init__(f"Unknown subscription plan: {tier}")


def get_plan(business: BusinessConfig, tier: str) -> SubscriptionPlan:
    plan = business.subscription_plans.get(tier)
    if plan is None:
        raise UnknownPlanError(tier)
    return plan


def resource_limit(plan: SubscriptionPlan, resource: str) -> int:
    if resource not in RESOURCES:
        raise ValueError(f"Unknown plan resource: {resource}")
    return getattr(plan, RESOURCES[resource])


def remaining_quota(plan: SubscriptionPlan, resource: str, used: int) -> Optional[int]:
    """Units still available for the resource, or None when the plan is unlimited."""
    limit = resource_limit(plan, resource)
    if limit == UNLIMITED:
        return None
    return max(limit - used, 0)


def can_consume(plan: SubscriptionPlan, resource: str, used: int, requested: int = 1) -> bool:
    """
    Checks whether `requested` more units fit within the plan after `used` units.
    """
    limit = resource_limit(plan, resource)
    allowed = limit == UNLIMITED or used + requested <= limit
    if not allowed:
        logger.info(f"Plan limit reached: resource={resource}, used={used}, limit={limit}")
    return allowed


def gross_price(net_price: int, vat_rate: float) -> Decimal:
    """VAT-inclusive price rounded to grosze."""
    gross = Decimal(net_price) * (Decimal(1) + Decimal(str(vat_rate)))
    return gross.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def trial_ends_on(started_on: date, business: BusinessConfig) -> date:
    return started_on + timedelta(days=business.trial_duration_days)


def describe_plan(tier: str, plan: SubscriptionPlan, locale: LocaleConfig) -> Dict[str, Any]:
    return {
        "tier": tier,
        "max_organizations": plan.max_organizations,
        "max_users": plan.max_users,
        "max_reports_per_month": plan.max_reports_per_month,
        "price_net": plan.price,
        "price_gross": gross_price(plan.price, locale.vat_rate),
        "currency": locale.currency,
        "vat_rate": locale.vat_rate,
    }
