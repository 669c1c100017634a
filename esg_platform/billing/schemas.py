"""
Pydantic schemas for the subscription plan endpoints.
"""
from decimal import Decimal
from typing import List
from pydantic import BaseModel, Field


class PlanResponse(BaseModel):
    """A subscription tier with its limits and prices. -1 means unlimited."""
    tier: str = Field(..., description="Tier name")
    max_organizations: int = Field(..., ge=-1, description="Organizations per account")
    max_users: int = Field(..., ge=-1, description="Users per organization")
    max_reports_per_month: int = Field(..., ge=-1, description="Reports generated per month")
    price_net: int = Field(..., ge=0, description="Monthly net price")
    price_gross: Decimal = Field(..., ge=0, description="Monthly price including VAT")
    currency: str = Field(..., description="ISO currency code")
    vat_rate: float = Field(..., ge=0, le=1, description="VAT rate (decimal)")


class PlanListResponse(BaseModel):
    """Full plan table."""
    trial_duration_days: int = Field(..., ge=0, description="Length of the free trial")
    currency: str = Field(..., description="ISO currency code")
    plans: List[PlanResponse] = Field(..., description="Available tiers")
