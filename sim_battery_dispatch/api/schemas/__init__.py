"""
Pydantic schemas for API request/response validation, organized by domain:
- batteries: Battery catalog schemas
- comparison: Comparison and recommendation request/response schemas
- rate_plans: Rate plan listing schemas
"""

from __future__ import annotations

from .batteries import BatteryCreate, BatteryResponse
from .comparison import (
    ComparisonRequest,
    ComparisonResponse,
    ComparisonSummary,
    RecommendationRequest,
    RecommendationResponse,
)
from .rate_plans import PeriodRuleResponse, RatePlanResponse

__all__ = [
    "BatteryCreate",
    "BatteryResponse",
    "ComparisonRequest",
    "ComparisonResponse",
    "ComparisonSummary",
    "RecommendationRequest",
    "RecommendationResponse",
    "PeriodRuleResponse",
    "RatePlanResponse",
]
