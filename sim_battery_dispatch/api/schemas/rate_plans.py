from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel


class PeriodRuleResponse(BaseModel):
    label: str
    price_per_kwh: float
    hours: List[List[int]]
    day_type: str
    months: Optional[List[int]] = None


class RatePlanResponse(BaseModel):
    """Built-in rate plan; ``export_credit`` is ``"retail"`` for net metering."""

    id: str
    name: str
    description: str = ""
    export_credit: Union[float, str]
    cheapest_price: float
    highest_price: float
    holidays: List[str]
    periods: List[PeriodRuleResponse]
