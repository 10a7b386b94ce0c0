"""
Battery catalog schemas for API validation.

``BatteryCreate`` validates incoming catalog entries with the same bounds
the engine enforces; ``BatteryResponse`` is built from ORM rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BatteryCreate(BaseModel):
    """
    Battery catalog entry submitted for creation or update (upsert by id).

    Example:
        ```python
        # POST /api/batteries
        {
            "id": "growatt-15",
            "brand": "Growatt",
            "model": "15 kWh",
            "usable_kwh": 13.5,
            "nominal_kwh": 15.0,
            "inverter_kw": 5.0,
            "round_trip_efficiency": 0.9,
            "price": 13000.0
        }
        ```
    """

    id: str = Field(..., min_length=1, max_length=64)
    brand: str = ""
    model: str = ""
    usable_kwh: float = Field(..., ge=0)
    nominal_kwh: Optional[float] = Field(default=None, ge=0)
    inverter_kw: float = Field(..., ge=0)
    round_trip_efficiency: float = Field(default=0.9, gt=0, le=1)
    depth_of_discharge: float = Field(default=1.0, gt=0, le=1)
    price: float = Field(default=0.0, ge=0)
    warranty_years: int = Field(default=10, ge=0)
    warranty_cycles: int = Field(default=6000, ge=0)
    description: str = ""


class BatteryResponse(BaseModel):
    """Battery catalog entry as stored in the database."""

    model_config = ConfigDict(from_attributes=True)

    battery_id: str
    brand: str
    model: str
    usable_kwh: float
    nominal_kwh: Optional[float] = None
    inverter_kw: float
    round_trip_efficiency: float
    depth_of_discharge: float
    price: float
    warranty_years: int
    warranty_cycles: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
