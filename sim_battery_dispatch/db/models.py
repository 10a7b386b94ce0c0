"""
SQLAlchemy models for the battery catalog.

Only catalog data is stored; comparison results are returned to the caller
and never persisted here.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, func

from ..simulation.battery import BatterySpec
from .session import Base


class TimestampMixin:
    """
    Mixin adding ``created_at`` and ``updated_at`` columns managed by the
    database (``server_default`` on insert, ``onupdate`` on every UPDATE).
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class BatteryModel(Base, TimestampMixin):
    """
    Database row for one battery product.

    Attributes:
        id: Primary key (auto-increment).
        battery_id: Catalog identifier, unique (upsert key), e.g.
            ``"growatt-15"``.
        brand: Manufacturer name.
        model: Product name.
        usable_kwh: Usable capacity (kWh).
        nominal_kwh: Nameplate capacity used for rebates (kWh).
        inverter_kw: Charge/discharge power limit (kW).
        round_trip_efficiency: Fraction in (0, 1].
        depth_of_discharge: Fraction in (0, 1].
        price: Installed price before rebates ($).
        warranty_years: Warranty length (years).
        warranty_cycles: Warranted cycles.
        description: Free-form notes.

    Notes:
        - ``to_spec()`` converts the row into the immutable BatterySpec used
          by the engine, so the simulation never sees ORM objects.
    """
    __tablename__ = "batteries"

    id = Column(Integer, primary_key=True)
    battery_id = Column(String(64), unique=True, nullable=False, index=True)
    brand = Column(String(255), nullable=False, default="")
    model = Column(String(255), nullable=False, default="")
    usable_kwh = Column(Float, nullable=False)
    nominal_kwh = Column(Float, nullable=True)
    inverter_kw = Column(Float, nullable=False)
    round_trip_efficiency = Column(Float, nullable=False, default=0.9)
    depth_of_discharge = Column(Float, nullable=False, default=1.0)
    price = Column(Float, nullable=False, default=0.0)
    warranty_years = Column(Integer, nullable=False, default=10)
    warranty_cycles = Column(Integer, nullable=False, default=6000)
    description = Column(Text, nullable=True)

    def to_spec(self) -> BatterySpec:
        return BatterySpec(
            id=self.battery_id,
            brand=self.brand or "",
            model=self.model or "",
            usable_kwh=self.usable_kwh,
            nominal_kwh=self.nominal_kwh,
            inverter_kw=self.inverter_kw,
            round_trip_efficiency=self.round_trip_efficiency,
            depth_of_discharge=self.depth_of_discharge,
            price=self.price,
            warranty_years=self.warranty_years,
            warranty_cycles=self.warranty_cycles,
            description=self.description or "",
        )
