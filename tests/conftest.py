from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sim_battery_dispatch.db.session import (  # noqa: E402
    Base,
    create_catalog_engine,
    create_session_factory,
    init_db,
)
from sim_battery_dispatch.persistence import PersistenceService  # noqa: E402
from sim_battery_dispatch.simulation import (  # noqa: E402
    BatterySpec,
    UsageDataPoint,
    UsageProfile,
    UsageProfileGenerator,
    hourly_solar_from_monthly,
    ulo_rate_plan,
)

MONTHLY_SOLAR_KWH = [350, 480, 750, 900, 1050, 1100, 1150, 1000, 800, 580, 350, 280]


@pytest.fixture()
def sqlite_session_factory():
    """Provide a session factory bound to an in-memory SQLite database."""
    engine = create_catalog_engine("sqlite+pysqlite:///:memory:")
    init_db(engine)
    yield create_session_factory(engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def persistence(sqlite_session_factory):
    """Provide a PersistenceService bound to the temporary SQLite DB."""
    return PersistenceService(session_factory=sqlite_session_factory)


@pytest.fixture(scope="session")
def ulo_profile() -> UsageProfile:
    """12,000 kWh/yr household on ULO, no solar."""
    return UsageProfileGenerator(year=2025).generate_annual(12_000, ulo_rate_plan())


@pytest.fixture(scope="session")
def solar_profile() -> UsageProfile:
    """12,000 kWh/yr household with an 8 kW array."""
    solar = hourly_solar_from_monthly(MONTHLY_SOLAR_KWH, 2025)
    return UsageProfileGenerator(year=2025).generate_annual(12_000, ulo_rate_plan(), solar_kwh=solar)


@pytest.fixture()
def battery_15() -> BatterySpec:
    return BatterySpec(
        id="test-15",
        brand="Test",
        model="15 kWh",
        usable_kwh=15.0,
        inverter_kw=5.0,
        round_trip_efficiency=0.9,
        price=10_000.0,
    )


def make_day_profile(consumption, solar=None, start: datetime = datetime(2025, 3, 4)) -> UsageProfile:
    """Build an hourly profile from explicit per-hour values."""
    solar = solar if solar is not None else [0.0] * len(consumption)
    return UsageProfile(
        points=tuple(
            UsageDataPoint(start + timedelta(hours=idx), float(load), float(pv))
            for idx, (load, pv) in enumerate(zip(consumption, solar))
        )
    )


@pytest.fixture()
def simple_scenario_data() -> dict:
    """Return a lightweight scenario definition used to speed up tests."""
    return {
        "scenario_name": "test_minimal",
        "year": 2025,
        "usage": {"annual_kwh": 9000, "seasonal_adjustment": True},
        "rate_plans": ["ulo"],
        "batteries": ["renon-16", "growatt-10"],
        "financial": {"escalation_rate": 0.05, "years": 25},
        "rebate": {"per_kwh": 300, "cap": 5000},
    }
