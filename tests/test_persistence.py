from __future__ import annotations

import pytest
from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from sim_battery_dispatch.catalog import DEFAULT_BATTERIES
from sim_battery_dispatch.db.session import create_catalog_engine, create_session_factory, init_db
from sim_battery_dispatch.persistence import PersistenceService


def test_persistence_upserts_and_lists_batteries(persistence: PersistenceService):
    """Verify batteries can be stored, updated and retrieved by catalog id."""
    created = persistence.upsert_battery(
        {"id": "custom-12", "brand": "Acme", "usable_kwh": 12.0, "inverter_kw": 5.0, "price": 9000}
    )
    assert created.id is not None
    assert created.nominal_kwh == 12.0

    updated = persistence.upsert_battery(
        {"battery_id": "custom-12", "brand": "Acme", "usable_kwh": 12.0, "inverter_kw": 5.0, "price": 8500}
    )
    assert updated.id == created.id
    assert updated.price == 8500

    records = persistence.list_batteries()
    assert [record.battery_id for record in records] == ["custom-12"]


def test_persistence_rejects_invalid_battery(persistence: PersistenceService):
    """Invalid specs never reach the database."""
    with pytest.raises(ValueError):
        persistence.upsert_battery({"id": "broken", "usable_kwh": 10.0, "inverter_kw": 5.0, "round_trip_efficiency": 1.5})
    with pytest.raises(ValueError):
        persistence.upsert_battery({"id": "missing-power", "usable_kwh": 10.0})
    assert persistence.list_batteries() == []


def test_persistence_seeds_and_loads_specs(persistence: PersistenceService):
    """Seeding is idempotent and rows round-trip into engine specs."""
    assert persistence.seed_defaults() == len(DEFAULT_BATTERIES)
    persistence.seed_defaults()
    assert len(persistence.list_batteries()) == len(DEFAULT_BATTERIES)

    specs = persistence.load_specs(["tesla-powerwall", "renon-16"])
    assert [spec.id for spec in specs] == ["tesla-powerwall", "renon-16"]
    assert specs[0] == next(spec for spec in DEFAULT_BATTERIES if spec.id == "tesla-powerwall")

    with pytest.raises(KeyError):
        persistence.load_specs(["nope"])


def test_persistence_deletes_batteries(persistence: PersistenceService):
    persistence.seed_defaults()
    assert persistence.delete_battery("growatt-10") is True
    assert persistence.delete_battery("growatt-10") is False
    assert persistence.get_battery("growatt-10") is None


def test_catalog_engine_shares_in_memory_database():
    """Sessions from one factory see the same in-memory catalog tables."""
    engine = create_catalog_engine("sqlite://")
    try:
        assert isinstance(engine.pool, StaticPool)
        init_db(engine)
        service = PersistenceService(session_factory=create_session_factory(engine))
        service.upsert_battery({"id": "shared", "usable_kwh": 8.0, "inverter_kw": 4.0})
        assert [row.battery_id for row in service.list_batteries()] == ["shared"]
    finally:
        engine.dispose()


def test_catalog_engine_uses_file_pool_for_sqlite_paths(tmp_path):
    engine = create_catalog_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    try:
        assert not isinstance(engine.pool, StaticPool)
        init_db(engine)
        assert "batteries" in inspect(engine).get_table_names()
    finally:
        engine.dispose()
