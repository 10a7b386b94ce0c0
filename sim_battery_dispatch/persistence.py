"""
Database persistence layer for the battery catalog.

Provides upsert, lookup, listing and deletion of battery products, and
converts rows into the immutable :class:`BatterySpec` entities consumed by
the engine. Simulation results are intentionally not stored.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .catalog import DEFAULT_BATTERIES
from .db.models import BatteryModel
from .db.session import SessionLocal
from .simulation.battery import BatterySpec

logger = logging.getLogger(__name__)

_BATTERY_FIELDS = (
    "brand",
    "model",
    "usable_kwh",
    "nominal_kwh",
    "inverter_kw",
    "round_trip_efficiency",
    "depth_of_discharge",
    "price",
    "warranty_years",
    "warranty_cycles",
    "description",
)


def _asdict_safe(obj: Any) -> Dict[str, Any]:
    """
    Convert dataclasses, pydantic models and mappings to plain dictionaries.

    Args:
        obj: Dataclass instance, pydantic model, mapping, or None.

    Returns:
        Dictionary representation; empty dict for None.

    Raises:
        TypeError: If the object type is not supported.
    """
    if obj is None:
        return {}
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    raise TypeError(f"Unsupported object type for serialization: {type(obj)!r}")


class PersistenceService:
    """
    Battery catalog storage backed by SQLAlchemy.

    Every operation runs in its own transactional session (commit on
    success, rollback on error), so a single service instance can be shared
    across API requests.

    Example:
        ```python
        service = PersistenceService()
        service.seed_defaults()
        service.upsert_battery({"id": "custom-12", "usable_kwh": 12.0, "inverter_kw": 5.0})
        specs = service.load_specs(["custom-12", "renon-16"])
        ```
    """

    def __init__(self, session_factory: type[Session] | None = None) -> None:
        """
        Args:
            session_factory: SQLAlchemy session factory. Defaults to the
                module-level SessionLocal; tests pass an in-memory factory.
        """
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def session(self) -> Iterable[Session]:
        """Yield a session that commits on success and rolls back on error."""
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def upsert_battery(self, battery_data: Any) -> BatteryModel:
        """
        Insert or update a battery by its catalog id.

        The payload is validated through :class:`BatterySpec` before it is
        written, so invalid specs never reach the database.

        Args:
            battery_data: BatterySpec, pydantic model or mapping with at least
                ``id``, ``usable_kwh`` and ``inverter_kw``.

        Returns:
            The stored BatteryModel.

        Raises:
            ValueError: If the payload does not describe a valid battery.
        """
        payload = _asdict_safe(battery_data)
        if "id" not in payload and "battery_id" in payload:
            payload["id"] = payload["battery_id"]
        try:
            spec = BatterySpec.from_mapping(payload)
        except KeyError as exc:
            raise ValueError(f"Battery payload is missing field {exc.args[0]!r}") from exc
        values = spec.to_dict()

        with self.session() as session:
            stmt = select(BatteryModel).where(BatteryModel.battery_id == spec.id)
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                record = BatteryModel(battery_id=spec.id)
                session.add(record)
                logger.info("Adding battery %s to catalog", spec.id)
            for field_name in _BATTERY_FIELDS:
                setattr(record, field_name, values[field_name])
            session.flush()
            return record

    def list_batteries(self) -> List[BatteryModel]:
        with self.session() as session:
            stmt = select(BatteryModel).order_by(BatteryModel.battery_id)
            return list(session.execute(stmt).scalars())

    def get_battery(self, battery_id: str) -> BatteryModel | None:
        with self.session() as session:
            stmt = select(BatteryModel).where(BatteryModel.battery_id == battery_id)
            return session.execute(stmt).scalar_one_or_none()

    def delete_battery(self, battery_id: str) -> bool:
        """Delete a battery; returns False when it did not exist."""
        with self.session() as session:
            stmt = select(BatteryModel).where(BatteryModel.battery_id == battery_id)
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                return False
            session.delete(record)
            logger.info("Removed battery %s from catalog", battery_id)
            return True

    def seed_defaults(self, batteries: Sequence[BatterySpec] = DEFAULT_BATTERIES) -> int:
        """Upsert the built-in catalog; returns the number of entries written."""
        for spec in batteries:
            self.upsert_battery(spec)
        return len(batteries)

    def load_specs(self, battery_ids: Sequence[str] | None = None) -> List[BatterySpec]:
        """
        Resolve catalog ids into BatterySpec entities, preserving order.

        Args:
            battery_ids: Ids to load; None loads the whole catalog.

        Raises:
            KeyError: If any id is not in the catalog.
        """
        if battery_ids is None:
            return [record.to_spec() for record in self.list_batteries()]
        specs: List[BatterySpec] = []
        for battery_id in battery_ids:
            record = self.get_battery(battery_id)
            if record is None:
                raise KeyError(f"Unknown battery '{battery_id}'")
            specs.append(record.to_spec())
        return specs
