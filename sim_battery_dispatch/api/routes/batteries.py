"""
Battery catalog management API endpoints.

Entries are upserted by catalog id; updating an entry changes every later
comparison that references it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...persistence import PersistenceService
from .. import dependencies
from ..schemas import batteries as battery_schemas

router = APIRouter(prefix="/api", tags=["batteries"])


@router.get("/batteries", response_model=list[battery_schemas.BatteryResponse])
def list_batteries(
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> list[battery_schemas.BatteryResponse]:
    """
    List every battery in the catalog, ordered by id.
    """
    return persistence.list_batteries()


@router.post("/batteries", response_model=battery_schemas.BatteryResponse)
def upsert_battery(
    payload: battery_schemas.BatteryCreate,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> battery_schemas.BatteryResponse:
    """
    Create or update a battery.

    Args:
        payload: Battery data; ``id`` is the upsert key.
        persistence: Catalog service (dependency injected).

    Returns:
        The stored entry with timestamps.

    Raises:
        HTTPException 422: If the spec fails engine validation.
    """
    try:
        return persistence.upsert_battery(payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/batteries/{battery_id}", response_model=battery_schemas.BatteryResponse)
def get_battery(
    battery_id: str,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> battery_schemas.BatteryResponse:
    record = persistence.get_battery(battery_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Battery '{battery_id}' not found")
    return record


@router.delete("/batteries/{battery_id}")
def delete_battery(
    battery_id: str,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> dict:
    if not persistence.delete_battery(battery_id):
        raise HTTPException(status_code=404, detail=f"Battery '{battery_id}' not found")
    return {"deleted": battery_id}
