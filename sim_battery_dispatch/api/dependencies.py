from __future__ import annotations

from functools import lru_cache

from ..application import SimulationApplication
from ..db.session import init_db
from ..persistence import PersistenceService


@lru_cache()
def get_persistence_service() -> PersistenceService:
    """
    Provide a cached PersistenceService, seeding the built-in catalog on an
    empty database.
    """
    init_db()
    service = PersistenceService()
    if not service.list_batteries():
        service.seed_defaults()
    return service


def get_application_service() -> SimulationApplication:
    """
    Provide a SimulationApplication configured for API usage.
    """
    persistence = get_persistence_service()
    # API responses never write files
    return SimulationApplication(
        save_outputs=False,
        persistence=persistence,
        result_builder=None,
    )
