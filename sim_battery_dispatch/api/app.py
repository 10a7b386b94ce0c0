from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import configure_logging
from .routes import batteries_router, comparison_router, rate_plans_router


def create_app() -> FastAPI:
    """
    Instantiate the FastAPI application and register routers.

    Registers the domain routers:
    - batteries: Battery catalog management
    - comparison: Battery comparison and sizing recommendation
    - rate_plans: Built-in tariff listing

    Returns:
        FastAPI: Configured application instance.

    Example:
        ```python
        app = create_app()
        uvicorn.run(app, host="0.0.0.0", port=8000)
        ```
    """
    configure_logging()
    app = FastAPI(
        title="Battery Dispatch Simulator API",
        version="0.1.0",
        description="Compare residential batteries under Ontario time-of-use rate plans.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(comparison_router)
    app.include_router(batteries_router)
    app.include_router(rate_plans_router)

    return app


app = create_app()
