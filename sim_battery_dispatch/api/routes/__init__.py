"""
API route modules, organized by business domain:
- batteries: Battery catalog CRUD operations
- comparison: Comparison and recommendation execution
- rate_plans: Built-in rate plan listing

All routers are prefixed with /api.
"""

from __future__ import annotations

from .batteries import router as batteries_router
from .comparison import router as comparison_router
from .rate_plans import router as rate_plans_router

__all__ = [
    "batteries_router",
    "comparison_router",
    "rate_plans_router",
]
