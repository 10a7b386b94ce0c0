"""
Exception types raised by the dispatch and projection engine.

Both derive from built-in exceptions so callers that already catch
``ValueError`` or ``LookupError`` keep working.
"""

from __future__ import annotations


class InvalidUsageError(ValueError):
    """Usage input (annual kWh, monthly totals, interval data) is unusable."""


class UnresolvedPeriodError(LookupError):
    """
    A rate plan has no period covering a timestamp.

    Signals a configuration bug in the plan definition; the engine never
    substitutes a default price.
    """
