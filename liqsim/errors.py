"""Failure taxonomy for the liquidation waterfall.

Invariant violations (negative amounts, out-of-range weights) are not raised;
they are clamped and logged where they are detected.
"""


class MissingInputError(ValueError):
    """Required position, price or basket data is absent."""


class QueryError(RuntimeError):
    """An external read-only query failed or returned a malformed payload."""


class RouteNotFoundError(QueryError):
    """No swap route exists for the requested market sale."""


class SimulationSuperseded(RuntimeError):
    """A simulation run was abandoned because newer inputs arrived."""
