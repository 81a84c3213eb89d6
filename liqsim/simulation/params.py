"""Runtime parameters for waterfall simulations."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatorConfig:
    """Knobs for query fan-out and caching.

    Attributes:
        query_timeout: Seconds before an external sub-query counts as failed.
        max_workers: Thread pool cap for per-venue/per-asset fan-out.
        recall_cache_ttl: Cache TTL for venue retrievable amounts.
        simulation_cache_ttl: Cache TTL for queue and route simulations.
    """

    query_timeout: float = 10.0
    max_workers: int = 8
    recall_cache_ttl: float = 30.0
    simulation_cache_ttl: float = 120.0

    @classmethod
    def from_env(cls) -> SimulatorConfig:
        """Build a config, overriding defaults from ``LIQSIM_*`` variables."""
        defaults = cls()
        return cls(
            query_timeout=_env_float("LIQSIM_QUERY_TIMEOUT", defaults.query_timeout),
            max_workers=int(_env_float("LIQSIM_MAX_WORKERS", defaults.max_workers)),
            recall_cache_ttl=_env_float("LIQSIM_RECALL_CACHE_TTL", defaults.recall_cache_ttl),
            simulation_cache_ttl=_env_float(
                "LIQSIM_SIMULATION_CACHE_TTL", defaults.simulation_cache_ttl
            ),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default
