"""Factory for creating the appropriate WaterfallQueries provider."""

from __future__ import annotations

import logging
import os

from liqsim.data.cache import CachedQueries
from liqsim.data.interfaces import WaterfallQueries
from liqsim.data.static_params import StaticQueries
from liqsim.simulation.params import SimulatorConfig

logger = logging.getLogger(__name__)


def create_queries(
    use_onchain: bool = False,
    lcd_url: str | None = None,
    config: SimulatorConfig | None = None,
    cached: bool = True,
) -> WaterfallQueries:
    """Create a query provider, selecting static or live LCD data.

    Parameters
    ----------
    use_onchain : bool
        If True, attempt to create an ``LcdQueries`` provider.
    lcd_url : str | None
        CosmWasm LCD URL.  Falls back to the ``LCD_URL`` environment
        variable when not supplied.
    config : SimulatorConfig | None
        Supplies the HTTP timeout and cache TTLs.
    cached : bool
        Wrap the live provider in ``CachedQueries``.

    Returns
    -------
    WaterfallQueries
        ``LcdQueries`` (optionally cached) when requested and available,
        otherwise ``StaticQueries``.
    """
    if not use_onchain:
        return StaticQueries()

    config = config or SimulatorConfig.from_env()
    resolved_url = lcd_url or os.environ.get("LCD_URL")
    if not resolved_url:
        logger.warning("On-chain data requested but no LCD URL provided; using static data")
        return StaticQueries()

    try:
        from liqsim.data.lcd_provider import LcdQueries

        provider: WaterfallQueries = LcdQueries(lcd_url=resolved_url, timeout=config.query_timeout)
    except ImportError:
        logger.warning("requests is not installed; falling back to static data")
        return StaticQueries()
    except Exception:
        logger.warning("Failed to create LcdQueries; using static data", exc_info=True)
        return StaticQueries()

    if cached:
        provider = CachedQueries(
            provider,
            recall_ttl=config.recall_cache_ttl,
            simulation_ttl=config.simulation_cache_ttl,
        )
    return provider
