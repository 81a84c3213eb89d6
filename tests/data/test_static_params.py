"""Tests for the static snapshot provider, run through the full waterfall."""

import pytest

from liqsim.data.constants import ATOM, CDT_DENOM, OSMO, STATOM
from liqsim.data.interfaces import SellOrder, WaterfallQueries
from liqsim.data.static_params import StaticQueries
from liqsim.errors import RouteNotFoundError
from liqsim.position.cdp_position import PositionSnapshot
from liqsim.simulation.results import StageOutcome
from liqsim.simulation.waterfall import load_snapshot, simulate, simulate_position


@pytest.fixture
def queries() -> StaticQueries:
    return StaticQueries()


class TestStaticQueries:
    def test_is_waterfall_queries(self, queries):
        assert isinstance(queries, WaterfallQueries)

    def test_position(self, queries):
        snap = queries.read_position("osmo1user")
        assert isinstance(snap, PositionSnapshot)
        assert snap.position.owner == "osmo1user"
        assert len(snap.position.venues) == 2
        assert queries.read_position("osmo1user", "42") is None

    def test_snapshot_prices_loaded(self, queries):
        snap = load_snapshot(queries, "osmo1user")
        assert snap.credit_price == 1.0
        assert snap.collateral_value() == pytest.approx(1_000.0)

    def test_route_hops_chain_to_target(self, queries):
        sale = queries.simulate_market_sale([SellOrder(STATOM, 1_000_000)], CDT_DENOM)
        (route,) = sale.per_asset
        assert route.hops[0].token_in == STATOM
        assert route.hops[-1].token_out == CDT_DENOM
        assert route.output_value == pytest.approx(12.5 * 0.90)

    def test_unknown_target_has_no_route(self, queries):
        with pytest.raises(RouteNotFoundError):
            queries.simulate_market_sale([SellOrder(OSMO, 1_000_000)], ATOM)


class TestStaticWaterfall:
    def test_full_run(self, queries):
        result = simulate(load_snapshot(queries, "osmo1user"), queries)
        assert result.threshold == pytest.approx(800.0)
        assert result.liquidated_amount == pytest.approx(100.0)
        assert result.stages[0].fulfilled == pytest.approx(30.0)
        # 35 * .85 + 21 * .90 + 14 * .80
        assert result.stages[1].fulfilled == pytest.approx(59.85)
        assert result.stages[2].outcome is StageOutcome.COMPUTED
        assert result.final_remainder == 0.0
        assert result.is_complete

    def test_simulate_position_unknown_id(self, queries):
        result = simulate_position(queries, "osmo1user", position_id="42")
        assert all(s.outcome is StageOutcome.NO_DATA for s in result.stages)
