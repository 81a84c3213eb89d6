"""Tests for the waterfall orchestration."""

import dataclasses
import threading

import pytest

from liqsim.data.constants import CAPITAL_RECALL, LIQUIDATION_QUEUE, MARKET_SALE
from liqsim.data.interfaces import QueueFill
from liqsim.errors import MissingInputError, QueryError, RouteNotFoundError, SimulationSuperseded
from liqsim.simulation.results import StageOutcome
from liqsim.simulation.waterfall import load_snapshot, simulate, simulate_position

SCENARIO_FILLS = {
    "uosmo": QueueFill(debt_repaid=30.0, leftover_collateral=0.0),
    "uatom": QueueFill(debt_repaid=15.0, leftover_collateral=0.0),
    "ustatom": QueueFill(debt_repaid=10.0, leftover_collateral=0.0),
}


@pytest.fixture
def scenario_queries(fake_queries, make_sale):
    return fake_queries(
        recall={"venue-a": 18.0, "venue-b": 12.0},
        queue_fills=SCENARIO_FILLS,
        sale=make_sale(13.0, input_value=15.0),
    )


class TestEndToEnd:
    def test_scenario(self, snapshot, scenario_queries) -> None:
        result = simulate(snapshot, scenario_queries)

        assert result.threshold == pytest.approx(800.0)
        assert result.liquidated_amount == pytest.approx(100.0)

        recall, queue, sale = result.stages
        assert [s.name for s in result.stages] == [CAPITAL_RECALL, LIQUIDATION_QUEUE, MARKET_SALE]
        assert recall.fulfilled == pytest.approx(30.0)
        assert recall.remaining_after == pytest.approx(70.0)
        assert queue.fulfilled == pytest.approx(55.0)
        assert queue.remaining_before == pytest.approx(70.0)
        assert queue.remaining_after == pytest.approx(15.0)
        assert sale.fulfilled == pytest.approx(13.0)
        assert sale.cost == pytest.approx(2.0)
        assert result.final_remainder == pytest.approx(2.0)
        assert result.shortfall

    def test_queue_sized_from_remaining_after_recall(self, snapshot, scenario_queries) -> None:
        simulate(snapshot, scenario_queries)
        sent = {call[0]: call[1] for call in scenario_queries.queue_calls}
        # 70 remaining split 35/21/14
        assert sent == {"uosmo": 70_000_000, "uatom": 2_100_000, "ustatom": 1_120_000}

    def test_conservation(self, snapshot, scenario_queries) -> None:
        result = simulate(snapshot, scenario_queries)
        assert result.is_complete
        assert result.total_fulfilled + result.final_remainder == pytest.approx(
            result.liquidated_amount
        )

    def test_remaining_non_increasing(self, snapshot, scenario_queries) -> None:
        result = simulate(snapshot, scenario_queries)
        remaining = [result.liquidated_amount] + [s.remaining_after for s in result.stages]
        assert remaining == sorted(remaining, reverse=True)

    def test_idempotent(self, snapshot, scenario_queries) -> None:
        assert simulate(snapshot, scenario_queries) == simulate(snapshot, scenario_queries)

    def test_snapshot_not_mutated(self, snapshot, scenario_queries) -> None:
        before = dataclasses.replace(snapshot)
        simulate(snapshot, scenario_queries)
        assert snapshot == before


class TestShortCircuit:
    def test_recall_covers_everything(self, snapshot, fake_queries, make_sale) -> None:
        queries = fake_queries(recall={"venue-a": 150.0}, sale=make_sale(13.0))
        result = simulate(snapshot, queries)
        assert result.final_remainder == 0.0
        assert not result.shortfall
        assert len(result.stages) == 3
        assert result.stage(LIQUIDATION_QUEUE).outcome is StageOutcome.COMPUTED_ZERO
        assert result.stage(MARKET_SALE).outcome is StageOutcome.COMPUTED_ZERO
        assert queries.queue_calls == [] and queries.sale_calls == []

    def test_nothing_liquidated(self, snapshot, scenario_queries) -> None:
        snap = dataclasses.replace(snapshot, collateral_value_override=0.0)
        result = simulate(snap, scenario_queries)
        assert result.liquidated_amount == 0.0
        assert all(s.outcome is StageOutcome.COMPUTED_ZERO for s in result.stages)
        assert result.final_remainder == 0.0


class TestNoDataPropagation:
    def test_queue_no_data_forwards_same_remaining(self, snapshot, fake_queries, make_sale) -> None:
        err = QueryError("queue down")
        queries = fake_queries(
            recall={"venue-a": 18.0, "venue-b": 12.0},
            queue_repay_rate={"uosmo": err, "uatom": err, "ustatom": err},
            sale=make_sale(13.0, input_value=15.0),
        )
        result = simulate(snapshot, queries)
        queue = result.stage(LIQUIDATION_QUEUE)
        assert queue.outcome is StageOutcome.NO_DATA
        assert queue.remaining_before == pytest.approx(70.0)
        assert queue.remaining_after == pytest.approx(70.0)
        assert result.stage(MARKET_SALE).remaining_before == pytest.approx(70.0)
        assert result.final_remainder == pytest.approx(57.0)
        assert not result.is_complete

    def test_sale_no_data_keeps_remainder(self, snapshot, fake_queries) -> None:
        queries = fake_queries(
            recall={"venue-a": 18.0, "venue-b": 12.0},
            queue_fills=SCENARIO_FILLS,
            sale=RouteNotFoundError("no path"),
        )
        result = simulate(snapshot, queries)
        assert result.stage(MARKET_SALE).outcome is StageOutcome.NO_DATA
        assert result.final_remainder == pytest.approx(15.0)

    def test_missing_credit_price(self, snapshot, scenario_queries) -> None:
        snap = dataclasses.replace(snapshot, credit_price=None)
        result = simulate(snap, scenario_queries)
        assert result.stage(LIQUIDATION_QUEUE).outcome is StageOutcome.NO_DATA
        assert result.stage(MARKET_SALE).remaining_before == pytest.approx(70.0)


def _without_prices(snapshot, *denoms):
    assets = tuple(
        dataclasses.replace(a, price=None) if a.denom in denoms else a
        for a in snapshot.position.collateral_assets
    )
    return dataclasses.replace(
        snapshot, position=dataclasses.replace(snapshot.position, collateral_assets=assets)
    )


class TestUnpricedCollateral:
    def test_one_price_missing(self, snapshot, scenario_queries) -> None:
        result = simulate(_without_prices(snapshot, "ustatom"), scenario_queries)

        assert all(s.outcome is StageOutcome.NO_DATA for s in result.stages)
        assert all(s.failed_items == ("ustatom",) for s in result.stages)
        assert not result.is_complete
        assert result.liquidated_amount == 0.0
        assert scenario_queries.queue_calls == [] and scenario_queries.sale_calls == []

    def test_all_prices_missing(self, snapshot, scenario_queries) -> None:
        snap = _without_prices(snapshot, "uosmo", "uatom", "ustatom")
        result = simulate(snap, scenario_queries)

        assert all(s.outcome is StageOutcome.NO_DATA for s in result.stages)
        assert result.stage(MARKET_SALE).failed_items == ("uosmo", "uatom", "ustatom")
        assert not result.is_complete
        assert scenario_queries.queue_calls == [] and scenario_queries.sale_calls == []

    def test_collateral_override_still_computes(self, snapshot, scenario_queries) -> None:
        snap = dataclasses.replace(
            _without_prices(snapshot, "ustatom"), collateral_value_override=1_000.0
        )
        result = simulate(snap, scenario_queries)

        assert result.liquidated_amount == pytest.approx(100.0)
        queue = result.stage(LIQUIDATION_QUEUE)
        assert queue.has_data
        assert queue.failed_items == ("ustatom",)

    def test_empty_unpriced_holding_ignored(self, snapshot, scenario_queries) -> None:
        assets = tuple(
            dataclasses.replace(a, price=None, amount=0.0) if a.denom == "ustatom" else a
            for a in snapshot.position.collateral_assets
        )
        snap = dataclasses.replace(
            snapshot, position=dataclasses.replace(snapshot.position, collateral_assets=assets)
        )
        result = simulate(snap, scenario_queries)
        assert result.stage(CAPITAL_RECALL).has_data


class TestCancellation:
    def test_cancelled_run_raises(self, snapshot, scenario_queries) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SimulationSuperseded):
            simulate(snapshot, scenario_queries, cancel=cancel)


class TestLoadSnapshot:
    def test_fills_missing_prices(self, snapshot, fake_queries) -> None:
        assets = tuple(
            dataclasses.replace(a, price=None) for a in snapshot.position.collateral_assets
        )
        raw = dataclasses.replace(
            snapshot,
            position=dataclasses.replace(snapshot.position, collateral_assets=assets),
            credit_price=None,
        )
        queries = fake_queries(
            snapshot=raw, prices={"uosmo": 0.5, "uatom": 10.0, "ucdt": 0.98}
        )
        loaded = load_snapshot(queries, "osmo1owner")
        assert [a.price for a in loaded.position.collateral_assets] == [0.5, 10.0, None]
        assert loaded.credit_price == 0.98
        assert loaded.position.unpriced_denoms() == ["ustatom"]

        result = simulate(loaded, queries)
        assert all(s.outcome is StageOutcome.NO_DATA for s in result.stages)
        assert result.stage(CAPITAL_RECALL).failed_items == ("ustatom",)

    def test_missing_position(self, fake_queries) -> None:
        with pytest.raises(MissingInputError):
            load_snapshot(fake_queries(snapshot=None), "osmo1owner", "9")

    def test_simulate_position_without_position(self, fake_queries) -> None:
        result = simulate_position(fake_queries(snapshot=None), "osmo1owner")
        assert all(s.outcome is StageOutcome.NO_DATA for s in result.stages)
        assert result.liquidated_amount == 0.0

    def test_simulate_position(self, snapshot, scenario_queries) -> None:
        scenario_queries.snapshot = snapshot
        result = simulate_position(scenario_queries, "osmo1owner")
        assert result.final_remainder == pytest.approx(2.0)
