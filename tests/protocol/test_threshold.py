"""Tests for the liquidation threshold calculator."""

import pytest

from liqsim.protocol.threshold import (
    LiquidationThreshold,
    LiquidationThresholdCalculator,
    progress_percentage,
)


@pytest.fixture
def calc() -> LiquidationThresholdCalculator:
    return LiquidationThresholdCalculator(liquidation_ltv=80.0, borrow_ltv=70.0)


class TestThreshold:
    def test_threshold(self, calc: LiquidationThresholdCalculator) -> None:
        assert calc.threshold(1_000.0) == pytest.approx(800.0)

    def test_liquidated_amount(self, calc: LiquidationThresholdCalculator) -> None:
        # 1000 * (80 - 70) / 100
        assert calc.liquidated_amount(1_000.0) == pytest.approx(100.0)

    def test_compute(self, calc: LiquidationThresholdCalculator) -> None:
        levels = calc.compute(1_000.0)
        assert isinstance(levels, LiquidationThreshold)
        assert levels.threshold == pytest.approx(800.0)
        assert levels.liquidated_amount == pytest.approx(100.0)

    def test_scales_linearly(self, calc: LiquidationThresholdCalculator) -> None:
        assert calc.liquidated_amount(2_500.0) == pytest.approx(2.5 * calc.liquidated_amount(1_000.0))


class TestZeroInputs:
    def test_zero_collateral(self, calc: LiquidationThresholdCalculator) -> None:
        levels = calc.compute(0.0)
        assert levels.threshold == 0.0
        assert levels.liquidated_amount == 0.0

    def test_zero_liquidation_ltv(self) -> None:
        levels = LiquidationThresholdCalculator(0.0, 70.0).compute(1_000.0)
        assert levels.threshold == 0.0
        assert levels.liquidated_amount == 0.0

    def test_zero_borrow_ltv(self) -> None:
        levels = LiquidationThresholdCalculator(80.0, 0.0).compute(1_000.0)
        assert levels.threshold == 0.0
        assert levels.liquidated_amount == 0.0

    def test_borrow_ltv_above_liquidation_ltv(self) -> None:
        levels = LiquidationThresholdCalculator(70.0, 80.0).compute(1_000.0)
        assert levels.threshold == pytest.approx(700.0)
        assert levels.liquidated_amount == 0.0

    def test_equal_ltvs(self) -> None:
        assert LiquidationThresholdCalculator(75.0, 75.0).liquidated_amount(1_000.0) == 0.0

    def test_negative_inputs_clamped(self, calc: LiquidationThresholdCalculator) -> None:
        assert calc.compute(-500.0) == LiquidationThreshold(0.0, 0.0)
        assert LiquidationThresholdCalculator(-80.0, 70.0).threshold(1_000.0) == 0.0


class TestProgressPercentage:
    def test_partial(self) -> None:
        assert progress_percentage(30.0, 100.0) == pytest.approx(30.0)

    def test_capped_at_100(self) -> None:
        assert progress_percentage(250.0, 100.0) == 100.0

    def test_nothing_liquidated(self) -> None:
        assert progress_percentage(10.0, 0.0) == 0.0
