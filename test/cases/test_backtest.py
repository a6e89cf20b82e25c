"""
Tests for Backtest Module
"""

import json

import numpy as np
import pandas as pd
import pytest

from powerhodl.backtest.engine import PortfolioBacktestEngine, split_ratio_input
from powerhodl.backtest.exceptions import (
    InsufficientDataError,
    InvalidParameterError,
    PowerHodlError,
)
from powerhodl.backtest.models import (
    BacktestResult,
    PortfolioState,
    RatioObservation,
    StrategyParameters,
    TradeAction,
    date_to_primitive,
)
from powerhodl.backtest.presets import AGGRESSIVE, CONSERVATIVE, MEGA_OPTIMAL
from powerhodl.backtest.utils import (
    calculate_annualized_return,
    calculate_range_drawdown_pct,
    calculate_total_return_pct,
    calculate_win_rate,
)


def make_params(lookback=15, threshold=1.26, fraction=0.4979, cost=0.0166):
    return StrategyParameters(
        lookback_window=lookback,
        zscore_threshold=threshold,
        rebalance_fraction=fraction,
        transaction_cost_rate=cost,
    )


def engineered_series(z):
    """15-day window around 0.04 followed by a day at exactly ``z``."""
    window = [0.039] * 7 + [0.041] * 7 + [0.040]
    return window + [float(np.mean(window) + z * np.std(window))]


class TestStrategyParameters:
    """Test StrategyParameters validation."""

    def test_valid(self, params):
        params.validate()

    @pytest.mark.parametrize('field,value', [
        ('lookback_window', 1),
        ('lookback_window', 0),
        ('lookback_window', 15.0),
        ('zscore_threshold', 0.0),
        ('zscore_threshold', -1.0),
        ('zscore_threshold', float('nan')),
        ('zscore_threshold', float('inf')),
        ('rebalance_fraction', 0.0),
        ('rebalance_fraction', 1.0),
        ('rebalance_fraction', 1.5),
        ('transaction_cost_rate', -0.01),
        ('transaction_cost_rate', 1.0),
    ])
    def test_out_of_range(self, params, field, value):
        bad = StrategyParameters(**{**params.as_dict(), field: value})
        with pytest.raises(InvalidParameterError) as exc_info:
            bad.validate()
        assert exc_info.value.field == field

    def test_zero_cost_is_valid(self):
        make_params(cost=0.0).validate()

    def test_error_hierarchy(self):
        with pytest.raises(ValueError):
            make_params(fraction=2.0).validate()
        with pytest.raises(PowerHodlError):
            make_params(fraction=2.0).validate()
        assert issubclass(InsufficientDataError, PowerHodlError)
        assert issubclass(InvalidParameterError, PowerHodlError)
        assert PowerHodlError.__doc__

    def test_from_percentages(self):
        params = StrategyParameters.from_percentages(15, 1.26, 49.79, 1.66)
        assert params.rebalance_fraction == pytest.approx(0.4979)
        assert params.transaction_cost_rate == pytest.approx(0.0166)

    def test_frozen(self, params):
        with pytest.raises(AttributeError):
            params.lookback_window = 20


class TestPortfolioState:
    """Test PortfolioState valuation and validation."""

    def test_total_value(self, initial_state):
        assert initial_state.total_value_btc(0.04) == pytest.approx(0.0157)

    def test_copy_is_independent(self, initial_state):
        clone = initial_state.copy()
        clone.eth_amount = 0.0
        assert initial_state.eth_amount == 0.2

    @pytest.mark.parametrize('eth,btc', [(-0.1, 0.01), (0.1, -0.01), (0.0, 0.0), (float('nan'), 0.01)])
    def test_invalid(self, eth, btc):
        with pytest.raises(InvalidParameterError):
            PortfolioState(eth_amount=eth, btc_amount=btc).validate()

    def test_single_asset_is_valid(self):
        PortfolioState(eth_amount=0.0, btc_amount=1.0).validate()


class TestPortfolioBacktestEngine:
    """Test PortfolioBacktestEngine simulation."""

    def test_invalid_parameters_fail_at_construction(self):
        with pytest.raises(InvalidParameterError):
            PortfolioBacktestEngine(make_params(lookback=1))

    def test_insufficient_data(self, initial_state):
        engine = PortfolioBacktestEngine(make_params(lookback=15))
        with pytest.raises(InsufficientDataError) as exc_info:
            engine.run([0.04] * 15, initial_state)
        assert exc_info.value.required == 16
        assert exc_info.value.available == 15

    def test_minimum_length(self, initial_state):
        result = PortfolioBacktestEngine(make_params(lookback=15)).run([0.04] * 16, initial_state)
        assert len(result.snapshots) == 1
        assert result.metrics.days_traded == 1
        assert result.metrics.win_rate == 0.0

    def test_invalid_initial_state(self, params):
        engine = PortfolioBacktestEngine(params)
        with pytest.raises(InvalidParameterError):
            engine.run([0.04] * 20, PortfolioState(eth_amount=-1.0, btc_amount=0.1))

    def test_zero_variance_holds(self):
        engine = PortfolioBacktestEngine(make_params(lookback=5))
        result = engine.run([0.04] * 5 + [0.05], PortfolioState(eth_amount=0.2, btc_amount=0.0077))

        assert result.snapshots[0].zscore == 0.0
        assert result.snapshots[0].action is TradeAction.HOLD
        assert result.trades == []

    def test_sell_on_high_zscore(self, params, initial_state):
        values = engineered_series(2.0)
        result = PortfolioBacktestEngine(params).run(values, initial_state)

        assert len(result.trades) == 1
        trade = result.trades[0]
        ratio = values[-1]
        value_before = initial_state.total_value_btc(ratio)

        assert trade.action is TradeAction.SELL_ETH
        assert trade.zscore == pytest.approx(2.0)
        assert trade.gross_trade_value_btc == pytest.approx(0.4979 * value_before)
        assert trade.fee_btc == pytest.approx(0.0166 * trade.gross_trade_value_btc)
        assert trade.eth_amount_after < initial_state.eth_amount

        net = trade.gross_trade_value_btc - trade.fee_btc
        assert trade.eth_amount_after == pytest.approx(0.2 - net / ratio)
        assert trade.btc_amount_after == pytest.approx(0.0077 + net - trade.fee_btc)
        assert result.snapshots[0].action is TradeAction.SELL_ETH

    def test_buy_on_low_zscore(self, params):
        values = engineered_series(-2.0)
        state = PortfolioState(eth_amount=0.05, btc_amount=0.05)
        result = PortfolioBacktestEngine(params).run(values, state)

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.action is TradeAction.BUY_ETH
        assert trade.eth_amount_after > state.eth_amount
        assert trade.btc_amount_after < state.btc_amount

    def test_insufficient_btc_blocks_buy(self):
        """Balance guard turns a BUY into a HOLD without a trade record."""
        values = [0.040, 0.041, 0.039, 0.040, 0.0405, 0.030]
        state = PortfolioState(eth_amount=1.0, btc_amount=0.0001)
        result = PortfolioBacktestEngine(make_params(lookback=5)).run(values, state)

        assert result.snapshots[0].zscore < -1.26
        assert result.snapshots[0].action is TradeAction.HOLD
        assert result.trades == []
        assert result.final_state == state
        assert result.metrics.total_fees_btc == 0.0

    def test_no_eth_blocks_sell(self, params):
        state = PortfolioState(eth_amount=0.0, btc_amount=0.0157)
        result = PortfolioBacktestEngine(params).run(engineered_series(2.0), state)
        assert result.trades == []
        assert result.snapshots[0].action is TradeAction.HOLD

    def test_no_trade_equals_buy_and_hold(self, ratios, initial_state):
        result = PortfolioBacktestEngine(make_params(threshold=1e9)).run(ratios, initial_state)
        m = result.metrics

        assert m.trade_count == 0
        assert m.total_fees_btc == 0.0
        assert result.final_state == initial_state
        assert m.final_value_btc == pytest.approx(m.buy_hold_value_btc)
        assert m.excess_btc == pytest.approx(0.0)
        assert m.excess_return_pct == pytest.approx(0.0)

    def test_fee_conservation(self, params, ratios, initial_state):
        result = PortfolioBacktestEngine(params).run(ratios, initial_state)
        assert result.metrics.trade_count > 0
        assert sum(t.fee_btc for t in result.trades) == pytest.approx(result.metrics.total_fees_btc)

    def test_trade_value_drops_by_fee(self, params, ratios, initial_state):
        result = PortfolioBacktestEngine(params).run(ratios, initial_state)
        for trade in result.trades:
            assert trade.value_after_btc == pytest.approx(trade.value_before_btc - trade.fee_btc)

    def test_deterministic(self, params, ratios, initial_state):
        engine = PortfolioBacktestEngine(params)
        first = engine.run(ratios, initial_state)
        second = engine.run(ratios, initial_state)
        assert first.to_dict() == second.to_dict()

    def test_initial_state_not_mutated(self, params, ratios, initial_state):
        PortfolioBacktestEngine(params).run(ratios, initial_state)
        assert initial_state == PortfolioState(eth_amount=0.2, btc_amount=0.0077)

    def test_snapshot_per_day(self, params, ratios, initial_state):
        result = PortfolioBacktestEngine(params).run(ratios, initial_state)
        assert len(result.snapshots) == len(ratios) - params.lookback_window
        assert [s.date for s in result.snapshots] == list(ratios.index[params.lookback_window:])

    def test_trades_chronological(self, params, ratios, initial_state):
        result = PortfolioBacktestEngine(params).run(ratios, initial_state)
        dates = [t.date for t in result.trades]
        assert dates == sorted(dates)

    @pytest.mark.parametrize('seed', range(8))
    @pytest.mark.parametrize('preset', [MEGA_OPTIMAL, CONSERVATIVE, AGGRESSIVE])
    def test_invariants_random_series(self, seed, preset):
        """Balances stay non-negative and totals are always re-derived."""
        rng = np.random.default_rng(seed)
        values = 0.04 * np.exp(rng.normal(0, 0.05, 150).cumsum())
        state = PortfolioState(
            eth_amount=float(rng.uniform(0, 1)),
            btc_amount=float(rng.uniform(0, 0.05)),
        )

        result = PortfolioBacktestEngine(preset).run(values, state)

        for snap in result.snapshots:
            assert snap.eth_amount >= 0
            assert snap.btc_amount >= 0
            assert snap.total_value_btc == pytest.approx(snap.btc_amount + snap.eth_amount * snap.ratio)
        assert sum(t.fee_btc for t in result.trades) == pytest.approx(result.metrics.total_fees_btc)
        assert result.metrics.trade_count == sum(
            1 for s in result.snapshots if s.action is not TradeAction.HOLD
        )

    def test_extreme_fraction_keeps_balances_non_negative(self):
        params = make_params(lookback=3, threshold=0.1, fraction=0.99, cost=0.5)
        values = [0.04, 0.05, 0.03, 0.08, 0.01, 0.09, 0.02, 0.1]
        result = PortfolioBacktestEngine(params).run(values, PortfolioState(eth_amount=1.0, btc_amount=0.0))
        for snap in result.snapshots:
            assert snap.eth_amount >= 0
            assert snap.btc_amount >= 0


class TestRatioInputs:
    """The engine accepts Series, observations and plain floats."""

    def test_plain_floats_get_ordinal_dates(self, initial_state):
        result = PortfolioBacktestEngine(make_params(lookback=5)).run([0.04] * 8, initial_state)
        assert [s.date for s in result.snapshots] == [5, 6, 7]

    def test_observations(self, params, ratios, initial_state):
        observations = [RatioObservation(date=d, ratio=r) for d, r in ratios.items()]
        from_obs = PortfolioBacktestEngine(params).run(observations, initial_state)
        from_series = PortfolioBacktestEngine(params).run(ratios, initial_state)
        assert from_obs.to_dict() == from_series.to_dict()

    def test_split_ratio_input(self):
        dates, values = split_ratio_input(pd.Series([0.04, 0.05], index=['a', 'b']))
        assert dates == ['a', 'b']
        assert values.dtype == float


class TestPerformanceMetrics:
    """Test metric figures on a finished run."""

    @pytest.fixture
    def result(self, params, ratios, initial_state):
        return PortfolioBacktestEngine(params).run(ratios, initial_state)

    def test_starting_value_uses_first_simulated_ratio(self, result, ratios, params, initial_state):
        expected = initial_state.total_value_btc(ratios.iloc[params.lookback_window])
        assert result.metrics.starting_value_btc == pytest.approx(expected)

    def test_total_return(self, result):
        m = result.metrics
        expected = (m.final_value_btc - m.starting_value_btc) / m.starting_value_btc * 100
        assert m.total_return_pct == pytest.approx(expected)
        assert m.final_value_btc == result.snapshots[-1].total_value_btc

    def test_range_drawdown(self, result):
        m = result.metrics
        values = [s.total_value_btc for s in result.snapshots] + [m.starting_value_btc]
        assert m.max_value_btc == pytest.approx(max(values))
        assert m.min_value_btc == pytest.approx(min(values))
        assert m.max_drawdown_pct == pytest.approx((m.max_value_btc - m.min_value_btc) / m.max_value_btc * 100)
        assert m.max_drawdown_pct >= m.peak_drawdown_pct - 1e-9
        assert m.peak_drawdown_pct >= 0

    def test_buy_and_hold(self, result, ratios, initial_state):
        expected = initial_state.btc_amount + initial_state.eth_amount * ratios.iloc[-1]
        assert result.metrics.buy_hold_value_btc == pytest.approx(expected)
        assert result.metrics.excess_btc == pytest.approx(result.metrics.final_value_btc - expected)

    def test_trade_counts(self, result):
        m = result.metrics
        assert m.trade_count == len(result.trades)
        assert m.winning_trades + m.losing_trades == m.trade_count
        assert m.trade_frequency == pytest.approx(m.trade_count / m.days_traded * 365)

    def test_win_rate_bounds(self, result):
        assert 0 <= result.metrics.win_rate <= 100

    def test_win_rate_value(self, result):
        values = [s.total_value_btc for s in result.snapshots]
        up_days = sum(b > a for a, b in zip(values[:-1], values[1:]))
        assert result.metrics.win_rate == pytest.approx(up_days / (len(values) - 1) * 100)

    def test_annualized_return(self, result):
        m = result.metrics
        expected = (m.final_value_btc / m.starting_value_btc) ** (365 / m.days_traded) - 1
        assert m.annualized_return == pytest.approx(expected)

    def test_fee_impact(self, result):
        m = result.metrics
        assert m.fee_impact_pct == pytest.approx(m.total_fees_btc / m.final_value_btc * 100)

    def test_token_accumulation(self, result, initial_state):
        final = result.final_state
        start_tokens = initial_state.eth_amount + initial_state.btc_amount
        expected = ((final.eth_amount + final.btc_amount) - start_tokens) / start_tokens * 100
        assert result.metrics.token_accumulation_pct == pytest.approx(expected)


class TestBacktestUtils:
    """Test metric helper functions on known values."""

    def test_win_rate(self):
        # two rises out of four day-to-day changes
        assert calculate_win_rate(pd.Series([1, 2, 2, 3, 1])) == 50.0

    def test_win_rate_short_series(self):
        assert calculate_win_rate(pd.Series([1.0])) == 0.0
        assert calculate_win_rate(pd.Series([], dtype=float)) == 0.0

    def test_annualized_return_one_year(self):
        assert calculate_annualized_return(1.1, 1.0, 365) == pytest.approx(0.1)

    def test_annualized_return_compounds(self):
        assert calculate_annualized_return(1.1, 1.0, 730) == pytest.approx(1.1 ** 0.5 - 1)

    @pytest.mark.parametrize('final,start,days', [
        (1.1, 0.0, 365),
        (1.1, -1.0, 365),
        (0.0, 1.0, 365),
        (-0.5, 1.0, 365),
        (1.1, 1.0, 0),
    ])
    def test_annualized_return_guards(self, final, start, days):
        assert calculate_annualized_return(final, start, days) == 0.0

    def test_total_return(self):
        assert calculate_total_return_pct(0.0165, 0.015) == pytest.approx(10.0)
        assert calculate_total_return_pct(0.0165, 0.0) == 0.0

    def test_range_drawdown(self):
        assert calculate_range_drawdown_pct(0.02, 0.015) == pytest.approx(25.0)
        assert calculate_range_drawdown_pct(0.0, 0.0) == 0.0


class TestDateToPrimitive:
    """Test date labels in serialized output."""

    def test_timestamp(self):
        assert date_to_primitive(pd.Timestamp('2025-01-01')) == '2025-01-01T00:00:00'

    def test_numpy_scalar(self):
        value = date_to_primitive(np.int64(5))
        assert value == 5
        assert type(value) is int

    def test_passthrough(self):
        assert date_to_primitive('day-1') == 'day-1'


class TestBacktestResult:
    """Test BacktestResult views."""

    @pytest.fixture
    def result(self, params, ratios, initial_state):
        return PortfolioBacktestEngine(params).run(ratios, initial_state)

    def test_equity_curve(self, result):
        curve = result.equity_curve
        assert isinstance(curve, pd.DataFrame)
        assert list(curve.columns) == ['eth_amount', 'btc_amount', 'ratio', 'total_value_btc', 'zscore', 'action']
        assert len(curve) == len(result.snapshots)
        assert curve.index[0] == result.snapshots[0].date

    def test_trades_frame(self, result):
        frame = result.trades_frame()
        assert len(frame) == len(result.trades)
        assert set(frame['action']) <= {'BUY_ETH', 'SELL_ETH'}

    def test_to_dict_is_json_friendly(self, result):
        payload = result.to_dict(max_trades=2, last_snapshots=3)
        assert len(payload['trades']) == min(2, len(result.trades))
        assert len(payload['snapshots']) == 3
        assert payload['snapshots'][-1]['date'] == result.snapshots[-1].date.isoformat()
        json.dumps(payload)

    def test_to_dict_no_snapshots(self, result):
        assert result.to_dict(last_snapshots=0)['snapshots'] == []

    def test_is_result(self, result):
        assert isinstance(result, BacktestResult)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
