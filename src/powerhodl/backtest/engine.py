"""
Backtest Engine Module
Implements PortfolioBacktestEngine, the z-score mean-reversion simulation
over an ETH/BTC ratio series.
"""

from __future__ import annotations

from typing import Tuple, List, Sequence, Union, Hashable

import numpy as np
import pandas as pd
from loguru import logger

from powerhodl.backtest.exceptions import InsufficientDataError
from powerhodl.backtest.models import (
    BacktestResult,
    DailySnapshot,
    PerformanceMetrics,
    PortfolioState,
    RatioObservation,
    StrategyParameters,
    TradeAction,
    TradeRecord,
)
from powerhodl.backtest.utils import (
    calculate_annualized_return,
    calculate_buy_and_hold,
    calculate_fee_impact_pct,
    calculate_max_drawdown,
    calculate_range_drawdown_pct,
    calculate_sharpe_ratio,
    calculate_total_return_pct,
    calculate_trade_frequency,
    calculate_win_rate,
)
from powerhodl.factors.zscore import RollingZScoreSignal, classify


RatioInput = Union[pd.Series, Sequence[RatioObservation], Sequence[float]]


def split_ratio_input(ratios: RatioInput) -> Tuple[List[Hashable], np.ndarray]:
    """
    Split any accepted ratio input into a date list and a float array.

    Plain float sequences get ordinal dates ``0..n-1``.
    """
    if isinstance(ratios, pd.Series):
        return list(ratios.index), ratios.to_numpy(dtype=float)

    items = list(ratios)
    if items and isinstance(items[0], RatioObservation):
        return [obs.date for obs in items], np.array([obs.ratio for obs in items], dtype=float)

    return list(range(len(items))), np.asarray(items, dtype=float)


class PortfolioBacktestEngine:
    """
    Two-asset ETH/BTC rebalancing simulation driven by a rolling z-score.

    Each simulated day the engine values the portfolio in BTC, asks the
    z-score signal whether the ratio is extreme, and if so moves
    ``rebalance_fraction`` of total value from the relatively expensive asset
    into the relatively cheap one, paying ``transaction_cost_rate`` of the
    trade value as a fee settled in BTC.

    Days are processed strictly in chronological order. Engine instances hold
    only their parameters, so one engine may run any number of independent
    backtests.

    Parameters
    ----------
    parameters : StrategyParameters
        Validated on construction.

    Raises
    ------
    InvalidParameterError
        If any parameter is out of range.

    Examples
    --------
    >>> engine = PortfolioBacktestEngine(MEGA_OPTIMAL)
    >>> result = engine.run(ratios, PortfolioState(eth_amount=0.2, btc_amount=0.0077))
    >>> print(f"{result.metrics.total_return_pct:.2f}% vs hold {result.metrics.buy_hold_return_pct:.2f}%")
    """

    def __init__(self, parameters: StrategyParameters) -> None:
        parameters.validate()
        self.parameters = parameters
        self.signal = RollingZScoreSignal(parameters.lookback_window)

    def run(self, ratios: RatioInput, initial_state: PortfolioState) -> BacktestResult:
        """
        Execute one backtest.

        Parameters
        ----------
        ratios : pd.Series, sequence of RatioObservation, or sequence of float
            Chronologically ordered, strictly positive ETH/BTC ratios. A
            Series contributes its index as dates; plain floats get ordinal
            dates.
        initial_state : PortfolioState
            Starting holdings. Not mutated.

        Returns
        -------
        BacktestResult
            Final state, trade log, snapshot log and metrics.

        Raises
        ------
        InvalidParameterError
            If the initial holdings are invalid.
        InsufficientDataError
            If fewer than ``lookback_window + 1`` observations are supplied.
        """
        initial_state.validate()
        dates, values = split_ratio_input(ratios)

        required = self.parameters.lookback_window + 1
        if len(values) < required:
            raise InsufficientDataError(available=len(values), required=required)

        logger.info(
            "Starting backtest over {} observations ({} simulated days) with {}",
            len(values), len(values) - self.parameters.lookback_window, self.parameters,
        )

        state = initial_state.copy()
        trades, snapshots, total_fees = self._simulate(dates, values, state)

        starting_value = initial_state.total_value_btc(values[self.parameters.lookback_window])
        metrics = self._calculate_metrics(
            initial_state, state, trades, snapshots, total_fees, starting_value
        )

        logger.info(
            "Backtest complete: {:.2f}% BTC return, {} trades, {:.6f} BTC fees",
            metrics.total_return_pct, metrics.trade_count, metrics.total_fees_btc,
        )

        return BacktestResult(
            parameters=self.parameters,
            initial_state=initial_state.copy(),
            final_state=state,
            trades=trades,
            snapshots=snapshots,
            metrics=metrics,
        )

    def _simulate(
        self,
        dates: List[Hashable],
        values: np.ndarray,
        state: PortfolioState,
    ) -> Tuple[List[TradeRecord], List[DailySnapshot], float]:
        """
        Daily loop, starting at index ``lookback_window``.

        For each day:
        1. Compute the ratio's z-score against the preceding window
        2. Value the portfolio in BTC before any trade
        3. If |z| exceeds the threshold, size the rebalance and its fee
        4. Execute only if both balances stay non-negative after settlement
        5. Record a snapshot (every day) and a trade (executed days only)

        Returns
        -------
        tuple[list[TradeRecord], list[DailySnapshot], float]
            (trades, snapshots, total_fees_btc)
        """
        params = self.parameters
        trades: List[TradeRecord] = []
        snapshots: List[DailySnapshot] = []
        total_fees = 0.0

        for i in range(params.lookback_window, len(values)):
            date = dates[i]
            ratio = float(values[i])
            zscore = self.signal.value_at(values, i)

            value_before = state.total_value_btc(ratio)
            action = classify(zscore, params.zscore_threshold)

            if action is not TradeAction.HOLD:
                trade_value = value_before * params.rebalance_fraction
                fee = trade_value * params.transaction_cost_rate
                net_value = trade_value - fee

                if self._execute(state, action, ratio, net_value, fee):
                    total_fees += fee
                    trade = TradeRecord(
                        date=date,
                        action=action,
                        zscore=zscore,
                        ratio=ratio,
                        gross_trade_value_btc=trade_value,
                        fee_btc=fee,
                        eth_amount_after=state.eth_amount,
                        btc_amount_after=state.btc_amount,
                        value_before_btc=value_before,
                        value_after_btc=state.total_value_btc(ratio),
                    )
                    trades.append(trade)
                    logger.debug(
                        "{} {} at ratio {:.6f} (z={:.3f}): {:.6f} BTC traded, {:.6f} BTC fee",
                        date, action.value, ratio, zscore, trade_value, fee,
                    )
                else:
                    logger.debug(
                        "{} {} blocked by insufficient balance (z={:.3f})",
                        date, action.value, zscore,
                    )
                    action = TradeAction.HOLD

            snapshots.append(DailySnapshot(
                date=date,
                eth_amount=state.eth_amount,
                btc_amount=state.btc_amount,
                ratio=ratio,
                total_value_btc=state.total_value_btc(ratio),
                zscore=zscore,
                action=action,
            ))

        return trades, snapshots, total_fees

    @staticmethod
    def _execute(
        state: PortfolioState,
        action: TradeAction,
        ratio: float,
        net_value: float,
        fee: float,
    ) -> bool:
        """
        Apply one rebalance to ``state`` in place.

        The fee is always settled from BTC. Nothing is changed, and False is
        returned, if either balance would go negative.
        """
        # Each guard compares against exactly what is later subtracted
        if action is TradeAction.SELL_ETH:
            eth_to_sell = net_value / ratio
            btc_after_sale = state.btc_amount + net_value
            if state.eth_amount < eth_to_sell or btc_after_sale < fee:
                return False
            state.eth_amount -= eth_to_sell
            state.btc_amount = btc_after_sale - fee
        else:
            btc_spent = net_value + fee
            if state.btc_amount < btc_spent:
                return False
            state.btc_amount -= btc_spent
            state.eth_amount += net_value / ratio

        return True

    def _calculate_metrics(
        self,
        initial_state: PortfolioState,
        final_state: PortfolioState,
        trades: List[TradeRecord],
        snapshots: List[DailySnapshot],
        total_fees: float,
        starting_value: float,
    ) -> PerformanceMetrics:
        """
        Reduce the trade and snapshot logs to a PerformanceMetrics record.

        Parameters
        ----------
        starting_value : float
            Initial holdings valued at the first simulated day's ratio.
        """
        equity = pd.Series([s.total_value_btc for s in snapshots], dtype=float)
        final_value = float(equity.iloc[-1])
        final_ratio = snapshots[-1].ratio
        days_traded = len(snapshots)

        # Range drawdown tracks extremes from the starting value onward
        max_value = max(starting_value, float(equity.max()))
        min_value = min(starting_value, float(equity.min()))

        total_return_pct = calculate_total_return_pct(final_value, starting_value)
        buy_hold_value = calculate_buy_and_hold(initial_state, final_ratio)
        buy_hold_return_pct = calculate_total_return_pct(buy_hold_value, starting_value)

        initial_tokens = initial_state.eth_amount + initial_state.btc_amount
        final_tokens = final_state.eth_amount + final_state.btc_amount

        day_changes = equity.diff().iloc[1:]
        daily_returns = equity.pct_change().iloc[1:]

        winning = sum(1 for t in trades if t.value_after_btc > t.value_before_btc)

        return PerformanceMetrics(
            starting_value_btc=starting_value,
            final_value_btc=final_value,
            total_return_pct=total_return_pct,
            max_value_btc=max_value,
            min_value_btc=min_value,
            max_drawdown_pct=calculate_range_drawdown_pct(max_value, min_value),
            peak_drawdown_pct=-calculate_max_drawdown(equity) * 100,
            trade_count=len(trades),
            total_fees_btc=total_fees,
            win_rate=calculate_win_rate(equity),
            days_traded=days_traded,
            annualized_return=calculate_annualized_return(final_value, starting_value, days_traded),
            trade_frequency=calculate_trade_frequency(len(trades), days_traded),
            fee_impact_pct=calculate_fee_impact_pct(total_fees, final_value),
            buy_hold_value_btc=buy_hold_value,
            buy_hold_return_pct=buy_hold_return_pct,
            excess_return_pct=total_return_pct - buy_hold_return_pct,
            excess_btc=final_value - buy_hold_value,
            token_accumulation_pct=calculate_total_return_pct(final_tokens, initial_tokens),
            avg_trade_size_btc=(
                sum(t.gross_trade_value_btc for t in trades) / len(trades) if trades else 0.0
            ),
            best_day_btc=float(day_changes.max()) if len(day_changes) else 0.0,
            worst_day_btc=float(day_changes.min()) if len(day_changes) else 0.0,
            final_eth_allocation_pct=(
                final_state.eth_amount * final_ratio / final_value * 100 if final_value > 0 else 0.0
            ),
            winning_trades=winning,
            losing_trades=len(trades) - winning,
            sharpe_ratio=calculate_sharpe_ratio(daily_returns),
        )


__all__ = ['PortfolioBacktestEngine', 'split_ratio_input']
