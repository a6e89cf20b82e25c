"""
Backtest Data Structures Module
Defines parameter, portfolio, ledger and result models for the backtest engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any, List, Hashable

import pandas as pd

from powerhodl.backtest.exceptions import InvalidParameterError


class TradeAction(str, Enum):
    """Action taken on a simulated day."""

    BUY_ETH = 'BUY_ETH'
    SELL_ETH = 'SELL_ETH'
    HOLD = 'HOLD'


@dataclass(frozen=True)
class RatioObservation:
    """One day's ETH/BTC exchange ratio (ETH price in BTC units)."""

    date: Hashable
    ratio: float


@dataclass(frozen=True)
class StrategyParameters:
    """
    Configuration for one backtest run.

    Attributes
    ----------
    lookback_window : int
        Number of preceding observations used for the rolling mean and
        standard deviation. Must be >= 2.
    zscore_threshold : float
        Absolute z-score above which a rebalance is triggered. Must be > 0.
    rebalance_fraction : float
        Fraction of total portfolio value (in BTC) moved per rebalance.
        Must lie in (0, 1).
    transaction_cost_rate : float
        Fee charged on each rebalance as a fraction of the gross trade value.
        Must lie in [0, 1).
    name : str, optional
        Human-readable label, set on presets.
    version : str, optional
        Preset version tag.

    Examples
    --------
    >>> params = StrategyParameters(
    ...     lookback_window=15,
    ...     zscore_threshold=1.26,
    ...     rebalance_fraction=0.4979,
    ...     transaction_cost_rate=0.0166,
    ... )
    >>> params.validate()
    """

    lookback_window: int
    zscore_threshold: float
    rebalance_fraction: float
    transaction_cost_rate: float
    name: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def from_percentages(
        cls,
        lookback_window: int,
        zscore_threshold: float,
        rebalance_percent: float,
        transaction_cost_percent: float,
        name: Optional[str] = None,
        version: Optional[str] = None,
    ) -> 'StrategyParameters':
        """
        Build parameters from the percent convention used by UI forms.

        Parameters
        ----------
        rebalance_percent : float
            Share of portfolio value to trade, in percent (e.g. 49.79).
        transaction_cost_percent : float
            Fee in percent of trade value (e.g. 1.66).
        """
        return cls(
            lookback_window=lookback_window,
            zscore_threshold=zscore_threshold,
            rebalance_fraction=rebalance_percent / 100.0,
            transaction_cost_rate=transaction_cost_percent / 100.0,
            name=name,
            version=version,
        )

    def validate(self) -> None:
        """
        Check every field against its valid range.

        Raises
        ------
        InvalidParameterError
            On the first field found out of range.
        """
        lookback = self.lookback_window
        if isinstance(lookback, bool) or not isinstance(lookback, int):
            raise InvalidParameterError('lookback_window', lookback, 'must be an integer')
        if lookback < 2:
            raise InvalidParameterError('lookback_window', lookback, 'must be >= 2')

        if not _is_finite_number(self.zscore_threshold) or self.zscore_threshold <= 0:
            raise InvalidParameterError(
                'zscore_threshold', self.zscore_threshold, 'must be a positive finite number'
            )

        if not _is_finite_number(self.rebalance_fraction) or not 0 < self.rebalance_fraction < 1:
            raise InvalidParameterError(
                'rebalance_fraction', self.rebalance_fraction, 'must lie in (0, 1)'
            )

        if not _is_finite_number(self.transaction_cost_rate) or not 0 <= self.transaction_cost_rate < 1:
            raise InvalidParameterError(
                'transaction_cost_rate', self.transaction_cost_rate, 'must lie in [0, 1)'
            )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PortfolioState:
    """
    Two-asset holdings owned by one in-progress run.

    Total value is always derived from the amounts and the current ratio.
    """

    eth_amount: float
    btc_amount: float

    def total_value_btc(self, ratio: float) -> float:
        return self.btc_amount + self.eth_amount * ratio

    def copy(self) -> 'PortfolioState':
        return PortfolioState(eth_amount=self.eth_amount, btc_amount=self.btc_amount)

    def validate(self) -> None:
        """
        Raises
        ------
        InvalidParameterError
            If either amount is negative or non-finite, or both are zero.
        """
        for name in ('eth_amount', 'btc_amount'):
            value = getattr(self, name)
            if not _is_finite_number(value) or value < 0:
                raise InvalidParameterError(name, value, 'must be a non-negative finite number')
        if self.eth_amount == 0 and self.btc_amount == 0:
            raise InvalidParameterError(
                'initial_state', self, 'starting holdings must not both be zero'
            )


@dataclass(frozen=True)
class TradeRecord:
    """An executed rebalance. Appended once, never mutated."""

    date: Hashable
    action: TradeAction
    zscore: float
    ratio: float
    gross_trade_value_btc: float
    fee_btc: float
    eth_amount_after: float
    btc_amount_after: float
    value_before_btc: float
    value_after_btc: float

    @property
    def net_trade_value_btc(self) -> float:
        return self.gross_trade_value_btc - self.fee_btc

    def as_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record['action'] = self.action.value
        record['date'] = date_to_primitive(self.date)
        return record


@dataclass(frozen=True)
class DailySnapshot:
    """End-of-day portfolio state, recorded for every simulated day."""

    date: Hashable
    eth_amount: float
    btc_amount: float
    ratio: float
    total_value_btc: float
    zscore: float
    action: TradeAction

    def as_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record['action'] = self.action.value
        record['date'] = date_to_primitive(self.date)
        return record


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Aggregate performance of one run, measured in BTC terms.

    Percentages are expressed in percent (e.g. 5.0 means 5%), except
    ``annualized_return`` which is a ratio (0.05 means 5% per year).

    Attributes
    ----------
    max_drawdown_pct : float
        Simplified range drawdown: (max value - min value) / max value over
        the whole run, regardless of the order in which they occurred.
    peak_drawdown_pct : float
        Textbook drawdown: largest decline from a preceding running peak.
    win_rate : float
        Percentage of days whose closing value exceeded the previous day's.
    """

    starting_value_btc: float
    final_value_btc: float
    total_return_pct: float
    max_value_btc: float
    min_value_btc: float
    max_drawdown_pct: float
    peak_drawdown_pct: float
    trade_count: int
    total_fees_btc: float
    win_rate: float
    days_traded: int
    annualized_return: float
    trade_frequency: float
    fee_impact_pct: float
    buy_hold_value_btc: float
    buy_hold_return_pct: float
    excess_return_pct: float
    excess_btc: float
    token_accumulation_pct: float
    avg_trade_size_btc: float
    best_day_btc: float
    worst_day_btc: float
    final_eth_allocation_pct: float
    winning_trades: int
    losing_trades: int
    sharpe_ratio: float

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BacktestResult:
    """
    Terminal output of one run.

    Attributes
    ----------
    parameters : StrategyParameters
        Parameters used for the run.
    initial_state : PortfolioState
        Holdings at the start of the run (a copy; never mutated).
    final_state : PortfolioState
        Holdings after the last simulated day.
    trades : list[TradeRecord]
        Executed rebalances in chronological order.
    snapshots : list[DailySnapshot]
        One entry per simulated day.
    metrics : PerformanceMetrics
        Aggregate performance figures.

    Examples
    --------
    >>> result = engine.run(ratios, PortfolioState(eth_amount=0.2, btc_amount=0.0077))
    >>> print(f"Return: {result.metrics.total_return_pct:.2f}% in BTC terms")
    >>> result.equity_curve.tail()
    """

    parameters: StrategyParameters
    initial_state: PortfolioState
    final_state: PortfolioState
    trades: List[TradeRecord]
    snapshots: List[DailySnapshot]
    metrics: PerformanceMetrics

    @property
    def equity_curve(self) -> pd.DataFrame:
        """Snapshot log as a DataFrame indexed by date."""
        columns = ['eth_amount', 'btc_amount', 'ratio', 'total_value_btc', 'zscore', 'action']
        if not self.snapshots:
            return pd.DataFrame(columns=columns)

        df = pd.DataFrame(
            [{**asdict(s), 'action': s.action.value} for s in self.snapshots]
        )
        df.set_index('date', inplace=True)
        return df[columns]

    def trades_frame(self) -> pd.DataFrame:
        """Trade log as a DataFrame, one row per executed rebalance."""
        if not self.trades:
            return pd.DataFrame(columns=[f for f in TradeRecord.__dataclass_fields__])
        return pd.DataFrame([{**asdict(t), 'action': t.action.value} for t in self.trades])

    def to_dict(
        self,
        max_trades: Optional[int] = None,
        last_snapshots: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Convert to JSON-friendly primitives.

        Parameters
        ----------
        max_trades : int, optional
            Keep only the first ``max_trades`` trades.
        last_snapshots : int, optional
            Keep only the last ``last_snapshots`` daily snapshots.
        """
        trades = self.trades if max_trades is None else self.trades[:max_trades]
        if last_snapshots is None:
            snapshots = self.snapshots
        elif last_snapshots <= 0:
            snapshots = []
        else:
            snapshots = self.snapshots[-last_snapshots:]

        return {
            'parameters': self.parameters.as_dict(),
            'initial_state': asdict(self.initial_state),
            'final_state': asdict(self.final_state),
            'metrics': self.metrics.as_dict(),
            'trades': [t.as_dict() for t in trades],
            'snapshots': [s.as_dict() for s in snapshots],
        }


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def date_to_primitive(value: Hashable) -> Any:
    """JSON-friendly form of a date label: ISO string for datetimes, Python scalar for numpy values."""
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    if hasattr(value, 'item'):
        return value.item()
    return value


__all__ = [
    'TradeAction',
    'RatioObservation',
    'StrategyParameters',
    'PortfolioState',
    'TradeRecord',
    'DailySnapshot',
    'PerformanceMetrics',
    'BacktestResult',
    'date_to_primitive',
]
