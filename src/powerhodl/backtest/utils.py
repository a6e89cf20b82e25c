"""
Backtest Utility Functions Module
Provides pure functions for the performance figures of a backtest run.

All values are measured in BTC terms; percentages are in percent units.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from powerhodl.backtest.models import PortfolioState


def calculate_total_return_pct(final_value: float, starting_value: float) -> float:
    """
    Percentage change from ``starting_value`` to ``final_value``.

    Examples
    --------
    >>> round(calculate_total_return_pct(0.0165, 0.015), 2)
    10.0
    """
    if starting_value <= 0:
        return 0.0
    return (final_value - starting_value) / starting_value * 100


def calculate_range_drawdown_pct(max_value: float, min_value: float) -> float:
    """
    Simplified drawdown: distance between the highest and lowest portfolio
    value of the run, relative to the highest.

    This ignores ordering, so a run that bottoms out *before* its peak still
    reports the full range. Use :func:`calculate_max_drawdown` for the
    running-peak version.

    Parameters
    ----------
    max_value : float
        Highest total value (BTC) seen during the run.
    min_value : float
        Lowest total value (BTC) seen during the run.

    Returns
    -------
    float
        Drawdown in percent, >= 0.
    """
    if max_value <= 0:
        return 0.0
    return (max_value - min_value) / max_value * 100


def calculate_max_drawdown(equity_curve: pd.Series) -> float:
    """
    Calculate maximum drawdown of equity curve.

    Maximum Drawdown (MDD) is the largest peak-to-trough decline in portfolio value,
    typically expressed as a negative ratio.

    Parameters
    ----------
    equity_curve : pd.Series
        Daily portfolio total value.

    Returns
    -------
    float
        Maximum drawdown as a ratio. Example: -0.15 means -15%.
        Returns 0.0 if equity never declined.

    Examples
    --------
    >>> equity = pd.Series([100, 120, 100, 110, 130])
    >>> round(calculate_max_drawdown(equity), 4)  # from 120 to 100
    -0.1667
    """
    if len(equity_curve) == 0:
        return 0.0

    running_max = equity_curve.expanding().max()
    drawdown = (equity_curve - running_max) / running_max
    return float(drawdown.min())


def calculate_win_rate(equity_curve: pd.Series) -> float:
    """
    Percentage of days whose value exceeded the previous day's value.

    Parameters
    ----------
    equity_curve : pd.Series
        Daily portfolio total value.

    Returns
    -------
    float
        Win rate in percent over ``len(equity_curve) - 1`` day-to-day
        comparisons. 0.0 with fewer than two days.
    """
    if len(equity_curve) < 2:
        return 0.0

    values = np.asarray(equity_curve, dtype=float)
    up_days = int((values[1:] > values[:-1]).sum())
    return up_days / (len(values) - 1) * 100


def calculate_annualized_return(
    final_value: float,
    starting_value: float,
    days: int,
    periods_per_year: int = 365
) -> float:
    """
    Compound annual growth rate: (final / start) ^ (365 / days) - 1

    Crypto markets trade every calendar day, hence 365 periods per year.

    Returns
    -------
    float
        Annualized return as a ratio. Example: 0.12 means 12% per year.
    """
    if days <= 0 or starting_value <= 0 or final_value <= 0:
        return 0.0
    return (final_value / starting_value) ** (periods_per_year / days) - 1


def calculate_trade_frequency(trade_count: int, days: int, periods_per_year: int = 365) -> float:
    """Trades per year, extrapolated from the run length."""
    if days <= 0:
        return 0.0
    return trade_count / days * periods_per_year


def calculate_fee_impact_pct(total_fees: float, final_value: float) -> float:
    """Total fees paid as a percentage of the final portfolio value."""
    if final_value <= 0:
        return 0.0
    return total_fees / final_value * 100


def calculate_buy_and_hold(initial_state: PortfolioState, final_ratio: float) -> float:
    """
    Value in BTC of the starting holdings, left untouched, at ``final_ratio``.

    This is the no-rebalancing baseline the strategy is compared against.
    """
    return initial_state.btc_amount + initial_state.eth_amount * final_ratio


def calculate_sharpe_ratio(
    returns: pd.Series,
    risk_free_rate: float = 0.0,
    periods_per_year: int = 365
) -> float:
    """
    Calculate Sharpe ratio of a daily return series.

    Sharpe Ratio = (annualized mean return - risk_free_rate) / annualized std

    Parameters
    ----------
    returns : pd.Series
        Daily returns of the BTC-denominated portfolio value.
    risk_free_rate : float, default=0.0
        Annual risk-free rate in BTC terms.
    periods_per_year : int, default=365
        Number of trading days per year.

    Returns
    -------
    float
        Sharpe ratio. Returns 0.0 with fewer than two returns or zero
        volatility.
    """
    if len(returns) < 2:
        return 0.0

    annual_return = returns.mean() * periods_per_year
    annual_std = returns.std() * np.sqrt(periods_per_year)

    if annual_std == 0 or not np.isfinite(annual_std):
        return 0.0

    return float((annual_return - risk_free_rate) / annual_std)


__all__ = [
    'calculate_total_return_pct',
    'calculate_range_drawdown_pct',
    'calculate_max_drawdown',
    'calculate_win_rate',
    'calculate_annualized_return',
    'calculate_trade_frequency',
    'calculate_fee_impact_pct',
    'calculate_buy_and_hold',
    'calculate_sharpe_ratio',
]
