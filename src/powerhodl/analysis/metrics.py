"""
Analysis Metrics Module
Risk and significance statistics on a finished backtest.

Every series here is in BTC terms. Crypto trades every calendar day, so the
default annualisation is 365 periods.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from powerhodl.backtest.models import BacktestResult


PERIODS_PER_YEAR = 365


def daily_returns(result: BacktestResult) -> pd.Series:
    """
    Day-over-day returns of the strategy's BTC value.

    Returns
    -------
    pd.Series
        Index: snapshot date. One fewer entry than the snapshot log.
    """
    equity = result.equity_curve['total_value_btc']
    return equity.pct_change().iloc[1:]


def buy_and_hold_curve(result: BacktestResult) -> pd.Series:
    """
    BTC value of the untouched starting holdings on each simulated day.

    btc_0 + eth_0 * ratio_t

    Examples
    --------
    >>> hold = buy_and_hold_curve(result)
    >>> hold.iloc[-1] == result.metrics.buy_hold_value_btc
    True
    """
    ratios = result.equity_curve['ratio']
    state = result.initial_state
    curve = state.btc_amount + state.eth_amount * ratios
    curve.name = 'buy_and_hold_btc'
    return curve


def calculate_annual_volatility(returns: pd.Series, periods_per_year: int = PERIODS_PER_YEAR) -> float:
    """
    Annualised standard deviation of daily returns.

    Returns 0.0 with fewer than two returns.
    """
    if len(returns) < 2:
        return 0.0
    return float(returns.std() * np.sqrt(periods_per_year))


def calculate_sharpe_ratio(
    returns: pd.Series,
    risk_free_rate: float = 0.0,
    periods_per_year: int = PERIODS_PER_YEAR
) -> float:
    """
    Calculate Sharpe Ratio.

    Sharpe Ratio = (Annual Mean Return - Risk Free Rate) / Annual Volatility

    Parameters
    ----------
    returns : pd.Series
        Daily returns.
    risk_free_rate : float, default=0.0
        Annual risk-free rate in BTC terms; holding BTC earns nothing.
    periods_per_year : int, default=365
        Number of periods per year.

    Returns
    -------
    float
        Sharpe ratio, 0.0 when volatility is zero.
    """
    annual_vol = calculate_annual_volatility(returns, periods_per_year)
    if annual_vol == 0 or not np.isfinite(annual_vol):
        return 0.0

    annual_return = returns.mean() * periods_per_year
    return float((annual_return - risk_free_rate) / annual_vol)


def calculate_sortino_ratio(
    returns: pd.Series,
    target_return: float = 0.0,
    risk_free_rate: float = 0.0,
    periods_per_year: int = PERIODS_PER_YEAR
) -> float:
    """
    Calculate Sortino Ratio.

    Like Sharpe, but divides by downside deviation (returns below
    ``target_return`` only).

    Parameters
    ----------
    returns : pd.Series
        Daily returns.
    target_return : float, default=0.0
        Daily return below which a day counts as downside.
    risk_free_rate : float, default=0.0
        Annual risk-free rate.
    periods_per_year : int, default=365
        Number of periods per year.

    Returns
    -------
    float
        Sortino ratio, 0.0 when there are no downside days.
    """
    if len(returns) < 2:
        return 0.0

    downside = returns[returns < target_return] - target_return
    if len(downside) == 0:
        return 0.0

    downside_vol = np.sqrt(np.mean(downside ** 2)) * np.sqrt(periods_per_year)
    if downside_vol == 0:
        return 0.0

    annual_return = returns.mean() * periods_per_year
    return float((annual_return - risk_free_rate) / downside_vol)


def calculate_drawdown_duration(equity_curve: pd.Series) -> Tuple[float, float]:
    """
    Average and maximum length, in days, of spells spent below a prior peak.

    Parameters
    ----------
    equity_curve : pd.Series
        Daily portfolio value.

    Returns
    -------
    tuple[float, float]
        (average_drawdown_duration, max_drawdown_duration)

    Examples
    --------
    >>> calculate_drawdown_duration(pd.Series([1.0, 0.9, 0.95, 1.1, 1.0, 1.2]))
    (1.5, 2.0)
    """
    if len(equity_curve) == 0:
        return 0.0, 0.0

    running_max = equity_curve.expanding().max()
    in_drawdown = equity_curve < running_max

    spell_ids = (in_drawdown != in_drawdown.shift()).cumsum()
    durations = in_drawdown.groupby(spell_ids).sum()
    durations = durations[durations > 0]

    if len(durations) == 0:
        return 0.0, 0.0

    return float(durations.mean()), float(durations.max())


def calculate_excess_return(
    strategy_returns: pd.Series,
    benchmark_returns: pd.Series
) -> pd.Series:
    """Daily strategy return minus benchmark return on common dates."""
    common_index = strategy_returns.index.intersection(benchmark_returns.index)
    return strategy_returns.loc[common_index] - benchmark_returns.loc[common_index]


def calculate_information_ratio(
    strategy_returns: pd.Series,
    benchmark_returns: pd.Series,
    periods_per_year: int = PERIODS_PER_YEAR
) -> float:
    """
    Calculate Information Ratio (IR).

    IR = (Annual Mean Excess Return) / (Tracking Error)
    where Tracking Error = annualised std of excess returns.
    """
    excess = calculate_excess_return(strategy_returns, benchmark_returns)

    if len(excess) < 2:
        return 0.0

    tracking_error = excess.std() * np.sqrt(periods_per_year)
    if tracking_error == 0 or not np.isfinite(tracking_error):
        return 0.0

    return float(excess.mean() * periods_per_year / tracking_error)


def newey_west_ttest(
    returns: pd.Series,
    test_value: float = 0.0,
    lags: Optional[int] = None
) -> Tuple[float, float]:
    """
    Newey-West adjusted t-test of the mean daily return.

    Corrects the standard error for autocorrelation, which rebalancing
    strategies produce in abundance.

    Parameters
    ----------
    returns : pd.Series
        Daily returns (e.g. excess returns over buy-and-hold).
    test_value : float, default=0.0
        Mean under the null hypothesis.
    lags : int, optional
        Bartlett kernel lags. Defaults to int(sqrt(n)).

    Returns
    -------
    tuple[float, float]
        (t_statistic, two-sided p_value). (0.0, 1.0) with fewer than three
        returns or zero variance.
    """
    returns = returns.dropna()
    n = len(returns)
    if n < 3:
        return 0.0, 1.0

    if lags is None:
        lags = max(1, int(np.sqrt(n)))

    demeaned = returns.to_numpy(dtype=float) - returns.mean()
    long_run_var = np.dot(demeaned, demeaned) / n
    for lag in range(1, min(lags, n - 1) + 1):
        weight = 1 - lag / (lags + 1)
        long_run_var += 2 * weight * np.dot(demeaned[lag:], demeaned[:-lag]) / n

    if long_run_var <= 0:
        return 0.0, 1.0

    se = np.sqrt(long_run_var / n)
    t_stat = (returns.mean() - test_value) / se
    p_value = 2 * stats.t.sf(abs(t_stat), n - 1)

    return float(t_stat), float(p_value)


def summarize_result(result: BacktestResult, periods_per_year: int = PERIODS_PER_YEAR) -> Dict[str, Any]:
    """
    Bundle the headline metrics with the extended statistics above.

    Parameters
    ----------
    result : BacktestResult
        Finished run.
    periods_per_year : int, default=365
        Annualisation factor.

    Returns
    -------
    dict
        ``result.metrics.as_dict()`` extended with annual_volatility,
        sortino_ratio, avg/max drawdown duration, information_ratio and the
        Newey-West t-stat and p-value of daily excess returns.
    """
    returns = daily_returns(result)
    hold = buy_and_hold_curve(result)
    hold_returns = hold.pct_change().iloc[1:]
    excess = calculate_excess_return(returns, hold_returns)

    avg_dd, max_dd = calculate_drawdown_duration(result.equity_curve['total_value_btc'])
    t_stat, p_value = newey_west_ttest(excess)

    summary = result.metrics.as_dict()
    summary.update({
        'annual_volatility': calculate_annual_volatility(returns, periods_per_year),
        'sortino_ratio': calculate_sortino_ratio(returns, periods_per_year=periods_per_year),
        'avg_drawdown_duration': avg_dd,
        'max_drawdown_duration': max_dd,
        'information_ratio': calculate_information_ratio(returns, hold_returns, periods_per_year),
        'excess_t_stat': t_stat,
        'excess_p_value': p_value,
    })
    return summary


__all__ = [
    'daily_returns',
    'buy_and_hold_curve',
    'calculate_annual_volatility',
    'calculate_sharpe_ratio',
    'calculate_sortino_ratio',
    'calculate_drawdown_duration',
    'calculate_excess_return',
    'calculate_information_ratio',
    'newey_west_ttest',
    'summarize_result',
]
