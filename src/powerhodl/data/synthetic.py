"""
Synthetic Ratio Data
Generates clearly labelled, made-up ETH/BTC ratio series for demos, charts
and tests. Nothing here is market data, and results computed on these
series say nothing about real strategy performance.

Every series returned carries ``series.attrs['synthetic'] = True``.
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
import pandas as pd


def generate_synthetic_ratios(
    days: int = 365,
    seed: Optional[int] = 42,
    start: Union[str, pd.Timestamp] = '2024-01-01',
    mean_ratio: float = 0.045,
    reversion_speed: float = 0.05,
    volatility: float = 0.03,
) -> pd.Series:
    """
    Mean-reverting ratio path (Ornstein-Uhlenbeck process on log ratio).

    log r_t = log r_{t-1} + k * (log m - log r_{t-1}) + sigma * eps_t

    Parameters
    ----------
    days : int, default=365
        Number of daily observations.
    seed : int, optional
        Seed for ``numpy.random.default_rng``. The same seed always gives the
        same path.
    start : str or Timestamp, default='2024-01-01'
        First date of the daily index.
    mean_ratio : float, default=0.045
        Long-run ratio the path reverts to.
    reversion_speed : float, default=0.05
        Fraction of the log-distance to the mean closed each day.
    volatility : float, default=0.03
        Daily standard deviation of log-ratio shocks.

    Returns
    -------
    pd.Series
        Strictly positive ratios indexed by date, flagged synthetic.

    Examples
    --------
    >>> ratios = generate_synthetic_ratios(days=200, seed=7)
    >>> ratios.attrs['synthetic']
    True
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")
    if mean_ratio <= 0:
        raise ValueError(f"mean_ratio must be positive, got {mean_ratio}")

    rng = np.random.default_rng(seed)
    shocks = rng.normal(0.0, volatility, size=days)

    log_mean = np.log(mean_ratio)
    log_ratio = np.empty(days)
    log_ratio[0] = log_mean + shocks[0]
    for t in range(1, days):
        log_ratio[t] = (
            log_ratio[t - 1]
            + reversion_speed * (log_mean - log_ratio[t - 1])
            + shocks[t]
        )

    return _label(np.exp(log_ratio), start)


def generate_demo_ratios(days: int = 30, start: Union[str, pd.Timestamp] = '2024-01-01') -> pd.Series:
    """
    Deterministic placeholder series for UI charts when no data is available.

    A slight upward trend plus two sine components around 0.0365; no
    randomness at all.
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")

    idx = np.arange(days - 1, -1, -1, dtype=float)
    trend = 0.0365 + idx / days * 0.001
    cycle = np.sin(idx * 0.3) * 0.0005
    noise = np.sin(idx * 0.7 + 42) * 0.0002

    return _label(trend + cycle + noise, start)


def _label(values: np.ndarray, start: Union[str, pd.Timestamp]) -> pd.Series:
    series = pd.Series(
        values,
        index=pd.date_range(start, periods=len(values), freq='D', name='date'),
        name='ratio',
    )
    series.attrs['synthetic'] = True
    return series


__all__ = ['generate_synthetic_ratios', 'generate_demo_ratios']
