"""
Operators Library for Signal Computation
Provides vectorized trailing-window primitives over a single time series.

All window operators describe the window that ends *before* the current
observation: the value at position t is computed from t-window .. t-1.
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def ts_delay(series: pd.Series, window: int) -> pd.Series:
    """
    Compute lagged values: x_{t-window}

    Parameters
    ----------
    series : pd.Series
        Input series
    window : int
        Number of periods to lag

    Returns
    -------
    pd.Series
        Lagged series

    Examples
    --------
    >>> ts_delay(ratios, window=1)  # Previous day's ratio
    """
    return series.shift(window)


def ts_mean(series: pd.Series, window: int) -> pd.Series:
    """
    Compute the mean of the preceding ``window`` observations.

    Parameters
    ----------
    series : pd.Series
        Input series.
    window : int
        Rolling window size (in periods/days).

    Returns
    -------
    pd.Series
        Trailing mean, NaN for the first ``window`` positions.

    Examples
    --------
    >>> ts_mean(pd.Series([1.0, 2.0, 3.0, 4.0]), window=2).tolist()
    [nan, nan, 1.5, 2.5]
    """
    return ts_delay(series.rolling(window=window, min_periods=window).mean(), 1)


def ts_std(series: pd.Series, window: int) -> pd.Series:
    """
    Compute the population standard deviation of the preceding ``window``
    observations.

    Parameters
    ----------
    series : pd.Series
        Input series.
    window : int
        Rolling window size.

    Returns
    -------
    pd.Series
        Trailing standard deviation, NaN for the first ``window`` positions.

    Notes
    -----
    Uses divisor N (``ddof=0``), not the Bessel-corrected N-1.
    """
    return ts_delay(series.rolling(window=window, min_periods=window).std(ddof=0), 1)


def ts_zscore(series: pd.Series, window: int) -> pd.Series:
    """
    Compute the z-score of each observation against its preceding window.

    z_t = (x_t - mean(x_{t-window..t-1})) / std(x_{t-window..t-1})

    Parameters
    ----------
    series : pd.Series
        Input series.
    window : int
        Lookback window size.

    Returns
    -------
    pd.Series
        Z-scores, NaN for the first ``window`` positions. Windows whose values
        are all identical (or whose standard deviation is zero) yield 0.

    Examples
    --------
    >>> ts_zscore(pd.Series([0.04] * 5 + [0.05]), window=5).iloc[-1]
    0.0
    """
    series = series.astype(float)
    rolling = series.rolling(window=window, min_periods=window)

    mean = ts_delay(rolling.mean(), 1)
    std = ts_delay(rolling.std(ddof=0), 1)
    flat = (rolling.max() == rolling.min()).shift(1, fill_value=False)

    with np.errstate(divide='ignore', invalid='ignore'):
        zscore = (series - mean) / std

    return zscore.mask(flat | (std == 0), 0.0)


__all__ = ['ts_delay', 'ts_mean', 'ts_std', 'ts_zscore']
