"""
Rolling Z-Score Signal Module
Measures how extreme each ETH/BTC ratio is relative to the days before it.
"""

from __future__ import annotations

import math
from typing import Sequence, Union

import numpy as np
import pandas as pd

from powerhodl.backtest.exceptions import InvalidParameterError
from powerhodl.backtest.models import TradeAction
from powerhodl.factors.base import SignalBase, SeriesLike


class RollingZScoreSignal(SignalBase):
    """
    Z-score of each observation against the preceding ``lookback_window``
    observations.

    For index i >= lookback_window::

        window = values[i - lookback_window : i]
        z_i = (values[i] - mean(window)) / pstdev(window)

    The current observation is never part of its own window, and the
    standard deviation uses divisor N. A window with zero variance carries no
    tradable signal and yields 0.

    Parameters
    ----------
    lookback_window : int
        Number of preceding observations in each window. Must be >= 2.

    Examples
    --------
    >>> signal = RollingZScoreSignal(lookback_window=5)
    >>> signal.value_at([0.04, 0.04, 0.04, 0.04, 0.04, 0.05], 5)
    0.0
    >>> zscores = signal.compute(ratios)  # NaN for the first 5 positions
    """

    def __init__(self, lookback_window: int) -> None:
        if isinstance(lookback_window, bool) or not isinstance(lookback_window, int):
            raise InvalidParameterError('lookback_window', lookback_window, 'must be an integer')
        if lookback_window < 2:
            raise InvalidParameterError('lookback_window', lookback_window, 'must be >= 2')

        super().__init__(
            name=f"zscore_{lookback_window}",
            params={'lookback_window': lookback_window},
        )
        self.lookback_window = lookback_window

    def value_at(self, values: Union[Sequence[float], np.ndarray], i: int) -> float:
        """
        Z-score of ``values[i]`` against ``values[i - lookback_window : i]``.

        Parameters
        ----------
        values : sequence of float
            Full ratio series; read only.
        i : int
            Position to evaluate. Must satisfy
            ``lookback_window <= i < len(values)``.

        Returns
        -------
        float
            Z-score, or 0.0 when the window has zero variance.

        Raises
        ------
        IndexError
            If the window for ``i`` is not fully available.
        """
        n = self.lookback_window
        if i < n or i >= len(values):
            raise IndexError(
                f"z-score undefined at index {i} for lookback {n} "
                f"and series of length {len(values)}"
            )

        window = np.asarray(values[i - n:i], dtype=float)
        # All-equal windows are degenerate even if mean/std round-off is not
        if window.max() == window.min():
            return 0.0

        mean = window.mean()
        std = window.std()
        if std == 0 or not math.isfinite(std):
            return 0.0

        return float((float(values[i]) - mean) / std)

    def compute(self, values: SeriesLike) -> pd.Series:
        """
        Z-score for every position of ``values``.

        Returns
        -------
        pd.Series
            Aligned with the input index; the first ``lookback_window``
            entries are NaN.
        """
        series = self._to_series(values)
        raw = series.to_numpy(dtype=float)

        out = np.full(len(raw), np.nan)
        for i in range(self.lookback_window, len(raw)):
            out[i] = self.value_at(raw, i)

        return pd.Series(out, index=series.index, name=self.name)

    def latest(self, values: SeriesLike) -> float:
        """Z-score of the final observation."""
        raw = self._to_series(values).to_numpy(dtype=float)
        return self.value_at(raw, len(raw) - 1)


def classify(zscore: float, threshold: float) -> TradeAction:
    """
    Map a z-score to the mean-reversion action it calls for.

    ETH relatively expensive (z above +threshold) calls for selling ETH;
    relatively cheap (z below -threshold) calls for buying ETH.

    Examples
    --------
    >>> classify(2.0, 1.26)
    <TradeAction.SELL_ETH: 'SELL_ETH'>
    >>> classify(-0.5, 1.26)
    <TradeAction.HOLD: 'HOLD'>
    """
    if zscore > threshold:
        return TradeAction.SELL_ETH
    if zscore < -threshold:
        return TradeAction.BUY_ETH
    return TradeAction.HOLD


__all__ = ['RollingZScoreSignal', 'classify']
