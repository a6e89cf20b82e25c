"""
Signal Base Class Module
Provides abstract base class for signals computed over a ratio series.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Sequence, Union
import numpy as np
import pandas as pd


SeriesLike = Union[pd.Series, Sequence[float], np.ndarray]


class SignalBase(ABC):
    """
    Abstract base class for signals in the PowerHODL framework.

    A signal maps an ordered series of observations (ETH/BTC ratios) to a
    parallel series of values. Signals must be pure: the same input always
    produces the same output and no state is carried between calls.

    Attributes
    ----------
    name : str
        Unique identifier for this signal instance
    params : dict
        Configuration parameters for the signal computation

    Examples
    --------
    >>> class RatioMomentum(SignalBase):
    ...     def compute(self, values):
    ...         series = self._to_series(values)
    ...         return series.pct_change(self.params['period'])
    """

    def __init__(self, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize a signal instance.

        Parameters
        ----------
        name : str
            Unique identifier for this signal
        params : dict, optional
            Configuration parameters. If None, an empty dict is used.

        Raises
        ------
        TypeError
            If name is not a string or params is not a dict or None
        """
        if not isinstance(name, str):
            raise TypeError(f"name must be a string, got {type(name).__name__}")

        if params is not None and not isinstance(params, dict):
            raise TypeError(f"params must be a dict or None, got {type(params).__name__}")

        self.name = name
        self.params = params if params is not None else {}

    @abstractmethod
    def compute(self, values: SeriesLike) -> pd.Series:
        """
        Compute signal values for every position of the input.

        Parameters
        ----------
        values : pd.Series or sequence of float
            Chronologically ordered observations.

        Returns
        -------
        pd.Series
            Signal values aligned with the input index. Positions where the
            signal is undefined hold NaN.
        """

    @staticmethod
    def _to_series(values: SeriesLike) -> pd.Series:
        """Wrap plain sequences in a float Series with an ordinal index."""
        if isinstance(values, pd.Series):
            return values.astype(float)
        return pd.Series(np.asarray(values, dtype=float))

    def __repr__(self) -> str:
        params_str = ', '.join(f"{k}={v}" for k, v in self.params.items())
        if params_str:
            return f"{self.__class__.__name__}(name='{self.name}', params={{{params_str}}})"
        return f"{self.__class__.__name__}(name='{self.name}')"


__all__ = ['SignalBase', 'SeriesLike']
