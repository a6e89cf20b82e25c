"""
Parameter Sweep - Independent Backtests Across Parameter Combinations
Runs one engine per StrategyParameters value, optionally in parallel.
"""

from __future__ import annotations

import itertools
import warnings
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

import pandas as pd
from loguru import logger

from powerhodl.backtest.engine import PortfolioBacktestEngine, RatioInput, split_ratio_input
from powerhodl.backtest.exceptions import InsufficientDataError
from powerhodl.backtest.models import PortfolioState, StrategyParameters


PARAMETER_COLUMNS = ['lookback_window', 'zscore_threshold', 'rebalance_fraction', 'transaction_cost_rate']


def parameter_grid(
    lookback_windows: Iterable[int],
    zscore_thresholds: Iterable[float],
    rebalance_fractions: Iterable[float],
    transaction_cost_rates: Iterable[float],
) -> List[StrategyParameters]:
    """
    Cartesian product of the given values as validated parameter sets.

    Raises
    ------
    InvalidParameterError
        If any combination is out of range.

    Examples
    --------
    >>> grid = parameter_grid([10, 15], [1.0, 1.5], [0.5], [0.0166])
    >>> len(grid)
    4
    """
    grid = []
    for lookback, threshold, fraction, cost in itertools.product(
        lookback_windows, zscore_thresholds, rebalance_fractions, transaction_cost_rates
    ):
        params = StrategyParameters(
            lookback_window=lookback,
            zscore_threshold=threshold,
            rebalance_fraction=fraction,
            transaction_cost_rate=cost,
        )
        params.validate()
        grid.append(params)
    return grid


def _run_single(
    parameters: StrategyParameters,
    ratios: pd.Series,
    initial_state: PortfolioState,
) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Run one backtest and flatten it to a result row.

    Returns (row, None) on success and (None, reason) when the series is too
    short. Warnings are left to the caller, since this may run in a worker
    process.
    """
    try:
        result = PortfolioBacktestEngine(parameters).run(ratios, initial_state)
    except InsufficientDataError as e:
        return None, str(e)

    row = {col: getattr(parameters, col) for col in PARAMETER_COLUMNS}
    row.update(result.metrics.as_dict())
    return row, None


class ParameterSweep:
    """
    Runs many independent backtests over the same ratio series.

    Each run gets its own engine and its own copy of the initial state, so no
    mutable data is shared and runs may execute in any order on any worker.

    Parameters
    ----------
    ratios : pd.Series, sequence of RatioObservation, or sequence of float
        Ratio series shared (read-only) by every run.
    initial_state : PortfolioState
        Starting holdings for every run.
    executor : {'process', 'thread', 'serial'}, default='process'
        How runs are distributed.
    max_workers : int, optional
        Pool size; defaults to the executor's own default.

    Examples
    --------
    >>> sweep = ParameterSweep(ratios, PortfolioState(eth_amount=0.2, btc_amount=0.0077))
    >>> table = sweep.run(parameter_grid([10, 15, 20], [1.0, 1.26, 1.5], [0.3, 0.5], [0.0166]))
    >>> table.head()
    """

    def __init__(
        self,
        ratios: RatioInput,
        initial_state: PortfolioState,
        executor: Literal['process', 'thread', 'serial'] = 'process',
        max_workers: Optional[int] = None,
    ):
        if executor not in ('process', 'thread', 'serial'):
            raise ValueError(f"executor must be 'process', 'thread' or 'serial', got {executor}")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        initial_state.validate()
        dates, values = split_ratio_input(ratios)
        self.ratios = pd.Series(values, index=dates)
        self.initial_state = initial_state.copy()
        self.executor = executor
        self.max_workers = max_workers

    def _make_executor(self) -> Executor:
        if self.executor == 'process':
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def run(self, parameter_sets: Sequence[StrategyParameters]) -> pd.DataFrame:
        """
        Backtest every parameter set.

        Parameter sets are validated up front, so a bad combination fails the
        sweep before any run starts. Combinations whose lookback window is too
        long for the series are skipped with a warning.

        Returns
        -------
        pd.DataFrame
            One row per completed run: parameter columns followed by every
            PerformanceMetrics field, sorted by ``total_return_pct``
            descending.
        """
        completed = self._collect(parameter_sets)

        if not completed:
            return pd.DataFrame(columns=PARAMETER_COLUMNS)

        table = pd.DataFrame([row for _, row in completed])
        return table.sort_values('total_return_pct', ascending=False, kind='mergesort').reset_index(drop=True)

    def _collect(
        self,
        parameter_sets: Sequence[StrategyParameters],
    ) -> List[Tuple[StrategyParameters, Dict[str, Any]]]:
        """Run every set and pair each completed row with its parameters, in input order."""
        for params in parameter_sets:
            params.validate()

        logger.info("Sweeping {} parameter sets ({})", len(parameter_sets), self.executor)

        if self.executor == 'serial':
            outcomes = [_run_single(p, self.ratios, self.initial_state) for p in parameter_sets]
        else:
            n = len(parameter_sets)
            with self._make_executor() as pool:
                outcomes = list(pool.map(
                    _run_single,
                    parameter_sets,
                    [self.ratios] * n,
                    [self.initial_state] * n,
                ))

        completed = []
        for params, (row, skip_reason) in zip(parameter_sets, outcomes):
            if row is None:
                message = f"Skipping {params}: {skip_reason}"
                warnings.warn(message)
                logger.warning(message)
            else:
                completed.append((params, row))

        logger.info("Sweep finished: {} of {} runs completed", len(completed), len(parameter_sets))
        return completed

    def best(self, parameter_sets: Sequence[StrategyParameters]) -> StrategyParameters:
        """
        Parameter set with the highest total return.

        Returns the object passed in, so preset names and versions survive.
        Ties go to the earliest set, matching the order of :meth:`run`.

        Raises
        ------
        ValueError
            If no run completed.
        """
        completed = self._collect(parameter_sets)
        if not completed:
            raise ValueError("No parameter set produced a completed backtest")

        params, _ = max(completed, key=lambda pair: pair[1]['total_return_pct'])
        return params


__all__ = ['ParameterSweep', 'parameter_grid']
