"""
Backtest Module for PowerHODL
Provides the ETH/BTC z-score rebalancing engine, its data model and presets.
"""

from powerhodl.backtest.exceptions import (
    PowerHodlError,
    InvalidParameterError,
    InsufficientDataError,
)
from powerhodl.backtest.models import (
    TradeAction,
    RatioObservation,
    StrategyParameters,
    PortfolioState,
    TradeRecord,
    DailySnapshot,
    PerformanceMetrics,
    BacktestResult,
)
from powerhodl.backtest.engine import PortfolioBacktestEngine, split_ratio_input
from powerhodl.backtest.presets import MEGA_OPTIMAL, CONSERVATIVE, AGGRESSIVE, get_preset, list_presets
from powerhodl.backtest import utils

__all__ = [
    'PowerHodlError',
    'InvalidParameterError',
    'InsufficientDataError',
    'TradeAction',
    'RatioObservation',
    'StrategyParameters',
    'PortfolioState',
    'TradeRecord',
    'DailySnapshot',
    'PerformanceMetrics',
    'BacktestResult',
    'PortfolioBacktestEngine',
    'split_ratio_input',
    'MEGA_OPTIMAL',
    'CONSERVATIVE',
    'AGGRESSIVE',
    'get_preset',
    'list_presets',
    'utils',
]
