"""
PowerHODL
Z-score mean-reversion backtesting for an ETH/BTC two-asset portfolio.

Library logging is silent until ``powerhodl.utils.setup_logging`` is called.
"""

from loguru import logger

from powerhodl.backtest import (
    PowerHodlError,
    InvalidParameterError,
    InsufficientDataError,
    TradeAction,
    RatioObservation,
    StrategyParameters,
    PortfolioState,
    TradeRecord,
    DailySnapshot,
    PerformanceMetrics,
    BacktestResult,
    PortfolioBacktestEngine,
    MEGA_OPTIMAL,
    CONSERVATIVE,
    AGGRESSIVE,
    get_preset,
    list_presets,
)
from powerhodl.factors import RollingZScoreSignal, classify

logger.disable("powerhodl")

__version__ = "0.1.0"

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
    'MEGA_OPTIMAL',
    'CONSERVATIVE',
    'AGGRESSIVE',
    'get_preset',
    'list_presets',
    'RollingZScoreSignal',
    'classify',
]
