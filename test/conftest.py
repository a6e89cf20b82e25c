"""
Pytest configuration and shared fixtures for PowerHODL tests
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from powerhodl.backtest import PortfolioState, StrategyParameters  # noqa: E402
from powerhodl.data import generate_synthetic_ratios  # noqa: E402


@pytest.fixture
def params():
    """Parameters close to the mega-optimal preset, rounded for readability."""
    return StrategyParameters(
        lookback_window=15,
        zscore_threshold=1.26,
        rebalance_fraction=0.4979,
        transaction_cost_rate=0.0166,
    )


@pytest.fixture
def initial_state():
    """Roughly balanced starting holdings at a 0.04 ratio."""
    return PortfolioState(eth_amount=0.2, btc_amount=0.0077)


@pytest.fixture
def ratios():
    """200 days of seeded synthetic ETH/BTC ratios."""
    return generate_synthetic_ratios(days=200, seed=11)
