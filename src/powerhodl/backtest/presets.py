"""
Strategy Presets Module
Named, versioned parameter sets. Callers pass one to the engine explicitly;
the engine has no built-in default.
"""

from __future__ import annotations

from typing import Dict, List

from powerhodl.backtest.models import StrategyParameters


# Found by the 250-iteration genetic parameter search
MEGA_OPTIMAL = StrategyParameters(
    lookback_window=15,
    zscore_threshold=1.257672,
    rebalance_fraction=0.49792708,
    transaction_cost_rate=0.016646603,
    name='mega_optimal',
    version='1',
)

CONSERVATIVE = StrategyParameters(
    lookback_window=30,
    zscore_threshold=2.0,
    rebalance_fraction=0.30,
    transaction_cost_rate=0.01,
    name='conservative',
    version='1',
)

AGGRESSIVE = StrategyParameters(
    lookback_window=10,
    zscore_threshold=0.8,
    rebalance_fraction=0.70,
    transaction_cost_rate=0.025,
    name='aggressive',
    version='1',
)

_PRESETS: Dict[str, StrategyParameters] = {
    preset.name: preset for preset in (MEGA_OPTIMAL, CONSERVATIVE, AGGRESSIVE)
}


def list_presets() -> List[str]:
    """Names of all registered presets, sorted."""
    return sorted(_PRESETS)


def get_preset(name: str) -> StrategyParameters:
    """
    Look up a preset by name.

    Raises
    ------
    KeyError
        If ``name`` is not registered.
    """
    try:
        return _PRESETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown preset {name!r}; available: {', '.join(list_presets())}"
        ) from None


__all__ = ['MEGA_OPTIMAL', 'CONSERVATIVE', 'AGGRESSIVE', 'list_presets', 'get_preset']
