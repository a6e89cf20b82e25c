"""
Example: Parameter Sweep
Backtests a small grid of parameter sets in parallel and writes charts for
the best one.
"""

import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from powerhodl.backtest import PortfolioBacktestEngine, PortfolioState, StrategyParameters
from powerhodl.analysis import reporter
from powerhodl.data import generate_synthetic_ratios
from powerhodl.pipeline import ParameterSweep, parameter_grid


def main():
    print("=" * 70)
    print("PowerHODL Parameter Sweep Example")
    print("=" * 70)

    ratios = generate_synthetic_ratios(days=500, seed=7)
    initial = PortfolioState(eth_amount=0.2, btc_amount=0.0077)

    grid = parameter_grid(
        lookback_windows=[10, 15, 20, 30],
        zscore_thresholds=[1.0, 1.26, 1.5, 2.0],
        rebalance_fractions=[0.3, 0.5, 0.7],
        transaction_cost_rates=[0.0166],
    )
    print(f"\nSweeping {len(grid)} parameter sets over {len(ratios)} synthetic days...")

    sweep = ParameterSweep(ratios, initial, executor='process')
    table = sweep.run(grid)

    columns = [
        'lookback_window', 'zscore_threshold', 'rebalance_fraction',
        'total_return_pct', 'excess_return_pct', 'trade_count', 'max_drawdown_pct',
    ]
    print("\nTop 10 parameter sets by total return:")
    print(table[columns].head(10).to_string(index=False, float_format=lambda x: f"{x:.4f}"))

    top = table.iloc[0]
    best = StrategyParameters(
        lookback_window=int(top['lookback_window']),
        zscore_threshold=float(top['zscore_threshold']),
        rebalance_fraction=float(top['rebalance_fraction']),
        transaction_cost_rate=float(top['transaction_cost_rate']),
    )
    result = PortfolioBacktestEngine(best).run(ratios, initial)

    output_dir = Path(__file__).parent / 'output'
    output_dir.mkdir(exist_ok=True)
    reporter.plot_equity_curve(result).write_html(output_dir / 'equity_curve.html')
    reporter.plot_zscore(result).write_html(output_dir / 'zscore.html')
    print(f"\nCharts for the best set written to {output_dir}")


if __name__ == '__main__':
    main()
