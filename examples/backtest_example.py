"""
Example: Basic Backtest Engine Usage
Runs the mega-optimal preset over a synthetic ETH/BTC ratio series.

The ratio series is generated, not market data; the numbers printed here
only illustrate the engine's output.
"""

import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from powerhodl.backtest import MEGA_OPTIMAL, PortfolioBacktestEngine, PortfolioState
from powerhodl.analysis.metrics import summarize_result
from powerhodl.data import generate_synthetic_ratios
from powerhodl.utils import setup_logging


def main():
    """Main example execution."""

    setup_logging("INFO")

    print("=" * 70)
    print("PowerHODL Backtest Engine - Basic Example")
    print("=" * 70)

    # Step 1: Prepare data
    print("\n[Step 1] Generating synthetic ratio data...")
    ratios = generate_synthetic_ratios(days=365, seed=42)
    print(f"  - Observations: {len(ratios)} (synthetic={ratios.attrs['synthetic']})")
    print(f"  - Date range: {ratios.index.min().date()} to {ratios.index.max().date()}")
    print(f"  - Ratio range: {ratios.min():.5f} to {ratios.max():.5f}")

    # Step 2: Configure backtest
    print("\n[Step 2] Configuring backtest engine...")
    params = MEGA_OPTIMAL
    initial = PortfolioState(eth_amount=0.2, btc_amount=0.0077)
    print(f"  - Lookback window:    {params.lookback_window} days")
    print(f"  - Z-score threshold:  {params.zscore_threshold:.4f}")
    print(f"  - Rebalance fraction: {params.rebalance_fraction:.2%}")
    print(f"  - Transaction cost:   {params.transaction_cost_rate:.2%}")
    print(f"  - Starting holdings:  {initial.eth_amount} ETH + {initial.btc_amount} BTC")

    # Step 3: Run backtest
    print("\n[Step 3] Running backtest simulation...")
    engine = PortfolioBacktestEngine(params)
    result = engine.run(ratios, initial)
    print("  ✓ Backtest completed successfully")

    # Step 4: Display results
    print("\n[Step 4] Backtest Results")
    print("-" * 70)

    m = result.metrics
    print("\nPerformance (BTC terms):")
    print(f"  - Starting Value:     {m.starting_value_btc:>12.6f} BTC")
    print(f"  - Final Value:        {m.final_value_btc:>12.6f} BTC")
    print(f"  - Total Return:       {m.total_return_pct:>11.2f}%")
    print(f"  - Buy & Hold Return:  {m.buy_hold_return_pct:>11.2f}%")
    print(f"  - Excess Return:      {m.excess_return_pct:>11.2f}%")
    print(f"  - Annualized Return:  {m.annualized_return:>11.2%}")
    print(f"  - Max Drawdown:       {m.max_drawdown_pct:>11.2f}%")
    print(f"  - Peak Drawdown:      {m.peak_drawdown_pct:>11.2f}%")
    print(f"  - Win Rate (days):    {m.win_rate:>11.2f}%")
    print(f"  - Sharpe Ratio:       {m.sharpe_ratio:>11.4f}")

    print("\nTrade Statistics:")
    print(f"  - Total Trades:       {m.trade_count:>10}")
    print(f"  - Winning / Losing:   {m.winning_trades:>4} / {m.losing_trades}")
    print(f"  - Total Fees:         {m.total_fees_btc:>12.6f} BTC ({m.fee_impact_pct:.2f}% of final)")
    print(f"  - Trades per Year:    {m.trade_frequency:>10.1f}")

    trades = result.trades_frame()
    if not trades.empty:
        print(f"  - Buy ETH:            {int((trades['action'] == 'BUY_ETH').sum()):>10}")
        print(f"  - Sell ETH:           {int((trades['action'] == 'SELL_ETH').sum()):>10}")

    summary = summarize_result(result)
    print("\nRisk Statistics:")
    print(f"  - Annual Volatility:  {summary['annual_volatility']:>10.2%}")
    print(f"  - Sortino Ratio:      {summary['sortino_ratio']:>10.4f}")
    print(f"  - Info Ratio vs Hold: {summary['information_ratio']:>10.4f}")
    print(f"  - Excess t-stat (NW): {summary['excess_t_stat']:>10.4f} (p={summary['excess_p_value']:.3f})")

    print("\nFinal Holdings:")
    print(f"  - ETH: {result.final_state.eth_amount:.6f}")
    print(f"  - BTC: {result.final_state.btc_amount:.6f}")
    print(f"  - ETH allocation: {m.final_eth_allocation_pct:.1f}%")

    print("\n" + "=" * 70)
    print("End of Example")
    print("=" * 70)


if __name__ == '__main__':
    main()
