"""
Backtest Reporter Module
Chart-ready series for any front end, and interactive Plotly figures.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from powerhodl.analysis.metrics import buy_and_hold_curve
from powerhodl.backtest.models import BacktestResult, TradeAction, date_to_primitive


ACTION_COLORS = {
    TradeAction.BUY_ETH: '#2ca02c',
    TradeAction.SELL_ETH: '#d62728',
}


def to_chart_series(result: BacktestResult) -> Dict[str, List[Any]]:
    """
    Flatten a result into plain lists, one entry per simulated day.

    Returns
    -------
    dict
        labels : ISO dates (or ordinals when the input had no dates)
        total_value_btc : strategy value
        buy_and_hold_btc : untouched starting holdings
        zscore : signal value
        trade_markers : one dict per executed trade with ``index`` (position
        in ``labels``), ``label``, ``action`` and ``ratio``

    Examples
    --------
    >>> series = to_chart_series(result)
    >>> len(series['labels']) == len(result.snapshots)
    True
    """
    labels = [date_to_primitive(s.date) for s in result.snapshots]
    hold = buy_and_hold_curve(result) if result.snapshots else []

    markers = []
    for i, snap in enumerate(result.snapshots):
        if snap.action is not TradeAction.HOLD:
            markers.append({
                'index': i,
                'label': labels[i],
                'action': snap.action.value,
                'ratio': snap.ratio,
            })

    return {
        'labels': labels,
        'total_value_btc': [s.total_value_btc for s in result.snapshots],
        'buy_and_hold_btc': [float(v) for v in hold],
        'zscore': [s.zscore for s in result.snapshots],
        'trade_markers': markers,
    }


def plot_equity_curve(
    result: BacktestResult,
    title: str = "Strategy vs Buy-and-Hold (BTC)",
    log_scale: bool = False
) -> go.Figure:
    """
    Plot the strategy's BTC value against the buy-and-hold baseline.

    Parameters
    ----------
    result : BacktestResult
        Finished run.
    title : str
        Chart title.
    log_scale : bool, default=False
        Use logarithmic y-axis.

    Returns
    -------
    plotly.graph_objects.Figure
        Interactive chart with two traces.
    """
    equity = result.equity_curve['total_value_btc']
    hold = buy_and_hold_curve(result)

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=equity.index,
        y=equity.values,
        name='Strategy',
        mode='lines',
        line=dict(color='#1f77b4', width=2),
    ))

    fig.add_trace(go.Scatter(
        x=hold.index,
        y=hold.values,
        name='Buy & Hold',
        mode='lines',
        line=dict(color='#ff7f0e', width=2, dash='dash'),
    ))

    fig.update_layout(
        title=title,
        xaxis_title='Date',
        yaxis_title='Portfolio Value (BTC)',
        hovermode='x unified',
        template='plotly_white',
        yaxis_type='log' if log_scale else 'linear',
        height=600,
    )

    return fig


def plot_zscore(result: BacktestResult, title: Optional[str] = None) -> go.Figure:
    """
    Plot the ratio and its z-score with threshold bands and trade markers.

    The top panel shows the ETH/BTC ratio, the bottom the z-score with
    dotted lines at +/- ``zscore_threshold``. Executed trades are marked on
    both panels.
    """
    curve = result.equity_curve
    threshold = result.parameters.zscore_threshold
    lookback = result.parameters.lookback_window

    fig = make_subplots(
        rows=2, cols=1,
        shared_xaxes=True,
        row_heights=[0.5, 0.5],
        subplot_titles=('ETH/BTC Ratio', f'Z-Score ({lookback}-day lookback)'),
    )

    fig.add_trace(go.Scatter(
        x=curve.index,
        y=curve['ratio'],
        name='Ratio',
        mode='lines',
        line=dict(color='#7f7f7f', width=1.5),
    ), row=1, col=1)

    fig.add_trace(go.Scatter(
        x=curve.index,
        y=curve['zscore'],
        name='Z-Score',
        mode='lines',
        line=dict(color='#1f77b4', width=1.5),
    ), row=2, col=1)

    for level in (threshold, -threshold):
        fig.add_hline(y=level, line=dict(color='#9467bd', dash='dot'), row=2, col=1)

    for action, color in ACTION_COLORS.items():
        trades = curve[curve['action'] == action.value]
        if trades.empty:
            continue
        fig.add_trace(go.Scatter(
            x=trades.index,
            y=trades['ratio'],
            name=action.value,
            mode='markers',
            marker=dict(color=color, size=9, symbol='triangle-up' if action is TradeAction.BUY_ETH else 'triangle-down'),
        ), row=1, col=1)
        fig.add_trace(go.Scatter(
            x=trades.index,
            y=trades['zscore'],
            name=action.value,
            mode='markers',
            marker=dict(color=color, size=7),
            showlegend=False,
        ), row=2, col=1)

    fig.update_layout(
        title=title or f"Z-Score Signal (threshold {threshold:g})",
        hovermode='x unified',
        template='plotly_white',
        height=700,
    )

    return fig


__all__ = ['to_chart_series', 'plot_equity_curve', 'plot_zscore']
