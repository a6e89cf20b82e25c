"""
Analysis Module for PowerHODL
Extended statistics and chart output for finished backtests.
"""

from powerhodl.analysis import metrics, reporter

__all__ = [
    'metrics',
    'reporter',
]
