"""
Signals Module for PowerHODL
Rolling z-score signal and trailing-window operators.
"""

from powerhodl.factors.base import SignalBase
from powerhodl.factors.zscore import RollingZScoreSignal, classify
from powerhodl.factors import operators

__all__ = ['SignalBase', 'RollingZScoreSignal', 'classify', 'operators']
