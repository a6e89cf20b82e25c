"""
Backtest Exceptions Module
Error types raised before a simulation starts.
"""

from __future__ import annotations


class PowerHodlError(Exception):
    """Base class for all PowerHodl errors."""


class InvalidParameterError(PowerHodlError, ValueError):
    """A strategy parameter or initial holding is outside its valid range."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field}={value!r}: {reason}")


class InsufficientDataError(PowerHodlError, ValueError):
    """The ratio series is too short for the requested lookback window."""

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"Need at least {required} ratio observations, got {available}"
        )


__all__ = ['PowerHodlError', 'InvalidParameterError', 'InsufficientDataError']
