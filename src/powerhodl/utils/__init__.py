"""Utility subpackage."""

from powerhodl.utils.logging import setup_logging

__all__ = ['setup_logging']
