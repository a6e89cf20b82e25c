"""
Data Module for PowerHODL
Input-feed normalization and synthetic demo series.
"""

from powerhodl.data.loader import to_ratio_series, from_observations, load_ratio_file
from powerhodl.data.synthetic import generate_synthetic_ratios, generate_demo_ratios

__all__ = [
    'to_ratio_series',
    'from_observations',
    'load_ratio_file',
    'generate_synthetic_ratios',
    'generate_demo_ratios',
]
