"""Pipeline subpackage."""

from powerhodl.pipeline.sweep import ParameterSweep, parameter_grid

__all__ = ['ParameterSweep', 'parameter_grid']
