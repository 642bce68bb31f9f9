#!/usr/bin/env python3
"""
Visualization for mcmctreer.

Plots approximate Cauchy calibration densities using matplotlib.
"""

from .plot_manager import CauchyPlotter

__all__ = [
    'CauchyPlotter'
]
