#!/usr/bin/env python3
"""
Plot management module for mcmctreer visualizations.

This module centralizes all matplotlib imports and draws the Cauchy
calibration densities, one page per node, into a PDF. The curves are
approximations for checking calibrations by eye; MCMCTree's own density
is not reproduced exactly.
"""

import logging
from pathlib import Path
from typing import Sequence, Tuple, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.backends.backend_pdf import PdfPages

from ..core.cauchy import CauchyParameters

logger = logging.getLogger(__name__)


def approximate_density(params: CauchyParameters, times: np.ndarray) -> np.ndarray:
    """
    Approximate MCMCTree's soft-bound Cauchy calibration density.

    Above tL the density is a Cauchy with location tL(1 + p) and scale c*tL,
    truncated at tL and carrying mass 1 - pL. Below tL a power-law tail
    carries mass pL and meets the Cauchy part at tL.

    Args:
        params: Fitted calibration parameters
        times: Ages at which to evaluate the density

    Returns:
        Density values, the same shape as ``times``
    """
    t_l, p, c, p_l = params.as_tuple()
    times = np.asarray(times, dtype=float)
    location = t_l * (1 + p)
    width = c * t_l
    # Mass of the untruncated Cauchy above tL
    truncated_mass = 0.5 + np.arctan(p / c) / np.pi

    def right_tail(t):
        return (1 - p_l) / (np.pi * width * truncated_mass * (1 + ((t - location) / width) ** 2))

    density = np.zeros_like(times)
    above = times >= t_l
    density[above] = right_tail(times[above])

    below = (times > 0) & ~above
    if np.any(below):
        at_bound = right_tail(t_l)
        with np.errstate(over='ignore', under='ignore'):
            theta = at_bound * t_l / p_l
            density[below] = at_bound * (times[below] / t_l) ** (theta - 1)
    return density


class CauchyPlotter:
    """
    Draws approximate Cauchy calibration densities.
    """

    def __init__(self, figsize: Tuple[int, int] = (7, 7), points: int = 1000,
                 font_family: str = "serif"):
        """
        Initialize the plotter.

        Args:
            figsize: Figure size (width, height) of each page
            points: Number of ages at which densities are evaluated
            font_family: Matplotlib font family for the PDF
        """
        self.figsize = figsize
        self.points = points
        self.font_family = font_family

    def plot_density(self, ax, params: CauchyParameters, title: str, upper_time: float) -> None:
        """Draw one calibration density onto an axis."""
        times = np.linspace(0, upper_time, self.points)
        density = approximate_density(params, times)

        ax.plot(times, density, color=sns.color_palette("viridis", 3)[0], linewidth=2)
        ax.fill_between(times, density, alpha=0.3, color=sns.color_palette("viridis", 3)[0])
        ax.axvline(params.location, color='grey', linestyle='--', alpha=0.7)
        if params.upper_estimate is not None:
            ax.axvline(params.upper_estimate, color='grey', linestyle=':', alpha=0.7)

        ax.set_xlim(0, upper_time)
        ax.set_xlabel("Time")
        ax.set_ylabel("Density")
        ax.set_title(title)

    def plot_densities(self, parameters: Sequence[CauchyParameters], names: Sequence[str],
                       output_path: Union[str, Path], upper_time: float) -> Path:
        """
        Write one density plot per calibration into a PDF.

        An existing file at ``output_path`` is deleted after a warning.

        Args:
            parameters: Fitted calibrations
            names: Node names used in the page titles
            output_path: PDF file to write
            upper_time: Right end of the time axis

        Returns:
            Path of the PDF written
        """
        output_path = Path(output_path)
        logger.warning("Warning - cauchy plots will be approximations!")
        if output_path.exists():
            logger.warning(f"Warning - deleting and over-writing file {output_path}")
            output_path.unlink()

        sns.set_style("ticks")
        with plt.rc_context({'font.family': self.font_family}):
            with PdfPages(str(output_path)) as pdf:
                for params, name in zip(parameters, names):
                    fig, ax = plt.subplots(figsize=self.figsize)
                    try:
                        self.plot_density(ax, params, f"{name} cauchy", upper_time)
                        sns.despine(ax=ax)
                        pdf.savefig(fig)
                    finally:
                        plt.close(fig)

        logger.info(f"Created {len(parameters)} calibration density plots: {output_path}")
        return output_path
