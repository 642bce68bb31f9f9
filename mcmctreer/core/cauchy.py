#!/usr/bin/env python3
"""
Cauchy soft-bound prior estimation for MCMCTree calibrations.

MCMCTree's ``L(tL, p, c, pL)`` calibration places a hard-ish minimum at tL
and a heavy Cauchy tail above it. Given a minimum and maximum age for a
clade, the scale c is searched on a fixed grid so that the requested
probability mass (maxProb) lies below the maximum age.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from Bio.Phylo.BaseTree import Tree

from ..config_models import CladeCalibration
from ..exceptions import InputLengthMismatch
from ..io.tree_writer import MCMCTreeInput, label_tree, to_mcmctree_input, write_mcmctree_input
from .constants import (
    DEFAULT_ESTIMATE_SCALE,
    DEFAULT_MAX_PROB,
    DEFAULT_MCMCTREE_OUTPUT,
    DEFAULT_MIN_PROB,
    DEFAULT_OFFSET,
    DEFAULT_PDF_OUTPUT,
    DEFAULT_SCALE,
    MIN_PROB_FLOOR,
    MIN_PROB_THRESHOLD,
    PARAMETER_COLUMNS,
    SCALE_GRID_START,
    SCALE_GRID_STEP,
    SCALE_GRID_STOP,
)

logger = logging.getLogger(__name__)


@dataclass
class CauchyParameters:
    """
    Parameters of one MCMCTree Cauchy calibration.

    Attributes:
        location: Minimum age tL
        offset: Offset p
        scale: Scale c, always positive
        min_prob: Left tail probability pL
        upper_estimate: Upper age implied by the fitted scale, if searched
    """
    location: float
    offset: float
    scale: float
    min_prob: float
    upper_estimate: Optional[float] = None

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.location, self.offset, self.scale, self.min_prob)

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(PARAMETER_COLUMNS, self.as_tuple()))


@dataclass
class CauchyEstimate:
    """
    Result of estimate_cauchy.

    Attributes:
        parameters: One CauchyParameters per calibration, in input order
        row_names: Row labels for the parameter table (node_1, node_2, ...)
        tree: Copy of the input tree with node labels on calibrated nodes
        mcmctree: The constraint tree as an MCMCTree input record
        node_labels: Label strings in MCMCTree node-label syntax
    """
    parameters: List[CauchyParameters]
    row_names: List[str]
    tree: Tree
    mcmctree: MCMCTreeInput
    node_labels: List[str]
    output_files: Dict[str, Path] = field(default_factory=dict)

    @property
    def parameter_table(self) -> np.ndarray:
        """Parameters as an (n, 4) array with columns tL, p, c, pL."""
        return np.array([p.as_tuple() for p in self.parameters], dtype=float)


def format_number(value: float) -> str:
    """Format a number the way MCMCTree labels expect (up to 15 significant digits)."""
    return f"{float(value):.15g}"


def format_node_label(params: CauchyParameters) -> str:
    """Build the quoted ``'L[tL~p~c~pL]'`` node label for a calibration."""
    fields = "~".join(format_number(v) for v in params.as_tuple())
    return f"'L[{fields}]'"


def scale_grid() -> np.ndarray:
    """Candidate scale values 0.001, 0.002, ..., 10.0."""
    count = int(round((SCALE_GRID_STOP - SCALE_GRID_START) / SCALE_GRID_STEP)) + 1
    return np.round(SCALE_GRID_START + np.arange(count) * SCALE_GRID_STEP, 3)


def upper_bound_estimate(min_age: float, offset: float,
                         scale: Union[float, np.ndarray],
                         max_prob: float = DEFAULT_MAX_PROB,
                         min_prob: float = DEFAULT_MIN_PROB) -> Union[float, np.ndarray]:
    """
    Upper age bound implied by a Cauchy calibration.

    The age below which a fraction ``max_prob`` of the prior mass lies:

        tL + p + c * cot(pi * (0.5 + atan(p / c) / pi) * (1 - maxProb) / (1 - minProb))

    Args:
        min_age: Minimum age tL
        offset: Offset p
        scale: Scale c, a scalar or an array of candidates
        max_prob: Probability mass below the maximum age
        min_prob: Probability mass below the minimum age

    Returns:
        A float for a scalar scale, otherwise an array the shape of ``scale``
    """
    c = np.asarray(scale, dtype=float)
    angle = np.pi * (0.5 + np.arctan(offset / c) / np.pi) * (1 - max_prob) / (1 - min_prob)
    estimate = min_age + offset + c / np.tan(angle)
    if estimate.ndim == 0:
        return float(estimate)
    return estimate


def search_scale(min_age: float, max_age: float, offset: float,
                 max_prob: float = DEFAULT_MAX_PROB,
                 min_prob: float = DEFAULT_MIN_PROB) -> Tuple[float, float]:
    """
    Find the grid scale whose implied upper bound is closest to ``max_age``.

    Ties go to the first (smallest) scale on the grid.

    Returns:
        Tuple of (scale, implied upper bound)
    """
    candidates = scale_grid()
    estimates = upper_bound_estimate(min_age, offset, candidates, max_prob, min_prob)
    closest = int(np.argmin(np.abs(estimates - max_age)))
    return float(candidates[closest]), float(estimates[closest])


def fit_cauchy(calibration: CladeCalibration) -> CauchyParameters:
    """
    Fit the Cauchy parameters for one clade calibration.

    When ``estimate_scale`` is false the configured scale and offset are
    used as given; otherwise the scale is searched for the configured
    offset. A left tail probability below 1e-7 is replaced by 1e-300 so
    that MCMCTree treats the minimum as hard without a zero probability.
    """
    scale = calibration.scale
    upper = None
    if calibration.estimate_scale:
        scale, upper = search_scale(calibration.min_age, calibration.max_age,
                                    calibration.offset, calibration.max_prob,
                                    calibration.min_prob)
        logger.debug(f"Scale {scale} gives upper bound {upper:.4f} "
                     f"(target {calibration.max_age})")

    min_prob = calibration.min_prob
    if min_prob < MIN_PROB_THRESHOLD:
        logger.debug(f"Left tail probability {min_prob} replaced by {MIN_PROB_FLOOR}")
        min_prob = MIN_PROB_FLOOR

    return CauchyParameters(location=calibration.min_age, offset=calibration.offset,
                            scale=scale, min_prob=min_prob, upper_estimate=upper)


def _broadcast(parameter: str, value: Any, count: int, default: Any) -> List[Any]:
    """
    Expand a per-clade parameter to ``count`` values.

    Scalars apply to every clade. A one-element sequence is recycled with a
    warning; any other length must match ``count``.
    """
    if value is None:
        return [default] * count
    if np.isscalar(value):
        return [value] * count

    values = list(value)
    if len(values) == count:
        return values
    if len(values) == 1:
        if count > 1:
            logger.warning(f"Warning - {parameter} value recycled for all {count} clades")
        return values * count
    raise InputLengthMismatch(
        f"{parameter} has {len(values)} values but there are {count} clades; "
        f"give one value or one per clade",
        parameter=parameter, expected=count, found=len(values))


def calibrations_from_vectors(min_age: Sequence[float], max_age: Sequence[float],
                              mono_groups: Sequence[Sequence[str]],
                              scale: Any = None, offset: Any = None,
                              estimate_scale: Any = None, min_prob: Any = None,
                              max_prob: Any = None,
                              names: Optional[Sequence[str]] = None) -> List[CladeCalibration]:
    """
    Build per-clade calibrations from parallel vectors.

    ``min_age``, ``max_age`` and ``mono_groups`` must have one entry per
    clade. Every other parameter may be a scalar, a single-element sequence
    (recycled across clades with a warning) or one value per clade; partial
    sequences are rejected rather than cycled.

    Raises:
        InputLengthMismatch: if the vectors cannot be aligned
    """
    min_ages = list(np.atleast_1d(min_age))
    max_ages = list(np.atleast_1d(max_age))
    groups = [list(group) for group in mono_groups]
    count = len(min_ages)

    if len(max_ages) != count:
        raise InputLengthMismatch("Length of ages do not match",
                                  parameter='max_age', expected=count, found=len(max_ages))
    if len(groups) != count:
        raise InputLengthMismatch("Number of clades does not match number of ages",
                                  parameter='mono_groups', expected=count, found=len(groups))

    scales = _broadcast('scale', scale, count, DEFAULT_SCALE)
    offsets = _broadcast('offset', offset, count, DEFAULT_OFFSET)
    estimates = _broadcast('estimate_scale', estimate_scale, count, DEFAULT_ESTIMATE_SCALE)
    min_probs = _broadcast('min_prob', min_prob, count, DEFAULT_MIN_PROB)
    max_probs = _broadcast('max_prob', max_prob, count, DEFAULT_MAX_PROB)
    labels = list(names) if names is not None else [None] * count
    if len(labels) != count:
        raise InputLengthMismatch("Number of names does not match number of clades",
                                  parameter='names', expected=count, found=len(labels))

    return [
        CladeCalibration(name=labels[i], taxa=groups[i], min_age=float(min_ages[i]),
                         max_age=float(max_ages[i]), scale=float(scales[i]),
                         offset=float(offsets[i]), estimate_scale=bool(estimates[i]),
                         min_prob=float(min_probs[i]), max_prob=float(max_probs[i]))
        for i in range(count)
    ]


def estimate_cauchy(phy: Tree, calibrations: Sequence[CladeCalibration],
                    plot: bool = False, pdf_output: Union[str, Path] = DEFAULT_PDF_OUTPUT,
                    write_mcmctree: bool = False,
                    mcmctree_file: Union[str, Path] = DEFAULT_MCMCTREE_OUTPUT) -> CauchyEstimate:
    """
    Estimate Cauchy calibrations and attach them to the tree.

    Args:
        phy: Fully resolved tree containing every calibrated clade
        calibrations: One CladeCalibration per node of interest
        plot: Write approximate density plots to ``pdf_output``
        pdf_output: PDF file for the plots; an existing file is replaced
        write_mcmctree: Write the constraint tree to ``mcmctree_file``
        mcmctree_file: Output path for the MCMCTree input tree

    Returns:
        CauchyEstimate with parameters, labelled tree and MCMCTree record

    Raises:
        InputLengthMismatch: if no calibrations are given
        CladeLookupError: if a calibration's taxa do not define a node
    """
    if not calibrations:
        raise InputLengthMismatch("At least one calibration is required",
                                  parameter='calibrations', expected=1, found=0)

    parameters = [fit_cauchy(calibration) for calibration in calibrations]
    labels = [format_node_label(params) for params in parameters]
    row_names = [calibration.name or f"node_{i}"
                 for i, calibration in enumerate(calibrations, start=1)]

    labelled = label_tree(phy, [calibration.taxa for calibration in calibrations], labels)
    record = to_mcmctree_input(labelled)
    logger.info(f"Estimated Cauchy calibrations for {len(parameters)} nodes")

    output_files = {}
    if write_mcmctree:
        output_files['mcmctree'] = write_mcmctree_input(record, mcmctree_file)

    if plot:
        from ..visualization.plot_manager import CauchyPlotter
        upper_time = max(calibration.max_age for calibration in calibrations) + 1
        plotter = CauchyPlotter()
        output_files['plot'] = plotter.plot_densities(parameters, row_names, pdf_output,
                                                      upper_time=upper_time)

    return CauchyEstimate(parameters=parameters, row_names=row_names, tree=labelled,
                          mcmctree=record, node_labels=labels, output_files=output_files)
