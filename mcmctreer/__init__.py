#!/usr/bin/env python3
"""
mcmctreer: helpers for MCMCTree divergence-time analyses.

Reads MCMCTree's dated output tree into Bio.Phylo with a table of node
ages, and fits Cauchy calibration priors to minimum/maximum age bounds for
writing MCMCTree constraint trees.
"""

__version__ = "0.1.0"

from .exceptions import (
    MCMCTreeRError,
    InputLengthMismatch,
    ParseError,
    CladeLookupError,
    ConfigurationError,
)
from .config_models import CladeCalibration
from .core.node_resolution import find_common_ancestor
from .core.cauchy import estimate_cauchy, calibrations_from_vectors, fit_cauchy
from .io.output_reader import read_mcmctree, parse_annotated_tree, make_ultrametric

__all__ = [
    'MCMCTreeRError',
    'InputLengthMismatch',
    'ParseError',
    'CladeLookupError',
    'ConfigurationError',
    'CladeCalibration',
    'find_common_ancestor',
    'estimate_cauchy',
    'calibrations_from_vectors',
    'fit_cauchy',
    'read_mcmctree',
    'parse_annotated_tree',
    'make_ultrametric',
]
