#!/usr/bin/env python3
"""
Core logic for mcmctreer.

This package contains:
- Node resolution (clade definitions to tree nodes)
- Cauchy calibration estimation (mcmctreer.core.cauchy)
- Shared constants
"""

from .node_resolution import (
    find_common_ancestor,
    internal_nodes,
    clade_signature,
    node_number,
)

__all__ = [
    'find_common_ancestor',
    'internal_nodes',
    'clade_signature',
    'node_number',
]
