#!/usr/bin/env python3
"""
I/O operations for mcmctreer.

This package handles:
- Reading MCMCTree's annotated output tree and node ages
- Writing constraint trees in MCMCTree input format
"""

from .output_reader import MCMCTreeOutput, NodeAgeTable, read_mcmctree, parse_annotated_tree
from .tree_writer import MCMCTreeInput, label_tree, to_mcmctree_input, write_mcmctree_input

__all__ = [
    'MCMCTreeOutput',
    'NodeAgeTable',
    'read_mcmctree',
    'parse_annotated_tree',
    'MCMCTreeInput',
    'label_tree',
    'to_mcmctree_input',
    'write_mcmctree_input',
]
