#!/usr/bin/env python3
"""
Constraint tree writing for MCMCTree.

Attaches calibration labels to the internal nodes of a Bio.Phylo tree and
renders it in the tree-file layout MCMCTree reads: the tip count and tree
count, the Newick tree with node labels in ``'L(tL,p,c,pL)'`` form, and an
end-of-file marker.
"""

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Union

from Bio.Phylo.BaseTree import Clade, Tree

from ..core.constants import MCMCTREE_FOOTER
from ..core.node_resolution import find_common_ancestor, internal_nodes

logger = logging.getLogger(__name__)


@dataclass
class MCMCTreeInput:
    """The three columns of an MCMCTree tree file row."""
    header: str
    tree: str
    footer: str = MCMCTREE_FOOTER

    def as_row(self) -> List[str]:
        return [self.header, self.tree, self.footer]

    def to_text(self) -> str:
        """Render as a headerless, space separated, three column row."""
        return " ".join(self.as_row()) + "\n"


def label_tree(phy: Tree, mono_groups: Sequence[Sequence[str]],
               node_labels: Sequence[str]) -> Tree:
    """
    Return a copy of ``phy`` with labels on the nodes defined by ``mono_groups``.

    Existing internal node names are cleared so that only the given labels
    are written. Tip names are untouched.

    Raises:
        ValueError: if the number of groups and labels differ
        CladeLookupError: if a group does not define a node of the tree
    """
    if len(mono_groups) != len(node_labels):
        raise ValueError(f"{len(mono_groups)} clade definitions but "
                         f"{len(node_labels)} node labels")

    labelled = copy.deepcopy(phy)
    for clade in internal_nodes(labelled):
        clade.name = None
        clade.confidence = None

    for taxa, label in zip(mono_groups, node_labels):
        clade = find_common_ancestor(labelled, taxa)
        if clade.name is not None:
            logger.warning(f"Node {sorted(taxa)} already labelled {clade.name}; "
                           f"replacing with {label}")
        clade.name = label
    return labelled


def mcmctree_label(label: str) -> str:
    """Convert a ``'L[a~b~c~d]'`` label to MCMCTree's ``'L(a,b,c,d)'`` form."""
    return label.replace("[", "(").replace("]", ")").replace("~", ",")


def _clade_to_newick(clade: Clade) -> str:
    if clade.is_terminal():
        return clade.name or ""
    children = ",".join(_clade_to_newick(child) for child in clade.clades)
    label = mcmctree_label(clade.name) if clade.name else ""
    return f"({children}){label}"


def to_mcmctree_newick(tree: Tree) -> str:
    """
    Write the tree as Newick for MCMCTree, without branch lengths.

    Unlabelled internal nodes are written bare, so no placeholder label
    ends up after a closing parenthesis.
    """
    return _clade_to_newick(tree.root) + ";"


def to_mcmctree_input(tree: Tree) -> MCMCTreeInput:
    """Build the MCMCTree tree-file record for a labelled tree."""
    return MCMCTreeInput(header=f"{tree.count_terminals()} 1",
                         tree=to_mcmctree_newick(tree))


def write_mcmctree_input(record: MCMCTreeInput, output_path: Union[str, Path]) -> Path:
    """Write an MCMCTree tree-file record and return the path written."""
    output_path = Path(output_path)
    with open(output_path, 'w') as fh:
        fh.write(record.to_text())
    logger.info(f"MCMCTree input tree written to: {output_path}")
    return output_path
