#!/usr/bin/env python3
"""
Node resolution for mcmctreer.

Maps a clade definition (a set of tip names) onto the internal node of a
Bio.Phylo tree whose descendant tips are exactly that set. Internal nodes
are identified by their clade signature, the frozen set of descendant tip
names, so resolution does not depend on the order in which names are given
or on how the tree happens to be written.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List

from Bio.Phylo.BaseTree import Clade, Tree

from ..exceptions import CladeLookupError

logger = logging.getLogger(__name__)


def tip_names(tree: Tree) -> List[str]:
    """Return the tip names of the tree in preorder."""
    return [leaf.name for leaf in tree.get_terminals()]


def internal_nodes(tree: Tree) -> List[Clade]:
    """
    Return the internal nodes in the tree library's numbering.

    The order is a preorder traversal starting at the root, which matches
    numbering internal nodes ntips+1 .. ntips+nnodes.
    """
    return tree.get_nonterminals(order="preorder")


def clade_signature(clade: Clade) -> FrozenSet[str]:
    """Frozen set of tip names below a clade."""
    return frozenset(leaf.name for leaf in clade.get_terminals())


def node_number(tree: Tree, clade: Clade) -> int:
    """Node number of an internal clade, counting from ntips + 1 at the root."""
    for index, node in enumerate(internal_nodes(tree)):
        if node is clade:
            return tree.count_terminals() + index + 1
    raise CladeLookupError("Clade is not an internal node of this tree",
                           taxa=clade_signature(clade))


def signature_index(tree: Tree) -> Dict[FrozenSet[str], Clade]:
    """
    Map each internal node's clade signature to the node.

    Raises:
        CladeLookupError: if tip names are duplicated, which makes signatures
            ambiguous
    """
    names = tip_names(tree)
    if len(set(names)) != len(names):
        duplicated = sorted({name for name in names if names.count(name) > 1})
        raise CladeLookupError(
            f"Tree has duplicated tip names: {', '.join(map(str, duplicated))}",
            taxa=duplicated)

    index = {}
    for clade in internal_nodes(tree):
        signature = clade_signature(clade)
        # Unary nodes share a signature with their child; keep the
        # ancestor so that resolution returns the deepest matching node.
        index.setdefault(signature, clade)
    return index


def find_common_ancestor(tree: Tree, taxa: Iterable[str]) -> Clade:
    """
    Find the internal node whose descendant tips are exactly ``taxa``.

    Args:
        tree: Fully resolved Bio.Phylo tree
        taxa: Tip names defining the clade, in any order

    Returns:
        The internal Clade that is the most recent common ancestor of
        exactly these tips

    Raises:
        CladeLookupError: if a name is not a tip of the tree, or the tips
            do not form a clade of their own
    """
    wanted = frozenset(taxa)
    if len(wanted) < 2:
        raise CladeLookupError(
            "At least two tip names are needed to define an internal node",
            taxa=wanted)

    known = set(tip_names(tree))
    missing = wanted - known
    if missing:
        raise CladeLookupError(
            f"Tip names not found in tree: {', '.join(sorted(missing))}",
            taxa=wanted, context={'missing': sorted(missing)})

    clade = signature_index(tree).get(wanted)
    if clade is None:
        mrca = tree.common_ancestor(*sorted(wanted))
        extra = sorted(clade_signature(mrca) - wanted)
        raise CladeLookupError(
            f"Tips do not form a clade; their common ancestor also "
            f"includes: {', '.join(extra)}",
            taxa=wanted, context={'extra': extra})

    logger.debug(f"Resolved {len(wanted)} taxa to node {node_number(tree, clade)}")
    return clade
