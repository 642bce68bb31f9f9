#!/usr/bin/env python3
"""
Reader for MCMCTree's annotated output tree (FigTree.tre).

MCMCTree writes its dated tree as Newick with a bracketed annotation after
each internal node, for example::

    UTREE 1 = ((a: 0.3, b: 0.3) [&95%={0.2, 0.45}]: 0.7, c: 1.0) [&95%={0.8, 1.3}];

This module turns that text into a Bio.Phylo tree whose branch lengths are
the posterior mean times, plus a table of mean ages and 95% credibility
intervals for every internal node in the tree's own node order.
"""

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

import numpy as np
from Bio import Phylo
from Bio.Phylo.BaseTree import Clade, Tree

from ..core.constants import FIGTREE_TREE_FIELD, NODE_AGE_COLUMNS
from ..core.node_resolution import clade_signature, internal_nodes, tip_names
from ..exceptions import ParseError

logger = logging.getLogger(__name__)

ANNOTATION_RE = re.compile(r"\[.*?\]", re.DOTALL)
INTERVAL_RE = re.compile(r"\{([^{}]*)\}")

# Tokens of the annotated tree: brackets, structure, then anything else up to
# the next structural character (tip names, node labels, branch lengths).
TOKEN_RE = re.compile(r"\[.*?\]|[(),:;]|[^\[\](),:;]+", re.DOTALL)


@dataclass
class NodeAgeTable:
    """
    Mean ages and 95% credibility intervals for internal nodes.

    Row i describes the i-th internal node of the tree in preorder, i.e.
    node number ``ntips + i + 1``.
    """
    ages: np.ndarray
    node_numbers: List[int]
    columns: Tuple[str, ...] = NODE_AGE_COLUMNS

    def __len__(self) -> int:
        return self.ages.shape[0]

    @property
    def mean(self) -> np.ndarray:
        return self.ages[:, 0]

    @property
    def lower(self) -> np.ndarray:
        return self.ages[:, 1]

    @property
    def upper(self) -> np.ndarray:
        return self.ages[:, 2]

    def row(self, node: int) -> Dict[str, float]:
        """Ages of a node given its node number."""
        try:
            index = self.node_numbers.index(node)
        except ValueError:
            raise KeyError(f"No internal node numbered {node}")
        return dict(zip(self.columns, (float(v) for v in self.ages[index])))

    def to_tsv(self) -> str:
        lines = ["node\t" + "\t".join(self.columns)]
        for number, (mean, lower, upper) in zip(self.node_numbers, self.ages):
            lines.append(f"{number}\t{mean:.6g}\t{lower:.6g}\t{upper:.6g}")
        return "\n".join(lines) + "\n"

    def write(self, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        with open(output_path, 'w') as fh:
            fh.write(self.to_tsv())
        logger.info(f"Node ages written to: {output_path}")
        return output_path


@dataclass
class MCMCTreeOutput:
    """Dated tree and node age table read from MCMCTree output."""
    tree: Tree
    node_ages: NodeAgeTable


def split_fields(text: str) -> List[str]:
    """
    Split text into tab separated fields across lines.

    Blank lines are skipped; a line starting with a tab contributes an empty
    first field, which is why the tree ends up as the fourth field of
    MCMCTree's FigTree.tre.
    """
    fields = []
    for line in text.splitlines():
        if not line.strip():
            continue
        fields.extend(line.split("\t"))
    return fields


def extract_tree_text(text: str, file_path: Optional[str] = None) -> str:
    """Return the annotated tree field of a FigTree.tre file's contents."""
    fields = split_fields(text)
    if len(fields) <= FIGTREE_TREE_FIELD:
        raise ParseError(
            f"Expected the tree in field {FIGTREE_TREE_FIELD + 1} but found "
            f"only {len(fields)} fields", file_path=file_path)
    tree_text = fields[FIGTREE_TREE_FIELD]
    if "(" not in tree_text:
        raise ParseError(
            f"Field {FIGTREE_TREE_FIELD + 1} does not contain a tree: {tree_text[:60]!r}",
            file_path=file_path)
    return tree_text


def strip_annotations(text: str) -> str:
    """
    Remove bracketed annotations and anything before the tree.

    Whitespace is dropped as well, since MCMCTree writes a space after each
    colon and tip names cannot contain spaces.
    """
    clean = ANNOTATION_RE.sub("", text)
    start = clean.find("(")
    if start < 0:
        raise ParseError("No parenthetical tree found")
    return re.sub(r"\s+", "", clean[start:])


def parse_interval(annotation: str, position: Optional[int] = None) -> Tuple[float, float]:
    """
    Parse the ``{lower,upper}`` pair of one bracketed annotation.

    Anything before the braces (``&95%=``, ``&95%HPD=``) is ignored.
    """
    match = INTERVAL_RE.search(annotation)
    if match is None:
        raise ParseError(f"No {{lower,upper}} interval in annotation {annotation!r}",
                         position=position)
    parts = match.group(1).split(",")
    if len(parts) != 2:
        raise ParseError(f"Expected two values in annotation {annotation!r}, "
                         f"found {len(parts)}", position=position)
    try:
        lower, upper = (float(part) for part in parts)
    except ValueError:
        raise ParseError(f"Non-numeric interval in annotation {annotation!r}",
                         position=position)
    return lower, upper


def annotated_signatures(text: str) -> List[Tuple[FrozenSet[str], Tuple[float, float]]]:
    """
    Pair each bracketed annotation with the clade it follows.

    Annotations are returned in textual order together with the signature
    (set of descendant tip names) of the group whose closing parenthesis
    they follow.

    Raises:
        ParseError: if an annotation does not follow a closing parenthesis,
            or the parentheses are unbalanced
    """
    start = text.find("(")
    if start < 0:
        raise ParseError("No parenthetical tree found")

    stack: List[List[str]] = []
    closed: Optional[FrozenSet[str]] = None
    expect_name = False
    after_colon = False
    result = []

    for match in TOKEN_RE.finditer(text, start):
        token = match.group()
        if token.startswith("["):
            if closed is None:
                raise ParseError(f"Annotation {token!r} does not follow a closing "
                                 f"parenthesis", position=match.start())
            result.append((closed, parse_interval(token, match.start())))
            closed = None
        elif token == "(":
            stack.append([])
            closed = None
            expect_name = True
        elif token == ",":
            closed = None
            expect_name = True
            after_colon = False
        elif token == ")":
            if not stack:
                raise ParseError("Unbalanced parentheses", position=match.start())
            members = stack.pop()
            if stack:
                stack[-1].extend(members)
            closed = frozenset(members)
            expect_name = False
            after_colon = False
        elif token == ":":
            after_colon = True
        elif token == ";":
            break
        else:
            name = token.strip()
            if not name:
                continue
            if after_colon:
                after_colon = False
            elif expect_name:
                stack[-1].append(name)
                expect_name = False

    if stack:
        raise ParseError("Unbalanced parentheses")
    return result


def branching_times(tree: Tree) -> Dict[Clade, float]:
    """
    Age of each internal node: tree height minus its distance from the root.
    """
    depths = tree.depths()
    height = max(depths[leaf] for leaf in tree.get_terminals())
    return {clade: height - depths[clade] for clade in internal_nodes(tree)}


def parse_annotated_tree(text: str) -> MCMCTreeOutput:
    """
    Parse annotated MCMCTree tree text into a tree and node age table.

    Args:
        text: The tree field of FigTree.tre, optionally prefixed by
            ``UTREE 1 =``

    Returns:
        MCMCTreeOutput whose table rows follow the tree's internal node order

    Raises:
        ParseError: if the tree is malformed or the annotations do not match
            the internal nodes one to one
    """
    clean = strip_annotations(text)
    try:
        tree = Phylo.read(io.StringIO(clean), "newick")
    except Exception as e:
        raise ParseError(f"Could not parse tree: {e}")

    nodes = internal_nodes(tree)
    annotations = annotated_signatures(text)
    if len(annotations) != len(nodes):
        raise ParseError(
            f"Found {len(annotations)} node annotations for {len(nodes)} internal nodes",
            context={'annotations': len(annotations), 'internal_nodes': len(nodes)})

    names = tip_names(tree)
    if len(set(names)) != len(names):
        raise ParseError("Duplicated tip names; node annotations cannot be matched")

    intervals = {}
    for signature, interval in annotations:
        if signature in intervals:
            raise ParseError(f"Two annotations for the clade {sorted(signature)}")
        intervals[signature] = interval

    mean_ages = branching_times(tree)
    rows = []
    for clade in nodes:
        signature = clade_signature(clade)
        if signature not in intervals:
            raise ParseError(f"No annotation found for the clade {sorted(signature)}")
        lower, upper = intervals[signature]
        rows.append((mean_ages[clade], lower, upper))

    ntips = len(names)
    table = NodeAgeTable(ages=np.array(rows, dtype=float).reshape(len(rows), 3),
                         node_numbers=list(range(ntips + 1, ntips + len(nodes) + 1)))
    logger.debug(f"Parsed {ntips} tips and {len(nodes)} annotated internal nodes")
    return MCMCTreeOutput(tree=tree, node_ages=table)


def make_ultrametric(tree: Tree) -> Tree:
    """
    Extend terminal branches so that every tip is equally far from the root.

    Each tip's root-to-tip path length is computed and the difference to the
    longest path is added to its terminal branch. Internal branches are not
    changed. The tree is modified in place and returned.
    """
    path_lengths = {}
    for leaf in tree.get_terminals():
        path = tree.get_path(leaf)
        path_lengths[leaf] = sum(clade.branch_length or 0.0 for clade in path)

    longest = max(path_lengths.values())
    for leaf, length in path_lengths.items():
        leaf.branch_length = (leaf.branch_length or 0.0) + (longest - length)
    logger.debug(f"Terminal branches extended to a root-to-tip length of {longest}")
    return tree


def read_mcmctree(input_path: Union[str, Path], force_ultrametric: bool = True) -> MCMCTreeOutput:
    """
    Read MCMCTree's FigTree.tre output.

    Args:
        input_path: Path of the FigTree.tre file written by MCMCTree
        force_ultrametric: Extend terminal branches so the tree is exactly
            ultrametric

    Returns:
        MCMCTreeOutput with the time-scaled tree and node age table
    """
    input_path = Path(input_path)
    with open(input_path) as fh:
        text = fh.read()

    tree_text = extract_tree_text(text, file_path=str(input_path))
    try:
        output = parse_annotated_tree(tree_text)
    except ParseError as e:
        e.context.setdefault('file_path', str(input_path))
        raise

    if force_ultrametric:
        make_ultrametric(output.tree)

    logger.info(f"Read {len(output.node_ages)} dated nodes from {input_path}")
    return output
