"""
Tests for reading MCMCTree's FigTree.tre output.
"""

import io

import numpy as np
import pytest
from Bio import Phylo

from mcmctreer.core.node_resolution import clade_signature, internal_nodes
from mcmctreer.exceptions import ParseError
from mcmctreer.io.output_reader import (
    annotated_signatures, extract_tree_text, make_ultrametric, parse_annotated_tree,
    parse_interval, read_mcmctree, split_fields, strip_annotations
)

# Rows in preorder: root, all but gibbon, African apes, human+chimps, chimps, orangutans
EXPECTED_AGES = [
    [3.0, 2.5, 3.6],
    [2.0, 1.7, 2.4],
    [1.0, 0.85, 1.2],
    [0.8, 0.6, 0.95],
    [0.3, 0.2, 0.45],
    [1.2, 0.9, 1.5],
]


class TestReadMCMCTree:
    """Test read_mcmctree on a complete output file."""

    def test_node_age_table(self, figtree_file):
        output = read_mcmctree(figtree_file)

        assert len(output.node_ages) == 6
        assert output.node_ages.node_numbers == [8, 9, 10, 11, 12, 13]
        np.testing.assert_allclose(output.node_ages.ages, EXPECTED_AGES, atol=1e-9)

    def test_rows_follow_tree_order(self, figtree_file):
        output = read_mcmctree(figtree_file)
        nodes = internal_nodes(output.tree)

        assert clade_signature(nodes[3]) == frozenset({"human", "chimpanzee", "bonobo"})
        assert output.node_ages.row(11)['95%_lower'] == pytest.approx(0.6)
        assert output.node_ages.row(13)['mean'] == pytest.approx(1.2)

    def test_intervals_contain_mean(self, figtree_file):
        ages = read_mcmctree(figtree_file).node_ages

        assert np.all(ages.lower <= ages.mean)
        assert np.all(ages.mean <= ages.upper)

    def test_tree_is_ultrametric(self, figtree_file):
        tree = read_mcmctree(figtree_file).tree
        depths = tree.depths()

        heights = [depths[leaf] for leaf in tree.get_terminals()]
        assert max(heights) - min(heights) == pytest.approx(0.0, abs=1e-9)

    def test_unknown_row(self, figtree_file):
        with pytest.raises(KeyError):
            read_mcmctree(figtree_file).node_ages.row(1)

    def test_mismatched_annotations(self, test_data_dir):
        with pytest.raises(ParseError) as exc_info:
            read_mcmctree(test_data_dir / "FigTree_mismatched.tre")

        assert exc_info.value.context['file_path'].endswith("FigTree_mismatched.tre")

    def test_file_without_tree(self, temp_dir):
        path = temp_dir / "empty.tre"
        path.write_text("#NEXUS\nBEGIN TREES;\nEND;\n")

        with pytest.raises(ParseError):
            read_mcmctree(path)

    def test_table_written(self, figtree_file, temp_dir):
        ages = read_mcmctree(figtree_file).node_ages
        path = ages.write(temp_dir / "ages.tsv")

        lines = path.read_text().splitlines()
        assert lines[0] == "node\tmean\t95%_lower\t95%_upper"
        assert lines[1] == "8\t3\t2.5\t3.6"
        assert len(lines) == 7


class TestParseAnnotatedTree:
    """Test parsing the annotated tree text itself."""

    def test_hpd_annotation_format(self):
        text = "UTREE 1 = ((a: 0.3, b: 0.3) [&95%HPD={0.2, 0.4}]: 0.7, c: 1.0) [&95%HPD={0.9, 1.1}];"
        output = parse_annotated_tree(text)

        np.testing.assert_allclose(output.node_ages.ages, [[1.0, 0.9, 1.1], [0.3, 0.2, 0.4]])
        assert output.node_ages.node_numbers == [4, 5]

    def test_annotations_matched_by_clade(self):
        text = "((a:1,b:1)[&95%={0.5,1.5}]:1,(c:0.5,d:0.5)[&95%={0.1,0.9}]:1.5)[&95%={1.5,2.5}];"
        ages = parse_annotated_tree(text).node_ages

        assert ages.row(5)['95%_upper'] == pytest.approx(2.5)
        assert ages.row(6)['95%_lower'] == pytest.approx(0.5)
        assert ages.row(7)['mean'] == pytest.approx(0.5)

    def test_missing_annotation(self):
        text = "((a:1,b:1):1,c:2)[&95%={1.5,2.5}];"

        with pytest.raises(ParseError):
            parse_annotated_tree(text)

    def test_annotation_on_tip(self):
        text = "((a:1[&95%={0.1,0.2}],b:1):1,c:2)[&95%={1.5,2.5}];"

        with pytest.raises(ParseError):
            parse_annotated_tree(text)

    def test_unbalanced_parentheses(self):
        with pytest.raises(ParseError):
            annotated_signatures("((a,b)[&95%={1,2}],c")

    def test_duplicated_tips(self):
        text = "((a:1,b:1)[&95%={0.5,1.5}]:1,(a:1,c:1)[&95%={0.5,1.5}]:1)[&95%={1.5,2.5}];"

        with pytest.raises(ParseError):
            parse_annotated_tree(text)


class TestTextHelpers:
    """Test field splitting and annotation parsing."""

    def test_split_fields_skips_blank_lines(self):
        assert split_fields("a\tb\n\n\tc\n") == ["a", "b", "", "c"]

    def test_extract_tree_text_too_few_fields(self):
        with pytest.raises(ParseError):
            extract_tree_text("#NEXUS\nBEGIN TREES;\n", file_path="x.tre")

    def test_extract_tree_text_not_a_tree(self):
        with pytest.raises(ParseError):
            extract_tree_text("#NEXUS\nBEGIN TREES;\n\tUTREE 1 = none\n")

    def test_strip_annotations(self):
        text = "UTREE 1 = ((a: 0.3, b: 0.3) [&95%={0.2, 0.45}]: 0.7, c: 1.0) [&95%={0.8, 1.3}];"

        assert strip_annotations(text) == "((a:0.3,b:0.3):0.7,c:1.0);"

    @pytest.mark.parametrize("annotation,expected", [
        ("[&95%={0.2, 0.45}]", (0.2, 0.45)),
        ("[&95%HPD={1e-2,3}]", (0.01, 3.0)),
    ])
    def test_parse_interval(self, annotation, expected):
        assert parse_interval(annotation) == pytest.approx(expected)

    @pytest.mark.parametrize("annotation", [
        "[&95%=0.2]",
        "[&95%={0.2}]",
        "[&95%={0.2, 0.3, 0.4}]",
        "[&95%={low, high}]",
    ])
    def test_parse_interval_errors(self, annotation):
        with pytest.raises(ParseError):
            parse_interval(annotation)


class TestMakeUltrametric:
    """Test terminal branch extension."""

    def test_only_terminal_branches_change(self):
        tree = Phylo.read(io.StringIO("((a:1.0,b:0.8):0.5,c:1.4);"), "newick")
        internal_before = [clade.branch_length for clade in internal_nodes(tree)]

        make_ultrametric(tree)

        lengths = {leaf.name: leaf.branch_length for leaf in tree.get_terminals()}
        assert lengths['a'] == pytest.approx(1.0)
        assert lengths['b'] == pytest.approx(1.0)
        assert lengths['c'] == pytest.approx(1.5)
        assert [clade.branch_length for clade in internal_nodes(tree)] == internal_before

    def test_read_without_correction(self, temp_dir):
        content = "#NEXUS\nBEGIN TREES;\n\n\tUTREE 1 = ((a: 1.0, b: 0.9) [&95%={0.8, 1.2}]: 1.0, c: 2.0) [&95%={1.8, 2.2}];\n\nEND;\n"
        path = temp_dir / "FigTree.tre"
        path.write_text(content)

        raw = read_mcmctree(path, force_ultrametric=False)
        fixed = read_mcmctree(path)

        assert raw.tree.find_any(name="b").branch_length == pytest.approx(0.9)
        assert fixed.tree.find_any(name="b").branch_length == pytest.approx(1.0)
