"""
Tests for Cauchy calibration estimation.
"""

import logging

import numpy as np
import pytest

from mcmctreer.config_models import CladeCalibration
from mcmctreer.core.cauchy import (
    CauchyParameters, calibrations_from_vectors, estimate_cauchy, fit_cauchy,
    format_node_label, scale_grid, search_scale, upper_bound_estimate
)
from mcmctreer.core.node_resolution import find_common_ancestor
from mcmctreer.exceptions import CladeLookupError, InputLengthMismatch


class TestScaleSearch:
    """Test the grid search for the Cauchy scale."""

    def test_scale_grid(self):
        grid = scale_grid()

        assert len(grid) == 10000
        assert grid[0] == 0.001
        assert grid[-1] == 10.0

    def test_upper_estimate_increases_with_scale(self):
        estimates = upper_bound_estimate(0.6, 0.1, scale_grid())

        assert np.all(np.diff(estimates) > 0)

    def test_scalar_input_gives_float(self):
        assert isinstance(upper_bound_estimate(0.6, 0.1, 0.2), float)

    def test_known_scale(self):
        scale, upper = search_scale(0.6, 1.2, 0.1)

        assert scale == pytest.approx(0.035)
        assert upper == pytest.approx(1.1983, abs=1e-4)

    def test_estimate_close_to_maximum(self):
        scale, upper = search_scale(0.8, 1.2, 0.1)

        assert scale == pytest.approx(0.022)
        assert abs(upper - 1.2) < 1e-3

    @pytest.mark.parametrize("min_age,max_age,offset", [
        (0.6, 1.2, 0.1),
        (1.5, 3.0, 0.5),
        (1.3, 2.0, 0.1),
    ])
    def test_no_neighbouring_scale_is_closer(self, min_age, max_age, offset):
        scale, upper = search_scale(min_age, max_age, offset)
        neighbours = upper_bound_estimate(min_age, offset,
                                          np.array([scale - 0.001, scale + 0.001]))

        assert np.all(np.abs(neighbours - max_age) >= abs(upper - max_age))


class TestFitCauchy:
    """Test fitting a single calibration."""

    def test_searched_scale_and_label(self):
        calibration = CladeCalibration(taxa=["a", "b"], min_age=0.6, max_age=1.2)
        params = fit_cauchy(calibration)

        assert params.scale == pytest.approx(0.035)
        assert params.min_prob == 1e-300
        assert format_node_label(params) == "'L[0.6~0.1~0.035~1e-300]'"

    def test_fixed_scale(self):
        calibration = CladeCalibration(taxa=["a", "b"], min_age=0.6, max_age=1.2,
                                       scale=0.2, estimate_scale=False)
        params = fit_cauchy(calibration)

        assert params.scale == 0.2
        assert params.upper_estimate is None
        assert format_node_label(params) == "'L[0.6~0.1~0.2~1e-300]'"

    def test_left_tail_probability_kept(self):
        calibration = CladeCalibration(taxa=["a", "b"], min_age=0.6, max_age=1.2,
                                       min_prob=0.025)
        params = fit_cauchy(calibration)

        assert params.min_prob == 0.025
        assert params.upper_estimate == pytest.approx(
            upper_bound_estimate(0.6, 0.1, params.scale, 0.975, 0.025))

    def test_search_logged(self, caplog_debug):
        fit_cauchy(CladeCalibration(taxa=["a", "b"], min_age=0.6, max_age=1.2))

        assert "gives upper bound" in caplog_debug.text

    def test_parameters_as_dict(self):
        params = CauchyParameters(location=1.0, offset=0.1, scale=0.2, min_prob=1e-300)

        assert params.as_dict() == {'tL': 1.0, 'p': 0.1, 'c': 0.2, 'pL': 1e-300}


class TestCalibrationsFromVectors:
    """Test building calibrations from parallel vectors."""

    def test_scalars_apply_to_every_clade(self, mono_groups, minimum_times, maximum_times):
        calibrations = calibrations_from_vectors(minimum_times, maximum_times, mono_groups,
                                                 offset=0.5)

        assert len(calibrations) == 4
        assert all(c.offset == 0.5 for c in calibrations)
        assert calibrations[3].taxa == ["sumatran", "orangutan"]
        assert calibrations[3].max_age == 2.0

    def test_single_value_recycled_with_warning(self, mono_groups, minimum_times,
                                                maximum_times, caplog):
        with caplog.at_level(logging.WARNING):
            calibrations = calibrations_from_vectors(minimum_times, maximum_times,
                                                     mono_groups, max_prob=[0.95])

        assert [c.max_prob for c in calibrations] == [0.95] * 4
        assert "max_prob value recycled for all 4 clades" in caplog.text

    def test_one_value_per_clade(self, mono_groups, minimum_times, maximum_times):
        calibrations = calibrations_from_vectors(minimum_times, maximum_times, mono_groups,
                                                 offset=[0.1, 0.2, 0.3, 0.4],
                                                 names=["apes", "african", "hominini", "pongo"])

        assert [c.offset for c in calibrations] == [0.1, 0.2, 0.3, 0.4]
        assert calibrations[0].name == "apes"

    def test_partial_vector_rejected(self, mono_groups, minimum_times, maximum_times):
        with pytest.raises(InputLengthMismatch) as exc_info:
            calibrations_from_vectors(minimum_times, maximum_times, mono_groups,
                                      offset=[0.1, 0.2])

        assert exc_info.value.parameter == 'offset'
        assert exc_info.value.context['found'] == 2

    def test_age_lengths_must_match(self, mono_groups, minimum_times):
        with pytest.raises(InputLengthMismatch, match="Length of ages do not match"):
            calibrations_from_vectors(minimum_times, [3.0, 1.2, 1.2], mono_groups)

    def test_group_count_must_match(self, mono_groups, minimum_times, maximum_times):
        with pytest.raises(InputLengthMismatch):
            calibrations_from_vectors(minimum_times, maximum_times, mono_groups[:2])

    def test_invalid_bounds(self, mono_groups):
        with pytest.raises(ValueError):
            calibrations_from_vectors([1.2], [0.6], mono_groups[:1])


class TestEstimateCauchy:
    """Test estimate_cauchy end to end."""

    @pytest.fixture
    def calibrations(self, mono_groups, minimum_times, maximum_times):
        return calibrations_from_vectors(minimum_times, maximum_times, mono_groups)

    def test_estimate(self, ape_tree, calibrations):
        estimate = estimate_cauchy(ape_tree, calibrations)

        assert estimate.row_names == ["node_1", "node_2", "node_3", "node_4"]
        assert estimate.parameter_table.shape == (4, 4)
        np.testing.assert_allclose(estimate.parameter_table[:, 0], [1.5, 0.6, 0.8, 1.3])
        assert estimate.node_labels[1] == "'L[0.6~0.1~0.035~1e-300]'"
        assert estimate.output_files == {}

    def test_labels_on_tree(self, ape_tree, calibrations, mono_groups):
        estimate = estimate_cauchy(ape_tree, calibrations)

        for taxa, label in zip(mono_groups, estimate.node_labels):
            assert find_common_ancestor(estimate.tree, taxa).name == label
        assert find_common_ancestor(estimate.tree, ["chimpanzee", "bonobo"]).name is None
        # The input tree is left untouched
        assert ape_tree.root.name is None

    def test_mcmctree_record(self, ape_tree, calibrations):
        record = estimate_cauchy(ape_tree, calibrations).mcmctree

        assert record.header == "7 1"
        assert record.footer == "//end of file"
        assert record.tree.count("'L(") == 4
        assert "NA" not in record.tree

    def test_named_rows(self, ape_tree, calibrations):
        calibrations[0].name = "hominoidea"
        estimate = estimate_cauchy(ape_tree, calibrations)

        assert estimate.row_names[0] == "hominoidea"
        assert estimate.row_names[1] == "node_2"

    def test_write_mcmctree(self, ape_tree, calibrations, temp_dir):
        output = temp_dir / "cauchyInput.tre"
        estimate = estimate_cauchy(ape_tree, calibrations, write_mcmctree=True,
                                   mcmctree_file=output)

        assert estimate.output_files['mcmctree'] == output
        assert output.read_text() == estimate.mcmctree.to_text()

    def test_unknown_clade(self, ape_tree):
        calibration = CladeCalibration(taxa=["human", "martian"], min_age=0.6, max_age=1.2)

        with pytest.raises(CladeLookupError):
            estimate_cauchy(ape_tree, [calibration])

    def test_no_calibrations(self, ape_tree):
        with pytest.raises(InputLengthMismatch):
            estimate_cauchy(ape_tree, [])
