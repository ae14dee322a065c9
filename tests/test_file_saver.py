"""Tests for tuner_core.file_saver -- the results table."""

import numpy as np
import pytest

from tuner_core.chromosome import decode_parameters, start_chromosome
from tuner_core.file_saver import build_results_table, save_results_to_text_file
from tuner_core.fitness import FIELD_ORDER, WORST_FITNESS, ClusteringMetrics
from tuner_core.parameters import PARAMETERS


@pytest.fixture
def batch():
    values = [decode_parameters(start_chromosome(bits_per_field=16))] * 2
    metrics = [ClusteringMetrics.from_values([0.5] * 11), ClusteringMetrics()]
    fitness = [5.5, WORST_FITNESS]
    return values, metrics, fitness


class TestBuildResultsTable:

    def test_columns_and_shape(self, batch):
        columns, table = build_results_table(*batch)
        assert columns == [d.title for d in PARAMETERS] + list(FIELD_ORDER) + ["fitness"]
        assert table.shape == (2, len(PARAMETERS) + 11 + 1)

    def test_row_content(self, batch):
        _, table = build_results_table(*batch)
        assert table[0, len(PARAMETERS)] == 0.5
        assert table[0, -1] == 5.5
        assert table[1, len(PARAMETERS)] == 99999
        assert np.isinf(table[1, -1])

    def test_length_mismatch(self, batch):
        values, metrics, fitness = batch
        with pytest.raises(ValueError):
            build_results_table(values, metrics, fitness[:1])

    def test_empty(self):
        with pytest.raises(ValueError):
            build_results_table([], [], [])

    def test_differing_titles(self, batch):
        values, metrics, fitness = batch
        renamed = dict(values[1])
        renamed["kernelIndex"] = renamed.pop("kernel")
        with pytest.raises(ValueError):
            build_results_table([values[0], renamed], metrics, fitness)


class TestSaveResults:

    def test_written_table_loads_back(self, batch, tmp_path):
        columns, table = build_results_table(*batch)
        path = tmp_path / "evaluated_candidates.txt"
        save_results_to_text_file(str(path), columns, table)

        header = path.read_text().splitlines()[0]
        assert header == "# " + "\t".join(columns)
        loaded = np.loadtxt(path, delimiter="\t", ndmin=2)
        np.testing.assert_allclose(loaded, table, rtol=1e-9)

    def test_unwritable_path_is_logged_not_raised(self, batch, tmp_path):
        columns, table = build_results_table(*batch)
        save_results_to_text_file(str(tmp_path / "missing_dir" / "out.txt"), columns, table)
        assert not (tmp_path / "missing_dir").exists()
