"""Tests for run_tuner -- batch construction, parallel evaluation and the full run."""

import inspect
import math
import shlex

import numpy as np
import pytest

import run_tuner
from tuner_core import config
from tuner_core.chromosome import decode_parameters, start_chromosome
from tuner_core.fitness import WORST_FITNESS, ClusteringMetrics
from tuner_core.ga_operators import CrossoverPolicy
from tuner_core.rng import RandomContext


@pytest.fixture
def run_config(fake_benchmark, template_config, work_dir, tmp_path):
    """Configuration snapshot pointing at the fake benchmark."""
    config_dict = run_tuner.collect_config_dict()
    config_dict.update({
        'BENCHMARK_COMMAND': fake_benchmark,
        'TEMPLATE_CONFIG_PATH': str(template_config),
        'WORK_DIR': str(work_dir),
        'OUTPUT_DIR': str(tmp_path / "results"),
        'POPULATION_SIZE': 4,
        'NUM_WORKERS': 1,
        'EVALUATION_TIMEOUT_SEC': 60,
    })
    return config_dict


class TestBuildCandidates:

    def test_first_candidate_is_start(self):
        candidates = run_tuner.build_candidates(RandomContext(1), 5, CrossoverPolicy.UNIFORM, 0.01, 16)
        assert len(candidates) == 5
        assert candidates[0] == start_chromosome(bits_per_field=16)

    def test_single_candidate(self):
        candidates = run_tuner.build_candidates(RandomContext(1), 1, "MultiPoint", 0.01, 16)
        assert candidates == [start_chromosome(bits_per_field=16)]

    @pytest.mark.parametrize("policy", list(CrossoverPolicy))
    def test_reproducible_with_seed(self, policy):
        first = run_tuner.build_candidates(RandomContext(9), 6, policy, 0.05, 12)
        second = run_tuner.build_candidates(RandomContext(9), 6, policy, 0.05, 12)
        assert first == second
        assert all(c.bits_per_field == 12 for c in first)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            run_tuner.build_candidates(RandomContext(1), 0, CrossoverPolicy.UNIFORM, 0.01)


class TestEvaluateCandidates:

    def test_inline_evaluation_keeps_order(self, run_config):
        candidates = run_tuner.build_candidates(RandomContext(3), 3, CrossoverPolicy.FIXED_SINGLE_POINT, 0.0, 16)
        results = run_tuner.evaluate_candidates(candidates, run_config, num_processes=1)

        assert len(results) == 3
        for metrics, fitness in results:
            assert metrics.is_complete()
            assert math.isfinite(fitness)
        kappa = decode_parameters(candidates[0])["kappa"]
        assert results[0][0].resolution_mean == pytest.approx(kappa / 100.0)

    def test_parallel_matches_inline(self, run_config):
        candidates = run_tuner.build_candidates(RandomContext(4), 4, CrossoverPolicy.UNIFORM, 0.01, 16)
        inline = run_tuner.evaluate_candidates(candidates, run_config, num_processes=1)
        parallel = run_tuner.evaluate_candidates(candidates, run_config, num_processes=2)
        assert [f for _, f in parallel] == pytest.approx([f for _, f in inline])

    def test_worker_error_reported_as_failure(self, run_config):
        run_config['BENCHMARK_COMMAND'] = ["/nonexistent/algoBenchmark"]
        index, metrics, fitness = run_tuner.evaluate_job_wrapper((7, start_chromosome(), run_config))
        assert index == 7
        assert metrics == ClusteringMetrics()
        assert fitness == WORST_FITNESS


class TestMain:

    def test_full_run_writes_results(self, run_config, tmp_path, work_dir):
        candidates, results = run_tuner.main(run_config)

        assert len(candidates) == len(results) == 4
        table = np.loadtxt(tmp_path / "results" / config.RESULTS_FILE_NAME, delimiter="\t", ndmin=2)
        assert table.shape == (4, 13 + 11 + 1)
        np.testing.assert_allclose(table[:, -1], [f for _, f in results], rtol=1e-9)
        assert list(work_dir.iterdir()) == []

    def test_missing_template(self, run_config, tmp_path):
        run_config['TEMPLATE_CONFIG_PATH'] = str(tmp_path / "missing.md")
        assert run_tuner.main(run_config) is None

    def test_run_tuning_process_applies_overrides(self, fake_benchmark, template_config, work_dir, tmp_path):
        config.WORK_DIR = str(work_dir)
        config.NUM_WORKERS = 1
        candidates, results = run_tuner.run_tuning_process(
            template_config_path=str(template_config),
            benchmark_command=shlex.join(fake_benchmark),
            population_size=2,
            crossover_policy="Single point",
            random_seed=5,
            bits_per_field=20,
            output_dir=str(tmp_path / "out"),
        )
        assert config.POPULATION_SIZE == 2
        assert config.BENCHMARK_COMMAND == fake_benchmark
        assert [c.bits_per_field for c in candidates] == [20, 20]
        assert (tmp_path / "out" / config.RESULTS_FILE_NAME).is_file()

    def test_bad_policy_rejected_before_running(self, template_config):
        with pytest.raises(ValueError):
            run_tuner.run_tuning_process(template_config_path=str(template_config), crossover_policy="Two point")


class TestParseArgs:

    def test_defaults_are_none(self):
        args = vars(run_tuner.parse_args([]))
        assert args.pop("keep_candidate_dirs") is False
        assert all(value is None for value in args.values())

    def test_options(self):
        args = run_tuner.parse_args([
            "--template", "configs/a.md", "--benchmark", "./algoBenchmark -v",
            "--population-size", "8", "--crossover", "Uniform", "--bits", "24",
            "--timeout", "120", "--keep-candidate-dirs",
        ])
        assert args.template_config_path == "configs/a.md"
        assert args.benchmark_command == "./algoBenchmark -v"
        assert args.population_size == 8
        assert args.bits_per_field == 24
        assert args.timeout_sec == 120.0
        assert args.keep_candidate_dirs is True

    def test_arguments_match_run_tuning_process(self):
        accepted = set(inspect.signature(run_tuner.run_tuning_process).parameters)
        assert set(vars(run_tuner.parse_args([]))) <= accepted
