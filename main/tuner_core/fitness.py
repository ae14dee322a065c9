"""
Fitness evaluation through the external clustering benchmark.

A candidate chromosome is decoded into parameter values, the values are
written into a private copy of the benchmark configuration, the benchmark
is run on that configuration, and its metrics file is read back into a
ClusteringMetrics record. A pluggable reduction turns the record into a
scalar fitness (lower is better).

Failed runs are never raised to the caller: a missing or truncated metrics
file leaves the affected fields at the sentinel value, and any record that
still holds a sentinel scores WORST_FITNESS.
"""

import logging
import math
import pathlib
import shutil
import subprocess
from dataclasses import asdict, dataclass, fields
from typing import Callable, Dict, Mapping, Optional, Sequence

import numpy as np

from . import config
from .chromosome import Chromosome, decode_parameters
from .config_bridge import parse_float, prepare_candidate_config, read_value, update_value
from .parameters import PARAMETERS, ParameterDescriptor


logger = logging.getLogger(__name__)

SENTINEL_VALUE = config.SENTINEL_VALUE
WORST_FITNESS = float("inf")


@dataclass
class ClusteringMetrics:
    """
    Quality metrics of one clustering benchmark run.

    Every field starts at SENTINEL_VALUE and is overwritten by read_output()
    in the order of FIELD_ORDER. Fields still holding the sentinel mark a
    failed or incomplete evaluation.
    """
    resolution_mean: float = SENTINEL_VALUE        # mean of (E_rec - E_sim)/E_sim
    resolution_sigma: float = SENTINEL_VALUE       # std dev of (E_rec - E_sim)/E_sim
    separation_mean: float = SENTINEL_VALUE        # mean of distance/(sigma_1 + sigma_2)
    separation_sigma: float = SENTINEL_VALUE
    containment_mean: float = SENTINEL_VALUE       # mean of E_matched/E_total_sim
    containment_sigma: float = SENTINEL_VALUE
    delta_nclusters_mean: float = SENTINEL_VALUE   # mean of (N_sim - N_rec)/N_sim
    delta_nclusters_sigma: float = SENTINEL_VALUE
    n_reco_failed: float = SENTINEL_VALUE          # fraction of event-layers without reconstructed clusters
    n_cant_match_rec_sim: float = SENTINEL_VALUE   # fraction of event-layers where rec and sim could not be matched
    n_fake_rec: float = SENTINEL_VALUE             # fraction of rec clusters matching no sim cluster

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "ClusteringMetrics":
        """Builds a record from up to eleven values given in FIELD_ORDER."""
        if len(values) > len(FIELD_ORDER):
            raise ValueError(f"Expected at most {len(FIELD_ORDER)} values, got {len(values)}")
        return cls(**dict(zip(FIELD_ORDER, (float(v) for v in values))))

    def unset_fields(self) -> list:
        return [name for name in FIELD_ORDER if getattr(self, name) == SENTINEL_VALUE]

    def is_complete(self) -> bool:
        return not self.unset_fields()

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in FIELD_ORDER], dtype=float)

    def log_summary(self, log: logging.Logger = logger) -> None:
        """Logs the record in human readable form."""
        log.info(f"Resolution: {self.resolution_mean} +/- {self.resolution_sigma}")
        log.info(f"Separation: {self.separation_mean} +/- {self.separation_sigma}")
        log.info(f"Containment: {self.containment_mean} +/- {self.containment_sigma}")
        log.info(f"Delta N clusters: {self.delta_nclusters_mean} +/- {self.delta_nclusters_sigma}")
        log.info(f"% of event-layers where algo failed to find sim clusters: {self.n_reco_failed}")
        log.info(f"% of event-layers where rec and sim clusters couldn't be matched: {self.n_cant_match_rec_sim}")
        log.info(f"% of fake rec clusters (not matching any sim cluster): {self.n_fake_rec}")


# Order of the values in the benchmark's metrics file, one per line.
FIELD_ORDER = tuple(f.name for f in fields(ClusteringMetrics))


def read_output(result_path) -> ClusteringMetrics:
    """
    Reads a benchmark metrics file into a ClusteringMetrics record.

    Line i holds the value of FIELD_ORDER[i]. Lines past the eleventh are
    ignored; missing lines and lines that do not start with a number leave
    their field at the sentinel value, and so do lines holding bytes that
    are not valid text. A missing file yields a record made of sentinels only.

    Args:
        result_path (str or Path): The metrics file written by the benchmark.

    Returns:
        ClusteringMetrics: The populated record.
    """
    metrics = ClusteringMetrics()
    path = pathlib.Path(result_path)
    if not path.is_file():
        logger.warning(f"Result file not found: {path}")
        return metrics

    with open(path, "r", errors="replace") as f:
        for index, line in enumerate(f):
            if index >= len(FIELD_ORDER):
                break
            value = parse_float(line)
            if value is None:
                logger.warning(f"Unparsable value for '{FIELD_ORDER[index]}' in {path}: {line.strip()!r}")
                continue
            setattr(metrics, FIELD_ORDER[index], value)

    return metrics


class WeightedSumReduction:
    """
    Fitness reduction computing sum(weight * field) over the weighted fields.

    The weights are supplied by the caller; there is no built-in weighting.
    Instances are picklable, so they can be shipped to worker processes.

    Args:
        weights (Mapping[str, float]): Coefficient per metrics field name.

    Raises:
        ValueError: If a weight names an unknown field.
    """

    def __init__(self, weights: Mapping[str, float]):
        unknown = set(weights) - set(FIELD_ORDER)
        if unknown:
            raise ValueError(f"Unknown metrics fields in weights: {sorted(unknown)}")
        self.weights = dict(weights)

    def __call__(self, metrics: ClusteringMetrics) -> float:
        return float(sum(w * getattr(metrics, name) for name, w in self.weights.items()))

    def __repr__(self) -> str:
        return f"WeightedSumReduction({self.weights})"


class FitnessEvaluator:
    """
    Scores chromosomes by running the external clustering benchmark.

    Each call to evaluate() works in its own directory below `work_dir`
    holding a copy of the template configuration and the metrics file, so
    several evaluators (threads or processes) may run at the same time.

    Args:
        benchmark_command (Sequence[str]): Command running the benchmark; the
            candidate's configuration path is appended as last argument.
        template_config_path (str or Path): Configuration copied per candidate.
        work_dir (str or Path): Parent directory of the candidate directories.
        reduce_fn (callable, optional): Maps a complete ClusteringMetrics to a
            float fitness. Required by score().
        catalog (Sequence[ParameterDescriptor]): Parameters encoded in the chromosomes.
        result_path_key (str): Configuration key receiving the metrics file path.
        result_file_name (str): Name of the metrics file in a candidate directory.
        timeout (float, optional): Seconds before a benchmark run is abandoned.
        keep_candidate_dirs (bool): Keep candidate directories after evaluation.
        benchmark_cwd (str or Path, optional): Working directory of the benchmark.
    """

    def __init__(
            self,
            benchmark_command: Sequence[str],
            template_config_path,
            work_dir,
            reduce_fn: Optional[Callable[[ClusteringMetrics], float]] = None,
            catalog: Sequence[ParameterDescriptor] = PARAMETERS,
            result_path_key: str = config.RESULT_PATH_KEY,
            result_file_name: str = config.RESULT_FILE_NAME,
            timeout: Optional[float] = None,
            keep_candidate_dirs: bool = False,
            benchmark_cwd=None):
        if isinstance(benchmark_command, str):
            benchmark_command = [benchmark_command]
        if not benchmark_command:
            raise ValueError("benchmark_command must not be empty")
        self.benchmark_command = list(benchmark_command)
        self.template_config_path = pathlib.Path(template_config_path)
        self.work_dir = pathlib.Path(work_dir)
        self.reduce_fn = reduce_fn
        self.catalog = tuple(catalog)
        self.result_path_key = result_path_key
        self.result_file_name = result_file_name
        self.timeout = timeout
        self.keep_candidate_dirs = keep_candidate_dirs
        self.benchmark_cwd = benchmark_cwd

    @classmethod
    def from_config(cls, config_dict: Optional[dict] = None) -> "FitnessEvaluator":
        """
        Builds an evaluator from the tuner settings.

        Args:
            config_dict (dict, optional): Snapshot of config values as passed to
                worker processes. Missing keys fall back to the config module.
        """
        settings = dict(config_dict or {})

        def setting(name):
            return settings.get(name, getattr(config, name))

        return cls(
            benchmark_command=setting('BENCHMARK_COMMAND'),
            template_config_path=setting('TEMPLATE_CONFIG_PATH'),
            work_dir=setting('WORK_DIR'),
            reduce_fn=WeightedSumReduction(setting('FITNESS_WEIGHTS')),
            result_path_key=setting('RESULT_PATH_KEY'),
            result_file_name=setting('RESULT_FILE_NAME'),
            timeout=setting('EVALUATION_TIMEOUT_SEC'),
            keep_candidate_dirs=setting('KEEP_CANDIDATE_DIRS'),
            benchmark_cwd=setting('BENCHMARK_CWD'),
        )

    def write_parameters(self, chromosome: Chromosome, config_path) -> Dict[str, float]:
        """Decodes the chromosome and writes each parameter value into the configuration."""
        values = decode_parameters(chromosome, self.catalog)
        for title, value in values.items():
            if not update_value(config_path, title, value):
                logger.warning(f"Parameter '{title}' is missing from configuration {config_path}")
        return values

    def run_benchmark(self, config_path) -> Optional[int]:
        """
        Runs the benchmark on one configuration and waits for it to finish.

        The configuration is passed as an absolute path, so the benchmark finds
        it from any working directory.

        Returns:
            int or None: The exit code, or None if the run hit the timeout.

        Raises:
            OSError: If the benchmark executable cannot be started.
        """
        command = self.benchmark_command + [str(pathlib.Path(config_path).resolve())]
        logger.info(f"Running benchmark: {' '.join(command)}")
        try:
            completed = subprocess.run(
                command,
                cwd=self.benchmark_cwd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Benchmark exceeded {self.timeout} s on {config_path}")
            return None

        if completed.returncode != 0:
            stderr_tail = completed.stderr.strip().splitlines()[-5:]
            logger.warning(
                f"Benchmark exited with code {completed.returncode} on {config_path}: "
                f"{' | '.join(stderr_tail)}"
            )
        return completed.returncode

    def evaluate(self, chromosome: Chromosome, candidate_id: Optional[str] = None) -> ClusteringMetrics:
        """
        Runs one full evaluation of a chromosome.

        Args:
            chromosome (Chromosome): The candidate to evaluate.
            candidate_id (str, optional): Suffix of the candidate directory;
                random when not given.

        Returns:
            ClusteringMetrics: The benchmark's metrics, with sentinels for
            anything the benchmark did not produce.
        """
        config_path = prepare_candidate_config(self.template_config_path, self.work_dir, candidate_id)
        candidate_dir = config_path.parent
        result_path = (candidate_dir / self.result_file_name).resolve()

        try:
            self.write_parameters(chromosome, config_path)
            update_value(config_path, self.result_path_key, result_path)
            if read_value(config_path, self.result_path_key) is None:
                logger.warning(
                    f"Template has no '{self.result_path_key}' setting; "
                    f"the benchmark will not write to {result_path}"
                )
            self.run_benchmark(config_path)
            metrics = read_output(result_path)
        finally:
            if not self.keep_candidate_dirs:
                shutil.rmtree(candidate_dir, ignore_errors=True)

        if not metrics.is_complete():
            logger.warning(f"Incomplete metrics for {candidate_dir.name}: unset {metrics.unset_fields()}")
        return metrics

    def score(self, metrics: ClusteringMetrics) -> float:
        """
        Reduces a metrics record to a scalar fitness (lower is better).

        Records holding any sentinel value score WORST_FITNESS.

        Raises:
            ValueError: If the evaluator has no reduction function.
        """
        if not metrics.is_complete():
            return WORST_FITNESS
        if self.reduce_fn is None:
            raise ValueError("No fitness reduction function configured")
        fitness = float(self.reduce_fn(metrics))
        if math.isnan(fitness):
            return WORST_FITNESS
        return fitness

    def evaluate_and_score(self, chromosome: Chromosome, candidate_id: Optional[str] = None):
        """Returns (metrics, fitness) for one chromosome."""
        metrics = self.evaluate(chromosome, candidate_id)
        return metrics, self.score(metrics)
