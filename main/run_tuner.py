import argparse
import multiprocessing
import os
import shlex
import time

import numpy as np

from tuner_core import config
from tuner_core import file_saver
from tuner_core import ga_operators as operators
from tuner_core.chromosome import Chromosome, decode_parameters, random_chromosome, start_chromosome
from tuner_core.fitness import WORST_FITNESS, ClusteringMetrics, FitnessEvaluator
from tuner_core.rng import RandomContext
from utils.logger import configure_root_logger, get_logger

# Initialize logger for this module
logger = get_logger(__name__)


# ===================================================================
#
#           Batch Evaluation Script for the Clustering Parameter Tuner
#
# This script evaluates one batch of candidate parameter vectors:
# 1. Builds the batch: the catalog's start values plus offspring of
#    random parents produced with the configured crossover policy and
#    per-bit mutation.
# 2. Evaluates every candidate in parallel, each worker running the
#    external clustering benchmark on its own configuration copy.
# 3. Logs the metrics of every candidate and saves them as a table.
#
# ===================================================================

CONFIG_KEYS = (
    'BITS_PER_FIELD',
    'BENCHMARK_COMMAND',
    'BENCHMARK_CWD',
    'TEMPLATE_CONFIG_PATH',
    'WORK_DIR',
    'RESULT_PATH_KEY',
    'RESULT_FILE_NAME',
    'KEEP_CANDIDATE_DIRS',
    'EVALUATION_TIMEOUT_SEC',
    'POPULATION_SIZE',
    'CROSSOVER_POLICY',
    'MUTATION_RATE',
    'RANDOM_SEED',
    'NUM_WORKERS',
    'OUTPUT_DIR',
    'RESULTS_FILE_NAME',
    'FITNESS_WEIGHTS',
    'LOG_LEVEL',
)


def collect_config_dict() -> dict:
    """Snapshot of the current config module values passed to worker processes."""
    return {key: getattr(config, key) for key in CONFIG_KEYS}


def evaluate_job_wrapper(job_data: tuple):
    """
    Wrapper function for the multiprocessing pool to evaluate a single candidate.

    Why (Purpose and Necessity):
    multiprocessing.Pool.map() requires a function that takes a single argument,
    and worker processes do not see runtime changes made to the config module
    in the parent process.

    What (Implementation Details):
    Unpacks (index, chromosome, config_dict), copies config_dict onto the local
    config module, builds a FitnessEvaluator from it and evaluates the
    candidate. An unexpected error is logged and reported as a failed
    evaluation so the rest of the batch still completes.

    Args:
        job_data (tuple): Tuple containing (index, chromosome, config_dict).

    Returns:
        tuple: (index, ClusteringMetrics, fitness).
    """
    index, chromosome, config_dict = job_data

    for key, value in config_dict.items():
        setattr(config, key, value)

    try:
        evaluator = FitnessEvaluator.from_config(config_dict)
        metrics, fitness = evaluator.evaluate_and_score(chromosome)
    except Exception:
        logger.exception(f"Evaluation of candidate {index} failed")
        return index, ClusteringMetrics(), WORST_FITNESS
    return index, metrics, fitness


def build_candidates(rng, population_size, policy, mutation_rate, bits_per_field=None):
    """
    Builds a batch of candidates to evaluate.

    The first candidate encodes the catalog's start values. The rest are
    offspring of random parent pairs, recombined with `policy` and mutated
    bit by bit with probability `mutation_rate`.

    Args:
        rng (RandomContext): Random source.
        population_size (int): Number of candidates to return.
        policy (CrossoverPolicy or str): The crossover policy.
        mutation_rate (float): Per-bit flip probability.
        bits_per_field (int, optional): Field width. Defaults to config.BITS_PER_FIELD.

    Returns:
        list[Chromosome]: The batch.
    """
    if population_size < 1:
        raise ValueError(f"population_size must be at least 1, got {population_size}")

    candidates = [start_chromosome(bits_per_field=bits_per_field)]
    while len(candidates) < population_size:
        parent_a = random_chromosome(rng, bits_per_field=bits_per_field)
        parent_b = random_chromosome(rng, bits_per_field=bits_per_field)
        for child in operators.crossover(parent_a, parent_b, policy, rng):
            if len(candidates) == population_size:
                break
            candidates.append(operators.apply_mutations(child, rng, mutation_rate))
    return candidates


def evaluate_candidates(candidates, config_dict, num_processes=None):
    """
    Evaluates a batch of candidates, in parallel when num_processes > 1.

    Returns:
        list[tuple[ClusteringMetrics, float]]: (metrics, fitness) per candidate,
        in the order of `candidates`.
    """
    jobs = [(index, chromosome, config_dict) for index, chromosome in enumerate(candidates)]

    if num_processes is None:
        num_processes = multiprocessing.cpu_count()
    num_processes = max(1, min(num_processes, len(jobs)))

    if num_processes == 1:
        results = [evaluate_job_wrapper(job) for job in jobs]
    else:
        logger.info(f"Using {num_processes} processes for parallel evaluation")
        with multiprocessing.Pool(processes=num_processes) as pool:
            results = pool.map(evaluate_job_wrapper, jobs)

    results.sort(key=lambda r: r[0])
    return [(metrics, fitness) for _, metrics, fitness in results]


def main(config_dict=None):
    """
    Evaluates one batch of candidates and saves the results.

    Args:
        config_dict (dict, optional): Configuration snapshot for this run. If
            None, it is created from the current config module state.

    Returns:
        tuple[list[Chromosome], list[tuple[ClusteringMetrics, float]]]: The
        evaluated candidates and their (metrics, fitness), or None if the run
        could not start.
    """
    if config_dict is None:
        config_dict = collect_config_dict()

    configure_root_logger(config_dict['LOG_LEVEL'])

    if not os.path.isfile(config_dict['TEMPLATE_CONFIG_PATH']):
        logger.error(f"Template configuration '{config_dict['TEMPLATE_CONFIG_PATH']}' not found. Exiting.")
        return None

    for directory in (config_dict['WORK_DIR'], config_dict['OUTPUT_DIR']):
        if not os.path.exists(directory):
            os.makedirs(directory)
            logger.info(f"Directory '{directory}' created.")

    policy = operators.CrossoverPolicy.from_name(config_dict['CROSSOVER_POLICY'])
    rng = RandomContext(config_dict['RANDOM_SEED'])

    logger.info(f"Building {config_dict['POPULATION_SIZE']} candidates ({policy.display_name} crossover)")
    candidates = build_candidates(
        rng,
        config_dict['POPULATION_SIZE'],
        policy,
        config_dict['MUTATION_RATE'],
        config_dict['BITS_PER_FIELD'],
    )

    start_time = time.time()
    results = evaluate_candidates(candidates, config_dict, config_dict['NUM_WORKERS'])
    logger.info(f"Evaluated {len(results)} candidates in {time.time() - start_time:.2f} seconds")

    parameter_values = [decode_parameters(c) for c in candidates]
    for index, ((metrics, fitness), values) in enumerate(zip(results, parameter_values)):
        logger.info(f"{'-' * 60}")
        logger.info(f"Candidate {index}: fitness {fitness:.6g}")
        logger.info("  " + ", ".join(f"{title}={value:.4f}" for title, value in values.items()))
        metrics.log_summary(logger)

    fitness_values = [fitness for _, fitness in results]
    failed = sum(1 for f in fitness_values if f == WORST_FITNESS)
    if failed == len(results):
        logger.warning("No candidate produced complete metrics")
    else:
        best_index = int(np.argmin(fitness_values))
        logger.info(f"Best candidate: {best_index} with fitness {fitness_values[best_index]:.6g}")
        logger.info(f"Best chromosome bits: {candidates[best_index].format_bits()}")
    if failed:
        logger.warning(f"{failed}/{len(results)} evaluations failed or were incomplete")

    columns, table = file_saver.build_results_table(
        parameter_values, [m for m, _ in results], fitness_values
    )
    file_saver.save_results_to_text_file(
        os.path.join(config_dict['OUTPUT_DIR'], config_dict['RESULTS_FILE_NAME']), columns, table
    )

    logger.info(f"{'=' * 60}")
    logger.info("Batch evaluation complete.")
    logger.info(f"{'=' * 60}")
    return candidates, results


def run_tuning_process(
        template_config_path: str = None,
        benchmark_command: str = None,
        population_size: int = None,
        crossover_policy: str = None,
        mutation_rate: float = None,
        random_seed: int = None,
        num_workers: int = None,
        bits_per_field: int = None,
        timeout_sec: float = None,
        output_dir: str = None,
        keep_candidate_dirs: bool = False,
        log_level: str = None):
    """
    Sets up the configuration and runs one batch evaluation.

    Any argument left as None keeps the value from the config module.

    Args:
        template_config_path: Benchmark configuration copied for every candidate.
        benchmark_command: Benchmark command line, split with shell rules.
        population_size: Number of candidates in the batch.
        crossover_policy: Name of the crossover policy.
        mutation_rate: Per-bit flip probability.
        random_seed: Seed of the root random context.
        num_workers: Number of worker processes.
        bits_per_field: Chromosome field width.
        timeout_sec: Wall-clock limit of a single benchmark run.
        output_dir: Directory for the results table.
        keep_candidate_dirs: Keep the per-candidate working directories.
        log_level: Logging level name.
    """
    logger.info("Configuring tuning run")

    overrides = {
        'TEMPLATE_CONFIG_PATH': template_config_path,
        'BENCHMARK_COMMAND': shlex.split(benchmark_command) if benchmark_command else None,
        'POPULATION_SIZE': population_size,
        'CROSSOVER_POLICY': crossover_policy,
        'MUTATION_RATE': mutation_rate,
        'RANDOM_SEED': random_seed,
        'NUM_WORKERS': num_workers,
        'BITS_PER_FIELD': bits_per_field,
        'EVALUATION_TIMEOUT_SEC': timeout_sec,
        'OUTPUT_DIR': output_dir,
        'LOG_LEVEL': log_level,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    if keep_candidate_dirs:
        config.KEEP_CANDIDATE_DIRS = True

    # Fail on bad settings before any benchmark is launched
    operators.CrossoverPolicy.from_name(config.CROSSOVER_POLICY)
    Chromosome([0], config.BITS_PER_FIELD)

    logger.info("Running batch evaluation with the following parameters")
    logger.info(f"  - Template Config       : {config.TEMPLATE_CONFIG_PATH}")
    logger.info(f"  - Benchmark Command     : {' '.join(config.BENCHMARK_COMMAND)}")
    logger.info(f"  - Population Size       : {config.POPULATION_SIZE}")
    logger.info(f"  - Crossover Policy      : {config.CROSSOVER_POLICY}")
    logger.info(f"  - Mutation Rate         : {config.MUTATION_RATE}")
    logger.info(f"  - Random Seed           : {config.RANDOM_SEED}")
    logger.info(f"  - Bits Per Field        : {config.BITS_PER_FIELD}")
    logger.info(f"  - Workers               : {config.NUM_WORKERS or 'all CPUs'}")
    logger.info(f"  - Timeout               : {config.EVALUATION_TIMEOUT_SEC}")
    logger.info(f"  - Output Directory      : {config.OUTPUT_DIR}")
    logger.info("---------------------------------------------------------")

    return main(collect_config_dict())


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Evaluate a batch of clustering parameter candidates")
    parser.add_argument("--template", dest="template_config_path", help="template benchmark configuration")
    parser.add_argument("--benchmark", dest="benchmark_command", help="benchmark command line")
    parser.add_argument("--population-size", type=int)
    parser.add_argument("--crossover", dest="crossover_policy",
                        help="Uniform, SinglePoint, FixedSinglePoint or MultiPoint")
    parser.add_argument("--mutation-rate", type=float)
    parser.add_argument("--seed", dest="random_seed", type=int)
    parser.add_argument("--workers", dest="num_workers", type=int)
    parser.add_argument("--bits", dest="bits_per_field", type=int)
    parser.add_argument("--timeout", dest="timeout_sec", type=float)
    parser.add_argument("--output-dir")
    parser.add_argument("--keep-candidate-dirs", action="store_true")
    parser.add_argument("--log-level")
    return parser.parse_args(argv)


if __name__ == "__main__":
    run_tuning_process(**vars(parse_args()))
