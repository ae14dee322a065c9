# ===================================================================
#
#           Configuration File for the Clustering Parameter Tuner
#
# This file centralizes all settings of the genetic tuner: how candidate
# parameter vectors are encoded, how the external clustering benchmark
# is launched, and how a batch of candidates is evaluated. Entry points
# may override these values at runtime and pass a snapshot of them to
# worker processes as a config_dict.
#
# ===================================================================

# --- Chromosome Encoding Settings ---
# Number of bits used to encode each parameter inside a chromosome.
# Every parameter uses the same width. 16 bits keep the quantization
# error below 0.0023 for the widest range in the catalog (kappa, 1-150).
# Allowed range: 1 to 32.
BITS_PER_FIELD = 16


# --- Evaluation Result Settings ---
# Placeholder stored in every metrics field that was not produced by the
# benchmark. A record holding it marks a failed or incomplete evaluation.
SENTINEL_VALUE = 99999.0


# --- External Benchmark Settings ---
# Command used to run the clustering benchmark. The path of the candidate's
# configuration file is appended as the last argument.
BENCHMARK_COMMAND = ["./algoBenchmark"]
# Directory the benchmark is started from. None keeps the current one.
BENCHMARK_CWD = None
# Template configuration copied for every candidate before its parameter
# values are written into it.
TEMPLATE_CONFIG_PATH = "configs/autoGenConfig.md"
# Directory holding one private sub-directory per evaluated candidate.
WORK_DIR = "tmp"
# Configuration key telling the benchmark where to write its metrics file.
RESULT_PATH_KEY = "clusteringOutputPath"
# Name of the metrics file inside a candidate's working directory.
RESULT_FILE_NAME = "clusteringOutput.txt"
# Keep the candidate working directories after evaluation (for debugging).
KEEP_CANDIDATE_DIRS = False
# Wall-clock limit for a single benchmark run in seconds. None waits for
# the benchmark to finish no matter how long it takes.
EVALUATION_TIMEOUT_SEC = None


# --- Batch Evaluation Settings ---
# Number of candidates evaluated by one run of run_tuner.py, including the
# chromosome built from the catalog's start values.
POPULATION_SIZE = 20
# Crossover policy used to build the batch: "Uniform", "SinglePoint",
# "FixedSinglePoint" or "MultiPoint".
CROSSOVER_POLICY = "FixedSinglePoint"
# Probability of flipping each bit of a newly created candidate.
MUTATION_RATE = 0.01
# Seed of the root random context every candidate of the batch is drawn
# from. The same seed reproduces the same batch for any number of workers.
RANDOM_SEED = 12345
# Number of worker processes. None uses all available CPUs.
NUM_WORKERS = None


# --- Output Settings ---
# Directory where the table of evaluated candidates is saved.
OUTPUT_DIR = "results"
# File name of the table of evaluated candidates.
RESULTS_FILE_NAME = "evaluated_candidates.txt"


# --- Fitness Reduction Settings ---
# Coefficients of the weighted sum used to turn a metrics record into a
# scalar fitness (lower is better). Keys are metrics field names; fields
# not listed do not contribute. There is no canonical weighting, so tune
# these for the benchmark at hand.
FITNESS_WEIGHTS = {
    'resolution_mean': 1.0,
    'resolution_sigma': 1.0,
    'separation_mean': -1.0,
    'containment_mean': -1.0,
    'delta_nclusters_mean': 1.0,
    'n_reco_failed': 1.0,
    'n_cant_match_rec_sim': 1.0,
    'n_fake_rec': 1.0,
}


# --- Logging Settings ---
LOG_LEVEL = "INFO"
