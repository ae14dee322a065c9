import logging
from typing import Mapping, Sequence

import numpy as np

from .fitness import FIELD_ORDER, ClusteringMetrics


logger = logging.getLogger(__name__)


def build_results_table(
        parameter_values: Sequence[Mapping[str, float]],
        metrics: Sequence[ClusteringMetrics],
        fitness: Sequence[float]):
    """
    Arranges evaluated candidates into a numeric table.

    Each row holds one candidate: its decoded parameter values in catalog
    order, the eleven metrics in FIELD_ORDER, and the fitness.

    Returns:
        tuple[list[str], np.ndarray]: Column names and the (n, columns) table.

    Raises:
        ValueError: If the three sequences differ in length, or the candidates
            do not share the same parameter titles.
    """
    if not len(parameter_values) == len(metrics) == len(fitness):
        raise ValueError("parameter_values, metrics and fitness must have the same length")
    if not parameter_values:
        raise ValueError("Nothing to save")

    titles = list(parameter_values[0].keys())
    rows = []
    for values, record, score in zip(parameter_values, metrics, fitness):
        if list(values.keys()) != titles:
            raise ValueError("All candidates must share the same parameter titles")
        rows.append([values[t] for t in titles] + list(record.as_array()) + [score])

    columns = titles + list(FIELD_ORDER) + ['fitness']
    return columns, np.array(rows, dtype=float)


def save_results_to_text_file(file_path: str, columns: Sequence[str], table: np.ndarray) -> None:
    """
    Saves the table of evaluated candidates to a text file.

    Why (Purpose and Necessity):
    A tuning batch may take hours of benchmark time. Writing every candidate's
    parameters next to its metrics in a plain, tab separated file keeps the
    results available for later analysis and comparison between runs.

    What (Implementation Details):
    The column names are written as a tab separated header line (prefixed with
    '#'), followed by one row per candidate written with numpy.savetxt.
    Failed evaluations show the sentinel value in their metrics columns and
    'inf' as fitness. IO errors are logged and not raised, so a failed save
    does not discard the evaluation run that produced the data.

    Args:
        file_path (str): Full path of the output file.
        columns (Sequence[str]): Column names, one per table column.
        table (np.ndarray): 2D array of shape (n_candidates, len(columns)).
    """
    try:
        logger.info(f"Saving results to text file: {file_path}")
        np.savetxt(file_path, table, delimiter='\t', fmt='%.10g', header='\t'.join(columns))
        logger.info(f"Successfully saved {len(table)} candidates to {file_path}")
    except OSError as e:
        logger.error(f"Failed to save results to {file_path}: {e}")
