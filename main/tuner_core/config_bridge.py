import logging
import os
import pathlib
import shutil
import uuid
from typing import Callable, Optional, Tuple


logger = logging.getLogger(__name__)


# ===================================================================
#
#           Configuration Bridge to the External Benchmark
#
# The clustering benchmark reads a plain text configuration with one
# "key:<whitespace>value" setting per line. This module reads single
# values from such a file and rewrites single values in place, keeping
# every other line (comments, blank lines, unrelated settings) exactly
# as it was. Rewrites go through a uniquely named temporary file that is
# renamed over the original, so a benchmark reading the file never sees
# it half written.
#
# ===================================================================

def split_setting_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Splits a configuration line into (key, value).

    The key is everything before the first ':' and the value everything
    after it. Lines without a ':' or with nothing after it are not settings.

    Returns:
        tuple[str, str] or None: The key and the raw value text, or None.
    """
    content = line.rstrip("\r\n")
    key, separator, value = content.partition(":")
    if not separator or not value:
        return None
    return key, value


def parse_float(text: str) -> Optional[float]:
    """
    Parses the first whitespace-separated token of `text` as a float.

    Returns:
        float or None: The parsed number, or None if there is none.
    """
    tokens = text.split()
    if not tokens:
        return None
    try:
        return float(tokens[0])
    except ValueError:
        return None


def update_value(config_path, key: str, new_value) -> int:
    """
    Replaces the value of `key` in a configuration file.

    Every line whose key equals `key` is rewritten as "key:\\t<new_value>";
    all other lines are copied unchanged, including their line endings.
    The new content is written to a temporary file next to the original
    (unique name per call) and atomically renamed over it. If `key` is not
    present the file content stays the same.

    Args:
        config_path (str or Path): The configuration file to modify.
        key (str): The setting to replace (exact match).
        new_value: The new value; written with its str() representation.

    Returns:
        int: Number of lines that were replaced.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
    """
    path = pathlib.Path(config_path)
    with open(path, "r", newline="") as f:
        lines = f.readlines()

    replaced = 0
    output_lines = []
    for line in lines:
        setting = split_setting_line(line)
        if setting is not None and setting[0] == key:
            line_ending = line[len(line.rstrip("\r\n")):]
            output_lines.append(f"{key}:\t{new_value}{line_ending}")
            replaced += 1
        else:
            output_lines.append(line)

    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with open(tmp_path, "w", newline="") as f:
            f.writelines(output_lines)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    if replaced:
        logger.debug(f"Set '{key}' to {new_value} in {path}")
    else:
        logger.debug(f"Key '{key}' not found in {path}, file left unchanged")
    return replaced


def read_value(config_path, key: str, default=None, converter: Callable = str):
    """
    Reads the value of `key` from a configuration file.

    The first line whose key equals `key` wins. Its value text, stripped of
    surrounding whitespace, is passed through `converter`.

    Args:
        config_path (str or Path): The configuration file to read.
        key (str): The setting to look up (exact match).
        default: Returned when the key is absent or its value cannot be
            converted. Defaults to None.
        converter (callable): Turns the value text into the result. Defaults to str.

    Returns:
        The converted value, or `default`.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
    """
    path = pathlib.Path(config_path)
    with open(path, "r") as f:
        for line in f:
            setting = split_setting_line(line)
            if setting is None or setting[0] != key:
                continue
            value_text = setting[1].strip()
            try:
                return converter(value_text)
            except (TypeError, ValueError):
                logger.warning(f"Could not convert value '{value_text}' of '{key}' in {path}")
                return default

    logger.debug(f"Key '{key}' not found in {path}")
    return default


def read_float(config_path, key: str, default: Optional[float] = None) -> Optional[float]:
    """Reads a numeric setting; returns `default` if it is absent or not a number."""
    value = read_value(config_path, key, default=None, converter=parse_float)
    return default if value is None else value


def prepare_candidate_config(template_path, work_dir, candidate_id: Optional[str] = None) -> pathlib.Path:
    """
    Copies a template configuration into a private directory for one candidate.

    The directory is <work_dir>/candidate_<candidate_id>; a random id is
    generated when none is given, so concurrent evaluations never share a
    configuration file.

    Returns:
        Path: The candidate's configuration file.

    Raises:
        FileNotFoundError: If the template does not exist.
    """
    template = pathlib.Path(template_path)
    if not template.is_file():
        raise FileNotFoundError(f"Template configuration not found: {template}")

    if candidate_id is None:
        candidate_id = uuid.uuid4().hex
    candidate_dir = pathlib.Path(work_dir) / f"candidate_{candidate_id}"
    candidate_dir.mkdir(parents=True, exist_ok=False)

    config_path = candidate_dir / template.name
    shutil.copyfile(template, config_path)
    return config_path
