# -*- coding: utf-8 -*-
"""
Centralized Logger Setup for the Clustering Parameter Tuner

This module provides colour-coded console logging shared by the tuner core,
the worker processes and the batch evaluation script.

Why (Purpose and Necessity):
A tuning run spawns many external benchmark processes across several workers.
A single, uniform log format (timestamp, module, level) makes it possible to
follow which candidate was written, launched and scored, and to spot failed
evaluations at a glance.

What (Implementation Details):
- Uses Python's logging module with a custom coloured formatter
- ERROR (red), WARNING (yellow), INFO (white), DEBUG (green)
- colorama provides cross-platform terminal colours
- configure_root_logger() is called on import so every module that logs
  through logging.getLogger(__name__) gets the same output
"""

import logging
import sys
from datetime import datetime

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)


class ColoredFormatter(logging.Formatter):
    """
    Formatter that prefixes each record with a timestamp and module name and
    colours the level and message according to the record's level.
    """

    COLORS = {
        'DEBUG': Fore.GREEN,
        'INFO': Fore.WHITE,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }

    def __init__(self, use_colors: bool = True):
        """
        Args:
            use_colors (bool): Whether to colour the output. Defaults to True.
        """
        self.use_colors = use_colors
        super().__init__()

    def format(self, record):
        """
        Format the log record with colours and a timestamp.

        Args:
            record (logging.LogRecord): The log record to format.

        Returns:
            str: The formatted log line.
        """
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        # Drop package prefixes for a shorter module column
        module_name = record.name.split('.')[-1]
        level_name = record.levelname

        if self.use_colors and level_name in self.COLORS:
            colored_level = f"{self.COLORS[level_name]}{level_name}{Style.RESET_ALL}"
            colored_message = f"{self.COLORS[level_name]}{record.getMessage()}{Style.RESET_ALL}"
        else:
            colored_level = level_name
            colored_message = record.getMessage()

        formatted_message = f"[{timestamp}] [{module_name}] [{colored_level}] {colored_message}"

        if record.exc_info:
            formatted_message = f"{formatted_message}\n{self.formatException(record.exc_info)}"

        return formatted_message


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Get a configured logger instance for the specified module.

    Why (Purpose and Necessity):
    Entry scripts and worker processes need a logger that prints even when the
    root logger was reconfigured by the caller.

    What (Implementation Details):
    - Creates a logger with the specified name
    - Attaches one console handler with the coloured formatter
    - Does not add a second handler if the logger was already configured
    - Disables propagation so records are not printed twice

    Args:
        name (str): The name of the logger (typically __name__).
        level (int, optional): The logging level. Defaults to logging.INFO.

    Returns:
        logging.Logger: A configured logger instance.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=True))
    logger.addHandler(console_handler)

    logger.propagate = False

    return logger


def configure_root_logger(level=logging.INFO) -> None:
    """
    Configure the root logger for the entire application.

    Library modules of the tuner core log through logging.getLogger(__name__)
    and rely on this configuration for their output.

    Args:
        level (int or str, optional): The logging level for the root logger,
            either a logging constant or its name ("DEBUG", "INFO", ...).
            Defaults to logging.INFO.

    Raises:
        ValueError: If `level` names no logging level.
    """
    if isinstance(level, str):
        level_name = level.upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level_name!r}")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=True))
    root_logger.addHandler(console_handler)


# Configure the root logger when this module is imported
configure_root_logger()
