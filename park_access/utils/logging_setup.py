"""
Logging configuration for the Park Access Analysis.

Everything goes to one analysis log file; errors are copied to a separate
file, and the console splits progress (stdout) from warnings such as isolates
and boundary convergence (stderr).
"""
import logging
import sys
from pathlib import Path


class MaxLevelFilter(logging.Filter):
    """Filter that only passes records at or below a specific level"""

    def __init__(self, max_level):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno <= self.max_level


def setup_logging(
    log_dir: str = 'logs',
    log_level: int = logging.INFO,
    log_file: str = 'park_access.log',
    error_file: str = 'errors.log',
    console: bool = True,
    capture_warnings: bool = True,
) -> logging.Logger:
    """
    Configure the root logger for an analysis run

    Parameters
    ----------
    log_dir : str, optional
        Directory for log files
    log_level : int, optional
        Level of the analysis log and of the stdout console handler
    log_file : str, optional
        Analysis log file name
    error_file : str, optional
        Error log file name
    console : bool, optional
        Whether to log to the console
    capture_warnings : bool, optional
        Whether to route Python warnings into logging (libpysal reports
        islands this way)

    Returns
    -------
    logging.Logger
        Root logger
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(log_level)
    logging.captureWarnings(capture_warnings)

    log_dir_path = Path(log_dir)
    log_dir_path.mkdir(exist_ok=True, parents=True)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(str(log_dir_path / log_file))
    file_handler.setFormatter(formatter)
    file_handler.setLevel(log_level)
    root_logger.addHandler(file_handler)

    error_handler = logging.FileHandler(str(log_dir_path / error_file))
    error_handler.setFormatter(formatter)
    error_handler.setLevel(logging.ERROR)
    root_logger.addHandler(error_handler)

    if console:
        console_formatter = logging.Formatter('%(levelname)s: %(message)s')

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setFormatter(console_formatter)
        stdout_handler.setLevel(log_level)
        stdout_handler.addFilter(MaxLevelFilter(logging.INFO))
        root_logger.addHandler(stdout_handler)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(console_formatter)
        stderr_handler.setLevel(logging.WARNING)
        root_logger.addHandler(stderr_handler)

    return root_logger


def setup_logging_from_config(config) -> logging.Logger:
    """
    Configure logging from the ``logging`` section of a Config object

    Parameters
    ----------
    config : park_access.config.Config
        Configuration holding ``logging.level``, ``logging.log_dir``,
        ``logging.log_file``, ``logging.error_file`` and ``logging.console``

    Returns
    -------
    logging.Logger
        Root logger
    """
    level_name = str(config.get('logging.level', 'INFO')).upper()
    return setup_logging(
        log_dir=config.get('logging.log_dir', 'logs'),
        log_level=getattr(logging, level_name, logging.INFO),
        log_file=config.get('logging.log_file', 'park_access.log'),
        error_file=config.get('logging.error_file', 'errors.log'),
        console=config.get('logging.console', True),
    )
