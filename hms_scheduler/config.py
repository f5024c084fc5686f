"""
Runtime settings and logging set-up for the console application.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

DATA_DIR_ENV = "HMS_DATA_DIR"
DEFAULT_DATA_DIR = "data"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    """
    Session settings.

    data_dir comes from the command line, then the HMS_DATA_DIR
    environment variable, then ./data.
    """

    data_dir: Path = Path(DEFAULT_DATA_DIR)
    verbose: bool = False
    save_on_exit: bool = True


def load_settings(
    data_dir: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    save_on_exit: bool = True,
) -> Settings:
    resolved = data_dir or os.getenv(DATA_DIR_ENV) or DEFAULT_DATA_DIR
    return Settings(data_dir=Path(resolved), verbose=verbose, save_on_exit=save_on_exit)


def configure_logging(verbose: bool = False, stream=None) -> None:
    """Send log records to stderr: DEBUG and up when verbose, WARNING and up otherwise."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("hms_scheduler")
    root.handlers[:] = [handler]
    root.setLevel(level)
