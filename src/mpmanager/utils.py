"""
Utils functions
"""
import logging
import re
import shutil

from .config import get_log_path, load_config

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(config: dict | None = None) -> None:
    """
    Configures the root logger to write to the log file from the configuration.

    Args:
        config (dict, optional): Loaded configuration. Read from disk when omitted.
    """
    if config is None:
        config = load_config()
    level_name = str(config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        filename=get_log_path(),
        level=level,
        format=LOG_FORMAT,
        force=True,
    )
    logging.info("Logging initialised at level %s", logging.getLevelName(level))


def check_multipass(binary: str = "multipass") -> bool:
    """
    Checks if the multipass executable is installed.

    Returns:
        bool: True if multipass can be found on PATH, False otherwise
    """
    try:
        return shutil.which(binary) is not None
    except Exception as e:
        logging.error(f"Error checking multipass: {e}")
        return False


def natural_sort_key(text):
    """
    Convert a string into a list for natural sorting.
    'vm10' becomes ['vm', 10, ''], 'vm2' becomes ['vm', 2, '']
    This ensures vm2 comes before vm10.
    """
    def tryint(s):
        try:
            return int(s)
        except ValueError:
            return s.lower()

    return [tryint(c) for c in re.split('([0-9]+)', text)]
