"""
Manage the configuration of the tool
"""

import os
from pathlib import Path

import yaml

from .constants import AppInfo

DEFAULT_CONFIG = {
    "REFRESH_INTERVAL": 5,
    "MULTIPASS_PATH": "multipass",
    "COMMAND_TIMEOUT": 300,
    "LOG_FILE_PATH": str(Path.home() / ".cache" / AppInfo.name / "mpmanager.log"),
    "LOG_LEVEL": "INFO",
    "DEFAULT_RELEASE": "24.04",
    "DEFAULT_CPUS": 1,
    "DEFAULT_MEMORY_MB": 1024,
    "DEFAULT_DISK_GB": 5,
    # Overrides the github-cloud-init-repo key of the .config file
    "CLOUD_INIT_REPO": None,
    "PURGE_ON_DELETE": False,
}


def get_log_path() -> Path:
    """
    Returns the path to the log file as specified in the configuration,
    ensuring its parent directory exists.
    """
    config = load_config()
    log_file_path_str = config.get("LOG_FILE_PATH", DEFAULT_CONFIG["LOG_FILE_PATH"])
    log_path = Path(log_file_path_str)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return log_path


def get_config_paths():
    """Returns the potential paths for the config file."""
    return [
        Path.home() / ".config" / AppInfo.name / "config.yaml",
        Path("/etc") / AppInfo.name / "config.yaml",
    ]


def get_user_config_path():
    """Returns the path to the user's config file."""
    return get_config_paths()[0]


def load_config():
    """
    Loads the configuration from the first found config file.
    If no config file is found, returns the default configuration.
    Merges the loaded configuration with default values to ensure all keys are present.
    """
    config_path = None
    user_config = {}

    for path in get_config_paths():
        if path.exists():
            config_path = path
            break

    if config_path:
        with open(config_path, encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}

    config = DEFAULT_CONFIG.copy()
    if user_config:
        config.update(user_config)
        # A null in yaml becomes None. Revert to default.
        for key, value in config.items():
            if value is None and key in DEFAULT_CONFIG:
                config[key] = DEFAULT_CONFIG[key]

    interval = config.get("REFRESH_INTERVAL")
    if not isinstance(interval, (int, float)) or interval <= 0:
        config["REFRESH_INTERVAL"] = DEFAULT_CONFIG["REFRESH_INTERVAL"]

    return config


def save_config(config):
    """Saves the configuration to the user's config file."""
    config_path = get_user_config_path()
    os.makedirs(config_path.parent, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False)
