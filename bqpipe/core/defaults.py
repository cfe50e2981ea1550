"""Default settings scaffold written by ``bqpipe init``."""

import os

from bqpipe.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SETTINGS_TOML = """\
# bqpipe default config (TOML)
# This file is written by bqpipe init. Adjust fields to suit your project.

directory = "sql/"
project_id = "your-project-id"
dataset = "your_dataset"
location = "US"
impersonate_service_account = ""

[vars]
env = "dev"
start_date = "2025-01-01"
"""

SETTINGS_FILE_MODE = 0o600


def write_default_settings(path: str, overwrite: bool = False) -> str:
    """Write the default settings file.

    Args:
        path: Destination file
        overwrite: Replace an existing file

    Returns:
        Absolute path of the written file

    Raises:
        FileExistsError: If the file exists and overwrite is False
    """
    if os.path.exists(path) and not overwrite:
        raise FileExistsError(f"{path} already exists")

    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    fd = os.open(path, flags, SETTINGS_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(DEFAULT_SETTINGS_TOML)

    logger.debug(f"Wrote default settings to {path}")
    return os.path.abspath(path)
