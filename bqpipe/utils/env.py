"""Environment variable utilities for bqpipe.

A ``.env`` file in the project root (the nearest directory holding
``bqpipe.toml``) is loaded before the command line is parsed, so values such as
``BQPIPE_PROJECT`` can be kept out of the settings file.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from bqpipe.core.settings import DEFAULT_CONFIG_FILENAME
from bqpipe.logging import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "BQPIPE_"


def find_project_root(start_path: Optional[str] = None) -> Optional[Path]:
    """Find the project root by looking for the default settings file.

    Args:
        start_path: Path to start searching from (defaults to current directory)

    Returns:
        Path to the project root, or None if not found
    """
    if start_path is None:
        start_path = os.getcwd()

    current = Path(start_path).resolve()

    for parent in [current, *current.parents]:
        if (parent / DEFAULT_CONFIG_FILENAME).is_file():
            logger.debug(f"Found bqpipe project root at: {parent}")
            return parent

    logger.debug("No bqpipe project root found")
    return None


def load_dotenv_file(project_root: Path) -> bool:
    """Load .env file from the project root if it exists.

    Variables already set in the environment take precedence.

    Returns:
        True if .env file was loaded, False otherwise
    """
    env_file = project_root / ".env"
    if not env_file.is_file():
        logger.debug(f"No .env file found at: {env_file}")
        return False

    loaded = load_dotenv(env_file, override=False)
    if loaded:
        logger.debug(f"Loaded environment variables from: {env_file}")
    return loaded


def setup_environment(start_path: Optional[str] = None) -> bool:
    """Load the .env file of the enclosing bqpipe project, if any.

    Returns:
        True if .env file was found and loaded, False otherwise
    """
    project_root = find_project_root(start_path)

    if project_root is None:
        logger.debug("No bqpipe project found, skipping .env file loading")
        return False

    return load_dotenv_file(project_root)
