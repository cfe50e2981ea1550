"""bqpipe - run ordered pipelines of BigQuery SQL files."""

__version__ = "0.1.0"
__package_name__ = "bqpipe"

# Initialize logging with default configuration
from bqpipe.logging import configure_logging

configure_logging()

from .exceptions import (
    BQPipeError,
    ConfigInvalidError,
    JobFailedError,
    RenderError,
    UndefinedVariableError,
)

__all__ = [
    "BQPipeError",
    "ConfigInvalidError",
    "JobFailedError",
    "RenderError",
    "UndefinedVariableError",
]
