"""Exception hierarchy for bqpipe.

Every error raised while preparing or running a pipeline derives from
BQPipeError. Errors tied to a single SQL file carry its path so the failure
is actionable without re-running with extra diagnostics.
"""

from typing import Any, Dict, List, Optional


class BQPipeError(Exception):
    """Base exception for all bqpipe errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggested_actions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggested_actions = suggested_actions or []

    def __str__(self) -> str:
        base_message = self.message

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_message += f" (Context: {context_str})"

        if self.suggested_actions:
            actions_str = "; ".join(self.suggested_actions)
            base_message += f" (Suggested actions: {actions_str})"

        return base_message


class ConfigInvalidError(BQPipeError):
    """Raised when the settings file or the merged run configuration is invalid."""


class DiscoveryError(BQPipeError):
    """Raised when the SQL directory cannot be traversed."""

    def __init__(self, directory: str, cause: Exception):
        self.directory = directory
        super().__init__(
            f"Failed to walk directory '{directory}': {cause}",
            suggested_actions=["Check that the directory is readable"],
        )


class InvalidPathError(BQPipeError):
    """Raised when a discovered file resolves outside the configured directory."""

    def __init__(self, path: str, root: str):
        self.path = path
        self.root = root
        super().__init__(f"Invalid file path detected: {path} is outside {root}")


class RenderError(BQPipeError):
    """Raised when a SQL file cannot be rendered."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to render template for {path}: {reason}")


class UndefinedVariableError(RenderError):
    """Raised when a SQL file references a variable that is not defined."""

    def __init__(self, path: str, missing: List[str]):
        self.missing = list(missing)
        self.name = self.missing[0]
        names = ", ".join(f"'{n}'" for n in self.missing)
        super().__init__(path, f"undefined variable(s) {names}")
        self.suggested_actions = [
            "Declare the variable under [vars] in the settings file"
        ]


class EngineConnectError(BQPipeError):
    """Raised when the BigQuery client cannot be created or authorised."""


class UnitExecutionError(BQPipeError):
    """Base class for errors raised while running a single SQL file."""

    action = "run"

    def __init__(self, path: str, cause: Any):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to {self.action} {path}: {cause}")


class UnitReadError(UnitExecutionError):
    """Raised when a SQL file cannot be read."""

    action = "read"


class SubmitError(UnitExecutionError):
    """Raised when a query job cannot be started."""

    action = "start job for"


class AwaitError(UnitExecutionError):
    """Raised when waiting for a query job fails."""

    action = "wait for job for"


class JobFailedError(UnitExecutionError):
    """Raised when BigQuery reports that a query job failed."""

    action = "complete job for"

    def __init__(
        self,
        path: str,
        cause: Any,
        job_id: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        self.job_id = job_id
        self.errors = errors or []
        super().__init__(path, cause)
        if job_id:
            self.context = {"job_id": job_id}


class RunCancelledError(BQPipeError):
    """Raised when a run is interrupted while a SQL file is in flight."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        message = "Run cancelled"
        if path:
            message += f" while processing {path}"
        super().__init__(message)
