"""Base class for query engine clients in bqpipe."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class JobHandle:
    """Reference to a submitted query job."""

    job_id: Optional[str]
    dry_run: bool = False
    location: Optional[str] = None
    job: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class JobResult:
    """Final state of a query job.

    A job either succeeded (error is None) or failed with the error reported
    by the engine.
    """

    job_id: Optional[str]
    dry_run: bool = False
    error: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)
    total_bytes_processed: Optional[int] = None
    num_dml_affected_rows: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.error is None


class QueryEngineClient(ABC):
    """Abstract base class for query engine clients.

    A client is created once per run and reused for every SQL file. It is a
    context manager; leaving the context closes the connection exactly once.
    """

    _closed = False

    @abstractmethod
    def submit(
        self,
        query: str,
        dataset: Optional[str] = None,
        location: Optional[str] = None,
        dry_run: bool = False,
    ) -> JobHandle:
        """Submit a query.

        Args:
            query: Rendered SQL text
            dataset: Default dataset for unqualified table names
            location: Processing location for the job
            dry_run: Validate the query without executing it

        Returns:
            Handle for the submitted job
        """
        pass

    @abstractmethod
    def wait(self, handle: JobHandle) -> JobResult:
        """Block until the job completes.

        Returns:
            The job result; a job failure is reported in the result, not raised
        """
        pass

    @abstractmethod
    def cancel(self, handle: JobHandle) -> None:
        """Request cancellation of a running job."""
        pass

    @abstractmethod
    def _close(self) -> None:
        pass

    def close(self) -> None:
        """Release the connection. Further calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._close()

    def __enter__(self) -> "QueryEngineClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
