"""Pipeline runner for bqpipe.

The runner executes every SQL file under the configured directory, one at a
time, in ascending path order. Later files may depend on tables or views
created by earlier ones, so nothing runs concurrently and the first failure
stops the run.

Run states::

    VALIDATING -> DISCOVERING -> EMPTY
                              -> PROCESSING -> SUCCEEDED
    (any state) -> FAILED
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from bqpipe.core.discovery import Unit, discover_units
from bqpipe.core.engines.base import JobHandle, QueryEngineClient
from bqpipe.core.settings import RunConfiguration
from bqpipe.core.template import build_render_context, render
from bqpipe.exceptions import (
    AwaitError,
    BQPipeError,
    EngineConnectError,
    JobFailedError,
    RunCancelledError,
    SubmitError,
    UnitReadError,
)
from bqpipe.logging import get_logger

logger = get_logger(__name__)


class RunState(Enum):
    VALIDATING = "validating"
    DISCOVERING = "discovering"
    EMPTY = "empty"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class UnitStatus(Enum):
    COMPLETED = "completed"
    VALIDATED = "validated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UnitOutcome:
    """Result of processing one SQL file."""

    unit: Unit
    status: UnitStatus
    duration: float
    job_id: Optional[str] = None
    total_bytes_processed: Optional[int] = None
    num_dml_affected_rows: Optional[int] = None

    @property
    def path(self) -> str:
        return self.unit.path


@dataclass(frozen=True)
class RunResult:
    """Summary of a run that finished without a fatal error."""

    state: RunState
    outcomes: Tuple[UnitOutcome, ...]
    duration: float
    dry_run: bool = False

    @property
    def completed(self) -> int:
        return sum(1 for o in self.outcomes if o.status != UnitStatus.SKIPPED)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == UnitStatus.SKIPPED)


class RunReporter:
    """Receives progress callbacks from the runner. Does nothing by default."""

    def run_started(self, config: RunConfiguration) -> None:
        pass

    def units_discovered(self, directory: str, units: List[Unit]) -> None:
        pass

    def unit_started(self, unit: Unit, dry_run: bool) -> None:
        pass

    def unit_skipped(self, outcome: UnitOutcome) -> None:
        pass

    def unit_finished(self, outcome: UnitOutcome) -> None:
        pass

    def run_finished(self, result: RunResult) -> None:
        pass


ClientFactory = Callable[[RunConfiguration], QueryEngineClient]


def create_bigquery_client(config: RunConfiguration) -> QueryEngineClient:
    from bqpipe.core.engines.bigquery import BigQueryEngine

    return BigQueryEngine(
        project_id=config.project_id,
        impersonate_service_account=config.impersonate_service_account or None,
    )


class PipelineRunner:
    """Runs the SQL files of one RunConfiguration against a query engine."""

    def __init__(
        self,
        config: RunConfiguration,
        client_factory: Optional[ClientFactory] = None,
        reporter: Optional[RunReporter] = None,
    ):
        self.config = config
        self.client_factory = client_factory or create_bigquery_client
        self.reporter = reporter or RunReporter()
        self.state = RunState.VALIDATING
        self._context = build_render_context(
            config.variables, dataset=config.dataset, project_id=config.project_id
        )

    def run(self) -> RunResult:
        """Execute the pipeline.

        Returns:
            RunResult in state EMPTY or SUCCEEDED

        Raises:
            BQPipeError: The first fatal error; no later file is attempted
            RunCancelledError: If interrupted while a job was in flight
        """
        start = time.monotonic()
        try:
            return self._run(start)
        except BaseException:
            self.state = RunState.FAILED
            raise

    def _run(self, start: float) -> RunResult:
        self.state = RunState.VALIDATING
        self.config.validate()
        self.reporter.run_started(self.config)

        self.state = RunState.DISCOVERING
        units = discover_units(self.config.directory)
        self.reporter.units_discovered(self.config.directory, units)

        if not units:
            logger.debug(f"No .sql files found under {self.config.directory}")
            self.state = RunState.EMPTY
            return self._finish(RunState.EMPTY, [], start)

        client = self._connect()
        self.state = RunState.PROCESSING
        outcomes = []
        with client:
            for unit in units:
                outcomes.append(self._process(client, unit))

        logger.debug(f"Processed {len(outcomes)} file(s) successfully")
        return self._finish(RunState.SUCCEEDED, outcomes, start)

    def _finish(
        self, state: RunState, outcomes: List[UnitOutcome], start: float
    ) -> RunResult:
        self.state = state
        result = RunResult(
            state=state,
            outcomes=tuple(outcomes),
            duration=time.monotonic() - start,
            dry_run=self.config.dry_run,
        )
        self.reporter.run_finished(result)
        return result

    def _connect(self) -> QueryEngineClient:
        try:
            return self.client_factory(self.config)
        except BQPipeError:
            raise
        except Exception as e:
            raise EngineConnectError(
                f"Failed to create query engine client: {e}"
            ) from e

    def render_unit(self, unit: Unit) -> str:
        """Read and render one SQL file with the run's variables."""
        path = unit.resolve()
        try:
            text = unit.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise UnitReadError(unit.path, e) from e
        logger.debug(f"Rendering {path}")
        return render(text, self._context, unit.path)

    def _process(self, client: QueryEngineClient, unit: Unit) -> UnitOutcome:
        start = time.monotonic()
        dry_run = self.config.dry_run
        self.reporter.unit_started(unit, dry_run)

        sql = self.render_unit(unit)
        if not sql.strip():
            outcome = UnitOutcome(
                unit=unit,
                status=UnitStatus.SKIPPED,
                duration=time.monotonic() - start,
            )
            logger.debug(f"Skipping empty SQL in {unit.path}")
            self.reporter.unit_skipped(outcome)
            return outcome

        handle: Optional[JobHandle] = None
        try:
            try:
                handle = client.submit(
                    sql,
                    dataset=self.config.dataset or None,
                    location=self.config.location or None,
                    dry_run=dry_run,
                )
            except Exception as e:
                raise SubmitError(unit.path, e) from e

            try:
                result = client.wait(handle)
            except Exception as e:
                raise AwaitError(unit.path, e) from e
        except KeyboardInterrupt:
            self._cancel(client, handle)
            raise RunCancelledError(unit.path)

        if not result.success:
            raise JobFailedError(
                unit.path, result.error, job_id=result.job_id, errors=result.errors
            )

        outcome = UnitOutcome(
            unit=unit,
            status=UnitStatus.VALIDATED if dry_run else UnitStatus.COMPLETED,
            duration=time.monotonic() - start,
            job_id=result.job_id,
            total_bytes_processed=result.total_bytes_processed,
            num_dml_affected_rows=result.num_dml_affected_rows,
        )
        self.reporter.unit_finished(outcome)
        return outcome

    def _cancel(self, client: QueryEngineClient, handle: Optional[JobHandle]) -> None:
        if handle is None:
            return
        try:
            client.cancel(handle)
        except Exception as e:
            logger.warning(f"Failed to cancel job {handle.job_id}: {e}")
