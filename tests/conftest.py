"""Pytest configuration for bqpipe tests."""

import os
from typing import Dict, List, Optional

import pytest

from bqpipe.core.engines.base import JobHandle, JobResult, QueryEngineClient
from bqpipe.core.settings import RunConfiguration


class FakeEngine(QueryEngineClient):
    """In-memory query engine that records every call.

    Args:
        fail_on_submit: Substrings; a query containing one raises on submit
        fail_on_job: Substrings; a query containing one yields a failed job
        fail_on_wait: Substrings; a query containing one raises on wait
        affected_rows: DML row count reported for every successful job
    """

    def __init__(
        self,
        fail_on_submit: Optional[List[str]] = None,
        fail_on_job: Optional[List[str]] = None,
        fail_on_wait: Optional[List[str]] = None,
        affected_rows: Optional[int] = None,
    ):
        self.fail_on_submit = fail_on_submit or []
        self.fail_on_job = fail_on_job or []
        self.fail_on_wait = fail_on_wait or []
        self.affected_rows = affected_rows
        self.submitted: List[Dict] = []
        self.cancelled: List[str] = []
        self.close_calls = 0
        self._queries: Dict[str, str] = {}

    def submit(self, query, dataset=None, location=None, dry_run=False):
        for marker in self.fail_on_submit:
            if marker in query:
                raise RuntimeError(f"Syntax error near '{marker}'")
        job_id = f"job_{len(self.submitted) + 1}"
        self.submitted.append(
            {
                "query": query,
                "dataset": dataset,
                "location": location,
                "dry_run": dry_run,
                "job_id": job_id,
            }
        )
        self._queries[job_id] = query
        return JobHandle(job_id=job_id, dry_run=dry_run, location=location)

    def wait(self, handle):
        query = self._queries[handle.job_id]
        for marker in self.fail_on_wait:
            if marker in query:
                raise ConnectionError("connection reset")
        for marker in self.fail_on_job:
            if marker in query:
                return JobResult(
                    job_id=handle.job_id,
                    dry_run=handle.dry_run,
                    error=f"Table not found: {marker}",
                    errors=[{"reason": "notFound", "message": marker}],
                )
        return JobResult(
            job_id=handle.job_id,
            dry_run=handle.dry_run,
            total_bytes_processed=1024,
            num_dml_affected_rows=self.affected_rows,
        )

    def cancel(self, handle):
        self.cancelled.append(handle.job_id)

    def _close(self):
        self.close_calls += 1

    @property
    def queries(self) -> List[str]:
        return [s["query"] for s in self.submitted]


def _write_sql(root, relative_path: str, content: str) -> str:
    """Write a SQL file under root, creating parent directories."""
    path = os.path.join(str(root), relative_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def sql_dir(tmp_path):
    """Return an empty directory for SQL files."""
    directory = tmp_path / "sql"
    directory.mkdir()
    return directory


@pytest.fixture
def make_config(sql_dir):
    """Return a factory for RunConfiguration rooted at sql_dir."""

    def _make(**kwargs) -> RunConfiguration:
        values = {"directory": str(sql_dir), "project_id": "proj1"}
        values.update(kwargs)
        return RunConfiguration(**values)

    return _make


@pytest.fixture
def write_sql():
    """Return a helper that writes a SQL file under a root directory."""
    return _write_sql


@pytest.fixture
def make_engine():
    """Return the FakeEngine class for tests that configure failures."""
    return FakeEngine
