"""BigQuery implementation of the query engine client."""

from typing import Any, Dict, List, Optional, Sequence

import google.auth
from google.api_core.exceptions import GoogleAPICallError
from google.auth import impersonated_credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.cloud import bigquery

from bqpipe.core.engines.base import JobHandle, JobResult, QueryEngineClient
from bqpipe.exceptions import EngineConnectError
from bqpipe.logging import get_logger

logger = get_logger(name=__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def create_impersonated_credentials(
    target_principal: str, scopes: Sequence[str] = (CLOUD_PLATFORM_SCOPE,)
) -> impersonated_credentials.Credentials:
    """Create credentials that act as target_principal.

    The source identity comes from Application Default Credentials. The
    credentials are refreshed immediately so that a missing permission is
    reported before any query runs.

    Raises:
        EngineConnectError: If the source credentials cannot be found or the
            impersonation request is refused
    """
    try:
        source_credentials, _ = google.auth.default(scopes=list(scopes))
        credentials = impersonated_credentials.Credentials(
            source_credentials=source_credentials,
            target_principal=target_principal,
            target_scopes=list(scopes),
        )
        credentials.refresh(Request())
    except GoogleAuthError as e:
        raise EngineConnectError(
            f"Impersonation setup failed for {target_principal}: {e}",
            suggested_actions=[
                "Grant roles/iam.serviceAccountTokenCreator on the service account",
                "Run 'gcloud auth application-default login'",
            ],
        ) from e
    logger.debug(f"Impersonating service account {target_principal}")
    return credentials


class BigQueryEngine(QueryEngineClient):
    """Query engine client backed by google-cloud-bigquery."""

    def __init__(
        self,
        project_id: str,
        impersonate_service_account: Optional[str] = None,
        scopes: Sequence[str] = (CLOUD_PLATFORM_SCOPE,),
        client: Optional[bigquery.Client] = None,
    ):
        """Create the BigQuery client.

        Args:
            project_id: Project that owns and is billed for the query jobs
            impersonate_service_account: Optional service account to act as
            scopes: OAuth scopes requested for impersonated credentials
            client: Pre-built client, mainly for tests

        Raises:
            EngineConnectError: If the client cannot be created
        """
        self.project_id = project_id
        if client is not None:
            self._client = client
            return

        credentials = None
        if impersonate_service_account:
            credentials = create_impersonated_credentials(
                impersonate_service_account, scopes
            )
        try:
            self._client = bigquery.Client(project=project_id, credentials=credentials)
        except (GoogleAuthError, GoogleAPICallError) as e:
            raise EngineConnectError(
                f"Failed to create BigQuery client for project {project_id}: {e}",
                suggested_actions=["Run 'gcloud auth application-default login'"],
            ) from e
        logger.debug(f"Created BigQuery client for project {project_id}")

    def _job_config(self, dataset: Optional[str], dry_run: bool) -> bigquery.QueryJobConfig:
        job_config = bigquery.QueryJobConfig(dry_run=dry_run)
        if dry_run:
            # A cached result would report zero bytes processed
            job_config.use_query_cache = False
        if dataset:
            job_config.default_dataset = bigquery.DatasetReference.from_string(
                dataset, default_project=self.project_id
            )
        return job_config

    def submit(
        self,
        query: str,
        dataset: Optional[str] = None,
        location: Optional[str] = None,
        dry_run: bool = False,
    ) -> JobHandle:
        job = self._client.query(
            query,
            job_config=self._job_config(dataset, dry_run),
            location=location or None,
        )
        logger.debug(f"Submitted job {job.job_id} (dry_run={dry_run})")
        return JobHandle(
            job_id=job.job_id, dry_run=dry_run, location=job.location, job=job
        )

    def wait(self, handle: JobHandle) -> JobResult:
        job = handle.job
        # Dry run jobs are complete as soon as the request returns
        if not handle.dry_run:
            try:
                job.result()
            except GoogleAPICallError:
                if not job.error_result:
                    raise
        return self._to_result(handle, job)

    def _to_result(self, handle: JobHandle, job: Any) -> JobResult:
        error_result: Optional[Dict[str, Any]] = job.error_result
        errors: List[Dict[str, Any]] = list(job.errors or [])
        error = None
        if error_result:
            error = error_result.get("message") or str(error_result)
            logger.debug(f"Job {job.job_id} failed: {error}")
        return JobResult(
            job_id=job.job_id,
            dry_run=handle.dry_run,
            error=error,
            errors=errors,
            total_bytes_processed=job.total_bytes_processed,
            num_dml_affected_rows=job.num_dml_affected_rows,
        )

    def cancel(self, handle: JobHandle) -> None:
        if handle.dry_run or handle.job is None:
            return
        logger.debug(f"Cancelling job {handle.job_id}")
        handle.job.cancel()

    def _close(self) -> None:
        self._client.close()
        logger.debug("Closed BigQuery client")
