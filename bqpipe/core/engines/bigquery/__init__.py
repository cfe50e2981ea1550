"""BigQuery query engine client."""

from .engine import CLOUD_PLATFORM_SCOPE, BigQueryEngine

__all__ = ["BigQueryEngine", "CLOUD_PLATFORM_SCOPE"]
