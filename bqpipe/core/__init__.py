"""Core pipeline execution for bqpipe."""
