"""Command-line interface for bqpipe."""
