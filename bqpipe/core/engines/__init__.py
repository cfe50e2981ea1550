"""Query engine clients for bqpipe."""
