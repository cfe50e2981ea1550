"""Utility helpers for bqpipe."""
