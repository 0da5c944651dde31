"""Concurrent release download and per-symbol aggregation.

This package contains the per-company worker, the coordinator that fans
workers out and merges their output, and the atomic per-symbol file writer.
"""
